import logging

from pymongo import ASCENDING, DESCENDING, MongoClient

logger = logging.getLogger(__name__)

_client = None
_db = None


def init_mongo(app):
    global _client, _db
    # Tests hand in a ready client (mongomock) through the config
    _client = app.config.get("MONGO_CLIENT") or MongoClient(app.config["MONGO_URI"])

    # get_default_database() takes the DB name from the URI (e.g. /domora),
    # falling back to the configured name
    _db = _client.get_default_database(default=app.config.get("MONGO_DB_NAME", "domora"))

    logger.info("[MongoDB] Connected to database: %s", _db.name)
    ensure_indexes(_db)


def ensure_indexes(database):
    database.users.create_index("email", unique=True)
    database.households.create_index("invite_code", unique=True)
    database.household_members.create_index(
        [("household_id", ASCENDING), ("user_id", ASCENDING)], unique=True
    )
    database.household_members.create_index([("user_id", ASCENDING)])
    database.tasks.create_index([("household_id", ASCENDING), ("due_at", ASCENDING)])
    database.task_completions.create_index([("household_id", ASCENDING), ("completed_at", DESCENDING)])
    database.finance_entries.create_index([("household_id", ASCENDING), ("entry_date", DESCENDING)])
    database.cash_audit_requests.create_index([("household_id", ASCENDING), ("created_at", DESCENDING)])
    database.shopping_items.create_index([("household_id", ASCENDING), ("created_at", DESCENDING)])
    database.household_events.create_index([("household_id", ASCENDING), ("created_at", DESCENDING)])


# Proxy that always resolves to the current db, so modules can import it early
class _DBProxy:
    def __getattr__(self, name):
        if _db is None:
            raise RuntimeError("Database not initialized. Call init_mongo first.")
        return getattr(_db, name)

    def __getitem__(self, name):
        if _db is None:
            raise RuntimeError("Database not initialized. Call init_mongo first.")
        return _db[name]

    def __bool__(self):
        return _db is not None


db = _DBProxy()
