import logging

from flask import Flask, jsonify
from flask_bcrypt import Bcrypt
from flask_cors import CORS
from flask_jwt_extended import JWTManager
from flask_mail import Mail

from domora.config import Config
from domora.core.errors import DomoraError
from domora.extensions import init_mongo

bcrypt = Bcrypt()
mail = Mail()
jwt = JWTManager()

logger = logging.getLogger(__name__)


def configure_logging(app):
    level = getattr(logging, str(app.config.get("LOG_LEVEL", "INFO")).upper(), logging.INFO)
    logging.basicConfig(
        level=level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s"
    )
    logging.getLogger("domora").setLevel(level)
    app.logger.setLevel(level)


def register_error_handlers(app):
    @app.errorhandler(DomoraError)
    def handle_domain_error(error):
        return jsonify({"error": error.message}), error.status_code

    @jwt.unauthorized_loader
    def handle_missing_token(reason):
        return jsonify({"error": reason}), 401

    @jwt.invalid_token_loader
    def handle_invalid_token(reason):
        return jsonify({"error": reason}), 422


def create_app(config_class=Config, overrides=None):
    app = Flask(__name__)
    app.config.from_object(config_class)
    if overrides:
        app.config.update(overrides)

    # Disable strict slashes to prevent 308 redirects that break CORS preflight
    app.url_map.strict_slashes = False

    configure_logging(app)

    # Allow the web client to talk to Flask
    CORS(
        app,
        supports_credentials=True,
        resources={r"/api/*": {"origins": app.config["CORS_ORIGINS"]}}
    )
    # Init extensions
    init_mongo(app)
    bcrypt.init_app(app)
    mail.init_app(app)
    jwt.init_app(app)

    register_error_handlers(app)

    # Register API blueprints
    from domora.auth.routes import auth_bp
    from domora.users.routes import users_bp
    from domora.households.routes import households_bp
    from domora.tasks.routes import tasks_bp
    from domora.shopping.routes import shopping_bp
    from domora.finances.routes import finances_bp

    app.register_blueprint(auth_bp, url_prefix='/api/v1/auth')
    app.register_blueprint(users_bp, url_prefix='/api/v1/users')
    app.register_blueprint(households_bp, url_prefix='/api/v1/households')
    app.register_blueprint(tasks_bp, url_prefix='/api/v1/households/<household_id>/tasks')
    app.register_blueprint(shopping_bp, url_prefix='/api/v1/households/<household_id>/shopping')
    app.register_blueprint(finances_bp, url_prefix='/api/v1/households/<household_id>/finances')

    logger.info("[App] Domora API ready")
    return app
