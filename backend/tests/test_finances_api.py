from datetime import datetime

from bson import ObjectId

from domora import mail
from domora.utils.dates import utcnow


def finances_url(household, path=""):
    return f"/api/v1/households/{household['id']}/finances{path}"


def add_entry(client, household, amount=30, headers=None, **overrides):
    payload = {
        "description": "Groceries",
        "amount": amount,
        "paid_by_user_ids": [household["alice_id"]],
        "beneficiary_user_ids": [household["alice_id"], household["bob_id"]],
        "category": "food",
    }
    payload.update(overrides)
    res = client.post(finances_url(household, "/entries"), json=payload, headers=headers or household["alice"])
    assert res.status_code == 201, res.get_json()
    return res.get_json()


def test_entry_balances_and_transfers(client, household):
    add_entry(client, household, amount="30")
    add_entry(client, household, amount="10.01", headers=household["bob"],
              paid_by_user_ids=[household["bob_id"]], category="cleaning")

    summary = client.get(finances_url(household, "/balances"), headers=household["bob"]).get_json()
    balances = {row["member_id"]: row["balance"] for row in summary["balances"]}

    # alice: +15 - 5.01, bob: -15 + 5.00
    assert balances == {household["alice_id"]: 9.99, household["bob_id"]: -9.99}
    assert summary["balances"][0]["member_id"] == household["alice_id"]
    assert summary["entry_count"] == 2
    assert summary["category_totals"] == {"food": 30.0, "cleaning": 10.01}
    assert summary["transfers"] == [{
        "from_member_id": household["bob_id"],
        "to_member_id": household["alice_id"],
        "amount": 9.99,
    }]

    transfers = client.get(finances_url(household, "/settlements"), headers=household["bob"]).get_json()
    assert transfers == summary["transfers"]


def test_entry_validation(client, household, register):
    headers = household["alice"]
    res = client.post(finances_url(household, "/entries"), json={
        "description": "Free", "amount": 0,
        "paid_by_user_ids": [household["alice_id"]], "beneficiary_user_ids": [household["bob_id"]],
    }, headers=headers)
    assert res.status_code == 400

    res = client.post(finances_url(household, "/entries"), json={
        "description": "Nobody", "amount": 5,
        "paid_by_user_ids": [], "beneficiary_user_ids": [household["bob_id"]],
    }, headers=headers)
    assert res.status_code == 400

    carol_id, _ = register("Carol")
    res = client.post(finances_url(household, "/entries"), json={
        "description": "Outsider", "amount": 5,
        "paid_by_user_ids": [carol_id], "beneficiary_user_ids": [household["bob_id"]],
    }, headers=headers)
    assert res.status_code == 400


def test_only_creator_edits_entries(client, household):
    entry = add_entry(client, household)
    entry_url = finances_url(household, f"/entries/{entry['id']}")

    assert client.patch(entry_url, json={"amount": 12}, headers=household["bob"]).status_code == 403
    assert client.delete(entry_url, headers=household["bob"]).status_code == 403

    res = client.patch(entry_url, json={"amount": 12, "paid_by_user_ids": [household["bob_id"]]},
                       headers=household["alice"])
    assert res.status_code == 200
    assert res.get_json()["amount"] == 12.0
    assert res.get_json()["paid_by"] == household["bob_id"]

    assert client.delete(entry_url, headers=household["alice"]).status_code == 200
    assert client.get(entry_url, headers=household["alice"]).status_code == 404


def test_entry_creation_is_in_feed(client, household):
    add_entry(client, household)
    events = client.get(f"/api/v1/households/{household['id']}/events", headers=household["bob"]).get_json()
    assert events[0]["event_type"] == "finance_created"
    assert events[0]["payload"]["amount"] == 30.0


def test_reimbursement_preview(client, household):
    res = client.post(finances_url(household, "/preview"), json={
        "amount": 10,
        "paid_by_user_ids": [household["bob_id"]],
        "beneficiary_user_ids": [household["alice_id"], household["bob_id"]],
    }, headers=household["alice"])
    assert res.status_code == 200
    assert res.get_json() == [
        {"member_id": household["bob_id"], "delta": 5.0},
        {"member_id": household["alice_id"], "delta": -5.0},
    ]


def test_cash_audit_mails_members_and_starts_new_period(client, household):
    add_entry(client, household, entry_date="2020-01-15")

    with mail.record_messages() as outbox:
        res = client.post(finances_url(household, "/cash-audits"), headers=household["bob"])

    assert res.status_code == 201
    assert res.get_json()["status"] == "sent"
    assert len(outbox) == 1
    assert sorted(outbox[0].recipients) == ["alice@example.com", "bob@example.com"]
    assert "Bob pays Alice 15.00 EUR" in outbox[0].body

    summary = client.get(finances_url(household, "/balances"), headers=household["bob"]).get_json()
    assert summary["entry_count"] == 0
    assert summary["since"] is not None

    audits = client.get(finances_url(household, "/cash-audits"), headers=household["bob"]).get_json()
    assert len(audits) == 1

    # balances are settled, so bob may leave now
    assert client.post(f"/api/v1/households/{household['id']}/leave", headers=household["bob"]).status_code == 200


def test_cash_audit_records_mail_failure(client, household, monkeypatch):
    def broken_send(message):
        raise ConnectionRefusedError("smtp down")

    monkeypatch.setattr(mail, "send", broken_send)
    res = client.post(finances_url(household, "/cash-audits"), headers=household["alice"])

    assert res.status_code == 201
    assert res.get_json()["status"] == "failed"


def test_subscriptions_crud_and_booking(client, household, db):
    headers = household["alice"]
    res = client.post(finances_url(household, "/subscriptions"), json={
        "name": "Internet",
        "amount": "40",
        "recurrence": "monthly",
        "paid_by_user_ids": [household["alice_id"]],
        "beneficiary_user_ids": [household["alice_id"], household["bob_id"]],
    }, headers=headers)
    assert res.status_code == 201
    subscription = res.get_json()
    assert subscription["cron_pattern"] == "0 9 1 * *"
    assert datetime.fromisoformat(subscription["next_run_at"]) > utcnow()

    res = client.patch(finances_url(household, f"/subscriptions/{subscription['id']}"),
                       json={"recurrence": "quarterly"}, headers=headers)
    assert res.get_json()["cron_pattern"] == "0 9 1 */3 *"

    # nothing due yet
    assert client.post(finances_url(household, "/subscriptions/book"), headers=headers).get_json()["booked"] == []

    db.finance_subscriptions.update_one(
        {"_id": ObjectId(subscription["id"])},
        {"$set": {"next_run_at": datetime(2020, 1, 1, 9, 0)}}
    )
    booked = client.post(finances_url(household, "/subscriptions/book"), headers=headers).get_json()["booked"]
    assert len(booked) >= 2
    assert booked[0]["entry_date"] == "2020-01-01"
    assert booked[1]["entry_date"] == "2020-04-01"
    assert booked[0]["description"] == "Internet"

    listed = client.get(finances_url(household, "/subscriptions"), headers=headers).get_json()
    assert datetime.fromisoformat(listed[0]["next_run_at"]) > utcnow()

    assert client.delete(finances_url(household, f"/subscriptions/{subscription['id']}"),
                         headers=headers).status_code == 200
    assert client.get(finances_url(household, "/subscriptions"), headers=headers).get_json() == []
