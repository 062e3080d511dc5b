from bson import ObjectId


def url(household, path=""):
    return f"/api/v1/households/{household['id']}{path}"


def test_create_list_and_get(client, household):
    alice = household["alice"]

    listed = client.get("/api/v1/households", headers=alice).get_json()
    assert [h["id"] for h in listed] == [household["id"]]

    res = client.get(url(household), headers=alice)
    assert res.status_code == 200
    body = res.get_json()
    assert body["my_role"] == "owner"
    assert body["currency"] == "EUR"
    assert {m["user_id"] for m in body["members"]} == {household["alice_id"], household["bob_id"]}
    assert {m["display_name"] for m in body["members"]} == {"Alice", "Bob"}


def test_join_is_idempotent_and_checks_code(client, household):
    bob = household["bob"]
    res = client.post("/api/v1/households/join", json={"invite_code": household["invite_code"].lower()}, headers=bob)
    assert res.status_code == 200
    assert len(client.get(url(household, "/members"), headers=bob).get_json()) == 2

    res = client.post("/api/v1/households/join", json={"invite_code": "NOPE1234"}, headers=bob)
    assert res.status_code == 404


def test_non_members_are_rejected(client, household, register):
    _, carol = register("Carol")
    assert client.get(url(household), headers=carol).status_code == 403
    assert client.get("/api/v1/households/not-an-id", headers=carol).status_code == 404


def test_update_settings_owner_only(client, household):
    res = client.patch(url(household), json={"name": "Renamed"}, headers=household["bob"])
    assert res.status_code == 403

    res = client.patch(url(household), json={"currency": "chf", "task_laziness_enabled": True},
                       headers=household["alice"])
    assert res.status_code == 200
    assert res.get_json()["currency"] == "CHF"
    assert res.get_json()["task_laziness_enabled"] is True


def test_last_owner_cannot_be_demoted(client, household):
    res = client.put(url(household, f"/members/{household['alice_id']}/role"),
                     json={"role": "member"}, headers=household["alice"])
    assert res.status_code == 400
    assert "owner" in res.get_json()["error"]


def test_role_change_records_event(client, household):
    alice = household["alice"]
    res = client.put(url(household, f"/members/{household['bob_id']}/role"), json={"role": "owner"}, headers=alice)
    assert res.status_code == 200
    assert res.get_json()["role"] == "owner"

    # with two owners alice may step down
    res = client.put(url(household, f"/members/{household['alice_id']}/role"), json={"role": "member"}, headers=alice)
    assert res.status_code == 200

    events = client.get(url(household, "/events"), headers=household["bob"]).get_json()
    role_events = [e for e in events if e["event_type"] == "role_changed"]
    assert len(role_events) == 2
    assert {"previous_role": "member", "next_role": "owner"} in [e["payload"] for e in role_events]


def test_member_settings_permissions(client, household):
    res = client.patch(url(household, f"/members/{household['alice_id']}"),
                       json={"task_laziness_factor": 0.5}, headers=household["bob"])
    assert res.status_code == 403

    res = client.patch(url(household, f"/members/{household['bob_id']}"),
                       json={"task_laziness_factor": 1.5}, headers=household["bob"])
    assert res.status_code == 200
    assert res.get_json()["task_laziness_factor"] == 1.5

    res = client.patch(url(household, f"/members/{household['bob_id']}"),
                       json={"task_laziness_factor": 3}, headers=household["alice"])
    assert res.status_code == 400


def test_vacation_return_lifts_points(client, household, db):
    db.household_members.update_one(
        {"household_id": ObjectId(household["id"]), "user_id": ObjectId(household["alice_id"])},
        {"$set": {"total_pimpers": 12.0}}
    )
    member_url = url(household, f"/members/{household['bob_id']}")
    bob = household["bob"]

    assert client.patch(member_url, json={"vacation_mode": True}, headers=bob).get_json()["vacation_mode"] is True
    res = client.patch(member_url, json={"vacation_mode": False}, headers=bob)
    assert res.get_json()["total_pimpers"] == 12.0

    types = [e["event_type"] for e in client.get(url(household, "/events"), headers=bob).get_json()]
    assert "vacation_mode_enabled" in types
    assert "vacation_mode_disabled" in types


def test_reset_pimpers_owner_only(client, household, db):
    db.household_members.update_many({}, {"$set": {"total_pimpers": 5.0}})

    assert client.post(url(household, "/pimpers/reset"), headers=household["bob"]).status_code == 403
    res = client.post(url(household, "/pimpers/reset"), headers=household["alice"])
    assert res.get_json() == {"reset_members": 2}

    members = client.get(url(household, "/members"), headers=household["alice"]).get_json()
    assert all(m["total_pimpers"] == 0 for m in members)


def test_leave_requires_settled_balance(client, household):
    bob = household["bob"]
    client.post(url(household, "/finances/entries"), json={
        "description": "Groceries",
        "amount": 40,
        "paid_by_user_ids": [household["alice_id"]],
        "beneficiary_user_ids": [household["alice_id"], household["bob_id"]],
    }, headers=household["alice"])

    res = client.post(url(household, "/leave"), headers=bob)
    assert res.status_code == 400
    assert "balance" in res.get_json()["error"]


def test_member_leaves_and_last_owner_cannot(client, household):
    res = client.post(url(household, "/leave"), headers=household["alice"])
    assert res.status_code == 400

    res = client.post(url(household, "/leave"), headers=household["bob"])
    assert res.status_code == 200
    assert client.get(url(household), headers=household["bob"]).status_code == 403


def test_remove_member_drops_them_from_rotations(client, household):
    alice = household["alice"]
    task = client.post(url(household, "/tasks"), json={
        "title": "Trash",
        "rotation_user_ids": [household["bob_id"], household["alice_id"]],
    }, headers=alice).get_json()
    assert task["assignee_id"] == household["bob_id"]

    res = client.delete(url(household, f"/members/{household['bob_id']}"), headers=alice)
    assert res.status_code == 200

    task = client.get(url(household, f"/tasks/{task['id']}"), headers=alice).get_json()
    assert task["rotation_user_ids"] == [household["alice_id"]]
    assert task["assignee_id"] == household["alice_id"]


def test_removed_assignee_hands_task_to_next_in_rotation(client, household, register):
    alice = household["alice"]
    carol_id, carol = register("Carol")
    client.post("/api/v1/households/join", json={"invite_code": household["invite_code"]}, headers=carol)

    task = client.post(url(household, "/tasks"), json={
        "title": "Hoover",
        "rotation_user_ids": [household["alice_id"], household["bob_id"], carol_id],
    }, headers=alice).get_json()
    res = client.post(url(household, f"/tasks/{task['id']}/takeover"), headers=household["bob"])
    assert res.get_json()["task"]["assignee_id"] == household["bob_id"]

    assert client.delete(url(household, f"/members/{household['bob_id']}"), headers=alice).status_code == 200

    task = client.get(url(household, f"/tasks/{task['id']}"), headers=alice).get_json()
    assert task["rotation_user_ids"] == [household["alice_id"], carol_id]
    assert task["assignee_id"] == carol_id


def test_dissolve_only_when_alone(client, household):
    alice = household["alice"]
    assert client.delete(url(household), headers=alice).status_code == 400

    client.delete(url(household, f"/members/{household['bob_id']}"), headers=alice)
    assert client.delete(url(household), headers=alice).status_code == 200
    assert client.get(url(household), headers=alice).status_code == 404
