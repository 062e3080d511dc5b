def test_register_login_and_me(client):
    res = client.post("/api/v1/auth/register", json={
        "name": "Alice", "email": "Alice@Example.com", "password": "correct-horse",
    })
    assert res.status_code == 201
    assert res.get_json()["user"]["email"] == "alice@example.com"

    res = client.post("/api/v1/auth/login", json={"email": "alice@example.com", "password": "correct-horse"})
    assert res.status_code == 200
    token = res.get_json()["access_token"]

    res = client.get("/api/v1/auth/me", headers={"Authorization": f"Bearer {token}"})
    assert res.status_code == 200
    assert res.get_json()["name"] == "Alice"


def test_register_rejects_duplicates_and_short_passwords(client, register):
    register("Alice")
    res = client.post("/api/v1/auth/register", json={
        "name": "Alice", "email": "alice@example.com", "password": "correct-horse",
    })
    assert res.status_code == 409

    res = client.post("/api/v1/auth/register", json={"name": "Bob", "email": "bob@example.com", "password": "short"})
    assert res.status_code == 400

    res = client.post("/api/v1/auth/register", json={"name": "Bob"})
    assert res.status_code == 400
    assert "Missing required fields" in res.get_json()["error"]


def test_login_with_wrong_password(client, register):
    register("Alice")
    res = client.post("/api/v1/auth/login", json={"email": "alice@example.com", "password": "nope-nope"})
    assert res.status_code == 401


def test_me_requires_token(client):
    assert client.get("/api/v1/auth/me").status_code == 401


def test_profile_update(client, register):
    _, headers = register("Alice")
    res = client.patch("/api/v1/users/profile", json={
        "display_name": "Ali", "paypal_name": "ali.pp", "wero_name": "",
    }, headers=headers)
    assert res.status_code == 200

    profile = client.get("/api/v1/users/profile", headers=headers).get_json()
    assert profile["display_name"] == "Ali"
    assert profile["paypal_name"] == "ali.pp"
    assert profile["wero_name"] is None
