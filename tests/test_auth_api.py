from tests.conftest import PASSWORD, bearer


def test_register_user(client):
    r = client.post("/api/users/", json={
        "email": "ioana@example.com",
        "first_name": "Ioana",
        "last_name": "Ionescu",
        "phone_number": "0700000000",
        "driving_license": "B-999",
        "password": PASSWORD,
    })
    assert r.status_code == 200
    body = r.json()
    assert body["email"] == "ioana@example.com"
    assert body["role"] == "customer"
    assert body["bookings"] == []
    assert "password" not in body and "hashed_password" not in body


def test_register_duplicate_email(client, customer):
    r = client.post("/api/users/", json={
        "email": customer.email,
        "first_name": "Ana",
        "last_name": "Pop",
        "password": PASSWORD,
    })
    assert r.status_code == 400
    assert r.json()["detail"] == "Email ya registrado"


def test_register_invalid_email(client):
    r = client.post("/api/users/", json={
        "email": "no-es-un-email",
        "first_name": "Ana",
        "last_name": "Pop",
        "password": PASSWORD,
    })
    assert r.status_code == 422


def test_admin_role_from_config(admin):
    assert admin.role == "admin"


def test_token_and_me(client, customer):
    r = client.post("/api/token", data={"username": customer.email, "password": PASSWORD})
    assert r.status_code == 200
    token = r.json()["access_token"]
    assert r.json()["token_type"] == "bearer"

    me = client.get("/api/users/me/", headers={"Authorization": f"Bearer {token}"})
    assert me.status_code == 200
    assert me.json()["email"] == customer.email


def test_token_wrong_password(client, customer):
    r = client.post("/api/token", data={"username": customer.email, "password": "incorrecta"})
    assert r.status_code == 401
    assert r.headers["WWW-Authenticate"] == "Bearer"


def test_me_requires_token(client):
    assert client.get("/api/users/me/").status_code == 401
    r = client.get("/api/users/me/", headers={"Authorization": "Bearer basura"})
    assert r.status_code == 401


def test_users_list_admin_only(client, customer, admin):
    assert client.get("/api/users/", headers=bearer(customer)).status_code == 403
    r = client.get("/api/users/", headers=bearer(admin))
    assert r.status_code == 200
    assert {u["email"] for u in r.json()} == {customer.email, admin.email}
