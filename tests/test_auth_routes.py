"""HTTP tests for /auth, sessions and role checks."""

from models import db
from models.session import Session
from models.user import User
from security.password import hash_password, needs_rehash, verify_password
from security.password_policy import validate_password
from tests.conftest import PASSWORD


def test_register_assigns_guest_role(client):
    resp = client.post(
        "/auth/register",
        json={"email": "New@Example.com", "password": "Welcome2Stay", "first_name": "Ann"},
    )

    assert resp.status_code == 201
    body = resp.get_json()
    assert body["email"] == "new@example.com"
    assert body["role"] == "guest"
    assert body["first_name"] == "Ann"


def test_register_rejects_weak_password(client):
    resp = client.post("/auth/register", json={"email": "a@example.com", "password": "short"})
    assert resp.status_code == 400
    assert resp.get_json()["details"]


def test_register_duplicate_email(client, make_user):
    make_user("taken@example.com")
    resp = client.post("/auth/register", json={"email": "taken@example.com", "password": "Welcome2Stay"})
    assert resp.status_code == 409


def test_login_bad_credentials(client, make_user):
    make_user("guest@example.com")
    resp = client.post("/auth/login", json={"email": "guest@example.com", "password": "wrong"})
    assert resp.status_code == 401


def test_profile_roundtrip(login_as):
    client, headers, _ = login_as("guest@example.com")

    assert client.get("/auth/profile").get_json()["role"] == "guest"

    resp = client.put("/auth/profile", json={"phone": " +1 555 0100 ", "last_name": ""}, headers=headers)
    assert resp.status_code == 200
    assert resp.get_json()["phone"] == "+1 555 0100"
    assert resp.get_json()["last_name"] is None


def test_profile_requires_login(client):
    assert client.get("/auth/profile").status_code == 401


def test_change_password_revokes_sessions(login_as):
    client, headers, user = login_as("guest@example.com")

    resp = client.put(
        "/auth/change-password",
        json={"current_password": PASSWORD, "new_password": "Brand9NewPass"},
        headers=headers,
    )

    assert resp.status_code == 200
    assert verify_password("Brand9NewPass", db.session.get(User, user.id).password_hash)
    assert Session.query.filter_by(user_id=user.id, revoked=False).count() == 0
    assert client.get("/auth/profile").status_code == 401


def test_change_password_checks_current(login_as):
    client, headers, _ = login_as("guest@example.com")
    resp = client.put(
        "/auth/change-password",
        json={"current_password": "nope", "new_password": "Brand9NewPass"},
        headers=headers,
    )
    assert resp.status_code == 401


def test_logout(login_as):
    client, headers, _ = login_as("guest@example.com")
    assert client.post("/auth/logout", headers=headers).status_code == 200
    assert client.get("/auth/profile").status_code == 401


def test_admin_role_outranks_others(make_user):
    from utils.seed import grant_role

    user = make_user("boss@example.com", role="manager")
    assert user.role == "manager"
    grant_role(user, "admin")
    assert user.role == "admin"


def test_audit_logs_admin_only(login_as):
    guest_client, _, _ = login_as("guest@example.com")
    assert guest_client.get("/admin/audit-logs").status_code == 403

    admin_client, _, admin = login_as("admin@example.com", role="admin")
    rows = admin_client.get("/admin/audit-logs?action=LOGIN_SUCCESS").get_json()
    assert {r["user_id"] for r in rows} >= {admin.id}


def test_password_helpers():
    hashed = hash_password("Welcome2Stay")
    assert verify_password("Welcome2Stay", hashed)
    assert not verify_password("welcome2stay", hashed)
    assert not verify_password("Welcome2Stay", "not-a-bcrypt-hash")
    assert validate_password("Welcome2Stay") == (True, [])
    assert not validate_password("alllowercase1")[0]
    assert needs_rehash("garbage")


def test_health(client):
    assert client.get("/health").get_json() == {"status": "ok"}


def test_login_rehashes_when_cost_changes(app, client, make_user):
    import bcrypt

    user = make_user("old@example.com")
    user.password_hash = bcrypt.hashpw(PASSWORD.encode(), bcrypt.gensalt(rounds=5)).decode()
    db.session.commit()

    resp = client.post("/auth/login", json={"email": "old@example.com", "password": PASSWORD})

    assert resp.status_code == 200
    stored = db.session.get(User, user.id).password_hash
    assert stored.split("$")[2] == "04"
    assert verify_password(PASSWORD, stored)
