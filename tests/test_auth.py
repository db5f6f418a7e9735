# tests/test_auth.py
from datetime import timedelta

from medireminder.core.auth import create_access_token
from tests._helpers import TEST_SECRET, auth_header, register


def test_register_then_login_scenario(client):
    reg = client.post("/auth/register", json={"name": "Ana", "email": "ana@x.com", "password": "secret1"})
    assert reg.status_code == 201
    body = reg.json()
    assert body["success"] is True
    assert body["token"]
    assert body["user"]["name"] == "Ana"
    assert body["user"]["email"] == "ana@x.com"

    ok = client.post("/auth/login", json={"email": "ana@x.com", "password": "secret1"})
    assert ok.status_code == 200
    assert ok.json()["user"]["id"] == body["user"]["id"]

    bad = client.post("/auth/login", json={"email": "ana@x.com", "password": "wrong"})
    assert bad.status_code == 401
    assert bad.json()["error"] == "invalid_credential"


def test_login_unknown_email_looks_like_wrong_password(client):
    register(client)
    unknown = client.post("/auth/login", json={"email": "nobody@x.com", "password": "secret1"})
    wrong = client.post("/auth/login", json={"email": "ana@x.com", "password": "nope!!"})
    assert unknown.status_code == wrong.status_code == 401
    assert unknown.json()["message"] == wrong.json()["message"]


def test_login_requires_both_fields(client):
    r = client.post("/auth/login", json={"email": "ana@x.com"})
    assert r.status_code == 400
    assert r.json()["error"] == "invalid_input"


def test_register_duplicate_email_exact_case_conflicts(client):
    register(client)
    r = client.post("/auth/register", json={"name": "Other", "email": "ana@x.com", "password": "secret9"})
    assert r.status_code == 409
    assert r.json()["error"] == "conflict"


def test_email_is_kept_as_sent(client):
    first = register(client, email="ana@X.com")
    assert first["user"]["email"] == "ana@X.com"

    second = client.post("/auth/register", json={"name": "Other", "email": "ana@x.com", "password": "secret9"})
    assert second.status_code == 201
    assert second.json()["user"]["email"] == "ana@x.com"
    assert second.json()["user"]["id"] != first["user"]["id"]

    login = client.post("/auth/login", json={"email": "ana@X.com", "password": "secret1"})
    assert login.status_code == 200
    assert login.json()["user"]["id"] == first["user"]["id"]


def test_register_validates_email_and_password_length(client):
    bad_email = client.post("/auth/register", json={"name": "A", "email": "not-an-email", "password": "secret1"})
    assert bad_email.status_code == 400
    short = client.post("/auth/register", json={"name": "A", "email": "a@x.com", "password": "12345"})
    assert short.status_code == 400
    assert short.json()["error"] == "invalid_input"
    missing_name = client.post("/auth/register", json={"email": "a@x.com", "password": "secret1"})
    assert missing_name.status_code == 400


def test_protected_route_without_token(client):
    r = client.get("/users/profile")
    assert r.status_code == 401
    assert r.json()["error"] == "unauthenticated"


def test_malformed_token_is_invalid_credential(client):
    r = client.get("/users/profile", headers=auth_header("not.a.jwt"))
    assert r.status_code == 401
    assert r.json()["error"] == "invalid_credential"


def test_token_signed_with_other_secret_is_rejected(client, ana):
    forged = create_access_token({"sub": str(ana["user"]["id"])}, secret_key="someone-else")
    r = client.get("/users/profile", headers=auth_header(forged))
    assert r.status_code == 401
    assert r.json()["error"] == "invalid_credential"


def test_expired_token(client, ana):
    expired = create_access_token(
        {"sub": str(ana["user"]["id"])}, timedelta(seconds=-30), secret_key=TEST_SECRET
    )
    r = client.get("/users/profile", headers=auth_header(expired))
    assert r.status_code == 401
    assert r.json()["error"] == "expired_credential"


def test_token_for_missing_user_is_unknown_subject(client):
    token = create_access_token({"sub": "9999"}, secret_key=TEST_SECRET)
    r = client.get("/medicaments", headers=auth_header(token))
    assert r.status_code == 401
    assert r.json()["error"] == "unknown_subject"


def test_header_name_and_prefix_are_flexible(client):
    token = register(client)["token"]
    lower = client.get("/users/profile", headers={"authorization": f"Bearer {token}"})
    bare = client.get("/users/profile", headers={"Authorization": token})
    assert lower.status_code == 200
    assert bare.status_code == 200
    assert lower.json()["user"] == bare.json()["user"]


def test_profile_returns_minimal_identity(client, ana):
    r = client.get("/users/profile", headers=ana["headers"])
    assert r.status_code == 200
    assert r.json()["user"] == {"id": ana["user"]["id"], "name": "Ana", "email": "ana@x.com"}


def test_profile_update(client, ana):
    r = client.put("/users/profile", json={"name": "Ana Maria"}, headers=ana["headers"])
    assert r.status_code == 200
    assert r.json()["user"]["name"] == "Ana Maria"

    r = client.put("/users/profile", json={"email": "ana.maria@x.com"}, headers=ana["headers"])
    assert r.status_code == 200
    login = client.post("/auth/login", json={"email": "ana.maria@x.com", "password": "secret1"})
    assert login.status_code == 200


def test_profile_update_keeping_own_email_is_allowed(client, ana):
    r = client.put("/users/profile", json={"email": "ana@x.com"}, headers=ana["headers"])
    assert r.status_code == 200


def test_profile_update_rejects_taken_email_and_empty_body(client, ana, bob):
    taken = client.put("/users/profile", json={"email": "bob@y.com"}, headers=ana["headers"])
    assert taken.status_code == 409
    empty = client.put("/users/profile", json={}, headers=ana["headers"])
    assert empty.status_code == 400
    bad = client.put("/users/profile", json={"email": "nope"}, headers=ana["headers"])
    assert bad.status_code == 400


def test_list_users(client, ana, bob):
    r = client.get("/users", headers=ana["headers"])
    assert r.status_code == 200
    body = r.json()
    assert body["count"] == 2
    assert {u["email"] for u in body["users"]} == {"ana@x.com", "bob@y.com"}
    assert all("password_hash" not in u for u in body["users"])


def test_health_and_unknown_route(client):
    health = client.get("/health")
    assert health.status_code == 200
    assert health.json()["status"] == "ok"
    assert health.json()["database"] == "sqlite"

    missing = client.get("/does-not-exist")
    assert missing.status_code == 404
    assert missing.json()["error"] == "not_found"
