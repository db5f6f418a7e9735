# tests/_helpers.py
TEST_SECRET = "test-secret-key"
PNG_BYTES = b"\x89PNG\r\n\x1a\n" + b"\x00" * 64


def register(client, name="Ana", email="ana@x.com", password="secret1"):
    r = client.post("/auth/register", json={"name": name, "email": email, "password": password})
    assert r.status_code == 201, r.text
    return r.json()


def auth_header(token):
    return {"Authorization": f"Bearer {token}"}
