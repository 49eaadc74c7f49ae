from datetime import timedelta

from conftest import PASSWORD, login, register, signup
from core.security import create_access_token


def test_register_returns_summary_without_password(client):
    body = register(client, "alice", api_key="xai-123")
    assert body["username"] == "alice"
    assert body["apiKey"] == "xai-123"
    assert isinstance(body["id"], int)
    assert "hashedPassword" not in body


def test_register_rejects_duplicate_username(client):
    register(client, "alice")
    response = client.post("/auth/register", json={"username": "alice", "password": PASSWORD})
    assert response.status_code == 400
    assert response.json()["detail"] == "Username already exists"


def test_register_rejects_short_password(client):
    response = client.post("/auth/register", json={"username": "alice", "password": "abc"})
    assert response.status_code == 400


def test_register_requires_fields(client):
    response = client.post("/auth/register", json={"username": "alice"})
    assert response.status_code == 400


def test_login_sets_session_cookie(client):
    register(client, "alice")
    body = login(client, "alice")
    assert body["message"] == "Login successful"
    assert body["user"]["username"] == "alice"
    assert client.cookies.get("auth-token")

    me = client.get("/auth/me")
    assert me.status_code == 200
    assert me.json()["username"] == "alice"


def test_login_with_wrong_password_is_401(client):
    register(client, "alice")
    response = client.post("/auth/login", json={"username": "alice", "password": "wrong-password"})
    assert response.status_code == 401


def test_login_unknown_user_is_401(client):
    response = client.post("/auth/login", json={"username": "ghost", "password": PASSWORD})
    assert response.status_code == 401


def test_me_without_credentials_is_401(client):
    assert client.get("/auth/me").status_code == 401
    assert client.get("/goals").status_code == 401
    assert client.get("/points").status_code == 401


def test_tampered_token_is_rejected(client):
    signup(client)
    client.cookies.clear()
    response = client.get("/auth/me", headers={"Authorization": "Bearer not-a-jwt"})
    assert response.status_code == 401
    assert response.json()["detail"] == "Could not validate credentials"


def test_expired_token_is_rejected(client):
    user = register(client, "alice")
    token = create_access_token(user["id"], "alice", expires_delta=timedelta(minutes=-5))
    response = client.get("/auth/me", headers={"Authorization": f"Bearer {token}"})
    assert response.status_code == 401


def test_token_for_missing_user_is_rejected(client):
    token = create_access_token(999, "ghost")
    response = client.get("/auth/me", headers={"Authorization": f"Bearer {token}"})
    assert response.status_code == 401


def test_login_body_does_not_carry_the_token(client):
    register(client, "alice")
    body = login(client, "alice")
    assert set(body) == {"message", "user"}
    assert "accessToken" not in body


def test_token_endpoint_issues_bearer_token(client):
    register(client, "alice")
    response = client.post("/auth/token", data={"username": "alice", "password": PASSWORD})
    assert response.status_code == 200, response.text
    body = response.json()
    assert body["token_type"] == "bearer"
    assert "auth-token" not in response.cookies

    response = client.get("/auth/me", headers={"Authorization": f"Bearer {body['access_token']}"})
    assert response.status_code == 200
    assert response.json()["username"] == "alice"


def test_token_endpoint_rejects_bad_password(client):
    register(client, "alice")
    response = client.post("/auth/token", data={"username": "alice", "password": "wrong-password"})
    assert response.status_code == 401
    assert response.headers["www-authenticate"] == "Bearer"


def test_token_endpoint_is_advertised_in_openapi(client):
    schemes = client.get("/openapi.json").json()["components"]["securitySchemes"]
    assert any(s.get("flows", {}).get("password", {}).get("tokenUrl") == "auth/token" for s in schemes.values())


def test_logout_clears_cookie(client):
    signup(client)
    assert client.post("/auth/logout").status_code == 200
    assert client.get("/auth/me").status_code == 401


def test_change_password(client):
    signup(client)
    response = client.put("/user/password", json={"currentPassword": PASSWORD, "newPassword": "newsecret1"})
    assert response.status_code == 200

    bad = client.post("/auth/login", json={"username": "alice", "password": PASSWORD})
    assert bad.status_code == 401
    login(client, "alice", "newsecret1")


def test_change_password_requires_current_password(client):
    signup(client)
    response = client.put("/user/password", json={"currentPassword": "nope-nope", "newPassword": "newsecret1"})
    assert response.status_code == 400


def test_update_api_key(client):
    signup(client)
    assert client.put("/user/api-key", json={"apiKey": "xai-999"}).status_code == 200
    assert client.get("/auth/me").json()["apiKey"] == "xai-999"

    assert client.put("/user/api-key", json={"apiKey": ""}).status_code == 200
    assert client.get("/auth/me").json()["apiKey"] is None
