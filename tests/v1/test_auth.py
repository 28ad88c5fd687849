# tests/v1/test_auth.py
from jose import jwt

from cipherchat.api.v1.endpoints.auth import create_access_token
from cipherchat.models import UserAccount


def test_register_creates_keyless_user(client, db_session, test_settings):
    response = client.post(
        "/api/v1/auth/register",
        json={"display_name": "Alice", "email": "alice@example.com"},
    )

    assert response.status_code == 201
    body = response.json()
    assert body["token_type"] == "bearer"
    assert len(body["user_id"]) == 28

    claims = jwt.decode(
        body["access_token"],
        test_settings.secret_key,
        algorithms=[test_settings.jwt_algorithm],
    )
    assert claims["sub"] == body["user_id"]

    user = db_session.query(UserAccount).filter(UserAccount.user_id == body["user_id"]).one()
    assert user.display_name == "Alice"
    assert user.public_key is None
    assert user.has_encryption_enabled is False


def test_register_requires_display_name(client):
    response = client.post("/api/v1/auth/register", json={"display_name": ""})

    assert response.status_code == 422


def test_protected_route_requires_token(client):
    response = client.get("/api/v1/keys/me")

    assert response.status_code in {401, 403}


def test_invalid_token_is_rejected(client):
    response = client.get("/api/v1/keys/me", headers={"Authorization": "Bearer not-a-jwt"})

    assert response.status_code == 401


def test_token_for_unknown_user_is_rejected(client):
    token = create_access_token("does-not-exist")

    response = client.get("/api/v1/keys/me", headers={"Authorization": f"Bearer {token}"})

    assert response.status_code == 401
    assert response.json()["detail"] == "User not found"


def test_token_signed_with_other_secret_is_rejected(client, test_user):
    token = jwt.encode({"sub": test_user.user_id}, "another-secret", algorithm="HS256")

    response = client.get("/api/v1/keys/me", headers={"Authorization": f"Bearer {token}"})

    assert response.status_code == 401
