from app.models.user import User
from conftest import DEMO_EMAIL, auth_headers, count_rows, make_token


def test_first_request_provisions_the_user(client, session_factory):
    token = make_token("identity-123", "new.person@example.com")
    response = client.get("/api/auth/me", headers={"Authorization": f"Bearer {token}"})

    assert response.status_code == 200
    body = response.json()
    assert body["auth_user_id"] == "identity-123"
    assert body["email"] == "new.person@example.com"
    assert body["subscription_tier"] == "free"
    assert body["is_demo"] is False

    # Second request reuses the row
    client.get("/api/auth/me", headers={"Authorization": f"Bearer {token}"})
    assert count_rows(session_factory, User) == 1


def test_demo_flag(client, make_user):
    response = client.get("/api/auth/me", headers=auth_headers(make_user(email=DEMO_EMAIL)))
    assert response.json()["is_demo"] is True


def test_expired_token_is_rejected(client):
    token = make_token("identity-123", "a@example.com", expires_in=-600)
    response = client.get("/api/auth/me", headers={"Authorization": f"Bearer {token}"})
    assert response.status_code == 401
    assert response.json()["error"] == "Token expired"


def test_wrong_issuer_is_rejected(client):
    token = make_token("identity-123", "a@example.com", issuer="https://someone-else.example.com")
    response = client.get("/api/auth/me", headers={"Authorization": f"Bearer {token}"})
    assert response.status_code == 401


def test_wrong_secret_is_rejected(client):
    token = make_token("identity-123", "a@example.com", secret="another-secret-that-is-long-enough-000000")
    response = client.get("/api/auth/me", headers={"Authorization": f"Bearer {token}"})
    assert response.status_code == 401


def test_malformed_authorization_header(client):
    for value in ("Bearer", "Basic abc", "Bearer a b"):
        response = client.get("/api/auth/me", headers={"Authorization": value})
        assert response.status_code == 401
        assert response.json()["error_type"] == "auth"


def test_new_identity_with_known_email_takes_over_the_account(client, make_user, session_factory):
    user = make_user(email="sam@example.com")
    token = make_token("new-identity-sub", "sam@example.com")

    response = client.get("/api/auth/me", headers={"Authorization": f"Bearer {token}"})
    assert response.status_code == 200
    body = response.json()
    assert body["id"] == user.id
    assert body["auth_user_id"] == "new-identity-sub"
    assert count_rows(session_factory, User) == 1

    # The old identity no longer maps to the account and gets a fresh row
    stale = make_token(user.auth_user_id, "someone.else@example.com")
    response = client.get("/api/auth/me", headers={"Authorization": f"Bearer {stale}"})
    assert response.status_code == 200
    assert response.json()["id"] != user.id
