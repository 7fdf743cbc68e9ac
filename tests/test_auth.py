"""
Tests for registration, login and authenticated access.
"""

import pytest
from fastapi.testclient import TestClient
from jose import jwt
from sqlmodel import Session, select

from budgello.config import Settings, settings
from budgello.core.errors import Unauthorized
from budgello.main import create_app
from budgello.models.user import Role, User
from budgello.services.credentials import CredentialStore
from tests.conftest import ADMIN_USERNAME, login, register
from tests.test_security import expired_token


class TestRegister:

    def test_register_returns_user_without_secret(self, client):
        body = register(client, "alice")
        assert body["username"] == "alice"
        assert body["role"] == "user"
        assert "id" in body
        assert "password" not in body
        assert "hashed_password" not in body

    def test_duplicate_username_conflicts(self, client):
        register(client, "alice")
        response = client.post("/auth/register", json={"username": "alice", "password": "other1"})
        assert response.status_code == 409
        assert response.json()["error"] == "Conflict"

    def test_username_is_trimmed(self, client):
        body = register(client, "  carol  ")
        assert body["username"] == "carol"
        response = client.post("/auth/register", json={"username": "carol", "password": "pw123"})
        assert response.status_code == 409

    def test_username_too_short_after_trim_rejected(self, client):
        response = client.post("/auth/register", json={"username": "  ab  ", "password": "pw123"})
        assert response.status_code == 400

    def test_password_with_whitespace_rejected(self, client):
        response = client.post("/auth/register", json={"username": "alice", "password": "pw 123"})
        assert response.status_code == 400
        assert response.json()["error"] == "BadRequest"

    def test_missing_fields_rejected(self, client):
        response = client.post("/auth/register", json={"username": "alice"})
        assert response.status_code == 422

    def test_secret_is_stored_hashed(self, client, app):
        register(client, "alice")
        with Session(app.state.engine) as session:
            user = session.exec(select(User).where(User.username == "alice")).one()
        assert user.hashed_password != "pw123"


class TestLogin:

    def test_login_returns_id_role_and_token(self, client):
        user = register(client, "alice")
        body = login(client, "alice", "pw123")
        assert body["user_id"] == user["id"]
        assert body["role"] == "user"
        assert body["token_type"] == "bearer"
        assert body["expires_in"] == settings.access_token_expire_minutes * 60
        assert "password" not in body

    def test_wrong_password_unauthorized(self, client):
        register(client, "alice")
        response = client.post("/auth/login", json={"username": "alice", "password": "wrong"})
        assert response.status_code == 401
        assert response.json()["error"] == "Unauthorized"

    def test_unknown_user_gets_same_error(self, client):
        register(client, "alice")
        wrong_password = client.post("/auth/login", json={"username": "alice", "password": "wrong"})
        unknown_user = client.post("/auth/login", json={"username": "nobody", "password": "wrong"})
        assert unknown_user.status_code == 401
        assert unknown_user.json() == wrong_password.json()

    def test_token_endpoint_accepts_form(self, client):
        register(client, "alice")
        response = client.post("/auth/token", data={"username": "alice", "password": "pw123"})
        assert response.status_code == 200
        assert response.json()["token_type"] == "bearer"

    def test_token_subject_is_user_id(self, client):
        user = register(client, "alice")
        token = login(client, "alice")["access_token"]
        payload = jwt.decode(token, settings.jwt_secret, algorithms=[settings.jwt_algorithm])
        assert payload["sub"] == user["id"]


class TestCurrentUser:

    def test_me_with_token(self, client, alice):
        user, headers = alice
        response = client.get("/auth/me", headers=headers)
        assert response.status_code == 200
        assert response.json()["id"] == user["id"]

    def test_me_without_token(self, client):
        response = client.get("/auth/me")
        assert response.status_code == 401

    def test_garbage_token_rejected(self, client):
        response = client.get("/auth/me", headers={"Authorization": "Bearer not.a.token"})
        assert response.status_code == 401
        assert response.headers["WWW-Authenticate"] == "Bearer"

    def test_expired_token_rejected(self, client, alice):
        user, _ = alice
        headers = {"Authorization": f"Bearer {expired_token(user['id'])}"}
        response = client.get("/auth/me", headers=headers)
        assert response.status_code == 401
        assert response.json()["detail"] == "Token expired"

    def test_token_signed_with_other_key_rejected(self, client, alice):
        user, _ = alice
        forged = jwt.encode({"sub": user["id"], "exp": 9999999999}, "another-secret", algorithm="HS256")
        response = client.get("/auth/me", headers={"Authorization": f"Bearer {forged}"})
        assert response.status_code == 401

    def test_token_of_deleted_user_rejected(self, client, alice, admin_headers):
        user, headers = alice
        assert client.delete(f"/users/{user['id']}", headers=admin_headers).status_code == 204
        response = client.get("/auth/me", headers=headers)
        assert response.status_code == 401


class TestAdminBootstrap:

    def test_admin_created_at_startup(self, client, admin_headers):
        response = client.get("/auth/me", headers=admin_headers)
        assert response.status_code == 200
        assert response.json()["username"] == ADMIN_USERNAME
        assert response.json()["role"] == "admin"

    def test_bootstrap_is_idempotent(self, session):
        store = CredentialStore(session)
        first = store.bootstrap_admin("root", "rootpw")
        second = store.bootstrap_admin("root", "different")
        assert first is not None and first.role == Role.admin
        assert second is None
        assert len(store.list()) == 1
        # The original secret still works
        assert store.verify("root", "rootpw").id == first.id

    def test_bootstrap_leaves_existing_user_untouched(self, session):
        store = CredentialStore(session)
        existing = store.register("root", "pw123")
        assert store.bootstrap_admin("root", "rootpw") is None
        assert store.get(existing.id).role == Role.user


class TestVerifyScenario:

    def test_alice_scenario(self, session):
        store = CredentialStore(session)
        store.register("alice", "pw123")
        assert store.verify("alice", "pw123").role == Role.user

        with pytest.raises(Unauthorized):
            store.verify("alice", "wrong")


class TestAppSettings:

    @pytest.fixture
    def override_client(self):
        config = Settings(
            database_url="sqlite://",
            jwt_secret="override-secret",
            access_token_expire_minutes=1,
            log_level="WARNING",
        )
        with TestClient(create_app(config)) as test_client:
            yield test_client

    def test_tokens_use_app_secret_and_expiry(self, override_client):
        user = register(override_client, "alice")
        body = login(override_client, "alice")
        assert body["expires_in"] == 60

        payload = jwt.decode(body["access_token"], "override-secret", algorithms=["HS256"])
        assert payload["sub"] == user["id"]
        assert payload["exp"] - payload["iat"] == 60

        headers = {"Authorization": f"Bearer {body['access_token']}"}
        assert override_client.get("/auth/me", headers=headers).status_code == 200

    def test_token_signed_with_default_secret_rejected(self, override_client):
        user = register(override_client, "alice")
        foreign = jwt.encode({"sub": user["id"], "exp": 9999999999}, settings.jwt_secret, algorithm="HS256")
        response = override_client.get("/auth/me", headers={"Authorization": f"Bearer {foreign}"})
        assert response.status_code == 401


class TestCors:

    def preflight(self, client, method):
        return client.options(
            "/transactions",
            headers={"Origin": settings.cors_origin, "Access-Control-Request-Method": method},
        )

    def test_patch_allowed(self, client):
        response = self.preflight(client, "PATCH")
        assert response.status_code == 200
        assert "PATCH" in response.headers["access-control-allow-methods"]

    def test_put_not_allowed(self, client):
        response = self.preflight(client, "PUT")
        assert response.status_code == 400
        assert "PUT" not in response.headers["access-control-allow-methods"]
