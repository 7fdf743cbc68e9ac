"""
Tests for user management: listing, renaming, role changes and deletion.
"""

import uuid
from datetime import datetime
from decimal import Decimal

import pytest
from sqlmodel import select

from budgello.core.errors import BadRequest, Conflict, NotFound
from budgello.models.budget import Budget, Frequency
from budgello.models.category import Category
from budgello.models.shared_budget import SharedBudget
from budgello.models.transaction import Transaction
from budgello.models.user import Role
from budgello.services.budgets import BudgetRegistry
from budgello.services.categories import CategoryRegistry
from budgello.services.credentials import CredentialStore
from budgello.services.ledger import TransactionLedger


class TestListUsers:

    def test_admin_lists_users_without_secrets(self, client, alice, bob, admin_headers):
        response = client.get("/users", headers=admin_headers)
        assert response.status_code == 200
        names = [u["username"] for u in response.json()]
        assert set(names) == {"admin", "alice", "bob"}
        for user in response.json():
            assert "hashed_password" not in user

    def test_regular_user_forbidden(self, client, alice):
        _, headers = alice
        response = client.get("/users", headers=headers)
        assert response.status_code == 403
        assert response.json()["error"] == "Forbidden"

    def test_user_can_view_self_only(self, client, alice, bob):
        alice_user, headers = alice
        bob_user, _ = bob
        assert client.get(f"/users/{alice_user['id']}", headers=headers).status_code == 200
        assert client.get(f"/users/{bob_user['id']}", headers=headers).status_code == 403


class TestUpdateUser:

    def test_self_rename(self, client, alice):
        user, headers = alice
        response = client.patch(f"/users/{user['id']}", json={"username": "alicia"}, headers=headers)
        assert response.status_code == 200
        assert response.json()["username"] == "alicia"
        # The token keeps working: it carries the id, not the name
        assert client.get("/auth/me", headers=headers).json()["username"] == "alicia"

    def test_self_role_change_forbidden(self, client, alice):
        user, headers = alice
        response = client.patch(f"/users/{user['id']}", json={"role": "admin"}, headers=headers)
        assert response.status_code == 403

    def test_cannot_modify_other_user(self, client, alice, bob):
        _, headers = alice
        bob_user, _ = bob
        response = client.patch(f"/users/{bob_user['id']}", json={"username": "robert"}, headers=headers)
        assert response.status_code == 403

    def test_admin_changes_role(self, client, alice, admin_headers):
        user, _ = alice
        response = client.patch(f"/users/{user['id']}", json={"role": "admin"}, headers=admin_headers)
        assert response.status_code == 200
        assert response.json()["role"] == "admin"

    def test_rename_too_short_after_trim_rejected(self, client, alice):
        user, headers = alice
        response = client.patch(f"/users/{user['id']}", json={"username": "  ab  "}, headers=headers)
        assert response.status_code == 400
        assert client.get("/auth/me", headers=headers).json()["username"] == "alice"

    def test_rename_to_taken_name_conflicts(self, client, alice, bob, admin_headers):
        user, _ = alice
        response = client.patch(f"/users/{user['id']}", json={"username": "bob"}, headers=admin_headers)
        assert response.status_code == 409

    def test_invalid_role_rejected(self, client, alice, admin_headers):
        user, _ = alice
        response = client.patch(f"/users/{user['id']}", json={"role": "owner"}, headers=admin_headers)
        assert response.status_code == 422

    def test_empty_update_rejected(self, client, alice, admin_headers):
        user, _ = alice
        response = client.patch(f"/users/{user['id']}", json={}, headers=admin_headers)
        assert response.status_code == 400

    def test_unknown_user(self, client, admin_headers):
        response = client.patch(f"/users/{uuid.uuid4()}", json={"username": "ghost"}, headers=admin_headers)
        assert response.status_code == 404

    @pytest.mark.parametrize("name", ["  ab  ", "x" * 51, "   "])
    def test_store_rejects_bad_length(self, session, name):
        store = CredentialStore(session)
        user = store.register("alice", "pw123")
        with pytest.raises(BadRequest):
            store.update(user.id, name=name)
        session.refresh(user)
        assert user.username == "alice"


class TestDeleteUser:

    def test_regular_user_cannot_delete(self, client, alice, bob):
        _, headers = alice
        bob_user, _ = bob
        assert client.delete(f"/users/{bob_user['id']}", headers=headers).status_code == 403

    def test_delete_unknown_user(self, client, admin_headers):
        assert client.delete(f"/users/{uuid.uuid4()}", headers=admin_headers).status_code == 404

    def test_delete_cascades_through_api(self, client, alice, bob, admin_headers):
        alice_user, alice_headers = alice
        bob_user, bob_headers = bob
        cat = client.post("/categories", json={"name": "Groceries"}, headers=alice_headers).json()
        client.post("/transactions", json={"amount": "10.00", "category_id": cat["id"]}, headers=alice_headers)
        budget = client.post("/budgets", json={"frequency": "monthly", "amount": "100.00"}, headers=alice_headers).json()
        client.post("/budgets/share", json={"budget_id": budget["id"], "recipient_id": bob_user["id"]}, headers=alice_headers)
        assert len(client.get("/budgets/shared", headers=bob_headers).json()) == 1

        assert client.delete(f"/users/{alice_user['id']}", headers=admin_headers).status_code == 204
        assert client.get("/budgets/shared", headers=bob_headers).json() == []
        names = [u["username"] for u in client.get("/users", headers=admin_headers).json()]
        assert "alice" not in names


class TestDeleteCascadeStore:

    def _populate(self, session, owner, other):
        category = CategoryRegistry(session).create(owner.id, "Groceries")
        TransactionLedger(session).record(owner.id, "Food", Decimal("12.50"), datetime(2026, 1, 5), category.id)
        registry = BudgetRegistry(session)
        owned = registry.create(owner.id, Frequency.monthly, Decimal("100.00"))
        registry.share(owned.id, owner.id, other.id)
        # A budget the owner receives must lose its share row too
        incoming = registry.create(other.id, Frequency.weekly, Decimal("50.00"))
        registry.share(incoming.id, other.id, owner.id)
        return incoming

    def test_zero_rows_remain(self, session):
        store = CredentialStore(session)
        owner = store.register("alice", "pw123")
        other = store.register("bob", "pw456")
        incoming = self._populate(session, owner, other)

        store.delete(owner.id)

        for model in (Category, Transaction, Budget):
            assert session.exec(select(model).where(model.user_id == owner.id)).all() == []
        shares = session.exec(select(SharedBudget)).all()
        assert shares == []
        # The other user's data is untouched
        assert session.get(Budget, incoming.id) is not None
        assert store.get(other.id).username == "bob"

    def test_delete_missing_user(self, session):
        with pytest.raises(NotFound):
            CredentialStore(session).delete(uuid.uuid4())

    def test_update_conflict(self, session):
        store = CredentialStore(session)
        alice = store.register("alice", "pw123")
        store.register("bob", "pw456")
        with pytest.raises(Conflict):
            store.update(alice.id, name="bob")
        assert store.update(alice.id, role=Role.admin).role == Role.admin
