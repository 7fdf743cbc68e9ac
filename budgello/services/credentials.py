import logging
import uuid
from typing import List, Optional

from sqlmodel import Session, select

from ..core.clock import utcnow
from ..core.errors import BadRequest, Conflict, NotFound, Unauthorized
from ..core.security import hash_password, verify_password
from ..database import commit_or_conflict
from ..models.budget import Budget
from ..models.category import Category
from ..models.shared_budget import SharedBudget
from ..models.transaction import Transaction
from ..models.user import Role, User


logger = logging.getLogger(__name__)

INVALID_CREDENTIALS = "Invalid username or password"
USERNAME_MIN_LENGTH = 3
USERNAME_MAX_LENGTH = 50


def normalize_username(name: str) -> str:
    name = (name or "").strip()
    if not name:
        raise BadRequest("Username is required")
    if not USERNAME_MIN_LENGTH <= len(name) <= USERNAME_MAX_LENGTH:
        raise BadRequest(
            f"Username must be {USERNAME_MIN_LENGTH}-{USERNAME_MAX_LENGTH} characters"
        )
    return name


class CredentialStore:
    """Users, their password hashes and roles."""

    def __init__(self, session: Session):
        self.session = session

    def _by_name(self, name: str) -> Optional[User]:
        return self.session.exec(select(User).where(User.username == name)).first()

    def get(self, user_id: uuid.UUID) -> User:
        user = self.session.get(User, user_id)
        if user is None:
            raise NotFound("User not found")
        return user

    def register(self, name: str, secret: str, role: Role = Role.user) -> User:
        name = normalize_username(name)
        if self._by_name(name) is not None:
            raise Conflict("Username already registered")

        now = utcnow()
        user = User(
            id=uuid.uuid4(),
            username=name,
            hashed_password=hash_password(secret),
            role=role,
            created_at=now,
            updated_at=now,
        )
        self.session.add(user)
        commit_or_conflict(self.session, "Username already registered")
        self.session.refresh(user)
        logger.info("Registered user %s with role %s", user.id, user.role.value)
        return user

    def verify(self, name: str, secret: str) -> User:
        # Unknown name and wrong secret fail identically
        user = self._by_name((name or "").strip())
        if user is None or not verify_password(secret, user.hashed_password):
            logger.warning("Failed login attempt")
            raise Unauthorized(INVALID_CREDENTIALS)
        return user

    def bootstrap_admin(self, name: str, secret: str) -> Optional[User]:
        """Create the administrator account unless the name is already taken."""
        name = normalize_username(name)
        if self._by_name(name) is not None:
            logger.info("Admin user already exists")
            return None
        user = self.register(name, secret, role=Role.admin)
        logger.info("Admin user created")
        return user

    def list(self) -> List[User]:
        return list(self.session.exec(select(User).order_by(User.username)).all())

    def update(self, user_id: uuid.UUID, name: Optional[str] = None, role: Optional[Role] = None) -> User:
        user = self.get(user_id)
        if name is None and role is None:
            raise BadRequest("No fields to update")

        if name is not None:
            name = normalize_username(name)
            if name != user.username:
                other = self._by_name(name)
                if other is not None:
                    raise Conflict("Username already registered")
                user.username = name
        if role is not None:
            user.role = role

        user.updated_at = utcnow()
        self.session.add(user)
        commit_or_conflict(self.session, "Username already registered")
        self.session.refresh(user)
        return user

    def delete(self, user_id: uuid.UUID) -> None:
        """Delete a user together with everything the user owns or shares."""
        user = self.get(user_id)
        session = self.session

        budget_ids = list(session.exec(select(Budget.id).where(Budget.user_id == user_id)).all())
        shares = session.exec(
            select(SharedBudget).where(
                (SharedBudget.from_user_id == user_id)
                | (SharedBudget.to_user_id == user_id)
                | (SharedBudget.budget_id.in_(budget_ids))
            )
        ).all()
        for share in shares:
            session.delete(share)
        session.flush()
        # Children before parents: transactions point at categories
        for model in (Budget, Transaction, Category):
            for row in session.exec(select(model).where(model.user_id == user_id)).all():
                session.delete(row)
            session.flush()
        session.delete(user)
        session.commit()
        logger.info("Deleted user %s and owned records", user_id)
