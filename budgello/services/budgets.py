import logging
import uuid
from datetime import date
from typing import Any, List, Optional

from sqlmodel import Session, select

from ..core.clock import utcnow
from ..core.errors import BadRequest, Conflict, Forbidden, NotFound
from ..database import commit_or_conflict
from ..models.budget import Budget, Frequency
from ..models.shared_budget import SharedBudget
from ..models.user import User
from .ledger import check_amount


logger = logging.getLogger(__name__)

DUPLICATE_FREQUENCY = "A budget with this frequency already exists"
DUPLICATE_SHARE = "Budget is already shared with this user"
UPDATABLE_FIELDS = {"frequency", "amount", "period"}


def parse_frequency(value: Any) -> Frequency:
    try:
        return Frequency(value)
    except ValueError:
        raise BadRequest("Frequency must be one of: weekly, monthly, yearly")


class BudgetRegistry:
    """Per-user spending ceilings and the read-only grants made on them."""

    def __init__(self, session: Session):
        self.session = session

    def _frequency_taken(self, owner_id: uuid.UUID, frequency: Frequency) -> bool:
        stmt = select(Budget).where(Budget.user_id == owner_id, Budget.frequency == frequency)
        return self.session.exec(stmt).first() is not None

    def _is_shared_with(self, budget_id: uuid.UUID, user_id: uuid.UUID) -> bool:
        stmt = select(SharedBudget).where(
            SharedBudget.budget_id == budget_id,
            SharedBudget.to_user_id == user_id,
        )
        return self.session.exec(stmt).first() is not None

    def create(
        self,
        owner_id: uuid.UUID,
        frequency: Frequency,
        amount: Any,
        period: Optional[date] = None,
    ) -> Budget:
        frequency = parse_frequency(frequency)
        value = check_amount(amount, allow_zero=False)
        if self._frequency_taken(owner_id, frequency):
            raise Conflict(DUPLICATE_FREQUENCY)

        now = utcnow()
        budget = Budget(
            id=uuid.uuid4(),
            user_id=owner_id,
            frequency=frequency,
            period=period or now.date(),
            amount=value,
            created_at=now,
            updated_at=now,
        )
        self.session.add(budget)
        commit_or_conflict(self.session, DUPLICATE_FREQUENCY)
        self.session.refresh(budget)
        logger.info("Created %s budget %s for user %s", frequency.value, budget.id, owner_id)
        return budget

    def list_for_user(self, owner_id: uuid.UUID) -> List[Budget]:
        stmt = select(Budget).where(Budget.user_id == owner_id).order_by(Budget.frequency)
        return list(self.session.exec(stmt).all())

    def get_readable(self, budget_id: uuid.UUID, user_id: uuid.UUID) -> Budget:
        """Return a budget the user owns or that has been shared with the user."""
        budget = self.session.get(Budget, budget_id)
        if budget is None:
            raise NotFound("Budget not found")
        if budget.user_id != user_id and not self._is_shared_with(budget_id, user_id):
            raise NotFound("Budget not found")
        return budget

    def get_owned(self, budget_id: uuid.UUID, owner_id: uuid.UUID) -> Budget:
        budget = self.get_readable(budget_id, owner_id)
        if budget.user_id != owner_id:
            raise Forbidden("Shared budgets are read-only")
        return budget

    def update(self, budget_id: uuid.UUID, owner_id: uuid.UUID, **fields: Any) -> Budget:
        budget = self.get_owned(budget_id, owner_id)

        unknown = set(fields) - UPDATABLE_FIELDS
        if unknown:
            raise BadRequest(f"Unknown fields: {', '.join(sorted(unknown))}")
        if not fields:
            raise BadRequest("No fields to update")

        changes = dict(fields)
        if any(changes.get(key) is None for key in changes):
            raise BadRequest("Budget fields must not be empty")
        if "amount" in changes:
            changes["amount"] = check_amount(changes["amount"], allow_zero=False)
        if "frequency" in changes:
            changes["frequency"] = parse_frequency(changes["frequency"])
            if changes["frequency"] != budget.frequency and self._frequency_taken(owner_id, changes["frequency"]):
                raise Conflict(DUPLICATE_FREQUENCY)

        for key, value in changes.items():
            setattr(budget, key, value)
        budget.updated_at = utcnow()
        self.session.add(budget)
        commit_or_conflict(self.session, DUPLICATE_FREQUENCY)
        self.session.refresh(budget)
        return budget

    def delete(self, budget_id: uuid.UUID, owner_id: uuid.UUID) -> None:
        budget = self.get_owned(budget_id, owner_id)
        shares = self.session.exec(select(SharedBudget).where(SharedBudget.budget_id == budget_id)).all()
        for share in shares:
            self.session.delete(share)
        self.session.flush()
        self.session.delete(budget)
        self.session.commit()
        logger.info("Deleted budget %s and %d shares", budget_id, len(shares))

    def share(self, budget_id: uuid.UUID, granter_id: uuid.UUID, recipient_id: uuid.UUID) -> SharedBudget:
        budget = self.session.get(Budget, budget_id)
        if budget is None:
            raise NotFound("Budget not found")
        if budget.user_id != granter_id:
            raise Forbidden("You can only share budgets you own")
        if self.session.get(User, recipient_id) is None:
            raise NotFound("User to share with does not exist")
        if recipient_id == granter_id:
            raise BadRequest("Cannot share a budget with yourself")
        if self._is_shared_with(budget_id, recipient_id):
            raise Conflict(DUPLICATE_SHARE)

        share = SharedBudget(
            id=uuid.uuid4(),
            budget_id=budget_id,
            from_user_id=granter_id,
            to_user_id=recipient_id,
            created_at=utcnow(),
        )
        self.session.add(share)
        commit_or_conflict(self.session, DUPLICATE_SHARE)
        self.session.refresh(share)
        logger.info("Shared budget %s with user %s", budget_id, recipient_id)
        return share

    def list_shared_with(self, recipient_id: uuid.UUID) -> List[Budget]:
        stmt = (
            select(Budget)
            .join(SharedBudget, SharedBudget.budget_id == Budget.id)
            .where(SharedBudget.to_user_id == recipient_id)
            .order_by(Budget.frequency)
        )
        return list(self.session.exec(stmt).all())

    def list_shares(self, budget_id: uuid.UUID, owner_id: uuid.UUID) -> List[SharedBudget]:
        self.get_owned(budget_id, owner_id)
        stmt = select(SharedBudget).where(SharedBudget.budget_id == budget_id).order_by(SharedBudget.created_at)
        return list(self.session.exec(stmt).all())

    def unshare(self, share_id: uuid.UUID, owner_id: uuid.UUID) -> None:
        share = self.session.get(SharedBudget, share_id)
        if share is None or owner_id not in (share.from_user_id, share.to_user_id):
            raise NotFound("Share not found")
        if share.from_user_id != owner_id:
            raise Forbidden("Only the budget owner can unshare it")
        self.session.delete(share)
        self.session.commit()
        logger.info("Removed share %s", share_id)
