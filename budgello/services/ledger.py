import logging
import uuid
from datetime import datetime
from decimal import Decimal
from typing import Any, List, Optional

from sqlmodel import Session, select

from ..core.clock import as_naive_utc, utcnow
from ..core.errors import BadRequest, NotFound
from ..models.category import Category
from ..models.transaction import Transaction


logger = logging.getLogger(__name__)

CENT = Decimal("0.01")
# NUMERIC(10, 2): eight integer digits
MAX_AMOUNT = Decimal("100000000")
UPDATABLE_FIELDS = {"description", "amount", "date", "category_id"}


def check_amount(amount: Any, allow_zero: bool = True) -> Decimal:
    """Validate a monetary amount: finite, non-negative, two decimal places at most."""
    try:
        value = Decimal(str(amount))
    except (ArithmeticError, ValueError):
        raise BadRequest("Amount must be a number")
    if not value.is_finite():
        raise BadRequest("Amount must be finite")
    if value < 0:
        raise BadRequest("Amount must not be negative")
    if value == 0 and not allow_zero:
        raise BadRequest("Amount must be greater than zero")
    if value >= MAX_AMOUNT:
        raise BadRequest("Amount must be less than 100000000")
    if value != value.quantize(CENT):
        raise BadRequest("Amount must have at most two decimal places")
    return value.quantize(CENT)


class TransactionLedger:
    def __init__(self, session: Session):
        self.session = session

    def _check_category(self, category_id: Optional[uuid.UUID], owner_id: uuid.UUID) -> None:
        if category_id is None:
            return
        category = self.session.get(Category, category_id)
        if category is None or category.user_id != owner_id:
            raise NotFound("Category not found")

    def record(
        self,
        owner_id: uuid.UUID,
        description: str,
        amount: Any,
        date: Optional[datetime] = None,
        category_id: Optional[uuid.UUID] = None,
    ) -> Transaction:
        value = check_amount(amount)
        self._check_category(category_id, owner_id)

        now = utcnow()
        tx = Transaction(
            id=uuid.uuid4(),
            user_id=owner_id,
            description=(description or "").strip(),
            amount=value,
            date=as_naive_utc(date) if date else now,
            category_id=category_id,
            created_at=now,
            updated_at=now,
        )
        self.session.add(tx)
        self.session.commit()
        self.session.refresh(tx)
        logger.info("Recorded transaction %s for user %s", tx.id, owner_id)
        return tx

    def list_for_user(self, owner_id: uuid.UUID, since: Optional[datetime] = None) -> List[Transaction]:
        stmt = select(Transaction).where(Transaction.user_id == owner_id)
        if since is not None:
            stmt = stmt.where(Transaction.date >= as_naive_utc(since))
        stmt = stmt.order_by(Transaction.date.desc(), Transaction.created_at.desc())
        return list(self.session.exec(stmt).all())

    def get_owned(self, transaction_id: uuid.UUID, owner_id: uuid.UUID) -> Transaction:
        tx = self.session.get(Transaction, transaction_id)
        if tx is None or tx.user_id != owner_id:
            raise NotFound("Transaction not found")
        return tx

    def update(self, transaction_id: uuid.UUID, owner_id: uuid.UUID, **fields: Any) -> Transaction:
        """Apply a partial update. ``category_id=None`` clears the category."""
        tx = self.get_owned(transaction_id, owner_id)

        unknown = set(fields) - UPDATABLE_FIELDS
        if unknown:
            raise BadRequest(f"Unknown fields: {', '.join(sorted(unknown))}")
        if not fields:
            raise BadRequest("No fields to update")

        # Validate everything before touching the row; no partial updates
        changes = dict(fields)
        if "amount" in changes:
            if changes["amount"] is None:
                raise BadRequest("Amount is required")
            changes["amount"] = check_amount(changes["amount"])
        if "description" in changes:
            changes["description"] = (changes["description"] or "").strip()
        if "date" in changes and changes["date"] is None:
            raise BadRequest("Date must not be empty")
        if "date" in changes:
            changes["date"] = as_naive_utc(changes["date"])
        if "category_id" in changes:
            self._check_category(changes["category_id"], owner_id)

        for key, value in changes.items():
            setattr(tx, key, value)

        tx.updated_at = utcnow()
        self.session.add(tx)
        self.session.commit()
        self.session.refresh(tx)
        return tx

    def delete(self, transaction_id: uuid.UUID, owner_id: uuid.UUID) -> None:
        tx = self.get_owned(transaction_id, owner_id)
        self.session.delete(tx)
        self.session.commit()
        logger.info("Deleted transaction %s", transaction_id)
