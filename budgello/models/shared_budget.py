import uuid
from datetime import datetime

from sqlalchemy import UniqueConstraint
from sqlmodel import SQLModel, Field

from ..core.clock import utcnow


class SharedBudget(SQLModel, table=True):
    """Read-only grant of a budget from its owner to another user."""

    __tablename__ = "shared_budgets"
    __table_args__ = (UniqueConstraint("budget_id", "to_user_id", name="uq_shared_budgets_budget_recipient"),)

    id: uuid.UUID = Field(default_factory=uuid.uuid4, primary_key=True, index=True)

    budget_id: uuid.UUID = Field(foreign_key="budgets.id", ondelete="CASCADE", index=True)
    from_user_id: uuid.UUID = Field(foreign_key="users.id", ondelete="CASCADE", index=True)
    to_user_id: uuid.UUID = Field(foreign_key="users.id", ondelete="CASCADE", index=True)

    created_at: datetime = Field(default_factory=utcnow)
