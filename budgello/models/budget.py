import uuid
from datetime import date, datetime
from decimal import Decimal
from enum import Enum

from sqlalchemy import UniqueConstraint
from sqlmodel import SQLModel, Field

from ..core.clock import utcnow


class Frequency(str, Enum):
    weekly = "weekly"
    monthly = "monthly"
    yearly = "yearly"


class Budget(SQLModel, table=True):
    __tablename__ = "budgets"
    # At most one weekly, one monthly and one yearly budget per user
    __table_args__ = (UniqueConstraint("user_id", "frequency", name="uq_budgets_user_frequency"),)

    id: uuid.UUID = Field(default_factory=uuid.uuid4, primary_key=True, index=True)

    user_id: uuid.UUID = Field(foreign_key="users.id", ondelete="CASCADE", index=True)

    frequency: Frequency
    # Reference date of the recurrence
    period: date = Field(default_factory=lambda: utcnow().date())

    amount: Decimal = Field(max_digits=10, decimal_places=2)

    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)
