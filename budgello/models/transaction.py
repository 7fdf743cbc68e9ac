import uuid
from datetime import datetime
from decimal import Decimal
from typing import Optional

from sqlmodel import SQLModel, Field

from ..core.clock import utcnow


class Transaction(SQLModel, table=True):
    __tablename__ = "transactions"

    id: uuid.UUID = Field(default_factory=uuid.uuid4, primary_key=True, index=True)

    user_id: uuid.UUID = Field(foreign_key="users.id", ondelete="CASCADE", index=True)

    description: str = Field(default="", max_length=255)
    # Positive amounts are expenses; there is no income flag
    amount: Decimal = Field(max_digits=10, decimal_places=2)
    date: datetime = Field(default_factory=utcnow, index=True)

    # Detached (set to NULL) when the category is deleted
    category_id: Optional[uuid.UUID] = Field(
        default=None,
        foreign_key="categories.id",
        ondelete="SET NULL",
        nullable=True,
        index=True,
    )

    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)
