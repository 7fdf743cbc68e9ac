import uuid
from datetime import datetime
from decimal import Decimal
from typing import List, Optional

from fastapi import APIRouter, Depends, status
from sqlmodel import SQLModel, Field, Session

from ..core.security import get_current_user
from ..database import get_session
from ..models.user import User
from ..services.ledger import TransactionLedger

router = APIRouter(
    prefix="/transactions",
    tags=["transactions"],
)

# ─────────────────────────────
#   SCHEMAS
# ─────────────────────────────

class TransactionBase(SQLModel):
    description: str = Field(default="", max_length=255)
    amount: Decimal = Field(ge=0, max_digits=10, decimal_places=2)
    category_id: Optional[uuid.UUID] = None


class TransactionCreate(TransactionBase):
    # Defaults to the time of recording
    date: Optional[datetime] = None


class TransactionUpdate(SQLModel):
    description: Optional[str] = Field(default=None, max_length=255)
    amount: Optional[Decimal] = Field(default=None, ge=0, max_digits=10, decimal_places=2)
    date: Optional[datetime] = None
    category_id: Optional[uuid.UUID] = None


class TransactionRead(TransactionBase):
    id: uuid.UUID
    user_id: uuid.UUID
    date: datetime
    created_at: datetime
    updated_at: datetime


# ─────────────────────────────
#   ENDPOINTS
# ─────────────────────────────

@router.post(
    "",
    response_model=TransactionRead,
    status_code=status.HTTP_201_CREATED,
)
def create_transaction(
    payload: TransactionCreate,
    session: Session = Depends(get_session),
    current_user: User = Depends(get_current_user),
):
    """
    Record a transaction for the authenticated user.

    - The owner comes from the access token, never from the request body.
    - The response carries the generated id and the defaulted date.
    """
    return TransactionLedger(session).record(
        current_user.id,
        description=payload.description,
        amount=payload.amount,
        date=payload.date,
        category_id=payload.category_id,
    )


@router.get(
    "",
    response_model=List[TransactionRead],
)
def list_transactions(
    since: Optional[datetime] = None,
    session: Session = Depends(get_session),
    current_user: User = Depends(get_current_user),
):
    """List the caller's transactions, newest first."""
    return TransactionLedger(session).list_for_user(current_user.id, since=since)


@router.get(
    "/{transaction_id}",
    response_model=TransactionRead,
)
def get_transaction(
    transaction_id: uuid.UUID,
    session: Session = Depends(get_session),
    current_user: User = Depends(get_current_user),
):
    return TransactionLedger(session).get_owned(transaction_id, current_user.id)


@router.patch(
    "/{transaction_id}",
    response_model=TransactionRead,
)
def update_transaction(
    transaction_id: uuid.UUID,
    payload: TransactionUpdate,
    session: Session = Depends(get_session),
    current_user: User = Depends(get_current_user),
):
    """Partially update a transaction; send ``category_id: null`` to clear it."""
    fields = payload.model_dump(exclude_unset=True)
    return TransactionLedger(session).update(transaction_id, current_user.id, **fields)


@router.delete(
    "/{transaction_id}",
    status_code=status.HTTP_204_NO_CONTENT,
)
def delete_transaction(
    transaction_id: uuid.UUID,
    session: Session = Depends(get_session),
    current_user: User = Depends(get_current_user),
):
    TransactionLedger(session).delete(transaction_id, current_user.id)
    return None
