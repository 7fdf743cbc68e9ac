import uuid
from datetime import date, datetime
from decimal import Decimal
from typing import List, Optional

from fastapi import APIRouter, Depends, status
from sqlmodel import Field, Session, SQLModel, select

from ..core.errors import BadRequest, NotFound
from ..core.security import get_current_user
from ..database import get_session
from ..models.budget import Frequency
from ..models.user import User
from ..services.budgets import BudgetRegistry


router = APIRouter(
    prefix="/budgets",
    tags=["budgets"],
)


class BudgetBase(SQLModel):
    frequency: Frequency
    amount: Decimal = Field(gt=0, max_digits=10, decimal_places=2)


class BudgetCreate(BudgetBase):
    period: Optional[date] = None


class BudgetUpdate(SQLModel):
    frequency: Optional[Frequency] = None
    amount: Optional[Decimal] = Field(default=None, gt=0, max_digits=10, decimal_places=2)
    period: Optional[date] = None


class BudgetRead(BudgetBase):
    id: uuid.UUID
    user_id: uuid.UUID
    period: date
    created_at: datetime
    updated_at: datetime


class ShareIn(SQLModel):
    budget_id: uuid.UUID
    recipient_id: Optional[uuid.UUID] = None
    recipient_username: Optional[str] = None


class ShareRead(SQLModel):
    id: uuid.UUID
    budget_id: uuid.UUID
    from_user_id: uuid.UUID
    to_user_id: uuid.UUID
    created_at: datetime


@router.get("", response_model=List[BudgetRead])
def list_budgets(
    session: Session = Depends(get_session),
    current_user: User = Depends(get_current_user),
):
    return BudgetRegistry(session).list_for_user(current_user.id)


@router.post("", response_model=BudgetRead, status_code=status.HTTP_201_CREATED)
def create_budget(
    payload: BudgetCreate,
    session: Session = Depends(get_session),
    current_user: User = Depends(get_current_user),
):
    return BudgetRegistry(session).create(
        current_user.id,
        frequency=payload.frequency,
        amount=payload.amount,
        period=payload.period,
    )


@router.post("/share", response_model=ShareRead, status_code=status.HTTP_201_CREATED)
def share_budget(
    payload: ShareIn,
    session: Session = Depends(get_session),
    current_user: User = Depends(get_current_user),
):
    recipient_id = payload.recipient_id
    if recipient_id is None:
        if not payload.recipient_username:
            raise BadRequest("recipient_id or recipient_username is required")
        recipient = session.exec(
            select(User).where(User.username == payload.recipient_username.strip())
        ).first()
        if recipient is None:
            raise NotFound("User to share with does not exist")
        recipient_id = recipient.id
    return BudgetRegistry(session).share(payload.budget_id, current_user.id, recipient_id)


@router.get("/shared", response_model=List[BudgetRead])
def list_shared_budgets(
    session: Session = Depends(get_session),
    current_user: User = Depends(get_current_user),
):
    """Budgets other users have shared with the caller (read-only)."""
    return BudgetRegistry(session).list_shared_with(current_user.id)


@router.delete("/share/{share_id}", status_code=status.HTTP_204_NO_CONTENT)
def unshare_budget(
    share_id: uuid.UUID,
    session: Session = Depends(get_session),
    current_user: User = Depends(get_current_user),
):
    BudgetRegistry(session).unshare(share_id, current_user.id)
    return None


@router.get("/{budget_id}", response_model=BudgetRead)
def get_budget(
    budget_id: uuid.UUID,
    session: Session = Depends(get_session),
    current_user: User = Depends(get_current_user),
):
    return BudgetRegistry(session).get_readable(budget_id, current_user.id)


@router.get("/{budget_id}/shares", response_model=List[ShareRead])
def list_budget_shares(
    budget_id: uuid.UUID,
    session: Session = Depends(get_session),
    current_user: User = Depends(get_current_user),
):
    return BudgetRegistry(session).list_shares(budget_id, current_user.id)


@router.patch("/{budget_id}", response_model=BudgetRead)
def update_budget(
    budget_id: uuid.UUID,
    payload: BudgetUpdate,
    session: Session = Depends(get_session),
    current_user: User = Depends(get_current_user),
):
    fields = payload.model_dump(exclude_unset=True)
    return BudgetRegistry(session).update(budget_id, current_user.id, **fields)


@router.delete("/{budget_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_budget(
    budget_id: uuid.UUID,
    session: Session = Depends(get_session),
    current_user: User = Depends(get_current_user),
):
    BudgetRegistry(session).delete(budget_id, current_user.id)
    return None
