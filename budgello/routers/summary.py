from datetime import datetime
from typing import List, Optional

from fastapi import APIRouter, Depends
from sqlmodel import Session

from ..core.security import get_current_user
from ..database import get_session
from ..models.budget import Frequency
from ..models.user import User
from ..services.summary import BudgetStatus, CategorySpend, SeriesPoint, SpendingSummary


router = APIRouter(
    prefix="/summary",
    tags=["summary"],
)


@router.get("", response_model=List[BudgetStatus])
def budget_summary(
    session: Session = Depends(get_session),
    current_user: User = Depends(get_current_user),
):
    """Spent and remaining amount of each of the caller's budgets in its current period."""
    return SpendingSummary(session).budget_statuses(current_user.id)


@router.get("/by-category", response_model=List[CategorySpend])
def spending_by_category(
    since: Optional[datetime] = None,
    session: Session = Depends(get_session),
    current_user: User = Depends(get_current_user),
):
    return SpendingSummary(session).by_category(current_user.id, since=since)


@router.get("/series", response_model=List[SeriesPoint])
def spending_series(
    frequency: Frequency = Frequency.monthly,
    session: Session = Depends(get_session),
    current_user: User = Depends(get_current_user),
):
    return SpendingSummary(session).series(current_user.id, frequency)
