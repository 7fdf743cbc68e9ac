import uuid
from typing import List, Optional

from fastapi import APIRouter, Depends, status
from sqlmodel import SQLModel, Field, Session

from ..core.errors import Forbidden
from ..core.security import get_current_user, require_admin
from ..database import get_session
from ..models.user import Role, User
from ..services.credentials import CredentialStore
from .auth import UserRead


router = APIRouter(
    prefix="/users",
    tags=["users"],
)


class UserUpdate(SQLModel):
    username: Optional[str] = Field(default=None, min_length=3, max_length=50)
    role: Optional[Role] = None


@router.get("", response_model=List[UserRead])
def list_users(
    session: Session = Depends(get_session),
    admin: User = Depends(require_admin),
):
    return CredentialStore(session).list()


@router.get("/{user_id}", response_model=UserRead)
def get_user(
    user_id: uuid.UUID,
    session: Session = Depends(get_session),
    current_user: User = Depends(get_current_user),
):
    if current_user.id != user_id and current_user.role != Role.admin:
        raise Forbidden("Not allowed to view this user")
    return CredentialStore(session).get(user_id)


@router.patch("/{user_id}", response_model=UserRead)
def update_user(
    user_id: uuid.UUID,
    payload: UserUpdate,
    session: Session = Depends(get_session),
    current_user: User = Depends(get_current_user),
):
    """Administrators may rename anyone and change roles; users may only rename themselves."""
    is_admin = current_user.role == Role.admin
    if not is_admin:
        if current_user.id != user_id:
            raise Forbidden("Not allowed to modify this user")
        if payload.role is not None:
            raise Forbidden("Only administrators can change roles")
    return CredentialStore(session).update(user_id, name=payload.username, role=payload.role)


@router.delete("/{user_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_user(
    user_id: uuid.UUID,
    session: Session = Depends(get_session),
    admin: User = Depends(require_admin),
):
    CredentialStore(session).delete(user_id)
    return None
