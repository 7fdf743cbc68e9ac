import uuid
from datetime import datetime

from fastapi import APIRouter, Depends, status
from fastapi.security import OAuth2PasswordRequestForm
from sqlmodel import SQLModel, Field, Session

from ..config import Settings
from ..core.errors import BadRequest
from ..core.jwt import create_access_token
from ..core.security import get_app_settings, get_current_user
from ..database import get_session
from ..models.user import Role, User
from ..services.credentials import CredentialStore


router = APIRouter(
    prefix="/auth",
    tags=["auth"],
)


class RegisterIn(SQLModel):
    username: str = Field(min_length=3, max_length=50)
    password: str = Field(min_length=4, max_length=128)


class UserRead(SQLModel):
    id: uuid.UUID
    username: str
    role: Role
    created_at: datetime
    updated_at: datetime


class LoginIn(SQLModel):
    username: str
    password: str


class LoginOut(SQLModel):
    user_id: uuid.UUID
    role: Role
    access_token: str
    token_type: str = "bearer"
    expires_in: int


class TokenOut(SQLModel):
    access_token: str
    token_type: str


def _check_password_format(password: str) -> None:
    if any(c.isspace() for c in password):
        raise BadRequest("Password must not contain whitespace")


def _issue_token(user: User, config: Settings) -> str:
    return create_access_token({"sub": str(user.id), "role": user.role.value}, config)


@router.post(
    "/register",
    response_model=UserRead,
    status_code=status.HTTP_201_CREATED,
)
def register_user(
    payload: RegisterIn,
    session: Session = Depends(get_session),
):
    _check_password_format(payload.password)
    return CredentialStore(session).register(payload.username, payload.password)


@router.post(
    "/login",
    response_model=LoginOut,
    status_code=status.HTTP_200_OK,
)
def login(
    payload: LoginIn,
    session: Session = Depends(get_session),
    config: Settings = Depends(get_app_settings),
):
    user = CredentialStore(session).verify(payload.username, payload.password)
    return LoginOut(
        user_id=user.id,
        role=user.role,
        access_token=_issue_token(user, config),
        expires_in=config.access_token_expire_minutes * 60,
    )


@router.post(
    "/token",
    response_model=TokenOut,
    status_code=status.HTTP_200_OK,
)
def token(
    form_data: OAuth2PasswordRequestForm = Depends(),
    session: Session = Depends(get_session),
    config: Settings = Depends(get_app_settings),
):
    user = CredentialStore(session).verify(form_data.username, form_data.password)
    return TokenOut(access_token=_issue_token(user, config), token_type="bearer")


@router.get(
    "/me",
    response_model=UserRead,
    status_code=status.HTTP_200_OK,
)
def me(current_user: User = Depends(get_current_user)):
    return current_user
