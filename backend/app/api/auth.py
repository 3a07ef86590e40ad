from __future__ import annotations

from typing import Optional
import logging

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel
from sqlalchemy.exc import SQLAlchemyError
from sqlmodel import Session

from app.api.schemas import AuthResponse, UserOut
from app.config import Settings
from app.deps import get_session, get_settings
from app.models.user import User
from app.repositories.users import UsersRepository
from app.services.auth import create_access_token, hash_password, verify_password

logger = logging.getLogger("app.api.auth")


router = APIRouter(prefix="/auth", tags=["auth"])


class SignupRequest(BaseModel):
    name: Optional[str] = None
    email: Optional[str] = None
    password: Optional[str] = None


class LoginRequest(BaseModel):
    email: Optional[str] = None
    password: Optional[str] = None


def _normalize_email(email: str) -> str:
    return email.strip().lower()


def _auth_response(user: User, settings: Settings) -> AuthResponse:
    return AuthResponse(
        token=create_access_token(user.id, settings),
        user=UserOut(id=user.id, email=user.email, name=user.name),
    )


@router.post("/signup", response_model=AuthResponse)
def signup(
    body: SignupRequest,
    session: Session = Depends(get_session),
    settings: Settings = Depends(get_settings),
) -> AuthResponse:
    name = (body.name or "").strip()
    email = _normalize_email(body.email or "")
    if not name or not email or not body.password:
        raise HTTPException(status_code=400, detail="All fields are required")

    repo = UsersRepository(session)
    if repo.get_by_email(email) is not None:
        raise HTTPException(status_code=400, detail="Email already registered")

    try:
        user = repo.create(
            User(
                name=name,
                email=email,
                password_hash=hash_password(body.password, rounds=settings.bcrypt_rounds),
            )
        )
    except SQLAlchemyError:
        session.rollback()
        logger.exception("Signup failed")
        raise HTTPException(status_code=500, detail="Failed to create account")

    logger.info(f"Created user {user.id}")
    return _auth_response(user, settings)


@router.post("/login", response_model=AuthResponse)
def login(
    body: LoginRequest,
    session: Session = Depends(get_session),
    settings: Settings = Depends(get_settings),
) -> AuthResponse:
    if not body.email or not body.password:
        raise HTTPException(status_code=400, detail="Email and password are required")

    user = UsersRepository(session).get_by_email(_normalize_email(body.email))
    if user is None or not verify_password(body.password, user.password_hash):
        raise HTTPException(status_code=401, detail="Invalid email or password")

    return _auth_response(user, settings)
