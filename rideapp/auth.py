"""Identity, session credentials and the authorization guard.

Passwords are stored as bcrypt hashes. Logged-in callers present an HS256 JWT
as ``Authorization: Bearer <token>``; the token carries the user id, email
and role. Guards re-read the account, so a deleted user's token stops working
and role changes apply without a fresh login.
"""

import logging
from datetime import datetime, timedelta, timezone
from typing import Any, Callable, Dict, Optional

import jwt
from fastapi import Depends, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from passlib.context import CryptContext
from pydantic import BaseModel, ValidationError
from sqlmodel import Session, select

from .config import Settings
from .database import get_session
from .errors import Conflict, Forbidden, Unauthorized
from .models import User
from .roles import Role, at_least, is_admin

logger = logging.getLogger(__name__)

pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto", bcrypt__rounds=10)
bearer_scheme = HTTPBearer(auto_error=False)


class CurrentUser(BaseModel):
    """Identity context embedded in a verified credential."""

    id: int
    email: str
    role: Role

    @property
    def is_admin(self) -> bool:
        return is_admin(self.role)


def get_app_settings(request: Request) -> Settings:
    return request.app.state.settings


# ------------------------------------------------------------------
# Passwords
# ------------------------------------------------------------------
def hash_password(password: str) -> str:
    return pwd_context.hash(password)


def verify_password(plain_password: str, password_hash: str) -> bool:
    return pwd_context.verify(plain_password, password_hash)


def is_reserved_email(email: str, settings: Settings) -> bool:
    return email.strip().lower() == settings.superadmin_email


# ------------------------------------------------------------------
# Tokens
# ------------------------------------------------------------------
def create_access_token(
    user: User,
    settings: Settings,
    expires_delta: Optional[timedelta] = None,
) -> str:
    now = datetime.now(timezone.utc)
    expire = now + (expires_delta or timedelta(minutes=settings.jwt_expires_minutes))
    payload: Dict[str, Any] = {
        "sub": str(user.id),
        "email": user.email,
        "role": Role(user.role).value,
        "iat": now,
        "exp": expire,
    }
    return jwt.encode(payload, settings.jwt_secret, algorithm=settings.jwt_algorithm)


def decode_token(token: str, settings: Settings) -> CurrentUser:
    try:
        payload = jwt.decode(
            token,
            settings.jwt_secret,
            algorithms=[settings.jwt_algorithm],
            options={"require": ["sub", "exp"]},
        )
    except jwt.ExpiredSignatureError:
        raise Unauthorized("Token has expired")
    except jwt.InvalidTokenError:
        raise Unauthorized("Invalid or expired token")

    try:
        return CurrentUser(id=payload["sub"], email=payload.get("email"), role=payload.get("role"))
    except ValidationError:
        raise Unauthorized("Invalid or expired token")


def get_current_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
    settings: Settings = Depends(get_app_settings),
    session: Session = Depends(get_session),
) -> CurrentUser:
    if credentials is None:
        raise Unauthorized("Missing Authorization header")
    claims = decode_token(credentials.credentials, settings)

    # the account may have been deleted or re-roled since the token was issued
    user = session.get(User, claims.id)
    if not user:
        logger.info("token for missing user %s rejected", claims.id)
        raise Unauthorized("Account no longer exists")
    return CurrentUser(id=user.id, email=user.email, role=user.role)


# ------------------------------------------------------------------
# Guards
# ------------------------------------------------------------------
def require_role(min_role: Role) -> Callable[..., CurrentUser]:
    def _guard(user: CurrentUser = Depends(get_current_user)) -> CurrentUser:
        if not at_least(user.role, min_role):
            logger.info("user %s (%s) denied: needs %s", user.id, user.role.value, min_role.value)
            raise Forbidden("Forbidden")
        return user

    return _guard


def ensure_self_or_admin(owner_id: int, requester: CurrentUser) -> None:
    if requester.id != owner_id and not requester.is_admin:
        raise Forbidden("Forbidden")


def ensure_not_reserved(user: User, settings: Settings) -> None:
    if is_reserved_email(user.email, settings):
        raise Forbidden("Superadmin cannot be modified or deleted")


# ------------------------------------------------------------------
# Register / login
# ------------------------------------------------------------------
def create_account(
    session: Session,
    settings: Settings,
    *,
    email: str,
    password: str,
    name: str,
    phone: Optional[str] = None,
    role: Role = Role.USER,
) -> User:
    """Create an account unless the email is reserved or already taken."""
    email = email.strip().lower()
    if is_reserved_email(email, settings):
        raise Forbidden("Superadmin account cannot be created here")

    existing = session.exec(select(User).where(User.email == email)).first()
    if existing:
        raise Conflict("User already exists")

    user = User(
        email=email,
        password_hash=hash_password(password),
        name=name,
        phone=phone,
        role=role,
    )
    session.add(user)
    session.commit()
    session.refresh(user)
    logger.info("created %s account %s", role.value, user.id)
    return user


def register(session: Session, settings: Settings, *, email: str, password: str,
             name: str, phone: Optional[str] = None) -> User:
    return create_account(session, settings, email=email, password=password,
                          name=name, phone=phone, role=Role.USER)


def login(session: Session, settings: Settings, *, email: str, password: str):
    """Return ``(user, token)`` or raise Unauthorized."""
    user = session.exec(select(User).where(User.email == email.strip().lower())).first()
    if not user or not verify_password(password, user.password_hash):
        logger.info("failed login attempt")
        raise Unauthorized("Invalid credentials")
    return user, create_access_token(user, settings)
