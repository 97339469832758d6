"""Authentication context extraction.

Tokens are issued elsewhere; this module only verifies them and maps the
``sub`` claim onto a local user row.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime
from uuid import UUID

from fastapi import Depends, Header, HTTPException, status
from jose import JWTError, jwt
from sqlalchemy import select
from sqlalchemy.orm import Session

from shiftledger.core.config import get_settings
from shiftledger.db.dependencies import get_db_session
from shiftledger.models.entities import User

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RequestUserContext:
    """Authenticated request actor resolved from the bearer token and DB state."""

    user_id: UUID
    subject: str
    email: str
    display_name: str


@dataclass(frozen=True)
class TokenIdentity:
    subject: str
    email: str
    display_name: str


def _unauthorized(detail: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=detail,
        headers={"WWW-Authenticate": "Bearer"},
    )


def create_access_token(*, subject: str, email: str | None = None, name: str | None = None) -> str:
    """Sign a token with the configured secret.

    Utility exported for tests and local tooling; production tokens come from
    the identity provider.
    """

    settings = get_settings()
    claims: dict[str, str] = {"sub": subject}
    if email:
        claims["email"] = email
    if name:
        claims["name"] = name
    return jwt.encode(claims, settings.jwt_secret, algorithm=settings.jwt_algorithm)


def decode_access_token(token: str) -> TokenIdentity:
    settings = get_settings()
    try:
        claims = jwt.decode(token, settings.jwt_secret, algorithms=[settings.jwt_algorithm])
    except JWTError as exc:
        logger.info("Rejected bearer token: %s", exc)
        raise _unauthorized("Invalid or expired token.") from exc

    subject = str(claims.get("sub") or "").strip()
    if not subject:
        raise _unauthorized("Token has no subject.")

    email = str(claims.get("email") or f"{subject}@unknown.local").strip().lower()
    display_name = str(claims.get("name") or email).strip()
    return TokenIdentity(subject=subject, email=email, display_name=display_name)


def _resolve_identity(authorization: str | None) -> TokenIdentity:
    settings = get_settings()
    if authorization:
        scheme, _, token = authorization.partition(" ")
        if scheme.lower() != "bearer" or not token.strip():
            raise _unauthorized("Authorization header must use the Bearer scheme.")
        return decode_access_token(token.strip())

    if settings.auth_allow_dev_principal:
        return TokenIdentity(
            subject=settings.auth_dev_subject.strip(),
            email=settings.auth_dev_email.strip().lower(),
            display_name=settings.auth_dev_display_name.strip(),
        )

    raise _unauthorized("Missing bearer token.")


def _upsert_user(db: Session, identity: TokenIdentity) -> User:
    user = db.scalar(select(User).where(User.subject == identity.subject))
    now = datetime.utcnow()

    if user is None:
        user = User(
            subject=identity.subject,
            email=identity.email,
            display_name=identity.display_name,
            last_login_at=now,
            created_at=now,
            updated_at=now,
        )
        db.add(user)
        db.flush()
        return user

    if user.email != identity.email or user.display_name != identity.display_name:
        user.email = identity.email
        user.display_name = identity.display_name
        user.updated_at = now

    user.last_login_at = now
    db.flush()
    return user


def ensure_user_principal(db: Session, *, subject: str, email: str, display_name: str | None = None) -> User:
    """Ensure user exists and return persisted row.

    Utility exported for tests and seed helpers.
    """

    normalized_email = email.strip().lower()
    identity = TokenIdentity(
        subject=subject.strip(),
        email=normalized_email,
        display_name=(display_name or "").strip() or normalized_email,
    )
    user = _upsert_user(db, identity)
    db.commit()
    db.refresh(user)
    return user


def get_current_user_context(
    authorization: str | None = Header(default=None),
    db: Session = Depends(get_db_session),
) -> RequestUserContext:
    """Resolve current request user.

    Header strategy:
    - ``Authorization: Bearer <jwt>`` signed with ``settings.jwt_secret``.
    - Without a header, the development principal is used when enabled.
    """

    identity = _resolve_identity(authorization)
    user = _upsert_user(db, identity)
    db.commit()

    return RequestUserContext(
        user_id=user.id,
        subject=user.subject,
        email=user.email,
        display_name=user.display_name,
    )
