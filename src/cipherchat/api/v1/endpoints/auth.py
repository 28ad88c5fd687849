"""Authentication endpoints for the Cipherchat relay.

Identity proper is an external concern; the relay only mints bearer tokens
carrying a stable user id as their subject.
"""

from __future__ import annotations

import logging
import secrets
from datetime import UTC, datetime, timedelta
from typing import Annotated

from fastapi import APIRouter, Depends, status
from jose import jwt
from sqlalchemy.orm import Session

from cipherchat.core.settings import settings
from cipherchat.db.session import get_db
from cipherchat.models import UserAccount
from cipherchat.schemas.user import RegisterRequest, RegisterResponse

logger = logging.getLogger(__name__)

USER_ID_BYTES = 14

router = APIRouter(prefix="/auth", tags=["authentication"])

SessionDep = Annotated[Session, Depends(get_db)]


def create_access_token(subject: str, extra_claims: dict[str, str] | None = None) -> str:
    """Create JWT access token for user authentication."""
    to_encode: dict[str, object] = {"sub": subject}
    if extra_claims:
        to_encode.update(extra_claims)
    expire = datetime.now(UTC) + timedelta(minutes=settings.access_token_expire_minutes)
    to_encode["exp"] = expire
    encoded_jwt: str = jwt.encode(
        to_encode,
        settings.secret_key,
        algorithm=settings.jwt_algorithm,
    )
    return encoded_jwt


@router.post(
    "/register",
    summary="Create a relay account",
    status_code=status.HTTP_201_CREATED,
    response_model=RegisterResponse,
)
async def register_user(payload: RegisterRequest, db: SessionDep) -> RegisterResponse:
    """Create a user without keys and return a bearer token for it."""
    user = UserAccount(
        user_id=secrets.token_hex(USER_ID_BYTES),
        display_name=payload.display_name,
        email=payload.email,
        has_encryption_enabled=False,
    )
    db.add(user)
    db.commit()
    db.refresh(user)
    logger.info("Registered user %s", user.user_id)

    return RegisterResponse(
        user_id=user.user_id,
        access_token=create_access_token(user.user_id),
        token_type="bearer",
    )
