"""User listing and public key lookup endpoints."""

from __future__ import annotations

from fastapi import APIRouter, HTTPException, status

from cipherchat.api.v1.dependencies import CurrentUserDep, SessionDep
from cipherchat.models import UserAccount
from cipherchat.schemas.user import PublicKeyResponse, UserSummary
from cipherchat.services.errors import KeyFormatError
from cipherchat.services.key_directory import DatabaseKeyDirectory
from cipherchat.services.keygen import fingerprint

router = APIRouter(prefix="/users", tags=["users"])


def _summarize(user: UserAccount) -> UserSummary:
    return UserSummary(
        user_id=user.user_id,
        display_name=user.display_name,
        email=user.email,
        has_encryption_enabled=user.has_encryption_enabled,
        has_public_key=user.public_key is not None,
    )


@router.get("/", response_model=list[UserSummary])
async def list_users(current_user: CurrentUserDep, db: SessionDep) -> list[UserSummary]:
    """List every user other than the caller."""
    users = (
        db.query(UserAccount)
        .filter(UserAccount.user_id != current_user.user_id)
        .order_by(UserAccount.display_name)
        .all()
    )
    return [_summarize(user) for user in users]


@router.get("/{user_id}/public-key", response_model=PublicKeyResponse)
async def get_public_key(user_id: str, db: SessionDep) -> PublicKeyResponse:
    """Look up a user's published public key.

    A null ``public_key`` means the user has not generated keys and cannot
    receive encrypted messages yet.
    """
    if db.query(UserAccount).filter(UserAccount.user_id == user_id).first() is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="User not found")

    public_key = await DatabaseKeyDirectory(db).get_public_key(user_id)
    key_fingerprint: str | None = None
    if public_key is not None:
        try:
            key_fingerprint = fingerprint(public_key)
        except KeyFormatError:
            key_fingerprint = None

    return PublicKeyResponse(user_id=user_id, public_key=public_key, fingerprint=key_fingerprint)
