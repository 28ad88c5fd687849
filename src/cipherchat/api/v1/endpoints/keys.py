"""Endpoints for the caller's own key directory entry."""

from __future__ import annotations

from fastapi import APIRouter, HTTPException, status

from cipherchat.api.v1.dependencies import CurrentUserDep, SessionDep
from cipherchat.models import UserAccount
from cipherchat.schemas.user import EncryptionToggle, KeyPairUpload, OwnKeysResponse
from cipherchat.services.errors import KeyFormatError, KeyPersistenceError
from cipherchat.services.key_directory import DatabaseKeyDirectory, decode_private_key
from cipherchat.services.keygen import KeyPair, is_valid_pem, load_public_key

router = APIRouter(prefix="/keys", tags=["keys"])


def _own_keys(user: UserAccount) -> OwnKeysResponse:
    return OwnKeysResponse(
        public_key=user.public_key,
        private_key=user.private_key,
        has_encryption_enabled=user.has_encryption_enabled,
    )


@router.get("/me", response_model=OwnKeysResponse)
async def get_own_keys(current_user: CurrentUserDep) -> OwnKeysResponse:
    """Return the caller's stored key pair and encryption flag."""
    return _own_keys(current_user)


@router.put("/me", response_model=OwnKeysResponse, status_code=status.HTTP_201_CREATED)
async def store_own_keys(
    payload: KeyPairUpload,
    current_user: CurrentUserDep,
    db: SessionDep,
) -> OwnKeysResponse:
    """Publish a newly generated key pair; this also enables encryption.

    Keys are written once per account. There is no rotation.
    """
    if current_user.has_keys:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail="Keys already exist for this user",
        )

    try:
        load_public_key(payload.public_key)
        private_pem = decode_private_key(payload.private_key)
    except KeyFormatError as err:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(err)) from err
    if not is_valid_pem(private_pem):
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Private key must be base64 of a PEM document",
        )

    try:
        await DatabaseKeyDirectory(db).store_own_key_pair(
            current_user.user_id,
            KeyPair(public_key=payload.public_key, private_key=private_pem),
        )
    except KeyPersistenceError as err:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Could not store keys",
        ) from err

    db.refresh(current_user)
    return _own_keys(current_user)


@router.patch("/me", response_model=OwnKeysResponse)
async def toggle_encryption(
    payload: EncryptionToggle,
    current_user: CurrentUserDep,
    db: SessionDep,
) -> OwnKeysResponse:
    """Switch encryption on or off for the caller."""
    if not current_user.has_keys:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail="Generate keys before changing the encryption setting",
        )

    try:
        await DatabaseKeyDirectory(db).set_encryption_enabled(
            current_user.user_id,
            payload.has_encryption_enabled,
        )
    except KeyPersistenceError as err:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Could not update encryption setting",
        ) from err

    db.refresh(current_user)
    return _own_keys(current_user)
