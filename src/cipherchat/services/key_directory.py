# src/cipherchat/services/key_directory.py
"""Key directory: where users publish public keys and park their own key pair."""

from __future__ import annotations

import base64
import binascii
import logging
from dataclasses import dataclass
from typing import Protocol

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from cipherchat.db.time import utcnow
from cipherchat.models import UserAccount
from cipherchat.services.errors import (
    KeyFormatError,
    KeyPersistenceError,
    KeysAlreadyExistError,
    NoKeysError,
)
from cipherchat.services.keygen import KeyPair

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class StoredKeyPair:
    """A user's own directory entry as seen by that user."""

    public_key: str
    private_key: str
    enabled: bool

    def __repr__(self) -> str:
        return f"StoredKeyPair(enabled={self.enabled}, private_key=<redacted>)"


class KeyDirectory(Protocol):
    """Remote, eventually consistent store of key material.

    ``get_public_key`` returning None means the user cannot currently receive
    encrypted messages; it is not an error.
    """

    async def get_public_key(self, user_id: str) -> str | None: ...

    async def store_own_key_pair(self, user_id: str, key_pair: KeyPair) -> None: ...

    async def load_own_key_pair(self, user_id: str) -> StoredKeyPair | None: ...

    async def set_encryption_enabled(self, user_id: str, enabled: bool) -> None: ...


def encode_private_key(private_key_pem: str) -> str:
    """Encode a private key PEM for storage (reversible, not secret)."""
    return base64.b64encode(private_key_pem.encode("utf-8")).decode("ascii")


def decode_private_key(stored: str) -> str:
    """Reverse :func:`encode_private_key`.

    Raises:
        KeyFormatError: If the stored value is not base64 of UTF-8 text.
    """
    try:
        return base64.b64decode(stored, validate=True).decode("utf-8")
    except (binascii.Error, ValueError) as err:
        raise KeyFormatError(f"Stored private key is not valid base64: {err}") from err


class DatabaseKeyDirectory:
    """Key directory backed by the relay's ``user_account`` table."""

    def __init__(self, db: Session) -> None:
        self.db = db

    def _get_user(self, user_id: str) -> UserAccount | None:
        return self.db.query(UserAccount).filter(UserAccount.user_id == user_id).first()

    def _commit(self, action: str, user_id: str) -> None:
        try:
            self.db.commit()
        except SQLAlchemyError as err:
            self.db.rollback()
            logger.error("Key directory %s failed for user %s: %s", action, user_id, err)
            raise KeyPersistenceError(f"Could not {action}: {err}") from err

    async def get_public_key(self, user_id: str) -> str | None:
        """Return the user's public key PEM, or None if none is published."""
        user = self._get_user(user_id)
        if user is None:
            return None
        return user.public_key

    async def store_own_key_pair(self, user_id: str, key_pair: KeyPair) -> None:
        """Publish ``key_pair`` for ``user_id`` and switch encryption on.

        Keys are written once; an existing pair is never replaced.

        Raises:
            KeyPersistenceError: If the user is unknown or the commit fails.
            KeysAlreadyExistError: If the user already has a key pair.
        """
        user = self._get_user(user_id)
        if user is None:
            raise KeyPersistenceError(f"Unknown user {user_id!r}")
        if user.has_keys:
            raise KeysAlreadyExistError(f"User {user_id} already has keys")

        user.public_key = key_pair.public_key
        user.private_key = encode_private_key(key_pair.private_key)
        user.has_encryption_enabled = True
        user.keys_created_at = utcnow()
        self._commit("store key pair", user_id)
        logger.info("Stored key pair for user %s", user_id)

    async def load_own_key_pair(self, user_id: str) -> StoredKeyPair | None:
        """Return the user's own key pair, or None if keys were never generated."""
        user = self._get_user(user_id)
        if user is None or not user.has_keys:
            return None
        return StoredKeyPair(
            public_key=user.public_key or "",
            private_key=decode_private_key(user.private_key or ""),
            enabled=bool(user.has_encryption_enabled),
        )

    async def set_encryption_enabled(self, user_id: str, enabled: bool) -> None:
        """Persist the user's encryption preference."""
        user = self._get_user(user_id)
        if user is None:
            raise KeyPersistenceError(f"Unknown user {user_id!r}")
        if enabled and not user.has_keys:
            raise NoKeysError(f"User {user_id} has no keys to encrypt with")
        user.has_encryption_enabled = enabled
        self._commit("update encryption flag", user_id)
