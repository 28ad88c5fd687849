# src/cipherchat/services/encryption_session.py
"""Per-user encryption state and the operations built on it.

One :class:`EncryptionSession` exists per signed-in identity. It is driven
from a single event loop, so it holds no locks. The cached private key has
one writer (``load``/``generate_keys``) and is dropped by ``close``.
"""

from __future__ import annotations

import asyncio
import logging
from enum import Enum

from cipherchat.services.envelope import EnvelopeCodec, SealedEnvelope
from cipherchat.services.errors import (
    EncryptionDisabledError,
    KeyPersistenceError,
    KeysAlreadyExistError,
    NoKeysError,
    RecipientNotEncryptionCapable,
    SessionClosedError,
)
from cipherchat.services.key_directory import KeyDirectory
from cipherchat.services.keygen import KeyPairGenerator, fingerprint

logger = logging.getLogger(__name__)


class SessionState(Enum):
    """Lifecycle states of an encryption session.

    ``NO_KEYS`` only ever moves to ``KEYS_ENABLED``; after that the session
    toggles between the two keyed states and never returns to ``NO_KEYS``.
    """

    NO_KEYS = "no_keys"
    KEYS_DISABLED = "keys_disabled"
    KEYS_ENABLED = "keys_enabled"


class EncryptionSession:
    """Encryption runtime for one authenticated user."""

    def __init__(
        self,
        user_id: str,
        directory: KeyDirectory,
        *,
        generator: KeyPairGenerator | None = None,
        codec: EnvelopeCodec | None = None,
    ) -> None:
        self.user_id = user_id
        self.directory = directory
        self.generator = generator or KeyPairGenerator()
        self.codec = codec or EnvelopeCodec()
        self._enabled = False
        self._public_key: str | None = None
        self._private_key: str | None = None
        self._closed = False

    @property
    def has_keys(self) -> bool:
        return self._private_key is not None

    @property
    def enabled(self) -> bool:
        return self._enabled and self.has_keys

    @property
    def closed(self) -> bool:
        return self._closed

    @property
    def state(self) -> SessionState:
        if not self.has_keys:
            return SessionState.NO_KEYS
        return SessionState.KEYS_ENABLED if self._enabled else SessionState.KEYS_DISABLED

    @property
    def public_key(self) -> str | None:
        return self._public_key

    @property
    def fingerprint(self) -> str | None:
        """Fingerprint of the user's own public key, for out-of-band checks."""
        if self._public_key is None:
            return None
        return fingerprint(self._public_key)

    def _ensure_open(self) -> None:
        if self._closed:
            raise SessionClosedError(f"Encryption session for {self.user_id} is closed")

    async def load(self) -> SessionState:
        """Rehydrate the session from the user's directory entry.

        Keys found in the directory are cached whether or not encryption is
        currently enabled, so a disabled user can still read old messages.
        """
        self._ensure_open()
        stored = await self.directory.load_own_key_pair(self.user_id)
        self._ensure_open()

        if stored is None:
            logger.debug("No stored keys for user %s", self.user_id)
            return self.state

        self._public_key = stored.public_key
        self._private_key = stored.private_key
        self._enabled = stored.enabled
        logger.info("Loaded keys for user %s (enabled=%s)", self.user_id, stored.enabled)
        return self.state

    async def generate_keys(self) -> SessionState:
        """Create, persist and cache a key pair, then enable encryption.

        Nothing is cached unless the directory write succeeds.

        Raises:
            KeysAlreadyExistError: If the session already holds keys.
            KeyGenerationError: If the RSA primitive fails.
            KeyPersistenceError: If the directory write fails.
            SessionClosedError: If the session closed while generating or writing.
        """
        self._ensure_open()
        if self.has_keys:
            raise KeysAlreadyExistError(f"User {self.user_id} already has keys")

        key_pair = await asyncio.to_thread(self.generator.generate)
        self._ensure_open()

        try:
            await self.directory.store_own_key_pair(self.user_id, key_pair)
        except (KeyPersistenceError, KeysAlreadyExistError):
            logger.error("Discarding generated keys for user %s: persistence failed", self.user_id)
            raise
        except Exception as err:
            logger.error("Discarding generated keys for user %s: %s", self.user_id, err)
            raise KeyPersistenceError(f"Could not store key pair: {err}") from err
        self._ensure_open()

        self._public_key = key_pair.public_key
        self._private_key = key_pair.private_key
        self._enabled = True
        logger.info("Generated and stored keys for user %s", self.user_id)
        return self.state

    async def toggle(self, enabled: bool) -> SessionState:
        """Switch encryption on or off; redundant calls do nothing.

        Raises:
            NoKeysError: If keys have not been generated yet.
            KeyPersistenceError: If the directory write fails.
        """
        self._ensure_open()
        if not self.has_keys:
            raise NoKeysError("Generate keys before changing the encryption setting")
        if enabled == self._enabled:
            return self.state

        try:
            await self.directory.set_encryption_enabled(self.user_id, enabled)
        except (KeyPersistenceError, NoKeysError):
            raise
        except Exception as err:
            raise KeyPersistenceError(f"Could not update encryption setting: {err}") from err
        self._ensure_open()

        self._enabled = enabled
        logger.info("Encryption %s for user %s", "enabled" if enabled else "disabled", self.user_id)
        return self.state

    async def encrypt_for_recipient(self, plaintext: str, recipient_id: str) -> SealedEnvelope:
        """Seal ``plaintext`` for ``recipient_id``.

        Raises:
            EncryptionDisabledError: If encryption is off for this user.
            RecipientNotEncryptionCapable: If the recipient has no public key.
            KeyFormatError: If the recipient's published key is unusable.
            WrapError: If wrapping the one-time key fails.
        """
        self._ensure_open()
        if not self.enabled:
            raise EncryptionDisabledError("Encryption is not enabled")

        recipient_key = await self.directory.get_public_key(recipient_id)
        self._ensure_open()
        if not recipient_key:
            raise RecipientNotEncryptionCapable(recipient_id)

        return self.codec.seal(plaintext, recipient_key)

    def decrypt_own(self, envelope: SealedEnvelope) -> str:
        """Open an envelope addressed to this user.

        Pure with respect to session state, so it is safe to call repeatedly.

        Raises:
            NoKeysError: If no private key is cached.
            UnwrapError: If the wrapped key does not belong to this user.
            DecryptionError: If the body does not decrypt.
        """
        self._ensure_open()
        if self._private_key is None:
            raise NoKeysError("Private key not available")
        return self.codec.open(envelope, self._private_key)

    def close(self) -> None:
        """Drop the cached private key and refuse any further use."""
        self._private_key = None
        self._public_key = None
        self._enabled = False
        self._closed = True
        logger.debug("Closed encryption session for user %s", self.user_id)
