# src/cipherchat/services/errors.py
"""Exception taxonomy for the encryption core.

Per-message errors (format, wrap, unwrap, decryption, recipient capability)
are recoverable: callers turn them into an inline error or a placeholder.
Session-level errors (generation, persistence, state) abandon the operation
and are surfaced to the user as something to retry or fix.
"""

from __future__ import annotations


class EncryptionError(RuntimeError):
    """Base exception for every failure raised by the encryption core."""


class KeyGenerationError(EncryptionError):
    """Raised when the RSA primitive fails to produce a key pair.

    Fatal for the current attempt; it is never retried automatically.
    """


class KeyFormatError(EncryptionError):
    """Raised when PEM key material cannot be parsed or is not an RSA key."""


class WrapError(EncryptionError):
    """Raised when wrapping a symmetric key under a public key fails."""


class UnwrapError(EncryptionError):
    """Raised when a wrapped key cannot be recovered with the given private key."""


class DecryptionError(EncryptionError):
    """Raised when a message body fails authentication, padding or decoding."""


class RecipientNotEncryptionCapable(EncryptionError):
    """Raised when the recipient has no public key on record."""

    def __init__(self, recipient_id: str) -> None:
        super().__init__(f"Recipient {recipient_id!r} cannot receive encrypted messages")
        self.recipient_id = recipient_id


class NoKeysError(EncryptionError):
    """Raised when an operation needs a key pair the session does not hold."""


class KeysAlreadyExistError(EncryptionError):
    """Raised when key generation is requested for a user who already has keys."""


class EncryptionDisabledError(EncryptionError):
    """Raised when encrypting while the user has encryption switched off."""


class KeyPersistenceError(EncryptionError):
    """Raised when the key directory rejects or fails a write."""


class SessionClosedError(EncryptionError):
    """Raised when a result arrives for a session that has already been closed."""


PER_MESSAGE_ERRORS: tuple[type[EncryptionError], ...] = (
    KeyFormatError,
    WrapError,
    UnwrapError,
    DecryptionError,
)
