# src/cipherchat/services/envelope.py
"""Sealed envelope construction: hybrid RSA + AES message encryption."""

from __future__ import annotations

import base64
import binascii
from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any

from cipherchat.core.settings import settings
from cipherchat.services.errors import DecryptionError
from cipherchat.services.symmetric import IV_BYTES, KEY_BYTES, SUPPORTED_ALGORITHMS, SymmetricCipher
from cipherchat.services.wrapping import AsymmetricWrapper

WIRE_ENCRYPTED_DATA = "encrypted_data"
WIRE_ENCRYPTED_KEY = "encrypted_key"
WIRE_IV = "iv"
WIRE_ALGORITHM = "cipher_algorithm"


@dataclass(frozen=True)
class SealedEnvelope:
    """One encrypted message body.

    Only the holder of the private key matching the wrapping public key can
    open it; the envelope does not say which key that is.
    """

    cipher_text: bytes
    wrapped_key: bytes
    iv: bytes
    algorithm: str = settings.cipher_algorithm

    def to_wire(self) -> dict[str, str]:
        """Encode the envelope as the text fields stored by the relay."""
        return {
            WIRE_ENCRYPTED_DATA: base64.b64encode(self.cipher_text).decode("ascii"),
            WIRE_ENCRYPTED_KEY: base64.b64encode(self.wrapped_key).decode("ascii"),
            WIRE_IV: self.iv.hex(),
            WIRE_ALGORITHM: self.algorithm,
        }

    @classmethod
    def from_wire(cls, fields: Mapping[str, Any]) -> SealedEnvelope:
        """Decode envelope text fields back into bytes.

        Raises:
            DecryptionError: If a field is missing or not validly encoded.
        """
        try:
            cipher_text = base64.b64decode(fields[WIRE_ENCRYPTED_DATA], validate=True)
            wrapped_key = base64.b64decode(fields[WIRE_ENCRYPTED_KEY], validate=True)
            iv = bytes.fromhex(fields[WIRE_IV])
        except (KeyError, TypeError, ValueError, binascii.Error) as err:
            raise DecryptionError(f"Malformed envelope: {err}") from err

        algorithm = fields.get(WIRE_ALGORITHM) or settings.cipher_algorithm
        if algorithm not in SUPPORTED_ALGORITHMS:
            raise DecryptionError(f"Unknown envelope algorithm: {algorithm}")
        if len(iv) != IV_BYTES:
            raise DecryptionError(f"Envelope IV must be {IV_BYTES} bytes")
        return cls(cipher_text=cipher_text, wrapped_key=wrapped_key, iv=iv, algorithm=algorithm)


class EnvelopeCodec:
    """Composes :class:`SymmetricCipher` and :class:`AsymmetricWrapper`."""

    def __init__(
        self,
        wrapper: AsymmetricWrapper | None = None,
        algorithm: str | None = None,
    ) -> None:
        self.wrapper = wrapper or AsymmetricWrapper()
        self.cipher = SymmetricCipher(algorithm)

    def seal(self, plaintext: str, recipient_public_key: str) -> SealedEnvelope:
        """Encrypt ``plaintext`` so only the recipient's private key can open it.

        Raises:
            KeyFormatError: If the recipient PEM is unusable.
            WrapError: If wrapping the one-time key fails.
        """
        key = self.cipher.generate_key()
        body = self.cipher.seal_body(plaintext, key)
        wrapped_key = self.wrapper.wrap_key(key, recipient_public_key)
        return SealedEnvelope(
            cipher_text=body.cipher_text,
            wrapped_key=wrapped_key,
            iv=body.iv,
            algorithm=self.cipher.algorithm,
        )

    def open(self, envelope: SealedEnvelope, own_private_key: str) -> str:
        """Recover the plaintext of ``envelope``.

        Failures propagate as-is; retrying with the same inputs cannot succeed.

        Raises:
            KeyFormatError: If the private key PEM is unusable.
            UnwrapError: If the wrapped key cannot be recovered.
            DecryptionError: If the body does not decrypt.
        """
        key = self.wrapper.unwrap_key(envelope.wrapped_key, own_private_key)
        if len(key) != KEY_BYTES:
            raise DecryptionError("Unwrapped key has the wrong length")
        cipher = self.cipher
        if envelope.algorithm != cipher.algorithm:
            if envelope.algorithm not in SUPPORTED_ALGORITHMS:
                raise DecryptionError(f"Unsupported cipher algorithm: {envelope.algorithm}")
            cipher = SymmetricCipher(envelope.algorithm)
        return cipher.open_body(envelope.cipher_text, key, envelope.iv)
