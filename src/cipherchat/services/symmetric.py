# src/cipherchat/services/symmetric.py
"""One-time symmetric encryption of message bodies.

Two constructions are supported:

- ``aes-256-gcm`` (default): authenticated encryption. The 16-byte tag is
  appended to the ciphertext, so any modification is rejected on open.
- ``aes-256-cbc``: AES-CBC with PKCS#7 padding and no integrity tag. Only
  padding validation can notice tampering; kept for legacy envelopes.

Both use a 256-bit key and a fresh 128-bit IV per message.
"""

from __future__ import annotations

import secrets
from typing import NamedTuple

from cryptography.exceptions import InvalidTag
from cryptography.hazmat.primitives import padding
from cryptography.hazmat.primitives.ciphers import Cipher, algorithms, modes
from cryptography.hazmat.primitives.ciphers.aead import AESGCM

from cipherchat.core.settings import settings
from cipherchat.services.errors import DecryptionError

KEY_BYTES = 32
IV_BYTES = 16
AES_BLOCK_BITS = 128
AES_BLOCK_BYTES = AES_BLOCK_BITS // 8

AES_256_GCM = "aes-256-gcm"
AES_256_CBC = "aes-256-cbc"
SUPPORTED_ALGORITHMS = (AES_256_GCM, AES_256_CBC)


class SealedBody(NamedTuple):
    """Ciphertext of a message body and the IV it was produced with."""

    cipher_text: bytes
    iv: bytes


class SymmetricCipher:
    """Encrypts and decrypts message bodies under a one-time AES-256 key."""

    def __init__(self, algorithm: str | None = None) -> None:
        self.algorithm = algorithm or settings.cipher_algorithm
        if self.algorithm not in SUPPORTED_ALGORITHMS:
            raise ValueError(f"Unsupported cipher algorithm: {self.algorithm}")

    @staticmethod
    def generate_key() -> bytes:
        """Return 32 cryptographically random bytes for a one-time key."""
        return secrets.token_bytes(KEY_BYTES)

    def seal_body(self, plaintext: str, key: bytes) -> SealedBody:
        """Encrypt ``plaintext`` as UTF-8 under ``key`` with a fresh IV.

        Args:
            plaintext: Message text, possibly empty.
            key: 32-byte one-time key.

        Returns:
            SealedBody with the ciphertext (tag appended for GCM) and the IV.
        """
        if len(key) != KEY_BYTES:
            raise ValueError(f"Symmetric key must be {KEY_BYTES} bytes")

        iv = secrets.token_bytes(IV_BYTES)
        data = plaintext.encode("utf-8")

        if self.algorithm == AES_256_GCM:
            return SealedBody(AESGCM(key).encrypt(iv, data, None), iv)

        padder = padding.PKCS7(AES_BLOCK_BITS).padder()
        padded = padder.update(data) + padder.finalize()
        encryptor = Cipher(algorithms.AES(key), modes.CBC(iv)).encryptor()
        return SealedBody(encryptor.update(padded) + encryptor.finalize(), iv)

    def open_body(self, cipher_text: bytes, key: bytes, iv: bytes) -> str:
        """Decrypt a body produced by :meth:`seal_body`.

        Raises:
            DecryptionError: If the key or IV has the wrong size, the tag or
                padding does not validate, or the output is not UTF-8.
        """
        if len(key) != KEY_BYTES:
            raise DecryptionError(f"Symmetric key must be {KEY_BYTES} bytes")
        if len(iv) != IV_BYTES:
            raise DecryptionError(f"IV must be {IV_BYTES} bytes")

        try:
            if self.algorithm == AES_256_GCM:
                data = AESGCM(key).decrypt(iv, cipher_text, None)
            else:
                if not cipher_text or len(cipher_text) % AES_BLOCK_BYTES:
                    raise DecryptionError("Ciphertext is not a whole number of blocks")
                decryptor = Cipher(algorithms.AES(key), modes.CBC(iv)).decryptor()
                padded = decryptor.update(cipher_text) + decryptor.finalize()
                unpadder = padding.PKCS7(AES_BLOCK_BITS).unpadder()
                data = unpadder.update(padded) + unpadder.finalize()
            return data.decode("utf-8")
        except InvalidTag as err:
            raise DecryptionError("Message authentication failed") from err
        except ValueError as err:
            # Covers bad PKCS#7 padding and UnicodeDecodeError.
            raise DecryptionError(f"Decryption failed: {err}") from err
