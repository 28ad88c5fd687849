# src/cipherchat/services/keygen.py
"""RSA key pair generation and PEM helpers."""

from __future__ import annotations

import logging
from dataclasses import dataclass

from cryptography.exceptions import UnsupportedAlgorithm
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric import rsa

from cipherchat.core.settings import MIN_RSA_KEY_SIZE, settings
from cipherchat.services.errors import KeyFormatError, KeyGenerationError
from cipherchat.utils.hash import blake3_hexdigest

logger = logging.getLogger(__name__)

PEM_BEGIN = "-----BEGIN"
PEM_END = "-----END"
FINGERPRINT_GROUP = 4


@dataclass(frozen=True)
class KeyPair:
    """A user's long-term key pair as PEM text."""

    public_key: str
    private_key: str

    def __repr__(self) -> str:
        return f"KeyPair(public_key={self.public_key[:40]!r}..., private_key=<redacted>)"


class KeyPairGenerator:
    """Produces RSA key pairs for users."""

    def __init__(self, key_size: int | None = None, public_exponent: int | None = None) -> None:
        self.key_size = key_size or settings.rsa_key_size
        self.public_exponent = public_exponent or settings.rsa_public_exponent
        if self.key_size < MIN_RSA_KEY_SIZE:
            raise ValueError(f"RSA key size must be at least {MIN_RSA_KEY_SIZE} bits")

    def generate(self) -> KeyPair:
        """Generate a fresh RSA key pair.

        Returns:
            KeyPair holding a SubjectPublicKeyInfo public PEM and an
            unencrypted PKCS#8 private PEM.

        Raises:
            KeyGenerationError: If the primitive fails for any reason.
        """
        try:
            private_key = rsa.generate_private_key(
                public_exponent=self.public_exponent,
                key_size=self.key_size,
            )
            private_pem = private_key.private_bytes(
                encoding=serialization.Encoding.PEM,
                format=serialization.PrivateFormat.PKCS8,
                encryption_algorithm=serialization.NoEncryption(),
            )
            public_pem = private_key.public_key().public_bytes(
                encoding=serialization.Encoding.PEM,
                format=serialization.PublicFormat.SubjectPublicKeyInfo,
            )
        except (ValueError, TypeError, UnsupportedAlgorithm) as err:
            logger.error("RSA key generation failed: %s", err)
            raise KeyGenerationError(f"Key generation failed: {err}") from err

        logger.debug("Generated RSA-%d key pair", self.key_size)
        return KeyPair(public_key=public_pem.decode("ascii"), private_key=private_pem.decode("ascii"))


def is_valid_pem(pem: str | None) -> bool:
    """Return True if ``pem`` looks like PEM armoured text."""
    if not pem:
        return False
    return PEM_BEGIN in pem and PEM_END in pem


def load_public_key(public_key_pem: str) -> rsa.RSAPublicKey:
    """Parse an RSA public key from PEM text.

    Raises:
        KeyFormatError: If the text is not a PEM public key or not RSA.
    """
    try:
        key = serialization.load_pem_public_key(public_key_pem.encode("utf-8"))
    except (ValueError, TypeError, UnsupportedAlgorithm) as err:
        raise KeyFormatError(f"Invalid public key PEM: {err}") from err
    if not isinstance(key, rsa.RSAPublicKey):
        raise KeyFormatError("Public key is not an RSA key")
    return key


def load_private_key(private_key_pem: str) -> rsa.RSAPrivateKey:
    """Parse an unencrypted RSA private key from PEM text.

    Raises:
        KeyFormatError: If the text is not a PEM private key or not RSA.
    """
    try:
        key = serialization.load_pem_private_key(private_key_pem.encode("utf-8"), password=None)
    except (ValueError, TypeError, UnsupportedAlgorithm) as err:
        raise KeyFormatError(f"Invalid private key PEM: {err}") from err
    if not isinstance(key, rsa.RSAPrivateKey):
        raise KeyFormatError("Private key is not an RSA key")
    return key


def fingerprint(public_key_pem: str) -> str:
    """Return a display fingerprint for out-of-band key comparison.

    The fingerprint is the BLAKE3 digest of the DER SubjectPublicKeyInfo,
    upper-case hex in groups of four.
    """
    der = load_public_key(public_key_pem).public_bytes(
        encoding=serialization.Encoding.DER,
        format=serialization.PublicFormat.SubjectPublicKeyInfo,
    )
    digest = blake3_hexdigest(der).upper()
    return " ".join(
        digest[i:i + FINGERPRINT_GROUP] for i in range(0, len(digest), FINGERPRINT_GROUP)
    )
