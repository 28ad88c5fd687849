# src/cipherchat/services/wrapping.py
"""Wrapping one-time symmetric keys under RSA key pairs."""

from __future__ import annotations

from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.asymmetric import padding

from cipherchat.core.settings import settings
from cipherchat.services.errors import UnwrapError, WrapError
from cipherchat.services.keygen import load_private_key, load_public_key

OAEP_SHA256 = "oaep-sha256"
PKCS1V15 = "pkcs1v15"
SUPPORTED_PADDINGS = (OAEP_SHA256, PKCS1V15)


class AsymmetricWrapper:
    """Encrypts raw symmetric key bytes to a recipient's RSA public key.

    ``oaep-sha256`` is the default; ``pkcs1v15`` (RSAES-PKCS1-v1_5) exists
    for relays whose stored envelopes were wrapped with the legacy scheme.
    Sender and recipient must agree, since envelopes do not record it.
    """

    def __init__(self, padding_scheme: str | None = None) -> None:
        self.padding_scheme = padding_scheme or settings.key_wrap_padding
        if self.padding_scheme not in SUPPORTED_PADDINGS:
            raise ValueError(f"Unsupported key wrap padding: {self.padding_scheme}")

    def _padding(self) -> padding.AsymmetricPadding:
        if self.padding_scheme == PKCS1V15:
            return padding.PKCS1v15()
        return padding.OAEP(
            mgf=padding.MGF1(algorithm=hashes.SHA256()),
            algorithm=hashes.SHA256(),
            label=None,
        )

    def wrap_key(self, symmetric_key: bytes, recipient_public_key: str) -> bytes:
        """Encrypt ``symmetric_key`` under the recipient's PEM public key.

        Raises:
            KeyFormatError: If the PEM cannot be parsed as an RSA public key.
            WrapError: If the RSA operation fails.
        """
        public_key = load_public_key(recipient_public_key)
        try:
            return public_key.encrypt(symmetric_key, self._padding())
        except (ValueError, TypeError) as err:
            raise WrapError(f"Failed to wrap symmetric key: {err}") from err

    def unwrap_key(self, wrapped: bytes, own_private_key: str) -> bytes:
        """Recover a wrapped symmetric key with the user's PEM private key.

        A private key that does not match the wrapping public key surfaces as
        an :class:`UnwrapError` from the primitive; it is not checked up front.

        Raises:
            KeyFormatError: If the PEM cannot be parsed as an RSA private key.
            UnwrapError: If the RSA operation fails.
        """
        private_key = load_private_key(own_private_key)
        try:
            return private_key.decrypt(wrapped, self._padding())
        except (ValueError, TypeError) as err:
            raise UnwrapError(f"Failed to unwrap symmetric key: {err}") from err
