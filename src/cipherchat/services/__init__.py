# src/cipherchat/services/__init__.py
"""Encryption core: key generation, envelopes, key directory and sessions."""

from .encryption_session import EncryptionSession, SessionState
from .envelope import EnvelopeCodec, SealedEnvelope
from .key_directory import DatabaseKeyDirectory, KeyDirectory, StoredKeyPair
from .keygen import KeyPair, KeyPairGenerator
from .symmetric import SymmetricCipher
from .wrapping import AsymmetricWrapper

__all__ = [
    "AsymmetricWrapper",
    "DatabaseKeyDirectory",
    "EncryptionSession",
    "EnvelopeCodec",
    "KeyDirectory",
    "KeyPair",
    "KeyPairGenerator",
    "SealedEnvelope",
    "SessionState",
    "StoredKeyPair",
    "SymmetricCipher",
]
