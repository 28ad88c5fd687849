"""
Pydantic schemas for API request/response models.

These schemas define the structure of relay data for serialization and validation.
"""

from .chat import ChatCreate, ChatResponse, LastMessage, MessageCreate, MessageResponse
from .user import (
    EncryptionToggle,
    KeyPairUpload,
    OwnKeysResponse,
    PublicKeyResponse,
    RegisterRequest,
    RegisterResponse,
    UserSummary,
)

__all__ = [
    "ChatCreate", "ChatResponse", "LastMessage", "MessageCreate", "MessageResponse",
    "EncryptionToggle", "KeyPairUpload", "OwnKeysResponse", "PublicKeyResponse",
    "RegisterRequest", "RegisterResponse", "UserSummary",
]
