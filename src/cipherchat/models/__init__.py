# src/cipherchat/models/__init__.py
"""SQLAlchemy models for the Cipherchat relay."""

from .chat import Chat, ChatMessage
from .user import UserAccount

__all__ = [
    "Chat", "ChatMessage",
    "UserAccount",
]
