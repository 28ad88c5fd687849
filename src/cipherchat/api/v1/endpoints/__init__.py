# src/cipherchat/api/v1/endpoints/__init__.py
"""API endpoint modules for version 1."""

from .auth import router as auth_router
from .chats import router as chats_router
from .keys import router as keys_router
from .users import router as users_router

__all__ = [
    "auth_router",
    "chats_router",
    "keys_router",
    "users_router",
]
