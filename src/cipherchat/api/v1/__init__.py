# src/cipherchat/api/v1/__init__.py
"""Version 1 API endpoints."""

from .endpoints import auth_router, chats_router, keys_router, users_router

__all__ = [
    "auth_router",
    "chats_router",
    "keys_router",
    "users_router",
]
