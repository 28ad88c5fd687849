"""Client side of Cipherchat: relay access, identity and chat orchestration."""

from .chat import ChatClient, DisplayMessage, MessageDocument, render_message
from .directory import HttpKeyDirectory
from .identity import IdentitySupplier, SessionManager
from .relay import RelayClient, RelayConfig, RelayError, RelayNotFoundError

__all__ = [
    "ChatClient",
    "DisplayMessage",
    "HttpKeyDirectory",
    "IdentitySupplier",
    "MessageDocument",
    "RelayClient",
    "RelayConfig",
    "RelayError",
    "RelayNotFoundError",
    "SessionManager",
    "render_message",
]
