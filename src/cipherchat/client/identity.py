"""Identity signal and the encryption session lifecycle it drives.

Authentication itself happens elsewhere; this module only needs to know who
is signed in right now, and to hear about it when that changes.
"""

from __future__ import annotations

import logging
from collections.abc import Awaitable, Callable

from cipherchat.services.encryption_session import EncryptionSession
from cipherchat.services.errors import SessionClosedError
from cipherchat.services.key_directory import KeyDirectory

logger = logging.getLogger(__name__)

IdentityListener = Callable[[str | None], Awaitable[None]]
DirectoryFactory = Callable[[str], KeyDirectory]


class IdentitySupplier:
    """Holds the current user id and notifies listeners on sign-in/sign-out."""

    def __init__(self) -> None:
        self._current_user_id: str | None = None
        self._listeners: list[IdentityListener] = []

    @property
    def current_user_id(self) -> str | None:
        return self._current_user_id

    def subscribe(self, listener: IdentityListener) -> Callable[[], None]:
        """Register ``listener``; returns a callable that unregisters it."""
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    async def _notify(self) -> None:
        for listener in list(self._listeners):
            await listener(self._current_user_id)

    async def sign_in(self, user_id: str) -> None:
        if user_id == self._current_user_id:
            return
        self._current_user_id = user_id
        await self._notify()

    async def sign_out(self) -> None:
        if self._current_user_id is None:
            return
        self._current_user_id = None
        await self._notify()


class SessionManager:
    """Keeps exactly one :class:`EncryptionSession` for the signed-in identity.

    A session is built and loaded on sign-in and closed on sign-out, which
    drops its private key. Consumers read :attr:`session` rather than holding
    on to a session across identity changes.
    """

    def __init__(self, identity: IdentitySupplier, directory_factory: DirectoryFactory) -> None:
        self.identity = identity
        self.directory_factory = directory_factory
        self._session: EncryptionSession | None = None
        self._unsubscribe = identity.subscribe(self._on_identity_change)

    @property
    def session(self) -> EncryptionSession | None:
        return self._session

    async def _on_identity_change(self, user_id: str | None) -> None:
        if self._session is not None:
            self._session.close()
            self._session = None

        if user_id is None:
            return

        session = EncryptionSession(user_id, self.directory_factory(user_id))
        self._session = session
        try:
            await session.load()
        except SessionClosedError:
            logger.debug("Discarded key load for %s: signed out mid-load", user_id)
        except Exception:
            logger.exception("Failed to load encryption keys for %s", user_id)
            raise

    def close(self) -> None:
        """Stop following the identity supplier and close any open session."""
        self._unsubscribe()
        if self._session is not None:
            self._session.close()
            self._session = None
