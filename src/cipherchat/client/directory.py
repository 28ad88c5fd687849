"""Key directory implementation that goes through the relay's HTTP API."""

from __future__ import annotations

import logging

from cipherchat.client.relay import RelayClient, RelayError, RelayNotFoundError
from cipherchat.services.errors import KeyPersistenceError
from cipherchat.services.key_directory import StoredKeyPair, decode_private_key, encode_private_key
from cipherchat.services.keygen import KeyPair

logger = logging.getLogger(__name__)


class HttpKeyDirectory:
    """Key directory for the signed-in user of ``relay``.

    Writes always target the identity behind the relay client's token; the
    ``user_id`` arguments only guard against mixing up sessions.
    """

    def __init__(self, relay: RelayClient, user_id: str) -> None:
        self.relay = relay
        self.user_id = user_id

    def _check_owner(self, user_id: str) -> None:
        if user_id != self.user_id:
            raise KeyPersistenceError(
                f"Directory bound to user {self.user_id!r} cannot act for {user_id!r}"
            )

    async def get_public_key(self, user_id: str) -> str | None:
        """Return ``user_id``'s public key, or None if absent or unknown."""
        try:
            payload = await self.relay.get_public_key(user_id)
        except RelayNotFoundError:
            logger.debug("Public key lookup for unknown user %s", user_id)
            return None
        return payload.get("public_key")

    async def store_own_key_pair(self, user_id: str, key_pair: KeyPair) -> None:
        self._check_owner(user_id)
        try:
            await self.relay.put_own_keys(
                key_pair.public_key,
                encode_private_key(key_pair.private_key),
            )
        except RelayError as err:
            raise KeyPersistenceError(f"Relay rejected key pair: {err}") from err

    async def load_own_key_pair(self, user_id: str) -> StoredKeyPair | None:
        self._check_owner(user_id)
        payload = await self.relay.get_own_keys()
        public_key = payload.get("public_key")
        private_key = payload.get("private_key")
        if not public_key or not private_key:
            return None
        return StoredKeyPair(
            public_key=public_key,
            private_key=decode_private_key(private_key),
            enabled=bool(payload.get("has_encryption_enabled")),
        )

    async def set_encryption_enabled(self, user_id: str, enabled: bool) -> None:
        self._check_owner(user_id)
        try:
            await self.relay.set_encryption_enabled(enabled)
        except RelayError as err:
            raise KeyPersistenceError(f"Relay rejected encryption setting: {err}") from err
