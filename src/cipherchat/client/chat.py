"""Chat orchestration on top of the relay client and an encryption session.

Sending decides between plaintext and a sealed envelope; receiving projects
each stored message document into what the current user should see.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import AsyncIterator, Mapping
from dataclasses import dataclass
from datetime import datetime
from typing import Any

from cipherchat.client.relay import RelayClient
from cipherchat.core.settings import settings
from cipherchat.services.encryption_session import EncryptionSession
from cipherchat.services.envelope import (
    WIRE_ALGORITHM,
    WIRE_ENCRYPTED_DATA,
    WIRE_ENCRYPTED_KEY,
    WIRE_IV,
    SealedEnvelope,
)
from cipherchat.services.errors import (
    PER_MESSAGE_ERRORS,
    KeyFormatError,
    NoKeysError,
    RecipientNotEncryptionCapable,
    SessionClosedError,
)

logger = logging.getLogger(__name__)


def _parse_timestamp(value: Any) -> datetime | None:
    if value is None or isinstance(value, datetime):
        return value
    return datetime.fromisoformat(str(value))


@dataclass(frozen=True)
class MessageDocument:
    """A message as the relay stores it."""

    seq: int
    chat_id: str
    sender_id: str
    sender_name: str
    text: str
    is_encrypted: bool
    encrypted_data: str | None = None
    encrypted_key: str | None = None
    iv: str | None = None
    cipher_algorithm: str | None = None
    created_at: datetime | None = None

    @classmethod
    def from_payload(cls, payload: Mapping[str, Any]) -> MessageDocument:
        return cls(
            seq=int(payload["seq"]),
            chat_id=payload["chat_id"],
            sender_id=payload["sender_id"],
            sender_name=payload.get("sender_name") or "",
            text=payload.get("text") or "",
            is_encrypted=bool(payload.get("is_encrypted")),
            encrypted_data=payload.get("encrypted_data"),
            encrypted_key=payload.get("encrypted_key"),
            iv=payload.get("iv"),
            cipher_algorithm=payload.get("cipher_algorithm"),
            created_at=_parse_timestamp(payload.get("created_at")),
        )

    def envelope_fields(self) -> dict[str, str | None]:
        return {
            WIRE_ENCRYPTED_DATA: self.encrypted_data,
            WIRE_ENCRYPTED_KEY: self.encrypted_key,
            WIRE_IV: self.iv,
            WIRE_ALGORITHM: self.cipher_algorithm,
        }


@dataclass(frozen=True)
class DisplayMessage:
    """What the current user sees for one message."""

    seq: int
    chat_id: str
    sender_id: str
    sender_name: str
    text: str
    is_encrypted: bool
    is_own: bool
    created_at: datetime | None = None
    decryption_failed: bool = False


def render_message(
    document: MessageDocument,
    session: EncryptionSession | None,
    current_user_id: str,
) -> DisplayMessage:
    """Project ``document`` for ``current_user_id``.

    Plaintext passes through. Encrypted messages show a placeholder when they
    were sent by the current user (the envelope is wrapped for the recipient
    only) or when no private key is available. Anything else is decrypted,
    and per-message failures become a placeholder instead of an exception.
    """
    is_own = document.sender_id == current_user_id
    decryption_failed = False

    if not document.is_encrypted:
        text = document.text
    elif is_own:
        text = settings.own_encrypted_placeholder
    elif session is None or session.closed or not session.has_keys:
        text = settings.locked_message_placeholder
    else:
        try:
            envelope = SealedEnvelope.from_wire(document.envelope_fields())
            text = session.decrypt_own(envelope)
        except (*PER_MESSAGE_ERRORS, NoKeysError) as err:
            logger.warning(
                "Could not decrypt message %d in chat %s: %s",
                document.seq,
                document.chat_id,
                err,
            )
            text = settings.decryption_failed_placeholder
            decryption_failed = True

    return DisplayMessage(
        seq=document.seq,
        chat_id=document.chat_id,
        sender_id=document.sender_id,
        sender_name=document.sender_name,
        text=text,
        is_encrypted=document.is_encrypted,
        is_own=is_own,
        created_at=document.created_at,
        decryption_failed=decryption_failed,
    )


class ChatClient:
    """Sends and reads messages for the user behind ``session``."""

    def __init__(
        self,
        relay: RelayClient,
        session: EncryptionSession,
        *,
        allow_plaintext_fallback: bool | None = None,
        poll_interval_seconds: float | None = None,
    ) -> None:
        self.relay = relay
        self.session = session
        self.allow_plaintext_fallback = (
            settings.allow_plaintext_fallback
            if allow_plaintext_fallback is None
            else allow_plaintext_fallback
        )
        self.poll_interval_seconds = (
            settings.feed_poll_interval_seconds
            if poll_interval_seconds is None
            else poll_interval_seconds
        )

    @property
    def user_id(self) -> str:
        return self.session.user_id

    async def list_users(self) -> list[dict[str, Any]]:
        return await self.relay.list_users()

    async def create_chat(self, participant_id: str) -> dict[str, Any]:
        return await self.relay.create_chat(participant_id)

    async def list_chats(self) -> list[dict[str, Any]]:
        return await self.relay.list_chats()

    def _recipient_for(self, chat: Mapping[str, Any]) -> str:
        participants = list(chat["participants"])
        if self.user_id not in participants:
            raise ValueError(f"User {self.user_id} is not a participant of chat {chat['id']}")
        others = [participant for participant in participants if participant != self.user_id]
        if not others:
            raise ValueError(f"Chat {chat['id']} has no other participant")
        return others[0]

    async def _build_payload(self, recipient_id: str, text: str) -> dict[str, Any]:
        if not self.session.enabled:
            return {"text": text}

        try:
            envelope = await self.session.encrypt_for_recipient(text, recipient_id)
        except (RecipientNotEncryptionCapable, KeyFormatError) as err:
            if not self.allow_plaintext_fallback:
                logger.info("Refusing to send to %s: %s", recipient_id, err)
                if isinstance(err, RecipientNotEncryptionCapable):
                    raise
                raise RecipientNotEncryptionCapable(recipient_id) from err
            logger.warning("Sending plaintext to %s: %s", recipient_id, err)
            return {"text": text}

        return {"is_encrypted": True, **envelope.to_wire()}

    async def send_message(self, chat: Mapping[str, Any], text: str) -> MessageDocument:
        """Send ``text`` to the other participant of ``chat``.

        Encrypted when the sender has encryption enabled. Nothing is written
        to the relay if the message cannot be sealed.

        Raises:
            SessionClosedError: If the session was closed.
            RecipientNotEncryptionCapable: If the recipient has no usable
                public key and plaintext fallback is off.
            WrapError: If sealing the message fails.
            RelayError: If the relay rejects the write.
        """
        if self.session.closed:
            raise SessionClosedError(f"Encryption session for {self.user_id} is closed")

        recipient_id = self._recipient_for(chat)
        payload = await self._build_payload(recipient_id, text)
        document = await self.relay.post_message(chat["id"], payload)
        return MessageDocument.from_payload(document)

    def render(self, document: MessageDocument) -> DisplayMessage:
        return render_message(document, self.session, self.user_id)

    async def fetch_messages(
        self,
        chat_id: str,
        *,
        after: int = 0,
        limit: int | None = None,
    ) -> list[DisplayMessage]:
        """Return the messages of ``chat_id`` after ``after``, ready to display."""
        payloads = await self.relay.list_messages(chat_id, after=after, limit=limit)
        return [self.render(MessageDocument.from_payload(payload)) for payload in payloads]

    async def watch(self, chat_id: str, *, after: int = 0) -> AsyncIterator[DisplayMessage]:
        """Yield each new message of ``chat_id`` once, until the session closes."""
        cursor = after
        page_size = settings.feed_page_size
        while not self.session.closed:
            payloads = await self.relay.list_messages(chat_id, after=cursor, limit=page_size)
            for payload in payloads:
                if self.session.closed:
                    return
                document = MessageDocument.from_payload(payload)
                cursor = max(cursor, document.seq)
                yield self.render(document)
            if len(payloads) < page_size:
                await asyncio.sleep(self.poll_interval_seconds)
        logger.debug("Stopped watching chat %s: session closed", chat_id)
