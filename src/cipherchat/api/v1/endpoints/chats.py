"""Chat and message endpoints for the Cipherchat relay.

The relay stores encrypted messages as opaque envelope fields and never
holds anything that could open them.
"""

from __future__ import annotations

import logging

from fastapi import APIRouter, HTTPException, Query, Response, status
from sqlalchemy import func, or_
from sqlalchemy.orm import Session

from cipherchat.api.v1.dependencies import CurrentUserDep, SessionDep
from cipherchat.core.settings import MAX_FEED_PAGE_SIZE, settings
from cipherchat.db.time import utcnow
from cipherchat.models import Chat, ChatMessage, UserAccount
from cipherchat.schemas.chat import (
    ChatCreate,
    ChatResponse,
    LastMessage,
    MessageCreate,
    MessageResponse,
)
from cipherchat.services.envelope import SealedEnvelope
from cipherchat.services.errors import DecryptionError

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/chats", tags=["chats"])

MAX_PAGE_SIZE = MAX_FEED_PAGE_SIZE


def chat_id_for(first_user_id: str, second_user_id: str) -> str:
    """Return the deterministic chat id for a pair of users."""
    return "_".join(sorted((first_user_id, second_user_id)))


def _serialize_chat(chat: Chat) -> ChatResponse:
    last_message: LastMessage | None = None
    if chat.last_message_text is not None and chat.last_message_sender_id is not None:
        last_message = LastMessage(
            text=chat.last_message_text,
            sender_id=chat.last_message_sender_id,
            is_encrypted=chat.last_message_is_encrypted,
        )
    return ChatResponse(
        id=chat.id,
        participants=chat.participants,
        created_at=chat.created_at,
        last_message=last_message,
        last_message_time=chat.last_message_time,
    )


def _get_chat_for_user(db: Session, chat_id: str, user_id: str) -> Chat:
    chat = (
        db.query(Chat)
        .filter(
            Chat.id == chat_id,
            or_(Chat.participant_a == user_id, Chat.participant_b == user_id),
        )
        .first()
    )
    if chat is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Chat not found")
    return chat


@router.post("/", response_model=ChatResponse, status_code=status.HTTP_201_CREATED)
async def create_chat(
    payload: ChatCreate,
    current_user: CurrentUserDep,
    db: SessionDep,
    response: Response,
) -> ChatResponse:
    """Open a chat with another user, or return the existing one."""
    if payload.participant_id == current_user.user_id:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Cannot open a chat with yourself",
        )

    participant = (
        db.query(UserAccount)
        .filter(UserAccount.user_id == payload.participant_id)
        .first()
    )
    if participant is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Participant not found")

    chat_id = chat_id_for(current_user.user_id, participant.user_id)
    chat = db.query(Chat).filter(Chat.id == chat_id).first()
    if chat is not None:
        response.status_code = status.HTTP_200_OK
        return _serialize_chat(chat)

    first, second = sorted((current_user.user_id, participant.user_id))
    chat = Chat(id=chat_id, participant_a=first, participant_b=second)
    db.add(chat)
    db.commit()
    db.refresh(chat)
    return _serialize_chat(chat)


@router.get("/", response_model=list[ChatResponse])
async def list_chats(current_user: CurrentUserDep, db: SessionDep) -> list[ChatResponse]:
    """List the caller's chats, most recently active first."""
    chats = (
        db.query(Chat)
        .filter(
            or_(
                Chat.participant_a == current_user.user_id,
                Chat.participant_b == current_user.user_id,
            )
        )
        .order_by(func.coalesce(Chat.last_message_time, Chat.created_at).desc())
        .all()
    )
    return [_serialize_chat(chat) for chat in chats]


@router.post(
    "/{chat_id}/messages",
    response_model=MessageResponse,
    status_code=status.HTTP_201_CREATED,
)
async def post_message(
    chat_id: str,
    payload: MessageCreate,
    current_user: CurrentUserDep,
    db: SessionDep,
) -> ChatMessage:
    """Append a message to a chat.

    Encrypted messages are stored with a placeholder as their text; the
    envelope fields are checked for encoding only.
    """
    chat = _get_chat_for_user(db, chat_id, current_user.user_id)

    if payload.is_encrypted:
        try:
            envelope = SealedEnvelope.from_wire(payload.model_dump())
        except DecryptionError as err:
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(err)) from err
        message = ChatMessage(
            chat_id=chat.id,
            sender_id=current_user.user_id,
            sender_name=current_user.display_name,
            text=settings.encrypted_text_placeholder,
            is_encrypted=True,
            encrypted_data=payload.encrypted_data,
            encrypted_key=payload.encrypted_key,
            iv=payload.iv,
            cipher_algorithm=envelope.algorithm,
        )
    else:
        message = ChatMessage(
            chat_id=chat.id,
            sender_id=current_user.user_id,
            sender_name=current_user.display_name,
            text=payload.text or "",
            is_encrypted=False,
        )

    now = utcnow()
    message.created_at = now
    chat.last_message_text = message.text
    chat.last_message_sender_id = message.sender_id
    chat.last_message_is_encrypted = message.is_encrypted
    chat.last_message_time = now

    db.add(message)
    db.commit()
    db.refresh(message)
    logger.debug("Stored message %d in chat %s (encrypted=%s)", message.seq, chat.id, message.is_encrypted)
    return message


@router.get("/{chat_id}/messages", response_model=list[MessageResponse])
async def list_messages(
    chat_id: str,
    current_user: CurrentUserDep,
    db: SessionDep,
    after: int = Query(0, ge=0, description="Return messages with seq greater than this"),
    limit: int = Query(100, ge=1, le=MAX_PAGE_SIZE),
) -> list[ChatMessage]:
    """Return messages in delivery order, optionally only those after a cursor."""
    chat = _get_chat_for_user(db, chat_id, current_user.user_id)
    return (
        db.query(ChatMessage)
        .filter(ChatMessage.chat_id == chat.id, ChatMessage.seq > after)
        .order_by(ChatMessage.seq)
        .limit(limit)
        .all()
    )
