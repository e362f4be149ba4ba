"""clippy/repository.py

In-memory conversation storage.

Only user and assistant turns are stored; tool exchanges never leave the
reply engine.  Reads return copies so callers cannot mutate stored state.
"""

from __future__ import annotations

# Standard Library
import asyncio
import uuid
from dataclasses import dataclass, field, replace
from datetime import datetime, timezone

# Local Modules
from clippy.errors import ConversationNotFoundError
from clippy.history import Message, Role


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class Conversation:
    id: str
    title: str
    messages: tuple[Message, ...] = field(default_factory=tuple)
    created_at: datetime = field(default_factory=_utcnow)
    updated_at: datetime = field(default_factory=_utcnow)

    @classmethod
    def new(cls, title: str, messages: tuple[Message, ...]) -> Conversation:
        now = _utcnow()
        return cls(
            id=uuid.uuid4().hex,
            title=title,
            messages=messages,
            created_at=now,
            updated_at=now,
        )


class InMemoryConversationRepository:
    """Conversation store keyed by id, safe for use from one event loop."""

    def __init__(self) -> None:
        self._conversations: dict[str, Conversation] = {}
        self._lock = asyncio.Lock()

    async def create(self, conversation: Conversation) -> Conversation:
        _check_persistable(conversation.messages)
        async with self._lock:
            self._conversations[conversation.id] = conversation
        return conversation

    async def get(self, conversation_id: str) -> Conversation:
        """Return a stored conversation.

        Raises:
            ConversationNotFoundError: If no conversation has that id.
        """
        try:
            return self._conversations[conversation_id]
        except KeyError:
            raise ConversationNotFoundError(conversation_id) from None

    async def list_all(self) -> list[Conversation]:
        """Return every conversation, most recently updated first."""
        return sorted(
            self._conversations.values(), key=lambda c: c.updated_at, reverse=True
        )

    async def append_messages(
        self, conversation_id: str, *messages: Message
    ) -> Conversation:
        """Append turns to a stored conversation and bump ``updated_at``."""
        _check_persistable(messages)
        async with self._lock:
            current = await self.get(conversation_id)
            updated = replace(
                current,
                messages=current.messages + tuple(messages),
                updated_at=_utcnow(),
            )
            self._conversations[conversation_id] = updated
        return updated

    async def delete(self, conversation_id: str) -> None:
        async with self._lock:
            if self._conversations.pop(conversation_id, None) is None:
                raise ConversationNotFoundError(conversation_id)


def _check_persistable(messages: tuple[Message, ...]) -> None:
    for message in messages:
        if message.role not in (Role.USER, Role.ASSISTANT):
            raise ValueError(f"{message.role} messages are never persisted")
