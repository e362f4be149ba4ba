"""clippy/assistant.py

Title generation and the title/reply fan-out used when a conversation starts.

``Assistant.start`` runs the title task and the reply task concurrently over
the same immutable snapshot and joins them.  A failed title falls back to
``DEFAULT_TITLE``; a failed reply fails the whole operation with the reply's
own error.
"""

from __future__ import annotations

# Standard Library
import asyncio
import logging
from collections.abc import Sequence
from dataclasses import dataclass

# Local Modules
from clippy.backend import ModelBackend
from clippy.chat import ReplyEngine
from clippy.config import DEFAULT_TITLE_PROMPT
from clippy.errors import MalformedResponseError
from clippy.history import Message

logger = logging.getLogger(__name__)

DEFAULT_TITLE: str = "Untitled conversation"
EMPTY_CONVERSATION_TITLE: str = "An empty conversation"
MAX_TITLE_LENGTH: int = 80

_TITLE_STRIP_CHARS: str = " \t\r\n-\"'"


def clean_title(raw: str, max_length: int = MAX_TITLE_LENGTH) -> str:
    """Normalise a model-generated title.

    Line breaks become spaces, surrounding whitespace, dashes and quotes are
    removed and the result is cut to ``max_length`` characters.

    Args:
        raw: Title text as returned by the model.
        max_length: Maximum number of characters to keep.

    Returns:
        The cleaned title, possibly empty.
    """
    title = raw.replace("\r\n", " ").replace("\n", " ").replace("\r", " ")
    title = title.strip(_TITLE_STRIP_CHARS)
    return title[:max_length].strip(_TITLE_STRIP_CHARS)


@dataclass(frozen=True)
class GeneratedConversation:
    title: str
    reply: str


class Assistant:
    """Generates titles and replies for conversations."""

    def __init__(
        self,
        backend: ModelBackend,
        engine: ReplyEngine,
        *,
        title_model: str | None = None,
        title_prompt: str = DEFAULT_TITLE_PROMPT,
    ) -> None:
        self.backend = backend
        self.engine = engine
        self.title_model = title_model
        self.title_prompt = title_prompt

    async def title(
        self, messages: Sequence[Message], *, conversation_id: str | None = None
    ) -> str:
        """Summarise the conversation topic in at most 80 characters.

        Raises:
            BackendError: If the model backend fails.
            MalformedResponseError: If the model returns an empty title.
        """
        if not messages:
            return EMPTY_CONVERSATION_TITLE

        logger.info("Generating title for conversation %s", conversation_id)
        # Every turn is framed as user input so the model summarises instead of answering.
        prompt = [Message.system(self.title_prompt)]
        prompt.extend(Message.user(m.content) for m in messages)

        completion = await self.backend.complete(prompt, (), model=self.title_model)
        title = clean_title(completion.content)
        if not title:
            raise MalformedResponseError("empty response from model backend for title generation")
        return title

    async def reply(
        self, messages: Sequence[Message], *, conversation_id: str | None = None
    ) -> str:
        return await self.engine.reply(messages, conversation_id=conversation_id)

    async def start(
        self, messages: Sequence[Message], *, conversation_id: str | None = None
    ) -> GeneratedConversation:
        """Generate the title and the first reply concurrently.

        Args:
            messages: Conversation so far, including the initiating message.
            conversation_id: Used for logging only.

        Returns:
            The title (or ``DEFAULT_TITLE``) and the reply.

        Raises:
            ReplyError: Whatever the reply generation raised.
        """
        snapshot = tuple(messages)
        try:
            async with asyncio.TaskGroup() as group:
                title_task = group.create_task(
                    self._title_or_default(snapshot, conversation_id)
                )
                reply_task = group.create_task(
                    self.reply(snapshot, conversation_id=conversation_id)
                )
        except BaseExceptionGroup as failure:
            # Only the reply task can fail; the title task absorbs its errors.
            raise failure.exceptions[0] from None

        return GeneratedConversation(title=title_task.result(), reply=reply_task.result())

    async def _title_or_default(
        self, messages: Sequence[Message], conversation_id: str | None
    ) -> str:
        try:
            return await self.title(messages, conversation_id=conversation_id)
        except Exception as exc:
            logger.warning(
                "Title generation failed for conversation %s, using default: %s",
                conversation_id,
                exc,
            )
            return DEFAULT_TITLE
