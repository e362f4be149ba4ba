"""clippy/chat.py

Reply engine: the bounded model/tool loop that answers one conversation turn.

Each call to ``ReplyEngine.reply`` owns a fresh ``MessageHistory`` seeded with
the system prompt and the conversation so far, then alternates between the
model backend and the tool registry:

    Await-Model ──text──▶ done
        │
        └─tool calls─▶ Execute-Capabilities ──results appended──▶ Await-Model

Tool results only live for the duration of the reply; the caller persists
the returned text, never the intermediate tool exchange.
"""

from __future__ import annotations

# Standard Library
import asyncio
import logging
from collections.abc import Sequence

# Local Modules
from clippy.backend import Completion, ModelBackend
from clippy.config import DEFAULT_MAX_ROUND_TRIPS, DEFAULT_SYSTEM_PROMPT
from clippy.errors import (
    EmptyConversationError,
    MalformedResponseError,
    ReplyCancelledError,
    RoundTripLimitExceeded,
)
from clippy.history import Message, MessageHistory, Role, ToolCall
from clippy.tools import ToolRegistry

logger = logging.getLogger(__name__)


class ReplyEngine:
    """Drives the model/tool exchange for a single reply.

    The engine itself is stateless between calls, so one instance can serve
    many conversations concurrently; the registry it holds is read-only.
    """

    def __init__(
        self,
        backend: ModelBackend,
        registry: ToolRegistry,
        *,
        system_prompt: str = DEFAULT_SYSTEM_PROMPT,
        max_round_trips: int = DEFAULT_MAX_ROUND_TRIPS,
        parallel_tool_calls: bool = True,
        timeout: float | None = None,
    ) -> None:
        """Initialize the reply engine.

        Args:
            backend: Model backend used for every round-trip.
            registry: Tools advertised to the model and dispatched on request.
            system_prompt: System message placed at the top of the history.
            max_round_trips: Maximum model calls for one reply.
            parallel_tool_calls: Execute the calls of one round-trip
                concurrently.  Results are appended in request order either way.
            timeout: Optional deadline in seconds for a whole reply.
        """
        if max_round_trips < 1:
            raise ValueError("max_round_trips must be at least 1")
        self.backend = backend
        self.registry = registry
        self.system_prompt = system_prompt
        self.max_round_trips = max_round_trips
        self.parallel_tool_calls = parallel_tool_calls
        self.timeout = timeout

    def seed_history(self, messages: Sequence[Message]) -> MessageHistory:
        """Build the initial history: system prompt, then prior turns in order.

        Only user and assistant turns are carried over.
        """
        history = MessageHistory([Message.system(self.system_prompt)])
        history.extend(
            Message(m.role, m.content)
            for m in messages
            if m.role in (Role.USER, Role.ASSISTANT)
        )
        return history

    async def reply(
        self, messages: Sequence[Message], *, conversation_id: str | None = None
    ) -> str:
        """Generate the assistant's answer to the conversation so far.

        Args:
            messages: Prior user/assistant turns, oldest first.
            conversation_id: Used for logging and tool context only.

        Returns:
            The model's final plain-text answer, verbatim.

        Raises:
            EmptyConversationError: If ``messages`` is empty.
            BackendError: If the model backend fails.
            MalformedResponseError: If the model returns nothing usable.
            UnknownCapabilityError: If the model requests an unknown tool.
            RoundTripLimitExceeded: If the model never stops requesting tools.
            ReplyCancelledError: If the reply deadline expires.
        """
        if not messages:
            raise EmptyConversationError()

        logger.info("Generating reply for conversation %s", conversation_id)
        deadline = asyncio.timeout(self.timeout)
        try:
            async with deadline:
                return await self._run(messages, conversation_id)
        except TimeoutError as exc:
            # Only our own deadline cancels the reply; other timeouts propagate.
            if not deadline.expired():
                raise
            logger.warning(
                "Reply for conversation %s cancelled after %ss",
                conversation_id,
                self.timeout,
            )
            raise ReplyCancelledError(
                f"reply cancelled: deadline of {self.timeout}s exceeded"
            ) from exc
        except asyncio.CancelledError:
            logger.info("Reply for conversation %s cancelled", conversation_id)
            raise

    async def _run(self, messages: Sequence[Message], conversation_id: str | None) -> str:
        history = self.seed_history(messages)
        schemas = self.registry.schemas()

        for round_trip in range(1, self.max_round_trips + 1):
            completion = await self.backend.complete(history.snapshot(), schemas)
            if completion.is_empty:
                raise MalformedResponseError("empty response from model backend")

            if not completion.tool_calls:
                logger.info(
                    "Reply ready after %d round-trip(s): %d chars",
                    round_trip,
                    len(completion.content),
                )
                return completion.content

            try:
                history.append(Message.assistant(completion.content, completion.tool_calls))
            except ValueError as exc:
                raise MalformedResponseError(f"invalid tool calls from model backend: {exc}") from exc
            for result in await self._execute(completion, conversation_id):
                history.append(result)
            logger.debug(
                "Round-trip %d/%d executed %d tool call(s)",
                round_trip,
                self.max_round_trips,
                len(completion.tool_calls),
            )

        logger.error(
            "Conversation %s exceeded %d round-trips", conversation_id, self.max_round_trips
        )
        raise RoundTripLimitExceeded(self.max_round_trips)

    async def _execute(
        self, completion: Completion, conversation_id: str | None
    ) -> list[Message]:
        """Run every tool call of one round-trip, returning results in request order."""
        calls: Sequence[ToolCall] = completion.tool_calls
        self.registry.ensure_known(calls)

        if self.parallel_tool_calls and len(calls) > 1:
            return list(
                await asyncio.gather(
                    *(self.registry.dispatch(call, conversation_id) for call in calls)
                )
            )
        return [await self.registry.dispatch(call, conversation_id) for call in calls]
