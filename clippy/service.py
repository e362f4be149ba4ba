"""clippy/service.py

Conversation service: intake, generation and persistence glue.

The assistant never touches storage; this service hands it an ordered list
of messages and persists only what comes back (user turn + final reply).
A conversation is never stored with a failed reply.
"""

from __future__ import annotations

# Standard Library
import logging

# Third-Party Libraries
import httpx

# Local Modules
from clippy.assistant import Assistant
from clippy.backend import OllamaBackend
from clippy.capabilities import default_registry
from clippy.chat import ReplyEngine
from clippy.config import Settings
from clippy.history import Message
from clippy.repository import Conversation, InMemoryConversationRepository

logger = logging.getLogger(__name__)


def _require_text(message: str) -> str:
    if not message or not message.strip():
        raise ValueError("message must not be empty")
    return message


class ConversationService:
    """Starts, continues and manages conversations."""

    def __init__(
        self, assistant: Assistant, repository: InMemoryConversationRepository
    ) -> None:
        self.assistant = assistant
        self.repository = repository

    async def start(self, message: str) -> tuple[Conversation, str]:
        """Create a conversation from its first user message.

        Args:
            message: The initiating user message.

        Returns:
            The stored conversation and the generated reply.

        Raises:
            ValueError: If the message is blank.
            ReplyError: If the reply could not be generated.
        """
        user = Message.user(_require_text(message))
        generated = await self.assistant.start([user])
        conversation = await self.repository.create(
            Conversation.new(generated.title, (user, Message.assistant(generated.reply)))
        )
        logger.info("Started conversation %s: %r", conversation.id, conversation.title)
        return conversation, generated.reply

    async def continue_conversation(self, conversation_id: str, message: str) -> str:
        """Answer a follow-up message in an existing conversation.

        Raises:
            ValueError: If the message is blank.
            ConversationNotFoundError: If the conversation does not exist.
            ReplyError: If the reply could not be generated.
        """
        user = Message.user(_require_text(message))
        conversation = await self.repository.get(conversation_id)
        reply = await self.assistant.reply(
            conversation.messages + (user,), conversation_id=conversation_id
        )
        await self.repository.append_messages(
            conversation_id, user, Message.assistant(reply)
        )
        return reply

    async def describe(self, conversation_id: str) -> Conversation:
        return await self.repository.get(conversation_id)

    async def list_conversations(self) -> list[Conversation]:
        return await self.repository.list_all()

    async def delete(self, conversation_id: str) -> None:
        await self.repository.delete(conversation_id)
        logger.info("Deleted conversation %s", conversation_id)


def build_service(
    settings: Settings,
    http_client: httpx.AsyncClient,
    repository: InMemoryConversationRepository | None = None,
) -> ConversationService:
    """Wire backend, tools, engine and assistant from settings.

    Args:
        settings: Runtime configuration.
        http_client: Client shared by the capabilities; closed by the caller.
        repository: Storage to use; a fresh in-memory one by default.

    Returns:
        A ready-to-use conversation service.
    """
    backend = OllamaBackend(
        model=settings.ollama_model,
        host=settings.ollama_host,
        timeout=settings.ollama_timeout,
    )
    engine = ReplyEngine(
        backend,
        default_registry(settings, http_client),
        system_prompt=settings.system_prompt,
        max_round_trips=settings.max_round_trips,
        parallel_tool_calls=settings.parallel_tool_calls,
        timeout=settings.reply_timeout,
    )
    assistant = Assistant(
        backend,
        engine,
        title_model=settings.title_model,
        title_prompt=settings.title_prompt,
    )
    return ConversationService(assistant, repository or InMemoryConversationRepository())
