"""clippy/api.py

FastAPI HTTP interface for the conversation service.

Endpoints:
  GET    /health                          - liveness probe
  POST   /conversations                   - start a conversation (title + reply)
  GET    /conversations                   - list conversations, newest first
  GET    /conversations/{id}              - full conversation
  POST   /conversations/{id}/messages     - continue a conversation
  DELETE /conversations/{id}              - delete a conversation
"""

from __future__ import annotations

# Standard Library
import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from datetime import datetime

# Third-Party Libraries
import httpx
import uvicorn
from dotenv import load_dotenv
from fastapi import FastAPI, Request, Response, status
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field, field_validator

# Local Modules
from clippy.config import get_settings
from clippy.errors import ClippyError, ErrorKind
from clippy.repository import Conversation
from clippy.service import ConversationService, build_service

logger = logging.getLogger(__name__)

_STATUS_BY_KIND: dict[ErrorKind, int] = {
    ErrorKind.BACKEND: status.HTTP_502_BAD_GATEWAY,
    ErrorKind.MALFORMED_RESPONSE: status.HTTP_502_BAD_GATEWAY,
    ErrorKind.ROUND_TRIP_LIMIT: status.HTTP_502_BAD_GATEWAY,
    ErrorKind.CANCELLED: status.HTTP_504_GATEWAY_TIMEOUT,
    ErrorKind.EMPTY_CONVERSATION: status.HTTP_400_BAD_REQUEST,
    ErrorKind.UNKNOWN_CAPABILITY: status.HTTP_500_INTERNAL_SERVER_ERROR,
    ErrorKind.NOT_FOUND: status.HTTP_404_NOT_FOUND,
}

# ---------------------------------------------------------------------------
# Models
# ---------------------------------------------------------------------------


class MessageRequest(BaseModel):
    message: str = Field(..., min_length=1, description="The user message.")

    @field_validator("message")
    @classmethod
    def _not_blank(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("message must not be blank")
        return value


class MessageOut(BaseModel):
    role: str
    content: str


class StartConversationResponse(BaseModel):
    conversation_id: str
    title: str
    reply: str


class ContinueConversationResponse(BaseModel):
    reply: str


class ConversationSummary(BaseModel):
    id: str
    title: str
    updated_at: datetime


class ConversationOut(ConversationSummary):
    created_at: datetime
    messages: list[MessageOut]

    @classmethod
    def from_conversation(cls, conversation: Conversation) -> ConversationOut:
        return cls(
            id=conversation.id,
            title=conversation.title,
            created_at=conversation.created_at,
            updated_at=conversation.updated_at,
            messages=[
                MessageOut(role=str(m.role), content=m.content)
                for m in conversation.messages
            ],
        )


# ---------------------------------------------------------------------------
# App factory
# ---------------------------------------------------------------------------


def create_app(service: ConversationService | None = None) -> FastAPI:
    """Create the FastAPI application.

    Args:
        service: Pre-built service (tests).  When omitted, one is built from
            the settings at startup and its HTTP client closed at shutdown.

    Returns:
        The configured application.
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        if service is not None:
            app.state.service = service
            yield
            return
        settings = get_settings()
        async with httpx.AsyncClient(timeout=settings.http_timeout) as client:
            app.state.service = build_service(settings, client)
            logger.info(
                "Conversation service ready: model=%s host=%s",
                settings.ollama_model,
                settings.ollama_host,
            )
            yield

    app = FastAPI(
        title="Clippy",
        version="0.1.0",
        description="Conversational assistant with weather, date, holiday and timezone tools.",
        lifespan=lifespan,
    )

    @app.exception_handler(ClippyError)
    async def _clippy_error(request: Request, exc: ClippyError) -> JSONResponse:
        code = _STATUS_BY_KIND.get(exc.kind, status.HTTP_500_INTERNAL_SERVER_ERROR)
        if code >= 500:
            logger.error("%s %s failed: %s", request.method, request.url.path, exc)
        return JSONResponse(status_code=code, content={"detail": str(exc), "kind": exc.kind})

    @app.get("/health", tags=["meta"])
    async def health() -> dict[str, str]:
        """Liveness probe."""
        return {"status": "ok"}

    @app.post(
        "/conversations",
        response_model=StartConversationResponse,
        status_code=status.HTTP_201_CREATED,
        tags=["conversations"],
    )
    async def start_conversation(
        body: MessageRequest, request: Request
    ) -> StartConversationResponse:
        """Start a conversation: title and first reply are generated concurrently."""
        conversation, reply = await _service(request).start(body.message)
        return StartConversationResponse(
            conversation_id=conversation.id, title=conversation.title, reply=reply
        )

    @app.get(
        "/conversations",
        response_model=list[ConversationSummary],
        tags=["conversations"],
    )
    async def list_conversations(request: Request) -> list[ConversationSummary]:
        conversations = await _service(request).list_conversations()
        return [
            ConversationSummary(id=c.id, title=c.title, updated_at=c.updated_at)
            for c in conversations
        ]

    @app.get(
        "/conversations/{conversation_id}",
        response_model=ConversationOut,
        tags=["conversations"],
    )
    async def describe_conversation(conversation_id: str, request: Request) -> ConversationOut:
        conversation = await _service(request).describe(conversation_id)
        return ConversationOut.from_conversation(conversation)

    @app.post(
        "/conversations/{conversation_id}/messages",
        response_model=ContinueConversationResponse,
        tags=["conversations"],
    )
    async def continue_conversation(
        conversation_id: str, body: MessageRequest, request: Request
    ) -> ContinueConversationResponse:
        reply = await _service(request).continue_conversation(conversation_id, body.message)
        return ContinueConversationResponse(reply=reply)

    @app.delete(
        "/conversations/{conversation_id}",
        status_code=status.HTTP_204_NO_CONTENT,
        tags=["conversations"],
    )
    async def delete_conversation(conversation_id: str, request: Request) -> Response:
        await _service(request).delete(conversation_id)
        return Response(status_code=status.HTTP_204_NO_CONTENT)

    return app


def _service(request: Request) -> ConversationService:
    return request.app.state.service


# ---------------------------------------------------------------------------
# Entry point
# ---------------------------------------------------------------------------


def run_api() -> None:
    """Start the FastAPI server via uvicorn."""
    load_dotenv()
    settings = get_settings()
    logging.basicConfig(
        level=settings.log_level.upper(),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )
    logger.info("Starting clippy API on %s:%d", settings.api_host, settings.api_port)
    uvicorn.run(
        create_app(),
        host=settings.api_host,
        port=settings.api_port,
        log_level=settings.log_level.lower(),
    )


if __name__ == "__main__":
    run_api()
