"""clippy/errors.py

Exception hierarchy shared by the reply engine, the capabilities and the
outer surfaces (HTTP API, CLI).

Errors a capability can recover from (bad arguments, a failing upstream API)
are raised as ``CapabilityError`` and folded into tool-result messages by the
registry.  Everything deriving from ``ReplyError`` terminates a reply and
carries a distinguishable ``kind`` so callers can choose their messaging.
"""

from __future__ import annotations

# Standard Library
from enum import StrEnum


class ErrorKind(StrEnum):
    """Machine-readable category of a terminal failure."""

    BACKEND = "backend"
    MALFORMED_RESPONSE = "malformed_response"
    UNKNOWN_CAPABILITY = "unknown_capability"
    ROUND_TRIP_LIMIT = "round_trip_limit"
    CANCELLED = "cancelled"
    EMPTY_CONVERSATION = "empty_conversation"
    CAPABILITY = "capability"
    NOT_FOUND = "not_found"


class ClippyError(Exception):
    """Base class for every error raised by clippy."""

    kind: ErrorKind = ErrorKind.BACKEND

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message

    def __str__(self) -> str:
        return self.message


class ReplyError(ClippyError):
    """A failure that ends a reply without an answer."""


class BackendError(ReplyError):
    """The model backend could not be reached or refused the request."""

    kind = ErrorKind.BACKEND


class MalformedResponseError(ReplyError):
    """The model backend answered with neither text nor tool calls."""

    kind = ErrorKind.MALFORMED_RESPONSE


class UnknownCapabilityError(ReplyError):
    """The model requested a capability the registry does not know."""

    kind = ErrorKind.UNKNOWN_CAPABILITY

    def __init__(self, name: str) -> None:
        super().__init__(f"unknown tool call: {name}")
        self.name = name


class RoundTripLimitExceeded(ReplyError):
    """The model kept requesting tools past the configured bound."""

    kind = ErrorKind.ROUND_TRIP_LIMIT

    def __init__(self, limit: int) -> None:
        super().__init__(
            f"too many tool calls, unable to generate reply after {limit} round-trips"
        )
        self.limit = limit


class ReplyCancelledError(ReplyError):
    """The reply deadline expired before the model produced an answer."""

    kind = ErrorKind.CANCELLED


class EmptyConversationError(ReplyError):
    """A reply was requested for a conversation without messages."""

    kind = ErrorKind.EMPTY_CONVERSATION

    def __init__(self) -> None:
        super().__init__("conversation has no messages")


class CapabilityError(ClippyError):
    """A capability failed; recovered into a tool-result message."""

    kind = ErrorKind.CAPABILITY


class ConversationNotFoundError(ClippyError):
    """No stored conversation has the requested id."""

    kind = ErrorKind.NOT_FOUND

    def __init__(self, conversation_id: str) -> None:
        super().__init__(f"conversation {conversation_id} not found")
        self.conversation_id = conversation_id
