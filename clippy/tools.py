"""clippy/tools.py

Capability contract, registry and dispatch.

A ``Tool`` declares its arguments as a pydantic model; the registry exports
those declarations as Ollama/OpenAI function schemas and decodes the raw
arguments of every tool call before handing them to the tool.  Decoding and
execution failures are converted into tool-result messages so the model can
react to them; an unknown tool name is a terminal error.
"""

from __future__ import annotations

# Standard Library
import json
import logging
from abc import ABC, abstractmethod
from collections.abc import Iterable, Iterator, Mapping, Sequence
from dataclasses import dataclass
from types import MappingProxyType
from typing import Any, ClassVar

# Third-Party Libraries
from pydantic import BaseModel, ValidationError

# Local Modules
from clippy.errors import UnknownCapabilityError
from clippy.history import Message, ToolCall

logger = logging.getLogger(__name__)

INVALID_ARGUMENTS: str = "invalid_arguments"
EXECUTION_FAILED: str = "execution_failed"


class NoArguments(BaseModel):
    """Argument model for tools that take no parameters."""


@dataclass(frozen=True)
class InvocationContext:
    """Read-only facts about the call being executed."""

    call_id: str
    conversation_id: str | None = None


class Tool(ABC):
    """A named capability the model can invoke.

    Subclasses set ``name``, ``description`` and ``Arguments`` and implement
    ``execute``.  ``execute`` raises ``CapabilityError`` on failure and must
    never touch the message history.
    """

    name: ClassVar[str]
    description: ClassVar[str]
    Arguments: ClassVar[type[BaseModel]] = NoArguments

    def schema(self) -> dict[str, Any]:
        """Return the function-tool declaration advertised to the model."""
        parameters = self.Arguments.model_json_schema()
        parameters.pop("title", None)
        parameters.setdefault("properties", {})
        return {
            "type": "function",
            "function": {
                "name": self.name,
                "description": self.description,
                "parameters": parameters,
            },
        }

    def decode(self, arguments: Mapping[str, Any] | str | None) -> BaseModel:
        """Decode raw call arguments into ``Arguments``.

        Raises:
            ValidationError: If the payload does not fit the model.
        """
        if arguments is None or (isinstance(arguments, str) and not arguments.strip()):
            return self.Arguments.model_validate({})
        if isinstance(arguments, str):
            return self.Arguments.model_validate_json(arguments)
        return self.Arguments.model_validate(dict(arguments))

    @abstractmethod
    async def execute(self, context: InvocationContext, arguments: Any) -> str:
        """Run the capability and return its textual result."""


def _error_payload(kind: str, error: str) -> str:
    return json.dumps({"error": error, "kind": kind}, ensure_ascii=False)


def _describe_validation_error(exc: ValidationError) -> str:
    problems = []
    for item in exc.errors():
        location = ".".join(str(part) for part in item.get("loc", ())) or "arguments"
        problems.append(f"{location}: {item.get('msg', 'invalid value')}")
    return "; ".join(problems)


class ToolRegistry:
    """Ordered, read-only collection of tools keyed by name."""

    def __init__(self, tools: Iterable[Tool] = ()) -> None:
        ordered: dict[str, Tool] = {}
        for tool in tools:
            if tool.name in ordered:
                raise ValueError(f"tool {tool.name!r} is already registered")
            ordered[tool.name] = tool
            logger.info("Registered tool: %s", tool.name)
        self._tools: Mapping[str, Tool] = MappingProxyType(ordered)

    def schemas(self) -> list[dict[str, Any]]:
        """Return every tool schema in registration order."""
        return [tool.schema() for tool in self._tools.values()]

    def names(self) -> list[str]:
        return list(self._tools)

    def get(self, name: str) -> Tool | None:
        return self._tools.get(name)

    def ensure_known(self, calls: Sequence[ToolCall]) -> None:
        """Fail on the first call whose name is not registered.

        Raises:
            UnknownCapabilityError: For an unregistered name.
        """
        for call in calls:
            if call.name not in self._tools:
                logger.warning("Unknown tool called: %s", call.name)
                raise UnknownCapabilityError(call.name)

    async def dispatch(
        self, call: ToolCall, conversation_id: str | None = None
    ) -> Message:
        """Execute one tool call and return its tool-result message.

        Args:
            call: The model's invocation request.
            conversation_id: Conversation being answered, for logging.

        Returns:
            A tool-result message correlated with ``call.id``.  Argument
            and execution failures are reported inside the message.

        Raises:
            UnknownCapabilityError: If no tool has the requested name.
        """
        tool = self._tools.get(call.name)
        if tool is None:
            logger.warning("Unknown tool called: %s", call.name)
            raise UnknownCapabilityError(call.name)

        logger.info("Tool call received: name=%s args=%s", call.name, call.arguments)
        try:
            arguments = tool.decode(call.arguments)
        except ValidationError as exc:
            detail = _describe_validation_error(exc)
            logger.warning("Invalid arguments for %s: %s", call.name, detail)
            return Message.tool_result(
                _error_payload(INVALID_ARGUMENTS, f"failed to parse {call.name} arguments: {detail}"),
                call.id,
            )

        context = InvocationContext(call_id=call.id, conversation_id=conversation_id)
        try:
            result = await tool.execute(context, arguments)
        except Exception as exc:
            logger.error(
                "Tool execution failed: tool=%s args=%s error=%s",
                call.name,
                call.arguments,
                exc,
                exc_info=True,
            )
            return Message.tool_result(
                _error_payload(EXECUTION_FAILED, f"Tool failed: {exc}"), call.id
            )

        logger.info("Tool executed: %s → %s", call.name, result[:200])
        return Message.tool_result(result, call.id)

    def __contains__(self, name: object) -> bool:
        return name in self._tools

    def __iter__(self) -> Iterator[Tool]:
        return iter(self._tools.values())

    def __len__(self) -> int:
        return len(self._tools)
