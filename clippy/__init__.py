"""clippy/__init__.py

Conversational assistant with tool calling over Ollama.
"""

from clippy.assistant import DEFAULT_TITLE, EMPTY_CONVERSATION_TITLE, Assistant
from clippy.chat import ReplyEngine
from clippy.history import Message, MessageHistory, Role, ToolCall
from clippy.tools import Tool, ToolRegistry

__all__ = [
    "Assistant",
    "DEFAULT_TITLE",
    "EMPTY_CONVERSATION_TITLE",
    "Message",
    "MessageHistory",
    "ReplyEngine",
    "Role",
    "Tool",
    "ToolCall",
    "ToolRegistry",
]

__version__ = "0.1.0"
