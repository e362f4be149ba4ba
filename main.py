#!/usr/bin/env python3
"""main.py

Interactive Rich CLI for clippy.

The first message of a session starts a conversation (title and reply are
generated concurrently); every following message continues it.
"""

from __future__ import annotations

# Standard Library
import asyncio
import logging
import sys

# Third-Party Libraries
import httpx
from dotenv import load_dotenv
from rich.console import Console
from rich.markdown import Markdown
from rich.panel import Panel
from rich.prompt import Prompt
from rich.theme import Theme

# Local Modules
from clippy.config import Settings, get_settings
from clippy.errors import ReplyError
from clippy.service import ConversationService, build_service

# Load environment variables from .env file
load_dotenv()

custom_theme = Theme(
    {
        "info": "cyan",
        "warning": "yellow",
        "error": "bold red",
        "success": "bold green",
        "user": "bold blue",
        "assistant": "green",
    }
)
console = Console(theme=custom_theme)


def display_help() -> None:
    """Display available commands and usage information."""
    help_text = """
**Available Commands:**

- `/help` - Show this help message
- `/new` - Start a new conversation
- `/title` - Show the current conversation title
- `/stats` - Show current conversation statistics
- `/quit` or `/exit` - Exit clippy
- Any other text - Chat with the assistant

**Tools available to the assistant:** weather, today's date, holidays,
timezone conversion.
    """
    console.print(Panel(Markdown(help_text), title="Help", border_style="cyan"))


async def display_stats(
    service: ConversationService, conversation_id: str | None, settings: Settings
) -> None:
    """Display statistics about the current conversation."""
    if conversation_id is None:
        console.print("No conversation yet.\n", style="info")
        return
    conversation = await service.describe(conversation_id)
    stats_text = f"""
**Conversation Statistics:**

- Title: {conversation.title}
- Messages: {len(conversation.messages)}
- Model: `{settings.ollama_model}`
- Ollama host: `{settings.ollama_host}`
- Round-trip limit: {settings.max_round_trips}
    """
    console.print(Panel(Markdown(stats_text), title="Statistics", border_style="cyan"))


def display_reply(reply: str) -> None:
    console.print(
        Panel(
            Markdown(reply),
            title="[bold green]clippy[/bold green]",
            border_style="green",
        )
    )
    console.print()


async def chat_loop(service: ConversationService, settings: Settings) -> None:
    """Read user input until the user quits."""
    conversation_id: str | None = None

    while True:
        user_input = (
            await asyncio.to_thread(Prompt.ask, "[bold blue]You[/bold blue]")
        ).strip()
        if not user_input:
            continue

        command = user_input.lower()
        if command in ("/quit", "/exit"):
            console.print("\nGoodbye!\n", style="success")
            return
        if command == "/help":
            display_help()
            continue
        if command == "/new":
            conversation_id = None
            console.print("Started a new conversation.\n", style="success")
            continue
        if command == "/title":
            if conversation_id is None:
                console.print("No conversation yet.\n", style="info")
            else:
                conversation = await service.describe(conversation_id)
                console.print(f"Title: {conversation.title}\n", style="info")
            continue
        if command == "/stats":
            await display_stats(service, conversation_id, settings)
            continue

        console.print()
        try:
            with console.status("[bold green]Thinking...", spinner="dots"):
                if conversation_id is None:
                    conversation, reply = await service.start(user_input)
                    conversation_id = conversation.id
                    console.print(f"[info]Conversation:[/info] {conversation.title}")
                else:
                    reply = await service.continue_conversation(conversation_id, user_input)
        except ReplyError as exc:
            console.print(
                Panel(
                    f"{exc}\n\nYou can continue chatting or type /quit to exit.",
                    title=f"[bold red]Error: {exc.kind}[/bold red]",
                    border_style="red",
                )
            )
            continue

        display_reply(reply)


async def run(settings: Settings) -> None:
    async with httpx.AsyncClient(timeout=settings.http_timeout) as client:
        service = build_service(settings, client)
        await chat_loop(service, settings)


def main() -> None:
    """Main entry point for the clippy CLI."""
    settings = get_settings()
    logging.basicConfig(
        level=settings.log_level.upper(),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )

    console.print("Initializing clippy...", style="info")
    console.print(f"Ollama host: {settings.ollama_host}", style="info")
    console.print(f"Model: {settings.ollama_model}\n", style="info")
    console.print("Type [bold]/help[/bold] for commands, or start chatting!\n", style="info")

    try:
        asyncio.run(run(settings))
    except KeyboardInterrupt:
        console.print("\n\nInterrupted. Goodbye!\n", style="warning")
        sys.exit(0)


if __name__ == "__main__":
    main()
