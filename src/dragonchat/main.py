"""Command-line entry point for the dragonchat agent."""
from __future__ import annotations

import asyncio
import logging
from typing import Optional, Sequence

import click
from langchain_core.language_models.chat_models import BaseChatModel
from langchain_core.messages import BaseMessage, HumanMessage
from langchain_core.tools import BaseTool
from rich.console import Console
from rich.markdown import Markdown
from rich.panel import Panel

from . import __version__
from .chat_history import ChatHistoryError, ChatHistoryStore, ListBackend
from .chatbot import ChatbotService, LangGraphAgent
from .config import Settings, get_settings, kv_connection
from .llm import create_chat_model
from .tools import get_default_tools
from .workflow import run_market_workflow

logger = logging.getLogger(__name__)

console = Console()

EXIT_COMMANDS = {"exit", "quit"}
LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


def configure_logging(verbose: bool) -> None:
    logging.basicConfig(level=logging.DEBUG if verbose else logging.WARNING, format=LOG_FORMAT)
    if not verbose:
        logging.getLogger("dragonchat").setLevel(logging.INFO)


def build_history_store(
    backend: ListBackend,
    settings: Settings,
    *,
    session_id: Optional[str] = None,
    memory_key: Optional[str] = None,
    ttl_seconds: Optional[int] = None,
) -> ChatHistoryStore:
    return ChatHistoryStore.for_session(
        backend,
        session_id or settings.chat_session_id,
        memory_key=memory_key or settings.chat_memory_key,
        ttl_seconds=ttl_seconds or settings.chat_history_ttl_seconds,
    )


def build_chat_service(
    settings: Settings,
    store: ChatHistoryStore,
    *,
    llm: Optional[BaseChatModel] = None,
    tools: Optional[Sequence[BaseTool]] = None,
) -> ChatbotService:
    agent = LangGraphAgent(
        llm or create_chat_model(settings),
        list(tools) if tools is not None else list(get_default_tools(settings)),
    )
    return ChatbotService(settings, agent, store)


def _print_tools(tools: Sequence[BaseTool]) -> None:
    console.print("[bold]Available tools:[/bold]")
    for index, tool in enumerate(tools, start=1):
        console.print(f"{index}. [cyan]{tool.name}[/cyan]: {tool.description}")


def _print_transcript(memory_key: str, messages: Sequence[BaseMessage]) -> None:
    if not messages:
        console.print(f"[dim]No stored messages in '{memory_key}'.[/dim]")
        return
    for message in messages:
        speaker = "[bold cyan]You[/bold cyan]" if isinstance(message, HumanMessage) else "[bold green]AI[/bold green]"
        console.print(f"{speaker}: {message.content}")


async def _show_history(store: ChatHistoryStore) -> None:
    history = await store.load_history()
    for memory_key in store.list_memory_slots():
        _print_transcript(memory_key, history[memory_key])


async def _run_chat(settings: Settings, *, session_id, memory_key, ttl_seconds) -> None:
    async with kv_connection(settings) as backend:
        store = build_history_store(
            backend,
            settings,
            session_id=session_id,
            memory_key=memory_key,
            ttl_seconds=ttl_seconds,
        )
        service = build_chat_service(settings, store)
        _print_tools(service.tools)
        console.print(
            Panel.fit(
                "[bold green]dragonchat[/bold green]\n"
                f"Session [cyan]{store.config.session_id}[/cyan]. Ask anything; "
                "type 'exit' or 'quit' to leave, '/history' to show the transcript, '/clear' to forget it.",
                border_style="green",
            )
        )
        while True:
            try:
                user_input = (await asyncio.to_thread(console.input, "\n[bold cyan]You:[/bold cyan] ")).strip()
            except (EOFError, KeyboardInterrupt):
                break
            if not user_input:
                continue
            if user_input.lower() in EXIT_COMMANDS:
                break
            try:
                if user_input == "/history":
                    await _show_history(store)
                elif user_input == "/clear":
                    await store.clear()
                    console.print("[yellow]History cleared.[/yellow]")
                else:
                    with console.status("[cyan]Thinking...[/cyan]", spinner="dots"):
                        result = await service.generate_response(user_input)
                    console.print(Panel(Markdown(result.response), title="[bold green]Answer[/bold green]"))
            except Exception as exc:
                logger.exception("Chat turn failed")
                console.print(f"[red]Error while handling your question: {exc}[/red]")
        console.print("\n[yellow]Goodbye![/yellow]")


async def _with_store(settings: Settings, session_id, memory_key, action) -> None:
    async with kv_connection(settings) as backend:
        store = build_history_store(backend, settings, session_id=session_id, memory_key=memory_key)
        await action(store)


def _run(coro) -> None:
    try:
        asyncio.run(coro)
    except (ChatHistoryError, ValueError) as exc:
        console.print(f"[red]{exc}[/red]")
        raise SystemExit(1) from exc


@click.group()
@click.version_option(version=__version__, prog_name="dragonchat")
@click.option("--verbose", "-v", is_flag=True, help="Enable debug logging")
def cli(verbose: bool) -> None:
    """Tool-using chat agent with DragonflyDB-backed memory."""
    configure_logging(verbose)


session_option = click.option("--session-id", default=None, help="Conversation session identifier")
memory_key_option = click.option("--memory-key", default=None, help="Named history slot within the session")


@cli.command()
@session_option
@memory_key_option
@click.option("--ttl", type=click.IntRange(min=1), default=None, help="Expire stored history after N seconds")
def chat(session_id: Optional[str], memory_key: Optional[str], ttl: Optional[int]) -> None:
    """Interactive chat with the tool-calling agent."""
    settings = get_settings()
    _run(_run_chat(settings, session_id=session_id, memory_key=memory_key, ttl_seconds=ttl))


@cli.command()
@session_option
@memory_key_option
def history(session_id: Optional[str], memory_key: Optional[str]) -> None:
    """Print the stored transcript of a session."""
    _run(_with_store(get_settings(), session_id, memory_key, _show_history))


@cli.command()
@session_option
@memory_key_option
def clear(session_id: Optional[str], memory_key: Optional[str]) -> None:
    """Delete the stored transcript of a session."""

    async def _clear(store: ChatHistoryStore) -> None:
        await store.clear()
        console.print(f"[yellow]Cleared {store.human_key} and {store.ai_key}.[/yellow]")

    _run(_with_store(get_settings(), session_id, memory_key, _clear))


@cli.command()
def workflow() -> None:
    """Run the crypto market analysis workflow and print the report."""
    settings = get_settings()
    with console.status("[cyan]Running market analysis...[/cyan]", spinner="dots"):
        report = asyncio.run(run_market_workflow(settings))
    console.print(Panel(Markdown(report), title="[bold green]Crypto market report[/bold green]"))


if __name__ == "__main__":
    cli()
