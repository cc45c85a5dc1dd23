#!/usr/bin/env python3

from __future__ import annotations
import asyncio
import json
from typing import Optional, Tuple

import typer
from aioconsole import ainput
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from chat_shared.config import ChatConfig
from chat_shared.events import ChatConnectionError, ConfigError
from chat_shared.log import configure_root_logging, get_logger, set_level
from .session import ChatSession
from .state import Message, MessageHistory, User

app = typer.Typer(help="sockchat - Socket.IO chat client")
console = Console()
logger = get_logger(__name__)

HELP_TEXT = "/dm <user> <message>, /history, /help, /quit"


def parse_command(line: str) -> Tuple[str, Tuple[str, ...]]:
    """
    Split an input line into (command, args).

    Plain text is ("say", (text,)); unknown slash commands are
    ("unknown", (line,)) and a malformed /dm is ("usage", ("/dm",)).
    """
    stripped = line.strip()
    if not stripped:
        return "noop", ()
    if not stripped.startswith("/"):
        return "say", (stripped,)

    head, _, rest = stripped.partition(" ")
    if head in {"/quit", "/exit"}:
        return "quit", ()
    if head == "/help":
        return "help", ()
    if head == "/history":
        return "history", ()
    if head in {"/dm", "/tell"}:
        recipient, _, text = rest.strip().partition(" ")
        if not recipient or not text.strip():
            return "usage", ("/dm",)
        return "dm", (recipient, text.strip())
    return "unknown", (stripped,)


def render_message(message: Message) -> None:
    if message.is_private:
        console.print(f"[bold cyan]DM[/] {escape(message.format_line())}")
    else:
        console.print(escape(message.format_line()))


def render_status(text: str) -> None:
    console.print(f"[dim]{escape(text)}[/]")


def history_table(history: MessageHistory) -> Table:
    table = Table(title="Message History")
    table.add_column("Time")
    table.add_column("From")
    table.add_column("To")
    table.add_column("Message")
    for msg in history.snapshot():
        table.add_row(
            msg.timestamp.strftime("%H:%M:%S"),
            msg.sender,
            msg.recipient or "all",
            msg.text,
        )
    return table


async def chat_loop(session: ChatSession) -> None:
    """Read lines until /quit or EOF and hand them to the session."""
    try:
        while True:
            try:
                line = await ainput(": ")
            except EOFError:
                logger.debug("Input closed")
                break

            command, args = parse_command(line)
            if command == "noop":
                continue
            if command == "quit":
                break
            if command == "help":
                console.print(HELP_TEXT)
                continue
            if command == "history":
                console.print(history_table(session.history))
                continue
            if command == "usage":
                console.print("Usage: /dm <user> <message>")
                continue
            if command == "dm":
                await session.send_private_message(*args)
                continue
            if command == "say":
                await session.send_message(args[0])
                continue
            console.print(f"Unknown command. {HELP_TEXT}")
    finally:
        await session.disconnect()


def _load_config(config_file: Optional[str], server: Optional[str], path: Optional[str]) -> ChatConfig:
    try:
        cfg = ChatConfig.load(config_file)
    except ConfigError as e:
        console.print(f"[red]Config error[/]: {e}")
        raise typer.Exit(code=2)
    if server:
        cfg.server_url = server
    if path:
        cfg.socketio_path = path
    return cfg


@app.command()
def run(
    username: str = typer.Option(..., "--username", "-u", prompt=True, help="Name shown to other users"),
    server: Optional[str] = typer.Option(None, help="Socket.IO server URL"),
    path: Optional[str] = typer.Option(None, help="Socket.IO path on the server"),
    config_file: Optional[str] = typer.Option(None, "--config", help="YAML config file"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Also show log lines (traffic, emits)"),
):
    """Connect and start the interactive chat loop."""
    cfg = _load_config(config_file, server, path)
    level = cfg.log_level or ("INFO" if verbose else "WARNING")
    configure_root_logging(level)
    set_level(level)

    try:
        user = User(username)
    except ValueError as e:
        console.print(f"[red]{e}[/]")
        raise typer.Exit(code=2)

    console.print(f"[bold green]sockchat[/] joining as {user.username} on {cfg.server_url}{cfg.socketio_path}")

    async def main_loop() -> None:
        session = ChatSession(user, MessageHistory(), config=cfg, on_message=render_message, on_status=render_status)
        await session.connect()
        await chat_loop(session)

    try:
        asyncio.run(main_loop())
    except ChatConnectionError as e:
        console.print(f"[red]Could not connect[/]: {e}")
        raise typer.Exit(code=1)
    except KeyboardInterrupt:
        console.print("Interrupted.")


@app.command()
def config(
    config_file: Optional[str] = typer.Option(None, "--config", help="YAML config file"),
):
    """Print the effective configuration."""
    cfg = _load_config(config_file, None, None)
    console.print(json.dumps(cfg.to_dict(), indent=2))


def main() -> None:
    app()


if __name__ == "__main__":
    main()
