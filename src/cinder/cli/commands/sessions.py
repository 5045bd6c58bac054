"""Session management commands."""

import asyncio
from pathlib import Path
from typing import Annotated

import typer
from rich.markup import escape

from cinder.cli.console import (
    confirm_or_cancel,
    console,
    create_table,
    dim,
    error,
    load_config_or_exit,
    success,
)
from cinder.sessions import (
    Message,
    SessionError,
    SessionStore,
    repair_tool_pairs,
    truncate_history,
)
from cinder.sessions.types import SessionEntry

PREVIEW_COUNT = 3
PREVIEW_WIDTH = 80


def format_size(size: int) -> str:
    """Format a byte count for display."""
    kb = 1024
    mb = kb * 1024
    if size >= mb:
        return f"{size / mb:.1f} MB"
    if size >= kb:
        return f"{size / kb:.1f} KB"
    return f"{size} B"


def preview_content(message: Message) -> str:
    """Collapse a message to a single line of at most 80 characters."""
    content = message.content.strip().replace("\n", " ")
    if not content and message.tool_calls:
        names = ", ".join(tc.tool_name or "?" for tc in message.tool_calls)
        content = f"(tool calls: {names})"
    if len(content) > PREVIEW_WIDTH:
        content = content[: PREVIEW_WIDTH - 3] + "..."
    return content


def _format_modified(entry: SessionEntry) -> str:
    return entry.modified.astimezone().strftime("%Y-%m-%d %H:%M")


def _get_store(config_path: Path | None) -> SessionStore:
    config = load_config_or_exit(config_path)
    return SessionStore(config.sessions_path)


def register(app: typer.Typer) -> None:
    """Register the sessions command group."""
    sessions_app = typer.Typer(help="Inspect and maintain stored sessions")
    app.add_typer(sessions_app, name="sessions")

    ConfigOption = Annotated[
        Path | None,
        typer.Option(
            "--config",
            "-c",
            help="Path to configuration file",
        ),
    ]
    ForceOption = Annotated[
        bool,
        typer.Option(
            "--force",
            "-f",
            help="Skip confirmation prompt",
        ),
    ]

    @sessions_app.command("list")
    def list_sessions(config_path: ConfigOption = None) -> None:
        """List stored sessions, most recently modified first."""
        store = _get_store(config_path)
        entries = asyncio.run(store.list_sessions())
        if not entries:
            dim("No sessions found")
            return

        table = create_table(
            "Sessions",
            [
                ("ID", "cyan"),
                ("Messages", {"justify": "right"}),
                ("Last Modified", "dim"),
            ],
        )
        for entry in entries:
            count = "(corrupt)" if entry.corrupt else str(entry.message_count)
            table.add_row(entry.id, count, _format_modified(entry))
        console.print(table)
        dim(f"{len(entries)} session(s) found")

    @sessions_app.command("show")
    def show_session(
        session_id: Annotated[str, typer.Argument(help="Session id")],
        config_path: ConfigOption = None,
    ) -> None:
        """Show details and the last messages of a session."""
        store = _get_store(config_path)
        try:
            entry, session = asyncio.run(store.inspect(session_id))
        except SessionError as e:
            error(str(e))
            raise typer.Exit(1) from None

        console.print(f"[bold]Session:[/bold] {entry.id}")
        if session is None:
            console.print(f"[bold]Size:[/bold] {format_size(entry.size)}")
            console.print(f"[bold]Last Modified:[/bold] {_format_modified(entry)}")
            console.print("[bold]Status:[/bold] [red]corrupt (invalid JSON)[/red]")
            return

        console.print(f"[bold]Messages:[/bold] {entry.message_count}")
        console.print(f"[bold]Last Modified:[/bold] {_format_modified(entry)}")
        console.print(f"[bold]Size:[/bold] {format_size(entry.size)}")
        if session.summary:
            console.print(f"[bold]Summary:[/bold] {session.summary}")

        if session.messages:
            console.print()
            console.print("[bold]Last messages:[/bold]")
            for message in session.messages[-PREVIEW_COUNT:]:
                console.print(
                    f"  [cyan]\\[{message.role.value}][/cyan] "
                    f"{escape(preview_content(message))}",
                    highlight=False,
                )

    @sessions_app.command("delete")
    def delete_session(
        session_id: Annotated[str, typer.Argument(help="Session id")],
        force: ForceOption = False,
        config_path: ConfigOption = None,
    ) -> None:
        """Delete a stored session."""
        store = _get_store(config_path)
        if asyncio.run(store.find_by_id(session_id)) is None:
            error(f"Session '{session_id}' not found")
            raise typer.Exit(1)

        if not confirm_or_cancel(f"Delete session '{session_id}'?", force):
            return

        try:
            asyncio.run(store.delete(session_id))
        except SessionError as e:
            error(str(e))
            raise typer.Exit(1) from None
        success(f"Deleted session {session_id}")

    @sessions_app.command("clear")
    def clear_sessions(
        force: ForceOption = False,
        config_path: ConfigOption = None,
    ) -> None:
        """Delete all stored sessions."""
        store = _get_store(config_path)
        entries = asyncio.run(store.list_sessions())
        if not entries:
            dim("No sessions found")
            return

        if not confirm_or_cancel(f"Delete all {len(entries)} sessions?", force):
            return

        deleted = asyncio.run(store.clear())
        success(f"Cleared {deleted} session(s).")

    @sessions_app.command("repair")
    def repair_session(
        session_id: Annotated[str, typer.Argument(help="Session id")],
        config_path: ConfigOption = None,
    ) -> None:
        """Restore tool call / tool result pairing and save the session."""
        store = _get_store(config_path)

        async def run_repair() -> tuple[int, int]:
            entry, session = await store.inspect(session_id)
            if session is None:
                raise SessionError(
                    f"Session '{entry.id}' is corrupt; delete it instead"
                )
            before = len(session.messages)
            session.messages = repair_tool_pairs(session.messages)
            session.touch()
            await store.save(session)
            return before, len(session.messages)

        try:
            before, after = asyncio.run(run_repair())
        except SessionError as e:
            error(str(e))
            raise typer.Exit(1) from None
        success(f"Repaired session {session_id}: {before} -> {after} messages")

    @sessions_app.command("truncate")
    def truncate_session(
        session_id: Annotated[str, typer.Argument(help="Session id")],
        keep: Annotated[
            int | None,
            typer.Option(
                "--keep",
                "-k",
                help="Messages to keep (default: sessions.keep_last)",
                min=0,
            ),
        ] = None,
        config_path: ConfigOption = None,
    ) -> None:
        """Drop old messages without splitting tool call groups."""
        config = load_config_or_exit(config_path)
        store = SessionStore(config.sessions_path)
        keep_last = keep if keep is not None else config.sessions.keep_last

        async def run_truncate() -> tuple[int, int]:
            entry, session = await store.inspect(session_id)
            if session is None:
                raise SessionError(
                    f"Session '{entry.id}' is corrupt; delete it instead"
                )
            before = len(session.messages)
            session.messages = truncate_history(session.messages, keep_last)
            session.touch()
            await store.save(session)
            return before, len(session.messages)

        try:
            before, after = asyncio.run(run_truncate())
        except SessionError as e:
            error(str(e))
            raise typer.Exit(1) from None
        success(f"Truncated session {session_id}: {before} -> {after} messages")
