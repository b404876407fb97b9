"""
CLI interface for todo.txt files.

Usage:
    nntm list todo.txt
    nntm add todo.txt "call the plumber" --context home
    nntm toggle todo.txt 3
    nntm watch /tmp/todo.fifo
"""

import json
import os
import time
from pathlib import Path
from typing import Optional

import typer
from typing_extensions import Annotated

from .api import TodoList
from .codec import encode
from .config import NntmConfig, get_config_path, load_or_default, save_config
from .errors import IOUnavailable, InvalidOperation, nntm_home
from .hooks import HookNotifier
from .logging_config import configure_ops_log, enable_debug_mode
from .types import ALL_CONTEXT, Record

# Set NNTM_VERBOSE=1 to enable debug mode via environment
if os.environ.get("NNTM_VERBOSE") == "1":
    enable_debug_mode()


def _version_callback(value: bool):
    if value:
        from importlib.metadata import version
        print(f"nntm {version('nntm')}")
        raise typer.Exit()


def _verbose_callback(value: bool):
    if value:
        enable_debug_mode()


# Global state for CLI options
_json_output = False
_exec_override: Optional[Path] = None
_config_override: Optional[Path] = None
_ops_log_configured = False


def _json_callback(value: bool):
    global _json_output
    _json_output = value


def _get_json_output() -> bool:
    return _json_output


def _exec_callback(value: Optional[Path]):
    global _exec_override
    _exec_override = value


def _config_callback(value: Optional[Path]):
    global _config_override
    _config_override = value


app = typer.Typer(
    name="nntm",
    help="Keep a todo.txt file in order, or follow one streamed through a pipe.",
    no_args_is_help=True,
    rich_markup_mode=None,
)


@app.callback()
def main_callback(
    verbose: Annotated[bool, typer.Option(
        "--verbose", "-v",
        help="Enable debug-level logging to stderr",
        callback=_verbose_callback,
        is_eager=True,
    )] = False,
    output_json: Annotated[bool, typer.Option(
        "--json", "-j",
        help="Output as JSON",
        callback=_json_callback,
        is_eager=True,
    )] = False,
    exec_hook: Annotated[Optional[Path], typer.Option(
        "--exec", "-x",
        envvar="NNTM_EXEC",
        help="Program to run on Added/Completed/Uncompleted events",
        callback=_exec_callback,
        is_eager=True,
    )] = None,
    config: Annotated[Optional[Path], typer.Option(
        "--config",
        envvar="NNTM_CONFIG",
        help="Path to nntm.toml (default: ~/.nntm/nntm.toml)",
        callback=_config_callback,
        is_eager=True,
    )] = None,
    version: Annotated[Optional[bool], typer.Option(
        "--version",
        help="Show version and exit",
        callback=_version_callback,
        is_eager=True,
    )] = None,
):
    """Keep a todo.txt file in order, or follow one streamed through a pipe."""


# -----------------------------------------------------------------------------
# Common Options
# -----------------------------------------------------------------------------

FileArgument = Annotated[
    Path,
    typer.Argument(help="Todo file (a named pipe streams new todos in)")
]

ContextOption = Annotated[
    str,
    typer.Option(
        "--context", "-c",
        help="Context view to work in (default: all)"
    )
]

IndexArgument = Annotated[
    int,
    typer.Argument(help="Index of the todo in the context view (see 'nntm list')")
]


# -----------------------------------------------------------------------------
# Output Formatting
# -----------------------------------------------------------------------------

def _printable(text: str) -> str:
    """Show bytes that are not valid UTF-8 as U+FFFD on the terminal."""
    return text.encode("utf-8", "surrogateescape").decode("utf-8", "replace")


def _format_records(records: list[Record], as_json: bool = False, start: int = 0) -> str:
    """Format records one per line, prefixed by their index in the view."""
    if as_json:
        return json.dumps(
            [{"index": i, **r.to_dict()} for i, r in enumerate(records, start)],
            indent=2,
        )
    if not records:
        return "No todos."
    width = len(str(start + len(records) - 1))
    return "\n".join(
        f"{i:>{width}}  {_printable(encode(r))}".rstrip() for i, r in enumerate(records, start)
    )


def _format_record(record: Record, as_json: bool = False) -> str:
    if as_json:
        return json.dumps(record.to_dict(), indent=2)
    return _printable(encode(record)).rstrip()


# -----------------------------------------------------------------------------

def _get_config() -> NntmConfig:
    try:
        return load_or_default(get_config_path(_config_override))
    except ValueError as e:
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(1)


def _get_todos(path: Path, context: str = ALL_CONTEXT, allow_pipe: bool = False) -> TodoList:
    """Open a todo file, handling errors gracefully.

    One-shot commands refuse named pipes: a stream has no file to edit.
    """
    global _ops_log_configured

    config = _get_config()
    if config.ops_log and not _ops_log_configured:
        configure_ops_log(nntm_home())
        _ops_log_configured = True

    notifier = HookNotifier(_exec_override or config.hook)
    try:
        todos = TodoList(path, config=config, notifier=notifier)
    except IOUnavailable as e:
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(1)

    if todos.streaming and not allow_pipe:
        typer.echo(f"Error: {path} is a named pipe; use 'nntm watch {path}'", err=True)
        raise typer.Exit(1)

    todos.select_context(context.lstrip("@"))
    return todos


def _check_saved(todos: TodoList) -> None:
    if todos.last_error:
        typer.echo(f"Error: changes not saved: {todos.last_error}", err=True)
        raise typer.Exit(1)


def _no_such_index(todos: TodoList, index: int):
    typer.echo(f"Error: no todo at index {index} in @{todos.context}", err=True)
    raise typer.Exit(1)


# -----------------------------------------------------------------------------
# Commands
# -----------------------------------------------------------------------------

@app.command("list")
def list_todos(
    file: FileArgument,
    context: ContextOption = ALL_CONTEXT,
):
    """List todos in a context view, with their view indices."""
    todos = _get_todos(file, context)
    typer.echo(_format_records(todos.visible(), as_json=_get_json_output()))


@app.command()
def contexts(
    file: FileArgument,
):
    """List known contexts and how many todos each holds."""
    todos = _get_todos(file)
    counts = {label: todos.count_visible(label) for label in todos.contexts()}
    if _get_json_output():
        typer.echo(json.dumps(counts, indent=2))
        return
    width = max(len(label) for label in counts) + 1
    for label, count in counts.items():
        typer.echo(_printable(f"@{label:<{width}} {count}"))


@app.command()
def add(
    file: FileArgument,
    text: Annotated[list[str], typer.Argument(help="Todo text")],
    after: Annotated[int, typer.Option(
        "--after", "-a",
        help="Insert after this view index (default: append at the end)"
    )] = -1,
    context: ContextOption = ALL_CONTEXT,
):
    """Add a todo dated today in the context view."""
    todos = _get_todos(file, context)
    record = todos.insert_new(after, " ".join(text))
    if record is None:
        typer.echo("Error: nothing added (empty text or list full)", err=True)
        raise typer.Exit(1)
    _check_saved(todos)
    typer.echo(_format_record(record, as_json=_get_json_output()))


@app.command()
def toggle(
    file: FileArgument,
    index: IndexArgument,
    context: ContextOption = ALL_CONTEXT,
):
    """Mark a todo done, or reopen a done one."""
    todos = _get_todos(file, context)
    record = todos.toggle_completion(index)
    if record is None:
        _no_such_index(todos, index)
    _check_saved(todos)
    typer.echo(_format_record(record, as_json=_get_json_output()))


@app.command()
def priority(
    file: FileArgument,
    index: IndexArgument,
    letter: Annotated[Optional[str], typer.Argument(
        help="Priority letter A-Z (omit to clear)"
    )] = None,
    context: ContextOption = ALL_CONTEXT,
):
    """Set or clear the priority of an open todo."""
    todos = _get_todos(file, context)
    try:
        record = todos.set_priority(index, letter)
    except InvalidOperation as e:
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(1)
    if record is None:
        _no_such_index(todos, index)
    _check_saved(todos)
    typer.echo(_format_record(record, as_json=_get_json_output()))


@app.command()
def move(
    file: FileArgument,
    index: IndexArgument,
    label: Annotated[str, typer.Argument(help="New context, with or without '@'")],
    context: ContextOption = ALL_CONTEXT,
):
    """Move a todo to another context."""
    todos = _get_todos(file, context)
    try:
        record = todos.set_context(index, label.lstrip("@"))
    except InvalidOperation as e:
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(1)
    if record is None:
        if not label.lstrip("@").strip():
            typer.echo("Error: context label is empty", err=True)
            raise typer.Exit(1)
        _no_such_index(todos, index)
    _check_saved(todos)
    typer.echo(_format_record(record, as_json=_get_json_output()))


@app.command()
def sort(
    file: FileArgument,
    by: Annotated[str, typer.Option(
        "--by", "-b",
        help="Sort key: date or priority"
    )] = "date",
    desc: Annotated[bool, typer.Option(
        "--desc", "-d",
        help="Sort descending"
    )] = False,
    save: Annotated[bool, typer.Option(
        "--save",
        help="Write the new order back to the file"
    )] = False,
    context: ContextOption = ALL_CONTEXT,
):
    """Sort the todos of a context view; other todos keep their place."""
    if by not in ("date", "priority"):
        typer.echo(f"Error: --by must be 'date' or 'priority', got {by!r}", err=True)
        raise typer.Exit(1)
    todos = _get_todos(file, context)
    if by == "date":
        todos.sort_by_date(descending=desc)
    else:
        todos.sort_by_priority(descending=desc)
    if save:
        todos.save()
        _check_saved(todos)
    typer.echo(_format_records(todos.visible(), as_json=_get_json_output()))


@app.command()
def group(
    file: FileArgument,
    save: Annotated[bool, typer.Option(
        "--save",
        help="Write the new order back to the file"
    )] = False,
    context: ContextOption = ALL_CONTEXT,
):
    """Group a context view: open todos first, then done ones."""
    todos = _get_todos(file, context)
    todos.group_by_completion()
    if save:
        todos.save()
        _check_saved(todos)
    typer.echo(_format_records(todos.visible(), as_json=_get_json_output()))


@app.command()
def archive(
    file: FileArgument,
):
    """Move done todos to the archive file next to the todo file."""
    todos = _get_todos(file)
    try:
        count = todos.archive_completed()
    except IOUnavailable as e:
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(1)
    _check_saved(todos)
    if _get_json_output():
        typer.echo(json.dumps({"archived": count, "archive": str(todos.archive_path)}))
    else:
        typer.echo(f"Archived {count} todo{'s' if count != 1 else ''} to {todos.archive_path}")


@app.command()
def watch(
    file: FileArgument,
    interval: Annotated[float, typer.Option(
        "--interval", "-i",
        help="Seconds between checks for new todos"
    )] = 0.5,
    context: ContextOption = ALL_CONTEXT,
):
    """Follow a todo file, or a named pipe streaming new todos.

    Press Ctrl+C to stop.
    """
    todos = _get_todos(file, context, allow_pipe=True)
    try:
        if todos.streaming:
            _watch_stream(todos, interval)
        else:
            _watch_file(todos, interval)
    except KeyboardInterrupt:
        todos.close()
        typer.echo()


def _watch_stream(todos: TodoList, interval: float) -> None:
    todos.start_streaming()
    shown = 0
    while True:
        records = todos.visible()
        if len(records) > shown:
            typer.echo(_format_records(records[shown:], start=shown))
            shown = len(records)
        time.sleep(interval)


def _watch_file(todos: TodoList, interval: float) -> None:
    typer.echo(_format_records(todos.visible()))
    last_mtime = todos.path.stat().st_mtime
    while True:
        time.sleep(interval)
        try:
            mtime = todos.path.stat().st_mtime
        except OSError:
            continue
        if mtime == last_mtime:
            continue
        last_mtime = mtime
        try:
            todos.reset()
        except IOUnavailable as e:
            typer.echo(f"Error: {e}", err=True)
            continue
        typer.echo(f"--- @{todos.context} ---")
        typer.echo(_format_records(todos.visible()))


@app.command("config")
def show_config(
    init: Annotated[bool, typer.Option(
        "--init",
        help="Write a config file with default values"
    )] = False,
):
    """Show the effective configuration."""
    config = _get_config()
    if init:
        if config.exists():
            typer.echo(f"Config already exists: {config.path}", err=True)
            raise typer.Exit(1)
        save_config(config)
        typer.echo(f"Wrote {config.path}")
        return
    values = {
        "path": str(config.path),
        "exists": config.exists(),
        "archive_name": config.archive_name,
        "max_records": config.max_records,
        "retry_delay": config.retry_delay,
        "hook": str(_exec_override or config.hook or ""),
        "ops_log": config.ops_log,
    }
    if _get_json_output():
        typer.echo(json.dumps(values, indent=2))
        return
    for key, value in values.items():
        typer.echo(f"{key}: {value}")


# -----------------------------------------------------------------------------

def main():
    try:
        app()
    except SystemExit:
        raise  # Let typer handle exit codes
    except KeyboardInterrupt:
        raise SystemExit(130)  # Standard exit code for Ctrl+C
    except Exception as e:
        # Log full traceback to file, show clean message to user
        from .errors import log_exception
        log_path = log_exception(e, context="nntm CLI")
        typer.echo(f"Error: {e}", err=True)
        typer.echo(f"Details logged to {log_path}", err=True)
        raise SystemExit(1)


if __name__ == "__main__":
    main()
