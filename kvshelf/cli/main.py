import json
from pathlib import Path
from typing import Any, Optional

import click
import yaml

from kvshelf import KVShelfError, KVStore, Journal
from kvshelf.cli.check import check_store
from kvshelf.cli.common import load_cli_config
from kvshelf.core.engine import DEFAULT_KEY


# -------------------------
# Helpers
# -------------------------


def _open_store(ctx: click.Context) -> KVStore:
    return KVStore.from_config(load_cli_config(ctx))


def _read_stdin() -> Optional[str]:
    """Piped input, or None when stdin is a terminal or empty."""
    stream = click.get_text_stream("stdin")
    if stream.isatty():
        return None
    text = stream.read()
    if not text:
        return None
    return text[:-1] if text.endswith("\n") else text


def _parse_value(text: str, raw: bool) -> Any:
    """Turn command-line text into a typed value.

    Text is read as YAML (``42`` is an int, ``[a, b]`` a list) unless
    ``raw`` is set or it does not parse, in which case it stays a string.
    """
    if raw or not text.strip():
        return text
    try:
        return yaml.safe_load(text)
    except yaml.YAMLError:
        return text


def _input_text(value: Optional[str]) -> Optional[str]:
    return value if value is not None else _read_stdin()


def _echo_value(value: Any) -> None:
    if value is None:
        return
    if isinstance(value, (bytes, bytearray)):
        click.echo(bytes(value), nl=False)
    elif isinstance(value, str):
        click.echo(value)
    else:
        click.echo(json.dumps(value, indent=2, default=str, ensure_ascii=False))


# -------------------------
# CLI
# -------------------------


@click.group()
@click.option(
    "--root",
    type=click.Path(path_type=Path),
    default=None,
    help="Store directory (defaults to ~/.config/kvshelf)",
)
@click.option(
    "--config",
    "config_path",
    type=click.Path(path_type=Path),
    default=None,
    help="YAML config file (defaults to <root>/config.yaml)",
)
@click.pass_context
def cli(ctx: click.Context, root: Optional[Path], config_path: Optional[Path]) -> None:
    """kvshelf CLI.

    A small persistent key-value store. Every write keeps the previous
    versions of a value on disk.
    """
    ctx.ensure_object(dict)
    ctx.obj["root"] = root
    ctx.obj["config_path"] = config_path


cli.add_command(check_store)


# ---- value commands ----


@cli.command("set")
@click.argument("key")
@click.argument("value", required=False)
@click.option("--format", "fmt", default=None, help="Force a format (json, yaml, msgpack)")
@click.option("--raw", is_flag=True, help="Store VALUE as a string instead of parsing it")
@click.pass_context
def set_value(ctx: click.Context, key: str, value: Optional[str], fmt: Optional[str], raw: bool) -> None:
    """Store VALUE (or piped stdin) under KEY."""
    text = _input_text(value)
    if text is None:
        raise click.UsageError("No value given: pass VALUE or pipe it on stdin")
    parsed = _parse_value(text, raw)

    store = _open_store(ctx)
    try:
        _echo_value(store.set(key, parsed, fmt))
    except KVShelfError as e:
        raise click.ClickException(str(e))


@cli.command("get")
@click.argument("key", default=DEFAULT_KEY)
@click.pass_context
def get_value(ctx: click.Context, key: str) -> None:
    """Print the value stored under KEY (default: "last")."""
    store = _open_store(ctx)
    try:
        _echo_value(store.get(key))
    except KVShelfError as e:
        raise click.ClickException(str(e))


@cli.command("del")
@click.argument("key", default=DEFAULT_KEY)
@click.pass_context
def delete_value(ctx: click.Context, key: str) -> None:
    """Remove KEY from the index. Its value files are kept."""
    store = _open_store(ctx)
    try:
        store.delete(key)
    except KVShelfError as e:
        raise click.ClickException(str(e))


@cli.command("push")
@click.argument("key")
@click.argument("value", required=False)
@click.option("--unique", is_flag=True, help="Drop earlier copies of VALUE before appending")
@click.option("--raw", is_flag=True, help="Push VALUE as a string instead of parsing it")
@click.pass_context
def push_value(ctx: click.Context, key: str, value: Optional[str], unique: bool, raw: bool) -> None:
    """Append VALUE (or piped stdin) to the list stored under KEY."""
    text = _input_text(value)
    if text is None:
        raise click.UsageError(f"No value to push onto {key!r}: pass VALUE or pipe it on stdin")
    parsed = _parse_value(text, raw)

    store = _open_store(ctx)
    try:
        _echo_value(store.push(key, parsed, unique=unique))
    except KVShelfError as e:
        raise click.ClickException(str(e))


@cli.command("pop")
@click.argument("key")
@click.pass_context
def pop_value(ctx: click.Context, key: str) -> None:
    """Remove and print the last element of the list under KEY."""
    store = _open_store(ctx)
    try:
        _echo_value(store.pop(key))
    except KVShelfError as e:
        raise click.ClickException(str(e))


@cli.command("list")
@click.pass_context
def list_values(ctx: click.Context) -> None:
    """List keys, oldest write first, one JSON object per line."""
    store = _open_store(ctx)
    try:
        entries = store.list()
    except KVShelfError as e:
        raise click.ClickException(str(e))

    for entry in entries:
        click.echo(json.dumps({
            "key": entry.key,
            "filename": entry.filename,
            "modified": entry.modified.isoformat() if entry.modified else None,
        }))


@cli.command("reset")
@click.option("--yes", is_flag=True, help="Skip the confirmation prompt")
@click.pass_context
def reset_store(ctx: click.Context, yes: bool) -> None:
    """Forget every key. Value files stay on disk."""
    store = _open_store(ctx)

    def confirm() -> bool:
        return yes or click.confirm("Remove all keys from the index?", default=False)

    try:
        cleared = store.reset(confirm)
    except KVShelfError as e:
        raise click.ClickException(str(e))
    click.echo("Index cleared" if cleared else "Aborted")


# ---- history commands ----


@cli.command("history")
@click.argument("key", default=DEFAULT_KEY)
@click.pass_context
def history(ctx: click.Context, key: str) -> None:
    """List every stored version of KEY, oldest first."""
    store = _open_store(ctx)
    try:
        versions = store.history(key)
    except KVShelfError as e:
        raise click.ClickException(str(e))

    for version in versions:
        click.echo(json.dumps({
            "filename": version.filename,
            "timestamp": version.timestamp.isoformat(),
            "format": version.format,
            "current": version.current,
        }))


@cli.command("show")
@click.argument("filename")
@click.pass_context
def show_version(ctx: click.Context, filename: str) -> None:
    """Print the value held in a specific value file."""
    store = _open_store(ctx)
    try:
        _echo_value(store.get_version(filename))
    except FileNotFoundError:
        raise click.ClickException(f"No such value file: {filename}")
    except (KVShelfError, ValueError) as e:
        raise click.ClickException(str(e))


@cli.command("orphans")
@click.pass_context
def orphans(ctx: click.Context) -> None:
    """List value files no key points to."""
    store = _open_store(ctx)
    try:
        filenames = store.orphans()
    except KVShelfError as e:
        raise click.ClickException(str(e))

    for filename in filenames:
        click.echo(filename)


# ---- log commands ----


@cli.group()
def log() -> None:
    """Operation journal."""


@log.command("summary")
@click.option("--session", default=None, help="Session ID (defaults to the most recent session)")
@click.pass_context
def log_summary(ctx: click.Context, session: Optional[str]) -> None:
    """Summarize a journal session as JSON."""
    config = load_cli_config(ctx)
    if not config.journal_path().exists():
        raise click.ClickException(f"No journal found at {config.journal_path()}")

    journal = Journal(config.journal_path())
    session = session or journal.last_session() or journal.session_id
    click.echo(json.dumps(journal.get_session_summary(session), indent=2))


if __name__ == "__main__":
    cli()
