"""Store integrity checker.

Checks:
1. DANGLING: Index entries whose Value File is missing
2. MISMATCH: Index entries pointing at another key's Value File
3. STRAY: Files in the Values Directory that do not follow the naming grammar

Nothing is repaired; history can always be recovered from the Values Directory.

Exit codes:
    0 = All checks pass (silent)
    1 = Issues found (one-line summary)
"""

import sys
from pathlib import Path
from typing import List

import click

from kvshelf.cli.common import load_cli_config
from kvshelf.core.errors import KVShelfError
from kvshelf.core.index import Index, IndexStore
from kvshelf.core.naming import parse_filename


def check_dangling(index: Index, values_dir: Path) -> List[str]:
    """Index entries that point at a missing Value File."""
    return [
        f"DANGLING: {key} -> {filename}"
        for key, filename in index.items()
        if not (values_dir / filename).is_file()
    ]


def check_mismatch(index: Index) -> List[str]:
    """Index entries whose filename belongs to a different key."""
    warnings = []
    for key, filename in index.items():
        try:
            parsed = parse_filename(filename)
        except ValueError:
            warnings.append(f"MISMATCH: {key} -> {filename} (unparseable name)")
            continue
        if parsed.key != key:
            warnings.append(f"MISMATCH: {key} -> {filename} (belongs to {parsed.key})")
    return warnings


def check_stray(values_dir: Path) -> List[str]:
    """Non-hidden files in the Values Directory with unparseable names."""
    if not values_dir.exists():
        return []

    warnings = []
    for path in sorted(values_dir.iterdir()):
        if not path.is_file() or path.name.startswith("."):
            continue
        try:
            parse_filename(path.name)
        except ValueError:
            warnings.append(f"STRAY: {path.name}")
    return warnings


def run_checks(index_store: IndexStore) -> List[str]:
    index = index_store.load()
    warnings: List[str] = []
    warnings.extend(check_dangling(index, index_store.values_dir))
    warnings.extend(check_mismatch(index))
    warnings.extend(check_stray(index_store.values_dir))
    return warnings


@click.command("check")
@click.pass_context
def check_store(ctx: click.Context) -> None:
    """Check store integrity (dangling entries, mismatched and stray files)."""
    config = load_cli_config(ctx)

    if not config.index_path().exists():
        # Nothing written yet
        sys.exit(0)

    index_store = IndexStore(config.index_path(), config.values_dir_path())
    try:
        all_warnings = run_checks(index_store)
    except KVShelfError as e:
        raise click.ClickException(str(e))

    if all_warnings:
        msg = f"[kvshelf] {len(all_warnings)} issues: {'; '.join(all_warnings[:3])}"
        if len(all_warnings) > 3:
            msg += f" (+{len(all_warnings) - 3} more)"
        click.echo(msg)
        sys.exit(1)
    else:
        sys.exit(0)
