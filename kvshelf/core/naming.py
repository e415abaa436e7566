"""
Value File naming.

Value Files are named ``{key}_{timestamp}.{format}`` where the timestamp is
20 fixed-width digits (year through microsecond). Names of one key therefore
sort chronologically, which is what history browsing relies on.
"""

import re
from dataclasses import dataclass
from datetime import datetime, timedelta
from pathlib import Path
from typing import Callable, Optional

from kvshelf.core.errors import InvalidKeyError

TIMESTAMP_FORMAT = "%Y%m%d%H%M%S%f"

_FILENAME_RE = re.compile(r"^(?P<key>.+)_(?P<timestamp>\d{20})\.(?P<format>[A-Za-z0-9]+)$")
_FORBIDDEN_KEY_CHARS = ("/", "\\", "\0")


def validate_key(key: str) -> str:
    """Check that a key can be embedded in a Value File name.

    Returns:
        The key, unchanged

    Raises:
        InvalidKeyError: If the key is empty, hidden, or contains a path separator
    """
    if not isinstance(key, str) or not key:
        raise InvalidKeyError("Key must be a non-empty string")
    if key in (".", "..") or key.startswith("."):
        raise InvalidKeyError(f"Key cannot start with '.': {key!r}")
    if any(ch in key for ch in _FORBIDDEN_KEY_CHARS):
        raise InvalidKeyError(f"Key cannot contain path separators: {key!r}")
    return key


@dataclass(frozen=True)
class ValueFileName:
    """Parsed Value File name."""

    key: str
    timestamp: datetime
    format: str

    @property
    def filename(self) -> str:
        return format_filename(self.key, self.timestamp, self.format)


def format_filename(key: str, timestamp: datetime, fmt: str) -> str:
    return f"{key}_{timestamp.strftime(TIMESTAMP_FORMAT)}.{fmt}"


def parse_filename(filename: str) -> ValueFileName:
    """Split a Value File name into key, timestamp and format.

    The key may itself contain underscores; the timestamp never does.

    Raises:
        ValueError: If the name does not follow the naming grammar
    """
    match = _FILENAME_RE.match(filename)
    if not match:
        raise ValueError(f"Not a value file name: {filename!r}")
    return ValueFileName(
        key=match.group("key"),
        timestamp=datetime.strptime(match.group("timestamp"), TIMESTAMP_FORMAT),
        format=match.group("format"),
    )


class FilenameGenerator:
    """Issues Value File names with strictly increasing timestamps.

    If the clock has not moved since the previous name (or went backwards),
    the previous timestamp plus one microsecond is used instead. A candidate
    that already exists in ``values_dir`` is bumped the same way, so a
    concurrent writer in the same microsecond cannot be overwritten.
    """

    def __init__(
        self,
        values_dir: Optional[Path] = None,
        clock: Callable[[], datetime] = datetime.now,
    ):
        self.values_dir = Path(values_dir) if values_dir is not None else None
        self._clock = clock
        self._last: Optional[datetime] = None

    def _next_timestamp(self) -> datetime:
        now = self._clock()
        if self._last is not None and now <= self._last:
            now = self._last + timedelta(microseconds=1)
        self._last = now
        return now

    def next_filename(self, key: str, fmt: str) -> str:
        validate_key(key)
        while True:
            name = format_filename(key, self._next_timestamp(), fmt)
            if self.values_dir is None or not (self.values_dir / name).exists():
                return name


__all__ = [
    "TIMESTAMP_FORMAT",
    "ValueFileName",
    "FilenameGenerator",
    "format_filename",
    "parse_filename",
    "validate_key",
]
