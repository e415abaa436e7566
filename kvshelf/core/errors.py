"""Exception taxonomy for kvshelf.

Absent keys are never errors: get/pop return None and delete is a no-op.
I/O failures are plain OSError subclasses and propagate untouched.
"""

from typing import Any, Optional

# Longest rendering of a stored value included in an error message
MAX_VALUE_RENDER = 200


def render_value(value: Any, limit: int = MAX_VALUE_RENDER) -> str:
    """Short repr of a value for error messages."""
    text = repr(value)
    if len(text) > limit:
        return text[: limit - 3] + "..."
    return text


class KVShelfError(Exception):
    """Base exception for all kvshelf errors."""


class ConfigError(KVShelfError):
    """Configuration file could not be read or parsed."""


class InvalidKeyError(KVShelfError, ValueError):
    """Key cannot be used as a value filename component."""


class UnknownFormatError(KVShelfError, ValueError):
    """Format tag has no codec."""

    def __init__(self, fmt: str):
        self.fmt = fmt
        super().__init__(f"Unknown format: {fmt!r}")


class UnsupportedValueError(KVShelfError, TypeError):
    """Value has no supported shape."""

    def __init__(self, value: Any, fmt: Optional[str] = None):
        self.value = value
        self.fmt = fmt
        target = f" for format {fmt!r}" if fmt else ""
        super().__init__(
            f"Unsupported value type {type(value).__name__}{target}: {render_value(value)}"
        )


class CorruptIndexError(KVShelfError):
    """Index file exists but does not hold a key -> filename object."""


class NotAListError(KVShelfError, TypeError):
    """push/pop on a key whose stored value is not a list."""

    def __init__(self, key: str, value: Any):
        self.key = key
        self.value = value
        super().__init__(
            f"Value stored at {key!r} is not a list: {render_value(value)}"
        )


class MissingValueError(KVShelfError, ValueError):
    """push called without a value."""

    def __init__(self, key: str):
        self.key = key
        super().__init__(f"No value given to push onto {key!r}")
