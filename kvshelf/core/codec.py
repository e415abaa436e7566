"""
Value codec - shape classification, format selection and (de)serialization.

Every value is classified into one of a closed set of shapes, and the shape
decides which format a new Value File is written in:

- LIST, RECORD, TABLE, BINARY -> msgpack (structured, binary-capable)
- STRING -> json (bare strings never go through msgpack)
- SCALAR -> yaml (numbers, booleans, dates and null, human-editable)

The format tag doubles as the Value File extension, so changing this table
changes which files older readers can open.
"""

import json
from datetime import date, datetime
from enum import Enum
from typing import Any, Callable, Dict, Optional, Tuple

import msgpack
import yaml

from kvshelf.core.errors import UnknownFormatError, UnsupportedValueError

JSON = "json"
YAML = "yaml"
MSGPACK = "msgpack"

FORMATS = (JSON, YAML, MSGPACK)

# msgpack extension codes for dates nested inside composites
_EXT_DATE = 1
_EXT_DATETIME = 2


class Shape(Enum):
    """Runtime shape of a storable value."""

    STRING = "string"
    SCALAR = "scalar"
    LIST = "list"
    RECORD = "record"
    TABLE = "table"
    BINARY = "binary"


LIST_SHAPES = (Shape.LIST, Shape.TABLE)


def describe_shape(value: Any) -> Shape:
    """Classify a value into its Shape.

    Raises:
        UnsupportedValueError: If the value has no supported shape
    """
    if isinstance(value, str):
        return Shape.STRING
    if value is None or isinstance(value, (bool, int, float, date)):
        return Shape.SCALAR
    if isinstance(value, (bytes, bytearray)):
        return Shape.BINARY
    if isinstance(value, dict):
        return Shape.RECORD
    if isinstance(value, (list, tuple)):
        if value and all(isinstance(item, dict) for item in value):
            return Shape.TABLE
        return Shape.LIST
    raise UnsupportedValueError(value)


def select_format(value: Any, override: Optional[str] = None) -> str:
    """Pick the format tag for a value.

    Args:
        value: Value about to be stored
        override: Explicit format; used verbatim when non-empty

    Returns:
        Format tag (also the Value File extension)
    """
    if override:
        return override

    shape = describe_shape(value)
    if shape in (Shape.LIST, Shape.RECORD, Shape.TABLE, Shape.BINARY):
        return MSGPACK
    if shape is Shape.STRING:
        return JSON
    if shape is Shape.SCALAR:
        return YAML
    raise AssertionError(f"unhandled shape {shape}")


def values_equal(a: Any, b: Any) -> bool:
    """Structural equality for composites, exact equality for scalars.

    Unlike ``==``, ``True`` and ``1`` (or ``1`` and ``1.0``) are different
    values here.
    """
    if isinstance(a, (list, tuple)) and isinstance(b, (list, tuple)):
        return len(a) == len(b) and all(values_equal(x, y) for x, y in zip(a, b))
    if isinstance(a, dict) and isinstance(b, dict):
        return a.keys() == b.keys() and all(values_equal(a[k], b[k]) for k in a)
    if isinstance(a, (bytes, bytearray)) and isinstance(b, (bytes, bytearray)):
        return bytes(a) == bytes(b)
    return type(a) is type(b) and a == b


# ---------------------------------------------------------------------------
# Codecs
# ---------------------------------------------------------------------------


def _encode_json(value: Any) -> bytes:
    return json.dumps(value, ensure_ascii=False).encode("utf-8")


def _decode_json(data: bytes) -> Any:
    return json.loads(data.decode("utf-8"))


def _encode_yaml(value: Any) -> bytes:
    text = yaml.safe_dump(value, default_flow_style=False, allow_unicode=True, sort_keys=False)
    return text.encode("utf-8")


def _decode_yaml(data: bytes) -> Any:
    return yaml.safe_load(data.decode("utf-8"))


def _msgpack_default(obj: Any) -> Any:
    # datetime before date: datetime is a date subclass
    if isinstance(obj, datetime):
        return msgpack.ExtType(_EXT_DATETIME, obj.isoformat().encode("ascii"))
    if isinstance(obj, date):
        return msgpack.ExtType(_EXT_DATE, obj.isoformat().encode("ascii"))
    raise UnsupportedValueError(obj)


def _msgpack_ext_hook(code: int, data: bytes) -> Any:
    if code == _EXT_DATETIME:
        return datetime.fromisoformat(data.decode("ascii"))
    if code == _EXT_DATE:
        return date.fromisoformat(data.decode("ascii"))
    return msgpack.ExtType(code, data)


def _encode_msgpack(value: Any) -> bytes:
    return msgpack.packb(value, use_bin_type=True, default=_msgpack_default)


def _decode_msgpack(data: bytes) -> Any:
    return msgpack.unpackb(
        data, raw=False, strict_map_key=False, ext_hook=_msgpack_ext_hook
    )


_CODECS: Dict[str, Tuple[Callable[[Any], bytes], Callable[[bytes], Any]]] = {
    JSON: (_encode_json, _decode_json),
    YAML: (_encode_yaml, _decode_yaml),
    MSGPACK: (_encode_msgpack, _decode_msgpack),
}


def check_format(fmt: str) -> None:
    """Raise UnknownFormatError if no codec handles ``fmt``."""
    if fmt not in _CODECS:
        raise UnknownFormatError(fmt)


def encode(value: Any, fmt: str) -> bytes:
    """Serialize a value with the codec named by ``fmt``.

    Raises:
        UnknownFormatError: If no codec handles ``fmt``
        UnsupportedValueError: If the codec cannot represent the value
    """
    check_format(fmt)
    try:
        return _CODECS[fmt][0](value)
    except UnsupportedValueError:
        raise
    except (TypeError, ValueError, yaml.YAMLError) as e:
        raise UnsupportedValueError(value, fmt) from e


def decode(data: bytes, fmt: str) -> Any:
    """Deserialize bytes written by the codec named by ``fmt``."""
    check_format(fmt)
    return _CODECS[fmt][1](data)


__all__ = [
    "Shape",
    "LIST_SHAPES",
    "FORMATS",
    "JSON",
    "YAML",
    "MSGPACK",
    "describe_shape",
    "select_format",
    "values_equal",
    "check_format",
    "encode",
    "decode",
]
