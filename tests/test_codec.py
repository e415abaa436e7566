"""Tests for shape classification, format selection and codecs."""

from datetime import date, datetime

import pytest

from kvshelf.core import codec
from kvshelf.core.codec import Shape, describe_shape, select_format, values_equal
from kvshelf.core.errors import UnknownFormatError, UnsupportedValueError


class TestDescribeShape:
    """Tests for describe_shape."""

    @pytest.mark.parametrize(
        "value, shape",
        [
            ("text", Shape.STRING),
            ("", Shape.STRING),
            (42, Shape.SCALAR),
            (2.5, Shape.SCALAR),
            (True, Shape.SCALAR),
            (None, Shape.SCALAR),
            (date(2026, 10, 18), Shape.SCALAR),
            (datetime(2026, 10, 18, 12, 0), Shape.SCALAR),
            (b"\x00\x01", Shape.BINARY),
            (bytearray(b"abc"), Shape.BINARY),
            ({"a": 1}, Shape.RECORD),
            ([], Shape.LIST),
            ([1, "two"], Shape.LIST),
            ((1, 2), Shape.LIST),
            ([{"a": 1}, {"a": 2}], Shape.TABLE),
            ([{"a": 1}, 2], Shape.LIST),
        ],
    )
    def test_shapes(self, value, shape):
        """Test each supported runtime type maps to its shape."""
        assert describe_shape(value) is shape

    def test_unsupported_value(self):
        """Test that values outside the closed set are rejected."""
        with pytest.raises(UnsupportedValueError):
            describe_shape({1, 2, 3})

        with pytest.raises(TypeError):
            describe_shape(object())


class TestSelectFormat:
    """Tests for the three-way format policy."""

    @pytest.mark.parametrize(
        "value",
        [[1, 2], {"a": 1}, [{"a": 1}], b"blob", []],
    )
    def test_composites_use_msgpack(self, value):
        assert select_format(value) == "msgpack"

    def test_bare_string_uses_json(self):
        assert select_format("hello") == "json"

    @pytest.mark.parametrize(
        "value",
        [1, 1.5, False, None, date(2026, 1, 1), datetime(2026, 1, 1, 8, 30)],
    )
    def test_other_scalars_use_yaml(self, value):
        assert select_format(value) == "yaml"

    def test_override_used_verbatim(self):
        """Test that a non-empty override wins over the shape."""
        assert select_format([1, 2], "json") == "json"
        assert select_format("text", "custom") == "custom"

    def test_empty_override_ignored(self):
        assert select_format("text", "") == "json"
        assert select_format(3, None) == "yaml"


class TestCodecs:
    """Tests for encode/decode."""

    def test_json_string(self):
        data = codec.encode("héllo \"world\"", "json")
        assert codec.decode(data, "json") == "héllo \"world\""

    @pytest.mark.parametrize(
        "value",
        [
            42,
            -3.25,
            True,
            None,
            date(2026, 10, 18),
            datetime(2026, 10, 18, 12, 30, 1, 123456),
        ],
    )
    def test_yaml_scalars(self, value):
        """Test native scalars survive the YAML file unchanged."""
        decoded = codec.decode(codec.encode(value, "yaml"), "yaml")
        assert decoded == value
        assert type(decoded) is type(value)

    def test_yaml_is_human_editable(self):
        """Test that a hand-edited YAML file decodes to the edited value."""
        assert codec.decode(b"2026-12-24\n", "yaml") == date(2026, 12, 24)
        assert codec.decode(b"7\n", "yaml") == 7

    def test_msgpack_nested(self):
        """Test composites with binary and dates inside."""
        value = {
            "name": "report",
            "blob": b"\x00\xff",
            "tags": ["a", "b"],
            "due": date(2026, 11, 1),
            "stamp": datetime(2026, 11, 1, 9, 15, 0, 5),
            "rows": [{"n": 1}, {"n": 2}],
            3: "int key",
        }
        decoded = codec.decode(codec.encode(value, "msgpack"), "msgpack")
        assert decoded == value
        assert isinstance(decoded["blob"], bytes)
        assert type(decoded["due"]) is date
        assert type(decoded["stamp"]) is datetime

    def test_msgpack_rejects_unsupported_nested(self):
        with pytest.raises(UnsupportedValueError):
            codec.encode({"s": {1, 2}}, "msgpack")

    @pytest.mark.parametrize(
        "value, fmt",
        [
            (b"\x00raw", "json"),
            (date(2026, 10, 18), "json"),
            ([1, {"when": datetime(2026, 10, 18)}], "json"),
            (object(), "yaml"),
        ],
    )
    def test_forced_format_cannot_represent_value(self, value, fmt):
        """Test that a codec failure surfaces as UnsupportedValueError."""
        with pytest.raises(UnsupportedValueError, match=f"for format '{fmt}'") as exc_info:
            codec.encode(value, fmt)
        assert exc_info.value.fmt == fmt

    def test_unknown_format(self):
        """Test that an unknown tag fails for both directions."""
        with pytest.raises(UnknownFormatError, match="nuon"):
            codec.encode(1, "nuon")
        with pytest.raises(ValueError):
            codec.decode(b"1", "nuon")


class TestValuesEqual:
    """Tests for the equality used by unique push."""

    def test_scalars_are_exact(self):
        assert values_equal("a", "a")
        assert values_equal(1, 1)
        assert not values_equal(1, True)
        assert not values_equal(1, 1.0)
        assert not values_equal("1", 1)

    def test_composites_are_structural(self):
        assert values_equal([1, {"a": [2, 3]}], [1, {"a": [2, 3]}])
        assert not values_equal([1, 2], [2, 1])
        assert not values_equal({"a": 1}, {"a": True})
        assert not values_equal({"a": 1}, {"b": 1})

    def test_binary(self):
        assert values_equal(b"ab", bytearray(b"ab"))
        assert not values_equal(b"ab", "ab")
