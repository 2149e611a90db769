"""
Tests for the Value model and the tagged-object codec.
"""

from __future__ import annotations

import json
from datetime import date, datetime, timezone

import pytest

from faunadb_core import (
    NULL,
    ArrayV,
    BooleanV,
    BytesV,
    DateV,
    DoubleV,
    HighPrecisionTime,
    LongV,
    NullV,
    ObjectV,
    QueryV,
    RefV,
    SerializationError,
    SetRefV,
    StringV,
    TimeV,
    Value,
    ValueDecodeError,
    decode,
    encode,
    from_json,
    to_json,
)


class TestDecodePrimitives:
    """Tests for decoding bare JSON values."""

    def test_mixed_array(self):
        assert decode('[1, 1.5, null, true, "s"]') == ArrayV(
            (LongV(1), DoubleV(1.5), NULL, BooleanV(True), StringV("s"))
        )

    def test_integer_vs_fractional(self):
        assert decode("10") == LongV(10)
        assert decode("10.0") == DoubleV(10.0)
        assert decode("1e3") == DoubleV(1000.0)
        assert decode("10") != DoubleV(10.0)

    def test_null(self):
        assert decode("null") is NULL

    def test_bytes_input(self):
        assert decode(b'"hello"') == StringV("hello")

    def test_integer_out_of_range(self):
        with pytest.raises(ValueDecodeError):
            decode(str(2**63))

    def test_invalid_json(self):
        with pytest.raises(ValueDecodeError):
            decode("{not json")

    @pytest.mark.parametrize("text", ["1e400", "-1e400", "NaN", "Infinity"])
    def test_non_finite_numbers_rejected(self, text):
        with pytest.raises(ValueDecodeError):
            decode(text)

    def test_out_of_range_timestamp_rejected(self):
        with pytest.raises(ValueDecodeError) as exc_info:
            decode('{"@ts": "9999-12-31T23:59:59-05:00"}')
        assert exc_info.value.tag == "@ts"

    def test_unknown_shape(self):
        with pytest.raises(ValueDecodeError):
            from_json({1, 2})


class TestTaggedObjects:
    """Tests for first-key dispatch on JSON objects."""

    def test_ref(self):
        value = decode('{"@ref":"classes/users/42"}')
        assert value == RefV("classes/users/42")
        assert encode(value) == '{"@ref":"classes/users/42"}'

    def test_set(self):
        value = decode('{"@set": {"match": {"@ref": "indexes/all_users"}, "terms": "x"}}')
        assert value == SetRefV(
            {"match": RefV("indexes/all_users"), "terms": StringV("x")}
        )

    def test_ts(self):
        value = decode('{"@ts": "2015-01-15T10:20:30.123456789Z"}')
        assert isinstance(value, TimeV)
        assert value.value.nanos == 123456789
        assert value.to_datetime() == datetime(
            2015, 1, 15, 10, 20, 30, 123456, tzinfo=timezone.utc
        )

    def test_date(self):
        assert decode('{"@date": "1970-01-03"}') == DateV(date(1970, 1, 3))

    def test_bytes(self):
        assert decode('{"@bytes": "AQID-_8="}') == BytesV(bytes([1, 2, 3, 251, 255]))

    def test_bytes_without_padding(self):
        assert decode('{"@bytes": "AQI"}') == BytesV(b"\x01\x02")

    def test_obj_wrapper_suppresses_tags(self):
        assert decode('{"@obj": {"@ref": "x"}}') == ObjectV({"@ref": StringV("x")})

    def test_plain_object(self):
        value = decode('{"name": "Ada", "age": 36, "tags": [], "nothing": null}')
        assert value == ObjectV(
            {
                "name": StringV("Ada"),
                "age": LongV(36),
                "tags": ArrayV(()),
                "nothing": NULL,
            }
        )

    def test_tag_only_counts_as_first_key(self):
        value = decode('{"name": "x", "@ref": "y"}')
        assert isinstance(value, ObjectV)
        assert value["@ref"] == StringV("y")

    def test_object_preserves_key_order(self):
        value = decode('{"z": 1, "a": 2, "m": 3}')
        assert list(value) == ["z", "a", "m"]

    def test_empty_object(self):
        assert decode("{}") == ObjectV({})

    def test_query_is_not_recognised_generically(self):
        value = decode('{"@query": {"lambda": "x", "expr": {"var": "x"}}}')
        assert isinstance(value, ObjectV)

    def test_query_explicit_constructor(self):
        tree = {"@query": {"lambda": "x", "expr": {"var": "x"}}}
        value = QueryV.from_json(tree)
        assert value == QueryV({"lambda": "x", "expr": {"var": "x"}})
        assert to_json(value) == tree

    def test_query_explicit_constructor_rejects_untagged(self):
        with pytest.raises(ValueDecodeError):
            QueryV.from_json({"lambda": "x"})

    @pytest.mark.parametrize(
        ("text", "tag"),
        [
            ('{"@ref": 42}', "@ref"),
            ('{"@set": "x"}', "@set"),
            ('{"@ts": "yesterday"}', "@ts"),
            ('{"@date": "2020-13-45"}', "@date"),
            ('{"@date": "20200101"}', "@date"),
            ('{"@bytes": "***"}', "@bytes"),
            ('{"@obj": [1]}', "@obj"),
        ],
    )
    def test_invalid_payloads(self, text, tag):
        with pytest.raises(ValueDecodeError) as exc_info:
            decode(text)
        assert exc_info.value.tag == tag


class TestEncode:
    """Tests for the wire form of each variant."""

    def test_object_is_wrapped(self):
        value = ObjectV({"@ref": StringV("x"), "n": LongV(1)})
        assert to_json(value) == {"object": {"@ref": "x", "n": 1}}

    def test_object_round_trip_uses_object_key(self):
        # {"object": ...} decodes as a plain object with an "object" key
        value = ObjectV({"a": LongV(1)})
        assert decode(encode(value)) == ObjectV({"object": ObjectV({"a": LongV(1)})})

    def test_special_types(self):
        assert to_json(RefV("classes/spells")) == {"@ref": "classes/spells"}
        assert to_json(DateV(date(2020, 2, 29))) == {"@date": "2020-02-29"}
        assert to_json(BytesV(b"\xfb\xff")) == {"@bytes": "-_8="}
        assert to_json(TimeV(HighPrecisionTime(0, 5))) == {"@ts": "1970-01-01T00:00:00.000000005Z"}
        assert to_json(SetRefV({"match": RefV("indexes/x")})) == {
            "@set": {"match": {"@ref": "indexes/x"}}
        }

    def test_non_finite_double_not_encoded(self):
        with pytest.raises(SerializationError):
            encode(DoubleV(float("inf")))
        with pytest.raises(SerializationError):
            encode(ArrayV((DoubleV(float("nan")),)))

    def test_latest_timestamp_round_trips(self):
        value = decode('{"@ts": "9999-12-31T23:59:59.999999999Z"}')
        assert decode(encode(value)) == value

    def test_encode_is_compact_json(self):
        assert json.loads(encode(ArrayV((LongV(1), NULL)))) == [1, None]

    @pytest.mark.parametrize(
        "value",
        [
            StringV("héllo"),
            LongV(-(2**63)),
            DoubleV(2.5),
            BooleanV(False),
            NULL,
            ArrayV((LongV(1), ArrayV((StringV("nested"),)))),
            RefV("classes/users/42"),
            SetRefV({"match": RefV("indexes/all"), "terms": ArrayV((LongV(1),))}),
            TimeV(HighPrecisionTime.parse("2019-06-01T12:00:00.000001Z")),
            DateV(date(1999, 12, 31)),
            BytesV(bytes(range(16))),
        ],
    )
    def test_round_trip(self, value):
        assert decode(encode(value)) == value


class TestEquality:
    """Tests for structural equality and hashing."""

    def test_null_is_stable(self):
        assert NullV() == NULL
        assert hash(NullV()) == hash(NULL)
        assert hash(NULL) != hash(LongV(0))
        assert hash(NULL) != hash(StringV(""))

    def test_variants_do_not_compare_across_types(self):
        assert LongV(1) != DoubleV(1.0)
        assert LongV(1) != BooleanV(True)
        assert StringV("x") != RefV("x")

    def test_bytes_compare_bytewise(self):
        assert BytesV(bytearray(b"ab")) == BytesV(b"ab")
        assert BytesV(b"ab") != BytesV(b"ba")

    def test_object_equality_ignores_order(self):
        a = ObjectV({"x": LongV(1), "y": LongV(2)})
        b = ObjectV({"y": LongV(2), "x": LongV(1)})
        assert a == b
        assert hash(a) == hash(b)

    def test_values_usable_in_sets(self):
        values = {RefV("a"), RefV("a"), ObjectV({"k": NULL}), ObjectV({"k": NULL})}
        assert len(values) == 2

    def test_values_are_immutable(self):
        value = ObjectV({"k": LongV(1)})
        with pytest.raises(TypeError):
            value.values["k"] = LongV(2)  # type: ignore[index]
        with pytest.raises(AttributeError):
            value.values = {}  # type: ignore[misc]

    def test_object_copies_its_input(self):
        source = {"k": LongV(1)}
        value = ObjectV(source)
        source["k"] = LongV(2)
        assert value["k"] == LongV(1)

    def test_long_rejects_out_of_range(self):
        with pytest.raises(ValueError):
            LongV(2**63)
        with pytest.raises(TypeError):
            LongV(True)  # type: ignore[arg-type]

    def test_bytes_repr(self):
        assert repr(BytesV(b"\x01\xff")) == "BytesV(0x01, 0xff)"


class TestFromPython:
    """Tests for wrapping plain Python data."""

    def test_nested(self):
        value = Value.from_python({"name": "Ada", "langs": ["en", None], "score": 1.5})
        assert value == ObjectV(
            {
                "name": StringV("Ada"),
                "langs": ArrayV((StringV("en"), NULL)),
                "score": DoubleV(1.5),
            }
        )

    def test_special_types(self):
        assert Value.from_python(True) == BooleanV(True)
        assert Value.from_python(b"\x00") == BytesV(b"\x00")
        assert Value.from_python(date(2020, 1, 1)) == DateV(date(2020, 1, 1))
        moment = datetime(2020, 1, 1, tzinfo=timezone.utc)
        assert Value.from_python(moment) == TimeV(HighPrecisionTime.from_datetime(moment))

    def test_values_pass_through(self):
        ref = RefV("x")
        assert Value.from_python(ref) is ref

    def test_unsupported(self):
        with pytest.raises(TypeError):
            Value.from_python(object())
