"""
Test suite for response demultiplexing.

Tests splitting the concatenated result data of a committed transaction
into per-operation values and the typed lookups on the result set.
"""

import pytest

from bluzelle.core.operation import OperationKind
from bluzelle.core.result import ResultSet, ResultTypeError
from bluzelle.node.interface import ResponseDecodeError
from bluzelle.tx.response import (
    decode_hex_data,
    decode_transaction_response,
    demultiplex,
    split_fragments,
)

from tests.conftest import committed_response, encode_fragments


# ============================================================================
# Test Fragment Splitting
# ============================================================================

class TestSplitFragments:
    """Tests for splitting concatenated JSON objects."""

    def test_three_fragments(self):
        data = '{"value":"a"}{"has":true}{"count":"3"}'

        assert split_fragments(data, 3) == [
            '{"value":"a"}',
            '{"has":true}',
            '{"count":"3"}',
        ]

    def test_single_fragment(self):
        assert split_fragments('{"count":"0"}', 1) == ['{"count":"0"}']

    def test_no_fragments(self):
        assert split_fragments("", 0) == []

    def test_shortfall(self):
        with pytest.raises(ResponseDecodeError, match="Expected 2"):
            split_fragments('{"value":"a"}', 2)

    def test_trailing_data(self):
        with pytest.raises(ResponseDecodeError, match="Unexpected data"):
            split_fragments('{"value":"a"}{"has":true}', 1)

    def test_data_without_slots(self):
        with pytest.raises(ResponseDecodeError):
            split_fragments('{"value":"a"}', 0)


class TestHexData:
    """Tests for decoding the hex data field."""

    def test_decode(self):
        assert decode_hex_data('{"has":true}'.encode().hex()) == '{"has":true}'

    def test_uppercase_hex(self):
        assert decode_hex_data('{"has":true}'.encode().hex().upper()) == '{"has":true}'

    def test_invalid_hex(self):
        with pytest.raises(ResponseDecodeError):
            decode_hex_data("zz")


# ============================================================================
# Test Demultiplexing
# ============================================================================

class TestDemultiplex:
    """Tests for mapping fragments onto tagged results."""

    def test_mixed_kinds(self):
        data = '{"value":"a"}{"has":true}{"count":"3"}'
        slots = [
            (OperationKind.READ, "r"),
            (OperationKind.HAS, "h"),
            (OperationKind.COUNT, "c"),
        ]

        results = demultiplex(data, slots)

        assert results.get_string("r") == "a"
        assert results.get_bool("h") is True
        assert results.get_int("c") == 3
        assert len(results) == 3

    def test_keys(self):
        results = demultiplex('{"keys":["a","b"]}', [(OperationKind.KEYS, "k")])

        assert results.get_keys("k") == ["a", "b"]

    @pytest.mark.parametrize("document", ['{"keys":null}', '{}'])
    def test_empty_keys(self, document):
        results = demultiplex(document, [(OperationKind.KEYS, "k")])

        assert results.get_keys("k") == []

    def test_key_values(self):
        data = '{"keyvalues":[{"key":"a","value":"1"},{"key":"b","value":"2"}]}'
        results = demultiplex(data, [(OperationKind.KEY_VALUES, "kv")])

        assert results.get_key_values("kv") == {"a": "1", "b": "2"}

    def test_empty_key_values(self):
        results = demultiplex('{"keyvalues":null}', [(OperationKind.KEY_VALUES, "kv")])

        assert results.get_key_values("kv") == {}

    def test_lease_in_seconds(self):
        results = demultiplex('{"lease":"12"}', [(OperationKind.GET_LEASE, "l")])

        assert results.get_int("l") == 60

    def test_shortest_leases_in_seconds(self):
        data = '{"keyleases":[{"key":"a","lease":"3"},{"key":"b","lease":"100"}]}'
        results = demultiplex(data, [(OperationKind.GET_N_SHORTEST_LEASES, "s")])

        assert results.get_leases("s") == {"a": 15, "b": 500}

    def test_empty_shortest_leases(self):
        results = demultiplex('{}', [(OperationKind.GET_N_SHORTEST_LEASES, "s")])

        assert results.get_leases("s") == {}

    def test_numeric_count(self):
        results = demultiplex('{"count":4}', [(OperationKind.COUNT, "c")])

        assert results.get_int("c") == 4

    def test_unicode_value(self):
        results = demultiplex('{"value":"héllo"}', [(OperationKind.READ, "r")])

        assert results.get_string("r") == "héllo"

    def test_repeated_tag_keeps_last(self):
        data = '{"value":"first"}{"value":"second"}'
        slots = [(OperationKind.READ, "r"), (OperationKind.READ, "r")]

        results = demultiplex(data, slots)

        assert results.get_string("r") == "second"
        assert len(results) == 1

    def test_empty_tag(self):
        results = demultiplex('{"count":"1"}', [(OperationKind.COUNT, "")])

        assert results.get_int("") == 1

    def test_no_slots(self):
        results = demultiplex("", [])

        assert len(results) == 0


class TestMalformedFragments:
    """Fragments that do not match their kind are decode errors."""

    @pytest.mark.parametrize("kind,document", [
        (OperationKind.READ, '{"value":1}'),
        (OperationKind.READ, '{"has":true}'),
        (OperationKind.HAS, '{"has":"yes"}'),
        (OperationKind.COUNT, '{"count":"many"}'),
        (OperationKind.KEYS, '{"keys":"a"}'),
        (OperationKind.KEY_VALUES, '{"keyvalues":[{"key":"a"}]}'),
        (OperationKind.GET_LEASE, '{"lease":null}'),
    ])
    def test_wrong_shape(self, kind, document):
        with pytest.raises(ResponseDecodeError):
            demultiplex(document, [(kind, "t")])

    @pytest.mark.parametrize("kind,document", [
        (OperationKind.KEYS, '{"keys":[1,null]}'),
        (OperationKind.KEYS, '{"keys":["a",null]}'),
        (OperationKind.KEY_VALUES, '{"keyvalues":[{"key":"a","value":7}]}'),
        (OperationKind.KEY_VALUES, '{"keyvalues":[{"key":null,"value":"1"}]}'),
        (OperationKind.KEY_VALUES, '{"keyvalues":["a"]}'),
        (OperationKind.COUNT, '{"count":3.9}'),
        (OperationKind.COUNT, '{"count":true}'),
        (OperationKind.COUNT, '{"count":"3.9"}'),
        (OperationKind.GET_LEASE, '{"lease":2.5}'),
        (OperationKind.GET_LEASE, '{"lease":false}'),
        (OperationKind.GET_N_SHORTEST_LEASES, '{"keyleases":[{"key":"a","lease":1.5}]}'),
        (OperationKind.GET_N_SHORTEST_LEASES, '{"keyleases":[{"key":7,"lease":"1"}]}'),
    ])
    def test_entries_are_not_coerced(self, kind, document):
        with pytest.raises(ResponseDecodeError):
            demultiplex(document, [(kind, "t")])

    def test_signed_integer_strings(self):
        results = demultiplex('{"count":"+3"}{"lease":"-2"}', [
            (OperationKind.COUNT, "c"),
            (OperationKind.GET_LEASE, "l"),
        ])

        assert results.get_int("c") == 3
        assert results.get_int("l") == -10

    def test_not_json(self):
        with pytest.raises(ResponseDecodeError):
            demultiplex('{value}', [(OperationKind.READ, "r")])

    def test_not_an_object(self):
        with pytest.raises(ResponseDecodeError):
            demultiplex('[1]', [(OperationKind.READ, "r")])

    def test_boundary_inside_value(self):
        # A value containing "}{" cannot be framed correctly
        with pytest.raises(ResponseDecodeError):
            demultiplex('{"value":"x}{y"}', [(OperationKind.READ, "r")])


# ============================================================================
# Test Result Set
# ============================================================================

class TestResultSet:
    """Tests for typed lookups."""

    @pytest.fixture
    def results(self) -> ResultSet:
        return demultiplex(
            '{"value":"a"}{"has":false}{"lease":"2"}',
            [
                (OperationKind.READ, "r"),
                (OperationKind.HAS, "h"),
                (OperationKind.GET_LEASE, "l"),
            ],
        )

    def test_type_mismatch(self, results):
        with pytest.raises(ResultTypeError):
            results.get_bool("r")

        with pytest.raises(ResultTypeError):
            results.get_string("h")

        with pytest.raises(ResultTypeError):
            results.get_keys("l")

    def test_lease_read_as_int(self, results):
        assert results.get_int("l") == 10

    def test_missing_tag(self, results):
        with pytest.raises(KeyError):
            results.get_string("missing")

    def test_mapping_interface(self, results):
        assert set(results) == {"r", "h", "l"}
        assert "r" in results
        assert results["h"].kind == OperationKind.HAS
        assert results["h"].value is False

    def test_read_only(self, results):
        with pytest.raises(TypeError):
            results["r"] = None


# ============================================================================
# Test Transaction Response
# ============================================================================

class TestDecodeTransactionResponse:
    """Tests for decoding a whole broadcast reply."""

    def test_committed_reply(self):
        response = committed_response({"value": "a"}, {"count": "2"}, index=3)
        slots = [(OperationKind.READ, "r"), (OperationKind.COUNT, "c")]

        result = decode_transaction_response(response, slots)

        assert result.height == 1042
        assert result.gas_used == 61234
        assert result.tx_hash.endswith("0003")
        assert result.get_string("r") == "a"
        assert result.get_int("c") == 2

    def test_reply_without_data(self):
        result = decode_transaction_response(committed_response(), [])

        assert len(result.results) == 0

    def test_missing_data_with_expected_results(self):
        with pytest.raises(ResponseDecodeError):
            decode_transaction_response(committed_response(), [(OperationKind.COUNT, "c")])

    def test_missing_height(self):
        response = committed_response()
        del response["height"]

        with pytest.raises(ResponseDecodeError):
            decode_transaction_response(response, [])

    def test_to_dict(self):
        response = committed_response({"keys": ["a"]})
        result = decode_transaction_response(response, [(OperationKind.KEYS, "k")])

        assert result.to_dict()["results"] == {"k": ["a"]}

    def test_encoded_fragments_helper(self):
        assert bytes.fromhex(encode_fragments({"has": True})).decode() == '{"has":true}'
