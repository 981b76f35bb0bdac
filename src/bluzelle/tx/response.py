"""
Response demultiplexer.

A committed transaction returns one hex-encoded ``data`` string holding the
JSON result of every result-producing message, concatenated without a
separator. This module splits it back into per-operation fragments, in
operation order, and decodes each according to its operation kind.
"""

import json
import re
from typing import Any, Dict, List, Sequence, Tuple

import structlog

from bluzelle.core.operation import OperationKind, blocks_to_seconds
from bluzelle.core.result import ResultSet, ResultValue, TransactionResult
from bluzelle.node.interface import ResponseDecodeError

logger = structlog.get_logger(__name__)

# Where one JSON object ends and the next begins. Values containing this
# sequence would be split incorrectly; the chain's framing gives us no other
# boundary to use.
FRAGMENT_BOUNDARY = "}{"

_INTEGER = re.compile(r"[+-]?[0-9]+")


def decode_hex_data(data: str) -> str:
    """Decode the hex ``data`` field of a transaction reply to text."""
    try:
        return bytes.fromhex(data).decode("utf-8")
    except ValueError as e:
        raise ResponseDecodeError(f"Result data is not hex-encoded UTF-8: {e}") from e


def split_fragments(data: str, count: int) -> List[str]:
    """
    Split concatenated JSON objects into exactly ``count`` fragments.

    Raises:
        ResponseDecodeError: If the data holds fewer or more fragments
    """
    fragments = []
    start = 0
    for index in range(count):
        end = data.find(FRAGMENT_BOUNDARY, start)
        end = len(data) if end == -1 else end + 1

        fragment = data[start:end]
        if not fragment:
            raise ResponseDecodeError(
                f"Expected {count} result fragments, found {index}"
            )
        fragments.append(fragment)
        start = end

    if start != len(data):
        raise ResponseDecodeError(
            f"Unexpected data after {count} result fragments: {data[start:start + 50]!r}"
        )
    return fragments


def _array(document: Dict[str, Any], field: str) -> List[Any]:
    items = document.get(field)
    if items is None:
        return []
    if not isinstance(items, list):
        raise ValueError(f"{field!r} is not an array")
    return items


def _string(value: Any, field: str) -> str:
    if not isinstance(value, str):
        raise TypeError(f"{field!r} is not a string")
    return value


def _integer(value: Any, field: str) -> int:
    # The chain writes counts and leases as decimal strings; plain JSON
    # integers are accepted too, floats and booleans are not
    if isinstance(value, bool) or not isinstance(value, (str, int)):
        raise TypeError(f"{field!r} is not an integer")
    if isinstance(value, str) and not _INTEGER.fullmatch(value):
        raise ValueError(f"{field!r} is not an integer: {value!r}")
    return int(value)


def _entry(item: Any, field: str) -> Dict[str, Any]:
    if not isinstance(item, dict):
        raise TypeError(f"{field!r} entry is not an object")
    return item


def decode_fragment(kind: OperationKind, document: Dict[str, Any]) -> Any:
    """
    Project one decoded fragment into its result type.

    Raises:
        KeyError, TypeError, ValueError: If the fragment lacks the kind's fields
    """
    if kind == OperationKind.READ:
        return _string(document["value"], "value")

    if kind == OperationKind.HAS:
        has = document["has"]
        if not isinstance(has, bool):
            raise TypeError("'has' is not a boolean")
        return has

    if kind == OperationKind.COUNT:
        return _integer(document["count"], "count")

    if kind == OperationKind.KEYS:
        return [_string(key, "keys") for key in _array(document, "keys")]

    if kind == OperationKind.KEY_VALUES:
        pairs = {}
        for item in _array(document, "keyvalues"):
            entry = _entry(item, "keyvalues")
            pairs[_string(entry["key"], "key")] = _string(entry["value"], "value")
        return pairs

    if kind == OperationKind.GET_LEASE:
        return blocks_to_seconds(_integer(document["lease"], "lease"))

    if kind == OperationKind.GET_N_SHORTEST_LEASES:
        leases = {}
        for item in _array(document, "keyleases"):
            entry = _entry(item, "keyleases")
            leases[_string(entry["key"], "key")] = blocks_to_seconds(
                _integer(entry["lease"], "lease")
            )
        return leases

    raise ValueError(f"Operation kind {kind.value} has no result")


def demultiplex(data: str, slots: Sequence[Tuple[OperationKind, str]]) -> ResultSet:
    """
    Decode concatenated result text into tagged values.

    Args:
        data: Decoded (not hex) result text
        slots: Ordered (kind, tag) pairs of the result-producing operations

    Returns:
        Result values by tag; a repeated tag keeps the last value

    Raises:
        ResponseDecodeError: If any fragment is missing, extra or malformed
    """
    fragments = split_fragments(data, len(slots))
    values: Dict[str, ResultValue] = {}

    for index, ((kind, tag), fragment) in enumerate(zip(slots, fragments)):
        try:
            document = json.loads(fragment)
            if not isinstance(document, dict):
                raise TypeError("fragment is not a JSON object")
            value = decode_fragment(kind, document)
        except (KeyError, TypeError, ValueError) as e:
            raise ResponseDecodeError(
                f"Cannot decode result {index} ({kind.value}) from {fragment[:80]!r}: {e}"
            ) from e

        values[tag] = ResultValue(kind, value)

    return ResultSet(values)


def decode_transaction_response(
    response: Dict[str, Any],
    slots: Sequence[Tuple[OperationKind, str]],
) -> TransactionResult:
    """
    Decode a successful broadcast reply.

    Args:
        response: Reply with txhash, height, gas_used and optional hex data
        slots: Ordered (kind, tag) pairs of the result-producing operations

    Raises:
        ResponseDecodeError: If the reply or its data cannot be decoded
    """
    try:
        tx_hash = str(response["txhash"])
        height = int(response["height"])
        gas_used = int(response["gas_used"])
    except (KeyError, TypeError, ValueError) as e:
        raise ResponseDecodeError(f"Malformed transaction reply: {e}") from e

    data = response.get("data") or ""
    results = demultiplex(decode_hex_data(data), slots)

    logger.debug("tx_results_decoded", tx_hash=tx_hash, results=len(results))

    return TransactionResult(
        tx_hash=tx_hash,
        height=height,
        gas_used=gas_used,
        results=results,
    )
