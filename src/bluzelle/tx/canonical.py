"""
Canonical JSON serialization for transaction signing.

The chain verifies signatures over amino-style JSON: keys sorted
recursively, no whitespace, UTF-8, and HTML-sensitive characters escaped
the way Go's encoding/json writes them.
"""

import hashlib
import json
from typing import Any

_GO_ESCAPES = {
    "<": "\\u003c",
    ">": "\\u003e",
    "&": "\\u0026",
    "\u2028": "\\u2028",
    "\u2029": "\\u2029",
}


def canonical_json(obj: Any) -> str:
    """
    Serialize object to canonical JSON string.

    Rules:
    - Keys sorted alphabetically (recursive)
    - No whitespace
    - Non-ASCII characters kept as UTF-8
    - '<', '>', '&' and the line and paragraph separators
      (U+2028, U+2029) written as unicode escapes
    """
    text = json.dumps(
        obj,
        sort_keys=True,
        separators=(",", ":"),
        ensure_ascii=False,
        allow_nan=False,
    )
    for char, escape in _GO_ESCAPES.items():
        text = text.replace(char, escape)
    return text


def canonical_json_bytes(obj: Any) -> bytes:
    """Serialize to canonical JSON as UTF-8 bytes."""
    return canonical_json(obj).encode("utf-8")


def sign_bytes_digest(obj: Any) -> bytes:
    """SHA-256 digest of the canonical encoding."""
    return hashlib.sha256(canonical_json_bytes(obj)).digest()
