"""
Operation model.

Describes one requested store or transfer action inside a transaction,
together with the gas and lease parameters callers attach to it.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Optional

# Default gas limit for an operation that does not set one
DEFAULT_MAX_GAS = 200_000

# Seconds per block on the chain
BLOCK_TIME_SECONDS = 5

BLOCKS_PER_MINUTE = 60 // BLOCK_TIME_SECONDS
BLOCKS_PER_HOUR = 60 * BLOCKS_PER_MINUTE
BLOCKS_PER_DAY = 24 * BLOCKS_PER_HOUR


class TransactionValidationError(ValueError):
    """Raised when an operation fails client-side validation."""
    pass


class OperationKind(str, Enum):
    """How the result fragment of an operation is decoded."""
    READ = "read"                                      # string "value"
    HAS = "has"                                        # boolean "has"
    COUNT = "count"                                    # integer "count"
    KEYS = "keys"                                      # list "keys"
    KEY_VALUES = "keyvalues"                           # mapping over "keyvalues"
    GET_LEASE = "getlease"                             # seconds from "lease"
    GET_N_SHORTEST_LEASES = "getnshortestleases"       # mapping over "keyleases"
    WRITE = "write"                                    # no result fragment

    @property
    def produces_result(self) -> bool:
        """Check if the chain returns a fragment for this kind."""
        return self is not OperationKind.WRITE


@dataclass(frozen=True)
class GasInfo:
    """
    Gas parameters for a single operation.

    Attributes:
        max_gas: Gas limit (0 means use DEFAULT_MAX_GAS)
        max_fee: Fixed fee; when the transaction total is non-zero it wins
            over the gas price
        gas_price: Price per unit of gas
    """

    max_gas: int = 0
    max_fee: int = 0
    gas_price: int = 0

    def __post_init__(self):
        """Validate after initialization."""
        for name in ("max_gas", "max_fee", "gas_price"):
            value = getattr(self, name)
            if isinstance(value, bool) or not isinstance(value, int) or value < 0:
                raise TransactionValidationError(f"{name} must be a non-negative integer, got {value!r}")

    @property
    def effective_max_gas(self) -> int:
        """Get the gas limit actually reserved for the operation."""
        return self.max_gas or DEFAULT_MAX_GAS


@dataclass(frozen=True)
class LeaseInfo:
    """
    Lease duration, converted to a block count for the chain.

    Durations may be negative: update operations treat the lease as a delta.
    """

    days: int = 0
    hours: int = 0
    minutes: int = 0
    seconds: int = 0

    @property
    def total_seconds(self) -> int:
        return (
            self.days * 24 * 60 * 60 +
            self.hours * 60 * 60 +
            self.minutes * 60 +
            self.seconds
        )

    @property
    def blocks(self) -> int:
        """Get the lease as a number of blocks (truncated toward zero)."""
        blocks = abs(self.total_seconds) // BLOCK_TIME_SECONDS
        return blocks if self.total_seconds >= 0 else -blocks

    @classmethod
    def from_blocks(cls, blocks: int) -> "LeaseInfo":
        """Create a lease covering the given number of blocks."""
        return cls(seconds=blocks * BLOCK_TIME_SECONDS)


def blocks_to_seconds(blocks: int) -> int:
    """Convert a lease reported by the chain in blocks to seconds."""
    return blocks * BLOCK_TIME_SECONDS


@dataclass(frozen=True)
class Operation:
    """
    One operation of a pending transaction.

    Attributes:
        kind: Decides how the response fragment is parsed
        tag: Name the result is stored under ("" discards it)
        payload: The message sent to the chain ({"type": ..., "value": {...}})
    """

    kind: OperationKind
    payload: Dict[str, Any]
    tag: Optional[str] = None
    gas_info: GasInfo = field(default_factory=GasInfo)

    @property
    def message_type(self) -> str:
        return self.payload["type"]

    @property
    def produces_result(self) -> bool:
        return self.kind.produces_result
