"""
Transaction result model.

Holds the typed, tagged values decoded from a committed transaction.
"""

from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any, Dict, Iterator, List, Mapping, Optional

from bluzelle.core.operation import OperationKind


class ResultTypeError(TypeError):
    """Raised when a tag is read through a projection that does not match its kind."""
    pass


@dataclass(frozen=True)
class ResultValue:
    """A decoded value together with the kind of operation that produced it."""
    kind: OperationKind
    value: Any


class ResultSet(Mapping[str, ResultValue]):
    """
    Read-only mapping from tag to decoded result.

    Values are stored in operation order, so a repeated tag holds the
    result of the last operation that used it.
    """

    def __init__(self, values: Optional[Dict[str, ResultValue]] = None):
        self._values = MappingProxyType(dict(values or {}))

    def __getitem__(self, tag: str) -> ResultValue:
        return self._values[tag]

    def __iter__(self) -> Iterator[str]:
        return iter(self._values)

    def __len__(self) -> int:
        return len(self._values)

    def _project(self, tag: str, *kinds: OperationKind) -> Any:
        result = self._values[tag]
        if result.kind not in kinds:
            expected = ", ".join(k.value for k in kinds)
            raise ResultTypeError(
                f"Tag {tag!r} holds a {result.kind.value} result, not {expected}"
            )
        return result.value

    def get_string(self, tag: str) -> str:
        """Get the value of a read operation."""
        return self._project(tag, OperationKind.READ)

    def get_bool(self, tag: str) -> bool:
        """Get the value of a has operation."""
        return self._project(tag, OperationKind.HAS)

    def get_int(self, tag: str) -> int:
        """Get a count, or a lease in seconds."""
        return self._project(tag, OperationKind.COUNT, OperationKind.GET_LEASE)

    def get_keys(self, tag: str) -> List[str]:
        """Get the keys listed by a keys operation."""
        return list(self._project(tag, OperationKind.KEYS))

    def get_key_values(self, tag: str) -> Dict[str, str]:
        """Get the mapping listed by a key-values operation."""
        return dict(self._project(tag, OperationKind.KEY_VALUES))

    def get_leases(self, tag: str) -> Dict[str, int]:
        """Get lease seconds per key from a shortest-leases operation."""
        return dict(self._project(tag, OperationKind.GET_N_SHORTEST_LEASES))

    def __repr__(self) -> str:
        return f"ResultSet({dict(self._values)!r})"


@dataclass(frozen=True)
class TransactionResult:
    """
    Outcome of a committed transaction.

    Attributes:
        tx_hash: Hash of the committed transaction
        height: Block height it was included at
        gas_used: Gas consumed by the transaction
        results: Decoded values by tag
    """

    tx_hash: str
    height: int
    gas_used: int
    results: ResultSet = field(default_factory=ResultSet)

    def get_string(self, tag: str) -> str:
        return self.results.get_string(tag)

    def get_bool(self, tag: str) -> bool:
        return self.results.get_bool(tag)

    def get_int(self, tag: str) -> int:
        return self.results.get_int(tag)

    def get_keys(self, tag: str) -> List[str]:
        return self.results.get_keys(tag)

    def get_key_values(self, tag: str) -> Dict[str, str]:
        return self.results.get_key_values(tag)

    def get_leases(self, tag: str) -> Dict[str, int]:
        return self.results.get_leases(tag)

    def to_dict(self) -> dict:
        """Convert to dictionary for serialization."""
        return {
            "tx_hash": self.tx_hash,
            "height": self.height,
            "gas_used": self.gas_used,
            "results": {tag: r.value for tag, r in self.results.items()},
        }
