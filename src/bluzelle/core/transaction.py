"""
Pending transaction model.

Accumulates store and transfer operations into one transaction, keeps the
fee/gas totals and produces the payloads that get signed and broadcast.
"""

import uuid
from datetime import datetime
from enum import Enum
from typing import TYPE_CHECKING, Any, Dict, List, Mapping, Optional, Tuple

from bluzelle.core.operation import (
    GasInfo,
    LeaseInfo,
    Operation,
    OperationKind,
    TransactionValidationError,
)
from bluzelle.core.result import TransactionResult

if TYPE_CHECKING:
    from bluzelle.tx.submitter import TransactionSubmitter


class TransactionStatus(str, Enum):
    """Status of a pending transaction."""
    BUILDING = "building"         # Still accepting operations
    SIGNING = "signing"           # Fetching the sequence and signing
    SUBMITTING = "submitting"     # Envelope posted, waiting for the block
    COMMITTED = "committed"       # Included in a block, results decoded
    FAILED = "failed"             # Submission failed for good


class TransactionStateError(RuntimeError):
    """Raised when a transaction is modified or sent after it was consumed."""
    pass


def _require_key(key: Optional[str], name: str = "Key") -> None:
    if key is None:
        raise TransactionValidationError(f"{name} cannot be None")
    if not isinstance(key, str):
        raise TransactionValidationError(f"{name} must be a string")
    if not key:
        raise TransactionValidationError(f"{name} cannot be empty")


def _require_path_safe_key(key: Optional[str], name: str = "Key") -> None:
    _require_key(key, name)
    if "/" in key:
        raise TransactionValidationError(f"{name} cannot contain a slash")


def _require_value(value: Optional[str]) -> None:
    if value is None:
        raise TransactionValidationError("Value cannot be None")
    if not isinstance(value, str):
        raise TransactionValidationError("Value must be a string")


def _require_gas_info(gas_info: Optional[GasInfo]) -> None:
    if not isinstance(gas_info, GasInfo):
        raise TransactionValidationError("gas_info is required")


def _non_negative_lease(lease_info: Optional[LeaseInfo]) -> int:
    if lease_info is None:
        return 0
    blocks = lease_info.blocks
    if blocks < 0:
        raise TransactionValidationError("Invalid lease time")
    return blocks


class PendingTransaction:
    """
    An ordered batch of operations submitted as one signed transaction.

    Every add method validates its arguments before touching any state,
    then appends exactly one operation and folds its GasInfo into the
    running totals. Methods return the transaction itself so a batch reads
    as a chain of calls ended by ``await send()``.

    A transaction is single-use: once ``send()`` has finished, successfully
    or not, it can neither be extended nor sent again.

    Usage:
        ```python
        result = await (
            client.transaction()
            .create("key", "value", gas_info)
            .read("key", gas_info, tag="r")
            .send()
        )
        result.get_string("r")
        ```
    """

    def __init__(
        self,
        owner: str,
        uuid_: str,
        submitter: Optional["TransactionSubmitter"] = None,
        denom: str = "ubnt",
    ):
        """
        Initialize an empty transaction.

        Args:
            owner: Address of the account that signs the transaction
            uuid_: Database uuid the store operations address
            submitter: Submitter used by send()
            denom: Denomination for the fee and transfers
        """
        self.owner = owner
        self.uuid = uuid_
        self.denom = denom
        self._submitter = submitter

        self.transaction_id = str(uuid.uuid4())
        self.memo = uuid.uuid4().hex
        self.operations: List[Operation] = []
        self.status = TransactionStatus.BUILDING

        self.max_gas_total = 0
        self.max_fee_total = 0
        self.max_gas_price = 0

        self.created_at = datetime.utcnow()
        self.updated_at = self.created_at
        self.attempts = 0
        self.error_message: Optional[str] = None
        self.result: Optional[TransactionResult] = None

    # Operation builders

    def transfer_tokens_to(self, address: str, amount: int, gas_info: GasInfo) -> "PendingTransaction":
        """
        Transfer tokens from the owner to another account.

        Raises:
            TransactionValidationError: If the address is empty or amount is negative
        """
        _require_key(address, "Address")
        if not isinstance(amount, int) or amount < 0:
            raise TransactionValidationError("Amount must be a non-negative integer")
        _require_gas_info(gas_info)

        payload = {
            "type": "cosmos-sdk/MsgSend",
            "value": {
                "from_address": self.owner,
                "to_address": address,
                "amount": [{"denom": self.denom, "amount": str(amount)}],
            },
        }
        return self._append(Operation(OperationKind.WRITE, payload, None, gas_info))

    def create(
        self,
        key: str,
        value: str,
        gas_info: GasInfo,
        lease_info: Optional[LeaseInfo] = None,
    ) -> "PendingTransaction":
        """
        Create a field in the database.

        Raises:
            TransactionValidationError: If the key is empty or contains '/',
                the value is missing, or the lease is negative
        """
        _require_path_safe_key(key)
        _require_value(value)
        _require_gas_info(gas_info)
        blocks = _non_negative_lease(lease_info)

        return self._add_store_message(
            "create",
            {"Key": key, "Value": value, "Lease": str(blocks)},
            gas_info,
        )

    def read(self, key: str, gas_info: GasInfo, tag: str = "") -> "PendingTransaction":
        """Retrieve the value of a key."""
        _require_key(key)
        _require_gas_info(gas_info)
        return self._add_store_message("read", {"Key": key}, gas_info, OperationKind.READ, tag)

    def has(self, key: str, gas_info: GasInfo, tag: str = "") -> "PendingTransaction":
        """Query whether a key is in the database."""
        _require_key(key)
        _require_gas_info(gas_info)
        return self._add_store_message("has", {"Key": key}, gas_info, OperationKind.HAS, tag)

    def count(self, gas_info: GasInfo, tag: str = "") -> "PendingTransaction":
        """Count the keys in the database."""
        _require_gas_info(gas_info)
        return self._add_store_message("count", {}, gas_info, OperationKind.COUNT, tag)

    def keys(self, gas_info: GasInfo, tag: str = "") -> "PendingTransaction":
        """List all keys in the database."""
        _require_gas_info(gas_info)
        return self._add_store_message("keys", {}, gas_info, OperationKind.KEYS, tag)

    def key_values(self, gas_info: GasInfo, tag: str = "") -> "PendingTransaction":
        """Enumerate all keys and values in the database."""
        _require_gas_info(gas_info)
        return self._add_store_message("keyvalues", {}, gas_info, OperationKind.KEY_VALUES, tag)

    def get_lease(self, key: str, gas_info: GasInfo, tag: str = "") -> "PendingTransaction":
        """Retrieve the time remaining on a key's lease, in seconds."""
        _require_key(key)
        _require_gas_info(gas_info)
        return self._add_store_message("getlease", {"Key": key}, gas_info, OperationKind.GET_LEASE, tag)

    def get_n_shortest_leases(self, n: int, gas_info: GasInfo, tag: str = "") -> "PendingTransaction":
        """
        Retrieve the n keys with the shortest leases.

        Raises:
            TransactionValidationError: If n is negative
        """
        if not isinstance(n, int) or n < 0:
            raise TransactionValidationError("Invalid value specified")
        _require_gas_info(gas_info)
        return self._add_store_message(
            "getnshortestleases",
            {"N": str(n)},
            gas_info,
            OperationKind.GET_N_SHORTEST_LEASES,
            tag,
        )

    def update(
        self,
        key: str,
        value: str,
        gas_info: GasInfo,
        lease_info: Optional[LeaseInfo] = None,
    ) -> "PendingTransaction":
        """
        Update a field in the database.

        The lease, if given, alters the current lease and may be negative.
        """
        _require_key(key)
        _require_value(value)
        _require_gas_info(gas_info)
        blocks = lease_info.blocks if lease_info is not None else 0

        return self._add_store_message(
            "update",
            {"Key": key, "Value": value, "Lease": str(blocks)},
            gas_info,
        )

    def rename(self, key: str, new_key: str, gas_info: GasInfo) -> "PendingTransaction":
        """Change the name of an existing key."""
        _require_key(key)
        _require_path_safe_key(new_key, "New key")
        _require_gas_info(gas_info)
        return self._add_store_message("rename", {"Key": key, "NewKey": new_key}, gas_info)

    def multi_update(self, key_values: Mapping[str, str], gas_info: GasInfo) -> "PendingTransaction":
        """Update several fields in one message."""
        if key_values is None:
            raise TransactionValidationError("key_values cannot be None")
        entries = []
        for key, value in key_values.items():
            _require_key(key)
            _require_value(value)
            entries.append({"key": key, "value": value})
        _require_gas_info(gas_info)
        return self._add_store_message("multiupdate", {"KeyValues": entries}, gas_info)

    def renew_lease(
        self,
        key: str,
        gas_info: GasInfo,
        lease_info: Optional[LeaseInfo] = None,
    ) -> "PendingTransaction":
        """Set the minimum time remaining on a key's lease."""
        _require_key(key)
        _require_gas_info(gas_info)
        blocks = _non_negative_lease(lease_info)
        return self._add_store_message("renewlease", {"Key": key, "Lease": str(blocks)}, gas_info)

    def renew_lease_all(self, gas_info: GasInfo, lease_info: Optional[LeaseInfo] = None) -> "PendingTransaction":
        """Set the minimum time remaining on the lease of every key."""
        _require_gas_info(gas_info)
        blocks = _non_negative_lease(lease_info)
        return self._add_store_message("renewleaseall", {"Lease": str(blocks)}, gas_info)

    def delete(self, key: str, gas_info: GasInfo) -> "PendingTransaction":
        """Delete a field from the database."""
        _require_key(key)
        _require_gas_info(gas_info)
        return self._add_store_message("delete", {"Key": key}, gas_info)

    def delete_all(self, gas_info: GasInfo) -> "PendingTransaction":
        """Remove all keys in the database."""
        _require_gas_info(gas_info)
        return self._add_store_message("deleteall", {}, gas_info)

    def _add_store_message(
        self,
        action: str,
        fields: Dict[str, Any],
        gas_info: GasInfo,
        kind: OperationKind = OperationKind.WRITE,
        tag: Optional[str] = None,
    ) -> "PendingTransaction":
        if kind.produces_result and not isinstance(tag, str):
            raise TransactionValidationError("Tag must be a string")

        value = dict(fields)
        value["UUID"] = self.uuid
        value["Owner"] = self.owner
        payload = {"type": f"crud/{action}", "value": value}
        return self._append(Operation(kind, payload, tag, gas_info))

    def _append(self, operation: Operation) -> "PendingTransaction":
        self._require_building()

        self.operations.append(operation)
        self.max_gas_total += operation.gas_info.effective_max_gas
        self.max_fee_total += operation.gas_info.max_fee
        self.max_gas_price = max(self.max_gas_price, operation.gas_info.gas_price)
        self.updated_at = datetime.utcnow()
        return self

    def _require_building(self) -> None:
        if self.status != TransactionStatus.BUILDING:
            raise TransactionStateError(
                f"Transaction {self.transaction_id[:8]} is {self.status.value} and cannot be reused"
            )

    # Derived payloads

    @property
    def size(self) -> int:
        """Get the number of operations."""
        return len(self.operations)

    @property
    def is_empty(self) -> bool:
        return not self.operations

    @property
    def fee_amount(self) -> int:
        """Fee paid: the summed fixed fees, else total gas times the highest price."""
        if self.max_fee_total:
            return self.max_fee_total
        return self.max_gas_total * self.max_gas_price

    @property
    def fee(self) -> Dict[str, Any]:
        return {
            "amount": [{"amount": str(self.fee_amount), "denom": self.denom}],
            "gas": str(self.max_gas_total),
        }

    @property
    def messages(self) -> List[Dict[str, Any]]:
        return [op.payload for op in self.operations]

    @property
    def result_slots(self) -> List[Tuple[OperationKind, str]]:
        """Ordered (kind, tag) pairs of the operations that return a fragment."""
        return [
            (op.kind, op.tag if op.tag is not None else "")
            for op in self.operations
            if op.produces_result
        ]

    def sign_doc(self, account_number: int, sequence: int, chain_id: str) -> Dict[str, Any]:
        """Build the document the account signs for one submission attempt."""
        return {
            "account_number": str(account_number),
            "chain_id": chain_id,
            "fee": self.fee,
            "memo": self.memo,
            "msgs": self.messages,
            "sequence": str(sequence),
        }

    def envelope(self, signature: Dict[str, Any]) -> Dict[str, Any]:
        """Build the broadcast body around one signature block."""
        return {
            "tx": {
                "fee": self.fee,
                "memo": self.memo,
                "msg": self.messages,
                "signatures": [signature],
            },
            "mode": "block",
        }

    # Lifecycle

    def mark_signing(self) -> None:
        self.status = TransactionStatus.SIGNING
        self.attempts += 1
        self.updated_at = datetime.utcnow()

    def mark_submitting(self) -> None:
        self.status = TransactionStatus.SUBMITTING
        self.updated_at = datetime.utcnow()

    def mark_committed(self, result: TransactionResult) -> None:
        self.status = TransactionStatus.COMMITTED
        self.result = result
        self.updated_at = datetime.utcnow()

    def mark_failed(self, error: str) -> None:
        self.status = TransactionStatus.FAILED
        self.error_message = error
        self.updated_at = datetime.utcnow()

    @property
    def is_consumed(self) -> bool:
        return self.status != TransactionStatus.BUILDING

    async def send(self) -> TransactionResult:
        """
        Sign, broadcast and decode the transaction.

        Returns:
            The committed transaction's decoded results

        Raises:
            TransactionValidationError: If the transaction has no operations
            TransactionStateError: If the transaction was already sent
            NodeConnectionError: If the node cannot be reached
            ServerError: If the chain rejects the transaction
            ResponseDecodeError: If the chain's result data cannot be decoded
        """
        self._require_building()
        if self.is_empty:
            raise TransactionValidationError("Cannot send an empty transaction")
        if self._submitter is None:
            raise TransactionStateError("Transaction has no submitter")

        return await self._submitter.submit(self)

    def to_dict(self) -> dict:
        """Convert to dictionary for serialization."""
        return {
            "transaction_id": self.transaction_id,
            "status": self.status.value,
            "size": self.size,
            "memo": self.memo,
            "fee": self.fee,
            "attempts": self.attempts,
            "created_at": self.created_at.isoformat(),
            "updated_at": self.updated_at.isoformat(),
            "error_message": self.error_message,
            "operations": [
                {"kind": op.kind.value, "tag": op.tag, "type": op.message_type}
                for op in self.operations
            ],
        }

    def __repr__(self) -> str:
        return (
            f"PendingTransaction(id={self.transaction_id[:8]}..., "
            f"status={self.status.value}, size={self.size})"
        )
