"""
Bluzelle client.

Ties the signer, node adapter and submitter together for one account and
database uuid.
"""

from typing import Any, Dict, List, Mapping, Optional
from urllib.parse import quote

import structlog

from bluzelle.config import BluzelleConfig, get_config
from bluzelle.core.operation import GasInfo, LeaseInfo, OperationKind, TransactionValidationError
from bluzelle.core.result import TransactionResult
from bluzelle.core.transaction import PendingTransaction
from bluzelle.node.interface import (
    AccountData,
    KeyNotFoundError,
    NodeInterface,
    ResponseDecodeError,
)
from bluzelle.node.rest import RestAdapter
from bluzelle.tx.response import decode_fragment
from bluzelle.tx.signer import TransactionSigner
from bluzelle.tx.submitter import TransactionSubmitter

logger = structlog.get_logger(__name__)


class Bluzelle:
    """
    Client for one account's view of a Bluzelle database.

    Store changes and consensus reads go through transactions; batch them
    with ``transaction()``. The single-operation methods below each send
    their own transaction. ``read``, ``has``, ``count``, ``keys``,
    ``key_values``, ``get_lease`` and ``get_n_shortest_leases`` query the
    REST server directly, without consensus.

    Usage:
        ```python
        async with Bluzelle.from_mnemonic(mnemonic, uuid="my-db") as bz:
            gas = GasInfo(max_fee=4_000_001)
            result = await (
                bz.transaction()
                .create("a", "1", gas)
                .read("a", gas, tag="a")
                .count(gas, tag="n")
                .send()
            )
            result.get_string("a"), result.get_int("n")
        ```
    """

    def __init__(
        self,
        signer: TransactionSigner,
        config: Optional[BluzelleConfig] = None,
        node: Optional[NodeInterface] = None,
    ):
        """
        Initialize the client.

        Args:
            signer: Signer with the account's key loaded
            config: Client configuration
            node: Custom node interface (REST adapter if not provided)
        """
        if not signer.is_loaded:
            raise ValueError("Signer has no key loaded")

        self.config = config or get_config()
        self.signer = signer
        self.node = node or RestAdapter(self.config)

        self.address = signer.address
        self.uuid = self.config.uuid or self.address
        self.chain_id = self.config.chain_id

        self._submitter = TransactionSubmitter(
            node=self.node,
            signer=signer,
            chain_id=self.chain_id,
            max_attempts=self.config.max_send_attempts,
        )

        logger.debug("client_initialized", address=self.address, uuid=self.uuid, chain_id=self.chain_id)

    @classmethod
    def from_mnemonic(
        cls,
        mnemonic: Optional[str] = None,
        endpoint: Optional[str] = None,
        uuid: Optional[str] = None,
        chain_id: Optional[str] = None,
        config: Optional[BluzelleConfig] = None,
        node: Optional[NodeInterface] = None,
    ) -> "Bluzelle":
        """
        Create a client for the account a mnemonic controls.

        Empty arguments fall back to the configuration: endpoint
        "http://localhost:1317", uuid equal to the address, chain id "bluzelle".
        """
        config = config or get_config()
        overrides = {
            name: value
            for name, value in (
                ("mnemonic", mnemonic),
                ("endpoint", endpoint),
                ("uuid", uuid),
                ("chain_id", chain_id),
            )
            if value
        }
        if overrides:
            config = config.model_copy(update=overrides)

        signer = TransactionSigner(config)
        signer.load_from_config()
        return cls(signer, config=config, node=node)

    async def connect(self) -> None:
        await self.node.connect()

    async def close(self) -> None:
        await self.node.disconnect()

    async def __aenter__(self) -> "Bluzelle":
        await self.connect()
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.close()

    def transaction(self) -> PendingTransaction:
        """Start a new, empty transaction for this account and uuid."""
        return PendingTransaction(
            owner=self.address,
            uuid_=self.uuid,
            submitter=self._submitter,
            denom=self.config.denom,
        )

    # Node information

    async def version(self) -> str:
        """Get the application version of the node."""
        info = await self.node.get_node_info()
        try:
            return info["application_version"]["version"]
        except (KeyError, TypeError) as e:
            raise ResponseDecodeError(f"Malformed node info: {e}") from e

    async def account(self) -> AccountData:
        """Get information about the active account."""
        return await self.node.get_account(self.address)

    # Direct queries

    def _path(self, action: str, *parts: str) -> str:
        encoded = "".join(f"/{quote(part, safe='')}" for part in parts)
        return f"/crud/{action}/{self.uuid}{encoded}"

    async def _query(self, kind: OperationKind, path: str, key: Optional[str] = None) -> Any:
        data = await self.node.query(path)
        if data is None:
            if key is not None:
                raise KeyNotFoundError(key)
            raise ResponseDecodeError(f"No reply for {path}")

        try:
            return decode_fragment(kind, data["result"])
        except (KeyError, TypeError, ValueError) as e:
            raise ResponseDecodeError(f"Malformed reply for {path}: {e}") from e

    @staticmethod
    def _require_key(key: str) -> None:
        if not key:
            raise TransactionValidationError("Key cannot be empty")

    async def read(self, key: str, prove: bool = False) -> str:
        """
        Retrieve the value of a key without consensus.

        Args:
            key: The key to retrieve
            prove: Require a proof of the value from the network

        Raises:
            KeyNotFoundError: If the key does not exist
        """
        self._require_key(key)
        action = "pread" if prove else "read"
        return await self._query(OperationKind.READ, self._path(action, key), key)

    async def has(self, key: str) -> bool:
        """Check whether a key is in the database."""
        self._require_key(key)
        return await self._query(OperationKind.HAS, self._path("has", key))

    async def count(self) -> int:
        """Get the number of keys in the database."""
        return await self._query(OperationKind.COUNT, self._path("count"))

    async def keys(self) -> List[str]:
        """List all keys in the database."""
        return await self._query(OperationKind.KEYS, self._path("keys"))

    async def key_values(self) -> Dict[str, str]:
        """Enumerate all keys and values in the database."""
        return await self._query(OperationKind.KEY_VALUES, self._path("keyvalues"))

    async def get_lease(self, key: str) -> int:
        """
        Get the time remaining on a key's lease, in seconds.

        Raises:
            KeyNotFoundError: If the key does not exist
        """
        self._require_key(key)
        return await self._query(OperationKind.GET_LEASE, self._path("getlease", key), key)

    async def get_n_shortest_leases(self, n: int) -> Dict[str, int]:
        """Get lease seconds of the n keys with the shortest leases."""
        if n < 0:
            raise TransactionValidationError("Invalid value specified")
        return await self._query(
            OperationKind.GET_N_SHORTEST_LEASES,
            self._path("getnshortestleases", str(n)),
        )

    # Single-operation transactions

    async def transfer_tokens_to(self, address: str, amount: int, gas_info: GasInfo) -> TransactionResult:
        return await self.transaction().transfer_tokens_to(address, amount, gas_info).send()

    async def create(
        self,
        key: str,
        value: str,
        gas_info: GasInfo,
        lease_info: Optional[LeaseInfo] = None,
    ) -> TransactionResult:
        return await self.transaction().create(key, value, gas_info, lease_info).send()

    async def update(
        self,
        key: str,
        value: str,
        gas_info: GasInfo,
        lease_info: Optional[LeaseInfo] = None,
    ) -> TransactionResult:
        return await self.transaction().update(key, value, gas_info, lease_info).send()

    async def rename(self, key: str, new_key: str, gas_info: GasInfo) -> TransactionResult:
        return await self.transaction().rename(key, new_key, gas_info).send()

    async def multi_update(self, key_values: Mapping[str, str], gas_info: GasInfo) -> TransactionResult:
        return await self.transaction().multi_update(key_values, gas_info).send()

    async def renew_lease(
        self,
        key: str,
        gas_info: GasInfo,
        lease_info: Optional[LeaseInfo] = None,
    ) -> TransactionResult:
        return await self.transaction().renew_lease(key, gas_info, lease_info).send()

    async def renew_lease_all(self, gas_info: GasInfo, lease_info: Optional[LeaseInfo] = None) -> TransactionResult:
        return await self.transaction().renew_lease_all(gas_info, lease_info).send()

    async def delete(self, key: str, gas_info: GasInfo) -> TransactionResult:
        return await self.transaction().delete(key, gas_info).send()

    async def delete_all(self, gas_info: GasInfo) -> TransactionResult:
        return await self.transaction().delete_all(gas_info).send()

    async def tx_read(self, key: str, gas_info: GasInfo) -> str:
        """Retrieve the value of a key through consensus."""
        result = await self.transaction().read(key, gas_info).send()
        return result.get_string("")

    async def tx_has(self, key: str, gas_info: GasInfo) -> bool:
        result = await self.transaction().has(key, gas_info).send()
        return result.get_bool("")

    async def tx_count(self, gas_info: GasInfo) -> int:
        result = await self.transaction().count(gas_info).send()
        return result.get_int("")

    async def tx_keys(self, gas_info: GasInfo) -> List[str]:
        result = await self.transaction().keys(gas_info).send()
        return result.get_keys("")

    async def tx_key_values(self, gas_info: GasInfo) -> Dict[str, str]:
        result = await self.transaction().key_values(gas_info).send()
        return result.get_key_values("")

    async def tx_get_lease(self, key: str, gas_info: GasInfo) -> int:
        result = await self.transaction().get_lease(key, gas_info).send()
        return result.get_int("")

    async def tx_get_n_shortest_leases(self, n: int, gas_info: GasInfo) -> Dict[str, int]:
        result = await self.transaction().get_n_shortest_leases(n, gas_info).send()
        return result.get_leases("")

    def __repr__(self) -> str:
        return f"Bluzelle(address={self.address}, uuid={self.uuid}, chain_id={self.chain_id})"
