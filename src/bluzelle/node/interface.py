"""
Abstract interface for Bluzelle node access.

Defines the contract for the REST server operations the client needs.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Dict, Optional


@dataclass
class AccountData:
    """Account state as reported by the auth module."""
    address: str
    account_number: int
    sequence: int
    public_key: Optional[str] = None    # Base64, None until the account has signed
    coins: Dict[str, int] = field(default_factory=dict)

    @classmethod
    def from_json(cls, value: Dict[str, Any]) -> "AccountData":
        """
        Parse the "value" object of an /auth/accounts reply.

        Raises:
            KeyError, ValueError: If required fields are missing or malformed
        """
        public_key = value.get("public_key")
        if isinstance(public_key, dict):
            public_key = public_key.get("value")

        coins = {}
        for coin in value.get("coins") or []:
            coins[coin["denom"]] = int(coin["amount"])

        return cls(
            address=value.get("address", ""),
            account_number=int(value["account_number"]),
            sequence=int(value["sequence"]),
            public_key=public_key,
            coins=coins,
        )

    def balance(self, denom: str = "ubnt") -> int:
        return self.coins.get(denom, 0)


class NodeInterface(ABC):
    """
    Abstract interface for Bluzelle REST server access.

    This interface defines all node operations needed by the client:
    - Node and account information
    - Transaction broadcast
    - Direct (non-consensus) store queries
    """

    @abstractmethod
    async def connect(self) -> None:
        """
        Establish connection to the node.

        Raises:
            NodeConnectionError: If connection cannot be established
        """
        pass

    @abstractmethod
    async def disconnect(self) -> None:
        """Close connection to the node."""
        pass

    @abstractmethod
    async def get_node_info(self) -> Dict[str, Any]:
        """
        Get the node's info document.

        Returns:
            Decoded /node_info reply
        """
        pass

    @abstractmethod
    async def get_account(self, address: str) -> AccountData:
        """
        Get the current account number and sequence.

        Args:
            address: Bech32 account address

        Raises:
            NodeConnectionError: If the node cannot be reached
        """
        pass

    @abstractmethod
    async def broadcast_tx(self, body: Dict[str, Any]) -> Dict[str, Any]:
        """
        Broadcast a signed transaction envelope.

        Args:
            body: Envelope ({"tx": ..., "mode": "block"})

        Returns:
            The chain's reply; failures carry "code" and "raw_log"

        Raises:
            NodeConnectionError: If the node cannot be reached
        """
        pass

    @abstractmethod
    async def query(self, path: str) -> Optional[Dict[str, Any]]:
        """
        Run a GET query against the REST server.

        Args:
            path: Path below the endpoint, already URL-encoded

        Returns:
            Decoded reply, or None if the node reports 404
        """
        pass


class NodeConnectionError(Exception):
    """Raised when the node cannot be reached."""
    pass


class ServerError(Exception):
    """Raised when the node or chain rejects a request."""

    def __init__(self, message: str, code: Optional[int] = None):
        super().__init__(message)
        self.code = code


class KeyNotFoundError(ServerError):
    """Raised when a direct query addresses a key that does not exist."""

    def __init__(self, key: str):
        super().__init__(f'key "{key}" not found')
        self.key = key


class ResponseDecodeError(Exception):
    """Raised when a node reply does not have the expected shape."""
    pass
