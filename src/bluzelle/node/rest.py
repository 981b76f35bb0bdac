"""
REST server adapter for node integration.

Provides node access via the Cosmos SDK light-client REST API.
"""

from typing import Any, Dict, Optional

import httpx
import structlog

from bluzelle.config import BluzelleConfig, get_config
from bluzelle.node.interface import (
    AccountData,
    NodeConnectionError,
    NodeInterface,
    ResponseDecodeError,
    ServerError,
)

logger = structlog.get_logger(__name__)


class RestAdapter(NodeInterface):
    """
    REST API adapter.

    Implements the NodeInterface using the node's REST server.
    """

    def __init__(
        self,
        config: Optional[BluzelleConfig] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        """
        Initialize the REST adapter.

        Args:
            config: Client configuration. Uses global config if not provided.
            transport: Custom httpx transport (used by tests)
        """
        self.config = config or get_config()
        self.base_url = self.config.endpoint.rstrip("/")
        self._transport = transport
        self._client: Optional[httpx.AsyncClient] = None

    @property
    def headers(self) -> dict:
        return {
            "Accept": "application/json",
            "Content-Type": "application/json",
        }

    async def connect(self) -> None:
        """Establish connection (create HTTP client)."""
        if self._client is not None:
            return

        self._client = httpx.AsyncClient(
            base_url=self.base_url,
            headers=self.headers,
            timeout=self.config.http_timeout_seconds,
            transport=self._transport,
        )
        logger.info("rest_connected", base_url=self.base_url)

    async def disconnect(self) -> None:
        """Close the HTTP client."""
        if self._client:
            await self._client.aclose()
            self._client = None
            logger.info("rest_disconnected")

    async def _send(self, method: str, path: str, **kwargs) -> httpx.Response:
        if not self._client:
            await self.connect()

        try:
            return await self._client.request(method, path, **kwargs)
        except httpx.RequestError as e:
            logger.error("rest_request_error", method=method, path=path, error=str(e))
            raise NodeConnectionError(f"Request to {self.base_url}{path} failed: {e}") from e

    @staticmethod
    def _decode(response: httpx.Response, path: str) -> Dict[str, Any]:
        try:
            data = response.json()
        except ValueError as e:
            raise ResponseDecodeError(f"Invalid JSON from {path}: {response.text[:200]}") from e

        if not isinstance(data, dict):
            raise ResponseDecodeError(f"Expected a JSON object from {path}: {response.text[:200]}")
        return data

    async def _request(self, method: str, path: str, **kwargs) -> Optional[Dict[str, Any]]:
        """Make an API request."""
        response = await self._send(method, path, **kwargs)

        if response.status_code == 404:
            return None

        if response.status_code != 200:
            error_msg = response.text
            logger.error(
                "rest_request_failed",
                path=path,
                status=response.status_code,
                error=error_msg,
            )
            raise ServerError(f"REST API error ({response.status_code}): {error_msg}")

        return self._decode(response, path)

    async def get_node_info(self) -> Dict[str, Any]:
        """Get the node info document."""
        data = await self._request("GET", "/node_info")
        if data is None:
            raise ServerError("Node info not available")
        return data

    async def get_account(self, address: str) -> AccountData:
        """Get the account number and sequence for an address."""
        data = await self._request("GET", f"/auth/accounts/{address}")
        if data is None:
            raise ServerError(f"Account {address} not found")

        try:
            account = AccountData.from_json(data["result"]["value"])
        except (KeyError, TypeError, ValueError) as e:
            raise ResponseDecodeError(f"Malformed account reply for {address}: {e}") from e

        if not account.address:
            account.address = address

        logger.debug(
            "account_fetched",
            address=address,
            account_number=account.account_number,
            sequence=account.sequence,
        )
        return account

    async def broadcast_tx(self, body: Dict[str, Any]) -> Dict[str, Any]:
        """Post a signed transaction envelope."""
        response = await self._send("POST", "/txs", json=body)

        if response.status_code == 200:
            return self._decode(response, "/txs")

        # The chain may reject with a non-200 status but a regular tx reply
        try:
            data = response.json()
        except ValueError:
            data = None
        if isinstance(data, dict) and "code" in data:
            return data

        logger.error("tx_broadcast_failed", status=response.status_code, error=response.text)
        raise ServerError(f"Transaction broadcast failed ({response.status_code}): {response.text}")

    async def query(self, path: str) -> Optional[Dict[str, Any]]:
        """Run a GET query."""
        return await self._request("GET", path)
