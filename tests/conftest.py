"""
Pytest configuration and shared fixtures for the test suite.
"""

import json
from typing import Any, Dict, List, Optional

import pytest

from bluzelle.client import Bluzelle
from bluzelle.config import BluzelleConfig
from bluzelle.core.operation import GasInfo
from bluzelle.core.transaction import PendingTransaction
from bluzelle.node.interface import AccountData, NodeInterface
from bluzelle.tx.signer import TransactionSigner
from bluzelle.tx.submitter import TransactionSubmitter

# BIP-39 test vector (all-zero entropy)
TEST_MNEMONIC = (
    "abandon abandon abandon abandon abandon abandon "
    "abandon abandon abandon abandon abandon about"
)

SIGNATURE_FAILURE_LOG = (
    "unauthorized: signature verification failed; "
    "verify correct account sequence and chain-id"
)


# ============================================================================
# Configuration Fixtures
# ============================================================================

@pytest.fixture
def test_config() -> BluzelleConfig:
    """Create a test configuration."""
    return BluzelleConfig(
        endpoint="http://localhost:1317",
        chain_id="bluzelle",
        mnemonic=TEST_MNEMONIC,
        uuid="test-uuid",
        max_send_attempts=20,
        log_level="DEBUG",
    )


@pytest.fixture
def gas_info() -> GasInfo:
    return GasInfo(max_fee=4_000_001)


# ============================================================================
# Test Data Generators
# ============================================================================

def generate_test_tx_hash(index: int = 0) -> str:
    """Generate a deterministic test transaction hash."""
    base = "ABCD1234" * 8
    return base[:60] + f"{index:04d}"


def encode_fragments(*fragments: Dict[str, Any]) -> str:
    """Hex-encode result fragments the way the chain concatenates them."""
    text = "".join(json.dumps(f, separators=(",", ":")) for f in fragments)
    return text.encode("utf-8").hex()


def committed_response(*fragments: Dict[str, Any], index: int = 0) -> Dict[str, Any]:
    """Build a broadcast reply for a committed transaction."""
    response = {
        "height": "1042",
        "txhash": generate_test_tx_hash(index),
        "gas_used": "61234",
        "logs": [],
    }
    if fragments:
        response["data"] = encode_fragments(*fragments)
    return response


def rejected_response(raw_log: str, code: int = 4) -> Dict[str, Any]:
    """Build a broadcast reply for a rejected transaction."""
    return {
        "height": "0",
        "txhash": generate_test_tx_hash(99),
        "code": code,
        "raw_log": raw_log,
    }


# ============================================================================
# Mock Node Interface
# ============================================================================

class MockNodeInterface(NodeInterface):
    """
    Scripted node for testing.

    Broadcast replies are served from ``responses`` in order; once it runs
    out every broadcast commits with no result data. ``drift`` advances the
    sequence on every account lookup, simulating another client using the
    same account.
    """

    def __init__(self, account_number: int = 7, sequence: int = 5):
        self.account_number = account_number
        self.sequence = sequence
        self.drift = 0

        self.responses: List[Dict[str, Any]] = []
        self.queries: Dict[str, Dict[str, Any]] = {}
        self.node_info: Dict[str, Any] = {
            "node_info": {"network": "bluzelle"},
            "application_version": {"name": "BluzelleService", "version": "0.0.0-74-ge54b8d3"},
        }

        self.broadcasts: List[Dict[str, Any]] = []
        self.query_paths: List[str] = []
        self.account_queries = 0
        self.account_error: Optional[Exception] = None
        self.broadcast_error: Optional[Exception] = None
        self._connected = False

    @property
    def network_calls(self) -> int:
        return self.account_queries + len(self.broadcasts) + len(self.query_paths)

    async def connect(self) -> None:
        self._connected = True

    async def disconnect(self) -> None:
        self._connected = False

    async def get_node_info(self) -> Dict[str, Any]:
        return self.node_info

    async def get_account(self, address: str) -> AccountData:
        self.account_queries += 1
        if self.account_error is not None:
            raise self.account_error

        account = AccountData(
            address=address,
            account_number=self.account_number,
            sequence=self.sequence,
            coins={"ubnt": 10_000_000_000},
        )
        self.sequence += self.drift
        return account

    async def broadcast_tx(self, body: Dict[str, Any]) -> Dict[str, Any]:
        self.broadcasts.append(body)
        if self.broadcast_error is not None:
            raise self.broadcast_error

        response = self.responses.pop(0) if self.responses else committed_response()
        if isinstance(response, dict) and response.get("code") in (None, 0):
            self.sequence += 1
        return response

    async def query(self, path: str) -> Optional[Dict[str, Any]]:
        self.query_paths.append(path)
        return self.queries.get(path)

    def queue(self, *responses: Dict[str, Any]) -> None:
        """Queue broadcast replies."""
        self.responses.extend(responses)

    def signed_sequences(self) -> List[str]:
        """Sequence numbers of every broadcast signature, in order."""
        return [body["tx"]["signatures"][0]["sequence"] for body in self.broadcasts]


@pytest.fixture
def mock_node() -> MockNodeInterface:
    """Create a mock node interface."""
    return MockNodeInterface()


# ============================================================================
# Signer, Submitter and Client
# ============================================================================

@pytest.fixture
def test_signer(test_config) -> TransactionSigner:
    """Create a signer for the test mnemonic."""
    return TransactionSigner.from_mnemonic(TEST_MNEMONIC, test_config)


@pytest.fixture
def submitter(mock_node, test_signer, test_config) -> TransactionSubmitter:
    return TransactionSubmitter(
        node=mock_node,
        signer=test_signer,
        chain_id=test_config.chain_id,
        max_attempts=test_config.max_send_attempts,
    )


@pytest.fixture
def pending_tx(test_signer, submitter) -> PendingTransaction:
    """Create an empty transaction bound to the mock node."""
    return PendingTransaction(
        owner=test_signer.address,
        uuid_="test-uuid",
        submitter=submitter,
    )


@pytest.fixture
def client(test_signer, test_config, mock_node) -> Bluzelle:
    """Create a client backed by the mock node."""
    return Bluzelle(test_signer, config=test_config, node=mock_node)
