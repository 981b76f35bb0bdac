"""
Bluzelle Batch Client

A client for the Bluzelle CRUD ledger. Store operations are collected into
a single signed transaction, submitted with automatic retry on stale account
sequences, and their concatenated results are split back into typed values
keyed by caller-chosen tags.
"""

__version__ = "0.1.0"

from bluzelle.client import Bluzelle
from bluzelle.core.operation import GasInfo, LeaseInfo, TransactionValidationError
from bluzelle.core.result import ResultSet, ResultTypeError, TransactionResult
from bluzelle.core.transaction import PendingTransaction, TransactionStatus
from bluzelle.node.interface import (
    KeyNotFoundError,
    NodeConnectionError,
    ResponseDecodeError,
    ServerError,
)

__all__ = [
    "Bluzelle",
    "GasInfo",
    "LeaseInfo",
    "TransactionValidationError",
    "ResultSet",
    "ResultTypeError",
    "TransactionResult",
    "PendingTransaction",
    "TransactionStatus",
    "KeyNotFoundError",
    "NodeConnectionError",
    "ResponseDecodeError",
    "ServerError",
]
