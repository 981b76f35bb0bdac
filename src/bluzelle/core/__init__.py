"""
Core transaction components.

This module contains the operation model, the pending transaction that
accumulates operations, and the typed result set a committed transaction
produces.
"""

from bluzelle.core.operation import (
    GasInfo,
    LeaseInfo,
    Operation,
    OperationKind,
    TransactionValidationError,
)
from bluzelle.core.result import ResultSet, ResultTypeError, ResultValue, TransactionResult
from bluzelle.core.transaction import PendingTransaction, TransactionStateError, TransactionStatus

__all__ = [
    "GasInfo",
    "LeaseInfo",
    "Operation",
    "OperationKind",
    "TransactionValidationError",
    "ResultSet",
    "ResultTypeError",
    "ResultValue",
    "TransactionResult",
    "PendingTransaction",
    "TransactionStateError",
    "TransactionStatus",
]
