"""
Transaction module.

Handles key derivation, signing, submission and result decoding.
"""

from bluzelle.tx.signer import TransactionSigner, verify_signature
from bluzelle.tx.submitter import TransactionSubmitter, extract_error_message

__all__ = [
    "TransactionSigner",
    "verify_signature",
    "TransactionSubmitter",
    "extract_error_message",
]
