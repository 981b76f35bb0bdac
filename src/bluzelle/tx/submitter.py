"""
Transaction Submitter - signs, broadcasts and decodes transactions.

Each attempt fetches the account's current sequence, signs, posts the
envelope in block mode and inspects the reply. A signature verification
failure means the sequence went stale between fetch and commit, so it is
retried with a fresh sequence up to a fixed number of attempts; every other
rejection is final.
"""

from typing import Any, Dict

import structlog

from bluzelle.core.result import TransactionResult
from bluzelle.core.transaction import (
    PendingTransaction,
    TransactionStateError,
    TransactionStatus,
)
from bluzelle.node.interface import NodeInterface, ResponseDecodeError, ServerError
from bluzelle.tx.response import decode_transaction_response
from bluzelle.tx.signer import TransactionSigner

logger = structlog.get_logger(__name__)

MAX_SEND_ATTEMPTS = 20

SIGNATURE_FAILURE = "signature verification failed"
INSUFFICIENT_FEE = "insufficient fee"


def extract_error_message(response: Dict[str, Any]) -> str:
    """
    Extract the readable part of a rejected transaction's raw_log.

    "unauthorized: Key already exists: failed to execute message; message index: 0"
    yields "Key already exists". The insufficient fee diagnostic keeps
    everything after its prefix, since its amounts contain colons:
    "insufficient fee: insufficient fees; got: 10ubnt required: 2000000ubnt"
    yields "insufficient fees; got: 10ubnt required: 2000000ubnt".
    """
    log = response.get("raw_log")
    if log is None:
        return ""
    log = str(log)

    start = log.find(": ")
    if start < 0:
        return log
    if log[:start] == INSUFFICIENT_FEE:
        return log[start + 2:]

    end = log.find(":", start + 1)
    if end < 0:
        return log[start + 2:]
    return log[start + 2:end]


def is_committed(response: Dict[str, Any]) -> bool:
    """A reply without an error code (or with code 0) is a committed transaction."""
    return response.get("code") in (None, 0)


class TransactionSubmitter:
    """
    Submits pending transactions for one account.

    Usage:
        ```python
        submitter = TransactionSubmitter(node, signer, chain_id="bluzelle")
        result = await submitter.submit(tx)
        ```
    """

    def __init__(
        self,
        node: NodeInterface,
        signer: TransactionSigner,
        chain_id: str,
        max_attempts: int = MAX_SEND_ATTEMPTS,
    ):
        """
        Initialize the submitter.

        Args:
            node: Node interface for account lookups and broadcasts
            signer: Signer holding the account's key
            chain_id: Chain id included in every sign document
            max_attempts: Signing attempts before a stale sequence is fatal
        """
        if max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")
        self.node = node
        self.signer = signer
        self.chain_id = chain_id
        self.max_attempts = max_attempts

    async def submit(self, tx: PendingTransaction) -> TransactionResult:
        """
        Sign and broadcast a transaction until it commits or fails for good.

        Args:
            tx: Transaction in BUILDING state

        Returns:
            Decoded results of the committed transaction

        Raises:
            NodeConnectionError: If the node cannot be reached (never retried)
            ServerError: If the chain rejects the transaction
            ResponseDecodeError: If the committed reply cannot be decoded
        """
        if tx.is_consumed:
            raise TransactionStateError(f"Transaction {tx.transaction_id[:8]} was already sent")
        if not self.signer.is_loaded:
            raise RuntimeError("No signing key loaded")

        try:
            result = await self._run(tx)
        except Exception as e:
            if tx.status != TransactionStatus.FAILED:
                tx.mark_failed(str(e))
            raise

        tx.mark_committed(result)
        return result

    async def _run(self, tx: PendingTransaction) -> TransactionResult:
        slots = tx.result_slots
        message = ""
        code = None

        for attempt in range(1, self.max_attempts + 1):
            tx.mark_signing()

            account = await self.node.get_account(self.signer.address)
            sign_doc = tx.sign_doc(account.account_number, account.sequence, self.chain_id)
            signature = self.signer.sign(sign_doc)

            tx.mark_submitting()
            logger.debug(
                "tx_send_attempt",
                transaction_id=tx.transaction_id[:8] + "...",
                attempt=attempt,
                sequence=account.sequence,
                operations=tx.size,
            )

            response = await self.node.broadcast_tx(tx.envelope(signature))
            if not isinstance(response, dict):
                raise ResponseDecodeError(f"Broadcast reply is not a JSON object: {response!r:.200}")

            if is_committed(response):
                result = decode_transaction_response(response, slots)
                logger.info(
                    "tx_committed",
                    tx_hash=result.tx_hash,
                    height=result.height,
                    gas_used=result.gas_used,
                    attempts=attempt,
                )
                return result

            code = response.get("code")
            message = extract_error_message(response)

            if SIGNATURE_FAILURE not in message:
                logger.error("tx_rejected", code=code, error=message, attempts=attempt)
                tx.mark_failed(message)
                raise ServerError(message, code)

            logger.warning(
                "tx_signature_retry",
                transaction_id=tx.transaction_id[:8] + "...",
                attempt=attempt,
                max_attempts=self.max_attempts,
                sequence=account.sequence,
            )

        logger.error(
            "tx_retries_exhausted",
            transaction_id=tx.transaction_id[:8] + "...",
            attempts=self.max_attempts,
            error=message,
        )
        tx.mark_failed(message)
        raise ServerError(message, code)
