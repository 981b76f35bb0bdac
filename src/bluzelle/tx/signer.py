"""
Transaction Signer - handles transaction signing.

Holds the account's secp256k1 key and produces the signature block
attached to every submission attempt.
"""

import base64
import hashlib
from typing import Any, Dict, Optional

import structlog
from ecdsa import BadSignatureError, SECP256k1, VerifyingKey
from ecdsa.util import sigdecode_string, sigencode_string_canonize

from bluzelle.config import BluzelleConfig, get_config
from bluzelle.tx.canonical import sign_bytes_digest
from bluzelle.tx.keys import (
    DEFAULT_ADDRESS_PREFIX,
    DEFAULT_HD_PATH,
    HDKey,
    mnemonic_to_seed,
    public_key_to_address,
)

logger = structlog.get_logger(__name__)

PUBLIC_KEY_TYPE = "tendermint/PubKeySecp256k1"


class TransactionSigner:
    """
    Handles transaction signing with the account's key.

    Supports loading keys from:
    - A mnemonic phrase (derived along the configured HD path)
    - A raw 32-byte private key (for tests and external key stores)
    """

    def __init__(self, config: Optional[BluzelleConfig] = None):
        """
        Initialize the transaction signer.

        Args:
            config: Client configuration
        """
        self.config = config or get_config()
        self._key: Optional[HDKey] = None
        self._address: Optional[str] = None

    @classmethod
    def from_mnemonic(
        cls,
        mnemonic: str,
        config: Optional[BluzelleConfig] = None,
    ) -> "TransactionSigner":
        """Create a signer for the account a mnemonic controls."""
        signer = cls(config)
        signer.load_key_from_mnemonic(mnemonic)
        return signer

    def load_key_from_mnemonic(self, mnemonic: str) -> None:
        """
        Derive the signing key from a mnemonic.

        Args:
            mnemonic: Mnemonic of the account's private key
        """
        if mnemonic is None:
            raise ValueError("Mnemonic cannot be None")

        master = HDKey.from_seed(mnemonic_to_seed(mnemonic))
        self._key = master.derive(self.config.hd_path or DEFAULT_HD_PATH)
        self._derive_address()

        logger.info("signing_key_loaded", address=self._address)

    def load_key_from_bytes(self, private_key: bytes) -> None:
        """Load a raw 32-byte private key."""
        if len(private_key) != 32:
            raise ValueError("Private key must be 32 bytes")
        self._key = HDKey(bytes(private_key), b"\x00" * 32)
        self._derive_address()

        logger.info("signing_key_loaded_from_bytes", address=self._address)

    def load_from_config(self) -> None:
        """Load signing key from configuration."""
        if not self.config.mnemonic:
            raise ValueError("No mnemonic configured")
        self.load_key_from_mnemonic(self.config.mnemonic)

    def _derive_address(self) -> None:
        prefix = self.config.address_prefix or DEFAULT_ADDRESS_PREFIX
        self._address = public_key_to_address(self._key.public_key, prefix)

    @property
    def address(self) -> Optional[str]:
        """Get the account's bech32 address."""
        return self._address

    @property
    def is_loaded(self) -> bool:
        """Check if a signing key is loaded."""
        return self._key is not None

    @property
    def public_key(self) -> bytes:
        """Compressed public key of the loaded key."""
        if not self._key:
            raise RuntimeError("No signing key loaded")
        return self._key.public_key

    def sign_digest(self, digest: bytes) -> bytes:
        """
        Sign a 32-byte digest.

        Returns:
            64-byte r || s signature with low s (RFC 6979 nonce)
        """
        if not self._key:
            raise RuntimeError("No signing key loaded")

        return self._key.signing_key.sign_digest_deterministic(
            digest,
            hashfunc=hashlib.sha256,
            sigencode=sigencode_string_canonize,
        )

    def sign(self, sign_doc: Dict[str, Any]) -> Dict[str, Any]:
        """
        Sign a transaction sign document.

        Args:
            sign_doc: Document with account_number, chain_id, fee, memo,
                msgs and sequence

        Returns:
            Signature block for the broadcast envelope
        """
        digest = sign_bytes_digest(sign_doc)
        signature = self.sign_digest(digest)

        logger.debug(
            "transaction_signed",
            sequence=sign_doc.get("sequence"),
            digest=digest.hex()[:16] + "...",
        )

        return {
            "pub_key": {
                "type": PUBLIC_KEY_TYPE,
                "value": base64.b64encode(self.public_key).decode("ascii"),
            },
            "signature": base64.b64encode(signature).decode("ascii"),
            "account_number": sign_doc["account_number"],
            "sequence": sign_doc["sequence"],
        }


def verify_signature(sign_doc: Dict[str, Any], signature_block: Dict[str, Any]) -> bool:
    """Check a signature block against the document it claims to sign."""
    public_key = base64.b64decode(signature_block["pub_key"]["value"])
    signature = base64.b64decode(signature_block["signature"])
    verifying_key = VerifyingKey.from_string(public_key, curve=SECP256k1)
    digest = sign_bytes_digest(sign_doc)
    try:
        return verifying_key.verify_digest(signature, digest, sigdecode=sigdecode_string)
    except BadSignatureError:
        return False
