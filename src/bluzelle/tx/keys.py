"""
Key material for Bluzelle accounts.

BIP-39 mnemonics (via the ``mnemonic`` package), BIP-32 secp256k1 key
derivation and bech32 account addresses.
"""

import hashlib
import hmac
from dataclasses import dataclass
from typing import List

from bech32 import bech32_encode, convertbits
from Crypto.Hash import RIPEMD160
from ecdsa import SECP256k1, SigningKey
from mnemonic import Mnemonic

DEFAULT_HD_PATH = "44'/118'/0'/0/0"
DEFAULT_ADDRESS_PREFIX = "bluzelle"

HARDENED_OFFSET = 0x80000000
CURVE_ORDER = SECP256k1.order

_wordlist = Mnemonic("english")


def create_mnemonic(strength: int = 256) -> str:
    """
    Generate a new English mnemonic.

    Args:
        strength: Entropy in bits (128 to 256, a multiple of 32)

    Raises:
        ValueError: If the strength is not supported
    """
    if strength < 128 or strength > 256 or strength % 32:
        raise ValueError(f"Invalid mnemonic strength: {strength}")
    return _wordlist.generate(strength=strength)


def entropy_to_mnemonic(entropy: bytes) -> str:
    """
    Encode entropy (16 to 32 bytes, a multiple of 4) as a mnemonic.

    Raises:
        ValueError: If the entropy length is not supported
    """
    if entropy is None:
        raise ValueError("Entropy cannot be None")
    if len(entropy) < 16 or len(entropy) > 32 or len(entropy) % 4:
        raise ValueError(f"Invalid entropy length: {len(entropy)}")
    return _wordlist.to_mnemonic(bytes(entropy))


def mnemonic_to_entropy(phrase: str) -> bytes:
    """
    Decode a mnemonic back to its entropy.

    Raises:
        ValueError: If the phrase is not a valid mnemonic
    """
    if phrase is None:
        raise ValueError("Mnemonic cannot be None")
    try:
        return bytes(_wordlist.to_entropy(phrase.split()))
    except LookupError as e:
        raise ValueError(f"Invalid mnemonic: {e}") from e


def mnemonic_to_seed(phrase: str, passphrase: str = "") -> bytes:
    """Derive the 64-byte BIP-39 seed. The phrase is not checksum-validated."""
    if phrase is None:
        raise ValueError("Mnemonic cannot be None")
    return Mnemonic.to_seed(phrase, passphrase=passphrase)


def parse_path(path: str) -> List[int]:
    """
    Parse a derivation path like "m/44'/118'/0'/0/0" into child indexes.

    Raises:
        ValueError: If a component is not a valid index
    """
    indexes = []
    for part in path.split("/"):
        if part in ("", "m"):
            continue
        hardened = part.endswith("'") or part.endswith("h")
        number = part[:-1] if hardened else part
        if not number.isdigit() or int(number) >= HARDENED_OFFSET:
            raise ValueError(f"Invalid path component: {part!r}")
        indexes.append(int(number) + (HARDENED_OFFSET if hardened else 0))
    return indexes


@dataclass(frozen=True)
class HDKey:
    """A BIP-32 extended private key on secp256k1."""

    private_key: bytes
    chain_code: bytes

    @classmethod
    def from_seed(cls, seed: bytes) -> "HDKey":
        """Create the master key for a seed."""
        digest = hmac.new(b"Bitcoin seed", seed, hashlib.sha512).digest()
        key, chain_code = digest[:32], digest[32:]
        secret = int.from_bytes(key, "big")
        if secret == 0 or secret >= CURVE_ORDER:
            raise ValueError("Seed produces an invalid master key")
        return cls(key, chain_code)

    @property
    def secret_exponent(self) -> int:
        return int.from_bytes(self.private_key, "big")

    @property
    def signing_key(self) -> SigningKey:
        return SigningKey.from_secret_exponent(self.secret_exponent, curve=SECP256k1)

    @property
    def public_key(self) -> bytes:
        """Compressed 33-byte public key."""
        return self.signing_key.get_verifying_key().to_string("compressed")

    def child(self, index: int) -> "HDKey":
        """Derive one child key."""
        if index >= HARDENED_OFFSET:
            data = b"\x00" + self.private_key + index.to_bytes(4, "big")
        else:
            data = self.public_key + index.to_bytes(4, "big")

        digest = hmac.new(self.chain_code, data, hashlib.sha512).digest()
        tweak = int.from_bytes(digest[:32], "big")
        secret = (tweak + self.secret_exponent) % CURVE_ORDER
        if tweak >= CURVE_ORDER or secret == 0:
            raise ValueError(f"Index {index} produces an invalid child key")
        return HDKey(secret.to_bytes(32, "big"), digest[32:])

    def derive(self, path: str) -> "HDKey":
        """Derive the key at a path relative to this key."""
        key = self
        for index in parse_path(path):
            key = key.child(index)
        return key


def public_key_to_address(public_key: bytes, prefix: str = DEFAULT_ADDRESS_PREFIX) -> str:
    """bech32(prefix, ripemd160(sha256(compressed public key)))."""
    sha = hashlib.sha256(public_key).digest()
    key_hash = RIPEMD160.new(sha).digest()
    return bech32_encode(prefix, convertbits(key_hash, 8, 5))
