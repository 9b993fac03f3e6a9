"""
Algorand byte encodings — hashing, addresses, transaction identifiers.

All functions are pure and deterministic.

Formats:
    - Hash: SHA-512/256 (the truncated SHA-512 variant with its own IV),
      used for address checksums, mnemonic checksums and transaction IDs.
    - Address: base32(public_key || sha512_256(public_key)[-4:]),
      padding stripped. Always 58 uppercase characters.
    - Transaction ID: base32(sha512_256(b"TX" || encoded_txn)),
      padding stripped. Always 52 uppercase characters.
"""

from __future__ import annotations

import base64
import re

from cryptography.hazmat.primitives import hashes

# Length of an Ed25519 public key / seed in bytes.
KEY_LEN_BYTES = 32

# Number of checksum bytes appended to the public key in an address.
ADDRESS_CHECKSUM_BYTES = 4

# Rendered lengths (base32, no padding).
ADDRESS_LEN = 58
TX_ID_LEN = 52

# Domain separation prefix for transaction signing and IDs.
TX_PREFIX = b"TX"

_ADDRESS_RE = re.compile(r"^[A-Z2-7]{58}$")


def sha512_256(data: bytes) -> bytes:
    """Compute the SHA-512/256 digest of bytes."""
    h = hashes.Hash(hashes.SHA512_256())
    h.update(data)
    return h.finalize()


def _b32encode_nopad(data: bytes) -> str:
    return base64.b32encode(data).decode("ascii").rstrip("=")


def _b32decode_nopad(text: str) -> bytes:
    padding = "=" * (-len(text) % 8)
    return base64.b32decode(text + padding)


def encode_address(public_key: bytes) -> str:
    """Render a 32-byte public key as an Algorand address.

    Raises:
        ValueError: If public_key is not 32 bytes.
    """
    if len(public_key) != KEY_LEN_BYTES:
        raise ValueError(
            f"public key must be {KEY_LEN_BYTES} bytes, got {len(public_key)}"
        )
    checksum = sha512_256(public_key)[-ADDRESS_CHECKSUM_BYTES:]
    return _b32encode_nopad(public_key + checksum)


def decode_address(address: str) -> bytes:
    """Recover the 32-byte public key from an Algorand address.

    Raises:
        ValueError: If the address is malformed or its checksum is wrong.
    """
    if not _ADDRESS_RE.match(address):
        raise ValueError(f"malformed address: {address!r}")
    raw = _b32decode_nopad(address)
    public_key = raw[:KEY_LEN_BYTES]
    checksum = raw[KEY_LEN_BYTES:]
    if sha512_256(public_key)[-ADDRESS_CHECKSUM_BYTES:] != checksum:
        raise ValueError(f"address checksum mismatch: {address!r}")
    return public_key


def is_valid_address(address: str) -> bool:
    """Check whether a string is a well-formed Algorand address."""
    try:
        decode_address(address)
    except ValueError:
        return False
    return True


def encode_tx_id(encoded_txn: bytes) -> str:
    """Compute the transaction ID of canonically encoded transaction bytes."""
    return _b32encode_nopad(sha512_256(TX_PREFIX + encoded_txn))
