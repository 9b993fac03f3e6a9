"""
Algorand transaction builder for attestation anchoring.

Builds a zero-value Payment-to-self carrying the attestation memo in its
note field, encodes it canonically, and signs it locally.

The recipe (plan_payment_to_self) is pure and deterministic: same sender,
note and parameters always produce the same transaction and ID.

Canonical encoding (what the network hashes and verifies):
    - msgpack map with keys sorted lexicographically.
    - Zero / empty values omitted (so a zero amount has no "amt" key).
    - Addresses, genesis hash and note as msgpack bin, strings as str.

The builder enforces:
    - type == "pay"
    - snd == rcv (self-payment), amount 0
    - non-empty note within the ledger limit
    - fee >= min_fee
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

import msgpack

from evidence_anchor.algorand.client import NetworkParameters
from evidence_anchor.algorand.encoding import TX_PREFIX, decode_address, encode_tx_id
from evidence_anchor.algorand.mnemonic import SigningIdentity

PAYMENT_TYPE = "pay"

# Maximum note field size in bytes.
MAX_NOTE_BYTES = 1024

# Ed25519 signature length, used for size-based fee estimation.
_SIGNATURE_LEN = 64


@dataclass(frozen=True)
class SignedTransaction:
    """A signed, encoded transaction ready for submission.

    Attributes:
        blob: msgpack-encoded {"sig", "txn"} — the submit payload.
        tx_id: Transaction ID (52 chars), computed locally.
    """

    blob: bytes
    tx_id: str


def _canonical(fields: dict[str, Any]) -> dict[str, Any]:
    return {
        key: fields[key]
        for key in sorted(fields)
        if fields[key] not in (None, 0, b"", "")
    }


def encode_transaction(txn: dict[str, Any]) -> bytes:
    """Canonical msgpack encoding of an unsigned transaction dict."""
    return msgpack.packb(_canonical(txn), use_bin_type=True)


def transaction_id(txn: dict[str, Any]) -> str:
    """Compute the transaction ID of an unsigned transaction dict."""
    return encode_tx_id(encode_transaction(txn))


def _encode_signed(txn: dict[str, Any], signature: bytes) -> bytes:
    return msgpack.packb({"sig": signature, "txn": _canonical(txn)}, use_bin_type=True)


def estimate_fee(txn: dict[str, Any], params: NetworkParameters) -> int:
    """Fee for txn: fee_per_byte x signed size, floored at min_fee.

    The size is measured with the fee field holding fee_per_byte, as the
    network reference tooling does.
    """
    sized = {**txn, "fee": params.fee_per_byte}
    size = len(_encode_signed(sized, bytes(_SIGNATURE_LEN)))
    return max(params.fee_per_byte * size, params.min_fee)


def plan_payment_to_self(
    sender: str,
    note: bytes,
    params: NetworkParameters,
) -> dict[str, Any]:
    """Build an unsigned zero-value Payment-to-self transaction dict.

    Args:
        sender: Algorand address (also the receiver).
        note: Memo bytes (from AttestationRecord.memo()).
        params: Network parameters from LedgerClient.fetch_parameters().

    Returns:
        Unsigned transaction dict, keys in canonical order.

    Raises:
        ValueError: If sender is not a valid address.
        ValueError: If note is empty or exceeds MAX_NOTE_BYTES.
    """
    public_key = decode_address(sender)
    if not note:
        raise ValueError("note must be non-empty")
    if len(note) > MAX_NOTE_BYTES:
        raise ValueError(f"note exceeds {MAX_NOTE_BYTES} bytes (got {len(note)} bytes)")

    txn: dict[str, Any] = {
        "fee": params.min_fee,
        "fv": params.first_valid,
        "gen": params.genesis_id,
        "gh": params.genesis_hash,
        "lv": params.last_valid,
        "note": note,
        "rcv": public_key,
        "snd": public_key,
        "type": PAYMENT_TYPE,
    }
    txn["fee"] = estimate_fee(txn, params)
    return _canonical(txn)


def sign_transaction(txn: dict[str, Any], identity: SigningIdentity) -> SignedTransaction:
    """Sign a planned transaction with a signing identity.

    Raises:
        ValueError: If the identity is not the transaction sender, or has
            been wiped.
    """
    if txn.get("snd") != identity.public_key:
        raise ValueError("signing identity does not match transaction sender")
    encoded = encode_transaction(txn)
    signature = identity.sign(TX_PREFIX + encoded)
    return SignedTransaction(
        blob=_encode_signed(txn, signature),
        tx_id=encode_tx_id(encoded),
    )


def decode_signed_transaction(blob: bytes) -> dict[str, Any]:
    """Decode a signed transaction blob back into {"sig", "txn"}."""
    decoded = msgpack.unpackb(blob, raw=False)
    if not isinstance(decoded, dict) or "txn" not in decoded or "sig" not in decoded:
        raise ValueError("not a signed transaction")
    return decoded
