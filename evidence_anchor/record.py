"""
Attestation record — what gets written into the ledger note.

An AttestationRecord binds a reference text (the acknowledgement number),
an optional content fingerprint, and the signing identity that will
anchor it.

Memo format:
    <reference_text>                              (no fingerprint)
    <reference_text> | Hash: <64 lowercase hex>   (with fingerprint)

    UTF-8 encoded. The separator and fingerprint length are fixed, so a
    reader splits at the final separator followed by exactly 64 hex chars
    and recovers both fields.

Invariants:
    - reference_text is non-empty after trimming and stored trimmed.
    - Encoded memo fits in MAX_MEMO_BYTES. Oversized records are rejected,
      never truncated.
    - Without a fingerprint, reference_text must not itself end in
      "<separator><64 hex>" (the memo would decompose ambiguously).
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field

from evidence_anchor.algorand.mnemonic import SigningIdentity
from evidence_anchor.algorand.tx import MAX_NOTE_BYTES
from evidence_anchor.integrity import ContentFingerprint

# Separator between reference text and fingerprint in the memo.
MEMO_SEPARATOR = " | Hash: "

# Largest memo the ledger note field accepts.
MAX_MEMO_BYTES = MAX_NOTE_BYTES

_TRAILING_FINGERPRINT_RE = re.compile(re.escape(MEMO_SEPARATOR) + r"([0-9a-f]{64})\Z")


class ValidationError(ValueError):
    """A record, memo or upload failed local validation."""


# =========================================================================
# Memo composition
# =========================================================================


def compose_memo(reference_text: str, fingerprint: ContentFingerprint | None) -> bytes:
    """Compose the UTF-8 memo bytes for a reference text and fingerprint."""
    text = reference_text
    if fingerprint is not None:
        text = f"{reference_text}{MEMO_SEPARATOR}{fingerprint.hex}"
    return text.encode("utf-8")


def decompose_memo(memo: bytes | str) -> tuple[str, ContentFingerprint | None]:
    """Split a memo back into (reference_text, fingerprint).

    Raises:
        ValidationError: If bytes are not valid UTF-8.
    """
    if isinstance(memo, bytes):
        try:
            memo = memo.decode("utf-8")
        except UnicodeDecodeError as exc:
            raise ValidationError(f"memo is not valid UTF-8: {exc}") from exc
    match = _TRAILING_FINGERPRINT_RE.search(memo)
    if match is None:
        return memo, None
    return memo[: match.start()], ContentFingerprint(match.group(1))


# =========================================================================
# AttestationRecord
# =========================================================================


@dataclass(frozen=True)
class AttestationRecord:
    """A validated, submittable attestation.

    Attributes:
        reference_text: Acknowledgement number or identifier (trimmed).
        fingerprint: SHA-256 of the evidence file, if one was digested.
        identity: Signing identity. Not part of equality or repr.
    """

    reference_text: str
    fingerprint: ContentFingerprint | None
    identity: SigningIdentity = field(compare=False)

    @property
    def sender(self) -> str:
        return self.identity.address

    def memo(self) -> bytes:
        return compose_memo(self.reference_text, self.fingerprint)

    def __repr__(self) -> str:
        return (
            f"AttestationRecord(reference_text={self.reference_text!r}, "
            f"fingerprint={self.fingerprint!r}, sender={self.sender!r})"
        )


def build_record(
    reference_text: str,
    fingerprint: ContentFingerprint | None,
    identity: SigningIdentity | None,
) -> AttestationRecord:
    """Validate inputs and build an AttestationRecord.

    Checks, in order: reference text non-empty, memo size, identity present.

    Raises:
        ValidationError: On the first failed check.
    """
    text = reference_text.strip()
    if not text:
        raise ValidationError("reference text must not be empty")
    if fingerprint is None and _TRAILING_FINGERPRINT_RE.search(text):
        raise ValidationError(
            f"reference text must not end with {MEMO_SEPARATOR.strip()!r} "
            "followed by a fingerprint"
        )

    memo = compose_memo(text, fingerprint)
    if len(memo) > MAX_MEMO_BYTES:
        raise ValidationError(
            f"memo exceeds {MAX_MEMO_BYTES} bytes (got {len(memo)} bytes)"
        )

    if identity is None:
        raise ValidationError("signing identity is required")

    return AttestationRecord(reference_text=text, fingerprint=fingerprint, identity=identity)
