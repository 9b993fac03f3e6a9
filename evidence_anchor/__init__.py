"""
evidence-anchor: anchor evidence fingerprints on the Algorand ledger.

An operator uploads an image, the pipeline fingerprints it (SHA-256),
derives a signing identity from a 25-word recovery phrase, and writes the
acknowledgement number plus fingerprint into the note of a zero-value
self-payment. The result is the confirmed transaction ID.

Entry point: ``SubmissionPipeline``. Ledger backend:
``evidence_anchor.algorand``.
"""

from evidence_anchor.config import Settings
from evidence_anchor.integrity import (
    ContentFingerprint,
    DigestCancelled,
    DigestJob,
    fingerprint_bytes,
)
from evidence_anchor.pipeline import (
    SubmissionPipeline,
    Transition,
    TransitionError,
    WorkflowState,
)
from evidence_anchor.record import (
    MAX_MEMO_BYTES,
    MEMO_SEPARATOR,
    AttestationRecord,
    ValidationError,
    build_record,
    compose_memo,
    decompose_memo,
)
from evidence_anchor.result import (
    Confirmed,
    Failed,
    FailureCode,
    FailureOrigin,
    FailureReason,
    SubmissionResult,
)

__version__ = "0.1.0"

__all__ = [
    "MAX_MEMO_BYTES",
    "MEMO_SEPARATOR",
    "AttestationRecord",
    "Confirmed",
    "ContentFingerprint",
    "DigestCancelled",
    "DigestJob",
    "Failed",
    "FailureCode",
    "FailureOrigin",
    "FailureReason",
    "Settings",
    "SubmissionPipeline",
    "SubmissionResult",
    "Transition",
    "TransitionError",
    "ValidationError",
    "WorkflowState",
    "build_record",
    "compose_memo",
    "decompose_memo",
    "fingerprint_bytes",
]
