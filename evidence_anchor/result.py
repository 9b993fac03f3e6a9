"""
Submission results — the single outcome of one attestation attempt.

Every attempt ends in exactly one result:

    - ``Confirmed`` — the transaction is in a confirmed round.
    - ``Failed`` — the attempt stopped, with a typed FailureReason.

Results are frozen. No secrets, ever.

Failure taxonomy (FailureCode):
    VALIDATION           bad reference text, oversize memo, bad upload.
                         Recoverable locally.
    INVALID_PHRASE       recovery phrase rejected. User re-enters it.
    NETWORK_UNAVAILABLE  node unreachable before the transaction was
                         accepted. Safe to restart the submit step.
    REJECTED             the network refused the transaction. Do not
                         resubmit the same payload.
    TIMEOUT              transaction sent but confirmation not observed.
                         Outcome unknown; carries tx_id for lookup. Never
                         resubmitted automatically.
    EXTERNAL             a collaborator outside the core failed (e.g. the
                         upload source could not be read).
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import StrEnum
from typing import Union


class FailureCode(StrEnum):
    """Error taxonomy for submission results."""

    VALIDATION = "VALIDATION"
    INVALID_PHRASE = "INVALID_PHRASE"
    NETWORK_UNAVAILABLE = "NETWORK_UNAVAILABLE"
    REJECTED = "REJECTED"
    TIMEOUT = "TIMEOUT"
    EXTERNAL = "EXTERNAL"


class FailureOrigin(StrEnum):
    """Where a failure came from."""

    CORE = "core"
    EXTERNAL = "external"


# Codes after which the user may retry without a reset.
RECOVERABLE_CODES = frozenset(
    {
        FailureCode.VALIDATION,
        FailureCode.INVALID_PHRASE,
        FailureCode.NETWORK_UNAVAILABLE,
    }
)


@dataclass(frozen=True)
class FailureReason:
    """Structured reason attached to a failed attempt.

    Attributes:
        code: Failure category.
        detail: Human-readable diagnostics.
        origin: Whether the failure is inside the core or a collaborator.
        tx_id: Transaction ID when the transaction was already sent and
            may still confirm (TIMEOUT). None otherwise.
    """

    code: FailureCode
    detail: str | None = None
    origin: FailureOrigin = FailureOrigin.CORE
    tx_id: str | None = None

    @property
    def recoverable(self) -> bool:
        return self.code in RECOVERABLE_CODES

    def to_dict(self) -> dict[str, object]:
        result: dict[str, object] = {"code": str(self.code), "origin": str(self.origin)}
        if self.detail is not None:
            result["detail"] = self.detail
        if self.tx_id is not None:
            result["tx_id"] = self.tx_id
        return result


@dataclass(frozen=True)
class Confirmed:
    """The attestation transaction was confirmed.

    Attributes:
        tx_id: Transaction ID, exactly as used for ledger lookup (and
            for any QR code rendered from it).
        confirmed_round: Round in which the transaction was included.
        sender: Address that signed the transaction.
    """

    tx_id: str
    confirmed_round: int
    sender: str

    def to_dict(self) -> dict[str, object]:
        return {
            "status": "CONFIRMED",
            "tx_id": self.tx_id,
            "confirmed_round": self.confirmed_round,
            "sender": self.sender,
        }


@dataclass(frozen=True)
class Failed:
    """The attestation attempt failed."""

    reason: FailureReason

    @property
    def code(self) -> FailureCode:
        return self.reason.code

    def to_dict(self) -> dict[str, object]:
        return {"status": "FAILED", "reason": self.reason.to_dict()}


SubmissionResult = Union[Confirmed, Failed]
