"""
Algorand attestation adapter.

Composes the pure planning layer (record memo, tx.py) with the impure
network boundary (client.py) and turns every network outcome into a
typed value. Nothing here raises for network trouble.

Steps, in the order the pipeline runs them:
    - ``fetch_parameters()`` — impure. NetworkParameters or FailureReason.
    - ``plan()`` — pure. Unsigned txn from a record + parameters.
    - ``sign()`` — pure. Signs a plan with the record's identity.
    - ``submit()`` — impure. Sends the signed blob once. tx_id or
      FailureReason.
    - ``confirm()`` — impure. Polls up to max_rounds. Confirmed or Failed.

Secrets never appear in plans, results, logs, or failure details.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any

from evidence_anchor.algorand.client import LedgerClient, NetworkParameters
from evidence_anchor.algorand.errors import (
    classify_connection_error,
    classify_http_status,
    classify_timeout,
)
from evidence_anchor.algorand.tx import (
    SignedTransaction,
    plan_payment_to_self,
    sign_transaction,
    transaction_id,
)
from evidence_anchor.integrity import sha256_digest
from evidence_anchor.record import AttestationRecord
from evidence_anchor.result import (
    Confirmed,
    Failed,
    FailureCode,
    FailureReason,
    SubmissionResult,
)

logger = logging.getLogger(__name__)


# =========================================================================
# AnchorPlan (pure result of plan())
# =========================================================================


@dataclass(frozen=True)
class AnchorPlan:
    """Result of plan() — everything needed to sign and submit.

    Attributes:
        txn: Unsigned transaction dict (zero-value Payment-to-self).
        tx_id: Transaction ID the signed transaction will have.
        memo: Note bytes carried by the transaction.
        memo_digest: Prefixed digest of the note bytes ("sha256:...").
        sender: Address that will sign (also the receiver).
        fee: Fee in microAlgos.
    """

    txn: dict[str, Any]
    tx_id: str
    memo: bytes
    memo_digest: str
    sender: str
    fee: int


# =========================================================================
# plan() / sign() (pure)
# =========================================================================


def plan(record: AttestationRecord, params: NetworkParameters) -> AnchorPlan:
    """Build the unsigned anchoring transaction for a record.

    record → memo bytes → Payment-to-self txn → transaction ID

    Raises:
        ValueError: If the sender address or note is invalid.
    """
    memo = record.memo()
    txn = plan_payment_to_self(record.sender, memo, params)
    return AnchorPlan(
        txn=txn,
        tx_id=transaction_id(txn),
        memo=memo,
        memo_digest=f"sha256:{sha256_digest(memo)}",
        sender=record.sender,
        fee=int(txn["fee"]),
    )


def sign(anchor_plan: AnchorPlan, record: AttestationRecord) -> SignedTransaction:
    """Sign a plan with the record's identity.

    Raises:
        ValueError: If the identity does not match the plan's sender.
    """
    return sign_transaction(anchor_plan.txn, record.identity)


# =========================================================================
# Network steps (impure)
# =========================================================================


async def fetch_parameters(client: LedgerClient) -> NetworkParameters | FailureReason:
    """Fetch network parameters, mapping every failure to a FailureReason."""
    try:
        result = await client.fetch_parameters()
    except Exception as exc:
        logger.debug("fetch parameters raised %r", exc)
        return FailureReason(
            code=classify_connection_error(),
            detail=f"fetch parameters failed: {exc!r}",
        )

    if not result.ok or result.params is None:
        return FailureReason(
            code=classify_http_status(result.status_code),
            detail=f"fetch parameters failed: {result.detail}",
        )
    return result.params


async def submit(signed: SignedTransaction, client: LedgerClient) -> str | FailureReason:
    """Send a signed transaction exactly once.

    Returns:
        The transaction ID on acceptance, else a FailureReason
        (NETWORK_UNAVAILABLE or REJECTED).
    """
    try:
        result = await client.submit(signed.blob)
    except Exception as exc:
        logger.debug("submit raised %r", exc)
        return FailureReason(
            code=classify_connection_error(),
            detail=f"submit failed: {exc!r}",
        )

    if not result.accepted:
        code = classify_http_status(result.status_code)
        detail_parts: list[str] = []
        if result.status_code is not None:
            detail_parts.append(f"status={result.status_code}")
        if result.detail:
            detail_parts.append(result.detail)
        return FailureReason(
            code=code,
            detail="; ".join(detail_parts) if detail_parts else None,
        )

    if result.tx_id is not None and result.tx_id != signed.tx_id:
        logger.warning(
            "node reported tx id %s, expected %s", result.tx_id, signed.tx_id
        )
    return result.tx_id or signed.tx_id


async def confirm(
    tx_id: str,
    client: LedgerClient,
    *,
    max_rounds: int,
    sender: str,
) -> SubmissionResult:
    """Wait for a submitted transaction to be confirmed.

    The transaction has already been sent, so anything short of a
    confirmation or an explicit pool rejection is TIMEOUT: the outcome
    is unknown and the caller must not resubmit. The tx_id is attached
    so the user can look it up later.
    """
    try:
        result = await client.await_confirmation(tx_id, max_rounds)
    except Exception as exc:
        logger.debug("confirmation polling for %s raised %r", tx_id, exc)
        return Failed(
            FailureReason(
                code=classify_timeout(),
                detail=f"confirmation polling interrupted: {exc!r}",
                tx_id=tx_id,
            )
        )

    if result.confirmed and result.confirmed_round is not None:
        return Confirmed(tx_id=tx_id, confirmed_round=result.confirmed_round, sender=sender)

    if result.rejected:
        return Failed(
            FailureReason(code=FailureCode.REJECTED, detail=result.detail, tx_id=tx_id)
        )

    detail = result.detail
    if result.timed_out:
        detail = f"not confirmed within {max_rounds} rounds"
    return Failed(FailureReason(code=classify_timeout(), detail=detail, tx_id=tx_id))
