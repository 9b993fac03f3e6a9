"""
Submission pipeline — the attestation workflow as an explicit state machine.

States:

    IDLE ──select_file──▶ FILE_LOADED ──compute_digest──▶ DIGESTING
      ▲                        ▲                              │
      │                        └───── file replaced ──────────┤
      │                                                       ▼
    reset          AWAITING_CREDENTIALS ◀──provide_credentials── DIGEST_READY
      │                    │
      │                 submit
      │                    ▼
      └──── CONFIRMED ◀── SUBMITTING ──▶ FAILED

    CONFIRMED and FAILED are terminal; only reset() leaves them.

Guards:
    - select_file: image media types only; rejected files leave the state
      untouched. Replacing the file while DIGESTING cancels that digest and
      its result is dropped (last file wins).
    - provide_credentials: the phrase must derive; only the public address
      is kept.
    - submit: single flight. A second call while SUBMITTING raises
      TransitionError and does not touch the attempt in progress.

One submit() call produces exactly one SubmissionResult. Recoverable
failures return to an earlier state instead of FAILED:

    VALIDATION           → AWAITING_CREDENTIALS
    INVALID_PHRASE       → DIGEST_READY
    NETWORK_UNAVAILABLE  → DIGEST_READY (fingerprint kept)

Secrets:
    The recovery phrase and the derived identity live only inside one
    provide_credentials() or submit() call and are wiped before it returns,
    on every path. Neither is stored on the pipeline or logged.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import StrEnum
from typing import BinaryIO

from evidence_anchor.algorand import adapter
from evidence_anchor.algorand.client import LedgerClient
from evidence_anchor.algorand.mnemonic import InvalidPhrase, SigningIdentity, derive
from evidence_anchor.config import Settings
from evidence_anchor.integrity import (
    ContentFingerprint,
    DigestCancelled,
    DigestJob,
    ProgressCallback,
)
from evidence_anchor.record import ValidationError, build_record
from evidence_anchor.result import (
    Failed,
    FailureCode,
    FailureOrigin,
    FailureReason,
    SubmissionResult,
)

logger = logging.getLogger(__name__)


class WorkflowState(StrEnum):
    """Where the session is in the attestation workflow."""

    IDLE = "IDLE"
    FILE_LOADED = "FILE_LOADED"
    DIGESTING = "DIGESTING"
    DIGEST_READY = "DIGEST_READY"
    AWAITING_CREDENTIALS = "AWAITING_CREDENTIALS"
    SUBMITTING = "SUBMITTING"
    CONFIRMED = "CONFIRMED"
    FAILED = "FAILED"


TERMINAL_STATES = frozenset({WorkflowState.CONFIRMED, WorkflowState.FAILED})

# States from which a new file may replace the current one.
_FILE_SELECTABLE = frozenset(
    {
        WorkflowState.IDLE,
        WorkflowState.FILE_LOADED,
        WorkflowState.DIGESTING,
        WorkflowState.DIGEST_READY,
        WorkflowState.AWAITING_CREDENTIALS,
    }
)

# Where a recoverable failure sends the session.
_RECOVERY_STATES: dict[FailureCode, WorkflowState] = {
    FailureCode.VALIDATION: WorkflowState.AWAITING_CREDENTIALS,
    FailureCode.INVALID_PHRASE: WorkflowState.DIGEST_READY,
    FailureCode.NETWORK_UNAVAILABLE: WorkflowState.DIGEST_READY,
}

IMAGE_MEDIA_PREFIX = "image/"


class TransitionError(RuntimeError):
    """An operation was called in a state that does not allow it."""


@dataclass(frozen=True)
class Transition:
    """One recorded state change."""

    source: WorkflowState
    target: WorkflowState
    event: str


@dataclass(frozen=True)
class _SelectedFile:
    content: bytes | bytearray | memoryview | BinaryIO
    media_type: str
    size: int | None


def _aborted(exc: BaseException, sent_tx_id: str | None) -> FailureReason:
    """Failure for an attempt cut short by an unexpected exception."""
    if sent_tx_id is not None:
        return FailureReason(
            code=FailureCode.TIMEOUT,
            detail=f"submission interrupted after send: {exc!r}",
            tx_id=sent_tx_id,
        )
    return FailureReason(
        code=FailureCode.EXTERNAL,
        detail=f"submission aborted: {exc!r}",
        origin=FailureOrigin.EXTERNAL,
    )


class SubmissionPipeline:
    """Drives one attestation session from upload to ledger result.

    Args:
        client: Ledger network boundary.
        settings: Runtime settings. Defaults to Settings() (testnet).
    """

    def __init__(self, client: LedgerClient, *, settings: Settings | None = None) -> None:
        self._client = client
        self._settings = settings or Settings()
        self._state = WorkflowState.IDLE
        self._history: list[Transition] = []
        self._generation = 0
        self._file: _SelectedFile | None = None
        self._job: DigestJob | None = None
        self._progress = 0.0
        self._fingerprint: ContentFingerprint | None = None
        self._address: str | None = None
        self._last_result: SubmissionResult | None = None

    # -----------------------------------------------------------------
    # Read-only view
    # -----------------------------------------------------------------

    @property
    def state(self) -> WorkflowState:
        return self._state

    @property
    def fingerprint(self) -> ContentFingerprint | None:
        return self._fingerprint

    @property
    def address(self) -> str | None:
        """Address derived by provide_credentials(), for display."""
        return self._address

    @property
    def media_type(self) -> str | None:
        return self._file.media_type if self._file is not None else None

    @property
    def file_size(self) -> int | None:
        return self._file.size if self._file is not None else None

    @property
    def digest_progress(self) -> float:
        return self._progress

    @property
    def last_result(self) -> SubmissionResult | None:
        return self._last_result

    @property
    def history(self) -> list[Transition]:
        return list(self._history)

    # -----------------------------------------------------------------
    # Internals
    # -----------------------------------------------------------------

    def _transition(self, target: WorkflowState, event: str) -> None:
        source = self._state
        self._state = target
        self._history.append(Transition(source=source, target=target, event=event))
        logger.info("workflow %s -> %s (%s)", source, target, event)

    def _require(self, allowed: frozenset[WorkflowState] | set[WorkflowState], action: str) -> None:
        if self._state not in allowed:
            raise TransitionError(f"cannot {action} in state {self._state}")

    def _finish(self, result: SubmissionResult) -> SubmissionResult:
        """Record the single result of an attempt and move to its state."""
        self._last_result = result
        if not isinstance(result, Failed):
            logger.info(
                "attestation confirmed: tx %s in round %d", result.tx_id, result.confirmed_round
            )
            self._transition(WorkflowState.CONFIRMED, "confirmed")
            return result

        reason = result.reason
        target = _RECOVERY_STATES.get(reason.code, WorkflowState.FAILED)
        logger.warning("attestation failed: %s (%s)", reason.code, reason.detail)
        if target == WorkflowState.DIGEST_READY:
            self._address = None
        self._transition(target, f"failed:{reason.code}")
        return result

    def _cancel_digest(self) -> None:
        if self._job is not None:
            self._job.cancel()
            self._job = None

    # -----------------------------------------------------------------
    # Upload and digest
    # -----------------------------------------------------------------

    def select_file(
        self,
        content: bytes | bytearray | memoryview | BinaryIO,
        media_type: str,
        *,
        size: int | None = None,
    ) -> None:
        """Attach an uploaded file to the session.

        Replaces any previous file; its fingerprint and derived address are
        discarded and an in-flight digest is cancelled.

        Args:
            content: File bytes or a binary stream.
            media_type: Declared media type; must be ``image/*``.
            size: Byte size for streams (used for progress and the upload
                limit). Ignored for in-memory content.

        Raises:
            ValidationError: Not an image, or larger than the upload limit.
                The session is unchanged.
            TransitionError: Called while SUBMITTING or in a terminal state.
        """
        self._require(_FILE_SELECTABLE, "select a file")
        if not media_type.lower().startswith(IMAGE_MEDIA_PREFIX):
            logger.warning("rejected upload with media type %r", media_type)
            raise ValidationError(f"only image files are accepted, got {media_type!r}")

        if isinstance(content, (bytes, bytearray, memoryview)):
            size = len(content)
        if size is not None and size > self._settings.max_upload_bytes:
            logger.warning("rejected upload of %d bytes", size)
            raise ValidationError(
                f"file exceeds {self._settings.max_upload_bytes} bytes (got {size} bytes)"
            )

        self._cancel_digest()
        self._generation += 1
        self._file = _SelectedFile(content=content, media_type=media_type, size=size)
        self._fingerprint = None
        self._address = None
        self._progress = 0.0
        self._transition(WorkflowState.FILE_LOADED, "file_selected")

    async def compute_digest(
        self, on_progress: ProgressCallback | None = None
    ) -> ContentFingerprint | None:
        """Fingerprint the selected file.

        Args:
            on_progress: Receives the fraction of bytes processed. Only
                called while this digest is still the current one.

        Returns:
            The fingerprint, or None when the result was dropped (the file
            was replaced or the session reset meanwhile) or reading the
            file failed (the session is then FAILED).

        Raises:
            TransitionError: Not in FILE_LOADED.
        """
        self._require({WorkflowState.FILE_LOADED}, "start a digest")
        if self._file is None:
            raise TransitionError("no file selected")
        generation = self._generation
        job = DigestJob(
            self._file.content,
            total_size=self._file.size,
            chunk_size=self._settings.digest_chunk_size,
        )
        self._job = job
        self._progress = 0.0
        self._transition(WorkflowState.DIGESTING, "digest_started")

        def report(fraction: float) -> None:
            if generation != self._generation:
                return
            self._progress = fraction
            if on_progress is not None:
                on_progress(fraction)

        try:
            fingerprint = await job.run(report)
        except DigestCancelled:
            logger.debug("digest for superseded file cancelled")
            return None
        except Exception as exc:
            if generation != self._generation:
                return None
            self._job = None
            self._finish(
                Failed(
                    FailureReason(
                        code=FailureCode.EXTERNAL,
                        detail=f"reading the uploaded file failed: {exc!r}",
                        origin=FailureOrigin.EXTERNAL,
                    )
                )
            )
            return None

        if generation != self._generation:
            logger.debug("dropping stale digest result")
            return None

        self._job = None
        self._fingerprint = fingerprint
        self._transition(WorkflowState.DIGEST_READY, "digest_done")
        return fingerprint

    # -----------------------------------------------------------------
    # Credentials and submission
    # -----------------------------------------------------------------

    def provide_credentials(self, phrase: str) -> str:
        """Check a recovery phrase and return the address it controls.

        Only the address is kept. The phrase must be supplied again to
        submit().

        Raises:
            InvalidPhrase: The phrase does not derive. Nothing changes.
            TransitionError: Not in DIGEST_READY or AWAITING_CREDENTIALS.
        """
        self._require(
            {WorkflowState.DIGEST_READY, WorkflowState.AWAITING_CREDENTIALS},
            "check credentials",
        )
        try:
            identity = derive(phrase)
        except InvalidPhrase as exc:
            logger.warning("recovery phrase rejected: %s", exc)
            raise
        try:
            self._address = identity.address
        finally:
            identity.wipe()
        if self._state != WorkflowState.AWAITING_CREDENTIALS:
            self._transition(WorkflowState.AWAITING_CREDENTIALS, "credentials_valid")
        logger.info("credentials accepted for %s", self._address)
        return self._address

    async def submit(self, reference_text: str, phrase: str) -> SubmissionResult:
        """Anchor the reference text and fingerprint on the ledger.

        Runs: derive identity → build record → fetch parameters → plan and
        sign → submit once → await confirmation. The first failing step
        ends the attempt; nothing is retried.

        An unexpected exception also ends the attempt in FAILED: TIMEOUT
        with the tx id once the node has accepted it, EXTERNAL before.
        Cancellation is recorded the same way and then re-raised.

        Raises:
            TransitionError: A submission is already in flight, or the
                session is not in AWAITING_CREDENTIALS.
        """
        if self._state == WorkflowState.SUBMITTING:
            raise TransitionError("a submission is already in flight")
        self._require({WorkflowState.AWAITING_CREDENTIALS}, "submit")
        self._transition(WorkflowState.SUBMITTING, "submit")

        identity: SigningIdentity | None = None
        sent_tx_id: str | None = None
        try:
            try:
                identity = derive(phrase)
            except InvalidPhrase as exc:
                return self._finish(Failed(FailureReason(FailureCode.INVALID_PHRASE, str(exc))))
            if identity.address != self._address:
                return self._finish(
                    Failed(
                        FailureReason(
                            FailureCode.INVALID_PHRASE,
                            "recovery phrase does not match the confirmed address",
                        )
                    )
                )

            try:
                record = build_record(reference_text, self._fingerprint, identity)
            except ValidationError as exc:
                return self._finish(Failed(FailureReason(FailureCode.VALIDATION, str(exc))))

            params = await adapter.fetch_parameters(self._client)
            if isinstance(params, FailureReason):
                return self._finish(Failed(params))

            try:
                anchor_plan = adapter.plan(record, params)
                signed = adapter.sign(anchor_plan, record)
            except ValueError as exc:
                return self._finish(
                    Failed(FailureReason(FailureCode.REJECTED, f"signing failed: {exc}"))
                )
            logger.info(
                "submitting tx %s from %s (fee %d, memo %s)",
                signed.tx_id, anchor_plan.sender, anchor_plan.fee, anchor_plan.memo_digest,
            )

            accepted = await adapter.submit(signed, self._client)
            if isinstance(accepted, FailureReason):
                return self._finish(Failed(accepted))
            sent_tx_id = accepted

            result = await adapter.confirm(
                sent_tx_id,
                self._client,
                max_rounds=self._settings.max_rounds,
                sender=record.sender,
            )
            return self._finish(result)
        except Exception as exc:
            if self._state != WorkflowState.SUBMITTING:
                raise
            logger.exception("submission aborted")
            return self._finish(Failed(_aborted(exc, sent_tx_id)))
        except BaseException as exc:
            # Cancellation: leave SUBMITTING before propagating.
            if self._state == WorkflowState.SUBMITTING:
                self._finish(Failed(_aborted(exc, sent_tx_id)))
            raise
        finally:
            if identity is not None:
                identity.wipe()

    # -----------------------------------------------------------------
    # Reset
    # -----------------------------------------------------------------

    def reset(self) -> None:
        """Discard the session and return to IDLE.

        Raises:
            TransitionError: A submission is in flight.
        """
        if self._state == WorkflowState.SUBMITTING:
            raise TransitionError("cannot reset while a submission is in flight")
        self._cancel_digest()
        self._generation += 1
        self._file = None
        self._fingerprint = None
        self._address = None
        self._progress = 0.0
        self._last_result = None
        self._transition(WorkflowState.IDLE, "reset")
