"""
Ledger client protocol — the network boundary.

Defines the interface that the pipeline depends on, not a concrete
implementation. This keeps the pipeline testable and keeps HTTP out
of business logic.

Concrete implementations:
    - AlgodClient (algod v2 REST)
    - FakeLedgerClient (tests)

The protocol has exactly three methods:
    - fetch_parameters() → ParamsResult
    - submit(signed_payload) → SubmitResult
    - await_confirmation(tx_id, max_rounds) → ConfirmationResult

All return frozen dataclasses. No exceptions for "expected" failures
(rejections, not-yet-confirmed, timeouts) — those are captured in the
result objects. Connectivity failures propagate as exceptions and are
classified by the adapter.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Protocol, runtime_checkable


# =========================================================================
# Result types
# =========================================================================


@dataclass(frozen=True)
class NetworkParameters:
    """Current network parameters needed to build a valid transaction.

    Attributes:
        fee_per_byte: Suggested fee in microAlgos per byte (often 0).
        min_fee: Minimum fee in microAlgos.
        first_valid: First round in which the transaction may be applied.
        last_valid: Last round in which the transaction may be applied.
        genesis_id: Network genesis ID (e.g. "testnet-v1.0").
        genesis_hash: 32-byte network genesis hash.
    """

    fee_per_byte: int
    min_fee: int
    first_valid: int
    last_valid: int
    genesis_id: str
    genesis_hash: bytes


@dataclass(frozen=True)
class ParamsResult:
    """Result of fetching network parameters.

    Attributes:
        ok: Whether parameters were retrieved.
        params: The parameters. None when ok is False.
        status_code: HTTP status of a failed response, if any.
        detail: Human-readable detail for diagnostics.
    """

    ok: bool
    params: NetworkParameters | None = None
    status_code: int | None = None
    detail: str | None = None


@dataclass(frozen=True)
class SubmitResult:
    """Result of submitting a signed transaction.

    Attributes:
        accepted: Whether the node accepted the transaction into its pool.
            True does NOT mean confirmed.
        tx_id: Transaction ID reported by the node. None on rejection.
        status_code: HTTP status of a failed response, if any.
        detail: Rejection message from the node.
    """

    accepted: bool
    tx_id: str | None = None
    status_code: int | None = None
    detail: str | None = None


@dataclass(frozen=True)
class ConfirmationResult:
    """Result of waiting for a transaction to be confirmed.

    Attributes:
        confirmed: Whether the transaction was included in a round.
        confirmed_round: Round of inclusion. None unless confirmed.
        rejected: The node dropped the transaction from its pool.
        timed_out: max_rounds elapsed without confirmation.
        rounds_waited: Number of rounds observed while polling.
        detail: Pool error or other diagnostics.
    """

    confirmed: bool
    confirmed_round: int | None = None
    rejected: bool = False
    timed_out: bool = False
    rounds_waited: int = 0
    detail: str | None = None


# =========================================================================
# Protocol
# =========================================================================


@runtime_checkable
class LedgerClient(Protocol):
    """Interface for ledger network operations.

    Methods are async because network I/O is inherently asynchronous.
    Each call is a bounded number of round-trips with no internal retry;
    retry policy belongs to the caller.
    """

    async def fetch_parameters(self) -> ParamsResult:
        """Retrieve current fee and round parameters. No side effects."""
        ...

    async def submit(self, signed_payload: bytes) -> SubmitResult:
        """Send a signed transaction exactly once.

        The caller must not call this twice for the same logical attempt;
        the network gives no idempotency guarantee.
        """
        ...

    async def await_confirmation(self, tx_id: str, max_rounds: int) -> ConfirmationResult:
        """Poll until the transaction is confirmed or max_rounds elapse."""
        ...
