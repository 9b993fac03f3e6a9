"""
Algod REST client — real network implementation of LedgerClient.

Translates algod v2 responses into ParamsResult / SubmitResult /
ConfirmationResult. Uses an injectable transport (AlgodTransport) so the
HTTP layer can be swapped for test fakes without changing parsing logic.

No retry loops around individual calls. No secrets. The only loop is the
confirmation poll, bounded by max_rounds.

Endpoints:
    - GET  /v2/transactions/params                 suggested params
    - POST /v2/transactions                        raw signed txn → {"txId"}
    - GET  /v2/transactions/pending/{txid}         pool / confirmation state
    - GET  /v2/status                              {"last-round": ...}
    - GET  /v2/status/wait-for-block-after/{round} blocks until next round
"""

from __future__ import annotations

import base64
import binascii
import logging
from typing import Any

from evidence_anchor.algorand.client import (
    ConfirmationResult,
    NetworkParameters,
    ParamsResult,
    SubmitResult,
)
from evidence_anchor.algorand.transport import (
    AlgodTransport,
    HttpxTransport,
    TransportResponse,
)

logger = logging.getLogger(__name__)

# Header carrying the algod API token.
TOKEN_HEADER = "X-Algo-API-Token"

# Rounds a transaction stays valid after first_valid.
DEFAULT_VALIDITY_WINDOW = 1000


class AlgodClient:
    """Algod v2 REST client implementing the LedgerClient protocol.

    Args:
        url: The algod endpoint (e.g. "https://testnet-api.algonode.cloud").
        token: API token. Public endpoints accept an empty token.
        transport: Injectable transport. Defaults to HttpxTransport.
        validity_window: last_valid - first_valid for built transactions.
    """

    def __init__(
        self,
        url: str,
        token: str = "",
        transport: AlgodTransport | None = None,
        *,
        validity_window: int = DEFAULT_VALIDITY_WINDOW,
    ) -> None:
        if validity_window < 1:
            raise ValueError(f"validity_window must be >= 1, got {validity_window}")
        self._url = url.rstrip("/")
        self._headers = {TOKEN_HEADER: token} if token else {}
        self._transport = transport or HttpxTransport()
        self._validity_window = validity_window

    @property
    def url(self) -> str:
        """The algod endpoint URL."""
        return self._url

    async def _get(self, path: str) -> TransportResponse:
        return await self._transport.get_json(f"{self._url}{path}", dict(self._headers))

    # -----------------------------------------------------------------
    # LedgerClient protocol methods
    # -----------------------------------------------------------------

    async def fetch_parameters(self) -> ParamsResult:
        """Fetch suggested transaction parameters.

        Transport exceptions propagate to the caller.
        """
        response = await self._get("/v2/transactions/params")
        return _parse_params_response(response, self._validity_window)

    async def submit(self, signed_payload: bytes) -> SubmitResult:
        """Post a signed transaction. Called once per attempt.

        Transport exceptions propagate to the caller.
        """
        response = await self._transport.post_bytes(
            f"{self._url}/v2/transactions", signed_payload, dict(self._headers)
        )
        return _parse_submit_response(response)

    async def await_confirmation(self, tx_id: str, max_rounds: int) -> ConfirmationResult:
        """Poll the pending-transaction endpoint once per round.

        Checks the transaction, then waits for the next block, until it is
        confirmed, dropped from the pool, or max_rounds rounds have passed.
        Each check and each wait is one round-trip. Transport exceptions
        propagate to the caller.
        """
        if max_rounds < 1:
            raise ValueError(f"max_rounds must be >= 1, got {max_rounds}")

        status = await self._get("/v2/status")
        if not status.ok:
            return _interrupted(status, "status query", rounds_waited=0)
        current_round = _int_field(status.body, "last-round")

        rounds_waited = 0
        while True:
            pending = await self._get(f"/v2/transactions/pending/{tx_id}")
            result = _parse_pending_response(pending, rounds_waited)
            if result is not None:
                return result

            if rounds_waited >= max_rounds:
                logger.debug("tx %s not confirmed after %d rounds", tx_id, rounds_waited)
                return ConfirmationResult(
                    confirmed=False,
                    timed_out=True,
                    rounds_waited=rounds_waited,
                    detail=f"not confirmed after {max_rounds} rounds",
                )

            waited = await self._get(f"/v2/status/wait-for-block-after/{current_round}")
            if not waited.ok:
                return _interrupted(waited, "block wait", rounds_waited=rounds_waited)
            current_round = _int_field(waited.body, "last-round", default=current_round + 1)
            rounds_waited += 1


# =====================================================================
# Response parsing (pure functions, no I/O)
# =====================================================================


def _message(response: TransportResponse) -> str:
    message = response.body.get("message")
    if isinstance(message, str) and message:
        return message
    return f"HTTP {response.status_code}"


def _int_field(body: dict[str, Any], key: str, default: int = 0) -> int:
    value = body.get(key, default)
    return value if isinstance(value, int) else default


def _interrupted(
    response: TransportResponse, what: str, *, rounds_waited: int
) -> ConfirmationResult:
    return ConfirmationResult(
        confirmed=False,
        rounds_waited=rounds_waited,
        detail=f"{what} failed: {_message(response)}",
    )


def _parse_params_response(
    response: TransportResponse, validity_window: int
) -> ParamsResult:
    """Parse a /v2/transactions/params response into ParamsResult.

    Handles:
        - Successful response with all fields
        - HTTP error statuses
        - Missing or malformed fields (ok=False with detail)
    """
    if not response.ok:
        return ParamsResult(
            ok=False, status_code=response.status_code, detail=_message(response)
        )

    body = response.body
    try:
        genesis_hash = base64.b64decode(body["genesis-hash"], validate=True)
        last_round = int(body["last-round"])
        genesis_id = str(body["genesis-id"])
    except (KeyError, TypeError, ValueError, binascii.Error) as exc:
        return ParamsResult(
            ok=False,
            status_code=response.status_code,
            detail=f"malformed params response: {exc!r}",
        )
    if len(genesis_hash) != 32:
        return ParamsResult(
            ok=False,
            status_code=response.status_code,
            detail=f"genesis-hash must be 32 bytes, got {len(genesis_hash)}",
        )

    return ParamsResult(
        ok=True,
        params=NetworkParameters(
            fee_per_byte=_int_field(body, "fee"),
            min_fee=_int_field(body, "min-fee", default=1000),
            first_valid=last_round,
            last_valid=last_round + validity_window,
            genesis_id=genesis_id,
            genesis_hash=genesis_hash,
        ),
    )


def _parse_submit_response(response: TransportResponse) -> SubmitResult:
    """Parse a POST /v2/transactions response into SubmitResult."""
    if not response.ok:
        return SubmitResult(
            accepted=False, status_code=response.status_code, detail=_message(response)
        )
    tx_id = response.body.get("txId")
    if not isinstance(tx_id, str) or not tx_id:
        return SubmitResult(
            accepted=False,
            status_code=response.status_code,
            detail="no txId in submit response",
        )
    return SubmitResult(accepted=True, tx_id=tx_id)


def _parse_pending_response(
    response: TransportResponse, rounds_waited: int
) -> ConfirmationResult | None:
    """Parse a pending-transaction response.

    Returns:
        A final ConfirmationResult (confirmed, rejected, or interrupted),
        or None when the transaction is still pending / not yet visible.
    """
    if response.status_code == 404:
        return None
    if not response.ok:
        return _interrupted(response, "pending query", rounds_waited=rounds_waited)

    confirmed_round = _int_field(response.body, "confirmed-round")
    if confirmed_round > 0:
        return ConfirmationResult(
            confirmed=True,
            confirmed_round=confirmed_round,
            rounds_waited=rounds_waited,
        )

    pool_error = response.body.get("pool-error")
    if isinstance(pool_error, str) and pool_error:
        return ConfirmationResult(
            confirmed=False,
            rejected=True,
            rounds_waited=rounds_waited,
            detail=pool_error,
        )
    return None
