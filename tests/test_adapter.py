"""
Tests for the Algorand adapter: plan(), sign(), and the network steps.

All tests use a fake ledger client — no network calls.

Test plan:
- plan: memo from the record, memo_digest is prefixed, tx_id matches the
  signed transaction, sender and fee exposed
- fetch_parameters: ok → NetworkParameters, 5xx → NETWORK_UNAVAILABLE,
  4xx → REJECTED, connection error or any other client exception (an
  undecodable body, an unexpected bug) → NETWORK_UNAVAILABLE
- submit: accepted → tx_id, rejected → REJECTED with status and message,
  5xx → NETWORK_UNAVAILABLE, connection error → NETWORK_UNAVAILABLE,
  exactly one client call
- confirm: confirmed → Confirmed, pool rejection → REJECTED with tx_id,
  timeout/interrupted/connection error/any client exception → TIMEOUT
  with tx_id; cancellation is never swallowed
- Classification: 5xx → NETWORK_UNAVAILABLE, 4xx and missing status →
  REJECTED, client exceptions → NETWORK_UNAVAILABLE, unobserved → TIMEOUT
"""

import asyncio
import logging

import httpx
import pytest

from evidence_anchor.algorand.adapter import (
    AnchorPlan,
    confirm,
    fetch_parameters,
    plan,
    sign,
    submit,
)
from evidence_anchor.algorand.errors import (
    classify_connection_error,
    classify_http_status,
    classify_timeout,
)
from evidence_anchor.algorand.client import (
    ConfirmationResult,
    NetworkParameters,
    ParamsResult,
    SubmitResult,
)
from evidence_anchor.algorand.mnemonic import derive, phrase_from_seed
from evidence_anchor.algorand.tx import decode_signed_transaction
from evidence_anchor.integrity import fingerprint_bytes, sha256_digest
from evidence_anchor.record import build_record
from evidence_anchor.result import Confirmed, Failed, FailureCode, FailureReason

# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------

PHRASE = phrase_from_seed(bytes(range(32)))
FINGERPRINT = fingerprint_bytes(b"evidence image")
PARAMS = NetworkParameters(
    fee_per_byte=0,
    min_fee=1000,
    first_valid=100,
    last_valid=1100,
    genesis_id="testnet-v1.0",
    genesis_hash=bytes(32),
)
TX_ID = "B" * 52


def _record():
    return build_record("ACK-77", FINGERPRINT, derive(PHRASE))


# ---------------------------------------------------------------------------
# Fake client
# ---------------------------------------------------------------------------


class FakeClient:
    """Minimal LedgerClient implementation for testing."""

    def __init__(
        self,
        *,
        params_result: ParamsResult | None = None,
        submit_result: SubmitResult | None = None,
        confirmation: ConfirmationResult | None = None,
        should_raise: Exception | None = None,
    ) -> None:
        self._params_result = params_result or ParamsResult(ok=True, params=PARAMS)
        self._submit_result = submit_result or SubmitResult(accepted=True, tx_id=TX_ID)
        self._confirmation = confirmation or ConfirmationResult(
            confirmed=True, confirmed_round=101
        )
        self._should_raise = should_raise
        self.submit_calls: list[bytes] = []
        self.confirm_calls: list[tuple[str, int]] = []

    async def fetch_parameters(self) -> ParamsResult:
        if self._should_raise is not None:
            raise self._should_raise
        return self._params_result

    async def submit(self, signed_payload: bytes) -> SubmitResult:
        self.submit_calls.append(signed_payload)
        if self._should_raise is not None:
            raise self._should_raise
        return self._submit_result

    async def await_confirmation(self, tx_id: str, max_rounds: int) -> ConfirmationResult:
        self.confirm_calls.append((tx_id, max_rounds))
        if self._should_raise is not None:
            raise self._should_raise
        return self._confirmation


# ---------------------------------------------------------------------------
# plan() / sign()
# ---------------------------------------------------------------------------


class TestPlan:
    def test_returns_anchor_plan(self) -> None:
        record = _record()
        result = plan(record, PARAMS)
        assert isinstance(result, AnchorPlan)
        assert result.sender == record.sender
        assert result.fee == 1000

    def test_memo_from_record(self) -> None:
        record = _record()
        result = plan(record, PARAMS)
        assert result.memo == record.memo()
        assert result.txn["note"] == record.memo()

    def test_memo_digest_prefixed(self) -> None:
        result = plan(_record(), PARAMS)
        assert result.memo_digest == f"sha256:{sha256_digest(result.memo)}"

    def test_sign_matches_plan(self) -> None:
        record = _record()
        anchor_plan = plan(record, PARAMS)
        signed = sign(anchor_plan, record)
        assert signed.tx_id == anchor_plan.tx_id
        assert decode_signed_transaction(signed.blob)["txn"] == anchor_plan.txn

    def test_sign_with_wiped_identity_fails(self) -> None:
        record = _record()
        anchor_plan = plan(record, PARAMS)
        record.identity.wipe()
        with pytest.raises(ValueError):
            sign(anchor_plan, record)


# ---------------------------------------------------------------------------
# fetch_parameters()
# ---------------------------------------------------------------------------


class TestFetchParameters:
    @pytest.mark.asyncio
    async def test_ok(self) -> None:
        assert await fetch_parameters(FakeClient()) == PARAMS

    @pytest.mark.asyncio
    async def test_server_error(self) -> None:
        client = FakeClient(
            params_result=ParamsResult(ok=False, status_code=503, detail="catching up")
        )
        result = await fetch_parameters(client)
        assert isinstance(result, FailureReason)
        assert result.code == FailureCode.NETWORK_UNAVAILABLE
        assert "catching up" in (result.detail or "")

    @pytest.mark.asyncio
    async def test_client_error(self) -> None:
        client = FakeClient(params_result=ParamsResult(ok=False, status_code=401))
        result = await fetch_parameters(client)
        assert isinstance(result, FailureReason)
        assert result.code == FailureCode.REJECTED

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "exc",
        [ConnectionError("refused"), httpx.ConnectError("dns"), TimeoutError()],
    )
    async def test_connection_error(self, exc: Exception) -> None:
        result = await fetch_parameters(FakeClient(should_raise=exc))
        assert isinstance(result, FailureReason)
        assert result.code == FailureCode.NETWORK_UNAVAILABLE
        assert result.tx_id is None

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "exc",
        [httpx.DecodingError("invalid JSON body"), RuntimeError("boom"), KeyError("fee")],
    )
    async def test_unexpected_exception(self, exc: Exception) -> None:
        result = await fetch_parameters(FakeClient(should_raise=exc))
        assert isinstance(result, FailureReason)
        assert result.code == FailureCode.NETWORK_UNAVAILABLE
        assert type(exc).__name__ in (result.detail or "")

    @pytest.mark.asyncio
    async def test_cancellation_propagates(self) -> None:
        client = FakeClient(should_raise=asyncio.CancelledError())  # type: ignore[arg-type]
        with pytest.raises(asyncio.CancelledError):
            await fetch_parameters(client)


# ---------------------------------------------------------------------------
# submit()
# ---------------------------------------------------------------------------


class TestSubmit:
    @pytest.mark.asyncio
    async def test_accepted(self) -> None:
        record = _record()
        signed = sign(plan(record, PARAMS), record)
        client = FakeClient(submit_result=SubmitResult(accepted=True, tx_id=signed.tx_id))
        assert await submit(signed, client) == signed.tx_id
        assert client.submit_calls == [signed.blob]

    @pytest.mark.asyncio
    async def test_node_tx_id_mismatch_logged(self, caplog: pytest.LogCaptureFixture) -> None:
        record = _record()
        signed = sign(plan(record, PARAMS), record)
        with caplog.at_level(logging.WARNING):
            result = await submit(signed, FakeClient())
        assert result == TX_ID
        assert "expected" in caplog.text

    @pytest.mark.asyncio
    async def test_rejected(self) -> None:
        record = _record()
        signed = sign(plan(record, PARAMS), record)
        client = FakeClient(
            submit_result=SubmitResult(accepted=False, status_code=400, detail="overspend")
        )
        result = await submit(signed, client)
        assert isinstance(result, FailureReason)
        assert result.code == FailureCode.REJECTED
        assert result.detail == "status=400; overspend"
        assert len(client.submit_calls) == 1

    @pytest.mark.asyncio
    async def test_server_error(self) -> None:
        record = _record()
        signed = sign(plan(record, PARAMS), record)
        client = FakeClient(submit_result=SubmitResult(accepted=False, status_code=503))
        result = await submit(signed, client)
        assert isinstance(result, FailureReason)
        assert result.code == FailureCode.NETWORK_UNAVAILABLE

    @pytest.mark.asyncio
    async def test_connection_error(self) -> None:
        record = _record()
        signed = sign(plan(record, PARAMS), record)
        client = FakeClient(should_raise=httpx.ConnectError("refused"))
        result = await submit(signed, client)
        assert isinstance(result, FailureReason)
        assert result.code == FailureCode.NETWORK_UNAVAILABLE
        assert len(client.submit_calls) == 1

    @pytest.mark.asyncio
    async def test_undecodable_response(self) -> None:
        record = _record()
        signed = sign(plan(record, PARAMS), record)
        client = FakeClient(should_raise=httpx.DecodingError("invalid JSON body"))
        result = await submit(signed, client)
        assert isinstance(result, FailureReason)
        assert result.code == FailureCode.NETWORK_UNAVAILABLE
        assert len(client.submit_calls) == 1


# ---------------------------------------------------------------------------
# confirm()
# ---------------------------------------------------------------------------


class TestConfirm:
    @pytest.mark.asyncio
    async def test_confirmed(self) -> None:
        client = FakeClient()
        result = await confirm(TX_ID, client, max_rounds=4, sender="SENDER")
        assert result == Confirmed(tx_id=TX_ID, confirmed_round=101, sender="SENDER")
        assert client.confirm_calls == [(TX_ID, 4)]

    @pytest.mark.asyncio
    async def test_rejected(self) -> None:
        client = FakeClient(
            confirmation=ConfirmationResult(confirmed=False, rejected=True, detail="overspend")
        )
        result = await confirm(TX_ID, client, max_rounds=4, sender="SENDER")
        assert isinstance(result, Failed)
        assert result.code == FailureCode.REJECTED
        assert result.reason.tx_id == TX_ID

    @pytest.mark.asyncio
    async def test_timed_out(self) -> None:
        client = FakeClient(
            confirmation=ConfirmationResult(confirmed=False, timed_out=True, rounds_waited=4)
        )
        result = await confirm(TX_ID, client, max_rounds=4, sender="SENDER")
        assert isinstance(result, Failed)
        assert result.code == FailureCode.TIMEOUT
        assert result.reason.tx_id == TX_ID
        assert result.reason.detail == "not confirmed within 4 rounds"

    @pytest.mark.asyncio
    async def test_interrupted_is_timeout(self) -> None:
        client = FakeClient(
            confirmation=ConfirmationResult(confirmed=False, detail="pending query failed")
        )
        result = await confirm(TX_ID, client, max_rounds=4, sender="SENDER")
        assert isinstance(result, Failed)
        assert result.code == FailureCode.TIMEOUT
        assert result.reason.detail == "pending query failed"

    @pytest.mark.asyncio
    async def test_connection_error_is_timeout(self) -> None:
        client = FakeClient(should_raise=httpx.ReadTimeout("slow"))
        result = await confirm(TX_ID, client, max_rounds=4, sender="SENDER")
        assert isinstance(result, Failed)
        assert result.code == FailureCode.TIMEOUT
        assert result.reason.tx_id == TX_ID
        assert not result.reason.recoverable

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "exc", [httpx.DecodingError("invalid JSON body"), RuntimeError("boom")]
    )
    async def test_unexpected_exception_is_timeout(self, exc: Exception) -> None:
        result = await confirm(TX_ID, FakeClient(should_raise=exc), max_rounds=4, sender="S")
        assert isinstance(result, Failed)
        assert result.code == FailureCode.TIMEOUT
        assert result.reason.tx_id == TX_ID


# ---------------------------------------------------------------------------
# Classification
# ---------------------------------------------------------------------------


class TestClassification:
    @pytest.mark.parametrize(
        ("status", "code"),
        [
            (500, FailureCode.NETWORK_UNAVAILABLE),
            (503, FailureCode.NETWORK_UNAVAILABLE),
            (400, FailureCode.REJECTED),
            (404, FailureCode.REJECTED),
            (None, FailureCode.REJECTED),
        ],
    )
    def test_http_status(self, status: int | None, code: FailureCode) -> None:
        assert classify_http_status(status) == code

    def test_connection_error(self) -> None:
        assert classify_connection_error() == FailureCode.NETWORK_UNAVAILABLE

    def test_timeout(self) -> None:
        assert classify_timeout() == FailureCode.TIMEOUT
