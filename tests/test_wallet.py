"""Balance and ledger reads."""

from __future__ import annotations

import asyncio
from datetime import datetime, timezone
from decimal import Decimal

import pytest

from walletpay.errors import FetchError, RequestError
from walletpay.gateway import RequestGateway
from walletpay.models import BalanceResponse, EntryType
from walletpay.transactions import LEDGER_PATH, LedgerReader
from walletpay.wallet import BALANCE_PATH, BalanceReader

from conftest import LEDGER, StubGateway


@pytest.mark.asyncio
async def test_balance_exact_from_server(base_url, auth_store):
    gw = RequestGateway(base_url, auth_store)
    try:
        b = await BalanceReader(gw).fetch()
    finally:
        await gw.close()
    assert b == Decimal("2547850.00")
    assert str(b) == "2547850.00"


@pytest.mark.asyncio
async def test_balance_records_snapshot(auth_store):
    reader = BalanceReader(StubGateway(auth_store, {("GET", BALANCE_PATH): {"wallet balance": Decimal("12.5")}}))
    assert reader.last_snapshot is None
    assert await reader.fetch() == Decimal("12.5")
    assert reader.last_snapshot == Decimal("12.5")
    reader.invalidate()
    assert reader.last_snapshot is None


@pytest.mark.asyncio
async def test_balance_integer_value(auth_store):
    reader = BalanceReader(StubGateway(auth_store, {("GET", BALANCE_PATH): {"wallet balance": 100}}))
    assert await reader.fetch() == Decimal("100")


@pytest.mark.asyncio
async def test_balance_failure_is_fetch_error(auth_store):
    reader = BalanceReader(StubGateway(auth_store, {("GET", BALANCE_PATH): RequestError("HTTP 503", status=503)}))
    with pytest.raises(FetchError) as exc:
        await reader.fetch()
    assert exc.value.message == "HTTP 503"
    assert reader.last_snapshot is None


@pytest.mark.asyncio
async def test_balance_wrong_shape_is_fetch_error(auth_store):
    reader = BalanceReader(StubGateway(auth_store, {("GET", BALANCE_PATH): {"balance": 5}}))
    with pytest.raises(FetchError):
        await reader.fetch()


class HeldGateway:
    """Each call waits until the test resolves its future."""

    def __init__(self):
        self.pending = []

    async def call_model(self, path, model, *args, **kwargs):
        fut = asyncio.get_running_loop().create_future()
        self.pending.append(fut)
        return model.model_validate(await fut)


@pytest.mark.asyncio
async def test_late_older_response_does_not_overwrite_snapshot():
    gw = HeldGateway()
    reader = BalanceReader(gw)
    older = asyncio.create_task(reader.fetch())
    newer = asyncio.create_task(reader.fetch())
    await asyncio.sleep(0)
    assert len(gw.pending) == 2
    gw.pending[1].set_result({"wallet balance": Decimal("200")})
    assert await newer == Decimal("200")
    gw.pending[0].set_result({"wallet balance": Decimal("100")})
    assert await older == Decimal("100")
    assert reader.last_snapshot == Decimal("200")


@pytest.mark.asyncio
async def test_response_issued_before_invalidate_is_discarded():
    gw = HeldGateway()
    reader = BalanceReader(gw)
    task = asyncio.create_task(reader.fetch())
    await asyncio.sleep(0)
    reader.invalidate()
    gw.pending[0].set_result({"wallet balance": Decimal("100")})
    await task
    assert reader.last_snapshot is None


def test_balance_response_rejects_non_finite():
    with pytest.raises(ValueError):
        BalanceResponse.model_validate({"wallet balance": Decimal("NaN")})


@pytest.mark.asyncio
async def test_ledger_preserves_server_order(base_url, auth_store):
    gw = RequestGateway(base_url, auth_store)
    try:
        entries = await LedgerReader(gw).fetch()
    finally:
        await gw.close()
    assert [e.transaction_id for e in entries] == [row["transaction_id"] for row in LEDGER]
    first = entries[0]
    assert first.amount == Decimal("250.00")
    assert first.entry_type is EntryType.DEBIT
    assert first.signed_amount == Decimal("-250.00")
    assert entries[1].signed_amount == Decimal("1000.50")
    assert first.created_at == datetime(2026, 10, 18, 9, 30, tzinfo=timezone.utc)


@pytest.mark.asyncio
async def test_ledger_empty(auth_store):
    assert await LedgerReader(StubGateway(auth_store, {("GET", LEDGER_PATH): []})).fetch() == []


@pytest.mark.asyncio
async def test_ledger_unknown_entry_type_is_fetch_error(auth_store):
    bad = [dict(LEDGER[0], entry_type="REFUND")]
    with pytest.raises(FetchError):
        await LedgerReader(StubGateway(auth_store, {("GET", LEDGER_PATH): bad})).fetch()


@pytest.mark.asyncio
async def test_ledger_failure_is_fetch_error(auth_store):
    with pytest.raises(FetchError) as exc:
        await LedgerReader(StubGateway(auth_store, {("GET", LEDGER_PATH): RequestError("Forbidden", status=403)})).fetch()
    assert exc.value.message == "Forbidden"
