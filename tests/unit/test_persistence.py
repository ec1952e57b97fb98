"""Unit tests for the SQL repositories using a MagicMock AsyncSession."""

import inspect
from datetime import UTC, datetime
from decimal import Decimal
from typing import Any
from unittest.mock import AsyncMock, MagicMock

from src.p2p_common.enums import DisputeStatus, EscrowSource, OfferSide, TradeStatus
from src.p2p_dispute.infrastructure.persistence import DisputeRepository
from src.p2p_holding.infrastructure.persistence import HoldingRepository
from src.p2p_ledger.domain.repository import LedgerRepositoryProtocol
from src.p2p_ledger.infrastructure.persistence import LedgerRepository
from src.p2p_offer.infrastructure.persistence import OfferRepository
from src.p2p_trade.domain.models import PENDING_STATES
from src.p2p_trade.infrastructure.persistence import TradeRepository


def _db(row: object = None, rows: list | None = None) -> AsyncMock:
    result = MagicMock()
    result.fetchone.return_value = row
    result.fetchall.return_value = rows or []
    db = AsyncMock()
    db.execute.return_value = result
    return db


def _params(db: AsyncMock) -> dict[str, Any]:
    return db.execute.await_args.args[1]


def _balance_row(**kwargs: Any) -> MagicMock:
    row = MagicMock()
    row.user_id = kwargs.get("user_id", 1)
    row.available_balance = kwargs.get("available_balance", Decimal("10"))
    row.locked_balance = kwargs.get("locked_balance", Decimal("50"))
    row.version = kwargs.get("version", 3)
    row.updated_at = datetime.now(UTC)
    return row


def _trade_row(**kwargs: Any) -> MagicMock:
    row = MagicMock()
    row.id = kwargs.get("id", 7)
    row.offer_id = 1
    row.buyer_id = 2
    row.seller_id = 1
    row.amount = Decimal("20")
    row.price = Decimal("10")
    row.asset_symbol = "FDA"
    row.fiat_currency = "USD"
    row.status = kwargs.get("status", "PENDING_PAYMENT")
    row.escrow_source = kwargs.get("escrow_source", "OFFER")
    row.payment_proof = None
    row.paid_at = None
    row.released_at = None
    row.cancelled_at = None
    row.fee_amount = None
    row.fee_rate = None
    row.created_at = datetime.now(UTC)
    return row


def _offer_row(**kwargs: Any) -> MagicMock:
    row = MagicMock()
    row.id = 1
    row.maker_id = 1
    row.side = "SELL"
    row.asset_symbol = "FDA"
    row.fiat_currency = "USD"
    row.price = Decimal("10")
    row.amount = Decimal("50")
    row.remaining = kwargs.get("remaining", Decimal("30"))
    row.status = "OPEN"
    row.min_limit = None
    row.max_limit = None
    row.payment_methods = kwargs.get("payment_methods", ["bank"])
    row.created_at = datetime.now(UTC)
    row.cancelled_at = None
    return row


class TestLedgerRepository:
    async def test_reserve_maps_returned_row(self) -> None:
        db = _db(_balance_row())
        balance = await LedgerRepository().reserve(db, 1, Decimal("50"))
        assert balance is not None
        assert balance.locked_balance == Decimal("50")
        assert _params(db) == {"user_id": 1, "amount": Decimal("50")}

    async def test_failed_guard_returns_none(self) -> None:
        db = _db(None)
        assert await LedgerRepository().refund(db, 1, Decimal("99")) is None

    async def test_duplicate_trade_transfer_returns_none(self) -> None:
        db = _db(None)
        result = await LedgerRepository().insert_transfer(
            db, 1, 2, Decimal("19.6"), "note", trade_id=7
        )
        assert result is None
        params = _params(db)
        assert params["trade_id"] == 7
        assert params["created_at"] is None


class TestTradeRepository:
    async def test_legacy_status_is_read(self) -> None:
        trade = await TradeRepository().get_by_id(_db(_trade_row()), 7)
        assert trade is not None
        assert trade.status == TradeStatus.PENDING_PAYMENT
        assert trade.is_pending
        assert trade.escrow_source == EscrowSource.OFFER

    async def test_transition_passes_status_strings(self) -> None:
        db = _db(None)
        result = await TradeRepository().cancel(db, 7, datetime.now(UTC), PENDING_STATES)
        assert result is None
        assert sorted(_params(db)["from_statuses"]) == ["PENDING", "PENDING_PAYMENT"]

    async def test_mark_paid_passes_proof(self) -> None:
        db = _db(_trade_row(status="PAID_PENDING_RELEASE"))
        trade = await TradeRepository().mark_paid(
            db, 7, None, datetime.now(UTC), [TradeStatus.PENDING]
        )
        assert trade is not None
        assert trade.status == TradeStatus.PAID_PENDING_RELEASE
        assert _params(db)["proof"] is None

    async def test_completed_without_transfer(self) -> None:
        db = _db(rows=[_trade_row(id=3, status="COMPLETED")])
        trades = await TradeRepository().list_completed_without_transfer(db, "FDA", 10)
        assert [t.id for t in trades] == [3]
        assert _params(db) == {"asset_symbol": "FDA", "limit": 10}


class TestOfferRepository:
    async def test_payment_methods_from_json_string(self) -> None:
        offer = await OfferRepository().get_by_id(_db(_offer_row(payment_methods='["a","b"]')), 1)
        assert offer is not None
        assert offer.payment_methods == ["a", "b"]
        assert offer.side == OfferSide.SELL

    async def test_take_remaining_guard_failure(self) -> None:
        db = _db(None)
        assert await OfferRepository().take_remaining(db, 1, Decimal("40")) is None
        assert _params(db) == {"offer_id": 1, "amount": Decimal("40")}


class TestDisputeRepository:
    async def test_conflicting_insert_returns_none(self) -> None:
        db = _db(None)
        assert await DisputeRepository().insert(db, 7, 2, "reason") is None

    async def test_resolve_passes_outcome_value(self) -> None:
        db = _db(None)
        await DisputeRepository().resolve(
            db, 1, DisputeStatus.REJECTED, "n", 99, datetime.now(UTC)
        )
        assert _params(db)["outcome"] == "REJECTED"


class TestHoldingRepository:
    async def test_sum_active_returns_decimal(self) -> None:
        result = MagicMock()
        result.scalar_one.return_value = Decimal("30.5")
        db = AsyncMock()
        db.execute.return_value = result

        total = await HoldingRepository().sum_active(db, 1, datetime.now(UTC))

        assert total == Decimal("30.5")


class TestLedgerRepositoryContract:
    def test_every_protocol_method_is_implemented(self) -> None:
        names = [n for n in vars(LedgerRepositoryProtocol) if not n.startswith("_")]
        assert "reserve" in names
        for name in names:
            assert inspect.iscoroutinefunction(getattr(LedgerRepository, name)), name
