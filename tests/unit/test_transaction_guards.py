"""Unit of work and lost-race behaviour: guarded writes that match no row."""

import asyncio
from decimal import Decimal
from unittest.mock import AsyncMock

import pytest
from sqlalchemy.exc import IntegrityError, OperationalError

from src.p2p_common.database import atomic
from src.p2p_common.enums import OfferStatus, TradeStatus
from src.p2p_common.errors import ConflictError, StorageError
from tests.fakes import EscrowWorld, build_world, make_db

ALICE, BOB, ADMIN = 1, 2, 99


async def _offer(world: EscrowWorld) -> int:
    offer = await world.offer_service.create_offer(
        make_db(), ALICE, "SELL", None, "USD", "10", "50"
    )
    return offer.id


async def _trade(world: EscrowWorld, paid: bool = False) -> int:
    offer_id = await _offer(world)
    trade = await world.trade_service.accept_offer(make_db(), offer_id, BOB, "20")
    if paid:
        await world.trade_service.mark_paid(make_db(), trade.id, BOB)
    return trade.id


def _assert_rolled_back(db) -> None:
    db.rollback.assert_awaited_once()
    db.commit.assert_not_awaited()


class TestAtomic:
    async def test_commits_on_success(self) -> None:
        db = make_db()
        async with atomic(db):
            pass
        db.commit.assert_awaited_once()
        db.rollback.assert_not_awaited()

    async def test_business_error_rolls_back_and_propagates(self) -> None:
        db = make_db()
        with pytest.raises(ConflictError):
            async with atomic(db):
                raise ConflictError("offer 1 changed concurrently")
        _assert_rolled_back(db)

    async def test_driver_error_becomes_storage_error(self) -> None:
        db = make_db()
        original = IntegrityError("INSERT INTO disputes", {}, Exception("duplicate key"))
        with pytest.raises(StorageError) as exc_info:
            async with atomic(db):
                raise original
        assert exc_info.value.code == 9003
        assert exc_info.value.http_status == 503
        assert exc_info.value.__cause__ is original
        _assert_rolled_back(db)

    async def test_failed_commit_rolls_back(self) -> None:
        db = make_db()
        db.commit = AsyncMock(side_effect=OperationalError("COMMIT", {}, Exception("gone")))
        with pytest.raises(StorageError):
            async with atomic(db):
                pass
        db.rollback.assert_awaited_once()

    async def test_cancellation_rolls_back(self) -> None:
        db = make_db()
        with pytest.raises(asyncio.CancelledError):
            async with atomic(db):
                raise asyncio.CancelledError()
        _assert_rolled_back(db)


class TestLostRaces:
    async def test_accept_when_remaining_taken_concurrently(self) -> None:
        world = build_world({ALICE: "60", BOB: "0"})
        offer_id = await _offer(world)
        world.offers.take_remaining = AsyncMock(return_value=None)
        db = make_db()

        with pytest.raises(ConflictError):
            await world.trade_service.accept_offer(db, offer_id, BOB, "20")

        _assert_rolled_back(db)
        assert world.trades.trades == {}
        assert world.offers.offers[offer_id].remaining == Decimal("50")
        assert world.ledger.available(ALICE) == Decimal("10")
        assert world.ledger.locked(ALICE) == Decimal("50")

    async def test_offer_cancel_loses_status_guard(self) -> None:
        world = build_world({ALICE: "60"})
        offer_id = await _offer(world)
        world.offers.mark_cancelled = AsyncMock(return_value=None)
        db = make_db()

        with pytest.raises(ConflictError):
            await world.offer_service.cancel_offer(db, offer_id, ALICE)

        _assert_rolled_back(db)
        assert world.offers.offers[offer_id].status == OfferStatus.OPEN
        assert world.ledger.locked(ALICE) == Decimal("50")
        assert world.ledger.available(ALICE) == Decimal("10")

    async def test_mark_paid_loses_status_guard(self) -> None:
        world = build_world({ALICE: "60", BOB: "0"})
        trade_id = await _trade(world)
        world.trades.mark_paid = AsyncMock(return_value=None)
        db = make_db()

        with pytest.raises(ConflictError):
            await world.trade_service.mark_paid(db, trade_id, BOB)

        _assert_rolled_back(db)
        assert world.trades.trades[trade_id].paid_at is None

    async def test_trade_cancel_loses_status_guard(self) -> None:
        world = build_world({ALICE: "60", BOB: "0"})
        trade_id = await _trade(world)
        world.trades.cancel = AsyncMock(return_value=None)
        db = make_db()

        with pytest.raises(ConflictError):
            await world.trade_service.cancel(db, trade_id, BOB)

        _assert_rolled_back(db)
        assert world.trades.trades[trade_id].status == TradeStatus.PENDING
        assert world.offers.offers[1].remaining == Decimal("30")
        assert world.ledger.locked(ALICE) == Decimal("50")

    async def test_release_loses_status_guard(self) -> None:
        world = build_world({ALICE: "60", BOB: "0"}, fee_rate="2")
        trade_id = await _trade(world, paid=True)
        world.trades.complete = AsyncMock(return_value=None)
        db = make_db()

        with pytest.raises(ConflictError):
            await world.trade_service.release(db, trade_id, ALICE)

        _assert_rolled_back(db)
        assert world.trades.trades[trade_id].status == TradeStatus.PAID_PENDING_RELEASE
        assert world.ledger.locked(ALICE) == Decimal("50")
        assert world.ledger.available(BOB) == Decimal("0")
        assert world.ledger.transfers == []

    async def test_open_dispute_loses_trade_guard(self) -> None:
        world = build_world({ALICE: "60", BOB: "0"})
        trade_id = await _trade(world, paid=True)
        world.trades.mark_disputed = AsyncMock(return_value=None)
        db = make_db()

        with pytest.raises(ConflictError):
            await world.dispute_service.open_dispute(db, trade_id, BOB, "seller silent")

        _assert_rolled_back(db)
        assert world.trades.trades[trade_id].status == TradeStatus.PAID_PENDING_RELEASE

    async def test_arbiter_cancel_loses_trade_guard(self) -> None:
        world = build_world({ALICE: "60", BOB: "0"})
        trade_id = await _trade(world, paid=True)
        dispute = await world.dispute_service.open_dispute(make_db(), trade_id, BOB, "silent")
        world.trades.cancel = AsyncMock(return_value=None)
        db = make_db()

        with pytest.raises(ConflictError):
            await world.dispute_service.resolve_dispute(
                db, dispute.id, ADMIN, True, "RESOLVED", None, "cancel"
            )

        _assert_rolled_back(db)
        assert world.trades.trades[trade_id].status == TradeStatus.DISPUTED
        assert world.ledger.locked(ALICE) == Decimal("50")
        assert all(e.entry_type != "DISPUTE_REFUND" for e in world.ledger.entries)
