"""Unit tests for TradeService: accept, mark-paid, release and cancel."""

from decimal import Decimal

import pytest

from src.p2p_common.errors import (
    ForbiddenError,
    InputValidationError,
    InsufficientFundsError,
    InsufficientRemainingError,
    InvalidStateError,
    NotFoundError,
)
from tests.fakes import EscrowWorld, build_world, make_db

ALICE, BOB, CAROL, DAVE, EVE = 1, 2, 3, 4, 5


async def _sell_trade(world: EscrowWorld, amount: str = "20") -> tuple[int, int]:
    """Alice sells 50 FDA at 10; Bob takes `amount`. Returns (offer_id, trade_id)."""
    db = make_db()
    offer = await world.offer_service.create_offer(db, ALICE, "SELL", None, "USD", "10", "50")
    trade = await world.trade_service.accept_offer(db, offer.id, BOB, amount)
    return offer.id, trade.id


async def _buy_trade(world: EscrowWorld) -> tuple[int, int]:
    """Carol wants 10 FDA; Dave fills it from his own balance."""
    db = make_db()
    offer = await world.offer_service.create_offer(db, CAROL, "BUY", None, "USD", "1", "10")
    trade = await world.trade_service.accept_offer(db, offer.id, DAVE, "10")
    return offer.id, trade.id


class TestAliceAndBob:
    async def test_full_trade_lifecycle_with_fee(self) -> None:
        world = build_world({ALICE: "60", BOB: "0"}, fee_rate="2")
        db = make_db()

        offer = await world.offer_service.create_offer(db, ALICE, "SELL", None, "USD", "10", "50")
        balance = await world.ledger_service.get_balance(db, ALICE)
        assert balance.usable_balance == "10.000000000000000000"
        assert balance.locked_balance == "50.000000000000000000"

        trade = await world.trade_service.accept_offer(db, offer.id, BOB, "20")
        assert trade.status == "PENDING"
        assert trade.escrow_source == "OFFER"
        assert trade.buyer_id == BOB
        assert trade.seller_id == ALICE
        assert trade.fiat_total == "200.00000000"
        assert world.offers.offers[offer.id].remaining == Decimal("30")

        paid = await world.trade_service.mark_paid(db, trade.id, BOB, "https://img/proof.png")
        assert paid.status == "PAID_PENDING_RELEASE"
        assert paid.has_payment_proof is True
        assert paid.paid_at is not None

        done = await world.trade_service.release(db, trade.id, ALICE)
        assert done.status == "COMPLETED"
        assert done.fee_amount == "0.40000000"
        assert done.fee_rate == "2.00000000"
        assert world.ledger.available(BOB) == Decimal("19.6")
        assert world.ledger.locked(ALICE) == Decimal("30")
        assert world.ledger.available(ALICE) == Decimal("10")

        transfer = world.ledger.transfers[-1]
        assert transfer.trade_id == trade.id
        assert transfer.amount == Decimal("19.6")
        assert transfer.note == "P2P Trade #1 - 20.00000000 FDA (Fee: 0.40000000 FDA)"

    async def test_release_without_fee(self) -> None:
        world = build_world({ALICE: "60"})
        _, trade_id = await _sell_trade(world)
        db = make_db()
        await world.trade_service.mark_paid(db, trade_id, BOB)

        done = await world.trade_service.release(db, trade_id, ALICE)

        assert done.fee_amount == "0.00000000"
        assert world.ledger.available(BOB) == Decimal("20")


class TestAcceptOffer:
    async def test_cannot_accept_own_offer(self) -> None:
        world = build_world({ALICE: "60"})
        db = make_db()
        offer = await world.offer_service.create_offer(db, ALICE, "SELL", None, "USD", "10", "50")
        with pytest.raises(ForbiddenError):
            await world.trade_service.accept_offer(db, offer.id, ALICE, "1")

    async def test_amount_above_remaining(self) -> None:
        world = build_world({ALICE: "60"})
        offer_id, _ = await _sell_trade(world, "20")
        with pytest.raises(InsufficientRemainingError) as exc_info:
            await world.trade_service.accept_offer(make_db(), offer_id, EVE, "35")
        assert exc_info.value.shortfall == Decimal("5")
        assert world.offers.offers[offer_id].remaining == Decimal("30")

    async def test_cancelled_offer_is_not_found(self) -> None:
        world = build_world({ALICE: "60"})
        db = make_db()
        offer = await world.offer_service.create_offer(db, ALICE, "SELL", None, "USD", "10", "50")
        await world.offer_service.cancel_offer(db, offer.id, ALICE)
        with pytest.raises(NotFoundError):
            await world.trade_service.accept_offer(db, offer.id, BOB, "1")

    async def test_buy_offer_reserves_from_acceptor(self) -> None:
        world = build_world({DAVE: "15"})
        _, trade_id = await _buy_trade(world)

        trade = world.trades.trades[trade_id]
        assert trade.escrow_source.value == "ACCEPTOR"
        assert trade.buyer_id == CAROL
        assert trade.seller_id == DAVE
        assert world.ledger.available(DAVE) == Decimal("5")
        assert world.ledger.locked(DAVE) == Decimal("10")

    async def test_buy_offer_acceptor_needs_usable_balance(self) -> None:
        world = build_world({DAVE: "5"})
        db = make_db()
        offer = await world.offer_service.create_offer(db, CAROL, "BUY", None, "USD", "1", "10")
        with pytest.raises(InsufficientFundsError):
            await world.trade_service.accept_offer(db, offer.id, DAVE, "10")

    async def test_non_ledger_asset_has_no_escrow(self) -> None:
        world = build_world()
        db = make_db()
        offer = await world.offer_service.create_offer(db, ALICE, "SELL", "USDT", "EUR", "1", "9")
        trade = await world.trade_service.accept_offer(db, offer.id, BOB, "9")
        assert trade.escrow_source == "NONE"


class TestMarkPaid:
    async def test_repeat_keeps_proof_and_restamps(self) -> None:
        world = build_world({ALICE: "60"})
        _, trade_id = await _sell_trade(world)
        db = make_db()
        first = await world.trade_service.mark_paid(db, trade_id, BOB, "proof-1")

        second = await world.trade_service.mark_paid(db, trade_id, BOB)

        assert second.status == "PAID_PENDING_RELEASE"
        assert second.has_payment_proof is True
        assert world.trades.trades[trade_id].payment_proof == "proof-1"
        assert second.paid_at >= first.paid_at

    async def test_only_buyer_marks_paid(self) -> None:
        world = build_world({ALICE: "60"})
        _, trade_id = await _sell_trade(world)
        with pytest.raises(ForbiddenError):
            await world.trade_service.mark_paid(make_db(), trade_id, ALICE)

    async def test_cannot_mark_completed_trade(self) -> None:
        world = build_world({ALICE: "60"})
        _, trade_id = await _sell_trade(world)
        db = make_db()
        await world.trade_service.mark_paid(db, trade_id, BOB)
        await world.trade_service.release(db, trade_id, ALICE)
        with pytest.raises(InvalidStateError):
            await world.trade_service.mark_paid(db, trade_id, BOB)


class TestRelease:
    async def test_only_seller_releases(self) -> None:
        world = build_world({ALICE: "60"})
        _, trade_id = await _sell_trade(world)
        db = make_db()
        await world.trade_service.mark_paid(db, trade_id, BOB)
        with pytest.raises(ForbiddenError):
            await world.trade_service.release(db, trade_id, BOB)

    async def test_release_requires_payment(self) -> None:
        world = build_world({ALICE: "60"})
        _, trade_id = await _sell_trade(world)
        with pytest.raises(InvalidStateError):
            await world.trade_service.release(make_db(), trade_id, ALICE)
        assert world.ledger.locked(ALICE) == Decimal("50")

    async def test_release_twice_pays_once(self) -> None:
        world = build_world({ALICE: "60"})
        _, trade_id = await _sell_trade(world)
        db = make_db()
        await world.trade_service.mark_paid(db, trade_id, BOB)
        await world.trade_service.release(db, trade_id, ALICE)
        with pytest.raises(InvalidStateError):
            await world.trade_service.release(db, trade_id, ALICE)
        assert world.ledger.available(BOB) == Decimal("20")
        assert len(world.ledger.transfers) == 1

    async def test_acceptor_escrow_release(self) -> None:
        world = build_world({DAVE: "15"}, fee_rate="5")
        _, trade_id = await _buy_trade(world)
        db = make_db()
        await world.trade_service.mark_paid(db, trade_id, CAROL)

        done = await world.trade_service.release(db, trade_id, DAVE)

        assert done.fee_amount == "0.50000000"
        assert world.ledger.available(CAROL) == Decimal("9.5")
        assert world.ledger.locked(DAVE) == Decimal("0")

    async def test_non_ledger_asset_records_fee_only(self) -> None:
        world = build_world(fee_rate="1")
        db = make_db()
        offer = await world.offer_service.create_offer(db, ALICE, "SELL", "USDT", "EUR", "1", "9")
        trade = await world.trade_service.accept_offer(db, offer.id, BOB, "9")
        await world.trade_service.mark_paid(db, trade.id, BOB)

        done = await world.trade_service.release(db, trade.id, ALICE)

        assert done.status == "COMPLETED"
        assert done.fee_amount == "0.09000000"
        assert world.ledger.entries == []
        assert world.ledger.transfers == []


class TestCancel:
    async def test_cancel_with_open_offer_restores_remaining(self) -> None:
        world = build_world({ALICE: "60"})
        offer_id, trade_id = await _sell_trade(world)

        result = await world.trade_service.cancel(make_db(), trade_id, BOB)

        assert result.status == "CANCELLED"
        assert world.offers.offers[offer_id].remaining == Decimal("50")
        assert world.ledger.locked(ALICE) == Decimal("50")
        assert world.ledger.entries[-1].entry_type == "OFFER_RESERVE"

    async def test_cancel_after_offer_cancelled_refunds_seller(self) -> None:
        world = build_world({ALICE: "60"})
        offer_id, trade_id = await _sell_trade(world)
        db = make_db()
        await world.offer_service.cancel_offer(db, offer_id, ALICE)

        await world.trade_service.cancel(db, trade_id, ALICE)

        assert world.offers.offers[offer_id].remaining == Decimal("30")
        assert world.ledger.available(ALICE) == Decimal("60")
        assert world.ledger.locked(ALICE) == Decimal("0")
        assert world.ledger.entries[-1].entry_type == "TRADE_REFUND"

    async def test_acceptor_escrow_stays_locked_by_default(self) -> None:
        world = build_world({DAVE: "15"})
        offer_id, trade_id = await _buy_trade(world)

        await world.trade_service.cancel(make_db(), trade_id, CAROL)

        assert world.offers.offers[offer_id].remaining == Decimal("10")
        assert world.ledger.locked(DAVE) == Decimal("10")
        assert world.ledger.available(DAVE) == Decimal("5")

    async def test_acceptor_escrow_refunded_when_enabled(self) -> None:
        world = build_world({DAVE: "15"}, refund_acceptor_escrow=True)
        _, trade_id = await _buy_trade(world)

        await world.trade_service.cancel(make_db(), trade_id, DAVE)

        assert world.ledger.locked(DAVE) == Decimal("0")
        assert world.ledger.available(DAVE) == Decimal("15")

    async def test_paid_trade_cannot_be_cancelled(self) -> None:
        world = build_world({ALICE: "60"})
        _, trade_id = await _sell_trade(world)
        db = make_db()
        await world.trade_service.mark_paid(db, trade_id, BOB)
        with pytest.raises(InvalidStateError):
            await world.trade_service.cancel(db, trade_id, BOB)

    async def test_outsider_cannot_cancel(self) -> None:
        world = build_world({ALICE: "60"})
        _, trade_id = await _sell_trade(world)
        with pytest.raises(ForbiddenError):
            await world.trade_service.cancel(make_db(), trade_id, EVE)


class TestQueries:
    async def test_outsider_gets_not_found(self) -> None:
        world = build_world({ALICE: "60"})
        _, trade_id = await _sell_trade(world)
        db = make_db()
        with pytest.raises(NotFoundError):
            await world.trade_service.get_trade(db, trade_id, EVE)
        result = await world.trade_service.get_trade(db, trade_id, EVE, is_admin=True)
        assert result.id == trade_id

    async def test_list_trades_for_party(self) -> None:
        world = build_world({ALICE: "120"})
        await _sell_trade(world, "5")
        await _sell_trade(world, "5")
        db = make_db()

        mine = await world.trade_service.list_trades(db, BOB, None, 10)
        theirs = await world.trade_service.list_trades(db, EVE, None, 10)

        assert len(mine.items) == 2
        assert theirs.items == []

    async def test_unknown_status_filter(self) -> None:
        world = build_world()
        with pytest.raises(InputValidationError):
            await world.trade_service.list_trades(make_db(), BOB, None, 10, status="DONE")
