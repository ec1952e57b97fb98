"""Tests for the offer / trade / dispute transition tables."""

import pytest

from src.p2p_common.enums import DisputeStatus, OfferStatus, TradeStatus
from src.p2p_common.errors import InvalidStateError
from src.p2p_common.state_machine import (
    DISPUTE_TRANSITIONS,
    OFFER_TRANSITIONS,
    TRADE_TRANSITIONS,
)


class TestTradeTransitions:
    @pytest.mark.parametrize("pending", [TradeStatus.PENDING, TradeStatus.PENDING_PAYMENT])
    def test_pending_states_are_equivalent(self, pending: TradeStatus) -> None:
        assert TRADE_TRANSITIONS.can_transition(pending, TradeStatus.PAID_PENDING_RELEASE)
        assert TRADE_TRANSITIONS.can_transition(pending, TradeStatus.CANCELLED)
        assert TRADE_TRANSITIONS.can_transition(pending, TradeStatus.DISPUTED)
        assert not TRADE_TRANSITIONS.can_transition(pending, TradeStatus.COMPLETED)

    def test_mark_paid_may_repeat(self) -> None:
        assert TRADE_TRANSITIONS.can_transition(
            TradeStatus.PAID_PENDING_RELEASE, TradeStatus.PAID_PENDING_RELEASE
        )

    def test_paid_cannot_be_cancelled_directly(self) -> None:
        assert not TRADE_TRANSITIONS.can_transition(
            TradeStatus.PAID_PENDING_RELEASE, TradeStatus.CANCELLED
        )

    def test_disputed_resolves_to_terminal(self) -> None:
        assert TRADE_TRANSITIONS.can_transition(TradeStatus.DISPUTED, TradeStatus.COMPLETED)
        assert TRADE_TRANSITIONS.can_transition(TradeStatus.DISPUTED, TradeStatus.CANCELLED)
        assert not TRADE_TRANSITIONS.can_transition(TradeStatus.DISPUTED, TradeStatus.DISPUTED)

    @pytest.mark.parametrize("terminal", [TradeStatus.COMPLETED, TradeStatus.CANCELLED])
    def test_terminal_states(self, terminal: TradeStatus) -> None:
        assert TRADE_TRANSITIONS.is_terminal(terminal)
        with pytest.raises(InvalidStateError) as exc_info:
            TRADE_TRANSITIONS.ensure(9, terminal, TradeStatus.DISPUTED)
        assert terminal.value in exc_info.value.message


def test_offer_cancel_once() -> None:
    OFFER_TRANSITIONS.ensure(1, OfferStatus.OPEN, OfferStatus.CANCELLED)
    with pytest.raises(InvalidStateError):
        OFFER_TRANSITIONS.ensure(1, OfferStatus.CANCELLED, OfferStatus.CANCELLED)


def test_dispute_leaves_open_once() -> None:
    for outcome in (DisputeStatus.RESOLVED, DisputeStatus.REJECTED, DisputeStatus.CLOSED):
        DISPUTE_TRANSITIONS.ensure(1, DisputeStatus.OPEN, outcome)
        assert DISPUTE_TRANSITIONS.is_terminal(outcome)
    with pytest.raises(InvalidStateError):
        DISPUTE_TRANSITIONS.ensure(1, DisputeStatus.RESOLVED, DisputeStatus.CLOSED)
