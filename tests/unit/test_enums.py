"""Enum values must match the DB CHECK constraints exactly."""

from src.p2p_common.enums import (
    DisputeStatus,
    EscrowSource,
    LedgerEntryType,
    OfferSide,
    OfferStatus,
    SettingKey,
    TradeAction,
    TradeStatus,
)


def test_offer_enums() -> None:
    assert {s.value for s in OfferSide} == {"BUY", "SELL"}
    assert {s.value for s in OfferStatus} == {"OPEN", "CANCELLED"}


def test_trade_status_values() -> None:
    assert {s.value for s in TradeStatus} == {
        "PENDING",
        "PENDING_PAYMENT",
        "PAID_PENDING_RELEASE",
        "DISPUTED",
        "COMPLETED",
        "CANCELLED",
    }


def test_dispute_and_action_values() -> None:
    assert {s.value for s in DisputeStatus} == {"OPEN", "RESOLVED", "REJECTED", "CLOSED"}
    assert {a.value for a in TradeAction} == {"release", "cancel", "none"}


def test_escrow_source_values() -> None:
    assert {s.value for s in EscrowSource} == {"OFFER", "ACCEPTOR", "NONE"}


def test_ledger_entry_types_are_str() -> None:
    assert LedgerEntryType.TRADE_PAYOUT == "TRADE_PAYOUT"
    assert len(LedgerEntryType) == 10


def test_setting_keys() -> None:
    assert SettingKey.P2P_FEE_RATE.value == "p2p_fee_rate"
    assert SettingKey.HOLDING_FDA_AMOUNT.value == "holding_fda_amount"
