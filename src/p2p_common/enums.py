"""Global enums: must match DB CHECK constraints exactly."""

from enum import Enum


class OfferSide(str, Enum):
    BUY = "BUY"
    SELL = "SELL"


class OfferStatus(str, Enum):
    OPEN = "OPEN"
    CANCELLED = "CANCELLED"


class TradeStatus(str, Enum):
    PENDING = "PENDING"
    # Legacy alias of PENDING written by older clients; treated identically.
    PENDING_PAYMENT = "PENDING_PAYMENT"
    PAID_PENDING_RELEASE = "PAID_PENDING_RELEASE"
    DISPUTED = "DISPUTED"
    COMPLETED = "COMPLETED"
    CANCELLED = "CANCELLED"


class EscrowSource(str, Enum):
    """Where the seller-side funds of a trade are held until release."""
    OFFER = "OFFER"        # maker's SELL-offer reservation
    ACCEPTOR = "ACCEPTOR"  # reserved from the acceptor of a BUY offer
    NONE = "NONE"          # asset is not the ledger asset


class DisputeStatus(str, Enum):
    OPEN = "OPEN"
    RESOLVED = "RESOLVED"
    REJECTED = "REJECTED"
    CLOSED = "CLOSED"


class TradeAction(str, Enum):
    RELEASE = "release"
    CANCEL = "cancel"
    NONE = "none"


class LedgerEntryType(str, Enum):
    # Funding / direct transfers
    FUNDING = "FUNDING"
    TRANSFER_OUT = "TRANSFER_OUT"
    TRANSFER_IN = "TRANSFER_IN"
    # Escrow reservation (available -> locked)
    OFFER_RESERVE = "OFFER_RESERVE"
    TRADE_RESERVE = "TRADE_RESERVE"
    # Escrow refund (locked -> available)
    OFFER_REFUND = "OFFER_REFUND"
    TRADE_REFUND = "TRADE_REFUND"
    DISPUTE_REFUND = "DISPUTE_REFUND"
    # Release (seller locked out, buyer available in)
    TRADE_CAPTURE = "TRADE_CAPTURE"
    TRADE_PAYOUT = "TRADE_PAYOUT"


class SettingKey(str, Enum):
    P2P_FEE_RATE = "p2p_fee_rate"
    HOLDING_FDA_AMOUNT = "holding_fda_amount"
