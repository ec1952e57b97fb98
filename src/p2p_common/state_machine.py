"""Central transition tables for offer, trade and dispute status.

Every mutating operation asks its table before touching any row, so an
illegal transition is rejected before a balance moves.
"""

from collections.abc import Iterable, Mapping
from enum import Enum
from typing import Generic, TypeVar

from src.p2p_common.enums import DisputeStatus, OfferStatus, TradeStatus
from src.p2p_common.errors import InvalidStateError

S = TypeVar("S", bound=Enum)


class TransitionTable(Generic[S]):
    def __init__(self, entity: str, transitions: Mapping[S, Iterable[S]]) -> None:
        self.entity = entity
        self._transitions: dict[S, frozenset[S]] = {
            state: frozenset(targets) for state, targets in transitions.items()
        }

    def can_transition(self, current: S, target: S) -> bool:
        return target in self._transitions.get(current, frozenset())

    def is_terminal(self, state: S) -> bool:
        return not self._transitions.get(state)

    def ensure(self, entity_id: object, current: S, target: S) -> None:
        """Raise InvalidStateError unless current -> target is allowed."""
        if not self.can_transition(current, target):
            raise InvalidStateError(
                self.entity, entity_id, current.value, f"move to {target.value}"
            )


OFFER_TRANSITIONS: TransitionTable[OfferStatus] = TransitionTable(
    "Offer",
    {
        OfferStatus.OPEN: {OfferStatus.CANCELLED},
        OfferStatus.CANCELLED: set(),
    },
)

TRADE_TRANSITIONS: TransitionTable[TradeStatus] = TransitionTable(
    "Trade",
    {
        TradeStatus.PENDING: {
            TradeStatus.PAID_PENDING_RELEASE,
            TradeStatus.CANCELLED,
            TradeStatus.DISPUTED,
        },
        TradeStatus.PENDING_PAYMENT: {
            TradeStatus.PAID_PENDING_RELEASE,
            TradeStatus.CANCELLED,
            TradeStatus.DISPUTED,
        },
        # Self-loop: mark-paid may be repeated to re-stamp paid_at.
        TradeStatus.PAID_PENDING_RELEASE: {
            TradeStatus.PAID_PENDING_RELEASE,
            TradeStatus.COMPLETED,
            TradeStatus.DISPUTED,
        },
        TradeStatus.DISPUTED: {TradeStatus.COMPLETED, TradeStatus.CANCELLED},
        TradeStatus.COMPLETED: set(),
        TradeStatus.CANCELLED: set(),
    },
)

DISPUTE_TRANSITIONS: TransitionTable[DisputeStatus] = TransitionTable(
    "Dispute",
    {
        DisputeStatus.OPEN: {
            DisputeStatus.RESOLVED,
            DisputeStatus.REJECTED,
            DisputeStatus.CLOSED,
        },
        DisputeStatus.RESOLVED: set(),
        DisputeStatus.REJECTED: set(),
        DisputeStatus.CLOSED: set(),
    },
)
