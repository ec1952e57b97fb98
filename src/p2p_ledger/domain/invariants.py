"""Global ledger invariant verification.

- available_balance >= 0 and locked_balance >= 0 for every user
- 0 <= remaining <= amount for every offer
- at most one dispute per trade

The CHECK/UNIQUE constraints already enforce these on write; this check
exists to audit data imported or patched outside the service.
"""

import logging
from dataclasses import dataclass, field

from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession

logger = logging.getLogger(__name__)

_NEGATIVE_BALANCES_SQL = text("""
    SELECT user_id FROM ledger_balances
    WHERE available_balance < 0 OR locked_balance < 0
    ORDER BY user_id
""")

_OFFER_BOUNDS_SQL = text("""
    SELECT id FROM offers
    WHERE remaining < 0 OR remaining > amount
    ORDER BY id
""")

_MULTI_DISPUTE_SQL = text("""
    SELECT trade_id FROM disputes
    GROUP BY trade_id
    HAVING COUNT(*) > 1
    ORDER BY trade_id
""")


@dataclass
class InvariantReport:
    negative_balance_user_ids: list[int] = field(default_factory=list)
    out_of_bounds_offer_ids: list[int] = field(default_factory=list)
    multi_dispute_trade_ids: list[int] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not (
            self.negative_balance_user_ids
            or self.out_of_bounds_offer_ids
            or self.multi_dispute_trade_ids
        )


async def verify_ledger_invariants(db: AsyncSession) -> InvariantReport:
    """Run all checks and return the offending ids. Never raises on a violation."""
    report = InvariantReport(
        negative_balance_user_ids=[
            r[0] for r in (await db.execute(_NEGATIVE_BALANCES_SQL)).fetchall()
        ],
        out_of_bounds_offer_ids=[r[0] for r in (await db.execute(_OFFER_BOUNDS_SQL)).fetchall()],
        multi_dispute_trade_ids=[
            r[0] for r in (await db.execute(_MULTI_DISPUTE_SQL)).fetchall()
        ],
    )
    if report.ok:
        logger.debug("Ledger invariants OK")
    else:
        logger.error("Ledger invariants violated: %s", report)
    return report
