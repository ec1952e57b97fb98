"""SettingsService — business settings stored in the `settings` table.

The two keys the escrow core reads are validated on write and loaded into an
immutable TradingSettings snapshot at the start of every operation.
"""

import logging
import re
from decimal import Decimal

from sqlalchemy.ext.asyncio import AsyncSession

from src.p2p_common.amounts import HUNDRED, ZERO, format_amount, to_decimal
from src.p2p_common.database import atomic
from src.p2p_common.enums import SettingKey
from src.p2p_common.errors import AppError, ForbiddenError, InputValidationError
from src.p2p_ledger.application.schemas import (
    FeeRateResponse,
    HoldingFloorResponse,
    SettingResponse,
)
from src.p2p_ledger.domain.models import TradingSettings
from src.p2p_ledger.domain.repository import SettingsRepositoryProtocol
from src.p2p_ledger.infrastructure.persistence import SettingsRepository

logger = logging.getLogger(__name__)

_KEY_RE = re.compile(r"^[a-z][a-z0-9_]{0,63}$")
_FLOOR_RE = re.compile(r"^\d+(\.\d{0,18})?$")


def validate_fee_rate(value: str) -> str:
    try:
        rate = to_decimal(value, "p2p_fee_rate")
    except AppError:
        raise InputValidationError("fee rate must be a number between 0 and 100") from None
    if rate < ZERO or rate > HUNDRED:
        raise InputValidationError("fee rate must be a number between 0 and 100")
    return format(rate.normalize(), "f")


def validate_holding_floor(value: str) -> str:
    text_value = value.strip()
    if not _FLOOR_RE.match(text_value):
        raise InputValidationError(
            "holding amount must be a non-negative number with up to 18 decimal places"
        )
    return text_value


_VALIDATORS = {
    SettingKey.P2P_FEE_RATE.value: validate_fee_rate,
    SettingKey.HOLDING_FDA_AMOUNT.value: validate_holding_floor,
}


def _parse_stored(settings: dict[str, str], key: SettingKey) -> Decimal:
    raw = settings.get(key.value)
    if raw is None:
        return ZERO
    try:
        return to_decimal(_VALIDATORS[key.value](raw), key.value)
    except AppError:
        logger.warning("Ignoring malformed setting %s=%r, using 0", key.value, raw)
        return ZERO


class SettingsService:
    def __init__(self, repo: SettingsRepositoryProtocol | None = None) -> None:
        self._repo: SettingsRepositoryProtocol = repo or SettingsRepository()

    async def load_trading_settings(self, db: AsyncSession) -> TradingSettings:
        rows = await self._repo.list_settings(db)
        values = {s.key: s.value for s in rows}
        return TradingSettings(
            fee_rate_percent=_parse_stored(values, SettingKey.P2P_FEE_RATE),
            holding_floor=_parse_stored(values, SettingKey.HOLDING_FDA_AMOUNT),
        )

    async def get_fee_rate(self, db: AsyncSession) -> FeeRateResponse:
        trading = await self.load_trading_settings(db)
        return FeeRateResponse(fee_rate_percent=format_amount(trading.fee_rate_percent))

    async def get_holding_floor(self, db: AsyncSession) -> HoldingFloorResponse:
        trading = await self.load_trading_settings(db)
        return HoldingFloorResponse(holding_amount=format_amount(trading.holding_floor, 18))

    async def list_settings(self, db: AsyncSession, is_admin: bool) -> list[SettingResponse]:
        if not is_admin:
            raise ForbiddenError("admin privileges required")
        return [SettingResponse.from_domain(s) for s in await self._repo.list_settings(db)]

    async def update_setting(
        self,
        db: AsyncSession,
        is_admin: bool,
        key: str,
        value: str,
        description: str | None = None,
    ) -> SettingResponse:
        if not is_admin:
            raise ForbiddenError("admin privileges required")
        if not _KEY_RE.match(key):
            raise InputValidationError(f"invalid setting key {key!r}")
        if value is None or str(value).strip() == "":
            raise InputValidationError("value is required")
        validator = _VALIDATORS.get(key)
        stored = validator(str(value)) if validator else str(value).strip()
        async with atomic(db):
            setting = await self._repo.upsert_setting(db, key, stored, description)
        logger.info("Setting %s updated to %s", key, stored)
        return SettingResponse.from_domain(setting)
