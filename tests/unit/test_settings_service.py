"""Unit tests for SettingsService and its value validators."""

import logging
from decimal import Decimal

import pytest

from src.p2p_common.errors import ForbiddenError, InputValidationError
from src.p2p_ledger.application.settings_service import (
    SettingsService,
    validate_fee_rate,
    validate_holding_floor,
)
from tests.fakes import FakeSettingsRepo, make_db


class TestValidators:
    @pytest.mark.parametrize(
        ("raw", "stored"), [("2", "2"), ("2.50", "2.5"), ("0", "0"), ("100", "100")]
    )
    def test_fee_rate_normalized(self, raw: str, stored: str) -> None:
        assert validate_fee_rate(raw) == stored

    @pytest.mark.parametrize("raw", ["-1", "100.01", "abc", ""])
    def test_fee_rate_rejected(self, raw: str) -> None:
        with pytest.raises(InputValidationError):
            validate_fee_rate(raw)

    @pytest.mark.parametrize("raw", ["0", "50", " 10.5 ", "1.000000000000000001"])
    def test_floor_accepted(self, raw: str) -> None:
        assert validate_holding_floor(raw) == raw.strip()

    @pytest.mark.parametrize("raw", ["-1", "1e3", "abc", "1.0000000000000000001"])
    def test_floor_rejected(self, raw: str) -> None:
        with pytest.raises(InputValidationError):
            validate_holding_floor(raw)


class TestLoadTradingSettings:
    async def test_reads_both_keys(self) -> None:
        svc = SettingsService(
            repo=FakeSettingsRepo({"p2p_fee_rate": "5", "holding_fda_amount": "20"})
        )

        trading = await svc.load_trading_settings(make_db())

        assert trading.fee_rate_percent == Decimal("5")
        assert trading.holding_floor == Decimal("20")

    async def test_missing_keys_default_to_zero(self) -> None:
        trading = await SettingsService(repo=FakeSettingsRepo()).load_trading_settings(make_db())
        assert trading.fee_rate_percent == Decimal("0")
        assert trading.holding_floor == Decimal("0")

    async def test_malformed_value_falls_back_to_zero(
        self, caplog: pytest.LogCaptureFixture
    ) -> None:
        svc = SettingsService(repo=FakeSettingsRepo({"p2p_fee_rate": "lots"}))

        with caplog.at_level(logging.WARNING):
            trading = await svc.load_trading_settings(make_db())

        assert trading.fee_rate_percent == Decimal("0")
        assert "p2p_fee_rate" in caplog.text

    async def test_public_views(self) -> None:
        svc = SettingsService(
            repo=FakeSettingsRepo({"p2p_fee_rate": "2", "holding_fda_amount": "1.5"})
        )
        db = make_db()
        assert (await svc.get_fee_rate(db)).fee_rate_percent == "2.00000000"
        assert (await svc.get_holding_floor(db)).holding_amount == "1.500000000000000000"


class TestUpdateSetting:
    async def test_admin_updates_fee_rate(self) -> None:
        repo = FakeSettingsRepo({"p2p_fee_rate": "0"})
        svc = SettingsService(repo=repo)
        db = make_db()

        result = await svc.update_setting(db, True, "p2p_fee_rate", "2.50", "P2P fee, percent")

        assert result.value == "2.5"
        assert result.description == "P2P fee, percent"
        db.commit.assert_awaited_once()

    async def test_unknown_key_is_stored_trimmed(self) -> None:
        svc = SettingsService(repo=FakeSettingsRepo())
        result = await svc.update_setting(make_db(), True, "support_email", " ops@example.com ")
        assert result.value == "ops@example.com"

    async def test_non_admin_forbidden(self) -> None:
        svc = SettingsService(repo=FakeSettingsRepo())
        with pytest.raises(ForbiddenError):
            await svc.update_setting(make_db(), False, "p2p_fee_rate", "1")
        with pytest.raises(ForbiddenError):
            await svc.list_settings(make_db(), False)

    @pytest.mark.parametrize(
        ("key", "value"),
        [("Bad-Key", "1"), ("p2p_fee_rate", "   "), ("p2p_fee_rate", "150")],
    )
    async def test_invalid_updates(self, key: str, value: str) -> None:
        repo = FakeSettingsRepo({"p2p_fee_rate": "1"})
        svc = SettingsService(repo=repo)
        with pytest.raises(InputValidationError):
            await svc.update_setting(make_db(), True, key, value)
        assert repo.settings["p2p_fee_rate"].value == "1"

    async def test_list_settings_sorted(self) -> None:
        svc = SettingsService(
            repo=FakeSettingsRepo({"p2p_fee_rate": "1", "holding_fda_amount": "0"})
        )
        result = await svc.list_settings(make_db(), True)
        assert [s.key for s in result] == ["holding_fda_amount", "p2p_fee_rate"]
