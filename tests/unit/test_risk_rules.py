from unittest.mock import AsyncMock, MagicMock

import pytest

from src.ff_common.enums import Action
from src.ff_common.errors import BalanceUnavailableError, ExchangeError
from src.ff_exchange.schemas import Balance
from src.ff_risk.portfolio import ExchangePortfolioValueProvider
from src.ff_risk.rules.exposure_cap import check_exposure_cap
from src.ff_risk.rules.guard import RiskGuard
from src.ff_risk.rules.min_price import check_min_price


class TestMinPrice:
    def test_below_minimum_rejected(self) -> None:
        decision = check_min_price(89)
        assert decision.allowed is False
        assert decision.rule == "min_price"
        assert decision.threshold == 90
        assert decision.observed == 89

    def test_boundary_allowed(self) -> None:
        assert check_min_price(90).allowed is True

    def test_configurable_floor(self) -> None:
        assert check_min_price(92, min_price_cents=95).allowed is False


class TestExposureCap:
    def test_over_cap_rejected(self) -> None:
        decision = check_exposure_cap(95, 4, 10_000, 0.03)
        assert decision.allowed is False
        assert decision.threshold == 300
        assert decision.observed == 380

    def test_under_cap_allowed(self) -> None:
        assert check_exposure_cap(95, 3, 10_000, 0.03).allowed is True

    def test_exactly_at_cap_allowed(self) -> None:
        assert check_exposure_cap(100, 3, 10_000, 0.03).allowed is True

    def test_existing_exposure_counts(self) -> None:
        decision = check_exposure_cap(95, 1, 10_000, 0.03, existing_exposure_cents=250)
        assert decision.allowed is False
        assert decision.observed == 345


class TestRiskGuard:
    def test_min_price_rejects_regardless_of_size(self) -> None:
        guard = RiskGuard(min_price_cents=90, cap_fraction=0.03)
        decision = guard.check(Action.BUY, 89, 1, 1_000_000)
        assert decision.allowed is False
        assert decision.rule == "min_price"

    def test_hard_cap_rejects_four_allows_three(self) -> None:
        guard = RiskGuard(min_price_cents=90, cap_fraction=0.03)
        assert guard.check(Action.BUY, 95, 4, 10_000).allowed is False
        assert guard.check(Action.BUY, 95, 3, 10_000).allowed is True

    def test_sells_are_exempt(self) -> None:
        guard = RiskGuard(min_price_cents=90, cap_fraction=0.03)
        assert guard.check(Action.SELL, 10, 1_000, 100).allowed is True
        assert guard.check("sell", 10, 1_000, 100).allowed is True

    def test_reason_is_human_readable(self) -> None:
        guard = RiskGuard(min_price_cents=90, cap_fraction=0.03)
        decision = guard.check(Action.BUY, 95, 4, 10_000)
        assert decision.reason is not None
        assert "300" in decision.reason

    def test_from_settings(self, settings) -> None:
        guard = RiskGuard.from_settings(settings)
        assert guard.min_price_cents == settings.MIN_PRICE_CENTS
        assert guard.cap_fraction == settings.MAX_POSITION_PERCENT


class TestExchangePortfolioValueProvider:
    @pytest.mark.asyncio
    async def test_value_is_cash_plus_positions(self) -> None:
        exchange = MagicMock()
        exchange.get_balance = AsyncMock(return_value=Balance(balance=4_000, portfolio_value=6_000))

        value = await ExchangePortfolioValueProvider(exchange).get_portfolio_value()

        assert value == 10_000

    @pytest.mark.asyncio
    async def test_exchange_failure_surfaces_as_balance_unavailable(self) -> None:
        exchange = MagicMock()
        exchange.get_balance = AsyncMock(side_effect=ExchangeError(503, "down"))

        with pytest.raises(BalanceUnavailableError):
            await ExchangePortfolioValueProvider(exchange).get_balance()
