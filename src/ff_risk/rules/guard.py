"""RiskGuard — submission-time gate evaluated before every buy.

Independent of the allocator: the allocator's cap is a planning-time
guarantee, the guard re-checks the same threshold against a fresh portfolio
value right before the exchange call. Sells reduce exposure and are exempt.
"""

import logging

from config.settings import Settings
from src.ff_common.enums import Action
from src.ff_risk.rules.decision import GuardDecision
from src.ff_risk.rules.exposure_cap import check_exposure_cap
from src.ff_risk.rules.min_price import DEFAULT_MIN_PRICE_CENTS, check_min_price

logger = logging.getLogger(__name__)


class RiskGuard:
    def __init__(
        self,
        min_price_cents: int = DEFAULT_MIN_PRICE_CENTS,
        cap_fraction: float = 0.03,
    ) -> None:
        self.min_price_cents = min_price_cents
        self.cap_fraction = cap_fraction

    @classmethod
    def from_settings(cls, settings: Settings) -> "RiskGuard":
        return cls(settings.MIN_PRICE_CENTS, settings.MAX_POSITION_PERCENT)

    def check(
        self,
        action: Action | str,
        price_cents: int,
        count: int,
        portfolio_value_cents: int,
        existing_exposure_cents: int = 0,
    ) -> GuardDecision:
        if Action(action) is Action.SELL:
            return GuardDecision.allow()

        for decision in (
            check_min_price(price_cents, self.min_price_cents),
            check_exposure_cap(
                price_cents,
                count,
                portfolio_value_cents,
                self.cap_fraction,
                existing_exposure_cents,
            ),
        ):
            if not decision.allowed:
                logger.warning(
                    "Guard rejected buy %dx%dc: rule=%s threshold=%s observed=%s",
                    count, price_cents, decision.rule, decision.threshold, decision.observed,
                )
                return decision
        return GuardDecision.allow()
