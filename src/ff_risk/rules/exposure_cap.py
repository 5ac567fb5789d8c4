from src.ff_common.cents import cap_cents
from src.ff_risk.rules.decision import GuardDecision


def check_exposure_cap(
    price_cents: int,
    count: int,
    portfolio_value_cents: int,
    cap_fraction: float,
    existing_exposure_cents: int = 0,
) -> GuardDecision:
    """Reject when existing exposure plus this order exceeds floor(portfolio * cap)."""
    cap = cap_cents(portfolio_value_cents, cap_fraction)
    exposure = existing_exposure_cents + price_cents * count
    if exposure > cap:
        return GuardDecision.reject(
            rule="exposure_cap",
            threshold=cap,
            observed=exposure,
            reason=(
                f"Exposure {exposure}c exceeds {cap_fraction:.2%} cap of {cap}c "
                f"on portfolio {portfolio_value_cents}c"
            ),
        )
    return GuardDecision.allow()
