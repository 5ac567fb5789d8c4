from src.ff_risk.rules.decision import GuardDecision

DEFAULT_MIN_PRICE_CENTS = 90


def check_min_price(price_cents: int, min_price_cents: int = DEFAULT_MIN_PRICE_CENTS) -> GuardDecision:
    """Reject favourite-side buys priced below the confidence floor."""
    if price_cents < min_price_cents:
        return GuardDecision.reject(
            rule="min_price",
            threshold=min_price_cents,
            observed=price_cents,
            reason=f"Price {price_cents}c below minimum {min_price_cents}c",
        )
    return GuardDecision.allow()
