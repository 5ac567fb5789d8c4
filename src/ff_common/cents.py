"""Integer arithmetic utilities for cents-based contract accounting.

All prices, costs, balances and payouts are int (cents). Percentages coming
from configuration are converted to basis points once, so every cap check is
integer math.
"""

CONTRACT_FACE_VALUE_CENTS = 100


def validate_price(price: int) -> None:
    """Validate that price is in the range [1, 99] cents."""
    if not (1 <= price <= 99):
        raise ValueError(f"Price must be between 1 and 99 cents, got {price}")


def cents_to_display(cents: int) -> str:
    """Convert cents to display string: 6500 -> '$65.00', -1200 -> '-$12.00'."""
    if cents < 0:
        abs_cents = -cents
        return f"-${abs_cents // 100:,}.{abs_cents % 100:02d}"
    return f"${cents // 100:,}.{cents % 100:02d}"


def percent_to_bps(fraction: float) -> int:
    """0.03 -> 300. Rounded so float noise (299.99999...) never loses a bp."""
    return round(fraction * 10_000)


def cap_cents(portfolio_value: int, cap_fraction: float) -> int:
    """floor(portfolio_value * cap_fraction), computed in integer bps."""
    return portfolio_value * percent_to_bps(cap_fraction) // 10_000


def round_half_up_div(numerator: int, denominator: int) -> int:
    """round(numerator / denominator) with halves rounded up, for non-negative ints."""
    if denominator <= 0:
        raise ValueError(f"denominator must be positive, got {denominator}")
    return (2 * numerator + denominator) // (2 * denominator)


def dollars_to_cents(dollars: str | float | int | None) -> int:
    """Exchange dollar strings ('0.0700') -> cents, half-up."""
    if dollars is None or dollars == "":
        return 0
    scaled = round(float(dollars) * 10_000)  # hundredths of a cent
    return round_half_up_div(scaled, 100) if scaled >= 0 else -round_half_up_div(-scaled, 100)


def probability_to_cents(probability: float) -> int:
    """0.92 -> 92."""
    return round(probability * 100)
