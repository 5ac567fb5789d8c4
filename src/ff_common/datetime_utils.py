"""UTC datetime utilities."""

from datetime import date, datetime, timedelta, timezone


def utc_now() -> datetime:
    """Return timezone-aware UTC now."""
    return datetime.now(timezone.utc)


def utc_today() -> date:
    return utc_now().date()


def batch_date_for(for_today: bool) -> date:
    """Prepared batches target tomorrow unless explicitly asked for today."""
    today = utc_today()
    return today if for_today else today + timedelta(days=1)


def now_ms() -> str:
    """Current Unix time in milliseconds as a decimal string."""
    return str(int(utc_now().timestamp() * 1000))
