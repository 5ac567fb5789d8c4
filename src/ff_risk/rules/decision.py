from dataclasses import dataclass


@dataclass(frozen=True)
class GuardDecision:
    """Outcome of a guard rule. Rejections are values, never exceptions."""

    allowed: bool
    rule: str | None = None
    threshold: int | None = None
    observed: int | None = None
    reason: str | None = None

    @classmethod
    def allow(cls) -> "GuardDecision":
        return cls(allowed=True)

    @classmethod
    def reject(cls, rule: str, threshold: int, observed: int, reason: str) -> "GuardDecision":
        return cls(allowed=False, rule=rule, threshold=threshold, observed=observed, reason=reason)
