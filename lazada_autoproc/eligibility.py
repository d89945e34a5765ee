"""Fixed trigger predicate for the automatic "No re-attempt" action."""

# Reference wordings seen on the portal; matching is by keyword so variants
# of these still qualify.
TRIGGER_REASONS = (
    "Customer refuses delivery",
    "Customer cancelled orders before delivery",
)

TRIGGER_KEYWORDS = ("refuse", "cancelled")
ATTEMPT_THRESHOLD = 2


def is_eligible(reason: str, attempts: int) -> bool:
    """True when the reason mentions a refusal/cancellation or attempts >= 2."""
    reason_lower = (reason or "").lower()
    if any(keyword in reason_lower for keyword in TRIGGER_KEYWORDS):
        return True
    return attempts >= ATTEMPT_THRESHOLD
