"""Smile score to discount percentage."""
import numbers

from .config import DEFAULT_POLICY, DiscountPolicy
from .errors import InvalidInput


def score_to_discount(score: int, policy: DiscountPolicy = DEFAULT_POLICY) -> int:
    """Map a smile score to a bounded discount percentage.

    discount = clamp(round((100 - score) * factor), low, high)

    Lower scores earn larger discounts; the mapping is monotonically
    non-increasing in score.

    Args:
        score: Smile score, integer in [0, 100]
        policy: Scale factor and bounds

    Returns:
        Discount percentage in [policy.low, policy.high]

    Raises:
        InvalidInput: non-integer or out-of-range score
    """
    if isinstance(score, bool) or not isinstance(score, numbers.Integral):
        raise InvalidInput(f"Score must be an integer, got {score!r}")
    if not (0 <= score <= 100):
        raise InvalidInput(f"Score must be between 0 and 100, got {score}")

    raw = round((100 - int(score)) * policy.factor)
    return int(min(policy.high, max(policy.low, raw)))
