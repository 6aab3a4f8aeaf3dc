"""Order statistics over the small numeric sets an audit compares.

Tie policy for :func:`rank`: the subject is placed first in the combined
list and the sort is stable, so a subject tied with a competitor always
ranks ahead of it.
"""

import math
from typing import Iterable, Sequence


def median(values: Iterable[float]) -> float:
    """Median of the finite values; ``0`` for an empty set.

    Examples:
        >>> median([])
        0
        >>> median([3, 7])
        5.0
        >>> median([1, 9, 2])
        2
    """
    nums = sorted(v for v in values if isinstance(v, (int, float)) and math.isfinite(v))
    if not nums:
        return 0
    mid = len(nums) // 2
    if len(nums) % 2 == 0:
        return (nums[mid - 1] + nums[mid]) / 2
    return nums[mid]


def rank(
    subject: float,
    competitors: Sequence[float],
    higher_is_better: bool = True,
) -> int:
    """1-based position of *subject* among itself plus *competitors*.

    Examples:
        >>> rank(5, [3, 7, 5])
        2
        >>> rank(1, [3, 7], higher_is_better=False)
        1
    """
    combined = [(0, subject)] + [(i + 1, v) for i, v in enumerate(competitors)]
    # sorted() stays stable with reverse=True
    ordered = sorted(combined, key=lambda item: item[1], reverse=higher_is_better)
    return next(pos for pos, (idx, _) in enumerate(ordered, start=1) if idx == 0)


def gap(subject: float, median_value: float) -> float:
    """Signed distance from the median; positive means above typical."""
    return subject - median_value
