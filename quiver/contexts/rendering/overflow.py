"""
Page overflow analysis.

Translates "N pages over budget" into "remove about M bullets", using a fixed
lines-per-page estimate and the average line count of the current bullets.
"""

import math
from dataclasses import dataclass
from typing import List, Optional

from quiver.contexts.targeting.data_structures import CHARS_PER_LINE, RewrittenBullet

LINES_PER_PAGE = 50
DEFAULT_LINES_PER_BULLET = 2.0


@dataclass
class OverflowAnalysis:
    """
    How much content must go to fit the page limit.

    must_drop and can_shorten are mutually exclusive once there is overflow;
    a no-overflow analysis has both False.
    """

    excess_pages: float = 0.0
    excess_lines: int = 0
    excess_bullets: float = 0.0
    can_shorten: bool = False
    must_drop: bool = False

    def bullets_to_drop_count(self) -> int:
        if not self.must_drop:
            return 0
        return math.ceil(self.excess_bullets)


def average_lines_per_bullet(bullets: Optional[List[RewrittenBullet]]) -> float:
    """Mean estimated lines per bullet, or 0.0 with no bullets."""
    if not bullets:
        return 0.0

    total = 0
    for bullet in bullets:
        if bullet.estimated_lines > 0:
            total += bullet.estimated_lines
        else:
            total += math.ceil(bullet.length_chars / CHARS_PER_LINE)
    return total / len(bullets)


def analyze_page_overflow(
    current_pages: int, max_pages: int, bullets: Optional[List[RewrittenBullet]] = None
) -> OverflowAnalysis:
    """
    Estimate how many bullets must be removed to fit max_pages.

    Example:
        >>> analysis = analyze_page_overflow(2, 1, bullets)  # bullets average 2 lines
        >>> analysis.excess_lines, analysis.excess_bullets, analysis.bullets_to_drop_count()
        (50, 25.0, 25)
    """
    if current_pages <= max_pages:
        return OverflowAnalysis()

    excess_pages = float(current_pages - max_pages)
    excess_lines = int(excess_pages * LINES_PER_PAGE)

    average = average_lines_per_bullet(bullets)
    if average <= 0:
        average = DEFAULT_LINES_PER_BULLET

    excess_bullets = excess_lines / average
    must_drop = excess_bullets >= 1.0
    return OverflowAnalysis(
        excess_pages=excess_pages,
        excess_lines=excess_lines,
        excess_bullets=excess_bullets,
        can_shorten=not must_drop,
        must_drop=must_drop,
    )
