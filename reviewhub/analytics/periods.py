"""Rolling window arithmetic for periodical metrics."""

from datetime import datetime, timedelta
from typing import Optional

from reviewhub.models.schemas import PeriodKey

# Longest to shortest; each window's comparison baseline is its right neighbour
PERIOD_ORDER: tuple[PeriodKey, ...] = (
    PeriodKey.ALL_TIME,
    PeriodKey.LAST_12_MONTHS,
    PeriodKey.LAST_6_MONTHS,
    PeriodKey.LAST_30_DAYS,
    PeriodKey.LAST_7_DAYS,
    PeriodKey.LAST_3_DAYS,
    PeriodKey.LAST_DAY,
)


def window_bounds(period_key: PeriodKey, as_of: datetime) -> tuple[Optional[datetime], datetime]:
    """Return (start, end) of a window ending at as_of.

    Start is None for the all-time window. Both bounds are inclusive.
    """
    days = period_key.days
    if days is None:
        return None, as_of
    return as_of - timedelta(days=days), as_of


def in_window(published_at: datetime, start: Optional[datetime], end: datetime) -> bool:
    if published_at > end:
        return False
    return start is None or published_at >= start


def comparison_baseline(period_key: PeriodKey) -> Optional[PeriodKey]:
    """The next shorter window, or None for the shortest one."""
    index = PERIOD_ORDER.index(period_key)
    if index + 1 >= len(PERIOD_ORDER):
        return None
    return PERIOD_ORDER[index + 1]
