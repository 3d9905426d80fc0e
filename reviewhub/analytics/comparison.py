"""Period-over-period comparison between two stored snapshots."""

from typing import Optional

from reviewhub.core.numeric import is_valid_rating
from reviewhub.models.schemas import PeriodComparison, PeriodicalMetric


def percent_change(current: Optional[float], baseline: Optional[float]) -> Optional[float]:
    """Relative change in percent; None when the baseline is absent or zero."""
    if not is_valid_rating(current) or not is_valid_rating(baseline) or baseline == 0:
        return None
    return (current - baseline) / abs(baseline) * 100.0


def difference(current: Optional[float], baseline: Optional[float]) -> Optional[float]:
    if not is_valid_rating(current) or not is_valid_rating(baseline):
        return None
    return current - baseline


def compare_periods(current: PeriodicalMetric, baseline: PeriodicalMetric) -> PeriodComparison:
    """Build the derived comparison view. Nothing here is persisted.

    Raises:
        ValueError: If the snapshots belong to different profiles.
    """
    if current.business_profile_id != baseline.business_profile_id:
        raise ValueError("cannot compare snapshots of different business profiles")

    return PeriodComparison(
        business_profile_id=current.business_profile_id,
        period_key=current.period_key,
        baseline_period_key=baseline.period_key,
        review_count_change_percent=percent_change(current.review_count, baseline.review_count),
        avg_rating_change=difference(current.avg_rating, baseline.avg_rating),
        avg_rating_change_percent=percent_change(current.avg_rating, baseline.avg_rating),
        response_rate_change=difference(
            current.response_rate_percent, baseline.response_rate_percent
        ),
        current=current,
        baseline=baseline,
    )
