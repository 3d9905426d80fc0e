"""
Review analytics.

- aggregator: PeriodicalMetric snapshots per rolling window
- distribution: full-history RatingDistribution per profile
- comparison: period-over-period derived view
- periods: window boundaries and baseline selection
"""

from reviewhub.analytics.aggregator import AnalyticsAggregator, rating_histogram, top_terms
from reviewhub.analytics.comparison import compare_periods, percent_change
from reviewhub.analytics.distribution import build_rating_distribution
from reviewhub.analytics.periods import PERIOD_ORDER, comparison_baseline, window_bounds

__all__ = [
    "PERIOD_ORDER",
    "AnalyticsAggregator",
    "build_rating_distribution",
    "compare_periods",
    "comparison_baseline",
    "percent_change",
    "rating_histogram",
    "top_terms",
    "window_bounds",
]
