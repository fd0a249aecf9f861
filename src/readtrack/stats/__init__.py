"""Reading statistics and trends."""

from .aggregator import (
    BookReadingStatistics,
    DurationBand,
    DurationDistribution,
    ReadingOverview,
    StatisticsAggregator,
)
from .trends import (
    DistributionPoint,
    Granularity,
    TrendBucketer,
    TrendMetric,
    TrendPoint,
)

__all__ = [
    "BookReadingStatistics",
    "DurationBand",
    "DurationDistribution",
    "ReadingOverview",
    "StatisticsAggregator",
    "DistributionPoint",
    "Granularity",
    "TrendBucketer",
    "TrendMetric",
    "TrendPoint",
]
