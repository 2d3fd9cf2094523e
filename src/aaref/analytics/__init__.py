"""Read-only salary comparison analytics."""

from aaref.analytics.comparison import (
    Comparison,
    MarketComparison,
    industry_comparison,
    market_comparison,
    nearby_records,
)

__all__ = [
    "Comparison",
    "MarketComparison",
    "industry_comparison",
    "market_comparison",
    "nearby_records",
]
