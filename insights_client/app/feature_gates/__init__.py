"""Free-view gating and backend error types."""
from .exceptions import InsightsAPIError
from .quota import DEFAULT_FREE_INSIGHT_LIMIT, InsightCounter, QuotaGate, QuotaSnapshot

__all__ = [
    "DEFAULT_FREE_INSIGHT_LIMIT",
    "InsightCounter",
    "InsightsAPIError",
    "QuotaGate",
    "QuotaSnapshot",
]
