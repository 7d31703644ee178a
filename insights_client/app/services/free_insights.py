"""Anonymous free-view insight fetches routed through the quota gate."""
from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Any, Callable, Dict, Optional, Protocol

from ..entitlements.models import InsightErrorCode, InsightResult
from ..feature_gates.exceptions import InsightsAPIError
from ..feature_gates.quota import QuotaGate

logger = logging.getLogger(__name__)

LIMIT_REACHED_MESSAGE = "Free insight limit reached. Please log in to continue."


def _error_message(exc: Exception) -> str:
    if isinstance(exc, InsightsAPIError) and exc.message:
        return exc.message
    return str(exc) or "Failed to fetch property insights"


class PropertyInsightFetcher(Protocol):
    """Backend endpoints serving free-view insights."""

    async def fetch_property(self, property_id: str) -> Dict[str, Any]:
        ...

    async def check_availability(self, property_id: str) -> bool:
        ...


class FreeInsightService:
    """Fetches enhanced property data, consuming one free view per call."""

    def __init__(
        self,
        fetcher: PropertyInsightFetcher,
        quota_gate: QuotaGate,
        *,
        clock: Optional[Callable[[], datetime]] = None,
    ) -> None:
        self._fetcher = fetcher
        self._quota_gate = quota_gate
        self._clock = clock or (lambda: datetime.now(timezone.utc))

    async def fetch_property_insights(self, property_id: str) -> InsightResult:
        if not self._quota_gate.record_view():
            return InsightResult.failure(
                InsightErrorCode.LIMIT_REACHED,
                LIMIT_REACHED_MESSAGE,
                detail={"requires_auth": True},
            )

        try:
            data = await self._fetcher.fetch_property(property_id)
        except Exception as exc:
            message = _error_message(exc)
            logger.warning("Free insight fetch failed property=%s: %s", property_id, message)
            return InsightResult.failure(InsightErrorCode.API_ERROR, message)

        enriched = {
            **data,
            "is_enhanced": True,
            "data_source": "corelogic",
            "fetched_at": self._clock().isoformat(),
        }
        return InsightResult.ok(enriched)

    async def is_enhanced_data_available(self, property_id: str) -> bool:
        """Check availability, assuming data exists when the check itself fails."""

        try:
            return await self._fetcher.check_availability(property_id)
        except Exception as exc:
            logger.warning(
                "Availability check failed property=%s: %s", property_id, _error_message(exc)
            )
            return True
