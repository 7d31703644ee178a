"""Consumer-facing insights context and application wiring."""
from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional

from ...config import ClientConfig, load_client_config
from ..entitlements import (
    AuthState,
    EntitlementController,
    InsightEventListener,
    InsightResult,
    ModalVisibility,
    PendingInsightRequest,
    Tier,
    TierAvailability,
)
from ..feature_gates.quota import QuotaGate
from .free_insights import FreeInsightService
from .insights_api import InsightsApiGateway

logger = logging.getLogger("insights")


class LoggingInsightListener(InsightEventListener):
    """Listener that records confirmed purchases to the application logger."""

    def insight_confirmed(self, request: PendingInsightRequest, data: Dict[str, Any]) -> None:
        logger.info(
            "Insight confirmed property=%s tier=%s cost=%s fields=%s",
            request.property_id,
            request.tier.key,
            request.tier.fxct_cost,
            sorted(data),
        )


class InsightsContext:
    """Query and command surface handed to property cards and result panels."""

    def __init__(
        self,
        controller: EntitlementController,
        quota_gate: QuotaGate,
        free_insights: Optional[FreeInsightService] = None,
        *,
        gateway: Optional[InsightsApiGateway] = None,
    ) -> None:
        self._controller = controller
        self._quota_gate = quota_gate
        self._free_insights = free_insights
        self._gateway = gateway

    @property
    def controller(self) -> EntitlementController:
        return self._controller

    @property
    def quota_gate(self) -> QuotaGate:
        return self._quota_gate

    @property
    def fxct_balance(self) -> int:
        return self._controller.balance

    @property
    def is_unlimited(self) -> bool:
        return self._quota_gate.is_unlimited

    @property
    def insight_count(self) -> int:
        return self._quota_gate.count

    @property
    def free_user_limit(self) -> int:
        return self._quota_gate.limit

    @property
    def modals(self) -> ModalVisibility:
        return self._controller.modals

    @property
    def pending_insight_request(self) -> Optional[PendingInsightRequest]:
        return self._controller.pending_request

    # Queries

    def can_afford_tier(self, tier: str) -> bool:
        return self._controller.can_afford(tier)

    def get_tier_pricing(self, tier: str) -> Optional[Tier]:
        return self._controller.get_tier(tier)

    def get_available_tiers(self) -> List[TierAvailability]:
        return self._controller.available_tiers()

    def can_view_insight(self) -> bool:
        return self._quota_gate.can_view()

    def get_remaining_insights(self) -> Optional[int]:
        """Remaining free views, or ``None`` when access is unlimited."""

        if self._quota_gate.is_unlimited:
            return None
        return self._quota_gate.remaining()

    def requires_login(self) -> bool:
        return self._quota_gate.requires_login()

    # Commands

    async def set_auth(self, auth: AuthState, access_token: Optional[str] = None) -> None:
        """Apply an auth change, handing the identity's token to the gateway.

        Without a token an authenticated identity keeps the current one; an
        anonymous identity always drops it.
        """

        if self._gateway is not None and (access_token is not None or not auth.is_authenticated):
            self._gateway.set_access_token(access_token)
        await self._controller.set_auth(auth)

    async def refresh_balance(self) -> int:
        return await self._controller.refresh_balance()

    def view_insight(self) -> bool:
        return self._quota_gate.record_view()

    async def fetch_free_insight(self, property_id: str) -> InsightResult:
        if self._free_insights is None:
            raise RuntimeError("Free insight service has not been configured")
        return await self._free_insights.fetch_property_insights(property_id)

    async def request_property_insights(
        self,
        property_id: str,
        tier: str,
        address: Optional[str] = None,
    ) -> InsightResult:
        return await self._controller.request_insight(property_id, tier, address)

    async def confirm_property_insights(self) -> InsightResult:
        return await self._controller.confirm_purchase()

    def cancel_property_insights(self) -> None:
        self._controller.cancel_purchase()

    def reset_insight_count(self) -> None:
        self._quota_gate.reset()

    def dismiss_login_modal(self) -> None:
        self._quota_gate.dismiss_login()


def create_insights_context(
    config: Optional[ClientConfig] = None,
    *,
    gateway: Optional[InsightsApiGateway] = None,
) -> InsightsContext:
    """Build a fully wired context from configuration."""

    resolved = config or load_client_config()
    api = gateway or InsightsApiGateway(
        resolved.api_base_url,
        resolved.access_token,
        timeout=resolved.http_timeout_seconds,
        verify=resolved.verify_tls,
    )
    quota_gate = QuotaGate(resolved.free_insight_limit)
    controller = EntitlementController(
        balance_source=api,
        insight_source=api,
        quota_gate=quota_gate,
        listeners=[LoggingInsightListener()],
    )
    free_insights = FreeInsightService(api, quota_gate)
    return InsightsContext(controller, quota_gate, free_insights, gateway=api)
