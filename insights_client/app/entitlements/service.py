"""Controller for tiered, balance-checked, confirm-then-charge insight purchases."""
from __future__ import annotations

import asyncio
import itertools
import logging
from typing import Any, Dict, List, Mapping, Optional, Protocol, Sequence

from ..feature_gates.exceptions import InsightsAPIError
from ..feature_gates.quota import QuotaGate
from .balance import BalanceCache
from .catalog import TIER_CATALOG
from .models import (
    AuthState,
    AwaitingConfirmation,
    ControllerState,
    Idle,
    InsightErrorCode,
    InsightResult,
    ModalVisibility,
    PendingInsightRequest,
    Tier,
    TierAvailability,
)

logger = logging.getLogger(__name__)


class BalanceSource(Protocol):
    """Authoritative FXCT balance lookup."""

    async def get_balance(self, user_id: str) -> int:
        ...


class InsightSource(Protocol):
    """Backend endpoints serving premium property insights."""

    async def preview_insight(
        self,
        property_id: str,
        tier: str,
        address: Optional[str] = None,
    ) -> Dict[str, Any]:
        """Non-charging request; may report ``requiresConfirmation``."""

    async def purchase_insight(
        self,
        property_id: str,
        tier: str,
        address: Optional[str] = None,
    ) -> Dict[str, Any]:
        """Charging request returning the insight payload."""


class InsightEventListener(Protocol):
    """Receives notifications about completed purchases."""

    def insight_confirmed(self, request: PendingInsightRequest, data: Dict[str, Any]) -> None:
        ...


def _error_message(exc: Exception) -> str:
    if isinstance(exc, InsightsAPIError):
        return exc.message
    return str(exc) or exc.__class__.__name__


class EntitlementController:
    """Runs the request -> confirm -> charge protocol for authenticated users.

    At most one request is parked at a time. The purchase prompt is derived
    from the parked request, so the two cannot drift apart. Every network
    failure is converted to a typed :class:`InsightResult`.
    """

    def __init__(
        self,
        balance_source: BalanceSource,
        insight_source: InsightSource,
        quota_gate: QuotaGate,
        *,
        catalog: Optional[Mapping[str, Tier]] = None,
        balance_cache: Optional[BalanceCache] = None,
        listeners: Sequence[InsightEventListener] = (),
    ) -> None:
        self._balance_source = balance_source
        self._insight_source = insight_source
        self._quota_gate = quota_gate
        self._catalog: Dict[str, Tier] = dict(TIER_CATALOG if catalog is None else catalog)
        self._balance = balance_cache or BalanceCache()
        self._listeners: List[InsightEventListener] = list(listeners)
        self._auth = AuthState.anonymous()
        self._state: ControllerState = Idle()
        self._request_ids = itertools.count(1)
        self._latest_request_id = 0
        self._auth_generation = 0
        self._refresh_seq = 0
        self._confirm_lock = asyncio.Lock()

    # -- queries -----------------------------------------------------------

    @property
    def auth(self) -> AuthState:
        return self._auth

    @property
    def is_authenticated(self) -> bool:
        return self._auth.is_authenticated

    @property
    def balance(self) -> int:
        return self._balance.value

    @property
    def balance_cache(self) -> BalanceCache:
        return self._balance

    @property
    def state(self) -> ControllerState:
        return self._state

    @property
    def pending_request(self) -> Optional[PendingInsightRequest]:
        if isinstance(self._state, AwaitingConfirmation):
            return self._state.request
        return None

    @property
    def modals(self) -> ModalVisibility:
        return ModalVisibility(
            show_login_modal=self._quota_gate.show_login_modal,
            show_fxct_modal=isinstance(self._state, AwaitingConfirmation),
        )

    def get_tier(self, tier_key: str) -> Optional[Tier]:
        return self._catalog.get(tier_key)

    def can_afford(self, tier: Tier | str) -> bool:
        resolved = self.get_tier(tier) if isinstance(tier, str) else tier
        if resolved is None:
            return False
        return self.is_authenticated and self._balance.value >= resolved.fxct_cost

    def available_tiers(self) -> List[TierAvailability]:
        """Catalog in display order, annotated with current affordability."""

        return [
            TierAvailability(tier=tier, affordable=self.can_afford(tier))
            for tier in self._catalog.values()
        ]

    # -- authentication and balance ----------------------------------------

    async def set_auth(self, auth: AuthState) -> None:
        """Apply an auth provider change and re-sync the balance."""

        changed = auth != self._auth
        self._auth = auth
        self._quota_gate.set_authenticated(auth.is_authenticated)
        if changed:
            self._auth_generation += 1
            if self.pending_request is not None:
                logger.info("Discarding pending insight request after auth change")
                self._state = Idle()
        await self.refresh_balance()

    async def refresh_balance(self) -> int:
        """Overwrite the cached balance with the source's value.

        A fetch result is applied only while it is still the newest view of
        the current user's balance.
        """

        auth = self._auth
        if not auth.is_authenticated or not auth.user_id:
            self._balance.reset()
            return self._balance.value

        self._refresh_seq += 1
        seq = self._refresh_seq
        generation = self._auth_generation
        version = self._balance.version

        try:
            value = await self._balance_source.get_balance(auth.user_id)
        except Exception as exc:
            if self._is_stale_fetch(seq, generation, version):
                return self._balance.value
            logger.warning(
                "Balance fetch failed for user %s: %s",
                auth.user_id,
                _error_message(exc),
            )
            self._balance.reset()
            return self._balance.value

        if self._is_stale_fetch(seq, generation, version):
            logger.debug("Ignoring stale balance fetch for user %s", auth.user_id)
            return self._balance.value

        self._balance.apply_authoritative(value)
        return self._balance.value

    def _is_stale_fetch(self, seq: int, generation: int, version: int) -> bool:
        return (
            seq != self._refresh_seq
            or generation != self._auth_generation
            or version != self._balance.version
        )

    # -- commands ----------------------------------------------------------

    async def request_insight(
        self,
        property_id: str,
        tier: str,
        address: Optional[str] = None,
    ) -> InsightResult:
        """Preview an insight purchase, parking it if confirmation is required."""

        if not self.is_authenticated:
            self._quota_gate.prompt_login()
            return InsightResult.failure(
                InsightErrorCode.AUTHENTICATION_REQUIRED,
                "Please log in to access premium insights.",
            )

        tier_config = self.get_tier(tier)
        if tier_config is None:
            return InsightResult.failure(
                InsightErrorCode.INVALID_TIER,
                f"Unknown insight tier: {tier}",
            )

        current = self._balance.value
        if current < tier_config.fxct_cost:
            return InsightResult.failure(
                InsightErrorCode.INSUFFICIENT_FXCT,
                f"Insufficient FXCT balance. Need {tier_config.fxct_cost}, have {current}.",
                required=tier_config.fxct_cost,
                current=current,
            )

        request_id = next(self._request_ids)
        self._latest_request_id = request_id
        generation = self._auth_generation
        if self.pending_request is not None:
            logger.debug("Superseding pending insight request %s", self.pending_request.request_id)
            self._state = Idle()

        try:
            response = await self._insight_source.preview_insight(
                property_id, tier_config.key, address
            )
        except Exception as exc:
            message = _error_message(exc)
            logger.warning(
                "Insight preview failed property=%s tier=%s: %s",
                property_id,
                tier_config.key,
                message,
            )
            return InsightResult.failure(InsightErrorCode.API_ERROR, message)

        payload = dict(response or {})
        requires_confirmation = bool(payload.pop("requiresConfirmation", False))
        confirmation_data = payload.pop("confirmationData", None)

        if not requires_confirmation:
            return InsightResult.ok(payload)

        if request_id != self._latest_request_id or generation != self._auth_generation:
            logger.info(
                "Discarding stale preview request=%s property=%s",
                request_id,
                property_id,
            )
            return InsightResult.failure(
                InsightErrorCode.REQUEST_SUPERSEDED,
                "A newer insight request replaced this one.",
            )

        self._state = AwaitingConfirmation(
            PendingInsightRequest(
                request_id=request_id,
                property_id=property_id,
                tier=tier_config,
                address=address,
                confirmation_data=confirmation_data,
            )
        )
        logger.info(
            "Insight purchase awaiting confirmation property=%s tier=%s cost=%s",
            property_id,
            tier_config.key,
            tier_config.fxct_cost,
        )
        return InsightResult.awaiting_confirmation(confirmation_data)

    async def confirm_purchase(self) -> InsightResult:
        """Charge the parked request and release its payload."""

        async with self._confirm_lock:
            pending = self.pending_request
            if pending is None:
                return InsightResult.failure(
                    InsightErrorCode.NO_PENDING_REQUEST,
                    "No pending insight request to confirm.",
                )

            try:
                data = await self._insight_source.purchase_insight(
                    pending.property_id, pending.tier.key, pending.address
                )
            except Exception as exc:
                message = _error_message(exc)
                logger.warning(
                    "Insight purchase failed property=%s tier=%s: %s",
                    pending.property_id,
                    pending.tier.key,
                    message,
                )
                return InsightResult.failure(InsightErrorCode.PURCHASE_FAILED, message)

            current = self.pending_request
            if current is None or current.request_id != pending.request_id:
                logger.warning(
                    "Charge response for request %s arrived after it was cancelled",
                    pending.request_id,
                )
                await self.refresh_balance()
                return InsightResult.failure(
                    InsightErrorCode.REQUEST_SUPERSEDED,
                    "The purchase was cancelled before the charge completed.",
                )

            remaining = self._balance.debit(pending.tier.fxct_cost)
            self._state = Idle()
            payload = dict(data or {})
            logger.info(
                "Insight purchased property=%s tier=%s cost=%s balance=%s",
                pending.property_id,
                pending.tier.key,
                pending.tier.fxct_cost,
                remaining,
            )
            self._notify_confirmed(pending, payload)
            return InsightResult.ok(payload)

    def cancel_purchase(self) -> None:
        """Drop the parked request; a no-op when nothing is pending."""

        if self.pending_request is not None:
            logger.info("Insight purchase cancelled request=%s", self.pending_request.request_id)
        self._state = Idle()

    def _notify_confirmed(self, request: PendingInsightRequest, data: Dict[str, Any]) -> None:
        for listener in self._listeners:
            try:
                listener.insight_confirmed(request, data)
            except Exception:
                logger.exception("Insight listener %r failed", listener)
