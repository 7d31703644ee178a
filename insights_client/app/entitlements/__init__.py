"""Tiered premium insight purchases and FXCT balance tracking."""

from .balance import BalanceCache
from .catalog import TIER_CATALOG, get_tier_definition
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
from .service import (
    BalanceSource,
    EntitlementController,
    InsightEventListener,
    InsightSource,
)

__all__ = [
    "TIER_CATALOG",
    "get_tier_definition",
    "BalanceCache",
    "AuthState",
    "AwaitingConfirmation",
    "ControllerState",
    "Idle",
    "InsightErrorCode",
    "InsightResult",
    "ModalVisibility",
    "PendingInsightRequest",
    "Tier",
    "TierAvailability",
    "BalanceSource",
    "EntitlementController",
    "InsightEventListener",
    "InsightSource",
]
