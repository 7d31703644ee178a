"""Domain models for tiered insight purchases."""
from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Optional, Tuple, Union

from pydantic import BaseModel, ConfigDict, Field


class InsightErrorCode(str, Enum):
    """Typed failure codes surfaced to insight consumers."""

    AUTHENTICATION_REQUIRED = "AUTHENTICATION_REQUIRED"
    INVALID_TIER = "INVALID_TIER"
    INSUFFICIENT_FXCT = "INSUFFICIENT_FXCT"
    API_ERROR = "API_ERROR"
    PURCHASE_FAILED = "PURCHASE_FAILED"
    NO_PENDING_REQUEST = "NO_PENDING_REQUEST"
    LIMIT_REACHED = "LIMIT_REACHED"
    REQUEST_SUPERSEDED = "REQUEST_SUPERSEDED"


@dataclass(frozen=True)
class Tier:
    """A named bundle of premium insight detail with a fixed FXCT price."""

    key: str
    fxct_cost: int
    name: str
    description: str
    benefits: Tuple[str, ...] = ()

    def __post_init__(self) -> None:
        if self.fxct_cost <= 0:
            raise ValueError("fxct_cost must be > 0")
        object.__setattr__(self, "benefits", tuple(self.benefits))


@dataclass(frozen=True)
class TierAvailability:
    """A catalog tier annotated with affordability at the time of the query."""

    tier: Tier
    affordable: bool

    @property
    def key(self) -> str:
        return self.tier.key

    @property
    def fxct_cost(self) -> int:
        return self.tier.fxct_cost


@dataclass(frozen=True)
class AuthState:
    """Authentication input supplied by the host application's auth provider."""

    user_id: Optional[str] = None
    is_authenticated: bool = False

    @classmethod
    def anonymous(cls) -> "AuthState":
        return cls()

    @classmethod
    def for_user(cls, user_id: str) -> "AuthState":
        return cls(user_id=user_id, is_authenticated=True)


@dataclass(frozen=True)
class PendingInsightRequest:
    """A previewed request parked until the user confirms the charge.

    ``tier`` is the snapshot captured when the preview was issued; the charge
    always uses it, never a fresh catalog lookup.
    """

    request_id: int
    property_id: str
    tier: Tier
    address: Optional[str]
    confirmation_data: Optional[Dict[str, Any]]


@dataclass(frozen=True)
class Idle:
    """No purchase is awaiting confirmation."""


@dataclass(frozen=True)
class AwaitingConfirmation:
    """A previewed purchase is waiting for an explicit confirm or cancel."""

    request: PendingInsightRequest


ControllerState = Union[Idle, AwaitingConfirmation]


@dataclass(frozen=True)
class ModalVisibility:
    """Prompt flags the host UI renders declaratively."""

    show_login_modal: bool = False
    show_fxct_modal: bool = False


class InsightResult(BaseModel):
    """Outcome of an insight command, success or typed failure."""

    success: bool
    data: Optional[Dict[str, Any]] = None
    error: Optional[InsightErrorCode] = None
    message: Optional[str] = None
    requires_confirmation: bool = False
    confirmation_data: Optional[Dict[str, Any]] = None
    required: Optional[int] = None
    current: Optional[int] = None
    detail: Dict[str, Any] = Field(default_factory=dict)

    model_config = ConfigDict(frozen=True)

    @classmethod
    def ok(cls, data: Optional[Dict[str, Any]] = None) -> "InsightResult":
        return cls(success=True, data=data)

    @classmethod
    def awaiting_confirmation(cls, confirmation_data: Optional[Dict[str, Any]]) -> "InsightResult":
        return cls(success=True, requires_confirmation=True, confirmation_data=confirmation_data)

    @classmethod
    def failure(
        cls,
        error: InsightErrorCode,
        message: str,
        **extra: Any,
    ) -> "InsightResult":
        return cls(success=False, error=error, message=message, **extra)
