"""Daily free-view quota for anonymous insight viewers."""
from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Callable, Optional

logger = logging.getLogger(__name__)

DEFAULT_FREE_INSIGHT_LIMIT = 3


@dataclass
class InsightCounter:
    """Views consumed in the current period.

    ``count`` may reach ``limit`` but the counter itself does not clamp;
    denial happens in :meth:`QuotaGate.record_view`.
    """

    limit: int
    period_start: datetime
    count: int = 0

    def __post_init__(self) -> None:
        if self.limit < 1:
            raise ValueError("limit must be >= 1")


@dataclass(frozen=True)
class QuotaSnapshot:
    """Represents the gate state at a point in time."""

    count: int
    limit: int
    remaining: int
    is_unlimited: bool
    period_start: datetime
    show_login_modal: bool

    def to_dict(self) -> dict[str, object]:
        """Serialize the snapshot for logging or telemetry."""

        return {
            "count": self.count,
            "limit": self.limit,
            "remaining": self.remaining,
            "is_unlimited": self.is_unlimited,
            "period_start": self.period_start.isoformat(),
            "show_login_modal": self.show_login_modal,
        }


class QuotaGate:
    """Admits or denies free insight views and escalates to a login prompt."""

    def __init__(
        self,
        limit: int = DEFAULT_FREE_INSIGHT_LIMIT,
        *,
        clock: Optional[Callable[[], datetime]] = None,
    ) -> None:
        self._clock = clock or (lambda: datetime.now(timezone.utc))
        self._counter = InsightCounter(limit=limit, period_start=self._clock())
        self._is_authenticated = False
        self._show_login_modal = False

    @property
    def limit(self) -> int:
        return self._counter.limit

    @property
    def count(self) -> int:
        self._roll_period()
        return self._counter.count

    @property
    def is_unlimited(self) -> bool:
        return self._is_authenticated

    @property
    def show_login_modal(self) -> bool:
        return self._show_login_modal

    def can_view(self) -> bool:
        if self._is_authenticated:
            return True
        self._roll_period()
        return self._counter.count < self._counter.limit

    def record_view(self) -> bool:
        """Consume one free view, raising the login prompt once exhausted."""

        if self._is_authenticated:
            return True
        if not self.can_view():
            self.prompt_login()
            return False
        self._counter.count += 1
        logger.debug(
            "Free insight view recorded count=%s limit=%s",
            self._counter.count,
            self._counter.limit,
        )
        return True

    def remaining(self) -> int:
        self._roll_period()
        return max(0, self._counter.limit - self._counter.count)

    def requires_login(self) -> bool:
        return not self._is_authenticated and self.remaining() == 0

    def prompt_login(self) -> None:
        if not self._show_login_modal:
            logger.info("Login prompt raised for insight access")
        self._show_login_modal = True

    def dismiss_login(self) -> None:
        self._show_login_modal = False

    def set_authenticated(self, is_authenticated: bool) -> None:
        """Apply an auth change; logging in clears the anonymous counter."""

        if is_authenticated and not self._is_authenticated:
            self.reset()
            self._show_login_modal = False
        self._is_authenticated = is_authenticated

    def reset(self) -> None:
        self._counter.count = 0
        self._counter.period_start = self._clock()

    def snapshot(self) -> QuotaSnapshot:
        return QuotaSnapshot(
            count=self.count,
            limit=self.limit,
            remaining=self.remaining(),
            is_unlimited=self.is_unlimited,
            period_start=self._counter.period_start,
            show_login_modal=self._show_login_modal,
        )

    def _roll_period(self) -> None:
        now = self._clock()
        if now.date() != self._counter.period_start.date():
            self._counter.count = 0
            self._counter.period_start = now
