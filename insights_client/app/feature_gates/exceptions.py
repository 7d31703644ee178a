"""Custom exceptions raised by the insights HTTP layer."""
from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, Mapping, Optional


@dataclass
class InsightsAPIError(Exception):
    """Represents a failed call to the insights backend."""

    code: str
    message: str
    status_code: Optional[int] = None
    detail: Optional[Mapping[str, Any]] = None

    def __post_init__(self) -> None:
        base_detail: Dict[str, Any] = {"error": self.code, "message": self.message}
        if self.status_code is not None:
            base_detail["status_code"] = self.status_code
        if self.detail:
            base_detail.update(self.detail)
        object.__setattr__(self, "_payload", base_detail)
        super().__init__(self.message)

    @property
    def payload(self) -> Mapping[str, Any]:
        """Serialized representation suitable for logging."""

        return self._payload

    @property
    def is_server_error(self) -> bool:
        return self.status_code is not None and self.status_code >= 500
