"""
HTTP gateway for the property insights backend.

Implements the balance source and insight source ports used by the
entitlement controller, plus the free-view endpoints.
"""

import logging
from typing import Any, Dict, Optional

import httpx

from ..feature_gates.exceptions import InsightsAPIError

logger = logging.getLogger(__name__)


class InsightsApiGateway:
    """
    Async client for the insights backend.

    Handles:
    - FXCT balance lookups
    - Non-charging insight previews
    - Charging insight purchases
    - Free-view property insight fetches and availability checks
    """

    INSIGHTS_PREFIX = "/api/corelogic"
    BALANCE_PREFIX = "/api/fxct/balance"

    def __init__(
        self,
        base_url: str,
        access_token: Optional[str] = None,
        *,
        timeout: Optional[float] = None,
        verify: bool = True,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        """
        Initialize the gateway.

        Args:
            base_url: Backend origin, e.g. 'https://api.example.com'
            access_token: Bearer token for authenticated endpoints
            timeout: Per-request timeout in seconds; None waits indefinitely
            verify: Verify TLS certificates
            transport: Optional httpx transport (used in tests)
        """
        headers = {"Content-Type": "application/json"}
        if access_token:
            headers["Authorization"] = f"Bearer {access_token}"

        self.base_url = base_url.rstrip("/")
        self._client = httpx.AsyncClient(
            base_url=self.base_url,
            headers=headers,
            timeout=timeout,
            verify=verify,
            transport=transport,
        )

    async def close(self):
        """Close the HTTP client."""
        await self._client.aclose()

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.close()

    def set_access_token(self, access_token: Optional[str]) -> None:
        """Swap the bearer token after the auth provider changes."""
        if access_token:
            self._client.headers["Authorization"] = f"Bearer {access_token}"
        else:
            self._client.headers.pop("Authorization", None)

    async def _request(self, method: str, path: str, payload: Optional[Dict] = None) -> Dict[str, Any]:
        """
        Execute a request and decode the JSON body.

        Raises:
            InsightsAPIError: On transport failure, non-2xx status or a non-object body
        """
        try:
            response = await self._client.request(method, path, json=payload)
        except httpx.HTTPError as e:
            logger.error("Insights API transport error", extra={"path": path, "error": str(e)})
            raise InsightsAPIError(code="TRANSPORT_ERROR", message=str(e) or e.__class__.__name__) from e

        if response.is_error:
            message = self._error_message(response)
            logger.error("Insights API error", extra={
                "path": path,
                "status_code": response.status_code,
            })
            raise InsightsAPIError(
                code="HTTP_ERROR",
                message=f"API Error ({response.status_code}): {message}",
                status_code=response.status_code,
            )

        try:
            data = response.json()
        except ValueError:
            raise InsightsAPIError(
                code="INVALID_RESPONSE",
                message="Insights API returned a non-JSON body",
                status_code=response.status_code,
            )

        if not isinstance(data, dict):
            raise InsightsAPIError(
                code="INVALID_RESPONSE",
                message="Insights API returned an unexpected payload",
                status_code=response.status_code,
            )
        return data

    @staticmethod
    def _error_message(response: httpx.Response) -> str:
        try:
            body = response.json()
        except ValueError:
            return response.reason_phrase or "Request failed"
        if isinstance(body, dict):
            return str(body.get("message") or body.get("error") or response.reason_phrase)
        return response.reason_phrase or "Request failed"

    # ==================== BALANCE SOURCE ====================

    async def get_balance(self, user_id: str) -> int:
        """Fetch the user's FXCT balance in whole tokens."""
        data = await self._request("GET", f"{self.BALANCE_PREFIX}/{user_id}")
        raw = data.get("fxctBalance", 0)
        value = raw
        if isinstance(value, str):
            try:
                value = float(value)
            except ValueError:
                value = None

        # Balances are whole tokens; fractions are rejected, never truncated
        if (
            isinstance(value, bool)
            or not isinstance(value, (int, float))
            or not float(value).is_integer()
        ):
            raise InsightsAPIError(
                code="INVALID_RESPONSE",
                message=f"Invalid fxctBalance value: {raw!r}",
            )
        return max(int(value), 0)

    # ==================== INSIGHT SOURCE ====================

    async def preview_insight(
        self,
        property_id: str,
        tier: str,
        address: Optional[str] = None,
    ) -> Dict[str, Any]:
        """Request insights without charging; the backend may ask for confirmation."""
        payload: Dict[str, Any] = {"tier": tier, "confirmed": False}
        if address:
            payload["address"] = address
        return await self._request(
            "POST", f"{self.INSIGHTS_PREFIX}/property/{property_id}/insights", payload
        )

    async def purchase_insight(
        self,
        property_id: str,
        tier: str,
        address: Optional[str] = None,
    ) -> Dict[str, Any]:
        """Charge for and return the insight payload."""
        payload: Dict[str, Any] = {"tier": tier}
        if address:
            payload["address"] = address
        return await self._request(
            "POST", f"{self.INSIGHTS_PREFIX}/property/{property_id}/purchase", payload
        )

    # ==================== FREE VIEWS ====================

    async def fetch_property(self, property_id: str) -> Dict[str, Any]:
        """Fetch the free-view insight payload for a property."""
        return await self._request("GET", f"{self.INSIGHTS_PREFIX}/property/{property_id}")

    async def check_availability(self, property_id: str) -> bool:
        """Return whether enhanced data exists for a property."""
        data = await self._request("GET", f"{self.INSIGHTS_PREFIX}/availability/{property_id}")
        return data.get("available") is True
