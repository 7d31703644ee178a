"""Tests for the httpx-backed insights gateway."""
from __future__ import annotations

import json
from typing import List

import httpx
import pytest

from insights_client.app.feature_gates import InsightsAPIError
from insights_client.app.services.insights_api import InsightsApiGateway


def make_gateway(handler, captured: List[httpx.Request]) -> InsightsApiGateway:
    def recording_handler(request: httpx.Request) -> httpx.Response:
        captured.append(request)
        return handler(request)

    return InsightsApiGateway(
        "https://api.example.com/",
        access_token="token-123",
        transport=httpx.MockTransport(recording_handler),
    )


class TestInsightsApiGateway:
    """Tests for InsightsApiGateway."""

    @pytest.mark.asyncio
    async def test_get_balance(self):
        """get_balance reads fxctBalance from the balance endpoint."""
        captured: List[httpx.Request] = []
        gateway = make_gateway(lambda request: httpx.Response(200, json={"fxctBalance": 42}), captured)

        balance = await gateway.get_balance("user-1")

        assert balance == 42
        assert captured[0].method == "GET"
        assert captured[0].url.path == "/api/fxct/balance/user-1"
        assert captured[0].headers["Authorization"] == "Bearer token-123"
        await gateway.close()

    @pytest.mark.asyncio
    async def test_get_balance_rejects_malformed_value(self):
        """A non-numeric balance is an API failure, not a zero balance."""
        captured: List[httpx.Request] = []
        gateway = make_gateway(
            lambda request: httpx.Response(200, json={"fxctBalance": "lots"}), captured
        )

        with pytest.raises(InsightsAPIError) as exc:
            await gateway.get_balance("user-1")

        assert exc.value.code == "INVALID_RESPONSE"
        await gateway.close()

    @pytest.mark.asyncio
    async def test_get_balance_rejects_fractional_value(self):
        """A fractional balance is rejected instead of being truncated."""
        captured: List[httpx.Request] = []
        gateway = make_gateway(
            lambda request: httpx.Response(200, json={"fxctBalance": 24.9}), captured
        )

        with pytest.raises(InsightsAPIError) as exc:
            await gateway.get_balance("user-1")

        assert exc.value.code == "INVALID_RESPONSE"
        assert "24.9" in exc.value.message
        await gateway.close()

    @pytest.mark.asyncio
    async def test_get_balance_accepts_whole_number_forms(self):
        """Integral floats and numeric strings are whole-token balances."""
        responses = iter([{"fxctBalance": 25.0}, {"fxctBalance": "40"}])
        captured: List[httpx.Request] = []
        gateway = make_gateway(lambda request: httpx.Response(200, json=next(responses)), captured)

        assert await gateway.get_balance("user-1") == 25
        assert await gateway.get_balance("user-1") == 40
        await gateway.close()

    @pytest.mark.asyncio
    async def test_preview_posts_unconfirmed_request(self):
        """preview_insight sends confirmed=false with tier and address."""
        captured: List[httpx.Request] = []
        gateway = make_gateway(
            lambda request: httpx.Response(
                200, json={"requiresConfirmation": True, "confirmationData": {"cost": 25}}
            ),
            captured,
        )

        data = await gateway.preview_insight("prop-9", "standard", "123 Main St")

        assert data["requiresConfirmation"] is True
        assert captured[0].method == "POST"
        assert captured[0].url.path == "/api/corelogic/property/prop-9/insights"
        assert json.loads(captured[0].content) == {
            "tier": "standard",
            "confirmed": False,
            "address": "123 Main St",
        }
        await gateway.close()

    @pytest.mark.asyncio
    async def test_purchase_posts_tier_without_address(self):
        """purchase_insight omits address when none was provided."""
        captured: List[httpx.Request] = []
        gateway = make_gateway(lambda request: httpx.Response(200, json={"ok": True}), captured)

        data = await gateway.purchase_insight("prop-9", "basic")

        assert data == {"ok": True}
        assert captured[0].url.path == "/api/corelogic/property/prop-9/purchase"
        assert json.loads(captured[0].content) == {"tier": "basic"}
        await gateway.close()

    @pytest.mark.asyncio
    async def test_non_2xx_raises_with_backend_message(self):
        """Error responses surface the backend message and status."""
        captured: List[httpx.Request] = []
        gateway = make_gateway(
            lambda request: httpx.Response(402, json={"message": "Payment required"}), captured
        )

        with pytest.raises(InsightsAPIError) as exc:
            await gateway.purchase_insight("prop-9", "basic")

        assert exc.value.status_code == 402
        assert exc.value.message == "API Error (402): Payment required"
        assert exc.value.payload["error"] == "HTTP_ERROR"
        assert exc.value.is_server_error is False
        await gateway.close()

    @pytest.mark.asyncio
    async def test_transport_error_is_wrapped(self):
        """Network failures become InsightsAPIError."""
        captured: List[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("connection refused", request=request)

        gateway = make_gateway(handler, captured)

        with pytest.raises(InsightsAPIError) as exc:
            await gateway.preview_insight("prop-9", "basic")

        assert exc.value.code == "TRANSPORT_ERROR"
        assert "connection refused" in exc.value.message
        await gateway.close()

    @pytest.mark.asyncio
    async def test_check_availability(self):
        """check_availability is true only for an explicit true flag."""
        captured: List[httpx.Request] = []
        gateway = make_gateway(lambda request: httpx.Response(200, json={"available": False}), captured)

        assert await gateway.check_availability("prop-9") is False
        assert captured[0].url.path == "/api/corelogic/availability/prop-9"
        await gateway.close()

    @pytest.mark.asyncio
    async def test_set_access_token_updates_header(self):
        """Clearing the token drops the Authorization header."""
        captured: List[httpx.Request] = []
        gateway = make_gateway(lambda request: httpx.Response(200, json={}), captured)

        gateway.set_access_token(None)
        await gateway.fetch_property("prop-9")

        assert "Authorization" not in captured[0].headers
        await gateway.close()
