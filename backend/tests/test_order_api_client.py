"""
Tests for the station's HTTP client against a mocked transport.
"""

import json

import httpx
import pytest

from shared.utils.exceptions import (
    ConflictError,
    NotFoundError,
    UnknownError,
    UnreachableError,
    ValidationError,
)
from shared.utils.order_lifecycle import Actor
from station.order_api import OrderApiClient
from station.store import OrderStore
from tests.conftest import order_create

ORDER_JSON = {
    "id": "ord-a",
    "order_number": 7,
    "customer_name": "Ana",
    "created_at": 1_000,
    "items": [{"id": "i1", "name": "Latte", "price": "120.00", "quantity": 1}],
}


def client_for(handler) -> OrderApiClient:
    return OrderApiClient(base_url="http://store.test/api", transport=httpx.MockTransport(handler))


class TestRequests:
    @pytest.mark.asyncio
    async def test_create_sends_idempotency_key(self):
        seen = {}

        def handler(request: httpx.Request) -> httpx.Response:
            seen["path"] = request.url.path
            seen["key"] = request.headers.get("X-Idempotency-Key")
            seen["body"] = json.loads(request.content)
            return httpx.Response(201, json=ORDER_JSON)

        async with client_for(handler) as client:
            order = await client.create(order_create(id="ord-a"), idempotency_key="k-1")

        assert order.order_number == 7
        assert seen["path"] == "/api/orders"
        assert seen["key"] == "k-1"
        assert seen["body"]["id"] == "ord-a"

    @pytest.mark.asyncio
    async def test_item_status_body(self):
        seen = {}

        def handler(request: httpx.Request) -> httpx.Response:
            seen["method"] = request.method
            seen["path"] = request.url.path
            seen["body"] = json.loads(request.content)
            return httpx.Response(200, json=ORDER_JSON)

        async with client_for(handler) as client:
            await client.update_item_status("ord-a", "i1", "ready", actor=Actor("Mia", "mia@venue.ph"), at_ms=5_000)

        assert seen["method"] == "PATCH"
        assert seen["path"] == "/api/orders/ord-a/items/i1/status"
        assert seen["body"] == {
            "status": "ready",
            "appended_id": None,
            "actor": {"name": "Mia", "email": "mia@venue.ph"},
            "at": 5_000,
        }

    @pytest.mark.asyncio
    async def test_delete_returns_none(self):
        async with client_for(lambda r: httpx.Response(200, json={"id": "ord-a", "deleted": True})) as client:
            assert await client.delete("ord-a") is None

    def test_satisfies_order_store_protocol(self):
        assert isinstance(OrderApiClient(base_url="http://store.test/api"), OrderStore)


class TestErrorMapping:
    @pytest.mark.asyncio
    @pytest.mark.parametrize("status_code", [502, 503, 504])
    async def test_gateway_failures_are_unreachable(self, status_code):
        async with client_for(lambda r: httpx.Response(status_code)) as client:
            with pytest.raises(UnreachableError):
                await client.get("ord-a")

    @pytest.mark.asyncio
    async def test_connect_error_is_unreachable(self):
        def handler(request):
            raise httpx.ConnectError("refused", request=request)

        async with client_for(handler) as client:
            with pytest.raises(UnreachableError):
                await client.get_all()

    @pytest.mark.asyncio
    async def test_timeout_is_unreachable(self):
        def handler(request):
            raise httpx.ReadTimeout("slow", request=request)

        async with client_for(handler) as client:
            with pytest.raises(UnreachableError):
                await client.get_all()

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        ("status_code", "error"),
        [(400, ValidationError), (422, ValidationError), (404, NotFoundError), (409, ConflictError), (500, UnknownError)],
    )
    async def test_status_mapping(self, status_code, error):
        async with client_for(lambda r: httpx.Response(status_code, json={"detail": "Order ord-a not found"})) as client:
            with pytest.raises(error):
                await client.get("ord-a")

    @pytest.mark.asyncio
    async def test_not_found_keeps_detail(self):
        async with client_for(lambda r: httpx.Response(404, json={"detail": "Order ord-a not found"})) as client:
            with pytest.raises(NotFoundError) as exc_info:
                await client.get("ord-a")
        assert exc_info.value.detail == "Order ord-a not found"

    @pytest.mark.asyncio
    async def test_malformed_body_is_unknown(self):
        async with client_for(lambda r: httpx.Response(200, content=b"<html>")) as client:
            with pytest.raises(UnknownError):
                await client.get("ord-a")
