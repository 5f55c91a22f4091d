"""
HTTP client for the authoritative order store.

Maps the REST API back onto the OrderStore interface and turns failures
into the shared exception family:

- connect errors, timeouts, 502/503/504 -> UnreachableError
- 400/422 -> ValidationError, 404 -> NotFoundError, 409 -> ConflictError
- anything else (other 5xx, malformed body) -> UnknownError
"""

from __future__ import annotations

import asyncio
from typing import Any

import httpx

from shared.config.settings import settings
from shared.infrastructure.correlation import forwarded_headers
from shared.utils.exceptions import (
    ConflictError,
    NotFoundError,
    UnknownError,
    UnreachableError,
    ValidationError,
)
from shared.utils.order_lifecycle import Actor
from shared.utils.schemas import (
    AddNoteRequest,
    AppendItemsRequest,
    MenuItemOutput,
    OrderCreate,
    OrderFilter,
    OrderOutput,
    OrderUpdate,
    WithdrawalOutput,
)

UNREACHABLE_STATUSES = frozenset({502, 503, 504})
IDEMPOTENCY_HEADER = "X-Idempotency-Key"


def _error_detail(response: httpx.Response) -> str:
    try:
        body = response.json()
    except ValueError:
        return response.text or response.reason_phrase
    detail = body.get("detail") if isinstance(body, dict) else None
    if isinstance(detail, list):
        # FastAPI request validation errors
        return "; ".join(str(err.get("msg", err)) for err in detail)
    return str(detail) if detail else response.reason_phrase


def raise_for_store_status(response: httpx.Response) -> None:
    """Raise the shared exception matching an error response."""
    code = response.status_code
    if code < 400:
        return
    if code in UNREACHABLE_STATUSES:
        raise UnreachableError(remote_status=code)

    detail = _error_detail(response)
    if code in (400, 422):
        raise ValidationError(detail, remote_status=code)
    if code == 404:
        raise NotFoundError(detail.removesuffix(" not found"), remote_status=code)
    if code == 409:
        raise ConflictError(detail, remote_status=code)
    raise UnknownError(f"Order store returned {code}: {detail}", remote_status=code)


def _actor_json(actor: Actor | None) -> dict | None:
    if actor is None:
        return None
    return {"name": actor.name, "email": actor.email}


def _money_json(value: Any) -> str | None:
    return None if value is None else str(value)


class OrderApiClient:
    """
    Remote OrderStore over the REST API.

    One pooled httpx client per instance, created lazily. Pass a transport
    (e.g. httpx.MockTransport) to run against something other than the
    network.
    """

    def __init__(
        self,
        base_url: str | None = None,
        timeout: float | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.base_url = (base_url or settings.order_api_url).rstrip("/")
        self.timeout = settings.order_api_timeout if timeout is None else timeout
        self._transport = transport
        self._client: httpx.AsyncClient | None = None
        self._client_lock: asyncio.Lock | None = None

    def _get_lock(self) -> asyncio.Lock:
        if self._client_lock is None:
            self._client_lock = asyncio.Lock()
        return self._client_lock

    async def _get_client(self) -> httpx.AsyncClient:
        if self._client is not None and not self._client.is_closed:
            return self._client

        async with self._get_lock():
            if self._client is None or self._client.is_closed:
                self._client = httpx.AsyncClient(
                    base_url=self.base_url,
                    timeout=self.timeout,
                    transport=self._transport,
                    limits=httpx.Limits(max_connections=10, max_keepalive_connections=5),
                )
        return self._client

    async def close(self) -> None:
        if self._client is not None and not self._client.is_closed:
            await self._client.aclose()
        self._client = None

    async def __aenter__(self) -> "OrderApiClient":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.close()

    async def _request(
        self,
        method: str,
        path: str,
        json: Any = None,
        params: dict[str, Any] | None = None,
        headers: dict[str, str] | None = None,
    ) -> Any:
        client = await self._get_client()
        if params:
            params = {k: v for k, v in params.items() if v is not None}
        headers = {**forwarded_headers(), **(headers or {})}
        try:
            response = await client.request(method, path, json=json, params=params, headers=headers)
        except httpx.TimeoutException as e:
            raise UnreachableError(reason="timeout", path=path, error=str(e))
        except httpx.TransportError as e:
            raise UnreachableError(reason="transport", path=path, error=str(e))

        raise_for_store_status(response)
        if response.status_code == 204 or not response.content:
            return None
        try:
            return response.json()
        except ValueError as e:
            raise UnknownError("Order store returned a malformed body", path=path, error=str(e))

    async def _order(self, method: str, path: str, **kwargs) -> OrderOutput:
        return OrderOutput.model_validate(await self._request(method, path, **kwargs))

    async def _orders(self, path: str, params: dict[str, Any] | None = None) -> list[OrderOutput]:
        data = await self._request("GET", path, params=params)
        return [OrderOutput.model_validate(item) for item in data or []]

    # =========================================================================
    # OrderStore
    # =========================================================================

    async def create(self, data: OrderCreate, idempotency_key: str | None = None) -> OrderOutput:
        headers = {IDEMPOTENCY_HEADER: idempotency_key} if idempotency_key else None
        return await self._order("POST", "/orders", json=data.model_dump(mode="json"), headers=headers)

    async def append(self, order_id: str, data: AppendItemsRequest) -> OrderOutput:
        return await self._order("POST", f"/orders/{order_id}/append", json=data.model_dump(mode="json"))

    async def update_item_status(
        self,
        order_id: str,
        item_id: str,
        new_status: str,
        appended_id: str | None = None,
        actor: Actor | None = None,
        at_ms: int | None = None,
    ) -> OrderOutput:
        body = {"status": new_status, "appended_id": appended_id, "actor": _actor_json(actor), "at": at_ms}
        return await self._order("PATCH", f"/orders/{order_id}/items/{item_id}/status", json=body)

    async def update_appended_item_status(
        self,
        order_id: str,
        appended_id: str,
        item_id: str,
        new_status: str,
        actor: Actor | None = None,
        at_ms: int | None = None,
    ) -> OrderOutput:
        body = {"status": new_status, "actor": _actor_json(actor), "at": at_ms}
        return await self._order(
            "PATCH", f"/orders/{order_id}/appended/{appended_id}/items/{item_id}/status", json=body
        )

    async def toggle_payment(
        self,
        order_id: str,
        paid: bool | None = None,
        method: str | None = None,
        cash_amount: Any = None,
        gcash_amount: Any = None,
        appended_id: str | None = None,
    ) -> OrderOutput:
        body = {
            "is_paid": paid,
            "payment_method": method,
            "cash_amount": _money_json(cash_amount),
            "gcash_amount": _money_json(gcash_amount),
            "appended_id": appended_id,
        }
        return await self._order("PATCH", f"/orders/{order_id}/payment", json=body)

    async def toggle_appended_payment(
        self,
        order_id: str,
        appended_id: str,
        paid: bool | None = None,
        method: str | None = None,
        cash_amount: Any = None,
        gcash_amount: Any = None,
    ) -> OrderOutput:
        body = {
            "is_paid": paid,
            "payment_method": method,
            "cash_amount": _money_json(cash_amount),
            "gcash_amount": _money_json(gcash_amount),
        }
        return await self._order("PATCH", f"/orders/{order_id}/appended/{appended_id}/payment", json=body)

    async def confirm_online_payment(self, order_id: str) -> OrderOutput:
        return await self._order("POST", f"/orders/{order_id}/confirm-payment")

    async def update(self, order_id: str, data: OrderUpdate) -> OrderOutput:
        return await self._order("PATCH", f"/orders/{order_id}", json=data.model_dump(mode="json", exclude_unset=True))

    async def delete(self, order_id: str) -> None:
        await self._request("DELETE", f"/orders/{order_id}")

    async def add_note(self, order_id: str, data: AddNoteRequest) -> OrderOutput:
        return await self._order("POST", f"/orders/{order_id}/notes", json=data.model_dump(mode="json"))

    async def delete_appended(self, order_id: str, appended_id: str) -> OrderOutput:
        return await self._order("DELETE", f"/orders/{order_id}/appended/{appended_id}")

    async def get(self, order_id: str) -> OrderOutput:
        return await self._order("GET", f"/orders/{order_id}")

    async def get_all(self, filters: OrderFilter | None = None) -> list[OrderOutput]:
        params = filters.model_dump(mode="json", exclude_none=True) if filters else None
        return await self._orders("/orders", params)

    async def get_online_orders(self) -> list[OrderOutput]:
        return await self._orders("/orders/online")

    async def get_preparing_orders(self, branch_id: str | None = None) -> list[OrderOutput]:
        return await self._orders("/orders/preparing", {"branch_id": branch_id})

    # =========================================================================
    # LedgerSource
    # =========================================================================

    async def list_withdrawals(self, start_ms: int | None = None, end_ms: int | None = None) -> list[WithdrawalOutput]:
        data = await self._request("GET", "/withdrawals", params={"start": start_ms, "end": end_ms})
        return [WithdrawalOutput.model_validate(item) for item in data or []]

    async def list_menu_items(self) -> list[MenuItemOutput]:
        data = await self._request("GET", "/menu-items")
        return [MenuItemOutput.model_validate(item) for item in data or []]
