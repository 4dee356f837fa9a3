"""HTTP gateway to the orders REST backend.

Every call returns a ``Result``: transport errors, non-2xx answers and
bodies that do not have the expected shape all become a
``PersistenceFailure``.  Nothing here raises to the caller.

Requests carry the current correlation ID as ``X-Request-ID`` so a
client action can be followed into the backend logs.
"""

from __future__ import annotations

from typing import Any, Callable, Dict, List, Optional, Protocol, TypeVar
from urllib.parse import quote

import httpx
import structlog
from django.conf import settings
from pydantic import ValidationError

from modules.core.middleware import get_correlation_id
from modules.orders.dtos import OrderPayloadDTO, OrderSnapshotDTO, OrderSummaryDTO
from modules.orders.exceptions import PersistenceFailure
from shared.domain.result import Result

logger = structlog.get_logger(__name__)

T = TypeVar("T")

OrderResult = Result[Dict[str, Any], PersistenceFailure]


class IOrdersGateway(Protocol):
    """Backend operations the client workflow depends on."""

    def create_order(self, payload: OrderPayloadDTO) -> OrderResult: ...

    def update_order(self, order_id: str, payload: OrderPayloadDTO) -> OrderResult: ...

    def fetch_order(
        self, order_id: str
    ) -> Result[OrderSnapshotDTO, PersistenceFailure]: ...

    def list_orders(
        self, params: Optional[Dict[str, Any]] = None
    ) -> Result[List[OrderSummaryDTO], PersistenceFailure]: ...

    def next_order_number(self) -> Result[str, PersistenceFailure]: ...

    def complete_order(self, order_id: str) -> OrderResult: ...


class HttpOrdersGateway(IOrdersGateway):
    """``IOrdersGateway`` over ``httpx``.

    ``base_url`` and ``timeout`` default to ``ORDERS_BACKEND_URL`` and
    ``ORDERS_BACKEND_TIMEOUT``.  Pass a ready ``httpx.Client`` to control
    the transport (tests use ``httpx.MockTransport``).
    """

    def __init__(
        self,
        base_url: Optional[str] = None,
        *,
        client: Optional[httpx.Client] = None,
        timeout: Optional[float] = None,
    ) -> None:
        if client is None:
            client = httpx.Client(
                base_url=base_url or settings.ORDERS_BACKEND_URL,
                timeout=timeout if timeout is not None else settings.ORDERS_BACKEND_TIMEOUT,
            )
        self._client = client

    def close(self) -> None:
        self._client.close()

    # ------------------------------------------------------------------
    # Operations
    # ------------------------------------------------------------------

    def create_order(self, payload: OrderPayloadDTO) -> OrderResult:
        result = self._request("create_order", "POST", "/orders", json=payload.to_wire())
        return self._extract(result, "create_order", lambda body: dict(body["order"]))

    def update_order(self, order_id: str, payload: OrderPayloadDTO) -> OrderResult:
        result = self._request(
            "update_order", "PUT", self._order_path(order_id), json=payload.to_wire()
        )
        return self._extract(result, "update_order", lambda body: dict(body["order"]))

    def fetch_order(self, order_id: str) -> Result[OrderSnapshotDTO, PersistenceFailure]:
        result = self._request("fetch_order", "GET", self._order_path(order_id))
        return self._extract(
            result,
            "fetch_order",
            lambda body: OrderSnapshotDTO.model_validate(body["order"]),
        )

    def list_orders(
        self, params: Optional[Dict[str, Any]] = None
    ) -> Result[List[OrderSummaryDTO], PersistenceFailure]:
        result = self._request("list_orders", "GET", "/orders", params=params)
        return self._extract(
            result,
            "list_orders",
            lambda body: [OrderSummaryDTO.model_validate(row) for row in body["orders"]],
        )

    def next_order_number(self) -> Result[str, PersistenceFailure]:
        result = self._request("next_order_number", "GET", "/next-order-number")
        return self._extract(
            result, "next_order_number", lambda body: str(body["orderNumber"])
        )

    def complete_order(self, order_id: str) -> OrderResult:
        result = self._request(
            "complete_order", "POST", "/complete-order", json={"orderId": order_id}
        )
        return self._extract(result, "complete_order", lambda body: dict(body["order"]))

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    @staticmethod
    def _order_path(order_id: str) -> str:
        return f"/orders/{quote(str(order_id), safe='')}"

    def _request(self, operation: str, method: str, path: str, **kwargs: Any) -> Result[Any, PersistenceFailure]:
        headers = {}
        correlation_id = get_correlation_id()
        if correlation_id:
            headers["X-Request-ID"] = correlation_id

        log = logger.bind(operation=operation, method=method, path=path)
        try:
            response = self._client.request(method, path, headers=headers, **kwargs)
        except httpx.HTTPError as exc:
            log.warning("order.persist_failed", error=str(exc))
            return Result.fail(PersistenceFailure(operation, str(exc) or type(exc).__name__))

        if response.is_error:
            log.warning("order.persist_failed", status_code=response.status_code)
            return Result.fail(
                PersistenceFailure(
                    operation,
                    self._error_detail(response),
                    status_code=response.status_code,
                )
            )

        try:
            body = response.json()
        except ValueError:
            log.warning("order.invalid_response", status_code=response.status_code)
            return Result.fail(
                PersistenceFailure(
                    operation, "Response is not JSON.", status_code=response.status_code
                )
            )
        log.debug("order.backend_call_succeeded", status_code=response.status_code)
        return Result.ok(body)

    @staticmethod
    def _error_detail(response: httpx.Response) -> str:
        try:
            body = response.json()
        except ValueError:
            return response.reason_phrase or "Request failed."
        if isinstance(body, dict) and "detail" in body:
            return str(body["detail"])
        return str(body)

    @staticmethod
    def _extract(
        result: Result[Any, PersistenceFailure],
        operation: str,
        parse: Callable[[Any], T],
    ) -> Result[T, PersistenceFailure]:
        if result.is_failure:
            return Result.fail(result.error)
        try:
            return Result.ok(parse(result.value))
        except (KeyError, TypeError, ValueError, ValidationError) as exc:
            logger.warning("order.invalid_response", operation=operation, error=str(exc))
            return Result.fail(PersistenceFailure(operation, f"Unexpected response body: {exc}"))
