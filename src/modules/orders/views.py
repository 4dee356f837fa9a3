"""Order API views.

Exposes the ``OrderService`` via HTTP using DRF views.
Domain exceptions are caught and translated into appropriate
HTTP status codes; the views never swallow generic exceptions.

Every ``{pk}`` / ``orderId`` accepts the order UUID or its order number.
"""

from __future__ import annotations

from django_filters.rest_framework import DjangoFilterBackend
from rest_framework import status
from rest_framework.decorators import action
from rest_framework.filters import SearchFilter
from rest_framework.request import Request
from rest_framework.response import Response
from rest_framework.views import APIView
from rest_framework.viewsets import GenericViewSet

from modules.orders.exceptions import (
    DuplicateOrderNumber,
    InvalidOrderStatus,
    OrderNotCompletable,
    OrderNotFound,
    OrderNumberMismatch,
)
from modules.orders.filters import OrderFilter
from modules.orders.models import Order
from modules.orders.repositories.django_repository import OrderDjangoRepository
from modules.orders.serializers import (
    CompleteOrderSerializer,
    OrderListSerializer,
    OrderPayloadSerializer,
    OrderSerializer,
    OrderStatusSerializer,
)
from modules.orders.services import OrderService


def _build_service() -> OrderService:
    return OrderService(order_repository=OrderDjangoRepository())


def _not_found() -> Response:
    return Response(
        {"detail": "Order not found."},
        status=status.HTTP_404_NOT_FOUND,
    )


class OrderViewSet(GenericViewSet):
    """ViewSet for Order operations.

    Uses ``OrderService`` with injected repositories (DIP).
    Does **not** extend ``ModelViewSet``; all writes go through
    the service/repository layer.
    """

    queryset = Order.objects.all()
    lookup_value_regex = "[^/]+"
    filterset_class = OrderFilter
    search_fields = ["order_number", "company_name"]
    filter_backends = [DjangoFilterBackend, SearchFilter]

    def __init__(self, **kwargs) -> None:
        super().__init__(**kwargs)
        self._service = _build_service()

    def get_queryset(self):
        return OrderDjangoRepository().queryset()

    def _order_response(self, order: Order, status_code: int = status.HTTP_200_OK) -> Response:
        out = OrderSerializer(order, context={"service": self._service})
        return Response({"order": out.data}, status=status_code)

    # ------------------------------------------------------------------
    # Create / Overwrite
    # ------------------------------------------------------------------

    def create(self, request: Request) -> Response:
        """POST /api/v1/orders

        Creates the backend record the first time a client persists an
        order.  A taken order number is a conflict (409).
        """
        payload = OrderPayloadSerializer(data=request.data)
        payload.is_valid(raise_exception=True)

        try:
            order = self._service.create_order(payload.to_dto())
        except DuplicateOrderNumber as exc:
            return Response({"detail": str(exc)}, status=status.HTTP_409_CONFLICT)

        return self._order_response(order, status.HTTP_201_CREATED)

    def update(self, request: Request, pk: str | None = None) -> Response:
        """PUT /api/v1/orders/{pk}

        Full-record overwrite; fields absent from the body are reset.
        """
        if pk is None:
            return _not_found()

        payload = OrderPayloadSerializer(data=request.data)
        payload.is_valid(raise_exception=True)

        try:
            order = self._service.replace_order(pk, payload.to_dto())
        except OrderNotFound:
            return _not_found()
        except OrderNumberMismatch as exc:
            return Response({"detail": str(exc)}, status=status.HTTP_400_BAD_REQUEST)

        return self._order_response(order)

    # ------------------------------------------------------------------
    # List / Retrieve
    # ------------------------------------------------------------------

    def list(self, request: Request) -> Response:
        """GET /api/v1/orders

        Filtering (``status``, ``year``, date range) and ``ordering`` are
        handled by ``OrderFilter``; ``search`` matches order number and
        company name.  The list is not paginated.
        """
        queryset = self.filter_queryset(self.get_queryset())
        serializer = OrderListSerializer(queryset, many=True)
        return Response({"orders": serializer.data})

    def retrieve(self, request: Request, pk: str | None = None) -> Response:
        """GET /api/v1/orders/{pk}"""
        if pk is None:
            return _not_found()
        try:
            order = self._service.get_order(pk)
        except OrderNotFound:
            return _not_found()
        return self._order_response(order)

    # ------------------------------------------------------------------
    # Status Update
    # ------------------------------------------------------------------

    def partial_update(self, request: Request, pk: str | None = None) -> Response:
        """PATCH /api/v1/orders/{pk}

        Updates order status.  Completion is **not** allowed via this
        endpoint; use ``POST /complete-order`` instead.
        """
        if pk is None:
            return _not_found()

        serializer = OrderStatusSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        try:
            order = self._service.update_status(
                order_id=pk,
                new_status=serializer.validated_data["status"],
            )
        except OrderNotFound:
            return _not_found()
        except InvalidOrderStatus as exc:
            return Response({"detail": str(exc)}, status=status.HTTP_400_BAD_REQUEST)

        return self._order_response(order)

    @action(detail=True, methods=["post"], url_path="payment-received")
    def payment_received(self, request: Request, pk: str | None = None) -> Response:
        """POST /api/v1/orders/{pk}/payment-received"""
        if pk is None:
            return _not_found()
        try:
            order = self._service.mark_payment_received(pk)
        except OrderNotFound:
            return _not_found()
        return self._order_response(order)


class NextOrderNumberView(APIView):
    """GET /api/v1/next-order-number"""

    def get(self, request: Request) -> Response:
        order_number = _build_service().next_order_number()
        return Response({"orderNumber": order_number})


class CompleteOrderView(APIView):
    """POST /api/v1/complete-order

    Marks the order completed and triggers the client notification.
    """

    def post(self, request: Request) -> Response:
        serializer = CompleteOrderSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        service = _build_service()
        try:
            order = service.complete_order(serializer.validated_data["orderId"])
        except OrderNotFound:
            return _not_found()
        except OrderNotCompletable as exc:
            return Response({"detail": str(exc)}, status=status.HTTP_409_CONFLICT)

        out = OrderSerializer(order, context={"service": service})
        return Response({"order": out.data})
