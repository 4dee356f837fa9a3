"""Order DRF serializers for API input/output.

The serializer operates at the Interface layer (API Views).
Business logic lives in the Service Layer, which receives
Pydantic DTOs from ``dtos.py``.  Field names on the wire are camelCase.
"""

from __future__ import annotations

from rest_framework import serializers

from modules.orders.constants import OrderStatus
from modules.orders.dtos import OrderPayloadDTO
from modules.orders.models import Order

# ---------------------------------------------------------------------------
# Input Serializers
# ---------------------------------------------------------------------------


class OrderPayloadSerializer(serializers.Serializer):
    """Validates the full-record payload of ``POST /orders`` and ``PUT /orders/{id}``.

    ``fieldValues`` is accepted as a synonym of ``formData``.
    """

    orderId = serializers.CharField(required=False, allow_null=True, allow_blank=True)
    orderNumber = serializers.CharField(max_length=32)
    companyName = serializers.CharField(required=False, default="", allow_blank=True)
    product = serializers.CharField(required=False, default="", allow_blank=True)
    currentStage = serializers.IntegerField(min_value=1, required=False, default=1)
    formData = serializers.DictField(
        child=serializers.CharField(
            allow_blank=True, allow_null=True, trim_whitespace=False
        ),
        required=False,
    )
    fieldValues = serializers.DictField(
        child=serializers.CharField(
            allow_blank=True, allow_null=True, trim_whitespace=False
        ),
        required=False,
        write_only=True,
    )
    savedStages = serializers.ListField(
        child=serializers.IntegerField(min_value=1),
        required=False,
        default=list,
    )

    def to_dto(self) -> OrderPayloadDTO:
        data = dict(self.validated_data)
        form_data = data.pop("formData", None)
        field_values = data.pop("fieldValues", None)
        data["formData"] = form_data if form_data is not None else field_values or {}
        return OrderPayloadDTO.model_validate(data)


class OrderStatusSerializer(serializers.Serializer):
    """Validates ``PATCH /orders/{id}``."""

    status = serializers.ChoiceField(choices=OrderStatus.choices)


class CompleteOrderSerializer(serializers.Serializer):
    """Validates ``POST /complete-order``."""

    orderId = serializers.CharField()


# ---------------------------------------------------------------------------
# Output Serializers (Read)
# ---------------------------------------------------------------------------


class OrderListSerializer(serializers.ModelSerializer):
    """Lightweight serializer for the order list (no stage details)."""

    orderNumber = serializers.CharField(source="order_number", read_only=True)
    companyName = serializers.CharField(source="company_name", read_only=True)
    currentStage = serializers.IntegerField(source="current_stage", read_only=True)
    paymentReceived = serializers.BooleanField(
        source="payment_received", read_only=True
    )
    totalValue = serializers.DecimalField(
        source="total_value", max_digits=12, decimal_places=2, read_only=True
    )
    dateInitiated = serializers.DateTimeField(source="created_at", read_only=True)
    lastUpdated = serializers.DateTimeField(source="updated_at", read_only=True)

    class Meta:
        model = Order
        fields = [
            "id",
            "orderNumber",
            "companyName",
            "product",
            "currentStage",
            "status",
            "paymentReceived",
            "totalValue",
            "dateInitiated",
            "lastUpdated",
        ]
        read_only_fields = fields


class OrderSerializer(OrderListSerializer):
    """Read serializer for a single order.

    ``stageDetails`` and ``completionPercentage`` need the stage catalog,
    so they come from the ``OrderService`` passed in the serializer
    context under ``"service"``.
    """

    formData = serializers.JSONField(source="form_data", read_only=True)
    savedStages = serializers.JSONField(source="saved_stages", read_only=True)
    completedAt = serializers.DateTimeField(source="completed_at", read_only=True)
    completionPercentage = serializers.SerializerMethodField()
    stageDetails = serializers.SerializerMethodField()

    class Meta(OrderListSerializer.Meta):
        fields = OrderListSerializer.Meta.fields + [
            "formData",
            "savedStages",
            "completedAt",
            "completionPercentage",
            "stageDetails",
        ]
        read_only_fields = fields

    def get_completionPercentage(self, obj: Order) -> int:
        return self.context["service"].completion_percentage(obj)

    def get_stageDetails(self, obj: Order) -> list:
        return [
            detail.model_dump(mode="json", by_alias=True)
            for detail in self.context["service"].stage_details(obj)
        ]
