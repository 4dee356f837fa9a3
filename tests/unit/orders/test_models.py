"""Unit tests for Order and OrderStageHistory models.

Covers:
- Defaults of a freshly created order.
- Order number format and uniqueness.
- Status helpers (is_terminal, can_transition_to).
- Stage history rows recorded by the model signals.
- Domain events collected on the aggregate.
"""

from __future__ import annotations

import uuid
from decimal import Decimal

import pytest
from django.db import IntegrityError

from modules.orders.constants import OrderStatus
from modules.orders.events import OrderCreated
from modules.orders.models import Order, OrderStageHistory

pytestmark = pytest.mark.unit


def _order(**overrides) -> Order:
    data = {"order_number": "ORD-2026-001"}
    data.update(overrides)
    return Order.objects.create(**data)


class TestOrderDefaults:
    def test_new_order_defaults(self):
        order = _order()
        assert isinstance(order.id, uuid.UUID)
        assert order.current_stage == 1
        assert order.form_data == {}
        assert order.saved_stages == []
        assert order.status == OrderStatus.IN_PROGRESS
        assert order.payment_received is False
        assert order.total_value == Decimal("0.00")
        assert order.completed_at is None

    def test_str_mentions_number_stage_and_status(self):
        order = _order(current_stage=4, status=OrderStatus.PENDING)
        assert str(order) == "ORD-2026-001 (stage 4, pending)"

    def test_order_number_is_unique(self):
        _order()
        with pytest.raises(IntegrityError):
            _order()


class TestOrderNumber:
    @pytest.mark.parametrize(
        ("year", "sequence", "expected"),
        [(2024, 1, "ORD-2024-001"), (2026, 42, "ORD-2026-042"), (2026, 1234, "ORD-2026-1234")],
    )
    def test_generate_order_number(self, year, sequence, expected):
        assert Order.generate_order_number(year, sequence) == expected


class TestStatusHelpers:
    def test_completed_is_terminal(self):
        assert Order(status=OrderStatus.COMPLETED).is_terminal is True
        assert Order(status=OrderStatus.PENDING).is_terminal is False

    def test_can_transition_to(self):
        order = Order(status=OrderStatus.IN_PROGRESS)
        assert order.can_transition_to(OrderStatus.PAYMENT_PENDING) is True
        assert order.can_transition_to(OrderStatus.PENDING) is False


class TestStageHistorySignals:
    def test_history_recorded_for_stages_saved_on_create(self):
        order = _order(saved_stages=[1, 2])
        assert list(order.stage_history.values_list("stage", flat=True)) == [1, 2]

    def test_only_new_stages_added_on_update(self):
        order = _order(saved_stages=[1])
        first = order.stage_history.get(stage=1)

        order.saved_stages = [1, 2, 3]
        order.save()

        assert list(order.stage_history.values_list("stage", flat=True)) == [1, 2, 3]
        assert order.stage_history.get(stage=1).created_at == first.created_at

    def test_history_survives_shrinking_saved_stages(self):
        order = _order(saved_stages=[1, 2])
        order.saved_stages = [1]
        order.save()
        assert OrderStageHistory.objects.filter(order=order).count() == 2


class TestDomainEvents:
    def test_order_registers_and_pulls_domain_events(self):
        order = Order(order_number="ORD-2026-001")
        assert order.domain_events == []

        event = OrderCreated(aggregate_id=order.id, order_number=order.order_number)
        order.add_domain_event(event)

        assert order.domain_events == [event]
        assert event.event_name == "OrderCreated"
        assert order.pull_domain_events() == [event]
        assert order.domain_events == []
