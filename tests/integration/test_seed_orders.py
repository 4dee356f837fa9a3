"""Integration tests for the ``seed_orders`` management command."""

from io import StringIO

import pytest
from django.core.management import call_command

from modules.orders.constants import OrderStatus
from modules.orders.models import Order, OrderStageHistory

pytestmark = pytest.mark.integration


def _seed():
    out = StringIO()
    call_command("seed_orders", stdout=out)
    return out.getvalue()


class TestSeedOrders:
    def test_creates_demo_orders(self):
        output = _seed()

        assert "orders=4" in output
        assert Order.objects.count() == 4
        acme = Order.objects.get(order_number="ORD-2024-001")
        assert acme.company_name == "Acme Corp"
        assert acme.current_stage == 7
        assert acme.status == OrderStatus.PAYMENT_PENDING
        assert acme.created_at.year == 2024

    def test_completed_demo_order_has_every_stage_saved(self):
        _seed()

        order = Order.objects.get(order_number="ORD-2024-003")
        assert order.status == OrderStatus.COMPLETED
        assert order.payment_received is True
        assert order.saved_stages == list(range(1, 10))
        assert OrderStageHistory.objects.filter(order=order).count() == 9

    def test_is_idempotent(self):
        _seed()
        output = _seed()

        assert "orders=0" in output
        assert Order.objects.count() == 4
