"""Unit tests for OrderService with a mocked repository.

Write methods are decorated with ``transaction.atomic``; the tests call
the undecorated functions through ``__wrapped__`` and capture the
on-commit callbacks to check what reaches the event bus.
"""

from __future__ import annotations

from datetime import date, datetime, timezone
from decimal import Decimal
from unittest.mock import MagicMock

import pytest
from django.db import IntegrityError

from modules.orders.catalog import DELIVERY_CATALOG, FULFILMENT_CATALOG
from modules.orders.constants import OrderStatus
from modules.orders.dtos import OrderPayloadDTO
from modules.orders.events import (
    OrderCompleted,
    OrderCreated,
    OrderStagesSaved,
    OrderStatusChanged,
)
from modules.orders.exceptions import (
    DuplicateOrderNumber,
    InvalidOrderStatus,
    OrderNotCompletable,
    OrderNotFound,
    OrderNumberMismatch,
)
from modules.orders.models import Order
from modules.orders.services import OrderService

pytestmark = pytest.mark.unit


def _replace(order, data):
    for name, value in data.items():
        setattr(order, name, value)
    return order


@pytest.fixture()
def repo():
    repository = MagicMock()
    repository.exists_order_number.return_value = False
    repository.create.side_effect = lambda data: Order(**data)
    repository.replace.side_effect = _replace
    repository.stage_history.return_value = {}
    return repository


@pytest.fixture()
def bus():
    return MagicMock()


@pytest.fixture()
def service(repo, bus):
    return OrderService(repo, catalog=DELIVERY_CATALOG, event_bus=bus)


@pytest.fixture()
def published(bus):
    """Events handed to the bus, in order."""

    def _published():
        return [event for call in bus.publish_all.call_args_list for event in call.args[0]]

    return _published


def _payload(form_data=None, **overrides):
    data = {"order_number": "ORD-2026-001", "form_data": form_data or {}}
    data.update(overrides)
    return OrderPayloadDTO(**data)


def _create(service, payload):
    return OrderService.create_order.__wrapped__(service, payload)


def _replace_order(service, order_id, payload):
    return OrderService.replace_order.__wrapped__(service, order_id, payload)


def _complete(service, order_id):
    return OrderService.complete_order.__wrapped__(service, order_id)


def _update_status(service, order_id, status):
    return OrderService.update_status.__wrapped__(service, order_id, status)


class TestCreateOrder:
    def test_creates_with_initial_status_and_canonical_fields(
        self, service, repo, form_data_for
    ):
        payload = _payload(form_data_for([1, 2, 3]), current_stage=4, saved_stages=[1, 2, 3])

        order = _create(service, payload)

        data = repo.create.call_args.args[0]
        assert data["order_number"] == "ORD-2026-001"
        assert data["status"] == OrderStatus.PENDING
        assert data["company_name"] == "Acme Corp"
        assert data["product"] == "Product catalog, shopping cart, user accounts"
        assert data["total_value"] == Decimal("25000.00")
        assert order.current_stage == 4
        assert order.saved_stages == [1, 2, 3]

    def test_payload_company_wins_over_stage_data(self, service, repo, form_data_for):
        _create(service, _payload(form_data_for([1]), company_name="Acme Holding"))
        assert repo.create.call_args.args[0]["company_name"] == "Acme Holding"

    def test_out_of_range_stages_clamped_and_bad_keys_dropped(self, service, repo):
        _create(
            service,
            _payload(
                {"stage1_companyName": "Acme", "stage12_notes": "x", "misc": "y"},
                current_stage=40,
                saved_stages=[1, 15],
            ),
        )

        data = repo.create.call_args.args[0]
        assert data["current_stage"] == 9
        assert data["saved_stages"] == [1]
        assert data["form_data"] == {"stage1_companyName": "Acme", "stage12_notes": "x"}

    def test_duplicate_number_rejected(self, service, repo):
        repo.exists_order_number.return_value = True

        with pytest.raises(DuplicateOrderNumber):
            _create(service, _payload())

        repo.create.assert_not_called()

    def test_integrity_error_becomes_duplicate(self, service, repo):
        repo.create.side_effect = IntegrityError("unique constraint")

        with pytest.raises(DuplicateOrderNumber):
            _create(service, _payload())

    def test_events_published_after_commit(
        self, service, published, django_capture_on_commit_callbacks
    ):
        with django_capture_on_commit_callbacks(execute=True):
            _create(service, _payload(saved_stages=[1]))

        events = published()
        assert [type(e) for e in events] == [OrderCreated, OrderStagesSaved]
        assert events[1].stages == (1,)

    def test_no_stage_event_without_saved_stages(
        self, service, published, django_capture_on_commit_callbacks
    ):
        with django_capture_on_commit_callbacks(execute=True):
            _create(service, _payload())

        assert [type(e) for e in published()] == [OrderCreated]


class TestTotalValue:
    @pytest.mark.parametrize(
        ("raw", "expected"),
        [
            ("25000", Decimal("25000.00")),
            ("12,500.5", Decimal("12500.50")),
            ("", Decimal("0.00")),
            ("about 10k", Decimal("0.00")),
            ("-5", Decimal("0.00")),
            ("NaN", Decimal("0.00")),
            ("1e30", Decimal("0.00")),
            ("100000000000000", Decimal("0.00")),
            ("9999999999.999", Decimal("0.00")),
            ("9999999999.99", Decimal("9999999999.99")),
            ("1e-30", Decimal("0.00")),
        ],
    )
    def test_total_value_parsing(self, service, repo, raw, expected):
        _create(service, _payload({"stage3_estimatedCost": raw}))
        assert repo.create.call_args.args[0]["total_value"] == expected


class TestReplaceOrder:
    def test_overwrites_and_reports_new_stages(
        self, service, repo, published, form_data_for, django_capture_on_commit_callbacks
    ):
        order = Order(order_number="ORD-2026-001", saved_stages=[1], current_stage=2)
        repo.get_for_update.return_value = order

        with django_capture_on_commit_callbacks(execute=True):
            result = _replace_order(
                service,
                str(order.id),
                _payload(form_data_for([1, 2]), current_stage=3, saved_stages=[1, 2]),
            )

        assert result.current_stage == 3
        assert result.saved_stages == [1, 2]
        events = published()
        assert len(events) == 1
        assert isinstance(events[0], OrderStagesSaved)
        assert events[0].stages == (2,)

    def test_no_event_when_nothing_new_saved(
        self, service, repo, bus, django_capture_on_commit_callbacks
    ):
        repo.get_for_update.return_value = Order(order_number="ORD-2026-001", saved_stages=[1])

        with django_capture_on_commit_callbacks(execute=True):
            _replace_order(service, "ORD-2026-001", _payload(saved_stages=[1]))

        bus.publish_all.assert_not_called()

    def test_missing_order(self, service, repo):
        repo.get_for_update.return_value = None
        with pytest.raises(OrderNotFound):
            _replace_order(service, "nope", _payload())

    def test_order_number_cannot_change(self, service, repo):
        repo.get_for_update.return_value = Order(order_number="ORD-2026-001")

        with pytest.raises(OrderNumberMismatch):
            _replace_order(service, "ORD-2026-001", _payload(order_number="ORD-2026-999"))

        repo.replace.assert_not_called()


class TestCompleteOrder:
    def _ready_order(self, form_data_for):
        return Order(
            order_number="ORD-2026-001",
            company_name="Acme Corp",
            current_stage=9,
            form_data=form_data_for([9]),
            saved_stages=[1, 2, 3],
            status=OrderStatus.PAYMENT_PENDING,
        )

    def test_completes_ready_order(
        self, service, repo, published, form_data_for, django_capture_on_commit_callbacks
    ):
        repo.get_for_update.return_value = self._ready_order(form_data_for)

        with django_capture_on_commit_callbacks(execute=True):
            order = _complete(service, "ORD-2026-001")

        assert order.status == OrderStatus.COMPLETED
        assert order.completed_at is not None
        assert order.saved_stages == [1, 2, 3, 9]
        repo.save.assert_called_once_with(order)
        events = published()
        assert [type(e) for e in events] == [OrderStatusChanged, OrderCompleted]
        assert events[0].old_status == OrderStatus.PAYMENT_PENDING
        assert events[1].company_name == "Acme Corp"

    def test_incomplete_last_stage_rejected(self, service, repo):
        repo.get_for_update.return_value = Order(
            order_number="ORD-2026-001", current_stage=9, form_data={}
        )
        with pytest.raises(OrderNotCompletable):
            _complete(service, "ORD-2026-001")
        repo.save.assert_not_called()

    def test_earlier_stage_rejected(self, service, repo, form_data_for):
        repo.get_for_update.return_value = Order(
            order_number="ORD-2026-001", current_stage=5, form_data=form_data_for(range(1, 10))
        )
        with pytest.raises(OrderNotCompletable):
            _complete(service, "ORD-2026-001")

    def test_already_completed_is_returned_unchanged(self, service, repo, bus):
        order = Order(order_number="ORD-2026-001", status=OrderStatus.COMPLETED)
        repo.get_for_update.return_value = order

        assert _complete(service, "ORD-2026-001") is order
        repo.save.assert_not_called()
        bus.publish_all.assert_not_called()

    def test_missing_order(self, service, repo):
        repo.get_for_update.return_value = None
        with pytest.raises(OrderNotFound):
            _complete(service, "nope")


class TestUpdateStatus:
    def test_valid_transition(self, service, repo, published, django_capture_on_commit_callbacks):
        repo.get_for_update.return_value = Order(
            order_number="ORD-2026-001", status=OrderStatus.PENDING
        )

        with django_capture_on_commit_callbacks(execute=True):
            order = _update_status(service, "ORD-2026-001", OrderStatus.PAYMENT_PENDING)

        assert order.status == OrderStatus.PAYMENT_PENDING
        event = published()[0]
        assert (event.old_status, event.new_status) == ("pending", "payment-pending")

    def test_forbidden_transition(self, service, repo):
        repo.get_for_update.return_value = Order(
            order_number="ORD-2026-001", status=OrderStatus.IN_PROGRESS
        )
        with pytest.raises(InvalidOrderStatus):
            _update_status(service, "ORD-2026-001", OrderStatus.PENDING)
        repo.save.assert_not_called()

    def test_completed_only_through_complete_order(self, service, repo):
        with pytest.raises(InvalidOrderStatus, match="complete-order"):
            _update_status(service, "ORD-2026-001", OrderStatus.COMPLETED)
        repo.get_for_update.assert_not_called()

    def test_unknown_status(self, service):
        with pytest.raises(InvalidOrderStatus):
            _update_status(service, "ORD-2026-001", "shipped")

    def test_missing_order(self, service, repo):
        repo.get_for_update.return_value = None
        with pytest.raises(OrderNotFound):
            _update_status(service, "nope", OrderStatus.PAYMENT_PENDING)


class TestPaymentReceived:
    def test_marks_payment_once(self, service, repo):
        order = Order(order_number="ORD-2026-001")
        repo.get_for_update.return_value = order

        OrderService.mark_payment_received.__wrapped__(service, "ORD-2026-001")
        OrderService.mark_payment_received.__wrapped__(service, "ORD-2026-001")

        assert order.payment_received is True
        repo.save.assert_called_once_with(order)


class TestNextOrderNumber:
    def test_counts_orders_of_the_year(self, service, repo):
        repo.count_for_year.return_value = 3

        assert service.next_order_number(today=date(2026, 5, 1)) == "ORD-2026-004"
        repo.count_for_year.assert_called_once_with(2026)

    def test_skips_taken_numbers(self, service, repo):
        repo.count_for_year.return_value = 0
        repo.exists_order_number.side_effect = lambda number: number in {
            "ORD-2026-001",
            "ORD-2026-002",
        }

        assert service.next_order_number(today=date(2026, 1, 1)) == "ORD-2026-003"

    def test_gives_up_after_retries(self, service, repo):
        repo.count_for_year.return_value = 0
        repo.exists_order_number.return_value = True

        with pytest.raises(RuntimeError):
            service.next_order_number(today=date(2026, 1, 1))


class TestQueries:
    def test_get_order_missing(self, service, repo):
        repo.get_by_id.return_value = None
        with pytest.raises(OrderNotFound):
            service.get_order("nope")

    def test_list_orders_delegates_filters(self, service, repo):
        repo.list.return_value = []
        assert service.list_orders({"status": "pending"}) == []
        repo.list.assert_called_once_with({"status": "pending"})

    def test_completion_percentage(self, service):
        assert service.completion_percentage(Order(order_number="X", current_stage=3)) == 33

    def test_stage_details_use_history_dates(self, service, repo):
        order = Order(order_number="ORD-2026-001", current_stage=3, saved_stages=[1, 2])
        saved_on = datetime(2026, 1, 2, tzinfo=timezone.utc)
        repo.stage_history.return_value = {1: saved_on}

        details = service.stage_details(order)

        assert len(details) == 9
        assert details[0].completed is True
        assert details[0].completed_date == saved_on
        assert details[2].completed is False
        assert details[2].completed_date is None

    def test_fulfilment_catalog_uses_its_own_fields(self, repo, bus):
        service = OrderService(repo, catalog=FULFILMENT_CATALOG, event_bus=bus)

        OrderService.create_order.__wrapped__(
            service,
            _payload({"stage1_companyName": "Acme", "stage2_product": "Widgets"}),
        )

        data = repo.create.call_args.args[0]
        assert data["status"] == OrderStatus.IN_PROGRESS
        assert data["product"] == "Widgets"
