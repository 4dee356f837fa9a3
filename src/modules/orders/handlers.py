"""Event handlers for Orders domain events."""

from __future__ import annotations

import structlog

from modules.orders.events import (
    OrderCompleted,
    OrderCreated,
    OrderStagesSaved,
    OrderStatusChanged,
)
from shared.domain.bus import IEventHandler

logger = structlog.get_logger(__name__)


class OrderCreatedHandler(IEventHandler[OrderCreated]):
    def handle(self, event: OrderCreated) -> None:
        logger.info(
            "order.event.created",
            order_id=str(event.aggregate_id),
            order_number=event.order_number,
        )


class OrderStagesSavedHandler(IEventHandler[OrderStagesSaved]):
    def handle(self, event: OrderStagesSaved) -> None:
        logger.info(
            "order.event.stages_saved",
            order_id=str(event.aggregate_id),
            order_number=event.order_number,
            stages=list(event.stages),
        )


class OrderStatusChangedHandler(IEventHandler[OrderStatusChanged]):
    def handle(self, event: OrderStatusChanged) -> None:
        logger.info(
            "order.event.status_changed",
            order_id=str(event.aggregate_id),
            old_status=event.old_status,
            new_status=event.new_status,
        )


class OrderCompletedHandler(IEventHandler[OrderCompleted]):
    """Hands the client notification to the Celery worker."""

    def handle(self, event: OrderCompleted) -> None:
        from modules.orders.tasks import send_completion_notification

        logger.info(
            "order.event.completed",
            order_id=str(event.aggregate_id),
            order_number=event.order_number,
        )
        send_completion_notification.delay(event.to_dict())


order_created_handler = OrderCreatedHandler()
order_stages_saved_handler = OrderStagesSavedHandler()
order_status_changed_handler = OrderStatusChangedHandler()
order_completed_handler = OrderCompletedHandler()
