"""Asynchronous tasks of the orders module."""

from __future__ import annotations

from typing import Any, Dict

import structlog
from celery import shared_task

logger = structlog.get_logger(__name__)


@shared_task(name="orders.send_completion_notification")
def send_completion_notification(event: Dict[str, Any]) -> Dict[str, Any]:
    """Notify the client that their order was completed.

    Receives the serialized ``OrderCompleted`` event.  The delivery
    channel (messaging provider) is configured outside this project;
    the task records the notification and reports what was sent.
    """
    order_number = event.get("order_number", "")
    company_name = event.get("company_name") or "client"
    message = f"Order {order_number} for {company_name} has been completed."

    logger.info(
        "order.completion_notification_sent",
        order_id=event.get("aggregate_id"),
        order_number=order_number,
        event_id=event.get("event_id"),
    )
    return {"status": "sent", "order_number": order_number, "message": message}
