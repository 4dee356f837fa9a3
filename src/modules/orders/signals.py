"""Signals for automatic stage history tracking.

``saved_stages`` only ever grows; each stage that appears in it for the
first time gets an ``OrderStageHistory`` row carrying the save date.
"""

from __future__ import annotations

from typing import Protocol, Set, cast

import structlog
from django.db.models.signals import post_save, pre_save
from django.dispatch import receiver

from modules.orders.models import Order, OrderStageHistory

logger = structlog.get_logger(__name__)


class _StageAware(Protocol):
    _previous_saved_stages: Set[int]


@receiver(pre_save, sender=Order)
def _capture_previous_saved_stages(sender, instance: Order, **kwargs) -> None:
    stage_instance = cast(_StageAware, instance)
    if instance._state.adding:
        stage_instance._previous_saved_stages = set()
        return
    previous = (
        sender.objects.filter(pk=instance.pk)
        .values_list("saved_stages", flat=True)
        .first()
    )
    stage_instance._previous_saved_stages = set(previous or [])


@receiver(post_save, sender=Order)
def _record_stage_history(sender, instance: Order, created: bool, **kwargs) -> None:
    stage_instance = cast(_StageAware, instance)
    previous: Set[int] = getattr(stage_instance, "_previous_saved_stages", set())
    new_stages = sorted(set(instance.saved_stages or []) - previous)

    for stage in new_stages:
        _, was_created = OrderStageHistory.objects.get_or_create(
            order=instance, stage=stage
        )
        if was_created:
            logger.info(
                "order.stage_history_added",
                order_id=str(instance.id),
                stage=stage,
            )

    if hasattr(instance, "_previous_saved_stages"):
        delattr(instance, "_previous_saved_stages")
