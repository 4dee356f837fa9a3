"""Order URL configuration."""

from __future__ import annotations

from django.urls import path
from rest_framework.routers import DefaultRouter

from modules.orders.views import CompleteOrderView, NextOrderNumberView, OrderViewSet

router = DefaultRouter(trailing_slash=False)
router.register("orders", OrderViewSet, basename="order")

urlpatterns = [
    path("next-order-number", NextOrderNumberView.as_view(), name="next_order_number"),
    path("complete-order", CompleteOrderView.as_view(), name="complete_order"),
] + router.urls
