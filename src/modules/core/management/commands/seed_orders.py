from __future__ import annotations

from datetime import datetime
from decimal import Decimal

from django.core.management.base import BaseCommand
from django.utils import timezone

from modules.orders.catalog import default_catalog
from modules.orders.constants import OrderStatus
from modules.orders.models import Order

DEMO_ORDERS = [
    # order_number, company, current_stage, status, initiated, updated, paid, value
    ("ORD-2024-001", "Acme Corp", 7, OrderStatus.PAYMENT_PENDING, "2024-01-15", "2024-01-20", False, "45000.00"),
    ("ORD-2024-002", "TechStart Inc", 4, OrderStatus.PENDING, "2024-01-18", "2024-01-19", False, "12500.00"),
    ("ORD-2024-003", "Global Solutions", 9, OrderStatus.COMPLETED, "2024-01-10", "2024-01-22", True, "78000.00"),
    ("ORD-2024-004", "Innovation Labs", 8, OrderStatus.PAYMENT_PENDING, "2024-01-12", "2024-01-21", False, "32000.00"),
]


def _aware(day: str) -> datetime:
    return timezone.make_aware(datetime.fromisoformat(day))


class Command(BaseCommand):
    help = "Seed database with demo orders for the dashboard."

    def handle(self, *args, **options):
        catalog = default_catalog()
        self.stdout.write(f"Seeding demo orders ({catalog.name} catalog)...")

        created = 0
        for number, company, stage, status, initiated, updated, paid, value in DEMO_ORDERS:
            stage = min(stage, catalog.stage_count)
            if status == OrderStatus.COMPLETED:
                saved = list(range(1, catalog.stage_count + 1))
            else:
                saved = list(range(1, stage))

            order, was_created = Order.objects.get_or_create(
                order_number=number,
                defaults={
                    "company_name": company,
                    "current_stage": stage,
                    "form_data": {str(catalog.company_field): company},
                    "saved_stages": saved,
                    "status": status,
                    "payment_received": paid,
                    "total_value": Decimal(value),
                    "completed_at": _aware(updated) if status == OrderStatus.COMPLETED else None,
                },
            )
            if not was_created:
                continue

            Order.objects.filter(id=order.id).update(
                created_at=_aware(initiated), updated_at=_aware(updated)
            )
            created += 1

        self.stdout.write(self.style.SUCCESS(f"Seed completed: orders={created}"))
