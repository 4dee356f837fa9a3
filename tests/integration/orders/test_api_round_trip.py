"""Integration tests: what is written through the API reads back unchanged.

Covers:
- Field values (whitespace included) surviving POST/PUT then GET.
- Estimated costs too large for ``total_value`` being stored as zero.
"""

from __future__ import annotations

import pytest

from modules.orders.models import Order

pytestmark = pytest.mark.integration

URL = "/api/v1/orders"


class TestFieldValuesRoundTrip:
    def test_created_values_read_back_verbatim(self, api_client):
        form_data = {
            "stage1_companyName": "  Acme  ",
            "stage1_inquiryDetails": "line one\n",
            "stage2_timeline": "\tindented\n  second line",
        }
        created = api_client.post(
            URL,
            {"orderNumber": "ORD-2026-001", "formData": form_data, "savedStages": [1]},
            format="json",
        )
        assert created.status_code == 201
        order_id = created.json()["order"]["id"]

        order = api_client.get(f"{URL}/{order_id}").json()["order"]

        assert order["formData"] == form_data
        assert order["savedStages"] == [1]
        assert order["currentStage"] == 1

    def test_replaced_values_read_back_verbatim(self, api_client, order_payload):
        api_client.post(URL, order_payload(stages=[1]), format="json")
        form_data = {"stage1_companyName": "Acme Corp", "stage1_inquiryDetails": " a\n\nb "}

        replaced = api_client.put(
            f"{URL}/ORD-2026-001",
            order_payload(current_stage=2, saved=[1], formData=form_data),
            format="json",
        )
        assert replaced.status_code == 200

        order = api_client.get(f"{URL}/ORD-2026-001").json()["order"]
        assert order["formData"] == form_data
        assert order["currentStage"] == 2
        assert order["savedStages"] == [1]

    def test_field_values_synonym_keeps_whitespace(self, api_client):
        api_client.post(
            URL,
            {"orderNumber": "ORD-2026-001", "fieldValues": {"stage1_companyName": " Acme "}},
            format="json",
        )

        order = api_client.get(f"{URL}/ORD-2026-001").json()["order"]
        assert order["formData"] == {"stage1_companyName": " Acme "}


class TestEstimatedCostBounds:
    @pytest.mark.parametrize(
        "cost",
        ["1e30", "100000000000000", "10000000000", "9999999999.999"],
    )
    def test_oversized_cost_is_stored_as_zero(self, api_client, cost):
        response = api_client.post(
            URL,
            {"orderNumber": "ORD-2026-001", "formData": {"stage3_estimatedCost": cost}},
            format="json",
        )

        assert response.status_code == 201
        order = response.json()["order"]
        assert order["totalValue"] == "0.00"
        assert order["formData"]["stage3_estimatedCost"] == cost
        assert Order.objects.get(order_number="ORD-2026-001").total_value == 0

    def test_largest_fitting_cost_is_kept(self, api_client):
        response = api_client.post(
            URL,
            {
                "orderNumber": "ORD-2026-001",
                "formData": {"stage3_estimatedCost": "9999999999.99"},
            },
            format="json",
        )

        assert response.status_code == 201
        assert response.json()["order"]["totalValue"] == "9999999999.99"

    def test_oversized_cost_on_replace(self, api_client, order_payload):
        api_client.post(URL, order_payload(stages=[1, 2, 3]), format="json")
        body = order_payload(stages=[1, 2, 3])
        body["formData"]["stage3_estimatedCost"] = "1e30"

        response = api_client.put(f"{URL}/ORD-2026-001", body, format="json")

        assert response.status_code == 200
        assert response.json()["order"]["totalValue"] == "0.00"
