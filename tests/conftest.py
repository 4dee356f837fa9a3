import pytest

from rest_framework.test import APIClient

from modules.orders.catalog import DELIVERY_CATALOG, FULFILMENT_CATALOG
from modules.orders.engine import OrderProgress, ProgressionEngine
from shared.infrastructure.storage import InMemoryKeyValueStore

# Every required field of the delivery catalog, stage by stage.
DELIVERY_VALUES = {
    1: {
        "companyName": "Acme Corp",
        "contactPerson": "John Smith",
        "inquiryDetails": "Need a new website with e-commerce functionality",
    },
    2: {
        "functionalRequirements": "Product catalog, shopping cart, user accounts",
        "technicalRequirements": "React, Next.js, Stripe integration",
        "timeline": "3 months",
    },
    3: {
        "proposalDocument": "proposal.pdf",
        "estimatedCost": "25000",
        "deliverables": "Website, admin panel, payment integration",
    },
    4: {
        "contractTerms": "Net 30",
        "legalReview": "Approved",
        "signedContract": "contract.pdf",
    },
    5: {
        "projectPlan": "plan.pdf",
        "resourceAllocation": "Two developers",
        "milestones": "MVP, beta, launch",
    },
    6: {
        "developmentProgress": "All features merged",
        "codeRepository": "https://git.example.com/acme/shop",
        "weeklyReports": "reports.zip",
    },
    7: {
        "testPlan": "test-plan.pdf",
        "testResults": "All green",
        "bugReports": "bugs.csv",
    },
    8: {
        "deploymentPlan": "deploy.pdf",
        "productionUrl": "https://shop.example.com",
        "deploymentNotes": "Blue/green rollout",
    },
    9: {
        "finalDeliverables": "handover.zip",
        "clientFeedback": "Very happy",
        "projectSummary": "Delivered on time",
    },
}


def _fill_stages(engine, order, stages):
    for stage in stages:
        for name, value in DELIVERY_VALUES[stage].items():
            order = engine.record_field_value(order, stage, name, value)
    return order


def _form_data_for(stages):
    return {
        f"stage{stage}_{name}": value
        for stage in stages
        for name, value in DELIVERY_VALUES[stage].items()
    }


def _order_payload(order_number="ORD-2026-001", current_stage=1, stages=(), saved=(), **extra):
    body = {
        "orderNumber": order_number,
        "currentStage": current_stage,
        "formData": _form_data_for(stages),
        "savedStages": list(saved),
    }
    body.update(extra)
    return body


@pytest.fixture(autouse=True)
def _use_db(db):
    """Automatically use the test database for all tests."""


@pytest.fixture()
def api_client():
    """DRF APIClient for testing API endpoints."""
    return APIClient()


@pytest.fixture()
def api_client_with_correlation(api_client):
    """APIClient pre-configured with a known correlation ID header."""
    cid = "test-correlation-id-fixture"
    api_client.defaults["HTTP_X_REQUEST_ID"] = cid
    return api_client, cid


@pytest.fixture()
def delivery_engine():
    return ProgressionEngine(DELIVERY_CATALOG)


@pytest.fixture()
def fulfilment_engine():
    return ProgressionEngine(FULFILMENT_CATALOG)


@pytest.fixture()
def new_order():
    return OrderProgress.start("ORD-2026-001")


@pytest.fixture()
def kv_store():
    return InMemoryKeyValueStore()


@pytest.fixture()
def fill_stages():
    """Record every delivery value for the given stage indexes."""
    return _fill_stages


@pytest.fixture()
def form_data_for():
    """Wire-format ``formData`` holding the delivery values of ``stages``."""
    return _form_data_for


@pytest.fixture()
def order_payload():
    """camelCase request body for ``POST /orders`` / ``PUT /orders/{id}``."""
    return _order_payload


@pytest.fixture()
def delivery_values():
    return DELIVERY_VALUES
