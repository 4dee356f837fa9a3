from modules.orders.client.gateway import HttpOrdersGateway, IOrdersGateway
from modules.orders.client.local_store import LocalOrderStore, SavedOrder
from modules.orders.client.workflow import OrderWorkflow, StepOutcome, WorkflowProgress

__all__ = [
    "HttpOrdersGateway",
    "IOrdersGateway",
    "LocalOrderStore",
    "OrderWorkflow",
    "SavedOrder",
    "StepOutcome",
    "WorkflowProgress",
]
