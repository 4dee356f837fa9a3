"""Stage catalog: the static, ordered definition of the order stages.

A catalog is configuration data shared read-only by every order.  It
drives required-field validation, progress computation and the
addressing scheme of persisted form data (``FieldKey``).

Two variants ship with the project:

- ``delivery``: nine stages, every field required.
- ``fulfilment``: six stages, only the company name required.

The active variant is selected with the ``ORDER_STAGE_CATALOG`` setting.
"""

from __future__ import annotations

import enum
import re
from dataclasses import dataclass, field
from typing import Dict, Iterator, Optional, Tuple

from modules.orders.constants import OrderStatus
from modules.orders.exceptions import StageNotFound

_FIELD_KEY_RE = re.compile(r"^stage(?P<stage>[1-9]\d*)_(?P<name>\w+)$")


class FieldKind(str, enum.Enum):
    TEXT = "text"
    TEXTAREA = "textarea"
    NUMBER = "number"
    FILE = "file"


@dataclass(frozen=True)
class FieldDefinition:
    key: str
    label: str
    kind: FieldKind = FieldKind.TEXT
    required: bool = True


@dataclass(frozen=True)
class StageDefinition:
    index: int
    name: str
    fields: Tuple[FieldDefinition, ...] = ()

    def __post_init__(self) -> None:
        if self.index < 1:
            raise ValueError(f"Stage index must be >= 1, got {self.index}.")
        keys = [f.key for f in self.fields]
        if len(keys) != len(set(keys)):
            raise ValueError(f"Duplicate field keys in stage {self.index}.")

    @property
    def required_fields(self) -> Tuple[FieldDefinition, ...]:
        return tuple(f for f in self.fields if f.required)

    def get_field(self, key: str) -> Optional[FieldDefinition]:
        for definition in self.fields:
            if definition.key == key:
                return definition
        return None


@dataclass(frozen=True, order=True)
class FieldKey:
    """Composite address of one field value: ``stage{index}_{name}``.

    The string form is the persisted wire format and must stay stable.
    """

    stage_index: int
    field_name: str

    def __str__(self) -> str:
        return f"stage{self.stage_index}_{self.field_name}"

    @classmethod
    def parse(cls, text: str) -> FieldKey:
        match = _FIELD_KEY_RE.match(text)
        if match is None:
            raise ValueError(f"Malformed field key: {text!r}")
        return cls(int(match.group("stage")), match.group("name"))


@dataclass(frozen=True)
class StageCatalog:
    name: str
    stages: Tuple[StageDefinition, ...]
    initial_status: str = OrderStatus.IN_PROGRESS
    company_field: FieldKey = field(default_factory=lambda: FieldKey(1, "companyName"))
    product_field: Optional[FieldKey] = None
    value_field: Optional[FieldKey] = None

    def __post_init__(self) -> None:
        if not self.stages:
            raise ValueError("A stage catalog needs at least one stage.")
        indexes = [stage.index for stage in self.stages]
        if indexes != list(range(1, len(self.stages) + 1)):
            raise ValueError(
                f"Stage indexes must run 1..{len(self.stages)}, got {indexes}."
            )

    def __len__(self) -> int:
        return len(self.stages)

    def __iter__(self) -> Iterator[StageDefinition]:
        return iter(self.stages)

    @property
    def stage_count(self) -> int:
        return len(self.stages)

    @property
    def stage_names(self) -> Tuple[str, ...]:
        return tuple(stage.name for stage in self.stages)

    def has_stage(self, index: int) -> bool:
        return 1 <= index <= len(self.stages)

    def stage_by_index(self, index: int) -> StageDefinition:
        if not self.has_stage(index):
            raise StageNotFound(
                f"Stage {index} does not exist in catalog {self.name!r} "
                f"(1..{len(self.stages)})."
            )
        return self.stages[index - 1]

    def field_key(self, stage_index: int, field_name: str) -> FieldKey:
        return FieldKey(stage_index, field_name)

    def required_fields(self, stage_index: int) -> Tuple[FieldDefinition, ...]:
        return self.stage_by_index(stage_index).required_fields


def _stage(index: int, name: str, *fields: FieldDefinition) -> StageDefinition:
    return StageDefinition(index=index, name=name, fields=tuple(fields))


def _field(key: str, label: str, kind: FieldKind, required: bool = True) -> FieldDefinition:
    return FieldDefinition(key=key, label=label, kind=kind, required=required)


_T, _TA, _NUM, _FILE = FieldKind.TEXT, FieldKind.TEXTAREA, FieldKind.NUMBER, FieldKind.FILE


DELIVERY_CATALOG = StageCatalog(
    name="delivery",
    initial_status=OrderStatus.PENDING,
    product_field=FieldKey(2, "functionalRequirements"),
    value_field=FieldKey(3, "estimatedCost"),
    stages=(
        _stage(
            1,
            "Inquiry",
            _field("companyName", "Company Name", _T),
            _field("contactPerson", "Contact Person", _T),
            _field("inquiryDetails", "Inquiry Details", _TA),
        ),
        _stage(
            2,
            "Requirements Analysis",
            _field("functionalRequirements", "Functional Requirements", _TA),
            _field("technicalRequirements", "Technical Requirements", _TA),
            _field("timeline", "Expected Timeline", _T),
        ),
        _stage(
            3,
            "Proposal",
            _field("proposalDocument", "Proposal Document", _FILE),
            _field("estimatedCost", "Estimated Cost", _NUM),
            _field("deliverables", "Key Deliverables", _TA),
        ),
        _stage(
            4,
            "Contract Review",
            _field("contractTerms", "Contract Terms", _TA),
            _field("legalReview", "Legal Review Status", _T),
            _field("signedContract", "Signed Contract", _FILE),
        ),
        _stage(
            5,
            "Development Planning",
            _field("projectPlan", "Project Plan", _FILE),
            _field("resourceAllocation", "Resource Allocation", _TA),
            _field("milestones", "Key Milestones", _TA),
        ),
        _stage(
            6,
            "Implementation",
            _field("developmentProgress", "Development Progress", _TA),
            _field("codeRepository", "Code Repository Link", _T),
            _field("weeklyReports", "Weekly Progress Reports", _FILE),
        ),
        _stage(
            7,
            "Testing",
            _field("testPlan", "Test Plan", _FILE),
            _field("testResults", "Test Results", _TA),
            _field("bugReports", "Bug Reports", _FILE),
        ),
        _stage(
            8,
            "Deployment",
            _field("deploymentPlan", "Deployment Plan", _FILE),
            _field("productionUrl", "Production URL", _T),
            _field("deploymentNotes", "Deployment Notes", _TA),
        ),
        _stage(
            9,
            "Completion",
            _field("finalDeliverables", "Final Deliverables", _FILE),
            _field("clientFeedback", "Client Feedback", _TA),
            _field("projectSummary", "Project Summary", _TA),
        ),
    ),
)


FULFILMENT_CATALOG = StageCatalog(
    name="fulfilment",
    initial_status=OrderStatus.IN_PROGRESS,
    product_field=FieldKey(2, "product"),
    value_field=FieldKey(3, "estimatedCost"),
    stages=(
        _stage(
            1,
            "Inquiry",
            _field("companyName", "Company Name", _T),
            _field("contactPerson", "Contact Person", _T, required=False),
            _field("inquiryDetails", "Inquiry Details", _TA, required=False),
        ),
        _stage(
            2,
            "Requirements Analysis",
            _field("product", "Product", _T, required=False),
            _field("quantity", "Quantity", _NUM, required=False),
            _field("specifications", "Specifications", _TA, required=False),
        ),
        _stage(
            3,
            "Proposal",
            _field("proposalDocument", "Proposal Document", _FILE, required=False),
            _field("estimatedCost", "Estimated Cost", _NUM, required=False),
            _field("deliverables", "Key Deliverables", _TA, required=False),
        ),
        _stage(
            4,
            "Development Planning",
            _field("projectPlan", "Project Plan", _FILE, required=False),
            _field("milestones", "Key Milestones", _TA, required=False),
        ),
        _stage(
            5,
            "Packaging & Dispatch",
            _field("packagingDetails", "Packaging Details", _TA, required=False),
            _field("carrier", "Carrier", _T, required=False),
            _field("trackingNumber", "Tracking Number", _T, required=False),
        ),
        _stage(
            6,
            "Completion",
            _field("deliveryConfirmation", "Delivery Confirmation", _FILE, required=False),
            _field("clientFeedback", "Client Feedback", _TA, required=False),
        ),
    ),
)


CATALOGS: Dict[str, StageCatalog] = {
    DELIVERY_CATALOG.name: DELIVERY_CATALOG,
    FULFILMENT_CATALOG.name: FULFILMENT_CATALOG,
}


def get_catalog(name: str) -> StageCatalog:
    try:
        return CATALOGS[name]
    except KeyError:
        known = ", ".join(sorted(CATALOGS))
        raise ValueError(f"Unknown stage catalog {name!r} (known: {known}).") from None


def default_catalog() -> StageCatalog:
    """Catalog selected by the ``ORDER_STAGE_CATALOG`` setting."""
    from django.conf import settings

    return get_catalog(getattr(settings, "ORDER_STAGE_CATALOG", DELIVERY_CATALOG.name))
