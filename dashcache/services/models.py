from __future__ import annotations

from datetime import datetime, timezone
from enum import Enum
from typing import Any, ClassVar, Literal, Mapping, Optional, TypeVar

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

ClientStatus = Literal["active", "prospect", "inactive"]
CampaignStatus = Literal["planning", "running", "paused", "completed", "cancelled"]
TaskStatus = Literal["todo", "in_progress", "review", "done"]
EmployeeStatus = Literal["hired", "fired", "interview"]

R = TypeVar("R", bound="Record")


def utc_now() -> str:
    return datetime.now(timezone.utc).isoformat().replace("+00:00", "Z")


def parse_timestamp(value: str) -> datetime:
    parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


class SyncStatus(str, Enum):
    SYNCED = "synced"
    PENDING = "pending"
    FAILED = "failed"


class Schema(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="forbid",
        str_strip_whitespace=True,
        validate_assignment=True,
    )

    def to_wire(self) -> dict[str, Any]:
        return self.model_dump(by_alias=True, mode="json")


class Record(Schema):
    # Fields the backend accepts on create/update; everything else is server-owned
    # or local bookkeeping.
    WRITABLE: ClassVar[tuple[str, ...]] = ()

    sync_status: SyncStatus = SyncStatus.SYNCED

    def to_payload(self) -> dict[str, Any]:
        return self.model_dump(by_alias=True, mode="json", include=set(self.WRITABLE))


# ---- agency variant ----


class Client(Record):
    WRITABLE: ClassVar[tuple[str, ...]] = ("name", "contact", "status")

    id: int
    name: str = Field(min_length=1)
    contact: Optional[str] = None
    status: ClientStatus = "prospect"
    total_budget: float = 0.0
    campaigns_count: int = 0


class Campaign(Record):
    WRITABLE: ClassVar[tuple[str, ...]] = (
        "client_id", "name", "status", "budget", "spent", "start_date", "end_date", "roi",
    )

    id: int
    client_id: int
    name: str = Field(min_length=1)
    status: CampaignStatus = "planning"
    budget: float = 0.0
    spent: float = 0.0
    start_date: Optional[str] = None
    end_date: Optional[str] = None
    roi: Optional[float] = None


class Task(Record):
    WRITABLE: ClassVar[tuple[str, ...]] = (
        "campaign_id", "assignee_id", "title", "description", "status", "due_date",
    )

    id: int
    campaign_id: int
    assignee_id: Optional[int] = None
    title: str = Field(min_length=1)
    description: Optional[str] = None
    status: TaskStatus = "todo"
    due_date: Optional[str] = None
    created_at: Optional[str] = None


class TeamMember(Record):
    WRITABLE: ClassVar[tuple[str, ...]] = ("fullname", "role")

    id: int
    fullname: str = Field(min_length=1)
    role: str = Field(min_length=1)
    workload: float = 0.0


class Dashboard(Schema):
    active_clients: int = 0
    active_campaigns: int = 0
    total_budget: float = 0.0
    total_spent: float = 0.0
    avg_roi: float = 0.0
    team_workload: int = 0


class AgencyEnvelope(Schema):
    dashboard: Optional[Dashboard] = None
    clients: list[Client] = Field(default_factory=list)
    campaigns: list[Campaign] = Field(default_factory=list)
    tasks: list[Task] = Field(default_factory=list)
    team: list[TeamMember] = Field(default_factory=list)
    last_updated: Optional[str] = None


# ---- hr variant ----


class Employee(Record):
    WRITABLE: ClassVar[tuple[str, ...]] = ("fullname", "status", "salary")

    id: int
    fullname: str = Field(min_length=1)
    status: EmployeeStatus = "interview"
    salary: float = 0.0
    penalties: int = 0
    bonuses: int = 0
    total_penalties: float = 0.0
    total_bonuses: float = 0.0


class Hours(Record):
    WRITABLE: ClassVar[tuple[str, ...]] = ("employee_id", "regular_hours", "overtime", "undertime")

    employee_id: int
    regular_hours: float = 0.0
    overtime: float = 0.0
    undertime: float = 0.0


class Penalty(Record):
    WRITABLE: ClassVar[tuple[str, ...]] = ("employee_id", "reason", "amount", "date")

    id: int
    employee_id: int
    reason: str = ""
    amount: float = 0.0
    date: Optional[str] = None


class Bonus(Record):
    WRITABLE: ClassVar[tuple[str, ...]] = ("employee_id", "note", "amount", "date")

    id: int
    employee_id: int
    note: str = ""
    amount: float = 0.0
    date: Optional[str] = None


class HRDashboard(Schema):
    penalties: int = 0
    bonuses: int = 0
    undertime: float = 0.0


class HREnvelope(Schema):
    dashboard: Optional[HRDashboard] = None
    employees: list[Employee] = Field(default_factory=list)
    hours: list[Hours] = Field(default_factory=list)
    penalties: list[Penalty] = Field(default_factory=list)
    bonuses: list[Bonus] = Field(default_factory=list)
    last_updated: Optional[str] = None


def field_name(model: type[BaseModel], key: str) -> Optional[str]:
    """Resolve a wire alias or a Python attribute name to the attribute name."""
    if key in model.model_fields:
        return key
    for name, info in model.model_fields.items():
        if info.alias == key:
            return name
    return None


def normalize_fields(model: type[BaseModel], data: Mapping[str, Any]) -> dict[str, Any]:
    normalized: dict[str, Any] = {}
    for key, value in data.items():
        name = field_name(model, key)
        if name is None:
            raise ValueError(f"Unknown field for {model.__name__}: {key}")
        normalized[name] = value
    return normalized


def build_record(model: type[R], data: Mapping[str, Any], **overrides: Any) -> R:
    """Validate caller-supplied ``data`` into ``model``; ``overrides`` always win."""
    return model.model_validate({**normalize_fields(model, data), **overrides})


def merge_fields(record: R, changes: Mapping[str, Any]) -> R:
    """Shallow field overwrite, validated against the record's schema.

    Keys may use either the camelCase wire name or the attribute name; unknown
    keys raise ``ValueError`` instead of being merged silently.
    """
    model = type(record)
    return model.model_validate({**record.model_dump(), **normalize_fields(model, changes)})
