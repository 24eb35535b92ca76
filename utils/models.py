"""
Domain records and enums for the factory dashboard.

The store owns every row; these types are the in-memory shapes the views
render. Records are frozen dataclasses built from store rows through
``from_row``, which also picks up display fields flattened from joined
relations (``department_name``, ``machine_name``, ...).

The enums mirror the store's closed value domains. Rendering code keys its
style maps on these members rather than on raw strings.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime
from enum import Enum
from typing import Any, Dict, FrozenSet, Mapping, Optional


class MachineStatus(str, Enum):
    RUNNING = "running"
    IDLE = "idle"
    DOWN = "down"


class AlertSeverity(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


class AlertStatus(str, Enum):
    """
    Alert lifecycle.

    Members
    -------
    ACTIVE : str
        Raised and not yet handled.
    ACKNOWLEDGED : str
        Seen by a user; ``acknowledged_by``/``acknowledged_at`` are set.
    RESOLVED : str
        Terminal. ``resolved_at`` is set.
    """

    ACTIVE = "active"
    ACKNOWLEDGED = "acknowledged"
    RESOLVED = "resolved"

    def can_transition_to(self, target: "AlertStatus") -> bool:
        return target in ALERT_TRANSITIONS[self]


ALERT_TRANSITIONS: Dict[AlertStatus, FrozenSet[AlertStatus]] = {
    AlertStatus.ACTIVE: frozenset({AlertStatus.ACKNOWLEDGED, AlertStatus.RESOLVED}),
    AlertStatus.ACKNOWLEDGED: frozenset({AlertStatus.RESOLVED}),
    AlertStatus.RESOLVED: frozenset(),
}


class DowntimeStatus(str, Enum):
    OPEN = "open"
    CLOSED = "closed"


class AppRole(str, Enum):
    ADMIN = "admin"
    MANAGER = "manager"
    MAINTENANCE = "maintenance"
    OPERATOR = "operator"


def parse_timestamp(value: Any) -> Optional[datetime]:
    """Parse an ISO-8601 timestamp as returned by PostgREST (``Z`` suffix allowed)."""
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return value
    return datetime.fromisoformat(str(value).replace("Z", "+00:00"))


def parse_date(value: Any) -> Optional[date]:
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    return date.fromisoformat(str(value)[:10])


def _optional_float(value: Any) -> Optional[float]:
    return None if value is None else float(value)


def _optional_int(value: Any) -> Optional[int]:
    return None if value is None else int(value)


@dataclass(frozen=True)
class Machine:
    id: str
    name: str
    status: MachineStatus
    model: Optional[str] = None
    serial_number: Optional[str] = None
    criticality: Optional[str] = None
    ideal_cycle_time: Optional[float] = None
    last_maintenance_date: Optional[date] = None
    department_id: Optional[str] = None
    is_active: bool = True
    department_name: Optional[str] = None

    @classmethod
    def from_row(cls, row: Mapping[str, Any]) -> "Machine":
        return cls(
            id=str(row["id"]),
            name=row["name"],
            status=MachineStatus(row["status"]),
            model=row.get("model"),
            serial_number=row.get("serial_number"),
            criticality=row.get("criticality"),
            ideal_cycle_time=_optional_float(row.get("ideal_cycle_time")),
            last_maintenance_date=parse_date(row.get("last_maintenance_date")),
            department_id=row.get("department_id"),
            is_active=bool(row.get("is_active", True)),
            department_name=row.get("department_name"),
        )


@dataclass(frozen=True)
class MachineState:
    """One telemetry sample. Append-only in the store."""

    id: str
    machine_id: str
    timestamp: datetime
    status: Optional[MachineStatus] = None
    cycle_time: Optional[float] = None
    utilization: Optional[float] = None
    temperature: Optional[float] = None
    energy_consumption: Optional[float] = None
    output_count: Optional[int] = None

    @classmethod
    def from_row(cls, row: Mapping[str, Any]) -> "MachineState":
        status = row.get("status")
        return cls(
            id=str(row.get("id", "")),
            machine_id=str(row.get("machine_id", "")),
            timestamp=parse_timestamp(row["timestamp"]),
            status=MachineStatus(status) if status else None,
            cycle_time=_optional_float(row.get("cycle_time")),
            utilization=_optional_float(row.get("utilization")),
            temperature=_optional_float(row.get("temperature")),
            energy_consumption=_optional_float(row.get("energy_consumption")),
            output_count=_optional_int(row.get("output_count")),
        )


@dataclass(frozen=True)
class Alert:
    id: str
    machine_id: str
    message: str
    severity: AlertSeverity
    status: AlertStatus
    created_at: datetime
    rule_triggered: Optional[str] = None
    data_snapshot: Optional[Any] = None
    acknowledged_at: Optional[datetime] = None
    acknowledged_by: Optional[str] = None
    resolved_at: Optional[datetime] = None
    machine_name: Optional[str] = None

    @classmethod
    def from_row(cls, row: Mapping[str, Any]) -> "Alert":
        return cls(
            id=str(row["id"]),
            machine_id=str(row["machine_id"]),
            message=row["message"],
            severity=AlertSeverity(row.get("severity") or AlertSeverity.MEDIUM.value),
            status=AlertStatus(row.get("status") or AlertStatus.ACTIVE.value),
            created_at=parse_timestamp(row["created_at"]),
            rule_triggered=row.get("rule_triggered"),
            data_snapshot=row.get("data_snapshot"),
            acknowledged_at=parse_timestamp(row.get("acknowledged_at")),
            acknowledged_by=row.get("acknowledged_by"),
            resolved_at=parse_timestamp(row.get("resolved_at")),
            machine_name=row.get("machine_name"),
        )


@dataclass(frozen=True)
class Downtime:
    """
    A downtime incident.

    ``duration_minutes`` is None while the incident is ongoing (no
    ``end_time``). Once closed it carries the stored value, or whole minutes
    between start and end when the store left it empty.
    """

    id: str
    machine_id: str
    start_time: datetime
    status: DowntimeStatus
    end_time: Optional[datetime] = None
    duration_minutes: Optional[int] = None
    reason: Optional[str] = None
    assigned_by: Optional[str] = None
    comments: Optional[str] = None
    machine_name: Optional[str] = None

    @property
    def is_ongoing(self) -> bool:
        return self.end_time is None

    @classmethod
    def from_row(cls, row: Mapping[str, Any]) -> "Downtime":
        start_time = parse_timestamp(row["start_time"])
        end_time = parse_timestamp(row.get("end_time"))

        duration = None
        if end_time is not None:
            duration = _optional_int(row.get("duration_minutes"))
            if duration is None:
                duration = int((end_time - start_time).total_seconds() // 60)

        raw_status = row.get("status")
        if raw_status:
            status = DowntimeStatus(raw_status)
        else:
            status = DowntimeStatus.OPEN if end_time is None else DowntimeStatus.CLOSED

        return cls(
            id=str(row["id"]),
            machine_id=str(row["machine_id"]),
            start_time=start_time,
            status=status,
            end_time=end_time,
            duration_minutes=duration,
            reason=row.get("reason"),
            assigned_by=row.get("assigned_by"),
            comments=row.get("comments"),
            machine_name=row.get("machine_name"),
        )


@dataclass(frozen=True)
class Department:
    id: str
    name: str
    description: Optional[str] = None

    @classmethod
    def from_row(cls, row: Mapping[str, Any]) -> "Department":
        return cls(id=str(row["id"]), name=row["name"], description=row.get("description"))


@dataclass(frozen=True)
class Shift:
    id: str
    name: str
    start_time: str
    end_time: str
    planned_output: Optional[int] = None

    @classmethod
    def from_row(cls, row: Mapping[str, Any]) -> "Shift":
        return cls(
            id=str(row["id"]),
            name=row["name"],
            start_time=str(row["start_time"]),
            end_time=str(row["end_time"]),
            planned_output=_optional_int(row.get("planned_output")),
        )


@dataclass(frozen=True)
class Profile:
    id: str
    email: str
    full_name: Optional[str] = None


@dataclass(frozen=True)
class UserRole:
    id: str
    user_id: str
    role: AppRole
    email: Optional[str] = None
    full_name: Optional[str] = None

    @classmethod
    def from_row(cls, row: Mapping[str, Any]) -> "UserRole":
        return cls(
            id=str(row["id"]),
            user_id=str(row["user_id"]),
            role=AppRole(row["role"]),
            email=row.get("email"),
            full_name=row.get("full_name"),
        )


@dataclass(frozen=True)
class ProductionLog:
    id: str
    machine_id: str
    log_date: date
    output_count: int
    shift_id: Optional[str] = None
    planned_output: Optional[int] = None
    good_parts: Optional[int] = None
    rejected_parts: Optional[int] = None
    machine_name: Optional[str] = None
    shift_name: Optional[str] = None

    @classmethod
    def from_row(cls, row: Mapping[str, Any]) -> "ProductionLog":
        return cls(
            id=str(row["id"]),
            machine_id=str(row["machine_id"]),
            log_date=parse_date(row["log_date"]),
            output_count=int(row.get("output_count") or 0),
            shift_id=row.get("shift_id"),
            planned_output=_optional_int(row.get("planned_output")),
            good_parts=_optional_int(row.get("good_parts")),
            rejected_parts=_optional_int(row.get("rejected_parts")),
            machine_name=row.get("machine_name"),
            shift_name=row.get("shift_name"),
        )
