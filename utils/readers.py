# ==================================================================================================
# UTILITY SPECIFICATION: Entity Readers
# ==================================================================================================
#
# PURPOSE:
#   - One fetch function per entity the pages display. Each function issues a single select
#     against the store and maps the rows into records from `utils.models`.
#
# JOINS:
#   - Foreign-key display fields are requested as embedded relations (e.g. `departments(name)`)
#     and flattened onto the row before mapping (`department_name`). A missing relation
#     (null foreign key) leaves the display field as None.
#
# FAILURE POLICY:
#   - Store errors surface as `DataUnavailable` (raised by the store adapter). There is no retry;
#     the view model decides what to keep on screen.
#   - `fetch_machine` raises `NotFound` when the id matches nothing.
#   - Rows outside the known value domains (e.g. an unknown status) are logged and skipped; a
#     single-row fetch that cannot be mapped raises `DataUnavailable`.
#
# ==================================================================================================

import logging
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Optional, Sequence, TypeVar

from .errors import DataUnavailable, NotFound
from .models import (
    Alert,
    AlertStatus,
    Department,
    Downtime,
    Machine,
    MachineState,
    ProductionLog,
    Shift,
    UserRole,
)

logger = logging.getLogger(__name__)

R = TypeVar("R")

DETAIL_ALERT_LIMIT = 5
DETAIL_DOWNTIME_LIMIT = 5
CYCLE_TREND_LIMIT = 30
PRODUCTION_LOG_LIMIT = 500


@dataclass(frozen=True)
class Join:
    """A foreign-key relation expanded server-side and flattened into `field`."""

    relation: str
    columns: Sequence[str]
    fields: Sequence[str]

    @classmethod
    def single(cls, relation: str, column: str, field: str) -> "Join":
        return cls(relation=relation, columns=(column,), fields=(field,))

    @property
    def projection(self) -> str:
        return f"{self.relation}({', '.join(self.columns)})"


DEPARTMENT_NAME = Join.single("departments", "name", "department_name")
MACHINE_NAME = Join.single("machines", "name", "machine_name")
SHIFT_NAME = Join.single("shifts", "name", "shift_name")
PROFILE_IDENTITY = Join("profiles", ("email", "full_name"), ("email", "full_name"))


def build_projection(columns: str, joins: Sequence[Join]) -> str:
    return ", ".join([columns] + [join.projection for join in joins])


def flatten_joins(row: Dict[str, Any], joins: Sequence[Join]) -> Dict[str, Any]:
    """Replace each nested relation object with its flattened display fields."""
    flat = dict(row)
    for join in joins:
        nested = flat.pop(join.relation, None)
        # A to-many expansion comes back as a list; take the first entry
        if isinstance(nested, list):
            nested = nested[0] if nested else None
        for column, field in zip(join.columns, join.fields):
            flat[field] = nested.get(column) if isinstance(nested, dict) else None
    return flat


async def fetch_rows(
    store,
    table: str,
    *,
    columns: str = "*",
    filters: Optional[Dict[str, Any]] = None,
    order_by: Optional[str] = None,
    descending: bool = False,
    limit: Optional[int] = None,
    joins: Sequence[Join] = (),
) -> List[Dict[str, Any]]:
    """Select rows with equality filters, one sort key, an optional limit, and flattened joins."""
    rows = await store.select(
        table,
        columns=build_projection(columns, joins),
        filters=filters,
        order_by=order_by,
        descending=descending,
        limit=limit,
    )
    return [flatten_joins(row, joins) for row in rows]


def map_rows(table: str, rows: Sequence[Dict[str, Any]], from_row: Callable[[Dict[str, Any]], R]) -> List[R]:
    """Map rows into records, skipping (and logging) any row the mapper rejects."""
    records = []
    for row in rows:
        try:
            records.append(from_row(row))
        except (ValueError, KeyError, TypeError) as e:
            logger.warning(f"Skipping unreadable '{table}' row {row.get('id')}: {e}")
    return records


async def fetch_machines(store, active_only: bool = True) -> List[Machine]:
    """Machines ordered by name, with department names."""
    filters = {"is_active": True} if active_only else None
    rows = await fetch_rows(store, "machines", filters=filters, order_by="name", joins=[DEPARTMENT_NAME])
    return map_rows("machines", rows, Machine.from_row)


async def fetch_machine(store, machine_id: str) -> Machine:
    rows = await fetch_rows(store, "machines", filters={"id": machine_id}, limit=1, joins=[DEPARTMENT_NAME])
    if not rows:
        logger.warning(f"Machine {machine_id} not found")
        raise NotFound(f"Machine {machine_id} not found")
    try:
        return Machine.from_row(rows[0])
    except (ValueError, KeyError, TypeError) as e:
        logger.error(f"Machine {machine_id} could not be read: {e}")
        raise DataUnavailable(f"Machine {machine_id} could not be read: {e}") from e


async def fetch_alerts(
    store,
    status: Optional[AlertStatus] = None,
    machine_id: Optional[str] = None,
    limit: Optional[int] = None,
) -> List[Alert]:
    """Alerts newest first, with machine names."""
    filters: Dict[str, Any] = {}
    if status is not None:
        filters["status"] = AlertStatus(status).value
    if machine_id is not None:
        filters["machine_id"] = machine_id

    rows = await fetch_rows(
        store,
        "alerts",
        filters=filters or None,
        order_by="created_at",
        descending=True,
        limit=limit,
        joins=[MACHINE_NAME],
    )
    return map_rows("alerts", rows, Alert.from_row)


async def fetch_downtime(store, machine_id: Optional[str] = None, limit: Optional[int] = None) -> List[Downtime]:
    """Downtime incidents, most recent start first, with machine names."""
    rows = await fetch_rows(
        store,
        "downtime",
        filters={"machine_id": machine_id} if machine_id else None,
        order_by="start_time",
        descending=True,
        limit=limit,
        joins=[MACHINE_NAME],
    )
    return map_rows("downtime", rows, Downtime.from_row)


async def fetch_machine_states(store, machine_id: str, limit: int = CYCLE_TREND_LIMIT) -> List[MachineState]:
    """The latest `limit` samples for a machine, returned oldest first for charting."""
    rows = await fetch_rows(
        store,
        "machine_states",
        filters={"machine_id": machine_id},
        order_by="timestamp",
        descending=True,
        limit=limit,
    )
    return map_rows("machine_states", list(reversed(rows)), MachineState.from_row)


async def fetch_all_machine_states(store, limit: int = PRODUCTION_LOG_LIMIT) -> List[MachineState]:
    rows = await fetch_rows(store, "machine_states", order_by="timestamp", descending=True, limit=limit)
    return map_rows("machine_states", rows, MachineState.from_row)


async def fetch_departments(store) -> List[Department]:
    rows = await fetch_rows(store, "departments", order_by="name")
    return map_rows("departments", rows, Department.from_row)


async def fetch_shifts(store) -> List[Shift]:
    rows = await fetch_rows(store, "shifts", order_by="start_time")
    return map_rows("shifts", rows, Shift.from_row)


async def fetch_user_roles(store) -> List[UserRole]:
    rows = await fetch_rows(store, "user_roles", order_by="created_at", joins=[PROFILE_IDENTITY])
    return map_rows("user_roles", rows, UserRole.from_row)


async def fetch_production_logs(store, limit: int = PRODUCTION_LOG_LIMIT) -> List[ProductionLog]:
    rows = await fetch_rows(
        store,
        "production_logs",
        order_by="log_date",
        descending=True,
        limit=limit,
        joins=[MACHINE_NAME, SHIFT_NAME],
    )
    return map_rows("production_logs", rows, ProductionLog.from_row)
