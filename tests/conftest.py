"""Shared fixtures: an in-memory store with the same surface as SupabaseStore."""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import Any, Callable

import pytest

from utils.errors import DataUnavailable
from utils.models import Profile
from utils.session import SessionContext

EMBEDDED_RELATION = re.compile(r"(\w+)\(([^)]*)\)")
FOREIGN_KEYS = {
    "departments": "department_id",
    "machines": "machine_id",
    "shifts": "shift_id",
    "profiles": "user_id",
}


@dataclass
class FakeChannel:
    table: str
    row_id: str | None
    event: str
    callback: Callable[[dict[str, Any]], Any]
    removed: bool = False


@dataclass
class FakeStore:
    tables: dict[str, list[dict[str, Any]]] = field(default_factory=dict)
    fail_select: bool = False
    fail_update: bool = False
    fail_subscribe: bool = False
    selects: list[tuple[str, dict[str, Any]]] = field(default_factory=list)
    updates: list[tuple[str, str, dict[str, Any]]] = field(default_factory=list)
    channels: list[FakeChannel] = field(default_factory=list)

    def _embed(self, row: dict[str, Any], columns: str) -> dict[str, Any]:
        out = dict(row)
        for relation, wanted in EMBEDDED_RELATION.findall(columns):
            key = row.get(FOREIGN_KEYS[relation])
            target = next((r for r in self.tables.get(relation, []) if r["id"] == key), None)
            names = [c.strip() for c in wanted.split(",")]
            out[relation] = None if target is None else {c: target.get(c) for c in names}
        return out

    async def select(self, table, columns="*", filters=None, order_by=None, descending=False, limit=None):
        self.selects.append((table, dict(filters or {})))
        if self.fail_select:
            raise DataUnavailable(f"Could not load '{table}': offline")

        rows = [
            r for r in self.tables.get(table, [])
            if all(r.get(k) == v for k, v in (filters or {}).items())
        ]
        if order_by:
            rows = sorted(rows, key=lambda r: (r.get(order_by) is None, r.get(order_by)), reverse=descending)
        if limit is not None:
            rows = rows[:limit]
        return [self._embed(r, columns) for r in rows]

    async def update(self, table, row_id, patch, allowed=None):
        if self.fail_update:
            raise DataUnavailable(f"Could not update '{table}' row {row_id}: offline")
        self.updates.append((table, row_id, dict(patch)))

        updated = []
        for row in self.tables.get(table, []):
            if row["id"] != row_id:
                continue
            if any(row.get(k) not in list(v) for k, v in (allowed or {}).items()):
                continue
            row.update(patch)
            updated.append(dict(row))
        return updated

    async def subscribe(self, table, callback, row_id=None, event="*"):
        if self.fail_subscribe:
            raise DataUnavailable(f"Could not subscribe to '{table}': offline")
        channel = FakeChannel(table=table, row_id=row_id, event=event, callback=callback)
        self.channels.append(channel)
        return channel

    async def unsubscribe(self, channel):
        channel.removed = True

    async def sign_in(self, email, password):
        if password != "secret":
            raise DataUnavailable("Sign-in failed: invalid credentials")
        return Profile(id="user-1", email=email)

    async def sign_out(self):
        return None

    @property
    def open_channels(self) -> list[FakeChannel]:
        return [c for c in self.channels if not c.removed]

    def emit(self, table: str, row_id: str | None = None, event_type: str = "UPDATE") -> int:
        """Deliver a change event to every open channel watching `table` (and `row_id`)."""
        delivered = 0
        for channel in self.open_channels:
            if channel.table != table:
                continue
            if channel.row_id is not None and channel.row_id != row_id:
                continue
            if channel.event not in ("*", event_type):
                continue
            channel.callback({"eventType": event_type, "table": table})
            delivered += 1
        return delivered


def make_tables() -> dict[str, list[dict[str, Any]]]:
    return {
        "departments": [
            {"id": "d1", "name": "Assembly", "description": "Final assembly"},
            {"id": "d2", "name": "Machining", "description": None},
        ],
        "machines": [
            {"id": "m1", "name": "Press 01", "model": "HP-200", "status": "running",
             "department_id": "d1", "is_active": True, "ideal_cycle_time": 45},
            {"id": "m2", "name": "Lathe 02", "model": "LX-9", "status": "running",
             "department_id": "d2", "is_active": True, "ideal_cycle_time": None},
            {"id": "m3", "name": "Mill 03", "model": None, "status": "down",
             "department_id": None, "is_active": True},
            {"id": "m4", "name": "Drill 04", "model": "DR-1", "status": "idle",
             "department_id": "d1", "is_active": False},
        ],
        "alerts": [
            {"id": "a1", "machine_id": "m3", "message": "Spindle overheating", "severity": "high",
             "status": "active", "created_at": "2024-05-01T10:00:00Z"},
            {"id": "a2", "machine_id": "m1", "message": "Cycle time drift", "severity": "low",
             "status": "resolved", "created_at": "2024-05-01T08:00:00Z",
             "acknowledged_at": "2024-05-01T08:30:00Z", "resolved_at": "2024-05-01T09:00:00Z"},
            {"id": "a3", "machine_id": "m1", "message": "Vibration above threshold", "severity": "medium",
             "status": "acknowledged", "created_at": "2024-05-01T09:00:00Z",
             "acknowledged_at": "2024-05-01T09:10:00Z", "acknowledged_by": "user-2"},
        ],
        "downtime": [
            {"id": "t1", "machine_id": "m3", "start_time": "2024-05-01T10:00:00Z", "end_time": None,
             "duration_minutes": None, "status": "open", "reason": "Bearing failure"},
            {"id": "t2", "machine_id": "m1", "start_time": "2024-05-01T06:00:00Z",
             "end_time": "2024-05-01T06:45:00Z", "duration_minutes": 45, "status": "closed",
             "reason": "Tool change"},
            {"id": "t3", "machine_id": "m1", "start_time": "2024-04-30T06:00:00Z",
             "end_time": "2024-04-30T06:15:00Z", "duration_minutes": None, "status": "closed",
             "reason": "Tool change"},
        ],
        "machine_states": [
            {"id": f"s{i}", "machine_id": "m1", "timestamp": f"2024-05-01T10:{i:02d}:00Z",
             "cycle_time": 40 + i, "utilization": 80, "output_count": 10}
            for i in range(35)
        ],
        "shifts": [
            {"id": "sh2", "name": "Night", "start_time": "22:00:00", "end_time": "06:00:00", "planned_output": 300},
            {"id": "sh1", "name": "Morning", "start_time": "06:00:00", "end_time": "14:00:00", "planned_output": 500},
        ],
        "profiles": [
            {"id": "user-1", "email": "ops@factory.test", "full_name": "Ops Lead"},
        ],
        "user_roles": [
            {"id": "r1", "user_id": "user-1", "role": "manager", "created_at": "2024-01-01T00:00:00Z"},
        ],
        "production_logs": [
            {"id": "p1", "machine_id": "m1", "shift_id": "sh1", "log_date": "2024-05-01",
             "output_count": 450, "planned_output": 500, "good_parts": 440, "rejected_parts": 10},
            {"id": "p2", "machine_id": "m2", "shift_id": "sh2", "log_date": "2024-05-01",
             "output_count": 300, "planned_output": 300, "good_parts": None, "rejected_parts": 30},
        ],
    }


@pytest.fixture
def store() -> FakeStore:
    return FakeStore(tables=make_tables())


@pytest.fixture
def context(store: FakeStore) -> SessionContext:
    return SessionContext(store=store, user_id="user-1", user_email="ops@factory.test")
