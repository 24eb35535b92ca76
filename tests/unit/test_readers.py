"""Tests for the entity readers against the in-memory store."""

from __future__ import annotations

import asyncio

import pytest

from utils import readers
from utils.errors import DataUnavailable, NotFound
from utils.models import AlertStatus, MachineStatus


def test_build_projection_appends_embedded_relations() -> None:
    projection = readers.build_projection("*", [readers.DEPARTMENT_NAME, readers.PROFILE_IDENTITY])

    assert projection == "*, departments(name), profiles(email, full_name)"


def test_flatten_joins_handles_missing_and_list_relations() -> None:
    joins = [readers.MACHINE_NAME]

    assert readers.flatten_joins({"id": "a1", "machines": None}, joins) == {"id": "a1", "machine_name": None}
    assert readers.flatten_joins({"id": "a1", "machines": [{"name": "Press"}]}, joins)["machine_name"] == "Press"
    assert readers.flatten_joins({"id": "a1", "machines": []}, joins)["machine_name"] is None


def test_fetch_machines_returns_active_machines_by_name(store) -> None:
    machines = asyncio.run(readers.fetch_machines(store))

    assert [m.name for m in machines] == ["Lathe 02", "Mill 03", "Press 01"]
    assert machines[0].department_name == "Machining"
    assert machines[1].department_name is None
    assert machines[2].status is MachineStatus.RUNNING


def test_fetch_machines_can_include_inactive(store) -> None:
    machines = asyncio.run(readers.fetch_machines(store, active_only=False))

    assert "Drill 04" in [m.name for m in machines]


def test_fetch_machine_by_id(store) -> None:
    machine = asyncio.run(readers.fetch_machine(store, "m1"))

    assert machine.name == "Press 01"
    assert machine.department_name == "Assembly"


def test_fetch_machine_raises_not_found(store) -> None:
    with pytest.raises(NotFound):
        asyncio.run(readers.fetch_machine(store, "missing"))


def test_fetch_alerts_newest_first_with_machine_names(store) -> None:
    alerts = asyncio.run(readers.fetch_alerts(store))

    assert [a.id for a in alerts] == ["a1", "a3", "a2"]
    assert alerts[0].machine_name == "Mill 03"


def test_fetch_alerts_filters_by_status_and_limit(store) -> None:
    active = asyncio.run(readers.fetch_alerts(store, status=AlertStatus.ACTIVE, limit=5))
    for_machine = asyncio.run(readers.fetch_alerts(store, machine_id="m1", limit=1))

    assert [a.id for a in active] == ["a1"]
    assert [a.id for a in for_machine] == ["a3"]
    assert ("alerts", {"status": "active"}) in store.selects


def test_fetch_downtime_derives_ongoing_duration(store) -> None:
    records = asyncio.run(readers.fetch_downtime(store))

    assert [r.id for r in records] == ["t1", "t2", "t3"]
    assert records[0].duration_minutes is None
    assert records[2].duration_minutes == 15
    assert records[1].machine_name == "Press 01"


def test_fetch_machine_states_returns_latest_samples_oldest_first(store) -> None:
    states = asyncio.run(readers.fetch_machine_states(store, "m1"))

    assert len(states) == readers.CYCLE_TREND_LIMIT
    assert states[0].timestamp < states[-1].timestamp
    assert states[-1].id == "s34"


def test_fetch_reference_lists(store) -> None:
    departments = asyncio.run(readers.fetch_departments(store))
    shifts = asyncio.run(readers.fetch_shifts(store))
    roles = asyncio.run(readers.fetch_user_roles(store))

    assert [d.name for d in departments] == ["Assembly", "Machining"]
    assert [s.name for s in shifts] == ["Morning", "Night"]
    assert roles[0].email == "ops@factory.test"
    assert roles[0].full_name == "Ops Lead"


def test_fetch_production_logs_flattens_machine_and_shift(store) -> None:
    logs = asyncio.run(readers.fetch_production_logs(store))

    names = {(log.machine_name, log.shift_name) for log in logs}
    assert names == {("Press 01", "Morning"), ("Lathe 02", "Night")}


def test_store_failure_propagates_as_data_unavailable(store) -> None:
    store.fail_select = True

    with pytest.raises(DataUnavailable):
        asyncio.run(readers.fetch_machines(store))


def test_rows_with_unknown_status_are_skipped(store) -> None:
    store.tables["alerts"][0]["status"] = "snoozed"

    alerts = asyncio.run(readers.fetch_alerts(store))

    assert [a.id for a in alerts] == ["a3", "a2"]


def test_fetch_machine_with_unknown_status_is_unavailable(store) -> None:
    store.tables["machines"][0]["status"] = "maintenance"

    with pytest.raises(DataUnavailable):
        asyncio.run(readers.fetch_machine(store, "m1"))
