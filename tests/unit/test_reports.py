"""Tests for the CSV report builders."""

from __future__ import annotations

from datetime import date, datetime, timedelta, timezone

import pytest

from utils.models import (
    Alert,
    AlertSeverity,
    AlertStatus,
    Downtime,
    DowntimeStatus,
    Machine,
    MachineState,
    MachineStatus,
    ProductionLog,
)
from utils.reports import (
    alert_summary_report,
    downtime_report,
    machine_performance_report,
    oee_by_department_report,
    shift_production_report,
    to_csv_bytes,
)

T0 = datetime(2024, 5, 1, 8, 0, tzinfo=timezone.utc)


def _machines() -> list[Machine]:
    return [
        Machine(id="m1", name="Press 01", status=MachineStatus.RUNNING, department_name="Assembly",
                ideal_cycle_time=45.0),
        Machine(id="m2", name="Lathe 02", status=MachineStatus.DOWN, department_name="Assembly"),
        Machine(id="m3", name="Mill 03", status=MachineStatus.IDLE),
    ]


def test_machine_performance_report_aggregates_states() -> None:
    states = [
        MachineState(id="s1", machine_id="m1", timestamp=T0, cycle_time=40.0, utilization=80.0, output_count=10),
        MachineState(id="s2", machine_id="m1", timestamp=T0, cycle_time=50.0, utilization=None, output_count=5),
    ]
    df = machine_performance_report(_machines(), states)

    press = df[df['MACHINE'] == "Press 01"].iloc[0]
    lathe = df[df['MACHINE'] == "Lathe 02"].iloc[0]
    assert press['AVG_CYCLE_TIME'] == pytest.approx(45.0)
    assert press['AVG_UTILIZATION'] == pytest.approx(80.0)
    assert press['TOTAL_OUTPUT'] == 15
    assert press['SAMPLES'] == 2
    assert lathe['SAMPLES'] == 0
    assert df[df['MACHINE'] == "Mill 03"].iloc[0]['DEPARTMENT'] == "Unassigned"


def test_machine_performance_report_empty() -> None:
    df = machine_performance_report([], [])

    assert df.empty
    assert 'AVG_CYCLE_TIME' in df.columns


def test_downtime_report_per_machine() -> None:
    records = [
        Downtime(id="t1", machine_id="m1", start_time=T0, status=DowntimeStatus.CLOSED,
                 end_time=T0 + timedelta(minutes=30), duration_minutes=30, machine_name="Press 01"),
        Downtime(id="t2", machine_id="m1", start_time=T0, status=DowntimeStatus.OPEN, machine_name="Press 01"),
        Downtime(id="t3", machine_id="m2", start_time=T0, status=DowntimeStatus.CLOSED,
                 end_time=T0 + timedelta(minutes=90), duration_minutes=90, machine_name="Lathe 02"),
    ]
    df = downtime_report(records)

    assert df['MACHINE'].tolist() == ["Lathe 02", "Press 01"]
    press = df.iloc[1]
    assert press['INCIDENTS'] == 2
    assert press['OPEN_INCIDENTS'] == 1
    assert press['TOTAL_MINUTES'] == 30
    assert press['MTTR_MINUTES'] == pytest.approx(30.0)


def test_alert_summary_report_has_row_per_severity() -> None:
    alerts = [
        Alert(id="a1", machine_id="m1", message="x", severity=AlertSeverity.HIGH, status=AlertStatus.ACTIVE,
              created_at=T0),
        Alert(id="a2", machine_id="m1", message="y", severity=AlertSeverity.HIGH,
              status=AlertStatus.ACKNOWLEDGED, created_at=T0, acknowledged_at=T0 + timedelta(minutes=12)),
    ]
    df = alert_summary_report(alerts)

    assert df['SEVERITY'].tolist() == ["low", "medium", "high"]
    high = df[df['SEVERITY'] == "high"].iloc[0]
    assert high['TOTAL'] == 2
    assert high['ACTIVE'] == 1
    assert high['ACKNOWLEDGED'] == 1
    assert high['RESOLVED'] == 0
    assert high['AVG_MINUTES_TO_ACKNOWLEDGE'] == pytest.approx(12.0)


def test_shift_production_report() -> None:
    logs = [
        ProductionLog(id="p1", machine_id="m1", log_date=date(2024, 5, 1), output_count=450,
                      planned_output=500, good_parts=440, rejected_parts=10, shift_name="Morning"),
        ProductionLog(id="p2", machine_id="m2", log_date=date(2024, 5, 1), output_count=50,
                      planned_output=None, good_parts=50, rejected_parts=0, shift_name="Morning"),
        ProductionLog(id="p3", machine_id="m2", log_date=date(2024, 5, 1), output_count=100,
                      planned_output=100, good_parts=None, rejected_parts=None),
    ]
    df = shift_production_report(logs)

    morning = df[df['SHIFT'] == "Morning"].iloc[0]
    assert morning['OUTPUT'] == 500
    assert morning['PLANNED'] == 500
    assert morning['ATTAINMENT'] == pytest.approx(1.0)
    assert morning['QUALITY'] == pytest.approx(490 / 500)
    assert "Unassigned" in df['SHIFT'].tolist()


def test_oee_by_department_report() -> None:
    df = oee_by_department_report(_machines())

    assembly = df[df['DEPARTMENT'] == "Assembly"].iloc[0]
    assert assembly['TOTAL'] == 2
    assert assembly['OEE'] == pytest.approx(50.0)
    assert df[df['DEPARTMENT'] == "Unassigned"].iloc[0]['OEE'] == 0.0


def test_to_csv_bytes_writes_header_without_index() -> None:
    payload = to_csv_bytes(oee_by_department_report(_machines()))

    assert payload.decode('utf-8').splitlines()[0] == "DEPARTMENT,TOTAL,RUNNING,IDLE,DOWN,OEE"
