# ==================================================================================================
# UTILITY SPECIFICATION: Derived Metrics
# ==================================================================================================
#
# PURPOSE:
#   - Reusable, pure calculations over already-fetched records, shared by every page and by the
#     report builders. Views stay focused on rendering; the arithmetic lives here.
#
# CONTAINED FUNCTIONS:
#   - tally_status / calculate_oee / format_oee: machine status counts and the OEE proxy.
#   - summarize_downtime / mean_time_to_repair: downtime aggregates.
#   - format_duration: duration label for one downtime record ("Ongoing" while open).
#   - count_alerts_by_status / mean_acknowledge_minutes: alert aggregates.
#   - filter_machines / filter_alerts / filter_downtime: list filters with an "all" sentinel.
#   - calculate_production_rates: attainment and quality from production logs.
#   - cycle_time_series: chart frame for the machine detail trend.
#
# --------------------------------------------------------------------------------------------------
# OEE PROXY
# --------------------------------------------------------------------------------------------------
#   - OEE is approximated as the share of machines currently running:
#       OEE = running / total * 100, rounded to one decimal place.
#   - With no machines the value is 0 and is displayed as "0" (not "0.0").
#
# --------------------------------------------------------------------------------------------------
# DOWNTIME TOTAL
# --------------------------------------------------------------------------------------------------
#   - The sum of duration_minutes over records where it is set. Ongoing incidents have no
#     duration and are excluded from the sum but still counted as incidents.
#   - There is no date filter: the total covers every record passed in.
#
# ==================================================================================================

from dataclasses import dataclass
from typing import Dict, Iterable, List, Optional, Sequence, Tuple

import pandas as pd

from .models import (
    Alert,
    AlertSeverity,
    AlertStatus,
    Downtime,
    DowntimeStatus,
    Machine,
    MachineState,
    MachineStatus,
)

ALL = "all"


@dataclass(frozen=True)
class StatusTally:
    total: int = 0
    running: int = 0
    idle: int = 0
    down: int = 0

    def count(self, status: MachineStatus) -> int:
        return {
            MachineStatus.RUNNING: self.running,
            MachineStatus.IDLE: self.idle,
            MachineStatus.DOWN: self.down,
        }[status]


@dataclass(frozen=True)
class DowntimeSummary:
    total_minutes: int = 0
    open_count: int = 0
    incident_count: int = 0


def tally_status(machines: Iterable[Machine]) -> StatusTally:
    counts = {status: 0 for status in MachineStatus}
    for machine in machines:
        counts[machine.status] += 1
    return StatusTally(
        total=sum(counts.values()),
        running=counts[MachineStatus.RUNNING],
        idle=counts[MachineStatus.IDLE],
        down=counts[MachineStatus.DOWN],
    )


def calculate_oee(tally: StatusTally) -> float:
    """
    Calculates the OEE proxy (percentage of machines running).

    Args:
        tally (StatusTally): Status counts for the machine set.

    Returns:
        float: running / total * 100 rounded to one decimal, 0.0 when total is 0.
    """
    if tally.total == 0:
        return 0.0
    return round(tally.running / tally.total * 100, 1)


def format_oee(tally: StatusTally) -> str:
    if tally.total == 0:
        return "0"
    return f"{tally.running / tally.total * 100:.1f}"


def format_duration(record: Downtime) -> str:
    if record.duration_minutes is None:
        return "Ongoing"
    return f"{record.duration_minutes} min"


def summarize_downtime(records: Iterable[Downtime]) -> DowntimeSummary:
    total_minutes = 0
    open_count = 0
    incident_count = 0
    for record in records:
        incident_count += 1
        if record.duration_minutes is not None:
            total_minutes += record.duration_minutes
        if record.status == DowntimeStatus.OPEN:
            open_count += 1
    return DowntimeSummary(total_minutes=total_minutes, open_count=open_count, incident_count=incident_count)


def mean_time_to_repair(records: Iterable[Downtime]) -> Optional[float]:
    """Mean duration in minutes over closed incidents, None when none have closed."""
    durations = [r.duration_minutes for r in records if r.duration_minutes is not None]
    if not durations:
        return None
    return sum(durations) / len(durations)


def count_alerts_by_status(alerts: Iterable[Alert]) -> Dict[AlertStatus, int]:
    counts = {status: 0 for status in AlertStatus}
    for alert in alerts:
        counts[alert.status] += 1
    return counts


def count_alerts_by_severity(alerts: Iterable[Alert]) -> Dict[AlertSeverity, int]:
    counts = {severity: 0 for severity in AlertSeverity}
    for alert in alerts:
        counts[alert.severity] += 1
    return counts


def mean_acknowledge_minutes(alerts: Iterable[Alert]) -> Optional[float]:
    """Mean minutes from creation to acknowledgment over acknowledged alerts."""
    waits = [
        (a.acknowledged_at - a.created_at).total_seconds() / 60
        for a in alerts
        if a.acknowledged_at is not None
    ]
    if not waits:
        return None
    return sum(waits) / len(waits)


# --- Filters ---

def _matches(value, selected) -> bool:
    if selected is None or selected == ALL:
        return True
    return value == selected or getattr(value, "value", None) == selected


def filter_machines(machines: Sequence[Machine], status=ALL, search: str = "") -> List[Machine]:
    term = (search or "").strip().lower()

    def matches_search(machine: Machine) -> bool:
        if not term:
            return True
        return term in machine.name.lower() or (machine.model is not None and term in machine.model.lower())

    return [m for m in machines if _matches(m.status, status) and matches_search(m)]


def filter_alerts(alerts: Sequence[Alert], severity=ALL, status=ALL) -> List[Alert]:
    return [a for a in alerts if _matches(a.severity, severity) and _matches(a.status, status)]


def filter_downtime(records: Sequence[Downtime], status=ALL) -> List[Downtime]:
    return [r for r in records if _matches(r.status, status)]


# --- Production & telemetry ---

def calculate_production_rates(df_logs: pd.DataFrame) -> Tuple[float, float]:
    """
    Calculates output attainment and quality from a production log dataframe.

    Args:
        df_logs (pd.DataFrame): Columns OUTPUT_COUNT, PLANNED_OUTPUT, GOOD_PARTS, REJECTED_PARTS.

    Returns:
        tuple[float, float]: attainment (output / planned) and quality (good / output).
    """
    # 1. Attainment against plan
    total_planned = df_logs['PLANNED_OUTPUT'].fillna(0).sum()
    total_output = df_logs['OUTPUT_COUNT'].fillna(0).sum()

    if total_planned == 0:
        attainment = 0.0
    else:
        attainment = total_output / total_planned

    # 2. Quality. Logs without a good-part count fall back to output minus rejects
    good = df_logs['GOOD_PARTS'].fillna(df_logs['OUTPUT_COUNT'].fillna(0) - df_logs['REJECTED_PARTS'].fillna(0))
    if total_output == 0:
        quality = 0.0
    else:
        quality = good.sum() / total_output

    return float(attainment), float(quality)


def cycle_time_series(states: Sequence[MachineState], default: float = 0) -> pd.DataFrame:
    """Oldest-first frame with TIME and CYCLE_TIME; missing cycle times are plotted as `default`."""
    return pd.DataFrame(
        {
            'TIME': [s.timestamp for s in states],
            'CYCLE_TIME': [s.cycle_time if s.cycle_time is not None else default for s in states],
        }
    )
