# ==================================================================================================
# UTILITY SPECIFICATION: Report Builders
# ==================================================================================================
#
# PURPOSE:
#   - Build the downloadable reports offered on the Reports page. Each builder takes records
#     already loaded by the readers and returns a pandas DataFrame; `to_csv_bytes` turns a frame
#     into the download payload for `st.download_button`.
#
# REPORTS:
#   1. Machine Performance: status, department, ideal vs. mean cycle time, mean utilization and
#      total output per machine (from machine_states samples).
#   2. Downtime Analysis: incidents, open incidents, total minutes and MTTR per machine.
#   3. Alert Summary: counts per severity x status and mean minutes to acknowledgment.
#   4. Shift Production: output vs. plan (attainment) and quality per shift.
#   5. OEE by Department: status tally and the running-share OEE proxy per department.
#
# ==================================================================================================

from typing import Dict, List, Sequence

import pandas as pd

from .calculations import (
    calculate_oee,
    calculate_production_rates,
    mean_acknowledge_minutes,
    mean_time_to_repair,
    summarize_downtime,
    tally_status,
)
from .models import Alert, AlertSeverity, AlertStatus, Downtime, Machine, MachineState, ProductionLog

UNASSIGNED = "Unassigned"


def to_csv_bytes(df: pd.DataFrame) -> bytes:
    return df.to_csv(index=False).encode('utf-8')


def machine_performance_report(machines: Sequence[Machine], states: Sequence[MachineState]) -> pd.DataFrame:
    columns = [
        'MACHINE', 'STATUS', 'DEPARTMENT', 'IDEAL_CYCLE_TIME', 'AVG_CYCLE_TIME',
        'AVG_UTILIZATION', 'TOTAL_OUTPUT', 'SAMPLES',
    ]
    if not machines:
        return pd.DataFrame(columns=columns)

    df_states = pd.DataFrame(
        [
            {
                'MACHINE_ID': s.machine_id,
                'CYCLE_TIME': s.cycle_time,
                'UTILIZATION': s.utilization,
                'OUTPUT_COUNT': s.output_count,
            }
            for s in states
        ],
        columns=['MACHINE_ID', 'CYCLE_TIME', 'UTILIZATION', 'OUTPUT_COUNT'],
    )
    numeric = ['CYCLE_TIME', 'UTILIZATION', 'OUTPUT_COUNT']
    df_states[numeric] = df_states[numeric].apply(pd.to_numeric, errors='coerce')
    per_machine = df_states.groupby('MACHINE_ID').agg(
        AVG_CYCLE_TIME=('CYCLE_TIME', 'mean'),
        AVG_UTILIZATION=('UTILIZATION', 'mean'),
        TOTAL_OUTPUT=('OUTPUT_COUNT', 'sum'),
        SAMPLES=('CYCLE_TIME', 'size'),
    )

    rows = []
    for machine in machines:
        stats = per_machine.loc[machine.id] if machine.id in per_machine.index else None
        rows.append({
            'MACHINE': machine.name,
            'STATUS': machine.status.value,
            'DEPARTMENT': machine.department_name or UNASSIGNED,
            'IDEAL_CYCLE_TIME': machine.ideal_cycle_time,
            'AVG_CYCLE_TIME': None if stats is None else stats['AVG_CYCLE_TIME'],
            'AVG_UTILIZATION': None if stats is None else stats['AVG_UTILIZATION'],
            'TOTAL_OUTPUT': 0 if stats is None else int(stats['TOTAL_OUTPUT']),
            'SAMPLES': 0 if stats is None else int(stats['SAMPLES']),
        })
    return pd.DataFrame(rows, columns=columns)


def downtime_report(records: Sequence[Downtime]) -> pd.DataFrame:
    columns = ['MACHINE', 'INCIDENTS', 'OPEN_INCIDENTS', 'TOTAL_MINUTES', 'MTTR_MINUTES']
    grouped: Dict[str, List[Downtime]] = {}
    for record in records:
        grouped.setdefault(record.machine_name or record.machine_id, []).append(record)

    rows = []
    for machine, machine_records in grouped.items():
        summary = summarize_downtime(machine_records)
        rows.append({
            'MACHINE': machine,
            'INCIDENTS': summary.incident_count,
            'OPEN_INCIDENTS': summary.open_count,
            'TOTAL_MINUTES': summary.total_minutes,
            'MTTR_MINUTES': mean_time_to_repair(machine_records),
        })
    df = pd.DataFrame(rows, columns=columns)
    return df.sort_values('TOTAL_MINUTES', ascending=False).reset_index(drop=True)


def alert_summary_report(alerts: Sequence[Alert]) -> pd.DataFrame:
    rows = []
    for severity in AlertSeverity:
        of_severity = [a for a in alerts if a.severity == severity]
        row = {'SEVERITY': severity.value, 'TOTAL': len(of_severity)}
        for status in AlertStatus:
            row[status.value.upper()] = sum(1 for a in of_severity if a.status == status)
        row['AVG_MINUTES_TO_ACKNOWLEDGE'] = mean_acknowledge_minutes(of_severity)
        rows.append(row)
    return pd.DataFrame(rows)


def shift_production_report(logs: Sequence[ProductionLog]) -> pd.DataFrame:
    columns = ['SHIFT', 'OUTPUT', 'PLANNED', 'ATTAINMENT', 'QUALITY']
    if not logs:
        return pd.DataFrame(columns=columns)

    df_logs = pd.DataFrame([
        {
            'SHIFT': log.shift_name or UNASSIGNED,
            'OUTPUT_COUNT': log.output_count,
            'PLANNED_OUTPUT': log.planned_output,
            'GOOD_PARTS': log.good_parts,
            'REJECTED_PARTS': log.rejected_parts,
        }
        for log in logs
    ])
    numeric = ['OUTPUT_COUNT', 'PLANNED_OUTPUT', 'GOOD_PARTS', 'REJECTED_PARTS']
    df_logs[numeric] = df_logs[numeric].apply(pd.to_numeric, errors='coerce')

    rows = []
    for shift, shift_logs in df_logs.groupby('SHIFT'):
        attainment, quality = calculate_production_rates(shift_logs)
        rows.append({
            'SHIFT': shift,
            'OUTPUT': int(shift_logs['OUTPUT_COUNT'].sum()),
            'PLANNED': int(shift_logs['PLANNED_OUTPUT'].fillna(0).sum()),
            'ATTAINMENT': attainment,
            'QUALITY': quality,
        })
    return pd.DataFrame(rows, columns=columns)


def oee_by_department_report(machines: Sequence[Machine]) -> pd.DataFrame:
    columns = ['DEPARTMENT', 'TOTAL', 'RUNNING', 'IDLE', 'DOWN', 'OEE']
    grouped: Dict[str, List[Machine]] = {}
    for machine in machines:
        grouped.setdefault(machine.department_name or UNASSIGNED, []).append(machine)

    rows = []
    for department in sorted(grouped):
        tally = tally_status(grouped[department])
        rows.append({
            'DEPARTMENT': department,
            'TOTAL': tally.total,
            'RUNNING': tally.running,
            'IDLE': tally.idle,
            'DOWN': tally.down,
            'OEE': calculate_oee(tally),
        })
    return pd.DataFrame(rows, columns=columns)
