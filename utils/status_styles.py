"""
Presentation of status and severity values.

One entry per enum member in every map; ``badge`` looks members up by key
so an unmapped value fails loudly instead of rendering unstyled.
"""

from typing import Dict

from .models import AlertSeverity, AlertStatus, AppRole, DowntimeStatus, MachineStatus

RUNNING_COLOR = "#22c55e"
IDLE_COLOR = "#f59e0b"
DOWN_COLOR = "#ef4444"
MUTED_COLOR = "#94a3b8"

MACHINE_STATUS_COLORS: Dict[MachineStatus, str] = {
    MachineStatus.RUNNING: RUNNING_COLOR,
    MachineStatus.IDLE: IDLE_COLOR,
    MachineStatus.DOWN: DOWN_COLOR,
}

MACHINE_STATUS_ICONS: Dict[MachineStatus, str] = {
    MachineStatus.RUNNING: "🟢",
    MachineStatus.IDLE: "🟡",
    MachineStatus.DOWN: "🔴",
}

ALERT_SEVERITY_COLORS: Dict[AlertSeverity, str] = {
    AlertSeverity.HIGH: DOWN_COLOR,
    AlertSeverity.MEDIUM: IDLE_COLOR,
    AlertSeverity.LOW: MUTED_COLOR,
}

ALERT_SEVERITY_ICONS: Dict[AlertSeverity, str] = {
    AlertSeverity.HIGH: "🚨",
    AlertSeverity.MEDIUM: "⚠️",
    AlertSeverity.LOW: "ℹ️",
}

ALERT_STATUS_COLORS: Dict[AlertStatus, str] = {
    AlertStatus.ACTIVE: DOWN_COLOR,
    AlertStatus.ACKNOWLEDGED: IDLE_COLOR,
    AlertStatus.RESOLVED: RUNNING_COLOR,
}

DOWNTIME_STATUS_COLORS: Dict[DowntimeStatus, str] = {
    DowntimeStatus.OPEN: DOWN_COLOR,
    DowntimeStatus.CLOSED: RUNNING_COLOR,
}

ROLE_DESCRIPTIONS: Dict[AppRole, str] = {
    AppRole.ADMIN: "Full access to all features and settings",
    AppRole.MANAGER: "Access to dashboards, reports, and machine management",
    AppRole.MAINTENANCE: "Machine management and downtime tracking",
    AppRole.OPERATOR: "View-only access to machine status",
}

_COLOR_MAPS = {
    MachineStatus: MACHINE_STATUS_COLORS,
    AlertSeverity: ALERT_SEVERITY_COLORS,
    AlertStatus: ALERT_STATUS_COLORS,
    DowntimeStatus: DOWNTIME_STATUS_COLORS,
}


def color_for(value) -> str:
    return _COLOR_MAPS[type(value)][value]


def badge(value) -> str:
    """Inline HTML badge for any status/severity member (render with unsafe_allow_html)."""
    color = color_for(value)
    return (
        f"<span style='background-color:{color}33;color:{color};padding:2px 8px;"
        f"border-radius:4px;font-size:0.75rem;font-weight:500'>{value.value}</span>"
    )
