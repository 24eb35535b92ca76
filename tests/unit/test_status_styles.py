"""Every status and severity member must have a style."""

from __future__ import annotations

import pytest

from utils.models import AlertSeverity, AlertStatus, AppRole, DowntimeStatus, MachineStatus
from utils.status_styles import (
    ALERT_SEVERITY_COLORS,
    ALERT_SEVERITY_ICONS,
    ALERT_STATUS_COLORS,
    DOWNTIME_STATUS_COLORS,
    MACHINE_STATUS_COLORS,
    MACHINE_STATUS_ICONS,
    ROLE_DESCRIPTIONS,
    badge,
    color_for,
)


@pytest.mark.parametrize(
    ("enum", "style_map"),
    [
        (MachineStatus, MACHINE_STATUS_COLORS),
        (MachineStatus, MACHINE_STATUS_ICONS),
        (AlertSeverity, ALERT_SEVERITY_COLORS),
        (AlertSeverity, ALERT_SEVERITY_ICONS),
        (AlertStatus, ALERT_STATUS_COLORS),
        (DowntimeStatus, DOWNTIME_STATUS_COLORS),
        (AppRole, ROLE_DESCRIPTIONS),
    ],
)
def test_style_maps_are_exhaustive(enum, style_map) -> None:
    assert set(style_map) == set(enum)


def test_badge_renders_value_in_its_color() -> None:
    html = badge(MachineStatus.DOWN)

    assert ">down</span>" in html
    assert color_for(MachineStatus.DOWN) in html


def test_color_for_rejects_plain_strings() -> None:
    with pytest.raises(KeyError):
        color_for("down")
