# ==================================================================================================
# VIEW SPECIFICATION: Machine Detail
# ==================================================================================================
#
# PURPOSE:
#   - Everything known about one machine: identity, department, criticality, ideal cycle time,
#     last maintenance, its cycle-time trend and its most recent alerts and downtime.
#
# DATA SOURCES:
#   - `machines` (single row by id) joined to `departments(name)`.
#   - `alerts` for this machine, newest 5.
#   - `downtime` for this machine, most recent 5.
#   - `machine_states` for this machine, latest 30 samples (plotted oldest first).
#
# LIVE UPDATES:
#   - Only the machine row itself is watched (UPDATE events filtered to this id); an update
#     refetches the machine record.
#
# EDGE CASES:
#   - A stale link to a deleted machine renders a "not found" panel instead of the page.
#
# ==================================================================================================

import streamlit as st
import plotly.express as px

from utils.calculations import cycle_time_series, format_duration
from utils.data_loader import DEFAULT_LIVE_REFRESH_SECONDS, get_feature
from utils.session import activate_view, navigate
from utils.status_styles import ALERT_SEVERITY_ICONS, MACHINE_STATUS_ICONS, badge
from utils.view_models import MachineDetailViewModel

LIVE_REFRESH_SECONDS = get_feature("live_refresh_seconds", DEFAULT_LIVE_REFRESH_SECONDS)
DEFAULT_IDEAL_CYCLE_TIME = 60
DEFAULT_CRITICALITY = "Medium"


def show_page():
    """Renders the Machine Detail page."""
    machine_id = st.query_params.get("machine")
    if not machine_id:
        st.header("🔍 Machine Detail")
        st.info("Please select a machine on the Machines page.")
        if st.button("← Back to Machines"):
            navigate("Machines")
        return

    view_model = activate_view(
        f"machine:{machine_id}", lambda context: MachineDetailViewModel(context, machine_id)
    )
    render_live(view_model)


@st.fragment(run_every=LIVE_REFRESH_SECONDS)
def render_live(view_model: MachineDetailViewModel):
    machine = view_model.machine

    if st.button("← Back to Machines", key="detail_back"):
        navigate("Machines")

    if machine is None:
        if view_model.not_found:
            st.error("Machine not found. It may have been removed.")
        else:
            st.info("Loading machine...")
        return

    st.header(f"{MACHINE_STATUS_ICONS[machine.status]} {machine.name}")
    st.markdown(badge(machine.status), unsafe_allow_html=True)

    # --- Machine Info ---
    col1, col2, col3, col4 = st.columns(4)
    col1.metric("Model", machine.model or "N/A")
    col2.metric("Serial Number", machine.serial_number or "N/A")
    col3.metric("Department", machine.department_name or "Unassigned")
    col4.metric("Criticality", machine.criticality or DEFAULT_CRITICALITY)

    # --- Real-Time Stats ---
    col1, col2, col3 = st.columns(3)
    col1.metric("Ideal Cycle Time", f"{machine.ideal_cycle_time or DEFAULT_IDEAL_CYCLE_TIME:g}s")
    col2.metric(
        "Last Maintenance",
        machine.last_maintenance_date.strftime("%Y-%m-%d") if machine.last_maintenance_date else "Not scheduled",
    )
    col3.metric("Active Alerts", view_model.active_alert_count)

    # --- Cycle Time Trend ---
    st.subheader("Cycle Time Trend")
    trend = cycle_time_series(view_model.value("states"))
    if not trend.empty:
        fig = px.line(trend, x='TIME', y='CYCLE_TIME', markers=True)
        fig.update_layout(xaxis_title="Time", yaxis_title="Cycle Time (s)", height=300)
        st.plotly_chart(fig, use_container_width=True)
    else:
        st.info("No cycle time samples recorded yet.")

    c1, c2 = st.columns(2)

    # --- Recent Alerts ---
    with c1:
        st.subheader("Recent Alerts")
        alerts = view_model.value("alerts")
        if not alerts:
            st.info("No alerts for this machine")
        for alert in alerts:
            with st.container(border=True):
                st.markdown(f"{ALERT_SEVERITY_ICONS[alert.severity]} {alert.message}")
                st.caption(alert.created_at.strftime("%Y-%m-%d %H:%M:%S"))
                st.markdown(badge(alert.severity), unsafe_allow_html=True)

    # --- Recent Downtime ---
    with c2:
        st.subheader("Recent Downtime")
        records = view_model.value("downtime")
        if not records:
            st.info("No downtime recorded for this machine")
        for record in records:
            with st.container(border=True):
                st.markdown(f"**{record.reason or 'Unknown reason'}**")
                window = record.start_time.strftime("%Y-%m-%d %H:%M")
                if record.end_time:
                    window += f" - {record.end_time.strftime('%Y-%m-%d %H:%M')}"
                st.caption(window)
                st.write(format_duration(record))
