# ==================================================================================================
# VIEW SPECIFICATION: Factory Command Center (Dashboard)
# ==================================================================================================
#
# PURPOSE:
#   - At-a-glance factory health: how many machines are running, idle or down, the OEE proxy,
#     a status heat map of every active machine, and the newest active alerts.
#
# DATA SOURCES:
#   - `machines` (is_active = true) for the KPI cards and heat map.
#   - `alerts` (status = active, newest 5) for the alert feed.
#
# LIVE UPDATES:
#   - Both tables are watched. A change on `machines` refetches the machine feed only; a change on
#     `alerts` refetches the alert feed only. The body is a fragment that reruns on an interval and
#     re-reads the latest snapshots.
#
# USER INTERACTION:
#   - Running / Idle / Down cards link to the Machines page with that status pre-filtered.
#   - Heat map tiles open the Machine Detail page.
#
# ==================================================================================================

import streamlit as st

from utils.data_loader import DEFAULT_LIVE_REFRESH_SECONDS, get_feature
from utils.models import MachineStatus
from utils.session import activate_view, navigate
from utils.status_styles import ALERT_SEVERITY_ICONS, MACHINE_STATUS_ICONS, badge
from utils.view_models import DashboardViewModel

LIVE_REFRESH_SECONDS = get_feature("live_refresh_seconds", DEFAULT_LIVE_REFRESH_SECONDS)
HEAT_MAP_COLUMNS = 6


def show_page():
    """Renders the Dashboard page."""
    st.header("🏭 Factory Command Center")
    st.markdown("Real-time factory health and performance metrics")

    view_model = activate_view("dashboard", DashboardViewModel)
    render_live(view_model)


@st.fragment(run_every=LIVE_REFRESH_SECONDS)
def render_live(view_model: DashboardViewModel):
    tally = view_model.tally

    # --- KPI Cards ---
    col1, col2, col3, col4, col5 = st.columns(5)
    col1.metric("Total Machines", tally.total)
    for col, status, label in (
        (col2, MachineStatus.RUNNING, "Running"),
        (col3, MachineStatus.IDLE, "Idle"),
        (col4, MachineStatus.DOWN, "Down"),
    ):
        with col:
            st.metric(f"{MACHINE_STATUS_ICONS[status]} {label}", tally.count(status))
            if st.button("View", key=f"kpi_{status.value}"):
                navigate("Machines", status=status.value)
    col5.metric("Factory OEE", f"{view_model.oee_label}%")

    st.divider()

    # --- Machine Heat Map ---
    st.subheader("Machine Status Heat Map")
    machines = view_model.machines
    if machines:
        cols = st.columns(HEAT_MAP_COLUMNS)
        for i, machine in enumerate(machines):
            with cols[i % HEAT_MAP_COLUMNS]:
                with st.container(border=True):
                    st.markdown(f"{MACHINE_STATUS_ICONS[machine.status]} **{machine.name}**")
                    st.caption(f"Status: {machine.status.value}")
                    if st.button("Open", key=f"heat_{machine.id}"):
                        navigate("Machine Detail", machine=machine.id)
    else:
        st.info("No machines found. Add machines to get started.")

    st.divider()

    # --- Active Alerts ---
    st.subheader("Active Alerts")
    alerts = view_model.alerts
    if not alerts:
        st.info("No active alerts")
    for alert in alerts:
        c1, c2 = st.columns([5, 1])
        with c1:
            st.markdown(f"{ALERT_SEVERITY_ICONS[alert.severity]} **{alert.message}**")
            st.caption(alert.created_at.strftime("%Y-%m-%d %H:%M:%S"))
        with c2:
            st.markdown(badge(alert.severity), unsafe_allow_html=True)
    if alerts and st.button("Go to Alerts"):
        navigate("Alerts")
