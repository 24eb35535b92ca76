# ==================================================================================================
# VIEW SPECIFICATION: Downtime Tracking
# ==================================================================================================
#
# PURPOSE:
#   - Monitor downtime incidents across all machines.
#
# DATA SOURCES:
#   - `downtime` (most recent start first) joined to `machines(name)`.
#
# KPIs DISPLAYED:
#   1. Total Downtime: sum of duration_minutes over closed incidents (all loaded records).
#   2. Open Incidents: count with status = open.
#   3. Total Incidents: every loaded record, ongoing ones included.
#
# VISUALIZATIONS:
#   - `plotly.express.bar`: minutes lost per reason.
#
# ==================================================================================================

import streamlit as st
import pandas as pd
import plotly.express as px

from utils.calculations import ALL, format_duration
from utils.data_loader import DEFAULT_LIVE_REFRESH_SECONDS, get_feature
from utils.models import DowntimeStatus
from utils.session import activate_view
from utils.status_styles import badge
from utils.view_models import DowntimeViewModel

LIVE_REFRESH_SECONDS = get_feature("live_refresh_seconds", DEFAULT_LIVE_REFRESH_SECONDS)
STATUS_OPTIONS = [ALL] + [status.value for status in DowntimeStatus]


def show_page():
    """Renders the Downtime page."""
    st.header("⏱️ Downtime Tracking")
    st.markdown("Monitor and analyze machine downtime")

    view_model = activate_view("downtime", DowntimeViewModel)
    status = st.selectbox(
        "Filter by status",
        options=STATUS_OPTIONS,
        format_func=lambda x: "All Status" if x == ALL else x.capitalize(),
    )
    render_live(view_model, status)


@st.fragment(run_every=LIVE_REFRESH_SECONDS)
def render_live(view_model: DowntimeViewModel, status: str):
    summary = view_model.summary

    # --- Summary Cards ---
    col1, col2, col3 = st.columns(3)
    col1.metric("Total Downtime", f"{summary.total_minutes} min")
    col2.metric("Open Incidents", summary.open_count)
    col3.metric("Total Incidents", summary.incident_count)

    # --- Minutes by Reason ---
    closed = [r for r in view_model.value("downtime") if r.duration_minutes is not None]
    if closed:
        by_reason = (
            pd.DataFrame({
                'REASON': [r.reason or 'Not specified' for r in closed],
                'MINUTES': [r.duration_minutes for r in closed],
            })
            .groupby('REASON', as_index=False)['MINUTES'].sum()
            .sort_values('MINUTES', ascending=False)
        )
        fig = px.bar(by_reason, x='REASON', y='MINUTES', title="Downtime Minutes by Reason")
        st.plotly_chart(fig, use_container_width=True)

    st.divider()

    # --- Downtime List ---
    records = view_model.filtered(status=status)
    if not records:
        st.info("No downtime records found.")
    for record in records:
        with st.container(border=True):
            c1, c2 = st.columns([4, 1])
            with c1:
                st.markdown(f"⚠️ **{record.machine_name or 'Unknown Machine'}**")
                st.markdown(badge(record.status), unsafe_allow_html=True)
                st.caption(f"Started: {record.start_time.strftime('%Y-%m-%d %H:%M:%S')}")
                if record.end_time:
                    st.caption(f"Ended: {record.end_time.strftime('%Y-%m-%d %H:%M:%S')}")
                st.write(f"Reason: {record.reason or 'Not specified'}")
            with c2:
                st.metric("Duration", format_duration(record))
