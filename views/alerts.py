# ==================================================================================================
# VIEW SPECIFICATION: Alert Management
# ==================================================================================================
#
# PURPOSE:
#   - Triage machine alerts: acknowledge what someone is looking at, resolve what is fixed.
#
# DATA SOURCES:
#   - `alerts` (newest first) joined to `machines(name)`.
#
# LIFECYCLE:
#   - active -> acknowledged -> resolved, or active -> resolved directly. Never backwards.
#   - "Acknowledge" is offered on active alerts only; "Resolve" on anything not yet resolved.
#   - The outcome of every action is reported with a toast.
#   - After each action the page refetches its alert list itself instead of waiting for the
#     change notification, so the clicked alert updates on the same rerun.
#
# ==================================================================================================

import streamlit as st

from utils.calculations import ALL
from utils.data_loader import DEFAULT_LIVE_REFRESH_SECONDS, get_feature
from utils.models import AlertSeverity, AlertStatus
from utils.session import activate_view, run
from utils.status_styles import ALERT_SEVERITY_ICONS, badge
from utils.view_models import AlertsViewModel

LIVE_REFRESH_SECONDS = get_feature("live_refresh_seconds", DEFAULT_LIVE_REFRESH_SECONDS)
SEVERITY_OPTIONS = [ALL] + [severity.value for severity in AlertSeverity]
STATUS_OPTIONS = [ALL] + [status.value for status in AlertStatus]


def show_page():
    """Renders the Alerts page."""
    st.header("🔔 Alert Management")
    st.markdown("Monitor and manage machine alerts")

    view_model = activate_view("alerts", AlertsViewModel)

    f1, f2 = st.columns(2)
    severity = f1.selectbox(
        "Severity",
        options=SEVERITY_OPTIONS,
        format_func=lambda x: "All Severities" if x == ALL else x.capitalize(),
    )
    status = f2.selectbox(
        "Status",
        options=STATUS_OPTIONS,
        format_func=lambda x: "All Status" if x == ALL else x.capitalize(),
    )
    render_live(view_model, severity, status)


def _notify(notification):
    st.toast(f"**{notification.title}**: {notification.description}", icon="❌" if notification.is_error else "✅")


@st.fragment(run_every=LIVE_REFRESH_SECONDS)
def render_live(view_model: AlertsViewModel, severity: str, status: str):
    counts = view_model.counts

    # --- Summary Cards ---
    col1, col2, col3 = st.columns(3)
    col1.metric("🚨 Active", counts[AlertStatus.ACTIVE])
    col2.metric("👀 Acknowledged", counts[AlertStatus.ACKNOWLEDGED])
    col3.metric("✅ Resolved", counts[AlertStatus.RESOLVED])

    st.divider()

    # --- Alert List ---
    alerts = view_model.filtered(severity=severity, status=status)
    if not alerts:
        st.info("No alerts found.")
    for alert in alerts:
        with st.container(border=True):
            c1, c2 = st.columns([4, 1])
            with c1:
                st.markdown(f"{ALERT_SEVERITY_ICONS[alert.severity]} **{alert.machine_name or 'Unknown Machine'}**")
                st.markdown(
                    f"{badge(alert.severity)} {badge(alert.status)}",
                    unsafe_allow_html=True,
                )
                st.write(alert.message)
                st.caption(alert.created_at.strftime("%Y-%m-%d %H:%M:%S"))
            with c2:
                if alert.status == AlertStatus.ACTIVE:
                    if st.button("Acknowledge", key=f"ack_{alert.id}"):
                        _notify(run(view_model.acknowledge(alert)))
                        run(view_model.refresh())
                if alert.status != AlertStatus.RESOLVED:
                    if st.button("Resolve", key=f"resolve_{alert.id}", type="primary"):
                        _notify(run(view_model.resolve(alert)))
                        run(view_model.refresh())
