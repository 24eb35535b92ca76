# ==================================================================================================
# VIEW SPECIFICATION: Reports
# ==================================================================================================
#
# PURPOSE:
#   - Downloadable CSV exports of machine performance, downtime, alerts, shift production and
#     OEE by department.
#
# DATA SOURCES:
#   - `machines` (all, including inactive), `machine_states`, `downtime`, `alerts`,
#     `production_logs`. Loaded when the page opens and on "Refresh data"; not watched.
#
# ==================================================================================================

import streamlit as st

from utils.reports import to_csv_bytes
from utils.session import activate_view, run
from utils.view_models import ReportsViewModel

REPORTS = [
    ("machine_performance", "📈 Machine Performance Report",
     "Cycle time, utilization and output for every machine"),
    ("downtime", "⏱️ Downtime Analysis Report",
     "Incidents, minutes lost and mean time to repair per machine"),
    ("alerts", "🔔 Alert Summary Report",
     "Alert counts by severity and status with response times"),
    ("shift_production", "🕒 Shift Production Report",
     "Output, attainment and quality by shift"),
    ("oee", "🏭 OEE by Department Report",
     "Machine status mix and OEE for each department"),
]


def show_page():
    """Renders the Reports page."""
    st.header("📄 Reports")
    st.markdown("Generate and download factory reports")

    view_model = activate_view("reports", ReportsViewModel)

    if st.button("🔄 Refresh data"):
        run(view_model.refresh())
        st.toast("Report data refreshed", icon="✅")

    refreshed = [f.refreshed_at for f in view_model.feeds.values() if f.refreshed_at]
    if refreshed:
        st.caption(f"Data as of {min(refreshed).strftime('%Y-%m-%d %H:%M:%S')} UTC")

    cols = st.columns(2)
    for i, (key, title, description) in enumerate(REPORTS):
        with cols[i % 2]:
            with st.container(border=True):
                st.subheader(title)
                st.caption(description)
                df = view_model.build(key)
                with st.expander(f"Preview ({len(df)} rows)"):
                    st.dataframe(df, use_container_width=True, hide_index=True)
                st.download_button(
                    "Download CSV",
                    data=to_csv_bytes(df),
                    file_name=f"{key}_report.csv",
                    mime="text/csv",
                    key=f"download_{key}",
                    disabled=df.empty,
                )
