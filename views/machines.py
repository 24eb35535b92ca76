# ==================================================================================================
# VIEW SPECIFICATION: Machines
# ==================================================================================================
#
# PURPOSE:
#   - Browse every active machine with its department and current status.
#
# DATA SOURCES:
#   - `machines` (is_active = true, ordered by name) joined to `departments(name)`.
#
# USER INTERACTION:
#   - Free-text search (case-insensitive, matches name or model).
#   - Status filter; pre-selected from the `status` query parameter when arriving from the
#     Dashboard KPI cards.
#   - Each card opens the Machine Detail page.
#
# ==================================================================================================

import streamlit as st

from utils.calculations import ALL
from utils.data_loader import DEFAULT_LIVE_REFRESH_SECONDS, get_feature
from utils.models import MachineStatus
from utils.session import activate_view, navigate
from utils.status_styles import MACHINE_STATUS_ICONS, badge
from utils.view_models import MachinesViewModel

LIVE_REFRESH_SECONDS = get_feature("live_refresh_seconds", DEFAULT_LIVE_REFRESH_SECONDS)
GRID_COLUMNS = 3
STATUS_OPTIONS = [ALL] + [status.value for status in MachineStatus]


def show_page():
    """Renders the Machines page."""
    st.header("⚙️ Machines")
    st.markdown("Manage and monitor all factory machines")

    view_model = activate_view("machines", MachinesViewModel)

    # --- Filters ---
    requested = st.query_params.get("status", ALL)
    f1, f2 = st.columns([2, 1])
    search = f1.text_input("Search machines...", key="machine_search")
    status = f2.selectbox(
        "Filter by status",
        options=STATUS_OPTIONS,
        index=STATUS_OPTIONS.index(requested) if requested in STATUS_OPTIONS else 0,
        format_func=lambda x: "All Status" if x == ALL else x.capitalize(),
    )

    render_live(view_model, status, search)


@st.fragment(run_every=LIVE_REFRESH_SECONDS)
def render_live(view_model: MachinesViewModel, status: str, search: str):
    machines = view_model.filtered(status=status, search=search)

    if not machines:
        st.info("No machines found. Try adjusting your filters.")
        return

    cols = st.columns(GRID_COLUMNS)
    for i, machine in enumerate(machines):
        with cols[i % GRID_COLUMNS]:
            with st.container(border=True):
                st.markdown(f"{MACHINE_STATUS_ICONS[machine.status]} **{machine.name}**")
                st.caption(machine.model or "—")
                st.write(f"Department: {machine.department_name or 'Unassigned'}")
                st.markdown(badge(machine.status), unsafe_allow_html=True)
                if st.button("Details", key=f"machine_{machine.id}"):
                    navigate("Machine Detail", machine=machine.id)
