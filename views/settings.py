# ==================================================================================================
# VIEW SPECIFICATION: Settings
# ==================================================================================================
#
# PURPOSE:
#   - Reference lists: user roles, shifts and departments.
#
# DATA SOURCES:
#   - `user_roles` joined to `profiles(email, full_name)`.
#   - `shifts`, `departments`.
#
# ==================================================================================================

import streamlit as st
import pandas as pd

from utils.models import AppRole
from utils.session import activate_view
from utils.status_styles import ROLE_DESCRIPTIONS
from utils.view_models import SettingsViewModel


def show_page():
    """Renders the Settings page."""
    st.header("⚙️ Settings")
    st.markdown("Manage users, roles, and system configuration")

    view_model = activate_view("settings", SettingsViewModel)

    tab1, tab2, tab3 = st.tabs(["Users & Roles", "Shifts", "Departments"])

    with tab1:
        st.subheader("Role Permissions")
        for role in AppRole:
            st.markdown(f"**{role.value.capitalize()}**: {ROLE_DESCRIPTIONS[role]}")

        st.subheader("Assigned Roles")
        roles = view_model.value("roles")
        if roles:
            df_roles = pd.DataFrame([
                {
                    'User': r.full_name or r.email or r.user_id,
                    'Email': r.email or "",
                    'Role': r.role.value.capitalize(),
                }
                for r in roles
            ])
            st.dataframe(df_roles, use_container_width=True, hide_index=True)
        else:
            st.info("No roles assigned yet.")

    with tab2:
        shifts = view_model.value("shifts")
        if not shifts:
            st.info("No shifts configured.")
        for shift in shifts:
            with st.container(border=True):
                c1, c2 = st.columns([3, 1])
                c1.markdown(f"**{shift.name}**")
                c1.caption(f"{shift.start_time} - {shift.end_time}")
                c2.metric("Planned Output", shift.planned_output if shift.planned_output is not None else "N/A")

    with tab3:
        departments = view_model.value("departments")
        if not departments:
            st.info("No departments configured.")
        for department in departments:
            with st.container(border=True):
                st.markdown(f"**{department.name}**")
                if department.description:
                    st.caption(department.description)
