import logging

import streamlit as st
from streamlit_option_menu import option_menu

# --- PAGE CONFIGURATION ---
st.set_page_config(
    page_title="FactoryTwin",
    page_icon="🏭",
    layout="wide"
)

from views import dashboard, machines, machine_detail, downtime, alerts, reports, settings
from utils.errors import ConfigurationError, DataUnavailable
from utils.session import NAV_TARGET_KEY, get_context, sign_in, sign_out

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)

PAGES = {
    "Dashboard": dashboard,
    "Machines": machines,
    "Machine Detail": machine_detail,
    "Downtime": downtime,
    "Alerts": alerts,
    "Reports": reports,
    "Settings": settings,
}
PAGE_ICONS = ["speedometer2", "gear", "search", "clock-history", "bell", "file-earmark-text", "sliders"]

# Custom CSS for better styling
st.markdown("""
<style>
    .main > div {
        padding-top: 2rem;
    }
    div[data-testid="stMetric"] {
        background-color: #f8f9fa;
        border: 1px solid #dee2e6;
        border-radius: 10px;
        padding: 0.75rem;
    }
</style>
""", unsafe_allow_html=True)

st.title("🏭 FactoryTwin")

try:
    context = get_context()
except ConfigurationError as e:
    st.error(str(e))
    st.stop()
except DataUnavailable as e:
    logger.error(f"Could not connect to the data store: {e}")
    st.error("Could not connect to the data store. Please try again later.")
    st.stop()

# --- SIGN IN ---
if not context.is_signed_in:
    with st.form("sign_in"):
        st.subheader("Sign in")
        email = st.text_input("Email")
        password = st.text_input("Password", type="password")
        submitted = st.form_submit_button("Sign in")
    if submitted:
        if sign_in(email, password):
            st.rerun()
        st.error("Invalid email or password.")
    st.stop()

with st.sidebar:
    st.caption(f"Signed in as {context.user_email}")
    if st.button("Sign out"):
        sign_out()
        st.rerun()

# --- TOP NAVIGATION MENU ---
nav_target = st.session_state.pop(NAV_TARGET_KEY, None)
selected_page = option_menu(
    menu_title=None,
    options=list(PAGES),
    icons=PAGE_ICONS,
    menu_icon="cast",
    default_index=0,
    orientation="horizontal",
    manual_select=list(PAGES).index(nav_target) if nav_target in PAGES else None,
    key="main_menu",
)

# Query parameters belong to the page that was navigated to
if nav_target is None and st.session_state.get("current_page", selected_page) != selected_page:
    st.query_params.clear()
st.session_state["current_page"] = selected_page

try:
    PAGES[selected_page].show_page()
except DataUnavailable as e:
    logger.error(f"{selected_page} could not load: {e}")
    st.warning("Data is unavailable right now. Reload the page to try again.")
