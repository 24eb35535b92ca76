"""
Per-browser-session runtime.

Streamlit reruns the page script on its own thread, while the Supabase client
and its realtime channels are asyncio-based. Each session gets one
LiveRuntime: an event loop on a daemon thread that owns the store, every
subscription callback, and every feed refresh. The script thread submits
work with ``run()`` and renders whatever snapshot the view models hold.
"""

import asyncio
import concurrent.futures
import logging
import threading
from dataclasses import dataclass
from typing import Any, Callable, Coroutine, Optional

import streamlit as st

from .data_loader import StoreSettings, create_store, load_settings
from .errors import DataUnavailable

logger = logging.getLogger(__name__)

RUNTIME_KEY = "live_runtime"
CONTEXT_KEY = "session_context"
ACTIVE_VIEW_KEY = "active_view"
NAV_TARGET_KEY = "nav_target"


class LiveRuntime:
    def __init__(self, name: str = "live-runtime"):
        self.loop = asyncio.new_event_loop()
        self._thread = threading.Thread(target=self._run_loop, name=name, daemon=True)
        self._thread.start()

    def _run_loop(self) -> None:
        asyncio.set_event_loop(self.loop)
        self.loop.run_forever()

    @property
    def is_running(self) -> bool:
        return self._thread.is_alive() and not self.loop.is_closed()

    def run(self, coro: Coroutine, timeout: Optional[float] = None) -> Any:
        """Run a coroutine on the session loop and wait for its result."""
        future = asyncio.run_coroutine_threadsafe(coro, self.loop)
        try:
            return future.result(timeout)
        except concurrent.futures.TimeoutError:
            # The coroutine keeps running on the loop unless cancelled
            future.cancel()
            raise

    def stop(self) -> None:
        if self.loop.is_closed():
            return
        self.loop.call_soon_threadsafe(self.loop.stop)
        self._thread.join(timeout=5)
        self.loop.close()


@dataclass
class SessionContext:
    """Explicit context handed to every view model."""

    store: Any
    settings: Optional[StoreSettings] = None
    user_id: Optional[str] = None
    user_email: Optional[str] = None

    @property
    def is_signed_in(self) -> bool:
        return self.user_id is not None


# -----------------------------
# Streamlit session helpers
# -----------------------------

def get_runtime() -> LiveRuntime:
    if RUNTIME_KEY not in st.session_state:
        st.session_state[RUNTIME_KEY] = LiveRuntime()
    return st.session_state[RUNTIME_KEY]


def get_context() -> SessionContext:
    """Return this session's context, connecting to the store on first use."""
    if CONTEXT_KEY not in st.session_state:
        settings = load_settings()
        runtime = get_runtime()
        store = runtime.run(create_store(settings), timeout=settings.request_timeout_seconds)
        st.session_state[CONTEXT_KEY] = SessionContext(store=store, settings=settings)
    return st.session_state[CONTEXT_KEY]


def run(coro: Coroutine) -> Any:
    context = st.session_state.get(CONTEXT_KEY)
    timeout = context.settings.request_timeout_seconds if context and context.settings else None
    return get_runtime().run(coro, timeout=timeout)


def activate_view(key: str, factory: Callable[[SessionContext], Any]):
    """
    Make `key` the session's active view model.

    The previously active view model (if any, and if different) is closed
    first so its subscriptions are released before new ones are opened.
    """
    active = st.session_state.get(ACTIVE_VIEW_KEY)
    if active is not None and active[0] == key:
        return active[1]

    deactivate_view()
    view_model = factory(get_context())
    try:
        run(view_model.open())
    except concurrent.futures.TimeoutError as e:
        logger.error(f"Opening view '{key}' timed out")
        run(view_model.close())
        raise DataUnavailable(f"Timed out loading '{key}'") from e
    except Exception:
        run(view_model.close())
        raise
    st.session_state[ACTIVE_VIEW_KEY] = (key, view_model)
    logger.info(f"Activated view '{key}'")
    return view_model


def deactivate_view() -> None:
    active = st.session_state.pop(ACTIVE_VIEW_KEY, None)
    if active is not None:
        run(active[1].close())
        logger.info(f"Closed view '{active[0]}'")


def navigate(page: str, **params: str) -> None:
    """Switch the top menu to `page` with the given query parameters and rerun."""
    st.query_params.clear()
    for name, value in params.items():
        st.query_params[name] = value
    st.session_state[NAV_TARGET_KEY] = page
    st.rerun()


# -----------------------------
# Auth
# -----------------------------

def sign_in(email: str, password: str) -> bool:
    context = get_context()
    try:
        profile = run(context.store.sign_in(email, password))
    except DataUnavailable as e:
        logger.warning(f"Sign-in rejected: {e}")
        return False
    context.user_id = profile.id
    context.user_email = profile.email
    logger.info(f"Signed in as {profile.email}")
    return True


def sign_out() -> None:
    context = get_context()
    deactivate_view()
    try:
        run(context.store.sign_out())
    except DataUnavailable as e:
        logger.warning(f"Sign-out call failed, clearing local session anyway: {e}")
    context.user_id = None
    context.user_email = None
