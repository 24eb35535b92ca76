import streamlit as st
import asyncio
import os
import uuid
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Optional, Sequence
import logging

from supabase import AsyncClient, acreate_client

from .errors import ConfigurationError, DataUnavailable
from .models import Profile

# Set up logging
logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)

DEFAULT_SCHEMA = "public"
DEFAULT_LIVE_REFRESH_SECONDS = 2
DEFAULT_REQUEST_TIMEOUT_SECONDS = 15
CHANGE_EVENTS = ("*", "INSERT", "UPDATE", "DELETE")


@dataclass(frozen=True)
class StoreSettings:
    url: str
    anon_key: str
    schema: str = DEFAULT_SCHEMA
    live_refresh_seconds: float = DEFAULT_LIVE_REFRESH_SECONDS
    request_timeout_seconds: float = DEFAULT_REQUEST_TIMEOUT_SECONDS


# -----------------------------
# Configuration helpers
# -----------------------------

def _secrets_section(name: str) -> Dict[str, Any]:
    """Return a section of st.secrets as a dict, or {} when secrets are not configured."""
    try:
        return dict(st.secrets.get(name, {}))
    except Exception:
        # No secrets.toml: env vars are the only source
        return {}


def get_feature(name: str, default: Any) -> Any:
    """Read a value from st.secrets["features"] with a default."""
    return _secrets_section("features").get(name, default)


def load_settings() -> StoreSettings:
    """Resolve store settings using documented precedence.

    Precedence (first non-empty wins):
      URL:  1) SUPABASE_URL  2) st.secrets["supabase"]["url"]
      Key:  1) SUPABASE_ANON_KEY  2) SUPABASE_KEY  3) st.secrets["supabase"]["anon_key"]
    """
    secrets = _secrets_section("supabase")

    url = os.getenv("SUPABASE_URL") or secrets.get("url")
    key = os.getenv("SUPABASE_ANON_KEY") or os.getenv("SUPABASE_KEY") or secrets.get("anon_key")

    if not url or not key:
        raise ConfigurationError(
            "Supabase credentials not found. Provide SUPABASE_URL and "
            "SUPABASE_ANON_KEY (or SUPABASE_KEY), or set url/anon_key in "
            "st.secrets['supabase']."
        )

    return StoreSettings(
        url=str(url),
        anon_key=str(key),
        live_refresh_seconds=float(get_feature("live_refresh_seconds", DEFAULT_LIVE_REFRESH_SECONDS)),
        request_timeout_seconds=float(get_feature("request_timeout_seconds", DEFAULT_REQUEST_TIMEOUT_SECONDS)),
    )


# -----------------------------
# Store adapter
# -----------------------------

class SupabaseStore:
    """
    Thin adapter over the Supabase async client.

    Exposes the four operations the dashboard needs from its backend
    (select, single-row update, subscribe, unsubscribe) plus password
    sign-in. Every client failure is logged and re-raised as DataUnavailable.
    """

    def __init__(self, client: AsyncClient, schema: str = DEFAULT_SCHEMA):
        self.client = client
        self.schema = schema

    async def select(
        self,
        table: str,
        columns: str = "*",
        filters: Optional[Dict[str, Any]] = None,
        order_by: Optional[str] = None,
        descending: bool = False,
        limit: Optional[int] = None,
    ) -> List[Dict[str, Any]]:
        """Run a filtered, ordered select and return the rows as dicts."""
        query = self.client.table(table).select(columns)
        for column, value in (filters or {}).items():
            query = query.eq(column, value)
        if order_by:
            query = query.order(order_by, desc=descending)
        if limit is not None:
            query = query.limit(limit)

        try:
            response = await query.execute()
        except Exception as e:
            logger.error(f"Select on '{table}' failed: {e}")
            raise DataUnavailable(f"Could not load '{table}': {e}") from e

        rows = response.data or []
        logger.info(f"✓ Select '{table}' returned {len(rows)} rows")
        return rows

    async def update(
        self,
        table: str,
        row_id: str,
        patch: Dict[str, Any],
        allowed: Optional[Dict[str, Sequence[Any]]] = None,
    ) -> List[Dict[str, Any]]:
        """
        Patch a single row by primary key.

        ``allowed`` maps column -> accepted current values; the row is only
        updated when it still matches. Returns the updated rows (empty when
        the guard did not match).
        """
        query = self.client.table(table).update(patch).eq("id", row_id)
        for column, values in (allowed or {}).items():
            query = query.in_(column, list(values))

        try:
            response = await query.execute()
        except Exception as e:
            logger.error(f"Update on '{table}' id={row_id} failed: {e}")
            raise DataUnavailable(f"Could not update '{table}' row {row_id}: {e}") from e

        return response.data or []

    async def subscribe(
        self,
        table: str,
        callback: Callable[[Dict[str, Any]], Any],
        row_id: Optional[str] = None,
        event: str = "*",
    ):
        """Open a change subscription on a table (or one row of it). Returns the channel handle."""
        if event not in CHANGE_EVENTS:
            raise ValueError(f"Unsupported change event '{event}'")

        scope = f"{table}-{row_id}" if row_id else f"{table}-changes"
        channel = self.client.channel(f"{scope}-{uuid.uuid4().hex[:8]}")
        channel.on_postgres_changes(
            event,
            callback=callback,
            table=table,
            schema=self.schema,
            filter=f"id=eq.{row_id}" if row_id else None,
        )

        try:
            await channel.subscribe()
        except asyncio.CancelledError:
            await self.client.remove_channel(channel)
            raise
        except Exception as e:
            logger.error(f"Subscribe to '{scope}' failed: {e}")
            raise DataUnavailable(f"Could not subscribe to '{scope}': {e}") from e

        logger.info(f"Subscribed to {scope} ({event})")
        return channel

    async def unsubscribe(self, channel) -> None:
        try:
            await self.client.remove_channel(channel)
        except Exception as e:
            logger.error(f"Releasing channel failed: {e}")
            raise DataUnavailable(f"Could not release subscription: {e}") from e

    async def sign_in(self, email: str, password: str) -> Profile:
        try:
            response = await self.client.auth.sign_in_with_password({"email": email, "password": password})
        except Exception as e:
            logger.error(f"Sign-in failed for {email}: {e}")
            raise DataUnavailable(f"Sign-in failed: {e}") from e

        user = response.user
        if user is None:
            raise DataUnavailable("Sign-in returned no user")
        metadata = getattr(user, "user_metadata", None) or {}
        return Profile(id=str(user.id), email=user.email or email, full_name=metadata.get("full_name"))

    async def sign_out(self) -> None:
        try:
            await self.client.auth.sign_out()
        except Exception as e:
            logger.error(f"Sign-out failed: {e}")
            raise DataUnavailable(f"Sign-out failed: {e}") from e


async def create_store(settings: StoreSettings) -> SupabaseStore:
    """Create the async client and wrap it. Must run on the session's event loop."""
    try:
        client = await acreate_client(settings.url, settings.anon_key)
    except Exception as e:
        logger.error(f"Failed to create Supabase client: {e}")
        raise DataUnavailable(f"Could not connect to Supabase at {settings.url}: {e}") from e
    logger.info(f"Connected to Supabase at {settings.url}")
    return SupabaseStore(client, schema=settings.schema)
