"""
User-triggered alert mutations: acknowledge and resolve.

Each action is one guarded single-row update. The guard restricts the
update to the statuses the lifecycle allows moving from, so a stale screen
can never move an alert backward. The caller does not apply the returned
row; it refetches the alert list instead. An update that matches no row is
only a success when a re-read shows the alert already resolved.
"""

import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from .errors import DataUnavailable, InvalidTransition
from .models import ALERT_TRANSITIONS, Alert, AlertStatus
from .readers import fetch_rows

logger = logging.getLogger(__name__)

ALERTS_TABLE = "alerts"


@dataclass(frozen=True)
class Notification:
    """Transient message shown after a user action (rendered as a toast)."""

    title: str
    description: str
    variant: str = "default"

    @property
    def is_error(self) -> bool:
        return self.variant == "destructive"


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


def _sources_for(target: AlertStatus):
    return [status.value for status, targets in ALERT_TRANSITIONS.items() if target in targets]


def plan_acknowledge(alert: Alert, user_id: Optional[str], now: Optional[datetime] = None) -> Dict[str, Any]:
    """Build the acknowledge patch. Only active alerts can be acknowledged."""
    if not alert.status.can_transition_to(AlertStatus.ACKNOWLEDGED):
        raise InvalidTransition(f"Alert {alert.id} is {alert.status.value}; only active alerts can be acknowledged")
    return {
        "status": AlertStatus.ACKNOWLEDGED.value,
        "acknowledged_by": user_id,
        "acknowledged_at": (now or _utc_now()).isoformat(),
    }


def plan_resolve(alert: Alert, now: Optional[datetime] = None) -> Optional[Dict[str, Any]]:
    """Build the resolve patch, or None when the alert is already resolved."""
    if alert.status == AlertStatus.RESOLVED:
        return None
    return {
        "status": AlertStatus.RESOLVED.value,
        "resolved_at": (now or _utc_now()).isoformat(),
    }


async def acknowledge_alert(context, alert: Alert) -> Notification:
    try:
        patch = plan_acknowledge(alert, context.user_id)
        updated = await context.store.update(
            ALERTS_TABLE, alert.id, patch, allowed={"status": _sources_for(AlertStatus.ACKNOWLEDGED)}
        )
        if not updated:
            raise InvalidTransition(f"Alert {alert.id} is no longer active")
    except (DataUnavailable, InvalidTransition) as e:
        logger.error(f"Acknowledge failed for alert {alert.id}: {e}")
        return Notification("Error", "Failed to acknowledge alert.", variant="destructive")

    logger.info(f"Alert {alert.id} acknowledged by {context.user_id}")
    return Notification("Alert Acknowledged", "The alert has been acknowledged successfully.")


async def resolve_alert(context, alert: Alert) -> Notification:
    patch = plan_resolve(alert)
    if patch is None:
        logger.info(f"Alert {alert.id} already resolved")
        return Notification("Alert Resolved", "The alert has been resolved successfully.")

    try:
        updated = await context.store.update(
            ALERTS_TABLE, alert.id, patch, allowed={"status": _sources_for(AlertStatus.RESOLVED)}
        )
    except DataUnavailable as e:
        logger.error(f"Resolve failed for alert {alert.id}: {e}")
        return Notification("Error", "Failed to resolve alert.", variant="destructive")

    if not updated:
        # Only a concurrent resolve counts as success; a missing or protected row is a failure
        try:
            rows = await fetch_rows(context.store, ALERTS_TABLE, filters={"id": alert.id}, limit=1)
        except DataUnavailable as e:
            logger.error(f"Resolve of alert {alert.id} could not be confirmed: {e}")
            return Notification("Error", "Failed to resolve alert.", variant="destructive")
        if not rows or rows[0].get("status") != AlertStatus.RESOLVED.value:
            logger.error(f"Resolve matched no rows for alert {alert.id}")
            return Notification("Error", "Failed to resolve alert.", variant="destructive")
        logger.info(f"Alert {alert.id} was resolved concurrently")
    else:
        logger.info(f"Alert {alert.id} resolved")
    return Notification("Alert Resolved", "The alert has been resolved successfully.")
