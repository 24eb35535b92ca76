"""
View models: per-page caches kept live by change subscriptions.

A view model is built from an explicit session context (store handle and
signed-in user) and owns its data. Each dataset it shows is a LiveFeed; each
watched table is a LiveSubscription whose events refresh one or more feeds.
Pages read the feeds' latest snapshots and never touch the store directly.
"""

import asyncio
import itertools
import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Awaitable, Callable, Dict, Generic, List, Optional, Sequence, Tuple, TypeVar

import pandas as pd

from . import readers, reports
from .alert_actions import Notification, acknowledge_alert, resolve_alert
from .calculations import (
    ALL,
    StatusTally,
    calculate_oee,
    count_alerts_by_status,
    filter_alerts,
    filter_downtime,
    filter_machines,
    format_oee,
    summarize_downtime,
    tally_status,
)
from .errors import DataUnavailable, NotFound
from .models import Alert, AlertStatus, Machine
from .realtime import LiveSubscription

logger = logging.getLogger(__name__)

T = TypeVar("T")


class LiveFeed(Generic[T]):
    """
    Latest snapshot of one dataset.

    Every refresh takes a token from a monotonic counter. When the fetch
    returns, the result is applied only if no newer refresh has been issued
    in the meantime; otherwise it is discarded as stale.
    """

    def __init__(self, name: str, loader: Callable[[], Awaitable[T]], initial: T):
        self.name = name
        self.loader = loader
        self.value: T = initial
        self.loaded = False
        self.not_found = False
        self.last_error: Optional[str] = None
        self.refreshed_at: Optional[datetime] = None
        self._tokens = itertools.count(1)
        self._latest_issued = 0

    async def refresh(self) -> bool:
        """Fetch and apply. Returns True when the new snapshot was applied."""
        token = next(self._tokens)
        self._latest_issued = token

        try:
            value = await self.loader()
        except NotFound as e:
            if token == self._latest_issued:
                self.not_found = True
                self.last_error = str(e)
            return False
        except DataUnavailable as e:
            # Keep showing the last good snapshot
            logger.warning(f"Refresh of '{self.name}' failed, keeping previous data: {e}")
            if token == self._latest_issued:
                self.last_error = str(e)
            return False

        if token != self._latest_issued:
            logger.debug(f"Discarding stale '{self.name}' response (token {token} < {self._latest_issued})")
            return False

        self.value = value
        self.loaded = True
        self.not_found = False
        self.last_error = None
        self.refreshed_at = datetime.now(timezone.utc)
        return True


@dataclass(frozen=True)
class Watch:
    table: str
    feeds: Tuple[str, ...]
    row_id: Optional[str] = None
    event: str = "*"


class ViewModel:
    """Base class: a set of feeds plus the table watches that refresh them."""

    def __init__(self, context):
        self.context = context
        self.feeds: Dict[str, LiveFeed] = {}
        self.watches: List[Watch] = []
        self.subscriptions = []
        self.is_open = False

    @property
    def store(self):
        return self.context.store

    def add_feed(self, name: str, loader: Callable[[], Awaitable[Any]], initial: Any) -> LiveFeed:
        feed = LiveFeed(name, loader, initial)
        self.feeds[name] = feed
        return feed

    def watch(self, table: str, *feeds: str, row_id: Optional[str] = None, event: str = "*") -> None:
        self.watches.append(Watch(table=table, feeds=feeds, row_id=row_id, event=event))

    def value(self, name: str) -> Any:
        return self.feeds[name].value

    async def refresh(self, *names: str) -> None:
        targets = [self.feeds[n] for n in (names or self.feeds)]
        await asyncio.gather(*(feed.refresh() for feed in targets))

    def _refresher(self, names: Sequence[str]) -> Callable[[], Awaitable[None]]:
        def on_change():
            return self.refresh(*names)
        return on_change

    async def open(self) -> "ViewModel":
        await self.refresh()
        for watch in self.watches:
            subscription = LiveSubscription(
                self.store, watch.table, self._refresher(watch.feeds), row_id=watch.row_id, event=watch.event
            )
            # Tracked before opening so close() can release it even if open() is cancelled
            self.subscriptions.append(subscription)
            try:
                await subscription.open()
            except DataUnavailable as e:
                # The page still renders; it just won't update live
                self.subscriptions.remove(subscription)
                logger.warning(f"{type(self).__name__}: live updates unavailable: {e}")
                break
        self.is_open = True
        return self

    async def close(self) -> None:
        subscriptions, self.subscriptions = self.subscriptions, []
        for subscription in subscriptions:
            try:
                await subscription.close()
            except DataUnavailable as e:
                logger.error(f"Failed to release {subscription.scope}: {e}")
        self.is_open = False


class DashboardViewModel(ViewModel):
    ALERT_LIMIT = 5

    def __init__(self, context):
        super().__init__(context)
        self.add_feed("machines", lambda: readers.fetch_machines(self.store), [])
        self.add_feed(
            "alerts",
            lambda: readers.fetch_alerts(self.store, status=AlertStatus.ACTIVE, limit=self.ALERT_LIMIT),
            [],
        )
        self.watch("machines", "machines")
        self.watch("alerts", "alerts")

    @property
    def machines(self) -> List[Machine]:
        return self.value("machines")

    @property
    def alerts(self) -> List[Alert]:
        return self.value("alerts")

    @property
    def tally(self) -> StatusTally:
        return tally_status(self.machines)

    @property
    def oee(self) -> float:
        return calculate_oee(self.tally)

    @property
    def oee_label(self) -> str:
        return format_oee(self.tally)


class MachinesViewModel(ViewModel):
    def __init__(self, context):
        super().__init__(context)
        self.add_feed("machines", lambda: readers.fetch_machines(self.store), [])
        self.watch("machines", "machines")

    def filtered(self, status=ALL, search: str = "") -> List[Machine]:
        return filter_machines(self.value("machines"), status=status, search=search)


class MachineDetailViewModel(ViewModel):
    def __init__(self, context, machine_id: str):
        super().__init__(context)
        self.machine_id = machine_id
        self.add_feed("machine", lambda: readers.fetch_machine(self.store, machine_id), None)
        self.add_feed(
            "alerts",
            lambda: readers.fetch_alerts(self.store, machine_id=machine_id, limit=readers.DETAIL_ALERT_LIMIT),
            [],
        )
        self.add_feed(
            "downtime",
            lambda: readers.fetch_downtime(self.store, machine_id=machine_id, limit=readers.DETAIL_DOWNTIME_LIMIT),
            [],
        )
        self.add_feed("states", lambda: readers.fetch_machine_states(self.store, machine_id), [])
        self.watch("machines", "machine", row_id=machine_id, event="UPDATE")

    @property
    def machine(self) -> Optional[Machine]:
        return self.value("machine")

    @property
    def not_found(self) -> bool:
        return self.feeds["machine"].not_found

    @property
    def active_alert_count(self) -> int:
        return count_alerts_by_status(self.value("alerts"))[AlertStatus.ACTIVE]


class DowntimeViewModel(ViewModel):
    def __init__(self, context):
        super().__init__(context)
        self.add_feed("downtime", lambda: readers.fetch_downtime(self.store), [])
        self.watch("downtime", "downtime")

    @property
    def summary(self):
        return summarize_downtime(self.value("downtime"))

    def filtered(self, status=ALL):
        return filter_downtime(self.value("downtime"), status=status)


class AlertsViewModel(ViewModel):
    def __init__(self, context):
        super().__init__(context)
        self.add_feed("alerts", lambda: readers.fetch_alerts(self.store), [])
        self.watch("alerts", "alerts")

    @property
    def counts(self) -> Dict[AlertStatus, int]:
        return count_alerts_by_status(self.value("alerts"))

    def filtered(self, severity=ALL, status=ALL) -> List[Alert]:
        return filter_alerts(self.value("alerts"), severity=severity, status=status)

    async def acknowledge(self, alert: Alert) -> Notification:
        return await acknowledge_alert(self.context, alert)

    async def resolve(self, alert: Alert) -> Notification:
        return await resolve_alert(self.context, alert)


class SettingsViewModel(ViewModel):
    def __init__(self, context):
        super().__init__(context)
        self.add_feed("departments", lambda: readers.fetch_departments(self.store), [])
        self.add_feed("shifts", lambda: readers.fetch_shifts(self.store), [])
        self.add_feed("roles", lambda: readers.fetch_user_roles(self.store), [])


class ReportsViewModel(ViewModel):
    """Loads everything the report builders need; refreshed on demand, not watched."""

    def __init__(self, context):
        super().__init__(context)
        self.add_feed("machines", lambda: readers.fetch_machines(self.store, active_only=False), [])
        self.add_feed("states", lambda: readers.fetch_all_machine_states(self.store), [])
        self.add_feed("downtime", lambda: readers.fetch_downtime(self.store), [])
        self.add_feed("alerts", lambda: readers.fetch_alerts(self.store), [])
        self.add_feed("logs", lambda: readers.fetch_production_logs(self.store), [])

    def build(self, report: str) -> pd.DataFrame:
        builders = {
            "machine_performance": lambda: reports.machine_performance_report(
                self.value("machines"), self.value("states")
            ),
            "downtime": lambda: reports.downtime_report(self.value("downtime")),
            "alerts": lambda: reports.alert_summary_report(self.value("alerts")),
            "shift_production": lambda: reports.shift_production_report(self.value("logs")),
            "oee": lambda: reports.oee_by_department_report(self.value("machines")),
        }
        return builders[report]()
