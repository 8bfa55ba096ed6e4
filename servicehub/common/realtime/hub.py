# servicehub/common/realtime/hub.py
"""
In-process realtime transport.

Row changes are published per table after a commit and delivered to every
subscription whose equality filters match the row. Delivery is asynchronous:
each callback runs in its own task, so a publisher never waits on its
subscribers and a subscriber sees an echo of its own write some time after
the write returns.
"""

import asyncio
import enum
import itertools
import logging
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, Dict, Optional, Set

logger = logging.getLogger(__name__)


class RowEvent(enum.Enum):
    INSERT = "insert"
    UPDATE = "update"
    DELETE = "delete"


@dataclass(frozen=True)
class RowChange:
    """A single row-level change as seen by subscribers."""
    table: str
    event: RowEvent
    new: Dict[str, Any] = field(default_factory=dict)
    old: Dict[str, Any] = field(default_factory=dict)

    @property
    def row(self) -> Dict[str, Any]:
        return self.new if self.event != RowEvent.DELETE else self.old


ChangeCallback = Callable[[RowChange], Awaitable[None]]


class Subscription:
    """Handle returned by RealtimeHub.subscribe; call unsubscribe() on teardown."""

    def __init__(
        self,
        hub: "RealtimeHub",
        sub_id: int,
        table: str,
        event: Optional[RowEvent],
        filters: Dict[str, Any],
        callback: ChangeCallback,
    ):
        self._hub = hub
        self.id = sub_id
        self.table = table
        self.event = event
        self.filters = {key: str(value) for key, value in filters.items()}
        self.callback = callback
        self.active = True

    def matches(self, change: RowChange) -> bool:
        if not self.active or change.table != self.table:
            return False
        if self.event is not None and change.event != self.event:
            return False
        row = change.row
        return all(str(row.get(key)) == value for key, value in self.filters.items())

    def unsubscribe(self) -> None:
        if self.active:
            self.active = False
            self._hub._remove(self.id)

    def __repr__(self):
        return f"<Subscription(id={self.id}, table={self.table}, filters={self.filters})>"


class RealtimeHub:
    def __init__(self):
        self._subscriptions: Dict[int, Subscription] = {}
        self._ids = itertools.count(1)
        self._pending: Set[asyncio.Task] = set()

    def subscribe(
        self,
        table: str,
        callback: ChangeCallback,
        event: Optional[RowEvent] = None,
        filters: Optional[Dict[str, Any]] = None,
    ) -> Subscription:
        """Register a callback for changes on `table` matching every `filters` equality."""
        sub_id = next(self._ids)
        subscription = Subscription(self, sub_id, table, event, filters or {}, callback)
        self._subscriptions[sub_id] = subscription
        logger.debug(f"Realtime subscription added: {subscription}")
        return subscription

    def _remove(self, sub_id: int) -> None:
        removed = self._subscriptions.pop(sub_id, None)
        if removed:
            logger.debug(f"Realtime subscription removed: {removed}")

    @property
    def subscription_count(self) -> int:
        return len(self._subscriptions)

    def publish(
        self,
        table: str,
        event: RowEvent,
        new: Optional[Dict[str, Any]] = None,
        old: Optional[Dict[str, Any]] = None,
    ) -> int:
        """Schedule delivery of a change to matching subscribers. Returns the match count."""
        change = RowChange(table=table, event=event, new=new or {}, old=old or {})
        matched = [sub for sub in list(self._subscriptions.values()) if sub.matches(change)]
        for subscription in matched:
            task = asyncio.get_running_loop().create_task(self._deliver(subscription, change))
            self._pending.add(task)
            task.add_done_callback(self._pending.discard)
        return len(matched)

    async def _deliver(self, subscription: Subscription, change: RowChange) -> None:
        # Unsubscribed between publish and delivery
        if not subscription.active:
            return
        try:
            await subscription.callback(change)
        except Exception:
            logger.exception(f"Realtime callback failed for {subscription} on {change.table} {change.event.value}")

    async def drain(self) -> None:
        """Wait until every scheduled delivery, including ones they trigger, has finished."""
        while self._pending:
            await asyncio.gather(*list(self._pending), return_exceptions=True)


realtime_hub = RealtimeHub()


def get_realtime_hub() -> RealtimeHub:
    """FastAPI dependency returning the process-wide hub."""
    return realtime_hub
