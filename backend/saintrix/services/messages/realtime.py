"""
Realtime Channel

In-process publish/subscribe for row changes. Writers publish after commit;
subscribers receive the inserted record.

    sub = channel.subscribe("messages", "INSERT", on_message)
    ...
    channel.unsubscribe(sub)
"""
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List
from uuid import uuid4
import logging
import threading

logger = logging.getLogger(__name__)

ANY_EVENT = "*"


@dataclass
class Subscription:
    """Handle returned by subscribe(); pass it back to unsubscribe()."""
    table: str
    event: str
    callback: Callable[[Dict[str, Any]], None]
    id: str = field(default_factory=lambda: str(uuid4()))


class RealtimeChannel:
    """Manages change-event delivery to subscribers."""

    def __init__(self):
        self._subscriptions: Dict[str, Subscription] = {}
        self._lock = threading.Lock()

    def subscribe(self, table: str, event: str, callback: Callable[[Dict[str, Any]], None]) -> Subscription:
        sub = Subscription(table=table, event=event.upper(), callback=callback)
        with self._lock:
            self._subscriptions[sub.id] = sub
        logger.debug(f"Subscribed {sub.id} to {sub.event} on {table}")
        return sub

    def unsubscribe(self, subscription: Subscription) -> bool:
        """Release a subscription. Returns False if it was already released."""
        with self._lock:
            return self._subscriptions.pop(subscription.id, None) is not None

    def subscriber_count(self) -> int:
        with self._lock:
            return len(self._subscriptions)

    def publish(self, table: str, event: str, record: Dict[str, Any]) -> int:
        """Deliver `record` to matching subscribers; returns how many were called."""
        event = event.upper()
        with self._lock:
            targets: List[Subscription] = [
                s for s in self._subscriptions.values()
                if s.table == table and s.event in (event, ANY_EVENT)
            ]

        delivered = 0
        for sub in targets:
            try:
                sub.callback(record)
            except Exception as e:
                logger.warning(f"Subscriber {sub.id} failed on {event} {table}: {e}")
                continue
            delivered += 1
        return delivered


_channel: RealtimeChannel = None


def get_channel() -> RealtimeChannel:
    """Get or create the process-wide channel."""
    global _channel
    if _channel is None:
        _channel = RealtimeChannel()
    return _channel
