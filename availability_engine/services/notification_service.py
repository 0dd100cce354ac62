"""Per-property subscription registry with isolated synchronous fan-out."""

from __future__ import annotations

from collections import defaultdict, deque
from dataclasses import dataclass
from threading import Lock
from typing import Callable

from availability_engine.domain.models import PropertySnapshot
from availability_engine.utils.logger import get_logger


logger = get_logger(__name__)

SnapshotCallback = Callable[[PropertySnapshot], None]
Unsubscribe = Callable[[], None]


@dataclass(eq=False)
class _Subscription:
    property_id: str
    callback: SnapshotCallback


class NotificationHub:
    """Delivers value snapshots to subscribers in subscription order.

    Writers `enqueue` a snapshot while they still hold their property's
    mutation lock, so the per-property queue is in commit order. After the
    lock is released they call `drain`. Only one thread drains a property at
    a time; a writer that finds a drain in progress returns immediately and
    its snapshot is delivered by the draining thread. Nothing in here blocks
    a writer on a subscriber.
    """

    def __init__(self) -> None:
        self._subscriptions: dict[str, list[_Subscription]] = defaultdict(list)
        self._registry_lock = Lock()
        self._pending: dict[str, deque[PropertySnapshot]] = defaultdict(deque)
        self._draining: set[str] = set()

    def subscribe(self, property_id: str, callback: SnapshotCallback) -> Unsubscribe:
        subscription = _Subscription(property_id=property_id, callback=callback)
        with self._registry_lock:
            self._subscriptions[property_id].append(subscription)

        def unsubscribe() -> None:
            with self._registry_lock:
                current = self._subscriptions.get(property_id, [])
                if subscription in current:
                    current.remove(subscription)

        return unsubscribe

    def subscriber_count(self, property_id: str) -> int:
        with self._registry_lock:
            return len(self._subscriptions.get(property_id, []))

    def pending_count(self, property_id: str) -> int:
        with self._registry_lock:
            return len(self._pending.get(property_id, ()))

    def enqueue(self, snapshot: PropertySnapshot) -> None:
        with self._registry_lock:
            self._pending[snapshot.property_id].append(snapshot)

    def drain(self, property_id: str) -> int:
        """Deliver queued snapshots for `property_id` unless another thread already is."""
        with self._registry_lock:
            if property_id in self._draining:
                return 0
            self._draining.add(property_id)

        delivered = 0
        try:
            while True:
                with self._registry_lock:
                    queue = self._pending.get(property_id)
                    if not queue:
                        # Cleared under the same lock as the emptiness check, so a
                        # snapshot enqueued after this point finds no drainer.
                        self._draining.discard(property_id)
                        return delivered
                    snapshot = queue.popleft()
                delivered += self.publish(snapshot)
        except BaseException:
            with self._registry_lock:
                self._draining.discard(property_id)
            raise

    def publish(self, snapshot: PropertySnapshot) -> int:
        """Invoke every callback for the snapshot's property; return successful deliveries."""
        with self._registry_lock:
            targets = list(self._subscriptions.get(snapshot.property_id, []))

        delivered = 0
        for subscription in targets:
            try:
                subscription.callback(snapshot)
            except Exception:
                logger.exception(
                    "Availability subscriber failed | property_id=%s | version=%s",
                    snapshot.property_id,
                    snapshot.version,
                )
                continue
            delivered += 1
        return delivered
