"""Realtime change feeds over the store's collections.

A subscriber receives an initial :class:`Snapshot` of the collection and
a fresh one after every committed transaction that wrote to it. Handlers
get materialized records, never a connection. Rolled-back transactions
publish nothing.

INVARIANT: A failing handler never breaks the commit or other subscribers.
"""

from __future__ import annotations

import logging
from collections import defaultdict
from collections.abc import Callable, Iterable
from dataclasses import dataclass, field
from typing import Any

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Snapshot:
    """Every record of *collection* as of the last commit."""

    collection: str
    items: list[Any] = field(default_factory=list)


SnapshotHandler = Callable[[Snapshot], None]
SnapshotLoader = Callable[[str], Snapshot]


class Subscription:
    """Cancellable handle returned by :meth:`ChangeFeed.subscribe`."""

    def __init__(self, feed: ChangeFeed, collection: str, handler: SnapshotHandler) -> None:
        self._feed = feed
        self.collection = collection
        self.handler = handler
        self.active = True

    def cancel(self) -> None:
        """Stop delivery. Safe to call more than once."""
        if self.active:
            self.active = False
            self._feed._remove(self)


class ChangeFeed:
    """In-process publisher of per-collection snapshots.

    Parameters:
        loader: Materializes the current snapshot of a collection.
    """

    def __init__(self, loader: SnapshotLoader) -> None:
        self._loader = loader
        self._subscribers: dict[str, list[Subscription]] = defaultdict(list)

    def subscribe(self, collection: str, handler: SnapshotHandler) -> Subscription:
        """Register *handler* and deliver the current snapshot immediately."""
        sub = Subscription(self, collection, handler)
        self._subscribers[collection].append(sub)
        self._deliver(sub, self._loader(collection))
        return sub

    def publish(self, collections: Iterable[str]) -> None:
        """Deliver fresh snapshots for every touched collection with subscribers."""
        for collection in sorted(set(collections)):
            subs = [s for s in self._subscribers.get(collection, []) if s.active]
            if not subs:
                continue
            snapshot = self._loader(collection)
            for sub in subs:
                self._deliver(sub, snapshot)

    def subscriber_count(self, collection: str) -> int:
        return len(self._subscribers.get(collection, []))

    def _deliver(self, sub: Subscription, snapshot: Snapshot) -> None:
        if not sub.active:
            return
        try:
            sub.handler(snapshot)
        except Exception:
            logger.warning(
                "Snapshot handler failed for %s", snapshot.collection, exc_info=True
            )

    def _remove(self, sub: Subscription) -> None:
        subs = self._subscribers.get(sub.collection, [])
        if sub in subs:
            subs.remove(sub)
