"""Push-based roster snapshots for reactive consumers."""

from __future__ import annotations

import asyncio
import logging
from typing import AsyncIterator, Callable, List, Sequence

from teamroster.models import PlayerRecord


logger = logging.getLogger(__name__)

Snapshot = List[PlayerRecord]
SnapshotCallback = Callable[[Snapshot], None]


def _offer_latest(queue: "asyncio.Queue[Snapshot]", snapshot: Snapshot) -> None:
    # Only the newest snapshot matters; drop one the consumer has not read yet.
    if queue.full():
        try:
            queue.get_nowait()
        except asyncio.QueueEmpty:
            pass
    queue.put_nowait(snapshot)


class RosterFeed:
    """Deliver full-roster snapshots to subscribers whenever the store changes.

    Each emission is a complete replacement of the previous snapshot.
    Callback subscribers receive the current snapshot immediately on
    subscription; ``snapshots()`` offers the same stream as an async iterator.
    """

    def __init__(self, loader: Callable[[], Sequence[PlayerRecord]]):
        self._loader = loader
        self._callbacks: list[SnapshotCallback] = []
        self._queues: set[asyncio.Queue[Snapshot]] = set()
        self._version = 0

    @property
    def version(self) -> int:
        return self._version

    @property
    def subscriber_count(self) -> int:
        return len(self._callbacks) + len(self._queues)

    def current(self) -> Snapshot:
        return list(self._loader())

    def subscribe(self, callback: SnapshotCallback) -> Callable[[], None]:
        self._callbacks.append(callback)
        callback(self.current())

        def unsubscribe() -> None:
            if callback in self._callbacks:
                self._callbacks.remove(callback)

        return unsubscribe

    def publish(self, snapshot: Sequence[PlayerRecord] | None = None) -> None:
        players = list(snapshot) if snapshot is not None else self.current()
        self._version += 1
        for callback in list(self._callbacks):
            try:
                callback(list(players))
            except Exception:  # pragma: no cover - subscriber errors are logged only
                logger.exception("Roster subscriber %r failed on snapshot %d", callback, self._version)
        for queue in list(self._queues):
            _offer_latest(queue, list(players))

    async def snapshots(self) -> AsyncIterator[Snapshot]:
        """Yield the current roster, then every later snapshot, forever.

        Iterating again starts a fresh stream from the current roster.
        """

        queue: asyncio.Queue[Snapshot] = asyncio.Queue(maxsize=1)
        self._queues.add(queue)
        try:
            yield self.current()
            while True:
                yield await queue.get()
        finally:
            self._queues.discard(queue)
