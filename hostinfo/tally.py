"""
Running / paused / stopped tally over a live entity collection.

The store may call back from many worker threads at once. Each thread
accumulates into its own counter, registered on first use, and the counters
are summed once the traversal returns. No lock spans the traversal.
"""

from __future__ import annotations

import logging
import threading
from collections import Counter
from typing import List

from .collaborators import Entity, EntityStore
from .model import PAUSED, RUNNING, STOPPED, EntityCounts

logger = logging.getLogger(__name__)


def classify_state(state: str) -> str:
    if state == PAUSED:
        return PAUSED
    if state == RUNNING:
        return RUNNING
    # created, exited, dead, restarting, removing...
    return STOPPED


class StateTally:
    def __init__(self) -> None:
        self._local = threading.local()
        self._partitions: List[Counter] = []

    def _partition(self) -> Counter:
        counter = getattr(self._local, "counter", None)
        if counter is None:
            counter = Counter()
            self._local.counter = counter
            # list.append is atomic, so registration needs no lock.
            self._partitions.append(counter)
        return counter

    def observe(self, entity: Entity) -> None:
        self._partition()[classify_state(entity.state_string())] += 1

    def counts(self) -> EntityCounts:
        total: Counter = Counter()
        for partition in list(self._partitions):
            total.update(partition)
        return EntityCounts(running=total[RUNNING], paused=total[PAUSED], stopped=total[STOPPED])


def tally_entities(store: EntityStore) -> EntityCounts:
    """Classify every entity in ``store``; a failed traversal yields zero counts."""
    tally = StateTally()
    try:
        store.apply_all(tally.observe)
    except Exception as exc:  # noqa: BLE001
        logger.error("Could not count containers: %s", exc)
        return EntityCounts()
    return tally.counts()
