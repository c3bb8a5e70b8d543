"""Daily usage limits persisted per browser."""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Callable

from models import QuotaRecord
from quota_store import KeyValueStore, StorageError


__all__ = [
    "PLANTS_KEY",
    "QUESTIONS_KEY",
    "QuotaCounter",
    "QuotaTracker",
    "day_identifier",
]

logger = logging.getLogger(__name__)

QUESTIONS_KEY = "avo_daily_questions"
PLANTS_KEY = "avo_daily_plants"
DEFAULT_QUESTION_LIMIT = 5
DEFAULT_PLANT_LIMIT = 3


def day_identifier(moment: datetime) -> str:
    """Return the local calendar day as an opaque string, e.g. ``Mon Oct 19 2026``."""

    return moment.strftime("%a %b %d %Y")


def _epoch_millis(moment: datetime) -> int:
    return int(moment.timestamp() * 1000)


@dataclass
class QuotaCounter:
    """A single daily-limited action backed by one storage key.

    Stale, missing or corrupted records read as a fresh zero record for today;
    the reset is not written back until the next increment. Concurrent
    browser tabs may lose an increment because reads and writes are not
    locked.
    """

    store: KeyValueStore
    key: str
    limit: int
    clock: Callable[[], datetime] = field(default=datetime.now)

    def _fresh(self, now: datetime) -> QuotaRecord:
        return QuotaRecord(count=0, date=day_identifier(now), last_update=_epoch_millis(now))

    def peek(self) -> QuotaRecord:
        now = self.clock()
        try:
            stored = self.store.get(self.key)
        except (StorageError, OSError, ValueError) as exc:
            logger.warning("Could not read %s, resetting counter: %s", self.key, exc)
            return self._fresh(now)
        if not stored:
            return self._fresh(now)
        try:
            record = QuotaRecord.from_dict(json.loads(stored))
        except ValueError as exc:
            logger.warning("Invalid data under %s, resetting counter: %s", self.key, exc)
            return self._fresh(now)
        if record.date != day_identifier(now):
            return self._fresh(now)
        if not 0 <= record.count <= self.limit:
            logger.warning("Invalid count %s under %s, resetting counter", record.count, self.key)
            return self._fresh(now)
        return record

    def remaining(self) -> int:
        return max(0, self.limit - self.peek().count)

    def has_reached_limit(self) -> bool:
        return self.peek().count >= self.limit

    def increment(self) -> int:
        """Record one use and return how many remain today.

        A failed write reports ``0`` so callers block further use rather than
        granting it.
        """

        current = self.peek()
        new_count = min(current.count + 1, self.limit)
        now = self.clock()
        record = QuotaRecord(count=new_count, date=day_identifier(now), last_update=_epoch_millis(now))
        try:
            self.store.set(self.key, json.dumps(record.asdict()))
        except (StorageError, OSError, TypeError, ValueError):
            logger.exception("Could not persist %s", self.key)
            return 0
        return max(0, self.limit - new_count)


@dataclass
class QuotaTracker:
    """The two independent counters consulted by the chat surface."""

    questions: QuotaCounter
    plants: QuotaCounter

    @classmethod
    def create(
        cls,
        store: KeyValueStore,
        *,
        question_limit: int = DEFAULT_QUESTION_LIMIT,
        plant_limit: int = DEFAULT_PLANT_LIMIT,
        clock: Callable[[], datetime] = datetime.now,
    ) -> "QuotaTracker":
        return cls(
            questions=QuotaCounter(store, QUESTIONS_KEY, question_limit, clock),
            plants=QuotaCounter(store, PLANTS_KEY, plant_limit, clock),
        )
