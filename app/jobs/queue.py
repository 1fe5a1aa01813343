"""
Priority Work Queue

In-memory, unbounded heap of QueueItems keyed by
(-priority_rank, insertion_sequence):

- higher priority is dispatched first
- equal priority is first-in-first-out
- a re-queued item gets a fresh sequence number, i.e. goes to the back
  of its priority class

At most one item is in flight at a time; pop() refuses to hand out a
second item until the first is finished or re-queued.
"""

import heapq
import itertools
import threading
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Tuple

from app.jobs.definitions import (
    JobType, JobPriority, JobSource, QueueItemStatus, PRIORITY_RANK,
)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass
class QueueItem:
    job_type: JobType
    priority: JobPriority
    source: JobSource
    max_retries: int
    id: str = field(default_factory=lambda: uuid.uuid4().hex)
    status: QueueItemStatus = QueueItemStatus.QUEUED
    retry_count: int = 0
    created_at: datetime = field(default_factory=_utcnow)
    started_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None
    error: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "job_type": self.job_type.value,
            "priority": self.priority.value,
            "source": self.source.value,
            "status": self.status.value,
            "retry_count": self.retry_count,
            "max_retries": self.max_retries,
            "created_at": self.created_at,
            "started_at": self.started_at,
            "completed_at": self.completed_at,
            "error": self.error,
        }


class PriorityJobQueue:
    """Thread-safe priority heap with a single in-flight slot."""

    def __init__(self):
        self._heap: List[Tuple[int, int, QueueItem]] = []
        self._sequence = itertools.count()
        self._in_flight: Optional[QueueItem] = None
        self._lock = threading.Lock()

    def __len__(self) -> int:
        with self._lock:
            return len(self._heap)

    @property
    def in_flight(self) -> Optional[QueueItem]:
        return self._in_flight

    def push(self, item: QueueItem) -> QueueItem:
        with self._lock:
            self._push_locked(item)
        return item

    def _push_locked(self, item: QueueItem) -> None:
        item.status = QueueItemStatus.QUEUED
        heapq.heappush(
            self._heap,
            (-PRIORITY_RANK[item.priority], next(self._sequence), item),
        )

    def pop(self) -> Optional[QueueItem]:
        """Take the highest-priority item and mark it processing."""
        with self._lock:
            if self._in_flight is not None:
                raise RuntimeError(
                    f"Queue item {self._in_flight.id} is still processing"
                )
            if not self._heap:
                return None
            _, _, item = heapq.heappop(self._heap)
            item.status = QueueItemStatus.PROCESSING
            item.started_at = _utcnow()
            self._in_flight = item
            return item

    def requeue(self, item: QueueItem) -> None:
        """Return the in-flight item to the back of its priority class."""
        with self._lock:
            if self._in_flight is item:
                self._in_flight = None
            self._push_locked(item)

    def finish(self, item: QueueItem) -> None:
        """Release the in-flight slot; the item is dropped from the queue."""
        with self._lock:
            if self._in_flight is item:
                self._in_flight = None
            item.completed_at = _utcnow()

    def has_queued(self, job_type: JobType) -> bool:
        with self._lock:
            return any(entry[2].job_type == job_type for entry in self._heap)

    def pending(self) -> List[QueueItem]:
        """Queued items in dispatch order."""
        with self._lock:
            return [entry[2] for entry in sorted(self._heap, key=lambda e: (e[0], e[1]))]

    def clear(self) -> int:
        with self._lock:
            dropped = len(self._heap)
            self._heap.clear()
            self._in_flight = None
            return dropped
