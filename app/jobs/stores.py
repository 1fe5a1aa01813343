"""
Schedule and Run-History Stores

SQLAlchemy-backed collaborators the scheduler reads and writes:

- SqlScheduleStore: durable JobSchedule rows, with an atomic batch
  primitive used by seeding, reset and duplicate cleanup.
- SqlRunHistoryStore: append-only JobRun audit rows.

Each method opens its own short-lived session; nothing is held across
executor calls.
"""

import logging
import uuid
from datetime import datetime, timezone
from typing import Any, Dict, Iterable, List, Optional, Protocol, Sequence, Tuple, Union

from sqlalchemy import select, delete
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from app.models.job import JobSchedule, JobRun

logger = logging.getLogger(__name__)

ScheduleId = Union[str, uuid.UUID]


def _as_uuid(value: ScheduleId) -> Optional[uuid.UUID]:
    if isinstance(value, uuid.UUID):
        return value
    try:
        return uuid.UUID(str(value))
    except (ValueError, TypeError, AttributeError):
        return None


class ScheduleStore(Protocol):
    async def list(self) -> List[JobSchedule]: ...
    async def list_by_type(self, job_type: str) -> List[JobSchedule]: ...
    async def get(self, schedule_id: ScheduleId) -> Optional[JobSchedule]: ...
    async def insert(self, values: Dict[str, Any]) -> JobSchedule: ...
    async def update(self, schedule_id: ScheduleId, values: Dict[str, Any]) -> Optional[JobSchedule]: ...
    async def delete(self, schedule_id: ScheduleId) -> bool: ...
    async def apply_batch(
        self,
        inserts: Iterable[Dict[str, Any]] = (),
        updates: Iterable[Tuple[ScheduleId, Dict[str, Any]]] = (),
        deletes: Iterable[ScheduleId] = (),
    ) -> None: ...


class RunHistoryStore(Protocol):
    async def append(self, values: Dict[str, Any]) -> uuid.UUID: ...
    async def patch(self, record_id: uuid.UUID, values: Dict[str, Any]) -> None: ...
    async def query(self, limit: int = 50) -> List[JobRun]: ...
    async def for_queue_item(self, queue_item_id: str) -> Sequence[JobRun]: ...


class SqlScheduleStore:
    """JobSchedule persistence on an async SQLAlchemy session factory."""

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]):
        self._session_factory = session_factory

    async def list(self) -> List[JobSchedule]:
        """All schedules in store order (creation time, then id)."""
        async with self._session_factory() as session:
            result = await session.execute(
                select(JobSchedule).order_by(JobSchedule.created_at, JobSchedule.id)
            )
            return list(result.scalars().all())

    async def list_by_type(self, job_type: str) -> List[JobSchedule]:
        async with self._session_factory() as session:
            result = await session.execute(
                select(JobSchedule)
                .where(JobSchedule.job_type == job_type)
                .order_by(JobSchedule.created_at, JobSchedule.id)
            )
            return list(result.scalars().all())

    async def get(self, schedule_id: ScheduleId) -> Optional[JobSchedule]:
        key = _as_uuid(schedule_id)
        if key is None:
            return None
        async with self._session_factory() as session:
            return await session.get(JobSchedule, key)

    async def insert(self, values: Dict[str, Any]) -> JobSchedule:
        async with self._session_factory() as session:
            schedule = JobSchedule(**values)
            session.add(schedule)
            await session.commit()
            return schedule

    async def update(self, schedule_id: ScheduleId, values: Dict[str, Any]) -> Optional[JobSchedule]:
        key = _as_uuid(schedule_id)
        if key is None:
            return None
        async with self._session_factory() as session:
            schedule = await session.get(JobSchedule, key)
            if schedule is None:
                return None
            for field, value in values.items():
                setattr(schedule, field, value)
            schedule.updated_at = datetime.now(timezone.utc)
            await session.commit()
            return schedule

    async def delete(self, schedule_id: ScheduleId) -> bool:
        key = _as_uuid(schedule_id)
        if key is None:
            return False
        async with self._session_factory() as session:
            result = await session.execute(delete(JobSchedule).where(JobSchedule.id == key))
            await session.commit()
            return result.rowcount > 0

    async def apply_batch(
        self,
        inserts: Iterable[Dict[str, Any]] = (),
        updates: Iterable[Tuple[ScheduleId, Dict[str, Any]]] = (),
        deletes: Iterable[ScheduleId] = (),
    ) -> None:
        """Apply inserts, updates and deletes in a single transaction."""
        now = datetime.now(timezone.utc)
        async with self._session_factory() as session:
            async with session.begin():
                for values in inserts:
                    session.add(JobSchedule(**values))

                for schedule_id, values in updates:
                    schedule = await session.get(JobSchedule, _as_uuid(schedule_id))
                    if schedule is None:
                        raise LookupError(f"Job schedule vanished during batch: {schedule_id}")
                    for field, value in values.items():
                        setattr(schedule, field, value)
                    schedule.updated_at = now

                delete_ids = [_as_uuid(schedule_id) for schedule_id in deletes]
                if delete_ids:
                    await session.execute(delete(JobSchedule).where(JobSchedule.id.in_(delete_ids)))


class SqlRunHistoryStore:
    """Append-only JobRun persistence."""

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]):
        self._session_factory = session_factory

    async def append(self, values: Dict[str, Any]) -> uuid.UUID:
        async with self._session_factory() as session:
            record = JobRun(**values)
            session.add(record)
            await session.commit()
            return record.id

    async def patch(self, record_id: uuid.UUID, values: Dict[str, Any]) -> None:
        async with self._session_factory() as session:
            record = await session.get(JobRun, record_id)
            if record is None:
                logger.warning(f"Run record {record_id} not found; patch dropped")
                return
            if record.status in ("completed", "failed"):
                logger.warning(f"Run record {record_id} already terminal ({record.status}); patch dropped")
                return
            for field, value in values.items():
                setattr(record, field, value)
            await session.commit()

    async def query(self, limit: int = 50) -> List[JobRun]:
        """Most recent records first."""
        async with self._session_factory() as session:
            result = await session.execute(
                select(JobRun).order_by(JobRun.created_at.desc()).limit(limit)
            )
            return list(result.scalars().all())

    async def for_queue_item(self, queue_item_id: str) -> Sequence[JobRun]:
        async with self._session_factory() as session:
            result = await session.execute(
                select(JobRun)
                .where(JobRun.queue_item_id == queue_item_id)
                .order_by(JobRun.created_at)
            )
            return list(result.scalars().all())
