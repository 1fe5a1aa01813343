"""
Shared fixtures for scheduler tests.

Every test gets its own SQLite database file; executors are in-process
fakes that record the order in which job types were run.
"""
import pytest

from app.database import build_engine, build_session_factory, init_db
from app.jobs.definitions import JobType
from app.jobs.queue import PriorityJobQueue
from app.jobs.processor import QueueProcessor
from app.jobs.scheduler import JobScheduler, create_apscheduler
from app.jobs.stores import SqlScheduleStore, SqlRunHistoryStore

from tests.helpers import RecordingExecutors


@pytest.fixture
async def engine(tmp_path):
    engine = build_engine(f"sqlite+aiosqlite:///{tmp_path / 'jobs.db'}")
    await init_db(engine)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(engine):
    return build_session_factory(engine)


@pytest.fixture
def schedule_store(session_factory):
    return SqlScheduleStore(session_factory)


@pytest.fixture
def run_store(session_factory):
    return SqlRunHistoryStore(session_factory)


@pytest.fixture
def executors():
    return RecordingExecutors()


@pytest.fixture
def queue():
    return PriorityJobQueue()


@pytest.fixture
def processor(queue, executors, run_store, schedule_store):
    return QueueProcessor(
        queue,
        executors.registry,
        run_store,
        schedule_store,
        execution_timeout=5,
    )


@pytest.fixture
async def aps_scheduler():
    scheduler = create_apscheduler("UTC")
    scheduler.start()
    yield scheduler
    if scheduler.running:
        scheduler.shutdown(wait=False)


@pytest.fixture
async def job_scheduler(session_factory, executors, aps_scheduler):
    scheduler = JobScheduler(
        session_factory=session_factory,
        executors=executors.registry,
        scheduler=aps_scheduler,
        default_active_type=JobType.CUSTOMER_SYNC,
        execution_timeout=5,
        kick_interval_seconds=30,
    )
    yield scheduler
    await scheduler.destroy()
