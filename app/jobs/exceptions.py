"""Exceptions raised by the job scheduler."""


class JobSchedulerError(Exception):
    """Base class for scheduler errors."""


class UnknownJobTypeError(JobSchedulerError, ValueError):
    def __init__(self, job_type):
        self.job_type = job_type
        super().__init__(f"Unknown job type: {job_type}")


class ScheduleNotFoundError(JobSchedulerError, LookupError):
    def __init__(self, schedule_id):
        self.schedule_id = schedule_id
        super().__init__(f"Job schedule not found: {schedule_id}")


class JobTimeoutError(JobSchedulerError, TimeoutError):
    def __init__(self, job_type, timeout: float):
        self.job_type = job_type
        self.timeout = timeout
        super().__init__(f"Job '{job_type}' timed out after {timeout:g}s")


class ExecutorResultError(JobSchedulerError, TypeError):
    """An executor returned something other than processed/failed counts."""
