"""Job model and lifecycle tracking."""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Awaitable, Callable, Optional, Protocol, Union, runtime_checkable


class JobStatus(str, Enum):
    """Job status enumeration."""
    QUEUED = "queued"
    PROCESSING = "processing"
    COMPLETED = "completed"
    FAILED = "failed"
    CANCELLED = "cancelled"

    @property
    def is_terminal(self) -> bool:
        return self in TERMINAL_STATUSES


TERMINAL_STATUSES = frozenset({JobStatus.COMPLETED, JobStatus.FAILED, JobStatus.CANCELLED})


@runtime_checkable
class Processor(Protocol):
    """Work unit exposing a single ``execute`` coroutine."""

    async def execute(self, payload: Any) -> Any:
        ...


WorkFn = Callable[[Any], Awaitable[Any]]
Work = Union[WorkFn, Processor]


class InvalidTransitionError(Exception):
    """Raised when a job is moved to a status its current status cannot reach."""

    def __init__(self, job_id: str, current: JobStatus, target: JobStatus):
        super().__init__(f"Job {job_id} cannot move from {current.value} to {target.value}")
        self.job_id = job_id
        self.current = current
        self.target = target


def resolve_work(work: Work) -> WorkFn:
    """Normalize a work function or processor into a plain callable."""
    if callable(work):
        return work
    if isinstance(work, Processor):
        return work.execute
    raise TypeError(f"work must be callable or expose execute(), got {type(work).__name__}")


@dataclass(eq=False)
class Job:
    """A unit of work and its lifecycle state."""

    id: str
    payload: Any
    work: WorkFn = field(repr=False)
    created_at: float
    owner: Optional[str] = None
    status: JobStatus = JobStatus.QUEUED

    # Timestamps
    started_at: Optional[float] = None
    completed_at: Optional[float] = None

    # Results
    result: Any = None
    error: Optional[str] = None
    timed_out: bool = False

    def _transition(self, target: JobStatus, allowed_from: JobStatus) -> None:
        if self.status is not allowed_from:
            raise InvalidTransitionError(self.id, self.status, target)
        self.status = target

    def mark_processing(self, now: float) -> None:
        self._transition(JobStatus.PROCESSING, JobStatus.QUEUED)
        self.started_at = max(now, self.created_at)

    def mark_completed(self, result: Any, now: float) -> None:
        self._transition(JobStatus.COMPLETED, JobStatus.PROCESSING)
        self.result = result
        self.completed_at = max(now, self.started_at)

    def mark_failed(self, error: str, now: float, timed_out: bool = False) -> None:
        self._transition(JobStatus.FAILED, JobStatus.PROCESSING)
        self.error = error
        self.timed_out = timed_out
        self.completed_at = max(now, self.started_at)

    def mark_cancelled(self, now: float) -> None:
        self._transition(JobStatus.CANCELLED, JobStatus.QUEUED)
        self.completed_at = max(now, self.created_at)

    @property
    def is_terminal(self) -> bool:
        return self.status.is_terminal

    @property
    def processing_time(self) -> Optional[float]:
        """Seconds between start and completion, if both happened."""
        if self.started_at is None or self.completed_at is None:
            return None
        return self.completed_at - self.started_at
