"""In-process single-worker job queue."""

import asyncio
import time
import uuid
from collections import deque
from typing import Any, Callable, Deque, Dict, List, Optional

import structlog

from genqueue.config import QueueConfig
from genqueue.models import Job, JobStatus, Work, resolve_work
from genqueue.monitoring.metrics import MetricsCollector, metrics as default_metrics
from genqueue.reporter import StatusReporter
from genqueue.schemas import CurrentJob, OwnerJob, QueueStats, StatusView, SubmissionResult
from genqueue.workers.job_executor import JobExecutor

logger = structlog.get_logger()

STOPPED_ERROR = "queue stopped"


class JobQueue:
    """Bounded single-worker asynchronous job queue for one work category.

    Jobs start strictly in submission order, one at a time. ``submit``,
    ``status``, ``cancel`` and ``stats`` never await, so on a single event
    loop they cannot interleave with the worker's dequeue step and no lock
    is needed. Guard them with a mutex before driving the queue from threads.
    """

    def __init__(
        self,
        config: QueueConfig,
        clock: Callable[[], float] = time.time,
        metrics: Optional[MetricsCollector] = None,
    ):
        """Initialize an idle queue."""
        self.config = config
        self.name = config.name
        self.clock = clock
        self.metrics = metrics or default_metrics
        self.executor = JobExecutor(config.name, config.timeout_seconds)
        self.reporter = StatusReporter(self)

        self._backlog: Deque[Job] = deque()
        self._jobs: Dict[str, Job] = {}
        self._current: Optional[Job] = None
        self._worker: Optional[asyncio.Task] = None
        self._sweeper: Optional[asyncio.Task] = None

    # Read-side accessors used by the reporter

    def get_job(self, job_id: str) -> Optional[Job]:
        return self._jobs.get(job_id)

    def backlog_position(self, job_id: str) -> int:
        """1-based backlog position of a job, 0 if it is not waiting."""
        for index, job in enumerate(self._backlog):
            if job.id == job_id:
                return index + 1
        return 0

    @property
    def queue_length(self) -> int:
        return len(self._backlog)

    @property
    def current_job(self) -> Optional[Job]:
        return self._current

    @property
    def is_processing(self) -> bool:
        """Whether the worker task is active."""
        return self._worker is not None and not self._worker.done()

    # Operations

    def submit(
        self,
        job_id: Optional[str],
        payload: Any,
        work: Work,
        owner: Optional[str] = None,
    ) -> SubmissionResult:
        """Add a job to the end of the backlog.

        Submitting an id that is still live returns that job's current
        standing and discards the new payload and work.
        """
        if job_id is not None:
            existing = self._jobs.get(job_id)
            if existing is not None:
                logger.info("Duplicate submission", queue=self.name, job_id=job_id,
                            status=existing.status.value)
                if self._backlog:
                    # Jobs left waiting by stop() resume here too.
                    self._ensure_running(asyncio.get_running_loop())
                return self.reporter.submission(existing, created=False)
        else:
            job_id = uuid.uuid4().hex

        work_fn = resolve_work(work)
        # Fails fast (RuntimeError) when called outside a running loop.
        loop = asyncio.get_running_loop()

        job = Job(id=job_id, payload=payload, work=work_fn, created_at=self.clock(), owner=owner)
        self._jobs[job_id] = job
        self._backlog.append(job)

        self.metrics.record_job_submitted(self.name)
        self.metrics.update_backlog_size(self.name, len(self._backlog))
        logger.info("Job enqueued", queue=self.name, job_id=job_id, owner=owner,
                    position=len(self._backlog))

        self._ensure_running(loop)
        return self.reporter.submission(job, created=True)

    def status(self, job_id: str) -> StatusView:
        """Get the client-facing status of a job."""
        return self.reporter.status(job_id)

    def cancel(self, job_id: str) -> bool:
        """Cancel a job that is still waiting in the backlog."""
        job = self._jobs.get(job_id)
        if job is None or job.status is not JobStatus.QUEUED:
            return False

        self._backlog.remove(job)
        job.mark_cancelled(self.clock())

        self.metrics.record_job_finished(self.name, JobStatus.CANCELLED.value)
        self.metrics.update_backlog_size(self.name, len(self._backlog))
        logger.info("Job cancelled", queue=self.name, job_id=job_id)
        return True

    def stats(self) -> QueueStats:
        """Get queue statistics."""
        counts = {status: 0 for status in JobStatus}
        for job in self._jobs.values():
            counts[job.status] += 1

        current = None
        if self._current is not None:
            current = CurrentJob(
                job_id=self._current.id,
                owner=self._current.owner,
                started_at=self._current.started_at,
                elapsed_time=max(0.0, self.clock() - self._current.started_at),
            )

        return QueueStats(
            name=self.name,
            queue_length=len(self._backlog),
            processing=self.is_processing,
            current_job=current,
            completed_count=counts[JobStatus.COMPLETED],
            failed_count=counts[JobStatus.FAILED],
            cancelled_count=counts[JobStatus.CANCELLED],
            total_in_queue=len(self._backlog) + (1 if self._current is not None else 0),
        )

    def jobs_for_owner(self, owner: str) -> List[OwnerJob]:
        """Active jobs of one owner: the running one first, then queued ones."""
        jobs = []
        if self._current is not None and self._current.owner == owner:
            jobs.append(OwnerJob(job_id=self._current.id, status=JobStatus.PROCESSING.value, position=0))
        for index, job in enumerate(self._backlog):
            if job.owner == owner:
                jobs.append(OwnerJob(job_id=job.id, status=JobStatus.QUEUED.value, position=index + 1))
        return jobs

    def cleanup(self, now: Optional[float] = None) -> int:
        """Evict finished jobs past the retention window or beyond the cap."""
        now = self.clock() if now is None else now
        cutoff = now - self.config.retention_seconds

        finished = [job for job in self._jobs.values() if job.is_terminal]
        expired = [job for job in finished if job.completed_at <= cutoff]

        cap = self.config.max_retained_jobs
        if cap is not None:
            kept = sorted(
                (job for job in finished if job.completed_at > cutoff),
                key=lambda job: job.completed_at,
                reverse=True,
            )
            expired.extend(kept[cap:])

        for job in expired:
            del self._jobs[job.id]

        if expired:
            logger.info("Evicted finished jobs", queue=self.name, count=len(expired))
        return len(expired)

    def clear_history(self) -> int:
        """Drop every finished job record right away."""
        finished = [job_id for job_id, job in self._jobs.items() if job.is_terminal]
        for job_id in finished:
            del self._jobs[job_id]
        logger.info("History cleared", queue=self.name, count=len(finished))
        return len(finished)

    # Worker

    def _ensure_running(self, loop: asyncio.AbstractEventLoop):
        """Start the worker while jobs are waiting, and the sweeper."""
        if self._backlog and not self.is_processing:
            self._worker = loop.create_task(self._run(), name=f"genqueue-worker-{self.name}")
        self.start()

    async def _run(self):
        """Drain the backlog one job at a time."""
        try:
            while self._backlog:
                job = self._backlog.popleft()
                self.metrics.update_backlog_size(self.name, len(self._backlog))
                await self._process_job(job)

                if self.config.inter_job_delay_seconds:
                    await asyncio.sleep(self.config.inter_job_delay_seconds)
        except asyncio.CancelledError:
            if self._current is not None:
                self._current.mark_failed(STOPPED_ERROR, self.clock())
                self.metrics.record_job_finished(self.name, JobStatus.FAILED.value)
            logger.warning("Worker stopped", queue=self.name, queued=len(self._backlog))
            raise
        finally:
            self._current = None

        logger.info("Queue is empty", queue=self.name)

    async def _process_job(self, job: Job):
        job.mark_processing(self.clock())
        self._current = job
        logger.info("Processing job", queue=self.name, job_id=job.id, remaining=len(self._backlog))

        outcome = await self.executor.execute_job(job)

        now = self.clock()
        if outcome["status"] == JobStatus.COMPLETED:
            job.mark_completed(outcome["result"], now)
            logger.info("Job completed", queue=self.name, job_id=job.id,
                        processing_time=job.processing_time)
        else:
            job.mark_failed(outcome["error_message"], now, timed_out=outcome["timed_out"])
            if outcome["timed_out"]:
                self.metrics.record_job_timeout(self.name)
            logger.error("Job failed", queue=self.name, job_id=job.id, error=job.error,
                         timed_out=job.timed_out)

        self.metrics.record_job_finished(self.name, job.status.value,
                                         outcome["execution_time_ms"] / 1000)
        self._current = None

    async def join(self):
        """Wait until the backlog is drained and the worker is idle."""
        while self.is_processing:
            await asyncio.wait({self._worker})

    # Background sweeper

    async def _sweep(self):
        while True:
            await asyncio.sleep(self.config.cleanup_interval_seconds)
            self.cleanup()

    def start(self):
        """Start the periodic cleanup of finished jobs.

        ``submit`` calls this as well, so a queue used without ``start()``
        still evicts. After ``stop()`` the next submission restarts it.
        """
        if self._sweeper is None or self._sweeper.done():
            self._sweeper = asyncio.get_running_loop().create_task(
                self._sweep(), name=f"genqueue-sweeper-{self.name}"
            )
            logger.info("Queue started", queue=self.name)

    async def stop(self):
        """Stop the sweeper and the worker; queued jobs stay queued."""
        tasks = [task for task in (self._sweeper, self._worker) if task is not None and not task.done()]
        for task in tasks:
            task.cancel()
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)
        self._sweeper = None
        self._worker = None

        abandoned = await self.executor.cancel_detached()
        logger.info("Queue stopped", queue=self.name, abandoned_work=abandoned)

    async def __aenter__(self):
        self.start()
        return self

    async def __aexit__(self, *exc_info):
        await self.stop()
