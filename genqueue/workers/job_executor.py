"""Job execution engine: runs one job's work against its deadline."""

import asyncio
import time
from typing import Any, Dict, Set

import structlog

from genqueue.models import Job, JobStatus

logger = structlog.get_logger()


def timeout_message(timeout_seconds: float) -> str:
    return f"timeout after {timeout_seconds:g}s"


def _error_text(exc: BaseException) -> str:
    message = str(exc)
    return message if message else type(exc).__name__


class JobExecutor:
    """Executes work functions, converting every job fault into an outcome."""

    def __init__(self, queue_name: str, timeout_seconds: float):
        """Initialize the job executor."""
        self.queue_name = queue_name
        self.timeout_seconds = timeout_seconds
        # Timed-out work keeps running; hold references until it settles.
        self.detached: Set[asyncio.Task] = set()

    async def execute_job(self, job: Job) -> Dict[str, Any]:
        """Run ``job.work(job.payload)`` racing the timeout.

        Returns a dict with ``status``, ``result``, ``error_message``,
        ``timed_out`` and ``execution_time_ms``. Never raises for failures
        of the work itself.
        """
        start_time = time.monotonic()
        try:
            task = asyncio.ensure_future(job.work(job.payload))
        except Exception as e:
            # The work function failed before producing an awaitable.
            return self._failed(job, _error_text(e), start_time)

        try:
            done, _ = await asyncio.wait({task}, timeout=self.timeout_seconds)
        except asyncio.CancelledError:
            task.cancel()
            raise

        if not done:
            self._detach(job, task)
            execution_time = (time.monotonic() - start_time) * 1000
            logger.warning("Job timed out",
                           queue=self.queue_name,
                           job_id=job.id,
                           timeout_seconds=self.timeout_seconds)
            return {
                "status": JobStatus.FAILED,
                "result": None,
                "error_message": timeout_message(self.timeout_seconds),
                "timed_out": True,
                "execution_time_ms": int(execution_time),
            }

        if task.cancelled():
            return self._failed(job, "work cancelled", start_time)

        exc = task.exception()
        if exc is not None:
            return self._failed(job, _error_text(exc), start_time)

        execution_time = (time.monotonic() - start_time) * 1000
        logger.info("Job executed successfully",
                    queue=self.queue_name,
                    job_id=job.id,
                    execution_time_ms=execution_time)
        return {
            "status": JobStatus.COMPLETED,
            "result": task.result(),
            "error_message": None,
            "timed_out": False,
            "execution_time_ms": int(execution_time),
        }

    def _failed(self, job: Job, error_message: str, start_time: float) -> Dict[str, Any]:
        execution_time = (time.monotonic() - start_time) * 1000
        logger.error("Job execution failed",
                     queue=self.queue_name,
                     job_id=job.id,
                     error=error_message,
                     execution_time_ms=execution_time)
        return {
            "status": JobStatus.FAILED,
            "result": None,
            "error_message": error_message,
            "timed_out": False,
            "execution_time_ms": int(execution_time),
        }

    def _detach(self, job: Job, task: asyncio.Task) -> None:
        self.detached.add(task)

        def _settled(finished: asyncio.Task) -> None:
            self.detached.discard(finished)
            if finished.cancelled():
                return
            exc = finished.exception()
            logger.debug("Discarded late job outcome",
                         queue=self.queue_name,
                         job_id=job.id,
                         error=_error_text(exc) if exc else None)

        task.add_done_callback(_settled)

    async def cancel_detached(self) -> int:
        """Cancel timed-out work that is still running."""
        pending = list(self.detached)
        for task in pending:
            task.cancel()
        if pending:
            await asyncio.gather(*pending, return_exceptions=True)
        return len(pending)
