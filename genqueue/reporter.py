"""Read-side status derivation for a job queue."""

from typing import TYPE_CHECKING

from genqueue.models import Job, JobStatus
from genqueue.schemas import StatusView, SubmissionResult

if TYPE_CHECKING:
    from genqueue.queue import JobQueue


class StatusReporter:
    """Derives positions, ETAs and status payloads from a queue's tables.

    Never mutates the queue. ETA is deliberately the linear estimate
    ``position * average_job_seconds``; it does not learn from observed
    durations.
    """

    def __init__(self, queue: "JobQueue"):
        self.queue = queue

    def position(self, job_id: str) -> int:
        return self.queue.backlog_position(job_id)

    def estimated_wait(self, position: int) -> float:
        return position * self.queue.config.average_job_seconds

    def submission(self, job: Job, created: bool) -> SubmissionResult:
        position = self.position(job.id)
        if created:
            message = "Job added to queue successfully"
        elif job.status is JobStatus.QUEUED:
            message = "Job already in queue"
        elif job.status is JobStatus.PROCESSING:
            message = "Job is currently being processed"
        else:
            message = f"Job already {job.status.value}"
        return SubmissionResult(
            job_id=job.id,
            status=job.status.value,
            position=position,
            queue_length=self.queue.queue_length,
            estimated_wait_time=self.estimated_wait(position),
            created=created,
            message=message,
        )

    def status(self, job_id: str) -> StatusView:
        job = self.queue.get_job(job_id)
        if job is None:
            return StatusView(
                job_id=job_id,
                status="not_found",
                message="Job not found. It may have expired or never existed.",
            )

        view = StatusView(
            job_id=job.id,
            status=job.status.value,
            message="",
            created_at=job.created_at,
        )

        if job.status is JobStatus.QUEUED:
            position = self.position(job.id)
            view.position = position
            view.queue_length = self.queue.queue_length
            view.estimated_wait_time = self.estimated_wait(position)
            view.message = f"Job is in queue. Position: {position}"
        elif job.status is JobStatus.PROCESSING:
            view.position = 0
            view.queue_length = self.queue.queue_length
            view.started_at = job.started_at
            view.elapsed_time = max(0.0, self.queue.clock() - job.started_at)
            view.message = "Job is being processed"
        elif job.status is JobStatus.COMPLETED:
            view.started_at = job.started_at
            view.completed_at = job.completed_at
            view.processing_time = job.processing_time
            view.result = job.result
            view.message = "Job completed successfully"
        elif job.status is JobStatus.FAILED:
            view.started_at = job.started_at
            view.completed_at = job.completed_at
            view.error = job.error
            view.timed_out = job.timed_out
            view.message = "Job timed out" if job.timed_out else "Job failed"
        else:
            view.completed_at = job.completed_at
            view.message = "Job was cancelled"

        return view
