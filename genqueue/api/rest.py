"""REST endpoints for polling and managing queued jobs."""

import uuid
from contextlib import asynccontextmanager
from typing import Any, Callable, Dict, Optional

import structlog
from fastapi import APIRouter, FastAPI, HTTPException, Request, status
from fastapi.encoders import jsonable_encoder
from fastapi.responses import JSONResponse, Response
from prometheus_client import CONTENT_TYPE_LATEST

from genqueue.models import Work
from genqueue.monitoring.metrics import MetricsCollector, metrics as default_metrics
from genqueue.queue import JobQueue
from genqueue.registry import QueueRegistry
from genqueue.schemas import JobSubmitRequest, OwnerJobs

logger = structlog.get_logger()

WorkFactory = Callable[[Any], Work]


def create_queue_router(queue: JobQueue, work_factory: Optional[WorkFactory] = None) -> APIRouter:
    """Build the polling endpoints for one queue.

    ``work_factory`` turns a request payload into the work to run; without
    it the router is read/cancel only and submission happens elsewhere.
    """
    router = APIRouter()

    if work_factory is not None:
        @router.post("/jobs", status_code=status.HTTP_202_ACCEPTED)
        async def submit_job(job_request: JobSubmitRequest, request: Request):
            """Queue a new job and point the client at its status URL."""
            try:
                work = work_factory(job_request.payload)
            except ValueError as e:
                raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))

            job_id = uuid.uuid4().hex
            submission = queue.submit(job_id, job_request.payload, work, owner=job_request.owner)

            body = submission.to_client()
            body["statusUrl"] = f"{request.url.path.rstrip('/')}/{job_id}"
            logger.info("Job submitted successfully", queue=queue.name, job_id=job_id,
                        position=submission.position)
            return JSONResponse(status_code=status.HTTP_202_ACCEPTED, content=jsonable_encoder(body))

    @router.get("/jobs/{job_id}")
    async def get_job_status(job_id: str):
        """Get job status by ID."""
        view = queue.status(job_id)
        if view.status == "not_found":
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Job not found")
        return JSONResponse(content=jsonable_encoder(view.to_client()))

    @router.delete("/jobs/{job_id}")
    async def cancel_job(job_id: str):
        """Cancel a job that has not started yet."""
        view = queue.status(job_id)
        if view.status == "not_found":
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Job not found")

        if not queue.cancel(job_id):
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail=f"Cannot cancel job that is {queue.status(job_id).status}",
            )

        return {"jobId": job_id, "cancelled": True, "message": "Job cancelled successfully"}

    @router.get("/stats")
    async def get_stats():
        """Get queue statistics."""
        return queue.stats().to_client()

    @router.get("/owners/{owner}/jobs")
    async def list_owner_jobs(owner: str):
        """List an owner's queued and running jobs."""
        return OwnerJobs(owner=owner, jobs=queue.jobs_for_owner(owner)).to_client()

    return router


def create_app(
    registry: QueueRegistry,
    work_factories: Optional[Dict[str, WorkFactory]] = None,
    metrics: Optional[MetricsCollector] = None,
) -> FastAPI:
    """Mount every queue of the registry under ``/queues/{name}``."""
    work_factories = work_factories or {}
    unknown = set(work_factories) - set(registry.names())
    if unknown:
        raise KeyError(f"Work factories for unknown queues: {sorted(unknown)}")
    collector = metrics or default_metrics

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        registry.start()
        logger.info("REST API started", queues=registry.names())
        yield
        await registry.stop()

    app = FastAPI(
        title="Generation Job Queues",
        description="Single-worker job queues for rate-limited generation APIs",
        version="1.0.0",
        lifespan=lifespan,
    )
    app.state.registry = registry

    for queue in registry:
        app.include_router(
            create_queue_router(queue, work_factories.get(queue.name)),
            prefix=f"/queues/{queue.name}",
            tags=[queue.name],
        )

    @app.get("/health")
    async def health_check():
        """Health check endpoint."""
        return {"status": "healthy", "queues": registry.names()}

    @app.get("/stats")
    async def get_all_stats():
        """Get statistics for every queue."""
        return {name: stats.to_client() for name, stats in registry.stats().items()}

    @app.get("/metrics")
    async def get_metrics():
        """Prometheus metrics endpoint."""
        return Response(collector.get_metrics(), media_type=CONTENT_TYPE_LATEST)

    return app
