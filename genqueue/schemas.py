"""Pydantic schemas for the payloads a queue hands back to callers."""

from typing import Any, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

ViewStatus = Literal["queued", "processing", "completed", "failed", "cancelled", "not_found"]


class ClientModel(BaseModel):
    """Base model serialized with camelCase keys for polling clients."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    def to_client(self) -> dict:
        return self.model_dump(by_alias=True, exclude_none=True)


class SubmissionResult(ClientModel):
    """Returned by submit."""
    job_id: str
    status: ViewStatus
    position: int = Field(..., ge=0, description="1-based backlog position, 0 when not waiting")
    queue_length: int = Field(..., ge=0)
    estimated_wait_time: float = Field(..., ge=0, description="Seconds")
    created: bool = Field(..., description="False when the id was already live")
    message: str


class StatusView(ClientModel):
    """Client-facing status of one job."""
    job_id: str
    status: ViewStatus
    message: str
    position: Optional[int] = None
    queue_length: Optional[int] = None
    estimated_wait_time: Optional[float] = None
    created_at: Optional[float] = None
    started_at: Optional[float] = None
    completed_at: Optional[float] = None
    elapsed_time: Optional[float] = None
    processing_time: Optional[float] = None
    result: Optional[Any] = None
    error: Optional[str] = None
    timed_out: Optional[bool] = None

    def to_client(self) -> dict:
        data = super().to_client()
        # A work function may legitimately return None.
        if self.status == "completed":
            data["result"] = self.result
        return data


class CurrentJob(ClientModel):
    """The job the worker is running right now."""
    job_id: str
    owner: Optional[str] = None
    started_at: float
    elapsed_time: float


class QueueStats(ClientModel):
    """Snapshot of one queue."""
    name: str
    queue_length: int
    processing: bool
    current_job: Optional[CurrentJob] = None
    completed_count: int
    failed_count: int
    cancelled_count: int
    total_in_queue: int


class OwnerJob(ClientModel):
    """An active job belonging to one owner."""
    job_id: str
    status: ViewStatus
    position: int


class OwnerJobs(ClientModel):
    owner: str
    jobs: List[OwnerJob]


class JobSubmitRequest(BaseModel):
    """Request schema for job submission over HTTP."""
    payload: Any = Field(default=None, description="Opaque job input handed to the work function")
    owner: Optional[str] = Field(default=None, description="Submitting user")
