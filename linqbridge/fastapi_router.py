"""FastAPI router for the job queue HTTP API."""

import logging
from typing import Any, Callable, List, Optional

from fastapi import APIRouter, Depends, Header, HTTPException, Query
from pydantic import BaseModel, ConfigDict, Field

from linqbridge.config import WORKER_SECRET_HEADER
from linqbridge.errors import JobNotFoundError
from linqbridge.service import JobService

logger = logging.getLogger(__name__)


class EnqueueJobRequest(BaseModel):
    """Request model for enqueueing a job."""

    type: str
    payload: Any = None
    priority: int = 1


class LeaseJobRequest(BaseModel):
    """Request model for leasing the next job."""

    types: Optional[List[str]] = None


class CompleteJobRequest(BaseModel):
    """Request model for completing a job."""

    result: Any = None


class FailJobRequest(BaseModel):
    """Request model for failing a job."""

    model_config = ConfigDict(populate_by_name=True)

    error: Any = None
    requeue: bool = False
    delay_ms: int = Field(0, alias="delayMs")


def _error_detail(message: str) -> dict:
    return {"success": False, "message": message}


def create_jobs_router(
    job_service_factory: Callable[[], JobService],
    worker_secret: Optional[str],
) -> APIRouter:
    """
    Create FastAPI router for the job queue API.

    Args:
        job_service_factory: Callable that returns a JobService instance
        worker_secret: Shared secret required on worker endpoints. When unset,
            every worker call is rejected.

    Returns:
        APIRouter instance
    """
    router = APIRouter()

    async def get_job_service() -> JobService:
        """Dependency to get JobService instance."""
        return job_service_factory()

    async def verify_worker_secret(
        x_worker_secret: Optional[str] = Header(None, alias=WORKER_SECRET_HEADER)
    ) -> None:
        """Verify the shared worker secret by exact match."""
        if not worker_secret or x_worker_secret != worker_secret:
            raise HTTPException(
                status_code=401, detail=_error_detail("Invalid worker secret")
            )

    @router.get("/")
    async def health():
        """Liveness probe."""
        return {"status": "LinqBridge server running"}

    @router.post("/jobs")
    async def enqueue_job(
        request: EnqueueJobRequest,
        job_service: JobService = Depends(get_job_service),
    ):
        """Enqueue a new job."""
        try:
            job = await job_service.enqueue(
                type=request.type,
                payload=request.payload,
                priority=request.priority,
            )
            return {"success": True, "job": job.to_dict()}
        except ValueError as e:
            raise HTTPException(status_code=400, detail=_error_detail(str(e))) from e
        except Exception as e:
            logger.exception("Error enqueueing job")
            raise HTTPException(
                status_code=500, detail=_error_detail("Internal server error")
            ) from e

    @router.get("/jobs")
    async def list_jobs(
        status: Optional[str] = Query(None),
        type: Optional[str] = Query(None),
        limit: int = Query(50, ge=1, le=1000),
        job_service: JobService = Depends(get_job_service),
    ):
        """List jobs with optional filters."""
        try:
            jobs = await job_service.list_jobs(status=status, type=type, limit=limit)
            return {"success": True, "jobs": [job.to_dict() for job in jobs]}
        except ValueError as e:
            raise HTTPException(status_code=400, detail=_error_detail(str(e))) from e

    @router.get("/jobs/stats")
    async def job_stats(job_service: JobService = Depends(get_job_service)):
        """Job counts per status."""
        return {"success": True, "counts": await job_service.stats()}

    @router.post("/jobs/next")
    async def lease_job(
        request: Optional[LeaseJobRequest] = None,
        job_service: JobService = Depends(get_job_service),
        _: None = Depends(verify_worker_secret),
    ):
        """Lease the next eligible job for a worker."""
        types = request.types if request else None
        job = await job_service.lease(types)
        return {"ok": True, "job": job.to_dict() if job else None}

    @router.post("/jobs/{job_id}/complete")
    async def complete_job(
        job_id: int,
        request: Optional[CompleteJobRequest] = None,
        job_service: JobService = Depends(get_job_service),
        _: None = Depends(verify_worker_secret),
    ):
        """Mark a job as completed."""
        await job_service.complete(job_id, request.result if request else None)
        return {"success": True}

    @router.post("/jobs/{job_id}/fail")
    async def fail_job(
        job_id: int,
        request: Optional[FailJobRequest] = None,
        job_service: JobService = Depends(get_job_service),
        _: None = Depends(verify_worker_secret),
    ):
        """Mark a job as failed, optionally requeueing it after a delay."""
        request = request or FailJobRequest()
        error = str(request.error) if request.error is not None else "Unknown"
        await job_service.fail(
            job_id, error, requeue=request.requeue, delay_ms=request.delay_ms
        )
        return {"success": True}

    @router.get("/jobs/{job_id}")
    async def get_job(
        job_id: int,
        job_service: JobService = Depends(get_job_service),
    ):
        """Get job details by ID."""
        try:
            job = await job_service.get_job(job_id)
            return {"success": True, "job": job.to_dict()}
        except JobNotFoundError as e:
            raise HTTPException(status_code=404, detail=_error_detail(str(e))) from e

    return router
