"""High-level service layer for job operations."""

import logging
from collections import Counter
from datetime import datetime, timedelta
from typing import Any, Callable, Dict, Iterable, List, Optional

from linqbridge.errors import JobNotFoundError
from linqbridge.models import Job, JobStatus, utcnow
from linqbridge.store import JobStore


class JobService:
    """
    Queue service: enforces job lifecycle and ordering over a ``JobStore``.

    The service never retries on its own. Requeue decisions come from the
    worker and are only recorded and enforced here.
    """

    def __init__(
        self,
        store: Optional[JobStore] = None,
        logger: Optional[logging.Logger] = None,
        now: Callable[[], datetime] = utcnow,
    ):
        self.store = store or JobStore()
        self.logger = logger or logging.getLogger(__name__)
        self.now = now

    async def enqueue(self, *, type: str, payload: Any, priority: int = 1) -> Job:
        """
        Enqueue a new pending job.

        Args:
            type: Job type, selects the worker handler (e.g., "SEND_CONNECTION")
            payload: Opaque job payload, interpreted only by the handler
            priority: Higher values are leased first

        Returns:
            Job: A snapshot of the created job

        Raises:
            ValueError: If type is empty or priority is not an integer
        """
        if not isinstance(type, str) or not type.strip():
            raise ValueError("Job type must be a non-empty string")
        if isinstance(priority, bool) or not isinstance(priority, int):
            raise ValueError("Job priority must be an integer")

        job = Job(
            id=0,
            type=type,
            payload=payload,
            priority=priority,
            status=JobStatus.PENDING,
            created_at=self.now(),
        )
        job_id = self.store.create(job)

        self.logger.info(f"Job {job_id} added to queue: {type} (priority={priority})")
        return self.store.get(job_id)

    async def get_job(self, job_id: int) -> Job:
        """Get a job by ID."""
        job = self.store.get(job_id)
        if job is None:
            raise JobNotFoundError(job_id)
        return job

    async def list_jobs(
        self,
        *,
        status: Optional[str] = None,
        type: Optional[str] = None,
        limit: int = 50,
    ) -> List[Job]:
        """List jobs with optional filters, newest first."""
        wanted_status = JobStatus(status) if status else None

        def matches(job: Job) -> bool:
            if wanted_status is not None and job.status != wanted_status:
                return False
            return type is None or job.type == type

        jobs = sorted(self.store.list(matches), key=lambda j: j.id, reverse=True)
        return jobs[:limit]

    async def stats(self) -> Dict[str, int]:
        """Count jobs per status."""
        counts = Counter(job.status.value for job in self.store.list())
        result = {status.value: counts.get(status.value, 0) for status in JobStatus}
        result["total"] = sum(counts.values())
        return result

    async def lease(self, types: Optional[Iterable[str]] = None) -> Optional[Job]:
        """
        Atomically claim the next eligible job.

        Picks the first pending job in priority order whose type is in
        ``types`` (any type when empty) and whose retry delay has elapsed,
        moves it to processing, and stamps ``started_at``.

        Returns:
            The leased job, or None when nothing is eligible
        """
        now = self.now()
        accepted = frozenset(types) if types else None

        def eligible(job: Job) -> bool:
            if accepted is not None and job.type not in accepted:
                return False
            return job.is_eligible(now)

        def mark_processing(job: Job) -> None:
            job.status = JobStatus.PROCESSING
            job.started_at = now

        job = self.store.claim_first(eligible, mark_processing)
        if job is not None:
            self.logger.info(f"Job {job.id} leased ({job.type}, attempt {job.attempts + 1})")
        return job

    async def complete(self, job_id: int, result: Any = None) -> bool:
        """
        Mark a processing job as completed.

        Missing jobs and jobs that are not processing are left untouched, so
        a duplicate report is a no-op.

        Returns:
            True if the job transitioned to completed by this call
        """
        applied = False

        def mark_completed(job: Job) -> None:
            nonlocal applied
            if job.status != JobStatus.PROCESSING:
                return
            job.status = JobStatus.COMPLETED
            job.completed_at = self.now()
            job.result = result
            applied = True

        if self.store.mutate(job_id, mark_completed) is None:
            self.logger.warning(f"Complete reported for unknown job {job_id}, ignoring")
        elif applied:
            self.logger.info(f"Job {job_id} completed")
        else:
            self.logger.info(f"Job {job_id} is not processing, complete ignored")
        return applied

    async def fail(
        self,
        job_id: int,
        error: str,
        requeue: bool = False,
        delay_ms: int = 0,
    ) -> bool:
        """
        Record a failed attempt for a processing job.

        With ``requeue`` the job goes back to pending with ``attempts`` bumped,
        ``last_error`` recorded, and ``next_retry_at = now + delay_ms``.
        Otherwise it fails terminally.

        Returns:
            True if the job transitioned by this call
        """
        applied = False
        delay = timedelta(milliseconds=max(0, delay_ms or 0))

        def mark_failed(job: Job) -> None:
            nonlocal applied
            if job.status != JobStatus.PROCESSING:
                return
            now = self.now()
            if requeue:
                job.status = JobStatus.PENDING
                job.attempts += 1
                job.last_error = error
                job.next_retry_at = now + delay
            else:
                job.status = JobStatus.FAILED
                job.failed_at = now
                job.error = error
            applied = True

        if self.store.mutate(job_id, mark_failed) is None:
            self.logger.warning(f"Fail reported for unknown job {job_id}, ignoring")
        elif not applied:
            self.logger.info(f"Job {job_id} is not processing, fail ignored")
        elif requeue:
            self.logger.info(
                f"Job {job_id} failed, requeued for retry in {delay_ms}ms: {error}"
            )
        else:
            self.logger.error(f"Job {job_id} failed permanently: {error}")
        return applied
