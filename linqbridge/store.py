"""In-memory store layer for jobs."""

import bisect
import itertools
import threading
from typing import Callable, List, Optional, Tuple

from linqbridge.models import Job

JobPredicate = Callable[[Job], bool]
JobMutation = Callable[[Job], None]


class JobStore:
    """
    Process-lifetime storage of jobs with a strictly increasing id generator.

    Records are kept in an ordered index keyed by ``(-priority, id)``. Ids grow
    monotonically, so equal-priority jobs keep their insertion order. Every
    read returns a copy; the live records only change through ``mutate`` and
    ``claim_first``, which run under the store lock.
    """

    def __init__(self):
        self._lock = threading.Lock()
        self._ids = itertools.count(1)
        self._jobs: dict[int, Job] = {}
        self._order: List[Tuple[int, int]] = []

    def create(self, job: Job) -> int:
        """Assign the next id to ``job``, insert it, and return the id."""
        with self._lock:
            job_id = next(self._ids)
            job.id = job_id
            self._jobs[job_id] = job
            bisect.insort(self._order, (-job.priority, job_id))
        return job_id

    def get(self, job_id: int) -> Optional[Job]:
        """Get a snapshot of a job by id, or None."""
        with self._lock:
            job = self._jobs.get(job_id)
            return job.copy() if job else None

    def find_first(self, predicate: JobPredicate) -> Optional[Job]:
        """Snapshot of the first job in priority order matching ``predicate``."""
        with self._lock:
            job = self._scan(predicate)
            return job.copy() if job else None

    def mutate(self, job_id: int, fn: JobMutation) -> Optional[Job]:
        """Apply ``fn`` to the live record and return a snapshot, or None if missing."""
        with self._lock:
            job = self._jobs.get(job_id)
            if job is None:
                return None
            fn(job)
            return job.copy()

    def claim_first(self, predicate: JobPredicate, fn: JobMutation) -> Optional[Job]:
        """
        Atomically select the first matching job and apply ``fn`` to it.

        Selection and mutation happen under one lock acquisition, so two
        concurrent callers can never claim the same record.
        """
        with self._lock:
            job = self._scan(predicate)
            if job is None:
                return None
            fn(job)
            return job.copy()

    def list(self, predicate: Optional[JobPredicate] = None) -> List[Job]:
        """Snapshots of all jobs in priority order."""
        with self._lock:
            return [
                self._jobs[job_id].copy()
                for _, job_id in self._order
                if predicate is None or predicate(self._jobs[job_id])
            ]

    def __len__(self) -> int:
        with self._lock:
            return len(self._jobs)

    def _scan(self, predicate: JobPredicate) -> Optional[Job]:
        for _, job_id in self._order:
            job = self._jobs[job_id]
            if predicate(job):
                return job
        return None
