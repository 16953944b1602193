"""LinqBridge: job queue service, polling worker, and resilient browser navigation."""

from linqbridge.config import QueueServerConfig, WorkerConfig
from linqbridge.errors import (
    AuthTokenError,
    JobNotFoundError,
    LinqBridgeError,
    NavigationError,
    RemoteHttpError,
    RequeueJob,
)
from linqbridge.fastapi_router import create_jobs_router
from linqbridge.http_client import QueueHttpClient
from linqbridge.models import Job, JobStatus
from linqbridge.navigator import NavigationPolicy, ResilientNavigator
from linqbridge.registry import JobRegistry, job_registry
from linqbridge.retry import (
    FailureDecision,
    NeverRetryPolicy,
    RetryPolicy,
    TransientErrorRetryPolicy,
)
from linqbridge.service import JobService
from linqbridge.store import JobStore
from linqbridge.worker import process_one, run_worker_loop

__version__ = "0.1.0"

__all__ = [
    "QueueServerConfig",
    "WorkerConfig",
    "AuthTokenError",
    "JobNotFoundError",
    "LinqBridgeError",
    "NavigationError",
    "RemoteHttpError",
    "RequeueJob",
    "create_jobs_router",
    "QueueHttpClient",
    "Job",
    "JobStatus",
    "NavigationPolicy",
    "ResilientNavigator",
    "JobRegistry",
    "job_registry",
    "FailureDecision",
    "NeverRetryPolicy",
    "RetryPolicy",
    "TransientErrorRetryPolicy",
    "JobService",
    "JobStore",
    "process_one",
    "run_worker_loop",
]
