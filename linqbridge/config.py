"""Configuration for the queue server and the worker."""

import os
from typing import List, Optional

DEFAULT_JOB_TYPES = ["SEND_CONNECTION"]

WORKER_SECRET_HEADER = "X-Worker-Secret"

_TRUTHY = ("true", "1", "yes")


def _env_flag(name: str, default: str) -> bool:
    return os.getenv(name, default).strip().lower() in _TRUTHY


class QueueServerConfig:
    """Configuration object for the queue server."""

    def __init__(
        self,
        worker_shared_secret: Optional[str],
        host: str = "0.0.0.0",
        port: int = 5000,
    ):
        self.worker_shared_secret = worker_shared_secret
        self.host = host
        self.port = port

    @classmethod
    def from_env(cls) -> "QueueServerConfig":
        """Create config from environment variables."""
        worker_shared_secret = os.getenv("WORKER_SHARED_SECRET")
        if not worker_shared_secret:
            raise ValueError("WORKER_SHARED_SECRET environment variable is required")

        return cls(
            worker_shared_secret=worker_shared_secret,
            host=os.getenv("HOST", "0.0.0.0"),
            port=int(os.getenv("PORT", "5000")),
        )


class WorkerConfig:
    """Configuration object for the worker poller."""

    def __init__(
        self,
        server_base_url: str,
        worker_shared_secret: str,
        poll_interval_ms: int = 5000,
        headless: bool = True,
        soft_mode: bool = True,
        job_types: Optional[List[str]] = None,
        request_timeout_seconds: float = 20.0,
        handler_timeout_seconds: float = 90.0,
        reject_unknown_types: bool = False,
        retry_transient: bool = False,
        handlers_module: Optional[str] = None,
    ):
        self.server_base_url = server_base_url
        self.worker_shared_secret = worker_shared_secret
        self.poll_interval_ms = poll_interval_ms
        self.headless = headless
        self.soft_mode = soft_mode
        self.job_types = list(job_types) if job_types is not None else list(DEFAULT_JOB_TYPES)
        self.request_timeout_seconds = request_timeout_seconds
        self.handler_timeout_seconds = handler_timeout_seconds
        self.reject_unknown_types = reject_unknown_types
        self.retry_transient = retry_transient
        self.handlers_module = handlers_module

    @property
    def poll_interval_seconds(self) -> float:
        return self.poll_interval_ms / 1000.0

    @classmethod
    def from_env(cls) -> "WorkerConfig":
        """Create config from environment variables."""
        server_base_url = os.getenv("SERVER_BASE_URL") or os.getenv("API_BASE")
        if not server_base_url:
            raise ValueError("SERVER_BASE_URL environment variable is required")

        worker_shared_secret = os.getenv("WORKER_SHARED_SECRET")
        if not worker_shared_secret:
            raise ValueError("WORKER_SHARED_SECRET environment variable is required")

        try:
            poll_interval_ms = int(os.getenv("POLL_INTERVAL_MS", "5000"))
        except ValueError as e:
            raise ValueError(f"Invalid POLL_INTERVAL_MS: {e}") from e
        if poll_interval_ms <= 0:
            raise ValueError("POLL_INTERVAL_MS must be positive")

        job_types_str = os.getenv("WORKER_JOB_TYPES")
        job_types = None
        if job_types_str is not None:
            job_types = [t.strip() for t in job_types_str.split(",") if t.strip()]

        return cls(
            server_base_url=server_base_url,
            worker_shared_secret=worker_shared_secret,
            poll_interval_ms=poll_interval_ms,
            headless=_env_flag("HEADLESS", "true"),
            soft_mode=_env_flag("SOFT_MODE", "true"),
            job_types=job_types,
            request_timeout_seconds=float(
                os.getenv("WORKER_REQUEST_TIMEOUT_SECONDS", "20")
            ),
            handler_timeout_seconds=float(
                os.getenv("WORKER_HANDLER_TIMEOUT_SECONDS", "90")
            ),
            reject_unknown_types=_env_flag("WORKER_REJECT_UNKNOWN_TYPES", "false"),
            retry_transient=_env_flag("WORKER_RETRY_TRANSIENT", "false"),
            handlers_module=os.getenv("LINQBRIDGE_HANDLERS_MODULE"),
        )
