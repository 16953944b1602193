"""Job handler registry."""

from collections.abc import Awaitable, Callable
from typing import Any, Optional

JobHandler = Callable[[dict, Any], Awaitable[Any]]


class JobRegistry:
    """Registry for job handlers, keyed by job type."""

    def __init__(self):
        self._handlers: dict[str, JobHandler] = {}

    def handler(self, job_type: str):
        """
        Decorator to register a job handler.

        Usage:
            @registry.handler("SEND_CONNECTION")
            async def send_connection(ctx, job):
                ...
                return {"ok": True}

        The handler receives a context dict (``job``, ``logger``, ``config``)
        and the full job record, and returns the job result.
        """

        def decorator(func: JobHandler):
            self._handlers[job_type] = func
            return func

        return decorator

    def register(self, job_type: str, func: JobHandler) -> None:
        """Register a handler without the decorator syntax."""
        self._handlers[job_type] = func

    def get_handler(self, job_type: str) -> Optional[JobHandler]:
        """Get a handler by job type."""
        return self._handlers.get(job_type)

    def job_types(self) -> list[str]:
        """Registered job types, in registration order."""
        return list(self._handlers)

    def all_handlers(self) -> dict[str, JobHandler]:
        """Get all registered handlers."""
        return self._handlers.copy()


# Global registry instance
job_registry = JobRegistry()
