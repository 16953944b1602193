"""HTTP client for the job queue service."""

import asyncio
import json
from typing import Any, Dict, List, Optional

import aiohttp

from linqbridge.config import WORKER_SECRET_HEADER
from linqbridge.errors import AuthTokenError, JobNotFoundError, RemoteHttpError
from linqbridge.models import Job


class QueueHttpClient:
    """HTTP client used by workers and producers to call the queue service."""

    def __init__(
        self,
        base_url: str,
        worker_secret: Optional[str] = None,
        timeout: float = 20.0,
    ):
        """
        Initialize HTTP client.

        Args:
            base_url: Base URL of the queue service (e.g., "https://queue.internal")
            worker_secret: Shared secret sent as X-Worker-Secret on worker calls
            timeout: Request timeout in seconds, applied to every call
        """
        self.base_url = base_url.rstrip("/")
        self.worker_secret = worker_secret
        self.timeout = aiohttp.ClientTimeout(total=timeout)

    def _url(self, path: str) -> str:
        return f"{self.base_url}/{path.lstrip('/')}"

    async def _request(
        self,
        method: str,
        path: str,
        body: Optional[Dict[str, Any]] = None,
        authenticated: bool = True,
    ) -> Dict[str, Any]:
        """
        Send a request and return the decoded JSON body.

        Raises:
            AuthTokenError: If the service rejects the worker secret
            RemoteHttpError: On any other HTTP error, network failure,
                timeout, or non-JSON response
        """
        headers = {"Content-Type": "application/json"}
        if authenticated and self.worker_secret:
            headers[WORKER_SECRET_HEADER] = self.worker_secret

        async with aiohttp.ClientSession(timeout=self.timeout) as session:
            try:
                async with session.request(
                    method, self._url(path), json=body, headers=headers
                ) as resp:
                    response_body = await resp.text()
                    status = resp.status
            except aiohttp.ClientError as e:
                raise RemoteHttpError(
                    status_code=0,
                    message=f"Network error: {str(e)}",
                ) from e
            except asyncio.TimeoutError as e:
                raise RemoteHttpError(
                    status_code=0,
                    message=f"{method} {path} timed out",
                ) from e

        if status == 401:
            raise AuthTokenError(f"{method} {path} rejected: invalid worker secret")

        if status >= 400:
            raise RemoteHttpError(
                status_code=status,
                message=f"{method} {path} failed: {response_body}",
                response_body=response_body,
            )

        try:
            return json.loads(response_body)
        except ValueError as e:
            raise RemoteHttpError(
                status_code=status,
                message=f"{method} {path} returned non-JSON body",
                response_body=response_body,
            ) from e

    async def enqueue(self, *, type: str, payload: Any, priority: int = 1) -> Job:
        """Enqueue a job and return it."""
        data = await self._request(
            "POST",
            "/jobs",
            {"type": type, "payload": payload, "priority": priority},
            authenticated=False,
        )
        return Job.from_dict(data["job"])

    async def lease(self, types: Optional[List[str]] = None) -> Optional[Job]:
        """Lease the next job, or None when the queue has nothing eligible."""
        body = {"types": list(types)} if types else {}
        data = await self._request("POST", "/jobs/next", body)
        job = data.get("job")
        return Job.from_dict(job) if job else None

    async def complete(self, job_id: int, result: Any = None) -> None:
        """Report a job as completed."""
        await self._request("POST", f"/jobs/{job_id}/complete", {"result": result})

    async def fail(
        self,
        job_id: int,
        error: str,
        *,
        requeue: bool = False,
        delay_ms: int = 0,
    ) -> None:
        """Report a failed attempt, optionally asking for a delayed requeue."""
        await self._request(
            "POST",
            f"/jobs/{job_id}/fail",
            {"error": str(error or "Unknown"), "requeue": requeue, "delayMs": delay_ms},
        )

    async def get_job(self, job_id: int) -> Job:
        """Get job details by ID."""
        try:
            data = await self._request("GET", f"/jobs/{job_id}", authenticated=False)
        except RemoteHttpError as e:
            if e.status_code == 404:
                raise JobNotFoundError(job_id) from e
            raise
        return Job.from_dict(data["job"])

    async def stats(self) -> Dict[str, int]:
        """Job counts per status."""
        data = await self._request("GET", "/jobs/stats", authenticated=False)
        return data.get("counts", {})
