"""Unit tests for the queue HTTP client."""

import asyncio
import json
from unittest.mock import AsyncMock, MagicMock, patch

import aiohttp
import pytest

from linqbridge.errors import AuthTokenError, JobNotFoundError, RemoteHttpError
from linqbridge.http_client import QueueHttpClient
from linqbridge.models import JobStatus


def _mock_session(status=200, body=None, text=None, error=None):
    """Patchable aiohttp.ClientSession returning one canned response."""
    resp = MagicMock()
    resp.status = status
    resp.text = AsyncMock(return_value=text if text is not None else json.dumps(body))

    resp_cm = MagicMock()
    resp_cm.__aenter__ = AsyncMock(return_value=resp)
    resp_cm.__aexit__ = AsyncMock(return_value=False)

    session = MagicMock()
    if error is not None:
        session.request = MagicMock(side_effect=error)
    else:
        session.request = MagicMock(return_value=resp_cm)

    session_cm = MagicMock()
    session_cm.__aenter__ = AsyncMock(return_value=session)
    session_cm.__aexit__ = AsyncMock(return_value=False)

    return MagicMock(return_value=session_cm), session


JOB_WIRE = {
    "id": 7,
    "type": "SEND_CONNECTION",
    "payload": {"profileUrl": "https://x/in/y"},
    "priority": 1,
    "status": "processing",
    "attempts": 0,
    "createdAt": "2024-05-01T12:00:00Z",
    "startedAt": "2024-05-01T12:00:05Z",
}


@pytest.mark.asyncio
async def test_lease_returns_job_and_sends_secret():
    client = QueueHttpClient("https://queue.example.com/", worker_secret="s3cret")
    factory, session = _mock_session(body={"ok": True, "job": JOB_WIRE})

    with patch("aiohttp.ClientSession", factory):
        job = await client.lease(["SEND_CONNECTION"])

    assert job.id == 7
    assert job.status == JobStatus.PROCESSING
    assert job.started_at.second == 5

    method, url = session.request.call_args[0]
    kwargs = session.request.call_args[1]
    assert method == "POST"
    assert url == "https://queue.example.com/jobs/next"
    assert kwargs["json"] == {"types": ["SEND_CONNECTION"]}
    assert kwargs["headers"]["X-Worker-Secret"] == "s3cret"


@pytest.mark.asyncio
async def test_lease_returns_none_when_queue_empty():
    client = QueueHttpClient("https://queue.example.com", worker_secret="s")
    factory, _ = _mock_session(body={"ok": True, "job": None})

    with patch("aiohttp.ClientSession", factory):
        assert await client.lease() is None


@pytest.mark.asyncio
async def test_fail_sends_requeue_fields():
    client = QueueHttpClient("https://queue.example.com", worker_secret="s")
    factory, session = _mock_session(body={"success": True})

    with patch("aiohttp.ClientSession", factory):
        await client.fail(7, "timeout", requeue=True, delay_ms=15000)

    kwargs = session.request.call_args[1]
    assert session.request.call_args[0][1].endswith("/jobs/7/fail")
    assert kwargs["json"] == {"error": "timeout", "requeue": True, "delayMs": 15000}


@pytest.mark.asyncio
async def test_complete_posts_result():
    client = QueueHttpClient("https://queue.example.com", worker_secret="s")
    factory, session = _mock_session(body={"success": True})

    with patch("aiohttp.ClientSession", factory):
        await client.complete(7, {"ok": True})

    assert session.request.call_args[1]["json"] == {"result": {"ok": True}}


@pytest.mark.asyncio
async def test_enqueue_does_not_send_secret():
    client = QueueHttpClient("https://queue.example.com", worker_secret="s")
    wire = dict(JOB_WIRE, status="pending")
    wire.pop("startedAt")
    factory, session = _mock_session(body={"success": True, "job": wire})

    with patch("aiohttp.ClientSession", factory):
        job = await client.enqueue(type="SEND_CONNECTION", payload={}, priority=5)

    assert job.status == JobStatus.PENDING
    assert "X-Worker-Secret" not in session.request.call_args[1]["headers"]


@pytest.mark.asyncio
async def test_unauthorized_raises_auth_error():
    client = QueueHttpClient("https://queue.example.com", worker_secret="wrong")
    factory, _ = _mock_session(status=401, body={"detail": {"success": False}})

    with patch("aiohttp.ClientSession", factory):
        with pytest.raises(AuthTokenError):
            await client.lease()


@pytest.mark.asyncio
async def test_http_error_raises_remote_error():
    client = QueueHttpClient("https://queue.example.com")
    factory, _ = _mock_session(status=500, text="Internal Server Error")

    with patch("aiohttp.ClientSession", factory):
        with pytest.raises(RemoteHttpError) as exc_info:
            await client.stats()

    assert exc_info.value.status_code == 500


@pytest.mark.asyncio
async def test_non_json_body_raises_remote_error():
    client = QueueHttpClient("https://queue.example.com", worker_secret="s")
    factory, _ = _mock_session(status=200, text="<html>proxy error</html>")

    with patch("aiohttp.ClientSession", factory):
        with pytest.raises(RemoteHttpError) as exc_info:
            await client.lease()

    assert exc_info.value.response_body == "<html>proxy error</html>"


@pytest.mark.asyncio
async def test_network_error_raises_remote_error():
    client = QueueHttpClient("https://queue.example.com", worker_secret="s")
    factory, _ = _mock_session(error=aiohttp.ClientError("Connection failed"))

    with patch("aiohttp.ClientSession", factory):
        with pytest.raises(RemoteHttpError) as exc_info:
            await client.lease()

    assert exc_info.value.status_code == 0


@pytest.mark.asyncio
async def test_timeout_raises_remote_error():
    client = QueueHttpClient("https://queue.example.com", worker_secret="s", timeout=0.1)
    factory, _ = _mock_session(error=asyncio.TimeoutError())

    with patch("aiohttp.ClientSession", factory):
        with pytest.raises(RemoteHttpError, match="timed out"):
            await client.lease()


@pytest.mark.asyncio
async def test_get_job_not_found():
    client = QueueHttpClient("https://queue.example.com")
    factory, _ = _mock_session(status=404, body={"detail": {"success": False}})

    with patch("aiohttp.ClientSession", factory):
        with pytest.raises(JobNotFoundError):
            await client.get_job(404)


def test_timeout_is_configured():
    client = QueueHttpClient("https://queue.example.com", timeout=7.5)

    assert client.timeout.total == 7.5
