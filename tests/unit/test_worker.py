"""Unit tests for the worker poller."""

import asyncio
import logging
from unittest.mock import AsyncMock, MagicMock

import pytest

from linqbridge.errors import AuthTokenError, RemoteHttpError, RequeueJob
from linqbridge.models import Job, JobStatus
from linqbridge.registry import JobRegistry
from linqbridge.retry import NeverRetryPolicy, TransientErrorRetryPolicy
from linqbridge.worker import build_retry_policy, process_one, run_worker_loop

logger = logging.getLogger("test-worker")


def _job(type="SEND_CONNECTION", attempts=0):
    return Job(id=11, type=type, payload={}, status=JobStatus.PROCESSING, attempts=attempts)


def _client(job=None):
    client = MagicMock()
    client.lease = AsyncMock(return_value=job)
    client.complete = AsyncMock()
    client.fail = AsyncMock()
    return client


@pytest.mark.asyncio
async def test_no_job_does_nothing(worker_config):
    client = _client(None)

    processed = await process_one(worker_config, client, JobRegistry(), logger)

    assert processed is None
    client.lease.assert_awaited_once_with(["SEND_CONNECTION"])
    client.complete.assert_not_awaited()
    client.fail.assert_not_awaited()


@pytest.mark.asyncio
async def test_successful_handler_completes_job(worker_config):
    registry = JobRegistry()
    seen = {}

    @registry.handler("SEND_CONNECTION")
    async def handler(ctx, job):
        seen["ctx"] = ctx
        return {"ok": True, "id": job.id}

    client = _client(_job())

    processed = await process_one(worker_config, client, registry, logger)

    assert processed.id == 11
    client.complete.assert_awaited_once_with(11, {"ok": True, "id": 11})
    client.fail.assert_not_awaited()
    assert seen["ctx"]["config"] is worker_config
    assert seen["ctx"]["job"].id == 11


@pytest.mark.asyncio
async def test_extra_context_reaches_handler(worker_config):
    registry = JobRegistry()

    @registry.handler("SEND_CONNECTION")
    async def handler(ctx, job):
        return ctx["actuator"]

    client = _client(_job())

    await process_one(worker_config, client, registry, logger, context={"actuator": "x"})

    client.complete.assert_awaited_once_with(11, "x")


@pytest.mark.asyncio
async def test_handler_error_fails_permanently_by_default(worker_config):
    registry = JobRegistry()

    @registry.handler("SEND_CONNECTION")
    async def handler(ctx, job):
        raise RuntimeError("Connect button not found")

    client = _client(_job())

    await process_one(worker_config, client, registry, logger)

    client.fail.assert_awaited_once_with(
        11, "Connect button not found", requeue=False, delay_ms=0
    )
    client.complete.assert_not_awaited()


@pytest.mark.asyncio
async def test_handler_can_request_requeue(worker_config):
    registry = JobRegistry()

    @registry.handler("SEND_CONNECTION")
    async def handler(ctx, job):
        raise RequeueJob("Invite limit hit", delay_ms=60000)

    client = _client(_job())

    await process_one(worker_config, client, registry, logger, retry_policy=NeverRetryPolicy())

    client.fail.assert_awaited_once_with(11, "Invite limit hit", requeue=True, delay_ms=60000)


@pytest.mark.asyncio
async def test_transient_policy_requeues_timeouts(worker_config):
    registry = JobRegistry()

    @registry.handler("SEND_CONNECTION")
    async def handler(ctx, job):
        raise RuntimeError("navigation timeout")

    client = _client(_job())

    await process_one(
        worker_config, client, registry, logger, retry_policy=TransientErrorRetryPolicy()
    )

    client.fail.assert_awaited_once_with(
        11, "navigation timeout", requeue=True, delay_ms=15000
    )


@pytest.mark.asyncio
async def test_handler_timeout_is_reported_as_failure(worker_config):
    worker_config.handler_timeout_seconds = 0.01
    registry = JobRegistry()

    @registry.handler("SEND_CONNECTION")
    async def handler(ctx, job):
        await asyncio.sleep(1)

    client = _client(_job())

    await process_one(worker_config, client, registry, logger)

    args, kwargs = client.fail.call_args
    assert args[0] == 11
    assert "timed out" in args[1]
    assert kwargs == {"requeue": False, "delay_ms": 0}


@pytest.mark.asyncio
async def test_unknown_type_completes_as_noop(worker_config):
    client = _client(_job(type="MYSTERY"))

    await process_one(worker_config, client, JobRegistry(), logger)

    client.complete.assert_awaited_once_with(11, {"note": "Unhandled job type: MYSTERY"})
    client.fail.assert_not_awaited()


@pytest.mark.asyncio
async def test_unknown_type_rejected_when_configured(worker_config):
    worker_config.reject_unknown_types = True
    client = _client(_job(type="MYSTERY"))

    await process_one(worker_config, client, JobRegistry(), logger)

    client.fail.assert_awaited_once_with(
        11, "No processor for MYSTERY", requeue=False, delay_ms=0
    )


@pytest.mark.asyncio
async def test_lease_transport_error_is_swallowed(worker_config):
    client = _client()
    client.lease.side_effect = RemoteHttpError(0, "Network error")

    assert await process_one(worker_config, client, JobRegistry(), logger) is None


@pytest.mark.asyncio
async def test_lease_auth_error_is_swallowed(worker_config):
    client = _client()
    client.lease.side_effect = AuthTokenError("invalid worker secret")

    assert await process_one(worker_config, client, JobRegistry(), logger) is None


@pytest.mark.asyncio
async def test_complete_transport_error_does_not_fail_job(worker_config):
    """An unreachable queue during reporting is an unknown outcome, not a failure."""
    registry = JobRegistry()

    @registry.handler("SEND_CONNECTION")
    async def handler(ctx, job):
        return {"ok": True}

    client = _client(_job())
    client.complete.side_effect = RemoteHttpError(0, "Network error")

    processed = await process_one(worker_config, client, registry, logger)

    assert processed.id == 11
    client.fail.assert_not_awaited()


@pytest.mark.asyncio
async def test_loop_stops_on_shutdown(worker_config):
    client = _client(None)
    shutdown_event = asyncio.Event()

    async def stop_soon():
        while client.lease.await_count < 3:
            await asyncio.sleep(0.005)
        shutdown_event.set()

    await asyncio.wait_for(
        asyncio.gather(
            run_worker_loop(
                worker_config, client, JobRegistry(), logger, shutdown_event=shutdown_event
            ),
            stop_soon(),
        ),
        timeout=5,
    )

    assert client.lease.await_count >= 3


@pytest.mark.asyncio
async def test_loop_survives_unexpected_errors(worker_config):
    client = _client(None)
    client.lease.side_effect = [ValueError("bad json"), None, None, None, None, None]
    shutdown_event = asyncio.Event()

    async def stop_soon():
        while client.lease.await_count < 2:
            await asyncio.sleep(0.005)
        shutdown_event.set()

    await asyncio.wait_for(
        asyncio.gather(
            run_worker_loop(
                worker_config, client, JobRegistry(), logger, shutdown_event=shutdown_event
            ),
            stop_soon(),
        ),
        timeout=5,
    )

    assert client.lease.await_count >= 2


def test_build_retry_policy(worker_config):
    assert isinstance(build_retry_policy(worker_config), NeverRetryPolicy)

    worker_config.retry_transient = True
    assert isinstance(build_retry_policy(worker_config), TransientErrorRetryPolicy)
