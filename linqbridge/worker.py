"""Worker poller for the job queue."""

import asyncio
import logging
from typing import Any, Dict, Optional

from linqbridge.config import WorkerConfig
from linqbridge.errors import AuthTokenError, RemoteHttpError
from linqbridge.http_client import QueueHttpClient
from linqbridge.models import Job
from linqbridge.registry import JobRegistry
from linqbridge.retry import (
    FailureDecision,
    NeverRetryPolicy,
    RetryPolicy,
    TransientErrorRetryPolicy,
)

# Errors talking to the queue service itself; the job outcome is unknown.
TRANSPORT_ERRORS = (RemoteHttpError, AuthTokenError)


def build_retry_policy(config: WorkerConfig) -> RetryPolicy:
    """Retry policy selected by the worker configuration."""
    if config.retry_transient:
        return TransientErrorRetryPolicy()
    return NeverRetryPolicy()


async def process_one(
    config: WorkerConfig,
    client: QueueHttpClient,
    registry: JobRegistry,
    logger: logging.Logger,
    retry_policy: Optional[RetryPolicy] = None,
    context: Optional[Dict[str, Any]] = None,
) -> Optional[Job]:
    """
    Run a single poll tick: lease at most one job, execute it, report the outcome.

    Transport errors are logged and end the tick without touching the job
    record, since the service may or may not have applied the call.

    Returns:
        The job that was processed, or None if nothing was leased
    """
    if retry_policy is None:
        retry_policy = NeverRetryPolicy()

    try:
        job = await client.lease(config.job_types)
    except TRANSPORT_ERRORS as e:
        logger.error(f"Lease failed: {e}")
        return None

    if job is None:
        logger.debug("No jobs available")
        return None

    logger.info(f"Processing job {job.id}: {job.type} (attempt {job.attempts + 1})")

    handler = registry.get_handler(job.type)
    if handler is None:
        if config.reject_unknown_types:
            await _report_failure(
                client, job, f"No processor for {job.type}", FailureDecision(), logger
            )
            return job
        logger.warning(f"No handler for job type {job.type}, completing as no-op")
        await _report_success(client, job, {"note": f"Unhandled job type: {job.type}"}, logger)
        return job

    ctx = {"job": job, "logger": logger, "config": config}
    if context:
        ctx.update(context)

    try:
        result = await asyncio.wait_for(
            handler(ctx, job), timeout=config.handler_timeout_seconds
        )
    except asyncio.TimeoutError:
        message = f"{job.type} timed out after {config.handler_timeout_seconds:g}s"
        logger.error(f"Job {job.id} failed: {message}")
        decision = retry_policy.decide(job, asyncio.TimeoutError(message))
        await _report_failure(client, job, message, decision, logger)
        return job
    except Exception as e:
        logger.error(f"Job {job.id} failed: {str(e)}", exc_info=True)
        decision = retry_policy.decide(job, e)
        await _report_failure(client, job, str(e) or type(e).__name__, decision, logger)
        return job

    await _report_success(client, job, result, logger)
    return job


async def _report_success(
    client: QueueHttpClient, job: Job, result: Any, logger: logging.Logger
) -> None:
    try:
        await client.complete(job.id, result)
        logger.info(f"Job {job.id} done")
    except TRANSPORT_ERRORS as e:
        logger.error(f"Reporting completion of job {job.id} failed, outcome unknown: {e}")


async def _report_failure(
    client: QueueHttpClient,
    job: Job,
    message: str,
    decision: FailureDecision,
    logger: logging.Logger,
) -> None:
    try:
        await client.fail(
            job.id, message, requeue=decision.requeue, delay_ms=decision.delay_ms
        )
        if decision.requeue:
            logger.info(f"Job {job.id} requeued, retry in {decision.delay_ms}ms")
    except TRANSPORT_ERRORS as e:
        logger.error(f"Reporting failure of job {job.id} failed, outcome unknown: {e}")


async def run_worker_loop(
    config: WorkerConfig,
    client: QueueHttpClient,
    registry: JobRegistry,
    logger: logging.Logger,
    retry_policy: Optional[RetryPolicy] = None,
    context: Optional[Dict[str, Any]] = None,
    shutdown_event: asyncio.Event = None,
) -> None:
    """
    Run the fixed-interval polling loop.

    Args:
        config: Worker configuration
        client: Queue service HTTP client
        registry: Job handler registry
        logger: Logger instance
        retry_policy: Requeue decision for handler errors (defaults from config)
        context: Extra entries merged into every handler context
        shutdown_event: Optional event to signal shutdown. The in-flight tick
            always finishes before the loop exits.
    """
    if retry_policy is None:
        retry_policy = build_retry_policy(config)
    if shutdown_event is None:
        shutdown_event = asyncio.Event()

    logger.info(
        f"Starting worker loop, polling every {config.poll_interval_ms} ms "
        f"for types {config.job_types or 'any'}"
    )

    while not shutdown_event.is_set():
        try:
            await process_one(config, client, registry, logger, retry_policy, context)
        except Exception as e:
            logger.error(f"Error in worker loop: {str(e)}", exc_info=True)

        try:
            await asyncio.wait_for(
                shutdown_event.wait(), timeout=config.poll_interval_seconds
            )
        except asyncio.TimeoutError:
            pass

    logger.info("Shutdown signal received, exiting worker loop")
