"""CLI entrypoint and programmatic interface for the worker."""

import argparse
import asyncio
import importlib
import logging
import os
import signal
import sys
from typing import Optional

from linqbridge.config import WorkerConfig
from linqbridge.errors import AuthTokenError, RemoteHttpError
from linqbridge.http_client import QueueHttpClient
from linqbridge.registry import JobRegistry, job_registry
from linqbridge.retry import RetryPolicy
from linqbridge.worker import run_worker_loop

DEFAULT_HANDLERS_MODULE = "linqbridge.handlers"


def setup_logging():
    """Setup logging configuration."""
    log_level = os.getenv("LOG_LEVEL", "INFO").upper()
    logging.basicConfig(
        level=getattr(logging, log_level, logging.INFO),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )


def load_handlers(handlers_module: Optional[str], logger: logging.Logger) -> None:
    """Import the module that registers job handlers."""
    module = handlers_module or DEFAULT_HANDLERS_MODULE
    try:
        importlib.import_module(module)
        logger.info(f"Loaded handlers from {module}")
    except ImportError as e:
        logger.warning(f"Failed to import handlers module {module}: {e}")


async def check_connectivity(client: QueueHttpClient, logger: logging.Logger) -> bool:
    """Startup self-test against the queue service. Only logs on failure."""
    try:
        counts = await client.stats()
        logger.info(f"Queue service OK. Stats: {counts}")
        return True
    except (RemoteHttpError, AuthTokenError) as e:
        logger.error(f"Queue service self-test failed: {e}")
        return False


async def run_worker(
    config: Optional[WorkerConfig] = None,
    client: Optional[QueueHttpClient] = None,
    registry: Optional[JobRegistry] = None,
    logger: Optional[logging.Logger] = None,
    retry_policy: Optional[RetryPolicy] = None,
    shutdown_event: Optional[asyncio.Event] = None,
):
    """
    Run the worker programmatically.

    Args:
        config: WorkerConfig instance. If None, will load from environment.
        client: QueueHttpClient. If None, will create one from config.
        registry: JobRegistry instance. If None, will use global job_registry.
        logger: Logger instance. If None, will create default logger.
        retry_policy: Requeue policy for handler errors. If None, chosen from config.
        shutdown_event: Optional asyncio.Event for graceful shutdown.

    Example:
        ```python
        from linqbridge.worker_main import run_worker
        import asyncio

        asyncio.run(run_worker())
        ```
    """
    if config is None:
        config = WorkerConfig.from_env()

    if logger is None:
        logger = logging.getLogger(__name__)

    if client is None:
        client = QueueHttpClient(
            config.server_base_url,
            worker_secret=config.worker_shared_secret,
            timeout=config.request_timeout_seconds,
        )

    if registry is None:
        registry = job_registry

    if shutdown_event is None:
        shutdown_event = asyncio.Event()

    load_handlers(config.handlers_module, logger)

    logger.info(
        f"Worker starting. SERVER_BASE_URL={config.server_base_url} "
        f"headless={config.headless} soft_mode={config.soft_mode}"
    )
    await check_connectivity(client, logger)

    await run_worker_loop(
        config=config,
        client=client,
        registry=registry,
        logger=logger,
        retry_policy=retry_policy,
        shutdown_event=shutdown_event,
    )


def main():
    """Main entrypoint for worker."""
    setup_logging()
    logger = logging.getLogger(__name__)

    parser = argparse.ArgumentParser(description="LinqBridge worker")
    parser.add_argument(
        "--poll-interval-ms",
        type=int,
        default=None,
        help="Poll interval in milliseconds (default: $POLL_INTERVAL_MS or 5000)",
    )
    parser.add_argument(
        "--types",
        default=None,
        help="Comma-separated job types to accept (default: $WORKER_JOB_TYPES)",
    )
    args = parser.parse_args()

    try:
        config = WorkerConfig.from_env()
    except Exception as e:
        logger.error(f"Failed to load config: {e}")
        sys.exit(1)

    if args.poll_interval_ms is not None:
        if args.poll_interval_ms <= 0:
            parser.error("--poll-interval-ms must be positive")
        config.poll_interval_ms = args.poll_interval_ms
    if args.types is not None:
        config.job_types = [t.strip() for t in args.types.split(",") if t.strip()]

    # Setup shutdown event
    shutdown_event = asyncio.Event()

    def signal_handler(signum, frame):
        logger.info(f"Received signal {signum}, finishing current tick and shutting down...")
        shutdown_event.set()

    signal.signal(signal.SIGTERM, signal_handler)
    signal.signal(signal.SIGINT, signal_handler)

    async def run():
        """Async main function."""
        try:
            await run_worker(config=config, logger=logger, shutdown_event=shutdown_event)
        except Exception as e:
            logger.error(f"Fatal error in worker: {e}", exc_info=True)
            sys.exit(1)

    try:
        asyncio.run(run())
    except KeyboardInterrupt:
        logger.info("Interrupted by user")
    except Exception as e:
        logger.error(f"Fatal error: {e}", exc_info=True)
        sys.exit(1)


if __name__ == "__main__":
    main()
