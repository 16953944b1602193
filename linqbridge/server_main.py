"""CLI entrypoint and app factory for the queue server."""

import argparse
import logging
import os
import sys
from typing import Optional

import uvicorn
from fastapi import FastAPI

from linqbridge.config import QueueServerConfig
from linqbridge.fastapi_router import create_jobs_router
from linqbridge.service import JobService


def setup_logging():
    """Setup logging configuration."""
    log_level = os.getenv("LOG_LEVEL", "INFO").upper()
    logging.basicConfig(
        level=getattr(logging, log_level, logging.INFO),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )


def create_app(
    config: QueueServerConfig,
    job_service: Optional[JobService] = None,
) -> FastAPI:
    """
    Build the queue server application.

    A single JobService (and therefore a single in-memory store) is shared by
    every request handled by the returned app.
    """
    if job_service is None:
        job_service = JobService()

    app = FastAPI(title="LinqBridge job queue")
    app.state.job_service = job_service
    app.include_router(
        create_jobs_router(lambda: job_service, worker_secret=config.worker_shared_secret)
    )
    return app


def main():
    """Main entrypoint for the queue server."""
    setup_logging()
    logger = logging.getLogger(__name__)

    parser = argparse.ArgumentParser(description="LinqBridge queue server")
    parser.add_argument("--host", default=None, help="Bind address (default: $HOST or 0.0.0.0)")
    parser.add_argument("--port", type=int, default=None, help="Port (default: $PORT or 5000)")
    args = parser.parse_args()

    try:
        config = QueueServerConfig.from_env()
    except Exception as e:
        logger.error(f"Failed to load config: {e}")
        sys.exit(1)

    host = args.host or config.host
    port = args.port or config.port

    logger.info(f"Starting queue server on {host}:{port}")
    uvicorn.run(create_app(config), host=host, port=port, log_level="info")


if __name__ == "__main__":
    main()
