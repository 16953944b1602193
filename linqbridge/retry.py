"""Retry policies deciding between requeue and permanent failure."""

import re
from abc import ABC, abstractmethod
from dataclasses import dataclass

from linqbridge.errors import RequeueJob
from linqbridge.models import Job

TRANSIENT_ERROR_PATTERN = re.compile(
    r"timeout|timed out|navigation|rate limit|temporary|network", re.IGNORECASE
)
DEFAULT_TRANSIENT_DELAY_MS = 15000


@dataclass(frozen=True)
class FailureDecision:
    """How a failed job should be reported to the queue service."""

    requeue: bool = False
    delay_ms: int = 0


class RetryPolicy(ABC):
    """
    Decides what to do with a job whose handler raised.

    A handler that raises ``RequeueJob`` always gets its explicit request.
    Everything else goes through ``classify``.
    """

    def decide(self, job: Job, exc: BaseException) -> FailureDecision:
        if isinstance(exc, RequeueJob):
            return FailureDecision(requeue=True, delay_ms=max(0, exc.delay_ms))
        return self.classify(job, exc)

    @abstractmethod
    def classify(self, job: Job, exc: BaseException) -> FailureDecision:
        """Decision for an error that is not an explicit ``RequeueJob``."""


class NeverRetryPolicy(RetryPolicy):
    """Every handler error is a permanent failure."""

    def classify(self, job: Job, exc: BaseException) -> FailureDecision:
        return FailureDecision(requeue=False, delay_ms=0)


class TransientErrorRetryPolicy(RetryPolicy):
    """Requeue errors that look transient (timeouts, network, rate limits)."""

    def __init__(
        self,
        delay_ms: int = DEFAULT_TRANSIENT_DELAY_MS,
        max_attempts: int = 3,
        pattern: re.Pattern = TRANSIENT_ERROR_PATTERN,
    ):
        self.delay_ms = delay_ms
        self.max_attempts = max_attempts
        self.pattern = pattern

    def is_transient(self, exc: BaseException) -> bool:
        message = str(exc) or type(exc).__name__
        return bool(self.pattern.search(message))

    def classify(self, job: Job, exc: BaseException) -> FailureDecision:
        # job.attempts counts earlier requeues; this failure is attempt + 1
        if job.attempts + 1 >= self.max_attempts or not self.is_transient(exc):
            return FailureDecision(requeue=False, delay_ms=0)
        return FailureDecision(requeue=True, delay_ms=self.delay_ms)
