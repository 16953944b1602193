"""Resilient navigation against a detection-sensitive target."""

import asyncio
import logging
import random
from dataclasses import dataclass, replace
from typing import Awaitable, Callable, List, Optional, Protocol, Sequence
from urllib.parse import parse_qsl, urlencode, urlsplit, urlunsplit

from linqbridge.errors import NavigationError

LINKEDIN_FEED_URL = "https://www.linkedin.com/feed/"

WALL_TITLE_MARKERS = ("sign in", "authwall")


class Page(Protocol):
    """The slice of a browser page the navigator needs."""

    async def goto(self, url: str, timeout_ms: int) -> Optional[int]:
        """Navigate and return the main response status, or None."""
        ...

    async def title(self) -> str:
        ...


@dataclass(frozen=True)
class NavigationPolicy:
    """Attempt budget, timeouts and backoff for one navigation."""

    attempts: int = 3
    attempt_timeout_ms: int = 25000
    backoff_base_ms: int = 1200
    backoff_jitter_ms: int = 800
    soft_reset_url: Optional[str] = LINKEDIN_FEED_URL
    soft_reset_timeout_ms: int = 15000
    soft_reset_wait_ms: int = 800
    min_ok_status: int = 200
    max_ok_status: int = 399

    def __post_init__(self):
        if self.attempts < 1:
            raise ValueError("attempts must be at least 1")

    def _pause_ms(self) -> int:
        # fixed cost between two attempts, excluding the soft reset visit
        wait = self.soft_reset_wait_ms if self.soft_reset_url else 0
        return self.backoff_base_ms + self.backoff_jitter_ms + wait

    def _reset_ms(self) -> int:
        return self.soft_reset_timeout_ms if self.soft_reset_url else 0

    def worst_case_ms(self) -> int:
        """Longest time a full navigation can take when every attempt hangs."""
        gaps = self.attempts - 1
        return (
            self.attempts * self.attempt_timeout_ms
            + gaps * (self._pause_ms() + self._reset_ms())
        )

    def fit_within(self, budget_ms: int) -> "NavigationPolicy":
        """
        Policy whose worst case fits in ``budget_ms``.

        Backoff and settle waits are kept; attempt and soft reset timeouts are
        scaled down together. Returns ``self`` when it already fits.

        Raises:
            ValueError: If the budget cannot cover the fixed waits plus one
                millisecond per timeout
        """
        if self.worst_case_ms() <= budget_ms:
            return self

        gaps = self.attempts - 1
        available = budget_ms - gaps * self._pause_ms()
        elastic = self.attempts * self.attempt_timeout_ms + gaps * self._reset_ms()
        scale = available / elastic if available > 0 else 0.0

        attempt_timeout_ms = int(self.attempt_timeout_ms * scale)
        soft_reset_timeout_ms = int(self.soft_reset_timeout_ms * scale)
        if attempt_timeout_ms < 1 or (self.soft_reset_url and soft_reset_timeout_ms < 1):
            raise ValueError(
                f"Navigation budget of {budget_ms}ms is too small for "
                f"{self.attempts} attempts"
            )
        return replace(
            self,
            attempt_timeout_ms=attempt_timeout_ms,
            soft_reset_timeout_ms=soft_reset_timeout_ms,
        )


@dataclass
class NavigationOutcome:
    """Where the navigator ended up."""

    url: str
    status: int
    title: str
    attempts: int


class AttemptFailed(Exception):
    """One navigation attempt did not reach a usable state."""


def is_wall_title(title: str) -> bool:
    """Block-state heuristic: the page title shows a sign-in or auth wall."""
    lowered = (title or "").lower()
    return any(marker in lowered for marker in WALL_TITLE_MARKERS)


def linkedin_url_variants(raw_url: str) -> List[str]:
    """
    Address variants for a profile URL, primary first.

    The primary form carries a benign tracking parameter; the fallback is the
    mobile host.
    """
    try:
        parts = urlsplit(raw_url)
        if not parts.scheme or not parts.netloc:
            raise ValueError(raw_url)
        query = [(k, v) for k, v in parse_qsl(parts.query) if k != "trk"]
        query.append(("trk", "public_profile_nav"))
        primary = urlunsplit(parts._replace(query=urlencode(query)))
    except ValueError:
        primary = raw_url
    mobile = raw_url.replace("www.linkedin.com/in/", "m.linkedin.com/in/")
    return [primary, mobile]


class ResilientNavigator:
    """
    Reach a consumable page with bounded attempts, fallback addresses and jitter.

    Attempt ``i`` uses variant ``min(i, len(variants) - 1)``. Between attempts
    the navigator waits ``backoff_base_ms`` plus a random jitter and then visits
    a neutral page on the same site before retrying the real target.
    """

    def __init__(
        self,
        page: Page,
        policy: Optional[NavigationPolicy] = None,
        is_blocked: Callable[[str], bool] = is_wall_title,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
        rand: Callable[[], float] = random.random,
        logger: Optional[logging.Logger] = None,
    ):
        self.page = page
        self.policy = policy or NavigationPolicy()
        self.is_blocked = is_blocked
        self.sleep = sleep
        self.rand = rand
        self.logger = logger or logging.getLogger(__name__)

    def backoff_seconds(self) -> float:
        """Jittered pause before the next attempt."""
        policy = self.policy
        return (policy.backoff_base_ms + self.rand() * policy.backoff_jitter_ms) / 1000.0

    async def navigate(self, variants: Sequence[str]) -> NavigationOutcome:
        """
        Navigate to the first variant that yields a usable page.

        Raises:
            NavigationError: After ``policy.attempts`` failed attempts, naming
                the last observed error
        """
        if not variants:
            raise ValueError("At least one address variant is required")

        last_error: Optional[Exception] = None
        for attempt in range(self.policy.attempts):
            url = variants[min(attempt, len(variants) - 1)]
            try:
                outcome = await self._attempt(url, attempt + 1)
                self.logger.info(
                    f"Reached {url} on attempt {attempt + 1} (status {outcome.status})"
                )
                return outcome
            except Exception as e:
                last_error = e
                self.logger.warning(
                    f"Navigation attempt {attempt + 1}/{self.policy.attempts} "
                    f"to {url} failed: {e}"
                )

            if attempt + 1 < self.policy.attempts:
                await self.sleep(self.backoff_seconds())
                await self._soft_reset()

        raise NavigationError(
            f"Navigation failed after {self.policy.attempts} attempts: {last_error}",
            last_error=last_error,
        )

    async def _attempt(self, url: str, attempt: int) -> NavigationOutcome:
        timeout_s = self.policy.attempt_timeout_ms / 1000.0
        try:
            status = await asyncio.wait_for(
                self.page.goto(url, timeout_ms=self.policy.attempt_timeout_ms),
                timeout=timeout_s,
            )
        except asyncio.TimeoutError as e:
            raise AttemptFailed(
                f"Navigation to {url} timed out after {self.policy.attempt_timeout_ms}ms"
            ) from e

        if status is None or not (
            self.policy.min_ok_status <= status <= self.policy.max_ok_status
        ):
            raise AttemptFailed(f"Nav bad status {status or 'none'}")

        try:
            title = await self.page.title()
        except Exception:
            title = ""
        if self.is_blocked(title):
            raise AttemptFailed("Hit auth wall")

        return NavigationOutcome(url=url, status=status, title=title, attempts=attempt)

    async def _soft_reset(self) -> None:
        reset_url = self.policy.soft_reset_url
        if not reset_url:
            return
        try:
            await asyncio.wait_for(
                self.page.goto(reset_url, timeout_ms=self.policy.soft_reset_timeout_ms),
                timeout=self.policy.soft_reset_timeout_ms / 1000.0,
            )
        except Exception as e:
            self.logger.debug(f"Soft reset via {reset_url} failed: {e}")
        await self.sleep(self.policy.soft_reset_wait_ms / 1000.0)
