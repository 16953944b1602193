"""SEND_CONNECTION handler."""

import asyncio
from typing import Any, Awaitable, Callable, Dict, Optional

from linqbridge.browser import browser_session
from linqbridge.errors import NavigationError
from linqbridge.models import Job, utcnow
from linqbridge.navigator import (
    LINKEDIN_FEED_URL,
    NavigationPolicy,
    ResilientNavigator,
    linkedin_url_variants,
)
from linqbridge.registry import job_registry

SEND_CONNECTION = "SEND_CONNECTION"

WARM_UP_TIMEOUT_MS = 20000
WARM_UP_PAUSE_SECONDS = 1.2
SETTLE_PAUSE_SECONDS = 1.5
# Time kept free for the actuator after navigation
ACTUATOR_RESERVE_MS = 10000

Actuator = Callable[[Any, Dict[str, Any]], Awaitable[Optional[Dict[str, Any]]]]


def navigation_budget_ms(handler_timeout_seconds: float) -> int:
    """Part of the handler timeout left for the navigator."""
    fixed_ms = (
        WARM_UP_TIMEOUT_MS
        + (WARM_UP_PAUSE_SECONDS + SETTLE_PAUSE_SECONDS) * 1000
        + ACTUATOR_RESERVE_MS
    )
    return int(handler_timeout_seconds * 1000 - fixed_ms)


def fit_navigation_policy(
    policy: NavigationPolicy, handler_timeout_seconds: float
) -> NavigationPolicy:
    """
    Shrink ``policy`` so navigation always ends before the handler timeout.

    The navigator then reports its own terminal error after all attempts
    instead of being cancelled mid-attempt by the worker.
    """
    return policy.fit_within(navigation_budget_ms(handler_timeout_seconds))


async def visit_only(page, payload: Dict[str, Any]) -> Dict[str, Any]:
    """Default actuator: reaching the profile is the whole action."""
    return {"message": "Visited profile in real mode."}


def _timestamp() -> str:
    return utcnow().isoformat().replace("+00:00", "Z")


def _cookie_bundle(payload: Dict[str, Any]) -> Dict[str, Any]:
    bundle = dict(payload.get("cookieBundle") or {})
    # Older producers put li_at at the top level of the payload
    if not bundle.get("li_at") and payload.get("li_at"):
        bundle["li_at"] = payload["li_at"]
    return bundle


async def _warm_up(page, logger) -> None:
    try:
        await asyncio.wait_for(
            page.goto(LINKEDIN_FEED_URL, timeout_ms=WARM_UP_TIMEOUT_MS),
            timeout=WARM_UP_TIMEOUT_MS / 1000.0,
        )
    except Exception as e:
        logger.debug(f"Warm-up visit failed: {e}")


@job_registry.handler(SEND_CONNECTION)
async def send_connection(ctx: Dict[str, Any], job: Job) -> Dict[str, Any]:
    """
    Visit a profile and hand the page to the actuator.

    In soft mode no browser is launched and a synthetic success is returned.
    Real mode opens a hardened browser session, warms up on the feed, reaches
    the profile through the resilient navigator, and runs the actuator
    (``ctx["actuator"]``, default ``visit_only``). The session is closed on
    every exit path. The navigation policy is shrunk to fit inside the
    worker's handler timeout.

    Context overrides (mostly for tests): ``browser_session``,
    ``navigation_policy``, ``sleep``.
    """
    config = ctx["config"]
    logger = ctx["logger"]

    payload = job.payload
    if not isinstance(payload, dict):
        raise ValueError("Job has no payload")
    profile_url = payload.get("profileUrl")
    if not profile_url:
        raise ValueError("payload.profileUrl required")
    note = payload.get("note") or None

    if config.soft_mode:
        return {
            "mode": "soft",
            "profileUrl": profile_url,
            "noteUsed": note,
            "message": "Soft mode success (no browser launched).",
            "at": _timestamp(),
        }

    cookie_bundle = _cookie_bundle(payload)
    if not cookie_bundle.get("li_at"):
        raise ValueError("li_at cookie required in real mode")

    open_session = ctx.get("browser_session", browser_session)
    actuator: Actuator = ctx.get("actuator", visit_only)
    policy = fit_navigation_policy(
        ctx.get("navigation_policy") or NavigationPolicy(),
        config.handler_timeout_seconds,
    )
    sleep = ctx.get("sleep", asyncio.sleep)

    logger.info(f"[job {job.id}] SEND_CONNECTION start {profile_url}")
    try:
        async with open_session(cookie_bundle, headless=config.headless) as page:
            await _warm_up(page, logger)
            await sleep(WARM_UP_PAUSE_SECONDS)

            navigator = ResilientNavigator(page, policy, sleep=sleep, logger=logger)
            outcome = await navigator.navigate(linkedin_url_variants(profile_url))
            await sleep(SETTLE_PAUSE_SECONDS)

            action = await actuator(page, payload) or {}
    except Exception as e:
        raise NavigationError(f"REAL mode failed: {e}", last_error=e) from e

    result = {
        "mode": "real",
        "profileUrl": profile_url,
        "noteUsed": note,
        "httpStatus": outcome.status,
        "pageTitle": outcome.title,
        "navigationAttempts": outcome.attempts,
        "message": "Visited profile in real mode.",
        "at": _timestamp(),
    }
    result.update(action)
    logger.info(f"[job {job.id}] SEND_CONNECTION done")
    return result
