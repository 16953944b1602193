"""Unit tests for registry module."""

import pytest

from linqbridge.registry import JobRegistry, job_registry


@pytest.mark.asyncio
async def test_registry_handler_decorator():
    """Test registering handlers with decorator."""
    registry = JobRegistry()

    @registry.handler("SEND_CONNECTION")
    async def send(ctx, job):
        return {"ok": True}

    handler = registry.get_handler("SEND_CONNECTION")
    assert handler is send

    result = await handler({}, None)
    assert result == {"ok": True}


def test_registry_register_and_types():
    """Test registering multiple handlers."""
    registry = JobRegistry()

    async def first(ctx, job):
        return 1

    async def second(ctx, job):
        return 2

    registry.register("FIRST", first)
    registry.register("SECOND", second)

    assert registry.job_types() == ["FIRST", "SECOND"]
    assert registry.all_handlers() == {"FIRST": first, "SECOND": second}


def test_registry_nonexistent_handler():
    """Test getting nonexistent handler."""
    registry = JobRegistry()

    assert registry.get_handler("nonexistent") is None


def test_registry_all_handlers_is_a_copy():
    registry = JobRegistry()
    registry.all_handlers()["X"] = lambda ctx, job: None

    assert registry.get_handler("X") is None


def test_builtin_handlers_register_on_import():
    import linqbridge.handlers  # noqa: F401

    assert job_registry.get_handler("SEND_CONNECTION") is not None
