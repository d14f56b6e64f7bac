"""Tests for top-level package exports and CLI helpers."""

import asyncio

import pytest

import dispatchr
from dispatchr.cli.async_runner import run_async_command


class TestLazyExports:
    """Test lazy attribute resolution on the package."""

    def test_exports_resolve(self):
        for name in dispatchr.__all__:
            assert getattr(dispatchr, name) is not None

    def test_exported_types_match_modules(self):
        from dispatchr.routing.orchestrator import build_dispatcher

        assert dispatchr.build_dispatcher is build_dispatcher

    def test_unknown_attribute(self):
        with pytest.raises(AttributeError):
            dispatchr.does_not_exist


class TestRunAsyncCommand:
    """Test the CLI coroutine runner."""

    def test_runs_coroutine(self):
        async def answer():
            return 42

        assert run_async_command(answer()) == 42

    def test_closes_unconsumed_coroutine(self):
        async def never_run():
            return 1

        coro = never_run()
        assert run_async_command(coro, runner=lambda c: "mocked") == "mocked"
        assert coro.cr_frame is None

    def test_timeout_applied(self):
        async def slow():
            await asyncio.sleep(1)

        with pytest.raises(asyncio.TimeoutError):
            run_async_command(slow(), timeout=0.01)

    def test_timeout_not_hit(self):
        async def quick():
            return "done"

        assert run_async_command(quick(), timeout=5) == "done"

    def test_closes_unconsumed_coroutine_with_timeout(self):
        async def never_run():
            return 1

        coro = never_run()
        assert run_async_command(coro, runner=lambda c: "mocked", timeout=1) == "mocked"
        assert coro.cr_frame is None
