"""Run dispatcher coroutines from synchronous click commands."""

import asyncio
from typing import Any, Awaitable, Callable, Optional

Runner = Callable[[Awaitable[Any]], Any]


def _close_if_pending(awaitable: Any) -> None:
    if asyncio.iscoroutine(awaitable) and awaitable.cr_frame is not None:
        awaitable.close()


def run_async_command(coro, runner: Optional[Runner] = None, timeout: Optional[float] = None) -> Any:
    """Drive a coroutine to completion on a fresh event loop.

    Args:
        coro: Coroutine to run, e.g. dispatcher.get_service_health()
        runner: Replaces asyncio.run (tests pass a stub)
        timeout: Seconds before asyncio.TimeoutError; None waits forever

    Coroutines the runner never started are closed, so a stubbed runner
    leaves no "never awaited" warnings behind.
    """
    runner = runner or asyncio.run
    wrapped = asyncio.wait_for(coro, timeout) if timeout is not None else coro
    try:
        return runner(wrapped)
    finally:
        _close_if_pending(wrapped)
        _close_if_pending(coro)
