"""Pytest configuration and fixtures."""

import asyncio
import os
from datetime import datetime, timedelta, timezone
from typing import Any, Callable, Dict, Iterable, List, Optional

import pytest

from dispatchr.core.settings import Settings
from dispatchr.providers.base import Capabilities, ProviderResult
from dispatchr.providers.callable_provider import CallableProvider


class FakeClock:
    """Manually advanced UTC clock for TTL tests."""

    def __init__(self, start: Optional[datetime] = None):
        self.now = start or datetime(2025, 1, 1, 12, 0, tzinfo=timezone.utc)

    def __call__(self) -> datetime:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now = self.now + timedelta(seconds=seconds)


class ScriptedBackend:
    """Executor that returns or raises a fixed outcome and counts calls."""

    def __init__(self, outcome: Any = None, delay: float = 0.0):
        self.outcome = outcome
        self.delay = delay
        self.calls: List[Any] = []

    async def __call__(self, payload: Any, options: Dict[str, Any]) -> Any:
        self.calls.append(payload)
        if self.delay:
            await asyncio.sleep(self.delay)
        if isinstance(self.outcome, BaseException):
            raise self.outcome
        return self.outcome

    @property
    def call_count(self) -> int:
        return len(self.calls)


class CountingProbe:
    """Health probe returning a fixed outcome and counting calls."""

    def __init__(self, outcome: Any = True):
        self.outcome = outcome
        self.calls = 0

    async def __call__(self):
        self.calls += 1
        if isinstance(self.outcome, BaseException):
            raise self.outcome
        return self.outcome


def build_provider(
    name: str,
    *,
    outcome: Any = None,
    confidence: Optional[float] = 0.9,
    cost: float = 0.0,
    cost_per_unit: float = 0.0,
    cost_per_request: float = 0.0,
    max_units: int = 4096,
    response_time: float = 1.0,
    features: Iterable[str] = (),
    available: bool = True,
    health: Any = None,
    delay: float = 0.0,
) -> CallableProvider:
    """Build a CallableProvider with a scripted backend.

    ``outcome`` defaults to a successful result with the given confidence
    and cost. Pass an exception to make the backend raise.
    """
    if outcome is None:
        outcome = ProviderResult.ok(f"{name} output", confidence=confidence, cost=cost)
    backend = ScriptedBackend(outcome, delay=delay)
    probe = CountingProbe(health) if health is not None else None
    provider = CallableProvider(
        name,
        Capabilities(
            cost_per_unit=cost_per_unit,
            cost_per_request=cost_per_request,
            max_units_per_request=max_units,
            average_response_time=response_time,
            features=features,
        ),
        executor=backend,
        health_check=probe,
        available=available,
    )
    provider.backend = backend
    provider.probe = probe
    return provider


@pytest.fixture
def make_provider() -> Callable[..., CallableProvider]:
    """Factory for scripted providers."""
    return build_provider


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def default_settings() -> Settings:
    """Default settings, isolated from files and environment."""
    return Settings()


@pytest.fixture(autouse=True)
def reset_settings_singleton():
    """Never leak a cached Settings instance between tests."""
    Settings.reset()
    yield
    Settings.reset()


@pytest.fixture
def temp_dir(tmp_path):
    """Provide temporary directory for tests."""
    return tmp_path


@pytest.fixture
def isolated_env(monkeypatch, tmp_path):
    """Run in an empty directory with no DISPATCHR_* variables or home config."""
    for key in list(os.environ):
        if key.startswith("DISPATCHR_"):
            monkeypatch.delenv(key, raising=False)
    monkeypatch.chdir(tmp_path)
    monkeypatch.setenv("HOME", str(tmp_path / "home"))
    monkeypatch.setenv("USERPROFILE", str(tmp_path / "home"))
    return tmp_path

