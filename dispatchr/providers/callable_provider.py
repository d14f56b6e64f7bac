"""Provider variant backed by plain callables.

Wraps an executor coroutine (and optionally a health probe) with a name and
a Capabilities description, so any backend client can take part in
selection and fallback without subclassing Provider.

Usage:
    async def call_backend(payload, options):
        text = await client.complete(payload)
        return ProviderResult.ok(text, confidence=0.9, cost=0.002)

    provider = CallableProvider(
        "fast-llm",
        Capabilities(cost_per_unit=0.00001, average_response_time=0.8),
        executor=call_backend,
    )
"""

import inspect
import time
from typing import Any, Awaitable, Callable, Dict, Optional, Union

from dispatchr.core.errors import ProviderExecutionError
from dispatchr.providers.base import Capabilities, HealthStatus, Provider, ProviderResult

Executor = Callable[[Any, Dict[str, Any]], Union[Awaitable[Any], Any]]
HealthProbe = Callable[[], Union[Awaitable[Any], Any]]


async def _maybe_await(value: Any) -> Any:
    if inspect.isawaitable(value):
        return await value
    return value


class CallableProvider(Provider):
    """Provider whose execution and health probe are injected callables.

    The executor may return a ProviderResult or a bare payload (wrapped as a
    successful result with no confidence). The health probe may return a
    HealthStatus or a bool. Without an executor, execute() raises
    ProviderExecutionError; catalog entries use this to describe backends
    whose clients are attached later.
    """

    def __init__(
        self,
        name: str,
        capabilities: Optional[Capabilities] = None,
        executor: Optional[Executor] = None,
        health_check: Optional[HealthProbe] = None,
        available: Union[bool, Callable[[], bool]] = True,
    ):
        if not name or not name.strip():
            raise ValueError("Provider name must be a non-empty string")
        self._name = name
        self._capabilities = capabilities or Capabilities()
        self._executor = executor
        self._health_check = health_check
        self._available = available

    @property
    def name(self) -> str:
        return self._name

    @property
    def capabilities(self) -> Capabilities:
        return self._capabilities

    @property
    def is_available(self) -> bool:
        if callable(self._available):
            return bool(self._available())
        return bool(self._available)

    @property
    def has_executor(self) -> bool:
        return self._executor is not None

    def attach_executor(self, executor: Executor) -> None:
        """Attach the backend call to a provider loaded without one."""
        self._executor = executor

    def set_available(self, available: Union[bool, Callable[[], bool]]) -> None:
        self._available = available

    async def execute(self, payload: Any, options: Optional[Dict[str, Any]] = None) -> ProviderResult:
        if self._executor is None:
            raise ProviderExecutionError(
                f"Provider '{self._name}' has no executor attached",
                provider=self._name,
            )

        start = time.perf_counter()
        raw = await _maybe_await(self._executor(payload, dict(options or {})))
        elapsed = time.perf_counter() - start

        if isinstance(raw, ProviderResult):
            result = raw
        else:
            result = ProviderResult.ok(raw)

        updates: Dict[str, Any] = {}
        if not result.provider_name:
            updates["provider_name"] = self._name
        if not result.duration:
            updates["duration"] = elapsed
        return result.with_updates(**updates) if updates else result

    async def check_health(self) -> HealthStatus:
        if self._health_check is None:
            if self.is_available:
                return HealthStatus.healthy(self._name)
            return HealthStatus.unhealthy(self._name, "Provider not available")

        start = time.perf_counter()
        outcome = await _maybe_await(self._health_check())
        elapsed = time.perf_counter() - start

        if isinstance(outcome, HealthStatus):
            return outcome
        if outcome:
            return HealthStatus.healthy(self._name, response_time=elapsed)
        return HealthStatus.unhealthy(self._name, "Health check reported unhealthy", response_time=elapsed)
