"""Provider ranking, selection and fallback orchestration."""

from dispatchr.routing.models import (
    AttemptOutcome,
    AttemptRecord,
    DispatchResult,
    RequestDescriptor,
    Strategy,
)
from dispatchr.routing.orchestrator import FallbackOrchestrator, ServiceHealth, build_dispatcher
from dispatchr.routing.selector import ProviderSelector

__all__ = [
    "AttemptOutcome",
    "AttemptRecord",
    "DispatchResult",
    "FallbackOrchestrator",
    "ProviderSelector",
    "RequestDescriptor",
    "ServiceHealth",
    "Strategy",
    "build_dispatcher",
]
