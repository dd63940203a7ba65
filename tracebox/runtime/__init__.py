"""Host scheduler and async lifecycle tracking."""

from .loop import AsyncHooks, AsyncKind, TracedEventLoop
from .tracker import AsyncHandle, AsyncLifecycleTracker

__all__ = [
    "AsyncHandle",
    "AsyncHooks",
    "AsyncKind",
    "AsyncLifecycleTracker",
    "TracedEventLoop",
]
