"""Execution tracer for untrusted Python programs."""

from .config import ConfigError, TracerConfig, load_config
from .sandbox.limits import RunStatus
from .sandbox.process import ProcessSandbox, SandboxResult
from .session import RunOutcome, TraceSession
from .trace import Event, EventKind
from .transforms import instrument

__all__ = [
    "ConfigError",
    "Event",
    "EventKind",
    "ProcessSandbox",
    "RunOutcome",
    "RunStatus",
    "SandboxResult",
    "TraceSession",
    "TracerConfig",
    "instrument",
    "load_config",
]

__version__ = "0.1.0"
