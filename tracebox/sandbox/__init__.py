"""Sandboxed execution of instrumented programs.

:mod:`tracebox.sandbox.process` is not imported here since it depends on
:mod:`tracebox.session`; import it directly or use ``tracebox.ProcessSandbox``.
"""

from .capabilities import CapabilitySet, SandboxConsole, safe_builtins
from .environment import ExecutionEnvironment
from .hooks import TracerHooks
from .limits import (
    CEILING_MILLIS,
    EVENT_LIMIT,
    TIMEOUT_MILLIS,
    LimitChecker,
    RunState,
    RunStatus,
    RunTerminated,
)
from .supervisor import RunSupervisor

__all__ = [
    "CEILING_MILLIS",
    "CapabilitySet",
    "EVENT_LIMIT",
    "ExecutionEnvironment",
    "LimitChecker",
    "RunState",
    "RunStatus",
    "RunSupervisor",
    "RunTerminated",
    "SandboxConsole",
    "TIMEOUT_MILLIS",
    "TracerHooks",
    "safe_builtins",
]
