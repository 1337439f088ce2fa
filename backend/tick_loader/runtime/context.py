from __future__ import annotations

import enum
from typing import Any

from tick_loader.modules.base import ModuleInstance


class BootstrapState(enum.IntEnum):
    UNLOADED = 0
    BYTES_FETCHED = 1
    COMPILED = 2
    INSTANTIATED = 3
    LOGGING_READY = 4


class ExecutionContext:
    """Live handle to the heavy module for one backing process.

    Holds each intermediate representation only until the next stage consumes
    it. Nothing here survives a process recycle; a fresh context starts at
    ``UNLOADED``.
    """

    def __init__(self) -> None:
        self.state = BootstrapState.UNLOADED
        self.blob: bytes | None = None
        self.compiled: Any | None = None
        self.instance: ModuleInstance | None = None

    @property
    def ready(self) -> bool:
        return self.state is BootstrapState.LOGGING_READY

    def advance(self, target: BootstrapState) -> None:
        if target != self.state + 1:
            raise ValueError(f"cannot move bootstrap state from {self.state.name} to {target.name}")
        self.state = target

    def hold_bytes(self, blob: bytes) -> None:
        self.blob = blob
        self.advance(BootstrapState.BYTES_FETCHED)

    def hold_compiled(self, compiled: Any) -> None:
        self.compiled = compiled
        self.blob = None
        self.advance(BootstrapState.COMPILED)

    def hold_instance(self, instance: ModuleInstance) -> None:
        self.instance = instance
        self.compiled = None
        self.advance(BootstrapState.INSTANTIATED)

    def mark_logging_ready(self) -> None:
        self.advance(BootstrapState.LOGGING_READY)

    def run_step(self) -> None:
        if not self.ready or self.instance is None:
            raise RuntimeError(f"module not ready (state={self.state.name})")
        self.instance.run_step()

    def describe(self) -> dict[str, Any]:
        return {
            'state': self.state.name,
            'holds_bytes': self.blob is not None,
            'holds_compiled': self.compiled is not None,
            'module': getattr(self.instance, 'name', None),
        }
