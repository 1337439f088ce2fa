from __future__ import annotations

import logging
import time
from typing import Any, Callable, Dict, List, Mapping

from tick_loader.host.base import HostContext

_log = logging.getLogger(__name__)

Process = Callable[[HostContext], None]


class HostAbort(BaseException):
    """Raised inside an invocation to model the host killing it mid-way."""


class SimulatedHost(HostContext):
    """Local stand-in for a tick-driven host with a refilling budget bucket.

    Each invocation may spend up to the bucket. Unused budget up to ``limit``
    flows back into the bucket afterwards, capped at ``bucket_cap``. A halt
    request or an explicit ``recycle()`` replaces the process with a fresh one
    from ``process_factory`` before the next invocation.
    """

    name = 'simulated'

    def __init__(
        self,
        process_factory: Callable[[], Process],
        *,
        limit: float = 20.0,
        bucket: float = 10_000.0,
        bucket_cap: float = 10_000.0,
        schedule: Mapping[int, float] | None = None,
        imports: Mapping[str, Any] | None = None,
        clock: Callable[[], float] = time.process_time,
    ) -> None:
        self.process_factory = process_factory
        self.process: Process | None = None
        self.limit = float(limit)
        self.bucket = float(bucket)
        self.bucket_cap = float(bucket_cap)
        self.schedule: Dict[int, float] = dict(schedule or {})
        self.invocation = 0
        self.store = None
        self.processes_started = 0
        self.halts: List[int] = []
        self.aborts: List[int] = []
        self.notifications: List[str] = []
        self.last_used = 0.0
        self._extra_imports = dict(imports or {})
        self._clock = clock
        self._started_at: float | None = None
        self._halt_requested = False
        self._recycle_pending = False

    # --- HostContext -------------------------------------------------
    def budget_used(self) -> float:
        if self._started_at is None:
            return 0.0
        return max(0.0, (self._clock() - self._started_at) * 1000.0)

    def budget_remaining(self) -> float:
        return max(0.0, self.bucket - self.budget_used())

    def halt(self) -> None:
        self.halts.append(self.invocation)
        self._halt_requested = True

    def notify(self, message: str) -> None:
        self.notifications.append(message)

    def imports(self) -> Mapping[str, Any]:
        return {'game': self, **self._extra_imports}

    # --- driving -----------------------------------------------------
    def recycle(self) -> None:
        """Drop the current process before the next invocation."""
        self._recycle_pending = True

    def _start_process(self) -> None:
        self.process = self.process_factory()
        self.processes_started += 1
        self._recycle_pending = False
        _log.debug("started process #%d at invocation %d", self.processes_started, self.invocation + 1)

    def tick(self) -> None:
        if self.process is None or self._recycle_pending:
            self._start_process()
        self.invocation += 1
        if self.invocation in self.schedule:
            self.bucket = float(self.schedule[self.invocation])
        self._halt_requested = False
        self._started_at = self._clock()
        try:
            self.process(self)
        except HostAbort:
            self.aborts.append(self.invocation)
            _log.warning("invocation %d aborted by host", self.invocation)
        finally:
            used = self.budget_used()
            self._started_at = None
            self.last_used = used
            self.bucket = min(self.bucket_cap, max(0.0, self.bucket + self.limit - used))
            if self._halt_requested:
                self._recycle_pending = True

    def run(self, invocations: int) -> 'SimulatedHost':
        for _ in range(max(0, int(invocations))):
            self.tick()
        return self
