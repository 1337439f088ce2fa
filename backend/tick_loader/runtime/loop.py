from __future__ import annotations

import logging
from typing import Any, Dict, Mapping

from tick_loader.core.errors import fault_kind
from tick_loader.core.logging_config import install_error_reporter
from tick_loader.host.base import HostContext
from tick_loader.modules.base import ModuleSource
from tick_loader.runtime.budget import BudgetOracle
from tick_loader.runtime.context import BootstrapState, ExecutionContext
from tick_loader.runtime.loader import StagedLoader
from tick_loader.runtime.store import EphemeralStoreGuard

_log = logging.getLogger(__name__)


class InvocationLoop:
    """Per-invocation driver for one backing process.

    An instance is the process-wide state of a single process lifetime: the
    execution context, the bootstrap state, the fault flag and the store guard.
    When the host destroys the process it must build a new instance; nothing
    here is ever reset in place.

    Per invocation:
      - fault pending (or the previous invocation never finished): request
        destruction and do nothing else
      - otherwise reset the store, advance loading, and run the module once
        it is ready, inside a single fault scope
    """

    def __init__(
        self,
        source: ModuleSource,
        *,
        fetch_threshold: float | None = None,
        admission_threshold: float | None = None,
    ) -> None:
        self.source = source
        self.context = ExecutionContext()
        self.loader = StagedLoader(
            source,
            self.context,
            fetch_threshold=fetch_threshold,
            admission_threshold=admission_threshold,
        )
        self.store_guard = EphemeralStoreGuard()
        self.fault_pending = False
        self.halt_requested = False
        self.invocations = 0
        self.run_steps = 0
        # Set while the fault scope is open; still set on entry means the
        # host aborted the previous invocation mid-way.
        self._in_flight = False

    @property
    def state(self) -> BootstrapState:
        return self.context.state

    @property
    def in_flight(self) -> bool:
        return self._in_flight

    def module_imports(self, host: HostContext) -> Dict[str, Any]:
        imports: Dict[str, Any] = {
            'log': logging.getLogger(f"tick_loader.module.{self.source.name}"),
        }
        extra: Mapping[str, Any] = host.imports() or {}
        imports.update(extra)
        return imports

    def __call__(self, host: HostContext) -> None:
        self.invocations += 1
        if self.fault_pending or self._in_flight:
            if not self.fault_pending:
                _log.warning("%s: previous invocation did not complete; requesting halt", self.source.name)
            # Destroy-only invocation; the next one starts in a fresh process
            self.halt_requested = True
            host.halt()
            return None

        self.store_guard.reset(host)
        install_error_reporter(host.notify)
        oracle = BudgetOracle(host)

        self._in_flight = True
        try:
            if not self.context.ready:
                self.loader.step(oracle, self.module_imports(host))
            if self.context.ready:
                self.context.run_step()
                self.run_steps += 1
        except Exception as exc:
            # Halting now would drop this invocation's console output, so the
            # halt waits for the next invocation.
            self.fault_pending = True
            _log.error(
                "%s: caught %s fault in state %s, will halt next invocation: %s",
                self.source.name,
                fault_kind(exc),
                self.context.state.name,
                exc,
            )
            _log.debug("fault detail", exc_info=exc)
        self._in_flight = False
        return None
