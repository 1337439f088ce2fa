"""Budget-gated staged loader for the heavy module.

Loading is split into four stages so that the expensive ones (compile and
instantiate) can each wait for an invocation with enough budget left:

    UNLOADED -> BYTES_FETCHED -> COMPILED -> INSTANTIATED -> LOGGING_READY

``step`` walks forward through as many stages as the budget admits in one
invocation. A refused guard leaves the current stage untouched so the same
stage is attempted again next invocation. Exceptions raised by the source are
not handled here; the invocation loop owns the fault scope.
"""

from __future__ import annotations

import logging
from typing import Any, Mapping

from tick_loader.core.config import settings
from tick_loader.modules.base import ModuleSource
from tick_loader.runtime.budget import BudgetOracle
from tick_loader.runtime.context import BootstrapState, ExecutionContext

_log = logging.getLogger(__name__)

_STAGE_NAMES = {
    BootstrapState.UNLOADED: 'fetch',
    BootstrapState.BYTES_FETCHED: 'compile',
    BootstrapState.COMPILED: 'instantiate',
    BootstrapState.INSTANTIATED: 'logging_setup',
}


class StagedLoader:
    def __init__(
        self,
        source: ModuleSource,
        context: ExecutionContext,
        *,
        fetch_threshold: float | None = None,
        admission_threshold: float | None = None,
    ) -> None:
        self.source = source
        self.context = context
        self.fetch_threshold = settings.fetch_threshold if fetch_threshold is None else fetch_threshold
        self.admission_threshold = (
            settings.admission_threshold if admission_threshold is None else admission_threshold
        )

    def threshold_for(self, state: BootstrapState) -> float:
        if state is BootstrapState.UNLOADED:
            return self.fetch_threshold
        return self.admission_threshold

    def step(self, oracle: BudgetOracle, imports: Mapping[str, Any] | None = None) -> BootstrapState:
        ctx = self.context
        if ctx.ready:
            return ctx.state
        while not ctx.ready:
            stage = _STAGE_NAMES[ctx.state]
            shortfall = oracle.admit(stage, self.threshold_for(ctx.state))
            if shortfall is not None:
                _log.warning("%s: %s", self.source.name, shortfall.describe())
                return ctx.state
            self._run_stage(ctx.state, imports or {})
            _log.debug("%s: %s complete, state=%s used=%g", self.source.name, stage, ctx.state.name, oracle.used())

        _log.info("%s: loading complete, budget used: %g", self.source.name, oracle.used())
        return ctx.state

    def _run_stage(self, state: BootstrapState, imports: Mapping[str, Any]) -> None:
        ctx = self.context
        if state is BootstrapState.UNLOADED:
            ctx.hold_bytes(self.source.fetch_bytes())
        elif state is BootstrapState.BYTES_FETCHED:
            ctx.hold_compiled(self.source.compile(ctx.blob))
        elif state is BootstrapState.COMPILED:
            ctx.hold_instance(self.source.instantiate(ctx.compiled, imports))
        elif state is BootstrapState.INSTANTIATED:
            setup = getattr(ctx.instance, 'logging_setup', None)
            if callable(setup):
                setup()
            ctx.mark_logging_ready()
