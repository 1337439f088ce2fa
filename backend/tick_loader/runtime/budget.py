from __future__ import annotations

import logging

from tick_loader.core.errors import BudgetExhausted
from tick_loader.host.base import HostContext

_log = logging.getLogger(__name__)


class BudgetOracle:
    """Read-only view of the host's per-invocation budget."""

    def __init__(self, host: HostContext) -> None:
        self._host = host

    def remaining(self) -> float:
        return float(self._host.budget_remaining())

    def used(self) -> float:
        return float(self._host.budget_used())

    def admit(self, stage: str, required: float) -> BudgetExhausted | None:
        """Return the shortfall when ``stage`` cannot start, else None."""
        remaining = self.remaining()
        if remaining < required:
            return BudgetExhausted(stage=stage, remaining=remaining, required=required)
        return None
