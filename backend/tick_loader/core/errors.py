"""Fault taxonomy for the bootstrap and invocation loop.

Every fault the loop can see derives from ``LoaderFault``. The loop does not
branch on the kind; it only prints it. ``BudgetExhausted`` is deliberately not
an exception: a refused budget guard is an ordinary outcome that defers work to
the next invocation.
"""

from __future__ import annotations

from dataclasses import dataclass


class LoaderFault(Exception):
    kind: str = 'fault'

    def __init__(self, message: str, *, module: str | None = None) -> None:
        super().__init__(message)
        self.module = module

    def describe(self) -> str:
        if self.module:
            return f"{self.kind} module={self.module}: {self}"
        return f"{self.kind}: {self}"


class FetchFault(LoaderFault):
    kind = 'fetch'


class CompileFault(LoaderFault):
    kind = 'compile'


class InstantiationFault(LoaderFault):
    kind = 'instantiate'


class LoggingSetupFault(LoaderFault):
    kind = 'logging_setup'


class RuntimeFault(LoaderFault):
    kind = 'run_step'


class ManifestError(ValueError):
    """Raised for unusable module manifests, before any invocation runs."""


@dataclass(frozen=True, slots=True)
class BudgetExhausted:
    stage: str
    remaining: float
    required: float

    def describe(self) -> str:
        return f"{self.stage} deferred; {self.remaining:g} / {self.required:g} required budget"


def fault_kind(exc: BaseException) -> str:
    if isinstance(exc, LoaderFault):
        return exc.kind
    return type(exc).__name__
