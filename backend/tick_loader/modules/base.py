from __future__ import annotations

from dataclasses import dataclass
from types import CodeType
from typing import Any, Mapping, Protocol, runtime_checkable


@dataclass(slots=True)
class CompiledModule:
    name: str
    code: CodeType
    filename: str


@runtime_checkable
class ModuleInstance(Protocol):
    name: str

    def logging_setup(self) -> None: ...

    def run_step(self) -> None: ...


class ModuleSource(Protocol):
    """What the staged loader needs from whoever builds the heavy module."""

    name: str

    def fetch_bytes(self) -> bytes: ...

    def compile(self, blob: bytes) -> Any: ...

    def instantiate(self, compiled: Any, imports: Mapping[str, Any]) -> ModuleInstance: ...
