from __future__ import annotations

from typing import Any, Mapping


class HostContext:
    """Ambient context the host injects into every invocation.

    Subclasses wire these to the real host. ``store`` is a plain attribute: the
    store guard overwrites it at the start of each invocation.
    """

    name: str = 'host'
    invocation: int = 0
    store: Any = None

    def budget_remaining(self) -> float:
        raise NotImplementedError

    def budget_used(self) -> float:
        raise NotImplementedError

    def halt(self) -> None:
        """Ask the host to destroy the backing process."""
        raise NotImplementedError

    def notify(self, message: str) -> None:
        return None

    def imports(self) -> Mapping[str, Any]:
        return {}
