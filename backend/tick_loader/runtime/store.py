from __future__ import annotations

from typing import Any

from tick_loader.host.base import HostContext


class EphemeralStore(dict):
    """In-memory stand-in for the host's persistent store.

    Anything written here is forgotten at the next invocation and never gets
    serialized by the host.
    """

    def __init__(self) -> None:
        super().__init__()
        self.writes = 0

    def __setitem__(self, key: Any, value: Any) -> None:
        self.writes += 1
        super().__setitem__(key, value)


class EphemeralStoreGuard:
    def __init__(self) -> None:
        self.current: EphemeralStore | None = None
        self.resets = 0

    def reset(self, host: HostContext) -> EphemeralStore:
        # Drop the previous stand-in before the host sees the new one
        self.current = None
        store = EphemeralStore()
        host.store = store
        self.current = store
        self.resets += 1
        return store
