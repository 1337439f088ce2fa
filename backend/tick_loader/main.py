"""Host-facing entry point.

The host imports this module once per backing process and calls ``loop(host)``
on every invocation. Module globals live exactly as long as the process, so
the lazily built ``InvocationLoop`` below disappears whenever the host
recycles it.
"""

from __future__ import annotations

import logging
import pathlib

from tick_loader.core.config import settings
from tick_loader.core.errors import ManifestError
from tick_loader.core.logging_config import install_error_reporter
from tick_loader.host.base import HostContext
from tick_loader.modules.manifest import load_manifest
from tick_loader.modules.source import PythonModuleSource
from tick_loader.runtime.loop import InvocationLoop
from tick_loader.runtime.store import EphemeralStoreGuard

_log = logging.getLogger(__name__)

_process: InvocationLoop | None = None
# Covers invocations that run before a process could be built
_fallback_store = EphemeralStoreGuard()


def build_process(manifest_path: str | pathlib.Path | None = None) -> InvocationLoop:
    path = manifest_path or settings.manifest_path
    if path is None:
        raise ManifestError("no module manifest configured (set TICK_LOADER_MANIFEST)")
    manifest = load_manifest(path)
    _log.info("bootstrapping module name=%s version=%s", manifest.name, manifest.version)
    return InvocationLoop(PythonModuleSource.from_manifest(manifest))


def loop(host: HostContext) -> None:
    global _process
    if _process is None:
        try:
            _process = build_process()
        except ManifestError as exc:
            _fallback_store.reset(host)
            install_error_reporter(host.notify)
            _log.error("cannot bootstrap module, will retry next invocation: %s", exc)
            return None
    _process(host)
    return None
