"""Python payload collaborator: fetch, compile and instantiate a heavy module.

The payload is plain Python source. It may live in a file, inside a zip
archive, or behind an HTTP(S) URL. Compilation uses the builtin ``compile``.
Instantiation executes the code object into a fresh module namespace whose
globals are pre-seeded with the host-provided imports.
"""

from __future__ import annotations

import builtins
import logging
import pathlib
import types
import zipfile
from io import BytesIO
from typing import Any, Callable, Iterable, Mapping

import httpx

from tick_loader.core.config import settings
from tick_loader.core.errors import (
    CompileFault,
    FetchFault,
    InstantiationFault,
    LoggingSetupFault,
    RuntimeFault,
)
from tick_loader.modules.base import CompiledModule

_log = logging.getLogger(__name__)

DEFAULT_ENTRY = 'run_step'
DEFAULT_SETUP = 'logging_setup'


def _contained(exc: BaseException) -> bool:
    # Payload code calling sys.exit() or tripping KeyboardInterrupt must not
    # leave the invocation; GeneratorExit belongs to the interpreter
    return not isinstance(exc, GeneratorExit)


def _is_url(location: str | pathlib.Path) -> bool:
    text = str(location)
    return text.startswith('http://') or text.startswith('https://')


class PythonModuleInstance:
    def __init__(
        self,
        module: types.ModuleType,
        entry: Callable[[], Any],
        setup: Callable[[], Any] | None = None,
    ) -> None:
        self.module = module
        self.name = module.__name__
        self._entry = entry
        self._setup = setup

    @property
    def has_logging_setup(self) -> bool:
        return self._setup is not None

    def logging_setup(self) -> None:
        if self._setup is None:
            return
        try:
            self._setup()
        except BaseException as exc:
            if not _contained(exc):
                raise
            raise LoggingSetupFault(f"{type(exc).__name__}: {exc}", module=self.name) from exc

    def run_step(self) -> None:
        try:
            self._entry()
        except BaseException as exc:
            if not _contained(exc):
                raise
            raise RuntimeFault(f"{type(exc).__name__}: {exc}", module=self.name) from exc


class PythonModuleSource:
    def __init__(
        self,
        location: str | pathlib.Path,
        *,
        name: str | None = None,
        entry: str = DEFAULT_ENTRY,
        setup: str | None = DEFAULT_SETUP,
        required_imports: Iterable[str] = (),
        member: str | None = None,
        http_client: httpx.Client | None = None,
        timeout: float | None = None,
    ) -> None:
        if not str(location):
            raise ValueError("module location is required")
        self.location = location
        self.member = member
        self.name = name or self._default_name()
        self.entry = entry
        self.setup = setup
        self.required_imports = [str(n) for n in required_imports]
        self._http_client = http_client
        self._timeout = timeout if timeout is not None else settings.fetch_timeout

    @classmethod
    def from_manifest(cls, manifest, *, http_client: httpx.Client | None = None) -> 'PythonModuleSource':
        return cls(
            manifest.location,
            name=manifest.name,
            entry=manifest.entry,
            setup=manifest.setup,
            required_imports=manifest.imports,
            member=manifest.member,
            http_client=http_client,
        )

    def _default_name(self) -> str:
        raw = self.member or str(self.location).rstrip('/').rsplit('/', 1)[-1]
        stem = pathlib.PurePosixPath(raw).stem
        return stem or 'heavy_module'

    @property
    def filename(self) -> str:
        if self.member:
            return f"{self.location}!{self.member}"
        return str(self.location)

    # --- fetch -------------------------------------------------------
    def _download(self, url: str) -> bytes:
        if self._http_client is not None:
            response = self._http_client.get(url, timeout=self._timeout)
        else:
            response = httpx.get(url, timeout=self._timeout, follow_redirects=True)
        response.raise_for_status()
        return response.content

    def fetch_bytes(self) -> bytes:
        try:
            if _is_url(self.location):
                raw = self._download(str(self.location))
                if self.member:
                    with zipfile.ZipFile(BytesIO(raw)) as zf:
                        return zf.read(self.member)
                return raw
            path = pathlib.Path(self.location)
            if self.member:
                with zipfile.ZipFile(path) as zf:
                    return zf.read(self.member)
            return path.read_bytes()
        except (OSError, KeyError, zipfile.BadZipFile, httpx.HTTPError) as exc:
            raise FetchFault(f"cannot read {self.filename}: {exc}", module=self.name) from exc

    # --- compile -----------------------------------------------------
    def compile(self, blob: bytes) -> CompiledModule:
        try:
            source = blob.decode('utf-8')
        except UnicodeDecodeError as exc:
            raise CompileFault(f"module bytes are not UTF-8: {exc}", module=self.name) from exc
        try:
            code = builtins.compile(source, self.filename, 'exec')
        except (SyntaxError, ValueError) as exc:
            raise CompileFault(f"{type(exc).__name__}: {exc}", module=self.name) from exc
        return CompiledModule(name=self.name, code=code, filename=self.filename)

    # --- instantiate -------------------------------------------------
    def instantiate(self, compiled: CompiledModule, imports: Mapping[str, Any]) -> PythonModuleInstance:
        missing = [n for n in self.required_imports if n not in imports]
        if missing:
            raise InstantiationFault(f"unmet imports: {', '.join(sorted(missing))}", module=compiled.name)

        module = types.ModuleType(compiled.name)
        module.__file__ = compiled.filename
        module.__dict__.update(imports)
        try:
            exec(compiled.code, module.__dict__)
        except BaseException as exc:
            if not _contained(exc):
                raise
            raise InstantiationFault(f"{type(exc).__name__}: {exc}", module=compiled.name) from exc

        entry = module.__dict__.get(self.entry)
        if not callable(entry):
            raise InstantiationFault(f"entry point {self.entry}() not defined", module=compiled.name)
        setup = module.__dict__.get(self.setup) if self.setup else None
        if setup is not None and not callable(setup):
            _log.warning("module %s attribute %s is not callable; ignoring", compiled.name, self.setup)
            setup = None
        return PythonModuleInstance(module, entry, setup)
