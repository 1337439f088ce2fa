from __future__ import annotations

import logging
import pathlib
from dataclasses import dataclass, field
from typing import Any, List, Optional

import yaml
from packaging import version as _v
from packaging.specifiers import InvalidSpecifier, SpecifierSet

from tick_loader.core.config import settings
from tick_loader.core.errors import ManifestError
from tick_loader.modules.source import DEFAULT_ENTRY, DEFAULT_SETUP

_log = logging.getLogger(__name__)

_DEV_TOKENS = ("dev", "local", "snapshot", "dirty")


@dataclass
class ModuleManifest:
    name: str
    version: str
    location: str
    member: str | None = None
    entry: str = DEFAULT_ENTRY
    setup: str | None = DEFAULT_SETUP
    imports: List[str] = field(default_factory=list)
    required_runtime: str | None = None
    path: pathlib.Path | None = None


def is_dev_version(value: Optional[str]) -> bool:
    """Return True if the provided version string represents a dev/local build."""
    if not value:
        return False
    lowered = value.strip().lower()
    if not lowered:
        return False
    if lowered.startswith("0.0.0"):
        return True
    return any(token in lowered for token in _DEV_TOKENS)


def runtime_satisfies(actual: Optional[str], requirement: Optional[str]) -> bool:
    """Evaluate whether *actual* satisfies a requirement like ``>=0.2, <1``."""
    if not requirement:
        return True
    if not actual:
        return False
    if is_dev_version(actual):  # dev builds bypass compatibility gates
        return True
    try:
        current = _v.parse(actual)
        spec = SpecifierSet(requirement.replace(' ', ''))
    except (_v.InvalidVersion, InvalidSpecifier):
        return False
    return spec.contains(current, prereleases=True)


def _string_list(raw: Any) -> List[str]:
    if raw is None:
        return []
    if isinstance(raw, str):
        raw = [raw]
    if not isinstance(raw, (list, tuple)):
        raise ManifestError(f"expected a list, got {type(raw).__name__}")
    cleaned: List[str] = []
    for item in raw:
        if item is None:
            continue
        text = str(item).strip()
        if text and text.lower() not in {"null", "none"}:
            cleaned.append(text)
    return cleaned


def parse_manifest(data: Any, *, base_dir: pathlib.Path | None = None) -> ModuleManifest:
    if not isinstance(data, dict):
        raise ManifestError("manifest must be a mapping")
    name = data.get('name')
    ver = data.get('version')
    location = data.get('location') or data.get('source')
    if not (name and ver and location):
        raise ManifestError("manifest missing one of: name, version, location")

    location = str(location)
    if base_dir is not None and '://' not in location:
        loc_path = pathlib.Path(location)
        if not loc_path.is_absolute():
            location = str(base_dir / loc_path)

    setup = data.get('setup', DEFAULT_SETUP)
    manifest = ModuleManifest(
        name=str(name),
        version=str(ver),
        location=location,
        member=str(data['member']) if data.get('member') else None,
        entry=str(data.get('entry') or DEFAULT_ENTRY),
        setup=str(setup) if setup else None,
        imports=_string_list(data.get('imports')),
        required_runtime=str(data['required_runtime']) if data.get('required_runtime') else None,
    )
    if not runtime_satisfies(settings.version, manifest.required_runtime):
        raise ManifestError(
            f"module {manifest.name} requires runtime {manifest.required_runtime}, running {settings.version}"
        )
    return manifest


def load_manifest(path: str | pathlib.Path) -> ModuleManifest:
    path = pathlib.Path(path)
    try:
        data = yaml.safe_load(path.read_text()) or {}
    except OSError as exc:
        raise ManifestError(f"cannot read manifest {path}: {exc}") from exc
    except yaml.YAMLError as exc:
        raise ManifestError(f"invalid YAML in {path}: {exc}") from exc
    manifest = parse_manifest(data, base_dir=path.resolve().parent)
    manifest.path = path
    _log.debug("loaded manifest name=%s version=%s location=%s", manifest.name, manifest.version, manifest.location)
    return manifest
