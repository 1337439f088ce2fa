from pathlib import Path
from pydantic import BaseModel
import os
from tick_loader import __version__
# Optionally load a config.env file for local development so thresholds and
# module locations can be tuned without exporting variables by hand.
try:
    from dotenv import load_dotenv
    # Allow explicit override of config file path
    cfg_override = os.getenv('TICK_LOADER_CONFIG_FILE')
    candidates = []
    if cfg_override:
        candidates.append(Path(cfg_override))

    candidates.append(Path.cwd() / 'config.env')
    candidates.append(Path.cwd() / 'backend' / 'config.env')

    for p in candidates:
        try:
            if p and p.exists():
                load_dotenv(str(p))
                break
        except OSError:
            continue
except ImportError:
    # python-dotenv missing: plain environment variables still apply
    pass

"""Central configuration.

Env vars:
  TICK_LOADER_LOG_LEVEL            - root log level (DEBUG, INFO, ...)
  TICK_LOADER_FETCH_THRESHOLD      - remaining budget required before fetching module bytes
  TICK_LOADER_ADMISSION_THRESHOLD  - remaining budget required before compile/instantiate/setup
  TICK_LOADER_MANIFEST             - default module manifest path
  TICK_LOADER_FETCH_TIMEOUT        - seconds allowed for remote module downloads
  TICK_LOADER_VERSION              - override reported version
"""

_diagnostics: list[str] = []


def _env_float(name: str, default: float) -> float:
    value = os.getenv(name)
    if value is None or not value.strip():
        return default
    try:
        return float(value)
    except ValueError:
        _diagnostics.append(f"invalid_float name={name} value={value!r} default={default}")
        return default


_manifest_env = os.getenv('TICK_LOADER_MANIFEST')
manifest_path = Path(_manifest_env) if _manifest_env else None
if manifest_path is not None:
    _diagnostics.append(f"manifest_from_env={manifest_path}")


class Settings(BaseModel):
    app_name: str = 'tick-loader'
    version: str = os.getenv('TICK_LOADER_VERSION', __version__)
    # Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
    log_level: str = os.getenv('TICK_LOADER_LOG_LEVEL', 'INFO')
    # Fetching bytes is cheap compared to compiling them, so it gets a lower bar
    fetch_threshold: float = _env_float('TICK_LOADER_FETCH_THRESHOLD', 500.0)
    # Compile and instantiate cannot be interrupted once started; only begin
    # them with generous headroom left in the bucket
    admission_threshold: float = _env_float('TICK_LOADER_ADMISSION_THRESHOLD', 1250.0)
    fetch_timeout: float = _env_float('TICK_LOADER_FETCH_TIMEOUT', 30.0)
    manifest_path: Path | None = manifest_path
    diagnostics: list[str] | None = _diagnostics

settings = Settings()
