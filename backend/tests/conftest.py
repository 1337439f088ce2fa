import sys
import pathlib

import pytest

# Ensure backend root (containing 'tick_loader' package) is on sys.path
BACKEND_ROOT = pathlib.Path(__file__).resolve().parents[1]
if str(BACKEND_ROOT) not in sys.path:
    sys.path.insert(0, str(BACKEND_ROOT))

from tick_loader.core.logging_config import remove_error_reporter
from tests.fakes import FakeSource, ScriptedHost

PAYLOADS_DIR = BACKEND_ROOT / 'payloads'


@pytest.fixture(autouse=True)
def _drop_error_reporter():
    yield
    remove_error_reporter()


@pytest.fixture
def events():
    return []


@pytest.fixture
def host(events):
    return ScriptedHost(events=events)


@pytest.fixture
def source(events):
    return FakeSource(events)


@pytest.fixture
def counter_manifest() -> pathlib.Path:
    return PAYLOADS_DIR / 'counter' / 'module.yml'
