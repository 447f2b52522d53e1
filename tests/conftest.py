import os
import sys

import pytest

# Ensure the project root is on the module search path when the project is not
# installed, so the flat modules import during test collection.
ROOT_DIR = os.path.dirname(os.path.dirname(__file__))
if ROOT_DIR not in sys.path:
    sys.path.insert(0, ROOT_DIR)

os.environ.setdefault("MPLBACKEND", "Agg")

from engine import SimulationContext  # noqa: E402
from fake_engine import FakeEngineFactory  # noqa: E402


@pytest.fixture(autouse=True)
def _release_context():
    """Never leak an open simulation context into the next test."""
    yield
    live = SimulationContext._live
    if live is not None:
        live.close()


@pytest.fixture
def engine_factory():
    return FakeEngineFactory()
