"""
Test configuration and fixtures
"""
import sys
from pathlib import Path

# Add src to Python path
project_root = Path(__file__).parent.parent
src_path = project_root / "src"

sys.path.insert(0, str(src_path))

import pytest

from tokenledger.contracts.token import TokenFactory
from tokenledger.core.environment import Environment, ManualClock


@pytest.fixture
def clock():
    """Manual block clock starting at t=1000."""
    return ManualClock(1000)


@pytest.fixture
def env(clock):
    """Fresh environment driven by the manual clock."""
    return Environment(clock)


@pytest.fixture
def factory(env):
    return TokenFactory(env)
