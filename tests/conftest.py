"""
Shared test configuration.

Puts the project root on sys.path so ``import mindboost`` works without an
install, and provides the fixed reference date every date-sensitive test uses.
"""

import os
import sys
from datetime import date

import pytest

_project_root = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))
if _project_root not in sys.path:
    sys.path.insert(0, _project_root)

from mindboost.config import EngineConfig  # noqa: E402


TODAY = date(2026, 3, 15)


@pytest.fixture
def today():
    return TODAY


@pytest.fixture
def cfg():
    return EngineConfig()
