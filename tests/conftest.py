import sys
from pathlib import Path

import pytest

# Make the repo root importable without installing
ROOT_PATH = Path(__file__).resolve().parent.parent
if ROOT_PATH.as_posix() not in sys.path:
    sys.path.insert(0, ROOT_PATH.as_posix())

from pdcover.types import Instance  # noqa: E402


@pytest.fixture
def demo_instance():
    """The 5-element / 4-set reference example."""
    instance = Instance(5)
    instance.add_set(50, [0, 1])
    instance.add_set(2, [1, 2, 3])
    instance.add_set(3, [3, 4])
    instance.add_set(2, [4, 0])
    return instance


@pytest.fixture
def zero_cost_instance():
    instance = Instance(3)
    instance.add_set(0, [1])
    instance.add_set(5, [0, 1, 2])
    return instance


@pytest.fixture
def infeasible_instance():
    """Element 1 is in no set."""
    instance = Instance(3)
    instance.add_set(1, [0])
    instance.add_set(1, [2])
    return instance
