# tests/conftest.py
import random
import sys
from pathlib import Path

import pytest

# Add project root to sys.path so the top-level modules import in tests
ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from sudoku_generator import generate_solved_grid  # noqa: E402


@pytest.fixture
def solved_grid():
    return generate_solved_grid(random.Random(1234))
