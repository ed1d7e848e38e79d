"""
Shared test fixtures and helpers for Chan structure tests.
"""

import pytest

from helpers import make_bar, zigzag_bars  # noqa: F401


@pytest.fixture
def triangle_bars():
    """Contracting zigzag: six alternating fractals, five strokes, one open center."""
    return zigzag_bars([100, 120, 104, 116, 108, 112], symbol="TEST", interval="1m")
