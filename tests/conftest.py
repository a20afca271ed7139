"""
Pytest configuration and shared fixtures.
"""

import pytest


@pytest.fixture
def paraboloid():
    """Bowl f = x² + y² with a minimum at the origin."""
    from surfcalc.core import compile_field
    return compile_field("x^2 + y^2")


@pytest.fixture
def saddle():
    """Saddle f = x² − y²."""
    from surfcalc.core import compile_field
    return compile_field("x^2 - y^2")


@pytest.fixture
def unit_disk():
    """Domain field h = x² + y² − 1 (admissible inside the unit disk)."""
    from surfcalc.core import compile_field
    return compile_field("x^2 + y^2 - 1", arity=2)
