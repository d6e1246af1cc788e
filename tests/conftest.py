"""
pytest configuration and shared fixtures.
"""

import logging

import numpy as np
import pytest


@pytest.fixture
def rng():
    """Seeded random number generator for reproducible tests."""
    return np.random.default_rng(42)


@pytest.fixture(autouse=True)
def _package_debug_logging(caplog):
    """Capture package logs at DEBUG so matrix dumps are exercised."""
    caplog.set_level(logging.DEBUG, logger="pyglmmpower")
    yield
