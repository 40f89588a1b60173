"""Pytest configuration for repository-relative imports and shared data."""

import os
import sys

import matplotlib
import pytest

ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))
if ROOT not in sys.path:
    sys.path.insert(0, ROOT)

matplotlib.use("Agg")

from edustats import datasets  # noqa: E402


@pytest.fixture
def blob_points():
    """Three well-separated Gaussian blobs, 30 points each."""
    return datasets.cluster_points(30, seed=7)


@pytest.fixture
def lab_sequences():
    return datasets.sequence_data(60, seed=11)
