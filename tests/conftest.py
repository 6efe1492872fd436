"""
Shared fixtures for chart tests.
"""

import numpy as np
import pandas as pd
import pytest


@pytest.fixture
def sample_frame():
    """Thirty rows: two continuous numbers, a category, counts, two stages and dates."""
    n = 30
    rng = np.random.default_rng(7)
    return pd.DataFrame({
        "x": np.linspace(0.0, 29.0, n) + 0.5,
        "y": rng.normal(10.0, 2.0, n),
        "category": ["a", "b", "c"] * 10,
        "value": np.arange(1, n + 1),
        "stage1": ["start", "middle"] * 15,
        "stage2": ["middle", "end", "end"] * 10,
        "date": pd.date_range("2024-01-01", periods=n, freq="D"),
    })


@pytest.fixture
def sample_rows(sample_frame):
    """The sample table as JSON-friendly row objects."""
    frame = sample_frame.drop(columns=["date"])
    return frame.to_dict("records")
