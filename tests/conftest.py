"""Shared fixtures: a small synthetic table with the housing schema."""

import sys
from pathlib import Path

import matplotlib
matplotlib.use("Agg")

import numpy as np
import pandas as pd
import pytest

sys.path.insert(0, str(Path(__file__).parent.parent))

from housing_eda.data_loader import OCEAN_PROXIMITY_CLASSES


def make_housing_frame(n_samples: int = 300, missing_fraction: float = 0.1, seed: int = 42) -> pd.DataFrame:
    """Build a housing-like DataFrame with missing bedroom counts."""
    rng = np.random.default_rng(seed)

    households = rng.integers(50, 1500, n_samples).astype(float)
    total_rooms = households * rng.uniform(3, 7, n_samples)
    median_income = rng.uniform(0.5, 15, n_samples)

    df = pd.DataFrame({
        'longitude': rng.uniform(-124.3, -114.3, n_samples),
        'latitude': rng.uniform(32.5, 42.0, n_samples),
        'housing_median_age': rng.integers(1, 52, n_samples).astype(float),
        'total_rooms': total_rooms,
        'total_bedrooms': total_rooms * rng.uniform(0.15, 0.25, n_samples),
        'population': households * rng.uniform(2, 4, n_samples),
        'households': households,
        'median_income': median_income,
        'median_house_value': 40000 * median_income + rng.normal(0, 20000, n_samples) + 15000,
        'ocean_proximity': [OCEAN_PROXIMITY_CLASSES[i % 5] for i in range(n_samples)],
    })

    n_missing = int(n_samples * missing_fraction)
    missing_idx = rng.choice(n_samples, n_missing, replace=False)
    df.loc[missing_idx, 'total_bedrooms'] = np.nan

    return df


@pytest.fixture
def housing_df():
    """Raw housing DataFrame with ~10% missing bedroom counts."""
    return make_housing_frame()
