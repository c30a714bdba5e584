"""
Test Suite for EDA Module
=========================

Tests for bivariate classing, LOESS smoothing and the report figures.
"""

import pytest
import numpy as np
import pandas as pd
import matplotlib
matplotlib.use("Agg")
import matplotlib.pyplot as plt

import sys
from pathlib import Path
sys.path.insert(0, str(Path(__file__).parent.parent))

from housing_eda.eda import (
    assign_bivariate_classes, bivariate_palette, plot_bivariate_choropleth,
    plot_value_ridges, plot_loess, plot_correlation_matrix, generate_eda_report,
    BIVARIATE_CORNERS
)
from housing_eda.preprocessing import HousingPreprocessor


@pytest.fixture
def cleaned_df(housing_df):
    return HousingPreprocessor().fit_transform(housing_df)


@pytest.fixture(autouse=True)
def close_figures():
    yield
    plt.close('all')


class TestBivariateClasses:

    def test_labels_cover_grid(self):
        df = pd.DataFrame({'a': np.arange(90, dtype=float), 'b': np.arange(90, dtype=float)[::-1]})
        classes = assign_bivariate_classes(df, 'a', 'b', n_classes=3)

        # a ascending, b descending: only the anti-diagonal is populated
        assert set(classes.unique()) == {'1-3', '2-2', '3-1'}
        assert classes.value_counts().tolist() == [30, 30, 30]

    def test_quantile_bins_are_balanced(self, cleaned_df):
        classes = assign_bivariate_classes(cleaned_df, 'median_income', 'median_house_value')
        x_bins = classes.str.split('-').str[0].value_counts()

        assert set(x_bins.index) == {'1', '2', '3'}
        assert x_bins.max() - x_bins.min() <= 1
        assert classes.index.equals(cleaned_df.index)

    def test_invalid_class_count(self, cleaned_df):
        with pytest.raises(ValueError, match="at least 2"):
            assign_bivariate_classes(cleaned_df, 'median_income', 'median_house_value', n_classes=1)

    def test_palette(self):
        palette = bivariate_palette(3)

        assert len(palette) == 9
        assert palette['1-1'] == BIVARIATE_CORNERS[0]
        assert palette['3-1'] == BIVARIATE_CORNERS[1]
        assert palette['1-3'] == BIVARIATE_CORNERS[2]
        assert palette['3-3'] == BIVARIATE_CORNERS[3]


class TestPlots:

    def test_bivariate_choropleth_saves(self, cleaned_df, tmp_path):
        path = tmp_path / "map.png"
        fig, classes = plot_bivariate_choropleth(cleaned_df, save_path=str(path))

        assert path.exists()
        assert len(classes) == len(cleaned_df)

    def test_value_ridges_one_row_per_class(self, cleaned_df):
        fig = plot_value_ridges(cleaned_df)

        visible_axes = [ax for ax in fig.axes if ax.get_visible()]
        assert len(visible_axes) == cleaned_df['ocean_proximity'].nunique()

    def test_loess_returns_sorted_curve(self, cleaned_df):
        fig, smoothed = plot_loess(cleaned_df, sample_size=100)

        assert smoothed.shape == (100, 2)
        assert np.all(np.diff(smoothed[:, 0]) >= 0)

    def test_loess_follows_linear_trend(self):
        rng = np.random.default_rng(0)
        x = np.linspace(0, 10, 200)
        df = pd.DataFrame({'x': x, 'y': 2 * x + 1 + rng.normal(0, 0.01, len(x))})

        _, smoothed = plot_loess(df, x='x', y='y', sample_size=None)

        np.testing.assert_allclose(smoothed[:, 1], 2 * smoothed[:, 0] + 1, atol=0.05)

    def test_correlation_matrix_numeric_only(self, cleaned_df):
        _, corr = plot_correlation_matrix(cleaned_df)

        assert 'ocean_proximity' not in corr.columns
        assert 'value_class' not in corr.columns
        np.testing.assert_allclose(np.diag(corr.values), 1.0)

    def test_correlation_matrix_ordered_by_house_value(self, cleaned_df):
        _, corr = plot_correlation_matrix(cleaned_df)

        assert corr.columns[0] == 'median_house_value'
        assert list(corr.index) == list(corr.columns)
        assert corr['median_house_value'].is_monotonic_decreasing
        # house value is generated from income
        assert corr.columns[1] == 'median_income'


def test_generate_eda_report(cleaned_df, tmp_path):
    report = generate_eda_report(cleaned_df, output_dir=str(tmp_path), eda_config={'loess_sample': 150})

    assert len(report['figures']) == 5
    for name in report['figures']:
        assert (tmp_path / name).exists()

    assert sum(report['bivariate_counts'].values()) == len(cleaned_df)
    assert set(report['value_by_proximity']) == set(cleaned_df['ocean_proximity'].unique())
    assert 'median_house_value' in report['correlation_matrix']
