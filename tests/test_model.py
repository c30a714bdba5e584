"""
Test Suite for Model and Evaluation Modules
===========================================

Tests for the three-model suite and its evaluation metrics.
"""

import json

import pytest
import numpy as np
import pandas as pd
import matplotlib
matplotlib.use("Agg")

import sys
from pathlib import Path
sys.path.insert(0, str(Path(__file__).parent.parent))

from housing_eda.preprocessing import preprocess_pipeline, HIGH_LABEL, LOW_LABEL
from housing_eda.model import HousingModelSuite, train_models
from housing_eda.evaluation import (
    calculate_regression_metrics, calculate_classification_metrics, evaluate_models
)


@pytest.fixture
def prepared(housing_df):
    return preprocess_pipeline(housing_df, test_size=0.2, random_state=0)


@pytest.fixture
def suite(prepared):
    return HousingModelSuite(
        classification_tree_params={'max_depth': 3},
        regression_tree_params={'max_depth': 3, 'min_samples_leaf': 5}
    ).fit(prepared['X_train'], prepared['y_train'], prepared['label_train'])


class TestHousingModelSuite:

    def test_init_merges_defaults(self):
        suite = HousingModelSuite(regression_tree_params={'max_depth': 7})

        assert suite.regression_tree_params == {'max_depth': 7, 'min_samples_leaf': 20}
        assert suite.classification_tree_params == {'max_depth': 4, 'min_samples_leaf': 20}
        assert suite._is_fitted is False

    def test_predict_before_fit(self, prepared):
        with pytest.raises(ValueError, match="must be trained"):
            HousingModelSuite().predict_value(prepared['X_test'])

    def test_fit_respects_hyperparameters(self, suite):
        assert suite.classification_tree.get_depth() <= 3
        assert suite.regression_tree.get_depth() <= 3

    def test_predict_value(self, suite, prepared):
        predictions = suite.predict_value(prepared['X_test'])

        assert set(predictions) == {'linear_regression', 'regression_tree'}
        for values in predictions.values():
            assert values.shape == (len(prepared['X_test']),)

    def test_predict_class(self, suite, prepared):
        labels = suite.predict_class(prepared['X_test'])

        assert set(labels) <= {HIGH_LABEL, LOW_LABEL}

    def test_linear_model_captures_income_effect(self, suite):
        # house value is generated as 40000 * median_income + noise
        coefficients = suite.get_coefficients()

        assert 'const' in coefficients.index
        assert coefficients.loc['median_income', 'coefficient'] == pytest.approx(40000, rel=0.1)
        assert suite.training_info['linear_r2'] > 0.9
        assert 'OLS Regression Results' in suite.linear_summary()

    def test_wrong_columns_raise(self, suite, prepared):
        X = prepared['X_test'].drop(columns=['median_income'])

        with pytest.raises(ValueError, match="Expected features"):
            suite.predict_class(X)

    def test_feature_importances(self, suite, prepared):
        importances = suite.get_feature_importances()

        assert set(importances.columns) == {'classification_tree', 'regression_tree'}
        assert set(importances.index) == set(prepared['feature_names'])
        np.testing.assert_allclose(importances.sum().values, 1.0)
        assert importances.index[0] == 'median_income'

    def test_save_load(self, suite, prepared, tmp_path):
        path = tmp_path / "models" / "suite.joblib"
        suite.save(str(path))
        loaded = HousingModelSuite.load(str(path))

        np.testing.assert_allclose(
            loaded.predict_value(prepared['X_test'])['regression_tree'],
            suite.predict_value(prepared['X_test'])['regression_tree']
        )
        assert loaded.regression_tree_params == suite.regression_tree_params

    def test_save_untrained_raises(self, tmp_path):
        with pytest.raises(ValueError, match="untrained"):
            HousingModelSuite().save(str(tmp_path / "x.joblib"))


def test_train_models_from_config(prepared, tmp_path):
    config = {'model': {'random_state': 1, 'regression_tree': {'max_depth': 2}}}
    path = tmp_path / "suite.joblib"

    suite = train_models(
        prepared['X_train'], prepared['y_train'], prepared['label_train'],
        config, save_path=str(path)
    )

    assert suite.regression_tree.get_depth() <= 2
    assert suite.random_state == 1
    assert path.exists()


class TestMetrics:

    def test_perfect_regression(self):
        y = np.array([100.0, 200.0, 300.0])
        metrics = calculate_regression_metrics(y, y)

        assert metrics['rmse'] == 0.0
        assert metrics['mae'] == 0.0
        assert metrics['r2'] == 1.0
        assert metrics['n_samples'] == 3

    def test_regression_errors(self):
        metrics = calculate_regression_metrics(np.array([0.0, 0.0]), np.array([3.0, -3.0]))

        assert metrics['rmse'] == pytest.approx(3.0)
        assert metrics['mae'] == pytest.approx(3.0)
        assert metrics['mean_error'] == pytest.approx(0.0)

    def test_classification_metrics(self):
        y_true = pd.Series(['high', 'high', 'low', 'low'])
        y_pred = np.array(['high', 'low', 'low', 'low'])

        metrics = calculate_classification_metrics(y_true, y_pred)

        assert metrics['accuracy'] == pytest.approx(0.75)
        assert metrics['precision'] == pytest.approx(1.0)
        assert metrics['recall'] == pytest.approx(0.5)
        # rows: actual [low, high], columns: predicted [low, high]
        assert metrics['confusion_matrix'] == [[2, 0], [1, 1]]

    def test_classification_metrics_without_high_class(self):
        y_true = pd.Series(['low', 'low', 'low'])
        y_pred = np.array(['low', 'low', 'low'])

        metrics = calculate_classification_metrics(y_true, y_pred)

        assert metrics['accuracy'] == pytest.approx(1.0)
        assert metrics['precision'] == 0.0
        assert metrics['recall'] == 0.0
        assert metrics['f1'] == 0.0
        assert metrics['confusion_matrix'] == [[3, 0], [0, 0]]


def test_evaluate_models_writes_outputs(suite, prepared, tmp_path):
    result = evaluate_models(
        suite, prepared['X_test'], prepared['y_test'], prepared['label_test'],
        output_dir=str(tmp_path)
    )

    with open(result['metrics_file']) as f:
        saved = json.load(f)

    assert set(saved) == {'linear_regression', 'regression_tree', 'classification_tree'}
    assert saved['classification_tree']['n_samples'] == len(prepared['X_test'])
    assert Path(result['coefficients_file']).exists()
    for name in result['figures']:
        assert (tmp_path / "figures" / name).exists()
