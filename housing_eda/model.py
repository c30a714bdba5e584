"""
Model Training Module
=====================

Fits the three baseline models of the housing report.

Features:
    - Linear regression of median house value (statsmodels OLS with summary)
    - Classification tree predicting the high/low value class
    - Regression tree predicting median house value
    - Hyperparameter configuration via config file
    - Model persistence (save/load)
"""

import logging
from pathlib import Path
from typing import Dict, Any, Optional
from datetime import datetime

import numpy as np
import pandas as pd
import joblib
import statsmodels.api as sm
from sklearn.tree import DecisionTreeClassifier, DecisionTreeRegressor

logger = logging.getLogger(__name__)

DEFAULT_TREE_PARAMS = {
    'max_depth': 4,
    'min_samples_leaf': 20
}


class HousingModelSuite:
    """
    Linear regression, classification tree and regression tree fitted on the
    same feature matrix.
    """

    def __init__(
        self,
        classification_tree_params: Optional[Dict[str, Any]] = None,
        regression_tree_params: Optional[Dict[str, Any]] = None,
        random_state: int = 42
    ):
        """
        Initialize the suite with tree hyperparameters.

        Args:
            classification_tree_params: Keyword arguments for DecisionTreeClassifier
            regression_tree_params: Keyword arguments for DecisionTreeRegressor
            random_state: Random seed for both trees
        """
        self.classification_tree_params = {**DEFAULT_TREE_PARAMS, **(classification_tree_params or {})}
        self.regression_tree_params = {**DEFAULT_TREE_PARAMS, **(regression_tree_params or {})}
        self.random_state = random_state

        self.linear_model = None
        self.classification_tree: Optional[DecisionTreeClassifier] = None
        self.regression_tree: Optional[DecisionTreeRegressor] = None
        self.feature_names_: Optional[list] = None
        self.training_info: Dict[str, Any] = {}
        self._is_fitted = False

    def fit(
        self,
        X: pd.DataFrame,
        y: pd.Series,
        labels: pd.Series
    ) -> 'HousingModelSuite':
        """
        Fit all three models.

        Args:
            X: Feature matrix
            y: Median house value
            labels: High/low value class

        Returns:
            Self for method chaining
        """
        start_time = datetime.now()

        logger.info("=" * 60)
        logger.info("STARTING MODEL TRAINING")
        logger.info("=" * 60)
        logger.info(f"Training data shape: X={X.shape}, y={y.shape}")

        self.feature_names_ = list(X.columns)

        logger.info("Fitting linear regression (OLS)...")
        X_const = sm.add_constant(X, has_constant='add')
        self.linear_model = sm.OLS(np.asarray(y, dtype=float), X_const).fit()
        logger.info(f"  - R²: {self.linear_model.rsquared:.4f}")

        logger.info(f"Fitting classification tree: {self.classification_tree_params}")
        self.classification_tree = DecisionTreeClassifier(
            random_state=self.random_state,
            **self.classification_tree_params
        )
        self.classification_tree.fit(X, labels)
        logger.info(f"  - depth: {self.classification_tree.get_depth()}, "
                    f"leaves: {self.classification_tree.get_n_leaves()}")

        logger.info(f"Fitting regression tree: {self.regression_tree_params}")
        self.regression_tree = DecisionTreeRegressor(
            random_state=self.random_state,
            **self.regression_tree_params
        )
        self.regression_tree.fit(X, y)
        logger.info(f"  - depth: {self.regression_tree.get_depth()}, "
                    f"leaves: {self.regression_tree.get_n_leaves()}")

        end_time = datetime.now()
        training_duration = (end_time - start_time).total_seconds()

        self.training_info = {
            'training_duration_seconds': training_duration,
            'n_samples': X.shape[0],
            'n_features': X.shape[1],
            'trained_at': end_time.isoformat(),
            'linear_r2': float(self.linear_model.rsquared),
            'linear_adj_r2': float(self.linear_model.rsquared_adj),
            'classes': [str(c) for c in self.classification_tree.classes_],
            'hyperparameters': {
                'classification_tree': self.classification_tree_params,
                'regression_tree': self.regression_tree_params
            }
        }

        self._is_fitted = True

        logger.info("=" * 60)
        logger.info(f"MODEL TRAINING COMPLETE in {training_duration:.2f} seconds")
        logger.info("=" * 60)

        return self

    def _check_features(self, X: pd.DataFrame) -> None:
        if not self._is_fitted:
            raise ValueError("Models must be trained before prediction. Call fit() first.")

        if list(X.columns) != self.feature_names_:
            raise ValueError(
                f"Expected features {self.feature_names_}, but got {list(X.columns)}"
            )

    def predict_value(self, X: pd.DataFrame) -> Dict[str, np.ndarray]:
        """
        Predict median house value with both regression models.

        Args:
            X: Feature matrix

        Returns:
            Dictionary with 'linear_regression' and 'regression_tree' predictions
        """
        self._check_features(X)

        X_const = sm.add_constant(X, has_constant='add')
        return {
            'linear_regression': np.asarray(self.linear_model.predict(X_const)),
            'regression_tree': self.regression_tree.predict(X)
        }

    def predict_class(self, X: pd.DataFrame) -> np.ndarray:
        """
        Predict the high/low value class with the classification tree.

        Args:
            X: Feature matrix

        Returns:
            Array of class labels
        """
        self._check_features(X)
        return self.classification_tree.predict(X)

    def linear_summary(self) -> str:
        """Return the statsmodels coefficient summary of the linear model."""
        if not self._is_fitted:
            raise ValueError("Models must be trained first.")
        return str(self.linear_model.summary())

    def get_coefficients(self) -> pd.DataFrame:
        """
        Get linear regression coefficients with standard errors and p-values.

        Returns:
            DataFrame indexed by term
        """
        if not self._is_fitted:
            raise ValueError("Models must be trained first.")

        return pd.DataFrame({
            'coefficient': self.linear_model.params,
            'std_error': self.linear_model.bse,
            'p_value': self.linear_model.pvalues
        })

    def get_feature_importances(self) -> pd.DataFrame:
        """
        Get feature importances for both trees.

        Returns:
            DataFrame of shape (n_features, 2), sorted by regression tree importance
        """
        if not self._is_fitted:
            raise ValueError("Models must be trained first.")

        importances = pd.DataFrame({
            'classification_tree': self.classification_tree.feature_importances_,
            'regression_tree': self.regression_tree.feature_importances_
        }, index=self.feature_names_)

        return importances.sort_values('regression_tree', ascending=False)

    def save(self, filepath: str) -> None:
        """
        Save the trained models to disk.

        Args:
            filepath: Path to save the models
        """
        if not self._is_fitted:
            raise ValueError("Cannot save untrained models.")

        state = {
            'linear_model': self.linear_model,
            'classification_tree': self.classification_tree,
            'regression_tree': self.regression_tree,
            'hyperparameters': {
                'classification_tree_params': self.classification_tree_params,
                'regression_tree_params': self.regression_tree_params,
                'random_state': self.random_state
            },
            'feature_names_': self.feature_names_,
            'training_info': self.training_info,
            '_is_fitted': self._is_fitted
        }

        Path(filepath).parent.mkdir(parents=True, exist_ok=True)
        joblib.dump(state, filepath)
        logger.info(f"Models saved to {filepath}")

    @classmethod
    def load(cls, filepath: str) -> 'HousingModelSuite':
        """
        Load trained models from disk.

        Args:
            filepath: Path to the saved models

        Returns:
            Loaded HousingModelSuite instance
        """
        state = joblib.load(filepath)

        suite = cls(**state['hyperparameters'])
        suite.linear_model = state['linear_model']
        suite.classification_tree = state['classification_tree']
        suite.regression_tree = state['regression_tree']
        suite.feature_names_ = state['feature_names_']
        suite.training_info = state['training_info']
        suite._is_fitted = state['_is_fitted']

        logger.info(f"Models loaded from {filepath}")
        return suite


def train_models(
    X_train: pd.DataFrame,
    y_train: pd.Series,
    label_train: pd.Series,
    config: Dict[str, Any],
    save_path: Optional[str] = None
) -> HousingModelSuite:
    """
    Train the model suite using configuration parameters.

    Args:
        X_train: Training features
        y_train: Training house values
        label_train: Training value classes
        config: Configuration dictionary
        save_path: Path to save the trained models (optional)

    Returns:
        Trained HousingModelSuite
    """
    model_config = config.get('model', {})

    suite = HousingModelSuite(
        classification_tree_params=model_config.get('classification_tree', {}),
        regression_tree_params=model_config.get('regression_tree', {}),
        random_state=model_config.get('random_state', 42)
    )

    suite.fit(X_train, y_train, label_train)

    if save_path:
        suite.save(save_path)

    return suite


def print_model_summary(suite: HousingModelSuite) -> None:
    """
    Print a summary of the trained models.

    Args:
        suite: Trained model suite
    """
    print("\n" + "=" * 70)
    print("MODEL SUMMARY")
    print("=" * 70)
    print("\n[1] Linear Regression (OLS)")
    print("-" * 70)
    print(suite.linear_summary())

    print("\n[2] Classification Tree (value_class)")
    print("-" * 70)
    print(f"  - Depth: {suite.classification_tree.get_depth()}")
    print(f"  - Leaves: {suite.classification_tree.get_n_leaves()}")
    print(f"  - Hyperparameters: {suite.classification_tree_params}")

    print("\n[3] Regression Tree (median_house_value)")
    print("-" * 70)
    print(f"  - Depth: {suite.regression_tree.get_depth()}")
    print(f"  - Leaves: {suite.regression_tree.get_n_leaves()}")
    print(f"  - Hyperparameters: {suite.regression_tree_params}")

    print("\nTop feature importances:")
    print(suite.get_feature_importances().head(8).round(4).to_string())

    if suite.training_info:
        print(f"\nTraining duration: {suite.training_info.get('training_duration_seconds', 0):.2f}s "
              f"on {suite.training_info.get('n_samples', 'N/A')} samples")

    print("=" * 70 + "\n")
