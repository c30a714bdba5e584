"""
Data Preprocessing Module
=========================

Cleans the housing table and prepares model inputs.

Functions:
    - impute_median: Replace missing values in a column with its median
    - HousingPreprocessor: Fitted imputation, value labelling and feature encoding
    - preprocess_pipeline: Clean, label, encode and split in one call
"""

import logging
from pathlib import Path
from typing import Dict, Any, Tuple, Optional, List, Sequence

import pandas as pd
import numpy as np
from sklearn.model_selection import train_test_split
import joblib

from .data_loader import CATEGORICAL_COLUMN, NUMERIC_COLUMNS, TARGET_COLUMN

logger = logging.getLogger(__name__)

LABEL_COLUMN = 'value_class'
HIGH_LABEL = 'high'
LOW_LABEL = 'low'


def impute_median(df: pd.DataFrame, column: str) -> Tuple[pd.DataFrame, float]:
    """
    Replace missing values in ``column`` with the median of its non-missing entries.

    Args:
        df: Input DataFrame (not modified)
        column: Column to impute

    Returns:
        Tuple of (cleaned copy, median used)
    """
    if df[column].notna().sum() == 0:
        raise ValueError(f"Cannot impute '{column}': all values are missing")

    median = float(df[column].median())
    cleaned = df.copy()
    cleaned[column] = cleaned[column].fillna(median)
    return cleaned, median


class HousingPreprocessor:
    """
    Cleaning and encoding pipeline for the housing table.

    Learns imputation medians, the high/low value threshold and the
    ocean proximity categories on ``fit`` so that the same rules can be
    applied to any frame with the housing schema.
    """

    def __init__(
        self,
        impute_columns: Sequence[str] = ('total_bedrooms',),
        test_size: float = 0.2,
        random_state: int = 42
    ):
        """
        Initialize the preprocessor.

        Args:
            impute_columns: Columns whose missing values are replaced by the median
            test_size: Fraction of rows held out for testing
            random_state: Seed for the train/test split
        """
        self.impute_columns = list(impute_columns)
        self.test_size = test_size
        self.random_state = random_state

        self.medians_: Dict[str, float] = {}
        self.value_threshold_: Optional[float] = None
        self.categories_: Optional[List[str]] = None
        self.feature_columns_: Optional[List[str]] = None
        self._is_fitted = False

    def fit(self, df: pd.DataFrame) -> 'HousingPreprocessor':
        """
        Learn imputation medians, value threshold and categories.

        Args:
            df: Raw housing DataFrame

        Returns:
            Self for method chaining
        """
        self.medians_ = {}
        for col in self.impute_columns:
            if df[col].notna().sum() == 0:
                raise ValueError(f"Cannot impute '{col}': all values are missing")
            self.medians_[col] = float(df[col].median())
            logger.info(f"Learned median for '{col}': {self.medians_[col]:.2f}")

        self.value_threshold_ = float(df[TARGET_COLUMN].median())
        self.categories_ = sorted(df[CATEGORICAL_COLUMN].dropna().astype(str).unique())

        self._is_fitted = True
        self.feature_columns_ = self._feature_names()
        return self

    def transform(self, df: pd.DataFrame) -> pd.DataFrame:
        """
        Impute missing values and add the high/low value label.

        Args:
            df: DataFrame to clean

        Returns:
            Cleaned copy of ``df`` with a ``value_class`` column
        """
        if not self._is_fitted:
            raise ValueError("Preprocessor must be fitted before transform. Call fit() first.")

        cleaned = df.copy()
        for col, median in self.medians_.items():
            n_missing = int(cleaned[col].isna().sum())
            if n_missing:
                logger.info(f"Imputing {n_missing} missing values in '{col}' with {median:.2f}")
            cleaned[col] = cleaned[col].fillna(median)

        cleaned[LABEL_COLUMN] = self.label_value(cleaned[TARGET_COLUMN])
        return cleaned

    def fit_transform(self, df: pd.DataFrame) -> pd.DataFrame:
        """Fit and transform in one step."""
        self.fit(df)
        return self.transform(df)

    def label_value(self, values: pd.Series) -> pd.Series:
        """
        Split house values into 'high' (strictly above the median) and 'low'.

        Args:
            values: Series of median house values

        Returns:
            Series of string labels aligned with ``values``
        """
        if self.value_threshold_ is None:
            raise ValueError("Preprocessor must be fitted before labelling.")
        if values.isna().any():
            raise ValueError(
                f"Cannot label {int(values.isna().sum())} rows with missing '{TARGET_COLUMN}'"
            )

        labels = np.where(values > self.value_threshold_, HIGH_LABEL, LOW_LABEL)
        return pd.Series(labels, index=values.index, name=LABEL_COLUMN)

    def _feature_names(self) -> List[str]:
        numeric = [col for col in NUMERIC_COLUMNS if col != TARGET_COLUMN]
        dummies = [f"{CATEGORICAL_COLUMN}_{cat}" for cat in self.categories_[1:]]
        return numeric + dummies

    def build_features(self, df: pd.DataFrame) -> pd.DataFrame:
        """
        Build the model feature matrix.

        Numeric columns (without the target) plus one-hot encoded ocean
        proximity using the fitted categories, first level dropped.

        Args:
            df: Cleaned DataFrame

        Returns:
            Float DataFrame with ``feature_columns_`` as columns
        """
        if not self._is_fitted:
            raise ValueError("Preprocessor must be fitted before building features.")

        numeric = [col for col in NUMERIC_COLUMNS if col != TARGET_COLUMN]
        categories = pd.Series(
            pd.Categorical(df[CATEGORICAL_COLUMN].astype(str), categories=self.categories_),
            index=df.index
        )
        dummies = pd.get_dummies(
            categories,
            prefix=CATEGORICAL_COLUMN,
            drop_first=True,
            dtype=float
        )

        features = pd.concat([df[numeric].astype(float), dummies], axis=1)
        return features[self.feature_columns_]

    def prepare_train_test_split(
        self,
        X: pd.DataFrame,
        y: pd.Series,
        labels: pd.Series
    ) -> Tuple[pd.DataFrame, pd.DataFrame, pd.Series, pd.Series, pd.Series, pd.Series]:
        """
        Randomly split features, target and labels into train and test sets.

        Args:
            X: Feature matrix
            y: Regression target
            labels: Classification labels

        Returns:
            Tuple of (X_train, X_test, y_train, y_test, label_train, label_test)
        """
        X_train, X_test, y_train, y_test, label_train, label_test = train_test_split(
            X, y, labels,
            test_size=self.test_size,
            random_state=self.random_state
        )

        logger.info(
            f"Train/Test split: {len(X_train)} train samples, {len(X_test)} test samples"
        )

        return X_train, X_test, y_train, y_test, label_train, label_test

    def save(self, filepath: str) -> None:
        """
        Save the preprocessor state to disk.

        Args:
            filepath: Path to save the preprocessor
        """
        state = {
            'impute_columns': self.impute_columns,
            'test_size': self.test_size,
            'random_state': self.random_state,
            'medians_': self.medians_,
            'value_threshold_': self.value_threshold_,
            'categories_': self.categories_,
            'feature_columns_': self.feature_columns_,
            '_is_fitted': self._is_fitted
        }
        joblib.dump(state, filepath)
        logger.info(f"Preprocessor saved to {filepath}")

    @classmethod
    def load(cls, filepath: str) -> 'HousingPreprocessor':
        """
        Load a preprocessor from disk.

        Args:
            filepath: Path to the saved preprocessor

        Returns:
            Loaded HousingPreprocessor instance
        """
        state = joblib.load(filepath)

        preprocessor = cls(
            impute_columns=state['impute_columns'],
            test_size=state['test_size'],
            random_state=state['random_state']
        )
        preprocessor.medians_ = state['medians_']
        preprocessor.value_threshold_ = state['value_threshold_']
        preprocessor.categories_ = state['categories_']
        preprocessor.feature_columns_ = state['feature_columns_']
        preprocessor._is_fitted = state['_is_fitted']

        logger.info(f"Preprocessor loaded from {filepath}")
        return preprocessor


def preprocess_pipeline(
    df: pd.DataFrame,
    impute_columns: Sequence[str] = ('total_bedrooms',),
    test_size: float = 0.2,
    random_state: int = 42,
    save_preprocessor: Optional[str] = None
) -> Dict[str, Any]:
    """
    Complete cleaning pipeline for the housing table.

    Args:
        df: Raw DataFrame
        impute_columns: Columns to impute with their median
        test_size: Fraction of rows held out for testing
        random_state: Seed for the split
        save_preprocessor: Path to save the fitted preprocessor

    Returns:
        Dictionary containing:
            - data: Cleaned DataFrame with value_class
            - X_train, X_test, y_train, y_test, label_train, label_test: Split datasets
            - preprocessor: Fitted HousingPreprocessor
            - feature_names: Names of model features
            - imputed_counts: Number of values imputed per column
    """
    logger.info("=" * 60)
    logger.info("STARTING DATA CLEANING")
    logger.info("=" * 60)

    preprocessor = HousingPreprocessor(
        impute_columns=impute_columns,
        test_size=test_size,
        random_state=random_state
    )

    imputed_counts = {col: int(df[col].isna().sum()) for col in preprocessor.impute_columns}
    data = preprocessor.fit_transform(df)

    X = preprocessor.build_features(data)
    y = data[TARGET_COLUMN]
    labels = data[LABEL_COLUMN]

    X_train, X_test, y_train, y_test, label_train, label_test = (
        preprocessor.prepare_train_test_split(X, y, labels)
    )

    if save_preprocessor:
        Path(save_preprocessor).parent.mkdir(parents=True, exist_ok=True)
        preprocessor.save(save_preprocessor)

    result = {
        'data': data,
        'X_train': X_train,
        'X_test': X_test,
        'y_train': y_train,
        'y_test': y_test,
        'label_train': label_train,
        'label_test': label_test,
        'preprocessor': preprocessor,
        'feature_names': list(preprocessor.feature_columns_),
        'imputed_counts': imputed_counts
    }

    logger.info("=" * 60)
    logger.info("CLEANING COMPLETE")
    logger.info(f"  Rows: {len(data)}")
    logger.info(f"  Imputed values: {imputed_counts}")
    logger.info(f"  Value threshold (median): {preprocessor.value_threshold_:.2f}")
    logger.info(f"  Features per sample: {X.shape[1]}")
    logger.info("=" * 60)

    return result


def print_preprocessing_summary(result: Dict[str, Any]) -> None:
    """
    Print a summary of the cleaning results.

    Args:
        result: Dictionary from preprocess_pipeline
    """
    preprocessor = result['preprocessor']
    counts = result['data'][LABEL_COLUMN].value_counts()

    print("\n" + "=" * 50)
    print("CLEANING SUMMARY")
    print("=" * 50)
    print(f"Rows: {len(result['data'])}")
    for col, n in result['imputed_counts'].items():
        print(f"Imputed '{col}': {n} values -> {preprocessor.medians_[col]:.2f}")
    print(f"\nValue threshold (median): {preprocessor.value_threshold_:,.2f}")
    print(f"  high: {counts.get(HIGH_LABEL, 0)} | low: {counts.get(LOW_LABEL, 0)}")
    print(f"\nTraining samples: {len(result['X_train'])}")
    print(f"Test samples: {len(result['X_test'])}")
    print(f"Features per sample: {result['X_train'].shape[1]}")
    print("=" * 50 + "\n")
