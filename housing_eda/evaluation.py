"""
Model Evaluation Module
=======================

Evaluation metrics and diagnostic plots for the three housing models.

Features:
    - RMSE, MAE, R² for the regression models
    - Accuracy, precision, recall, F1 and confusion matrix for the classification tree
    - Actual vs predicted and residual plots
    - Decision tree and feature importance plots
    - Evaluation report generation
"""

import logging
import json
from pathlib import Path
from typing import Dict, Any, List, Optional, Tuple

import numpy as np
import pandas as pd
import matplotlib.pyplot as plt
import seaborn as sns
from sklearn.metrics import (
    mean_squared_error, mean_absolute_error, r2_score,
    accuracy_score, precision_recall_fscore_support, confusion_matrix
)
from sklearn.tree import plot_tree

from .model import HousingModelSuite
from .preprocessing import HIGH_LABEL, LOW_LABEL

logger = logging.getLogger(__name__)

CLASS_ORDER = [LOW_LABEL, HIGH_LABEL]


def calculate_regression_metrics(y_true: np.ndarray, y_pred: np.ndarray) -> Dict[str, float]:
    """
    Calculate regression metrics.

    Args:
        y_true: Ground truth values
        y_pred: Predicted values

    Returns:
        Dictionary with rmse, mae, r2, mean_error and n_samples
    """
    y_true = np.asarray(y_true, dtype=float)
    y_pred = np.asarray(y_pred, dtype=float)

    return {
        'rmse': float(np.sqrt(mean_squared_error(y_true, y_pred))),
        'mae': float(mean_absolute_error(y_true, y_pred)),
        'r2': float(r2_score(y_true, y_pred)),
        'mean_error': float(np.mean(y_true - y_pred)),
        'n_samples': int(len(y_true))
    }


def calculate_classification_metrics(
    y_true: np.ndarray,
    y_pred: np.ndarray,
    positive_label: str = HIGH_LABEL
) -> Dict[str, Any]:
    """
    Calculate classification metrics for the high/low value class.

    Args:
        y_true: Ground truth labels
        y_pred: Predicted labels
        positive_label: Label treated as the positive class

    Returns:
        Dictionary with accuracy, precision, recall, f1 and confusion matrix
    """
    cm = confusion_matrix(y_true, y_pred, labels=CLASS_ORDER)

    # Explicit labels: small test splits may not contain the positive class
    precision, recall, f1, _ = precision_recall_fscore_support(
        y_true, y_pred, labels=[positive_label], average=None, zero_division=0
    )

    return {
        'accuracy': float(accuracy_score(y_true, y_pred)),
        'precision': float(precision[0]),
        'recall': float(recall[0]),
        'f1': float(f1[0]),
        'confusion_matrix': cm.tolist(),
        'labels': CLASS_ORDER,
        'n_samples': int(len(y_true))
    }


def plot_actual_vs_predicted(
    y_true: np.ndarray,
    predictions: Dict[str, np.ndarray],
    figsize: Tuple[int, int] = (14, 6),
    save_path: Optional[str] = None
) -> plt.Figure:
    """
    Create actual vs predicted scatter plots, one panel per regression model.

    Args:
        y_true: Ground truth values
        predictions: Mapping of model name to predicted values
        figsize: Figure size
        save_path: Path to save the figure

    Returns:
        Matplotlib Figure object
    """
    y_true = np.asarray(y_true, dtype=float)
    fig, axes = plt.subplots(1, len(predictions), figsize=figsize, squeeze=False)
    axes = axes.flatten()

    for ax, (name, y_pred) in zip(axes, predictions.items()):
        ax.scatter(y_true, y_pred, alpha=0.3, s=10)

        min_val = min(y_true.min(), np.min(y_pred))
        max_val = max(y_true.max(), np.max(y_pred))
        ax.plot([min_val, max_val], [min_val, max_val], 'r--', linewidth=2, label='Perfect')

        r2 = r2_score(y_true, y_pred)
        rmse = np.sqrt(mean_squared_error(y_true, y_pred))

        ax.set_xlabel('Actual')
        ax.set_ylabel('Predicted')
        ax.set_title(f'{name}\nR²={r2:.4f}, RMSE={rmse:,.0f}', fontsize=10, fontweight='bold')
        ax.legend(loc='upper left', fontsize=8)

    plt.suptitle('Actual vs Predicted - Median House Value', fontsize=14, fontweight='bold')
    plt.tight_layout()

    if save_path:
        plt.savefig(save_path, dpi=150, bbox_inches='tight')
        logger.info(f"Actual vs Predicted plot saved to {save_path}")

    return fig


def plot_residuals(
    y_true: np.ndarray,
    predictions: Dict[str, np.ndarray],
    figsize: Tuple[int, int] = (14, 6),
    save_path: Optional[str] = None
) -> plt.Figure:
    """
    Create residual distribution plots for the regression models.

    Args:
        y_true: Ground truth values
        predictions: Mapping of model name to predicted values
        figsize: Figure size
        save_path: Path to save the figure

    Returns:
        Matplotlib Figure object
    """
    y_true = np.asarray(y_true, dtype=float)
    fig, axes = plt.subplots(1, len(predictions), figsize=figsize, squeeze=False)
    axes = axes.flatten()

    for ax, (name, y_pred) in zip(axes, predictions.items()):
        residuals = y_true - np.asarray(y_pred, dtype=float)

        sns.histplot(residuals, kde=True, ax=ax, bins=50, alpha=0.7)

        ax.axvline(0, color='red', linestyle='--', linewidth=2, label='Zero')
        ax.axvline(np.mean(residuals), color='green', linestyle='--',
                   linewidth=2, label=f'Mean: {np.mean(residuals):,.0f}')

        ax.set_xlabel('Residual (Actual - Predicted)')
        ax.set_ylabel('Frequency')
        ax.set_title(f'{name} (Std: {np.std(residuals):,.0f})', fontsize=10, fontweight='bold')
        ax.legend(fontsize=8)

    plt.suptitle('Residual Analysis - Error Distribution', fontsize=14, fontweight='bold')
    plt.tight_layout()

    if save_path:
        plt.savefig(save_path, dpi=150, bbox_inches='tight')
        logger.info(f"Residuals plot saved to {save_path}")

    return fig


def plot_confusion_matrix(
    cm: List[List[int]],
    labels: List[str] = CLASS_ORDER,
    figsize: Tuple[int, int] = (6, 5),
    save_path: Optional[str] = None
) -> plt.Figure:
    """
    Plot the classification tree confusion matrix as a heatmap.

    Args:
        cm: Confusion matrix (rows: actual, columns: predicted)
        labels: Class labels in matrix order
        figsize: Figure size
        save_path: Path to save the figure

    Returns:
        Matplotlib Figure object
    """
    fig, ax = plt.subplots(figsize=figsize)

    sns.heatmap(
        np.asarray(cm),
        annot=True,
        fmt='d',
        cmap='Blues',
        xticklabels=labels,
        yticklabels=labels,
        cbar=False,
        ax=ax
    )
    ax.set_xlabel('Predicted')
    ax.set_ylabel('Actual')
    ax.set_title('Classification Tree - Confusion Matrix', fontsize=12, fontweight='bold')

    plt.tight_layout()

    if save_path:
        plt.savefig(save_path, dpi=150, bbox_inches='tight')
        logger.info(f"Confusion matrix saved to {save_path}")

    return fig


def plot_decision_tree(
    tree,
    feature_names: List[str],
    title: str,
    class_names: Optional[List[str]] = None,
    max_depth: Optional[int] = 3,
    figsize: Tuple[int, int] = (20, 10),
    save_path: Optional[str] = None
) -> plt.Figure:
    """
    Draw a fitted decision tree.

    Args:
        tree: Fitted DecisionTreeClassifier or DecisionTreeRegressor
        feature_names: Names of the input features
        title: Figure title
        class_names: Class names for classifiers
        max_depth: Maximum depth to draw (None for the full tree)
        figsize: Figure size
        save_path: Path to save the figure

    Returns:
        Matplotlib Figure object
    """
    fig, ax = plt.subplots(figsize=figsize)

    plot_tree(
        tree,
        feature_names=feature_names,
        class_names=class_names,
        max_depth=max_depth,
        filled=True,
        rounded=True,
        impurity=False,
        fontsize=8,
        ax=ax
    )
    ax.set_title(title, fontsize=14, fontweight='bold')

    if save_path:
        plt.savefig(save_path, dpi=150, bbox_inches='tight')
        logger.info(f"Decision tree plot saved to {save_path}")

    return fig


def plot_feature_importances(
    importances: pd.DataFrame,
    figsize: Tuple[int, int] = (12, 6),
    save_path: Optional[str] = None
) -> plt.Figure:
    """
    Bar chart of tree feature importances.

    Args:
        importances: DataFrame from HousingModelSuite.get_feature_importances
        figsize: Figure size
        save_path: Path to save the figure

    Returns:
        Matplotlib Figure object
    """
    fig, ax = plt.subplots(figsize=figsize)

    importances.plot.barh(ax=ax, width=0.8, alpha=0.8)
    ax.invert_yaxis()
    ax.set_xlabel('Importance')
    ax.set_title('Decision Tree Feature Importances', fontsize=14, fontweight='bold')

    plt.tight_layout()

    if save_path:
        plt.savefig(save_path, dpi=150, bbox_inches='tight')
        logger.info(f"Feature importance plot saved to {save_path}")

    return fig


def evaluate_models(
    suite: HousingModelSuite,
    X_test: pd.DataFrame,
    y_test: pd.Series,
    label_test: pd.Series,
    output_dir: str = "reports/",
    show_plots: bool = False
) -> Dict[str, Any]:
    """
    Run complete model evaluation and generate all reports.

    Args:
        suite: Trained model suite
        X_test: Test features
        y_test: Test house values
        label_test: Test value classes
        output_dir: Directory for output files
        show_plots: Whether to display plots interactively

    Returns:
        Dictionary containing metrics and file paths
    """
    output_dir = Path(output_dir)
    figures_dir = output_dir / "figures"
    metrics_dir = output_dir / "metrics"

    figures_dir.mkdir(parents=True, exist_ok=True)
    metrics_dir.mkdir(parents=True, exist_ok=True)

    logger.info("=" * 60)
    logger.info("STARTING MODEL EVALUATION")
    logger.info("=" * 60)

    logger.info("Calculating evaluation metrics...")
    value_predictions = suite.predict_value(X_test)
    class_predictions = suite.predict_class(X_test)

    metrics = {
        'linear_regression': calculate_regression_metrics(
            y_test, value_predictions['linear_regression']
        ),
        'regression_tree': calculate_regression_metrics(
            y_test, value_predictions['regression_tree']
        ),
        'classification_tree': calculate_classification_metrics(
            label_test, class_predictions
        )
    }

    metrics_file = metrics_dir / "evaluation_metrics.json"
    with open(metrics_file, 'w') as f:
        json.dump(metrics, f, indent=2)
    logger.info(f"Metrics saved to {metrics_file}")

    coefficients_file = metrics_dir / "linear_coefficients.csv"
    suite.get_coefficients().to_csv(coefficients_file, index_label='term')
    logger.info(f"Coefficients saved to {coefficients_file}")

    figures = []

    logger.info("Generating Actual vs Predicted plots...")
    plot_actual_vs_predicted(
        y_test, value_predictions,
        save_path=str(figures_dir / "eval_actual_vs_predicted.png")
    )
    figures.append("eval_actual_vs_predicted.png")

    logger.info("Generating residual analysis...")
    plot_residuals(
        y_test, value_predictions,
        save_path=str(figures_dir / "eval_residuals.png")
    )
    figures.append("eval_residuals.png")

    logger.info("Generating confusion matrix...")
    plot_confusion_matrix(
        metrics['classification_tree']['confusion_matrix'],
        save_path=str(figures_dir / "eval_confusion_matrix.png")
    )
    figures.append("eval_confusion_matrix.png")

    logger.info("Drawing decision trees...")
    plot_decision_tree(
        suite.classification_tree,
        suite.feature_names_,
        title='Classification Tree - value_class',
        class_names=[str(c) for c in suite.classification_tree.classes_],
        save_path=str(figures_dir / "eval_classification_tree.png")
    )
    figures.append("eval_classification_tree.png")

    plot_decision_tree(
        suite.regression_tree,
        suite.feature_names_,
        title='Regression Tree - median_house_value',
        save_path=str(figures_dir / "eval_regression_tree.png")
    )
    figures.append("eval_regression_tree.png")

    logger.info("Generating feature importances...")
    plot_feature_importances(
        suite.get_feature_importances(),
        save_path=str(figures_dir / "eval_feature_importances.png")
    )
    figures.append("eval_feature_importances.png")

    if show_plots:
        plt.show()
    else:
        plt.close('all')

    result = {
        'metrics': metrics,
        'figures': figures,
        'metrics_file': str(metrics_file),
        'coefficients_file': str(coefficients_file)
    }

    logger.info("=" * 60)
    logger.info("EVALUATION COMPLETE")
    logger.info(f"  Linear regression R²: {metrics['linear_regression']['r2']:.4f}")
    logger.info(f"  Regression tree R²: {metrics['regression_tree']['r2']:.4f}")
    logger.info(f"  Classification tree accuracy: {metrics['classification_tree']['accuracy']:.4f}")
    logger.info("=" * 60)

    return result


def print_evaluation_report(metrics: Dict[str, Any]) -> None:
    """
    Print a formatted evaluation report to console.

    Args:
        metrics: Metrics dictionary from evaluate_models
    """
    print("\n" + "=" * 70)
    print("MODEL EVALUATION REPORT")
    print("=" * 70)

    print("\nRegression Models (median_house_value):")
    print("-" * 70)
    print(f"{'Model':<22} {'RMSE':<14} {'MAE':<14} {'R²':<10}")
    print("-" * 70)

    for name in ('linear_regression', 'regression_tree'):
        m = metrics[name]
        print(f"{name:<22} {m['rmse']:<14,.2f} {m['mae']:<14,.2f} {m['r2']:<10.4f}")

    cls = metrics['classification_tree']
    print("\nClassification Tree (value_class):")
    print("-" * 70)
    print(f"  • Accuracy: {cls['accuracy']:.4f}")
    print(f"  • Precision ({HIGH_LABEL}): {cls['precision']:.4f}")
    print(f"  • Recall ({HIGH_LABEL}): {cls['recall']:.4f}")
    print(f"  • F1 ({HIGH_LABEL}): {cls['f1']:.4f}")
    print(f"\n  Confusion matrix (rows: actual, columns: predicted {cls['labels']}):")
    for label, row in zip(cls['labels'], cls['confusion_matrix']):
        print(f"    {label:<6} {row}")

    print("=" * 70 + "\n")
