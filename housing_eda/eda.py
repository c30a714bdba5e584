"""
Exploratory Data Analysis (EDA) Module
======================================

Produces the five report figures for the cleaned housing table.

Functions:
    - assign_bivariate_classes: Quantile classes for two variables combined
    - plot_bivariate_choropleth: Map of blocks coloured by a bivariate class
    - plot_value_ridges: Density ridges of house value per ocean proximity
    - plot_loess: Scatter plot with a LOESS smoother
    - plot_correlation_matrix: Correlation heatmap
    - plot_distributions: Histograms and KDE with normality tests
    - generate_eda_report: Full EDA report with all visualizations
"""

import logging
from pathlib import Path
from typing import Dict, Any, List, Optional, Tuple

import pandas as pd
import numpy as np
import matplotlib.pyplot as plt
from matplotlib.colors import to_hex, to_rgb
import seaborn as sns
from scipy import stats
from statsmodels.nonparametric.smoothers_lowess import lowess

from .data_loader import CATEGORICAL_COLUMN, TARGET_COLUMN

logger = logging.getLogger(__name__)

# Set style for all plots
plt.style.use('seaborn-v0_8-whitegrid')
sns.set_palette("husl")

# Corners of the bivariate palette: (low x, low y), (high x, low y), (low x, high y), (high x, high y)
BIVARIATE_CORNERS = ('#e8e8e8', '#c85a5a', '#64acbe', '#574249')


def assign_bivariate_classes(
    df: pd.DataFrame,
    x: str,
    y: str,
    n_classes: int = 3
) -> pd.Series:
    """
    Assign every row a combined quantile class for two variables.

    Each variable is cut into ``n_classes`` quantile bins (1 = lowest);
    the labels are combined as ``"<x bin>-<y bin>"``.

    Args:
        df: DataFrame containing both variables
        x: First variable (horizontal axis of the legend)
        y: Second variable (vertical axis of the legend)
        n_classes: Number of quantile bins per variable

    Returns:
        Series of combined class labels aligned with ``df``
    """
    if n_classes < 2:
        raise ValueError(f"n_classes must be at least 2, got {n_classes}")

    x_bin = pd.qcut(df[x], n_classes, labels=False, duplicates='drop') + 1
    y_bin = pd.qcut(df[y], n_classes, labels=False, duplicates='drop') + 1

    return (x_bin.astype('Int64').astype(str) + '-' + y_bin.astype('Int64').astype(str)).rename('bivariate_class')


def bivariate_palette(n_classes: int = 3) -> Dict[str, str]:
    """
    Build an n x n bivariate colour scheme by blending the four corner colours.

    Args:
        n_classes: Number of classes per variable

    Returns:
        Mapping of class label ("i-j") to hex colour
    """
    c00, c10, c01, c11 = (np.array(to_rgb(c)) for c in BIVARIATE_CORNERS)
    palette = {}
    for i in range(1, n_classes + 1):
        for j in range(1, n_classes + 1):
            u = (i - 1) / (n_classes - 1)
            v = (j - 1) / (n_classes - 1)
            rgb = (1 - u) * (1 - v) * c00 + u * (1 - v) * c10 + (1 - u) * v * c01 + u * v * c11
            palette[f"{i}-{j}"] = to_hex(rgb)
    return palette


def plot_bivariate_choropleth(
    df: pd.DataFrame,
    x: str = 'median_income',
    y: str = TARGET_COLUMN,
    n_classes: int = 3,
    figsize: Tuple[int, int] = (10, 10),
    save_path: Optional[str] = None
) -> Tuple[plt.Figure, pd.Series]:
    """
    Map housing blocks by longitude/latitude coloured by a bivariate class.

    Args:
        df: DataFrame with longitude, latitude and both variables
        x: First variable
        y: Second variable
        n_classes: Number of quantile bins per variable
        figsize: Figure size (width, height)
        save_path: Path to save the figure (optional)

    Returns:
        Tuple of (Figure, class labels)
    """
    classes = assign_bivariate_classes(df, x, y, n_classes)
    palette = bivariate_palette(n_classes)

    fig, ax = plt.subplots(figsize=figsize)
    ax.scatter(
        df['longitude'],
        df['latitude'],
        c=classes.map(palette).fillna('#bdbdbd'),
        s=6,
        alpha=0.8,
        linewidths=0
    )
    ax.set_xlabel('Longitude')
    ax.set_ylabel('Latitude')
    ax.set_aspect('equal', adjustable='datalim')
    ax.set_title(f'Bivariate Map: {x} × {y}', fontsize=14, fontweight='bold')

    # Legend grid in the upper right corner
    legend_ax = fig.add_axes([0.68, 0.62, 0.18, 0.18])
    grid = np.array([
        [to_rgb(palette[f"{i}-{j}"]) for i in range(1, n_classes + 1)]
        for j in range(1, n_classes + 1)
    ])
    legend_ax.imshow(grid, origin='lower')
    legend_ax.set_xticks([])
    legend_ax.set_yticks([])
    legend_ax.set_xlabel(f'{x} →', fontsize=8)
    legend_ax.set_ylabel(f'{y} →', fontsize=8)

    if save_path:
        plt.savefig(save_path, dpi=150, bbox_inches='tight')
        logger.info(f"Bivariate map saved to {save_path}")

    return fig, classes


def plot_value_ridges(
    df: pd.DataFrame,
    value: str = TARGET_COLUMN,
    group: str = CATEGORICAL_COLUMN,
    height: float = 1.2,
    aspect: float = 7.0,
    save_path: Optional[str] = None
) -> plt.Figure:
    """
    Density ridges of a value column, one ridge per group, ordered by median.

    Args:
        df: DataFrame with value and group columns
        value: Numeric column to estimate densities for
        group: Categorical column defining the ridges
        height: Height of each ridge
        aspect: Width-to-height ratio of each ridge
        save_path: Path to save the figure (optional)

    Returns:
        Matplotlib Figure object
    """
    order = df.groupby(group)[value].median().sort_values().index.tolist()
    palette = sns.color_palette("mako", n_colors=len(order))

    g = sns.FacetGrid(
        df,
        row=group,
        hue=group,
        row_order=order,
        hue_order=order,
        palette=palette,
        height=height,
        aspect=aspect,
        sharey=False
    )
    g.map(sns.kdeplot, value, fill=True, alpha=0.8, linewidth=1.2, bw_adjust=0.8, clip_on=False)
    g.map(sns.kdeplot, value, color='white', linewidth=1.5, bw_adjust=0.8, clip_on=False)
    g.refline(y=0, linewidth=1.5, linestyle='-', color='black', clip_on=False)

    for ax, label, color in zip(g.axes.flat, order, palette):
        ax.patch.set_alpha(0)
        ax.text(0, 0.2, label, fontweight='bold', color=color,
                ha='left', va='center', transform=ax.transAxes)

    g.figure.subplots_adjust(hspace=-0.3)
    g.set_titles("")
    g.set(yticks=[], ylabel="")
    g.despine(bottom=True, left=True)
    g.figure.suptitle(f'Distribution of {value} by {group}', fontsize=14, fontweight='bold')

    if save_path:
        g.figure.savefig(save_path, dpi=150, bbox_inches='tight')
        logger.info(f"Density ridges saved to {save_path}")

    return g.figure


def plot_loess(
    df: pd.DataFrame,
    x: str = 'median_income',
    y: str = TARGET_COLUMN,
    frac: float = 0.3,
    sample_size: Optional[int] = 5000,
    random_state: int = 42,
    figsize: Tuple[int, int] = (10, 6),
    save_path: Optional[str] = None
) -> Tuple[plt.Figure, np.ndarray]:
    """
    Scatter plot of two variables with a LOESS smoother.

    Args:
        df: DataFrame with both variables
        x: Explanatory variable
        y: Response variable
        frac: Fraction of points used for each local fit
        sample_size: Rows to sample for plotting and smoothing (None for all)
        random_state: Seed for sampling
        figsize: Figure size
        save_path: Path to save the figure

    Returns:
        Tuple of (Figure, smoothed curve as an array of (x, y) pairs)
    """
    data = df[[x, y]].dropna()
    if sample_size is not None and len(data) > sample_size:
        data = data.sample(n=sample_size, random_state=random_state)

    smoothed = lowess(data[y].values, data[x].values, frac=frac)

    fig, ax = plt.subplots(figsize=figsize)
    ax.scatter(data[x], data[y], s=8, alpha=0.3, label='Blocks')
    ax.plot(smoothed[:, 0], smoothed[:, 1], color='red', linewidth=2.5,
            label=f'LOESS (frac={frac})')

    ax.set_xlabel(x)
    ax.set_ylabel(y)
    ax.set_title(f'{y} vs {x} (n={len(data)})', fontsize=12, fontweight='bold')
    ax.legend(loc='upper left')

    plt.tight_layout()

    if save_path:
        plt.savefig(save_path, dpi=150, bbox_inches='tight')
        logger.info(f"LOESS plot saved to {save_path}")

    return fig, smoothed


def plot_correlation_matrix(
    df: pd.DataFrame,
    target: str = TARGET_COLUMN,
    method: str = 'pearson',
    figsize: Tuple[int, int] = (10, 8),
    save_path: Optional[str] = None
) -> Tuple[plt.Figure, pd.DataFrame]:
    """
    Correlation heatmap of the numeric housing columns.

    Rows and columns are ordered by their correlation with ``target``
    (strongest positive first), so the first column of the lower
    triangle reads as the house value drivers.

    Args:
        df: DataFrame with numerical data
        target: Column used to order the matrix (ignored if absent)
        method: Correlation method ('pearson', 'spearman', 'kendall')
        figsize: Figure size (width, height)
        save_path: Path to save the figure (optional)

    Returns:
        Tuple of (Figure, ordered correlation matrix DataFrame)
    """
    corr_matrix = df.select_dtypes(include=[np.number]).corr(method=method)
    if target in corr_matrix.columns:
        order = corr_matrix[target].sort_values(ascending=False).index
        corr_matrix = corr_matrix.loc[order, order]

    fig, ax = plt.subplots(figsize=figsize)

    mask = np.triu(np.ones_like(corr_matrix, dtype=bool), k=1)
    sns.heatmap(
        corr_matrix,
        mask=mask,
        annot=True,
        fmt='.2f',
        cmap='vlag',
        center=0,
        square=True,
        linewidths=0.5,
        cbar_kws={"shrink": 0.8, "label": f"{method.capitalize()} correlation"},
        ax=ax,
        vmin=-1,
        vmax=1
    )

    ax.set_title(f'Correlation with {target}', fontsize=14, fontweight='bold')
    plt.tight_layout()

    if save_path:
        plt.savefig(save_path, dpi=150, bbox_inches='tight')
        logger.info(f"Correlation matrix saved to {save_path}")

    return fig, corr_matrix


def plot_distributions(
    df: pd.DataFrame,
    columns: Optional[List[str]] = None,
    figsize: Tuple[int, int] = (14, 16),
    save_path: Optional[str] = None
) -> plt.Figure:
    """
    Create distribution plots (histogram + KDE) for numeric columns.

    Args:
        df: DataFrame with numerical data
        columns: Columns to plot (default: all numeric)
        figsize: Figure size
        save_path: Path to save the figure

    Returns:
        Matplotlib Figure object
    """
    if columns is None:
        columns = df.select_dtypes(include=[np.number]).columns.tolist()
    n_cols = len(columns)
    n_rows = (n_cols + 1) // 2

    fig, axes = plt.subplots(n_rows, 2, figsize=figsize, squeeze=False)
    axes = axes.flatten()

    for idx, col in enumerate(columns):
        ax = axes[idx]
        values = df[col].dropna()

        sns.histplot(values, kde=True, ax=ax, bins=50, alpha=0.7)

        mean_val = values.mean()
        median_val = values.median()
        ax.axvline(mean_val, color='red', linestyle='--', label=f'Mean: {mean_val:.2f}')
        ax.axvline(median_val, color='green', linestyle='--', label=f'Median: {median_val:.2f}')

        # normaltest needs at least 8 observations
        if len(values) >= 8:
            _, p_value = stats.normaltest(values)
            normality = "Normal" if p_value > 0.05 else "Non-Normal"
            ax.set_title(f'{col} ({normality}, p={p_value:.3f})', fontsize=10, fontweight='bold')
        else:
            ax.set_title(col, fontsize=10, fontweight='bold')
        ax.legend(fontsize=8)

    # Hide unused subplots
    for idx in range(len(columns), len(axes)):
        axes[idx].set_visible(False)

    plt.suptitle('Distribution Analysis', fontsize=14, fontweight='bold')
    plt.tight_layout()

    if save_path:
        plt.savefig(save_path, dpi=150, bbox_inches='tight')
        logger.info(f"Distribution plots saved to {save_path}")

    return fig


def generate_eda_report(
    df: pd.DataFrame,
    output_dir: str = "reports/figures/",
    eda_config: Optional[Dict[str, Any]] = None,
    show_plots: bool = False
) -> Dict[str, Any]:
    """
    Generate the complete EDA report with all visualizations.

    Args:
        df: Cleaned DataFrame to analyze
        output_dir: Directory to save figures
        eda_config: The ``eda`` section of the configuration (optional)
        show_plots: Whether to display plots interactively

    Returns:
        Dictionary containing EDA results and file paths
    """
    eda_config = eda_config or {}
    output_dir = Path(output_dir)
    output_dir.mkdir(parents=True, exist_ok=True)

    report = {
        "data_shape": df.shape,
        "columns": list(df.columns),
        "figures": [],
        "correlation_matrix": None,
        "bivariate_counts": {},
        "value_by_proximity": {},
        "statistics": {}
    }

    logger.info("=" * 60)
    logger.info("STARTING EXPLORATORY DATA ANALYSIS")
    logger.info("=" * 60)

    # 1. Bivariate choropleth
    logger.info("Generating bivariate map...")
    _, classes = plot_bivariate_choropleth(
        df,
        x=eda_config.get('bivariate_x', 'median_income'),
        y=eda_config.get('bivariate_y', TARGET_COLUMN),
        n_classes=eda_config.get('bivariate_classes', 3),
        save_path=str(output_dir / "01_bivariate_map.png")
    )
    report["figures"].append("01_bivariate_map.png")
    report["bivariate_counts"] = {str(k): int(v) for k, v in classes.value_counts().sort_index().items()}

    # 2. Density ridges
    logger.info("Estimating density ridges...")
    plot_value_ridges(
        df,
        save_path=str(output_dir / "02_value_ridges.png")
    )
    report["figures"].append("02_value_ridges.png")
    report["value_by_proximity"] = {
        str(k): float(v) for k, v in df.groupby(CATEGORICAL_COLUMN)[TARGET_COLUMN].median().items()
    }

    # 3. LOESS smoothing
    logger.info("Fitting LOESS smoother...")
    plot_loess(
        df,
        x=eda_config.get('loess_x', 'median_income'),
        y=eda_config.get('loess_y', TARGET_COLUMN),
        frac=eda_config.get('loess_frac', 0.3),
        sample_size=eda_config.get('loess_sample', 5000),
        save_path=str(output_dir / "03_loess.png")
    )
    report["figures"].append("03_loess.png")

    # 4. Correlation Matrix
    logger.info("Computing correlation matrix...")
    _, corr_matrix = plot_correlation_matrix(
        df,
        save_path=str(output_dir / "04_correlation_matrix.png")
    )
    report["figures"].append("04_correlation_matrix.png")
    report["correlation_matrix"] = corr_matrix.to_dict()

    # 5. Distributions
    logger.info("Plotting distributions...")
    plot_distributions(
        df,
        save_path=str(output_dir / "05_distributions.png")
    )
    report["figures"].append("05_distributions.png")

    for col in df.select_dtypes(include=[np.number]).columns:
        report["statistics"][col] = {
            "mean": float(df[col].mean()),
            "median": float(df[col].median()),
            "std": float(df[col].std()),
            "min": float(df[col].min()),
            "max": float(df[col].max()),
            "skew": float(df[col].skew())
        }

    if show_plots:
        plt.show()
    else:
        plt.close('all')

    logger.info("=" * 60)
    logger.info("EDA COMPLETE - All figures saved to: %s", output_dir)
    logger.info("=" * 60)

    return report


def print_correlation_insights(corr_matrix: pd.DataFrame, threshold: float = 0.5) -> None:
    """
    Print insights about strongly correlated variables.

    Args:
        corr_matrix: Correlation matrix DataFrame
        threshold: Correlation threshold for "strong" correlation
    """
    print("\n" + "=" * 50)
    print("CORRELATION INSIGHTS")
    print("=" * 50)

    strong_corr = []
    for i in range(len(corr_matrix.columns)):
        for j in range(i + 1, len(corr_matrix.columns)):
            corr_val = corr_matrix.iloc[i, j]
            if abs(corr_val) >= threshold:
                strong_corr.append({
                    "col1": corr_matrix.columns[i],
                    "col2": corr_matrix.columns[j],
                    "correlation": corr_val
                })

    if strong_corr:
        print(f"\nStrong correlations (|r| >= {threshold}):")
        for item in sorted(strong_corr, key=lambda x: abs(x["correlation"]), reverse=True):
            direction = "positive" if item["correlation"] > 0 else "negative"
            print(f"  • {item['col1']} ↔ {item['col2']}: {item['correlation']:.3f} ({direction})")
    else:
        print(f"\nNo strong correlations found (|r| >= {threshold})")

    if TARGET_COLUMN in corr_matrix.columns:
        print(f"\nCorrelation with {TARGET_COLUMN}:")
        target_corr = corr_matrix[TARGET_COLUMN].drop(TARGET_COLUMN).sort_values(ascending=False)
        for col, val in target_corr.items():
            print(f"  • {col}: {val:.3f}")

    print("=" * 50 + "\n")
