"""
Data Loader Module
==================

Handles configuration, dataset download, CSV ingestion and validation.

Functions:
    - load_config: Load YAML configuration file
    - download_dataset: Fetch the remote housing CSV to a local file
    - load_data: Load CSV data from a local path or URL
    - validate_data: Check schema and data quality constraints
    - get_data_summary: Generate basic statistics
"""

import logging
from pathlib import Path
from typing import Dict, Any, Optional, Tuple, Union

import pandas as pd
import numpy as np
import requests
import yaml

logger = logging.getLogger(__name__)

NUMERIC_COLUMNS = [
    'longitude',
    'latitude',
    'housing_median_age',
    'total_rooms',
    'total_bedrooms',
    'population',
    'households',
    'median_income',
    'median_house_value',
]
CATEGORICAL_COLUMN = 'ocean_proximity'
TARGET_COLUMN = 'median_house_value'
REQUIRED_COLUMNS = NUMERIC_COLUMNS + [CATEGORICAL_COLUMN]

OCEAN_PROXIMITY_CLASSES = ['<1H OCEAN', 'INLAND', 'ISLAND', 'NEAR BAY', 'NEAR OCEAN']

DEFAULT_DATA_URL = (
    "https://raw.githubusercontent.com/ageron/handson-ml2/master/"
    "datasets/housing/housing.csv"
)


def load_config(config_path: str = "config/config.yaml") -> Dict[str, Any]:
    """
    Load configuration from YAML file.

    Args:
        config_path: Path to the configuration file

    Returns:
        Dictionary containing configuration parameters

    Raises:
        FileNotFoundError: If config file doesn't exist
        yaml.YAMLError: If config file is malformed
    """
    config_path = Path(config_path)

    if not config_path.exists():
        raise FileNotFoundError(f"Configuration file not found: {config_path}")

    with open(config_path, 'r') as f:
        config = yaml.safe_load(f) or {}

    logger.info(f"Loaded configuration from {config_path}")
    return config


def _is_url(source: Union[str, Path]) -> bool:
    return str(source).startswith(('http://', 'https://'))


def download_dataset(
    url: str = DEFAULT_DATA_URL,
    output_path: str = "data/raw/housing.csv",
    timeout: int = 30
) -> Path:
    """
    Download the housing CSV and write it to disk.

    Args:
        url: Remote location of the CSV file
        output_path: Local file to write
        timeout: Request timeout in seconds

    Returns:
        Path to the downloaded file

    Raises:
        RuntimeError: If the request fails or returns an error status
    """
    output_path = Path(output_path)
    logger.info(f"Fetching dataset: {url}")

    try:
        response = requests.get(url, timeout=timeout)
        response.raise_for_status()
    except requests.RequestException as e:
        logger.error(f"Error downloading dataset from {url}: {e}")
        raise RuntimeError(f"Failed to download dataset from {url}: {e}") from e

    if not response.content.strip():
        raise RuntimeError(f"Downloaded dataset from {url} is empty")

    output_path.parent.mkdir(parents=True, exist_ok=True)
    with open(output_path, 'wb') as f:
        f.write(response.content)

    logger.info(f"Dataset saved to {output_path} ({len(response.content) / 1024:.1f} KB)")
    return output_path


def load_data(
    source: Union[str, Path],
    download_path: str = "data/raw/housing.csv",
    timeout: int = 30
) -> pd.DataFrame:
    """
    Load the housing CSV from a local path or an http(s) URL.

    URLs are downloaded to ``download_path`` first and read from there.

    Args:
        source: Local CSV path or remote URL
        download_path: Where to store a downloaded file
        timeout: Request timeout in seconds for downloads

    Returns:
        DataFrame containing the loaded data

    Raises:
        FileNotFoundError: If a local data file doesn't exist
        RuntimeError: If a remote download fails
    """
    if _is_url(source):
        file_path = download_dataset(str(source), download_path, timeout=timeout)
    else:
        file_path = Path(source)

    if not file_path.exists():
        raise FileNotFoundError(f"Data file not found: {file_path}")

    df = pd.read_csv(file_path)
    logger.info(f"Loaded data from {file_path}: {df.shape[0]} rows × {df.shape[1]} columns")

    return df


def validate_data(df: pd.DataFrame, strict: bool = True) -> Tuple[bool, Dict[str, Any]]:
    """
    Validate the housing table against the expected schema.

    Checks:
        - All required columns are present (always fatal)
        - Target values are present (always fatal)
        - Numeric columns have numeric dtypes
        - Missing values
        - Duplicate rows
        - Unknown ocean proximity classes

    Args:
        df: DataFrame to validate
        strict: If True, raise errors on any validation failure

    Returns:
        Tuple of (is_valid, validation_report)

    Raises:
        ValueError: If required columns or target values are missing, or on any
            issue in strict mode
    """
    report = {
        "total_rows": len(df),
        "total_columns": len(df.columns),
        "column_names": list(df.columns),
        "issues": []
    }

    missing_columns = [col for col in REQUIRED_COLUMNS if col not in df.columns]
    if missing_columns:
        raise ValueError(
            f"Missing required columns: {missing_columns}. "
            f"Columns: {list(df.columns)}"
        )

    if df.empty:
        raise ValueError("Dataset contains no rows")

    # Rows without a target can be neither labelled nor used for training
    missing_target = int(df[TARGET_COLUMN].isnull().sum())
    if missing_target:
        raise ValueError(f"Missing values in target '{TARGET_COLUMN}': {missing_target} rows")

    # Check 1: Numeric columns
    non_numeric = [
        col for col in NUMERIC_COLUMNS
        if not pd.api.types.is_numeric_dtype(df[col])
    ]
    if non_numeric:
        issue = f"Non-numeric values in numeric columns: {non_numeric}"
        report["issues"].append(issue)
        logger.warning(issue)

    # Check 2: Missing values
    missing_counts = df[REQUIRED_COLUMNS].isnull().sum()
    total_missing = missing_counts.sum()
    if total_missing > 0:
        report["missing_by_column"] = {
            col: int(n) for col, n in missing_counts[missing_counts > 0].items()
        }
        issue = f"Missing values: {total_missing} in {list(report['missing_by_column'])}"
        report["issues"].append(issue)
        logger.warning(issue)

    # Check 3: Duplicate rows
    duplicates = df.duplicated().sum()
    if duplicates > 0:
        issue = f"Duplicate rows found: {duplicates}"
        report["issues"].append(issue)
        logger.warning(issue)

    # Check 4: Ocean proximity classes
    unknown = sorted(
        set(df[CATEGORICAL_COLUMN].dropna().unique()) - set(OCEAN_PROXIMITY_CLASSES)
    )
    if unknown:
        issue = f"Unknown {CATEGORICAL_COLUMN} classes: {unknown}"
        report["issues"].append(issue)
        logger.warning(issue)

    is_valid = len(report["issues"]) == 0
    report["is_valid"] = is_valid

    if strict and not is_valid:
        raise ValueError(f"Data validation failed: {report['issues']}")

    return is_valid, report


def get_data_summary(df: pd.DataFrame) -> Dict[str, Any]:
    """
    Generate summary statistics for the dataset.

    Args:
        df: DataFrame to summarize

    Returns:
        Dictionary containing summary statistics
    """
    summary = {
        "shape": df.shape,
        "columns": list(df.columns),
        "dtypes": df.dtypes.astype(str).to_dict(),
        "missing": {col: int(n) for col, n in df.isnull().sum().items()},
        "statistics": {},
        "categories": {}
    }

    for col in df.select_dtypes(include=[np.number]).columns:
        summary["statistics"][col] = {
            "count": int(df[col].count()),
            "mean": float(df[col].mean()),
            "std": float(df[col].std()),
            "min": float(df[col].min()),
            "25%": float(df[col].quantile(0.25)),
            "50%": float(df[col].quantile(0.50)),
            "75%": float(df[col].quantile(0.75)),
            "max": float(df[col].max())
        }

    if CATEGORICAL_COLUMN in df.columns:
        summary["categories"] = {
            str(k): int(v) for k, v in df[CATEGORICAL_COLUMN].value_counts().items()
        }

    return summary


def print_data_summary(df: pd.DataFrame) -> None:
    """
    Print a formatted summary of the dataset to console.

    Args:
        df: DataFrame to summarize
    """
    print("\n" + "=" * 60)
    print("DATASET SUMMARY")
    print("=" * 60)
    print(f"Shape: {df.shape[0]} rows × {df.shape[1]} columns")
    print(f"Memory Usage: {df.memory_usage(deep=True).sum() / 1024:.2f} KB")
    print("\nColumn Information:")
    print("-" * 40)

    for col in df.columns:
        dtype = df[col].dtype
        non_null = df[col].count()
        null_pct = (1 - non_null / len(df)) * 100
        print(f"  {col}: {dtype} | {non_null} non-null ({null_pct:.1f}% missing)")

    if CATEGORICAL_COLUMN in df.columns:
        print(f"\n{CATEGORICAL_COLUMN} counts:")
        print("-" * 40)
        print(df[CATEGORICAL_COLUMN].value_counts().to_string())

    print("\nBasic Statistics:")
    print("-" * 40)
    print(df.describe().round(4).to_string())
    print("=" * 60 + "\n")
