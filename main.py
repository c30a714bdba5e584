#!/usr/bin/env python3
"""
Housing EDA Report - Main Pipeline
==================================

Generates the exploratory report and baseline models for the California
housing dataset.

Phases:
    1. Clean - Median imputation and high/low value labelling
    2. EDA - Bivariate map, density ridges, LOESS, correlation, distributions
    3. Training - Linear regression, classification tree, regression tree
    4. Evaluation - Model metrics and diagnostic plots

Usage:
    # Run complete report (downloads the dataset configured in config.yaml)
    python main.py

    # Run with a local copy of the data
    python main.py --data data/raw/housing.csv

    # Run specific phase
    python main.py --phase eda
"""

import argparse
import logging
import sys
from pathlib import Path
from datetime import datetime
from typing import Dict, Any, Optional

import pandas as pd

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent))

from housing_eda.data_loader import (
    DEFAULT_DATA_URL, load_config, load_data, validate_data, print_data_summary
)
from housing_eda.eda import generate_eda_report, print_correlation_insights
from housing_eda.preprocessing import preprocess_pipeline, print_preprocessing_summary
from housing_eda.model import train_models, print_model_summary, HousingModelSuite
from housing_eda.evaluation import evaluate_models, print_evaluation_report


def setup_logging(level: str = "INFO") -> None:
    """Configure logging for the pipeline."""
    logging.basicConfig(
        level=getattr(logging, level.upper()),
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        handlers=[
            logging.StreamHandler(sys.stdout),
            logging.FileHandler(f'report_{datetime.now().strftime("%Y%m%d_%H%M%S")}.log')
        ]
    )


def load_housing_data(data_source: Optional[str], config: Dict[str, Any]) -> pd.DataFrame:
    """
    Load and validate the housing table.

    Args:
        data_source: Local path or URL (default: configured URL)
        config: Configuration dictionary

    Returns:
        Raw housing DataFrame
    """
    data_config = config.get('data', {})
    source = data_source or data_config.get('url', DEFAULT_DATA_URL)

    print("\n📊 Loading data...")
    df = load_data(
        source,
        download_path=data_config.get('raw_path', 'data/raw/housing.csv'),
        timeout=data_config.get('download_timeout', 30)
    )
    print_data_summary(df)

    is_valid, validation_report = validate_data(df, strict=False)
    if not is_valid:
        print("⚠️  Data validation warnings detected. Proceeding anyway...")
        for issue in validation_report['issues']:
            print(f"    - {issue}")

    return df


def run_cleaning(df: pd.DataFrame, config: Dict[str, Any]) -> Dict[str, Any]:
    """
    Execute Phase 1: Data Cleaning.

    Args:
        df: Raw data
        config: Configuration dictionary

    Returns:
        Preprocessing result dictionary
    """
    print("\n" + "=" * 70)
    print("PHASE 1: DATA CLEANING")
    print("=" * 70)

    prep_config = config.get('preprocessing', {})

    result = preprocess_pipeline(
        df,
        impute_columns=prep_config.get('impute_columns', ['total_bedrooms']),
        test_size=prep_config.get('test_size', 0.2),
        random_state=prep_config.get('random_state', 42),
        save_preprocessor=config.get('output', {}).get('preprocessor_path')
    )

    print_preprocessing_summary(result)

    return result


def run_eda(data: pd.DataFrame, config: Dict[str, Any]) -> Dict[str, Any]:
    """
    Execute Phase 2: Exploratory Data Analysis.

    Args:
        data: Cleaned data
        config: Configuration dictionary

    Returns:
        EDA report dictionary
    """
    print("\n" + "=" * 70)
    print("PHASE 2: EXPLORATORY DATA ANALYSIS")
    print("=" * 70)

    output_dir = config.get('output', {}).get('figures_path', 'reports/figures/')

    report = generate_eda_report(
        data,
        output_dir=output_dir,
        eda_config=config.get('eda', {}),
        show_plots=False
    )

    corr_df = pd.DataFrame(report["correlation_matrix"])
    print_correlation_insights(corr_df)

    print(f"\n✓ EDA complete. {len(report['figures'])} figures saved to {output_dir}")

    return report


def run_training(prep_result: Dict[str, Any], config: Dict[str, Any]) -> HousingModelSuite:
    """
    Execute Phase 3: Model Training.

    Args:
        prep_result: Preprocessing result dictionary
        config: Configuration dictionary

    Returns:
        Trained model suite
    """
    print("\n" + "=" * 70)
    print("PHASE 3: MODEL TRAINING")
    print("=" * 70)

    model_path = config.get('output', {}).get('model_path', 'models/housing_models.joblib')

    suite = train_models(
        prep_result['X_train'],
        prep_result['y_train'],
        prep_result['label_train'],
        config,
        save_path=model_path
    )

    print_model_summary(suite)

    return suite


def run_evaluation(
    suite: HousingModelSuite,
    prep_result: Dict[str, Any],
    config: Dict[str, Any]
) -> Dict[str, Any]:
    """
    Execute Phase 4: Model Evaluation.

    Args:
        suite: Trained model suite
        prep_result: Preprocessing result dictionary
        config: Configuration dictionary

    Returns:
        Evaluation result dictionary
    """
    print("\n" + "=" * 70)
    print("PHASE 4: MODEL EVALUATION")
    print("=" * 70)

    output_dir = config.get('output', {}).get('reports_path', 'reports/')

    result = evaluate_models(
        suite,
        prep_result['X_test'],
        prep_result['y_test'],
        prep_result['label_test'],
        output_dir=output_dir,
        show_plots=False
    )

    print_evaluation_report(result['metrics'])

    return result


def run_full_pipeline(
    data_source: Optional[str] = None,
    config_path: str = "config/config.yaml",
    log_level: Optional[str] = None
) -> Dict[str, Any]:
    """
    Execute the complete report.

    Args:
        data_source: Path or URL of the input CSV (default: configured URL)
        config_path: Path to configuration file
        log_level: Overrides logging.level from the config

    Returns:
        Dictionary containing all phase results
    """
    print("\n" + "=" * 70)
    print("HOUSING EDA REPORT")
    print(f"Started at: {datetime.now().strftime('%Y-%m-%d %H:%M:%S')}")
    print("=" * 70)

    config = load_config(config_path)
    setup_logging(log_level or config.get('logging', {}).get('level', 'INFO'))

    df = load_housing_data(data_source, config)

    results = {
        'config': config,
        'data_shape': df.shape
    }

    results['cleaning'] = run_cleaning(df, config)
    results['eda'] = run_eda(results['cleaning']['data'], config)
    results['models'] = run_training(results['cleaning'], config)
    results['evaluation'] = run_evaluation(results['models'], results['cleaning'], config)

    metrics = results['evaluation']['metrics']
    print("\n" + "=" * 70)
    print("REPORT COMPLETE")
    print("=" * 70)
    print(f"  • Input data: {df.shape[0]} rows × {df.shape[1]} columns")
    print(f"  • Linear regression R²: {metrics['linear_regression']['r2']:.4f}")
    print(f"  • Regression tree R²: {metrics['regression_tree']['r2']:.4f}")
    print(f"  • Classification tree accuracy: {metrics['classification_tree']['accuracy']:.4f}")
    print(f"  • Figures: {len(results['eda']['figures']) + len(results['evaluation']['figures'])}")
    print(f"Completed at: {datetime.now().strftime('%Y-%m-%d %H:%M:%S')}")
    print("=" * 70 + "\n")

    return results


def run_single_phase(
    phase: str,
    data_source: Optional[str] = None,
    config_path: str = "config/config.yaml",
    log_level: Optional[str] = None
) -> Dict[str, Any]:
    """
    Execute a single phase of the report.

    Phases after cleaning always run cleaning first, since every later
    step reads the cleaned table.

    Args:
        phase: Phase to run ('clean', 'eda', 'train', 'evaluate')
        data_source: Path or URL of the input CSV
        config_path: Path to configuration file
        log_level: Overrides logging.level from the config

    Returns:
        Phase result dictionary
    """
    if phase not in ('clean', 'eda', 'train', 'evaluate'):
        raise ValueError(f"Unknown phase: {phase}. Choose from: clean, eda, train, evaluate")

    config = load_config(config_path)
    setup_logging(log_level or config.get('logging', {}).get('level', 'INFO'))

    df = load_housing_data(data_source, config)
    prep_result = run_cleaning(df, config)

    if phase == 'clean':
        return prep_result

    elif phase == 'eda':
        return run_eda(prep_result['data'], config)

    elif phase == 'train':
        return {'models': run_training(prep_result, config), 'cleaning': prep_result}

    suite = run_training(prep_result, config)
    return run_evaluation(suite, prep_result, config)


def main():
    """Main entry point with argument parsing."""
    parser = argparse.ArgumentParser(
        description="Exploratory report and baseline models for the California housing dataset",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python main.py
  python main.py --data data/raw/housing.csv
  python main.py --phase eda
  python main.py --config config/custom.yaml
        """
    )

    parser.add_argument(
        '--data', '-d',
        type=str,
        default=None,
        help='Path or URL of the input CSV file (default: data.url from config)'
    )

    parser.add_argument(
        '--config', '-c',
        type=str,
        default='config/config.yaml',
        help='Path to configuration file (default: config/config.yaml)'
    )

    parser.add_argument(
        '--phase', '-p',
        type=str,
        choices=['clean', 'eda', 'train', 'evaluate', 'all'],
        default='all',
        help='Phase to run (default: all)'
    )

    parser.add_argument(
        '--verbose', '-v',
        action='store_true',
        help='Enable verbose output'
    )

    args = parser.parse_args()

    if args.data and not args.data.startswith(('http://', 'https://')) and not Path(args.data).exists():
        print(f"Error: Data file not found: {args.data}")
        print("\nExpected format: CSV with the California housing columns")
        sys.exit(1)

    if not Path(args.config).exists():
        print(f"Error: Config file not found: {args.config}")
        sys.exit(1)

    log_level = 'DEBUG' if args.verbose else None

    try:
        if args.phase == 'all':
            run_full_pipeline(args.data, args.config, log_level)
        else:
            run_single_phase(args.phase, args.data, args.config, log_level)

        return 0

    except Exception as e:
        logging.error(f"Report failed: {e}", exc_info=True)
        print(f"\n❌ Report failed: {e}")
        return 1


if __name__ == "__main__":
    sys.exit(main())
