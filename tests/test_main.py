"""
Test Suite for the Command Line Entry Point
===========================================

Tests for phase dispatch and exit codes of main.py.
"""

import pytest
import numpy as np
import yaml

import sys
from pathlib import Path
sys.path.insert(0, str(Path(__file__).parent.parent))

import main


@pytest.fixture
def workspace(housing_df, tmp_path, monkeypatch):
    """Local CSV plus a config whose outputs all live under tmp_path."""
    monkeypatch.chdir(tmp_path)

    data_path = tmp_path / "housing.csv"
    housing_df.to_csv(data_path, index=False)

    config = {
        'preprocessing': {'impute_columns': ['total_bedrooms'], 'test_size': 0.2, 'random_state': 42},
        'output': {
            'figures_path': str(tmp_path / "figures"),
            'reports_path': str(tmp_path / "reports"),
            'model_path': str(tmp_path / "models" / "housing_models.joblib"),
            'preprocessor_path': str(tmp_path / "models" / "preprocessor.joblib"),
        },
        'logging': {'level': 'INFO'},
    }
    config_path = tmp_path / "config.yaml"
    config_path.write_text(yaml.safe_dump(config))

    return {'data': data_path, 'config': config_path, 'root': tmp_path}


def run_cli(monkeypatch, *args):
    monkeypatch.setattr(sys, 'argv', ['main.py', *args])
    return main.main()


class TestMain:

    def test_clean_phase_succeeds(self, workspace, monkeypatch):
        exit_code = run_cli(
            monkeypatch,
            '--data', str(workspace['data']),
            '--config', str(workspace['config']),
            '--phase', 'clean'
        )

        assert exit_code == 0
        assert (workspace['root'] / "models" / "preprocessor.joblib").exists()
        assert not (workspace['root'] / "models" / "housing_models.joblib").exists()

    def test_failure_returns_one(self, workspace, housing_df, monkeypatch):
        broken = housing_df.copy()
        broken.loc[broken.index[:6], 'median_house_value'] = np.nan
        broken.to_csv(workspace['data'], index=False)

        exit_code = run_cli(
            monkeypatch,
            '--data', str(workspace['data']),
            '--config', str(workspace['config']),
            '--phase', 'train'
        )

        assert exit_code == 1
        assert not (workspace['root'] / "models" / "housing_models.joblib").exists()

    def test_missing_data_file_exits(self, workspace, monkeypatch):
        with pytest.raises(SystemExit) as excinfo:
            run_cli(
                monkeypatch,
                '--data', str(workspace['root'] / "missing.csv"),
                '--config', str(workspace['config'])
            )

        assert excinfo.value.code == 1

    def test_missing_config_exits(self, workspace, monkeypatch):
        with pytest.raises(SystemExit) as excinfo:
            run_cli(
                monkeypatch,
                '--data', str(workspace['data']),
                '--config', str(workspace['root'] / "missing.yaml")
            )

        assert excinfo.value.code == 1


def test_unknown_phase_raises(workspace):
    with pytest.raises(ValueError, match="Unknown phase"):
        main.run_single_phase('forecast', str(workspace['data']), str(workspace['config']))


def test_run_single_phase_train(workspace):
    result = main.run_single_phase('train', str(workspace['data']), str(workspace['config']))

    assert result['models'].training_info['classes'] == ['high', 'low']
    assert (workspace['root'] / "models" / "housing_models.joblib").exists()
