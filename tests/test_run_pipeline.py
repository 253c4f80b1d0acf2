import json

import numpy as np
import pandas as pd
import pytest

from ml.network import ForecastingNetwork
from ml.optimization import QuasiNewtonMethod, TrainingResults, TrainingState
from pipeline.run_pipeline import build_parser, config_from_args, main, run_all, run_series

EXPECTED_SUFFIXES = [
    "Data.csv",
    "ANN.json",
    "ANN_Expression.txt",
    "Training_Strategy.json",
    "Training_Results.csv",
    "LinearAnalysis_0Data.dat",
    "LinearAnalysis_0Targets.dat",
    "LinearAnalysis_0Outputs.dat",
    "ErrorAutocorrelation.dat",
    "ErrorCrossCorrelation.dat",
    "ErrorData.dat",
]


def parabola_rows(points=30):
    return [[t, t * t] for t in range(points)]


def sine_rows(points=30):
    return [[t, round(float(np.sin(t / 3.0)), 6)] for t in range(points)]


def test_run_series_writes_every_artifact(tmp_path, quick_config, write_series):
    write_series("parabola", parabola_rows())

    report = run_series("parabola", quick_config)

    assert report.success, report.error
    assert report.training.state in (TrainingState.MAX_EPOCHS_REACHED, TrainingState.CONVERGED)
    for suffix in EXPECTED_SUFFIXES:
        assert (tmp_path / f"output_parabola_{suffix}").exists(), f"{suffix} was not written"
    assert len(report.files) == len(EXPECTED_SUFFIXES)


def test_written_data_and_network(tmp_path, quick_config, write_series):
    write_series("parabola", parabola_rows())

    run_series("parabola", quick_config)

    data = pd.read_csv(tmp_path / "output_parabola_Data.csv")
    assert len(data) == 28
    assert list(data.columns) == [
        "column_1", "column_2_lag_1", "column_2_lag_0", "column_2_ahead_1", "partition"
    ]
    assert (data["partition"] == "testing").sum() == 5

    network = ForecastingNetwork.load(tmp_path / "output_parabola_ANN.json")
    assert network.architecture == (2, 3, 1)

    strategy = json.loads((tmp_path / "output_parabola_Training_Strategy.json").read_text())
    assert strategy["settings"]["method"] == "quasi_newton_bfgs"
    assert strategy["settings"]["maximum_epochs"] == 20

    regression = np.loadtxt(tmp_path / "output_parabola_LinearAnalysis_0Data.dat")
    assert regression.shape == (3,)


def test_imputes_missing_values(tmp_path, quick_config, write_series):
    rows = sine_rows()
    rows[10][1] = "NA"
    rows[20][1] = "?"
    write_series("sine", rows)

    report = run_series("sine", quick_config)

    assert report.success, report.error
    assert report.steps["imputation"]["missing_before"] == 6
    data = pd.read_csv(tmp_path / "output_sine_Data.csv")
    assert not data.isnull().any().any()


def test_failures_are_isolated_per_series(tmp_path, quick_config, write_series):
    write_series("parabola", parabola_rows())
    write_series("flat", [[t, 1.0] for t in range(30)])
    write_series("corrupt", [[0, 1.0], [1, "abc"]])

    reports = run_all(quick_config, ["flat", "absent", "corrupt", "parabola"])

    assert [r.series for r in reports] == ["flat", "absent", "corrupt", "parabola"]
    assert [r.success for r in reports] == [False, False, False, True]
    assert reports[0].error.startswith("DegenerateRangeError")
    assert reports[1].error.startswith("FileIOError")
    assert reports[2].error.startswith("FileIOError")
    assert not (tmp_path / "output_flat_Data.csv").exists()


def test_too_short_series(quick_config, write_series):
    write_series("short", [[0, 1.0], [1, 2.0]])

    report = run_series("short", quick_config)

    assert not report.success
    assert report.error.startswith("InsufficientDataError")


def test_cli_overrides(tmp_path):
    args = build_parser().parse_args([
        "--series", "sine", "parabola",
        "--data-dir", str(tmp_path),
        "--lags", "3",
        "--maximum-epochs", "7",
        "--seed", "4",
    ])

    config = config_from_args(args)

    assert config.series == ["sine", "parabola"]
    assert config.data_paths.data_dir == str(tmp_path)
    assert config.time_series.lags_number == 3
    assert config.training.maximum_epochs == 7
    assert config.partition.random_state == 4
    assert config.network.random_state == 4


def test_config_file(tmp_path):
    config_path = tmp_path / "config.json"
    config_path.write_text(json.dumps({
        "time_series": {"lags_number": 2, "steps_ahead": 2},
        "scaling": {"feature_range": [0.0, 1.0]},
        "series": ["sine"],
    }))

    config = config_from_args(build_parser().parse_args(["--config", str(config_path)]))

    assert config.time_series.steps_ahead == 2
    assert config.scaling.feature_range == (0.0, 1.0)
    assert config.series == ["sine"]


@pytest.mark.parametrize("series,exit_code", [(["parabola"], 0), (["parabola", "absent"], 1)])
def test_main_exit_code(tmp_path, write_series, series, exit_code):
    write_series("parabola", parabola_rows())

    code = main([
        "--series", *series,
        "--data-dir", str(tmp_path),
        "--maximum-epochs", "5",
        "--seed", "0",
        "--log-dir", str(tmp_path / "logs"),
        "--log-level", "WARNING",
    ])

    assert code == exit_code


def test_training_failure_is_reported(tmp_path, quick_config, write_series, monkeypatch):
    write_series("parabola", parabola_rows())

    def failing_training(optimizer):
        parameters = optimizer.model.get_parameters()
        return TrainingResults(
            state=TrainingState.FAILED, epochs=0,
            final_training_loss=float("nan"), final_selection_loss=float("nan"),
            gradient_norm=float("nan"), elapsed_time=0.0, final_parameters=parameters,
            failure_message="Non-finite loss at initial parameters",
        )

    monkeypatch.setattr(QuasiNewtonMethod, "perform_training", failing_training)

    report = run_series("parabola", quick_config)

    assert not report.success
    assert report.error.startswith("NumericalFailure")
    assert (tmp_path / "output_parabola_Training_Results.csv").exists()
    assert not (tmp_path / "output_parabola_ErrorData.dat").exists()


def test_single_column_series(tmp_path, quick_config, write_series):
    write_series("ramp", [[value] for value in range(1, 21)])

    report = run_series("ramp", quick_config)

    assert report.success, report.error
    data = pd.read_csv(tmp_path / "output_ramp_Data.csv")
    assert list(data.columns) == ["column_1_lag_1", "column_1_lag_0", "column_1_ahead_1", "partition"]
    assert len(data) == 18
    np.testing.assert_array_equal(data["column_1_ahead_1"], np.arange(3.0, 21.0))


def test_unknown_method_is_reported_per_series(quick_config, write_series):
    write_series("parabola", parabola_rows())
    quick_config.processing.imputation_method = "mode"

    reports = run_all(quick_config, ["parabola", "parabola"])

    assert len(reports) == 2
    assert not any(report.success for report in reports)
    assert all(report.error.startswith("ConfigurationError") for report in reports)
    assert "mode" in reports[0].error


@pytest.mark.parametrize("section,setting,value", [
    ("partition", "method", "shuffled"),
    ("scaling", "inputs_method", "log"),
    ("scaling", "feature_range", (1.0, -1.0)),
    ("time_series", "steps_ahead", 0),
    ("network", "hidden_units", 0),
    ("training", "display_period", 0),
])
def test_invalid_settings_are_configuration_errors(quick_config, write_series, section, setting, value):
    write_series("parabola", parabola_rows())
    setattr(getattr(quick_config, section), setting, value)

    report = run_series("parabola", quick_config)

    assert not report.success
    assert report.error.startswith("ConfigurationError")


def test_main_exit_code_on_invalid_config(tmp_path, write_series):
    write_series("parabola", parabola_rows())
    config_path = tmp_path / "config.json"
    config_path.write_text(json.dumps({"partition": {"method": "shuffled"}}))

    code = main([
        "--config", str(config_path),
        "--series", "parabola",
        "--data-dir", str(tmp_path),
        "--log-dir", str(tmp_path / "logs"),
        "--log-level", "WARNING",
    ])

    assert code == 1


def test_strategy_file_is_strict_json_without_selection_rows(tmp_path, quick_config, write_series):
    write_series("parabola", parabola_rows())
    quick_config.partition.training_ratio = 0.8
    quick_config.partition.selection_ratio = 0.0
    quick_config.partition.testing_ratio = 0.2

    report = run_series("parabola", quick_config)

    assert report.success, report.error
    text = (tmp_path / "output_parabola_Training_Strategy.json").read_text()
    assert "NaN" not in text
    strategy = json.loads(text)
    assert strategy["results"]["final_selection_loss"] is None
    assert strategy["settings"]["loss_goal"] is None
