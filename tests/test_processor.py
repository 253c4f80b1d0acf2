import numpy as np
import pandas as pd
import pytest

from pipeline.config import ForecastConfig
from pipeline.dataset import ColumnRole, TabularDataset
from pipeline.exceptions import EmptyColumnError
from pipeline.processor import DataProcessor, MissingValueImputer


def gappy_dataset():
    frame = pd.DataFrame({
        "time": [0.0, 1.0, 2.0, 3.0, 4.0],
        "x": [1.0, np.nan, 3.0, 10.0, np.nan],
        "y": [2.0, 4.0, np.nan, 8.0, 10.0],
    })
    dataset = TabularDataset(frame)
    dataset.set_time_column("time")
    return dataset


def test_impute_mean():
    dataset = gappy_dataset()

    imputed = MissingValueImputer().impute_mean(dataset)

    assert imputed == {"x": 2, "y": 1}
    assert dataset.data["x"].tolist() == pytest.approx([1.0, 14.0 / 3.0, 3.0, 10.0, 14.0 / 3.0])
    assert dataset.data["y"].iloc[2] == 6.0
    assert dataset.data.isnull().sum().sum() == 0


def test_impute_median():
    dataset = gappy_dataset()

    MissingValueImputer().impute_median(dataset)

    assert dataset.data["x"].iloc[1] == 3.0
    assert dataset.data["y"].iloc[2] == 6.0


def test_imputation_is_idempotent():
    dataset = gappy_dataset()
    imputer = MissingValueImputer()

    imputer.impute(dataset, "mean")
    before = dataset.data.copy()
    imputed = imputer.impute(dataset, "mean")

    pd.testing.assert_frame_equal(dataset.data, before)
    assert sum(imputed.values()) == 0


def test_unused_columns_are_left_alone():
    dataset = gappy_dataset()
    dataset.set_column_role("x", ColumnRole.UNUSED)

    imputed = MissingValueImputer().impute(dataset)

    assert "x" not in imputed
    assert dataset.data["x"].isnull().sum() == 2


def test_entirely_missing_column_raises_before_changes():
    frame = pd.DataFrame({"x": [np.nan, np.nan], "y": [1.0, np.nan]})
    dataset = TabularDataset(frame)

    with pytest.raises(EmptyColumnError):
        MissingValueImputer().impute(dataset)

    assert np.isnan(dataset.data["y"].iloc[1]), "No column should be modified on failure"


def test_unknown_method():
    with pytest.raises(ValueError):
        MissingValueImputer().impute(gappy_dataset(), "mode")


def test_processor_stage_uses_configured_method():
    config = ForecastConfig()
    config.processing.imputation_method = "median"

    dataset, report = DataProcessor(config).process(gappy_dataset())

    assert report["method"] == "median"
    assert report["missing_before"] == 3
    assert dataset.data["x"].iloc[1] == 3.0
