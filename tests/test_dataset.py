import numpy as np
import pandas as pd
import pytest

from pipeline.dataset import (
    ColumnRole,
    Descriptives,
    Histogram,
    PartitionLabel,
    TabularDataset,
)
from pipeline.exceptions import DatasetError, EmptyColumnError


def test_default_roles():
    dataset = TabularDataset(pd.DataFrame({"a": [1, 2], "b": [3, 4], "c": [5, 6]}))

    assert dataset.input_names == ["a", "b"], "All but the last column should be inputs"
    assert dataset.target_names == ["c"], "Last column should be the target"
    assert dataset.time_column is None
    assert not dataset.is_time_series


def test_set_time_column_demotes_previous():
    dataset = TabularDataset(pd.DataFrame({"a": [1, 2], "b": [3, 4], "c": [5, 6]}))

    dataset.set_time_column("a")
    dataset.set_time_column(1)

    assert dataset.time_column.name == "b"
    assert dataset.get_column("a").role == ColumnRole.INPUT
    assert len(dataset.get_columns(ColumnRole.TIME)) == 1


def test_get_column_unknown():
    dataset = TabularDataset.from_array([[1.0, 2.0]])

    with pytest.raises(DatasetError):
        dataset.get_column("missing")
    with pytest.raises(DatasetError):
        dataset.get_column(5)


def test_descriptives_ignore_missing():
    stats = Descriptives.from_values([1.0, np.nan, 3.0, 5.0])

    assert stats.minimum == 1.0
    assert stats.maximum == 5.0
    assert stats.mean == 3.0
    assert stats.standard_deviation == pytest.approx(2.0)


def test_descriptives_single_value():
    stats = Descriptives.from_values([4.0])

    assert stats.standard_deviation == 0.0


def test_descriptives_empty_column():
    with pytest.raises(EmptyColumnError):
        Descriptives.from_values([np.nan, np.nan], "empty")


def test_histogram_frequencies_sum_to_count():
    histogram = Histogram.from_values([0.0, 1.0, 2.0, np.nan, 3.0], bins=3)

    assert histogram.frequencies.sum() == 4
    assert len(histogram.centers) == 3


def test_unpartitioned_dataset_is_all_training(ramp_dataset):
    assert len(ramp_dataset.training_indices) == 20
    assert len(ramp_dataset.selection_indices) == 0
    assert len(ramp_dataset.testing_indices) == 0


def test_set_partition_length_mismatch(ramp_dataset):
    with pytest.raises(DatasetError):
        ramp_dataset.set_partition([PartitionLabel.TRAINING] * 3)


def test_save_writes_partition_column(tmp_path, ramp_dataset):
    labels = ["training"] * 10 + ["selection"] * 5 + ["testing"] * 5
    ramp_dataset.set_partition(labels)

    ramp_dataset.save(tmp_path / "data.csv")
    saved = pd.read_csv(tmp_path / "data.csv")

    assert list(saved.columns) == ["value", "partition"]
    assert saved["partition"].tolist() == labels
