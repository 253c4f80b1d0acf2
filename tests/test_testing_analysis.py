import numpy as np
import pandas as pd
import pytest

from ml.base import TrainableModel
from ml.evaluation import TestingAnalysis, TimeSeriesMetrics
from pipeline.dataset import ScalingMethod, TabularDataset
from pipeline.exceptions import DatasetError
from pipeline.partitioner import Partitioner
from pipeline.scaler import Scaler


class FixedModel(TrainableModel):
    """Stateless model computing outputs from a fixed function of the inputs."""

    def __init__(self, function):
        self.function = function

    @property
    def parameters_number(self):
        return 0

    def get_parameters(self):
        return np.zeros(0)

    def set_parameters(self, parameters):
        pass

    def calculate_outputs(self, inputs):
        return self.function(inputs)

    def calculate_loss_gradient(self, parameters, inputs, targets):
        return float(np.mean((self.calculate_outputs(inputs) - targets) ** 2)), np.zeros(0)


def linear_dataset():
    x = np.linspace(0.0, 5.0, 30) ** 1.5
    dataset = TabularDataset(pd.DataFrame({"x": x, "y": 2.0 * x + 1.0}), name="linear")
    Partitioner(0.5, 0.0, 0.5).split_sequential(dataset)
    return dataset


def biased_model():
    return FixedModel(lambda inputs: 2.1 * inputs[:, :1] + 1.0)


def test_linear_regression_analysis():
    analysis = TestingAnalysis(biased_model(), linear_dataset())

    (regression,) = analysis.perform_linear_regression_analysis()

    assert regression.slope == pytest.approx(1.05)
    assert regression.intercept == pytest.approx(-0.05)
    assert regression.correlation == pytest.approx(1.0)
    assert len(regression.targets) == 15
    np.testing.assert_allclose(regression.parameters(), [1.0, -0.05, 1.05], atol=1e-9)


def test_error_data_columns():
    dataset = linear_dataset()
    analysis = TestingAnalysis(biased_model(), dataset)

    (errors,) = analysis.calculate_error_data()

    x = dataset.data["x"].iloc[dataset.testing_indices].to_numpy()
    target_range = np.ptp(2.0 * x + 1.0)
    assert errors.shape == (15, 3)
    np.testing.assert_allclose(errors[:, 0], 0.1 * x)
    np.testing.assert_allclose(errors[:, 1], 0.1 * x / target_range)
    np.testing.assert_allclose(errors[:, 2], 100.0 * errors[:, 1])


def test_error_data_statistics():
    analysis = TestingAnalysis(biased_model(), linear_dataset())

    (statistics,) = analysis.calculate_error_data_statistics()

    assert set(statistics) == {"absolute_error", "relative_error", "percentage_error"}
    assert statistics["absolute_error"].minimum >= 0.0


def test_error_autocorrelation_lags():
    analysis = TestingAnalysis(biased_model(), linear_dataset())

    (autocorrelation,) = analysis.calculate_error_autocorrelation(maximum_lags=5)

    assert autocorrelation.shape == (6,)
    assert autocorrelation[0] == pytest.approx(1.0)


def test_lags_limited_by_testing_rows():
    analysis = TestingAnalysis(biased_model(), linear_dataset())

    (autocorrelation,) = analysis.calculate_error_autocorrelation(maximum_lags=50)

    assert autocorrelation.shape == (15,)


def test_inputs_errors_cross_correlation_shape():
    analysis = TestingAnalysis(biased_model(), linear_dataset())

    (correlation,) = analysis.calculate_inputs_errors_cross_correlation(maximum_lags=4)

    assert correlation.shape == (1, 5)
    assert correlation[0, 0] == pytest.approx(1.0), "Errors are proportional to the input"


def test_scaler_reverses_targets_and_outputs():
    x = np.linspace(10.0, 50.0, 20)
    dataset = TabularDataset(pd.DataFrame({"x": x, "y": x.copy()}))
    Partitioner(0.5, 0.0, 0.5).split_sequential(dataset)
    scaler = Scaler()
    scaler.scale_inputs(dataset, ScalingMethod.MINIMUM_MAXIMUM)
    scaler.scale_targets(dataset, ScalingMethod.MINIMUM_MAXIMUM)

    analysis = TestingAnalysis(FixedModel(lambda inputs: inputs.copy()), dataset, scaler)
    (regression,) = analysis.perform_linear_regression_analysis()

    np.testing.assert_allclose(regression.targets, x[10:])
    np.testing.assert_allclose(regression.outputs, x[10:])
    np.testing.assert_allclose(analysis.calculate_errors(), 0.0, atol=1e-9)


def test_requires_testing_rows():
    dataset = TabularDataset.from_array(np.arange(10.0))

    with pytest.raises(DatasetError):
        TestingAnalysis(biased_model(), dataset).calculate_errors()


def test_metrics():
    metrics = TimeSeriesMetrics.calculate_all_metrics(
        np.array([1.0, 2.0, 3.0, 4.0]), np.array([1.5, 2.0, 2.5, 4.0])
    )

    assert metrics["mae"] == pytest.approx(0.25)
    assert metrics["mse"] == pytest.approx(0.125)
    assert metrics["max_error"] == pytest.approx(0.5)
    assert metrics["mase"] == pytest.approx(0.25)


def test_metrics_ignore_missing():
    assert TimeSeriesMetrics.calculate_all_metrics(np.array([np.nan]), np.array([1.0])) == {}
