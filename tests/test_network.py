import numpy as np
import pytest

from ml.layers import PerceptronLayer, ScalingLayer, UnscalingLayer
from ml.long_short_term_memory import LongShortTermMemoryLayer
from ml.network import ForecastingNetwork
from pipeline.dataset import Descriptives, ScalingMethod


def small_network(**kwargs):
    network = ForecastingNetwork(2, 3, 2, timesteps=2, random_state=7, **kwargs)
    return network


def numerical_gradient(network, parameters, inputs, targets, epsilon=1e-6):
    gradient = np.zeros_like(parameters)
    for i in range(parameters.size):
        step = np.zeros_like(parameters)
        step[i] = epsilon
        gradient[i] = (
            network.calculate_loss(parameters + step, inputs, targets)
            - network.calculate_loss(parameters - step, inputs, targets)
        ) / (2 * epsilon)
    return gradient


def test_parameters_number():
    network = small_network()

    lstm = 4 * (3 + 2 * 3 + 3 * 3)
    perceptron = 2 * (3 + 1)
    assert network.parameters_number == lstm + perceptron
    assert network.get_parameters().shape == (lstm + perceptron,)
    assert network.architecture == (2, 3, 2)


def test_outputs_shape():
    network = small_network()

    outputs = network.calculate_outputs(np.zeros((5, 2)))

    assert outputs.shape == (5, 2)


@pytest.mark.parametrize("unscaling", [ScalingMethod.NONE, ScalingMethod.MINIMUM_MAXIMUM])
def test_gradient_matches_finite_differences(unscaling):
    rng = np.random.default_rng(11)
    network = small_network()
    network.set_output_descriptives(
        [Descriptives(0.0, 4.0, 2.0, 1.0), Descriptives(-2.0, 2.0, 0.0, 1.0)], unscaling
    )
    inputs = rng.uniform(-1.0, 1.0, (5, 2))
    targets = rng.uniform(-1.0, 1.0, (5, 2))
    parameters = network.get_parameters()

    loss, gradient = network.calculate_loss_gradient(parameters, inputs, targets)

    assert loss == pytest.approx(network.calculate_loss(parameters, inputs, targets))
    np.testing.assert_allclose(
        gradient, numerical_gradient(network, parameters, inputs, targets), rtol=1e-4, atol=1e-7
    )


def test_state_resets_every_timesteps_samples():
    layer = LongShortTermMemoryLayer(1, 2, timesteps=3, rng=np.random.default_rng(0))
    inputs = np.array([[0.5], [0.1], [-0.3], [0.5], [0.1], [-0.3]])

    hidden, _ = layer.forward(inputs, layer.parameters)

    np.testing.assert_allclose(hidden[:3], hidden[3:])


def test_seed_reproducibility():
    first = ForecastingNetwork(2, 4, 1, random_state=5)
    second = ForecastingNetwork(2, 4, 1, random_state=5)

    np.testing.assert_array_equal(first.get_parameters(), second.get_parameters())


def test_set_parameters_rejects_wrong_size():
    network = small_network()

    with pytest.raises(ValueError):
        network.set_parameters(np.zeros(3))


def test_scaling_layers_are_inverse():
    descriptives = [Descriptives(2.0, 10.0, 6.0, 1.5)]
    scaling = ScalingLayer(descriptives, ScalingMethod.MINIMUM_MAXIMUM)
    unscaling = UnscalingLayer(descriptives, ScalingMethod.MINIMUM_MAXIMUM)
    values = np.array([[2.0], [6.0], [10.0]])

    scaled = scaling.calculate_outputs(values)

    np.testing.assert_allclose(scaled.ravel(), [-1.0, 0.0, 1.0])
    np.testing.assert_allclose(unscaling.calculate_outputs(scaled), values)


def test_perceptron_is_affine():
    layer = PerceptronLayer(2, 1, rng=np.random.default_rng(0))
    parameters = np.array([0.5, 2.0, -1.0])

    outputs = layer.forward(np.array([[1.0, 1.0], [3.0, 2.0]]), parameters)

    np.testing.assert_allclose(outputs.ravel(), [1.5, 4.5])


def test_save_and_load(tmp_path):
    network = small_network(input_names=["x_lag_1", "x_lag_0"], output_names=["x_ahead_1", "x_ahead_2"])
    network.set_input_descriptives(
        [Descriptives(0.0, 1.0, 0.5, 0.2), Descriptives(0.0, 2.0, 1.0, 0.4)],
        ScalingMethod.MINIMUM_MAXIMUM,
    )
    inputs = np.random.default_rng(2).uniform(0.0, 1.0, (4, 2))

    network.save(tmp_path / "ann.json")
    restored = ForecastingNetwork.load(tmp_path / "ann.json")

    assert restored.input_names == ["x_lag_1", "x_lag_0"]
    np.testing.assert_allclose(restored.calculate_outputs(inputs), network.calculate_outputs(inputs))


def test_expression_names_every_variable(tmp_path):
    network = small_network(input_names=["a", "b"], output_names=["c", "d"])

    network.save_expression(tmp_path / "expression.txt")
    expression = (tmp_path / "expression.txt").read_text()

    for name in ("scaled_a", "scaled_b", "c = ", "d = ", "forget_gate_0", "cell_state_2"):
        assert name in expression
