"""
Long short-term memory layer with backpropagation through time.

Samples are consumed in storage order as one sequence. The hidden and cell
states carry over from sample to sample and are reset to zero every
`timesteps` samples, so a window of lagged inputs is remembered for that
many consecutive rows.
"""

from typing import Dict, List, Optional, Tuple

import numpy as np

GATES = ("forget", "input", "state", "output")


def logistic(x: np.ndarray) -> np.ndarray:
    return 0.5 * (1.0 + np.tanh(0.5 * x))


class LongShortTermMemoryLayer:
    """LSTM layer whose parameters are laid out gate by gate."""

    def __init__(self,
                 inputs_number: int,
                 neurons_number: int,
                 timesteps: int = 4,
                 rng: Optional[np.random.Generator] = None):
        if timesteps < 1:
            raise ValueError(f"timesteps must be >= 1, got {timesteps}")

        self.inputs_number = inputs_number
        self.neurons_number = neurons_number
        self.timesteps = timesteps
        rng = rng if rng is not None else np.random.default_rng()
        self.parameters = rng.uniform(-1.0, 1.0, self.parameters_number)

    @property
    def gate_parameters_number(self) -> int:
        n = self.neurons_number
        return n + self.inputs_number * n + n * n

    @property
    def parameters_number(self) -> int:
        return len(GATES) * self.gate_parameters_number

    def unpack(self, parameters: np.ndarray) -> Dict[str, Tuple[np.ndarray, np.ndarray, np.ndarray]]:
        """Biases, input weights and recurrent weights for every gate."""
        m, n = self.inputs_number, self.neurons_number
        size = self.gate_parameters_number
        gates = {}
        for g, gate in enumerate(GATES):
            block = parameters[g * size:(g + 1) * size]
            biases = block[:n]
            input_weights = block[n:n + m * n].reshape(m, n)
            recurrent_weights = block[n + m * n:].reshape(n, n)
            gates[gate] = (biases, input_weights, recurrent_weights)
        return gates

    def forward(self, inputs: np.ndarray, parameters: np.ndarray) -> Tuple[np.ndarray, Dict]:
        """
        Run the sequence forward.

        Parameters:
        ----------
        inputs : np.ndarray
            Matrix (samples, inputs)
        parameters : np.ndarray
            Parameter vector of this layer

        Returns:
        -------
        Tuple[np.ndarray, Dict]
            Hidden states (samples, neurons) and the cache needed by backward()
        """
        gates = self.unpack(parameters)
        samples = inputs.shape[0]
        n = self.neurons_number

        cache = {name: np.zeros((samples, n)) for name in GATES}
        cache["cell"] = np.zeros((samples, n))
        cache["previous_hidden"] = np.zeros((samples, n))
        cache["previous_cell"] = np.zeros((samples, n))
        hidden = np.zeros((samples, n))

        h = np.zeros(n)
        c = np.zeros(n)
        for t in range(samples):
            if t % self.timesteps == 0:
                h = np.zeros(n)
                c = np.zeros(n)

            x = inputs[t]
            activations = {}
            for gate, (b, w, u) in gates.items():
                combination = b + x @ w + h @ u
                activations[gate] = np.tanh(combination) if gate == "state" else logistic(combination)

            cache["previous_hidden"][t] = h
            cache["previous_cell"][t] = c
            c = activations["forget"] * c + activations["input"] * activations["state"]
            h = activations["output"] * np.tanh(c)

            for gate in GATES:
                cache[gate][t] = activations[gate]
            cache["cell"][t] = c
            hidden[t] = h

        return hidden, cache

    def backward(self,
                 inputs: np.ndarray,
                 parameters: np.ndarray,
                 cache: Dict,
                 hidden_deltas: np.ndarray) -> np.ndarray:
        """Gradient of the loss with respect to this layer's parameters."""
        gates = self.unpack(parameters)
        samples = inputs.shape[0]
        n = self.neurons_number

        gradients = {
            gate: [np.zeros(n), np.zeros((self.inputs_number, n)), np.zeros((n, n))]
            for gate in GATES
        }

        for start in reversed(range(0, samples, self.timesteps)):
            stop = min(start + self.timesteps, samples)
            next_hidden_delta = np.zeros(n)
            next_cell_delta = np.zeros(n)

            for t in reversed(range(start, stop)):
                f, i = cache["forget"][t], cache["input"][t]
                g, o = cache["state"][t], cache["output"][t]
                cell_tanh = np.tanh(cache["cell"][t])

                hidden_delta = hidden_deltas[t] + next_hidden_delta
                cell_delta = hidden_delta * o * (1.0 - cell_tanh ** 2) + next_cell_delta

                combination_deltas = {
                    "forget": cell_delta * cache["previous_cell"][t] * f * (1.0 - f),
                    "input": cell_delta * g * i * (1.0 - i),
                    "state": cell_delta * i * (1.0 - g ** 2),
                    "output": hidden_delta * cell_tanh * o * (1.0 - o),
                }

                next_hidden_delta = np.zeros(n)
                for gate, delta in combination_deltas.items():
                    gradients[gate][0] += delta
                    gradients[gate][1] += np.outer(inputs[t], delta)
                    gradients[gate][2] += np.outer(cache["previous_hidden"][t], delta)
                    next_hidden_delta += delta @ gates[gate][2].T
                next_cell_delta = cell_delta * f

        return np.concatenate([
            np.concatenate([b, w.ravel(), u.ravel()])
            for b, w, u in (gradients[gate] for gate in GATES)
        ])

    def write_expression(self, input_names: List[str], output_names: List[str]) -> str:
        gates = self.unpack(self.parameters)
        lines = []
        for gate, (b, w, u) in gates.items():
            function = "tanh" if gate == "state" else "logistic"
            for j in range(self.neurons_number):
                terms = "".join(f" + ({w[i, j]:.6g}*{name})" for i, name in enumerate(input_names))
                terms += "".join(
                    f" + ({u[k, j]:.6g}*hidden_state_{k})" for k in range(self.neurons_number)
                )
                lines.append(f"{gate}_gate_{j} = {function}({b[j]:.6g}{terms});")
        for j in range(self.neurons_number):
            lines.append(
                f"cell_state_{j} = forget_gate_{j}*cell_state_{j} + input_gate_{j}*state_gate_{j};"
            )
        for j, name in enumerate(output_names):
            lines.append(f"hidden_state_{j} = output_gate_{j}*tanh(cell_state_{j});")
            lines.append(f"{name} = hidden_state_{j};")
        return "\n".join(lines)
