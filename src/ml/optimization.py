"""
Quasi-Newton training of a TrainableModel on a partitioned dataset.

Each epoch computes the training loss and gradient, moves along the BFGS
direction with a line search, evaluates the selection loss and then checks
the stopping criteria in a fixed priority order.
"""

import logging
import time
import warnings
from dataclasses import asdict, dataclass, field
from enum import Enum
from pathlib import Path
from typing import Callable, Dict, List, Optional, Tuple, Union

import numpy as np
import pandas as pd
from scipy.optimize import line_search

from pipeline.config import TrainingConfig
from pipeline.dataset import TabularDataset
from pipeline.exceptions import ConfigurationError

from .base import TrainableModel

logger = logging.getLogger(__name__)

ARMIJO_CONSTANT = 1.0e-4
MAXIMUM_BACKTRACKS = 40
CURVATURE_TOLERANCE = 1.0e-12


class TrainingState(str, Enum):
    INITIALIZED = "initialized"
    RUNNING = "running"
    CONVERGED = "converged"
    MAX_EPOCHS_REACHED = "max_epochs_reached"
    TIME_EXCEEDED = "time_exceeded"
    FAILED = "failed"


@dataclass
class HistoryRecord:
    """Losses after one completed epoch."""

    epoch: int
    training_loss: float
    selection_loss: float
    elapsed_time: float


@dataclass
class ProgressReport:
    """Payload passed to the progress callback."""

    epoch: int
    training_loss: float
    selection_loss: float
    gradient_norm: float
    learning_rate: float
    elapsed_time: float


@dataclass
class TrainingResults:
    """Outcome of a training run."""

    state: TrainingState
    epochs: int
    final_training_loss: float
    final_selection_loss: float
    gradient_norm: float
    elapsed_time: float
    final_parameters: np.ndarray
    history: List[HistoryRecord] = field(default_factory=list)
    stopping_condition: str = ""
    failure_message: Optional[str] = None

    @property
    def success(self) -> bool:
        return self.state != TrainingState.FAILED

    def history_frame(self) -> pd.DataFrame:
        columns = ["epoch", "training_loss", "selection_loss", "elapsed_time"]
        return pd.DataFrame([asdict(record) for record in self.history], columns=columns)

    def to_dict(self) -> Dict:
        return {
            "state": self.state.value,
            "epochs": self.epochs,
            "final_training_loss": self.final_training_loss,
            "final_selection_loss": self.final_selection_loss,
            "gradient_norm": self.gradient_norm,
            "elapsed_time": self.elapsed_time,
            "stopping_condition": self.stopping_condition,
            "failure_message": self.failure_message,
        }

    def save(self, file_path: Union[str, Path]) -> None:
        """Write the per-epoch history, or the final losses when none was kept."""
        file_path = Path(file_path)
        file_path.parent.mkdir(parents=True, exist_ok=True)
        if self.history:
            self.history_frame().to_csv(file_path, index=False)
        else:
            pd.DataFrame([self.to_dict()]).to_csv(file_path, index=False)


def _log_progress(report: ProgressReport) -> None:
    logger.info(
        f"Epoch {report.epoch}: training loss {report.training_loss:.6g}, "
        f"selection loss {report.selection_loss:.6g}, "
        f"gradient norm {report.gradient_norm:.3g}, step {report.learning_rate:.3g}, "
        f"elapsed {report.elapsed_time:.2f}s"
    )


class QuasiNewtonMethod:
    """BFGS optimizer with epoch, time and convergence stopping criteria."""

    def __init__(self,
                 model: TrainableModel,
                 dataset: TabularDataset,
                 config: Optional[TrainingConfig] = None,
                 progress_callback: Optional[Callable[[ProgressReport], None]] = _log_progress,
                 clock: Callable[[], float] = time.perf_counter):
        """
        Initialize the optimizer.

        Parameters:
        ----------
        model : TrainableModel
            Model whose parameters are optimized
        dataset : TabularDataset
            Partitioned dataset; training rows drive the updates and
            selection rows are only evaluated
        config : TrainingConfig, optional
            Stopping criteria and history settings
        progress_callback : Callable, optional
            Called every `display_period` epochs; None disables it
        clock : Callable
            Source of elapsed seconds
        """
        self.model = model
        self.dataset = dataset
        self.config = config or TrainingConfig()
        self.progress_callback = progress_callback
        self.clock = clock
        self.state = TrainingState.INITIALIZED

        if self.config.maximum_epochs < 0:
            raise ConfigurationError("maximum_epochs must be non-negative")
        if self.config.display_period < 1:
            raise ConfigurationError("display_period must be >= 1")

    @property
    def reserve_history(self) -> bool:
        return (self.config.reserve_training_error_history
                or self.config.reserve_selection_error_history)

    def perform_training(self) -> TrainingResults:
        """
        Run the optimization until a stopping criterion is met.

        Returns:
        -------
        TrainingResults
            Terminal state, final losses and (if reserved) the history; the
            final parameters are installed into the model
        """
        self.state = TrainingState.RUNNING
        config = self.config

        training = self.dataset.training_indices
        selection = self.dataset.selection_indices
        training_inputs = self.dataset.get_input_data(training)
        training_targets = self.dataset.get_target_data(training)
        selection_inputs = self.dataset.get_input_data(selection)
        selection_targets = self.dataset.get_target_data(selection)

        def loss_function(p: np.ndarray) -> float:
            return self.model.calculate_loss(p, training_inputs, training_targets)

        def gradient_function(p: np.ndarray) -> np.ndarray:
            return self.model.calculate_loss_gradient(p, training_inputs, training_targets)[1]

        def selection_loss_of(p: np.ndarray) -> float:
            if len(selection) == 0:
                return float("nan")
            return self.model.calculate_loss(p, selection_inputs, selection_targets)

        logger.info(
            f"Quasi-Newton training: {len(training)} training and {len(selection)} selection "
            f"samples, {self.model.parameters_number} parameters"
        )

        start = self.clock()
        parameters = self.model.get_parameters()
        history: List[HistoryRecord] = []

        loss, gradient = self.model.calculate_loss_gradient(parameters, training_inputs, training_targets)
        selection_loss = selection_loss_of(parameters)
        if not self._is_finite(loss, gradient, selection_loss, len(selection)):
            return self._finish(TrainingState.FAILED, 0, parameters, loss, selection_loss,
                                gradient, start, history, "Non-finite loss at initial parameters")

        inverse_hessian = np.eye(parameters.size)
        epoch = 0

        if config.maximum_epochs == 0:
            return self._finish(TrainingState.MAX_EPOCHS_REACHED, 0, parameters, loss,
                                selection_loss, gradient, start, history)

        while True:
            direction = -inverse_hessian @ gradient
            if direction @ gradient >= 0:
                inverse_hessian = np.eye(parameters.size)
                direction = -gradient

            step = self._line_search(loss_function, gradient_function, parameters,
                                     direction, loss, gradient)
            if step == 0.0 and not np.array_equal(direction, -gradient):
                logger.debug(f"Line search failed at epoch {epoch + 1}, restarting from steepest descent")
                inverse_hessian = np.eye(parameters.size)
                direction = -gradient
                step = self._line_search(loss_function, gradient_function, parameters,
                                         direction, loss, gradient)

            new_parameters = parameters + step * direction
            new_loss, new_gradient = self.model.calculate_loss_gradient(
                new_parameters, training_inputs, training_targets
            )
            new_selection_loss = selection_loss_of(new_parameters)

            if not self._is_finite(new_loss, new_gradient, new_selection_loss, len(selection)):
                return self._finish(TrainingState.FAILED, epoch, parameters, loss, selection_loss,
                                    gradient, start, history,
                                    f"Non-finite loss or gradient at epoch {epoch + 1}")

            inverse_hessian = self._update_inverse_hessian(
                inverse_hessian, new_parameters - parameters, new_gradient - gradient
            )

            loss_decrease = loss - new_loss
            parameters, loss, gradient = new_parameters, new_loss, new_gradient
            selection_loss = new_selection_loss
            gradient_norm = float(np.linalg.norm(gradient))
            epoch += 1
            elapsed = self.clock() - start

            if self.reserve_history:
                history.append(HistoryRecord(
                    epoch=epoch,
                    training_loss=loss if config.reserve_training_error_history else float("nan"),
                    selection_loss=(selection_loss if config.reserve_selection_error_history
                                    else float("nan")),
                    elapsed_time=elapsed,
                ))

            if self.progress_callback is not None and epoch % config.display_period == 0:
                self.progress_callback(ProgressReport(
                    epoch, loss, selection_loss, gradient_norm, step, elapsed
                ))

            state, condition = self._stopping_state(epoch, loss, loss_decrease, gradient_norm, elapsed)
            if state is not None:
                return self._finish(state, epoch, parameters, loss, selection_loss,
                                    gradient, start, history, condition=condition)

    def _stopping_state(self, epoch: int, loss: float, loss_decrease: float,
                        gradient_norm: float, elapsed: float) -> Tuple[Optional[TrainingState], str]:
        config = self.config
        if loss_decrease < config.minimum_loss_decrease:
            return TrainingState.CONVERGED, "Minimum loss decrease reached"
        if gradient_norm <= config.gradient_norm_goal:
            return TrainingState.CONVERGED, "Gradient norm goal reached"
        if config.loss_goal is not None and loss <= config.loss_goal:
            return TrainingState.CONVERGED, "Loss goal reached"
        if epoch >= config.maximum_epochs:
            return TrainingState.MAX_EPOCHS_REACHED, "Maximum number of epochs reached"
        if elapsed >= config.maximum_time:
            return TrainingState.TIME_EXCEEDED, "Maximum training time reached"
        return None, ""

    def _line_search(self, loss_function, gradient_function, parameters: np.ndarray,
                     direction: np.ndarray, loss: float, gradient: np.ndarray) -> float:
        """Wolfe line search, falling back to Armijo backtracking."""
        with warnings.catch_warnings():
            warnings.simplefilter("ignore")
            with np.errstate(all="ignore"):
                result = line_search(loss_function, gradient_function, parameters, direction,
                                     gfk=gradient, old_fval=loss, amax=self.config.maximum_step)
        step = result[0]
        if step is not None and np.isfinite(step) and step > 0:
            return float(step)

        slope = float(direction @ gradient)
        step = 1.0
        with np.errstate(all="ignore"):
            for _ in range(MAXIMUM_BACKTRACKS):
                trial = loss_function(parameters + step * direction)
                if np.isfinite(trial) and trial <= loss + ARMIJO_CONSTANT * step * slope:
                    return step
                step *= 0.5
        return 0.0

    @staticmethod
    def _update_inverse_hessian(inverse_hessian: np.ndarray,
                                parameters_difference: np.ndarray,
                                gradient_difference: np.ndarray) -> np.ndarray:
        curvature = float(parameters_difference @ gradient_difference)
        if curvature <= CURVATURE_TOLERANCE:
            return inverse_hessian

        rho = 1.0 / curvature
        identity = np.eye(inverse_hessian.shape[0])
        left = identity - rho * np.outer(parameters_difference, gradient_difference)
        right = identity - rho * np.outer(gradient_difference, parameters_difference)
        return left @ inverse_hessian @ right + rho * np.outer(parameters_difference, parameters_difference)

    @staticmethod
    def _is_finite(loss: float, gradient: np.ndarray, selection_loss: float,
                   selection_size: int) -> bool:
        if not np.isfinite(loss) or not np.all(np.isfinite(gradient)):
            return False
        return selection_size == 0 or bool(np.isfinite(selection_loss))

    def _finish(self, state: TrainingState, epoch: int, parameters: np.ndarray,
                loss: float, selection_loss: float, gradient: np.ndarray, start: float,
                history: List[HistoryRecord], failure_message: Optional[str] = None,
                condition: str = "") -> TrainingResults:
        self.state = state
        self.model.set_parameters(parameters)
        elapsed = self.clock() - start

        if state == TrainingState.FAILED:
            logger.error(f"Training failed after {epoch} epochs: {failure_message}")
        else:
            logger.info(f"Training stopped after {epoch} epochs: {condition} "
                        f"(training loss {loss:.6g}, selection loss {selection_loss:.6g})")

        return TrainingResults(
            state=state,
            epochs=epoch,
            final_training_loss=float(loss),
            final_selection_loss=float(selection_loss),
            gradient_norm=float(np.linalg.norm(gradient)) if np.all(np.isfinite(gradient)) else float("nan"),
            elapsed_time=elapsed,
            final_parameters=parameters.copy(),
            history=history,
            stopping_condition=condition or (failure_message or ""),
            failure_message=failure_message,
        )

    def get_settings(self) -> Dict:
        """Training strategy settings, as written to the strategy file."""
        return {
            "method": "quasi_newton_bfgs",
            **asdict(self.config),
        }
