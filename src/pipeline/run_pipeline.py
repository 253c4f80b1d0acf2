"""
Series Forecasting Runner

This script runs the complete forecasting workflow for each named series:
load, transform to lag windows, impute, partition, scale, train the LSTM
network with the quasi-Newton method, analyse the testing partition and
save every artifact next to the source file.

Usage:
    series-forecaster
    series-forecaster --series sine parabola --data-dir data
    series-forecaster --config config.json --maximum-epochs 500
"""

import argparse
import sys
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional

from loguru import logger as _root_logger

from ml.evaluation import TestingAnalysis
from ml.network import ForecastingNetwork
from ml.optimization import QuasiNewtonMethod, TrainingResults
from utils.logging_config import get_pipeline_logger

from .config import ForecastConfig
from .exceptions import ForecastingError, NumericalFailure
from .export import ArtifactExporter
from .loader import DataLoader
from .partitioner import PartitionStage
from .processor import DataProcessor
from .scaler import ScalingStage
from .transformer import TimeSeriesTransformer

logger = _root_logger.bind(component="series_forecaster")


@dataclass
class SeriesReport:
    """Outcome of running one series."""

    series: str
    success: bool = False
    training: Optional[TrainingResults] = None
    files: List[Path] = field(default_factory=list)
    steps: Dict[str, Dict[str, Any]] = field(default_factory=dict)
    error: Optional[str] = None

    def summary(self) -> Dict[str, Any]:
        summary = {
            "series": self.series,
            "success": self.success,
            "files": len(self.files),
            "error": self.error,
        }
        if self.training is not None:
            summary.update(
                state=self.training.state.value,
                epochs=self.training.epochs,
                training_loss=self.training.final_training_loss,
                selection_loss=self.training.final_selection_loss,
            )
        return summary


def run_series(series_name: str, config: Optional[ForecastConfig] = None) -> SeriesReport:
    """
    Run the complete workflow for a single series.

    Parameters:
    ----------
    series_name : str
        Series name; the data is read from `<data_dir>/<series_name>.csv`
    config : ForecastConfig, optional
        Run configuration (uses default if None)

    Returns:
    -------
    SeriesReport
        Report of the run; failures are recorded, not raised
    """
    config = config or ForecastConfig()
    report = SeriesReport(series=series_name)
    logger.info(f"Running series: {series_name}")

    try:
        config.validate()

        # Step 1: Load data
        dataset = DataLoader(config.data_paths).load_series(series_name)
        histograms = dataset.calculate_columns_histograms(config.processing.histogram_bins)
        report.steps["data_loading"] = {
            "summary": dataset.get_summary(),
            "histograms": histograms,
        }

        # Step 2: Transform to lag windows, imputing in the configured order
        processor = DataProcessor(config)
        if not config.processing.impute_after_transform:
            dataset, report.steps["imputation"] = processor.process(dataset)
        dataset, report.steps["time_series"] = TimeSeriesTransformer(config).process(dataset)
        if config.processing.impute_after_transform:
            dataset, report.steps["imputation"] = processor.process(dataset)

        # Step 3: Partition and scale
        dataset, report.steps["partition"] = PartitionStage(config).process(dataset)
        scaling = ScalingStage(config)
        dataset, report.steps["scaling"] = scaling.process(dataset)

        # Step 4: Network
        network = ForecastingNetwork(
            dataset.input_variables_number,
            config.network.hidden_units,
            dataset.target_variables_number,
            timesteps=config.network.timesteps,
            random_state=config.network.random_state,
            input_names=dataset.input_names,
            output_names=dataset.target_names,
        )
        network.set_input_descriptives(scaling.inputs_descriptives, config.network.scaling_method)
        network.set_output_descriptives(scaling.targets_descriptives, config.network.unscaling_method)

        # Step 5: Training
        optimizer = QuasiNewtonMethod(network, dataset, config.training)
        results = optimizer.perform_training()
        report.training = results

        exporter = ArtifactExporter(config.data_paths.output_stem(series_name))
        if not results.success:
            report.files = exporter.export_all(dataset, network, optimizer.get_settings(), results)
            raise NumericalFailure(results.failure_message or "Training failed")

        # Step 6: Testing analysis and export
        analysis = None
        if len(dataset.testing_indices) > 0:
            analysis = TestingAnalysis(network, dataset, scaling.scaler)
            report.steps["testing"] = {"metrics": analysis.calculate_metrics()}
        else:
            logger.warning(f"No testing rows for {series_name}; skipping testing analysis")

        report.files = exporter.export_all(
            dataset, network, optimizer.get_settings(), results, analysis
        )
        report.success = True
        logger.info(f"Series {series_name} finished: {results.state.value} after {results.epochs} epochs")

    except ForecastingError as e:
        report.error = f"{type(e).__name__}: {e}"
        logger.error(f"Series {series_name} failed: {report.error}")

    return report


def run_all(config: Optional[ForecastConfig] = None,
            series: Optional[List[str]] = None) -> List[SeriesReport]:
    """Run every series in turn; a failing series does not stop the others."""
    config = config or ForecastConfig()
    names = series if series is not None else config.series
    return [run_series(name, config) for name in names]


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Forecast time series with an LSTM network trained by the quasi-Newton method",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  series-forecaster
  series-forecaster --series sine --data-dir data
  series-forecaster --config config.json --log-level DEBUG
        """
    )

    parser.add_argument(
        '--config',
        help='JSON configuration file (fields override the defaults)'
    )

    parser.add_argument(
        '--series',
        nargs='+',
        help='Series names to run (default: parabola sine increasing_sine)'
    )

    parser.add_argument(
        '--data-dir',
        help='Directory holding <series>.csv files and receiving outputs (default: data)'
    )

    parser.add_argument(
        '--lags',
        type=int,
        help='Number of lags in each input window'
    )

    parser.add_argument(
        '--steps-ahead',
        type=int,
        help='Number of future steps predicted per window'
    )

    parser.add_argument(
        '--maximum-epochs',
        type=int,
        help='Maximum number of training epochs'
    )

    parser.add_argument(
        '--maximum-time',
        type=float,
        help='Maximum training time in seconds'
    )

    parser.add_argument(
        '--seed',
        type=int,
        help='Seed for the partition and network initialisation'
    )

    parser.add_argument(
        '--log-level',
        default='INFO',
        choices=['DEBUG', 'INFO', 'WARNING', 'ERROR'],
        help='Logging level (default: INFO)'
    )

    parser.add_argument(
        '--log-dir',
        default='logs',
        help='Directory for log files (default: logs)'
    )

    return parser


def config_from_args(args: argparse.Namespace) -> ForecastConfig:
    """Build the run configuration, applying command-line overrides."""
    config = ForecastConfig.from_json(args.config) if args.config else ForecastConfig()

    if args.series:
        config.series = list(args.series)
    if args.data_dir:
        config.data_paths.data_dir = args.data_dir
    if args.lags is not None:
        config.time_series.lags_number = args.lags
    if args.steps_ahead is not None:
        config.time_series.steps_ahead = args.steps_ahead
    if args.maximum_epochs is not None:
        config.training.maximum_epochs = args.maximum_epochs
    if args.maximum_time is not None:
        config.training.maximum_time = args.maximum_time
    if args.seed is not None:
        config.partition.random_state = args.seed
        config.network.random_state = args.seed

    return config


def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point for the series forecaster."""
    args = build_parser().parse_args(argv)
    get_pipeline_logger(log_level=args.log_level, log_dir=args.log_dir)
    config = config_from_args(args)

    logger.info("=" * 60)
    logger.info("TIME SERIES FORECASTING")
    logger.info("=" * 60)
    logger.info(f"Series: {', '.join(config.series)}")
    logger.info(f"Data directory: {config.data_paths.data_dir}")
    logger.info(f"Lags: {config.time_series.lags_number}, steps ahead: {config.time_series.steps_ahead}")
    logger.info(f"Maximum epochs: {config.training.maximum_epochs}, "
                f"maximum time: {config.training.maximum_time}s")
    logger.info("=" * 60)

    try:
        reports = run_all(config)
    except KeyboardInterrupt:
        logger.info("Run interrupted by user")
        return 1

    failed = [r for r in reports if not r.success]
    for report in reports:
        status = "✓" if report.success else "✗"
        logger.info(f"  {status} {report.series}: {report.summary()}")

    if failed:
        logger.error(f"{len(failed)} of {len(reports)} series failed")
        return 1

    logger.info("ALL SERIES COMPLETED SUCCESSFULLY")
    return 0


if __name__ == "__main__":
    sys.exit(main())
