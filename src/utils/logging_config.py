"""
Centralized Logging Configuration using Loguru

This module provides a unified logging setup for the forecasting runner.
Library modules log through the standard `logging` module; once
setup_logging() has run, those records are routed into the loguru sinks.

Features:
- Automatic file rotation and compression
- Consistent formatting across all components
- Component-specific log files
- Configurable log levels and outputs

Usage:
    from utils.logging_config import setup_logging

    logger = setup_logging(component_name="series_forecaster")
    logger.info("Forecasting {count} series", count=3)
"""

import logging
import sys
from datetime import datetime
from pathlib import Path
from typing import Optional, Union

from loguru import logger


class InterceptHandler(logging.Handler):
    """Forward standard-library log records to loguru."""

    def emit(self, record: logging.LogRecord) -> None:
        try:
            level = logger.level(record.levelname).name
        except ValueError:
            level = record.levelno

        # Find the caller outside the logging module
        frame, depth = logging.currentframe(), 2
        while frame is not None and frame.f_code.co_filename == logging.__file__:
            frame = frame.f_back
            depth += 1

        logger.bind(component=record.name).opt(depth=depth, exception=record.exc_info).log(
            level, record.getMessage()
        )


def intercept_standard_logging(level: Union[int, str] = logging.INFO) -> None:
    """Route every standard-library logger through loguru."""
    logging.basicConfig(handlers=[InterceptHandler()], level=level, force=True)


def setup_logging(
    component_name: Optional[str] = None,
    log_level: str = "INFO",
    log_dir: Union[str, Path] = "logs",
    enable_console: bool = True,
    enable_file: bool = True,
    rotation: str = "10 MB",
    retention: str = "30 days",
    compression: str = "zip",
    use_timestamp: bool = True,
    intercept: bool = True
) -> "logger":
    """
    Setup centralized logging configuration.

    Parameters:
    ----------
    component_name : str, optional
        Name of the component (creates component-specific log file)
    log_level : str
        Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
    log_dir : str or Path
        Directory to store log files
    enable_console : bool
        Enable console (terminal) output
    enable_file : bool
        Enable file logging
    rotation : str
        Log file rotation size/time (e.g., "10 MB", "1 day")
    retention : str
        How long to keep log files (e.g., "30 days", "1 week")
    compression : str
        Compression format for rotated logs ("zip", "gz", etc.)
    use_timestamp : bool
        Add timestamp to log filenames to prevent overwriting
    intercept : bool
        Route standard-library logging records into loguru

    Returns:
    -------
    logger
        Configured Loguru logger instance

    Examples:
    --------
    >>> logger = setup_logging("series_forecaster")
    >>> logger.info("Training started")

    >>> logger = setup_logging("debug_session", log_level="DEBUG", enable_file=False)
    >>> logger.debug("Per-epoch details")
    """
    logger.remove()
    component_name = component_name or "pipeline"
    logger.configure(extra={"component": component_name})

    if enable_console:
        console_format = (
            "<green>{time:YYYY-MM-DD HH:mm:ss}</green> | "
            "<level>{level: <8}</level> | "
            "<cyan>{extra[component]}</cyan> | "
            "<level>{message}</level>"
        )
        logger.add(
            sys.stdout,
            level=log_level,
            format=console_format,
            colorize=True,
            backtrace=True,
            diagnose=False
        )

    log_path = Path(log_dir)
    if enable_file:
        log_path.mkdir(parents=True, exist_ok=True)
        if use_timestamp:
            timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
            log_file = log_path / f"{component_name}_{timestamp}.log"
        else:
            log_file = log_path / f"{component_name}.log"

        file_format = (
            "{time:YYYY-MM-DD HH:mm:ss} | "
            "{level: <8} | "
            "{extra[component]} | "
            "{function}:{line} | "
            "{message}"
        )
        logger.add(
            log_file,
            level=log_level,
            format=file_format,
            rotation=rotation,
            retention=retention,
            compression=compression,
            backtrace=True,
            diagnose=False,
            enqueue=True  # Thread-safe logging
        )

    if intercept:
        intercept_standard_logging(log_level)

    component_logger = logger.bind(component=component_name)
    component_logger.info("Logging initialized for component: {component}", component=component_name)
    if enable_file:
        component_logger.info("Log files will be saved to: {log_dir}", log_dir=log_path.absolute())

    return component_logger


def get_logger(component_name: str, **kwargs) -> "logger":
    """
    Convenience function to get a configured logger for a component.

    Examples:
    --------
    >>> logger = get_logger("series_forecaster", enable_file=False)
    """
    return setup_logging(component_name=component_name, **kwargs)


def get_pipeline_logger(**kwargs) -> "logger":
    """Get logger for the forecasting runner."""
    return get_logger("series_forecaster", **kwargs)
