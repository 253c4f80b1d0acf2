"""Shared utilities."""

from .logging_config import get_logger, get_pipeline_logger, setup_logging

__all__ = ["setup_logging", "get_logger", "get_pipeline_logger"]
