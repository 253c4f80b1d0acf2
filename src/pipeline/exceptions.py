"""
Error taxonomy for the forecasting pipeline.

Every stage raises a distinct subclass of ForecastingError so the series
runner can report the failure and continue with the next series.
"""


class ForecastingError(Exception):
    """Base class for all pipeline and training failures."""


class DatasetError(ForecastingError):
    """Dataset is in a state the requested operation cannot handle."""


class FileIOError(ForecastingError):
    """Source file is missing, unreadable or malformed."""


class InsufficientDataError(DatasetError):
    """Too few distinct time points to build a single lag window."""


class AlreadyTransformedError(DatasetError):
    """Dataset has already been converted to a time series."""


class TimeColumnError(DatasetError):
    """Time column is missing, has missing cells or repeats a time point."""


class EmptyColumnError(DatasetError):
    """Column has no non-missing cells to compute a statistic from."""


class InvalidRatioError(ForecastingError):
    """Partition ratios are negative or do not sum to one."""


class DegenerateRangeError(ForecastingError):
    """Column cannot be scaled because its range or spread is zero."""


class NumericalFailure(ForecastingError):
    """Loss or gradient became non-finite during optimization."""


class ConfigurationError(ForecastingError, ValueError):
    """Setting has a value no stage can run with."""
