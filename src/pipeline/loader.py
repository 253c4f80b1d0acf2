"""
Loading of header-less delimited series files.

Columns are positional and numeric; cells that cannot be parsed as numbers
other than the recognised missing markers make the file malformed.
"""

import logging
from pathlib import Path
from typing import Optional, Union

import pandas as pd

from .config import DataPaths
from .dataset import TabularDataset
from .exceptions import FileIOError

logger = logging.getLogger(__name__)

MISSING_MARKERS = ["NA", "NaN", "nan", "?", ""]


class DataLoader:
    """Reads named series from the data directory into TabularDatasets."""

    def __init__(self, data_paths: Optional[DataPaths] = None):
        self.data_paths = data_paths or DataPaths()

    def load_series(self, series_name: str) -> TabularDataset:
        """Load `<data_dir>/<series_name>.csv`."""
        return self.load_file(self.data_paths.source_file(series_name), name=series_name)

    def load_file(self, file_path: Union[str, Path], name: Optional[str] = None) -> TabularDataset:
        """
        Load a single delimited file.

        Parameters:
        ----------
        file_path : Union[str, Path]
            Path to the file
        name : str, optional
            Dataset name (defaults to the file stem)

        Returns:
        -------
        TabularDataset
            Dataset with the last column as target and the rest as inputs
        """
        file_path = Path(file_path)
        name = name or file_path.stem

        if not file_path.exists():
            raise FileIOError(f"Data file not found: {file_path}")

        try:
            df = pd.read_csv(
                file_path,
                sep=self.data_paths.delimiter,
                header=0 if self.data_paths.has_header else None,
                na_values=MISSING_MARKERS,
                skipinitialspace=True,
            )
        except (pd.errors.ParserError, pd.errors.EmptyDataError, UnicodeDecodeError) as e:
            raise FileIOError(f"Malformed data file {file_path}: {e}") from e

        if df.empty:
            raise FileIOError(f"Data file has no rows: {file_path}")

        if not self.data_paths.has_header:
            df.columns = [f"column_{i + 1}" for i in range(df.shape[1])]

        non_numeric = [
            column for column in df.columns
            if not pd.api.types.is_numeric_dtype(df[column])
        ]
        if non_numeric:
            raise FileIOError(f"Non-numeric values in columns {non_numeric} of {file_path}")

        dataset = TabularDataset(df, name=name)
        logger.info(f"Loaded {name}: {dataset.rows_number} rows, {dataset.columns_number} columns")
        return dataset
