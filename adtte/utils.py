"""
Utility functions used throughout the adtte package.
"""

import csv
import logging
from datetime import date, datetime
from typing import List, Optional, Sequence, Union

import numpy as np
import pandas as pd
from pandas.api.types import is_datetime64_any_dtype


def standarddaysinyear() -> float:
    """Return the number of days in a year (default 365.25)."""
    return 365.25


def get_default_logger(prefix: str = "adtte") -> logging.Logger:
    """
    Get the default logger instance with the given prefix.

    Parameters
    ----------
    prefix : str
        Logger name prefix

    Returns
    -------
    logging.Logger
    """
    return logging.getLogger(prefix)


def set_verbosity(level: int = logging.INFO):
    """Set the verbosity level for the default logger."""
    get_default_logger().setLevel(level)


def fix_dates(vec: Union[str, date, List, pd.Series, None]) -> Optional[pd.Series]:
    """
    Convert various date formats to pandas datetime.

    Accepts:
    - YYYY-MM-DD
    - DD/MM/YYYY
    - DD Month YYYY
    - date / datetime objects and datetime64 columns

    Parameters
    ----------
    vec : str, date, list, or pd.Series
        Date values to convert

    Returns
    -------
    pd.Series or None
        Converted dates as pandas datetime (a Timestamp for scalar input)
    """
    if vec is None:
        return None

    if isinstance(vec, (date, datetime)):
        return pd.Timestamp(vec)

    if isinstance(vec, str):
        vec = [vec]

    if isinstance(vec, (list, tuple, np.ndarray)):
        vec = pd.Series(vec)

    if isinstance(vec, pd.Series):
        if is_datetime64_any_dtype(vec):
            return vec

        # Replace empty strings with NaT
        vec = vec.where(vec.astype(str).str.strip() != '', None)
        present = vec.dropna()

        if present.empty:
            return pd.to_datetime(vec)

        if present.map(lambda v: isinstance(v, (date, datetime))).all():
            return pd.to_datetime(vec)

        formats = ['%Y-%m-%d', '%d/%m/%Y', '%d %b %Y', '%d %B %Y',
                   '%Y-%m-%dT%H:%M:%S', '%Y-%m-%d %H:%M:%S']

        for fmt in formats:
            try:
                result = pd.to_datetime(vec, format=fmt, errors='coerce')
                if result.notna().sum() == vec.notna().sum():
                    return result
            except (ValueError, TypeError):
                continue

    raise ValueError("Error reading date format. It should be of the form "
                     "YYYY-MM-DD, DD/MM/YYYY or DD Month YYYY")


def as_key_list(subject_keys: Union[str, Sequence[str]]) -> List[str]:
    """Normalise subject keys given as a column name or a sequence of names."""
    if isinstance(subject_keys, str):
        return [subject_keys]
    keys = list(subject_keys)
    if len(keys) == 0:
        raise ValueError("subject_keys must name at least one column")
    return keys


def check_columns(data: pd.DataFrame, columns: Sequence[str], dataset_name: str):
    """Raise if any of ``columns`` is missing from ``data``."""
    for col in columns:
        if col not in data.columns:
            raise ValueError(f"Column name {col} not found in data frame {dataset_name}")


def format_subjects(frame: pd.DataFrame, keys: Sequence[str], limit: int = 10) -> str:
    """Render subject key values for messages, truncating long lists."""
    values = [
        row[0] if len(row) == 1 else tuple(row)
        for row in frame[list(keys)].itertuples(index=False, name=None)
    ]
    text = str(values[:limit])
    if len(values) > limit:
        text += f" and {len(values) - limit} more"
    return text


def csv_sniffer(path: str, delim_options: Sequence[str] = (',', ';', '\t')) -> pd.DataFrame:
    """
    Read a CSV file, automatically detecting the delimiter.

    A delimiter is accepted when it splits every non-blank row into the same
    number (more than one) of fields. Quoted fields such as an AETERM of
    ``"NAUSEA, VOMITING"`` are a single field.

    Parameters
    ----------
    path : str
        Path to the CSV file
    delim_options : sequence of str
        Possible delimiters, tried in order

    Returns
    -------
    pd.DataFrame
        Loaded data

    Raises
    ------
    ValueError
        If none of the delimiters gives a consistent number of fields
    """
    for delim in delim_options:
        with open(path, 'r', newline='') as f:
            widths = {len(row) for row in csv.reader(f, delimiter=delim) if any(row)}
        if len(widths) == 1 and widths.pop() > 1:
            get_default_logger().debug(f"Reading {path} with delimiter {delim!r}")
            return pd.read_csv(path, sep=delim)

    raise ValueError("Cannot determine delimiter")
