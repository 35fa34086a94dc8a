"""
Duration between two dates in a chosen unit.
"""

from typing import Union

import numpy as np
import pandas as pd

from .utils import check_columns, fix_dates, standarddaysinyear

_DAY = 24 * 60 * 60

UNIT_SECONDS = {
    'seconds': 1,
    'minutes': 60,
    'hours': 60 * 60,
    'days': _DAY,
    'weeks': 7 * _DAY,
    'months': standarddaysinyear() / 12 * _DAY,
    'years': standarddaysinyear() * _DAY,
}

# Units the inputs can be floored to
IN_UNIT_FREQ = {
    'seconds': 's',
    'minutes': 'min',
    'hours': 'h',
    'days': 'D',
}


def _floor(values, freq: str):
    if isinstance(values, pd.Series):
        return values.dt.floor(freq)
    return values.floor(freq)


def _as_dates(value):
    # scalars come back as a single Timestamp; missing scalars as NaT
    if np.ndim(value) == 0 and pd.isna(value):
        return pd.NaT
    dates = fix_dates(value)
    if isinstance(dates, pd.Series) and np.ndim(value) == 0:
        return dates.iloc[0]
    return dates


def compute_duration(start_date,
                     end_date,
                     in_unit: str = 'days',
                     out_unit: str = 'days',
                     floor_in: bool = True,
                     add_one: bool = False,
                     trunc_out: bool = False) -> Union[pd.Series, float]:
    """
    Compute the duration between two dates.

    Parameters
    ----------
    start_date : pd.Series or scalar
        Start dates (anything accepted by ``fix_dates``)
    end_date : pd.Series or scalar
        End dates
    in_unit : str
        Precision of the inputs: 'seconds', 'minutes', 'hours' or 'days'
    out_unit : str
        Unit of the result: 'seconds', 'minutes', 'hours', 'days', 'weeks',
        'months' or 'years'. Months and years use 365.25 days per year.
    floor_in : bool
        Floor both dates to ``in_unit`` before subtracting
    add_one : bool
        Add one ``in_unit`` to non-negative durations
    trunc_out : bool
        Truncate the result toward zero

    Returns
    -------
    pd.Series or float
        Durations; NaN where either date is missing

    Example
    -------
    >>> compute_duration('2022-02-15', '2022-08-19')
    185.0
    """
    if in_unit not in IN_UNIT_FREQ:
        raise ValueError(f"Invalid in_unit: must be one of {list(IN_UNIT_FREQ)}")
    if out_unit not in UNIT_SECONDS:
        raise ValueError(f"Invalid out_unit: must be one of {list(UNIT_SECONDS)}")

    start = _as_dates(start_date)
    end = _as_dates(end_date)
    scalar = np.ndim(start_date) == 0 and np.ndim(end_date) == 0

    if floor_in:
        start = _floor(start, IN_UNIT_FREQ[in_unit])
        end = _floor(end, IN_UNIT_FREQ[in_unit])

    duration = (end - start) / pd.Timedelta(seconds=UNIT_SECONDS[in_unit])

    if add_one:
        duration = duration + (duration >= 0)

    duration = duration * UNIT_SECONDS[in_unit] / UNIT_SECONDS[out_unit]

    if trunc_out:
        duration = np.trunc(duration)

    if scalar:
        return float(duration)
    return duration.astype(float)


def derive_vars_duration(dataset: pd.DataFrame,
                         new_var: str,
                         start_date: str,
                         end_date: str,
                         **kwargs) -> pd.DataFrame:
    """
    Add a duration variable to a dataset.

    Parameters
    ----------
    dataset : pd.DataFrame
        Input data, not modified
    new_var : str
        Name of the new column
    start_date, end_date : str
        Columns holding the start and end dates
    **kwargs
        Passed on to ``compute_duration``

    Returns
    -------
    pd.DataFrame
        Copy of ``dataset`` with ``new_var`` added
    """
    check_columns(dataset, [start_date, end_date], 'dataset')
    result = dataset.copy()
    result[new_var] = compute_duration(result[start_date], result[end_date], **kwargs)
    return result
