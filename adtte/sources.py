"""
Event and censoring source definitions for time-to-event parameters.

A source names the dataset it reads from, how the observation date is
obtained, which records qualify and which extra variables are attached to
the selected record. Sources are immutable and validated on construction.
"""

from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any, Callable, Mapping, Optional, Union

import numpy as np
import pandas as pd

from .utils import check_columns

Accessor = Callable[[pd.DataFrame], Any]

# Derived by the pipeline; never taken from set_values_to
RESERVED_VARIABLES = ('STARTDT', 'ADT', 'AVAL', 'CNSR')


def var(name: str) -> Accessor:
    """
    Reference a column of the dataset a source reads from.

    Parameters
    ----------
    name : str
        Column name

    Returns
    -------
    callable
        Function returning the column of a DataFrame
    """
    def _lookup(data: pd.DataFrame) -> pd.Series:
        check_columns(data, [name], 'source dataset')
        return data[name]

    _lookup.__name__ = f"var_{name}"
    _lookup.column = name
    return _lookup


def evaluate(value: Any, data: pd.DataFrame) -> Any:
    """Evaluate a literal value or an accessor against ``data``."""
    if callable(value):
        result = value(data)
        if isinstance(result, pd.Series):
            return result.to_numpy()
        return result
    return value


def describe_value(value: Any) -> str:
    """Human readable rendering of a literal value or accessor."""
    if callable(value):
        column = getattr(value, 'column', None)
        if column is not None:
            return column
        return getattr(value, '__name__', repr(value))
    return repr(value)


@dataclass(frozen=True)
class TTESource:
    """
    Base class of ``EventSource`` and ``CensorSource``; not used directly.

    Attributes
    ----------
    dataset_name : str
        Name of the source dataset in the ``source_datasets`` mapping
    date : str or callable
        Column holding the observation date, or a function returning it
    filter : callable, optional
        Function returning a boolean mask of qualifying records
    set_values_to : mapping
        Output variables mapped to literal values or accessors (see ``var``)
    censor : int
        Censoring value (0 for events)
    """
    dataset_name: str
    date: Union[str, Accessor]
    filter: Optional[Callable[[pd.DataFrame], Any]] = None
    set_values_to: Mapping[str, Any] = field(default_factory=dict)
    censor: int = 0

    def __post_init__(self):
        if not isinstance(self.dataset_name, str) or self.dataset_name == '':
            raise ValueError("dataset_name must be a non-empty string")
        if not (isinstance(self.date, str) or callable(self.date)):
            raise ValueError("date must be a column name or a callable")
        if self.filter is not None and not callable(self.filter):
            raise ValueError("filter must be callable")
        for name in RESERVED_VARIABLES:
            if name in self.set_values_to:
                raise ValueError(f"{name} cannot be set with set_values_to")
        object.__setattr__(self, 'set_values_to',
                           MappingProxyType(dict(self.set_values_to)))
        self._validate_censor()

    def _validate_censor(self):
        raise NotImplementedError("Use EventSource or CensorSource")

    @property
    def is_event(self) -> bool:
        return self.censor == 0

    def qualifying_records(self, data: pd.DataFrame) -> pd.DataFrame:
        """Copy of the records of ``data`` passing the filter (missing counts as False)."""
        if self.filter is not None:
            mask = self.filter(data)
            mask = pd.Series(mask, index=data.index)
            mask = mask.astype('boolean').fillna(False).astype(bool)
            data = data[mask]
        return data.copy()

    def observation_dates(self, data: pd.DataFrame) -> pd.Series:
        """Observation date of every record of ``data``."""
        if callable(self.date):
            values = self.date(data)
            return pd.Series(values, index=data.index)
        check_columns(data, [self.date], self.dataset_name)
        return data[self.date]

    def describe(self) -> dict:
        """Summary of the source used by ``list_tte_source_objects``."""
        return {
            'dataset_name': self.dataset_name,
            'filter': describe_value(self.filter) if self.filter is not None else None,
            'date': describe_value(self.date) if callable(self.date) else self.date,
            'censor': self.censor,
            'set_values_to': ', '.join(
                f"{k}={describe_value(v)}" for k, v in self.set_values_to.items()
            ),
        }


@dataclass(frozen=True)
class EventSource(TTESource):
    """Definition of an event; the censoring value is always 0."""

    def _validate_censor(self):
        if isinstance(self.censor, (bool, np.bool_)) or self.censor != 0:
            raise ValueError("Invalid censor: event sources must have censor = 0")


@dataclass(frozen=True)
class CensorSource(TTESource):
    """Definition of a censoring observation; the censoring value is >= 1."""
    censor: int = 1

    def _validate_censor(self):
        if isinstance(self.censor, (bool, np.bool_)) or not isinstance(self.censor, (int, np.integer)):
            raise ValueError("Invalid censor: must be an integer >= 1")
        if self.censor < 1:
            raise ValueError("Invalid censor: must be an integer >= 1")
