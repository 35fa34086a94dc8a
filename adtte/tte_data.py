"""
TTEData class for a derived time-to-event parameter.
"""

from dataclasses import dataclass
from typing import Dict, Optional, Sequence, Union
import warnings

import numpy as np
import pandas as pd

from .duration import UNIT_SECONDS
from .utils import as_key_list, check_columns


@dataclass
class TTEData:
    """
    Class representing one time-to-event parameter.

    Attributes
    ----------
    data : pd.DataFrame
        ADTTE records with at least the subject keys, AVAL and CNSR
    subject_keys : tuple
        Columns identifying a subject
    unit : str
        Unit of AVAL, one of the ``compute_duration`` output units
    """
    data: pd.DataFrame
    subject_keys: Sequence[str] = ('STUDYID', 'USUBJID')
    unit: str = 'days'

    def __post_init__(self):
        self.subject_keys = tuple(as_key_list(self.subject_keys))
        self._validate()

    def _validate(self):
        """Validate the time-to-event data."""
        data = self.data
        if self.unit not in UNIT_SECONDS:
            raise ValueError(f"Invalid unit: must be one of {list(UNIT_SECONDS)}")
        check_columns(data, list(self.subject_keys) + ['AVAL', 'CNSR'], 'data')

        if len(data) == 0:
            return

        if data['AVAL'].isna().any() or data['CNSR'].isna().any():
            raise ValueError("AVAL and CNSR must not be missing")

        if (data['AVAL'] < 0).any():
            bad = data.loc[data['AVAL'] < 0, list(self.subject_keys)]
            raise ValueError(f"subjects cannot have negative AVAL: {bad.values.tolist()}")

        cnsr = data['CNSR'].astype(float)
        if (cnsr < 0).any() or (cnsr != np.floor(cnsr)).any():
            raise ValueError("CNSR must be an integer >= 0")

        if data.duplicated(subset=list(self.subject_keys)).any():
            raise ValueError("subject ID must be unique")

        if 'PARAMCD' in data.columns and data['PARAMCD'].nunique() > 1:
            raise ValueError("data must contain a single parameter")

        if (cnsr != 0).all():
            warnings.warn("No events have occurred")

    @property
    def n_subjects(self) -> int:
        """Number of subjects."""
        return len(self.data)

    @property
    def n_events(self) -> int:
        """Number of events."""
        return int((self.data['CNSR'] == 0).sum())

    @property
    def n_censored(self) -> int:
        """Number of censored subjects."""
        return int((self.data['CNSR'] != 0).sum())

    @property
    def times(self) -> np.ndarray:
        return self.data['AVAL'].to_numpy(dtype=float)

    @property
    def events(self) -> np.ndarray:
        """Event indicator (1=event, 0=censored)."""
        return (self.data['CNSR'] == 0).to_numpy(dtype=int)

    def summary(self) -> str:
        """Return a summary string of the data."""
        df = self.data

        if len(df) == 0:
            return "Empty data frame!"

        lines = []
        if 'PARAMCD' in df.columns:
            label = df['PARAMCD'].iloc[0]
            if 'PARAM' in df.columns:
                label = f"{label} ({df['PARAM'].iloc[0]})"
            lines.append(f"Parameter: {label}")

        lines.append(f"Number of subjects: {self.n_subjects}")
        lines.append(f"Number of events: {self.n_events}")
        self._add_breakdown(lines, df[df['CNSR'] == 0])

        lines.append(f"Number of censored: {self.n_censored}")
        self._add_breakdown(lines, df[df['CNSR'] != 0])

        if 'STARTDT' in df.columns and df['STARTDT'].notna().any():
            lines.append(f"First start date: {df['STARTDT'].min().date()}")
            lines.append(f"Last start date: {df['STARTDT'].max().date()}")

        median = df['AVAL'].median()
        line = f"Median follow up: {median:.1f} {self.unit}"
        if self.unit != 'years':
            line += f" ({median * UNIT_SECONDS[self.unit] / UNIT_SECONDS['years']:.2f} years)"
        lines.append(line)

        return '\n'.join(lines)

    @staticmethod
    def _add_breakdown(lines, subset: pd.DataFrame):
        if 'EVNTDESC' not in subset.columns:
            return
        for desc, count in subset['EVNTDESC'].value_counts().items():
            lines.append(f"  {desc}: {count}")

    def __str__(self) -> str:
        return self.summary()

    def kaplan_meier(self, by: Optional[str] = None,
                     conf_level: float = 0.95):
        """
        Kaplan-Meier estimate of the parameter.

        Parameters
        ----------
        by : str, optional
            Column to stratify by (e.g. 'ARM')
        conf_level : float
            Confidence level for intervals

        Returns
        -------
        KaplanMeierResult, or dict of group value to KaplanMeierResult if
        ``by`` is given
        """
        from .plotting import kaplan_meier_estimate

        if by is None:
            return kaplan_meier_estimate(self.times, self.events, conf_level)

        check_columns(self.data, [by], 'data')
        results: Dict = {}
        for value, group in self.data.groupby(by, sort=True):
            results[value] = kaplan_meier_estimate(
                group['AVAL'].to_numpy(dtype=float),
                (group['CNSR'] == 0).to_numpy(dtype=int),
                conf_level,
            )
        return results


def TTEData_from_adtte(adtte: pd.DataFrame,
                       paramcd: Optional[str] = None,
                       subject_keys: Union[str, Sequence[str]] = ('STUDYID', 'USUBJID'),
                       unit: str = 'days') -> TTEData:
    """
    Constructor for TTEData from ADTTE records.

    Parameters
    ----------
    adtte : pd.DataFrame
        ADTTE records, possibly holding several parameters
    paramcd : str, optional
        Parameter to select; required if ``adtte`` holds several parameters
    subject_keys : str or sequence of str
        Columns identifying a subject
    unit : str
        Unit of AVAL, one of the ``compute_duration`` output units

    Returns
    -------
    TTEData
    """
    data = adtte
    if paramcd is not None:
        check_columns(data, ['PARAMCD'], 'adtte')
        data = data[data['PARAMCD'] == paramcd]
        if len(data) == 0:
            raise ValueError(f"PARAMCD {paramcd} not found in adtte")
    elif 'PARAMCD' in data.columns and data['PARAMCD'].nunique() > 1:
        raise ValueError("adtte holds several parameters, paramcd must be given")

    check_columns(data, ['AVAL', 'CNSR'], 'adtte')
    missing = data['AVAL'].isna() | data['CNSR'].isna()
    if missing.any():
        keys = as_key_list(subject_keys)
        warnings.warn(f"Subjects {data.loc[missing, keys].values.tolist()} have missing "
                      f"AVAL or CNSR and have been removed.")
        data = data[~missing]

    data = data.copy().reset_index(drop=True)
    data['CNSR'] = data['CNSR'].astype(int)
    return TTEData(data=data, subject_keys=subject_keys, unit=unit)
