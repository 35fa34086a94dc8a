"""
Predefined event and censoring sources.

The sources assume ADaM variable conventions: subject-level data are
registered as ``'adsl'`` and adverse events as ``'adae'`` in the
``source_datasets`` mapping.
"""

from typing import Callable

import pandas as pd

from .sources import CensorSource, EventSource, TTESource, var


def _equals(column: str, value: str) -> Callable[[pd.DataFrame], pd.Series]:
    def _predicate(data: pd.DataFrame) -> pd.Series:
        return var(column)(data) == value

    _predicate.__name__ = f"{column} == '{value}'"
    return _predicate


def _all_of(*predicates) -> Callable[[pd.DataFrame], pd.Series]:
    def _predicate(data: pd.DataFrame) -> pd.Series:
        mask = predicates[0](data)
        for predicate in predicates[1:]:
            mask = mask & predicate(data)
        return mask

    _predicate.__name__ = ' & '.join(p.__name__ for p in predicates)
    return _predicate


_teae = _equals('TRTEMFL', 'Y')

death_event = EventSource(
    dataset_name='adsl',
    filter=_equals('DTHFL', 'Y'),
    date='DTHDT',
    set_values_to={
        'EVNTDESC': 'DEATH',
        'SRCDOM': 'ADSL',
        'SRCVAR': 'DTHDT',
    },
)

lastalv_censor = CensorSource(
    dataset_name='adsl',
    date='LSTALVDT',
    censor=1,
    set_values_to={
        'EVNTDESC': 'LAST DATE KNOWN ALIVE',
        'SRCDOM': 'ADSL',
        'SRCVAR': 'LSTALVDT',
    },
)

eot_censor = CensorSource(
    dataset_name='adsl',
    date='TRTEDT',
    censor=1,
    set_values_to={
        'EVNTDESC': 'END OF TREATMENT',
        'SRCDOM': 'ADSL',
        'SRCVAR': 'TRTEDT',
    },
)

ae_event = EventSource(
    dataset_name='adae',
    filter=_teae,
    date='ASTDT',
    set_values_to={
        'EVNTDESC': 'ADVERSE EVENT',
        'SRCDOM': 'ADAE',
        'SRCVAR': 'ASTDT',
        'SRCSEQ': var('AESEQ'),
    },
)

ae_ser_event = EventSource(
    dataset_name='adae',
    filter=_all_of(_teae, _equals('AESER', 'Y')),
    date='ASTDT',
    set_values_to={
        'EVNTDESC': 'SERIOUS ADVERSE EVENT',
        'SRCDOM': 'ADAE',
        'SRCVAR': 'ASTDT',
        'SRCSEQ': var('AESEQ'),
    },
)

ae_gr3_event = EventSource(
    dataset_name='adae',
    filter=_all_of(_teae, _equals('ATOXGR', '3')),
    date='ASTDT',
    set_values_to={
        'EVNTDESC': 'GRADE 3 ADVERSE EVENT',
        'SRCDOM': 'ADAE',
        'SRCVAR': 'ASTDT',
        'SRCSEQ': var('AESEQ'),
    },
)

ae_wd_event = EventSource(
    dataset_name='adae',
    filter=_all_of(_teae, _equals('AEACN', 'DRUG WITHDRAWN')),
    date='ASTDT',
    set_values_to={
        'EVNTDESC': 'ADVERSE EVENT LEADING TO DRUG WITHDRAWAL',
        'SRCDOM': 'ADAE',
        'SRCVAR': 'ASTDT',
        'SRCSEQ': var('AESEQ'),
    },
)

TTE_SOURCES = {
    'death_event': death_event,
    'lastalv_censor': lastalv_censor,
    'eot_censor': eot_censor,
    'ae_event': ae_event,
    'ae_ser_event': ae_ser_event,
    'ae_gr3_event': ae_gr3_event,
    'ae_wd_event': ae_wd_event,
}


def get_tte_source(name: str) -> TTESource:
    """Look up a predefined source by name."""
    if name not in TTE_SOURCES:
        raise ValueError(f"Unknown source {name}. Available: {sorted(TTE_SOURCES)}")
    return TTE_SOURCES[name]


def list_tte_source_objects() -> pd.DataFrame:
    """
    Describe the predefined sources.

    Returns
    -------
    pd.DataFrame
        One row per source with its name, dataset, filter, date, censoring
        value and the variables it sets
    """
    rows = []
    for name, source in TTE_SOURCES.items():
        row = {'object': name, 'type': 'event' if source.is_event else 'censor'}
        row.update(source.describe())
        rows.append(row)
    return pd.DataFrame(rows)
