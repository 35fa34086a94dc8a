"""
Derivation of a time-to-event parameter.

For every subject of the subject-level dataset one record is derived:

1. the earliest qualifying event over all event sources,
2. otherwise the latest qualifying censoring observation,
3. the start date is merged from the subject-level dataset and the
   observation date is floored at it,
4. the analysis value is the duration from the start date.
"""

import warnings
from logging import DEBUG, ERROR
from typing import Dict, List, Mapping, Optional, Sequence, Union

import pandas as pd
from logdecorator import log_on_end, log_on_error, log_on_start

from .duration import compute_duration
from .sources import RESERVED_VARIABLES, CensorSource, EventSource, TTESource, evaluate
from .utils import (
    as_key_list, check_columns, fix_dates, format_subjects, get_default_logger
)

logger = get_default_logger()

CHECK_TYPES = ('warning', 'error', 'none')

_DATE = '_adtte_date'
_SOURCE_NR = '_adtte_source_nr'


def _report(message: str, check_type: str):
    if check_type == 'error':
        raise ValueError(message)
    if check_type == 'warning':
        warnings.warn(message)


def filter_extreme(data: pd.DataFrame,
                   keys: List[str],
                   date_col: str,
                   mode: str,
                   check_type: str = 'warning',
                   label: str = 'dataset') -> pd.DataFrame:
    """
    Keep one record per subject with the first or last date.

    If several records of a subject share the extreme date, the one coming
    first in row order is kept and the tie is reported per ``check_type``.
    """
    if mode not in ('first', 'last'):
        raise ValueError("mode must be 'first' or 'last'")
    if data.empty:
        return data

    extreme = data.groupby(keys, sort=False)[date_col].transform(
        'min' if mode == 'first' else 'max'
    )
    candidates = data[data[date_col] == extreme]

    tied = candidates.duplicated(subset=keys, keep=False)
    if tied.any():
        subjects = candidates.loc[tied, keys].drop_duplicates()
        _report(
            f"{label} contains multiple records with the same {mode} date for "
            f"subjects {format_subjects(subjects, keys)}. The first record in "
            f"row order is used.",
            check_type,
        )

    return candidates.drop_duplicates(subset=keys, keep='first')


def _empty_records(keys: List[str]) -> pd.DataFrame:
    columns = {k: pd.Series([], dtype=object) for k in keys}
    columns['ADT'] = pd.Series([], dtype='datetime64[ns]')
    columns['CNSR'] = pd.Series([], dtype='Int64')
    return pd.DataFrame(columns)


def _extract_source(source: TTESource,
                    nr: int,
                    source_datasets: Mapping[str, pd.DataFrame],
                    keys: List[str],
                    mode: str,
                    check_type: str) -> pd.DataFrame:
    data = source_datasets[source.dataset_name]
    check_columns(data, keys, source.dataset_name)

    records = source.qualifying_records(data)
    records[_DATE] = fix_dates(source.observation_dates(records))
    records = records[records[_DATE].notna()]

    kind = 'event' if source.is_event else 'censoring'
    label = f"Source dataset {source.dataset_name} ({kind} source {nr + 1})"
    records = filter_extreme(records, keys, _DATE, mode, check_type, label)
    records = records.reset_index(drop=True)

    out = records[keys].copy()
    out['ADT'] = records[_DATE]
    out['CNSR'] = source.censor
    for name, value in source.set_values_to.items():
        out[name] = evaluate(value, records)
    out[_SOURCE_NR] = nr

    logger.debug(f"{label}: {len(out)} subjects selected")
    return out


def _extract(sources: Sequence[TTESource],
             source_datasets: Mapping[str, pd.DataFrame],
             keys: List[str],
             mode: str,
             check_type: str) -> pd.DataFrame:
    """Extract one record per subject over all ``sources``."""
    frames = [
        _extract_source(source, nr, source_datasets, keys, mode, check_type)
        for nr, source in enumerate(sources)
    ]
    frames = [f for f in frames if not f.empty]
    if not frames:
        return _empty_records(keys)

    combined = pd.concat(frames, ignore_index=True)
    # Sources listed first win ties across sources
    combined = combined.sort_values(_SOURCE_NR, kind='mergesort')
    combined = filter_extreme(combined, keys, 'ADT', mode, check_type='none')
    return combined.drop(columns=_SOURCE_NR).reset_index(drop=True)


def extract_events(event_conditions: Sequence[EventSource],
                   source_datasets: Mapping[str, pd.DataFrame],
                   subject_keys: Union[str, Sequence[str]] = ('STUDYID', 'USUBJID'),
                   check_type: str = 'warning') -> pd.DataFrame:
    """
    Earliest qualifying event per subject over all event sources.

    Parameters
    ----------
    event_conditions : list of EventSource
    source_datasets : dict
        Source dataset name to DataFrame
    subject_keys : str or sequence of str
        Columns identifying a subject
    check_type : str
        How ties within a source are reported: 'warning', 'error' or 'none'

    Returns
    -------
    pd.DataFrame
        Subject keys, ADT, CNSR (0) and the sources' ``set_values_to`` variables
    """
    keys = as_key_list(subject_keys)
    _check_sources(event_conditions, EventSource, 'event_conditions', source_datasets, keys)
    return _extract(event_conditions, source_datasets, keys, 'first', check_type)


def extract_censors(censor_conditions: Sequence[CensorSource],
                    source_datasets: Mapping[str, pd.DataFrame],
                    subject_keys: Union[str, Sequence[str]] = ('STUDYID', 'USUBJID'),
                    check_type: str = 'warning') -> pd.DataFrame:
    """Latest qualifying censoring observation per subject (see ``extract_events``)."""
    keys = as_key_list(subject_keys)
    _check_sources(censor_conditions, CensorSource, 'censor_conditions', source_datasets, keys)
    return _extract(censor_conditions, source_datasets, keys, 'last', check_type)


def select_observations(events: pd.DataFrame,
                        censors: pd.DataFrame,
                        subject_keys: Union[str, Sequence[str]] = ('STUDYID', 'USUBJID')) -> pd.DataFrame:
    """
    Select the event of a subject if there is one, otherwise its censoring.

    Both inputs hold at most one record per subject.
    """
    keys = as_key_list(subject_keys)
    if not events.empty and not censors.empty:
        flagged = censors.merge(events[keys].drop_duplicates(), on=keys,
                                how='left', indicator=True)
        censors = flagged[flagged['_merge'] == 'left_only'].drop(columns='_merge')

    frames = [f for f in (events, censors) if not f.empty]
    if not frames:
        return _empty_records(keys)
    selected = pd.concat(frames, ignore_index=True)

    if selected.duplicated(subset=keys).any():
        dups = selected.loc[selected.duplicated(subset=keys, keep=False), keys]
        raise ValueError(f"Subjects selected more than once: {format_subjects(dups.drop_duplicates(), keys)}")
    return selected


def enrich_observations(selected: pd.DataFrame,
                        dataset_adsl: pd.DataFrame,
                        start_date: str = 'TRTSDT',
                        set_values_to: Optional[Mapping] = None,
                        subject_keys: Union[str, Sequence[str]] = ('STUDYID', 'USUBJID')) -> pd.DataFrame:
    """
    Merge the start date and parameter variables onto the selected records.

    Every subject of ``dataset_adsl`` gets exactly one record, in the order
    of ``dataset_adsl``. ADT is set to STARTDT where it is earlier than
    STARTDT or missing.
    """
    keys = as_key_list(subject_keys)
    check_columns(dataset_adsl, keys + [start_date], 'dataset_adsl')

    if dataset_adsl.duplicated(subset=keys).any():
        dups = dataset_adsl.loc[dataset_adsl.duplicated(subset=keys, keep=False), keys]
        raise ValueError("Subject keys are not unique in dataset_adsl: "
                         f"{format_subjects(dups.drop_duplicates(), keys)}")

    base = dataset_adsl[keys].copy().reset_index(drop=True)
    base['STARTDT'] = fix_dates(dataset_adsl[start_date]).to_numpy()

    if selected.empty:
        selected = selected.astype({k: base[k].dtype for k in keys})
    else:
        unknown = selected.merge(base[keys], on=keys, how='left', indicator=True)
        unknown = unknown[unknown['_merge'] == 'left_only']
        if not unknown.empty:
            warnings.warn(f"Subjects {format_subjects(unknown, keys)} are not in "
                          f"dataset_adsl and have been removed.")

    result = base.merge(selected, on=keys, how='left', validate='one_to_one')
    result['ADT'] = pd.to_datetime(result['ADT'])
    result['CNSR'] = result['CNSR'].astype('Int64')

    no_obs = result['ADT'].isna()
    if no_obs.any():
        warnings.warn(f"Subjects {format_subjects(result[no_obs], keys)} have no event "
                      f"or censoring observation. ADT set to the start date.")

    no_start = result['STARTDT'].isna()
    if no_start.any():
        warnings.warn(f"Subjects {format_subjects(result[no_start], keys)} have a "
                      f"missing {start_date}.")

    clamp = result['STARTDT'].notna() & (no_obs | (result['ADT'] < result['STARTDT']))
    logger.debug(f"{int((clamp & ~no_obs).sum())} observation dates floored at {start_date}")
    result.loc[clamp, 'ADT'] = result.loc[clamp, 'STARTDT']

    for name, value in (set_values_to or {}).items():
        result[name] = evaluate(value, result)

    return result


def _check_sources(sources, cls, arg_name: str, source_datasets: Mapping[str, pd.DataFrame],
                   keys: List[str]):
    for source in sources:
        if not isinstance(source, cls):
            raise ValueError(f"{arg_name} must contain {cls.__name__} objects only")
        clashes = [name for name in source.set_values_to if name in keys]
        if clashes:
            raise ValueError(f"Subject keys {clashes} cannot be set with set_values_to "
                             f"of a {source.dataset_name} source")
        if source.dataset_name not in source_datasets:
            raise ValueError(
                f"Source dataset {source.dataset_name} not found in source_datasets. "
                f"Available: {sorted(source_datasets)}"
            )


@log_on_start(DEBUG, "Start deriving time-to-event parameter...", logger=logger)
@log_on_error(
    ERROR,
    "Error during time-to-event derivation: {e!r}",
    logger=logger,
    on_exceptions=Exception,
    reraise=True,
)
@log_on_end(DEBUG, "done! {result.shape[0]} records derived", logger=logger)
def derive_param_tte(dataset_adsl: pd.DataFrame,
                     source_datasets: Dict[str, pd.DataFrame],
                     event_conditions: Sequence[EventSource],
                     censor_conditions: Sequence[CensorSource],
                     start_date: str = 'TRTSDT',
                     set_values_to: Optional[Mapping] = None,
                     subject_keys: Union[str, Sequence[str]] = ('STUDYID', 'USUBJID'),
                     out_unit: str = 'days',
                     add_one: bool = False,
                     check_type: str = 'warning',
                     dataset: Optional[pd.DataFrame] = None) -> pd.DataFrame:
    """
    Derive a time-to-event parameter.

    Parameters
    ----------
    dataset_adsl : pd.DataFrame
        Subject-level data; one output record per subject
    source_datasets : dict
        Source dataset name to DataFrame, referenced by the sources
    event_conditions : list of EventSource
        Event definitions; the earliest event over all of them is selected
    censor_conditions : list of CensorSource
        Censoring definitions; the latest observation over all of them is
        used for subjects without an event
    start_date : str
        Column of ``dataset_adsl`` holding the start date (stored as STARTDT)
    set_values_to : dict, optional
        Parameter variables, e.g. ``{'PARAMCD': 'OS', 'PARAM': 'Overall Survival'}``
    subject_keys : str or sequence of str
        Columns identifying a subject
    out_unit : str
        Unit of AVAL (see ``compute_duration``)
    add_one : bool
        Add one day to the duration
    check_type : str
        How multiple records with the same extreme date within one source
        are reported: 'warning', 'error' or 'none'
    dataset : pd.DataFrame, optional
        Existing ADTTE data the new parameter is appended to

    Returns
    -------
    pd.DataFrame
        Subject keys, parameter variables, STARTDT, ADT, CNSR, AVAL and the
        sources' ``set_values_to`` variables

    Example
    -------
    >>> from adtte import derive_param_tte, death_event, lastalv_censor
    >>> adtte = derive_param_tte(
    ...     dataset_adsl=adsl,
    ...     source_datasets={'adsl': adsl},
    ...     event_conditions=[death_event],
    ...     censor_conditions=[lastalv_censor],
    ...     set_values_to={'PARAMCD': 'OS', 'PARAM': 'Overall Survival'})
    """
    if check_type not in CHECK_TYPES:
        raise ValueError(f"Invalid check_type: must be one of {list(CHECK_TYPES)}")
    if len(event_conditions) == 0 and len(censor_conditions) == 0:
        raise ValueError("At least one event or censoring source is required")

    keys = as_key_list(subject_keys)
    set_values_to = dict(set_values_to or {})
    for name in RESERVED_VARIABLES + tuple(keys):
        if name in set_values_to:
            raise ValueError(f"{name} cannot be set with set_values_to")

    _check_sources(event_conditions, EventSource, 'event_conditions', source_datasets, keys)
    _check_sources(censor_conditions, CensorSource, 'censor_conditions', source_datasets, keys)

    paramcd = set_values_to.get('PARAMCD')
    if dataset is not None and paramcd is not None and not callable(paramcd):
        if 'PARAMCD' in dataset.columns and (dataset['PARAMCD'] == paramcd).any():
            raise ValueError(f"PARAMCD {paramcd} already exists in dataset")

    events = _extract(event_conditions, source_datasets, keys, 'first', check_type)
    censors = _extract(censor_conditions, source_datasets, keys, 'last', check_type)
    logger.debug(f"{len(events)} subjects with event, {len(censors)} with censoring")

    selected = select_observations(events, censors, keys)
    result = enrich_observations(selected, dataset_adsl, start_date, set_values_to, keys)
    result['AVAL'] = compute_duration(result['STARTDT'], result['ADT'],
                                      out_unit=out_unit, add_one=add_one)

    leading = keys + list(set_values_to) + ['STARTDT', 'ADT', 'AVAL', 'CNSR']
    result = result[leading + [c for c in result.columns if c not in leading]]

    if dataset is not None:
        result = pd.concat([dataset, result], ignore_index=True)
    return result
