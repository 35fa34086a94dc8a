"""
Time-to-Event Analysis Datasets for Clinical Trials

This Python package derives ADaM time-to-event (ADTTE) parameters from
subject-level and domain data. For every subject the earliest qualifying
event is selected, or the latest censoring observation if there is no event,
and the time from the subject's start date is computed.

Based on the time-to-event derivations of the R package 'admiral'.
"""

__version__ = "1.0.0"
__author__ = "Python port of the admiral time-to-event derivations"

from .sources import EventSource, CensorSource, var
from .derivation import (
    derive_param_tte, extract_events, extract_censors,
    select_observations, enrich_observations, filter_extreme
)
from .duration import compute_duration, derive_vars_duration
from .presets import (
    death_event, lastalv_censor, eot_censor, ae_event, ae_ser_event,
    ae_gr3_event, ae_wd_event, get_tte_source, list_tte_source_objects
)
from .tte_data import TTEData, TTEData_from_adtte
from .plotting import plot_survival_curve, kaplan_meier_estimate, KaplanMeierResult
from .utils import standarddaysinyear, csv_sniffer, fix_dates

__all__ = [
    # Sources
    'EventSource', 'CensorSource', 'var',
    # Derivation
    'derive_param_tte', 'extract_events', 'extract_censors',
    'select_observations', 'enrich_observations', 'filter_extreme',
    # Durations
    'compute_duration', 'derive_vars_duration',
    # Predefined sources
    'death_event', 'lastalv_censor', 'eot_censor', 'ae_event', 'ae_ser_event',
    'ae_gr3_event', 'ae_wd_event', 'get_tte_source', 'list_tte_source_objects',
    # Data classes
    'TTEData', 'TTEData_from_adtte',
    # Plotting
    'plot_survival_curve', 'kaplan_meier_estimate', 'KaplanMeierResult',
    # Utilities
    'standarddaysinyear', 'csv_sniffer', 'fix_dates',
]
