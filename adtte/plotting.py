"""
Kaplan-Meier estimation and survival curve plots for time-to-event data.

Example Usage:
    from adtte import TTEData_from_adtte, plot_survival_curve

    tte = TTEData_from_adtte(adtte, paramcd='OS')
    fig = plot_survival_curve(tte, by='ARM', units='months')
    km = tte.kaplan_meier()
    print(km.risk_table([0, 90, 180, 365]))
"""

from dataclasses import dataclass
from typing import Optional, Sequence, Tuple, TYPE_CHECKING

import matplotlib.pyplot as plt
import numpy as np
import pandas as pd
from scipy.stats import norm

from .duration import UNIT_SECONDS

if TYPE_CHECKING:
    from .tte_data import TTEData

# One color per treatment arm
ARM_COLORS = ['#1B4F72', '#C0392B', '#196F3D', '#7D3C98', '#B9770E', '#515A5A']


def _unit_factor(from_unit: str, to_unit: str) -> float:
    """Factor converting a duration in ``from_unit`` to ``to_unit``."""
    to_unit = to_unit.lower()
    if to_unit not in UNIT_SECONDS:
        raise ValueError(f"Invalid units: must be one of {list(UNIT_SECONDS)}")
    return UNIT_SECONDS[from_unit] / UNIT_SECONDS[to_unit]


@dataclass
class KaplanMeierResult:
    """
    Kaplan-Meier estimate of one time-to-event parameter.

    One row per distinct observed time (event or censoring), preceded by a
    row at time 0 holding the whole cohort.

    Attributes
    ----------
    time : np.ndarray
        Distinct observed times
    survival : np.ndarray
        Survival probability just after each time
    n_risk : np.ndarray
        Subjects with AVAL >= time
    n_event : np.ndarray
        Events at each time
    n_censor : np.ndarray
        Censored subjects at each time
    ci_lower, ci_upper : np.ndarray
        Log-log confidence limits
    conf_level : float
        Confidence level of the limits
    """
    time: np.ndarray
    survival: np.ndarray
    n_risk: np.ndarray
    n_event: np.ndarray
    n_censor: np.ndarray
    ci_lower: np.ndarray
    ci_upper: np.ndarray
    conf_level: float = 0.95

    def survival_at(self, t: float) -> float:
        """Survival probability at time ``t``."""
        idx = np.searchsorted(self.time, t, side='right') - 1
        return float(self.survival[max(0, idx)])

    @property
    def median(self) -> float:
        """Median survival time (NaN if the curve stays above 0.5)."""
        below = np.flatnonzero(self.survival <= 0.5)
        if len(below) == 0:
            return np.nan
        return float(self.time[below[0]])

    def risk_table(self, at: Sequence[float]) -> pd.DataFrame:
        """
        Number at risk, cumulative events and cumulative censorings at the
        given times.

        Parameters
        ----------
        at : sequence of float
            Times in the unit of AVAL

        Returns
        -------
        pd.DataFrame
            Columns time, n_risk, n_event, n_censor
        """
        at = np.asarray(at, dtype=float)
        # first grid time >= t; subjects still at risk there are at risk at t
        idx = np.searchsorted(self.time, at, side='left')
        inside = idx < len(self.time)
        n_risk = np.where(inside, self.n_risk[np.minimum(idx, len(self.time) - 1)], 0)

        # observations strictly before t
        cum_event = np.concatenate([[0], np.cumsum(self.n_event)])
        cum_censor = np.concatenate([[0], np.cumsum(self.n_censor)])
        return pd.DataFrame({
            'time': at,
            'n_risk': n_risk.astype(int),
            'n_event': cum_event[idx].astype(int),
            'n_censor': cum_censor[idx].astype(int),
        })

    def to_frame(self) -> pd.DataFrame:
        """Estimate as a DataFrame, one row per time."""
        return pd.DataFrame({
            'time': self.time,
            'n_risk': self.n_risk,
            'n_event': self.n_event,
            'n_censor': self.n_censor,
            'survival': self.survival,
            'ci_lower': self.ci_lower,
            'ci_upper': self.ci_upper,
        })


def kaplan_meier_estimate(times: np.ndarray,
                          events: np.ndarray,
                          conf_level: float = 0.95) -> KaplanMeierResult:
    """
    Calculate Kaplan-Meier survival estimates.

    Parameters
    ----------
    times : np.ndarray
        AVAL of each subject
    events : np.ndarray
        Event indicator (1=event, 0=censored)
    conf_level : float
        Confidence level of the log-log intervals (Greenwood variance)

    Returns
    -------
    KaplanMeierResult

    Example
    -------
    >>> km = kaplan_meier_estimate(np.array([5, 10]), np.array([1, 0]))
    >>> km.n_censor
    array([0, 0, 1])
    """
    times = np.asarray(times, dtype=float)
    events = np.asarray(events, dtype=int)

    if len(times) != len(events):
        raise ValueError("times and events must have the same length")
    if not 0 < conf_level < 1:
        raise ValueError("Invalid conf_level")

    grid, position = np.unique(times, return_inverse=True)
    n_event = np.bincount(position, weights=events == 1, minlength=len(grid))
    n_seen = np.bincount(position, minlength=len(grid))
    if len(grid) == 0 or grid[0] > 0:
        grid = np.concatenate([[0.0], grid])
        n_event = np.concatenate([[0], n_event])
        n_seen = np.concatenate([[0], n_seen])

    n_censor = n_seen - n_event
    n_risk = len(times) - np.concatenate([[0], np.cumsum(n_seen)[:-1]])

    with np.errstate(divide='ignore', invalid='ignore'):
        survival = np.cumprod(np.where(n_risk > 0, 1 - n_event / n_risk, 1.0))
        greenwood = np.where(n_risk > n_event, n_event / (n_risk * (n_risk - n_event)), 0.0)
        se = np.sqrt(np.cumsum(greenwood)) / np.abs(np.log(survival))

    z = norm.ppf((1 + conf_level) / 2)
    # limits collapse onto the estimate where it is 0 or 1
    defined = np.isfinite(se) & (survival > 0)
    with np.errstate(invalid='ignore'):
        ci_lower = np.where(defined, survival ** np.exp(z * se), survival)
        ci_upper = np.where(defined, survival ** np.exp(-z * se), survival)

    return KaplanMeierResult(
        time=grid,
        survival=survival,
        n_risk=n_risk.astype(int),
        n_event=n_event.astype(int),
        n_censor=n_censor.astype(int),
        ci_lower=ci_lower,
        ci_upper=ci_upper,
        conf_level=conf_level,
    )


def plot_survival_curve(tte_data: 'TTEData',
                        by: Optional[str] = None,
                        units: Optional[str] = None,
                        show_ci: bool = True,
                        show_censored: bool = True,
                        figsize: Tuple[int, int] = (10, 6),
                        title: str = 'Kaplan-Meier Survival Curve',
                        ax: Optional[plt.Axes] = None) -> plt.Figure:
    """
    Plot Kaplan-Meier survival curves of a time-to-event parameter.

    Parameters
    ----------
    tte_data : TTEData
        Time-to-event data; AVAL is in ``tte_data.unit``
    by : str, optional
        Column to draw one curve per value of (e.g. 'ARM')
    units : str, optional
        Time axis unit, e.g. 'days', 'weeks', 'Months' (default: unit of AVAL)
    show_ci : bool
        Shade the confidence band
    show_censored : bool
        Mark censoring times
    figsize : tuple
        Figure size (width, height)
    title : str
        Plot title
    ax : plt.Axes, optional
        Existing axes to use

    Returns
    -------
    plt.Figure
    """
    units = units or tte_data.unit
    factor = _unit_factor(tte_data.unit, units)

    if ax is None:
        fig, ax = plt.subplots(figsize=figsize)
    else:
        fig = ax.figure

    if by is None:
        curves = {'All subjects': tte_data.kaplan_meier()}
    else:
        curves = tte_data.kaplan_meier(by=by)

    for color, (label, km) in zip(np.resize(ARM_COLORS, len(curves)), curves.items()):
        time = km.time * factor
        ax.step(time, km.survival, where='post', color=color, linewidth=2, label=str(label))
        if show_ci:
            ax.fill_between(time, km.ci_lower, km.ci_upper, step='post', alpha=0.2, color=color)
        if show_censored:
            censored = km.n_censor > 0
            ax.plot(time[censored], km.survival[censored], linestyle='none',
                    marker='|', markersize=8, color=color)

    ax.set_ylim(0, 1.05)
    ax.set_xlim(left=0)
    ax.set_title(title, fontweight='bold')
    ax.set_xlabel(f'Time ({units.capitalize()})')
    ax.set_ylabel('Survival Probability')
    ax.grid(True, alpha=0.3)
    ax.legend(loc='upper right')

    fig.tight_layout()
    return fig
