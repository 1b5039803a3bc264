"""
Spline detrending of ring-width series and climate covariates.

Each series is detrended independently: internal gaps are linearly
interpolated, a cubic smoothing spline of fixed rigidity is fitted over the
valid range, and the index is the ratio (or difference) of observed to
fitted values. Leading and trailing missing years stay missing.

The spline rigidity is expressed the way dendrochronologists do: the
wavelength (in years) at which the spline retains a given fraction of the
signal amplitude, 50% by default.

Author: Boreal Growth Team
"""

from typing import Optional

import numpy as np
import pandas as pd
from scipy.interpolate import make_smoothing_spline

from shared_utils import get_logger, ExclusionLog


class InsufficientDataError(ValueError):
    """Raised when a series has too few valid values to be detrended."""


def spline_smoothing_parameter(period: float, frequency_response: float = 0.5) -> float:
    """
    Convert a spline rigidity in years to a smoothing-spline penalty.

    For unit-spaced data the cubic smoothing spline minimizing
    sum((y - f)^2) + lam * integral(f''^2) has transfer function
    1 / (1 + lam * 12 (1 - cos w)^2 / (2 + cos w)). Solving for the penalty
    giving the requested response at w = 2 pi / period yields lam.

    Args:
        period: Wavelength in years at which frequency_response is retained
        frequency_response: Fraction of amplitude retained at that wavelength

    Returns:
        float: Penalty for scipy.interpolate.make_smoothing_spline
    """
    if period <= 2:
        raise ValueError(f"Spline period must exceed 2 years, got {period}")
    if not 0 < frequency_response < 1:
        raise ValueError(f"Frequency response must be in (0, 1), got {frequency_response}")

    cos_w = np.cos(2 * np.pi / period)
    return (1 - frequency_response) / frequency_response * (2 + cos_w) / (12 * (1 - cos_w) ** 2)


def interpolate_internal_gaps(series: pd.Series) -> pd.Series:
    """Linearly interpolate missing values strictly inside the valid range."""
    return series.astype(float).interpolate(method='index', limit_area='inside')


def fit_spline_curve(
    series: pd.Series,
    period: float = 30,
    frequency_response: float = 0.5,
    min_points: int = 10
) -> pd.Series:
    """
    Fit the smoothing spline to the valid range of a year-indexed series.

    Args:
        series: Values indexed by year
        period: Spline rigidity in years
        frequency_response: Amplitude retained at the rigidity wavelength
        min_points: Minimum number of observed (non-interpolated) values

    Returns:
        pd.Series: Fitted curve over the valid range, missing elsewhere

    Raises:
        InsufficientDataError: If fewer than min_points values are observed
    """
    values = pd.to_numeric(series, errors='coerce').astype(float)
    n_observed = int(values.notna().sum())
    if n_observed < min_points:
        raise InsufficientDataError(
            f"Series {series.name!r} has {n_observed} valid values, {min_points} required"
        )

    filled = interpolate_internal_gaps(values)
    valid = filled.notna()
    x = np.asarray(filled.index[valid], dtype=float)
    y = filled[valid].to_numpy()

    if np.any(np.diff(x) <= 0):
        raise ValueError(f"Series {series.name!r} must be indexed by strictly increasing years")

    spline = make_smoothing_spline(x, y, lam=spline_smoothing_parameter(period, frequency_response))

    curve = pd.Series(np.nan, index=series.index, name=series.name)
    curve[valid] = spline(x)
    return curve


def detrend_series(
    series: pd.Series,
    period: float = 30,
    frequency_response: float = 0.5,
    min_points: int = 10,
    method: str = 'ratio',
    keep_interpolated: bool = True
) -> pd.Series:
    """
    Detrend one series against its smoothing spline.

    Args:
        series: Values indexed by ascending year
        period: Spline rigidity in years
        frequency_response: Amplitude retained at the rigidity wavelength
        min_points: Minimum number of observed values
        method: 'ratio' (observed / fitted) or 'difference' (observed - fitted)
        keep_interpolated: Whether interpolated gap years carry an index value

    Returns:
        pd.Series: Detrended index with the same year index as the input

    Raises:
        InsufficientDataError: If the series is too short to detrend
    """
    if method not in ('ratio', 'difference'):
        raise ValueError(f"Unknown detrending method: {method}")

    values = pd.to_numeric(series, errors='coerce').astype(float)
    curve = fit_spline_curve(values, period, frequency_response, min_points)
    filled = interpolate_internal_gaps(values)

    if method == 'ratio':
        with np.errstate(divide='ignore', invalid='ignore'):
            index = filled / curve.where(curve > 0)
    else:
        index = filled - curve

    if not keep_interpolated:
        index = index.where(values.notna())

    index = index.where(np.isfinite(index))
    index.name = series.name
    return index


def detrend_table(
    wide: pd.DataFrame,
    period: float = 30,
    frequency_response: float = 0.5,
    min_points: int = 10,
    method: str = 'ratio',
    keep_interpolated: bool = True,
    exclusions: Optional[ExclusionLog] = None,
    stage: str = 'detrending'
) -> pd.DataFrame:
    """
    Detrend every named series of a year x series table independently.

    Series that cannot be detrended are returned as all-missing columns and
    recorded as exclusions; they never abort the table.

    Args:
        wide: Table indexed by ascending year, one column per series
        period: Spline rigidity in years
        frequency_response: Amplitude retained at the rigidity wavelength
        min_points: Minimum number of observed values per series
        method: 'ratio' or 'difference'
        keep_interpolated: Whether interpolated gap years carry an index value
        exclusions: Exclusion log receiving failed series
        stage: Stage name used for exclusion records

    Returns:
        pd.DataFrame: Detrended table with the same shape as the input
    """
    logger = get_logger('ring_width_processing.detrending')

    if not wide.index.is_monotonic_increasing:
        raise ValueError("Detrending requires a table sorted by ascending year")

    def _detrend_or_missing(name, series):
        try:
            return detrend_series(series, period, frequency_response, min_points, method, keep_interpolated)
        except InsufficientDataError as e:
            logger.warning(f"Emitting missing index for {name}: {e}")
            if exclusions is not None:
                exclusions.add(stage, name, 'insufficient data for detrending')
            return pd.Series(np.nan, index=wide.index, name=name)

    detrended = pd.DataFrame(
        {name: _detrend_or_missing(name, series) for name, series in wide.items()},
        index=wide.index
    )

    n_failed = int(detrended.isna().all().sum())
    logger.info(f"Detrended {wide.shape[1] - n_failed} of {wide.shape[1]} series "
                f"(period={period} years, method={method})")
    return detrended
