"""
Ecological metrics derived from ring-width and ring-width-index series.

All series are pandas Series indexed by calendar year. Metric functions
return missing values (NaN) when a metric is undefined for the data at
hand; only regression fits raise, so that callers can scope failures to a
single tree or site.

Author: Boreal Growth Team
"""

import math
from dataclasses import dataclass
from typing import Dict, Optional

import numpy as np
import pandas as pd
from scipy import stats


@dataclass
class ExtremeYearPerformance:
    """Result of the predicted-vs-observed extreme-year comparison."""
    predicted: float
    observed: float
    ratio: float
    slope: float
    intercept: float
    n_fit: int
    n_extreme: int


def _complete_years(series: pd.Series) -> pd.Series:
    """Reindex a year-indexed series to every calendar year of its span."""
    series = series.sort_index()
    if series.empty:
        return series
    years = np.arange(int(series.index.min()), int(series.index.max()) + 1)
    return series.reindex(years)


def sensitivity_terms(series: pd.Series, start_year: Optional[int] = None) -> pd.Series:
    """
    Year-to-year sensitivity terms |x_t - x_{t-1}| / (x_t + x_{t-1}).

    Only pairs of consecutive calendar years contribute. Zero terms and
    terms that are missing or infinite are dropped.

    Args:
        series: Year-indexed values
        start_year: First year considered (both years of a pair must qualify)

    Returns:
        pd.Series: Valid terms indexed by the later year of each pair
    """
    series = series.astype(float)
    if start_year is not None:
        series = series[series.index >= start_year]
    series = _complete_years(series)

    previous = series.shift(1)
    with np.errstate(divide='ignore', invalid='ignore'):
        terms = (series - previous).abs() / (series + previous)

    valid = np.isfinite(terms) & (terms != 0)
    return terms[valid]


def mean_sensitivity(series: pd.Series, start_year: Optional[int] = None) -> float:
    """
    Mean sensitivity of a series.

    Args:
        series: Year-indexed values (RWI or raw widths)
        start_year: First year considered

    Returns:
        float: Mean of the valid sensitivity terms, NaN if there are none
    """
    terms = sensitivity_terms(series, start_year)
    return float(terms.mean()) if len(terms) else np.nan


def _window_mean(series: pd.Series, first: int, last: int) -> float:
    window = series[(series.index >= first) & (series.index <= last)].dropna()
    return float(window.mean()) if len(window) else np.nan


def resilience_components(
    series: pd.Series,
    event_year: int,
    pre_years: int = 4,
    post_years: int = 2
) -> Dict[str, float]:
    """
    Resistance, recovery and resilience around a disturbance year.

    Resistance = event / pre, Recovery = post / event, Resilience = post / pre,
    where pre is the mean of the pre_years years before the event, event the
    value of the event year and post the mean of the post_years years after.

    Args:
        series: Year-indexed values
        event_year: Disturbance year
        pre_years: Length of the pre-event window
        post_years: Length of the post-event window

    Returns:
        dict: resistance, recovery, resilience (NaN where undefined)
    """
    series = series.astype(float)
    pre = _window_mean(series, event_year - pre_years, event_year - 1)
    event = _window_mean(series, event_year, event_year)
    post = _window_mean(series, event_year + 1, event_year + post_years)

    def _ratio(numerator, denominator):
        with np.errstate(divide='ignore', invalid='ignore'):
            value = np.float64(numerator) / np.float64(denominator)
        return float(value) if np.isfinite(value) else np.nan

    return {
        'resistance': _ratio(event, pre),
        'recovery': _ratio(post, event),
        'resilience': _ratio(post, pre),
    }


def extreme_count(n_years: int, fraction: float = 0.1) -> int:
    """Number of extreme years, fraction of the available years rounded up."""
    # Rounding guards products such as 0.1 * 30 landing just above an integer
    return int(math.ceil(round(fraction * n_years, 9)))


def extreme_years(series: pd.Series, fraction: float = 0.1, tail: str = 'low') -> pd.Index:
    """
    Years of the lowest ('low') or highest ('high') fraction of a series.

    Ties are broken by year order.
    """
    series = series.dropna().sort_index()
    k = extreme_count(len(series), fraction)
    if k == 0:
        return pd.Index([], dtype=series.index.dtype)
    if tail == 'low':
        return series.nsmallest(k, keep='first').index
    if tail == 'high':
        return series.nlargest(k, keep='first').index
    raise ValueError(f"Unknown tail '{tail}', expected 'low' or 'high'")


def coincidence_rate(
    growth: pd.Series,
    climate: pd.Series,
    fraction: float = 0.1,
    growth_tail: str = 'low',
    climate_tail: str = 'high'
) -> float:
    """
    Share of extreme growth years that are also extreme climate years.

    Both series are restricted to their common non-missing years; with n such
    years, k = ceil(fraction * n) extremes are taken from each series and the
    rate is |growth extremes & climate extremes| / k.

    Args:
        growth: Year-indexed growth values
        climate: Year-indexed climate values
        fraction: Share of years counted as extreme
        growth_tail: 'low' for growth minima, 'high' for maxima
        climate_tail: 'high' (e.g. temperature, VPD) or 'low' (e.g. SPEI)

    Returns:
        float: Coincidence rate in [0, 1], NaN without common years
    """
    common = pd.concat([growth.rename('growth'), climate.rename('climate')], axis=1, join='inner').dropna()
    k = extreme_count(len(common), fraction)
    if k == 0:
        return np.nan

    growth_extremes = extreme_years(common['growth'], fraction, growth_tail)
    climate_extremes = extreme_years(common['climate'], fraction, climate_tail)
    return len(growth_extremes.intersection(climate_extremes)) / k


def extreme_year_performance(
    values: pd.Series,
    driver: pd.Series,
    fraction: float = 0.1,
    driver_tail: str = 'high',
    min_fit_years: int = 5
) -> ExtremeYearPerformance:
    """
    Compare observed growth in extreme-driver years with the normal-year trend.

    A linear regression of value on driver is fitted over the non-extreme
    years, evaluated at the mean driver level of the extreme years, and
    divided by the observed mean value of those years.

    Args:
        values: Year-indexed growth values
        driver: Year-indexed climate driver
        fraction: Share of years counted as extreme
        driver_tail: Which driver tail defines the extreme years
        min_fit_years: Minimum number of non-extreme years for the fit

    Returns:
        ExtremeYearPerformance

    Raises:
        ValueError: If the regression cannot be fitted or the ratio is undefined
    """
    common = pd.concat([values.rename('value'), driver.rename('driver')], axis=1, join='inner').dropna()
    extremes = extreme_years(common['driver'], fraction, driver_tail)
    if len(extremes) == 0:
        raise ValueError("No years available for the extreme-year comparison")

    normal = common.drop(index=extremes)
    if len(normal) < min_fit_years:
        raise ValueError(f"Only {len(normal)} non-extreme years, need {min_fit_years} for the fit")

    # linregress raises ValueError when all driver values are identical
    fit = stats.linregress(normal['driver'].to_numpy(), normal['value'].to_numpy())
    if not (np.isfinite(fit.slope) and np.isfinite(fit.intercept)):
        raise ValueError("Degenerate regression of value on driver")

    extreme_rows = common.loc[extremes]
    predicted = float(fit.intercept + fit.slope * extreme_rows['driver'].mean())
    observed = float(extreme_rows['value'].mean())
    if observed == 0:
        raise ValueError("Observed extreme-year mean is zero")

    return ExtremeYearPerformance(
        predicted=predicted,
        observed=observed,
        ratio=predicted / observed,
        slope=float(fit.slope),
        intercept=float(fit.intercept),
        n_fit=len(normal),
        n_extreme=len(extremes)
    )
