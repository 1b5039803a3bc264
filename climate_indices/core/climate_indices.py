"""
Climate index calculation: vapour pressure deficit, Hargreaves PET and SPEI.

Daily station observations are aggregated to months, Hargreaves potential
evapotranspiration is derived from the monthly temperature range and
station latitude, and the climatic water balance (precipitation - PET) is
accumulated over the SPEI window and standardized through a log-logistic
distribution fitted per calendar month.

Author: Boreal Growth Team
"""

from typing import Optional, Tuple

import numpy as np
import pandas as pd
from scipy import stats

from shared_utils import get_logger, ExclusionLog

# FAO-56 solar constant, MJ m-2 min-1
SOLAR_CONSTANT = 0.0820
# MJ m-2 day-1 to mm day-1 of evaporated water
RADIATION_TO_EVAPORATION = 0.408


def saturation_vapor_pressure(temperature):
    """Saturation vapour pressure (kPa) at air temperature (deg C)."""
    temperature = np.asarray(temperature, dtype=float)
    return 0.611 * np.exp(17.27 * temperature / (temperature + 237.3))


def vapor_pressure_deficit(temperature, relative_humidity):
    """
    Vapour pressure deficit (kPa).

    Args:
        temperature: Air temperature in deg C (mean, or max for threshold VPD)
        relative_humidity: Relative humidity in percent

    Returns:
        VPD = SVP(T) * (1 - RH / 100)
    """
    relative_humidity = np.asarray(relative_humidity, dtype=float)
    return saturation_vapor_pressure(temperature) * (1 - relative_humidity / 100.0)


def add_vpd_columns(daily: pd.DataFrame) -> pd.DataFrame:
    """Add VPD (from Tmean) and VPD_threshold (from Tmax) to a daily table."""
    daily = daily.copy()
    daily['VPD'] = vapor_pressure_deficit(daily['Tmean'], daily['RH'])
    daily['VPD_threshold'] = vapor_pressure_deficit(daily['Tmax'], daily['RH'])
    return daily


def aggregate_daily_to_monthly(daily: pd.DataFrame, station_column: str = 'Station') -> pd.DataFrame:
    """
    Aggregate daily observations to station-months.

    Temperatures, humidity and VPD are averaged; precipitation is summed.

    Args:
        daily: Daily table with Date, temperature, Precip and optional RH/VPD columns
        station_column: Station identifier column

    Returns:
        pd.DataFrame: Monthly table keyed by station, Year and Month
    """
    daily = daily.copy()
    daily['Year'] = daily['Date'].dt.year
    daily['Month'] = daily['Date'].dt.month

    aggregations = {'Tmean': 'mean', 'Tmin': 'mean', 'Tmax': 'mean', 'Precip': 'sum'}
    for column in ('RH', 'VPD', 'VPD_threshold'):
        if column in daily.columns:
            aggregations[column] = 'mean'

    grouped = daily.groupby([station_column, 'Year', 'Month'])
    monthly = grouped.agg({k: v for k, v in aggregations.items() if k in daily.columns})
    # A month without any precipitation record is missing, not dry
    monthly['Precip'] = monthly['Precip'].where(grouped['Precip'].count() > 0)
    monthly['n_days'] = grouped.size()
    return monthly.reset_index()


def extraterrestrial_radiation(latitude, day_of_year):
    """
    Daily extraterrestrial radiation Ra (MJ m-2 day-1), FAO-56 equation 21.

    Args:
        latitude: Latitude in decimal degrees
        day_of_year: Day of year (1-366)
    """
    phi = np.radians(np.asarray(latitude, dtype=float))
    day_of_year = np.asarray(day_of_year, dtype=float)

    inverse_distance = 1 + 0.033 * np.cos(2 * np.pi * day_of_year / 365)
    declination = 0.409 * np.sin(2 * np.pi * day_of_year / 365 - 1.39)
    # Polar day and night clip the sunset hour angle to [0, pi]
    sunset_angle = np.arccos(np.clip(-np.tan(phi) * np.tan(declination), -1.0, 1.0))

    return (24 * 60 / np.pi) * SOLAR_CONSTANT * inverse_distance * (
        sunset_angle * np.sin(phi) * np.sin(declination)
        + np.cos(phi) * np.cos(declination) * np.sin(sunset_angle)
    )


def hargreaves_pet(tmin, tmax, latitude, year, month) -> np.ndarray:
    """
    Monthly Hargreaves potential evapotranspiration (mm / month).

    Radiation is evaluated on the 15th of each month and the daily rate is
    multiplied by the number of days of the month.

    Args:
        tmin: Monthly mean of daily minimum temperature (deg C)
        tmax: Monthly mean of daily maximum temperature (deg C)
        latitude: Station latitude (decimal degrees)
        year: Calendar year
        month: Calendar month (1-12)
    """
    tmin = np.asarray(tmin, dtype=float)
    tmax = np.asarray(tmax, dtype=float)
    mid_month = pd.to_datetime(pd.DataFrame({
        'year': np.atleast_1d(year), 'month': np.atleast_1d(month), 'day': 15
    }))
    day_of_year = mid_month.dt.dayofyear.to_numpy()
    days_in_month = mid_month.dt.days_in_month.to_numpy()

    radiation = extraterrestrial_radiation(latitude, day_of_year)
    tmean = (tmax + tmin) / 2.0
    temperature_range = np.clip(tmax - tmin, 0.0, None)

    daily_pet = 0.0023 * RADIATION_TO_EVAPORATION * radiation * (tmean + 17.8) * np.sqrt(temperature_range)
    return np.clip(daily_pet, 0.0, None) * days_in_month


def fit_log_logistic(values) -> Tuple[float, float, float]:
    """
    Fit the three-parameter log-logistic distribution by L-moments.

    Uses Hosking's generalized logistic parameterization with a signed shape
    parameter, so negatively skewed and symmetric water-balance samples fit
    as well as positively skewed ones. L-moments come from unbiased
    probability-weighted moments of the sorted sample.

    Args:
        values: Sample of accumulated water balance values

    Returns:
        tuple: (location xi, scale alpha, shape k)

    Raises:
        ValueError: If the sample is too small or the fit is degenerate
    """
    values = np.asarray(values, dtype=float)
    x = np.sort(values[np.isfinite(values)])
    n = x.size
    if n < 3:
        raise ValueError(f"Log-logistic fit needs at least 3 values, got {n}")
    if x[0] == x[-1]:
        raise ValueError("Degenerate sample for log-logistic fit: all values equal")

    i = np.arange(1, n + 1)
    b0 = x.mean()
    b1 = np.sum((i - 1) / (n - 1) * x) / n
    b2 = np.sum((i - 1) * (i - 2) / ((n - 1) * (n - 2)) * x) / n

    l1 = b0
    l2 = 2 * b1 - b0
    l3 = 6 * b2 - 6 * b1 + b0
    if not l2 > 0:
        raise ValueError("Degenerate sample for log-logistic fit")

    shape = -l3 / l2
    if not abs(shape) < 1:
        raise ValueError(f"Log-logistic shape must lie in (-1, 1), got {shape}")

    # Symmetric limit is the plain logistic distribution
    if abs(shape) < 1e-6:
        return float(l1), float(l2), 0.0

    scale = l2 * np.sin(shape * np.pi) / (shape * np.pi)
    location = l1 - scale * (1 / shape - np.pi / np.sin(shape * np.pi))
    return float(location), float(scale), float(shape)


def log_logistic_cdf(values, location: float, scale: float, shape: float) -> np.ndarray:
    """
    Cumulative probability of the generalized logistic distribution.

    Values beyond the bounded end of the support get probability 0 or 1.
    """
    values = np.asarray(values, dtype=float)
    z = (values - location) / scale
    if shape == 0:
        reduced = z
    else:
        argument = 1 - shape * z
        with np.errstate(invalid='ignore'):
            reduced = -np.log(np.where(argument > 0, argument, np.nan)) / shape
        reduced = np.where(argument <= 0, np.inf if shape > 0 else -np.inf, reduced)
    return stats.logistic.cdf(reduced)


def standardize_log_logistic(values, fit_values=None) -> np.ndarray:
    """
    Map values to standard normal quantiles through a fitted log-logistic CDF.

    Args:
        values: Values to standardize
        fit_values: Sample used for fitting (defaults to values)

    Returns:
        np.ndarray: Standardized values; non-finite results are missing
    """
    values = np.asarray(values, dtype=float)
    location, scale, shape = fit_log_logistic(values if fit_values is None else fit_values)
    probability = log_logistic_cdf(values, location, scale, shape)
    with np.errstate(divide='ignore', invalid='ignore'):
        standardized = stats.norm.ppf(probability)
    return np.where(np.isfinite(standardized), standardized, np.nan)


def compute_spei(
    monthly: pd.DataFrame,
    scale: int = 6,
    station_column: str = 'Station',
    min_fit_samples: int = 10,
    reference_years: Optional[Tuple[Optional[int], Optional[int]]] = None,
    exclusions: Optional[ExclusionLog] = None
) -> pd.DataFrame:
    """
    Standardized Precipitation-Evapotranspiration Index per station-month.

    The water balance is accumulated over `scale` consecutive calendar months
    (gaps in the monthly record leave the affected windows missing) and each
    calendar month is standardized with its own log-logistic fit.

    Args:
        monthly: Monthly table with station, Year, Month and Balance columns
        scale: Accumulation window in months
        station_column: Station identifier column
        min_fit_samples: Minimum accumulated values per calendar month to fit
        reference_years: Optional (start, end) years of the fitting period
        exclusions: Exclusion log receiving unfittable station-months

    Returns:
        pd.DataFrame: station, Year, Month, Balance_accumulated, SPEI
    """
    logger = get_logger('climate_indices.spei')
    column_name = f'SPEI{scale}'
    frames = []

    for station, station_data in monthly.groupby(station_column):
        periods = pd.PeriodIndex.from_fields(
            year=station_data['Year'].to_numpy(), month=station_data['Month'].to_numpy(), freq='M'
        )
        balance = pd.Series(station_data['Balance'].to_numpy(), index=periods).sort_index()
        balance = balance[~balance.index.duplicated(keep='last')]
        full_range = pd.period_range(balance.index.min(), balance.index.max(), freq='M')
        balance = balance.reindex(full_range)

        accumulated = balance.rolling(window=scale, min_periods=scale).sum()
        spei = pd.Series(np.nan, index=full_range)

        for month in range(1, 13):
            in_month = accumulated.index.month == month
            month_values = accumulated[in_month]
            in_reference = np.ones(len(month_values), dtype=bool)
            if reference_years is not None:
                start, end = reference_years
                years = month_values.index.year
                if start is not None:
                    in_reference &= years >= start
                if end is not None:
                    in_reference &= years <= end
            fit_sample = month_values[in_reference].dropna()

            if len(fit_sample) < min_fit_samples:
                logger.debug(f"Station {station} month {month}: {len(fit_sample)} values, SPEI left missing")
                if exclusions is not None and month_values.notna().any():
                    exclusions.add('spei', f"{station}-{month:02d}", 'too few values for log-logistic fit')
                continue

            try:
                spei[in_month] = standardize_log_logistic(month_values.to_numpy(), fit_sample.to_numpy())
            except ValueError as e:
                logger.warning(f"Station {station} month {month}: {e}")
                if exclusions is not None:
                    exclusions.add('spei', f"{station}-{month:02d}", 'degenerate log-logistic fit')

        frames.append(pd.DataFrame({
            station_column: station,
            'Year': full_range.year,
            'Month': full_range.month,
            'Balance_accumulated': accumulated.to_numpy(),
            column_name: spei.to_numpy(),
        }))

    if not frames:
        return pd.DataFrame(columns=[station_column, 'Year', 'Month', 'Balance_accumulated', column_name])

    result = pd.concat(frames, ignore_index=True)
    logger.info(f"Computed {column_name} for {result[station_column].nunique()} stations, "
                f"{int(result[column_name].notna().sum())} valid station-months")
    return result


def attach_monthly_to_daily(
    daily: pd.DataFrame,
    monthly: pd.DataFrame,
    columns,
    station_column: str = 'Station'
) -> pd.DataFrame:
    """Re-attach monthly indices to daily records by (station, Year, Month)."""
    daily = daily.copy()
    daily['Year'] = daily['Date'].dt.year
    daily['Month'] = daily['Date'].dt.month
    keys = [station_column, 'Year', 'Month']
    return daily.merge(monthly[keys + list(columns)], on=keys, how='left', validate='many_to_one')
