"""
Growing season detection and within-season climate summaries.

The season of a station-year opens with the first run of consecutive warm
days (daily mean temperature above the threshold) starting on or after the
earliest start day, and closes with the last warm run ending inside the
autumn window. Season length counts the run length plus the days between
start and end. Station-years whose warm run around the start lasts
max_length days or more never go dormant and are rejected.

Author: Boreal Growth Team
"""

from dataclasses import dataclass
from typing import Dict, Optional, Sequence, Tuple

import numpy as np
import pandas as pd

from shared_utils import get_logger, ExclusionLog


@dataclass
class GrowingSeason:
    """Container for one detected growing season."""
    start: int
    end: int
    length: int


@dataclass
class SeasonRules:
    """Thresholds defining a growing season."""
    threshold: float = 5.0
    run_length: int = 4
    start_min_doy: int = 60
    end_min_doy: int = 243
    end_max_doy: int = 300
    # Days of uninterrupted warmth marking a station-year that never goes dormant
    max_length: int = 360

    @classmethod
    def from_config(cls, config: Dict) -> "SeasonRules":
        fields = cls.__dataclass_fields__
        return cls(**{key: value for key, value in (config or {}).items() if key in fields})


def warm_run_span(warm: np.ndarray, day: int) -> int:
    """
    Length in days of the uninterrupted warm run containing a day.

    The run is not clipped to the season start and end windows, so a station
    that never cools down yields a run close to the whole year.

    Args:
        warm: Warm-day flags for days 1..N of one year
        day: Day of year inside the run
    """
    cold = np.flatnonzero(~warm)
    index = day - 1
    before = cold[cold < index]
    after = cold[cold > index]
    first = before[-1] + 1 if before.size else 0
    last = after[0] - 1 if after.size else warm.size - 1
    return int(last - first + 1)


def find_growing_season(
    tmean_by_doy: pd.Series,
    rules: Optional[SeasonRules] = None
) -> Tuple[Optional[GrowingSeason], Optional[str]]:
    """
    Detect the growing season of one station-year.

    Args:
        tmean_by_doy: Daily mean temperature indexed by day of year
        rules: Season thresholds

    Returns:
        tuple: (GrowingSeason or None, reason for rejection or None)
    """
    rules = rules or SeasonRules()
    days = np.arange(1, 367)
    warm = (tmean_by_doy.reindex(days) > rules.threshold).astype(int)

    # run_ends[d] is True when days d - run_length + 1 .. d are all warm
    run_ends = warm.rolling(rules.run_length).sum() == rules.run_length
    run_ends.index = days

    end_days = days[run_ends.to_numpy()]
    start_candidates = end_days - (rules.run_length - 1)
    start_candidates = start_candidates[start_candidates >= rules.start_min_doy]
    if start_candidates.size == 0:
        return None, 'no qualifying season start'

    end_candidates = end_days[(end_days >= rules.end_min_doy) & (end_days <= rules.end_max_doy)]
    if end_candidates.size == 0:
        return None, 'no qualifying season end'

    start = int(start_candidates[0])
    if warm_run_span(warm.to_numpy(dtype=bool), start) >= rules.max_length:
        return None, 'degenerate season length'

    end = int(end_candidates[-1])
    if end < start:
        return None, 'season end precedes start'

    length = rules.run_length + end - start
    return GrowingSeason(start=start, end=end, length=length), None


def detect_growing_season(tmean_by_doy: pd.Series, rules: Optional[SeasonRules] = None) -> Optional[GrowingSeason]:
    """Detect the growing season of one station-year, or None when there is none."""
    season, _ = find_growing_season(tmean_by_doy, rules)
    return season


def detect_growing_seasons(
    daily: pd.DataFrame,
    rules: Optional[SeasonRules] = None,
    station_column: str = 'Station',
    exclusions: Optional[ExclusionLog] = None
) -> pd.DataFrame:
    """
    Detect growing seasons for every station-year of a daily table.

    Station-years without a valid season are excluded and recorded.

    Args:
        daily: Daily table with Date and Tmean columns
        rules: Season thresholds
        station_column: Station identifier column
        exclusions: Exclusion log receiving rejected station-years

    Returns:
        pd.DataFrame: station, Year, season_start, season_end, season_length
    """
    logger = get_logger('climate_indices.growing_season')
    rules = rules or SeasonRules()

    daily = daily.assign(Year=daily['Date'].dt.year, DOY=daily['Date'].dt.dayofyear)
    records = []
    n_rejected = 0

    for (station, year), station_year in daily.groupby([station_column, 'Year']):
        tmean = station_year.groupby('DOY')['Tmean'].mean()
        season, reason = find_growing_season(tmean, rules)
        if season is None:
            n_rejected += 1
            if exclusions is not None:
                exclusions.add('growing_season', f"{station}-{year}", reason)
            continue
        records.append({
            station_column: station,
            'Year': year,
            'season_start': season.start,
            'season_end': season.end,
            'season_length': season.length,
        })

    if n_rejected:
        logger.warning(f"Excluded {n_rejected} station-years without a valid growing season")
    logger.info(f"Detected {len(records)} growing seasons")

    return pd.DataFrame(records, columns=[station_column, 'Year', 'season_start', 'season_end', 'season_length'])


def season_climate_means(
    daily: pd.DataFrame,
    seasons: pd.DataFrame,
    variables: Sequence[str] = ('Tmean', 'Tmax', 'Precip', 'VPD', 'VPD_threshold', 'SPEI6'),
    station_column: str = 'Station',
    pre_season_days: int = 3
) -> pd.DataFrame:
    """
    Within-season climate means per station-year.

    Days from (season_start - pre_season_days) to season_end inclusive are
    averaged. Precipitation is additionally reported as a season total.

    Args:
        daily: Daily table with Date and climate variables
        seasons: Output of detect_growing_seasons
        variables: Daily variables to average (missing columns are skipped)
        station_column: Station identifier column
        pre_season_days: Days before the season start included in the window

    Returns:
        pd.DataFrame: seasons joined with '<variable>_season' means
    """
    variables = [v for v in variables if v in daily.columns]
    daily = daily.assign(Year=daily['Date'].dt.year, DOY=daily['Date'].dt.dayofyear)

    window = daily.merge(seasons, on=[station_column, 'Year'], how='inner')
    in_season = (window['DOY'] >= window['season_start'] - pre_season_days) & (window['DOY'] <= window['season_end'])
    window = window.loc[in_season]

    grouped = window.groupby([station_column, 'Year'])
    means = grouped[variables].mean().add_suffix('_season')
    if 'Precip' in variables:
        means['Precip_season_total'] = grouped['Precip'].sum(min_count=1)

    return seasons.merge(means.reset_index(), on=[station_column, 'Year'], how='left')
