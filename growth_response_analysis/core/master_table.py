"""
MasterTable assembly.

Joins site attributes, soil chemistry, quality statistics, ecological
metrics and growing-season climate summaries into one row per site group
(site level) or per retained tree (tree level). Every join is checked for
key cardinality and rows that fail to match are reported in the exclusion
log instead of disappearing silently.

Author: Boreal Growth Team
"""

from dataclasses import dataclass, field
from typing import Dict, List, Optional, Sequence

import numpy as np
import pandas as pd

from shared_utils import get_logger, ExclusionLog
from ring_width_processing.core.id_normalization import (
    SITE_KEYS, apply_column_aliases, normalize_code, join_key_columns
)

from .ecological_metrics import (
    mean_sensitivity, resilience_components, coincidence_rate, extreme_year_performance
)


def default_drivers(spei_scale: int = 6) -> Dict[str, str]:
    """Season climate drivers with the SPEI column of the given accumulation scale."""
    return {f'SPEI{spei_scale}_season': 'low', 'Tmean_season': 'high', 'VPD_season': 'high'}


@dataclass
class MetricSettings:
    """Parameters shared by the per-tree and per-site metric calculations."""
    start_year: Optional[int] = None
    event_years: List[int] = field(default_factory=list)
    pre_years: int = 4
    post_years: int = 2
    extreme_fraction: float = 0.1
    # Must match the accumulation scale used when the SPEI was computed
    spei_scale: int = 6
    # Season climate column -> extreme tail ('low' or 'high')
    drivers: Optional[Dict[str, str]] = None
    min_fit_years: int = 5

    def __post_init__(self):
        if self.drivers is None:
            self.drivers = default_drivers(self.spei_scale)

    def missing_drivers(self, columns: Sequence[str]) -> List[str]:
        """Drivers without a matching season climate column."""
        return [driver for driver in self.drivers if driver not in set(columns)]

    @classmethod
    def from_config(cls, config: Dict) -> "MetricSettings":
        fields = cls.__dataclass_fields__
        values = {key: value for key, value in (config or {}).items() if key in fields and value is not None}
        if 'event_years' in values:
            values['event_years'] = [int(year) for year in values['event_years']]
        return cls(**values)


def prepare_site_table(
    sites: pd.DataFrame,
    column_aliases: Optional[Dict[str, List[str]]] = None,
    exclusions: Optional[ExclusionLog] = None,
    stage: str = 'site_attributes',
    unique: bool = True
) -> pd.DataFrame:
    """
    Normalize the site keys of a site-level attribute table.

    Rows whose Type / Site / Plot cannot be resolved are excluded; duplicated
    sites keep their last record unless several rows per site are expected.

    Args:
        sites: Raw site (or soil) table
        column_aliases: Canonical name -> accepted raw column names
        exclusions: Exclusion log receiving unkeyed and duplicated rows
        stage: Stage name used for exclusion records
        unique: Whether each site must appear once

    Returns:
        pd.DataFrame: Table with normalized key columns and a SiteID column
    """
    logger = get_logger('growth_response_analysis.master_table')
    table = apply_column_aliases(sites, column_aliases).copy()

    missing = [key for key in SITE_KEYS if key not in table.columns]
    if missing:
        raise ValueError(f"{stage} table is missing key columns {missing}")

    for key in SITE_KEYS:
        table[key] = table[key].map(normalize_code)

    complete = (table[SITE_KEYS] != "").all(axis=1)
    if not complete.all():
        logger.warning(f"Excluded {int((~complete).sum())} {stage} rows with incomplete site keys")
        if exclusions is not None:
            exclusions.extend(stage, table.index[~complete].astype(str), 'incomplete site key')
        table = table.loc[complete].copy()

    table['SiteID'] = join_key_columns(table, SITE_KEYS)

    duplicated = table.duplicated('SiteID', keep='last')
    if unique and duplicated.any():
        logger.warning(f"Dropped {int(duplicated.sum())} duplicated {stage} records")
        if exclusions is not None:
            exclusions.extend(stage, table.loc[duplicated, 'SiteID'].unique(), 'duplicated site record')
        table = table.loc[~duplicated]

    return table.reset_index(drop=True)


def summarize_soil(soil: pd.DataFrame) -> pd.DataFrame:
    """Average numeric soil chemistry per SiteID (several samples per plot are common)."""
    numeric = soil.select_dtypes(include='number').columns.difference(SITE_KEYS)
    return soil.groupby('SiteID')[list(numeric)].mean().reset_index()


def join_with_exclusions(
    left: pd.DataFrame,
    right: pd.DataFrame,
    on,
    entity_column: str,
    stage: str,
    reason: str,
    exclusions: Optional[ExclusionLog] = None
) -> pd.DataFrame:
    """
    Many-to-one inner join that records every unmatched left row.

    Args:
        left: Table whose rows must all find a partner
        right: Lookup table, unique on the join keys
        on: Join key column(s)
        entity_column: Column of left naming the excluded entities
        stage: Stage name used for exclusion records
        reason: Reason recorded for unmatched rows
        exclusions: Exclusion log

    Returns:
        pd.DataFrame: Matched rows only

    Raises:
        pandas.errors.MergeError: If right is not unique on the join keys
    """
    logger = get_logger('growth_response_analysis.master_table')
    merged = left.merge(right, on=on, how='left', validate='many_to_one', indicator=True)

    unmatched = merged['_merge'] == 'left_only'
    if unmatched.any():
        lost = merged.loc[unmatched, entity_column].unique()
        logger.warning(f"Excluded {len(lost)} entities at {stage}: {reason}")
        if exclusions is not None:
            exclusions.extend(stage, lost, reason)

    return merged.loc[~unmatched].drop(columns='_merge').reset_index(drop=True)


def summarize_season_climate(season_climate: pd.DataFrame, station_column: str = 'Station') -> pd.DataFrame:
    """Multi-year means of the season length and season climate columns per station."""
    columns = [c for c in season_climate.columns
               if c == 'season_length' or c.endswith('_season') or c.endswith('_season_total')]
    summary = season_climate.groupby(station_column)[columns].mean()
    return summary.add_prefix('mean_').reset_index()


def station_climate_by_year(season_climate: pd.DataFrame, station, station_column: str = 'Station') -> pd.DataFrame:
    """Season climate of one station indexed by Year."""
    rows = season_climate[season_climate[station_column] == station]
    return rows.drop(columns=[station_column]).set_index('Year').sort_index()


def series_metrics(
    entity: str,
    raw: pd.Series,
    rwi: pd.Series,
    climate_by_year: pd.DataFrame,
    settings: MetricSettings,
    site_event_year: Optional[float] = None,
    exclusions: Optional[ExclusionLog] = None
) -> Dict[str, float]:
    """
    All ecological metrics of one growth series (a tree or a site mean).

    Args:
        entity: Tree or group identifier used in log messages
        raw: Year-indexed raw ring widths
        rwi: Year-indexed ring-width indices
        climate_by_year: Season climate of the matching station indexed by Year
        settings: Metric parameters
        site_event_year: Entity-specific disturbance year (e.g. clearcut year)
        exclusions: Exclusion log receiving failed regression fits

    Returns:
        dict: Metric name -> value
    """
    logger = get_logger('growth_response_analysis.master_table')
    metrics = {'mean_sensitivity': mean_sensitivity(rwi, settings.start_year)}

    events = {str(year): year for year in settings.event_years}
    if site_event_year is not None and pd.notna(site_event_year):
        events['event'] = int(site_event_year)

    for label, year in events.items():
        for suffix, series in (('raw', raw), ('rwi', rwi)):
            components = resilience_components(series, year, settings.pre_years, settings.post_years)
            for name, value in components.items():
                metrics[f'{name}_{suffix}_{label}'] = value

    for driver, tail in settings.drivers.items():
        if driver in climate_by_year.columns:
            climate = climate_by_year[driver]
        else:
            climate = pd.Series(dtype=float)

        metrics[f'coincidence_{driver}'] = coincidence_rate(
            rwi, climate, settings.extreme_fraction, growth_tail='low', climate_tail=tail
        )

        try:
            performance = extreme_year_performance(
                rwi, climate, settings.extreme_fraction, driver_tail=tail, min_fit_years=settings.min_fit_years
            )
            metrics[f'extreme_ratio_{driver}'] = performance.ratio
        except ValueError as e:
            logger.debug(f"Extreme-year ratio for {entity} vs {driver} undefined: {e}")
            if exclusions is not None:
                exclusions.add('extreme_year_ratio', f"{entity}:{driver}", str(e))
            metrics[f'extreme_ratio_{driver}'] = np.nan

    return metrics


def mean_biomass_increment(biomass: pd.DataFrame, tree_ids: Sequence[str], start_year: Optional[int] = None) -> float:
    """Mean annual biomass increment over trees (each tree averaged first)."""
    rows = biomass[biomass['TreeID'].isin(list(tree_ids))]
    if start_year is not None:
        rows = rows[rows['Year'] >= start_year]
    per_tree = rows.groupby('TreeID')['biomass_increment_kg'].mean().dropna()
    return float(per_tree.mean()) if len(per_tree) else np.nan
