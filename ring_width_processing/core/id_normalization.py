"""
Series alignment and identifier normalization.

Ring-width datasets from different field campaigns name trees, plots and
sites differently: some ship separate key columns under varying names, others
pack everything into a single sample code. This module resolves both into the
canonical composite key (Species, Type, Site, Plot, Tree), drops records that
cannot be keyed, and removes superseded re-measurements.

Author: Boreal Growth Team
"""

import re
from typing import Dict, List, Optional, Sequence

import numpy as np
import pandas as pd

from shared_utils import get_logger, ExclusionLog

CANONICAL_KEYS = ['Species', 'Type', 'Site', 'Plot', 'Tree']
SITE_KEYS = ['Type', 'Site', 'Plot']

DEFAULT_COLUMN_ALIASES = {
    'Species': ['species', 'sp', 'spp', 'tree_species'],
    'Type': ['type', 'forest', 'forest_type', 'foresttype', 'stand_type'],
    'Site': ['site', 'site_id', 'siteid', 'location'],
    'Plot': ['plot', 'subplot', 'plot_id', 'sub_plot'],
    'Tree': ['tree', 'tree_id', 'treeid', 'tree_no', 'tree_number'],
    'Year': ['year', 'ring_year', 'yr'],
    'MeasurementYear': ['measurementyear', 'measurement_year', 'sampling_year', 'survey_year'],
}

# Tried in order; the first full match wins
DEFAULT_ID_PATTERNS = [
    r'^(?P<Species>[A-Za-z]+)[_\-\s](?P<Type>[A-Za-z0-9]+)[_\-\s]S?(?P<Site>\d+)[_\-\s]P?(?P<Plot>\d+)[_\-\s]T?(?P<Tree>\d+)$',
    r'^(?P<Species>[A-Za-z]{2})(?P<Type>[A-Za-z]{2})(?P<Site>\d{2})(?P<Plot>\d)(?P<Tree>\d{2,3})$',
]


def normalize_code(value) -> str:
    """
    Normalize a single identifier component.

    Strips whitespace, upper-cases, and drops leading zeros of purely numeric
    codes. Missing values normalize to the empty string.

    Examples:
        >>> normalize_code(" 07 ")
        '7'
        >>> normalize_code("cc")
        'CC'
    """
    if value is None:
        return ""
    if isinstance(value, float):
        if np.isnan(value):
            return ""
        if value.is_integer():
            value = int(value)
    text = str(value).strip().upper()
    if text.isdigit():
        return str(int(text))
    return text


def parse_tree_identifier(identifier, patterns: Optional[Sequence[str]] = None) -> Optional[Dict[str, str]]:
    """
    Parse a packed sample code into canonical key components.

    Args:
        identifier: Raw sample code, e.g. 'PS_CC_S03_P2_T15'
        patterns: Regular expressions with named groups for the canonical keys

    Returns:
        dict of normalized components, or None if no pattern matches fully
    """
    if identifier is None or (isinstance(identifier, float) and np.isnan(identifier)):
        return None

    text = str(identifier).strip()
    for pattern in patterns or DEFAULT_ID_PATTERNS:
        match = re.match(pattern, text)
        if match:
            parts = {key: normalize_code(val) for key, val in match.groupdict().items()}
            if all(parts.get(key) for key in CANONICAL_KEYS):
                return parts
    return None


def join_key_columns(df: pd.DataFrame, columns: Sequence[str]) -> pd.Series:
    """Join key columns into a single '_'-separated composite key."""
    joined = df[columns[0]].astype(str)
    for column in columns[1:]:
        joined = joined + '_' + df[column].astype(str)
    return joined


def apply_column_aliases(df: pd.DataFrame, column_aliases: Optional[Dict[str, List[str]]] = None) -> pd.DataFrame:
    """Rename the first matching alias column of each canonical field (case-insensitive)."""
    aliases = column_aliases or DEFAULT_COLUMN_ALIASES
    lower_to_column = {str(col).lower(): col for col in df.columns}
    renames = {}

    for canonical, names in aliases.items():
        if canonical in df.columns:
            continue
        for name in names:
            column = lower_to_column.get(name.lower())
            if column is not None and column not in renames:
                renames[column] = canonical
                break

    return df.rename(columns=renames)


def build_canonical_keys(
    df: pd.DataFrame,
    id_column: Optional[str] = None,
    id_patterns: Optional[Sequence[str]] = None,
    column_aliases: Optional[Dict[str, List[str]]] = None,
    exclusions: Optional[ExclusionLog] = None
) -> pd.DataFrame:
    """
    Resolve canonical composite keys for every row of a raw table.

    Key columns present under any known alias are used directly; keys still
    missing are parsed from id_column. Rows left with an incomplete key are
    excluded and counted, never fatal.

    Args:
        df: Raw measurement table
        id_column: Column holding packed sample codes (optional)
        id_patterns: Regular expressions used to parse id_column
        column_aliases: Canonical name -> accepted raw column names
        exclusions: Exclusion log receiving the unparseable identifiers

    Returns:
        pd.DataFrame: Copy of the keyed rows with TreeID and SiteID columns added
    """
    logger = get_logger('ring_width_processing.id_normalization')

    keyed = apply_column_aliases(df, column_aliases).copy()
    missing_keys = [key for key in CANONICAL_KEYS if key not in keyed.columns]

    if missing_keys:
        if id_column is None or id_column not in keyed.columns:
            raise ValueError(
                f"Cannot resolve key columns {missing_keys}: no identifier column to parse"
            )
        parsed = keyed[id_column].apply(lambda value: parse_tree_identifier(value, id_patterns))
        for key in missing_keys:
            keyed[key] = parsed.apply(lambda parts: parts[key] if parts else "")

    for key in CANONICAL_KEYS:
        keyed[key] = keyed[key].map(normalize_code)

    complete = (keyed[CANONICAL_KEYS] != "").all(axis=1)
    n_failed = int((~complete).sum())

    if n_failed:
        label_column = id_column if id_column in keyed.columns else None
        labels = (
            keyed.loc[~complete, label_column].astype(str)
            if label_column else keyed.index[~complete].astype(str)
        )
        logger.warning(f"Excluded {n_failed} of {len(keyed)} rows with unparseable tree identifiers")
        if exclusions is not None:
            exclusions.extend('id_normalization', labels.unique(), 'unparseable identifier')

    keyed = keyed.loc[complete].copy()
    keyed['TreeID'] = join_key_columns(keyed, CANONICAL_KEYS)
    keyed['SiteID'] = join_key_columns(keyed, SITE_KEYS)

    logger.info(f"Resolved keys for {len(keyed)} rows, {keyed['TreeID'].nunique()} trees")
    return keyed


def keep_latest_measurement(
    df: pd.DataFrame,
    measurement_column: str = 'MeasurementYear',
    exclusions: Optional[ExclusionLog] = None
) -> pd.DataFrame:
    """
    Keep only the most recent measurement campaign of every tree.

    Re-measured trees appear with several campaigns; only the rows of the
    latest campaign survive. Any (TreeID, Year) pair still duplicated keeps its
    last record.

    Args:
        df: Keyed long table with TreeID and Year columns
        measurement_column: Column identifying the measurement campaign
        exclusions: Exclusion log receiving superseded measurements

    Returns:
        pd.DataFrame: De-duplicated long table sorted by TreeID and Year
    """
    logger = get_logger('ring_width_processing.id_normalization')
    result = df

    if measurement_column in df.columns:
        latest = df.groupby('TreeID')[measurement_column].transform('max')
        superseded = df[measurement_column] != latest
        n_superseded = int(superseded.sum())
        if n_superseded:
            logger.info(f"Dropped {n_superseded} rows from superseded measurement campaigns")
            if exclusions is not None:
                labels = (df.loc[superseded, 'TreeID'] + '@' +
                          df.loc[superseded, measurement_column].astype(str)).unique()
                exclusions.extend('id_normalization', labels, 'superseded measurement')
        result = df.loc[~superseded]

    duplicated = result.duplicated(subset=['TreeID', 'Year'], keep='last')
    if duplicated.any():
        logger.warning(f"Dropped {int(duplicated.sum())} duplicated tree-year records")
        result = result.loc[~duplicated]

    return result.sort_values(['TreeID', 'Year']).reset_index(drop=True)


def wide_to_long(wide: pd.DataFrame, value_name: str = 'RingWidth', id_name: str = 'SampleID') -> pd.DataFrame:
    """
    Convert a year x sample wide table to long format.

    Args:
        wide: Table indexed by year with one column per sample code
        value_name: Name of the value column
        id_name: Name given to the sample code column

    Returns:
        pd.DataFrame: Long table with id_name, Year, value_name (missing values dropped)
    """
    long = wide.copy()
    long.index = long.index.astype(int)
    long.index.name = 'Year'
    long = long.reset_index().melt(id_vars='Year', var_name=id_name, value_name=value_name)
    return long.dropna(subset=[value_name]).reset_index(drop=True)


def long_to_wide(df: pd.DataFrame, value_column: str, id_column: str = 'TreeID') -> pd.DataFrame:
    """
    Pivot a long series table to a wide table indexed by ascending year.

    Args:
        df: Long table with Year, id_column and value_column
        value_column: Column holding the series values
        id_column: Column naming each series

    Returns:
        pd.DataFrame: Year x series table covering every year between the
        earliest and latest observation
    """
    wide = df.pivot(index='Year', columns=id_column, values=value_column)
    if wide.empty:
        return wide
    years = np.arange(int(wide.index.min()), int(wide.index.max()) + 1)
    wide = wide.reindex(years)
    wide.index.name = 'Year'
    wide.columns.name = None
    return wide.sort_index(axis=1)


def add_group_ids(df: pd.DataFrame, group_keys: Sequence[str]) -> pd.DataFrame:
    """Add the GroupID composite column used for quality filtering and chronologies."""
    grouped = df.copy()
    grouped['GroupID'] = join_key_columns(grouped, list(group_keys))
    return grouped
