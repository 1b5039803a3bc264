"""
Statistical quality filtering of tree-ring series.

Trees are screened by their leave-one-out correlation with the mean of the
other trees in their group: the reference chronology never contains the tree
being tested. The same leave-one-out convention is used for the group rbar,
from which the Expressed Population Signal follows.

Author: Boreal Growth Team
"""

from dataclasses import dataclass, asdict
from typing import Optional, Tuple

import numpy as np
import pandas as pd
from tqdm import tqdm

from shared_utils import get_logger, ExclusionLog

# Critical correlation for a one-tailed test at the conventional significance
# level for typical series lengths, kept configurable through config.yaml
DEFAULT_CORRELATION_THRESHOLD = 0.3281


@dataclass
class GroupQuality:
    """Container for group-level replication statistics."""
    GroupID: str
    n_trees: int
    n_retained: int
    rbar: float
    rbar_pairwise: float
    eps: float
    passed: bool


def series_correlation(a: pd.Series, b: pd.Series, min_overlap: int = 10) -> float:
    """
    Pearson correlation over the years where both series are present.

    Returns NaN when the overlap is shorter than min_overlap or either series
    is constant over it.
    """
    valid = a.notna() & b.notna()
    if int(valid.sum()) < max(min_overlap, 3):
        return np.nan

    x = a[valid].to_numpy(dtype=float)
    y = b[valid].to_numpy(dtype=float)
    xm = x - x.mean()
    ym = y - y.mean()
    denominator = np.sqrt(np.sum(xm * xm) * np.sum(ym * ym))
    if denominator == 0:
        return np.nan
    return float(np.sum(xm * ym) / denominator)


def leave_one_out_correlations(wide: pd.DataFrame, min_overlap: int = 10) -> pd.Series:
    """
    Correlate each series with the mean of all other series of the table.

    Args:
        wide: Year x tree table of one group
        min_overlap: Minimum number of shared years

    Returns:
        pd.Series: Correlation per tree (NaN for single-tree groups)
    """
    correlations = {}
    for name in wide.columns:
        others = wide.drop(columns=name)
        if others.shape[1] == 0:
            correlations[name] = np.nan
            continue
        reference = others.mean(axis=1, skipna=True)
        correlations[name] = series_correlation(wide[name], reference, min_overlap)
    return pd.Series(correlations, dtype=float)


def mean_pairwise_correlation(wide: pd.DataFrame, min_overlap: int = 10) -> float:
    """Classic rbar: mean correlation over all distinct pairs of series."""
    names = list(wide.columns)
    pairs = [
        series_correlation(wide[a], wide[b], min_overlap)
        for i, a in enumerate(names) for b in names[i + 1:]
    ]
    pairs = [r for r in pairs if not np.isnan(r)]
    return float(np.mean(pairs)) if pairs else np.nan


def expressed_population_signal(n_trees: int, rbar: float) -> float:
    """EPS = N rbar / (1 + (N - 1) rbar); NaN when undefined."""
    if n_trees < 2 or rbar is None or np.isnan(rbar):
        return np.nan
    denominator = 1 + (n_trees - 1) * rbar
    if denominator == 0:
        return np.nan
    return float(n_trees * rbar / denominator)


def filter_group(
    wide: pd.DataFrame,
    group_id: str,
    correlation_threshold: float = DEFAULT_CORRELATION_THRESHOLD,
    min_overlap: int = 10,
    min_trees: int = 3
) -> Tuple[pd.DataFrame, GroupQuality]:
    """
    Screen the trees of one group and compute its replication statistics.

    Args:
        wide: Year x tree detrended table of the group
        group_id: Group identifier
        correlation_threshold: Minimum leave-one-out correlation to retain a tree
        min_overlap: Minimum number of shared years for a correlation
        min_trees: Minimum number of retained trees for the group to pass

    Returns:
        tuple: (per-tree quality table, GroupQuality)
    """
    wide = wide.dropna(axis=1, how='all')
    correlations = leave_one_out_correlations(wide, min_overlap)
    retained = correlations >= correlation_threshold

    tree_quality = pd.DataFrame({
        'TreeID': correlations.index,
        'GroupID': group_id,
        'correlation': correlations.to_numpy(),
        'n_years': wide.notna().sum().reindex(correlations.index).to_numpy(),
        'retained': retained.to_numpy(),
    })

    kept = wide.loc[:, retained[retained].index]
    n_retained = kept.shape[1]

    if n_retained >= 2:
        rbar_values = leave_one_out_correlations(kept, min_overlap).dropna()
        rbar = float(rbar_values.mean()) if len(rbar_values) else np.nan
        rbar_pairwise = mean_pairwise_correlation(kept, min_overlap)
    else:
        rbar = np.nan
        rbar_pairwise = np.nan

    quality = GroupQuality(
        GroupID=group_id,
        n_trees=wide.shape[1],
        n_retained=n_retained,
        rbar=rbar,
        rbar_pairwise=rbar_pairwise,
        eps=expressed_population_signal(n_retained, rbar),
        passed=n_retained >= min_trees
    )
    return tree_quality, quality


def filter_groups(
    wide: pd.DataFrame,
    tree_groups: pd.Series,
    correlation_threshold: float = DEFAULT_CORRELATION_THRESHOLD,
    min_overlap: int = 10,
    min_trees: int = 3,
    exclusions: Optional[ExclusionLog] = None
) -> Tuple[pd.DataFrame, pd.DataFrame]:
    """
    Run the quality filter over every group of a detrended table.

    Args:
        wide: Year x tree detrended table
        tree_groups: Mapping TreeID -> GroupID
        correlation_threshold: Minimum leave-one-out correlation to retain a tree
        min_overlap: Minimum number of shared years for a correlation
        min_trees: Minimum number of retained trees for a group to pass
        exclusions: Exclusion log receiving rejected trees and groups

    Returns:
        tuple: (tree quality table, group quality table). Trees pass through
        when retained and in a passing group ('pass_through' column).
    """
    logger = get_logger('ring_width_processing.quality_filter')

    tree_tables = []
    group_records = []
    present = tree_groups[tree_groups.index.isin(wide.columns)]

    for group_id, members in tqdm(present.groupby(present), desc="Quality filtering groups", leave=False):
        tree_quality, quality = filter_group(
            wide[list(members.index)], group_id,
            correlation_threshold, min_overlap, min_trees
        )
        tree_tables.append(tree_quality)
        group_records.append(asdict(quality))

    tree_columns = ['TreeID', 'GroupID', 'correlation', 'n_years', 'retained']
    tree_quality = (pd.concat(tree_tables, ignore_index=True) if tree_tables
                    else pd.DataFrame(columns=tree_columns))
    group_quality = pd.DataFrame(group_records, columns=list(GroupQuality.__dataclass_fields__))

    passed_groups = set(group_quality.loc[group_quality['passed'], 'GroupID'])
    tree_quality['pass_through'] = tree_quality['retained'].astype(bool) & tree_quality['GroupID'].isin(passed_groups)

    if exclusions is not None:
        rejected = tree_quality.loc[~tree_quality['retained'].astype(bool), 'TreeID']
        exclusions.extend('quality_filter', rejected, 'correlation below threshold or undefined')
        failed = group_quality.loc[~group_quality['passed'], 'GroupID']
        exclusions.extend('quality_filter', failed, f'fewer than {min_trees} retained trees')

    logger.info(f"Quality filter: {int(tree_quality['retained'].sum())} of {len(tree_quality)} trees retained, "
                f"{len(passed_groups)} of {len(group_quality)} groups passed")
    return tree_quality, group_quality


def build_chronologies(wide: pd.DataFrame, tree_quality: pd.DataFrame) -> pd.DataFrame:
    """
    Mean chronology and sample depth of the pass-through trees of each group.

    Args:
        wide: Year x tree detrended table
        tree_quality: Tree quality table from filter_groups

    Returns:
        pd.DataFrame: Long table with GroupID, Year, chronology, sample_depth
    """
    passing = tree_quality[tree_quality['pass_through']]
    frames = []

    for group_id, members in passing.groupby('GroupID'):
        group_wide = wide[list(members['TreeID'])]
        chronology = pd.DataFrame({
            'GroupID': group_id,
            'Year': group_wide.index,
            'chronology': group_wide.mean(axis=1, skipna=True).to_numpy(),
            'sample_depth': group_wide.notna().sum(axis=1).to_numpy(),
        })
        frames.append(chronology[chronology['sample_depth'] > 0])

    if not frames:
        return pd.DataFrame(columns=['GroupID', 'Year', 'chronology', 'sample_depth'])
    return pd.concat(frames, ignore_index=True)
