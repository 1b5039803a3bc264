"""
Unit tests for growing season detection and season climate means.

Tests cover:
- Season boundary arithmetic
- Rejected station-years
- Season windows for climate means
"""
import numpy as np
import pandas as pd
import pytest

from shared_utils import ExclusionLog
from climate_indices.core.growing_season import (
    SeasonRules,
    find_growing_season,
    detect_growing_season,
    detect_growing_seasons,
    season_climate_means,
    warm_run_span,
)


def warm_days(first: int, last: int, n_days: int = 365) -> pd.Series:
    """Daily mean temperature of 10 deg C on days first..last, 0 deg C otherwise."""
    doy = np.arange(1, n_days + 1)
    return pd.Series(np.where((doy >= first) & (doy <= last), 10.0, 0.0), index=doy)


def daily_table(first: int, last: int, year: int = 2001, station: str = 'ST1') -> pd.DataFrame:
    dates = pd.date_range(f"{year}-01-01", f"{year}-12-31", freq='D')
    tmean = warm_days(first, last, len(dates)).to_numpy()
    return pd.DataFrame({'Station': station, 'Date': dates, 'Tmean': tmean, 'Precip': 1.0})


# ============================================================
# Season Detection Tests
# ============================================================

class TestDetectGrowingSeason:
    """Tests for one station-year."""

    def test_boundary_arithmetic(self):
        season = detect_growing_season(warm_days(65, 300))

        assert season.start == 65
        assert season.end == 300
        assert season.length == 4 + 300 - 65

    def test_start_not_before_day_60(self):
        season = detect_growing_season(warm_days(1, 300))
        assert season.start == 60

    def test_end_bounded_by_day_300(self):
        season = detect_growing_season(warm_days(100, 330))
        assert season.end == 300

    def test_runs_shorter_than_four_days_are_ignored(self):
        tmean = warm_days(100, 280)
        tmean.loc[70:72] = 10.0
        assert detect_growing_season(tmean).start == 100

    def test_no_start(self):
        season, reason = find_growing_season(warm_days(400, 500))
        assert season is None
        assert reason == 'no qualifying season start'

    def test_no_end(self):
        season, reason = find_growing_season(warm_days(65, 200))
        assert season is None
        assert reason == 'no qualifying season end'

    def test_never_dormant_with_default_rules(self):
        season, reason = find_growing_season(warm_days(1, 365))
        assert season is None
        assert reason == 'degenerate season length'

    def test_never_dormant_with_wide_windows(self):
        rules = SeasonRules(start_min_doy=1, end_max_doy=366)
        season, reason = find_growing_season(warm_days(1, 365), rules)
        assert season is None
        assert reason == 'degenerate season length'

    def test_long_warm_run_below_limit(self):
        # A single cold day at day 360 keeps the run at 359 days
        tmean = warm_days(1, 365)
        tmean.loc[360] = 0.0
        season = detect_growing_season(tmean)
        assert (season.start, season.end) == (60, 300)

    def test_warm_run_span(self):
        warm = warm_days(100, 200).to_numpy() > 5.0
        assert warm_run_span(warm, 150) == 101
        assert warm_run_span(np.ones(365, dtype=bool), 60) == 365

    def test_rules_from_config(self):
        rules = SeasonRules.from_config({'threshold': 8.0, 'unused_key': 1})
        assert rules.threshold == 8.0
        assert rules.run_length == 4


class TestDetectGrowingSeasons:
    """Tests for the station-year table."""

    def test_detected_and_rejected_years(self):
        daily = pd.concat([daily_table(65, 300, year=2001), daily_table(65, 200, year=2002)], ignore_index=True)
        exclusions = ExclusionLog()
        seasons = detect_growing_seasons(daily, exclusions=exclusions)

        assert seasons[['Year', 'season_start', 'season_end', 'season_length']].values.tolist() == [[2001, 65, 300, 239]]
        assert exclusions.count('growing_season') == 1
        assert exclusions.records[0].entity == 'ST1-2002'


# ============================================================
# Season Climate Tests
# ============================================================

class TestSeasonClimateMeans:
    """Tests for within-season summaries."""

    def test_window_starts_three_days_early(self):
        daily = daily_table(65, 300)
        seasons = detect_growing_seasons(daily)
        summary = season_climate_means(daily, seasons, variables=['Tmean', 'Precip'])

        # Days 62-64 are cold, days 65-300 warm
        n_days = 300 - 62 + 1
        assert summary['Tmean_season'].iloc[0] == pytest.approx(10.0 * 236 / n_days)
        assert summary['Precip_season_total'].iloc[0] == pytest.approx(float(n_days))

    def test_missing_variables_are_skipped(self):
        daily = daily_table(65, 300)
        seasons = detect_growing_seasons(daily)
        summary = season_climate_means(daily, seasons, variables=['Tmean', 'VPD'])

        assert 'Tmean_season' in summary.columns
        assert 'VPD_season' not in summary.columns
