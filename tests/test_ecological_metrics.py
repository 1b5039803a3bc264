"""
Unit tests for the ecological metrics.

Tests cover:
- Mean sensitivity of trees and sites
- Resistance, recovery and resilience
- Extreme-year coincidence rates
- Predicted vs observed extreme-year performance
"""
import numpy as np
import pandas as pd
import pytest

from growth_response_analysis.core.ecological_metrics import (
    mean_sensitivity,
    resilience_components,
    extreme_count,
    extreme_years,
    coincidence_rate,
    extreme_year_performance,
)


def yearly(values, first_year: int = 1990) -> pd.Series:
    return pd.Series(values, index=range(first_year, first_year + len(values)), dtype=float)


# ============================================================
# Mean Sensitivity Tests
# ============================================================

class TestMeanSensitivity:
    """Tests for year-to-year sensitivity."""

    def test_constant_series_has_no_valid_terms(self):
        assert np.isnan(mean_sensitivity(yearly([10, 10])))

    def test_single_pair(self):
        assert mean_sensitivity(yearly([10, 12])) == pytest.approx(2 / 22)

    def test_zero_terms_are_dropped(self):
        assert mean_sensitivity(yearly([10, 10, 12])) == pytest.approx(2 / 22)

    def test_only_consecutive_years_pair(self):
        series = pd.Series([10.0, 12.0], index=[2000, 2002])
        assert np.isnan(mean_sensitivity(series))

    def test_start_year(self):
        series = yearly([10, 30, 10, 12])
        assert mean_sensitivity(series, start_year=1992) == pytest.approx(2 / 22)

    def test_group_without_trees(self):
        wide = pd.DataFrame(index=[2000, 2001], dtype=float)
        assert np.isnan(mean_sensitivity(wide.mean(axis=1, skipna=True)))


# ============================================================
# Resilience Tests
# ============================================================

class TestResilienceComponents:
    """Tests for disturbance response indices."""

    @pytest.fixture
    def disturbed(self):
        values = {1996: 1.0, 1997: 1.0, 1998: 1.0, 1999: 1.0, 2000: 0.5, 2001: 0.75, 2002: 0.75}
        return pd.Series(values)

    def test_known_values(self, disturbed):
        components = resilience_components(disturbed, 2000)

        assert components['resistance'] == pytest.approx(0.5)
        assert components['recovery'] == pytest.approx(1.5)
        assert components['resilience'] == pytest.approx(0.75)

    def test_resilience_is_product(self, disturbed):
        components = resilience_components(disturbed, 2000)
        assert components['resistance'] * components['recovery'] == pytest.approx(components['resilience'])

    def test_missing_event_year(self, disturbed):
        components = resilience_components(disturbed.drop(2000), 2000)

        assert np.isnan(components['resistance'])
        assert np.isnan(components['recovery'])
        assert components['resilience'] == pytest.approx(0.75)

    def test_event_outside_series(self, disturbed):
        components = resilience_components(disturbed, 1980)
        assert all(np.isnan(value) for value in components.values())


# ============================================================
# Extreme-Year Tests
# ============================================================

class TestExtremeYears:
    """Tests for extreme-year selection and coincidence."""

    def test_extreme_count_rounds_up(self):
        assert extreme_count(20, 0.1) == 2
        assert extreme_count(30, 0.1) == 3
        assert extreme_count(21, 0.1) == 3
        assert extreme_count(0, 0.1) == 0

    def test_tails(self):
        series = yearly(np.arange(20))

        assert list(extreme_years(series, 0.1, 'low')) == [1990, 1991]
        assert list(extreme_years(series, 0.1, 'high')) == [2009, 2008]

    def test_unknown_tail(self):
        with pytest.raises(ValueError, match="Unknown tail"):
            extreme_years(yearly(np.arange(10)), 0.1, 'middle')

    def test_full_coincidence(self):
        growth = yearly(np.arange(20))
        assert coincidence_rate(growth, -growth, 0.1, 'low', 'high') == 1.0

    def test_no_coincidence(self):
        growth = yearly(np.arange(20))
        assert coincidence_rate(growth, growth, 0.1, 'low', 'high') == 0.0

    def test_no_common_years(self):
        growth = yearly(np.arange(5), first_year=1990)
        climate = yearly(np.arange(5), first_year=2000)
        assert np.isnan(coincidence_rate(growth, climate))


class TestExtremeYearPerformance:
    """Tests for the normal-year regression comparison."""

    def test_ratio_on_exact_line(self):
        driver = yearly(np.arange(20))
        values = 2.0 + 0.5 * driver
        result = extreme_year_performance(values, driver, 0.1, driver_tail='high')

        assert result.n_extreme == 2
        assert result.n_fit == 18
        assert result.slope == pytest.approx(0.5)
        assert result.ratio == pytest.approx(1.0)

    def test_halved_extremes(self):
        driver = yearly(np.arange(20))
        values = 2.0 + 0.5 * driver
        values.loc[[2008, 2009]] /= 2.0
        result = extreme_year_performance(values, driver, 0.1, driver_tail='high')

        assert result.ratio == pytest.approx(2.0)

    def test_constant_driver(self):
        driver = yearly(np.ones(20))
        values = yearly(np.arange(20))
        with pytest.raises(ValueError):
            extreme_year_performance(values, driver)

    def test_too_few_normal_years(self):
        driver = yearly(np.arange(5))
        with pytest.raises(ValueError, match="non-extreme years"):
            extreme_year_performance(driver * 2.0, driver, min_fit_years=5)
