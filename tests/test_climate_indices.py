"""
Unit tests for the climate index calculator.

Tests cover:
- Saturation vapour pressure and VPD
- Monthly aggregation
- Extraterrestrial radiation and Hargreaves PET
- Log-logistic fitting and SPEI
"""
import numpy as np
import pandas as pd
import pytest

from shared_utils import ExclusionLog
from climate_indices.core.climate_indices import (
    saturation_vapor_pressure,
    vapor_pressure_deficit,
    add_vpd_columns,
    aggregate_daily_to_monthly,
    extraterrestrial_radiation,
    hargreaves_pet,
    fit_log_logistic,
    log_logistic_cdf,
    standardize_log_logistic,
    compute_spei,
    attach_monthly_to_daily,
)


# ============================================================
# Vapour Pressure Deficit Tests
# ============================================================

class TestVaporPressureDeficit:
    """Tests for SVP and VPD."""

    def test_saturation_vapor_pressure(self):
        assert saturation_vapor_pressure(20.0) == pytest.approx(0.611 * np.exp(17.27 * 20.0 / 257.3))

    def test_vpd_formula(self):
        expected = 0.611 * np.exp(17.27 * 20.0 / 257.3) * 0.5
        assert vapor_pressure_deficit(20.0, 50.0) == pytest.approx(expected)

    def test_saturated_air(self):
        assert vapor_pressure_deficit(15.0, 100.0) == pytest.approx(0.0)

    def test_threshold_vpd_uses_tmax(self):
        daily = pd.DataFrame({'Tmean': [10.0], 'Tmax': [20.0], 'RH': [50.0]})
        result = add_vpd_columns(daily)

        assert result['VPD_threshold'].iloc[0] == pytest.approx(vapor_pressure_deficit(20.0, 50.0))
        assert result['VPD_threshold'].iloc[0] > result['VPD'].iloc[0]


# ============================================================
# Monthly Aggregation Tests
# ============================================================

class TestAggregateDailyToMonthly:
    """Tests for station-month aggregation."""

    def test_means_and_sums(self):
        dates = pd.date_range('2001-01-01', '2001-02-28', freq='D')
        daily = pd.DataFrame({
            'Station': 'ST1', 'Date': dates,
            'Tmean': 1.0, 'Tmin': -1.0, 'Tmax': 3.0, 'Precip': 2.0, 'RH': 80.0,
        })
        monthly = aggregate_daily_to_monthly(daily).set_index('Month')

        assert monthly.loc[1, 'Precip'] == pytest.approx(62.0)
        assert monthly.loc[2, 'Precip'] == pytest.approx(56.0)
        assert monthly.loc[1, 'Tmean'] == pytest.approx(1.0)
        assert monthly.loc[2, 'n_days'] == 28

    def test_month_without_precipitation_is_missing(self):
        dates = pd.date_range('2001-01-01', '2001-01-31', freq='D')
        daily = pd.DataFrame({
            'Station': 'ST1', 'Date': dates,
            'Tmean': 1.0, 'Tmin': -1.0, 'Tmax': 3.0, 'Precip': np.nan,
        })
        monthly = aggregate_daily_to_monthly(daily)
        assert np.isnan(monthly['Precip'].iloc[0])


# ============================================================
# Radiation and PET Tests
# ============================================================

class TestHargreaves:
    """Tests for radiation and potential evapotranspiration."""

    def test_reference_radiation(self):
        # 20 deg S on 3 September
        assert extraterrestrial_radiation(-20.0, 246) == pytest.approx(32.2, abs=0.1)

    def test_polar_night(self):
        assert extraterrestrial_radiation(75.0, 355) == pytest.approx(0.0, abs=1e-9)

    def test_summer_exceeds_winter(self):
        pet = hargreaves_pet(tmin=[-15.0, 10.0], tmax=[-5.0, 22.0], latitude=62.5, year=[2001, 2001], month=[1, 7])
        assert pet[1] > pet[0] >= 0.0

    def test_negative_range_is_clipped(self):
        pet = hargreaves_pet(tmin=[12.0], tmax=[10.0], latitude=62.5, year=[2001], month=[7])
        assert pet[0] == 0.0

    def test_scales_with_days_in_month(self):
        # 15 February is day 46 in both years
        pet = hargreaves_pet(tmin=[-5.0, -5.0], tmax=[5.0, 5.0], latitude=60.0, year=[2001, 2004], month=[2, 2])
        assert pet[1] / pet[0] == pytest.approx(29 / 28)


# ============================================================
# SPEI Tests
# ============================================================

def generalized_logistic_sample(location, scale, shape, size, seed):
    """Draw from the generalized logistic distribution by inverting its CDF."""
    probability = np.random.default_rng(seed).uniform(0.001, 0.999, size)
    return location + scale * (1 - ((1 - probability) / probability) ** shape) / shape


class TestLogLogistic:
    """Tests for the L-moment fit and its CDF."""

    @pytest.mark.parametrize("shape", [0.2, -0.2])
    def test_recovers_parameters(self, shape):
        sample = generalized_logistic_sample(-20.0, 15.0, shape, size=5000, seed=3)
        location, scale, fitted_shape = fit_log_logistic(sample)

        assert fitted_shape == pytest.approx(shape, abs=0.05)
        assert scale == pytest.approx(15.0, rel=0.1)
        assert location == pytest.approx(-20.0, abs=2.0)

    def test_symmetric_sample(self):
        sample = np.random.default_rng(5).normal(10.0, 25.0, 2000)
        location, scale, shape = fit_log_logistic(sample)

        assert abs(shape) < 0.05
        assert location == pytest.approx(10.0, abs=3.0)

    def test_negatively_skewed_balance(self):
        # Dry months pull the balance far below its usual level
        balance = 40.0 - np.random.default_rng(8).gamma(2.0, 20.0, 60)
        _, _, shape = fit_log_logistic(balance)
        standardized = standardize_log_logistic(balance)

        assert shape > 0
        finite = np.isfinite(standardized)
        assert finite.mean() >= 0.9
        order = np.argsort(balance[finite])
        assert np.all(np.diff(standardized[finite][order]) >= 0)

    def test_cdf_at_location_and_bounds(self):
        assert log_logistic_cdf([0.0], 0.0, 10.0, 0.5)[0] == pytest.approx(0.5)
        # Upper bound at 20 for positive shape, lower bound at -20 for negative
        assert log_logistic_cdf([100.0], 0.0, 10.0, 0.5)[0] == 1.0
        assert log_logistic_cdf([-100.0], 0.0, 10.0, -0.5)[0] == 0.0
        assert np.isnan(log_logistic_cdf([np.nan], 0.0, 10.0, 0.5)[0])

    def test_too_few_values(self):
        with pytest.raises(ValueError):
            fit_log_logistic([1.0, 2.0])

    def test_constant_sample(self):
        with pytest.raises(ValueError, match="Degenerate"):
            fit_log_logistic([5.0] * 12)


class TestComputeSpei:
    """Tests for SPEI calculation and re-attachment."""

    @pytest.fixture
    def monthly_balance(self) -> pd.DataFrame:
        rng = np.random.default_rng(11)
        periods = pd.period_range('1971-01', '2010-12', freq='M')
        return pd.DataFrame({
            'Station': 'ST1',
            'Year': periods.year,
            'Month': periods.month,
            'Balance': rng.normal(10.0, 25.0, len(periods)),
        })

    def test_standardized_output(self, monthly_balance):
        spei = compute_spei(monthly_balance, scale=6)
        values = spei['SPEI6'].dropna()

        assert spei['SPEI6'].iloc[:5].isna().all()
        assert len(values) > 0.9 * (len(spei) - 5)
        assert np.isfinite(values).all()
        assert abs(values.mean()) < 0.5

    def test_accumulation_window(self, monthly_balance):
        spei = compute_spei(monthly_balance, scale=6)
        expected = monthly_balance['Balance'].iloc[:6].sum()
        assert spei['Balance_accumulated'].iloc[5] == pytest.approx(expected)

    def test_missing_month_breaks_windows(self, monthly_balance):
        gapped = monthly_balance.drop(index=100)
        spei = compute_spei(gapped, scale=6)

        # Every window containing the dropped month is missing
        assert spei['Balance_accumulated'].iloc[100:106].isna().all()
        assert len(spei) == len(monthly_balance)

    def test_too_few_years_are_logged(self, monthly_balance):
        exclusions = ExclusionLog()
        short = monthly_balance.iloc[:36]
        spei = compute_spei(short, scale=6, min_fit_samples=10, exclusions=exclusions)

        assert spei['SPEI6'].isna().all()
        assert exclusions.count('spei') == 12

    def test_reattach_to_daily(self, monthly_balance):
        spei = compute_spei(monthly_balance, scale=6)
        daily = pd.DataFrame({'Station': 'ST1', 'Date': pd.to_datetime(['2000-07-01', '2000-07-15'])})
        attached = attach_monthly_to_daily(daily, spei, ['SPEI6'])

        expected = spei.loc[(spei['Year'] == 2000) & (spei['Month'] == 7), 'SPEI6'].iloc[0]
        np.testing.assert_array_equal(attached['SPEI6'].to_numpy(), [expected, expected])
