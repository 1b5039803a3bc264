"""
Unit tests for diameter and biomass reconstruction.

Tests cover:
- Reverse cumulative diameter reconstruction
- Allometry lookup and overrides
- Biomass increment differencing
- Table-level reconstruction and its preconditions
"""
import numpy as np
import pandas as pd
import pytest

from shared_utils import ExclusionLog
from ring_width_processing.core.biomass_reconstruction import (
    ALLOMETRY_COMPONENTS,
    AllometryTable,
    reconstruct_diameter,
    biomass_increments,
    reconstruct_biomass_table,
)


# ============================================================
# Diameter Reconstruction Tests
# ============================================================

class TestReconstructDiameter:
    """Tests for back-calculated diameters."""

    def test_constant_width(self):
        n, w = 10, 1.5
        diameter = reconstruct_diameter(np.full(n, w))

        assert diameter[0] == pytest.approx(2 * n * w)
        assert diameter[-1] == pytest.approx(2 * w)

    def test_years_before_first_ring_stay_missing(self):
        diameter = reconstruct_diameter(np.array([np.nan, np.nan, 1.0, 2.0]))

        assert np.isnan(diameter[:2]).all()
        np.testing.assert_allclose(diameter[2:], [6.0, 4.0])

    def test_all_missing(self):
        assert np.isnan(reconstruct_diameter(np.full(3, np.nan))).all()


# ============================================================
# Allometry Tests
# ============================================================

class TestAllometryTable:
    """Tests for the species coefficient lookup."""

    def test_default_species(self):
        table = AllometryTable()
        assert 'PS' in table
        assert 'ps' in table
        assert 'XX' not in table

    def test_override_adds_species(self):
        table = AllometryTable({'xx': [[0.0, 2.0, 10.0]] * len(ALLOMETRY_COMPONENTS)})
        # D = 10 gives D / (D + k) = 0.5, so each component is exp(1)
        np.testing.assert_allclose(table.biomass('XX', [10.0]), [5 * np.e])

    def test_marklund_form(self):
        table = AllometryTable()
        components = table.component_biomass('PS', [20.0])
        a, b, k = table.coefficients['PS'][0]
        assert components.loc[0, 'stem_wood'] == pytest.approx(np.exp(a + b * 20.0 / (20.0 + k)))

    def test_realistic_pine_stem(self):
        # A 30 cm Scots pine carries a few hundred kg of stem wood
        stem = AllometryTable().component_biomass('PS', [30.0]).loc[0, 'stem_wood']
        assert 100.0 < stem < 500.0

    def test_wrong_number_of_components(self):
        with pytest.raises(ValueError):
            AllometryTable({'XX': [[0.0, 1.0, 10.0]] * 3})

    def test_pairs_without_k_rejected(self):
        with pytest.raises(ValueError):
            AllometryTable({'XX': [[0.0, 1.0]] * len(ALLOMETRY_COMPONENTS)})

    def test_non_positive_diameter_is_missing(self):
        biomass = AllometryTable().biomass('PA', [0.0, 12.0])
        assert np.isnan(biomass[0])
        assert biomass[1] > 0

    @pytest.mark.parametrize('species', ['PS', 'PA', 'BP'])
    def test_biomass_grows_with_diameter(self, species):
        biomass = AllometryTable().biomass(species, [5.0, 10.0, 20.0, 40.0])
        assert np.all(np.diff(biomass) > 0)


# ============================================================
# Increment Tests
# ============================================================

class TestBiomassIncrements:
    """Tests for differencing cumulative biomass."""

    def test_last_position_keeps_its_value(self):
        increments = biomass_increments(np.array([10.0, 6.0, 1.0]))
        np.testing.assert_allclose(increments, [4.0, 5.0, 1.0])

    def test_missing_positions_propagate(self):
        increments = biomass_increments(np.array([np.nan, 10.0, 6.0]))
        assert np.isnan(increments[0])
        np.testing.assert_allclose(increments[1:], [4.0, 6.0])


# ============================================================
# Table Reconstruction Tests
# ============================================================

class TestReconstructBiomassTable:
    """Tests for the year x tree reconstruction."""

    @pytest.fixture
    def wide_widths(self) -> pd.DataFrame:
        years = pd.Index(range(2001, 2011), name='Year')
        return pd.DataFrame({
            'PS_CC_3_2_1': np.full(10, 1.5),
            'XX_CC_3_2_2': np.full(10, 1.0),
        }, index=years)

    def test_constant_width_tree(self, wide_widths):
        species = pd.Series({'PS_CC_3_2_1': 'PS', 'XX_CC_3_2_2': 'XX'})
        table = reconstruct_biomass_table(wide_widths, species, width_to_cm=1.0)
        tree = table[table['TreeID'] == 'PS_CC_3_2_1'].set_index('Year')

        assert tree.loc[2001, 'diameter_cm'] == pytest.approx(30.0)
        assert tree.loc[2010, 'diameter_cm'] == pytest.approx(3.0)
        assert tree.loc[2001, 'ring_position'] == 1
        assert tree.loc[2010, 'biomass_increment_kg'] == pytest.approx(tree.loc[2010, 'biomass_kg'])

    def test_unknown_species_is_missing_and_logged(self, wide_widths):
        species = pd.Series({'PS_CC_3_2_1': 'PS', 'XX_CC_3_2_2': 'XX'})
        exclusions = ExclusionLog()
        table = reconstruct_biomass_table(wide_widths, species, exclusions=exclusions)
        unknown = table[table['TreeID'] == 'XX_CC_3_2_2']

        assert unknown['diameter_cm'].notna().all()
        assert unknown['biomass_kg'].isna().all()
        assert exclusions.count('biomass_reconstruction') == 1

    def test_requires_ascending_years(self, wide_widths):
        species = pd.Series({'PS_CC_3_2_1': 'PS', 'XX_CC_3_2_2': 'XX'})
        with pytest.raises(ValueError):
            reconstruct_biomass_table(wide_widths.iloc[::-1], species)
