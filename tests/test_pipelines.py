"""
End-to-end tests for the three component pipelines.

Runs ring-width processing, climate processing and the growth response
analysis in sequence on the synthetic data root and checks the written
tables.
"""
import pandas as pd
import pytest

from shared_utils import CentralDataPaths
from ring_width_processing.core.ring_processing import RingWidthProcessingPipeline
from climate_indices.core.climate_processing import ClimateIndexPipeline
from growth_response_analysis.core.growth_response import GrowthResponsePipeline
from growth_response_analysis.core.ecological_metrics import mean_sensitivity


@pytest.fixture
def processed_root(data_root, component_config):
    """Data root after the ring-width and climate pipelines have run."""
    assert RingWidthProcessingPipeline(component_config('ring_width_processing')).run_full_pipeline()
    assert ClimateIndexPipeline(component_config('climate_indices')).run_full_pipeline()
    return data_root


@pytest.fixture
def growth_config(component_config):
    config = component_config('growth_response_analysis')
    config['metrics']['event_years'] = [2005]
    return config


# ============================================================
# Ring-Width Pipeline Tests
# ============================================================

class TestRingWidthPipeline:
    """Tests for the ring-width processing outputs."""

    def test_outputs_written(self, processed_root):
        paths = CentralDataPaths(processed_root)
        for key in ('normalized_ring_widths', 'raw_wide', 'rwi_wide', 'tree_quality',
                    'group_quality', 'chronologies', 'biomass_reconstruction'):
            assert paths.get_file(key).exists(), key

    def test_unparseable_sample_excluded(self, processed_root):
        exclusions = pd.read_csv(CentralDataPaths(processed_root).get_path('ring_widths_processed') / "exclusions.csv")
        excluded = exclusions[exclusions['stage'] == 'id_normalization']

        assert 'unknown sample' in set(excluded['entity'])

    def test_groups_pass_quality(self, processed_root):
        groups = pd.read_csv(CentralDataPaths(processed_root).get_file('group_quality'))

        assert len(groups) == 3
        assert groups['passed'].all()
        assert (groups['eps'] > 0).all()

    def test_rwi_table_shape(self, processed_root):
        rwi = pd.read_csv(CentralDataPaths(processed_root).get_file('rwi_wide'), index_col=0)

        assert rwi.shape == (40, 12)
        assert rwi.mean().between(0.9, 1.1).all()


# ============================================================
# Climate Pipeline Tests
# ============================================================

class TestClimatePipeline:
    """Tests for the climate processing outputs."""

    def test_season_climate(self, processed_root):
        season = pd.read_csv(CentralDataPaths(processed_root).get_file('season_climate'))

        assert set(season['Station']) == {'ST1', 'ST2'}
        assert {'Tmean_season', 'VPD_season', 'SPEI6_season', 'Precip_season_total'} <= set(season.columns)
        assert season['season_length'].between(100, 300).all()

    def test_monthly_spei(self, processed_root):
        monthly = pd.read_csv(CentralDataPaths(processed_root).get_file('monthly_climate'))

        # No 6-month window is complete before June of the first year
        first_year = monthly[monthly['Year'] == monthly['Year'].min()]
        assert first_year.loc[first_year['Month'] < 6, 'SPEI6'].isna().all()
        assert monthly['SPEI6'].notna().mean() > 0.9
        assert {'PET', 'Balance'} <= set(monthly.columns)


# ============================================================
# Growth Response Pipeline Tests
# ============================================================

class TestGrowthResponsePipeline:
    """Tests for the MasterTables."""

    @pytest.fixture
    def tables(self, processed_root, growth_config):
        assert GrowthResponsePipeline(growth_config).run_full_pipeline()
        paths = CentralDataPaths(processed_root)
        return {
            'site': pd.read_csv(paths.get_file('master_table_site')),
            'tree': pd.read_csv(paths.get_file('master_table_tree')),
            'exclusions': pd.read_csv(paths.get_path('tables') / "exclusions.csv"),
        }

    def test_site_table_columns(self, tables):
        expected = {
            'GroupID', 'SiteID', 'eps', 'rbar', 'mean_sensitivity',
            'resistance_raw_2005', 'resistance_rwi_2005', 'resilience_rwi_2005',
            'coincidence_SPEI6_season', 'extreme_ratio_Tmean_season',
            'mean_Tmean_season', 'mean_season_length', 'CN_ratio',
            'mean_biomass_increment_kg', 'resistance_raw_event',
        }
        assert expected <= set(tables['site'].columns)

    def test_sites_without_attributes_are_excluded(self, tables):
        site = tables['site']
        exclusions = tables['exclusions']

        assert set(site['SiteID']) == {'CC_3_2', 'CC_4_1'}
        excluded = exclusions[exclusions['stage'] == 'master_table_site']
        assert 'PS_RF_5_1' in set(excluded['entity'])

    def test_soil_is_averaged(self, tables):
        cn_ratio = tables['site'].set_index('SiteID')['CN_ratio']
        assert cn_ratio['CC_3_2'] == pytest.approx(32.0)
        assert cn_ratio['CC_4_1'] == pytest.approx(25.0)

    def test_event_year_only_where_known(self, tables):
        site = tables['site'].set_index('SiteID')
        assert pd.notna(site.loc['CC_3_2', 'resistance_raw_event'])
        assert pd.isna(site.loc['CC_4_1', 'resistance_raw_event'])

    def test_site_sensitivity_averages_trees_first(self, tables, processed_root):
        paths = CentralDataPaths(processed_root)
        rwi = pd.read_csv(paths.get_file('rwi_wide'), index_col=0)
        quality = pd.read_csv(paths.get_file('tree_quality'))
        passing = quality[quality['pass_through'].astype(bool)]

        for row in tables['site'].to_dict('records'):
            trees = list(passing.loc[passing['GroupID'] == row['GroupID'], 'TreeID'])
            expected = mean_sensitivity(rwi[trees].mean(axis=1, skipna=True))
            assert row['mean_sensitivity'] == pytest.approx(expected)

    def test_tree_table(self, tables):
        tree = tables['tree']

        assert len(tree) == 8
        assert tree['TreeID'].is_unique
        assert {'correlation', 'mean_sensitivity', 'coincidence_VPD_season',
                'mean_biomass_increment_kg'} <= set(tree.columns)
        assert (tree['mean_biomass_increment_kg'] > 0).all()
