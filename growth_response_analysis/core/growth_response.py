"""
Growth Response Pipeline

Builds the site-level and tree-level MasterTables from the outputs of the
ring-width and climate pipelines plus raw site and soil attributes. The
tables are the input of the external statistical modeling layer.

Author: Boreal Growth Team
"""

import time
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Optional, Union

import pandas as pd
from tqdm import tqdm

from shared_utils import (
    setup_logging, resolve_config, validate_config, log_pipeline_start, log_pipeline_end,
    log_section, validate_file_exists, get_config_value, CentralDataPaths, ExclusionLog
)
from ring_width_processing.core.id_normalization import CANONICAL_KEYS

from .master_table import (
    MetricSettings, prepare_site_table, summarize_soil, join_with_exclusions,
    summarize_season_climate, station_climate_by_year, series_metrics, mean_biomass_increment
)

REQUIRED_SECTIONS = ['logging', 'data', 'sites', 'metrics']

KEY_DTYPES = {key: str for key in CANONICAL_KEYS + ['TreeID', 'SiteID', 'GroupID']}


@dataclass
class GrowthResponseInputs:
    """Tables consumed by the growth response analysis."""
    trees: pd.DataFrame
    raw_wide: pd.DataFrame
    rwi_wide: pd.DataFrame
    tree_quality: pd.DataFrame
    group_quality: pd.DataFrame
    biomass: pd.DataFrame
    season_climate: pd.DataFrame
    sites: pd.DataFrame
    soil: Optional[pd.DataFrame] = None


@dataclass
class GrowthResponseResults:
    """Container for the MasterTables of one run."""
    site_table: pd.DataFrame
    tree_table: pd.DataFrame
    exclusions: ExclusionLog = field(default_factory=ExclusionLog)


class GrowthResponsePipeline:
    """
    Growth response analysis pipeline.

    Computes ecological metrics per retained tree and per passing group and
    joins them with site, soil, quality and climate attributes.
    """

    def __init__(self, config: Optional[Union[str, Path, Dict[str, Any]]] = None,
                 data_paths: Optional[CentralDataPaths] = None):
        """
        Initialize the growth response pipeline.

        Args:
            config: Configuration dictionary or path to config file. If None,
                uses the component default.
            data_paths: Explicit data paths; built from the config if None
        """
        self.config = resolve_config(config, component_name="growth_response_analysis")
        validate_config(self.config, REQUIRED_SECTIONS)

        self.logger = setup_logging(
            level=self.config['logging']['level'],
            component_name=self.config['logging'].get('component_name', 'growth_response_analysis'),
            log_file=self.config['logging'].get('log_file')
        )

        self.data_paths = data_paths or CentralDataPaths.from_config(self.config)
        self.sites_config = self.config['sites']
        self.station_column = self.sites_config.get('station_column', 'Station')
        self.settings = MetricSettings.from_config(self.config['metrics'])

        self.logger.info("GrowthResponsePipeline initialized")
        self.logger.info(f"Data paths: {self.data_paths}")

    def run_full_pipeline(self) -> bool:
        """
        Run the complete growth response pipeline.

        Returns:
            bool: True if pipeline completed successfully
        """
        start_time = time.time()
        try:
            log_pipeline_start(self.logger, "Growth Response Analysis", self.config)

            log_section(self.logger, "Loading Processed Tables")
            inputs = self.load_inputs()

            results = self.process(inputs)

            log_section(self.logger, "Exporting MasterTables")
            self.save_results(results)

            results.exclusions.log_summary('growth_response_analysis')
            log_pipeline_end(self.logger, "Growth Response Analysis", success=True,
                             elapsed_time=time.time() - start_time,
                             exclusions=results.exclusions)
            return True

        except Exception as e:
            self.logger.error(f"Pipeline failed: {str(e)}")
            log_pipeline_end(self.logger, "Growth Response Analysis", success=False)
            raise

    def _read_table(self, key: str, description: str, **kwargs) -> pd.DataFrame:
        path = validate_file_exists(self.data_paths.get_file(key), description)
        table = pd.read_csv(path, **kwargs)
        self.logger.info(f"Loaded {description}: {len(table)} rows")
        return table

    def load_inputs(self) -> GrowthResponseInputs:
        """Load processed ring-width and climate tables and the raw site tables."""
        soil = None
        soil_path = self.data_paths.get_file('soil_chemistry')
        if soil_path.exists():
            soil = self._read_table('soil_chemistry', "soil chemistry")
        else:
            self.logger.warning(f"No soil chemistry table at {soil_path}; soil columns omitted")

        return GrowthResponseInputs(
            trees=self._read_table('tree_groups', "tree groups", dtype=KEY_DTYPES),
            raw_wide=self._read_table('raw_wide', "raw ring widths", index_col=0),
            rwi_wide=self._read_table('rwi_wide', "ring-width indices", index_col=0),
            tree_quality=self._read_table('tree_quality', "tree quality", dtype=KEY_DTYPES),
            group_quality=self._read_table('group_quality', "group quality", dtype=KEY_DTYPES),
            biomass=self._read_table('biomass_reconstruction', "biomass reconstruction", dtype=KEY_DTYPES),
            season_climate=self._read_table('season_climate', "season climate"),
            sites=self._read_table('site_attributes', "site attributes"),
            soil=soil
        )

    def build_site_attributes(self, inputs: GrowthResponseInputs, exclusions: ExclusionLog) -> pd.DataFrame:
        """
        Site attributes joined with averaged soil chemistry and season climate.

        Sites without soil data keep missing soil columns; sites whose station
        has no season climate keep missing climate columns. Both are logged.
        """
        aliases = self.sites_config.get('column_aliases') or None
        sites = prepare_site_table(inputs.sites, aliases, exclusions, stage='site_attributes')

        if inputs.soil is not None:
            soil = prepare_site_table(inputs.soil, aliases, exclusions, stage='soil_chemistry', unique=False)
            soil = summarize_soil(soil)
            sites = sites.merge(soil, on='SiteID', how='left', validate='one_to_one', indicator=True)
            no_soil = sites['_merge'] == 'left_only'
            if no_soil.any():
                self.logger.warning(f"{int(no_soil.sum())} sites without soil chemistry")
            sites = sites.drop(columns='_merge')

        if self.station_column in sites.columns:
            climate = summarize_season_climate(inputs.season_climate, self.station_column)
            sites = sites.merge(climate, on=self.station_column, how='left', validate='many_to_one')
            n_missing = int(sites['mean_season_length'].isna().sum()) if 'mean_season_length' in sites else len(sites)
            if n_missing:
                self.logger.warning(f"{n_missing} sites without growing season climate")
        else:
            self.logger.warning(f"Site attributes have no '{self.station_column}' column; climate metrics omitted")

        return sites

    def _climate_for(self, inputs: GrowthResponseInputs, station) -> pd.DataFrame:
        if station is None or pd.isna(station):
            return pd.DataFrame()
        return station_climate_by_year(inputs.season_climate, station, self.station_column)

    def build_tree_table(self, inputs: GrowthResponseInputs, site_attributes: pd.DataFrame,
                         exclusions: ExclusionLog) -> pd.DataFrame:
        """
        Tree-level MasterTable: one row per pass-through tree.

        Args:
            inputs: Loaded input tables
            site_attributes: Output of build_site_attributes
            exclusions: Exclusion log for this run

        Returns:
            pd.DataFrame: Tree-level MasterTable
        """
        passing = inputs.tree_quality[inputs.tree_quality['pass_through'].astype(bool)]
        trees = join_with_exclusions(
            passing[['TreeID', 'correlation', 'n_years']], inputs.trees, on='TreeID',
            entity_column='TreeID', stage='master_table_tree', reason='tree missing from tree groups',
            exclusions=exclusions
        )
        trees = join_with_exclusions(
            trees, site_attributes.drop(columns=['Type', 'Site', 'Plot']), on='SiteID',
            entity_column='TreeID', stage='master_table_tree', reason='site missing from site attributes',
            exclusions=exclusions
        )

        event_column = get_config_value(self.config, 'sites.event_year_column')
        records = []
        for row in tqdm(trees.to_dict('records'), desc="Tree metrics", leave=False):
            tree_id = row['TreeID']
            metrics = series_metrics(
                tree_id,
                inputs.raw_wide[tree_id],
                inputs.rwi_wide[tree_id],
                self._climate_for(inputs, row.get(self.station_column)),
                self.settings,
                site_event_year=row.get(event_column) if event_column else None,
                exclusions=exclusions
            )
            metrics['mean_biomass_increment_kg'] = mean_biomass_increment(
                inputs.biomass, [tree_id], self.settings.start_year
            )
            records.append({'TreeID': tree_id, **metrics})

        metrics_table = pd.DataFrame(records, columns=['TreeID'] if not records else None)
        tree_table = trees.merge(metrics_table, on='TreeID', how='left', validate='one_to_one')
        self.logger.info(f"Tree-level MasterTable: {len(tree_table)} trees")
        return tree_table

    def build_site_table(self, inputs: GrowthResponseInputs, site_attributes: pd.DataFrame,
                         exclusions: ExclusionLog) -> pd.DataFrame:
        """
        Site-level MasterTable: one row per passing group.

        Group series are the yearly means of the group's pass-through trees.

        Args:
            inputs: Loaded input tables
            site_attributes: Output of build_site_attributes
            exclusions: Exclusion log for this run

        Returns:
            pd.DataFrame: Site-level MasterTable
        """
        group_sites = inputs.trees[['GroupID', 'SiteID']].drop_duplicates()
        if group_sites['GroupID'].duplicated().any():
            raise ValueError("Each quality group must belong to a single site; include Type, Site and Plot in group_keys")

        group_keys = inputs.trees.drop_duplicates('GroupID').drop(columns=['TreeID', 'Tree'], errors='ignore')
        groups = inputs.group_quality
        if not get_config_value(self.config, 'sites.include_failed_groups', False):
            groups = groups[groups['passed'].astype(bool)]

        groups = join_with_exclusions(
            groups, group_keys, on='GroupID', entity_column='GroupID', stage='master_table_site',
            reason='group missing from tree groups', exclusions=exclusions
        )
        groups = join_with_exclusions(
            groups, site_attributes.drop(columns=['Type', 'Site', 'Plot']), on='SiteID',
            entity_column='GroupID', stage='master_table_site', reason='site missing from site attributes',
            exclusions=exclusions
        )

        passing = inputs.tree_quality[inputs.tree_quality['pass_through'].astype(bool)]
        members = passing.groupby('GroupID')['TreeID'].apply(list)
        event_column = get_config_value(self.config, 'sites.event_year_column')

        records = []
        for row in tqdm(groups.to_dict('records'), desc="Site metrics", leave=False):
            group_id = row['GroupID']
            tree_ids = members.get(group_id, [])
            raw_group = inputs.raw_wide[tree_ids]
            rwi_group = inputs.rwi_wide[tree_ids]

            metrics = series_metrics(
                group_id,
                raw_group.mean(axis=1, skipna=True),
                rwi_group.mean(axis=1, skipna=True),
                self._climate_for(inputs, row.get(self.station_column)),
                self.settings,
                site_event_year=row.get(event_column) if event_column else None,
                exclusions=exclusions
            )
            metrics['mean_biomass_increment_kg'] = mean_biomass_increment(
                inputs.biomass, tree_ids, self.settings.start_year
            )
            records.append({'GroupID': group_id, **metrics})

        metrics_table = pd.DataFrame(records, columns=['GroupID'] if not records else None)
        site_table = groups.merge(metrics_table, on='GroupID', how='left', validate='one_to_one')
        self.logger.info(f"Site-level MasterTable: {len(site_table)} groups")
        return site_table

    def process(self, inputs: GrowthResponseInputs) -> GrowthResponseResults:
        """
        Build both MasterTables from loaded inputs.

        Args:
            inputs: Loaded input tables

        Returns:
            GrowthResponseResults: MasterTables and the exclusion log
        """
        exclusions = ExclusionLog()

        for driver in self.settings.missing_drivers(inputs.season_climate.columns):
            self.logger.warning(f"Driver column {driver} missing from season climate; "
                                f"its coincidence and extreme-year metrics will be NaN")

        log_section(self.logger, "Site Attributes")
        site_attributes = self.build_site_attributes(inputs, exclusions)

        log_section(self.logger, "Tree-Level Metrics")
        tree_table = self.build_tree_table(inputs, site_attributes, exclusions)

        log_section(self.logger, "Site-Level Metrics")
        site_table = self.build_site_table(inputs, site_attributes, exclusions)

        return GrowthResponseResults(site_table=site_table, tree_table=tree_table, exclusions=exclusions)

    def save_results(self, results: GrowthResponseResults) -> Dict[str, Path]:
        """
        Write both MasterTables and the exclusion table as CSV.

        Args:
            results: Results of process()

        Returns:
            dict: File key -> written path
        """
        written = {}
        for key, table in (('master_table_site', results.site_table), ('master_table_tree', results.tree_table)):
            path = self.data_paths.get_file(key, create_parent=True)
            table.to_csv(path, index=False)
            written[key] = path
            self.logger.info(f"Saved {key}: {path}")

        exclusions_path = self.data_paths.get_path('tables', create=True) / "exclusions.csv"
        results.exclusions.to_frame().to_csv(exclusions_path, index=False)
        written['exclusions'] = exclusions_path
        return written
