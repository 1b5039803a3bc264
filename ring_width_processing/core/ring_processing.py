"""
Ring-Width Processing Pipeline

Complete processing pipeline from raw ring-width measurement tables to
detrended ring-width indices, quality statistics, group chronologies and
reconstructed biomass increments.

The pipeline:
1. Resolves canonical tree identifiers and drops superseded re-measurements
2. Detrends every tree with a smoothing spline (RWI)
3. Screens trees and groups by inter-series correlation and replication
4. Builds group mean chronologies from the pass-through trees
5. Reconstructs diameter and biomass increments from the raw widths

Author: Boreal Growth Team
"""

import time
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Optional, Union

import pandas as pd

from shared_utils import (
    setup_logging, resolve_config, validate_config, log_pipeline_start, log_pipeline_end,
    log_section, find_files, validate_file_exists, CentralDataPaths, ExclusionLog
)

from .id_normalization import (
    CANONICAL_KEYS, build_canonical_keys, keep_latest_measurement,
    wide_to_long, long_to_wide, add_group_ids
)
from .detrending import detrend_table, interpolate_internal_gaps
from .quality_filter import filter_groups, build_chronologies, DEFAULT_CORRELATION_THRESHOLD
from .biomass_reconstruction import AllometryTable, reconstruct_biomass_table

REQUIRED_SECTIONS = ['logging', 'data', 'identifiers', 'detrending', 'quality', 'biomass']


@dataclass
class RingWidthResults:
    """Container for all tables produced by one ring-width processing run."""
    ring_widths: pd.DataFrame
    trees: pd.DataFrame
    raw_wide: pd.DataFrame
    rwi_wide: pd.DataFrame
    tree_quality: pd.DataFrame
    group_quality: pd.DataFrame
    chronologies: pd.DataFrame
    biomass: pd.DataFrame
    exclusions: ExclusionLog = field(default_factory=ExclusionLog)


class RingWidthProcessingPipeline:
    """
    Ring-width processing pipeline.

    Handles the complete workflow from raw measurement tables to the
    processed ring-width tables consumed by the growth response analysis.
    """

    def __init__(self, config: Optional[Union[str, Path, Dict[str, Any]]] = None,
                 data_paths: Optional[CentralDataPaths] = None):
        """
        Initialize the ring-width processing pipeline.

        Args:
            config: Configuration dictionary or path to config file. If None,
                uses the component default.
            data_paths: Explicit data paths; built from the config if None
        """
        self.config = resolve_config(config, component_name="ring_width_processing")
        validate_config(self.config, REQUIRED_SECTIONS)

        self.logger = setup_logging(
            level=self.config['logging']['level'],
            component_name=self.config['logging'].get('component_name', 'ring_width_processing'),
            log_file=self.config['logging'].get('log_file')
        )

        self.data_paths = data_paths or CentralDataPaths.from_config(self.config)
        self.identifier_config = self.config['identifiers']
        self.detrending_config = self.config['detrending']
        self.quality_config = self.config['quality']
        self.biomass_config = self.config['biomass']

        self.logger.info("RingWidthProcessingPipeline initialized")
        self.logger.info(f"Data paths: {self.data_paths}")

    def run_full_pipeline(self) -> bool:
        """
        Run the complete ring-width processing pipeline.

        Returns:
            bool: True if pipeline completed successfully
        """
        start_time = time.time()
        try:
            log_pipeline_start(self.logger, "Ring-Width Processing", self.config)

            log_section(self.logger, "Loading Ring-Width Measurements")
            raw = self.load_ring_widths()

            results = self.process(raw)

            log_section(self.logger, "Exporting Results")
            self.save_results(results)

            results.exclusions.log_summary('ring_width_processing')
            log_pipeline_end(self.logger, "Ring-Width Processing", success=True,
                             elapsed_time=time.time() - start_time,
                             exclusions=results.exclusions)
            return True

        except Exception as e:
            self.logger.error(f"Pipeline failed: {str(e)}")
            log_pipeline_end(self.logger, "Ring-Width Processing", success=False)
            raise

    def load_ring_widths(self) -> pd.DataFrame:
        """
        Load raw ring-width tables.

        The configured path may be a single CSV file or a directory whose CSV
        files are concatenated. Wide tables (years x sample codes) are melted
        to long format.

        Returns:
            pd.DataFrame: Raw long measurement table
        """
        source = self.data_paths.get_file('ring_widths')
        if source.is_dir():
            files = find_files(source, "*.csv")
        else:
            files = [validate_file_exists(source, "ring-width measurements")]

        if not files:
            raise FileNotFoundError(f"No ring-width tables found in {source}")

        wide_format = self.config['data'].get('ring_width_format', 'long') == 'wide'
        value_column = self.config['data'].get('value_column', 'RingWidth')
        id_column = self.config['data'].get('id_column', 'SampleID')

        tables = []
        for path in files:
            if wide_format:
                wide = pd.read_csv(path, index_col=0)
                tables.append(wide_to_long(wide, value_name=value_column, id_name=id_column))
            else:
                tables.append(pd.read_csv(path))
            self.logger.info(f"Loaded {len(tables[-1])} ring-width records from {path.name}")

        return pd.concat(tables, ignore_index=True)

    def normalize(self, raw: pd.DataFrame, exclusions: ExclusionLog) -> pd.DataFrame:
        """
        Resolve canonical keys, keep the latest campaign and add group ids.

        Args:
            raw: Raw long measurement table
            exclusions: Exclusion log for this run

        Returns:
            pd.DataFrame: Keyed long table with numeric Year and value columns
        """
        value_column = self.config['data'].get('value_column', 'RingWidth')

        keyed = build_canonical_keys(
            raw,
            id_column=self.config['data'].get('id_column'),
            id_patterns=self.identifier_config.get('id_patterns') or None,
            column_aliases=self.identifier_config.get('column_aliases') or None,
            exclusions=exclusions
        )

        keyed['Year'] = pd.to_numeric(keyed['Year'], errors='coerce')
        keyed[value_column] = pd.to_numeric(keyed[value_column], errors='coerce')
        invalid = keyed['Year'].isna()
        if invalid.any():
            self.logger.warning(f"Dropped {int(invalid.sum())} records without a valid year")
            exclusions.extend('id_normalization', keyed.loc[invalid, 'TreeID'].unique(), 'missing ring year')
            keyed = keyed.loc[~invalid]
        keyed['Year'] = keyed['Year'].astype(int)

        latest = keep_latest_measurement(
            keyed,
            measurement_column=self.identifier_config.get('measurement_column', 'MeasurementYear'),
            exclusions=exclusions
        )
        return add_group_ids(latest, self.identifier_config.get('group_keys', CANONICAL_KEYS[:4]))

    def process(self, raw: pd.DataFrame) -> RingWidthResults:
        """
        Run all in-memory processing stages on a raw measurement table.

        Args:
            raw: Raw long measurement table

        Returns:
            RingWidthResults: All derived tables and the exclusion log
        """
        exclusions = ExclusionLog()
        value_column = self.config['data'].get('value_column', 'RingWidth')

        log_section(self.logger, "Normalizing Identifiers")
        ring_widths = self.normalize(raw, exclusions)
        trees = (ring_widths.drop_duplicates('TreeID')
                 [['TreeID'] + CANONICAL_KEYS + ['SiteID', 'GroupID']]
                 .reset_index(drop=True))
        raw_wide = long_to_wide(ring_widths, value_column)

        log_section(self.logger, "Detrending Ring-Width Series")
        rwi_wide = detrend_table(
            raw_wide,
            period=self.detrending_config.get('period', 30),
            frequency_response=self.detrending_config.get('frequency_response', 0.5),
            min_points=self.detrending_config.get('min_points', 10),
            method=self.detrending_config.get('method', 'ratio'),
            keep_interpolated=self.detrending_config.get('keep_interpolated', True),
            exclusions=exclusions
        )

        log_section(self.logger, "Quality Filtering")
        tree_quality, group_quality = filter_groups(
            rwi_wide,
            trees.set_index('TreeID')['GroupID'],
            correlation_threshold=self.quality_config.get('correlation_threshold', DEFAULT_CORRELATION_THRESHOLD),
            min_overlap=self.quality_config.get('min_overlap', 10),
            min_trees=self.quality_config.get('min_trees', 3),
            exclusions=exclusions
        )
        chronologies = build_chronologies(rwi_wide, tree_quality)

        log_section(self.logger, "Reconstructing Biomass")
        filled_widths = raw_wide.apply(interpolate_internal_gaps)
        biomass = reconstruct_biomass_table(
            filled_widths,
            trees.set_index('TreeID')['Species'],
            allometry=AllometryTable(self.biomass_config.get('allometry_coefficients') or None),
            width_to_cm=self.biomass_config.get('width_to_cm', 0.1),
            exclusions=exclusions
        )

        return RingWidthResults(
            ring_widths=ring_widths,
            trees=trees,
            raw_wide=raw_wide,
            rwi_wide=rwi_wide,
            tree_quality=tree_quality,
            group_quality=group_quality,
            chronologies=chronologies,
            biomass=biomass,
            exclusions=exclusions
        )

    def save_results(self, results: RingWidthResults) -> Dict[str, Path]:
        """
        Write all processed tables as CSV.

        Args:
            results: Results of process()

        Returns:
            dict: File key -> written path
        """
        outputs = {
            'normalized_ring_widths': (results.ring_widths, False),
            'tree_groups': (results.trees, False),
            'raw_wide': (results.raw_wide, True),
            'rwi_wide': (results.rwi_wide, True),
            'tree_quality': (results.tree_quality, False),
            'group_quality': (results.group_quality, False),
            'chronologies': (results.chronologies, False),
            'biomass_reconstruction': (results.biomass, False),
        }

        written = {}
        for key, (table, keep_index) in outputs.items():
            path = self.data_paths.get_file(key, create_parent=True)
            table.to_csv(path, index=keep_index)
            written[key] = path
            self.logger.info(f"Saved {key}: {path}")

        exclusions_path = self.data_paths.get_path('ring_widths_processed', create=True) / "exclusions.csv"
        results.exclusions.to_frame().to_csv(exclusions_path, index=False)
        written['exclusions'] = exclusions_path
        return written
