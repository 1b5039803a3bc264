"""
Climate Index Pipeline

Processing pipeline from daily station observations to the climate indices
used in the growth response analysis.

The pipeline:
1. Derives daily and threshold vapour pressure deficit
2. Aggregates daily records to station-months
3. Computes Hargreaves PET, the climatic water balance and SPEI
4. Re-attaches monthly SPEI to the daily records
5. Detects growing seasons and summarizes climate within them
6. Optionally converts season covariates to spline anomalies

Author: Boreal Growth Team
"""

import time
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Optional, Union

import pandas as pd

from shared_utils import (
    setup_logging, resolve_config, validate_config, log_pipeline_start, log_pipeline_end,
    log_section, validate_file_exists, get_config_value, CentralDataPaths, ExclusionLog
)
from ring_width_processing.core.detrending import detrend_table

from .climate_indices import (
    add_vpd_columns, aggregate_daily_to_monthly, hargreaves_pet, compute_spei, attach_monthly_to_daily
)
from .growing_season import SeasonRules, detect_growing_seasons, season_climate_means

REQUIRED_SECTIONS = ['logging', 'data', 'spei', 'growing_season']


@dataclass
class ClimateResults:
    """Container for all tables produced by one climate processing run."""
    daily: pd.DataFrame
    monthly: pd.DataFrame
    seasons: pd.DataFrame
    season_climate: pd.DataFrame
    exclusions: ExclusionLog = field(default_factory=ExclusionLog)


class ClimateIndexPipeline:
    """
    Climate index pipeline.

    Handles the workflow from daily station observations to monthly SPEI,
    growing seasons and within-season climate summaries.
    """

    def __init__(self, config: Optional[Union[str, Path, Dict[str, Any]]] = None,
                 data_paths: Optional[CentralDataPaths] = None):
        """
        Initialize the climate index pipeline.

        Args:
            config: Configuration dictionary or path to config file. If None,
                uses the component default.
            data_paths: Explicit data paths; built from the config if None
        """
        self.config = resolve_config(config, component_name="climate_indices")
        validate_config(self.config, REQUIRED_SECTIONS)

        self.logger = setup_logging(
            level=self.config['logging']['level'],
            component_name=self.config['logging'].get('component_name', 'climate_indices'),
            log_file=self.config['logging'].get('log_file')
        )

        self.data_paths = data_paths or CentralDataPaths.from_config(self.config)
        self.station_column = self.config['data'].get('station_column', 'Station')
        self.spei_config = self.config['spei']
        self.season_config = self.config['growing_season']

        self.logger.info("ClimateIndexPipeline initialized")
        self.logger.info(f"Data paths: {self.data_paths}")

    def run_full_pipeline(self) -> bool:
        """
        Run the complete climate index pipeline.

        Returns:
            bool: True if pipeline completed successfully
        """
        start_time = time.time()
        try:
            log_pipeline_start(self.logger, "Climate Index Processing", self.config)

            log_section(self.logger, "Loading Climate Records")
            daily = self.load_daily_climate()
            stations = self.load_stations()

            results = self.process(daily, stations)

            log_section(self.logger, "Exporting Results")
            self.save_results(results)

            results.exclusions.log_summary('climate_indices')
            log_pipeline_end(self.logger, "Climate Index Processing", success=True,
                             elapsed_time=time.time() - start_time,
                             exclusions=results.exclusions)
            return True

        except Exception as e:
            self.logger.error(f"Pipeline failed: {str(e)}")
            log_pipeline_end(self.logger, "Climate Index Processing", success=False)
            raise

    def load_daily_climate(self) -> pd.DataFrame:
        """Load daily station observations with a parsed Date column."""
        path = validate_file_exists(self.data_paths.get_file('daily_climate'), "daily climate records")
        daily = pd.read_csv(path, parse_dates=['Date'])
        self.logger.info(f"Loaded {len(daily)} daily records for "
                         f"{daily[self.station_column].nunique()} stations")
        return daily

    def load_stations(self) -> pd.DataFrame:
        """Load station metadata (station identifier and Latitude)."""
        path = validate_file_exists(self.data_paths.get_file('station_metadata'), "station metadata")
        stations = pd.read_csv(path)
        missing = {self.station_column, 'Latitude'} - set(stations.columns)
        if missing:
            raise ValueError(f"Station metadata missing columns: {sorted(missing)}")
        return stations

    def prepare_daily(self, daily: pd.DataFrame) -> pd.DataFrame:
        """
        Check required daily columns and derive VPD.

        A missing Tmean column is derived as the midpoint of Tmin and Tmax.
        """
        daily = daily.copy()
        if 'Tmean' not in daily.columns:
            self.logger.info("No Tmean column; using (Tmin + Tmax) / 2")
            daily['Tmean'] = (daily['Tmin'] + daily['Tmax']) / 2.0

        required = {self.station_column, 'Date', 'Tmean', 'Tmin', 'Tmax', 'Precip', 'RH'}
        missing = required - set(daily.columns)
        if missing:
            raise ValueError(f"Daily climate table missing columns: {sorted(missing)}")

        daily['Date'] = pd.to_datetime(daily['Date'])
        return add_vpd_columns(daily)

    def monthly_water_balance(self, daily: pd.DataFrame, stations: pd.DataFrame,
                              exclusions: ExclusionLog) -> pd.DataFrame:
        """
        Aggregate to months and compute PET and the water balance.

        Args:
            daily: Prepared daily table
            stations: Station metadata with Latitude
            exclusions: Exclusion log receiving stations without coordinates

        Returns:
            pd.DataFrame: Monthly table with PET and Balance columns
        """
        monthly = aggregate_daily_to_monthly(daily, station_column=self.station_column)
        monthly = monthly.merge(
            stations[[self.station_column, 'Latitude']],
            on=self.station_column, how='left', validate='many_to_one', indicator=True
        )

        unmatched = monthly['_merge'] == 'left_only'
        if unmatched.any():
            lost = monthly.loc[unmatched, self.station_column].unique()
            self.logger.warning(f"Dropped {len(lost)} stations without metadata: {list(lost)}")
            exclusions.extend('climate_indices', lost, 'station missing from station metadata')
        monthly = monthly.loc[~unmatched].drop(columns='_merge')

        monthly['PET'] = hargreaves_pet(
            monthly['Tmin'], monthly['Tmax'], monthly['Latitude'], monthly['Year'], monthly['Month']
        )
        monthly['Balance'] = monthly['Precip'] - monthly['PET']
        return monthly.reset_index(drop=True)

    def process(self, daily: pd.DataFrame, stations: pd.DataFrame) -> ClimateResults:
        """
        Run all in-memory processing stages.

        Args:
            daily: Raw daily station observations
            stations: Station metadata

        Returns:
            ClimateResults: Derived tables and the exclusion log
        """
        exclusions = ExclusionLog()
        scale = self.spei_config.get('scale', 6)
        spei_column = f'SPEI{scale}'

        log_section(self.logger, "Vapour Pressure Deficit")
        daily = self.prepare_daily(daily)

        log_section(self.logger, "Monthly Water Balance and SPEI")
        monthly = self.monthly_water_balance(daily, stations, exclusions)
        reference = self.spei_config.get('reference_years')
        spei = compute_spei(
            monthly,
            scale=scale,
            station_column=self.station_column,
            min_fit_samples=self.spei_config.get('min_fit_samples', 10),
            reference_years=tuple(reference) if reference else None,
            exclusions=exclusions
        )
        keys = [self.station_column, 'Year', 'Month']
        monthly = monthly.merge(spei, on=keys, how='left', validate='one_to_one')
        daily = attach_monthly_to_daily(daily, monthly, [spei_column], station_column=self.station_column)

        log_section(self.logger, "Growing Seasons")
        rules = SeasonRules.from_config(self.season_config)
        seasons = detect_growing_seasons(daily, rules, station_column=self.station_column, exclusions=exclusions)
        variables = list(self.season_config.get('variables') or ['Tmean', 'Tmax', 'Precip', 'VPD', 'VPD_threshold'])
        # The SPEI column always follows the configured scale
        variables = [v for v in variables if not v.startswith('SPEI')] + [spei_column]
        season_climate = season_climate_means(
            daily, seasons,
            variables=variables,
            station_column=self.station_column,
            pre_season_days=self.season_config.get('pre_season_days', 3)
        )

        anomaly_columns = get_config_value(self.config, 'anomalies.columns') or []
        if anomaly_columns:
            season_climate = self.add_season_anomalies(season_climate, anomaly_columns, exclusions)

        return ClimateResults(
            daily=daily,
            monthly=monthly,
            seasons=seasons,
            season_climate=season_climate,
            exclusions=exclusions
        )

    def add_season_anomalies(self, season_climate: pd.DataFrame, columns, exclusions: ExclusionLog) -> pd.DataFrame:
        """
        Express season covariates as departures from a per-station spline trend.

        Each column is detrended by difference with the same spline engine used
        for ring widths and stored as '<column>_anomaly'.
        """
        anomaly_config = self.config.get('anomalies', {})
        season_climate = season_climate.copy()

        for column in columns:
            if column not in season_climate.columns:
                self.logger.warning(f"Cannot detrend missing season column {column}")
                continue
            wide = season_climate.pivot(index='Year', columns=self.station_column, values=column).sort_index()
            anomalies = detrend_table(
                wide,
                period=anomaly_config.get('period', 30),
                frequency_response=anomaly_config.get('frequency_response', 0.5),
                min_points=anomaly_config.get('min_points', 10),
                method='difference',
                exclusions=exclusions,
                stage='climate_anomalies'
            )
            anomalies = anomalies.rename_axis(index='Year', columns=self.station_column)
            long = anomalies.stack(future_stack=True).rename(f'{column}_anomaly').reset_index()
            season_climate = season_climate.merge(long, on=['Year', self.station_column], how='left')

        return season_climate

    def save_results(self, results: ClimateResults) -> Dict[str, Path]:
        """
        Write all climate tables as CSV.

        Args:
            results: Results of process()

        Returns:
            dict: File key -> written path
        """
        outputs = {
            'daily_climate_indices': results.daily,
            'monthly_climate': results.monthly,
            'growing_seasons': results.seasons,
            'season_climate': results.season_climate,
        }

        written = {}
        for key, table in outputs.items():
            path = self.data_paths.get_file(key, create_parent=True)
            table.to_csv(path, index=False)
            written[key] = path
            self.logger.info(f"Saved {key}: {path}")

        exclusions_path = self.data_paths.get_path('climate_processed', create=True) / "exclusions.csv"
        results.exclusions.to_frame().to_csv(exclusions_path, index=False)
        written['exclusions'] = exclusions_path
        return written
