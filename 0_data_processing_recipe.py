#!/usr/bin/env python3
"""
Recipe: Data Processing

Reproduces the data processing stage of the growth sensitivity analysis:
1. Climate indices (VPD, SPEI, growing seasons, season climate means)
2. Ring-width processing (identifiers, detrending, quality filter,
   chronologies, biomass reconstruction)

Both stages read raw tables under <data-root>/raw and write processed
tables under <data-root>/processed.

Usage:
    python 0_data_processing_recipe.py

Examples:
    # Run complete data processing
    python 0_data_processing_recipe.py

    # Use another data directory
    python 0_data_processing_recipe.py --data-root /path/to/data

Author: Boreal Growth Team
"""

import argparse
import sys
import time
from pathlib import Path
from typing import Callable

# Add repo root to path for absolute imports
sys.path.insert(0, str(Path(__file__).parent))

from shared_utils import setup_logging, load_config, CentralDataPaths
from climate_indices.core.climate_processing import ClimateIndexPipeline
from ring_width_processing.core.ring_processing import RingWidthProcessingPipeline


class DataProcessingRecipe:
    """
    Recipe for data processing reproduction.

    Runs the climate and ring-width pipelines against one shared data root.
    """

    def __init__(self, data_root: str = "data", log_level: str = "INFO"):
        """
        Initialize data processing recipe.

        Args:
            data_root: Root directory for data storage
            log_level: Logging level
        """
        self.logger = setup_logging(level=log_level, component_name='data_processing_recipe')
        self.data_root = data_root
        self.data_paths = CentralDataPaths(data_root)

        # Track stage results
        self.stage_results = {}

        self.logger.info("Initialized Data Processing Recipe")
        self.logger.info(f"Data root: {self.data_paths.data_root}")

    def validate_prerequisites(self) -> bool:
        """
        Validate that required input data exists.

        Returns:
            bool: True if prerequisites are met
        """
        self.logger.info("Validating prerequisites for data processing...")
        ok = True

        for key, description in (
            ('daily_climate', "daily climate table"),
            ('station_metadata', "station metadata table"),
            ('ring_widths', "ring-width measurements"),
        ):
            path = self.data_paths.get_file(key)
            if path.exists():
                self.logger.info(f"Found {description}: {path}")
            else:
                self.logger.error(f"Missing {description}: {path}")
                ok = False

        return ok

    def create_output_structure(self) -> None:
        """Create necessary output directories."""
        self.data_paths.create_directories(['ring_widths_processed', 'climate_processed'])
        self.logger.info("Output directory structure created")

    def _component_config(self, component_name: str) -> dict:
        config = load_config(component_name=component_name)
        config['data']['data_root'] = self.data_root
        return config

    def run_stage(self, stage_name: str, run: Callable[[], bool]) -> bool:
        """
        Run one pipeline stage and record its outcome.

        Args:
            stage_name: Human readable stage name
            run: Callable running the stage, returning True on success

        Returns:
            bool: True if successful
        """
        self.logger.info(f"\n{'='*60}")
        self.logger.info(f"Starting {stage_name}")
        self.logger.info(f"{'='*60}")

        stage_start = time.time()
        try:
            success = run()
            stage_time = time.time() - stage_start
            self.stage_results[stage_name] = {'success': success, 'duration_minutes': stage_time / 60}

            if success:
                self.logger.info(f"{stage_name} completed successfully in {stage_time/60:.2f} minutes")
            else:
                self.logger.error(f"{stage_name} failed after {stage_time/60:.2f} minutes")
            return success

        except Exception as e:
            stage_time = time.time() - stage_start
            self.stage_results[stage_name] = {
                'success': False,
                'duration_minutes': stage_time / 60,
                'error': str(e)
            }
            self.logger.error(f"{stage_name} failed with error: {str(e)}")
            return False

    def run_climate_processing(self) -> bool:
        """Run the climate index pipeline."""
        return self.run_stage(
            "Climate Index Processing",
            lambda: ClimateIndexPipeline(self._component_config('climate_indices'),
                                         data_paths=self.data_paths).run_full_pipeline()
        )

    def run_ring_width_processing(self) -> bool:
        """Run the ring-width processing pipeline."""
        return self.run_stage(
            "Ring-Width Processing",
            lambda: RingWidthProcessingPipeline(self._component_config('ring_width_processing'),
                                                data_paths=self.data_paths).run_full_pipeline()
        )


def parse_arguments() -> argparse.Namespace:
    """Parse command-line arguments."""
    parser = argparse.ArgumentParser(description="Data processing recipe")
    parser.add_argument('--data-root', type=str, default='data', help='Root directory for data storage')
    parser.add_argument('--log-level', type=str, default='INFO',
                        choices=['DEBUG', 'INFO', 'WARNING', 'ERROR'], help='Logging level')
    return parser.parse_args()


def main():
    """Main entry point for data processing recipe."""
    args = parse_arguments()
    start_time = time.time()

    recipe = DataProcessingRecipe(data_root=args.data_root, log_level=args.log_level)

    if not recipe.validate_prerequisites():
        recipe.logger.error("Prerequisites validation failed")
        recipe.logger.error("Please ensure the raw climate and ring-width tables are available")
        sys.exit(1)

    recipe.create_output_structure()

    overall_success = recipe.run_climate_processing()
    overall_success = recipe.run_ring_width_processing() and overall_success

    elapsed_time = time.time() - start_time
    if overall_success:
        recipe.logger.info(f"Data processing completed successfully in {elapsed_time/60:.2f} minutes")
    else:
        recipe.logger.error(f"Data processing finished with failures after {elapsed_time/60:.2f} minutes")
        for stage, result in recipe.stage_results.items():
            if not result['success']:
                recipe.logger.error(f"  {stage}: {result.get('error', 'failed')}")

    sys.exit(0 if overall_success else 1)


if __name__ == "__main__":
    main()
