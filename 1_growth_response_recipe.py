#!/usr/bin/env python3
"""
Recipe: Growth Response Analysis

Reproduces the growth response analysis: ecological metrics per retained
tree and per site group, joined with site attributes, soil chemistry,
quality statistics and growing-season climate into the MasterTables.

Requires the outputs of 0_data_processing_recipe.py.

Usage:
    python 1_growth_response_recipe.py

Examples:
    # Run with a drought year in the resilience analysis
    python 1_growth_response_recipe.py --event-years 2018

Author: Boreal Growth Team
"""

import argparse
import sys
import time
from pathlib import Path

# Add repo root to path for absolute imports
sys.path.insert(0, str(Path(__file__).parent))

from shared_utils import setup_logging, load_config, CentralDataPaths
from growth_response_analysis.core.growth_response import GrowthResponsePipeline

REQUIRED_INPUTS = [
    'tree_groups', 'raw_wide', 'rwi_wide', 'tree_quality', 'group_quality',
    'biomass_reconstruction', 'season_climate', 'site_attributes'
]


def parse_arguments() -> argparse.Namespace:
    """Parse command-line arguments."""
    parser = argparse.ArgumentParser(description="Growth response analysis recipe")
    parser.add_argument('--data-root', type=str, default='data', help='Root directory for data storage')
    parser.add_argument('--event-years', type=int, nargs='+', default=None,
                        help='Disturbance years for resistance/recovery/resilience')
    parser.add_argument('--log-level', type=str, default='INFO',
                        choices=['DEBUG', 'INFO', 'WARNING', 'ERROR'], help='Logging level')
    return parser.parse_args()


def main():
    """Main entry point for growth response recipe."""
    args = parse_arguments()
    start_time = time.time()

    logger = setup_logging(level=args.log_level, component_name='growth_response_recipe')
    data_paths = CentralDataPaths(args.data_root)

    missing = [key for key in REQUIRED_INPUTS if not data_paths.get_file(key).exists()]
    if missing:
        for key in missing:
            logger.error(f"Missing input {key}: {data_paths.get_file(key)}")
        logger.error("Run 0_data_processing_recipe.py first")
        sys.exit(1)

    config = load_config(component_name='growth_response_analysis')
    config['data']['data_root'] = args.data_root
    if args.event_years is not None:
        config['metrics']['event_years'] = args.event_years

    try:
        success = GrowthResponsePipeline(config, data_paths=data_paths).run_full_pipeline()
    except Exception as e:
        logger.error(f"Growth response analysis failed with error: {str(e)}")
        success = False

    elapsed_time = time.time() - start_time
    if success:
        logger.info(f"Growth response analysis completed in {elapsed_time/60:.2f} minutes")
        logger.info(f"MasterTables written to {data_paths.get_path('tables')}")

    sys.exit(0 if success else 1)


if __name__ == "__main__":
    main()
