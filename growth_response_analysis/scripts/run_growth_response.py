#!/usr/bin/env python3
"""
Growth Response Analysis Script

Command-line interface for the growth response analysis: ecological metrics
per tree and per site group and export of the MasterTables.

Usage Examples:
    # Run with default configuration
    python growth_response_analysis/scripts/run_growth_response.py

    # Add drought years to the resilience analysis
    python growth_response_analysis/scripts/run_growth_response.py --event-years 2006 2018

Author: Boreal Growth Team
"""

import argparse
import sys
from pathlib import Path

# Add repo root to path for absolute imports
sys.path.insert(0, str(Path(__file__).parent.parent.parent))

from growth_response_analysis.core.growth_response import GrowthResponsePipeline
from shared_utils import load_config


def parse_arguments() -> argparse.Namespace:
    """
    Parse command-line arguments.

    Returns:
        argparse.Namespace: Parsed arguments
    """
    parser = argparse.ArgumentParser(
        description="Ecological metrics and MasterTable assembly",
        formatter_class=argparse.ArgumentDefaultsHelpFormatter
    )

    parser.add_argument(
        '--config',
        type=str,
        default=None,
        help='Path to configuration file (default: component config.yaml)'
    )

    parser.add_argument(
        '--event-years',
        type=int,
        nargs='+',
        default=None,
        help='Disturbance years for resistance/recovery/resilience (overrides config)'
    )

    parser.add_argument(
        '--start-year',
        type=int,
        default=None,
        help='First year used for sensitivity and biomass means (overrides config)'
    )

    return parser.parse_args()


def main() -> bool:
    """Main entry point for the growth response analysis."""
    args = parse_arguments()

    config = load_config(args.config, component_name="growth_response_analysis")
    if args.event_years is not None:
        config['metrics']['event_years'] = args.event_years
    if args.start_year is not None:
        config['metrics']['start_year'] = args.start_year

    pipeline = GrowthResponsePipeline(config)
    return pipeline.run_full_pipeline()


if __name__ == "__main__":
    success = main()
    sys.exit(0 if success else 1)
