#!/usr/bin/env python3
"""
Climate Index Processing Script

Command-line interface for the climate index pipeline: VPD, Hargreaves PET,
SPEI, growing season detection and within-season climate means.

Usage Examples:
    # Run with default configuration
    python climate_indices/scripts/run_climate_processing.py

    # Override the SPEI accumulation window
    python climate_indices/scripts/run_climate_processing.py --spei-scale 3

Author: Boreal Growth Team
"""

import argparse
import sys
from pathlib import Path

# Add repo root to path for absolute imports
sys.path.insert(0, str(Path(__file__).parent.parent.parent))

from climate_indices.core.climate_processing import ClimateIndexPipeline
from shared_utils import load_config


def parse_arguments() -> argparse.Namespace:
    """
    Parse command-line arguments.

    Returns:
        argparse.Namespace: Parsed arguments
    """
    parser = argparse.ArgumentParser(
        description="Climate indices: VPD, SPEI and growing seasons",
        formatter_class=argparse.ArgumentDefaultsHelpFormatter
    )

    parser.add_argument(
        '--config',
        type=str,
        default=None,
        help='Path to configuration file (default: component config.yaml)'
    )

    parser.add_argument(
        '--spei-scale',
        type=int,
        default=None,
        help='SPEI accumulation window in months (overrides config)'
    )

    return parser.parse_args()


def main() -> bool:
    """Main entry point for climate index processing."""
    args = parse_arguments()

    config = load_config(args.config, component_name="climate_indices")
    if args.spei_scale is not None:
        config['spei']['scale'] = args.spei_scale

    pipeline = ClimateIndexPipeline(config)
    return pipeline.run_full_pipeline()


if __name__ == "__main__":
    success = main()
    sys.exit(0 if success else 1)
