#!/usr/bin/env python3
"""
Ring-Width Processing Script

Command-line interface for the ring-width processing pipeline: identifier
normalization, spline detrending, quality filtering, chronologies and biomass
reconstruction.

Usage Examples:
    # Run with default configuration
    python ring_width_processing/scripts/run_ring_processing.py

    # Run with custom configuration
    python ring_width_processing/scripts/run_ring_processing.py --config custom_config.yaml

Author: Boreal Growth Team
"""

import argparse
import sys
from pathlib import Path

# Add repo root to path for absolute imports
sys.path.insert(0, str(Path(__file__).parent.parent.parent))

from ring_width_processing.core.ring_processing import RingWidthProcessingPipeline


def parse_arguments() -> argparse.Namespace:
    """
    Parse command-line arguments.

    Returns:
        argparse.Namespace: Parsed arguments
    """
    parser = argparse.ArgumentParser(
        description="Ring-width detrending, quality filtering and biomass reconstruction",
        formatter_class=argparse.ArgumentDefaultsHelpFormatter
    )

    parser.add_argument(
        '--config',
        type=str,
        default=None,
        help='Path to configuration file (default: component config.yaml)'
    )

    return parser.parse_args()


def main() -> bool:
    """Main entry point for ring-width processing."""
    args = parse_arguments()
    pipeline = RingWidthProcessingPipeline(args.config)
    return pipeline.run_full_pipeline()


if __name__ == "__main__":
    success = main()
    sys.exit(0 if success else 1)
