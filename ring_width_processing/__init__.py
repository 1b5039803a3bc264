"""
Ring-Width Processing Component

Tree-ring width processing for the Boreal Growth Sensitivity Pipeline.

This component provides:
- Canonical tree identifiers across inconsistent field schemas
- Smoothing-spline detrending to ring-width indices (RWI)
- Inter-series correlation screening with rbar and EPS statistics
- Group mean chronologies with sample depth
- Diameter and biomass reconstruction from ring increments

Author: Boreal Growth Team
"""

from .core.ring_processing import RingWidthProcessingPipeline, RingWidthResults
from .core.detrending import detrend_series, detrend_table
from .core.quality_filter import filter_groups, build_chronologies
from .core.biomass_reconstruction import AllometryTable, reconstruct_biomass_table

__version__ = "1.0.0"
__component__ = "ring_width_processing"

__all__ = [
    "RingWidthProcessingPipeline",
    "RingWidthResults",
    "detrend_series",
    "detrend_table",
    "filter_groups",
    "build_chronologies",
    "AllometryTable",
    "reconstruct_biomass_table",
    "__version__",
    "__component__"
]
