"""
Climate Indices Component

Station climate processing for the Boreal Growth Sensitivity Pipeline.

This component provides:
- Daily and threshold vapour pressure deficit
- Monthly aggregation and Hargreaves potential evapotranspiration
- SPEI from a per-month log-logistic fit of the accumulated water balance
- Growing season detection and within-season climate summaries

Author: Boreal Growth Team
"""

from .core.climate_processing import ClimateIndexPipeline, ClimateResults
from .core.climate_indices import vapor_pressure_deficit, hargreaves_pet, compute_spei
from .core.growing_season import GrowingSeason, detect_growing_season, detect_growing_seasons

__version__ = "1.0.0"
__component__ = "climate_indices"

__all__ = [
    "ClimateIndexPipeline",
    "ClimateResults",
    "vapor_pressure_deficit",
    "hargreaves_pet",
    "compute_spei",
    "GrowingSeason",
    "detect_growing_season",
    "detect_growing_seasons",
    "__version__",
    "__component__"
]
