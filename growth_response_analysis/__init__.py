"""
Growth Response Analysis Component

Ecological metrics and MasterTable assembly for the Boreal Growth
Sensitivity Pipeline.

This component provides:
- Mean sensitivity per tree and per site
- Resistance, recovery and resilience around disturbance years
- Coincidence rates between growth minima and climate extremes
- Predicted-vs-observed growth in extreme climate years
- Site-level and tree-level MasterTables for the modeling layer

Author: Boreal Growth Team
"""

from .core.growth_response import GrowthResponsePipeline, GrowthResponseInputs, GrowthResponseResults
from .core.ecological_metrics import (
    mean_sensitivity, resilience_components,
    coincidence_rate, extreme_year_performance
)

__version__ = "1.0.0"
__component__ = "growth_response_analysis"

__all__ = [
    "GrowthResponsePipeline",
    "GrowthResponseInputs",
    "GrowthResponseResults",
    "mean_sensitivity",
    "resilience_components",
    "coincidence_rate",
    "extreme_year_performance",
    "__version__",
    "__component__"
]
