"""
Growth Response Analysis Core Modules

Modules:
    ecological_metrics: Sensitivity, resilience components, coincidence rates, extreme-year ratios
    master_table: Site table preparation, checked joins and per-series metric assembly
    growth_response: Main pipeline class

Author: Boreal Growth Team
"""

from .ecological_metrics import (
    ExtremeYearPerformance,
    sensitivity_terms,
    mean_sensitivity,
    resilience_components,
    extreme_count,
    extreme_years,
    coincidence_rate,
    extreme_year_performance
)
from .master_table import (
    MetricSettings,
    default_drivers,
    prepare_site_table,
    summarize_soil,
    join_with_exclusions,
    summarize_season_climate,
    series_metrics,
    mean_biomass_increment
)
from .growth_response import GrowthResponsePipeline, GrowthResponseInputs, GrowthResponseResults

__all__ = [
    "ExtremeYearPerformance",
    "sensitivity_terms",
    "mean_sensitivity",
    "resilience_components",
    "extreme_count",
    "extreme_years",
    "coincidence_rate",
    "extreme_year_performance",
    "MetricSettings",
    "default_drivers",
    "prepare_site_table",
    "summarize_soil",
    "join_with_exclusions",
    "summarize_season_climate",
    "series_metrics",
    "mean_biomass_increment",
    "GrowthResponsePipeline",
    "GrowthResponseInputs",
    "GrowthResponseResults"
]
