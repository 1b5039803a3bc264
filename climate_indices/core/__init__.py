"""
Climate Indices Core Modules

Modules:
    climate_indices: VPD, monthly aggregation, Hargreaves PET and SPEI
    growing_season: Growing season detection and season climate means
    climate_processing: Main processing pipeline class

Author: Boreal Growth Team
"""

from .climate_indices import (
    saturation_vapor_pressure,
    vapor_pressure_deficit,
    add_vpd_columns,
    aggregate_daily_to_monthly,
    extraterrestrial_radiation,
    hargreaves_pet,
    fit_log_logistic,
    log_logistic_cdf,
    standardize_log_logistic,
    compute_spei,
    attach_monthly_to_daily
)
from .growing_season import (
    GrowingSeason,
    SeasonRules,
    find_growing_season,
    detect_growing_season,
    detect_growing_seasons,
    season_climate_means
)
from .climate_processing import ClimateIndexPipeline, ClimateResults

__all__ = [
    "saturation_vapor_pressure",
    "vapor_pressure_deficit",
    "add_vpd_columns",
    "aggregate_daily_to_monthly",
    "extraterrestrial_radiation",
    "hargreaves_pet",
    "fit_log_logistic",
    "log_logistic_cdf",
    "standardize_log_logistic",
    "compute_spei",
    "attach_monthly_to_daily",
    "GrowingSeason",
    "SeasonRules",
    "find_growing_season",
    "detect_growing_season",
    "detect_growing_seasons",
    "season_climate_means",
    "ClimateIndexPipeline",
    "ClimateResults"
]
