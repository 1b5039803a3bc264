"""
Ring-Width Processing Core Modules

Core functionality for turning raw ring-width measurements into detrended,
quality-screened growth indices and reconstructed biomass increments.

Modules:
    id_normalization: Canonical tree keys, re-measurement handling, table reshaping
    detrending: Smoothing-spline detrending engine
    quality_filter: Leave-one-out correlation screening, rbar and EPS
    biomass_reconstruction: Diameter back-calculation and allometric biomass
    ring_processing: Main processing pipeline class

Author: Boreal Growth Team
"""

from .id_normalization import (
    CANONICAL_KEYS,
    normalize_code,
    parse_tree_identifier,
    build_canonical_keys,
    keep_latest_measurement,
    wide_to_long,
    long_to_wide,
    add_group_ids
)
from .detrending import (
    InsufficientDataError,
    spline_smoothing_parameter,
    interpolate_internal_gaps,
    fit_spline_curve,
    detrend_series,
    detrend_table
)
from .quality_filter import (
    DEFAULT_CORRELATION_THRESHOLD,
    GroupQuality,
    leave_one_out_correlations,
    expressed_population_signal,
    filter_group,
    filter_groups,
    build_chronologies
)
from .biomass_reconstruction import (
    AllometryTable,
    reconstruct_diameter,
    biomass_increments,
    reconstruct_biomass_table
)
from .ring_processing import RingWidthProcessingPipeline, RingWidthResults

__all__ = [
    "CANONICAL_KEYS",
    "normalize_code",
    "parse_tree_identifier",
    "build_canonical_keys",
    "keep_latest_measurement",
    "wide_to_long",
    "long_to_wide",
    "add_group_ids",
    "InsufficientDataError",
    "spline_smoothing_parameter",
    "interpolate_internal_gaps",
    "fit_spline_curve",
    "detrend_series",
    "detrend_table",
    "DEFAULT_CORRELATION_THRESHOLD",
    "GroupQuality",
    "leave_one_out_correlations",
    "expressed_population_signal",
    "filter_group",
    "filter_groups",
    "build_chronologies",
    "AllometryTable",
    "reconstruct_diameter",
    "biomass_increments",
    "reconstruct_biomass_table",
    "RingWidthProcessingPipeline",
    "RingWidthResults"
]
