"""
Shared utilities for the Boreal Growth Sensitivity Pipeline.

This package provides common functionality used across all components:
- Standardized logging configuration
- Configuration file loading utilities
- Path handling utilities and centralized data paths
- Exclusion bookkeeping shared by all stages

Author: Boreal Growth Team
"""

from .logging_utils import setup_logging, get_logger, log_pipeline_start, log_pipeline_end, log_section
from .config_utils import load_config, resolve_config, validate_config, get_config_value
from .path_utils import ensure_directory, find_files, validate_file_exists
from .central_data_paths import CentralDataPaths
from .exclusions import ExclusionLog, ExclusionRecord

__version__ = "1.0.0"

__all__ = [
    "setup_logging",
    "get_logger",
    "log_pipeline_start",
    "log_pipeline_end",
    "log_section",
    "load_config",
    "resolve_config",
    "validate_config",
    "get_config_value",
    "ensure_directory",
    "find_files",
    "validate_file_exists",
    "CentralDataPaths",
    "ExclusionLog",
    "ExclusionRecord"
]
