#!/usr/bin/env python3
"""
Centralized Data Path Management

Provides standardized data path management for all components in the
Boreal Growth Sensitivity Pipeline. A CentralDataPaths instance is built
from a component configuration and passed around explicitly; no component
relies on module-level path state or the process working directory beyond
resolving the configured data root.

Author: Boreal Growth Team
"""

from pathlib import Path
from typing import Any, Dict, List, Optional, Union
import logging

from .path_utils import ensure_directory


class CentralDataPaths:
    """
    Centralized data path management for all pipeline components.

    Provides standardized paths for raw inputs, processed intermediate tables
    and final result tables following the data/ directory structure.
    """

    def __init__(self, data_root: Union[str, Path] = "data", files: Optional[Dict[str, str]] = None):
        """
        Initialize centralized data paths.

        Args:
            data_root: Root directory for all data (default: "data")
            files: Optional mapping of file keys to paths relative to data_root,
                overriding the default file layout
        """
        self.data_root = Path(data_root).resolve()

        self.raw = self.data_root / "raw"
        self.processed = self.data_root / "processed"
        self.results = self.data_root / "results"

        self.paths = {
            # Raw inputs
            'ring_widths_raw': self.raw / "ring_widths",
            'sites_raw': self.raw / "sites",
            'soil_raw': self.raw / "soil",
            'climate_raw': self.raw / "climate",

            # Processed intermediate tables
            'ring_widths_processed': self.processed / "ring_widths",
            'climate_processed': self.processed / "climate",

            # Analysis results
            'tables': self.results / "tables",
        }

        self.files = {
            'ring_widths': self.paths['ring_widths_raw'] / "ring_widths.csv",
            'site_attributes': self.paths['sites_raw'] / "site_attributes.csv",
            'soil_chemistry': self.paths['soil_raw'] / "soil_chemistry.csv",
            'daily_climate': self.paths['climate_raw'] / "daily_climate.csv",
            'station_metadata': self.paths['climate_raw'] / "stations.csv",

            'normalized_ring_widths': self.paths['ring_widths_processed'] / "normalized_ring_widths.csv",
            'raw_wide': self.paths['ring_widths_processed'] / "ring_widths_wide.csv",
            'rwi_wide': self.paths['ring_widths_processed'] / "rwi_wide.csv",
            'tree_groups': self.paths['ring_widths_processed'] / "tree_groups.csv",
            'tree_quality': self.paths['ring_widths_processed'] / "tree_quality.csv",
            'group_quality': self.paths['ring_widths_processed'] / "group_quality.csv",
            'chronologies': self.paths['ring_widths_processed'] / "chronologies.csv",
            'biomass_reconstruction': self.paths['ring_widths_processed'] / "biomass_reconstruction.csv",

            'daily_climate_indices': self.paths['climate_processed'] / "daily_climate_indices.csv",
            'monthly_climate': self.paths['climate_processed'] / "monthly_climate.csv",
            'growing_seasons': self.paths['climate_processed'] / "growing_seasons.csv",
            'season_climate': self.paths['climate_processed'] / "season_climate.csv",

            'master_table_site': self.paths['tables'] / "master_table_site.csv",
            'master_table_tree': self.paths['tables'] / "master_table_tree.csv",
        }

        if files:
            for key, relative_path in files.items():
                self.files[key] = self.data_root / relative_path

        self.logger = logging.getLogger(__name__)

    @classmethod
    def from_config(cls, config: Dict[str, Any]) -> "CentralDataPaths":
        """
        Build data paths from the 'data' section of a component configuration.

        Args:
            config: Component configuration dictionary

        Returns:
            CentralDataPaths instance
        """
        data_config = config.get('data', {}) or {}
        return cls(data_root=data_config.get('data_root', 'data'), files=data_config.get('files'))

    def get_path(self, key: str, create: bool = False) -> Path:
        """
        Get standardized directory path by key.

        Args:
            key: Path key from self.paths
            create: Whether to create directory if it doesn't exist

        Returns:
            Path object
        """
        if key not in self.paths:
            raise KeyError(f"Unknown path key: {key}")

        path = self.paths[key]

        if create and not path.exists():
            ensure_directory(path)
            self.logger.debug(f"Created directory: {path}")

        return path

    def get_file(self, key: str, create_parent: bool = False) -> Path:
        """
        Get standardized file path by key.

        Args:
            key: File key from self.files
            create_parent: Whether to create the parent directory

        Returns:
            Path object
        """
        if key not in self.files:
            raise KeyError(f"Unknown file key: {key}")

        path = self.files[key]
        if create_parent:
            path.parent.mkdir(parents=True, exist_ok=True)
        return path

    def create_directories(self, keys: List[str]) -> None:
        """
        Create multiple directories from path keys.

        Args:
            keys: List of path keys to create
        """
        for key in keys:
            self.get_path(key, create=True)

    def __str__(self) -> str:
        return f"CentralDataPaths(data_root={self.data_root})"

    def __repr__(self) -> str:
        return self.__str__()
