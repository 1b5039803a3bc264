"""
Configuration utilities for the Boreal Growth Sensitivity Pipeline.

This module provides standardized configuration loading and validation
across all pipeline components.

Author: Boreal Growth Team
"""

import yaml
import os
import copy
from pathlib import Path
from typing import Dict, Any, Optional, Union
import logging

# Repository root, where each component keeps its own config.yaml
REPO_ROOT = Path(__file__).resolve().parent.parent


def load_config(
    config_path: Optional[Union[str, Path]] = None,
    component_name: Optional[str] = None,
    default_config_name: str = "config.yaml"
) -> Dict[str, Any]:
    """
    Load configuration from YAML file with standardized search patterns.

    Search order:
    1. Explicit config_path if provided
    2. Component directory + default_config_name
    3. Current directory + default_config_name
    4. Environment variable BOREAL_GROWTH_CONFIG

    Args:
        config_path: Explicit path to configuration file
        component_name: Name of component (for automatic config discovery)
        default_config_name: Default config filename to search for

    Returns:
        Dict[str, Any]: Configuration dictionary

    Raises:
        FileNotFoundError: If no configuration file is found
        yaml.YAMLError: If configuration file is invalid YAML

    Examples:
        >>> config = load_config(component_name="climate_indices")
        >>> config = load_config("custom_config.yaml")
    """
    logger = logging.getLogger(__name__)

    search_paths = []

    if config_path:
        search_paths.append(Path(config_path))

    if component_name:
        search_paths.extend([
            Path(component_name) / default_config_name,
            REPO_ROOT / component_name / default_config_name,
        ])

    search_paths.append(Path(default_config_name))

    env_config = os.environ.get('BOREAL_GROWTH_CONFIG')
    if env_config:
        search_paths.append(Path(env_config))

    config_file = None
    for path in search_paths:
        if path.exists():
            config_file = path
            logger.debug(f"Found configuration file: {config_file}")
            break

    if not config_file:
        searched_paths = [str(p) for p in search_paths]
        raise FileNotFoundError(
            f"Configuration file not found. Searched paths: {searched_paths}"
        )

    try:
        with open(config_file, 'r', encoding='utf-8') as f:
            config = yaml.safe_load(f) or {}
    except yaml.YAMLError as e:
        raise yaml.YAMLError(f"Invalid YAML in {config_file}: {e}")

    config['_meta'] = {
        'config_file': str(config_file.absolute()),
        'component_name': component_name,
        'loaded_at': str(Path.cwd())
    }

    logger.info(f"Loaded configuration from: {config_file}")
    return config


def resolve_config(
    config: Optional[Union[str, Path, Dict[str, Any]]],
    component_name: str
) -> Dict[str, Any]:
    """
    Accept a configuration dictionary or a path and return a dictionary.

    Dictionaries are deep-copied so pipelines never mutate caller state.

    Args:
        config: Configuration dictionary, path to a YAML file, or None
        component_name: Component used for default config discovery

    Returns:
        Dict[str, Any]: Configuration dictionary
    """
    if isinstance(config, dict):
        return copy.deepcopy(config)
    return load_config(config, component_name=component_name)


def validate_config(config: Dict[str, Any], required_sections: list = None) -> bool:
    """
    Validate configuration dictionary structure.

    Args:
        config: Configuration dictionary to validate
        required_sections: List of required top-level sections

    Returns:
        bool: True if configuration is valid

    Raises:
        ValueError: If configuration is invalid

    Examples:
        >>> validate_config(config, ['data', 'processing', 'output'])
    """
    logger = logging.getLogger(__name__)

    if not isinstance(config, dict):
        raise ValueError("Configuration must be a dictionary")

    if required_sections:
        missing_sections = [section for section in required_sections if section not in config]
        if missing_sections:
            raise ValueError(f"Missing required configuration sections: {missing_sections}")

    logger.debug("Configuration validation passed")
    return True


def get_config_value(config: Dict[str, Any], key_path: str, default: Any = None) -> Any:
    """
    Get nested configuration value using dot notation.

    Args:
        config: Configuration dictionary
        key_path: Dot-separated path to the value (e.g., 'detrending.period')
        default: Default value if key is not found

    Returns:
        Any: Configuration value or default

    Examples:
        >>> period = get_config_value(config, 'detrending.period', 30)
    """
    value = config

    try:
        for key in key_path.split('.'):
            value = value[key]
        return value
    except (KeyError, TypeError):
        return default
