"""
Standardized logging utilities for the Boreal Growth Sensitivity Pipeline.

This module provides consistent logging configuration across all components
while allowing component-specific customization.

Author: Boreal Growth Team
"""

import logging
import sys
from pathlib import Path
from typing import Optional, Union

LOGGER_NAMESPACE = 'boreal_growth'


def setup_logging(
    level: Union[str, int] = 'INFO',
    component_name: Optional[str] = None,
    log_file: Optional[Union[str, Path]] = None,
    format_style: str = 'standard'
) -> logging.Logger:
    """
    Setup standardized logging configuration for pipeline components.

    Args:
        level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        component_name: Name of the component (for logger identification)
        log_file: Optional file path for logging output
        format_style: Logging format style ('standard', 'detailed', 'simple')

    Returns:
        logging.Logger: Configured logger instance

    Examples:
        >>> logger = setup_logging('INFO', 'ring_width_processing')
        >>> logger = setup_logging('DEBUG', 'climate_indices', 'climate.log')
    """
    # Convert string level to logging constant
    if isinstance(level, str):
        level = getattr(logging, level.upper())

    # Define format styles
    formats = {
        'standard': '%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        'detailed': '%(asctime)s - %(name)s - %(levelname)s - %(filename)s:%(lineno)d - %(message)s',
        'simple': '%(levelname)s: %(message)s'
    }

    # Configure root logger; component loggers propagate to it
    root_logger = logging.getLogger()

    # Clear existing handlers to avoid duplication
    if root_logger.handlers:
        root_logger.handlers.clear()

    root_logger.setLevel(level)

    # Create formatter
    formatter = logging.Formatter(
        formats.get(format_style, formats['standard']),
        datefmt='%Y-%m-%d %H:%M:%S'
    )

    # Console handler
    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(level)
    console_handler.setFormatter(formatter)
    root_logger.addHandler(console_handler)

    # File handler if specified
    if log_file:
        log_path = Path(log_file)
        log_path.parent.mkdir(parents=True, exist_ok=True)

        file_handler = logging.FileHandler(log_path)
        file_handler.setLevel(level)
        file_handler.setFormatter(formatter)
        root_logger.addHandler(file_handler)

    # Component loggers live under the pipeline namespace
    logger_name = f'{LOGGER_NAMESPACE}.{component_name}' if component_name else LOGGER_NAMESPACE
    return logging.getLogger(logger_name)


def get_logger(component_name: str) -> logging.Logger:
    """
    Get a logger for a specific component.

    Args:
        component_name: Name of the component

    Returns:
        logging.Logger: Component logger

    Examples:
        >>> logger = get_logger('ring_width_processing.detrending')
    """
    return logging.getLogger(f'{LOGGER_NAMESPACE}.{component_name}')


def log_pipeline_start(logger: logging.Logger, pipeline_name: str, config: dict = None) -> None:
    """
    Log standardized pipeline start message.

    Args:
        logger: Logger instance
        pipeline_name: Name of the pipeline being started
        config: Optional configuration dictionary to log key parameters
    """
    logger.info("=" * 80)
    logger.info(f"STARTING PIPELINE: {pipeline_name.upper()}")
    logger.info("=" * 80)

    if config:
        logger.info("Pipeline configuration:")
        # Sections are summarized, scalar settings are logged as they are
        for key, value in config.items():
            if key.startswith('_'):  # Skip private config keys
                continue
            if isinstance(value, dict):
                logger.info(f"  {key}: {len(value)} parameters ({', '.join(map(str, value))})")
            else:
                logger.info(f"  {key}: {value}")


def log_pipeline_end(
    logger: logging.Logger,
    pipeline_name: str,
    success: bool = True,
    elapsed_time: float = None,
    exclusions=None
) -> None:
    """
    Log standardized pipeline completion message.

    Args:
        logger: Logger instance
        pipeline_name: Name of the completed pipeline
        success: Whether pipeline completed successfully
        elapsed_time: Optional elapsed time in seconds
        exclusions: Optional ExclusionLog whose counts per stage are reported
    """
    logger.info("=" * 80)

    if success:
        logger.info(f"PIPELINE COMPLETED SUCCESSFULLY: {pipeline_name.upper()}")
    else:
        logger.info(f"PIPELINE FAILED: {pipeline_name.upper()}")

    if elapsed_time:
        hours = int(elapsed_time // 3600)
        minutes = int((elapsed_time % 3600) // 60)
        seconds = int(elapsed_time % 60)
        logger.info(f"Total execution time: {hours:02d}:{minutes:02d}:{seconds:02d}")

    if exclusions is not None:
        logger.info(f"Excluded entities: {exclusions.count()}")
        # Stages in the order they first excluded something
        stages = dict.fromkeys(record.stage for record in exclusions.records)
        for stage in stages:
            logger.info(f"  {stage}: {exclusions.count(stage)}")

    logger.info("=" * 80)


def log_section(logger: logging.Logger, section_name: str) -> None:
    """
    Log a standardized section header.

    Args:
        logger: Logger instance
        section_name: Name of the section
    """
    logger.info(f"{'='*20} {section_name.upper()} {'='*20}")
