#!/usr/bin/env python3
"""
Configuration management for the SwipeMatch web application.
"""

import os
from pathlib import Path
from functools import lru_cache

from core.config_loader import AppConfig, load_config


def get_project_root() -> Path:
    """Get the project root directory."""
    return Path(__file__).parent.parent.parent


@lru_cache()
def get_config() -> AppConfig:
    """
    Get application configuration with caching.

    Loads config.yaml from the project root (or SWIPEMATCH_CONFIG) and
    applies environment variable overrides, including WEB_HOST/WEB_PORT.

    Returns:
        AppConfig: The application configuration.
    """
    config_path = os.environ.get('SWIPEMATCH_CONFIG', str(get_project_root() / 'config.yaml'))
    config = load_config(config_path)

    if 'WEB_HOST' in os.environ:
        config.web.host = os.environ['WEB_HOST']
    if 'WEB_PORT' in os.environ:
        config.web.port = int(os.environ['WEB_PORT'])

    return config
