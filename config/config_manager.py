"""
Configuration management for the pickup matchmaking system.
"""

import copy
import logging
import yaml
from typing import Dict, Any

logger = logging.getLogger(__name__)


class ConfigManager:
    """Manages configuration loading and provides default values."""

    @staticmethod
    def load_config(config_file: str) -> Dict[str, Any]:
        """Load configuration from YAML file, merged over the defaults."""
        try:
            with open(config_file, 'r', encoding='utf-8') as f:
                loaded = yaml.safe_load(f) or {}
        except FileNotFoundError:
            logger.warning(f"Configuration file '{config_file}' not found. Using default configuration.")
            return ConfigManager.get_default_config()
        except yaml.YAMLError as e:
            logger.warning(f"Error parsing configuration file: {e}. Using default configuration.")
            return ConfigManager.get_default_config()

        return ConfigManager.merge_config(ConfigManager.get_default_config(), loaded)

    @staticmethod
    def merge_config(defaults: Dict[str, Any], overrides: Dict[str, Any]) -> Dict[str, Any]:
        """Merge user settings over the defaults, one level of sections deep."""
        merged = copy.deepcopy(defaults)
        for section, value in overrides.items():
            if isinstance(value, dict) and isinstance(merged.get(section), dict):
                merged[section].update(value)
            else:
                merged[section] = value
        return merged

    @staticmethod
    def get_default_config() -> Dict[str, Any]:
        """Return default configuration if config file is not available."""
        return {
            'modes': {
                'small': {'roster_size': 10, 'field_sizes': ['small', 'both']},
                'large': {'roster_size': 22, 'field_sizes': ['large', 'both']}
            },
            'matchmaking': {
                'allow_filler': True,
                'game_duration_minutes': 60,
                'max_commit_attempts': 3
            },
            'scheduling': {
                'initial_radius_km': 10.0,
                'max_radius_km': 80.467,  # 50 miles
                'travel_speed_kmh': 50.0,
                'travel_buffer_minutes': 10,
                'horizon_hours': 4,
                'game_gap_minutes': 60
            },
            'penalties': {
                'leave_window_minutes': 20,
                'suspension_threshold': 3,
                'suspension_hours': 24,
                'decay_period_hours': 24
            },
            'skill_levels': {
                'beginner': 300,
                'average': 600,
                'intermediate': 1000,
                'advanced': 1400,
                'pro': 1800
            },
            'field_api': {
                'url': 'https://api.mapbox.com/geocoding/v5/mapbox.places/soccer%20field.json',
                'access_token': '',
                'limit': 10,
                'timeout': 30
            }
        }
