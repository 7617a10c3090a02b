"""
Utility functions package for the pickup matchmaking system.
"""

from .geo_utils import GeoMath
from .time_utils import TimeUtils

__all__ = ['GeoMath', 'TimeUtils']
