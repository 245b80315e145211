"""Configuration package exports."""

from .loader import ConfigLocator, ConfigRepository
from .models import (
    BuildConfig,
    CityEventsConfig,
    CulturalEventsConfig,
    FetchConfig,
    FetchMode,
    FilterConfig,
    ModeConfig,
    OutputConfig,
    parse_mode,
)

__all__ = [
    "BuildConfig",
    "CityEventsConfig",
    "ConfigLocator",
    "ConfigRepository",
    "CulturalEventsConfig",
    "FetchConfig",
    "FetchMode",
    "FilterConfig",
    "ModeConfig",
    "OutputConfig",
    "parse_mode",
]
