"""
Unified configuration access point

    from shared.config import get_settings

    threshold = get_settings().mapping.low_confidence_threshold
"""

from .settings import (
    ApplicationSettings,
    BlockSettings,
    DetectionSettings,
    Environment,
    MappingSettings,
    RenderSettings,
    get_settings,
    reload_settings,
)

__all__ = [
    "ApplicationSettings",
    "BlockSettings",
    "DetectionSettings",
    "Environment",
    "MappingSettings",
    "RenderSettings",
    "get_settings",
    "reload_settings",
]
