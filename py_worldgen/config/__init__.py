"""
Configuration modules for map generation.
"""

from .config import Settings, get_settings
from .map_config import (
    Dimensions,
    MapConfig,
    ProjectionSettings,
    TerrainSettings,
    build_map_config,
    default_map_config,
)
from .resource_config import (
    DEFAULT_RESOURCE_CONFIG,
    ResourceConfig,
    ResourceDefinition,
    TerrainResourceRule,
    load_resource_config,
)

__all__ = ['Settings', 'get_settings',
           'Dimensions', 'MapConfig', 'ProjectionSettings', 'TerrainSettings',
           'build_map_config', 'default_map_config',
           'DEFAULT_RESOURCE_CONFIG', 'ResourceConfig', 'ResourceDefinition',
           'TerrainResourceRule', 'load_resource_config']
