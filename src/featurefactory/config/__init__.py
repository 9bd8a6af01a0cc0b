"""
Configuration management with typed Pydantic models.

Provides engine options, mapping-store settings and YAML loading of
feature declarations.
"""

from featurefactory.config.loader import load_factory_config
from featurefactory.config.settings import (
    EngineOptions,
    FactoryConfig,
    MappingStoreConfig,
)

__all__ = [
    "EngineOptions",
    "FactoryConfig",
    "MappingStoreConfig",
    "load_factory_config",
]
