"""
Typed configuration models using Pydantic.

Engine options and mapping-store settings are validated here; unknown
keys are rejected rather than silently ignored.
"""

from pathlib import Path
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator


class EngineOptions(BaseModel):
    """Options accepted when constructing a FeatureFactory."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    na: str | None = Field(
        default=None,
        alias="N/A",
        description="Substitute emitted when a feature returns no value (None)",
    )

    @field_validator("na", mode="before")
    @classmethod
    def stringify_na(cls, v: Any) -> str | None:
        """The substitute is always emitted as a string."""
        if v is None:
            return None
        return str(v)


class MappingStoreConfig(BaseModel):
    """Where dynamic category -> number mappings are persisted.

    Without a directory, the package directory, the home directory and
    the system temporary directory are tried in that order.
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    directory: Path | None = Field(
        default=None, description="Only directory to use for mapping files"
    )
    identity: str | None = Field(
        default=None,
        description="Name used in mapping file names (defaults to the class name)",
    )


class FactoryConfig(BaseModel):
    """Complete declaration of a feature factory, as loaded from YAML."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    options: EngineOptions = Field(default_factory=EngineOptions)
    mapping_store: MappingStoreConfig = Field(default_factory=MappingStoreConfig)
    features: list[dict[str, Any]] = Field(
        default_factory=list, description="Ordered feature declarations"
    )
    base_dir: Path | None = Field(
        default=None, description="Directory relative value files resolve against"
    )
