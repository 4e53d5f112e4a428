"""
Centralized Configuration for the spec conversion engine

Type-safe configuration using Pydantic Settings. Every heuristic threshold and
weight used by the detector, block selector, column mapper, quality evaluator
and renderers lives here so it can be tuned from the environment or a .env
file without touching the engine code.

Features:
- Environment variable binding with defaults
- Hierarchical configuration structure
- Test-friendly reload via reload_settings()
"""

import os
from enum import Enum
from typing import Literal

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


def _settings_config() -> SettingsConfigDict:
    return SettingsConfigDict(
        env_file=".env" if not os.getenv("DOCKER_CONTAINER") else None,
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )


class Environment(str, Enum):
    """Application environment types"""
    DEVELOPMENT = "development"
    STAGING = "staging"
    PRODUCTION = "production"
    TEST = "test"


class DetectionSettings(BaseSettings):
    """Input-type, delimiter and header-row detection settings"""

    model_config = _settings_config()

    markdown_min_score: int = Field(
        default=30,
        description="Minimum markdown score for a markdown classification"
    )
    table_min_score: int = Field(
        default=40,
        description="Minimum table score for a table classification"
    )
    tie_consistency_threshold: float = Field(
        default=0.9,
        description="Delimiter consistency needed to resolve a score tie as table"
    )
    default_delimiter: str = Field(
        default=",",
        description="Delimiter used when no candidate is consistent"
    )
    header_scan_rows: int = Field(
        default=5,
        description="Number of leading rows inspected for the header row"
    )
    header_low_confidence: int = Field(
        default=50,
        description="Header confidence (0-100) below which a warning is emitted"
    )

    @field_validator("default_delimiter", mode="before")
    @classmethod
    def decode_tab(cls, v):
        if isinstance(v, str) and v in ("\\t", "tab", "TAB"):
            return "\t"
        return v


class BlockSettings(BaseSettings):
    """Block detection and selection settings"""

    model_config = _settings_config()

    block_row_gap: int = Field(
        default=2,
        description="Consecutive blank rows that separate two blocks"
    )
    block_col_gap: int = Field(
        default=1,
        description="Consecutive blank columns that separate two blocks"
    )
    block_min_rows: int = Field(default=2, description="Minimum rows (header included) for a candidate")
    block_min_cols: int = Field(default=2, description="Minimum columns for a candidate")
    rich_row_count: int = Field(
        default=2,
        description="Data rows that make a block structurally rich"
    )
    wide_col_count: int = Field(
        default=4,
        description="Columns that make a rich block wide"
    )
    row_norm_cap: int = Field(default=8, description="Data-row count treated as fully rich")
    col_norm_cap: int = Field(default=6, description="Column count treated as fully rich")
    quality_weight: float = Field(default=0.6)
    richness_weight: float = Field(default=0.25)
    header_weight: float = Field(default=0.15)
    english_weight: float = Field(
        default=0.1,
        description="Bonus weight for English-looking blocks in mixed-language sheets"
    )
    english_sample_rows: int = Field(default=30)


class MappingSettings(BaseSettings):
    """Column mapping, quality and fallback settings"""

    model_config = _settings_config()

    inference_threshold: float = Field(
        default=0.62,
        description="Minimum inference score for a dynamic mapping"
    )
    inference_margin: float = Field(
        default=0.12,
        description="Required lead of the best field over the runner-up"
    )
    keyword_weight: float = Field(default=0.62)
    long_text_length: int = Field(default=24)
    sample_rows: int = Field(
        default=50,
        description="Data rows sampled for value heuristics"
    )
    low_confidence_threshold: float = Field(
        default=0.65,
        description="Per-column confidence below which a column is flagged"
    )
    unscored_confidence: float = Field(
        default=0.45,
        description="Confidence reported for a mapped column with no supporting signal"
    )
    quality_header_weight: float = Field(default=0.40)
    quality_core_weight: float = Field(default=0.40)
    quality_mapped_weight: float = Field(default=0.20)
    fallback_mapped_ratio: float = Field(
        default=0.5,
        description="Mapped ratio below which a spec may fall back to a table"
    )
    fallback_core_coverage: float = Field(
        default=0.5,
        description="Core coverage below which a spec may fall back to a table"
    )


class RenderSettings(BaseSettings):
    """Markdown rendering settings"""

    model_config = _settings_config()

    uncategorized_label: str = Field(default="Uncategorized")
    spec_title: str = Field(default="Specification")
    table_title: str = Field(default="Data Table")
    table_columns: Literal["all", "mapped"] = Field(
        default="all",
        description="Render every source column or only mapped canonical fields"
    )


class ApplicationSettings(BaseSettings):
    """Main application settings - aggregates all other settings"""

    model_config = _settings_config()

    environment: Environment = Field(
        default=Environment.DEVELOPMENT,
        description="Application environment"
    )
    log_level: str = Field(
        default="INFO",
        description="Default level for engine loggers"
    )

    detection: DetectionSettings = Field(default_factory=DetectionSettings)
    blocks: BlockSettings = Field(default_factory=BlockSettings)
    mapping: MappingSettings = Field(default_factory=MappingSettings)
    render: RenderSettings = Field(default_factory=RenderSettings)

    @property
    def is_production(self) -> bool:
        """Check if running in production mode"""
        return self.environment == Environment.PRODUCTION

    @property
    def is_test(self) -> bool:
        """Check if running in test mode"""
        return self.environment == Environment.TEST


settings = ApplicationSettings()


def get_settings() -> ApplicationSettings:
    """
    Get the global settings instance

    Returns:
        ApplicationSettings: The global settings instance
    """
    return settings


def reload_settings() -> ApplicationSettings:
    """
    Reload settings from environment (useful for testing)

    Returns:
        ApplicationSettings: New settings instance with reloaded values
    """
    global settings
    settings = ApplicationSettings()
    return settings
