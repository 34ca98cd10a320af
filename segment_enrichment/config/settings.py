"""
Review Segment Enrichment
Centralized Configuration Management

Pydantic settings with environment variable support. Analytical constants
(quote lengths, concentration thresholds, ranking sizes) live here rather
than as literals in the analytics code.
"""

from functools import lru_cache
from typing import Optional
from pydantic import Field, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class PipelineSettings(BaseSettings):
    """Batch pipeline and analytics configuration"""
    
    model_config = SettingsConfigDict(env_prefix="PIPELINE_")
    
    # Streaming
    batch_size: int = Field(default=50_000, gt=0, description="Rows per streamed CSV batch")
    progress_every: int = Field(default=500_000, gt=0, description="Log progress every N rows")
    
    # Segment profiles
    top_patterns: int = Field(default=5, ge=0, description="Top-N pains/benefits/transformations")
    quote_bank_size: int = Field(default=25, ge=0, description="Quotes kept per segment")
    quote_min_length: int = Field(default=50, ge=0, description="Minimum quote length")
    quote_max_length: int = Field(default=400, gt=0, description="Quote display length")
    top_regions: int = Field(default=15, ge=0, description="Regions kept per sales rollup")
    
    # Journeys
    journeys_per_segment: int = Field(default=5, ge=0, description="Top spenders per segment")
    journey_quote_length: int = Field(default=300, gt=0, description="Journey quote display length")
    email_hint_prefix: int = Field(default=3, ge=0, description="Visible characters of an email hint")
    
    # Product affinity
    over_index_threshold: float = Field(default=1.2, ge=0, description="Concentration index flagged as over-indexed")
    under_index_threshold: float = Field(default=0.8, ge=0, description="Concentration index flagged as under-indexed")
    
    @model_validator(mode="after")
    def validate_thresholds(self) -> "PipelineSettings":
        """Under-index threshold must not exceed the over-index one"""
        if self.under_index_threshold > self.over_index_threshold:
            raise ValueError("under_index_threshold must be <= over_index_threshold")
        return self


class DataSettings(BaseSettings):
    """Input/output location configuration"""
    
    model_config = SettingsConfigDict(env_prefix="DATA_")
    
    output_path: str = Field(default="./data/salesEnrichment.json", description="Artifact output path")
    encoding: str = Field(default="utf8-lossy", description="CSV encoding; lossy replaces invalid bytes")
    
    @field_validator("encoding")
    @classmethod
    def validate_encoding(cls, v: str) -> str:
        """Only encodings the streaming CSV reader accepts"""
        if v.lower() not in ("utf8", "utf8-lossy"):
            raise ValueError("encoding must be 'utf8' or 'utf8-lossy'")
        return v.lower()


class MonitoringSettings(BaseSettings):
    """Logging Configuration"""
    
    model_config = SettingsConfigDict(env_prefix="")
    
    log_level: str = Field(default="INFO", alias="LOG_LEVEL", description="Logging level")
    log_format: str = Field(default="console", description="Log format: json or console")
    
    @field_validator("log_format")
    @classmethod
    def validate_format(cls, v: str) -> str:
        """Validate log format"""
        if v.lower() not in ("json", "console"):
            raise ValueError("log_format must be 'json' or 'console'")
        return v.lower()


class Settings(BaseSettings):
    """
    Main Application Settings
    
    Aggregates all configuration sections and provides a single entry point
    for accessing application configuration.
    """
    
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )
    
    # Application
    app_env: str = Field(default="development", alias="APP_ENV", description="Environment")
    
    # Version
    version: str = Field(default="1.0.0", description="Application version")
    
    # Subsystem configurations
    pipeline: PipelineSettings = Field(default_factory=PipelineSettings)
    data: DataSettings = Field(default_factory=DataSettings)
    monitoring: MonitoringSettings = Field(default_factory=MonitoringSettings)
    
    @field_validator("app_env")
    @classmethod
    def validate_env(cls, v: str) -> str:
        """Validate environment value"""
        allowed = ["development", "staging", "production", "testing"]
        if v.lower() not in allowed:
            raise ValueError(f"Environment must be one of: {allowed}")
        return v.lower()


@lru_cache()
def get_settings() -> Settings:
    """
    Get cached application settings.
    
    Uses LRU cache to ensure settings are only loaded once.
    
    Returns:
        Settings: Application settings instance
    """
    return Settings()
