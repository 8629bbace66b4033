"""
Configuration Management

Centralized configuration system using Pydantic settings with
environment variable support and validation.
"""

from pathlib import Path
from typing import List, Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class InferenceSettings(BaseSettings):
    """Model artifact and inference backend configuration."""

    model_config = SettingsConfigDict(
        env_prefix="FASTSTYLE_INFERENCE_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    models_dir: Path = Field(
        default=Path("./models"),
        description="Directory holding one ONNX artifact per style"
    )

    artifact_template: str = Field(
        default="{style}-9.onnx",
        description="File name pattern, formatted with the style name"
    )

    backend: str = Field(
        default="onnxruntime"
    )

    # Comma separated, passed to the backend verbatim
    execution_providers: str = Field(
        default="CPUExecutionProvider"
    )

    graph_optimization_level: str = Field(
        default="all"
    )

    intra_op_num_threads: int = Field(
        default=0,
        ge=0
    )

    # None defers to the backend's own thread-safety flag
    serialize_inference: Optional[bool] = Field(
        default=None
    )

    @field_validator('artifact_template')
    @classmethod
    def validate_artifact_template(cls, v):
        if "{style}" not in v:
            raise ValueError("Artifact template must contain '{style}'")
        return v

    @field_validator('backend')
    @classmethod
    def validate_backend(cls, v):
        valid_backends = ['onnxruntime', 'mock']
        if v not in valid_backends:
            raise ValueError(f"Backend must be one of {valid_backends}")
        return v

    @field_validator('graph_optimization_level')
    @classmethod
    def validate_optimization_level(cls, v):
        valid_levels = ['disable', 'basic', 'extended', 'all']
        if v.lower() not in valid_levels:
            raise ValueError(f"Graph optimization level must be one of {valid_levels}")
        return v.lower()

    @property
    def providers(self) -> List[str]:
        """Execution providers as a list."""
        return [p.strip() for p in self.execution_providers.split(',') if p.strip()]


class MonitoringSettings(BaseSettings):
    """Logging and metrics configuration."""

    model_config = SettingsConfigDict(
        env_prefix="FASTSTYLE_MONITORING_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    log_level: str = Field(
        default="INFO"
    )

    log_format: str = Field(
        default="json"
    )

    enable_metrics: bool = Field(
        default=True
    )

    @field_validator('log_level')
    @classmethod
    def validate_log_level(cls, v):
        valid_levels = ['DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL']
        if v.upper() not in valid_levels:
            raise ValueError(f"Log level must be one of {valid_levels}")
        return v.upper()

    @field_validator('log_format')
    @classmethod
    def validate_log_format(cls, v):
        if v not in ['json', 'console']:
            raise ValueError("Log format must be json or console")
        return v


class AppSettings(BaseSettings):
    """Main application configuration."""

    model_config = SettingsConfigDict(
        env_prefix="FASTSTYLE_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        validate_assignment=True,
        extra="ignore",
    )

    app_name: str = Field(
        default="faststyle"
    )

    app_version: str = Field(
        default="0.1.0"
    )

    environment: str = Field(
        default="development"
    )

    # Nested settings
    inference: InferenceSettings = Field(default_factory=InferenceSettings)
    monitoring: MonitoringSettings = Field(default_factory=MonitoringSettings)

    @field_validator('environment')
    @classmethod
    def validate_environment(cls, v):
        valid_envs = ['development', 'staging', 'production']
        if v not in valid_envs:
            raise ValueError(f"Environment must be one of {valid_envs}")
        return v

    @property
    def is_production(self) -> bool:
        """Check if running in production."""
        return self.environment == "production"

    @property
    def is_development(self) -> bool:
        """Check if running in development."""
        return self.environment == "development"


# Global settings instance
_settings: Optional[AppSettings] = None


def get_settings() -> AppSettings:
    """Get application settings (singleton pattern)."""
    global _settings

    if _settings is None:
        _settings = AppSettings()

    return _settings


def reload_settings() -> AppSettings:
    """Reload settings from environment."""
    global _settings
    _settings = AppSettings()
    return _settings


def validate_config(settings: AppSettings) -> List[str]:
    """Validate configuration and return list of warnings."""

    warnings = []

    if not settings.inference.models_dir.is_dir():
        warnings.append(f"Models directory does not exist: {settings.inference.models_dir}")

    if settings.is_production:
        if settings.inference.backend == "mock":
            warnings.append("Mock inference backend configured in production")

        if settings.monitoring.log_format != "json":
            warnings.append("Console log format should not be used in production")

    if not settings.inference.providers:
        warnings.append("No execution providers configured")

    return warnings
