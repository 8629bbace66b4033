"""Utils package initialization."""

from .config import get_settings, reload_settings, AppSettings, InferenceSettings, MonitoringSettings
from .errors import (
    StyleTransferError,
    DecodeError,
    ShapeError,
    ModelLoadError,
    InferenceError
)
from .monitoring import init_monitoring, setup_logging, MetricsContext

__all__ = [
    "get_settings",
    "reload_settings",
    "AppSettings",
    "InferenceSettings",
    "MonitoringSettings",
    "StyleTransferError",
    "DecodeError",
    "ShapeError",
    "ModelLoadError",
    "InferenceError",
    "init_monitoring",
    "setup_logging",
    "MetricsContext"
]
