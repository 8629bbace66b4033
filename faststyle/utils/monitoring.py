"""
Monitoring and Observability

Structured logging and Prometheus metrics for the style transfer core.
"""

import logging
import sys
import time
from typing import Optional

import structlog
from prometheus_client import Counter, Gauge, Histogram, Info

from .config import AppSettings, get_settings


# Prometheus Metrics
INFERENCE_COUNT = Counter(
    'faststyle_inference_total',
    'Total number of inference calls',
    ['style', 'status']
)

INFERENCE_DURATION = Histogram(
    'faststyle_inference_duration_seconds',
    'Inference duration in seconds',
    ['style']
)

MODEL_LOAD_TIME = Gauge(
    'faststyle_model_load_seconds',
    'Time taken to load a style model',
    ['style']
)

CACHED_SESSIONS = Gauge(
    'faststyle_cached_sessions',
    'Number of inference sessions currently cached'
)

ERROR_COUNT = Counter(
    'faststyle_errors_total',
    'Total number of errors',
    ['error_type', 'component']
)

APP_INFO = Info(
    'faststyle_app',
    'Application information'
)


def setup_logging(settings: Optional[AppSettings] = None):
    """Configure structured logging."""

    settings = settings or get_settings()

    if settings.monitoring.log_format == "console":
        renderer = structlog.dev.ConsoleRenderer()
    else:
        renderer = structlog.processors.JSONRenderer()

    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.stdlib.PositionalArgumentsFormatter(),
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.processors.UnicodeDecoder(),
            renderer
        ],
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    logging.basicConfig(
        format="%(message)s",
        stream=sys.stdout,
        level=getattr(logging, settings.monitoring.log_level)
    )

    logger = structlog.get_logger()
    logger.info("Logging configured", level=settings.monitoring.log_level)

    return logger


def init_monitoring(settings: Optional[AppSettings] = None):
    """Initialize logging, apply the metrics switch and publish application info."""

    settings = settings or get_settings()
    logger = setup_logging(settings)
    set_metrics_enabled(settings.monitoring.enable_metrics)

    if settings.monitoring.enable_metrics:
        APP_INFO.info({
            'app_name': settings.app_name,
            'version': settings.app_version,
            'environment': settings.environment
        })

    logger.info("Monitoring initialized", metrics=settings.monitoring.enable_metrics)
    return logger


# Metric updates are dropped while disabled
_metrics_enabled = True


def set_metrics_enabled(enabled: bool) -> None:
    global _metrics_enabled
    _metrics_enabled = enabled


def metrics_enabled() -> bool:
    return _metrics_enabled


def record_inference(style: str, status: str, duration: Optional[float] = None) -> None:
    """Count one inference call and observe its duration on success."""
    if not _metrics_enabled:
        return
    INFERENCE_COUNT.labels(style=style, status=status).inc()
    if duration is not None:
        INFERENCE_DURATION.labels(style=style).observe(duration)


def record_model_load(style: str, load_time: float) -> None:
    if _metrics_enabled:
        MODEL_LOAD_TIME.labels(style=style).set(load_time)


def set_cached_sessions(count: int) -> None:
    if _metrics_enabled:
        CACHED_SESSIONS.set(count)


def record_error(error: BaseException, component: str) -> None:
    """Count an error against the component that raised it."""
    if _metrics_enabled:
        ERROR_COUNT.labels(error_type=type(error).__name__, component=component).inc()


class MetricsContext:
    """Context manager for recording metrics."""

    def __init__(self, operation: str, component: str = 'general', **context):
        self.operation = operation
        self.component = component
        self.context = context
        self.start_time = None
        self.duration = None
        self.logger = structlog.get_logger()

    def __enter__(self):
        self.start_time = time.perf_counter()
        self.logger.debug("Operation started", operation=self.operation, **self.context)
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.duration = time.perf_counter() - self.start_time

        if exc_type is None:
            self.logger.info("Operation completed",
                             operation=self.operation,
                             duration=self.duration,
                             **self.context)
        else:
            self.logger.error("Operation failed",
                              operation=self.operation,
                              duration=self.duration,
                              error=str(exc_val),
                              **self.context)
            record_error(exc_val, component=self.component)
