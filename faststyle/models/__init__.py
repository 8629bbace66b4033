"""Model package initialization."""

from .types import (
    StyleName,
    ImageBuffer,
    StyleSession,
    InferenceResult,
    StyleTransferOutcome,
    available_styles,
)
from .backends import InferenceBackend, OnnxRuntimeBackend, MockBackend, get_backend
from .session_registry import SessionRegistry, SessionState
from .invoker import InferenceInvoker

__all__ = [
    "StyleName",
    "ImageBuffer",
    "StyleSession",
    "InferenceResult",
    "StyleTransferOutcome",
    "available_styles",
    "InferenceBackend",
    "OnnxRuntimeBackend",
    "MockBackend",
    "get_backend",
    "SessionRegistry",
    "SessionState",
    "InferenceInvoker"
]
