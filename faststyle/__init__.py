"""faststyle: feed-forward neural style transfer on ONNX models."""

from .models import (
    StyleName,
    ImageBuffer,
    StyleSession,
    InferenceResult,
    StyleTransferOutcome,
    SessionRegistry,
    SessionState,
    InferenceInvoker,
)
from .preprocessing import encode, load_image
from .postprocessing import decode
from .services import StyleTransferService, get_style_transfer_service
from .utils import (
    StyleTransferError,
    DecodeError,
    ShapeError,
    ModelLoadError,
    InferenceError,
)

__version__ = "0.1.0"

__all__ = [
    "StyleName",
    "ImageBuffer",
    "StyleSession",
    "InferenceResult",
    "StyleTransferOutcome",
    "SessionRegistry",
    "SessionState",
    "InferenceInvoker",
    "encode",
    "load_image",
    "decode",
    "StyleTransferService",
    "get_style_transfer_service",
    "StyleTransferError",
    "DecodeError",
    "ShapeError",
    "ModelLoadError",
    "InferenceError",
]
