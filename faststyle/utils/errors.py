"""
Error taxonomy for the style transfer pipeline.

Every stage raises a subclass of StyleTransferError tagged with a ``kind``
so callers can present the failure category without inspecting types.
"""

from pathlib import Path
from typing import Optional


class StyleTransferError(Exception):
    """Base class for all pipeline failures."""

    kind: str = "style_transfer"

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message

    def to_dict(self) -> dict:
        """Serialize for logging or an API response."""
        return {"kind": self.kind, "message": self.message}


class DecodeError(StyleTransferError):
    """Source image is empty, malformed or unreadable."""

    kind = "decode"


class ShapeError(StyleTransferError):
    """Model output does not match the fixed tensor contract."""

    kind = "shape"


class ModelLoadError(StyleTransferError):
    """Model artifact is missing, unreadable or rejected by the backend."""

    kind = "model_load"

    def __init__(self, message: str, style: Optional[str] = None, path: Optional[Path] = None):
        super().__init__(message)
        self.style = style
        self.path = path

    def to_dict(self) -> dict:
        data = super().to_dict()
        data["style"] = self.style
        data["path"] = str(self.path) if self.path else None
        return data


class InferenceError(StyleTransferError):
    """Backend computation failed."""

    kind = "inference"
