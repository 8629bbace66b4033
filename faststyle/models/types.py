"""
Core value types shared across the style transfer pipeline.
"""

import threading
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any, List, Optional, Tuple, Union

import numpy as np
from PIL import Image

# Fixed size required by the style transfer models
MODEL_WIDTH = 224
MODEL_HEIGHT = 224
MODEL_CHANNELS = 3
TENSOR_SHAPE = (1, MODEL_CHANNELS, MODEL_HEIGHT, MODEL_WIDTH)
TENSOR_SIZE = MODEL_CHANNELS * MODEL_HEIGHT * MODEL_WIDTH

OUTPUT_WIDTH = MODEL_WIDTH
OUTPUT_HEIGHT = MODEL_HEIGHT


class StyleName(str, Enum):
    """Pretrained styles, one packaged model artifact each."""
    MOSAIC = "mosaic"
    CANDY = "candy"
    RAIN_PRINCESS = "rain-princess"
    UDNIE = "udnie"
    POINTILISM = "pointilism"

    @property
    def label(self) -> str:
        return _STYLE_LABELS[self]

    @classmethod
    def parse(cls, value: Union[str, "StyleName"]) -> "StyleName":
        """Resolve a style from its name, rejecting unknown values."""
        if isinstance(value, cls):
            return value
        try:
            return cls(value)
        except ValueError:
            raise ValueError(
                f"Unknown style: {value!r}. Available: {[s.value for s in cls]}"
            ) from None


_STYLE_LABELS = {
    StyleName.MOSAIC: "Mosaic",
    StyleName.CANDY: "Candy",
    StyleName.RAIN_PRINCESS: "Rain Princess",
    StyleName.UDNIE: "Udnie",
    StyleName.POINTILISM: "Pointilism",
}


def available_styles() -> List[Tuple[str, str]]:
    """(name, label) pairs for every style, in declaration order."""
    return [(style.value, style.label) for style in StyleName]


@dataclass(frozen=True)
class ImageBuffer:
    """
    Decoded pixel buffer with interleaved 8-bit channels.

    ``channels`` is 4 for RGBA or 3 for RGB. The buffer is not validated on
    construction; the codec checks it before use.
    """
    data: bytes
    width: int
    height: int
    channels: int = 4

    @property
    def size(self) -> Tuple[int, int]:
        return (self.width, self.height)

    def to_array(self) -> np.ndarray:
        """View the buffer as an (H, W, C) uint8 array."""
        array = np.frombuffer(self.data, dtype=np.uint8)
        return array.reshape(self.height, self.width, self.channels)

    def to_pil(self) -> Image.Image:
        return Image.fromarray(self.to_array())

    @classmethod
    def from_pil(cls, image: Image.Image) -> "ImageBuffer":
        """Build an RGBA buffer from any PIL image."""
        rgba = image.convert("RGBA")
        return cls(data=rgba.tobytes(), width=rgba.width, height=rgba.height, channels=4)


@dataclass
class StyleSession:
    """A loaded model artifact bound to one style."""
    style: StyleName
    handle: Any
    input_name: str
    output_name: str
    artifact_path: Path
    load_time: float = 0.0
    # Set when the backend cannot run one session from several threads at once
    lock: Optional[threading.Lock] = field(default=None, repr=False)


@dataclass(frozen=True)
class InferenceResult:
    tensor: np.ndarray
    inference_time: float


@dataclass(frozen=True)
class StyleTransferOutcome:
    """Result handed back to the caller once per request."""
    image: ImageBuffer
    width: int
    height: int
    inference_time: float
    style: StyleName

    def to_dict(self) -> dict:
        return {
            "style": self.style.value,
            "width": self.width,
            "height": self.height,
            "inference_time": self.inference_time,
        }
