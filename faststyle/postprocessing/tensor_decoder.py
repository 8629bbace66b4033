"""
Tensor Decoding

Converts model output tensors back into displayable RGBA pixel buffers.
"""

from typing import Union

import numpy as np
import structlog

from ..models.types import (
    ImageBuffer,
    MODEL_CHANNELS,
    MODEL_HEIGHT,
    MODEL_WIDTH,
)
from ..utils.errors import ShapeError

logger = structlog.get_logger()


class TensorDecoder:
    """
    Decode planar [1, 3, H, W] tensors into interleaved RGBA buffers.

    Model output may drift outside [0, 255]; values are clamped first and then
    rounded half-up to 8 bits. NaN values decode to 0.
    """

    def __init__(self, width: int = MODEL_WIDTH, height: int = MODEL_HEIGHT):
        self.width = width
        self.height = height

    @property
    def expected_size(self) -> int:
        return MODEL_CHANNELS * self.height * self.width

    def decode(self, tensor: Union[np.ndarray, list]) -> ImageBuffer:
        try:
            data = np.asarray(tensor, dtype=np.float32)
        except (ValueError, TypeError) as e:
            logger.error("Output tensor is not numeric", error=str(e))
            raise ShapeError(f"Output tensor is not a numeric array: {e}") from e

        if data.size != self.expected_size:
            logger.error("Output tensor shape mismatch",
                         shape=data.shape,
                         size=data.size,
                         expected=self.expected_size)
            raise ShapeError(
                f"Expected {self.expected_size} tensor elements "
                f"(3x{self.height}x{self.width}), got {data.size} with shape {data.shape}"
            )

        planes = data.reshape(MODEL_CHANNELS, self.height, self.width)
        planes = np.nan_to_num(planes, nan=0.0)
        planes = np.clip(planes, 0.0, 255.0)
        planes = np.floor(planes + 0.5).astype(np.uint8)

        pixels = np.empty((self.height, self.width, 4), dtype=np.uint8)
        pixels[:, :, :3] = planes.transpose(1, 2, 0)
        pixels[:, :, 3] = 255

        return ImageBuffer(
            data=pixels.tobytes(),
            width=self.width,
            height=self.height,
            channels=4
        )


_default_decoder = TensorDecoder()


def decode(tensor: Union[np.ndarray, list]) -> ImageBuffer:
    """Decode a model output tensor into a 224x224 RGBA buffer."""
    return _default_decoder.decode(tensor)


def create_tensor_decoder(**kwargs) -> TensorDecoder:
    """Factory function for a tensor decoder."""
    return TensorDecoder(**kwargs)
