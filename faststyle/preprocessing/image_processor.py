"""
Image Processing Pipeline

Validation, image loading and conversion of pixel buffers into the
planar float32 tensor the style models expect.
"""

import io
from pathlib import Path
from typing import Tuple, Union

import numpy as np
import structlog
from PIL import Image, ImageOps, UnidentifiedImageError

from ..models.types import ImageBuffer, MODEL_HEIGHT, MODEL_WIDTH
from ..utils.errors import DecodeError

logger = structlog.get_logger()

SUPPORTED_CHANNELS = (3, 4)


class ImageProcessor:
    """
    Converts decoded images into model input tensors.

    Features:
    - Buffer validation (empty, zero-sized, inconsistent length)
    - Alpha channel removal
    - Bilinear resize to the model's fixed input size
    - Planar [1, 3, H, W] float32 output with raw [0, 255] magnitudes
    """

    def __init__(
        self,
        target_size: Tuple[int, int] = (MODEL_WIDTH, MODEL_HEIGHT),
        resample: Image.Resampling = Image.Resampling.BILINEAR
    ):
        self.target_size = target_size
        self.resample = resample

    def validate(self, image: ImageBuffer) -> None:
        """Raise DecodeError if the buffer cannot describe an image."""

        if not image.data:
            raise DecodeError("Image buffer is empty")

        if image.width <= 0 or image.height <= 0:
            raise DecodeError(f"Invalid image dimensions: {image.width}x{image.height}")

        if image.channels not in SUPPORTED_CHANNELS:
            raise DecodeError(
                f"Unsupported channel count {image.channels}, expected one of {SUPPORTED_CHANNELS}"
            )

        expected = image.width * image.height * image.channels
        if len(image.data) != expected:
            raise DecodeError(
                f"Buffer length {len(image.data)} does not match "
                f"{image.width}x{image.height}x{image.channels} = {expected}"
            )

    def encode(self, image: ImageBuffer) -> np.ndarray:
        """
        Convert an image buffer to a read-only (1, 3, 224, 224) float32 tensor.

        Args:
            image: Interleaved RGB or RGBA buffer of any size

        Returns:
            Planar tensor, R plane then G plane then B plane
        """

        try:
            self.validate(image)
        except DecodeError as e:
            logger.error("Image validation failed", error=e.message)
            raise

        # Drop alpha before resampling so transparent pixels keep their colour
        rgb = image.to_array()[:, :, :3]

        if (image.width, image.height) != self.target_size:
            resized = Image.fromarray(np.ascontiguousarray(rgb)).resize(
                self.target_size, resample=self.resample
            )
            rgb = np.asarray(resized)

        # [H, W, 3] -> [3, H, W] -> [1, 3, H, W]
        tensor = np.ascontiguousarray(
            rgb.transpose(2, 0, 1)[np.newaxis, ...], dtype=np.float32
        )
        tensor.flags.writeable = False

        logger.debug("Image encoded",
                     source_size=image.size,
                     shape=tensor.shape)
        return tensor

    def load_image(self, source: Union[str, Path, bytes]) -> ImageBuffer:
        """
        Decode an image file from a path or encoded bytes into an RGBA buffer.

        EXIF orientation is applied so the pixels match what a viewer shows.
        """

        if isinstance(source, (bytes, bytearray)):
            if not source:
                raise DecodeError("Image data is empty")
            stream = io.BytesIO(source)
            origin = "<bytes>"
        else:
            path = Path(source)
            if not path.is_file():
                raise DecodeError(f"Image file not found: {path}")
            stream = path
            origin = str(path)

        try:
            with Image.open(stream) as img:
                img = ImageOps.exif_transpose(img)
                buffer = ImageBuffer.from_pil(img)
        except (UnidentifiedImageError, OSError, ValueError) as e:
            logger.error("Image decoding failed", source=origin, error=str(e))
            raise DecodeError(f"Failed to load image {origin}: {e}") from e

        logger.info("Image loaded", source=origin, width=buffer.width, height=buffer.height)
        return buffer


# Module-level processor for the functional API
_default_processor = ImageProcessor()


def encode(image: ImageBuffer) -> np.ndarray:
    """Encode an image buffer into the model input tensor."""
    return _default_processor.encode(image)


def load_image(source: Union[str, Path, bytes]) -> ImageBuffer:
    """Load an image file into an RGBA buffer."""
    return _default_processor.load_image(source)


def create_image_processor(**kwargs) -> ImageProcessor:
    """Factory function for an image processor."""
    return ImageProcessor(**kwargs)
