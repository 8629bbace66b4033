"""
Style Transfer Service

Single entry point tying the pipeline together:

    encode(image) -> registry.acquire(style) -> invoker.run(...) -> decode(output)

Every stage fails fast with a tagged StyleTransferError; no partial
results are returned and nothing is retried here.
"""

from pathlib import Path
from typing import List, Optional, Tuple, Union

import structlog

from ..models.invoker import InferenceInvoker
from ..models.session_registry import SessionRegistry
from ..models.types import (
    ImageBuffer,
    OUTPUT_HEIGHT,
    OUTPUT_WIDTH,
    StyleName,
    StyleTransferOutcome,
    available_styles,
)
from ..postprocessing.tensor_decoder import TensorDecoder
from ..preprocessing.image_processor import ImageProcessor
from ..utils.config import AppSettings, get_settings, validate_config
from ..utils.monitoring import MetricsContext

logger = structlog.get_logger()


class StyleTransferService:
    """
    Orchestrates one style transfer request.

    The registry is passed in so its cache outlives individual requests and
    can be shared or isolated as the caller chooses.
    """

    def __init__(
        self,
        registry: SessionRegistry,
        invoker: Optional[InferenceInvoker] = None,
        image_processor: Optional[ImageProcessor] = None,
        tensor_decoder: Optional[TensorDecoder] = None
    ):
        self.registry = registry
        self.invoker = invoker or InferenceInvoker()
        self.image_processor = image_processor or ImageProcessor()
        self.tensor_decoder = tensor_decoder or TensorDecoder()

    async def transfer_style(
        self,
        image: ImageBuffer,
        style: Union[StyleName, str]
    ) -> StyleTransferOutcome:
        """
        Apply a style to a decoded image.

        Args:
            image: Source pixel buffer of any size
            style: Style to apply

        Returns:
            StyleTransferOutcome with a 224x224 RGBA image and inference time

        Raises:
            ValueError: unknown style name
            DecodeError, ModelLoadError, InferenceError, ShapeError
        """
        style = StyleName.parse(style)

        with MetricsContext("transfer_style", component="service",
                            style=style.value, source_size=image.size):
            # 1. Convert image to tensor (resized to 224x224)
            tensor = self.image_processor.encode(image)

            # 2. Resolve the cached session and run the model
            session = await self.registry.acquire(style)
            result = await self.invoker.run(session, tensor)

            # 3. Convert output tensor back to pixels
            output = self.tensor_decoder.decode(result.tensor)

        return StyleTransferOutcome(
            image=output,
            width=OUTPUT_WIDTH,
            height=OUTPUT_HEIGHT,
            inference_time=result.inference_time,
            style=style
        )

    async def transfer_style_from_path(
        self,
        source: Union[str, Path, bytes],
        style: Union[StyleName, str]
    ) -> StyleTransferOutcome:
        """Load an image file (path or encoded bytes) and stylize it."""
        image = self.image_processor.load_image(source)
        return await self.transfer_style(image, style)

    def clear_cache(self) -> int:
        """Release all cached sessions."""
        return self.registry.evict_all()

    @staticmethod
    def available_styles() -> List[Tuple[str, str]]:
        return available_styles()


# Global service instance
_service: Optional[StyleTransferService] = None


def get_style_transfer_service(settings: Optional[AppSettings] = None) -> StyleTransferService:
    """Get the shared service, creating it and its registry on first use."""
    global _service

    if _service is None:
        settings = settings or get_settings()
        for warning in validate_config(settings):
            logger.warning("Configuration warning", warning=warning)
        _service = StyleTransferService(SessionRegistry(settings.inference))

    return _service
