"""Services package initialization."""

from .style_transfer_service import StyleTransferService, get_style_transfer_service

__all__ = ["StyleTransferService", "get_style_transfer_service"]
