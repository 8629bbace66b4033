"""Preprocessing package initialization."""

from .image_processor import ImageProcessor, encode, load_image, create_image_processor

__all__ = ["ImageProcessor", "encode", "load_image", "create_image_processor"]
