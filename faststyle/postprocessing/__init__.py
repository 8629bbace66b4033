"""Postprocessing package initialization."""

from .tensor_decoder import TensorDecoder, decode, create_tensor_decoder

__all__ = ["TensorDecoder", "decode", "create_tensor_decoder"]
