"""Inference backend implementations."""
from .onnx_backend import OnnxInferenceBackend

__all__ = ["OnnxInferenceBackend"]
