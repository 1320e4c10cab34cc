"""Inference interfaces."""
from .backend import InferenceBackend

__all__ = ["InferenceBackend"]
