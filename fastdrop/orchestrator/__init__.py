"""Orchestrator package - coordinates upload workflows."""
from .core import UploadEngine
from .progress import ProgressEstimator
from .registry import UploadRegistry
from .single_upload import SingleUploadHandler

__all__ = ["UploadEngine", "ProgressEstimator", "UploadRegistry", "SingleUploadHandler"]
