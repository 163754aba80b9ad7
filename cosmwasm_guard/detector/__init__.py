"""
Detector execution engine
"""

from .base import Detector
from .context import AnalysisContext
from .registry import DEFAULT_PARALLEL_THRESHOLD, DetectorRegistry

__all__ = ["DEFAULT_PARALLEL_THRESHOLD", "AnalysisContext", "Detector", "DetectorRegistry"]
