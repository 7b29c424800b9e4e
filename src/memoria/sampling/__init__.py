"""Coverage-constrained sampling of memories for validation."""

from memoria.sampling.coverage import CoverageAnalyzer
from memoria.sampling.sampler import IntelligentSampler

__all__ = ["CoverageAnalyzer", "IntelligentSampler"]
