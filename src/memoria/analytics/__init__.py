"""Accuracy tracking and validation analytics."""

from memoria.analytics.accuracy import (
    AccuracyMetrics,
    AccuracyTracker,
    AccuracyTrendPoint,
    ConfidencePerformance,
    FactorPerformance,
)
from memoria.analytics.reporting import (
    AnalyticsReport,
    BatchRecord,
    EffectivenessMetrics,
    SamplingEffectiveness,
    SystemHealth,
    ValidationAnalytics,
)

__all__ = [
    "AccuracyTracker",
    "AccuracyMetrics",
    "AccuracyTrendPoint",
    "ConfidencePerformance",
    "FactorPerformance",
    "ValidationAnalytics",
    "AnalyticsReport",
    "BatchRecord",
    "EffectivenessMetrics",
    "SamplingEffectiveness",
    "SystemHealth",
]
