"""Auto-confirmation: confidence scoring, decisions and threshold calibration.

Example:
    >>> from memoria.auto_confirmation import AutoConfirmationEngine
    >>> engine = AutoConfirmationEngine()
    >>> batch = engine.process_batch(memories)
    >>> update = engine.recommend_thresholds(feedback)
    >>> engine.apply_threshold_update(update)
"""

from memoria.auto_confirmation.confidence import ConfidenceAssessment, ConfidenceCalculator
from memoria.auto_confirmation.engine import AutoConfirmationEngine
from memoria.auto_confirmation.threshold_manager import (
    FeedbackAnalysis,
    ThresholdManager,
    analyze_feedback,
    calculate_threshold_update,
)

__all__ = [
    "AutoConfirmationEngine",
    "ConfidenceCalculator",
    "ConfidenceAssessment",
    "ThresholdManager",
    "FeedbackAnalysis",
    "analyze_feedback",
    "calculate_threshold_update",
]
