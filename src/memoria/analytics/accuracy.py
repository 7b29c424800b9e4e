"""Auto-confirmation accuracy tracking.

Keeps a bounded history of human feedback and derives accuracy metrics,
sliding-window trends and performance per confidence bucket.
"""

import logging
from collections import deque
from dataclasses import dataclass, field
from datetime import datetime

import numpy as np

from memoria.constants import FEEDBACK_HISTORY_LIMIT
from memoria.types.validation import CONFIDENCE_FACTOR_NAMES, Decision, ValidationFeedback

logger = logging.getLogger(__name__)

CONFIDENCE_BUCKETS = (
    (0.0, 0.2, "0-20%"),
    (0.2, 0.4, "20-40%"),
    (0.4, 0.6, "40-60%"),
    (0.6, 0.8, "60-80%"),
    (0.8, 1.0, "80-100%"),
)


@dataclass
class FactorPerformance:
    """How a confidence factor relates to decision correctness.

    Attributes:
        correlation: Pearson correlation between factor value and correctness
        average_value: Mean factor value
        correct_rate: Share of correct decisions
        sample_size: Number of feedback items
    """

    correlation: float
    average_value: float
    correct_rate: float
    sample_size: int


@dataclass
class AccuracyMetrics:
    """Accuracy of automatic decisions over the tracked feedback."""

    total_decisions: int = 0
    correct_decisions: int = 0
    overall_accuracy: float = 0.0
    false_positive_rate: float = 0.0
    false_negative_rate: float = 0.0
    decision_distribution: dict[str, int] = field(
        default_factory=lambda: {decision.value: 0 for decision in Decision}
    )
    accuracy_by_decision: dict[str, float] = field(
        default_factory=lambda: {decision.value: 0.0 for decision in Decision}
    )
    confidence_calibration: float = 0.0
    factor_performance: dict[str, FactorPerformance] = field(default_factory=dict)


@dataclass
class AccuracyTrendPoint:
    timestamp: datetime
    window_size: int
    accuracy: float
    false_positive_rate: float
    false_negative_rate: float
    average_confidence: float


@dataclass
class ConfidencePerformance:
    confidence_range: str
    count: int
    accuracy: float
    average_confidence: float


def _window_rates(window: list[ValidationFeedback]) -> tuple[float, float, float]:
    total = len(window)
    correct = sum(1 for item in window if item.was_correct())
    false_positives = sum(1 for item in window if item.is_false_positive())
    false_negatives = sum(1 for item in window if item.is_false_negative())
    return correct / total, false_positives / total, false_negatives / total


class AccuracyTracker:
    """Tracks auto-confirmation accuracy over time.

    Args:
        history_limit: Most recent feedback items kept
    """

    def __init__(self, history_limit: int = FEEDBACK_HISTORY_LIMIT) -> None:
        self._history: deque[ValidationFeedback] = deque(maxlen=history_limit)

    def __len__(self) -> int:
        return len(self._history)

    def add_feedback(self, feedback: ValidationFeedback) -> None:
        self._history.append(feedback)

    def add_feedback_batch(self, feedback: list[ValidationFeedback]) -> None:
        for item in feedback:
            self.add_feedback(item)
        logger.debug(f"Tracked {len(feedback)} feedback items ({len(self._history)} retained)")

    def clear_history(self) -> None:
        self._history.clear()

    def recent_feedback(self, count: int = 10) -> list[ValidationFeedback]:
        if count <= 0:
            return []
        return list(self._history)[-count:]

    def accuracy_metrics(self) -> AccuracyMetrics:
        """Overall, per-decision and per-factor accuracy of tracked feedback."""
        history = list(self._history)
        if not history:
            return AccuracyMetrics()

        metrics = AccuracyMetrics(total_decisions=len(history))
        correct_by_decision = {decision.value: 0 for decision in Decision}

        for item in history:
            decision = item.original_result.decision.value
            metrics.decision_distribution[decision] += 1
            if item.was_correct():
                metrics.correct_decisions += 1
                correct_by_decision[decision] += 1

        accuracy, fp_rate, fn_rate = _window_rates(history)
        metrics.overall_accuracy = accuracy
        metrics.false_positive_rate = fp_rate
        metrics.false_negative_rate = fn_rate
        metrics.accuracy_by_decision = {
            decision: (correct_by_decision[decision] / count if count else 0.0)
            for decision, count in metrics.decision_distribution.items()
        }
        metrics.confidence_calibration = self._confidence_calibration()
        metrics.factor_performance = self._factor_performance(history)
        return metrics

    def accuracy_trend(self, window_size: int = 50) -> list[AccuracyTrendPoint]:
        """Accuracy over sliding windows advancing by half a window."""
        history = list(self._history)
        if window_size <= 0 or len(history) < window_size:
            return []

        step = max(1, window_size // 2)
        trend = []
        for end in range(window_size, len(history) + 1, step):
            window = history[end - window_size:end]
            accuracy, fp_rate, fn_rate = _window_rates(window)
            trend.append(
                AccuracyTrendPoint(
                    timestamp=window[-1].timestamp,
                    window_size=window_size,
                    accuracy=accuracy,
                    false_positive_rate=fp_rate,
                    false_negative_rate=fn_rate,
                    average_confidence=float(
                        np.mean([item.original_result.confidence for item in window])
                    ),
                )
            )
        return trend

    def performance_by_confidence(self) -> list[ConfidencePerformance]:
        """Accuracy per 20%-wide confidence bucket (the last includes 1.0)."""
        performance = []
        for low, high, name in CONFIDENCE_BUCKETS:
            in_bucket = [
                item
                for item in self._history
                if low <= item.original_result.confidence < high
                or (high == 1.0 and item.original_result.confidence == 1.0)
            ]
            if not in_bucket:
                performance.append(
                    ConfidencePerformance(name, 0, 0.0, (low + high) / 2)
                )
                continue
            correct = sum(1 for item in in_bucket if item.was_correct())
            performance.append(
                ConfidencePerformance(
                    confidence_range=name,
                    count=len(in_bucket),
                    accuracy=correct / len(in_bucket),
                    average_confidence=float(
                        np.mean([item.original_result.confidence for item in in_bucket])
                    ),
                )
            )
        return performance

    def _confidence_calibration(self) -> float:
        """1 minus the count-weighted gap between confidence and accuracy."""
        buckets = [bucket for bucket in self.performance_by_confidence() if bucket.count > 0]
        total = sum(bucket.count for bucket in buckets)
        if total == 0:
            return 0.0
        error = sum(
            abs(bucket.average_confidence - bucket.accuracy) * bucket.count for bucket in buckets
        )
        return 1.0 - error / total

    @staticmethod
    def _factor_performance(
        history: list[ValidationFeedback],
    ) -> dict[str, FactorPerformance]:
        correctness = np.array([1.0 if item.was_correct() else 0.0 for item in history])
        performance = {}
        for name in CONFIDENCE_FACTOR_NAMES:
            values = np.array(
                [item.original_result.confidence_factors.as_dict()[name] for item in history]
            )
            performance[name] = FactorPerformance(
                correlation=_correlation(values, correctness),
                average_value=float(values.mean()),
                correct_rate=float(correctness.mean()),
                sample_size=len(history),
            )
        return performance


def _correlation(values: np.ndarray, outcomes: np.ndarray) -> float:
    """Pearson correlation, 0.0 when either side has no variance."""
    if len(values) < 2 or values.std() == 0 or outcomes.std() == 0:
        return 0.0
    correlation = float(np.corrcoef(values, outcomes)[0, 1])
    return 0.0 if np.isnan(correlation) else correlation

