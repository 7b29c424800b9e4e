"""Validation analytics and monitoring.

Aggregates batch results and human feedback into performance metrics, batch
trends, a system health assessment, recommendations and effectiveness scores.
"""

import logging
from collections import deque
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Callable, Optional

from memoria.analytics.accuracy import AccuracyMetrics, AccuracyTracker, AccuracyTrendPoint
from memoria.constants import (
    BATCH_HISTORY_LIMIT,
    FALSE_NEGATIVE_CEILING,
    FALSE_POSITIVE_CEILING,
    FEEDBACK_HISTORY_LIMIT,
    HIGH_QUALITY_CONFIDENCE,
    MEDIUM_QUALITY_CONFIDENCE,
    TARGET_THROUGHPUT_PER_MINUTE,
)
from memoria.types.sampling import QualityDistribution, SampledMemories, TemporalDistribution
from memoria.types.validation import BatchValidationResult, DecisionCounts, ValidationFeedback

logger = logging.getLogger(__name__)

HEALTHY_SCORE = 0.8
WARNING_SCORE = 0.6
LOW_ACCURACY = 0.8
RECOMMEND_ACCURACY = 0.85
LOW_THROUGHPUT = 30
LOW_BATCH_CONFIDENCE = 0.6
SLOW_PROCESSING_MS = 100
CALIBRATION_MIN_COUNT = 10
CALIBRATION_MAX_GAP = 0.2


@dataclass
class BatchRecord:
    timestamp: datetime
    total_memories: int
    decisions: DecisionCounts
    batch_confidence: float
    processing_time: float
    throughput: float  # memories per minute
    quality_distribution: QualityDistribution

    @property
    def auto_approval_rate(self) -> float:
        if self.total_memories == 0:
            return 0.0
        return self.decisions.auto_approved / self.total_memories


@dataclass
class PerformanceMetrics:
    total_memories_processed: int = 0
    total_validation_time: float = 0.0
    average_processing_time: float = 0.0
    throughput_per_hour: float = 0.0


@dataclass
class BatchTrend:
    timestamp: datetime
    throughput: float
    average_confidence: float
    auto_approval_rate: float
    processing_time: float


@dataclass
class SystemHealth:
    """Overall status: healthy (> 0.8), warning (> 0.6) or critical."""

    overall: str
    score: float
    issues: list[str] = field(default_factory=list)
    uptime_seconds: float = 0.0


@dataclass
class AnalyticsReport:
    timestamp: datetime
    accuracy: AccuracyMetrics
    performance: PerformanceMetrics
    batch_trends: list[BatchTrend]
    system_health: SystemHealth
    recommendations: list[str]


@dataclass
class EffectivenessMetrics:
    auto_approval_rate: float
    human_workload_reduction: float
    quality_maintenance: float
    time_efficiency: float
    overall_effectiveness: float


@dataclass
class SamplingEffectiveness:
    average_coverage: float
    sampling_efficiency: float
    representativeness_score: float
    recommendations: list[str] = field(default_factory=list)


class ValidationAnalytics:
    """Records batches and feedback and reports on validation effectiveness.

    Args:
        feedback_history_limit: Feedback items kept by the accuracy tracker
        batch_history_limit: Batch records kept
        clock: Returns the current time
    """

    def __init__(
        self,
        feedback_history_limit: int = FEEDBACK_HISTORY_LIMIT,
        batch_history_limit: int = BATCH_HISTORY_LIMIT,
        clock: Optional[Callable[[], datetime]] = None,
    ) -> None:
        self._clock = clock or (lambda: datetime.now(timezone.utc))
        self.accuracy_tracker = AccuracyTracker(feedback_history_limit)
        self._batches: deque[BatchRecord] = deque(maxlen=batch_history_limit)
        self._performance = PerformanceMetrics()
        self._started_at = self._clock()

    # =========================================================================
    # Recording
    # =========================================================================

    def record_batch(self, result: BatchValidationResult) -> BatchRecord:
        """Record a batch result and update performance metrics."""
        throughput = 0.0
        if result.processing_time > 0:
            throughput = result.total_memories / result.processing_time * 1000 * 60

        record = BatchRecord(
            timestamp=self._clock(),
            total_memories=result.total_memories,
            decisions=result.decisions,
            batch_confidence=result.batch_confidence,
            processing_time=result.processing_time,
            throughput=throughput,
            quality_distribution=self._confidence_tiers(result),
        )
        self._batches.append(record)

        perf = self._performance
        perf.total_memories_processed += result.total_memories
        perf.total_validation_time += result.processing_time
        if perf.total_memories_processed > 0:
            perf.average_processing_time = (
                perf.total_validation_time / perf.total_memories_processed
            )
        hours = (self._clock() - self._started_at).total_seconds() / 3600
        if hours > 0:
            perf.throughput_per_hour = perf.total_memories_processed / hours

        logger.info(
            f"Recorded batch of {result.total_memories}: "
            f"approve rate {record.auto_approval_rate:.2f}, "
            f"confidence {result.batch_confidence:.2f}"
        )
        return record

    @staticmethod
    def _confidence_tiers(result: BatchValidationResult) -> QualityDistribution:
        distribution = QualityDistribution()
        for item in result.results:
            if item.confidence >= HIGH_QUALITY_CONFIDENCE:
                distribution.high += 1
            elif item.confidence >= MEDIUM_QUALITY_CONFIDENCE:
                distribution.medium += 1
            else:
                distribution.low += 1
        return distribution

    def record_feedback(self, feedback: list[ValidationFeedback]) -> None:
        self.accuracy_tracker.add_feedback_batch(feedback)
        logger.info(
            f"Recorded {len(feedback)} feedback items, accuracy "
            f"{self.accuracy_tracker.accuracy_metrics().overall_accuracy:.2f}"
        )

    def clear(self) -> None:
        self.accuracy_tracker.clear_history()
        self._batches.clear()
        self._performance = PerformanceMetrics()
        self._started_at = self._clock()
        logger.info("Analytics data cleared")

    # =========================================================================
    # Reporting
    # =========================================================================

    def report(self) -> AnalyticsReport:
        """Full report: accuracy, performance, trends, health, recommendations."""
        accuracy = self.accuracy_tracker.accuracy_metrics()
        return AnalyticsReport(
            timestamp=self._clock(),
            accuracy=accuracy,
            performance=PerformanceMetrics(**vars(self._performance)),
            batch_trends=self.batch_trends(),
            system_health=self.system_health(accuracy),
            recommendations=self.recommendations(accuracy),
        )

    def accuracy_trend(self, window_size: int = 50) -> list[AccuracyTrendPoint]:
        return self.accuracy_tracker.accuracy_trend(window_size)

    def batch_trends(self, count: int = 20) -> list[BatchTrend]:
        return [
            BatchTrend(
                timestamp=batch.timestamp,
                throughput=batch.throughput,
                average_confidence=batch.batch_confidence,
                auto_approval_rate=batch.auto_approval_rate,
                processing_time=batch.processing_time,
            )
            for batch in list(self._batches)[-count:]
        ]

    def system_health(self, accuracy: Optional[AccuracyMetrics] = None) -> SystemHealth:
        """Health score from accuracy, error rates and recent throughput."""
        accuracy = accuracy or self.accuracy_tracker.accuracy_metrics()
        recent = list(self._batches)[-5:]
        throughput = sum(b.throughput for b in recent) / len(recent) if recent else 0.0

        error_score = 1 - (accuracy.false_positive_rate + accuracy.false_negative_rate) / 2
        throughput_score = min(1.0, throughput / TARGET_THROUGHPUT_PER_MINUTE)
        score = accuracy.overall_accuracy * 0.5 + error_score * 0.3 + throughput_score * 0.2

        issues = []
        if accuracy.overall_accuracy < LOW_ACCURACY:
            issues.append(f"Low accuracy: {accuracy.overall_accuracy:.1%}")
        if accuracy.false_positive_rate > FALSE_POSITIVE_CEILING:
            issues.append(f"High false positive rate: {accuracy.false_positive_rate:.1%}")
        if accuracy.false_negative_rate > FALSE_NEGATIVE_CEILING:
            issues.append(f"High false negative rate: {accuracy.false_negative_rate:.1%}")
        if throughput < LOW_THROUGHPUT:
            issues.append(f"Low throughput: {throughput:.1f} memories/minute")
        if recent:
            confidence = sum(b.batch_confidence for b in recent) / len(recent)
            if confidence < LOW_BATCH_CONFIDENCE:
                issues.append(f"Low batch confidence: {confidence:.1%}")

        if score > HEALTHY_SCORE:
            overall = "healthy"
        elif score > WARNING_SCORE:
            overall = "warning"
        else:
            overall = "critical"

        return SystemHealth(
            overall=overall,
            score=score,
            issues=issues,
            uptime_seconds=(self._clock() - self._started_at).total_seconds(),
        )

    def recommendations(self, accuracy: Optional[AccuracyMetrics] = None) -> list[str]:
        accuracy = accuracy or self.accuracy_tracker.accuracy_metrics()
        recommendations = []

        if accuracy.overall_accuracy < RECOMMEND_ACCURACY:
            recommendations.append("Consider adjusting confidence thresholds to improve accuracy")
        if accuracy.false_positive_rate > FALSE_POSITIVE_CEILING:
            recommendations.append("Increase auto-approval threshold to reduce false positives")
        if accuracy.false_negative_rate > FALSE_NEGATIVE_CEILING:
            recommendations.append("Decrease auto-rejection threshold to reduce false negatives")
        if self._performance.average_processing_time > SLOW_PROCESSING_MS:
            recommendations.append("Optimize processing pipeline to improve throughput")

        poorly_calibrated = any(
            bucket.count > CALIBRATION_MIN_COUNT
            and abs(bucket.accuracy - bucket.average_confidence) > CALIBRATION_MAX_GAP
            for bucket in self.accuracy_tracker.performance_by_confidence()
        )
        if poorly_calibrated:
            recommendations.append(
                "Recalibrate confidence scoring - prediction accuracy mismatch detected"
            )
        return recommendations

    def effectiveness(self) -> EffectivenessMetrics:
        """How much human work automation saves without losing quality."""
        accuracy = self.accuracy_tracker.accuracy_metrics()
        recent = list(self._batches)[-10:]

        total = sum(b.total_memories for b in recent)
        approval_rate = sum(b.decisions.auto_approved for b in recent) / total if total else 0.0
        automated = sum(b.decisions.auto_approved + b.decisions.auto_rejected for b in recent)
        quality = accuracy.overall_accuracy * (
            1 - (accuracy.false_positive_rate + accuracy.false_negative_rate) / 2
        )
        time_efficiency = 0.0
        if recent:
            average_throughput = sum(b.throughput for b in recent) / len(recent)
            time_efficiency = min(1.0, average_throughput / TARGET_THROUGHPUT_PER_MINUTE)

        # Share of memories no human had to look at
        workload_reduction = automated / total if total else 0.0

        return EffectivenessMetrics(
            auto_approval_rate=approval_rate,
            human_workload_reduction=workload_reduction,
            quality_maintenance=quality,
            time_efficiency=time_efficiency,
            overall_effectiveness=(
                approval_rate * 0.3 + workload_reduction * 0.3 + quality * 0.3 + time_efficiency * 0.1
            ),
        )

    def sampling_effectiveness(self, samples: list[SampledMemories]) -> SamplingEffectiveness:
        """Coverage, efficiency and representativeness across sampling runs."""
        if not samples:
            return SamplingEffectiveness(0.0, 0.0, 0.0, ["No sampling data available"])

        count = len(samples)
        average_coverage = sum(s.coverage.overall_score for s in samples) / count
        efficiency = (
            sum(
                min(1.0, s.coverage.overall_score / max(0.1, s.metadata.sampling_rate))
                for s in samples
            )
            / count
        )
        representativeness = (
            sum(
                s.coverage.emotional_coverage.coverage_percentage / 100 * 0.4
                + (
                    0.8
                    if s.coverage.temporal_coverage.distribution is TemporalDistribution.EVEN
                    else 0.4
                )
                * 0.3
                + s.coverage.participant_coverage.coverage_percentage / 100 * 0.3
                for s in samples
            )
            / count
        )

        recommendations = []
        low_emotional = [s for s in samples if s.coverage.emotional_coverage.coverage_percentage < 60]
        if len(low_emotional) > count * 0.5:
            recommendations.append("Increase emotional diversity in sampling strategy")
        gappy = [s for s in samples if len(s.coverage.temporal_coverage.gaps) > 2]
        if len(gappy) > count * 0.3:
            recommendations.append("Improve temporal distribution in samples")
        if any(s.metadata.sampling_rate > 0.5 for s in samples):
            recommendations.append("Optimize sampling rate - current strategy may be over-sampling")

        return SamplingEffectiveness(
            average_coverage=average_coverage,
            sampling_efficiency=efficiency,
            representativeness_score=representativeness,
            recommendations=recommendations,
        )
