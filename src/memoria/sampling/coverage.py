"""Coverage analysis of validation samples.

Measures how well a sample represents its population along four dimensions
(emotional, temporal, participant, quality) and combines them into an
overall score in [0, 1].
"""

import logging
from typing import Optional

import numpy as np

from memoria.constants import (
    COVERAGE_WEIGHTS,
    IDEAL_QUALITY_MIX,
    MIN_PARTICIPANT_DENOMINATOR,
    TARGET_EMOTIONS,
    TEMPORAL_GAP_DAYS,
)
from memoria.types.memory import Memory
from memoria.types.sampling import (
    CoverageAnalysis,
    EmotionalCoverage,
    ParticipantCoverage,
    QualityDistribution,
    QualityTier,
    TemporalCoverage,
    TemporalDistribution,
    TimeRange,
)

logger = logging.getLogger(__name__)

EVEN_MAX_VARIATION = 0.5
CLUSTERED_MIN_VARIATION = 2.0


def relationship_types(memory: Memory) -> set[str]:
    """Relationship types a memory represents (dynamics type and participant relationships)."""
    found = set()
    if memory.relationship_dynamics and memory.relationship_dynamics.relationship_type:
        found.add(memory.relationship_dynamics.relationship_type.lower())
    for participant in memory.participants:
        if participant.relationship:
            found.add(participant.relationship.lower())
    return found


class CoverageAnalyzer:
    """Analyzes coverage of memory samples."""

    def analyze(
        self,
        samples: list[Memory],
        population_participant_ids: Optional[list[str]] = None,
        required_relationship_types: Optional[list[str]] = None,
        required_temporal_span: Optional[float] = None,
    ) -> CoverageAnalysis:
        """Analyze a sample's coverage.

        Args:
            samples: Sampled memories
            population_participant_ids: Every participant in the population;
                without it, participant coverage is measured against at least
                20 participants and nothing is reported missing
            required_relationship_types: Relationship types the sample must hold
            required_temporal_span: Minimum span in days the sample must cover

        Returns:
            CoverageAnalysis including the overall score
        """
        emotional = self.emotional_coverage(samples)
        temporal = self.temporal_coverage(samples)
        participants = self.participant_coverage(samples, population_participant_ids)
        quality = self.quality_distribution(samples)

        represented: set[str] = set()
        for memory in samples:
            represented.update(relationship_types(memory))
        missing_types = [
            rel for rel in (required_relationship_types or []) if rel.lower() not in represented
        ]
        shortfall = 0.0
        if required_temporal_span is not None:
            shortfall = max(0.0, required_temporal_span - temporal.span_days)

        analysis = CoverageAnalysis(
            emotional_coverage=emotional,
            temporal_coverage=temporal,
            participant_coverage=participants,
            quality_distribution=quality,
            missing_relationship_types=missing_types,
            temporal_span_shortfall_days=shortfall,
        )
        return analysis.model_copy(update={"overall_score": self.overall_score(analysis)})

    def emotional_coverage(self, samples: list[Memory]) -> EmotionalCoverage:
        found: set[str] = set()
        for memory in samples:
            found.update(memory.emotions())

        covered = [emotion for emotion in TARGET_EMOTIONS if emotion in found]
        return EmotionalCoverage(
            emotions_represented=sorted(found),
            coverage_percentage=len(covered) / len(TARGET_EMOTIONS) * 100,
            gaps=[emotion for emotion in TARGET_EMOTIONS if emotion not in found],
        )

    def temporal_coverage(self, samples: list[Memory]) -> TemporalCoverage:
        timestamps = sorted(t for t in (m.occurred_at() for m in samples) if t is not None)
        if not timestamps:
            return TemporalCoverage()

        gap_seconds = TEMPORAL_GAP_DAYS * 86400
        gaps = [
            TimeRange(start=earlier, end=later)
            for earlier, later in zip(timestamps, timestamps[1:])
            if (later - earlier).total_seconds() > gap_seconds
        ]

        return TemporalCoverage(
            time_range=TimeRange(start=timestamps[0], end=timestamps[-1]),
            span_days=(timestamps[-1] - timestamps[0]).total_seconds() / 86400,
            distribution=self.temporal_distribution([t.timestamp() for t in timestamps]),
            gaps=gaps,
        )

    @staticmethod
    def temporal_distribution(epoch_seconds: list[float]) -> TemporalDistribution:
        """Classify spacing by the coefficient of variation of the intervals."""
        if len(epoch_seconds) <= 2:
            return TemporalDistribution.SPARSE

        intervals = np.diff(np.asarray(epoch_seconds, dtype=float))
        mean_interval = float(intervals.mean())
        if mean_interval <= 0:
            # Every sample at the same instant
            return TemporalDistribution.CLUSTERED

        variation = float(intervals.std()) / mean_interval
        if variation < EVEN_MAX_VARIATION:
            return TemporalDistribution.EVEN
        if variation > CLUSTERED_MIN_VARIATION:
            return TemporalDistribution.CLUSTERED
        return TemporalDistribution.SPARSE

    def participant_coverage(
        self,
        samples: list[Memory],
        population_participant_ids: Optional[list[str]] = None,
    ) -> ParticipantCoverage:
        represented: dict[str, None] = {}
        for memory in samples:
            for pid in memory.participant_ids():
                represented.setdefault(pid, None)

        if population_participant_ids:
            population = list(dict.fromkeys(population_participant_ids))
            covered = [pid for pid in population if pid in represented]
            return ParticipantCoverage(
                participants_represented=list(represented),
                coverage_percentage=len(covered) / len(population) * 100,
                missing_participants=[pid for pid in population if pid not in represented],
            )

        denominator = max(len(represented), MIN_PARTICIPANT_DENOMINATOR)
        return ParticipantCoverage(
            participants_represented=list(represented),
            coverage_percentage=len(represented) / denominator * 100,
        )

    def quality_distribution(self, samples: list[Memory]) -> QualityDistribution:
        counts = {tier.value: 0 for tier in QualityTier}
        for memory in samples:
            counts[QualityTier.of(memory).value] += 1
        return QualityDistribution(**counts)

    # =========================================================================
    # Scoring
    # =========================================================================

    def overall_score(self, analysis: CoverageAnalysis) -> float:
        scores = {
            "emotional": analysis.emotional_coverage.coverage_percentage / 100,
            "temporal": self.temporal_score(analysis.temporal_coverage),
            "participant": analysis.participant_coverage.coverage_percentage / 100,
            "quality": self.quality_score(analysis.quality_distribution),
        }
        overall = sum(scores[name] * weight for name, weight in COVERAGE_WEIGHTS.items())
        return min(1.0, max(0.0, overall))

    @staticmethod
    def temporal_score(temporal: TemporalCoverage) -> float:
        score = 0.5
        if temporal.distribution is TemporalDistribution.EVEN:
            score += 0.3
        elif temporal.distribution is TemporalDistribution.SPARSE:
            score += 0.1
        score -= min(0.3, len(temporal.gaps) * 0.1)
        return min(1.0, max(0.0, score))

    @staticmethod
    def quality_score(quality: QualityDistribution) -> float:
        """1 minus the L1 distance from the ideal 20/60/20 quality mix."""
        total = quality.total()
        if total == 0:
            return 0.0
        distance = (
            abs(quality.high / total - IDEAL_QUALITY_MIX["high"])
            + abs(quality.medium / total - IDEAL_QUALITY_MIX["medium"])
            + abs(quality.low / total - IDEAL_QUALITY_MIX["low"])
        )
        return max(0.0, 1.0 - distance)
