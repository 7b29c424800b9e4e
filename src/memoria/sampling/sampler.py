"""Intelligent sampling of memories for human validation.

When the needs-review population exceeds reviewer capacity, the sampler
selects a subset that satisfies diversity quotas:

1. Quota pass: temporal endpoints, each required relationship type, emotions
   up to the emotional diversity target, participants up to the participant
   coverage target, and the minimum high/medium quality tiers
2. Fill pass: proportional stratified sampling over the remaining population
   (emotion, month, participant bucket, quality tier)

The low-quality maximum is never exceeded. Randomness comes from numpy's
seeded generator, so a seed makes the sample reproducible.
"""

import logging
import math
from typing import Optional

import numpy as np

from memoria.constants import (
    COVERAGE_WARNING_THRESHOLD,
    SMALL_DATASET_SIZE,
    TARGET_EMOTIONS,
    TEMPORAL_SPAN_TARGET_DAYS,
)
from memoria.sampling.coverage import CoverageAnalyzer, relationship_types
from memoria.types import DEFAULT_COVERAGE_REQUIREMENTS, DEFAULT_SAMPLING_STRATEGY
from memoria.types.memory import Memory
from memoria.types.sampling import (
    CoverageAnalysis,
    CoverageRequirements,
    ExpectedCharacteristics,
    ImportanceWeights,
    MemoryDataset,
    QualityDistribution,
    QualityTier,
    RandomSampling,
    SampledMemories,
    SamplingMetadata,
    SamplingParameters,
    SamplingStrategy,
    Stratification,
)

logger = logging.getLogger(__name__)

# Dataset-driven stratification thresholds
EMOTION_AXIS_DIVERSITY = 0.3
TIME_AXIS_SPREAD = 0.25
PARTICIPANT_AXIS_DISTRIBUTION = 0.3
QUALITY_AXIS_VARIANCE = 0.1

HIGH_DIVERSITY = 0.7
PARTICIPANT_COUNT_VARIETY = 10
MAX_QUALITY_VARIANCE = 0.25


class _Selection:
    """Sample under construction, enforcing size and low-quality caps."""

    def __init__(self, population: list[Memory], target: int, max_low: int) -> None:
        self.population = population
        self.target = target
        self.max_low = max_low
        self.chosen: dict[str, int] = {}
        self.low_count = 0
        self._index = {memory.id: i for i, memory in enumerate(population)}

    @property
    def full(self) -> bool:
        return len(self.chosen) >= self.target

    def allows(self, memory: Memory) -> bool:
        if memory.id in self.chosen or self.full:
            return False
        return QualityTier.of(memory) is not QualityTier.LOW or self.low_count < self.max_low

    def add(self, memory: Memory) -> bool:
        if not self.allows(memory):
            return False
        self.chosen[memory.id] = self._index[memory.id]
        if QualityTier.of(memory) is QualityTier.LOW:
            self.low_count += 1
        return True

    def memories(self) -> list[Memory]:
        """Selected memories in population order."""
        return [self.population[i] for i in sorted(self.chosen.values())]

    def remaining(self) -> list[Memory]:
        return [memory for memory in self.population if self.allows(memory)]


class IntelligentSampler:
    """Selects validation samples that satisfy coverage requirements.

    Args:
        default_seed: Seed used when a call does not supply one
        analyzer: Coverage analyzer (defaults to CoverageAnalyzer())
    """

    def __init__(
        self,
        default_seed: Optional[int] = None,
        analyzer: Optional[CoverageAnalyzer] = None,
    ) -> None:
        self.default_seed = default_seed
        self.analyzer = analyzer or CoverageAnalyzer()

    def sample_for_validation(
        self,
        memories: list[Memory],
        requirements: Optional[CoverageRequirements] = None,
        strategy: Optional[SamplingStrategy] = None,
        seed: Optional[int] = None,
    ) -> SampledMemories:
        """Select a sample satisfying the coverage requirements.

        Args:
            memories: Population to sample from
            requirements: Diversity quotas (defaults to DEFAULT_COVERAGE_REQUIREMENTS)
            strategy: Sampling strategy (defaults to DEFAULT_SAMPLING_STRATEGY)
            seed: Random seed; overrides the strategy's and the default seed

        Returns:
            SampledMemories with samples, coverage analysis and metadata
        """
        requirements = requirements or DEFAULT_COVERAGE_REQUIREMENTS
        strategy = strategy or DEFAULT_SAMPLING_STRATEGY
        if seed is None:
            seed = strategy.parameters.random.seed
        if seed is None:
            seed = self.default_seed

        population = list({memory.id: memory for memory in memories}.values())
        target = min(strategy.parameters.target_size, len(population))
        max_low = math.floor(requirements.quality_distribution.low_quality * target)

        logger.info(
            f"Sampling {target} of {len(population)} memories with {strategy.name} (seed={seed})"
        )

        rng = np.random.default_rng(seed)
        selection = _Selection(population, target, max_low)

        self._fill_quotas(selection, requirements, rng)
        if strategy.parameters.stratification and strategy.parameters.stratification.is_enabled():
            self._fill_stratified(selection, strategy.parameters.stratification, rng)
        self._fill_random(selection, rng)

        samples = selection.memories()
        population_participants = list(
            dict.fromkeys(pid for memory in population for pid in memory.participant_ids())
        )
        coverage = self.analyzer.analyze(
            samples,
            population_participants,
            requirements.relationship_types,
            requirements.temporal_span,
        )

        sampled = SampledMemories(
            samples=samples,
            coverage=coverage,
            metadata=SamplingMetadata(
                population_size=len(population),
                sample_size=len(samples),
                sampling_rate=len(samples) / len(population) if population else 0.0,
                strategy=strategy.name,
                seed=seed,
            ),
            requirements=requirements,
            population_participant_ids=population_participants,
        )

        logger.info(
            f"Sampling complete: {len(samples)} samples, "
            f"coverage {coverage.overall_score:.2f}"
        )
        return sampled

    # =========================================================================
    # Quota pass
    # =========================================================================

    def _pick(
        self, selection: _Selection, candidates: list[Memory], rng: np.random.Generator
    ) -> bool:
        allowed = [memory for memory in candidates if selection.allows(memory)]
        if not allowed:
            return False
        return selection.add(allowed[int(rng.integers(len(allowed)))])

    def _fill_quotas(
        self,
        selection: _Selection,
        requirements: CoverageRequirements,
        rng: np.random.Generator,
    ) -> None:
        population = selection.population

        # Temporal endpoints give the widest possible span
        dated = [(m.occurred_at(), m) for m in population if m.occurred_at() is not None]
        if dated:
            dated.sort(key=lambda pair: pair[0])
            for _, memory in (dated[0], dated[-1]):
                selection.add(memory)

        for rel_type in requirements.relationship_types:
            wanted = rel_type.lower()
            self._pick(
                selection, [m for m in population if wanted in relationship_types(m)], rng
            )

        population_emotions = sorted({e for m in population for e in m.emotions()})
        needed = math.ceil(requirements.emotional_diversity * len(population_emotions))
        covered = {e for m in selection.memories() for e in m.emotions()}
        for emotion in population_emotions:
            if len(covered) >= needed or selection.full:
                break
            if emotion in covered:
                continue
            if self._pick(selection, [m for m in population if emotion in m.emotions()], rng):
                covered = {e for m in selection.memories() for e in m.emotions()}

        self._fill_participants(selection, requirements.participant_coverage)

        quotas = (
            (QualityTier.HIGH, requirements.quality_distribution.high_quality),
            (QualityTier.MEDIUM, requirements.quality_distribution.medium_quality),
        )
        for tier, share in quotas:
            minimum = math.ceil(share * selection.target)
            have = sum(1 for m in selection.memories() if QualityTier.of(m) is tier)
            tier_members = [m for m in population if QualityTier.of(m) is tier]
            while have < minimum and self._pick(selection, tier_members, rng):
                have += 1

    def _fill_participants(self, selection: _Selection, coverage_target: float) -> None:
        population_ids = {pid for m in selection.population for pid in m.participant_ids()}
        if not population_ids:
            return

        covered = {pid for m in selection.memories() for pid in m.participant_ids()}
        while len(covered) / len(population_ids) < coverage_target and not selection.full:
            best: Optional[Memory] = None
            best_gain = 0
            for memory in selection.remaining():
                gain = len(set(memory.participant_ids()) - covered)
                if gain > best_gain:
                    best, best_gain = memory, gain
            if best is None:
                break
            selection.add(best)
            covered.update(best.participant_ids())

    # =========================================================================
    # Fill pass
    # =========================================================================

    @staticmethod
    def stratum_key(memory: Memory, stratification: Stratification) -> str:
        parts = []
        if stratification.by_emotion:
            context = memory.emotional_context
            emotion = context.primary_emotion.lower() if context and context.primary_emotion else "unknown"
            parts.append(f"emotion:{emotion}")
        if stratification.by_time_period:
            occurred = memory.occurred_at()
            parts.append(f"time:{occurred.strftime('%Y-%m') if occurred else 'unknown'}")
        if stratification.by_participant:
            count = len(memory.participants)
            bucket = "small" if count <= 2 else "medium" if count <= 5 else "large"
            parts.append(f"participants:{bucket}")
        if stratification.by_quality:
            parts.append(f"quality:{QualityTier.of(memory).value}")
        return "|".join(parts) or "default"

    def _fill_stratified(
        self,
        selection: _Selection,
        stratification: Stratification,
        rng: np.random.Generator,
    ) -> None:
        remaining = selection.remaining()
        slots = selection.target - len(selection.chosen)
        if slots <= 0 or not remaining:
            return

        strata: dict[str, list[Memory]] = {}
        for memory in remaining:
            strata.setdefault(self.stratum_key(memory, stratification), []).append(memory)

        for key, members in strata.items():
            allocation = round(len(members) / len(remaining) * slots)
            for i in rng.permutation(len(members))[:allocation]:
                selection.add(members[int(i)])
            logger.debug(f"Stratum {key}: {len(members)} members, {allocation} allocated")

    def _fill_random(self, selection: _Selection, rng: np.random.Generator) -> None:
        remaining = selection.remaining()
        for i in rng.permutation(len(remaining)):
            if selection.full:
                break
            selection.add(remaining[int(i)])

    # =========================================================================
    # Coverage and strategy
    # =========================================================================

    def ensure_representative_coverage(self, sample: SampledMemories) -> CoverageAnalysis:
        """Re-analyze a sample's coverage against its population.

        Logs a warning when the overall score is below 0.7 or the sample
        spans less time than the requirements ask for.
        """
        requirements = sample.requirements
        analysis = self.analyzer.analyze(
            sample.samples,
            sample.population_participant_ids,
            requirements.relationship_types if requirements else [],
            requirements.temporal_span if requirements else None,
        )

        shortfall = analysis.temporal_span_shortfall_days
        if analysis.overall_score < COVERAGE_WARNING_THRESHOLD or shortfall > 0:
            logger.warning(
                f"Coverage below threshold ({analysis.overall_score:.2f}): "
                f"emotion gaps={analysis.emotional_coverage.gaps}, "
                f"temporal gaps={len(analysis.temporal_coverage.gaps)}, "
                f"missing participants={analysis.participant_coverage.missing_participants}, "
                f"missing relationship types={analysis.missing_relationship_types}, "
                f"temporal span short by {shortfall:.1f} days"
            )
        return analysis

    def optimize_validation_efficiency(self, dataset: MemoryDataset) -> SamplingStrategy:
        """Choose a sampling strategy suited to a dataset's size and diversity.

        - Fewer than 100 memories: simple-random
        - High emotional diversity and temporal spread: balanced-stratified
        - Otherwise: balanced-stratified-sampling with axes chosen from the
          dataset's measured diversity

        Returns:
            SamplingStrategy with expected coverage and the observed quality mix
        """
        memories = dataset.memories
        size = len(memories)
        emotional_diversity = self._emotional_diversity(memories)
        temporal_spread = self._temporal_spread(memories)
        quality_variance = self._quality_variance(memories)
        participant_distribution = self._participant_distribution(memories)
        expected_quality = self._observed_quality(memories)

        logger.info(
            f"Dataset of {size}: emotional={emotional_diversity:.2f}, "
            f"temporal={temporal_spread:.2f}, quality variance={quality_variance:.2f}, "
            f"participants={participant_distribution:.2f}"
        )

        if size < SMALL_DATASET_SIZE:
            strategy = SamplingStrategy(
                name="simple-random",
                parameters=SamplingParameters(
                    target_size=min(50, size),
                    stratification=None,
                    random=RandomSampling(enabled=True, seed=self.default_seed),
                ),
                expected_characteristics=ExpectedCharacteristics(
                    expected_coverage=0.7, expected_quality=expected_quality
                ),
            )
        elif emotional_diversity > HIGH_DIVERSITY and temporal_spread > HIGH_DIVERSITY:
            strategy = SamplingStrategy(
                name="balanced-stratified",
                parameters=SamplingParameters(
                    target_size=min(200, size // 10),
                    stratification=Stratification(
                        by_emotion=True, by_time_period=True, by_quality=True
                    ),
                    random=RandomSampling(enabled=True, seed=self.default_seed),
                    importance_weights=ImportanceWeights(),
                ),
                expected_characteristics=ExpectedCharacteristics(
                    expected_coverage=0.85, expected_quality=expected_quality
                ),
            )
        else:
            stratification = Stratification(
                by_emotion=emotional_diversity > EMOTION_AXIS_DIVERSITY,
                by_time_period=temporal_spread > TIME_AXIS_SPREAD,
                by_participant=participant_distribution > PARTICIPANT_AXIS_DISTRIBUTION,
                by_quality=quality_variance > QUALITY_AXIS_VARIANCE,
            )
            if not stratification.is_enabled():
                stratification = Stratification(by_quality=True)
            strategy = SamplingStrategy(
                name=DEFAULT_SAMPLING_STRATEGY.name,
                parameters=SamplingParameters(
                    target_size=min(150, size // 10),
                    stratification=stratification,
                    random=RandomSampling(enabled=True, seed=self.default_seed),
                    importance_weights=ImportanceWeights(),
                ),
                expected_characteristics=ExpectedCharacteristics(
                    expected_coverage=DEFAULT_SAMPLING_STRATEGY.expected_characteristics.expected_coverage,
                    expected_quality=expected_quality,
                ),
            )

        logger.info(f"Selected sampling strategy {strategy.name}")
        return strategy

    @staticmethod
    def _emotional_diversity(memories: list[Memory]) -> float:
        emotions = {
            m.emotional_context.primary_emotion.lower()
            for m in memories
            if m.emotional_context and m.emotional_context.primary_emotion
        }
        return min(1.0, len(emotions) / len(TARGET_EMOTIONS))

    @staticmethod
    def _temporal_spread(memories: list[Memory]) -> float:
        timestamps = [t for t in (m.occurred_at() for m in memories) if t is not None]
        if len(timestamps) <= 1:
            return 0.0
        spread_days = (max(timestamps) - min(timestamps)).total_seconds() / 86400
        return min(1.0, spread_days / TEMPORAL_SPAN_TARGET_DAYS)

    @staticmethod
    def _quality_variance(memories: list[Memory]) -> float:
        if not memories:
            return 0.0
        confidences = np.array(
            [m.metadata.confidence if m.metadata.confidence is not None else 0.5 for m in memories]
        )
        return min(1.0, float(confidences.var()) / MAX_QUALITY_VARIANCE)

    @staticmethod
    def _participant_distribution(memories: list[Memory]) -> float:
        counts = {len(m.participants) or 1 for m in memories}
        return min(1.0, len(counts) / PARTICIPANT_COUNT_VARIETY)

    @staticmethod
    def _observed_quality(memories: list[Memory]) -> QualityDistribution:
        if not memories:
            return QualityDistribution()
        counts = {tier.value: 0 for tier in QualityTier}
        for memory in memories:
            counts[QualityTier.of(memory).value] += 1
        return QualityDistribution(**{tier: count / len(memories) for tier, count in counts.items()})
