"""Tests for memoria.sampling.

Tests:
- CoverageAnalyzer per-dimension coverage and overall score
- IntelligentSampler quotas, caps and reproducibility
- Sampling strategy selection from dataset characteristics
"""

import logging
from datetime import datetime, timedelta, timezone

import pytest

from memoria.constants import TARGET_EMOTIONS
from memoria.sampling import CoverageAnalyzer, IntelligentSampler
from memoria.types import (
    CoverageRequirements,
    MemoryDataset,
    Participant,
    QualityDistribution,
    QualityTier,
    RandomSampling,
    SamplingParameters,
    SamplingStrategy,
    Stratification,
    TemporalDistribution,
)

RELATIONSHIP_TYPES = ["family", "friend", "romantic", "professional", "neighbor"]
CONFIDENCE_CYCLE = [0.9, 0.7, 0.6, 0.3]
START = datetime(2023, 1, 1, tzinfo=timezone.utc)

# ============================================================================
# Fixtures
# ============================================================================


@pytest.fixture
def population(make_memory):
    """60 memories covering 12 emotions, 9 participants, 5 relationship types.

    Every fourth memory is low quality.
    """
    return [
        make_memory(
            f"mem-{i:02d}",
            timestamp=(START + timedelta(days=3 * i)).isoformat(),
            confidence=CONFIDENCE_CYCLE[i % 4],
            emotion=TARGET_EMOTIONS[i % 12],
            secondary=[],
            others=[Participant(id=f"p-{i % 8}")],
            relationship_type=RELATIONSHIP_TYPES[i % 5],
        )
        for i in range(60)
    ]


def strategy(target: int, seed=None) -> SamplingStrategy:
    return SamplingStrategy(
        name="test-stratified",
        parameters=SamplingParameters(
            target_size=target,
            stratification=Stratification(by_emotion=True, by_quality=True),
            random=RandomSampling(enabled=True, seed=seed),
        ),
    )


@pytest.fixture
def sampler():
    return IntelligentSampler()


@pytest.fixture
def analyzer():
    return CoverageAnalyzer()


# ============================================================================
# Coverage analysis
# ============================================================================


class TestCoverageAnalyzer:
    """Test per-dimension coverage."""

    def test_emotional_coverage(self, analyzer, make_memory) -> None:
        samples = [
            make_memory("a", emotion="joy", secondary=[]),
            make_memory("b", emotion="Sadness", secondary=["nostalgia"]),
        ]
        coverage = analyzer.emotional_coverage(samples)

        assert coverage.emotions_represented == ["joy", "nostalgia", "sadness"]
        assert coverage.coverage_percentage == pytest.approx(2 / 12 * 100)
        assert len(coverage.gaps) == 10
        assert "joy" not in coverage.gaps

    def test_temporal_gaps_and_span(self, analyzer, make_memory) -> None:
        samples = [
            make_memory("a", timestamp="2024-01-01T00:00:00Z"),
            make_memory("b", timestamp="2024-01-20T00:00:00Z"),
            make_memory("c", timestamp="2024-01-03T00:00:00Z"),
            make_memory("d", timestamp=None),
        ]
        coverage = analyzer.temporal_coverage(samples)

        assert coverage.span_days == pytest.approx(19)
        assert len(coverage.gaps) == 1
        assert coverage.gaps[0].start == datetime(2024, 1, 3, tzinfo=timezone.utc)
        assert coverage.time_range.end == datetime(2024, 1, 20, tzinfo=timezone.utc)

    def test_no_timestamps(self, analyzer, make_memory) -> None:
        coverage = analyzer.temporal_coverage([make_memory("a", timestamp=None)])

        assert coverage.span_days == 0.0
        assert coverage.distribution is TemporalDistribution.SPARSE

    @pytest.mark.parametrize(
        "seconds,expected",
        [
            ([0, 86400, 172800, 259200], TemporalDistribution.EVEN),
            ([0, 1, 2, 1_000_000], TemporalDistribution.SPARSE),
            ([0, 1, 2, 3, 4, 5, 6, 7, 8, 9, 1009], TemporalDistribution.CLUSTERED),
            ([5, 5, 5], TemporalDistribution.CLUSTERED),
            ([0, 100], TemporalDistribution.SPARSE),
        ],
    )
    def test_temporal_distribution(self, seconds, expected) -> None:
        assert CoverageAnalyzer.temporal_distribution(seconds) is expected

    def test_participant_coverage_against_population(self, analyzer, make_memory) -> None:
        coverage = analyzer.participant_coverage(
            [make_memory("a")], ["p-self", "p-friend", "p-x", "p-y"]
        )

        assert coverage.coverage_percentage == 50.0
        assert coverage.missing_participants == ["p-x", "p-y"]

    def test_participant_coverage_without_population(self, analyzer, make_memory) -> None:
        coverage = analyzer.participant_coverage([make_memory("a")])

        assert coverage.coverage_percentage == pytest.approx(10.0)
        assert coverage.missing_participants == []

    def test_quality_score(self) -> None:
        ideal = QualityDistribution(high=1, medium=3, low=1)
        skewed = QualityDistribution(high=5)

        assert CoverageAnalyzer.quality_score(ideal) == pytest.approx(1.0)
        assert CoverageAnalyzer.quality_score(skewed) == 0.0
        assert CoverageAnalyzer.quality_score(QualityDistribution()) == 0.0

    def test_missing_relationship_types(self, analyzer, make_memory) -> None:
        analysis = analyzer.analyze(
            [make_memory("a", relationship_type="Family")], None, ["family", "romantic"]
        )
        assert analysis.missing_relationship_types == ["romantic"]

    def test_temporal_span_shortfall(self, analyzer, make_memory) -> None:
        samples = [
            make_memory("a", timestamp="2024-01-01T00:00:00Z"),
            make_memory("b", timestamp="2024-01-02T00:00:00Z"),
            make_memory("c", timestamp="2024-01-03T00:00:00Z"),
        ]

        short = analyzer.analyze(samples, required_temporal_span=365)
        met = analyzer.analyze(samples, required_temporal_span=2)
        unchecked = analyzer.analyze(samples)

        assert short.temporal_coverage.span_days == pytest.approx(2.0)
        assert short.temporal_span_shortfall_days == pytest.approx(363.0)
        assert met.temporal_span_shortfall_days == 0.0
        assert unchecked.temporal_span_shortfall_days == 0.0

    def test_empty_sample(self, analyzer) -> None:
        analysis = analyzer.analyze([])

        assert analysis.overall_score >= 0.0
        assert analysis.quality_distribution.total() == 0


# ============================================================================
# Sampling
# ============================================================================


class TestSampleForValidation:
    """Test quota-constrained sample selection."""

    def test_same_seed_same_sample(self, sampler, population) -> None:
        first = sampler.sample_for_validation(population, strategy=strategy(30), seed=42)
        second = sampler.sample_for_validation(population, strategy=strategy(30), seed=42)

        assert [m.id for m in first.samples] == [m.id for m in second.samples]
        assert first.metadata.seed == 42

    def test_size_and_low_quality_cap(self, sampler, population) -> None:
        sampled = sampler.sample_for_validation(population, strategy=strategy(30), seed=1)
        low = [m for m in sampled.samples if QualityTier.of(m) is QualityTier.LOW]

        assert len(sampled.samples) <= 30
        assert len(low) <= 9
        assert len({m.id for m in sampled.samples}) == len(sampled.samples)

    def test_quotas_satisfied(self, sampler, population) -> None:
        sampled = sampler.sample_for_validation(population, strategy=strategy(30), seed=3)
        ids = {m.id for m in sampled.samples}
        coverage = sampled.coverage

        assert {"mem-00", "mem-59"} <= ids
        assert coverage.missing_relationship_types == []
        assert coverage.participant_coverage.coverage_percentage == 100.0
        assert len(coverage.emotional_coverage.emotions_represented) >= 10
        assert 0.0 <= coverage.overall_score <= 1.0

    def test_metadata(self, sampler, population) -> None:
        sampled = sampler.sample_for_validation(population, strategy=strategy(30), seed=3)

        assert sampled.metadata.population_size == 60
        assert sampled.metadata.sample_size == len(sampled.samples)
        assert sampled.metadata.sampling_rate == pytest.approx(len(sampled.samples) / 60)
        assert sampled.metadata.strategy == "test-stratified"
        assert len(sampled.population_participant_ids) == 9

    def test_samples_in_population_order(self, sampler, population) -> None:
        sampled = sampler.sample_for_validation(population, strategy=strategy(30), seed=5)
        ids = [m.id for m in sampled.samples]
        assert ids == sorted(ids)

    def test_target_larger_than_population(self, sampler, population) -> None:
        subset = population[:10]
        sampled = sampler.sample_for_validation(subset, strategy=strategy(100), seed=1)
        low = [m for m in sampled.samples if QualityTier.of(m) is QualityTier.LOW]

        assert len(sampled.samples) <= 10
        assert len(low) <= 3

    def test_empty_population(self, sampler) -> None:
        sampled = sampler.sample_for_validation([], seed=1)

        assert sampled.samples == []
        assert sampled.metadata.sampling_rate == 0.0

    def test_duplicate_ids_sampled_once(self, sampler, population) -> None:
        sampled = sampler.sample_for_validation(
            population[:5] + population[:5], strategy=strategy(10), seed=1
        )
        assert sampled.metadata.population_size == 5

    def test_seed_precedence(self, population) -> None:
        sampler = IntelligentSampler(default_seed=11)

        assert sampler.sample_for_validation(population, strategy=strategy(10)).metadata.seed == 11
        assert (
            sampler.sample_for_validation(population, strategy=strategy(10, seed=12)).metadata.seed
            == 12
        )
        assert (
            sampler.sample_for_validation(
                population, strategy=strategy(10, seed=12), seed=13
            ).metadata.seed
            == 13
        )

    def test_custom_requirements(self, sampler, population) -> None:
        requirements = CoverageRequirements(relationship_types=["neighbor"])
        sampled = sampler.sample_for_validation(
            population, requirements=requirements, strategy=strategy(20), seed=2
        )

        assert sampled.coverage.missing_relationship_types == []
        assert sampled.requirements == requirements

    def test_stratum_key(self, make_memory) -> None:
        memory = make_memory("a", emotion="Joy", timestamp="2024-03-05T00:00:00Z", confidence=0.3)
        key = IntelligentSampler.stratum_key(
            memory,
            Stratification(by_emotion=True, by_time_period=True, by_participant=True, by_quality=True),
        )

        assert key == "emotion:joy|time:2024-03|participants:small|quality:low"
        assert IntelligentSampler.stratum_key(memory, Stratification()) == "default"


class TestEnsureRepresentativeCoverage:
    """Test re-analysis of existing samples."""

    def test_low_coverage_warns(self, sampler, population, caplog) -> None:
        sampled = sampler.sample_for_validation(population, strategy=strategy(1), seed=1)

        with caplog.at_level(logging.WARNING):
            analysis = sampler.ensure_representative_coverage(sampled)

        assert analysis.overall_score < 0.7
        assert "Coverage below threshold" in caplog.text

    def test_temporal_span_requirement_reported(self, sampler, make_memory, caplog) -> None:
        memories = [
            make_memory(f"mem-{day}", timestamp=f"2024-01-0{day}T00:00:00Z") for day in (1, 2, 3)
        ]
        sampled = sampler.sample_for_validation(
            memories,
            requirements=CoverageRequirements(temporal_span=365),
            strategy=strategy(10),
            seed=1,
        )

        with caplog.at_level(logging.WARNING):
            analysis = sampler.ensure_representative_coverage(sampled)

        assert sampled.coverage.temporal_span_shortfall_days == pytest.approx(363.0)
        assert analysis.temporal_span_shortfall_days == pytest.approx(363.0)
        assert "temporal span short by 363.0 days" in caplog.text

    def test_population_span_meets_default_requirement(self, sampler, population) -> None:
        sampled = sampler.sample_for_validation(population, strategy=strategy(30), seed=3)
        assert sampled.coverage.temporal_span_shortfall_days == 0.0

    def test_matches_sampling_analysis(self, sampler, population) -> None:
        sampled = sampler.sample_for_validation(population, strategy=strategy(30), seed=4)
        analysis = sampler.ensure_representative_coverage(sampled)

        assert analysis.overall_score == pytest.approx(sampled.coverage.overall_score)


# ============================================================================
# Strategy selection
# ============================================================================


class TestOptimizeValidationEfficiency:
    """Test strategy choice from dataset characteristics."""

    def test_small_dataset_simple_random(self, sampler, population) -> None:
        result = sampler.optimize_validation_efficiency(MemoryDataset.from_memories(population[:50]))

        assert result.name == "simple-random"
        assert result.parameters.target_size == 50
        assert result.parameters.stratification is None
        assert result.expected_characteristics.expected_coverage == 0.7

    def test_diverse_dataset_balanced_stratified(self, sampler, make_memory) -> None:
        memories = [
            make_memory(
                f"mem-{i}",
                emotion=TARGET_EMOTIONS[i % 12],
                timestamp=(START + timedelta(days=2 * i)).isoformat(),
            )
            for i in range(300)
        ]
        result = sampler.optimize_validation_efficiency(MemoryDataset.from_memories(memories))

        assert result.name == "balanced-stratified"
        assert result.parameters.target_size == 30
        assert result.parameters.stratification.by_emotion
        assert result.expected_characteristics.expected_coverage == 0.85

    def test_uniform_dataset_falls_back_to_quality_axis(self, sampler, make_memory) -> None:
        memories = [make_memory(f"mem-{i}") for i in range(300)]
        result = sampler.optimize_validation_efficiency(MemoryDataset.from_memories(memories))

        assert result.name == "balanced-stratified-sampling"
        assert result.parameters.target_size == 30
        assert result.parameters.stratification == Stratification(by_quality=True)
        assert result.expected_characteristics.expected_quality.high == pytest.approx(1.0)
