"""Sampling and coverage types.

Coverage requirements describe the diversity a review sample must have;
SampledMemories carries the selected subset, and CoverageAnalysis reports how
well a sample represents its population.
"""

from datetime import datetime
from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

from memoria.constants import HIGH_QUALITY_CONFIDENCE, MEDIUM_QUALITY_CONFIDENCE
from memoria.types.memory import Memory


class QualityTier(str, Enum):
    """Extraction-quality tier derived from extraction confidence."""

    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"

    @classmethod
    def of(cls, memory: Memory) -> "QualityTier":
        confidence = memory.metadata.confidence
        if confidence is None:
            confidence = 0.5
        if confidence >= HIGH_QUALITY_CONFIDENCE:
            return cls.HIGH
        if confidence >= MEDIUM_QUALITY_CONFIDENCE:
            return cls.MEDIUM
        return cls.LOW


class QualityDistribution(BaseModel):
    """Per-tier values; counts in analyses, fractions in requirements."""

    high: float = 0
    medium: float = 0
    low: float = 0

    def total(self) -> float:
        return self.high + self.medium + self.low


class QualityQuota(BaseModel):
    """Quality-tier quotas as fractions of the sample.

    Attributes:
        high_quality: Minimum share of high-quality samples
        medium_quality: Minimum share of medium-quality samples
        low_quality: Maximum share of low-quality samples
    """

    model_config = ConfigDict(frozen=True)

    high_quality: float = Field(default=0.20, ge=0.0, le=1.0)
    medium_quality: float = Field(default=0.50, ge=0.0, le=1.0)
    low_quality: float = Field(default=0.30, ge=0.0, le=1.0)


class CoverageRequirements(BaseModel):
    """Diversity quotas a validation sample should satisfy.

    Attributes:
        emotional_diversity: Minimum share of the population's emotions (0-1)
        temporal_span: Minimum temporal span in days
        participant_coverage: Minimum share of the population's participants (0-1)
        relationship_types: Relationship types that must be represented
        quality_distribution: Quality-tier quotas
    """

    model_config = ConfigDict(frozen=True)

    emotional_diversity: float = Field(default=0.80, ge=0.0, le=1.0)
    temporal_span: float = Field(default=30, ge=0.0)
    participant_coverage: float = Field(default=0.90, ge=0.0, le=1.0)
    relationship_types: list[str] = Field(
        default_factory=lambda: ["family", "friend", "romantic", "professional"]
    )
    quality_distribution: QualityQuota = Field(default_factory=QualityQuota)


class EmotionalCoverage(BaseModel):
    emotions_represented: list[str] = Field(default_factory=list)
    coverage_percentage: float = 0.0
    gaps: list[str] = Field(default_factory=list)


class TimeRange(BaseModel):
    start: Optional[datetime] = None
    end: Optional[datetime] = None


class TemporalDistribution(str, Enum):
    EVEN = "even"
    CLUSTERED = "clustered"
    SPARSE = "sparse"


class TemporalCoverage(BaseModel):
    """Temporal coverage of a sample.

    Attributes:
        time_range: Earliest and latest sampled timestamps
        span_days: Days between earliest and latest sample
        distribution: Shape of the sample over time
        gaps: Periods longer than seven days without a sample
    """

    time_range: TimeRange = Field(default_factory=TimeRange)
    span_days: float = 0.0
    distribution: TemporalDistribution = TemporalDistribution.SPARSE
    gaps: list[TimeRange] = Field(default_factory=list)


class ParticipantCoverage(BaseModel):
    participants_represented: list[str] = Field(default_factory=list)
    coverage_percentage: float = 0.0
    missing_participants: list[str] = Field(default_factory=list)


class CoverageAnalysis(BaseModel):
    """Per-dimension coverage of a sample, explicit gaps and overall score.

    Attributes:
        emotional_coverage: Emotions represented and missing
        temporal_coverage: Time range, distribution and gaps
        participant_coverage: Participants represented and missing
        quality_distribution: Sample count per quality tier
        missing_relationship_types: Required relationship types not sampled
        temporal_span_shortfall_days: Days the sample span falls short of the
            required temporal span (0 when met)
        overall_score: Weighted coverage score (0.0-1.0)
    """

    emotional_coverage: EmotionalCoverage = Field(default_factory=EmotionalCoverage)
    temporal_coverage: TemporalCoverage = Field(default_factory=TemporalCoverage)
    participant_coverage: ParticipantCoverage = Field(default_factory=ParticipantCoverage)
    quality_distribution: QualityDistribution = Field(default_factory=QualityDistribution)
    missing_relationship_types: list[str] = Field(default_factory=list)
    temporal_span_shortfall_days: float = Field(default=0.0, ge=0.0)
    overall_score: float = Field(default=0.0, ge=0.0, le=1.0)


class SamplingMetadata(BaseModel):
    """Bookkeeping for a sampling run.

    Attributes:
        population_size: Memories available for sampling
        sample_size: Memories selected
        sampling_rate: sample_size / population_size
        strategy: Name of the sampling strategy
        seed: Random seed, when the run is reproducible
    """

    population_size: int = 0
    sample_size: int = 0
    sampling_rate: float = 0.0
    strategy: str = ""
    seed: Optional[int] = None


class SampledMemories(BaseModel):
    """Selected memories plus their coverage analysis.

    The population's participant ids and the requirements are kept so that
    coverage can be re-checked later without the full population.
    """

    samples: list[Memory] = Field(default_factory=list)
    coverage: CoverageAnalysis = Field(default_factory=CoverageAnalysis)
    metadata: SamplingMetadata = Field(default_factory=SamplingMetadata)
    requirements: Optional[CoverageRequirements] = None
    population_participant_ids: list[str] = Field(default_factory=list)


class Stratification(BaseModel):
    """Axes to stratify a population by."""

    model_config = ConfigDict(frozen=True)

    by_emotion: bool = False
    by_time_period: bool = False
    by_participant: bool = False
    by_quality: bool = False

    def is_enabled(self) -> bool:
        return self.by_emotion or self.by_time_period or self.by_participant or self.by_quality


class RandomSampling(BaseModel):
    model_config = ConfigDict(frozen=True)

    enabled: bool = True
    seed: Optional[int] = None


class ImportanceWeights(BaseModel):
    model_config = ConfigDict(frozen=True)

    emotional_significance: float = 0.40
    relationship_impact: float = 0.35
    temporal_importance: float = 0.25


class SamplingParameters(BaseModel):
    model_config = ConfigDict(frozen=True)

    target_size: int = Field(default=100, ge=0)
    stratification: Optional[Stratification] = None
    random: RandomSampling = Field(default_factory=RandomSampling)
    importance_weights: Optional[ImportanceWeights] = None


class ExpectedCharacteristics(BaseModel):
    model_config = ConfigDict(frozen=True)

    expected_coverage: float = Field(default=0.0, ge=0.0, le=1.0)
    expected_quality: QualityDistribution = Field(default_factory=QualityDistribution)


class SamplingStrategy(BaseModel):
    """A sampling strategy and what it is expected to produce."""

    model_config = ConfigDict(frozen=True)

    name: str
    parameters: SamplingParameters = Field(default_factory=SamplingParameters)
    expected_characteristics: ExpectedCharacteristics = Field(
        default_factory=ExpectedCharacteristics
    )


class DateRange(BaseModel):
    start: Optional[datetime] = None
    end: Optional[datetime] = None


class DatasetMetadata(BaseModel):
    total_count: int = 0
    date_range: DateRange = Field(default_factory=DateRange)
    unique_participants: int = 0


class MemoryDataset(BaseModel):
    """A population of memories with summary metadata."""

    memories: list[Memory] = Field(default_factory=list)
    metadata: DatasetMetadata = Field(default_factory=DatasetMetadata)

    @classmethod
    def from_memories(cls, memories: list[Memory]) -> "MemoryDataset":
        """Build a dataset, deriving its metadata from the memories."""
        timestamps = [t for t in (m.occurred_at() for m in memories) if t is not None]
        participants = {pid for m in memories for pid in m.participant_ids()}
        return cls(
            memories=memories,
            metadata=DatasetMetadata(
                total_count=len(memories),
                date_range=DateRange(
                    start=min(timestamps) if timestamps else None,
                    end=max(timestamps) if timestamps else None,
                ),
                unique_participants=len(participants),
            ),
        )
