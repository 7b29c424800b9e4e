"""Significance, prioritisation and review queue types."""

from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field

from memoria.constants import (
    HIGH_SIGNIFICANCE,
    MEDIUM_SIGNIFICANCE,
    MINUTES_PER_MEMORY,
)
from memoria.types.memory import Memory

SIGNIFICANCE_FACTOR_NAMES = (
    "emotional_intensity",
    "relationship_impact",
    "life_event_significance",
    "participant_vulnerability",
    "temporal_importance",
)


class SignificanceTier(str, Enum):
    """Significance bucket: high >= 0.7, medium 0.4-0.7, low < 0.4."""

    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"

    @classmethod
    def of(cls, overall: float) -> "SignificanceTier":
        if overall >= HIGH_SIGNIFICANCE:
            return cls.HIGH
        if overall >= MEDIUM_SIGNIFICANCE:
            return cls.MEDIUM
        return cls.LOW


class SignificanceFactors(BaseModel):
    """The five significance factor scores (each 0.0-1.0)."""

    model_config = ConfigDict(frozen=True)

    emotional_intensity: float = Field(ge=0.0, le=1.0)
    relationship_impact: float = Field(ge=0.0, le=1.0)
    life_event_significance: float = Field(ge=0.0, le=1.0)
    participant_vulnerability: float = Field(ge=0.0, le=1.0)
    temporal_importance: float = Field(ge=0.0, le=1.0)

    @classmethod
    def uniform(cls, value: float) -> "SignificanceFactors":
        return cls(**{name: value for name in SIGNIFICANCE_FACTOR_NAMES})

    def as_dict(self) -> dict[str, float]:
        return {name: getattr(self, name) for name in SIGNIFICANCE_FACTOR_NAMES}

    def ranked(self) -> list[tuple[str, float]]:
        """Factors sorted by descending value (stable on ties)."""
        return sorted(self.as_dict().items(), key=lambda item: item[1], reverse=True)


class EmotionalSignificanceScore(BaseModel):
    """How emotionally and contextually important a memory is.

    Attributes:
        overall: Fixed-weight combination of the factors (0.0-1.0)
        factors: Individual factor scores
        narrative: Human-readable explanation
        fallback: True when scoring failed and a low default was used
    """

    model_config = ConfigDict(frozen=True)

    overall: float = Field(ge=0.0, le=1.0)
    factors: SignificanceFactors
    narrative: str
    fallback: bool = False

    @property
    def tier(self) -> SignificanceTier:
        return SignificanceTier.of(self.overall)


class ReviewContext(BaseModel):
    """Guidance shown to the reviewer alongside a memory."""

    model_config = ConfigDict(frozen=True)

    review_reason: str
    focus_areas: list[str] = Field(default_factory=list)
    related_memory_ids: list[str] = Field(default_factory=list)
    validation_hints: list[str] = Field(default_factory=list)


class PrioritizedMemory(BaseModel):
    """A memory with its significance, rank and review context.

    Attributes:
        memory: The memory to review
        significance_score: Emotional significance score
        priority_rank: Rank in the list (1 = highest)
        review_context: Review reason, focus areas and hints
    """

    model_config = ConfigDict(frozen=True)

    memory: Memory
    significance_score: EmotionalSignificanceScore
    priority_rank: int = Field(ge=1)
    review_context: ReviewContext

    @property
    def overall(self) -> float:
        return self.significance_score.overall


class SignificanceDistribution(BaseModel):
    """Count of memories per significance tier."""

    high: int = 0
    medium: int = 0
    low: int = 0

    @classmethod
    def from_scores(cls, overalls: list[float]) -> "SignificanceDistribution":
        distribution = cls()
        for overall in overalls:
            tier = SignificanceTier.of(overall)
            setattr(distribution, tier.value, getattr(distribution, tier.value) + 1)
        return distribution


class PrioritizedMemoryList(BaseModel):
    """Memories ordered by descending significance."""

    memories: list[PrioritizedMemory] = Field(default_factory=list)
    total_count: int = 0
    significance_distribution: SignificanceDistribution = Field(
        default_factory=SignificanceDistribution
    )


class ValidatorExpertise(str, Enum):
    """Skill level of the validator working the queue."""

    BEGINNER = "beginner"
    INTERMEDIATE = "intermediate"
    EXPERT = "expert"

    @property
    def minutes_per_memory(self) -> int:
        return MINUTES_PER_MEMORY[self.value]


class ResourceAllocation(BaseModel):
    """Review resources available for a queue.

    Attributes:
        available_time: Validator time available, in minutes
        target_date: Target completion date (ISO date string)
        validator_expertise: Validator skill level
    """

    model_config = ConfigDict(frozen=True)

    available_time: float = Field(ge=0.0)
    target_date: Optional[str] = None
    validator_expertise: ValidatorExpertise = ValidatorExpertise.INTERMEDIATE

    def capacity(self) -> int:
        """Number of memories that fit into the available time."""
        return int(self.available_time // self.validator_expertise.minutes_per_memory)


class ValidationQueue(BaseModel):
    """Memories awaiting human validation plus the resources to review them."""

    id: str
    pending_memories: list[Memory] = Field(default_factory=list)
    resource_allocation: ResourceAllocation


class CoverageMetrics(BaseModel):
    """How much of the emotional/temporal/participant space a queue covers."""

    emotional_range: float = 0.0
    temporal_span: float = 0.0
    participant_diversity: float = 0.0


class ExpectedOutcomes(BaseModel):
    """Projected result of working an optimised queue.

    Attributes:
        estimated_time: Minutes needed for the selected memories
        expected_quality: Mean significance of the selected memories
        coverage: Coverage metrics of the selection
    """

    estimated_time: float = 0.0
    expected_quality: float = 0.0
    coverage: CoverageMetrics = Field(default_factory=CoverageMetrics)


class QueueStrategyReport(BaseModel):
    """Strategy chosen for a queue, with its parameters and outcomes."""

    name: str
    parameters: dict[str, Any] = Field(default_factory=dict)
    expected_outcomes: ExpectedOutcomes = Field(default_factory=ExpectedOutcomes)


class OptimizedQueue(BaseModel):
    """Review queue ordered and trimmed to the available resources.

    Attributes:
        original_queue: Queue as submitted
        optimized_order: Memories to review, in review order
        deferred_ids: Memories that did not fit and await a later session
        strategy: Strategy used and its expected outcomes
    """

    original_queue: ValidationQueue
    optimized_order: list[PrioritizedMemory] = Field(default_factory=list)
    deferred_ids: list[str] = Field(default_factory=list)
    strategy: QueueStrategyReport
