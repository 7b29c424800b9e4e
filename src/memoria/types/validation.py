"""Auto-confirmation and feedback types.

Defines the decision variant, the threshold configuration (with its
invariants enforced at construction), per-memory and per-batch results, and
the feedback/update types of the calibration loop.
"""

import math
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator

from memoria.constants import (
    DEFAULT_AUTO_APPROVE_THRESHOLD,
    DEFAULT_AUTO_REJECT_THRESHOLD,
    DEFAULT_CONFIDENCE_WEIGHTS,
    WEIGHT_SUM_TOLERANCE,
)
from memoria.types.memory import ValidationStatus

# Order matters: it is the order factors are reported and iterated in
CONFIDENCE_FACTOR_NAMES = (
    "extraction_confidence",
    "emotional_coherence",
    "relationship_accuracy",
    "temporal_consistency",
    "content_quality",
)


class Decision(str, Enum):
    """Auto-confirmation decision for a memory.

    - AUTO_APPROVE: Confidence high enough to accept without review
    - NEEDS_REVIEW: Defer to a human validator
    - AUTO_REJECT: Confidence low enough to reject without review
    """

    AUTO_APPROVE = "auto-approve"
    NEEDS_REVIEW = "needs-review"
    AUTO_REJECT = "auto-reject"

    @property
    def is_automatic(self) -> bool:
        """True for decisions taken without a human."""
        return self is not Decision.NEEDS_REVIEW


class FactorWeights(BaseModel):
    """Weights of the five confidence factors."""

    model_config = ConfigDict(frozen=True)

    extraction_confidence: float = Field(
        default=DEFAULT_CONFIDENCE_WEIGHTS["extraction_confidence"], ge=0.0
    )
    emotional_coherence: float = Field(
        default=DEFAULT_CONFIDENCE_WEIGHTS["emotional_coherence"], ge=0.0
    )
    relationship_accuracy: float = Field(
        default=DEFAULT_CONFIDENCE_WEIGHTS["relationship_accuracy"], ge=0.0
    )
    temporal_consistency: float = Field(
        default=DEFAULT_CONFIDENCE_WEIGHTS["temporal_consistency"], ge=0.0
    )
    content_quality: float = Field(
        default=DEFAULT_CONFIDENCE_WEIGHTS["content_quality"], ge=0.0
    )

    def as_dict(self) -> dict[str, float]:
        return {name: getattr(self, name) for name in CONFIDENCE_FACTOR_NAMES}

    def total(self) -> float:
        return math.fsum(self.as_dict().values())


class ThresholdConfig(BaseModel):
    """Auto-confirmation thresholds and factor weights.

    Invariants (checked at construction, never clamped):
    - weights sum to 1.0 within 1e-6
    - both thresholds lie in [0, 1]
    - auto_approve_threshold > auto_reject_threshold

    Attributes:
        auto_approve_threshold: Confidence at or above which memories are approved
        auto_reject_threshold: Confidence at or below which memories are rejected
        weights: Confidence factor weights
    """

    model_config = ConfigDict(frozen=True)

    auto_approve_threshold: float = Field(
        default=DEFAULT_AUTO_APPROVE_THRESHOLD, ge=0.0, le=1.0
    )
    auto_reject_threshold: float = Field(
        default=DEFAULT_AUTO_REJECT_THRESHOLD, ge=0.0, le=1.0
    )
    weights: FactorWeights = Field(default_factory=FactorWeights)

    @model_validator(mode="after")
    def check_invariants(self) -> "ThresholdConfig":
        """Reject configs whose weights or thresholds are inconsistent."""
        total = self.weights.total()
        if abs(total - 1.0) > WEIGHT_SUM_TOLERANCE:
            raise ValueError(f"Factor weights must sum to 1.0, got {total:.6f}")
        if self.auto_approve_threshold <= self.auto_reject_threshold:
            raise ValueError(
                f"auto_approve_threshold ({self.auto_approve_threshold}) must be "
                f"greater than auto_reject_threshold ({self.auto_reject_threshold})"
            )
        return self

    def decide(self, confidence: float) -> Decision:
        """Map a confidence value to exactly one decision zone.

        Args:
            confidence: Overall confidence (0.0-1.0)

        Returns:
            AUTO_APPROVE if confidence >= approve threshold, AUTO_REJECT if
            confidence <= reject threshold, NEEDS_REVIEW otherwise
        """
        if confidence >= self.auto_approve_threshold:
            return Decision.AUTO_APPROVE
        if confidence <= self.auto_reject_threshold:
            return Decision.AUTO_REJECT
        return Decision.NEEDS_REVIEW


class ConfidenceFactors(BaseModel):
    """The five independent confidence factor scores (each 0.0-1.0)."""

    model_config = ConfigDict(frozen=True)

    extraction_confidence: float = Field(ge=0.0, le=1.0)
    emotional_coherence: float = Field(ge=0.0, le=1.0)
    relationship_accuracy: float = Field(ge=0.0, le=1.0)
    temporal_consistency: float = Field(ge=0.0, le=1.0)
    content_quality: float = Field(ge=0.0, le=1.0)

    @classmethod
    def zero(cls) -> "ConfidenceFactors":
        return cls(**{name: 0.0 for name in CONFIDENCE_FACTOR_NAMES})

    def as_dict(self) -> dict[str, float]:
        return {name: getattr(self, name) for name in CONFIDENCE_FACTOR_NAMES}

    def weighted_score(self, weights: FactorWeights) -> float:
        """Combine the factors with the given weights.

        Args:
            weights: Factor weights

        Returns:
            Weighted average of the factors (0.0 if all weights are zero)
        """
        weight_map = weights.as_dict()
        total_weight = math.fsum(weight_map.values())
        if total_weight <= 0:
            return 0.0
        weighted = math.fsum(
            value * weight_map[name] for name, value in self.as_dict().items()
        )
        return min(1.0, max(0.0, weighted / total_weight))


class AutoConfirmationResult(BaseModel):
    """Auto-confirmation result for a single memory.

    Attributes:
        memory_id: ID of the evaluated memory
        decision: Auto-confirmation decision
        confidence: Weighted confidence (0.0-1.0)
        confidence_factors: Individual factor scores
        reasons: Human-readable reasons, including any recorded fallbacks
        suggested_actions: What a reviewer should look at (review only)
        significance: Overall significance considered for escalation
    """

    model_config = ConfigDict(frozen=True)

    memory_id: str
    decision: Decision
    confidence: float = Field(ge=0.0, le=1.0)
    confidence_factors: ConfidenceFactors
    reasons: list[str] = Field(default_factory=list)
    suggested_actions: Optional[list[str]] = None
    significance: Optional[float] = None


@dataclass
class EvaluationOutcome:
    """Per-memory outcome at the batch boundary.

    Either carries a valid result, or a recoverable error marker with text.

    Attributes:
        success: Whether evaluation completed
        memory_id: ID of the memory
        result: Auto-confirmation result (if successful)
        error: Error description (if failed)
    """

    success: bool
    memory_id: str
    result: Optional[AutoConfirmationResult] = None
    error: Optional[str] = None

    def to_result(self) -> AutoConfirmationResult:
        """Disposition for this memory; failures become needs-review."""
        if self.success and self.result is not None:
            return self.result
        return AutoConfirmationResult(
            memory_id=self.memory_id,
            decision=Decision.NEEDS_REVIEW,
            confidence=0.0,
            confidence_factors=ConfidenceFactors.zero(),
            reasons=[
                "Error during evaluation - requires manual review",
                f"Evaluation error: {self.error or 'unknown error'}",
            ],
            suggested_actions=["Check memory data integrity"],
        )


class DecisionCounts(BaseModel):
    """Number of memories per decision."""

    auto_approved: int = 0
    needs_review: int = 0
    auto_rejected: int = 0

    @classmethod
    def from_results(cls, results: list[AutoConfirmationResult]) -> "DecisionCounts":
        counts = cls()
        for result in results:
            if result.decision is Decision.AUTO_APPROVE:
                counts.auto_approved += 1
            elif result.decision is Decision.AUTO_REJECT:
                counts.auto_rejected += 1
            else:
                counts.needs_review += 1
        return counts


class BatchValidationResult(BaseModel):
    """Result of evaluating a batch of memories.

    Attributes:
        total_memories: Number of memories evaluated
        decisions: Breakdown by decision
        batch_confidence: Mean confidence over evaluated memories
        results: Individual results, in input order
        processing_time: Wall time in milliseconds
        error_count: Memories whose evaluation failed (reviewed by default)
        stopped_early: Whether the caller stopped the batch before the end
        unprocessed_ids: Memories left for a later batch
    """

    total_memories: int
    decisions: DecisionCounts
    batch_confidence: float
    results: list[AutoConfirmationResult] = Field(default_factory=list)
    processing_time: float = 0.0
    error_count: int = 0
    stopped_early: bool = False
    unprocessed_ids: list[str] = Field(default_factory=list)


class ValidationFeedback(BaseModel):
    """Human validation decision for a previously evaluated memory.

    Attributes:
        memory_id: ID of the memory
        original_result: Auto-confirmation result shown to the validator
        human_decision: What the human decided
        feedback: Optional free-text note on what was wrong
        timestamp: When the feedback was given
    """

    model_config = ConfigDict(frozen=True)

    memory_id: str
    original_result: AutoConfirmationResult
    human_decision: ValidationStatus
    feedback: Optional[str] = None
    timestamp: datetime = Field(default_factory=datetime.now)

    def was_correct(self) -> bool:
        """Whether the automatic decision matched the human one.

        Needs-review always counts as correct since it deferred to a human.
        """
        decision = self.original_result.decision
        if decision is Decision.AUTO_APPROVE:
            return self.human_decision is ValidationStatus.VALIDATED
        if decision is Decision.AUTO_REJECT:
            return self.human_decision is ValidationStatus.REJECTED
        return True

    def is_false_positive(self) -> bool:
        """Auto-approved but not validated by the human."""
        return (
            self.original_result.decision is Decision.AUTO_APPROVE
            and self.human_decision is not ValidationStatus.VALIDATED
        )

    def is_false_negative(self) -> bool:
        """Auto-rejected but validated by the human."""
        return (
            self.original_result.decision is Decision.AUTO_REJECT
            and self.human_decision is ValidationStatus.VALIDATED
        )


class ThresholdUpdate(BaseModel):
    """Recommended threshold change derived from feedback.

    Producing an update never changes live configuration; applying it is a
    separate step.
    """

    model_config = ConfigDict(frozen=True)

    previous_thresholds: ThresholdConfig
    recommended_thresholds: ThresholdConfig
    update_reasons: list[str] = Field(default_factory=list)
    expected_accuracy_improvement: float = Field(default=0.0, ge=0.0)

    @property
    def has_changes(self) -> bool:
        return self.previous_thresholds != self.recommended_thresholds
