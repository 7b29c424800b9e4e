"""Value types for Memoria.

The key types are:
- Memory: Candidate record produced by the extraction pipeline
- ThresholdConfig: Auto-confirmation thresholds and factor weights
- AutoConfirmationResult / BatchValidationResult: Scoring outcomes
- ValidationFeedback / ThresholdUpdate: Calibration loop
- EmotionalSignificanceScore / PrioritizedMemoryList / OptimizedQueue: Review ordering
- CoverageRequirements / SampledMemories / CoverageAnalysis: Sampling

Example:
    >>> from memoria.types import Memory, ThresholdConfig
    >>> memory = Memory(id="mem_001", content="We talked about the move")
    >>> config = ThresholdConfig(auto_approve_threshold=0.8)
    >>> config.decide(0.85)
    <Decision.AUTO_APPROVE: 'auto-approve'>
"""

from memoria.types.memory import (
    EmotionalContext,
    Memory,
    MemoryMetadata,
    Participant,
    RelationshipDynamics,
    Timestamp,
    ValidationStatus,
    parse_timestamp,
)
from memoria.types.sampling import (
    CoverageAnalysis,
    CoverageRequirements,
    DatasetMetadata,
    DateRange,
    EmotionalCoverage,
    ExpectedCharacteristics,
    ImportanceWeights,
    MemoryDataset,
    ParticipantCoverage,
    QualityDistribution,
    QualityQuota,
    QualityTier,
    RandomSampling,
    SampledMemories,
    SamplingMetadata,
    SamplingParameters,
    SamplingStrategy,
    Stratification,
    TemporalCoverage,
    TemporalDistribution,
    TimeRange,
)
from memoria.types.significance import (
    SIGNIFICANCE_FACTOR_NAMES,
    CoverageMetrics,
    EmotionalSignificanceScore,
    ExpectedOutcomes,
    OptimizedQueue,
    PrioritizedMemory,
    PrioritizedMemoryList,
    QueueStrategyReport,
    ResourceAllocation,
    ReviewContext,
    SignificanceDistribution,
    SignificanceFactors,
    SignificanceTier,
    ValidationQueue,
    ValidatorExpertise,
)
from memoria.types.validation import (
    CONFIDENCE_FACTOR_NAMES,
    AutoConfirmationResult,
    BatchValidationResult,
    ConfidenceFactors,
    Decision,
    DecisionCounts,
    EvaluationOutcome,
    FactorWeights,
    ThresholdConfig,
    ThresholdUpdate,
    ValidationFeedback,
)

DEFAULT_COVERAGE_REQUIREMENTS = CoverageRequirements()

DEFAULT_SAMPLING_STRATEGY = SamplingStrategy(
    name="balanced-stratified-sampling",
    parameters=SamplingParameters(
        target_size=100,
        stratification=Stratification(
            by_emotion=True,
            by_time_period=True,
            by_participant=True,
            by_quality=True,
        ),
        importance_weights=ImportanceWeights(),
    ),
    expected_characteristics=ExpectedCharacteristics(
        expected_coverage=0.85,
        expected_quality=QualityDistribution(high=0.2, medium=0.5, low=0.3),
    ),
)

__all__ = [
    # Memory records
    "Memory",
    "Participant",
    "EmotionalContext",
    "RelationshipDynamics",
    "MemoryMetadata",
    "Timestamp",
    "ValidationStatus",
    "parse_timestamp",
    # Auto-confirmation
    "CONFIDENCE_FACTOR_NAMES",
    "Decision",
    "FactorWeights",
    "ThresholdConfig",
    "ConfidenceFactors",
    "AutoConfirmationResult",
    "EvaluationOutcome",
    "DecisionCounts",
    "BatchValidationResult",
    "ValidationFeedback",
    "ThresholdUpdate",
    # Significance and queues
    "SIGNIFICANCE_FACTOR_NAMES",
    "SignificanceTier",
    "SignificanceFactors",
    "EmotionalSignificanceScore",
    "ReviewContext",
    "PrioritizedMemory",
    "SignificanceDistribution",
    "PrioritizedMemoryList",
    "ValidatorExpertise",
    "ResourceAllocation",
    "ValidationQueue",
    "CoverageMetrics",
    "ExpectedOutcomes",
    "QueueStrategyReport",
    "OptimizedQueue",
    # Sampling
    "QualityTier",
    "QualityDistribution",
    "QualityQuota",
    "CoverageRequirements",
    "EmotionalCoverage",
    "TimeRange",
    "TemporalDistribution",
    "TemporalCoverage",
    "ParticipantCoverage",
    "CoverageAnalysis",
    "SamplingMetadata",
    "SampledMemories",
    "Stratification",
    "RandomSampling",
    "ImportanceWeights",
    "SamplingParameters",
    "ExpectedCharacteristics",
    "SamplingStrategy",
    "DateRange",
    "DatasetMetadata",
    "MemoryDataset",
    "DEFAULT_COVERAGE_REQUIREMENTS",
    "DEFAULT_SAMPLING_STRATEGY",
]
