"""Memoria algorithm constants.

These are implementation details of the scoring, calibration, queueing and
sampling rules. User-tunable values (thresholds, log level, sampling seed)
live in memoria.config and are read from the environment.
"""

# =============================================================================
# Auto-confirmation thresholds
# =============================================================================

DEFAULT_AUTO_APPROVE_THRESHOLD = 0.75
DEFAULT_AUTO_REJECT_THRESHOLD = 0.50

# Confidence factor weights (must sum to 1.0)
DEFAULT_CONFIDENCE_WEIGHTS = {
    "extraction_confidence": 0.30,
    "emotional_coherence": 0.25,
    "relationship_accuracy": 0.20,
    "temporal_consistency": 0.15,
    "content_quality": 0.10,
}

WEIGHT_SUM_TOLERANCE = 1e-6

# Neutral midpoint used when a numeric input is missing
NEUTRAL_SCORE = 0.5

# Significance above this forces human review regardless of confidence
CRITICAL_SIGNIFICANCE_THRESHOLD = 0.9

# =============================================================================
# Threshold calibration (feedback loop)
# =============================================================================

FALSE_POSITIVE_CEILING = 0.05
FALSE_POSITIVE_FLOOR = 0.02
FALSE_NEGATIVE_CEILING = 0.05
HIGH_ACCURACY = 0.90

APPROVE_RAISE_STEP = 0.05
APPROVE_LOWER_STEP = 0.02
REJECT_LOWER_STEP = 0.05

MAX_AUTO_APPROVE_THRESHOLD = 0.95
MIN_AUTO_APPROVE_THRESHOLD = 0.65
MIN_AUTO_REJECT_THRESHOLD = 0.30

STRONG_FACTOR_VALUE = 0.7
FACTOR_REWARD_ACCURACY = 0.8
FACTOR_PENALTY_ACCURACY = 0.5
FACTOR_REWARD_MULTIPLIER = 1.1
FACTOR_PENALTY_MULTIPLIER = 0.9

MAX_EXPECTED_IMPROVEMENT = 0.10
MIN_APPLY_IMPROVEMENT = 0.01

# =============================================================================
# Significance weighting
# =============================================================================

SIGNIFICANCE_WEIGHTS = {
    "emotional_intensity": 0.30,
    "relationship_impact": 0.25,
    "life_event_significance": 0.20,
    "participant_vulnerability": 0.15,
    "temporal_importance": 0.10,
}

FALLBACK_SIGNIFICANCE = 0.3

HIGH_SIGNIFICANCE = 0.7
MEDIUM_SIGNIFICANCE = 0.4

SIGNIFICANT_THEMES = ("loss", "love", "achievement", "trauma", "joy")
SIGNIFICANT_PATTERNS = ("conflict", "breakthrough", "reconciliation", "confession")
TRANSFORMATIVE_QUALITIES = ("transformative", "defining")
MEANINGFUL_QUALITIES = ("significant", "meaningful")

LIFE_EVENT_TAGS = (
    "wedding",
    "birth",
    "death",
    "graduation",
    "promotion",
    "breakup",
    "divorce",
    "accident",
    "diagnosis",
    "achievement",
    "milestone",
    "anniversary",
    "reunion",
    "farewell",
)
LIFE_EVENT_KEYWORDS = (
    "first time",
    "last time",
    "never forget",
    "changed my life",
    "turning point",
    "milestone",
    "announced",
    "diagnosed",
    "passed away",
    "born",
    "married",
    "proposed",
)

VULNERABLE_ROLES = ("child", "patient", "elderly", "dependent")
VULNERABLE_RELATIONSHIPS = ("child", "parent", "grandparent", "caregiver")
VULNERABLE_THEMES = ("grief", "trauma", "illness", "loss", "abuse")

# (month, day) pairs
SPECIAL_DATES = ((12, 25), (1, 1), (2, 14), (12, 31))

RECENT_DAYS = 30
SEMI_RECENT_DAYS = 90

# =============================================================================
# Review queue optimisation
# =============================================================================

MINUTES_PER_MEMORY = {
    "expert": 3,
    "intermediate": 5,
    "beginner": 8,
}

EMOTIONAL_RANGE_TARGET = 10
TEMPORAL_SPAN_TARGET_DAYS = 365
PARTICIPANT_DIVERSITY_TARGET = 20

BALANCED_TIER_RATIOS = {"high": 0.4, "medium": 0.4, "low": 0.2}

MAX_RELATED_MEMORIES = 5

# =============================================================================
# Sampling and coverage
# =============================================================================

TARGET_EMOTIONS = (
    "joy",
    "sadness",
    "anger",
    "fear",
    "surprise",
    "disgust",
    "love",
    "excitement",
    "anxiety",
    "contentment",
    "frustration",
    "hope",
)

HIGH_QUALITY_CONFIDENCE = 0.8
MEDIUM_QUALITY_CONFIDENCE = 0.5

TEMPORAL_GAP_DAYS = 7
MIN_PARTICIPANT_DENOMINATOR = 20

COVERAGE_WEIGHTS = {
    "emotional": 0.30,
    "temporal": 0.25,
    "participant": 0.25,
    "quality": 0.20,
}
IDEAL_QUALITY_MIX = {"high": 0.2, "medium": 0.6, "low": 0.2}

COVERAGE_WARNING_THRESHOLD = 0.7

DEFAULT_SAMPLE_SIZE = 100
SMALL_DATASET_SIZE = 100

# =============================================================================
# Analytics
# =============================================================================

FEEDBACK_HISTORY_LIMIT = 1000
BATCH_HISTORY_LIMIT = 100
TARGET_THROUGHPUT_PER_MINUTE = 60
