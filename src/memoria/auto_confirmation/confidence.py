"""Multi-factor confidence scoring for memory validation.

Five independent factors are scored in [0, 1] and combined with the factor
weights of a ThresholdConfig:

- extraction_confidence: confidence reported by the extraction pipeline
- emotional_coherence: completeness and sanity of the emotional annotation
- relationship_accuracy: completeness of the relationship annotation
- temporal_consistency: plausibility of the event timestamp
- content_quality: length, vocabulary and tagging of the content

Missing inputs never raise: they fall back to fixed scores and the fallback
is recorded as a note so that it can be surfaced in the result's reasons.
"""

import logging
import re
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Callable, Optional

from memoria.constants import NEUTRAL_SCORE
from memoria.types.memory import Memory, parse_timestamp
from memoria.types.validation import ConfidenceFactors, FactorWeights

logger = logging.getLogger(__name__)

Clock = Callable[[], datetime]

MEANINGFUL_WORD = re.compile(r"\b\w{3,}\b")

MIN_CONTENT_LENGTH = 20
MAX_CONTENT_LENGTH = 5000
MIN_MEANINGFUL_WORDS = 5
MAX_TAGS = 10
PLAUSIBLE_YEARS = 10


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


@dataclass
class ConfidenceAssessment:
    """Factor scores, their weighted combination and fallback notes.

    Attributes:
        overall: Weighted confidence (0.0-1.0)
        factors: Individual factor scores
        notes: Fallbacks applied while scoring, as human-readable text
    """

    overall: float
    factors: ConfidenceFactors
    notes: list[str] = field(default_factory=list)


class ConfidenceCalculator:
    """Scores the five confidence factors of a memory.

    The calculator holds no configuration: weights are passed per call so a
    batch can score every memory against one config snapshot. The clock is
    injectable so temporal scoring is deterministic under test.

    Args:
        clock: Returns the current time as an aware datetime
    """

    def __init__(self, clock: Optional[Clock] = None) -> None:
        self._clock = clock or utc_now

    def calculate(
        self,
        memory: Memory,
        weights: FactorWeights,
        now: Optional[datetime] = None,
    ) -> ConfidenceAssessment:
        """Score a memory and combine the factors with the given weights.

        Args:
            memory: Memory to score
            weights: Factor weights to combine with
            now: Reference time; defaults to the calculator's clock

        Returns:
            ConfidenceAssessment with overall score, factors and notes
        """
        notes: list[str] = []
        reference = now or self._clock()
        if reference.tzinfo is None:
            reference = reference.replace(tzinfo=timezone.utc)

        factors = ConfidenceFactors(
            extraction_confidence=self.extraction_confidence(memory, notes),
            emotional_coherence=self.emotional_coherence(memory, notes),
            relationship_accuracy=self.relationship_accuracy(memory, notes),
            temporal_consistency=self.temporal_consistency(memory, reference, notes),
            content_quality=self.content_quality(memory),
        )
        overall = factors.weighted_score(weights)

        logger.debug(f"Confidence for {memory.id}: {overall:.3f} ({factors.as_dict()})")
        return ConfidenceAssessment(overall=overall, factors=factors, notes=notes)

    def extraction_confidence(self, memory: Memory, notes: list[str]) -> float:
        confidence = memory.metadata.confidence
        if confidence is None:
            notes.append(
                f"Extraction confidence missing - using neutral {NEUTRAL_SCORE:.0%}"
            )
            return NEUTRAL_SCORE
        return confidence

    def emotional_coherence(self, memory: Memory, notes: list[str]) -> float:
        context = memory.emotional_context
        if context is None:
            notes.append("Emotional context missing - coherence scored 30%")
            return 0.3

        score = 0.5
        if context.primary_emotion and context.secondary_emotions:
            score += 0.2
        if context.intensity is not None and 0.0 <= context.intensity <= 1.0:
            score += 0.15
        if context.themes:
            score += 0.15
        return min(score, 1.0)

    def relationship_accuracy(self, memory: Memory, notes: list[str]) -> float:
        dynamics = memory.relationship_dynamics
        if dynamics is None:
            notes.append("Relationship dynamics missing - accuracy scored 40%")
            return 0.4

        score = 0.5
        if dynamics.communication_patterns:
            score += 0.2
        if dynamics.interaction_quality:
            score += 0.15
        if len(memory.participants) > 1:
            score += 0.15
        return min(score, 1.0)

    def temporal_consistency(
        self, memory: Memory, now: datetime, notes: list[str]
    ) -> float:
        occurred = memory.occurred_at()
        if occurred is None:
            if memory.timestamp is None:
                notes.append("Timestamp missing - temporal consistency scored low")
            else:
                notes.append(
                    f"Timestamp unparseable ({memory.timestamp!r}) - "
                    "temporal consistency scored low"
                )
            return 0.3

        score = 0.7
        processed = parse_timestamp(memory.metadata.processed_at)
        if processed is not None and occurred <= processed:
            score += 0.15

        if _years_before(now, PLAUSIBLE_YEARS) <= occurred <= now:
            score += 0.15
        return min(score, 1.0)

    def content_quality(self, memory: Memory) -> float:
        score = 0.5
        content = memory.content or ""

        if MIN_CONTENT_LENGTH <= len(content) <= MAX_CONTENT_LENGTH:
            score += 0.2
        if len(MEANINGFUL_WORD.findall(content)) >= MIN_MEANINGFUL_WORDS:
            score += 0.15
        if 0 < len(memory.tags) <= MAX_TAGS:
            score += 0.15
        return min(score, 1.0)


def _years_before(moment: datetime, years: int) -> datetime:
    try:
        return moment.replace(year=moment.year - years)
    except ValueError:
        # Feb 29 in a non-leap target year
        return moment.replace(year=moment.year - years, day=28)
