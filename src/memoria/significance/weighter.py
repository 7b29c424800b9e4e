"""Emotional significance weighting.

Scores how emotionally and contextually important a memory is, independent
of how confident the extraction was. Significance orders the review queue and
escalates otherwise-automatic decisions on critical memories to a human.

Factors and fixed weights:
- emotional_intensity (30%)
- relationship_impact (25%)
- life_event_significance (20%)
- participant_vulnerability (15%)
- temporal_importance (10%)
"""

import logging
import math
from datetime import datetime, timezone
from typing import Callable, Optional

from memoria.constants import (
    FALLBACK_SIGNIFICANCE,
    LIFE_EVENT_KEYWORDS,
    LIFE_EVENT_TAGS,
    MEANINGFUL_QUALITIES,
    RECENT_DAYS,
    SEMI_RECENT_DAYS,
    SIGNIFICANCE_WEIGHTS,
    SIGNIFICANT_PATTERNS,
    SIGNIFICANT_THEMES,
    SPECIAL_DATES,
    TRANSFORMATIVE_QUALITIES,
    VULNERABLE_RELATIONSHIPS,
    VULNERABLE_ROLES,
    VULNERABLE_THEMES,
)
from memoria.significance.priority_manager import PriorityManager
from memoria.types.memory import Memory
from memoria.types.significance import (
    EmotionalSignificanceScore,
    OptimizedQueue,
    PrioritizedMemoryList,
    ResourceAllocation,
    SignificanceFactors,
    ValidationQueue,
)

logger = logging.getLogger(__name__)

FALLBACK_NARRATIVE = "Unable to calculate significance - requires manual review"

FACTOR_DESCRIPTIONS = {
    "emotional_intensity": "strong emotional content",
    "relationship_impact": "important relationship dynamics",
    "life_event_significance": "major life event",
    "participant_vulnerability": "vulnerable participants",
    "temporal_importance": "temporal significance",
}

DOMINANT_FACTOR_VALUE = 0.6


def _mentions_any(values: list[str], keywords: tuple[str, ...]) -> bool:
    """Whether any value contains any keyword (case-insensitive substring)."""
    return any(keyword in value.lower() for value in values if value for keyword in keywords)


class SignificanceWeighter:
    """Scores emotional significance and prioritises memories for review.

    Args:
        clock: Returns the current time; used for recency scoring
        priority_manager: Manager used for prioritisation and queue
            optimisation (created on demand when omitted)
    """

    def __init__(
        self,
        clock: Optional[Callable[[], datetime]] = None,
        priority_manager: Optional[PriorityManager] = None,
    ) -> None:
        self._clock = clock or (lambda: datetime.now(timezone.utc))
        self._priority_manager = priority_manager or PriorityManager(self)

    @property
    def priority_manager(self) -> PriorityManager:
        return self._priority_manager

    def calculate_significance(
        self, memory: Memory, now: Optional[datetime] = None
    ) -> EmotionalSignificanceScore:
        """Score a memory's emotional significance.

        Never raises: any internal failure yields the low fallback score
        (every factor 0.3) with fallback=True and an explanatory narrative.

        Args:
            memory: Memory to score
            now: Reference time for recency (defaults to the weighter clock)

        Returns:
            EmotionalSignificanceScore with overall score, factors and narrative
        """
        try:
            factors = SignificanceFactors(
                emotional_intensity=self.emotional_intensity(memory),
                relationship_impact=self.relationship_impact(memory),
                life_event_significance=self.life_event_significance(memory),
                participant_vulnerability=self.participant_vulnerability(memory),
                temporal_importance=self.temporal_importance(memory, now),
            )
            overall = self.combine(factors)
            narrative = self.narrative(memory, factors, overall)
        except Exception as e:
            logger.error(f"Significance calculation failed for {memory.id}: {e}")
            return EmotionalSignificanceScore(
                overall=FALLBACK_SIGNIFICANCE,
                factors=SignificanceFactors.uniform(FALLBACK_SIGNIFICANCE),
                narrative=FALLBACK_NARRATIVE,
                fallback=True,
            )

        logger.debug(f"Significance for {memory.id}: {overall:.3f}")
        return EmotionalSignificanceScore(overall=overall, factors=factors, narrative=narrative)

    @staticmethod
    def combine(factors: SignificanceFactors) -> float:
        """Weighted sum of the factors with the fixed significance weights."""
        values = factors.as_dict()
        overall = math.fsum(values[name] * weight for name, weight in SIGNIFICANCE_WEIGHTS.items())
        return min(1.0, max(0.0, overall))

    # =========================================================================
    # Factors
    # =========================================================================

    def emotional_intensity(self, memory: Memory) -> float:
        context = memory.emotional_context
        if context is None:
            return 0.3

        score = 0.3
        if context.intensity is not None:
            score = context.intensity * 0.5 + 0.3
        if len(context.secondary_emotions) > 2:
            score += 0.2
        if _mentions_any(context.themes, SIGNIFICANT_THEMES):
            score += 0.2
        return min(1.0, max(0.0, score))

    def relationship_impact(self, memory: Memory) -> float:
        dynamics = memory.relationship_dynamics
        if dynamics is None:
            return 0.3

        score = 0.3
        quality = (dynamics.interaction_quality or "").lower()
        if quality in TRANSFORMATIVE_QUALITIES:
            score += 0.3
        elif quality in MEANINGFUL_QUALITIES:
            score += 0.2
        if _mentions_any(dynamics.communication_patterns, SIGNIFICANT_PATTERNS):
            score += 0.2
        if len(memory.participants) > 2:
            score += 0.1
        return min(1.0, score)

    def life_event_significance(self, memory: Memory) -> float:
        score = 0.4
        if _mentions_any(memory.tags, LIFE_EVENT_TAGS):
            score += 0.3

        content = (memory.content or "").lower()
        matches = sum(1 for keyword in LIFE_EVENT_KEYWORDS if keyword in content)
        score += min(0.3, matches * 0.1)
        return min(1.0, score)

    def participant_vulnerability(self, memory: Memory) -> float:
        score = 0.3
        if not memory.participants:
            return score

        for participant in memory.participants:
            if participant.role and _mentions_any([participant.role], VULNERABLE_ROLES):
                score += 0.3
                break
            if participant.relationship and _mentions_any(
                [participant.relationship], VULNERABLE_RELATIONSHIPS
            ):
                score += 0.2

        context = memory.emotional_context
        if context is not None and _mentions_any(context.themes, VULNERABLE_THEMES):
            score += 0.2
        return min(1.0, score)

    def temporal_importance(self, memory: Memory, now: Optional[datetime] = None) -> float:
        score = 0.5
        occurred = memory.occurred_at()
        if occurred is None:
            return score

        now = now or self._clock()
        if now.tzinfo is None:
            now = now.replace(tzinfo=timezone.utc)
        days_since = (now - occurred).total_seconds() / 86400
        if 0 <= days_since <= RECENT_DAYS:
            score += 0.2
        elif 0 <= days_since <= SEMI_RECENT_DAYS:
            score += 0.1

        if (occurred.month, occurred.day) in SPECIAL_DATES:
            score += 0.2
        if occurred.weekday() >= 5:
            score += 0.1
        return min(1.0, score)

    def narrative(
        self, memory: Memory, factors: SignificanceFactors, overall: float
    ) -> str:
        """Human-readable explanation naming the dominant factors."""
        if overall >= 0.8:
            parts = ["This is a highly significant emotional memory"]
        elif overall >= 0.6:
            parts = ["This memory has moderate emotional significance"]
        else:
            parts = ["This memory has lower emotional significance"]

        dominant = [
            FACTOR_DESCRIPTIONS[name]
            for name, value in factors.ranked()[:2]
            if value > DOMINANT_FACTOR_VALUE
        ]
        if dominant:
            parts.append(f"due to {' and '.join(dominant)}")

        if len(memory.participants) > 2:
            parts.append(f"involving {len(memory.participants)} participants")

        return " ".join(parts) + "."

    # =========================================================================
    # Prioritisation (delegates to the priority manager)
    # =========================================================================

    def prioritize_memories(self, memories: list[Memory]) -> PrioritizedMemoryList:
        """Score and rank memories by descending significance."""
        logger.info(f"Prioritizing {len(memories)} memories")
        scores = {memory.id: self.calculate_significance(memory) for memory in memories}
        prioritized = self._priority_manager.create_prioritized_list(memories, scores)
        logger.info(
            f"Prioritization complete: {prioritized.significance_distribution.model_dump()}"
        )
        return prioritized

    def optimize_review_queue(
        self,
        queue: ValidationQueue,
        constraints: Optional[ResourceAllocation] = None,
    ) -> OptimizedQueue:
        """Order and trim a review queue to the available resources."""
        return self._priority_manager.optimize_review_queue(queue, constraints)
