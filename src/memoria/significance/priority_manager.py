"""Priority ordering and review queue optimisation.

Turns significance scores into a ranked review list with per-item review
context, and fits a review queue to the validator time available.
"""

import logging
from typing import TYPE_CHECKING, Optional

from memoria.constants import (
    EMOTIONAL_RANGE_TARGET,
    MAX_RELATED_MEMORIES,
    PARTICIPANT_DIVERSITY_TARGET,
    TEMPORAL_SPAN_TARGET_DAYS,
)
from memoria.significance.strategies import QueueStrategy, select_queue_strategy
from memoria.types.memory import Memory
from memoria.types.significance import (
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
    ValidationQueue,
)

if TYPE_CHECKING:
    from memoria.significance.weighter import SignificanceWeighter

logger = logging.getLogger(__name__)

REVIEW_REASONS = {
    "emotional_intensity": "high emotional intensity",
    "relationship_impact": "significant relationship implications",
    "life_event_significance": "major life event",
    "participant_vulnerability": "vulnerable participant involvement",
    "temporal_importance": "temporal significance",
}

# (factor, threshold, focus area, validation hint)
FOCUS_RULES = (
    (
        "emotional_intensity",
        0.8,
        "High emotional intensity - verify emotional accuracy",
        "Pay special attention to emotional nuances and intensity levels",
    ),
    (
        "relationship_impact",
        0.8,
        "Significant relationship impact - check relationship dynamics",
        "Verify participant relationships and interaction patterns",
    ),
    (
        "life_event_significance",
        0.8,
        "Major life event - ensure context completeness",
        "Confirm all relevant context is captured",
    ),
    (
        "participant_vulnerability",
        0.7,
        "Vulnerable participants - handle with sensitivity",
        "Apply extra care and privacy considerations",
    ),
)

CRITICAL_REVIEW_SIGNIFICANCE = 0.9


class PriorityManager:
    """Ranks memories for review and optimises review queues.

    Args:
        weighter: Significance weighter used when scores are not supplied
    """

    def __init__(self, weighter: Optional["SignificanceWeighter"] = None) -> None:
        self._weighter = weighter

    @property
    def weighter(self) -> "SignificanceWeighter":
        if self._weighter is None:
            from memoria.significance.weighter import SignificanceWeighter

            self._weighter = SignificanceWeighter(priority_manager=self)
        return self._weighter

    def create_prioritized_list(
        self,
        memories: list[Memory],
        significance_scores: Optional[dict[str, EmotionalSignificanceScore]] = None,
    ) -> PrioritizedMemoryList:
        """Rank memories by descending significance.

        Ties keep their input order. Ranks are contiguous from 1.

        Args:
            memories: Memories to rank
            significance_scores: Precomputed scores by memory id; any missing
                score is computed with the weighter

        Returns:
            PrioritizedMemoryList with ranks, review context and distribution
        """
        scores = dict(significance_scores or {})
        for memory in memories:
            if memory.id not in scores:
                scores[memory.id] = self.weighter.calculate_significance(memory)

        ordered = sorted(memories, key=lambda m: scores[m.id].overall, reverse=True)
        prioritized = [
            PrioritizedMemory(
                memory=memory,
                significance_score=scores[memory.id],
                priority_rank=rank,
                review_context=self.review_context(memory, scores[memory.id], memories),
            )
            for rank, memory in enumerate(ordered, start=1)
        ]

        return PrioritizedMemoryList(
            memories=prioritized,
            total_count=len(prioritized),
            significance_distribution=SignificanceDistribution.from_scores(
                [item.overall for item in prioritized]
            ),
        )

    def review_context(
        self,
        memory: Memory,
        score: EmotionalSignificanceScore,
        population: list[Memory],
    ) -> ReviewContext:
        """Reason, focus areas, hints and related memories for a reviewer."""
        factors = score.factors.as_dict()
        focus_areas = []
        hints = []
        for factor, threshold, focus, hint in FOCUS_RULES:
            if factors[factor] > threshold:
                focus_areas.append(focus)
                hints.append(hint)

        if score.fallback:
            hints.append("Significance could not be calculated - review all fields")

        return ReviewContext(
            review_reason=self.review_reason(score),
            focus_areas=focus_areas,
            related_memory_ids=self.related_memory_ids(memory, population),
            validation_hints=hints,
        )

    @staticmethod
    def review_reason(score: EmotionalSignificanceScore) -> str:
        if score.overall > CRITICAL_REVIEW_SIGNIFICANCE:
            return "Critical emotional memory requiring careful validation"
        top_factor = score.factors.ranked()[0][0]
        return f"Requires review due to {REVIEW_REASONS.get(top_factor, 'elevated significance')}"

    @staticmethod
    def related_memory_ids(memory: Memory, population: list[Memory]) -> list[str]:
        """Other memories sharing a non-author participant or a tag."""
        author_id = memory.author.id if memory.author else None
        participants = {pid for pid in memory.participant_ids() if pid != author_id}
        tags = {tag.lower() for tag in memory.tags}
        if not participants and not tags:
            return []

        related = []
        for other in population:
            if other.id == memory.id:
                continue
            shared_participants = participants.intersection(other.participant_ids())
            shared_tags = tags.intersection(tag.lower() for tag in other.tags)
            if shared_participants or shared_tags:
                related.append(other.id)
            if len(related) >= MAX_RELATED_MEMORIES:
                break
        return related

    def optimize_review_queue(
        self,
        queue: ValidationQueue,
        constraints: Optional[ResourceAllocation] = None,
        strategy: Optional[QueueStrategy] = None,
    ) -> OptimizedQueue:
        """Fit a review queue to the available validator time.

        Args:
            queue: Pending memories and their resource allocation
            constraints: Overrides the queue's resource allocation
            strategy: Forces a strategy instead of the selection policy

        Returns:
            OptimizedQueue with review order, deferred ids and outcomes
        """
        resources = constraints or queue.resource_allocation
        minutes = resources.validator_expertise.minutes_per_memory
        capacity = resources.capacity()

        logger.info(
            f"Optimizing queue {queue.id}: {len(queue.pending_memories)} pending, "
            f"capacity {capacity} at {minutes} min/memory"
        )

        prioritized = self.create_prioritized_list(queue.pending_memories)
        candidates = prioritized.memories
        chosen = strategy or select_queue_strategy(candidates, capacity)
        selected = chosen.select(candidates, capacity)

        selected_ids = {item.memory.id for item in selected}
        deferred = [item.memory.id for item in candidates if item.memory.id not in selected_ids]

        report = QueueStrategyReport(
            name=chosen.name,
            parameters={**chosen.parameters, "capacity": capacity, "minutes_per_memory": minutes},
            expected_outcomes=self.expected_outcomes(selected, minutes),
        )

        logger.info(
            f"Queue {queue.id} optimized with {chosen.name}: "
            f"{len(selected)} selected, {len(deferred)} deferred"
        )
        return OptimizedQueue(
            original_queue=queue,
            optimized_order=selected,
            deferred_ids=deferred,
            strategy=report,
        )

    @staticmethod
    def expected_outcomes(
        selected: list[PrioritizedMemory], minutes_per_memory: int
    ) -> ExpectedOutcomes:
        if not selected:
            return ExpectedOutcomes()

        emotions = set()
        participants = set()
        timestamps = []
        for item in selected:
            context = item.memory.emotional_context
            if context is not None and context.primary_emotion:
                emotions.add(context.primary_emotion.lower())
            participants.update(item.memory.participant_ids())
            occurred = item.memory.occurred_at()
            if occurred is not None:
                timestamps.append(occurred)

        span_days = 0.0
        if timestamps:
            span_days = (max(timestamps) - min(timestamps)).total_seconds() / 86400

        return ExpectedOutcomes(
            estimated_time=len(selected) * minutes_per_memory,
            expected_quality=sum(item.overall for item in selected) / len(selected),
            coverage=CoverageMetrics(
                emotional_range=min(1.0, len(emotions) / EMOTIONAL_RANGE_TARGET),
                temporal_span=min(1.0, span_days / TEMPORAL_SPAN_TARGET_DAYS),
                participant_diversity=min(1.0, len(participants) / PARTICIPANT_DIVERSITY_TARGET),
            ),
        )
