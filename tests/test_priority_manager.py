"""Tests for review prioritisation and queue optimisation.

Tests:
- PriorityManager ranking, review context and related memories
- Queue strategies (high-significance-focus, balanced, significance-weighted)
- Strategy selection policy
- Review queue optimisation against validator capacity
"""

from typing import Optional

import pytest

from memoria.significance import (
    BalancedSamplingStrategy,
    HighSignificanceFocusStrategy,
    PriorityManager,
    SignificanceWeighter,
    SignificanceWeightedStrategy,
    select_queue_strategy,
)
from memoria.types import (
    EmotionalSignificanceScore,
    Memory,
    Participant,
    PrioritizedMemory,
    ResourceAllocation,
    ReviewContext,
    SignificanceFactors,
    ValidationQueue,
    ValidatorExpertise,
)

# ============================================================================
# Fixtures
# ============================================================================


def score(overall: float, fallback: bool = False) -> EmotionalSignificanceScore:
    return EmotionalSignificanceScore(
        overall=overall,
        factors=SignificanceFactors.uniform(overall),
        narrative="test",
        fallback=fallback,
    )


def prioritized(
    memory_id: str,
    overall: float,
    rank: int,
    timestamp: Optional[str] = None,
    participant: Optional[str] = None,
) -> PrioritizedMemory:
    memory = Memory(
        id=memory_id,
        timestamp=timestamp,
        participants=[Participant(id=participant)] if participant else [],
    )
    return PrioritizedMemory(
        memory=memory,
        significance_score=score(overall),
        priority_rank=rank,
        review_context=ReviewContext(review_reason="test"),
    )


@pytest.fixture
def weighter(clock):
    return SignificanceWeighter(clock=clock)


@pytest.fixture
def manager(weighter):
    return weighter.priority_manager


@pytest.fixture
def old_memory(make_memory):
    """Everyday memory from 2020 (significance 0.40)."""
    return make_memory("mem-old", timestamp="2020-03-04T10:00:00Z")


@pytest.fixture
def queue_memories(rich_memory, ordinary_memory, old_memory, sparse_memory):
    """Significance order: birth (0.925), ordinary (0.41), old (0.40), sparse (0.34)."""
    return [sparse_memory, old_memory, rich_memory, ordinary_memory]


def make_queue(memories, minutes: float, expertise=ValidatorExpertise.EXPERT) -> ValidationQueue:
    return ValidationQueue(
        id="queue-1",
        pending_memories=memories,
        resource_allocation=ResourceAllocation(
            available_time=minutes, validator_expertise=expertise
        ),
    )


# ============================================================================
# Prioritised lists
# ============================================================================


class TestCreatePrioritizedList:
    """Test ranking and review context."""

    def test_ranks_are_a_permutation(self, manager, queue_memories) -> None:
        result = manager.create_prioritized_list(queue_memories)

        assert sorted(p.priority_rank for p in result.memories) == [1, 2, 3, 4]
        assert [p.memory.id for p in result.memories] == [
            "mem-birth",
            "mem-ordinary",
            "mem-old",
            "mem-sparse",
        ]
        overalls = [p.overall for p in result.memories]
        assert overalls == sorted(overalls, reverse=True)

    def test_ties_keep_input_order(self, manager, make_memory) -> None:
        first, second = make_memory("mem-a"), make_memory("mem-b")

        forward = manager.create_prioritized_list([first, second])
        backward = manager.create_prioritized_list([second, first])

        assert [p.memory.id for p in forward.memories] == ["mem-a", "mem-b"]
        assert [p.memory.id for p in backward.memories] == ["mem-b", "mem-a"]

    def test_precomputed_scores_used(self, manager, ordinary_memory, sparse_memory) -> None:
        result = manager.create_prioritized_list(
            [ordinary_memory, sparse_memory], {"mem-sparse": score(0.95)}
        )

        assert result.memories[0].memory.id == "mem-sparse"
        assert result.memories[0].overall == 0.95
        assert result.significance_distribution.high == 1

    def test_manager_without_weighter_creates_one(self, ordinary_memory) -> None:
        result = PriorityManager().create_prioritized_list([ordinary_memory])
        assert result.total_count == 1

    def test_critical_memory_review_context(self, manager, rich_memory) -> None:
        context = manager.create_prioritized_list([rich_memory]).memories[0].review_context

        assert context.review_reason == "Critical emotional memory requiring careful validation"
        assert len(context.focus_areas) == 4
        assert "Vulnerable participants - handle with sensitivity" in context.focus_areas
        assert "Apply extra care and privacy considerations" in context.validation_hints

    def test_review_reason_names_top_factor(self, manager, ordinary_memory) -> None:
        context = manager.create_prioritized_list([ordinary_memory]).memories[0].review_context

        assert context.review_reason == "Requires review due to temporal significance"
        assert context.focus_areas == []

    def test_fallback_hint(self, manager, sparse_memory) -> None:
        context = manager.review_context(sparse_memory, score(0.3, fallback=True), [])
        assert "Significance could not be calculated - review all fields" in context.validation_hints

    def test_related_memories_share_participant_or_tag(
        self, manager, make_memory, rich_memory
    ) -> None:
        base = make_memory("mem-base", tags=["holiday"])
        same_friend = make_memory("mem-friend", tags=["work"])
        same_tag = make_memory(
            "mem-tag",
            others=[Participant(id="p-other", relationship="colleague")],
            tags=["Holiday"],
        )
        population = [base, same_friend, same_tag, rich_memory]

        related = manager.related_memory_ids(base, population)

        assert related == ["mem-friend", "mem-tag"]

    def test_related_memories_capped(self, manager, make_memory) -> None:
        population = [make_memory(f"mem-{i}") for i in range(10)]
        assert len(manager.related_memory_ids(population[0], population)) == 5


# ============================================================================
# Strategies
# ============================================================================


class TestStrategies:
    """Test strategy selection on pre-ranked candidates."""

    def test_high_significance_focus_truncates_lowest(self) -> None:
        candidates = [
            prioritized("c", 0.3, 3),
            prioritized("a", 0.9, 1),
            prioritized("b", 0.5, 2),
        ]
        selected = HighSignificanceFocusStrategy().select(candidates, 2)
        assert [p.memory.id for p in selected] == ["a", "b"]

    def test_balanced_spreads_across_months(self) -> None:
        candidates = [prioritized(f"jan-{i}", 0.65, i, "2024-01-15T00:00:00Z") for i in range(1, 6)]
        candidates.append(prioritized("feb", 0.65, 6, "2024-02-15T00:00:00Z"))
        candidates += [prioritized("low-7", 0.2, 7), prioritized("low-8", 0.2, 8)]

        selected = BalancedSamplingStrategy().select(candidates, 5)

        assert [p.memory.id for p in selected] == ["jan-1", "jan-2", "jan-3", "feb", "low-7"]

    def test_balanced_keeps_everything_that_fits(self) -> None:
        candidates = [prioritized("a", 0.5, 1), prioritized("b", 0.2, 2)]
        assert len(BalancedSamplingStrategy().select(candidates, 5)) == 2

    def test_significance_weighted_is_deterministic(self) -> None:
        candidates = [
            prioritized("a", 0.9, 1),
            prioritized("b", 0.8, 2),
            prioritized("c", 0.2, 3),
            prioritized("d", 0.1, 4),
        ]
        strategy = SignificanceWeightedStrategy()

        first = [p.memory.id for p in strategy.select(candidates, 2)]
        second = [p.memory.id for p in strategy.select(candidates, 2)]

        assert first == second == ["a", "b"]

    def test_significance_weighted_tops_up_repeated_hits(self) -> None:
        candidates = [
            prioritized("heavy", 1.0, 1),
            prioritized("x", 0.01, 2),
            prioritized("y", 0.01, 3),
            prioritized("z", 0.01, 4),
        ]
        selected = SignificanceWeightedStrategy().select(candidates, 2)
        assert [p.memory.id for p in selected] == ["heavy", "x"]

    @pytest.mark.parametrize(
        "strategy",
        [HighSignificanceFocusStrategy(), BalancedSamplingStrategy(), SignificanceWeightedStrategy()],
    )
    def test_zero_capacity(self, strategy) -> None:
        assert strategy.select([prioritized("a", 0.9, 1)], 0) == []

    def test_selection_policy(self) -> None:
        with_high = [prioritized("a", 0.9, 1), prioritized("b", 0.2, 2)]
        without_high = [prioritized("a", 0.6, 1), prioritized("b", 0.2, 2)]

        assert select_queue_strategy(with_high, 1).name == "high-significance-focus"
        assert select_queue_strategy(without_high, 1).name == "balanced-sampling"
        assert select_queue_strategy(with_high, 2).name == "significance-weighted"


# ============================================================================
# Queue optimisation
# ============================================================================


class TestOptimizeReviewQueue:
    """Test fitting queues to validator time."""

    def test_insufficient_expert_time_focuses_on_high_significance(
        self, weighter, queue_memories
    ) -> None:
        """Expert pace (3 min/item) with 6 minutes fits only 2 of 4 memories."""
        optimized = weighter.optimize_review_queue(make_queue(queue_memories, minutes=6))

        assert optimized.strategy.name == "high-significance-focus"
        assert [p.memory.id for p in optimized.optimized_order] == ["mem-birth", "mem-ordinary"]
        assert optimized.deferred_ids == ["mem-old", "mem-sparse"]
        assert optimized.strategy.parameters["capacity"] == 2
        assert optimized.strategy.parameters["minutes_per_memory"] == 3
        assert optimized.strategy.expected_outcomes.estimated_time == 6
        assert optimized.original_queue.id == "queue-1"

    def test_no_high_significance_uses_balanced(
        self, weighter, ordinary_memory, old_memory, sparse_memory
    ) -> None:
        queue = make_queue(
            [ordinary_memory, old_memory, sparse_memory],
            minutes=5,
            expertise=ValidatorExpertise.INTERMEDIATE,
        )
        optimized = weighter.optimize_review_queue(queue)

        assert optimized.strategy.name == "balanced-sampling"
        assert len(optimized.optimized_order) == 1
        assert len(optimized.deferred_ids) == 2

    def test_everything_fits(self, weighter, queue_memories) -> None:
        optimized = weighter.optimize_review_queue(make_queue(queue_memories, minutes=60))

        assert optimized.strategy.name == "significance-weighted"
        assert len(optimized.optimized_order) == 4
        assert optimized.deferred_ids == []
        outcomes = optimized.strategy.expected_outcomes
        assert outcomes.estimated_time == 12
        assert 0.0 < outcomes.expected_quality <= 1.0
        assert 0.0 < outcomes.coverage.temporal_span <= 1.0

    def test_constraints_override_queue_resources(self, weighter, queue_memories) -> None:
        queue = make_queue(queue_memories, minutes=600)
        constraints = ResourceAllocation(
            available_time=3, validator_expertise=ValidatorExpertise.EXPERT
        )
        optimized = weighter.optimize_review_queue(queue, constraints)

        assert [p.memory.id for p in optimized.optimized_order] == ["mem-birth"]

    def test_no_time_defers_everything(self, weighter, queue_memories) -> None:
        optimized = weighter.optimize_review_queue(make_queue(queue_memories, minutes=0))

        assert optimized.optimized_order == []
        assert len(optimized.deferred_ids) == 4
        assert optimized.strategy.expected_outcomes.estimated_time == 0.0

    def test_forced_strategy(self, manager, queue_memories) -> None:
        optimized = manager.optimize_review_queue(
            make_queue(queue_memories, minutes=6), strategy=BalancedSamplingStrategy()
        )
        assert optimized.strategy.name == "balanced-sampling"
        assert optimized.strategy.parameters["high_ratio"] == 0.4
