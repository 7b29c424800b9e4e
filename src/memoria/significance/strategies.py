"""Review queue optimisation strategies.

Each strategy selects, from candidates already ordered by descending
significance, at most `capacity` memories to review. select_queue_strategy()
is the policy that picks a strategy from the queue's shape and resources.
"""

import logging
from abc import ABC, abstractmethod
from collections import OrderedDict
from typing import Any

from memoria.constants import BALANCED_TIER_RATIOS, HIGH_SIGNIFICANCE
from memoria.types.significance import PrioritizedMemory, SignificanceTier

logger = logging.getLogger(__name__)

# Floor applied to significance so zero-significance items can still be drawn
MIN_SELECTION_WEIGHT = 1e-6


class QueueStrategy(ABC):
    """Abstract base class for review queue selection strategies."""

    name: str = ""

    @property
    def parameters(self) -> dict[str, Any]:
        """Strategy parameters reported alongside the optimised queue."""
        return {}

    @abstractmethod
    def select(
        self, candidates: list[PrioritizedMemory], capacity: int
    ) -> list[PrioritizedMemory]:
        """Select memories to review.

        Args:
            candidates: Memories ordered by descending significance
            capacity: Maximum number of memories to select

        Returns:
            Selected memories in review order (highest significance first)
        """
        pass


def _in_rank_order(selected: list[PrioritizedMemory]) -> list[PrioritizedMemory]:
    return sorted(selected, key=lambda item: item.priority_rank)


class HighSignificanceFocusStrategy(QueueStrategy):
    """Review the most significant memories first.

    When time is short the lowest-significance memories are the ones cut.
    """

    name = "high-significance-focus"

    @property
    def parameters(self) -> dict[str, Any]:
        return {"min_significance": HIGH_SIGNIFICANCE, "truncate": "lowest-significance-first"}

    def select(
        self, candidates: list[PrioritizedMemory], capacity: int
    ) -> list[PrioritizedMemory]:
        return _in_rank_order(candidates)[: max(0, capacity)]


class BalancedSamplingStrategy(QueueStrategy):
    """Spread the selection across significance tiers, months and participants.

    Tier quotas are 40% high, 40% medium, 20% low of capacity. Within a tier
    memories are taken round-robin across (month, participant) groups so no
    single period or person dominates; unused quota is filled by significance.
    """

    name = "balanced-sampling"

    def __init__(self, tier_ratios: dict[str, float] = BALANCED_TIER_RATIOS) -> None:
        self.tier_ratios = dict(tier_ratios)

    @property
    def parameters(self) -> dict[str, Any]:
        return {f"{tier}_ratio": ratio for tier, ratio in self.tier_ratios.items()}

    def select(
        self, candidates: list[PrioritizedMemory], capacity: int
    ) -> list[PrioritizedMemory]:
        ordered = _in_rank_order(candidates)
        if capacity <= 0:
            return []
        if capacity >= len(ordered):
            return ordered

        tiers: dict[str, list[PrioritizedMemory]] = {tier.value: [] for tier in SignificanceTier}
        for item in ordered:
            tiers[SignificanceTier.of(item.overall).value].append(item)

        selected: list[PrioritizedMemory] = []
        for tier, members in tiers.items():
            quota = int(capacity * self.tier_ratios.get(tier, 0.0))
            selected.extend(self._round_robin(members, quota))

        chosen = {item.memory.id for item in selected}
        for item in ordered:
            if len(selected) >= capacity:
                break
            if item.memory.id not in chosen:
                selected.append(item)
                chosen.add(item.memory.id)

        return _in_rank_order(selected)

    @staticmethod
    def _group_key(item: PrioritizedMemory) -> tuple[str, str]:
        occurred = item.memory.occurred_at()
        month = occurred.strftime("%Y-%m") if occurred else "unknown"
        author_id = item.memory.author.id if item.memory.author else None
        others = [pid for pid in item.memory.participant_ids() if pid != author_id]
        return month, others[0] if others else "unknown"

    def _round_robin(
        self, members: list[PrioritizedMemory], quota: int
    ) -> list[PrioritizedMemory]:
        groups: "OrderedDict[tuple[str, str], list[PrioritizedMemory]]" = OrderedDict()
        for item in members:
            groups.setdefault(self._group_key(item), []).append(item)

        picked: list[PrioritizedMemory] = []
        queues = [list(group) for group in groups.values()]
        while len(picked) < quota and any(queues):
            for queue in queues:
                if queue and len(picked) < quota:
                    picked.append(queue.pop(0))
        return picked


class SignificanceWeightedStrategy(QueueStrategy):
    """Probability-proportional-to-significance selection.

    Uses systematic sampling over cumulative significance with a fixed start,
    so the selection is deterministic. Everything is kept when it fits.
    """

    name = "significance-weighted"

    @property
    def parameters(self) -> dict[str, Any]:
        return {"selection": "systematic-pps"}

    def select(
        self, candidates: list[PrioritizedMemory], capacity: int
    ) -> list[PrioritizedMemory]:
        ordered = _in_rank_order(candidates)
        if capacity <= 0:
            return []
        if capacity >= len(ordered):
            return ordered

        weights = [max(item.overall, MIN_SELECTION_WEIGHT) for item in ordered]
        total = sum(weights)
        interval = total / capacity

        picked: dict[str, PrioritizedMemory] = {}
        cumulative = 0.0
        index = 0
        for step in range(capacity):
            point = interval * (step + 0.5)
            while index < len(ordered) - 1 and cumulative + weights[index] < point:
                cumulative += weights[index]
                index += 1
            picked.setdefault(ordered[index].memory.id, ordered[index])

        # Items heavier than the interval can be hit twice; top up by significance
        for item in ordered:
            if len(picked) >= capacity:
                break
            picked.setdefault(item.memory.id, item)

        return _in_rank_order(list(picked.values()))


def select_queue_strategy(
    candidates: list[PrioritizedMemory], capacity: int
) -> QueueStrategy:
    """Pick the strategy for a queue.

    - Not everything fits and something is high-significance:
      high-significance-focus
    - Not everything fits and nothing is high-significance: balanced-sampling
    - Otherwise: significance-weighted
    """
    if capacity < len(candidates):
        if any(SignificanceTier.of(item.overall) is SignificanceTier.HIGH for item in candidates):
            strategy: QueueStrategy = HighSignificanceFocusStrategy()
        else:
            strategy = BalancedSamplingStrategy()
    else:
        strategy = SignificanceWeightedStrategy()

    logger.debug(
        f"Selected {strategy.name} for {len(candidates)} candidates (capacity {capacity})"
    )
    return strategy
