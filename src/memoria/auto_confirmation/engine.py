"""Auto-confirmation engine.

Decides, per memory, between auto-approve, needs-review and auto-reject:

1. Score the five confidence factors and combine them with the config weights
2. Map the confidence onto the threshold zones
3. Escalate automatic decisions on critically significant memories to review

Batches read one config snapshot up front and evaluate every memory through a
guarded per-item boundary, so one bad record never aborts the batch.
"""

import logging
import time
from datetime import datetime, timezone
from typing import Any, Callable, Optional, Union

from memoria.auto_confirmation.confidence import ConfidenceCalculator
from memoria.auto_confirmation.threshold_manager import ThresholdManager
from memoria.constants import CRITICAL_SIGNIFICANCE_THRESHOLD, MIN_APPLY_IMPROVEMENT
from memoria.significance.weighter import SignificanceWeighter
from memoria.types.memory import Memory
from memoria.types.validation import (
    AutoConfirmationResult,
    BatchValidationResult,
    Decision,
    DecisionCounts,
    EvaluationOutcome,
    ThresholdConfig,
    ThresholdUpdate,
    ValidationFeedback,
)

logger = logging.getLogger(__name__)

STRONG_FACTOR_REPORT = 0.8
WEAK_FACTOR_REPORT = 0.5
REVIEW_FACTOR_REPORT = 0.7
MAX_SUGGESTED_ACTIONS = 3


class AutoConfirmationEngine:
    """Confidence scorer and decision maker for candidate memories.

    Args:
        config: Initial threshold config (defaults to ThresholdConfig())
        significance_weighter: Weighter used for the escalation rule
        critical_significance_threshold: Significance above which automatic
            decisions are escalated to review
        clock: Returns the current time; injected for deterministic scoring
    """

    def __init__(
        self,
        config: Optional[ThresholdConfig] = None,
        significance_weighter: Optional[SignificanceWeighter] = None,
        critical_significance_threshold: float = CRITICAL_SIGNIFICANCE_THRESHOLD,
        clock: Optional[Callable[[], datetime]] = None,
    ) -> None:
        self._clock = clock or (lambda: datetime.now(timezone.utc))
        self._threshold_manager = ThresholdManager(config)
        self._calculator = ConfidenceCalculator(clock=self._clock)
        self._weighter = significance_weighter or SignificanceWeighter(clock=self._clock)
        self.critical_significance_threshold = critical_significance_threshold

    # =========================================================================
    # Configuration
    # =========================================================================

    def get_config(self) -> ThresholdConfig:
        return self._threshold_manager.get_config()

    def set_config(self, config: Union[ThresholdConfig, dict[str, Any]]) -> None:
        """Replace the live config.

        Raises:
            pydantic.ValidationError: If the config violates its invariants
        """
        if not isinstance(config, ThresholdConfig):
            config = ThresholdConfig.model_validate(config)
        self._threshold_manager.set_config(config)

    # =========================================================================
    # Evaluation
    # =========================================================================

    def evaluate_memory(
        self,
        memory: Memory,
        config: Optional[ThresholdConfig] = None,
        now: Optional[datetime] = None,
    ) -> AutoConfirmationResult:
        """Score a memory and decide its disposition.

        Args:
            memory: Memory to evaluate
            config: Config to evaluate against (defaults to the live config)
            now: Reference time (defaults to the engine clock)

        Returns:
            AutoConfirmationResult with decision, confidence, factors and reasons
        """
        config = config or self.get_config()
        assessment = self._calculator.calculate(memory, config.weights, now=now)
        confidence = assessment.overall
        factors = assessment.factors.as_dict()

        decision = config.decide(confidence)
        reasons: list[str] = []
        suggested: list[str] = []

        if decision is Decision.AUTO_APPROVE:
            reasons.append(
                f"Confidence score ({confidence:.1%}) meets approval threshold "
                f"({config.auto_approve_threshold:.1%})"
            )
            reasons.extend(
                f"Strong {name}: {value:.1%}"
                for name, value in factors.items()
                if value > STRONG_FACTOR_REPORT
            )
        elif decision is Decision.AUTO_REJECT:
            reasons.append(
                f"Confidence score ({confidence:.1%}) at or below rejection threshold "
                f"({config.auto_reject_threshold:.1%})"
            )
            reasons.extend(
                f"Weak {name}: {value:.1%}"
                for name, value in factors.items()
                if value < WEAK_FACTOR_REPORT
            )
        else:
            reasons.append(f"Confidence score ({confidence:.1%}) requires human review")
            suggested.extend(self._weakest_factor_actions(factors))

        reasons.extend(assessment.notes)

        significance = self._weighter.calculate_significance(memory, now=now)
        if decision.is_automatic and significance.overall > self.critical_significance_threshold:
            logger.info(
                f"Escalating {memory.id} from {decision.value} to review: "
                f"significance {significance.overall:.3f}"
            )
            reasons.append(
                f"Critical significance ({significance.overall:.1%}) exceeds "
                f"{self.critical_significance_threshold:.1%} - escalated from "
                f"{decision.value} to human review"
            )
            suggested.append("Review with care: emotionally critical memory")
            suggested.extend(self._weakest_factor_actions(factors))
            decision = Decision.NEEDS_REVIEW

        result = AutoConfirmationResult(
            memory_id=memory.id,
            decision=decision,
            confidence=confidence,
            confidence_factors=assessment.factors,
            reasons=reasons,
            suggested_actions=suggested or None,
            significance=significance.overall,
        )

        logger.debug(f"Evaluated {memory.id}: {decision.value} ({confidence:.3f})")
        return result

    @staticmethod
    def _weakest_factor_actions(factors: dict[str, float]) -> list[str]:
        weakest = sorted(
            (item for item in factors.items() if item[1] < REVIEW_FACTOR_REPORT),
            key=lambda item: item[1],
        )[:MAX_SUGGESTED_ACTIONS]
        return [f"Review {name} (currently {value:.1%})" for name, value in weakest]

    def evaluate_safely(
        self,
        memory: Memory,
        config: ThresholdConfig,
        now: Optional[datetime] = None,
    ) -> EvaluationOutcome:
        """Evaluate a memory, turning any failure into an error outcome."""
        memory_id = getattr(memory, "id", "unknown")
        try:
            result = self.evaluate_memory(memory, config, now=now)
            return EvaluationOutcome(success=True, memory_id=memory_id, result=result)
        except Exception as e:
            logger.error(f"Error evaluating memory {memory_id}: {e}")
            return EvaluationOutcome(success=False, memory_id=memory_id, error=str(e))

    def process_batch(
        self,
        memories: list[Memory],
        config: Optional[ThresholdConfig] = None,
        limit: Optional[int] = None,
        should_stop: Optional[Callable[[int], bool]] = None,
    ) -> BatchValidationResult:
        """Evaluate a batch of memories.

        The config and reference time are read once at batch start, so a
        config change mid-batch never affects the batch.

        Args:
            memories: Memories to evaluate, in order
            config: Config snapshot (defaults to the live config)
            limit: Stop after this many memories
            should_stop: Called with the processed count before each memory;
                returning True stops the batch

        Returns:
            BatchValidationResult; stopped batches list the unprocessed ids
        """
        start = time.perf_counter()
        snapshot = config or self.get_config()
        now = self._clock()
        logger.info(f"Processing batch of {len(memories)} memories")

        results: list[AutoConfirmationResult] = []
        error_count = 0
        stopped_early = False

        for index, memory in enumerate(memories):
            if (limit is not None and index >= limit) or (
                should_stop is not None and should_stop(index)
            ):
                stopped_early = True
                break

            outcome = self.evaluate_safely(memory, snapshot, now=now)
            if not outcome.success:
                error_count += 1
            results.append(outcome.to_result())

        unprocessed = [memory.id for memory in memories[len(results):]] if stopped_early else []
        batch_confidence = (
            sum(result.confidence for result in results) / len(results) if results else 0.0
        )
        decisions = DecisionCounts.from_results(results)
        processing_time = (time.perf_counter() - start) * 1000

        logger.info(
            f"Batch complete: {len(results)} evaluated, {decisions.auto_approved} approved, "
            f"{decisions.needs_review} review, {decisions.auto_rejected} rejected, "
            f"{error_count} errors, {processing_time:.1f}ms"
        )

        return BatchValidationResult(
            total_memories=len(results),
            decisions=decisions,
            batch_confidence=batch_confidence,
            results=results,
            processing_time=processing_time,
            error_count=error_count,
            stopped_early=stopped_early,
            unprocessed_ids=unprocessed,
        )

    # =========================================================================
    # Calibration
    # =========================================================================

    def recommend_thresholds(self, feedback: list[ValidationFeedback]) -> ThresholdUpdate:
        """Recommend a threshold update without applying it."""
        return self._threshold_manager.calculate_threshold_update(feedback)

    def apply_threshold_update(self, update: ThresholdUpdate) -> ThresholdConfig:
        """Make an update's recommendation the live config."""
        return self._threshold_manager.apply_update(update)

    def update_thresholds(
        self,
        feedback: list[ValidationFeedback],
        min_improvement: float = MIN_APPLY_IMPROVEMENT,
    ) -> ThresholdUpdate:
        """Recommend an update and apply it if it promises enough improvement.

        Args:
            feedback: Human decisions on previously evaluated memories
            min_improvement: Expected accuracy improvement required to apply

        Returns:
            The recommended update, whether or not it was applied
        """
        logger.info(f"Updating thresholds from {len(feedback)} feedback items")
        update = self.recommend_thresholds(feedback)

        if update.expected_accuracy_improvement > min_improvement:
            self.apply_threshold_update(update)
            logger.info(
                f"Thresholds updated (expected improvement "
                f"{update.expected_accuracy_improvement:.3f}): {update.update_reasons}"
            )
        else:
            logger.info(
                f"No threshold update applied (expected improvement "
                f"{update.expected_accuracy_improvement:.3f})"
            )
        return update
