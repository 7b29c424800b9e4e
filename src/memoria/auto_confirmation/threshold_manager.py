"""Threshold calibration from human validation feedback.

calculate_threshold_update() is a pure transform from (feedback, config) to a
recommended ThresholdUpdate. Nothing here changes live configuration except
ThresholdManager.apply_update(), which is the manager's only writer.

Rules:
- False positive rate above 5%: raise the approve threshold by 0.05 (max 0.95)
- False positive rate below 2% with accuracy above 90%: lower the approve
  threshold by 0.02 (min 0.65)
- False negative rate above 5%: lower the reject threshold by 0.05 (min 0.30)
- Per factor, accuracy among items where the factor exceeded 0.7: above 80%
  scales its weight by 1.1, below 50% by 0.9; weights are renormalised
"""

import logging
import math
from dataclasses import dataclass, field
from typing import Optional

from memoria.constants import (
    APPROVE_LOWER_STEP,
    APPROVE_RAISE_STEP,
    FACTOR_PENALTY_ACCURACY,
    FACTOR_PENALTY_MULTIPLIER,
    FACTOR_REWARD_ACCURACY,
    FACTOR_REWARD_MULTIPLIER,
    FALSE_NEGATIVE_CEILING,
    FALSE_POSITIVE_CEILING,
    FALSE_POSITIVE_FLOOR,
    HIGH_ACCURACY,
    MAX_AUTO_APPROVE_THRESHOLD,
    MAX_EXPECTED_IMPROVEMENT,
    MIN_AUTO_APPROVE_THRESHOLD,
    MIN_AUTO_REJECT_THRESHOLD,
    REJECT_LOWER_STEP,
    STRONG_FACTOR_VALUE,
)
from memoria.types.validation import (
    CONFIDENCE_FACTOR_NAMES,
    FactorWeights,
    ThresholdConfig,
    ThresholdUpdate,
    ValidationFeedback,
)

logger = logging.getLogger(__name__)


@dataclass
class FactorPerformance:
    """Correct decisions among feedback items where a factor was strong."""

    correct: int = 0
    total: int = 0

    @property
    def accuracy(self) -> Optional[float]:
        if self.total == 0:
            return None
        return self.correct / self.total


@dataclass
class FeedbackAnalysis:
    """Aggregate statistics over a feedback set."""

    total: int = 0
    correct: int = 0
    false_positives: int = 0
    false_negatives: int = 0
    factor_performance: dict[str, FactorPerformance] = field(
        default_factory=lambda: {name: FactorPerformance() for name in CONFIDENCE_FACTOR_NAMES}
    )

    @property
    def accuracy(self) -> float:
        return self.correct / self.total if self.total else 0.0

    @property
    def false_positive_rate(self) -> float:
        return self.false_positives / self.total if self.total else 0.0

    @property
    def false_negative_rate(self) -> float:
        return self.false_negatives / self.total if self.total else 0.0


def analyze_feedback(feedback: list[ValidationFeedback]) -> FeedbackAnalysis:
    """Count correct decisions, false positives/negatives and factor accuracy."""
    analysis = FeedbackAnalysis(total=len(feedback))

    for item in feedback:
        correct = item.was_correct()
        if correct:
            analysis.correct += 1
        elif item.is_false_positive():
            analysis.false_positives += 1
        elif item.is_false_negative():
            analysis.false_negatives += 1

        for name, value in item.original_result.confidence_factors.as_dict().items():
            if value > STRONG_FACTOR_VALUE:
                performance = analysis.factor_performance[name]
                performance.total += 1
                if correct:
                    performance.correct += 1

    return analysis


def calculate_threshold_update(
    feedback: list[ValidationFeedback], config: ThresholdConfig
) -> ThresholdUpdate:
    """Recommend new thresholds and weights from human feedback.

    The input config is never modified; the recommendation always satisfies
    the ThresholdConfig invariants. An adjustment that would leave the approve
    threshold at or below the reject threshold is skipped.

    Args:
        feedback: Human decisions on previously evaluated memories
        config: Config the feedback was produced under

    Returns:
        ThresholdUpdate with the recommendation, one reason per triggered
        rule and a bounded expected accuracy improvement
    """
    if not feedback:
        return ThresholdUpdate(
            previous_thresholds=config,
            recommended_thresholds=config,
            update_reasons=["No feedback provided"],
            expected_accuracy_improvement=0.0,
        )

    analysis = analyze_feedback(feedback)
    reasons: list[str] = []

    approve = config.auto_approve_threshold
    reject = config.auto_reject_threshold

    fp_rate = analysis.false_positive_rate
    fn_rate = analysis.false_negative_rate

    if fp_rate > FALSE_POSITIVE_CEILING:
        raised = min(MAX_AUTO_APPROVE_THRESHOLD, approve + APPROVE_RAISE_STEP)
        if raised > approve:
            reasons.append(
                f"High false positive rate ({fp_rate:.1%}) - raising approval "
                f"threshold to {raised:.2f}"
            )
            approve = raised
        else:
            reasons.append(
                f"High false positive rate ({fp_rate:.1%}) - approval threshold "
                f"already at maximum ({approve:.2f})"
            )
    elif fp_rate < FALSE_POSITIVE_FLOOR and analysis.accuracy > HIGH_ACCURACY:
        lowered = max(MIN_AUTO_APPROVE_THRESHOLD, approve - APPROVE_LOWER_STEP)
        if lowered >= approve:
            reasons.append(
                f"High accuracy ({analysis.accuracy:.1%}) - approval threshold "
                f"already at minimum ({approve:.2f})"
            )
        elif lowered <= reject:
            logger.warning(
                f"Skipping approval threshold decrease to {lowered:.2f}: "
                f"would not stay above rejection threshold {reject:.2f}"
            )
            reasons.append(
                f"High accuracy ({analysis.accuracy:.1%}) - approval threshold "
                "decrease skipped to stay above rejection threshold"
            )
        else:
            reasons.append(
                f"Low false positive rate ({fp_rate:.1%}) and high accuracy "
                f"({analysis.accuracy:.1%}) - lowering approval threshold to {lowered:.2f}"
            )
            approve = lowered

    if fn_rate > FALSE_NEGATIVE_CEILING:
        lowered = max(MIN_AUTO_REJECT_THRESHOLD, reject - REJECT_LOWER_STEP)
        if lowered < reject:
            reasons.append(
                f"High false negative rate ({fn_rate:.1%}) - lowering rejection "
                f"threshold to {lowered:.2f}"
            )
            reject = lowered
        else:
            reasons.append(
                f"High false negative rate ({fn_rate:.1%}) - rejection threshold "
                f"already at minimum ({reject:.2f})"
            )

    weights = _adjust_weights(config.weights, analysis, reasons)

    if not reasons:
        reasons.append(f"No adjustment needed (accuracy {analysis.accuracy:.1%})")

    recommended = ThresholdConfig(
        auto_approve_threshold=approve,
        auto_reject_threshold=reject,
        weights=weights,
    )

    improvement = _estimate_improvement(analysis, config, recommended)

    logger.info(
        f"Threshold update from {analysis.total} feedback items: "
        f"accuracy={analysis.accuracy:.3f}, fp={fp_rate:.3f}, fn={fn_rate:.3f}, "
        f"expected improvement={improvement:.3f}"
    )

    return ThresholdUpdate(
        previous_thresholds=config,
        recommended_thresholds=recommended,
        update_reasons=reasons,
        expected_accuracy_improvement=improvement,
    )


def _adjust_weights(
    weights: FactorWeights, analysis: FeedbackAnalysis, reasons: list[str]
) -> FactorWeights:
    adjusted = weights.as_dict()
    changed = False

    for name in CONFIDENCE_FACTOR_NAMES:
        accuracy = analysis.factor_performance[name].accuracy
        if accuracy is None:
            continue
        if accuracy > FACTOR_REWARD_ACCURACY:
            adjusted[name] *= FACTOR_REWARD_MULTIPLIER
            reasons.append(f"{name} performing well ({accuracy:.1%} accuracy) - weight increased")
            changed = True
        elif accuracy < FACTOR_PENALTY_ACCURACY:
            adjusted[name] *= FACTOR_PENALTY_MULTIPLIER
            reasons.append(f"{name} underperforming ({accuracy:.1%} accuracy) - weight decreased")
            changed = True

    if not changed:
        return weights

    total = math.fsum(adjusted.values())
    if total <= 0:
        return weights
    return FactorWeights(**{name: value / total for name, value in adjusted.items()})


def _estimate_improvement(
    analysis: FeedbackAnalysis,
    previous: ThresholdConfig,
    recommended: ThresholdConfig,
) -> float:
    improvement = 0.0

    approve_increase = recommended.auto_approve_threshold - previous.auto_approve_threshold
    if approve_increase > 0:
        improvement += approve_increase * analysis.false_positive_rate

    reject_decrease = previous.auto_reject_threshold - recommended.auto_reject_threshold
    if reject_decrease > 0:
        improvement += reject_decrease * analysis.false_negative_rate

    return min(MAX_EXPECTED_IMPROVEMENT, max(0.0, improvement))


class ThresholdManager:
    """Holds the live threshold config and applies recommended updates.

    Args:
        config: Initial config (defaults to ThresholdConfig())
    """

    def __init__(self, config: Optional[ThresholdConfig] = None) -> None:
        self._config = config or ThresholdConfig()

    def get_config(self) -> ThresholdConfig:
        return self._config

    def set_config(self, config: ThresholdConfig) -> None:
        self._config = config
        logger.info(
            f"Threshold config set: approve={config.auto_approve_threshold:.2f}, "
            f"reject={config.auto_reject_threshold:.2f}"
        )

    def calculate_threshold_update(
        self, feedback: list[ValidationFeedback]
    ) -> ThresholdUpdate:
        """Recommend an update against the current config without applying it."""
        return calculate_threshold_update(feedback, self._config)

    def apply_update(self, update: ThresholdUpdate) -> ThresholdConfig:
        """Replace the live config with the update's recommendation.

        Returns:
            The newly active config
        """
        self.set_config(update.recommended_thresholds)
        return self._config
