"""Command line entry point for Memoria.

Runs the validation engine over JSON files and prints JSON results:
- evaluate: auto-confirmation decisions for a batch of memories
- prioritize: significance ranking, or an optimised queue with --available-time
- sample: coverage-constrained validation sample
- recalibrate: threshold recommendation from human feedback

Usage:
    python -m memoria evaluate memories.json
    python -m memoria prioritize memories.json --available-time 60 --expertise expert
    python -m memoria sample memories.json --size 50 --seed 7
    python -m memoria recalibrate feedback.json

Settings come from MEMORIA_* environment variables or a .env file. All
logging goes to stderr so stdout carries only the JSON result.
"""

import argparse
import json
import logging
import sys
from pathlib import Path
from typing import Any, Optional

from dotenv import load_dotenv
from pydantic import TypeAdapter, ValidationError

from memoria.auto_confirmation import AutoConfirmationEngine, calculate_threshold_update
from memoria.config import MemoriaSettings, get_settings
from memoria.sampling import IntelligentSampler
from memoria.significance import SignificanceWeighter
from memoria.types import (
    DEFAULT_SAMPLING_STRATEGY,
    Memory,
    ResourceAllocation,
    ValidationFeedback,
    ValidationQueue,
    ValidatorExpertise,
)

# Load .env file - must be done before any config access
load_dotenv()

logger = logging.getLogger(__name__)

MEMORY_LIST = TypeAdapter(list[Memory])
FEEDBACK_LIST = TypeAdapter(list[ValidationFeedback])


class ConfigurationError(ValueError):
    """Raised when CLI input or settings cannot be used."""


def setup_logging(log_level: str) -> None:
    """Configure logging to stderr (stdout is reserved for results).

    Args:
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
    """
    level = getattr(logging, log_level.upper(), logging.INFO)

    logging.basicConfig(
        level=level,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        stream=sys.stderr,
    )

    logger.debug(f"Logging initialized at {log_level.upper()} level")


def parse_arguments(argv: Optional[list[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog="memoria",
        description="Validation decision engine for emotional memories",
    )
    parser.add_argument(
        "--log-level",
        type=str,
        default=None,
        choices=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
        help="Logging level (default: MEMORIA_LOG_LEVEL)",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    evaluate = subparsers.add_parser("evaluate", help="Auto-confirm a batch of memories")
    evaluate.add_argument("file", type=Path, help="JSON file with a list of memories")
    evaluate.add_argument("--limit", type=int, default=None, help="Evaluate at most N memories")

    prioritize = subparsers.add_parser("prioritize", help="Rank memories for review")
    prioritize.add_argument("file", type=Path, help="JSON file with a list of memories")
    prioritize.add_argument(
        "--available-time",
        type=float,
        default=None,
        help="Validator minutes available; produces an optimised queue",
    )
    prioritize.add_argument(
        "--expertise",
        type=str,
        default=ValidatorExpertise.INTERMEDIATE.value,
        choices=[e.value for e in ValidatorExpertise],
        help="Validator expertise (default: intermediate)",
    )
    prioritize.add_argument("--queue-id", type=str, default="cli-queue", help="Queue identifier")

    sample = subparsers.add_parser("sample", help="Draw a validation sample")
    sample.add_argument("file", type=Path, help="JSON file with a list of memories")
    sample.add_argument("--size", type=int, default=None, help="Target sample size")
    sample.add_argument("--seed", type=int, default=None, help="Random seed")

    recalibrate = subparsers.add_parser("recalibrate", help="Recommend thresholds from feedback")
    recalibrate.add_argument("file", type=Path, help="JSON file with a list of feedback items")

    return parser.parse_args(argv)


def load_json_list(path: Path, adapter: TypeAdapter) -> list[Any]:
    """Read and validate a JSON list from a file.

    Raises:
        ConfigurationError: If the file is missing, unreadable or invalid
    """
    try:
        raw = path.read_text(encoding="utf-8")
    except OSError as e:
        raise ConfigurationError(f"Cannot read {path}: {e}") from e
    try:
        return adapter.validate_json(raw)
    except ValidationError as e:
        raise ConfigurationError(f"Invalid content in {path}: {e}") from e


def run_evaluate(args: argparse.Namespace, settings: MemoriaSettings) -> dict[str, Any]:
    memories = load_json_list(args.file, MEMORY_LIST)
    engine = AutoConfirmationEngine(
        config=settings.to_threshold_config(),
        critical_significance_threshold=settings.critical_significance_threshold,
    )
    return engine.process_batch(memories, limit=args.limit).model_dump(mode="json")


def run_prioritize(args: argparse.Namespace, settings: MemoriaSettings) -> dict[str, Any]:
    memories = load_json_list(args.file, MEMORY_LIST)
    weighter = SignificanceWeighter()
    if args.available_time is None:
        return weighter.prioritize_memories(memories).model_dump(mode="json")

    queue = ValidationQueue(
        id=args.queue_id,
        pending_memories=memories,
        resource_allocation=ResourceAllocation(
            available_time=args.available_time,
            validator_expertise=ValidatorExpertise(args.expertise),
        ),
    )
    optimized = weighter.optimize_review_queue(queue)
    return optimized.model_dump(mode="json", exclude={"original_queue"})


def run_sample(args: argparse.Namespace, settings: MemoriaSettings) -> dict[str, Any]:
    memories = load_json_list(args.file, MEMORY_LIST)
    size = args.size if args.size is not None else settings.sample_target_size
    if size < 0:
        raise ConfigurationError(f"Sample size must be non-negative, got {size}")
    strategy = DEFAULT_SAMPLING_STRATEGY.model_copy(
        update={
            "parameters": DEFAULT_SAMPLING_STRATEGY.parameters.model_copy(
                update={"target_size": size}
            )
        }
    )
    sampler = IntelligentSampler(default_seed=settings.sampling_seed)
    sampled = sampler.sample_for_validation(memories, strategy=strategy, seed=args.seed)
    return {
        "sample_ids": [memory.id for memory in sampled.samples],
        "coverage": sampled.coverage.model_dump(mode="json"),
        "metadata": sampled.metadata.model_dump(mode="json"),
    }


def run_recalibrate(args: argparse.Namespace, settings: MemoriaSettings) -> dict[str, Any]:
    feedback = load_json_list(args.file, FEEDBACK_LIST)
    update = calculate_threshold_update(feedback, settings.to_threshold_config())
    return update.model_dump(mode="json")


COMMANDS = {
    "evaluate": run_evaluate,
    "prioritize": run_prioritize,
    "sample": run_sample,
    "recalibrate": run_recalibrate,
}


def main(argv: Optional[list[str]] = None) -> int:
    """Run a CLI command and print its JSON result.

    Returns:
        Exit code: 0 on success, 1 on configuration or input errors
    """
    args = parse_arguments(argv)

    try:
        settings = get_settings()
    except ValidationError as e:
        sys.stderr.write(f"ERROR: Invalid MEMORIA_* settings: {e}\n")
        return 1

    setup_logging(args.log_level or settings.log_level)

    try:
        result = COMMANDS[args.command](args, settings)
    except ConfigurationError as e:
        logger.error(str(e))
        return 1
    except ValueError as e:
        logger.error(f"Invalid configuration: {e}")
        return 1

    json.dump(result, sys.stdout, indent=2)
    sys.stdout.write("\n")
    return 0


if __name__ == "__main__":
    sys.exit(main())
