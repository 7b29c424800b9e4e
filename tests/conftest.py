"""Pytest configuration and shared fixtures for memoria tests.

This module provides reusable fixtures for testing:
- env_setup: (autouse) Clears MEMORIA_* variables and isolates .env lookup
- fixed_now / clock: Deterministic reference time (Wednesday 2024-06-12 UTC)
- make_memory: Factory for Memory records with sensible defaults
- ordinary_memory / rich_memory / sparse_memory: Representative records
- make_result / make_feedback: Builders for calibration feedback

Usage:
    def test_something(make_memory, clock):
        memory = make_memory("mem_001", confidence=0.9)
"""

import os
from collections.abc import Callable, Generator
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Optional

import pytest

from memoria.types import (
    AutoConfirmationResult,
    ConfidenceFactors,
    Decision,
    EmotionalContext,
    Memory,
    MemoryMetadata,
    Participant,
    RelationshipDynamics,
    ValidationFeedback,
    ValidationStatus,
)

FIXED_NOW = datetime(2024, 6, 12, 12, 0, tzinfo=timezone.utc)

SELF = Participant(id="p-self", name="Sam", role="self")


@pytest.fixture(autouse=True)
def env_setup(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> Generator[None, None, None]:
    """Run every test without MEMORIA_* settings or a stray .env file."""
    for key in list(os.environ):
        if key.startswith("MEMORIA_"):
            monkeypatch.delenv(key)
    monkeypatch.chdir(tmp_path)
    yield


@pytest.fixture
def fixed_now() -> datetime:
    return FIXED_NOW


@pytest.fixture
def clock() -> Callable[[], datetime]:
    return lambda: FIXED_NOW


@pytest.fixture
def make_memory() -> Callable[..., Memory]:
    """Factory for memories.

    Keyword arguments override the defaults; emotion/intensity/relationship
    shortcuts build the nested annotations.
    """

    def _make(
        memory_id: str,
        content: str = "We talked about the weekend plans over coffee at the usual place.",
        timestamp: Optional[object] = "2024-05-01T10:00:00Z",
        confidence: Optional[float] = 0.9,
        emotion: Optional[str] = "contentment",
        secondary: Optional[list[str]] = None,
        intensity: Optional[float] = 0.4,
        themes: Optional[list[str]] = None,
        others: Optional[list[Participant]] = None,
        relationship_type: Optional[str] = None,
        interaction_quality: Optional[str] = "casual",
        patterns: Optional[list[str]] = None,
        tags: Optional[list[str]] = None,
        processed_at: Optional[str] = "2024-05-02T09:00:00Z",
    ) -> Memory:
        if others is None:
            others = [Participant(id="p-friend", name="Alex", relationship="friend")]
        emotional_context = None
        if emotion is not None:
            emotional_context = EmotionalContext(
                primary_emotion=emotion,
                secondary_emotions=secondary if secondary is not None else ["joy"],
                intensity=intensity,
                themes=themes if themes is not None else ["routine"],
            )
        return Memory(
            id=memory_id,
            content=content,
            timestamp=timestamp,
            author=SELF,
            participants=[SELF, *others],
            emotional_context=emotional_context,
            relationship_dynamics=RelationshipDynamics(
                interaction_quality=interaction_quality,
                communication_patterns=patterns if patterns is not None else ["banter"],
                relationship_type=relationship_type,
            ),
            tags=tags if tags is not None else ["weekend"],
            metadata=MemoryMetadata(confidence=confidence, processed_at=processed_at),
        )

    return _make


@pytest.fixture
def ordinary_memory(make_memory: Callable[..., Memory]) -> Memory:
    """Well-annotated everyday memory: high confidence, medium significance."""
    return make_memory("mem-ordinary")


@pytest.fixture
def rich_memory(make_memory: Callable[..., Memory]) -> Memory:
    """Birth of a child: every significance factor is high (overall 0.925)."""
    return make_memory(
        "mem-birth",
        content="The day our daughter was born changed my life and I will never forget it.",
        timestamp=(FIXED_NOW - timedelta(days=10)).isoformat(),
        confidence=0.95,
        emotion="joy",
        secondary=["love", "hope", "fear"],
        intensity=0.9,
        themes=["love", "grief"],
        others=[
            Participant(id="p-partner", name="Jo", relationship="spouse"),
            Participant(id="p-baby", name="Mia", role="child", relationship="child"),
        ],
        relationship_type="family",
        interaction_quality="transformative",
        patterns=["breakthrough"],
        tags=["birth", "family"],
        processed_at=(FIXED_NOW - timedelta(days=9)).isoformat(),
    )


@pytest.fixture
def sparse_memory() -> Memory:
    """Bare record with no annotations: auto-rejected."""
    return Memory(id="mem-sparse", content="ok")


@pytest.fixture
def make_result() -> Callable[..., AutoConfirmationResult]:
    """Factory for auto-confirmation results with uniform (or given) factors."""

    def _make(
        decision: Decision,
        confidence: float = 0.8,
        factor: float = 0.6,
        memory_id: str = "mem",
        **factor_overrides: float,
    ) -> AutoConfirmationResult:
        values = {
            "extraction_confidence": factor,
            "emotional_coherence": factor,
            "relationship_accuracy": factor,
            "temporal_consistency": factor,
            "content_quality": factor,
            **factor_overrides,
        }
        return AutoConfirmationResult(
            memory_id=memory_id,
            decision=decision,
            confidence=confidence,
            confidence_factors=ConfidenceFactors(**values),
        )

    return _make


@pytest.fixture
def make_feedback(
    make_result: Callable[..., AutoConfirmationResult],
) -> Callable[..., list[ValidationFeedback]]:
    """Build `count` feedback items for one (decision, human decision) pair."""

    def _make(
        decision: Decision,
        human: ValidationStatus,
        count: int = 1,
        confidence: float = 0.8,
        prefix: str = "fb",
        **result_kwargs: float,
    ) -> list[ValidationFeedback]:
        return [
            ValidationFeedback(
                memory_id=f"{prefix}-{i}",
                original_result=make_result(
                    decision, confidence=confidence, memory_id=f"{prefix}-{i}", **result_kwargs
                ),
                human_decision=human,
                timestamp=FIXED_NOW + timedelta(minutes=i),
            )
            for i in range(count)
        ]

    return _make
