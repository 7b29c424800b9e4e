"""Memory record types consumed by the validation engine.

A Memory is a single extracted, emotionally-annotated conversational record.
It is owned by the upstream extraction pipeline; the engine only reads it.
Every sub-structure is optional so that partially extracted records can
still be scored (missing inputs fall back to neutral defaults).
"""

from datetime import datetime, timezone
from enum import Enum
from typing import Optional, Union

from pydantic import BaseModel, ConfigDict, Field

# Raw timestamps arrive either as datetimes or as ISO-8601 strings
Timestamp = Union[datetime, str]


class ValidationStatus(str, Enum):
    """Human validation status of a memory.

    - PENDING: Not yet validated
    - VALIDATED: Validated and accepted
    - NEEDS_REFINEMENT: Needs refinement or correction
    - REJECTED: Rejected as invalid
    """

    PENDING = "pending"
    VALIDATED = "validated"
    NEEDS_REFINEMENT = "needs-refinement"
    REJECTED = "rejected"


class Participant(BaseModel):
    """A person taking part in the remembered conversation.

    Attributes:
        id: Stable participant identifier
        name: Display name
        role: Role in the conversation (e.g. 'self', 'child', 'patient')
        relationship: Relationship to the author (e.g. 'parent', 'friend')
    """

    model_config = ConfigDict(frozen=True)

    id: str
    name: Optional[str] = None
    role: Optional[str] = None
    relationship: Optional[str] = None


class EmotionalContext(BaseModel):
    """Emotional annotation produced by the extraction pipeline.

    Intensity is deliberately unconstrained: out-of-range values are a
    coherence signal, not a schema error.
    """

    model_config = ConfigDict(frozen=True)

    primary_emotion: Optional[str] = None
    secondary_emotions: list[str] = Field(default_factory=list)
    intensity: Optional[float] = None
    valence: Optional[float] = None
    themes: list[str] = Field(default_factory=list)


class RelationshipDynamics(BaseModel):
    """Relationship annotation produced by the extraction pipeline."""

    model_config = ConfigDict(frozen=True)

    interaction_quality: Optional[str] = None
    communication_patterns: list[str] = Field(default_factory=list)
    relationship_type: Optional[str] = None
    connection_strength: Optional[float] = None


class MemoryMetadata(BaseModel):
    """Extraction metadata.

    Attributes:
        confidence: Extraction confidence reported by the pipeline (0.0-1.0)
        processed_at: When the pipeline processed the record
        source: Name of the producing source
        schema_version: Version of the record schema
    """

    model_config = ConfigDict(frozen=True)

    confidence: Optional[float] = Field(default=None, ge=0.0, le=1.0)
    processed_at: Optional[Timestamp] = None
    source: Optional[str] = None
    schema_version: Optional[str] = None


class Memory(BaseModel):
    """Candidate memory under validation.

    Attributes:
        id: Unique identifier
        content: Free-text content of the memory
        timestamp: When the remembered event happened (may be malformed)
        author: Participant who authored the source conversation
        participants: Everyone involved, author included
        emotional_context: Optional emotional annotation
        relationship_dynamics: Optional relationship annotation
        tags: Free-form tags (used for life-event detection)
        metadata: Extraction metadata, including extraction confidence
    """

    model_config = ConfigDict(frozen=True)

    id: str
    content: str = ""
    timestamp: Optional[Timestamp] = None
    author: Optional[Participant] = None
    participants: list[Participant] = Field(default_factory=list)
    emotional_context: Optional[EmotionalContext] = None
    relationship_dynamics: Optional[RelationshipDynamics] = None
    tags: list[str] = Field(default_factory=list)
    metadata: MemoryMetadata = Field(default_factory=MemoryMetadata)

    def occurred_at(self) -> Optional[datetime]:
        """Parsed event timestamp in UTC, or None if missing/unparseable."""
        return parse_timestamp(self.timestamp)

    def participant_ids(self) -> list[str]:
        """IDs of all participants, in order, without duplicates."""
        seen: dict[str, None] = {}
        for participant in self.participants:
            seen.setdefault(participant.id, None)
        return list(seen)

    def emotions(self) -> set[str]:
        """Lower-cased primary and secondary emotions."""
        if self.emotional_context is None:
            return set()
        found = {e.lower() for e in self.emotional_context.secondary_emotions if e}
        if self.emotional_context.primary_emotion:
            found.add(self.emotional_context.primary_emotion.lower())
        return found


def parse_timestamp(value: Optional[Timestamp]) -> Optional[datetime]:
    """Parse a datetime or ISO-8601 string into an aware UTC datetime.

    Naive values are assumed to be UTC. A trailing 'Z' is accepted.

    Args:
        value: Raw timestamp value

    Returns:
        Aware datetime, or None if the value is missing or unparseable
    """
    if value is None:
        return None

    if isinstance(value, datetime):
        parsed = value
    else:
        text = value.strip()
        if not text:
            return None
        if text.endswith("Z"):
            text = text[:-1] + "+00:00"
        try:
            parsed = datetime.fromisoformat(text)
        except (ValueError, TypeError):
            return None

    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed.astimezone(timezone.utc)
