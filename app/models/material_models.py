from datetime import datetime
from enum import Enum
from pathlib import Path

from pydantic import BaseModel
from pydantic import ConfigDict


class MaterialType(str, Enum):
    """Kinds of study material the generation service can be asked for."""

    FLASHCARDS = "flashcards"
    MULTIPLE_CHOICE = "multiple_choice"
    SHORT_ANSWER = "short_answer"
    PRACTICE_EXAM = "practice_exam"


class PipelineState(str, Enum):
    """States a single generation request moves through."""

    RECEIVED = "received"
    VALIDATED = "validated"
    EXTRACTED = "extracted"
    GENERATED = "generated"
    PERSISTED = "persisted"
    FAILED = "failed"
    CLEANED_UP = "cleaned_up"


class UploadedArtifact(BaseModel):
    """An uploaded document held on disk for the lifetime of one request."""

    path: Path
    original_name: str
    declared_mime_type: str | None = None
    size: int


class GenerationRequest(BaseModel):
    """Input of one generation call: what to generate and from which text."""

    material_type: MaterialType
    source_text: str


class GeneratedMaterial(BaseModel):
    """Durable record of one successful generation."""

    model_config = ConfigDict(from_attributes=True, frozen=True)

    id: int
    filename: str
    material_type: MaterialType
    generated_content: str
    created_at: datetime


class GenerateResponse(BaseModel):
    """Body returned by ``POST /api/generate`` on success."""

    result: str
    id: int


class ErrorResponse(BaseModel):
    """Body returned by every failed request."""

    error: str
