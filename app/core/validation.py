"""Upload validation rules.

Validation never raises: each check returns a ``ValidationResult`` that the
pipeline inspects before doing any expensive work.
"""

import logging
from dataclasses import dataclass
from pathlib import Path

from app.models.material_models import MaterialType

logger = logging.getLogger(__name__)

# Declared MIME types accepted for an upload
ALLOWED_MIME_TYPES: set[str] = {
    "application/pdf",
    "application/msword",
    "application/vnd.openxmlformats-officedocument.wordprocessingml.document",
    "text/plain",
}

# Extensions accepted when the declared MIME type is missing or not recognised
ALLOWED_EXTENSIONS: set[str] = {".pdf", ".doc", ".docx", ".txt"}

INVALID_FILE_TYPE_MESSAGE = "Invalid file type: only PDF, DOC, DOCX and TXT files are allowed."
MISSING_FILE_MESSAGE = "No file uploaded or invalid file type."
MISSING_MATERIAL_TYPE_MESSAGE = "Material type is required."


def normalize_mime(declared_mime_type: str | None) -> str:
    """Lower-case a declared MIME type and drop parameters such as charset."""
    return (declared_mime_type or "").split(";")[0].strip().lower()


@dataclass(frozen=True)
class ValidationResult:
    """Outcome of a validation step."""

    ok: bool
    error: str | None = None
    material_type: MaterialType | None = None

    @classmethod
    def reject(cls, error: str) -> "ValidationResult":
        return cls(ok=False, error=error)


def validate_upload(filename: str | None, declared_mime_type: str | None, request_id: str = "-") -> ValidationResult:
    """Accept the upload when its MIME type or, failing that, its extension is allowed."""
    if not filename:
        logger.warning("[%s] Rejected request without an uploaded file", request_id)
        return ValidationResult.reject(MISSING_FILE_MESSAGE)

    ext = Path(filename).suffix.lower()
    mime = normalize_mime(declared_mime_type)

    if mime in ALLOWED_MIME_TYPES:
        logger.debug("[%s] Accepted %s by declared MIME type %s", request_id, filename, mime)
        return ValidationResult(ok=True)

    if ext in ALLOWED_EXTENSIONS:
        logger.debug(
            "[%s] Accepted %s by extension %s (declared MIME type: %s)",
            request_id,
            filename,
            ext,
            mime or "none",
        )
        return ValidationResult(ok=True)

    logger.warning(
        "[%s] Rejected file %s with MIME type %s and extension %s",
        request_id,
        filename,
        mime or "none",
        ext or "none",
    )
    return ValidationResult.reject(INVALID_FILE_TYPE_MESSAGE)


def validate_material_type(value: str | None, request_id: str = "-") -> ValidationResult:
    """Parse the requested material type."""
    if not value:
        logger.warning("[%s] Rejected request without a material type", request_id)
        return ValidationResult.reject(MISSING_MATERIAL_TYPE_MESSAGE)
    try:
        material_type = MaterialType(value.strip())
    except ValueError:
        allowed = ", ".join(m.value for m in MaterialType)
        logger.warning("[%s] Rejected unknown material type: %s", request_id, value)
        return ValidationResult.reject(f"Invalid material type '{value}'. Allowed values: {allowed}.")
    return ValidationResult(ok=True, material_type=material_type)
