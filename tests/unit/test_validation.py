import pytest

from app.core.validation import INVALID_FILE_TYPE_MESSAGE
from app.core.validation import MISSING_FILE_MESSAGE
from app.core.validation import MISSING_MATERIAL_TYPE_MESSAGE
from app.core.validation import normalize_mime
from app.core.validation import validate_material_type
from app.core.validation import validate_upload
from app.models.material_models import MaterialType


@pytest.mark.parametrize(
    "mime",
    [
        "application/pdf",
        "application/msword",
        "application/vnd.openxmlformats-officedocument.wordprocessingml.document",
        "text/plain",
        "text/plain; charset=utf-8",
    ],
)
def test_accepts_allowed_mime_types(mime):
    result = validate_upload("upload.bin", mime)
    assert result.ok
    assert result.error is None


@pytest.mark.parametrize("filename", ["notes.pdf", "notes.DOC", "notes.docx", "notes.txt"])
def test_falls_back_to_extension(filename):
    result = validate_upload(filename, "application/octet-stream")
    assert result.ok


def test_accepts_extension_without_declared_mime():
    assert validate_upload("chapter.pdf", None).ok


def test_rejects_png():
    result = validate_upload("diagram.png", "image/png")
    assert not result.ok
    assert result.error == INVALID_FILE_TYPE_MESSAGE
    assert "Invalid file type" in result.error


def test_rejects_missing_file():
    result = validate_upload(None, None)
    assert not result.ok
    assert result.error == MISSING_FILE_MESSAGE


def test_material_type_required():
    result = validate_material_type(None)
    assert not result.ok
    assert result.error == MISSING_MATERIAL_TYPE_MESSAGE
    assert validate_material_type("").error == MISSING_MATERIAL_TYPE_MESSAGE


@pytest.mark.parametrize("value", [m.value for m in MaterialType])
def test_material_type_accepts_enum_values(value):
    result = validate_material_type(value)
    assert result.ok
    assert result.material_type == MaterialType(value)


def test_material_type_rejects_unknown_value():
    result = validate_material_type("essay")
    assert not result.ok
    assert "essay" in result.error
    assert "practice_exam" in result.error


@pytest.mark.parametrize(
    "declared, expected",
    [
        ("text/plain", "text/plain"),
        ("Text/Plain; charset=UTF-8", "text/plain"),
        ("", ""),
        (None, ""),
    ],
)
def test_normalize_mime(declared, expected):
    assert normalize_mime(declared) == expected
