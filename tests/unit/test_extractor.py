import io

import pytest
from docx import Document

from app.core.exceptions import ExtractionError
from app.services import extractor
from app.services.extractor import extract


def _patch_magic(monkeypatch, mime):
    monkeypatch.setattr("app.services.extractor.magic.from_buffer", lambda buf, **kwargs: mime)


def _docx_bytes(*paragraphs):
    doc = Document()
    for p in paragraphs:
        doc.add_paragraph(p)
    buf = io.BytesIO()
    doc.save(buf)
    return buf.getvalue()


class _FakePage:
    def __init__(self, text):
        self._text = text

    def extract_text(self):
        return self._text


class _FakePdf:
    def __init__(self, texts):
        self.pages = [_FakePage(t) for t in texts]

    def __enter__(self):
        return self

    def __exit__(self, *exc):
        return False


@pytest.mark.asyncio
async def test_plain_text_passes_through(monkeypatch):
    _patch_magic(monkeypatch, "text/plain")
    content = "Photosynthesis converts light into energy.\n  Keep spacing.\n"

    text = await extract("notes.txt", content.encode(), "req1")

    assert text == content


@pytest.mark.asyncio
async def test_empty_text_file_yields_empty_string(monkeypatch):
    _patch_magic(monkeypatch, "application/x-empty")
    assert await extract("empty.txt", b"", "req1") == ""


@pytest.mark.asyncio
async def test_pdf_pages_are_joined(monkeypatch):
    _patch_magic(monkeypatch, "application/pdf")
    monkeypatch.setattr("app.services.extractor.pdfplumber.open", lambda buf: _FakePdf(["Page one", None, "Page two"]))

    text = await extract("chapter.pdf", b"%PDF-1.4 fake", "req1")

    assert text == "Page one\nPage two"


@pytest.mark.asyncio
async def test_sniffed_pdf_wins_over_extension(monkeypatch):
    _patch_magic(monkeypatch, "application/pdf")
    monkeypatch.setattr("app.services.extractor.pdfplumber.open", lambda buf: _FakePdf(["From PDF"]))

    assert await extract("misnamed.txt", b"%PDF-1.4 fake", "req1") == "From PDF"


@pytest.mark.asyncio
async def test_corrupt_pdf_raises_extraction_error(monkeypatch):
    _patch_magic(monkeypatch, "application/pdf")

    def _broken(buf):
        raise ValueError("bad pdf")

    monkeypatch.setattr("app.services.extractor.pdfplumber.open", _broken)

    with pytest.raises(ExtractionError):
        await extract("broken.pdf", b"%PDF-garbage", "req1")


@pytest.mark.asyncio
async def test_docx_paragraphs(monkeypatch):
    _patch_magic(monkeypatch, "application/vnd.openxmlformats-officedocument.wordprocessingml.document")

    text = await extract("notes.docx", _docx_bytes("First", "Second"), "req1")

    assert text == "First\nSecond"


@pytest.mark.asyncio
async def test_docx_sniffed_as_zip_uses_extension(monkeypatch):
    _patch_magic(monkeypatch, "application/zip")

    text = await extract("notes.docx", _docx_bytes("Zipped"), "req1")

    assert text == "Zipped"


@pytest.mark.asyncio
async def test_corrupt_word_document_raises(monkeypatch):
    _patch_magic(monkeypatch, "application/msword")

    with pytest.raises(ExtractionError):
        await extract("legacy.doc", b"\xd0\xcf\x11\xe0 not really a doc", "req1")


@pytest.mark.asyncio
async def test_unknown_kind_raises(monkeypatch):
    _patch_magic(monkeypatch, "image/png")

    with pytest.raises(ExtractionError):
        await extract("picture.png", b"\x89PNG", "req1")


@pytest.mark.asyncio
async def test_sniff_failure_falls_back_to_extension(monkeypatch):
    def _fail(*args, **kwargs):
        raise RuntimeError("libmagic unavailable")

    monkeypatch.setattr("app.services.extractor.magic.from_buffer", _fail)

    assert await extract("notes.txt", b"plain", "req1") == "plain"


@pytest.mark.asyncio
async def test_unexpected_handler_error_is_wrapped(monkeypatch):
    _patch_magic(monkeypatch, "text/plain")

    def _explode(data, fname, request_id):
        raise RuntimeError("parser crashed")

    monkeypatch.setitem(extractor._HANDLERS, "text", _explode)

    with pytest.raises(ExtractionError):
        await extract("notes.txt", b"plain", "req1")


# The tests below run libmagic and the parsers for real


@pytest.mark.asyncio
async def test_declared_plain_text_without_extension_passes_through():
    content = b'{"topic": "photosynthesis"}'

    text = await extract("notes", content, "req1", declared_mime_type="text/plain")

    assert text == content.decode()


@pytest.mark.asyncio
async def test_declared_plain_text_with_other_extension_passes_through():
    text = await extract("notes.json", b'{"topic": "x"}', "req1", declared_mime_type="text/plain; charset=utf-8")

    assert text == '{"topic": "x"}'


@pytest.mark.asyncio
async def test_empty_upload_without_extension_yields_empty_string():
    assert await extract("notes", b"", "req1", declared_mime_type="text/plain") == ""


@pytest.mark.asyncio
async def test_empty_upload_named_pdf_yields_empty_string():
    assert await extract("blank.pdf", b"", "req1", declared_mime_type="application/pdf") == ""


@pytest.mark.asyncio
async def test_real_pdf_through_pdfplumber(pdf_bytes):
    text = await extract("chapter.pdf", pdf_bytes("Photosynthesis converts light"), "req1")

    assert "Photosynthesis converts light" in text


@pytest.mark.asyncio
async def test_real_pdf_without_extension_is_sniffed(pdf_bytes):
    text = await extract("scan", pdf_bytes("Chlorophyll"), "req1", declared_mime_type="application/octet-stream")

    assert "Chlorophyll" in text


@pytest.mark.asyncio
async def test_real_docx_declared_by_mime_only():
    docx_mime = "application/vnd.openxmlformats-officedocument.wordprocessingml.document"

    text = await extract("upload", _docx_bytes("Stomata"), "req1", declared_mime_type=docx_mime)

    assert text == "Stomata"


@pytest.mark.asyncio
async def test_undeclared_binary_without_extension_raises():
    with pytest.raises(ExtractionError):
        await extract("blob", b"\x89PNG\r\n\x1a\n" + b"\x00" * 64, "req1")
