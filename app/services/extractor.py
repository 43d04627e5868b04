import asyncio
import io
import logging
from pathlib import Path

import magic
import pdfplumber
from docx import Document

from app.core.exceptions import ExtractionError
from app.core.validation import normalize_mime

# Configure module logger
logger = logging.getLogger(__name__)

PDF_MIME = "application/pdf"
WORD_MIMES = {
    "application/msword",
    "application/vnd.openxmlformats-officedocument.wordprocessingml.document",
}
EXTENSION_KINDS = {
    ".pdf": "pdf",
    ".docx": "word",
    ".doc": "word",
    ".txt": "text",
}
DECLARED_KINDS = {
    PDF_MIME: "pdf",
    **{m: "word" for m in WORD_MIMES},
    "text/plain": "text",
}
EMPTY_MIME = "application/x-empty"

# libmagic only needs the head of the file to recognise its type
SNIFF_BYTES = 4096


def _detect_kind(fname: str, data: bytes, request_id: str, declared_mime_type: str | None = None) -> str:
    """Decide how to parse the document.

    Sniffed PDF and Word content wins, then the extension, then the MIME type the
    client declared. An empty upload is always treated as empty text.
    """
    if not data:
        return "text"

    try:
        mime = magic.from_buffer(data[:SNIFF_BYTES], mime=True)
    except Exception as e:
        logger.warning("[%s] DETECT: MIME sniffing failed for '%s': %s. Falling back to extension.", request_id, fname, e)
        mime = ""

    if mime == PDF_MIME:
        return "pdf"
    if mime in WORD_MIMES:
        return "word"

    ext = Path(fname).suffix.lower()
    kind = EXTENSION_KINDS.get(ext)
    if kind:
        logger.debug("[%s] DETECT: '%s' sniffed as '%s', using extension %s -> %s", request_id, fname, mime, ext, kind)
        return kind

    declared_kind = DECLARED_KINDS.get(normalize_mime(declared_mime_type))
    if declared_kind:
        logger.debug("[%s] DETECT: '%s' sniffed as '%s', using declared type -> %s", request_id, fname, mime, declared_kind)
        return declared_kind
    if mime.startswith("text/") or mime == EMPTY_MIME:
        return "text"

    raise ExtractionError(f"Unsupported document type for '{fname}' (detected: {mime or 'unknown'})")


def _pdf_to_text(data: bytes, fname: str, request_id: str) -> str:
    """Extract text from every PDF page with pdfplumber."""
    try:
        with pdfplumber.open(io.BytesIO(data)) as pdf:
            page_texts = []
            for p in pdf.pages:
                text_content = p.extract_text()
                if text_content is not None:
                    page_texts.append(text_content)
    except Exception as e:
        logger.error("[%s] PDF: pdfplumber failed for '%s': %s", request_id, fname, str(e))
        raise ExtractionError(f"Failed to extract text from PDF: {fname}") from e

    text = "\n".join(page_texts)
    logger.debug("[%s] PDF: extracted %d chars from %d page(s) of '%s'", request_id, len(text), len(page_texts), fname)
    return text


def _word_to_text(data: bytes, fname: str, request_id: str) -> str:
    """Extract paragraph text from a Word document."""
    try:
        doc = Document(io.BytesIO(data))
    except Exception as e:
        logger.error("[%s] WORD: Failed to open '%s': %s", request_id, fname, str(e))
        raise ExtractionError(f"Failed to extract text from Word document: {fname}") from e

    text = "\n".join(p.text for p in doc.paragraphs)
    logger.debug("[%s] WORD: Extracted %d chars from '%s'", request_id, len(text), fname)
    return text


def _plain_text(data: bytes, fname: str, request_id: str) -> str:
    text = data.decode("utf-8", errors="replace")
    logger.debug("[%s] TEXT: Passing through %d chars from '%s'", request_id, len(text), fname)
    return text


_HANDLERS = {
    "pdf": _pdf_to_text,
    "word": _word_to_text,
    "text": _plain_text,
}


def _sync_extract(fname: str, data: bytes, request_id: str, declared_mime_type: str | None = None) -> str:
    kind = _detect_kind(fname, data, request_id, declared_mime_type)
    logger.info("[%s] EXTRACT_MAIN: Starting extraction for file: '%s' (kind: %s)", request_id, fname, kind)
    return _HANDLERS[kind](data, fname, request_id)


async def extract(fname: str, data: bytes, request_id: str, declared_mime_type: str | None = None) -> str:
    """Extract plain text from a document's bytes. Blocking parsers run in a worker thread."""
    try:
        extracted_text = await asyncio.to_thread(_sync_extract, fname, data, request_id, declared_mime_type)
    except ExtractionError:
        logger.error("[%s] EXTRACT_MAIN: Extraction failed for '%s'.", request_id, fname)
        raise
    except Exception as e:
        logger.exception("[%s] EXTRACT_MAIN: Unexpected error during text extraction for file: '%s'", request_id, fname)
        raise ExtractionError(f"Unexpected failure to process file: {fname}") from e

    logger.info(
        "[%s] EXTRACT_MAIN: Successfully processed file '%s'. Extracted chars: %d",
        request_id,
        fname,
        len(extracted_text),
    )
    return extracted_text
