import json

import httpx
import pytest

from app.services.artifact_store import ArtifactStore
from app.services.llm import GenerationClient
from app.services.pipeline import MaterialPipeline
from app.services.result_store import ResultStore

OLLAMA_URL = "http://ollama.test/api/generate"
STUB_COMPLETION = "Q: What does photosynthesis convert? A: Light into energy."


@pytest.fixture
def upload_dir(tmp_path):
    return tmp_path / "uploads"


@pytest.fixture
def artifact_store(upload_dir):
    return ArtifactStore(upload_dir)


@pytest.fixture
def result_store(tmp_path):
    store = ResultStore(f"sqlite:///{tmp_path / 'materials.db'}")
    store.init_schema()
    yield store
    store.dispose()


@pytest.fixture
def ollama_requests():
    """Bodies received by the stubbed generation service."""
    return []


@pytest.fixture
def generation_client(ollama_requests):
    def _handler(request: httpx.Request) -> httpx.Response:
        ollama_requests.append(json.loads(request.content))
        return httpx.Response(200, json={"model": "mistral", "response": STUB_COMPLETION, "done": True})

    return GenerationClient(OLLAMA_URL, "mistral", transport=httpx.MockTransport(_handler))


@pytest.fixture
def make_pipeline(artifact_store, generation_client, result_store):
    """Build a pipeline, letting a test swap any single collaborator."""

    def _make_pipeline(**overrides):
        deps = {
            "artifact_store": artifact_store,
            "generation_client": generation_client,
            "result_store": result_store,
        }
        deps.update(overrides)
        return MaterialPipeline(**deps)

    return _make_pipeline


@pytest.fixture
def files_in(upload_dir):
    """Return the files currently held in the upload directory."""

    def _files_in():
        if not upload_dir.exists():
            return []
        return sorted(upload_dir.iterdir())

    return _files_in


@pytest.fixture
def stub_completion():
    return STUB_COMPLETION


def _build_pdf(text: str) -> bytes:
    """Assemble a one-page PDF showing ``text`` in Helvetica."""
    content = b"BT /F1 18 Tf 72 720 Td (" + text.encode("latin-1") + b") Tj ET"
    objects = [
        b"<< /Type /Catalog /Pages 2 0 R >>",
        b"<< /Type /Pages /Kids [3 0 R] /Count 1 >>",
        b"<< /Type /Page /Parent 2 0 R /MediaBox [0 0 612 792] /Contents 4 0 R"
        b" /Resources << /Font << /F1 5 0 R >> >> >>",
        b"<< /Length %d >>\nstream\n" % len(content) + content + b"\nendstream",
        b"<< /Type /Font /Subtype /Type1 /BaseFont /Helvetica >>",
    ]

    out = bytearray(b"%PDF-1.4\n")
    offsets = []
    for number, body in enumerate(objects, start=1):
        offsets.append(len(out))
        out += b"%d 0 obj\n" % number + body + b"\nendobj\n"

    xref_at = len(out)
    out += b"xref\n0 %d\n" % (len(objects) + 1)
    out += b"0000000000 65535 f \n"
    for offset in offsets:
        out += b"%010d 00000 n \n" % offset
    out += b"trailer\n<< /Size %d /Root 1 0 R >>\nstartxref\n%d\n%%%%EOF\n" % (len(objects) + 1, xref_at)
    return bytes(out)


@pytest.fixture
def pdf_bytes():
    return _build_pdf
