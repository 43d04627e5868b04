from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable
from collections.abc import Callable
from dataclasses import dataclass
from dataclasses import field

from app.core.exceptions import ExtractionError
from app.core.exceptions import PipelineError
from app.core.exceptions import ValidationError
from app.core.validation import validate_material_type
from app.core.validation import validate_upload
from app.models.material_models import GeneratedMaterial
from app.models.material_models import GenerationRequest
from app.models.material_models import PipelineState
from app.models.material_models import UploadedArtifact
from app.services.artifact_store import ArtifactStore
from app.services.extractor import extract
from app.services.llm import GenerationClient
from app.services.llm import build_prompt
from app.services.result_store import ResultStore

# Configure module logger
logger = logging.getLogger(__name__)

Extractor = Callable[..., Awaitable[str]]


@dataclass
class UploadPayload:
    """The raw file part of an incoming request."""

    filename: str | None
    content: bytes
    content_type: str | None = None


@dataclass
class PipelineRun:
    """State trail and outcome of one request through the pipeline."""

    request_id: str
    states: list[PipelineState] = field(default_factory=list)
    material: GeneratedMaterial | None = None

    def advance(self, state: PipelineState) -> None:
        logger.debug("[%s] Pipeline state -> %s", self.request_id, state.value)
        self.states.append(state)

    @property
    def state(self) -> PipelineState | None:
        return self.states[-1] if self.states else None


class MaterialPipeline:
    """Runs upload validation, extraction, generation and persistence for one request.

    Collaborators are injected so each can be replaced independently. The
    uploaded file is held through ``ArtifactStore.hold`` and removed exactly
    once on every way out of ``execute``.
    """

    def __init__(
        self,
        artifact_store: ArtifactStore,
        generation_client: GenerationClient,
        result_store: ResultStore,
        extractor: Extractor = extract,
    ):
        logger.info("Initializing MaterialPipeline")
        self.artifact_store = artifact_store
        self.generation_client = generation_client
        self.result_store = result_store
        self.extractor = extractor

    async def run(self, upload: UploadPayload, material_type: str | None, request_id: str) -> PipelineRun:
        """Execute a fresh run and return it. Failures are raised as PipelineError subclasses."""
        run = PipelineRun(request_id=request_id)
        await self.execute(run, upload, material_type)
        return run

    async def execute(self, run: PipelineRun, upload: UploadPayload, material_type: str | None) -> GeneratedMaterial:
        request_id = run.request_id
        run.advance(PipelineState.RECEIVED)

        upload_check = validate_upload(upload.filename, upload.content_type, request_id)
        if not upload_check.ok:
            run.advance(PipelineState.FAILED)
            run.advance(PipelineState.CLEANED_UP)
            raise ValidationError(upload_check.error)

        # filename is known to be set once validate_upload accepted it
        filename: str = upload.filename  # type: ignore[assignment]
        try:
            artifact = await self.artifact_store.materialize(filename, upload.content, upload.content_type, request_id)
        except PipelineError:
            run.advance(PipelineState.FAILED)
            run.advance(PipelineState.CLEANED_UP)
            raise

        try:
            with self.artifact_store.hold(artifact, request_id):
                try:
                    material = await self._process(run, artifact, material_type)
                except PipelineError as e:
                    logger.error("[%s] Pipeline failed after state '%s': %s", request_id, run.state.value, str(e))
                    run.advance(PipelineState.FAILED)
                    raise
                except Exception as e:
                    logger.exception("[%s] Pipeline failed with unexpected error", request_id)
                    run.advance(PipelineState.FAILED)
                    raise PipelineError(f"An unexpected problem occurred while processing {filename}") from e
        finally:
            run.advance(PipelineState.CLEANED_UP)

        run.material = material
        logger.info("[%s] Pipeline completed successfully, material ID: %d", request_id, material.id)
        return material

    async def _process(self, run: PipelineRun, artifact: UploadedArtifact, material_type: str | None) -> GeneratedMaterial:
        request_id = run.request_id

        type_check = validate_material_type(material_type, request_id)
        if not type_check.ok:
            raise ValidationError(type_check.error)
        run.advance(PipelineState.VALIDATED)
        logger.info("[%s] File received: %s, material type: %s", request_id, artifact.path.name, type_check.material_type.value)

        try:
            data = await asyncio.to_thread(self.artifact_store.read, artifact)
        except OSError as e:
            raise ExtractionError(f"Could not read uploaded file: {artifact.original_name}") from e
        text = await self.extractor(
            artifact.original_name,
            data,
            request_id,
            declared_mime_type=artifact.declared_mime_type,
        )
        if not text.strip():
            logger.warning("[%s] No text extracted from %s; generating from empty text", request_id, artifact.original_name)
        logger.info("[%s] Extracted text length: %d", request_id, len(text))
        run.advance(PipelineState.EXTRACTED)

        request = GenerationRequest(material_type=type_check.material_type, source_text=text)
        prompt = build_prompt(request.material_type, request.source_text)
        generated_content = await self.generation_client.generate(prompt, request_id)
        run.advance(PipelineState.GENERATED)

        material = await self.result_store.save(
            artifact.original_name,
            request.material_type,
            generated_content,
            request_id,
        )
        run.advance(PipelineState.PERSISTED)
        return material
