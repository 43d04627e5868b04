"""Transient on-disk holding area for uploaded documents.

Each accepted upload is written under a unique name and released through
``ArtifactStore.hold`` so the file is removed exactly once, whichever way the
request ends.
"""

import asyncio
import logging
import time
from collections.abc import Iterator
from contextlib import contextmanager
from pathlib import Path
from uuid import uuid4

from app.core.cleanup import remove_artifact
from app.core.exceptions import PipelineError
from app.core.validation import ALLOWED_EXTENSIONS
from app.models.material_models import UploadedArtifact

logger = logging.getLogger(__name__)


class ArtifactStore:
    """Writes uploads to ``upload_dir`` and hands out scoped holds on them."""

    def __init__(self, upload_dir: Path | str, field_name: str = "studyDocument"):
        self.upload_dir = Path(upload_dir)
        self.field_name = field_name

    def unique_name(self, original_name: str) -> str:
        """Build ``<field>-<time_ns>-<random>.<ext>``.

        Only an allowed extension is carried over; any other client suffix is dropped.
        """
        ext = Path(original_name).suffix.lower()
        if ext not in ALLOWED_EXTENSIONS:
            ext = ""
        return f"{self.field_name}-{time.time_ns()}-{uuid4().hex[:12]}{ext}"

    def _write(self, original_name: str, content: bytes) -> Path:
        self.upload_dir.mkdir(parents=True, exist_ok=True)
        path = self.upload_dir / self.unique_name(original_name)
        # "xb" refuses to overwrite, so a name clash can never hand one request another's file
        with open(path, "xb") as fh:
            fh.write(content)
        return path

    async def materialize(
        self,
        original_name: str,
        content: bytes,
        declared_mime_type: str | None,
        request_id: str,
    ) -> UploadedArtifact:
        try:
            path = await asyncio.to_thread(self._write, original_name, content)
        except OSError as e:
            logger.error("[%s] Could not store upload %s: %s", request_id, original_name, e, exc_info=True)
            raise PipelineError(f"Could not store uploaded file: {original_name}") from e

        logger.info("[%s] Stored upload %s as %s (%d bytes)", request_id, original_name, path.name, len(content))
        return UploadedArtifact(
            path=path,
            original_name=original_name,
            declared_mime_type=declared_mime_type,
            size=len(content),
        )

    @contextmanager
    def hold(self, artifact: UploadedArtifact | None, request_id: str = "-") -> Iterator[UploadedArtifact | None]:
        """Yield the artifact and remove it once on exit, on success or failure alike."""
        try:
            yield artifact
        finally:
            if artifact is not None:
                remove_artifact(artifact.path)
                logger.debug("[%s] Released upload %s", request_id, artifact.path.name)

    @staticmethod
    def read(artifact: UploadedArtifact) -> bytes:
        return artifact.path.read_bytes()
