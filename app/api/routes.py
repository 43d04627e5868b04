import logging
from uuid import uuid4

from fastapi import APIRouter
from fastapi import Depends
from fastapi import File
from fastapi import Form
from fastapi import HTTPException
from fastapi import Request
from fastapi import UploadFile

from app.core.exceptions import ConfigurationError
from app.core.exceptions import ValidationError
from app.models.material_models import ErrorResponse
from app.models.material_models import GenerateResponse
from app.models.material_models import GeneratedMaterial
from app.services.pipeline import MaterialPipeline
from app.services.pipeline import UploadPayload
from app.services.result_store import ResultStore

# Configure module logger
logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api")

# Multipart field carrying the uploaded document
UPLOAD_FIELD = "studyDocument"


def get_pipeline(request: Request) -> MaterialPipeline:
    """Return the pipeline built at startup and stored on the application state."""
    pipeline = getattr(request.app.state, "pipeline", None)
    if pipeline is None:
        logger.critical("Material pipeline requested before application startup completed.")
        raise ConfigurationError("Service is not ready to process uploads.")
    return pipeline


def get_result_store(request: Request) -> ResultStore:
    result_store = getattr(request.app.state, "result_store", None)
    if result_store is None:
        raise ConfigurationError("Service is not ready to serve stored materials.")
    return result_store


@router.post(
    "/generate",
    response_model=GenerateResponse,
    responses={400: {"model": ErrorResponse}, 500: {"model": ErrorResponse}},
)
async def generate(
    document: UploadFile | None = File(default=None, alias=UPLOAD_FIELD),
    material_type: str | None = Form(default=None, alias="materialType"),
    pipeline: MaterialPipeline = Depends(get_pipeline),
) -> GenerateResponse:
    """Generate study material from an uploaded PDF, Word or text document.

    Returns the generated content together with the id of its stored record.

    Raises:
        ValidationError: 400 when the file type or ``materialType`` is rejected.
        PipelineError: 500 when extraction, generation or persistence fails.
    """
    request_id = str(uuid4())

    if document is None:
        logger.warning("[%s] /generate called without a '%s' file part", request_id, UPLOAD_FIELD)
        upload = UploadPayload(filename=None, content=b"")
    else:
        logger.info("[%s] /generate called with %s (%s)", request_id, document.filename, document.content_type)
        try:
            content = await document.read()
        except Exception as e:
            logger.error("[%s] Failed to read uploaded file %s: %s", request_id, document.filename, e, exc_info=True)
            raise ValidationError(f"Could not read uploaded file '{document.filename}'.") from e
        finally:
            await document.close()
        upload = UploadPayload(filename=document.filename, content=content, content_type=document.content_type)

    run = await pipeline.run(upload, material_type, request_id)
    material = run.material
    return GenerateResponse(result=material.generated_content, id=material.id)


@router.get("/materials/{material_id}", response_model=GeneratedMaterial)
async def get_material(
    material_id: int,
    result_store: ResultStore = Depends(get_result_store),
) -> GeneratedMaterial:
    """Return a previously generated study material."""
    material = await result_store.get(material_id)
    if material is None:
        raise HTTPException(status_code=404, detail=f"Material {material_id} not found.")
    return material
