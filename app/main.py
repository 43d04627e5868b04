import logging

import httpx
import uvicorn
from fastapi import FastAPI
from fastapi import Request
from fastapi import status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi.responses import PlainTextResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from app.api.routes import router
from app.core.config import Settings
from app.core.config import settings
from app.core.exceptions import PipelineError
from app.core.logging import setup_logging
from app.services.artifact_store import ArtifactStore
from app.services.llm import GenerationClient
from app.services.pipeline import MaterialPipeline
from app.services.result_store import ResultStore

setup_logging()

app = FastAPI(title="Study Material Generator")

logger = logging.getLogger(__name__)


def build_pipeline(config: Settings) -> MaterialPipeline:
    """Wire the pipeline and its collaborators from settings."""
    result_store = ResultStore(config.database_url)
    result_store.init_schema()
    generation_client = GenerationClient(
        api_url=config.ollama_api_url,
        model=config.ollama_model,
        timeout=httpx.Timeout(config.LLM_CONNECT_TIMEOUT, read=config.LLM_READ_TIMEOUT),
        max_concurrency=config.max_concurrent_generations,
    )
    return MaterialPipeline(
        artifact_store=ArtifactStore(config.upload_dir),
        generation_client=generation_client,
        result_store=result_store,
    )


@app.on_event("startup")
async def startup_event() -> None:
    if getattr(app.state, "pipeline", None) is None:
        pipeline = build_pipeline(settings)
        app.state.pipeline = pipeline
        app.state.result_store = pipeline.result_store
    logger.info("Application started, generation model: %s at %s", settings.ollama_model, settings.ollama_api_url)


@app.on_event("shutdown")
async def shutdown_event() -> None:
    pipeline = getattr(app.state, "pipeline", None)
    if pipeline is not None:
        await pipeline.generation_client.aclose()
        pipeline.result_store.dispose()
    logger.info("Application shut down")


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(_request: Request, exc: StarletteHTTPException) -> JSONResponse:
    logger.error(f"HTTP exception: {exc.detail} (status: {exc.status_code})")
    return JSONResponse({"error": exc.detail}, status_code=exc.status_code)


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(_request: Request, exc: RequestValidationError) -> JSONResponse:
    logger.error("Request validation failed: %s", exc.errors(), exc_info=False)
    problems = "; ".join(f"{'.'.join(str(p) for p in err.get('loc', ()))}: {err.get('msg', '')}" for err in exc.errors())
    return JSONResponse({"error": f"Malformed request: {problems}"}, status_code=400)


@app.exception_handler(PipelineError)
async def pipeline_exception_handler(_request: Request, exc: PipelineError) -> JSONResponse:
    logger.error(f"{type(exc).__name__}: {str(exc)}")
    return JSONResponse({"error": str(exc)}, status_code=exc.status_code)


@app.get("/", response_class=PlainTextResponse, tags=["Health"])
async def root() -> str:
    return "Study App Backend is running!"


@app.get("/health", status_code=status.HTTP_200_OK, tags=["Health"])
async def health_check() -> dict[str, str]:
    logger.info("Health check endpoint called")
    return {"status": "ok"}


app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_allowed_origins,
    allow_methods=["POST", "GET", "OPTIONS"],
    allow_headers=["*"],
)
app.include_router(router)


if __name__ == "__main__":
    uvicorn.run("app.main:app", host="0.0.0.0", port=settings.port)
