import asyncio
import logging
import pathlib
from typing import Any

import httpx
import jinja2

from app.core.exceptions import ConfigurationError
from app.core.exceptions import GenerationError
from app.models.material_models import MaterialType

# Configure module logger
logger = logging.getLogger(__name__)

PROMPT_TEMPLATE = "generate_material.jinja2"

# --- Reusable Jinja2 Environment ---
PROMPT_DIR = pathlib.Path(__file__).parent / "prompt_templates"
env = jinja2.Environment(
    loader=jinja2.FileSystemLoader(PROMPT_DIR),
    undefined=jinja2.StrictUndefined,
    autoescape=False,
)


# ---------------------------------------------------------------
# Prompt builder
# ---------------------------------------------------------------
def build_prompt(material_type: MaterialType | str, source_text: str) -> str:
    """Render the generation prompt for ``material_type`` over the full ``source_text``.

    The text is embedded verbatim, whatever its size. The same inputs always
    produce the same prompt.
    """
    type_value = material_type.value if isinstance(material_type, MaterialType) else str(material_type)
    try:
        template = env.get_template(PROMPT_TEMPLATE)
    except jinja2.TemplateNotFound:
        logger.error("Template not found: %s", PROMPT_TEMPLATE)
        raise ConfigurationError(f"Internal configuration error: Template '{PROMPT_TEMPLATE}' not found.") from None
    return template.render(material_type=type_value, source_text=source_text)


# ---------------------------------------------------------------
# Client for the external generation service
# ---------------------------------------------------------------
class GenerationClient:
    """Sends one non-streaming completion request per prompt to an Ollama-style endpoint.

    Args:
        api_url: Full URL of the generate endpoint.
        model: Model identifier forwarded in the request body.
        timeout: Connect/read timeouts applied to every call.
        max_concurrency: Upper bound on simultaneous outbound calls from this client.
        transport: Optional httpx transport, mainly for tests.
    """

    def __init__(
        self,
        api_url: str,
        model: str,
        timeout: httpx.Timeout | None = None,
        max_concurrency: int = 4,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.api_url = api_url
        self.model = model
        self._client = httpx.AsyncClient(timeout=timeout or httpx.Timeout(10.0, read=180.0), transport=transport)
        self._semaphore = asyncio.Semaphore(max_concurrency)

    async def aclose(self) -> None:
        await self._client.aclose()

    def _payload(self, prompt: str) -> dict[str, Any]:
        return {"model": self.model, "prompt": prompt, "stream": False}

    async def generate(self, prompt: str, request_id: str = "-") -> str:
        """Return the completion text for ``prompt``. Any failure raises GenerationError."""
        logger.info("[%s] Sending prompt (%d chars) to %s with model %s", request_id, len(prompt), self.api_url, self.model)

        async with self._semaphore:
            try:
                rsp = await self._client.post(self.api_url, json=self._payload(prompt))
                rsp.raise_for_status()
            except httpx.HTTPStatusError as e:
                logger.error(
                    "[%s] Generation service answered %d: %s",
                    request_id,
                    e.response.status_code,
                    e.response.text[:500],
                )
                raise GenerationError(f"Generation service returned status {e.response.status_code}") from e
            except httpx.TimeoutException as e:
                logger.error("[%s] Generation service timed out: %s", request_id, str(e))
                raise GenerationError("Generation service timed out") from e
            except httpx.HTTPError as e:
                logger.error("[%s] Could not reach generation service: %s", request_id, str(e), exc_info=True)
                raise GenerationError(f"Could not reach generation service: {str(e)}") from e

        try:
            data = rsp.json()
        except ValueError as e:
            logger.error("[%s] Generation service returned non-JSON body: %s", request_id, rsp.text[:500])
            raise GenerationError("Generation service returned an invalid JSON body") from e

        content = data.get("response") if isinstance(data, dict) else None
        if not isinstance(content, str):
            logger.error("[%s] Missing 'response' field in generation service reply: %s", request_id, str(data)[:500])
            raise GenerationError("Generation service reply is missing the 'response' field")

        logger.debug("[%s] Generation response received, length: %d chars", request_id, len(content))
        return content
