"""Image generation services - Gemini integration."""
import asyncio
import base64
from typing import Any, Awaitable, Callable, Optional, Protocol, Set

from config import Config
from common.error_messages import ErrorCode, ERROR_MESSAGES
from image.models import (
    FailureKind,
    GenerateImageRequest,
    GenerationResult,
    ImagePayload,
)
from utils.logger import get_logger

logger = get_logger("image.services")

# Gemini client (ensure google-genai installed and GEMINI_API_KEY env var set)
try:
    from google import genai
    from google.genai import types
except Exception:
    genai = None
    types = None


DEFAULT_MIME_TYPE = "image/png"

FAILURE_ERROR_CODES = {
    FailureKind.TIMEOUT: ErrorCode.GENERATION_TIMEOUT,
    FailureKind.MODEL_REFUSAL: ErrorCode.MODEL_REFUSAL,
    FailureKind.MALFORMED_RESPONSE: ErrorCode.NO_CONTENT_GENERATED,
    FailureKind.OVERLOADED: ErrorCode.MODEL_OVERLOADED,
    FailureKind.TRANSPORT_ERROR: ErrorCode.GENERATION_FAILED,
}

_TIMED_OUT = object()


class ImageGenerator(Protocol):
    async def generate(self, request: GenerateImageRequest) -> Any:
        ...


def _nested_error_code(response: Any) -> Optional[int]:
    """Pull error.code out of a dict or object shaped response body."""
    if response is None:
        return None
    if isinstance(response, dict):
        error = response.get("error")
        return error.get("code") if isinstance(error, dict) else None
    error = getattr(response, "error", None)
    if isinstance(error, dict):
        return error.get("code")
    return getattr(error, "code", None)


def is_overloaded_error(error: BaseException) -> bool:
    """Return True when the error signals a transient service-unavailable condition."""
    if "overloaded" in str(error).lower():
        return True
    if getattr(error, "code", None) == 503:
        return True
    if getattr(error, "status", None) == "UNAVAILABLE":
        return True
    if _nested_error_code(getattr(error, "response", None)) == 503:
        return True
    # google-genai keeps the parsed error body on APIError.details
    if _nested_error_code(getattr(error, "details", None)) == 503:
        return True
    return False


def _encode_inline_data(data: Any) -> str:
    if isinstance(data, (bytes, bytearray)):
        return base64.b64encode(bytes(data)).decode("ascii")
    return str(data)


def extract_generation_result(response: Any) -> GenerationResult:
    """
    Turn a generate_content response into a GenerationResult.

    The first part carrying inline data is the image. If no part carries an
    image, the first text part is reported as the model's refusal.
    """
    candidates = getattr(response, "candidates", None)
    if not candidates:
        return _failure(FailureKind.MALFORMED_RESPONSE, detail="No candidates returned from the model.")

    content = getattr(candidates[0], "content", None)
    parts = getattr(content, "parts", None) or []

    for part in parts:
        inline = getattr(part, "inline_data", None)
        if inline and getattr(inline, "data", None):
            mime_type = getattr(inline, "mime_type", None) or DEFAULT_MIME_TYPE
            logger.info(f"Found image part ({mime_type})")
            return GenerationResult.success(
                ImagePayload(mime_type=mime_type, data=_encode_inline_data(inline.data))
            )

    for part in parts:
        text = getattr(part, "text", None)
        if text:
            logger.warning(f"Model returned text instead of an image: {text[:100]}")
            return _failure(FailureKind.MODEL_REFUSAL, detail=text)

    return _failure(FailureKind.MALFORMED_RESPONSE)


def _failure(kind: FailureKind, detail: Optional[str] = None) -> GenerationResult:
    message = ERROR_MESSAGES[FAILURE_ERROR_CODES[kind]]
    if kind == FailureKind.MODEL_REFUSAL and detail:
        message = f"{message} {detail}"
    return GenerationResult.failure(kind, message, detail=detail)


class GenerationRequestExecutor:
    """
    Runs one image generation against the remote model.

    Each attempt is raced against a timeout. Overload errors are retried with
    exponential backoff (base_delay * 2**attempt) up to max_retries times;
    every other failure is returned immediately.
    """

    def __init__(
        self,
        generator: ImageGenerator,
        timeout: Optional[float] = None,
        max_retries: Optional[int] = None,
        base_delay: Optional[float] = None,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
    ):
        self.generator = generator
        self.timeout = Config.REQUEST_TIMEOUT_SECONDS if timeout is None else timeout
        self.max_retries = Config.MAX_RETRIES if max_retries is None else max_retries
        self.base_delay = Config.RETRY_BASE_DELAY_SECONDS if base_delay is None else base_delay
        self._sleep = sleep
        # Timed-out calls keep running; hold them until they finish.
        self._abandoned: Set[asyncio.Future] = set()

    async def execute(self, request: GenerateImageRequest) -> GenerationResult:
        attempt = 0

        while True:
            try:
                response = await self._call_with_timeout(request)
            except asyncio.CancelledError:
                raise
            except Exception as e:
                overloaded = is_overloaded_error(e)

                if overloaded and attempt < self.max_retries:
                    delay = self.base_delay * (2 ** attempt)
                    attempt += 1
                    logger.warning(
                        f"Model overloaded (503). Retrying in {delay:.1f}s... "
                        f"(Attempt {attempt}/{self.max_retries})"
                    )
                    await self._sleep(delay)
                    continue

                logger.error(f"Gemini API error: {e}")
                if overloaded:
                    return _failure(FailureKind.OVERLOADED, detail=str(e))
                return GenerationResult.failure(
                    FailureKind.TRANSPORT_ERROR,
                    str(e) or "An unknown error occurred during generation.",
                    detail=repr(e),
                )

            if response is _TIMED_OUT:
                logger.error(f"Generation timed out after {self.timeout}s (attempt {attempt + 1})")
                return _failure(FailureKind.TIMEOUT)

            result = extract_generation_result(response)
            if result.ok:
                logger.info(f"Image generated after {attempt + 1} attempt(s)")
            else:
                logger.error(f"Generation failed: {result.error.kind.value} - {result.error.message}")
            return result

    async def _call_with_timeout(self, request: GenerateImageRequest) -> Any:
        task = asyncio.ensure_future(self.generator.generate(request))
        try:
            done, _ = await asyncio.wait({task}, timeout=self.timeout)
        except asyncio.CancelledError:
            task.cancel()
            raise

        if task not in done:
            self._abandon(task)
            return _TIMED_OUT
        return task.result()

    def _abandon(self, task: asyncio.Future) -> None:
        self._abandoned.add(task)
        task.add_done_callback(self._forget)

    def _forget(self, task: asyncio.Future) -> None:
        self._abandoned.discard(task)
        if not task.cancelled() and task.exception() is not None:
            logger.debug(f"Discarded late failure of timed-out call: {task.exception()}")
        else:
            logger.debug("Discarded late result of timed-out call")


class GeminiImageGenerator:
    """Calls the Gemini image model through google-genai's async client."""

    def __init__(self, model: Optional[str] = None):
        self.model = model or Config.GEMINI_IMAGE_MODEL

    def build_config(self, request: GenerateImageRequest):
        if types is None:
            raise RuntimeError("genai types not available")
        return types.GenerateContentConfig(
            safety_settings=[
                types.SafetySetting(category=s.category.value, threshold=s.threshold.value)
                for s in request.safety_settings
            ],
            image_config=types.ImageConfig(
                aspect_ratio=request.aspect_ratio.value,
                image_size=request.resolution.value,
            ),
        )

    async def generate(self, request: GenerateImageRequest) -> Any:
        if genai is None or types is None:
            logger.error("Gemini client not available")
            raise RuntimeError("AI service is not configured properly")

        # A new client per call picks up a key selected after startup
        client = genai.Client(api_key=Config.get_gemini_api_key())

        logger.info(
            f"Requesting image from {self.model}: aspect_ratio={request.aspect_ratio.value}, "
            f"resolution={request.resolution.value}, prompt={request.prompt[:50]}..."
        )
        return await client.aio.models.generate_content(
            model=self.model,
            contents=[types.Part.from_text(text=request.prompt)],
            config=self.build_config(request),
        )
