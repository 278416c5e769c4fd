"""Image generation routes."""
import time
from typing import Optional

from fastapi import APIRouter, Body, Depends, HTTPException

from common.error_messages import ErrorCode, get_error_response, format_error_detail
from image.key_selection import (
    EnvironmentKeySelector,
    KeySelector,
    check_api_key_selection,
    open_api_key_selection,
)
from image.models import (
    ASPECT_RATIO_LABELS,
    CATEGORY_LABELS,
    DEFAULT_SAFETY_SETTINGS,
    THRESHOLD_LABELS,
    AspectRatio,
    FailureKind,
    GenerateImageRequest,
    GeneratedImageResponse,
    ImageResolution,
    KeySelectRequest,
    KeyStatusResponse,
)
from image.services import FAILURE_ERROR_CODES, GeminiImageGenerator, GenerationRequestExecutor
from utils.logger import get_logger

logger = get_logger("image")
router = APIRouter(prefix="/api", tags=["image"])

_executor: Optional[GenerationRequestExecutor] = None
_key_selector: Optional[KeySelector] = EnvironmentKeySelector()


def get_executor() -> GenerationRequestExecutor:
    """Shared executor backed by the Gemini generator."""
    global _executor
    if _executor is None:
        _executor = GenerationRequestExecutor(GeminiImageGenerator())
    return _executor


def get_key_selector() -> Optional[KeySelector]:
    return _key_selector


@router.post("/generate", response_model=GeneratedImageResponse)
async def generate(
    req: GenerateImageRequest,
    executor: GenerationRequestExecutor = Depends(get_executor),
    selector: Optional[KeySelector] = Depends(get_key_selector),
):
    """
    Generate one image from a prompt.

    Accepts:
      { prompt, safety_settings?, aspect_ratio?, resolution? }

    Returns the image as base64 plus a data: URL, or an error whose status
    code reflects the failure kind (timeout, refusal, overload, ...).
    """
    prompt = req.prompt.strip()
    if not prompt:
        message, status_code = get_error_response(ErrorCode.INVALID_PARAMETER, "Prompt is required.")
        raise HTTPException(status_code=status_code, detail=message)

    if not await check_api_key_selection(selector):
        message, status_code = get_error_response(ErrorCode.MISSING_API_KEY)
        raise HTTPException(status_code=status_code, detail=message)

    request = req.model_copy(update={"prompt": prompt})
    logger.info(
        f"Starting image generation: aspect_ratio={request.aspect_ratio.value}, "
        f"resolution={request.resolution.value}, prompt: {prompt[:50]}..."
    )

    result = await executor.execute(request)

    if not result.ok:
        failure = result.error
        error_code = FAILURE_ERROR_CODES[failure.kind]
        _, status_code = get_error_response(error_code)
        if failure.kind == FailureKind.TRANSPORT_ERROR:
            detail = format_error_detail(error_code, failure.message)
        else:
            detail = failure.message
        logger.error(f"Image generation failed ({failure.kind.value}): {failure.detail or failure.message}")
        raise HTTPException(status_code=status_code, detail=detail)

    timestamp = int(time.time() * 1000)
    return GeneratedImageResponse(
        image=result.image,
        url=result.image.data_url,
        prompt=prompt,
        timestamp=timestamp,
        download_name=f"nanogen-{timestamp}.png",
    )


@router.get("/options")
def options():
    """Choices and defaults for the generation form."""
    return {
        "aspect_ratios": [
            {"value": ratio.value, "label": ASPECT_RATIO_LABELS[ratio]} for ratio in AspectRatio
        ],
        "resolutions": [res.value for res in ImageResolution],
        "safety_categories": [
            {"value": category.value, "label": label} for category, label in CATEGORY_LABELS.items()
        ],
        "safety_thresholds": [
            {"value": threshold.value, "label": label} for threshold, label in THRESHOLD_LABELS.items()
        ],
        "defaults": {
            "aspect_ratio": AspectRatio.SQUARE.value,
            "resolution": ImageResolution.R1K.value,
            "safety_settings": [s.model_dump(mode="json") for s in DEFAULT_SAFETY_SETTINGS],
        },
    }


@router.get("/key", response_model=KeyStatusResponse)
async def key_status(selector: Optional[KeySelector] = Depends(get_key_selector)):
    """Whether a usable API key is selected."""
    return KeyStatusResponse(has_key=await check_api_key_selection(selector))


@router.post("/key/select", response_model=KeyStatusResponse)
async def select_key(
    payload: Optional[KeySelectRequest] = Body(None),
    selector: Optional[KeySelector] = Depends(get_key_selector),
):
    """Run key selection, then report whether a key is now available."""
    if payload and payload.api_key:
        if not isinstance(selector, EnvironmentKeySelector):
            logger.warning("Explicit API key supplied but the configured key selector cannot accept it")
            message, status_code = get_error_response(
                ErrorCode.INVALID_PARAMETER, "This server does not accept API keys in the request."
            )
            raise HTTPException(status_code=status_code, detail=message)
        selector.stage_key(payload.api_key)

    try:
        await open_api_key_selection(selector)
        has_key = await check_api_key_selection(selector)
    except Exception as e:
        logger.error(f"Failed to select key: {e}")
        message, status_code = get_error_response(ErrorCode.KEY_SELECTION_FAILED)
        raise HTTPException(status_code=status_code, detail=message)
    return KeyStatusResponse(has_key=has_key)
