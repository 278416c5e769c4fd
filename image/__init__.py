"""Image generation module."""
from image.models import (
    AspectRatio,
    FailureKind,
    GenerateImageRequest,
    GenerationFailure,
    GenerationResult,
    HarmBlockThreshold,
    HarmCategory,
    ImagePayload,
    ImageResolution,
    SafetySetting,
    DEFAULT_SAFETY_SETTINGS,
)
from image.services import (
    GenerationRequestExecutor,
    GeminiImageGenerator,
    extract_generation_result,
    is_overloaded_error,
)
from image.key_selection import (
    EnvironmentKeySelector,
    check_api_key_selection,
    open_api_key_selection,
)

__all__ = [
    "AspectRatio",
    "FailureKind",
    "GenerateImageRequest",
    "GenerationFailure",
    "GenerationResult",
    "HarmBlockThreshold",
    "HarmCategory",
    "ImagePayload",
    "ImageResolution",
    "SafetySetting",
    "DEFAULT_SAFETY_SETTINGS",
    "GenerationRequestExecutor",
    "GeminiImageGenerator",
    "extract_generation_result",
    "is_overloaded_error",
    "EnvironmentKeySelector",
    "check_api_key_selection",
    "open_api_key_selection",
]
