"""Image generation Pydantic models."""
from enum import Enum
from typing import Optional, List, Dict

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator


class HarmCategory(str, Enum):
    """Content categories the model can be asked to block."""
    HARASSMENT = "HARM_CATEGORY_HARASSMENT"
    HATE_SPEECH = "HARM_CATEGORY_HATE_SPEECH"
    SEXUALLY_EXPLICIT = "HARM_CATEGORY_SEXUALLY_EXPLICIT"
    DANGEROUS_CONTENT = "HARM_CATEGORY_DANGEROUS_CONTENT"


class HarmBlockThreshold(str, Enum):
    """How aggressively a category is blocked."""
    BLOCK_LOW_AND_ABOVE = "BLOCK_LOW_AND_ABOVE"
    BLOCK_MEDIUM_AND_ABOVE = "BLOCK_MEDIUM_AND_ABOVE"
    BLOCK_ONLY_HIGH = "BLOCK_ONLY_HIGH"
    BLOCK_NONE = "BLOCK_NONE"


class AspectRatio(str, Enum):
    """Image aspect ratios."""
    SQUARE = "1:1"
    PORTRAIT = "3:4"
    LANDSCAPE = "4:3"
    MOBILE = "9:16"
    WIDESCREEN = "16:9"


class ImageResolution(str, Enum):
    """Image resolutions."""
    R1K = "1K"
    R2K = "2K"
    R4K = "4K"


CATEGORY_LABELS: Dict[HarmCategory, str] = {
    HarmCategory.HARASSMENT: "Harassment",
    HarmCategory.HATE_SPEECH: "Hate Speech",
    HarmCategory.SEXUALLY_EXPLICIT: "Sexually Explicit",
    HarmCategory.DANGEROUS_CONTENT: "Dangerous Content",
}

THRESHOLD_LABELS: Dict[HarmBlockThreshold, str] = {
    HarmBlockThreshold.BLOCK_NONE: "Block None",
    HarmBlockThreshold.BLOCK_ONLY_HIGH: "Block Only High",
    HarmBlockThreshold.BLOCK_MEDIUM_AND_ABOVE: "Block Medium & Above",
    HarmBlockThreshold.BLOCK_LOW_AND_ABOVE: "Block Low & Above",
}

ASPECT_RATIO_LABELS: Dict[AspectRatio, str] = {
    AspectRatio.SQUARE: "Square",
    AspectRatio.PORTRAIT: "Portrait",
    AspectRatio.LANDSCAPE: "Landscape",
    AspectRatio.MOBILE: "Mobile",
    AspectRatio.WIDESCREEN: "Widescreen",
}


class SafetySetting(BaseModel):
    """A category/threshold pair sent with the generation request."""
    model_config = ConfigDict(frozen=True)

    category: HarmCategory = Field(..., description="Harm category")
    threshold: HarmBlockThreshold = Field(..., description="Block threshold for the category")


DEFAULT_SAFETY_SETTINGS: List[SafetySetting] = [
    SafetySetting(category=HarmCategory.HARASSMENT, threshold=HarmBlockThreshold.BLOCK_ONLY_HIGH),
    SafetySetting(category=HarmCategory.HATE_SPEECH, threshold=HarmBlockThreshold.BLOCK_ONLY_HIGH),
    SafetySetting(category=HarmCategory.SEXUALLY_EXPLICIT, threshold=HarmBlockThreshold.BLOCK_MEDIUM_AND_ABOVE),
    SafetySetting(category=HarmCategory.DANGEROUS_CONTENT, threshold=HarmBlockThreshold.BLOCK_MEDIUM_AND_ABOVE),
]


class GenerateImageRequest(BaseModel):
    """Prompt plus image and safety configuration for one generation."""
    model_config = ConfigDict(frozen=True)

    prompt: str = Field(..., min_length=1, description="Text description of the image")
    safety_settings: List[SafetySetting] = Field(
        default_factory=lambda: list(DEFAULT_SAFETY_SETTINGS),
        description="Ordered safety settings, one per category"
    )
    aspect_ratio: AspectRatio = Field(AspectRatio.SQUARE, description="Image aspect ratio")
    resolution: ImageResolution = Field(ImageResolution.R1K, description="Image resolution")

    @field_validator("safety_settings")
    @classmethod
    def categories_unique(cls, settings: List[SafetySetting]) -> List[SafetySetting]:
        seen = set()
        for setting in settings:
            if setting.category in seen:
                raise ValueError(f"duplicate safety category: {setting.category.value}")
            seen.add(setting.category)
        return settings


class ImagePayload(BaseModel):
    """Base64-encoded image returned by the model."""
    mime_type: str = Field("image/png", description="Image MIME type")
    data: str = Field(..., description="Base64-encoded image data")

    @property
    def data_url(self) -> str:
        return f"data:{self.mime_type};base64,{self.data}"


class FailureKind(str, Enum):
    """Terminal failure classes of a generation call."""
    TIMEOUT = "timeout"
    MODEL_REFUSAL = "model_refusal"
    MALFORMED_RESPONSE = "malformed_response"
    OVERLOADED = "overloaded"
    TRANSPORT_ERROR = "transport_error"


class GenerationFailure(BaseModel):
    """Classified failure of a generation call."""
    kind: FailureKind
    message: str = Field(..., description="User-facing message")
    detail: Optional[str] = Field(None, description="Model text or underlying transport message")


class GenerationResult(BaseModel):
    """Outcome of one generation call: an image or a failure, never both."""
    image: Optional[ImagePayload] = None
    error: Optional[GenerationFailure] = None

    @model_validator(mode="after")
    def exactly_one(self) -> "GenerationResult":
        if (self.image is None) == (self.error is None):
            raise ValueError("GenerationResult must carry exactly one of image or error")
        return self

    @property
    def ok(self) -> bool:
        return self.image is not None

    @classmethod
    def success(cls, image: ImagePayload) -> "GenerationResult":
        return cls(image=image)

    @classmethod
    def failure(cls, kind: FailureKind, message: str, detail: Optional[str] = None) -> "GenerationResult":
        return cls(error=GenerationFailure(kind=kind, message=message, detail=detail))


class GeneratedImageResponse(BaseModel):
    """HTTP response for a successful generation."""
    image: ImagePayload
    url: str = Field(..., description="data: URL of the image")
    prompt: str
    timestamp: int = Field(..., description="Milliseconds since epoch")
    download_name: str = Field(..., description="Suggested file name for download")


class KeySelectRequest(BaseModel):
    """Optional explicit key supplied when selecting a credential."""
    api_key: Optional[str] = Field(None, description="API key to use; re-reads .env when omitted")


class KeyStatusResponse(BaseModel):
    has_key: bool
