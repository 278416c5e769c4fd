"""
User-friendly error messages and status codes.

This module provides centralized error message definitions that are
user-friendly and avoid exposing technical implementation details.
"""
from typing import Tuple, Optional
from enum import Enum


class ErrorCode(str, Enum):
    """Error codes for different types of failures."""

    # Validation Errors (400)
    INVALID_PARAMETER = "INVALID_PARAMETER"

    # Credential Errors (401, 500)
    MISSING_API_KEY = "MISSING_API_KEY"
    KEY_SELECTION_FAILED = "KEY_SELECTION_FAILED"

    # Generation Errors (422, 502, 503, 504)
    GENERATION_TIMEOUT = "GENERATION_TIMEOUT"
    MODEL_REFUSAL = "MODEL_REFUSAL"
    NO_CONTENT_GENERATED = "NO_CONTENT_GENERATED"
    MODEL_OVERLOADED = "MODEL_OVERLOADED"
    GENERATION_FAILED = "GENERATION_FAILED"

    # Generic Errors
    UNKNOWN_ERROR = "UNKNOWN_ERROR"


# User-friendly error messages mapped to error codes
ERROR_MESSAGES = {
    ErrorCode.INVALID_PARAMETER: "One or more parameters are invalid. Please review your request and try again.",

    ErrorCode.MISSING_API_KEY: "No API key has been selected. Please connect an API key to continue.",
    ErrorCode.KEY_SELECTION_FAILED: "Failed to select API key. Please try again.",

    ErrorCode.GENERATION_TIMEOUT: "Generation timed out. The request took too long.",
    ErrorCode.MODEL_REFUSAL: "Generation failed:",
    ErrorCode.NO_CONTENT_GENERATED: "No image data found in the response.",
    ErrorCode.MODEL_OVERLOADED: "The model is currently overloaded with high traffic. Please try again in a moment.",
    ErrorCode.GENERATION_FAILED: "Image generation failed. Please try again or adjust your prompt.",

    ErrorCode.UNKNOWN_ERROR: "Something unexpected happened. Please try again.",
}


# HTTP status codes for each error type
ERROR_STATUS_CODES = {
    ErrorCode.INVALID_PARAMETER: 400,

    ErrorCode.MISSING_API_KEY: 401,
    ErrorCode.KEY_SELECTION_FAILED: 500,

    ErrorCode.GENERATION_TIMEOUT: 504,
    ErrorCode.MODEL_REFUSAL: 422,
    ErrorCode.NO_CONTENT_GENERATED: 502,
    ErrorCode.MODEL_OVERLOADED: 503,
    ErrorCode.GENERATION_FAILED: 502,

    ErrorCode.UNKNOWN_ERROR: 500,
}


def get_error_response(
    error_code: ErrorCode,
    custom_message: Optional[str] = None
) -> Tuple[str, int]:
    """
    Get user-friendly error message and HTTP status code.

    Args:
        error_code: The error code enum
        custom_message: Optional custom message to append to the standard message

    Returns:
        Tuple of (error_message, status_code)
    """
    message = ERROR_MESSAGES.get(error_code, ERROR_MESSAGES[ErrorCode.UNKNOWN_ERROR])
    status_code = ERROR_STATUS_CODES.get(error_code, 500)

    if custom_message:
        message = f"{message} {custom_message}"

    return message, status_code


def format_error_detail(error_code: ErrorCode, detail: Optional[str] = None) -> str:
    """
    Format error detail for API response.

    Args:
        error_code: The error code enum
        detail: Optional additional detail

    Returns:
        Formatted error message
    """
    base_message = ERROR_MESSAGES.get(error_code, ERROR_MESSAGES[ErrorCode.UNKNOWN_ERROR])

    if detail:
        return f"{base_message} ({detail})"

    return base_message
