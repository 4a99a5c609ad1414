"""Error handling middleware."""

import logging

from fastapi import Request
from fastapi.responses import JSONResponse

from restora.models.errors import (
    DriftOutOfRangeError,
    ErrorResponse,
    MissingDependencyError,
    PipelineStallError,
    ProbeError,
    RestoraError,
    ValidationError,
)

logger = logging.getLogger(__name__)


async def restora_error_handler(request: Request, exc: RestoraError) -> JSONResponse:
    """Handle RestoraError exceptions."""
    if _get_status_code(exc) >= 500:
        logger.error("%s in %s: %s", type(exc).__name__, exc.component, exc.message)
    response = ErrorResponse.from_exception(
        exc, guidance=_get_guidance(exc), retry=_is_retryable(exc)
    )
    return JSONResponse(status_code=_get_status_code(exc), content=response.model_dump())


def _get_status_code(exc: RestoraError) -> int:
    """Map error type to HTTP status code."""
    if isinstance(exc, ValidationError):
        return 400
    elif isinstance(exc, MissingDependencyError):
        return 503
    return 500


def _get_guidance(exc: RestoraError) -> str:
    """Generate actionable guidance based on error type."""
    if isinstance(exc, ValidationError):
        return "Check your input file format, size, and options."
    if isinstance(exc, MissingDependencyError):
        return "Install ffmpeg, sox and realesrgan-ncnn-vulkan, or set the RESTORA_* paths."
    if isinstance(exc, ProbeError):
        return "The recording could not be read; check that it is a complete capture."
    if isinstance(exc, DriftOutOfRangeError):
        return "Drift this large points at a wrong frame rate or a damaged capture."
    return "Please try again; completed upscale segments are reused."


def _is_retryable(exc: RestoraError) -> bool:
    """Determine if the error is retryable."""
    return isinstance(exc, (MissingDependencyError, PipelineStallError))
