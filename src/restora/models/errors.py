"""Error hierarchy and error response models."""

from pydantic import BaseModel, Field


class RestoraError(Exception):
    """Base error for all Restora errors."""

    def __init__(self, message: str, component: str = "", details: dict | None = None):
        super().__init__(message)
        self.message = message
        self.component = component
        self.details = details or {}


class ValidationError(RestoraError):
    """Input validation errors (format, size, parameters, workspace state)."""

    def __init__(self, message: str, details: dict | None = None):
        super().__init__(message, component="validation", details=details)


class MissingDependencyError(RestoraError):
    """A required external tool or model directory is absent."""

    def __init__(self, message: str, details: dict | None = None):
        super().__init__(message, component="toolchain", details=details)


class ProbeError(RestoraError):
    """Duration, frame rate or a required stream could not be determined."""

    def __init__(self, message: str, details: dict | None = None):
        super().__init__(message, component="probe", details=details)


class StageToolError(RestoraError):
    """An external stage tool exited non-zero."""

    def __init__(self, message: str, component: str = "stage", details: dict | None = None):
        super().__init__(message, component=component, details=details)


class WorkerFailureError(StageToolError):
    """A supervised pipeline process failed; its siblings were cancelled."""

    def __init__(self, message: str, details: dict | None = None):
        super().__init__(message, component="supervisor", details=details)


class PipelineStallError(RestoraError):
    """A supervised pipeline did not finish within its timeout."""

    def __init__(self, message: str, details: dict | None = None):
        super().__init__(message, component="supervisor", details=details)


class DriftOutOfRangeError(RestoraError):
    """Audio/video drift too large to be a clock mismatch."""

    def __init__(self, message: str, details: dict | None = None):
        super().__init__(message, component="sync", details=details)


class ProcessingError(RestoraError):
    """Unexpected pipeline failures and cancellation."""

    def __init__(self, message: str, component: str = "processing", details: dict | None = None):
        super().__init__(message, component=component, details=details)


class ErrorResponse(BaseModel):
    """Standardized error response for API."""

    error_type: str = Field(..., description="Error category")
    component: str = Field(default="", description="Component that raised the error")
    message: str = Field(..., description="Human-readable error message")
    details: dict = Field(default_factory=dict)
    actionable_guidance: str = Field(default="", description="Suggested user action")
    retry_possible: bool = Field(default=False)

    @classmethod
    def from_exception(
        cls, exc: RestoraError, guidance: str = "", retry: bool = False
    ) -> "ErrorResponse":
        return cls(
            error_type=type(exc).__name__,
            component=exc.component,
            message=exc.message,
            details=exc.details,
            actionable_guidance=guidance,
            retry_possible=retry,
        )
