"""Custom exceptions for the cutline render backend.

Every error raised by the render/preview core derives from CutlineError and
carries a machine-readable code. The HTTP layer turns them into ErrorInfo
responses; the render session controller turns them into a plain message
string for the UI.
"""

from cutline.constants.error_codes import get_error_spec
from cutline.schemas.envelope import ErrorInfo, ErrorLocation


class CutlineError(Exception):
    """Base exception for all cutline errors."""

    code: str = "INTERNAL_ERROR"
    status_code: int = 500
    message: str = "An unexpected error occurred"

    def __init__(
        self,
        message: str | None = None,
        *,
        code: str | None = None,
        status_code: int | None = None,
        location: ErrorLocation | None = None,
        suggested_fix: str | None = None,
    ):
        self.message = message or self.__class__.message
        if code:
            self.code = code
        if status_code:
            self.status_code = status_code
        self.location = location
        self.suggested_fix = suggested_fix
        super().__init__(self.message)

    def to_error_info(self) -> ErrorInfo:
        """Convert exception to ErrorInfo for API response."""
        spec = get_error_spec(self.code)
        return ErrorInfo(
            code=self.code,
            message=self.message,
            location=self.location,
            retryable=spec.get("retryable", False),
            suggested_fix=self.suggested_fix or spec.get("suggested_fix"),
        )


# =============================================================================
# Configuration Errors (raised before any job starts)
# =============================================================================


class ConfigurationError(CutlineError):
    """Base class for configuration errors."""

    code = "CONFIGURATION_ERROR"
    status_code = 400
    message = "Invalid render configuration"


class EmptyInputError(ConfigurationError):
    """The work-item registry is empty."""

    code = "EMPTY_INPUT"
    message = "Files list empty"


class InvalidSchemeError(ConfigurationError):
    """Scheme value cannot be applied."""

    code = "INVALID_SCHEME"
    message = "Invalid render scheme"

    def __init__(self, message: str | None = None, *, field: str | None = None):
        location = ErrorLocation(field=field) if field else None
        super().__init__(message, location=location)


class UnsupportedPlatformError(ConfigurationError):
    """No bundled encoder binaries exist for this platform."""

    code = "UNSUPPORTED_PLATFORM"
    status_code = 500
    message = "This platform or architecture is currently not supported."

    def __init__(self, platform: str | None = None, machine: str | None = None):
        message = self.message
        if platform:
            message = f"{message} ({platform}/{machine or 'unknown'})"
        super().__init__(message)


class BinaryNotFoundError(ConfigurationError):
    """Encoder binary is missing."""

    code = "BINARY_NOT_FOUND"
    status_code = 500
    message = "Binary not installed!"

    def __init__(self, binary: str | None = None):
        message = f"Binary not installed: {binary}" if binary else self.message
        super().__init__(message, location=ErrorLocation(path=binary) if binary else None)


# =============================================================================
# Job Execution Errors (fatal to the render session)
# =============================================================================


class JobExecutionError(CutlineError):
    """An encoder invocation failed."""

    code = "JOB_EXECUTION_FAILED"
    status_code = 500
    message = "Encoder invocation failed"

    def __init__(
        self,
        message: str | None = None,
        *,
        returncode: int | None = None,
        stderr: str | None = None,
        location: ErrorLocation | None = None,
    ):
        self.returncode = returncode
        self.stderr = stderr
        super().__init__(message, location=location)


class TranscodeError(JobExecutionError):
    """A single work item failed to transcode."""

    code = "TRANSCODE_FAILED"
    message = "Transcode failed"

    def __init__(
        self,
        index: int,
        reason: str | None = None,
        *,
        returncode: int | None = None,
        stderr: str | None = None,
    ):
        self.index = index
        message = f"Transcode of work item {index} failed"
        if reason:
            message = f"{message}: {reason}"
        super().__init__(
            message,
            returncode=returncode,
            stderr=stderr,
            location=ErrorLocation(index=index),
        )


class ConcatError(JobExecutionError):
    """Concat manifest write or concat process failed."""

    code = "CONCAT_FAILED"
    message = "Concatenation failed"


class ProbeError(JobExecutionError):
    """ffprobe failed for a file."""

    code = "PROBE_FAILED"
    message = "ffprobe failed"

    def __init__(self, path: str, reason: str | None = None):
        message = f"ffprobe failed for {path}"
        if reason:
            message = f"{message}: {reason}"
        super().__init__(message, location=ErrorLocation(path=path))


# =============================================================================
# Preview Errors (local to one request)
# =============================================================================


class StreamError(CutlineError):
    """Preview streaming failed."""

    code = "STREAM_FAILED"
    status_code = 500
    message = "Preview render failed"

    def __init__(self, message: str | None = None, *, stderr: str | None = None):
        self.stderr = stderr
        super().__init__(message)


# =============================================================================
# Precondition Violations (409)
# =============================================================================


class PreconditionViolationError(CutlineError):
    """Base class for rejected concurrent operations."""

    code = "PRECONDITION_VIOLATION"
    status_code = 409
    message = "Operation not allowed in the current state"


class RenderInProgressError(PreconditionViolationError):
    """A render is already in flight."""

    code = "RENDER_IN_PROGRESS"
    message = "A render is already in progress"


class WorkdirBusyError(PreconditionViolationError):
    """Another render session owns the working directory."""

    code = "WORKDIR_BUSY"
    message = "Working directory is in use by another render"

    def __init__(self, workdir: str | None = None):
        message = f"Working directory is in use by another render: {workdir}" if workdir else self.message
        super().__init__(message, location=ErrorLocation(path=workdir) if workdir else None)
