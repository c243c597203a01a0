"""Error codes dictionary for the render API.

This is the single source of truth for all error codes, their retryability,
and suggested recovery actions. Used by exception handlers to generate
machine-readable error responses.
"""

from typing import TypedDict


class ErrorCodeSpec(TypedDict, total=False):
    """Specification for an error code."""

    retryable: bool
    suggested_fix: str


# Error codes dictionary - single source of truth
ERROR_CODES: dict[str, ErrorCodeSpec] = {
    # ==========================================================================
    # Configuration errors (fatal before any job starts)
    # ==========================================================================
    "CONFIGURATION_ERROR": {
        "retryable": False,
    },
    "EMPTY_INPUT": {
        "retryable": False,
        "suggested_fix": "Add at least one work item before starting a render",
    },
    "INVALID_SCHEME": {
        "retryable": False,
        "suggested_fix": "Use a size of the form WIDTHxHEIGHT, e.g. 1280x720",
    },
    "UNSUPPORTED_PLATFORM": {
        "retryable": False,
        "suggested_fix": "Set USE_SYSTEM_BINARIES=true and install ffmpeg on PATH",
    },
    "BINARY_NOT_FOUND": {
        "retryable": False,
        "suggested_fix": "Install ffmpeg/ffprobe or point FFMPEG_PATH/FFPROBE_PATH at them",
    },
    # ==========================================================================
    # Job execution errors (fatal to the render session)
    # ==========================================================================
    "JOB_EXECUTION_FAILED": {
        "retryable": False,
    },
    "TRANSCODE_FAILED": {
        "retryable": False,
        "suggested_fix": "Check the work item's source file and filter syntax",
    },
    "CONCAT_FAILED": {
        "retryable": False,
        "suggested_fix": "Check that the working directory is writable",
    },
    "PROBE_FAILED": {
        "retryable": False,
        "suggested_fix": "Check that the file exists and is a media file",
    },
    # ==========================================================================
    # Preview errors (local to one request)
    # ==========================================================================
    "STREAM_FAILED": {
        "retryable": True,
    },
    # ==========================================================================
    # Precondition violations
    # ==========================================================================
    "PRECONDITION_VIOLATION": {
        "retryable": False,
    },
    "RENDER_IN_PROGRESS": {
        "retryable": True,
        "suggested_fix": "Wait for the current render to finish",
    },
    "WORKDIR_BUSY": {
        "retryable": True,
        "suggested_fix": "Use a separate working directory per render session",
    },
    # ==========================================================================
    # Generic errors
    # ==========================================================================
    "INTERNAL_ERROR": {
        "retryable": False,
    },
    "NOT_FOUND": {
        "retryable": False,
    },
    "VALIDATION_ERROR": {
        "retryable": False,
        "suggested_fix": "Check the request body against the API schema",
    },
}


def get_error_spec(code: str) -> ErrorCodeSpec:
    """Get error specification by code.

    Args:
        code: The error code

    Returns:
        ErrorCodeSpec with retryable flag and suggested fix
    """
    return ERROR_CODES.get(code, {"retryable": False})


def is_retryable(code: str) -> bool:
    """Check if an error code is retryable."""
    spec = get_error_spec(code)
    return spec.get("retryable", False)
