from typing import Any, Optional

PROTOCOL_VERSION = "1.0"

ERROR_CODES = {
    "ERROR": 1,
    "INVALID_INPUT": 2,
    "NOT_FOUND": 3,
    "PRECONDITION": 4,
    "MISSING_API_KEY": 5,
    "PAYLOAD_TOO_LARGE": 6,
    "REMOTE_ERROR": 7,
    "REMOTE_UNAVAILABLE": 8,
    "RENDER_FAILED": 9,
    "RENDER_TIMEOUT": 10,
}


class StudioError(Exception):
    code = "ERROR"

    def __init__(self, message: str, code: Optional[str] = None):
        super().__init__(message)
        self.message = message
        if code is not None:
            self.code = code


class PreconditionError(StudioError):
    code = "PRECONDITION"


class MissingApiKeyError(PreconditionError):
    code = "MISSING_API_KEY"

    def __init__(self, env_var: str = "STUDIO_API_KEY"):
        super().__init__(f"API key not found. Please set {env_var} in your environment.")
        self.env_var = env_var


class PayloadTooLargeError(StudioError):
    code = "PAYLOAD_TOO_LARGE"

    def __init__(self, size_bytes: int, limit_bytes: int):
        size_mb = size_bytes / (1024 * 1024)
        limit_mb = limit_bytes / (1024 * 1024)
        super().__init__(
            f"File too large ({size_mb:.1f}MB). Maximum is {limit_mb:.0f}MB. Please use a smaller file."
        )
        self.size_bytes = size_bytes
        self.limit_bytes = limit_bytes


class RemoteServiceError(StudioError):
    code = "REMOTE_ERROR"

    def __init__(self, message: str, status_code: Optional[int] = None, code: Optional[str] = None):
        super().__init__(message, code=code)
        self.status_code = status_code


class RenderFailedError(StudioError):
    code = "RENDER_FAILED"

    def __init__(self, message: str, job: Any = None):
        super().__init__(message)
        self.job = job


class RenderTimeoutError(StudioError):
    code = "RENDER_TIMEOUT"

    def __init__(self, job_id: str, waited: float):
        super().__init__(f"Render job {job_id} did not finish within {waited:.0f}s")
        self.job_id = job_id
        self.waited = waited
