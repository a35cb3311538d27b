"""Environment driven configuration for the editing session."""

import os
from dataclasses import dataclass
from typing import Mapping, Optional

API_KEY_ENV = "STUDIO_API_KEY"

DEFAULT_API_URL = "https://api.shotstack.io"
DEFAULT_STAGE = "stage"

# Seconds between render status requests
DEFAULT_POLL_INTERVAL = 3.0

# Upper bound on the whole polling loop, 0 disables it
DEFAULT_RENDER_MAX_WAIT = 1800.0

REQUEST_TIMEOUT = 120.0

# Uploads may carry up to 25MB
UPLOAD_TIMEOUT = 300.0


def _float(env: Mapping[str, str], key: str, default: float) -> float:
    raw = env.get(key)
    if raw is None or not raw.strip():
        return default
    try:
        return float(raw)
    except ValueError as exc:
        raise ValueError(f"{key} must be a number, got {raw!r}") from exc


@dataclass(frozen=True)
class StudioConfig:
    api_key: Optional[str] = None
    api_url: str = DEFAULT_API_URL
    stage: str = DEFAULT_STAGE
    poll_interval: float = DEFAULT_POLL_INTERVAL
    render_max_wait: Optional[float] = DEFAULT_RENDER_MAX_WAIT
    request_timeout: float = REQUEST_TIMEOUT
    upload_timeout: float = UPLOAD_TIMEOUT

    @classmethod
    def from_env(cls, env: Optional[Mapping[str, str]] = None) -> "StudioConfig":
        source = os.environ if env is None else env
        max_wait = _float(source, "STUDIO_RENDER_MAX_WAIT", DEFAULT_RENDER_MAX_WAIT)
        return cls(
            api_key=source.get(API_KEY_ENV) or None,
            api_url=source.get("STUDIO_API_URL", DEFAULT_API_URL).rstrip("/"),
            stage=source.get("STUDIO_API_STAGE", DEFAULT_STAGE).strip("/"),
            poll_interval=_float(source, "STUDIO_POLL_INTERVAL", DEFAULT_POLL_INTERVAL),
            render_max_wait=max_wait if max_wait > 0 else None,
            request_timeout=_float(source, "STUDIO_REQUEST_TIMEOUT", REQUEST_TIMEOUT),
            upload_timeout=_float(source, "STUDIO_UPLOAD_TIMEOUT", UPLOAD_TIMEOUT),
        )

    @property
    def ingest_path(self) -> str:
        return f"/ingest/{self.stage}/sources" if self.stage else "/ingest/sources"

    @property
    def render_path(self) -> str:
        return f"/{self.stage}/render" if self.stage else "/render"

    def render_status_path(self, job_id: str) -> str:
        return f"{self.render_path}/{job_id}"
