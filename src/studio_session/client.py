"""HTTP client for the remote asset-ingest and render services."""

import logging
from typing import Any, Dict, Optional

import httpx

from studio_session.config import StudioConfig
from studio_session.errors import MissingApiKeyError, RemoteServiceError

logger = logging.getLogger(__name__)


def _error_message(resp: httpx.Response, fallback: str) -> str:
    try:
        payload = resp.json()
    except ValueError:
        return fallback
    if isinstance(payload, dict):
        message = payload.get("message")
        response = payload.get("response")
        if not message and isinstance(response, dict):
            message = response.get("message")
        if message:
            return str(message)
    return fallback


class StudioApiClient:
    def __init__(self, config: StudioConfig, transport: Optional[httpx.AsyncBaseTransport] = None):
        if not config.api_key:
            raise MissingApiKeyError()
        self.config = config
        self._client = httpx.AsyncClient(
            base_url=config.api_url,
            headers={"x-api-key": config.api_key},
            timeout=config.request_timeout,
            transport=transport,
        )

    async def __aenter__(self) -> "StudioApiClient":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self._client.aclose()

    async def _send(
        self, method: str, url: str, fallback: str, prefix: str = "", **kwargs: Any
    ) -> Dict[str, Any]:
        try:
            resp = await self._client.request(method, url, **kwargs)
        except httpx.HTTPError as exc:
            raise RemoteServiceError(f"{prefix}{fallback}: {exc}", code="REMOTE_UNAVAILABLE") from exc
        if resp.is_error:
            raise RemoteServiceError(prefix + _error_message(resp, fallback), status_code=resp.status_code)
        try:
            return resp.json()
        except ValueError as exc:
            raise RemoteServiceError(f"{fallback}: invalid JSON response", status_code=resp.status_code) from exc

    async def upload_source(self, filename: str, payload: bytes, mime_type: str) -> str:
        data = await self._send(
            "POST",
            self.config.ingest_path,
            "Unknown error",
            prefix="Upload failed: ",
            files={"file": (filename, payload, mime_type)},
            timeout=self.config.upload_timeout,
        )
        try:
            return data["data"]["attributes"]["source"]
        except (KeyError, TypeError) as exc:
            raise RemoteServiceError("Upload failed: response did not include a source URL") from exc

    async def submit_render(self, body: Dict[str, Any]) -> str:
        data = await self._send("POST", self.config.render_path, "Failed to submit render job", json=body)
        try:
            return str(data["response"]["id"])
        except (KeyError, TypeError) as exc:
            raise RemoteServiceError("Render submission did not return a job id") from exc

    async def get_render(self, job_id: str) -> Dict[str, Any]:
        data = await self._send("GET", self.config.render_status_path(job_id), "Failed to check render status")
        response = data.get("response") if isinstance(data, dict) else None
        if not isinstance(response, dict):
            raise RemoteServiceError("Failed to check render status")
        return response
