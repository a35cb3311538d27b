"""Normalise local media and upload it to the remote asset store."""

import base64
import io
import logging
import mimetypes
import time
from pathlib import Path
from typing import Callable, Tuple, Union
from urllib.parse import unquote_to_bytes

from PIL import Image, UnidentifiedImageError

from studio_session.client import StudioApiClient
from studio_session.core.models import AssetType
from studio_session.errors import PayloadTooLargeError, StudioError

logger = logging.getLogger(__name__)

MAX_UPLOAD_BYTES = 25 * 1024 * 1024
MAX_IMAGE_EDGE = 1280
JPEG_QUALITY = 70

EXTENSIONS = {
    "video/mp4": "mp4",
    "video/webm": "webm",
    "video/quicktime": "mov",
    "audio/mpeg": "mp3",
    "audio/wav": "wav",
    "audio/ogg": "ogg",
    "image/jpeg": "jpg",
    "image/png": "png",
    "image/gif": "gif",
}
DEFAULT_EXTENSION = "mp4"

# GIF may be animated; recompressing would keep only the first frame.
PASSTHROUGH_IMAGES = {"image/gif"}

Source = Union[str, Path]


def guess_mime(path: Union[str, Path]) -> str:
    return mimetypes.guess_type(str(path))[0] or "application/octet-stream"


def media_type_for_mime(mime_type: str) -> str:
    if mime_type.startswith("video/"):
        return AssetType.VIDEO.value
    if mime_type.startswith("audio/"):
        return AssetType.AUDIO.value
    return AssetType.IMAGE.value


def encode_data_uri(payload: bytes, mime_type: str) -> str:
    return f"data:{mime_type};base64,{base64.b64encode(payload).decode('ascii')}"


def decode_data_uri(uri: str) -> Tuple[str, bytes]:
    if not uri.startswith("data:") or "," not in uri:
        raise StudioError("Not a data URI", code="INVALID_INPUT")
    header, body = uri[5:].split(",", 1)
    parts = header.split(";")
    mime_type = parts[0] or "text/plain"
    if "base64" in parts[1:]:
        try:
            return mime_type, base64.b64decode(body, validate=True)
        except ValueError as exc:
            raise StudioError(f"Invalid base64 payload in data URI: {exc}", code="INVALID_INPUT") from exc
    return mime_type, unquote_to_bytes(body)


def to_data_uri(path: Union[str, Path]) -> str:
    p = Path(path)
    if not p.exists():
        raise StudioError(f"Media file not found: {p}", code="NOT_FOUND")
    return encode_data_uri(p.read_bytes(), guess_mime(p))


def filename_for_mime(mime_type: str, timestamp_ms: int) -> str:
    return f"upload_{timestamp_ms}.{EXTENSIONS.get(mime_type, DEFAULT_EXTENSION)}"


def compress_image(payload: bytes, mime_type: str) -> Tuple[bytes, str]:
    """Downscale to MAX_IMAGE_EDGE on the long edge and re-encode as JPEG.

    Non-images and GIFs are returned as is.
    """
    if not mime_type.startswith("image/") or mime_type in PASSTHROUGH_IMAGES:
        return payload, mime_type
    try:
        with Image.open(io.BytesIO(payload)) as img:
            img.load()
            img.thumbnail((MAX_IMAGE_EDGE, MAX_IMAGE_EDGE), Image.LANCZOS)
            rgb = img.convert("RGB")
    except (UnidentifiedImageError, OSError) as exc:
        raise StudioError(f"Could not decode image: {exc}", code="INVALID_INPUT") from exc
    out = io.BytesIO()
    rgb.save(out, format="JPEG", quality=JPEG_QUALITY)
    return out.getvalue(), "image/jpeg"


def check_size(payload: bytes, limit: int = MAX_UPLOAD_BYTES) -> None:
    if len(payload) > limit:
        raise PayloadTooLargeError(len(payload), limit)


class MediaIngestor:
    """Turns a local file or data URI into a durable remote URL.

    Holds no per-upload state, so several ``ingest`` calls can run at once.
    """

    def __init__(
        self,
        client: StudioApiClient,
        max_bytes: int = MAX_UPLOAD_BYTES,
        clock: Callable[[], float] = time.time,
    ):
        self.client = client
        self.max_bytes = max_bytes
        self.clock = clock

    def prepare(self, source: Source) -> Tuple[str, bytes, str]:
        if isinstance(source, str) and source.startswith("data:"):
            mime_type, payload = decode_data_uri(source)
        else:
            mime_type, payload = decode_data_uri(to_data_uri(source))
        if mime_type.startswith("image/"):
            logger.info("Compressing image...")
        payload, mime_type = compress_image(payload, mime_type)
        check_size(payload, self.max_bytes)
        filename = filename_for_mime(mime_type, int(self.clock() * 1000))
        return filename, payload, mime_type

    async def ingest(self, source: Source) -> str:
        filename, payload, mime_type = self.prepare(source)
        size_mb = len(payload) / (1024 * 1024)
        logger.info("Uploading %s (%.2f MB)...", filename, size_mb)
        url = await self.client.upload_source(filename, payload, mime_type)
        logger.info("Uploaded %s to %s", filename, url)
        return url
