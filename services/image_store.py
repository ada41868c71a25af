"""Local object store for uploaded label photos.

Images arrive as `data:<mime>;base64,<payload>` URLs. The store decodes them,
writes the bytes under its root directory, and hands back a public URL served
by the `/uploads` static mount. Every call is best-effort: failures are
reported through `SideEffectResult` and never raised.
"""

from __future__ import annotations

import base64
import binascii
import logging
import re
import time
from pathlib import Path
from typing import Optional, Tuple
from uuid import uuid4

import aiofiles

from models.guide_models import SideEffectResult

LOGGER = logging.getLogger(__name__)

UPLOADS_ROUTE = "/uploads"
_DATA_URL_RE = re.compile(r"^data:(.*?);base64,(.*)$", re.DOTALL)


def extension_from_mime(mime_type: str) -> str:
    """Map a MIME type to a file extension (`image/jpeg` -> `jpg`)."""
    _, _, subtype = (mime_type or "").partition("/")
    if not subtype:
        return "bin"
    if "jpeg" in subtype:
        return "jpg"
    return subtype.split("+", 1)[0]


def decode_data_url(data_url: str) -> Optional[Tuple[str, bytes]]:
    """Return `(mime_type, bytes)` for a base64 data URL, or None if malformed."""
    match = _DATA_URL_RE.match(data_url or "")
    if not match:
        return None
    mime_type, payload = match.groups()
    try:
        data = base64.b64decode(payload, validate=True)
    except (binascii.Error, ValueError):
        return None
    return mime_type or "application/octet-stream", data


class LocalImageStore:
    """Write images to disk and expose them with public-read URLs."""

    def __init__(self, root_dir: Path | str, public_base_url: str = "") -> None:
        self.root_dir = Path(root_dir).expanduser()
        self.public_base_url = public_base_url.rstrip("/")

    def url_for(self, key: str) -> str:
        return f"{self.public_base_url}{UPLOADS_ROUTE}/{key}"

    async def put(self, key: str, data: bytes, content_type: str) -> SideEffectResult:
        """Store `data` under `key` and return its public URL."""
        target = (self.root_dir / key).resolve()
        if self.root_dir.resolve() not in target.parents:
            return SideEffectResult.failure(ValueError(f"Object key {key!r} escapes the image store"))
        try:
            target.parent.mkdir(parents=True, exist_ok=True)
            async with aiofiles.open(target, "xb") as handle:
                await handle.write(data)
        except OSError as exc:
            return SideEffectResult.failure(exc)
        LOGGER.info("Stored %s image (%d bytes) at %s", content_type, len(data), key)
        return SideEffectResult.success(self.url_for(key))

    async def upload_data_url(self, data_url: str, key_prefix: str) -> SideEffectResult:
        """Decode a data URL and store it as `<prefix>/<millis>-<hex>.<ext>`."""
        decoded = decode_data_url(data_url)
        if decoded is None:
            return SideEffectResult.failure(ValueError("Image is not a base64 data URL."))
        mime_type, data = decoded
        key = f"{key_prefix}/{int(time.time() * 1000)}-{uuid4().hex}.{extension_from_mime(mime_type)}"
        return await self.put(key, data, mime_type)
