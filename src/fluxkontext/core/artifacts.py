"""File storage for uploaded source images and generated artifacts.

Both kinds of files live flat in ``config.uploads_dir`` and are served by the
``/uploads`` static mount, so every stored file has a stable local URL:

- uploads are named ``<epoch-ms>-<uuid4><original extension>`` and linked
  from the host the client used to reach the API;
- generated artifacts are named ``generated_<epoch-ms>_<uuid4>.webp`` and
  linked from ``config.base_url``, replacing the provider's short-lived
  output URLs.
"""

from __future__ import annotations

import logging
import time
import uuid
from dataclasses import dataclass
from pathlib import Path
from typing import TYPE_CHECKING

import httpx

from fluxkontext.core.errors import UploadRejectedError

if TYPE_CHECKING:
    from fastapi import UploadFile

    from fluxkontext.core.config import FluxKontextConfig

logger = logging.getLogger(__name__)

CHUNK_SIZE = 1024 * 1024  # 1 MiB

INVALID_TYPE_MESSAGE = "Invalid file type. Only JPEG, PNG, WebP, and HEIC are allowed."


def _epoch_ms() -> int:
    return int(time.time() * 1000)


@dataclass(frozen=True)
class StoredUpload:
    """An upload written to the uploads directory."""

    filename: str
    original_name: str
    size: int
    path: Path


class ArtifactStore:
    """Reads and writes files under the uploads directory.

    Args:
        config: Application configuration (uploads directory, size limit,
            accepted types, base URL, download timeout).
        http_client: Client used to download generated artifacts.  Created
            from the configuration when omitted; closed by :meth:`aclose`
            only in that case.
    """

    def __init__(self, config: FluxKontextConfig, http_client: httpx.AsyncClient | None = None) -> None:
        self.directory = Path(config.uploads_dir)
        self.directory.mkdir(parents=True, exist_ok=True)
        self._base_url = config.base_url.rstrip("/")
        self._max_bytes = config.max_upload_bytes
        self._max_mb = config.max_upload_mb
        self._allowed_types = frozenset(config.allowed_upload_types)
        self._owns_client = http_client is None
        self._http = http_client or httpx.AsyncClient(
            timeout=config.download_timeout,
            follow_redirects=True,
        )

    def public_url(self, filename: str) -> str:
        """URL of a stored file under the configured base URL."""
        return f"{self._base_url}/uploads/{filename}"

    async def save_upload(self, upload: UploadFile) -> StoredUpload:
        """Validate and stream an uploaded image to disk.

        The MIME type is checked before anything is written.  The size limit
        is enforced while streaming; an oversized upload is removed again.

        Raises:
            UploadRejectedError: For a disallowed MIME type or an upload above
                the size limit.
        """
        if upload.content_type not in self._allowed_types:
            raise UploadRejectedError(INVALID_TYPE_MESSAGE)

        original_name = upload.filename or "upload"
        filename = f"{_epoch_ms()}-{uuid.uuid4()}{Path(original_name).suffix}"
        path = self.directory / filename

        written = 0
        with path.open("wb") as buf:
            while True:
                chunk = await upload.read(CHUNK_SIZE)
                if not chunk:
                    break
                written += len(chunk)
                if written > self._max_bytes:
                    break
                buf.write(chunk)

        if written > self._max_bytes:
            path.unlink(missing_ok=True)
            raise UploadRejectedError(f"File too large. Maximum size is {self._max_mb}MB.")

        logger.info("Stored upload %s as %s (%d bytes)", original_name, filename, written)
        return StoredUpload(filename=filename, original_name=original_name, size=written, path=path)

    async def persist_from_url(self, url: str, suffix: str = ".webp") -> str:
        """Download *url* into the uploads directory.

        Returns:
            The generated filename.

        Raises:
            httpx.HTTPError: If the download fails.
            OSError: If the file cannot be written.
        """
        response = await self._http.get(url)
        response.raise_for_status()

        filename = f"generated_{_epoch_ms()}_{uuid.uuid4()}{suffix}"
        (self.directory / filename).write_bytes(response.content)
        logger.info("Saved generated artifact %s (%d bytes)", filename, len(response.content))
        return filename

    async def aclose(self) -> None:
        if self._owns_client:
            await self._http.aclose()
