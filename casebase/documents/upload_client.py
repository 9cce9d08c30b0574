"""Client for the remote document processing endpoint."""

import asyncio
import logging
from pathlib import Path

import aiohttp
from pydantic import ValidationError

from ..exceptions import DocumentUploadError, NetworkError
from ..models.documents import UploadKind, UploadResult

logger = logging.getLogger(__name__)


class DocumentUploadClient:
    """Posts a file as multipart form data and returns the parsed result."""

    def __init__(self, base_url: str, timeout: float = 60.0):
        self.base_url = base_url.rstrip("/")
        self.timeout = aiohttp.ClientTimeout(total=timeout)

    async def upload(self, path: str, mime_type: str, kind: UploadKind = UploadKind.DOCUMENT) -> UploadResult:
        """Upload one file.

        Raises:
            DocumentUploadError: Non-success status or an unparsable body
            NetworkError: Transport failure or timeout
        """
        file_path = Path(path)
        form = aiohttp.FormData()
        form.add_field("type", kind.value)

        logger.info(f"Uploading {file_path.name} ({kind.value}) to {self.base_url}/upload")
        try:
            with open(file_path, "rb") as f:
                form.add_field("file", f, filename=file_path.name, content_type=mime_type)
                async with aiohttp.ClientSession(timeout=self.timeout) as session:
                    async with session.post(f"{self.base_url}/upload", data=form) as response:
                        status = response.status
                        raw = await response.read()
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            logger.error(f"Upload of {file_path.name} failed: {e}")
            raise NetworkError(f"Upload failed: {e}") from e

        text = raw.decode("utf-8", errors="replace")
        if not 200 <= status < 300:
            logger.error(f"Upload of {file_path.name} rejected with {status}: {text}")
            raise DocumentUploadError(f"Upload failed with status {status}", status=status, body=text)

        try:
            return UploadResult.model_validate_json(raw.decode("utf-8"))
        except (ValidationError, UnicodeDecodeError) as e:
            raise DocumentUploadError(f"Unexpected upload response: {e}", status=status, body=text) from e
