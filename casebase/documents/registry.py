"""Client-side registry of uploaded files and their upload status."""

import asyncio
import logging
import math
import mimetypes
from datetime import datetime
from pathlib import Path
from typing import Dict, List, Optional, Sequence

from ..exceptions import CaseBaseError
from ..models.documents import UploadKind, UploadStatus, UploadedFileRecord
from .upload_client import DocumentUploadClient

logger = logging.getLogger(__name__)

PDF = "application/pdf"
DOCX = "application/vnd.openxmlformats-officedocument.wordprocessingml.document"
DEFAULT_ACCEPTED_TYPES = (PDF, DOCX)
DEFAULT_MAX_SIZE_BYTES = 10 * 1024 * 1024

# Not in every platform mime.types
mimetypes.add_type(DOCX, ".docx")


def format_file_size(size: int) -> str:
    """Human readable size: "0 Bytes", "1.5 KB", "2 MB"."""
    if size <= 0:
        return "0 Bytes"
    units = ["Bytes", "KB", "MB", "GB"]
    exponent = min(int(math.floor(math.log(size, 1024))), len(units) - 1)
    value = round(size / 1024 ** exponent, 2)
    return f"{value:g} {units[exponent]}"


class DocumentRegistry:
    """Tracks selected files through pending -> uploading -> success | error."""

    def __init__(self,
                 client: DocumentUploadClient,
                 max_size_bytes: int = DEFAULT_MAX_SIZE_BYTES,
                 accepted_types: Sequence[str] = DEFAULT_ACCEPTED_TYPES):
        self.client = client
        self.max_size_bytes = max_size_bytes
        self.accepted_types = tuple(accepted_types)
        self._records: Dict[str, UploadedFileRecord] = {}

    @property
    def records(self) -> List[UploadedFileRecord]:
        return list(self._records.values())

    @property
    def successful_records(self) -> List[UploadedFileRecord]:
        return [r for r in self._records.values() if r.status is UploadStatus.SUCCESS]

    def get(self, record_id: str) -> Optional[UploadedFileRecord]:
        return self._records.get(record_id)

    def add_file(self, path: str, kind: UploadKind = UploadKind.DOCUMENT) -> UploadedFileRecord:
        """Register a file; files that fail validation start in the error state."""
        file_path = Path(path)
        mime_type = mimetypes.guess_type(file_path.name)[0] or "application/octet-stream"
        size = file_path.stat().st_size if file_path.exists() else 0

        record = UploadedFileRecord(
            name=file_path.name,
            size=size,
            mime_type=mime_type,
            path=str(file_path),
            kind=kind,
        )
        error = self._validate(file_path, mime_type, size)
        if error:
            record.status = UploadStatus.ERROR
            record.error_detail = error
            logger.warning(f"Rejected {file_path.name}: {error}")

        self._records[record.id] = record
        return record

    def _validate(self, file_path: Path, mime_type: str, size: int) -> Optional[str]:
        if not file_path.is_file():
            return "File not found."
        if mime_type not in self.accepted_types:
            return "File type not supported. Please upload PDF or DOCX files only."
        if size > self.max_size_bytes:
            return f"File size must be less than {format_file_size(self.max_size_bytes)}."
        return None

    async def upload(self, record_id: str) -> UploadedFileRecord:
        """Upload a pending record; failures end in the error state, never raise."""
        record = self._records.get(record_id)
        if record is None:
            raise KeyError(record_id)
        if record.status is not UploadStatus.PENDING:
            return record

        record.status = UploadStatus.UPLOADING
        try:
            record.result = await self.client.upload(record.path, record.mime_type, record.kind)
        except (CaseBaseError, OSError) as e:
            record.status = UploadStatus.ERROR
            record.error_detail = str(e) or "Upload failed. Please try again."
            logger.error(f"Upload of {record.name} failed: {record.error_detail}")
            return record

        record.status = UploadStatus.SUCCESS
        record.upload_date = datetime.now()
        logger.info(f"Uploaded {record.name} (reference={record.server_reference})")
        return record

    async def upload_all(self) -> List[UploadedFileRecord]:
        """Upload every pending record concurrently and wait for all of them."""
        pending = [r.id for r in self._records.values() if r.status is UploadStatus.PENDING]
        return list(await asyncio.gather(*(self.upload(record_id) for record_id in pending)))

    async def retry(self, record_id: str) -> UploadedFileRecord:
        record = self._records.get(record_id)
        if record is None:
            raise KeyError(record_id)
        if record.status is UploadStatus.ERROR:
            file_path = Path(record.path)
            if file_path.is_file():
                record.size = file_path.stat().st_size
            error = self._validate(file_path, record.mime_type, record.size)
            if error:
                record.error_detail = error
                return record
            record.status = UploadStatus.PENDING
            record.error_detail = None
        return await self.upload(record_id)

    def remove(self, record_id: str) -> bool:
        return self._records.pop(record_id, None) is not None

    def clear(self) -> None:
        self._records.clear()
