"""Uploaded document models."""

import uuid
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


class UploadStatus(Enum):
    """Upload progress of a selected file."""
    PENDING = "pending"
    UPLOADING = "uploading"
    SUCCESS = "success"
    ERROR = "error"


class UploadKind(Enum):
    """What the uploaded file is used for."""
    DOCUMENT = "document"
    TRANSCRIPT = "transcript"


class UploadResult(BaseModel):
    """Processing reference returned by the document upload endpoint."""
    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    reference: Optional[str] = Field(default=None, alias="id")
    message: Optional[str] = None
    pages: Optional[int] = None
    chunks: Optional[int] = None


@dataclass
class UploadedFileRecord:
    """Metadata of a file the user selected for upload."""
    name: str
    size: int
    mime_type: str
    path: str
    kind: UploadKind = UploadKind.DOCUMENT
    id: str = field(default_factory=lambda: uuid.uuid4().hex)
    status: UploadStatus = UploadStatus.PENDING
    upload_date: Optional[datetime] = None
    result: Optional[UploadResult] = None
    error_detail: Optional[str] = None

    @property
    def server_reference(self) -> Optional[str]:
        return self.result.reference if self.result else None
