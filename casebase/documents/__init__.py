"""Document upload tracking for CaseBase."""

from .upload_client import DocumentUploadClient
from .registry import DocumentRegistry, format_file_size

__all__ = [
    "DocumentUploadClient",
    "DocumentRegistry",
    "format_file_size",
]
