"""Unit tests for DocumentRegistry."""

import asyncio
from pathlib import Path

import pytest

from casebase.documents import DocumentRegistry, format_file_size
from casebase.exceptions import DocumentUploadError, NetworkError
from casebase.models.documents import UploadKind, UploadResult, UploadStatus


class FakeUploadClient:

    def __init__(self):
        self.uploads = []
        self.failures = {}
        self.in_flight = 0
        self.max_in_flight = 0

    async def upload(self, path, mime_type, kind=UploadKind.DOCUMENT):
        self.uploads.append((Path(path).name, mime_type, kind))
        self.in_flight += 1
        self.max_in_flight = max(self.max_in_flight, self.in_flight)
        try:
            await asyncio.sleep(0.01)
            error = self.failures.get(Path(path).name)
            if error is not None:
                raise error
            return UploadResult(id=f"ref-{Path(path).stem}", message="processed", pages=3)
        finally:
            self.in_flight -= 1


@pytest.fixture
def files(temp_data_dir):
    root = Path(temp_data_dir)
    (root / "brief.pdf").write_bytes(b"%PDF-1.4 test")
    (root / "notes.docx").write_bytes(b"PK docx")
    (root / "photo.png").write_bytes(b"\x89PNG")
    (root / "large.pdf").write_bytes(b"0" * 2048)
    return root


@pytest.mark.unit
class TestFormatFileSize:

    @pytest.mark.parametrize("size,expected", [
        (0, "0 Bytes"),
        (500, "500 Bytes"),
        (1024, "1 KB"),
        (1536, "1.5 KB"),
        (10 * 1024 * 1024, "10 MB"),
    ])
    def test_format(self, size, expected):
        assert format_file_size(size) == expected


@pytest.mark.unit
class TestDocumentRegistry:

    def test_add_valid_files(self, files):
        registry = DocumentRegistry(FakeUploadClient())

        pdf = registry.add_file(str(files / "brief.pdf"))
        docx = registry.add_file(str(files / "notes.docx"), UploadKind.TRANSCRIPT)

        assert pdf.status is UploadStatus.PENDING
        assert pdf.mime_type == "application/pdf"
        assert pdf.size == len(b"%PDF-1.4 test")
        assert docx.status is UploadStatus.PENDING
        assert docx.kind is UploadKind.TRANSCRIPT
        assert registry.records == [pdf, docx]

    def test_rejects_unsupported_type(self, files):
        registry = DocumentRegistry(FakeUploadClient())
        record = registry.add_file(str(files / "photo.png"))

        assert record.status is UploadStatus.ERROR
        assert "PDF or DOCX" in record.error_detail

    def test_rejects_oversized_file(self, files):
        registry = DocumentRegistry(FakeUploadClient(), max_size_bytes=1024)
        record = registry.add_file(str(files / "large.pdf"))

        assert record.status is UploadStatus.ERROR
        assert record.error_detail == "File size must be less than 1 KB."

    def test_missing_file(self, files):
        registry = DocumentRegistry(FakeUploadClient())
        record = registry.add_file(str(files / "gone.pdf"))

        assert record.status is UploadStatus.ERROR
        assert record.error_detail == "File not found."

    @pytest.mark.asyncio
    async def test_upload_success(self, files):
        client = FakeUploadClient()
        registry = DocumentRegistry(client)
        record = registry.add_file(str(files / "brief.pdf"))

        await registry.upload(record.id)

        assert record.status is UploadStatus.SUCCESS
        assert record.server_reference == "ref-brief"
        assert record.result.pages == 3
        assert record.upload_date is not None
        assert registry.successful_records == [record]

    @pytest.mark.asyncio
    @pytest.mark.parametrize("error", [DocumentUploadError("Upload failed with status 500", status=500),
                                       NetworkError("Upload failed: timeout")])
    async def test_upload_failure_sets_error(self, files, error):
        client = FakeUploadClient()
        client.failures["brief.pdf"] = error
        registry = DocumentRegistry(client)
        record = registry.add_file(str(files / "brief.pdf"))

        await registry.upload(record.id)

        assert record.status is UploadStatus.ERROR
        assert record.error_detail == str(error)
        assert registry.successful_records == []

    @pytest.mark.asyncio
    async def test_upload_unknown_record(self):
        registry = DocumentRegistry(FakeUploadClient())
        with pytest.raises(KeyError):
            await registry.upload("missing")

    @pytest.mark.asyncio
    async def test_upload_all_runs_concurrently(self, files):
        client = FakeUploadClient()
        client.failures["notes.docx"] = DocumentUploadError("rejected", status=422)
        registry = DocumentRegistry(client)
        pdf = registry.add_file(str(files / "brief.pdf"))
        docx = registry.add_file(str(files / "notes.docx"))
        png = registry.add_file(str(files / "photo.png"))

        settled = await registry.upload_all()

        assert {r.id for r in settled} == {pdf.id, docx.id}
        assert client.max_in_flight == 2
        assert pdf.status is UploadStatus.SUCCESS
        assert docx.status is UploadStatus.ERROR
        assert png.status is UploadStatus.ERROR
        assert len(client.uploads) == 2

    @pytest.mark.asyncio
    async def test_retry_after_failure(self, files):
        client = FakeUploadClient()
        client.failures["brief.pdf"] = NetworkError("offline")
        registry = DocumentRegistry(client)
        record = registry.add_file(str(files / "brief.pdf"))
        await registry.upload(record.id)
        assert record.status is UploadStatus.ERROR

        del client.failures["brief.pdf"]
        await registry.retry(record.id)

        assert record.status is UploadStatus.SUCCESS
        assert record.error_detail is None
        assert len(client.uploads) == 2

    @pytest.mark.asyncio
    async def test_retry_keeps_invalid_file_in_error(self, files):
        client = FakeUploadClient()
        registry = DocumentRegistry(client)
        record = registry.add_file(str(files / "photo.png"))

        await registry.retry(record.id)

        assert record.status is UploadStatus.ERROR
        assert client.uploads == []

    def test_remove_and_clear(self, files):
        registry = DocumentRegistry(FakeUploadClient())
        first = registry.add_file(str(files / "brief.pdf"))
        registry.add_file(str(files / "notes.docx"))

        assert registry.remove(first.id) is True
        assert registry.remove(first.id) is False
        assert len(registry.records) == 1

        registry.clear()
        assert registry.records == []
