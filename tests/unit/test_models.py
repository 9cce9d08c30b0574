"""Unit tests for data models."""

import numpy as np
import pytest

from casebase.models import (
    AudioEvent,
    JobStatus,
    Message,
    PollingJob,
    Role,
    TranscriptionResult,
    UploadResult,
)


@pytest.mark.unit
class TestModels:

    def test_audio_event_duration(self):
        data = np.zeros(16000, dtype=np.float32).tobytes()
        event = AudioEvent(chunk_id="chunk_1", audio_data=data, timestamp=0.0, sequence_number=1)
        assert event.chunk_duration_ms == 1000

    @pytest.mark.parametrize("raw,expected", [
        ("queued", JobStatus.QUEUED),
        ("processing", JobStatus.PROCESSING),
        ("completed", JobStatus.COMPLETED),
        ("error", JobStatus.ERROR),
        ("something_new", JobStatus.PROCESSING),
    ])
    def test_job_status_parse(self, raw, expected):
        assert JobStatus.parse(raw) is expected

    def test_polling_job_terminal(self):
        job = PollingJob(job_id="job-1")
        assert not job.is_terminal
        job.status = JobStatus.ERROR
        assert job.is_terminal

    def test_message_turn_has_role_and_content_only(self):
        message = Message(role=Role.USER, content="Hello")
        assert message.to_turn() == {"role": "user", "content": "Hello"}
        assert message.id != Message(role=Role.USER, content="Hello").id

    def test_upload_result_ignores_unknown_fields(self):
        result = UploadResult.model_validate_json('{"id": "doc-1", "pages": 4, "extra": true}')
        assert result.reference == "doc-1"
        assert result.pages == 4
        assert result.chunks is None

    def test_transcription_result_empty(self):
        assert TranscriptionResult(text="  ", service="x").is_empty
        assert not TranscriptionResult(text="a", service="x").is_empty
