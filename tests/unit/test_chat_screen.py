"""Unit tests for ChatScreen command handling."""

import io
from pathlib import Path

import pytest
from rich.console import Console

from casebase.chat import ChatOrchestrator
from casebase.documents import DocumentRegistry
from casebase.models.audio import AudioStats
from casebase.models.chat import Role
from casebase.models.documents import UploadKind, UploadResult, UploadStatus
from casebase.ui import ChatScreen
from casebase.ui.chat_screen import role_label


class EchoEngine:

    async def complete(self, prior_turns, new_user_text):
        return f"echo: {new_user_text}"


class FakeDictation:

    def __init__(self):
        self.on_transcript = None
        self.on_status = None
        self.on_auto_stop = None
        self.start_result = False
        self.last_recording = None
        self.started = 0
        self.stopped = 0

    async def start_recording(self):
        self.started += 1
        return self.start_result

    async def stop_recording(self):
        self.stopped += 1
        return ""

    async def shutdown(self):
        pass


class FakeUploadClient:

    def __init__(self):
        self.kinds = []

    async def upload(self, path, mime_type, kind=UploadKind.DOCUMENT):
        self.kinds.append(kind)
        return UploadResult(id="ref-1")


@pytest.fixture
def screen():
    console = Console(file=io.StringIO(), width=100, force_terminal=False)
    return ChatScreen(
        ChatOrchestrator(EchoEngine()),
        FakeDictation(),
        DocumentRegistry(FakeUploadClient()),
        console=console,
    )


def output(screen):
    return screen.console.file.getvalue()


@pytest.mark.unit
class TestChatScreen:

    def test_role_labels(self):
        assert role_label(Role.USER)[0] == "You"
        assert role_label(Role.ASSISTANT)[0] == "CaseBase"
        assert role_label(Role.SYSTEM)[0] == "System"

    def test_dictation_feeds_pending_input(self, screen):
        screen.dictation.on_transcript("first part")
        screen.dictation.on_transcript("second part")
        assert screen.chat.pending_input == "first part second part"

    @pytest.mark.asyncio
    async def test_send_and_render(self, screen):
        await screen.handle_line("hello")

        assert [m.content for m in screen.chat.messages] == ["hello", "echo: hello"]
        assert "echo: hello" in output(screen)

    @pytest.mark.asyncio
    async def test_empty_line_sends_pending_input(self, screen):
        await screen.handle_line("")
        assert screen.chat.messages == []

        screen.chat.append_transcribed_text("dictated")
        await screen.handle_line("")
        assert screen.chat.messages[0].content == "dictated"

    @pytest.mark.asyncio
    async def test_edit_delete_retry(self, screen):
        await screen.handle_line("one")
        await screen.handle_line("two")

        await screen.handle_line("/edit 3 two, amended")
        assert screen.chat.messages[2].content == "two, amended"

        await screen.handle_line("/delete 1")
        assert len(screen.chat.messages) == 3

        await screen.handle_line("/retry")
        assert [m.content for m in screen.chat.messages] == ["echo: one"]
        assert screen.chat.pending_input == "two, amended"

    @pytest.mark.asyncio
    async def test_bad_message_number(self, screen):
        await screen.handle_line("/delete 7")
        await screen.handle_line("/edit x text")
        assert "No message 7" in output(screen)
        assert "Not a message number" in output(screen)

    @pytest.mark.asyncio
    async def test_upload_and_files(self, screen, temp_data_dir):
        path = Path(temp_data_dir) / "deposition.pdf"
        path.write_bytes(b"%PDF")

        await screen.handle_line(f"/upload {path} transcript")
        await screen.handle_line(f"/upload {Path(temp_data_dir) / 'missing.docx'}")
        await screen.handle_line("/files")

        records = screen.documents.records
        assert records[0].status is UploadStatus.SUCCESS
        assert records[0].kind is UploadKind.TRANSCRIPT
        assert records[1].status is UploadStatus.ERROR
        assert "deposition.pdf" in output(screen)
        assert "File not found." in output(screen)

    @pytest.mark.asyncio
    async def test_mic_auto_stop_asks_for_enter(self, screen):
        screen.dictation.start_result = True
        screen.dictation.last_recording = AudioStats(
            is_recording=False, duration_seconds=3.04, sample_rate=16000,
            chunk_size=4096, channels=1, frames_read=12,
        )

        async def read_line(prompt):
            screen.dictation.on_auto_stop()
            return ""

        screen._read_line = read_line
        await screen.handle_line("/mic")

        assert screen.dictation.stopped == 1
        assert "Stopped after silence. Press Enter to continue." in output(screen)
        assert "Recorded 3.0s" in output(screen)

    @pytest.mark.asyncio
    async def test_mic_not_started(self, screen):
        await screen.handle_line("/mic")
        assert screen.dictation.started == 1
        assert screen.dictation.stopped == 0

    @pytest.mark.asyncio
    async def test_clear_and_quit(self, screen):
        screen.running = True
        await screen.handle_line("hi")
        await screen.handle_line("/clear")
        assert screen.chat.messages == []

        await screen.handle_line("/bogus")
        assert "Unknown command" in output(screen)

        await screen.handle_line("/quit")
        assert screen.running is False
