"""Terminal chat screen with dictation and document upload commands."""

import asyncio
import logging
from typing import Optional, Tuple

from rich.console import Console
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from ..chat import ChatOrchestrator
from ..documents import DocumentRegistry, format_file_size
from ..models.chat import Message, Role
from ..models.documents import UploadKind, UploadStatus
from ..services import DictationService

logger = logging.getLogger(__name__)

HELP_TEXT = """Type a message and press Enter to send it.
  /mic                 dictate; Enter stops it, so does 2s of silence (then press Enter)
  /retry [N]           put message N's question back in the input (default: last reply)
  /edit N TEXT         replace the content of message N
  /delete N            delete message N
  /upload PATH [transcript]   upload a PDF or DOCX file
  /files               list uploaded files
  /clear               clear the conversation
  /quit                exit"""

STATUS_STYLES = {
    UploadStatus.PENDING: "dim",
    UploadStatus.UPLOADING: "blue",
    UploadStatus.SUCCESS: "green",
    UploadStatus.ERROR: "red",
}


def role_label(role: Role) -> Tuple[str, str]:
    """Display name and style for a message author."""
    if role is Role.USER:
        return "You", "bold cyan"
    if role is Role.ASSISTANT:
        return "CaseBase", "bold green"
    if role is Role.SYSTEM:
        return "System", "bold yellow"
    raise ValueError(f"Unhandled role: {role}")


class ChatScreen:
    """Line-oriented chat interface using rich for output."""

    def __init__(self,
                 chat: ChatOrchestrator,
                 dictation: DictationService,
                 documents: DocumentRegistry,
                 console: Optional[Console] = None):
        self.console = console or Console()
        self.chat = chat
        self.dictation = dictation
        self.documents = documents
        self.running = False

        self.dictation.on_transcript = self.chat.append_transcribed_text
        self.dictation.on_status = self._show_status
        self.dictation.on_auto_stop = self._show_auto_stop

    def render_message(self, index: int, message: Message) -> None:
        label, style = role_label(message.role)
        title = Text(f"{index}. {label}  {message.timestamp:%H:%M}", style=style)
        if message.role is Role.ASSISTANT:
            self.console.print(Panel(Text(message.content), title=title, title_align="left", border_style="green"))
        else:
            self.console.print(title)
            self.console.print(Text(message.content))

    def render_conversation(self) -> None:
        if not self.chat.messages:
            self.console.print("How can I help you today?", style="bold")
            self.console.print("You can also use /mic to speak your questions.", style="dim")
            return
        for index, message in enumerate(self.chat.messages, start=1):
            self.render_message(index, message)

    def render_files(self) -> None:
        records = self.documents.records
        if not records:
            self.console.print("No files uploaded.", style="dim")
            return
        table = Table(title="Files")
        table.add_column("#")
        table.add_column("Name")
        table.add_column("Size", justify="right")
        table.add_column("Type")
        table.add_column("Status")
        for index, record in enumerate(records, start=1):
            status = Text(record.status.value, style=STATUS_STYLES[record.status])
            if record.error_detail:
                status.append(f" ({record.error_detail})")
            table.add_row(str(index), record.name, format_file_size(record.size), record.kind.value, status)
        self.console.print(table)

    def _show_status(self, text: str) -> None:
        if text:
            self.console.print(Text(text, style="dim italic"))

    def _show_auto_stop(self) -> None:
        self.console.print("Stopped after silence. Press Enter to continue.", style="bold red")

    async def _read_line(self, prompt: str) -> str:
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(None, self.console.input, prompt)

    async def run(self) -> None:
        """Main loop: read a line, dispatch it, repeat until /quit or EOF."""
        self.running = True
        self.console.print("CaseBase", style="bold blue")
        self.console.print("Type /help for commands.", style="dim")
        self.render_conversation()

        try:
            while self.running:
                prompt = "> "
                if self.chat.pending_input:
                    self.console.print(Text(f"[pending] {self.chat.pending_input}", style="yellow"))
                    prompt = "> (Enter to send pending) "
                try:
                    line = await self._read_line(prompt)
                except EOFError:
                    break
                await self.handle_line(line.strip())
        finally:
            await self.dictation.shutdown()

    async def handle_line(self, line: str) -> None:
        if not line:
            if self.chat.pending_input:
                await self._send(None)
            return
        if not line.startswith("/"):
            await self._send(line)
            return

        command, _, argument = line.partition(" ")
        argument = argument.strip()
        if command == "/quit":
            self.running = False
        elif command == "/help":
            self.console.print(HELP_TEXT, markup=False)
        elif command == "/mic":
            await self._dictate()
        elif command == "/retry":
            self._retry(argument)
        elif command == "/edit":
            self._edit(argument)
        elif command == "/delete":
            self._delete(argument)
        elif command == "/upload":
            await self._upload(argument)
        elif command == "/files":
            self.render_files()
        elif command == "/clear":
            self.chat.clear()
            self.console.clear()
        else:
            self.console.print(f"Unknown command {command}. Type /help.", style="red")

    async def _send(self, text: Optional[str]) -> None:
        with self.console.status("Thinking..."):
            reply = await self.chat.send(text)
        if reply is not None:
            self.render_message(len(self.chat.messages), reply)

    async def _dictate(self) -> None:
        if not await self.dictation.start_recording():
            return
        self.console.print("Recording... press Enter to stop.", style="bold red")
        await self._read_line("")
        await self.dictation.stop_recording()
        stats = self.dictation.last_recording
        if stats is not None:
            self.console.print(f"Recorded {stats.duration_seconds:.1f}s", style="dim")

    def _message_at(self, argument: str) -> Optional[Message]:
        try:
            index = int(argument)
        except ValueError:
            self.console.print(f"Not a message number: {argument!r}", style="red")
            return None
        if not 1 <= index <= len(self.chat.messages):
            self.console.print(f"No message {index}", style="red")
            return None
        return self.chat.messages[index - 1]

    def _retry(self, argument: str) -> None:
        if argument:
            message = self._message_at(argument)
        else:
            replies = [m for m in self.chat.messages if m.role is Role.ASSISTANT]
            message = replies[-1] if replies else None
        if message is None or not self.chat.retry(message.id):
            self.console.print("Nothing to retry.", style="red")

    def _edit(self, argument: str) -> None:
        number, _, text = argument.partition(" ")
        message = self._message_at(number)
        if message is not None and text.strip():
            self.chat.edit(message.id, text.strip())

    def _delete(self, argument: str) -> None:
        message = self._message_at(argument)
        if message is not None:
            self.chat.delete(message.id)

    async def _upload(self, argument: str) -> None:
        path, _, kind_name = argument.partition(" ")
        if not path:
            self.console.print("Usage: /upload PATH [transcript]", style="red")
            return
        kind = UploadKind.TRANSCRIPT if kind_name.strip() == "transcript" else UploadKind.DOCUMENT
        record = self.documents.add_file(path, kind)
        if record.status is UploadStatus.PENDING:
            with self.console.status(f"Uploading {record.name}..."):
                await self.documents.upload(record.id)
        style = STATUS_STYLES[record.status]
        detail = f": {record.error_detail}" if record.error_detail else ""
        self.console.print(Text(f"{record.name} - {record.status.value}{detail}", style=style))
