"""Main application entry point for CaseBase."""

import sys
import asyncio
import argparse
import logging
import mimetypes
from pathlib import Path
from typing import List

from rich.console import Console
from rich.logging import RichHandler

from casebase import __version__
from casebase.chat import ChatGPTCompletionEngine, ChatOrchestrator
from casebase.documents import DocumentRegistry, DocumentUploadClient
from casebase.exceptions import CaseBaseError, ConfigurationError, PollTimeoutError
from casebase.services import DictationService, TranscriptionService
from casebase.ui import ChatScreen

from .config import CaseBaseConfig

logger = logging.getLogger(__name__)


class Application:

    def __init__(self, config_path: str, log_level: str):
        self.config = CaseBaseConfig(config_path)
        setup_logging(self.config, log_level or self.config.get('logging.level', 'INFO'))

    def build_chat(self) -> ChatScreen:
        logger.info("Initializing services...")

        try:
            api_key = self.config.get_api_key('completion')
        except ConfigurationError as e:
            logger.warning(f"{e}; chat replies will fail until one is set")
            api_key = ""

        engine = ChatGPTCompletionEngine(
            api_key=api_key,
            model=self.config.get('completion.model', 'gpt-3.5-turbo'),
            temperature=self.config.get('completion.temperature', 0.7),
            timeout=self.config.get('completion.timeout_seconds', 30),
        )
        chat = ChatOrchestrator(engine)

        documents = DocumentRegistry(
            DocumentUploadClient(self.config.get('documents.upload_url', 'http://localhost:8000')),
            max_size_bytes=self.config.get('documents.max_size_bytes', 10 * 1024 * 1024),
        )

        transcription_service = TranscriptionService(self.config)
        dictation = DictationService(self.config, transcription_service)
        logger.info(f"Dictation mode: {dictation.mode}")

        return ChatScreen(chat, dictation, documents)

    async def transcribe_file(self, path: str) -> int:
        """Run one turn-based transcription of an audio file and print the text."""
        audio_path = Path(path)
        if not audio_path.is_file():
            print(f"No such file: {audio_path}")
            return 1

        mime_type = mimetypes.guess_type(audio_path.name)[0] or "application/octet-stream"
        backend = TranscriptionService(self.config).create_turn_based_backend()
        try:
            result = await backend.transcribe(audio_path.read_bytes(), mime_type=mime_type)
        except PollTimeoutError as e:
            print(f"Transcription timed out; job {e.job_id} may still complete.")
            return 1
        finally:
            await backend.cleanup()

        if result.warning:
            print(f"Warning: {result.warning}")
        print(result.text)
        return 0


FILE_LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(funcName)s:%(lineno)d - %(message)s'


def setup_logging(config, level: str = "INFO") -> None:
    """Log everything to the configured file; warnings also go to the terminal."""
    log_file = Path(config.get_log_file_path())
    log_file.parent.mkdir(parents=True, exist_ok=True)

    to_file = logging.FileHandler(log_file, encoding='utf-8')
    to_file.setLevel(logging.DEBUG)
    to_file.setFormatter(logging.Formatter(FILE_LOG_FORMAT))
    handlers: List[logging.Handler] = [to_file]

    if config.get('logging.console_output', True):
        to_console = RichHandler(console=Console(stderr=True), show_path=False)
        to_console.setLevel(logging.WARNING)
        handlers.append(to_console)

    root = logging.getLogger()
    root.handlers[:] = handlers
    root.setLevel(level.upper())

    logger.info(f"CaseBase {__version__} starting, level {level}, logging to {log_file}")


def main() -> None:
    """Main entry point for CaseBase application."""
    parser = argparse.ArgumentParser(
        description="CaseBase - chat assistant with voice input and document upload",
        epilog="Type /help inside the chat for commands"
    )

    parser.add_argument(
        "--config",
        type=str,
        help="Path to configuration YAML file (default: looks for casebase.yaml)"
    )

    parser.add_argument(
        "--log-level",
        type=str,
        default=None,
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Set logging level (default: logging.level from config, else INFO)"
    )

    parser.add_argument(
        "--version",
        action="version",
        version=f"CaseBase v{__version__}"
    )

    subparsers = parser.add_subparsers(dest="command")
    subparsers.add_parser("chat", help="Interactive chat (default)")
    transcribe_parser = subparsers.add_parser("transcribe", help="Transcribe an audio file and exit")
    transcribe_parser.add_argument("file", help="Audio file to transcribe")

    args = parser.parse_args()

    try:
        app = Application(args.config, args.log_level)
        if args.command == "transcribe":
            sys.exit(asyncio.run(app.transcribe_file(args.file)))
        asyncio.run(app.build_chat().run())
    except KeyboardInterrupt:
        print("\nGoodbye!")
    except (CaseBaseError, FileNotFoundError, ValueError) as e:
        print(f"Error: {e}")
        logging.error(f"Application error: {e}")
        sys.exit(1)


if __name__ == "__main__":
    main()
