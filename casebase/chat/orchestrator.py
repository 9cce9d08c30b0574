"""Conversation state and the send/retry/edit/delete operations on it."""

import logging
from typing import Callable, Dict, List, Optional, Protocol

from ..exceptions import CaseBaseError
from ..models.chat import Message, Role

logger = logging.getLogger(__name__)

ERROR_REPLY = "I'm sorry, I encountered an error processing your request. Please try again."


class CompletionEngine(Protocol):
    """Protocol for engines that can answer a conversation."""

    async def complete(self, prior_turns: List[Dict[str, str]], new_user_text: str) -> str:
        ...


class ChatOrchestrator:
    """Owns the message log, the pending input and the in-flight flag.

    Sends are single-flight: a send issued while another is awaiting the
    backend is refused rather than queued, so user and assistant turns always
    alternate in the log.
    """

    def __init__(self, engine: CompletionEngine, on_change: Optional[Callable[[], None]] = None):
        self.engine = engine
        self.on_change = on_change
        self.messages: List[Message] = []
        self.pending_input = ""
        self.is_processing = False

    async def send(self, user_text: Optional[str] = None) -> Optional[Message]:
        """Send ``user_text`` (default: the pending input) and append the reply.

        Returns:
            The assistant message appended, or None if the send was refused
        """
        text = self.pending_input if user_text is None else user_text
        if not text.strip():
            return None
        if self.is_processing:
            logger.warning("Send ignored, a previous request is still in flight")
            return None

        prior_turns = [message.to_turn() for message in self.messages]
        self.is_processing = True
        self.messages.append(Message(role=Role.USER, content=text))
        self.pending_input = ""
        self._changed()

        try:
            reply_text = await self.engine.complete(prior_turns, text)
        except CaseBaseError as e:
            logger.error(f"Error communicating with AI service: {e}")
            reply_text = ERROR_REPLY
        finally:
            self.is_processing = False

        reply = Message(role=Role.ASSISTANT, content=reply_text)
        self.messages.append(reply)
        self._changed()
        return reply

    def retry(self, message_id: str) -> bool:
        """Rewind to before the user turn that produced ``message_id``.

        The user turn's text goes back into the pending input; nothing is
        resent automatically.
        """
        if self.is_processing:
            logger.warning("Retry ignored while a request is in flight")
            return False

        index = self._index_of(message_id)
        if index is None or index == 0:
            return False
        previous = self.messages[index - 1]
        if previous.role is not Role.USER:
            return False

        self.pending_input = previous.content
        del self.messages[index - 1:]
        logger.info(f"Rewound conversation to {len(self.messages)} messages for retry")
        self._changed()
        return True

    def edit(self, message_id: str, new_content: str) -> bool:
        index = self._index_of(message_id)
        if index is None:
            return False
        self.messages[index].content = new_content
        self._changed()
        return True

    def delete(self, message_id: str) -> bool:
        index = self._index_of(message_id)
        if index is None:
            return False
        del self.messages[index]
        self._changed()
        return True

    def append_transcribed_text(self, text: str) -> None:
        """Add dictated text to the pending input, space separated."""
        if not text:
            return
        self.pending_input += (" " if self.pending_input else "") + text
        self._changed()

    def clear(self) -> None:
        self.messages.clear()
        self.pending_input = ""
        self._changed()

    def get(self, message_id: str) -> Optional[Message]:
        index = self._index_of(message_id)
        return None if index is None else self.messages[index]

    def _index_of(self, message_id: str) -> Optional[int]:
        for index, message in enumerate(self.messages):
            if message.id == message_id:
                return index
        return None

    def _changed(self) -> None:
        if self.on_change is not None:
            self.on_change()
