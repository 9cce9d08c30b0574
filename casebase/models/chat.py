"""Chat conversation models."""

import uuid
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Dict


class Role(Enum):
    """Author of a message."""
    USER = "user"
    ASSISTANT = "assistant"
    SYSTEM = "system"


def _new_message_id() -> str:
    return uuid.uuid4().hex


@dataclass
class Message:
    """A single entry in the conversation log."""
    role: Role
    content: str
    id: str = field(default_factory=_new_message_id)
    timestamp: datetime = field(default_factory=datetime.now)

    def to_turn(self) -> Dict[str, str]:
        """Role and content only, as sent to the completion backend."""
        return {"role": self.role.value, "content": self.content}
