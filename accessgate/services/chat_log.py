"""Per-user chat log.

The delivery boundary for notifications: every message is appended
verbatim to the recipient's log.
"""

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Dict, Iterable, List, Optional

from accessgate.common.clock import Clock, utcnow
from accessgate.store.base import RecordStore

logger = logging.getLogger(__name__)

SENDER_USER = "user"
SENDER_ASSISTANT = "assistant"
SENDER_SYSTEM = "system"


@dataclass(frozen=True)
class ChatMessage:
    sender: str
    text: str
    created_at: datetime

    def to_dict(self) -> Dict[str, Any]:
        return {
            "sender": self.sender,
            "text": self.text,
            "created_at": self.created_at.isoformat(),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ChatMessage":
        return cls(
            sender=data["sender"],
            text=data["text"],
            created_at=datetime.fromisoformat(data["created_at"]),
        )


class ChatLog:
    """Chat history per user, held in the record store."""

    KIND = "chat_log"

    def __init__(self, store: RecordStore, *, clock: Optional[Clock] = None):
        self.store = store
        self.clock = clock or utcnow

    def append(self, user_id: str, text: str, sender: str = SENDER_SYSTEM) -> ChatMessage:
        message = ChatMessage(sender=sender, text=text, created_at=self.clock())
        with self.store.lock(self.KIND, user_id):
            record = self.store.get(self.KIND, user_id) or {"user_id": user_id, "messages": []}
            record["messages"].append(message.to_dict())
            self.store.put(self.KIND, user_id, record)
        return message

    def deliver(self, notifications: Iterable[Any]) -> int:
        """Append each notification to its recipient's log."""
        delivered = 0
        for notification in notifications:
            self.append(notification.recipient_id, notification.message, SENDER_SYSTEM)
            delivered += 1
        logger.debug("Delivered %d notifications", delivered)
        return delivered

    def history(self, user_id: str) -> List[ChatMessage]:
        record = self.store.get(self.KIND, user_id)
        if record is None:
            return []
        return [ChatMessage.from_dict(m) for m in record["messages"]]

    def clear(self, user_id: str) -> None:
        with self.store.lock(self.KIND, user_id):
            self.store.put(self.KIND, user_id, {"user_id": user_id, "messages": []})
