"""
Chat Data Models

Platform-agnostic snapshots of chat messages, threads and events.
Everything here is re-read from the chat platform on demand and never cached
between sweep cycles or archive runs.
"""

from pydantic import BaseModel, ConfigDict
from datetime import datetime
from enum import Enum
from typing import FrozenSet, List, Optional, Tuple


class Attachment(BaseModel):
    """A file attached to a message."""

    model_config = ConfigDict(frozen=True)

    file_id: str
    name: str
    url: Optional[str] = None  # Authenticated download URL


class ThreadMessage(BaseModel):
    """One message of a thread, root included."""

    model_config = ConfigDict(frozen=True)

    id: str
    channel_id: str
    author_id: str
    text: str = ""
    created_at: datetime
    attachments: List[Attachment] = []


class PinnedMessage(BaseModel):
    """A currently pinned post."""

    model_config = ConfigDict(frozen=True)

    id: str
    channel_id: str
    author_id: str
    created_at: datetime
    reactions: FrozenSet[str] = frozenset()


class ThreadTail(BaseModel):
    """The latest message of a thread."""

    model_config = ConfigDict(frozen=True)

    created_at: datetime
    author_id: str


class ThreadSnapshot(BaseModel):
    """Ordered, de-duplicated thread content built for one archive run."""

    model_config = ConfigDict(frozen=True)

    root_id: str
    channel_id: str
    messages: Tuple[ThreadMessage, ...]

    @property
    def root(self) -> ThreadMessage:
        for msg in self.messages:
            if msg.id == self.root_id:
                return msg
        # Root missing from the fetch: fall back to the earliest message
        return self.messages[0]

    @property
    def author_ids(self) -> List[str]:
        """Distinct authors in thread order."""
        return list(dict.fromkeys(msg.author_id for msg in self.messages))

    @property
    def has_attachments(self) -> bool:
        return any(msg.attachments for msg in self.messages)


class UserProfile(BaseModel):
    """Subset of a chat user's profile."""

    user_id: str
    username: str
    first_name: Optional[str] = None
    last_name: Optional[str] = None

    @property
    def display_name(self) -> str:
        """First + last name when both are set, else the username."""
        if self.first_name and self.last_name:
            return f"{self.first_name} {self.last_name}"
        return self.username


class BotIdentity(BaseModel):
    """The bot account the process runs as."""

    model_config = ConfigDict(frozen=True)

    user_id: str
    username: str = ""

    @property
    def mention_tokens(self) -> Tuple[str, ...]:
        """Text forms in which the bot can be mentioned."""
        tokens = [f"<@{self.user_id}>"]
        if self.username:
            tokens.append(f"@{self.username}")
        return tuple(tokens)

    def is_mentioned_in(self, text: str) -> bool:
        return any(token in text for token in self.mention_tokens)


class EventType(str, Enum):
    """Event kinds the router distinguishes."""

    POSTED = "posted"
    OTHER = "other"


class PostedEvent(BaseModel):
    """A new message was posted."""

    id: str
    text: str = ""
    channel_id: str
    author_id: str
    root_id: str = ""  # Empty for top-level posts

    @property
    def is_top_level(self) -> bool:
        return not self.root_id


class ChatEvent(BaseModel):
    """One decoded frame of the live event feed."""

    type: EventType
    raw_type: str = ""
    payload: Optional[PostedEvent] = None
