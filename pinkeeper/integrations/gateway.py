"""
Chat Gateway Port

The capability surface the bot needs from a chat platform. The services only
talk to this protocol; the Slack binding lives in
pinkeeper.integrations.slack.
"""

from pathlib import Path
from typing import AsyncIterator, List, Optional, Protocol, runtime_checkable

from pinkeeper.models.thread import (
    Attachment,
    BotIdentity,
    ChatEvent,
    PinnedMessage,
    ThreadMessage,
    UserProfile,
)


@runtime_checkable
class ChatGateway(Protocol):
    """Interface for chat platform adapters.

    Every call may raise GatewayError. subscribe_events raises
    FeedClosedError when the transport is gone, decode_event raises
    MalformedEventError for frames it cannot make sense of.
    """

    async def fetch_bot_identity(self) -> BotIdentity: ...

    async def fetch_pinned_messages(self, channel_id: str) -> List[PinnedMessage]: ...

    async def fetch_thread_messages(
        self, channel_id: str, root_id: str
    ) -> List[ThreadMessage]: ...

    async def post_message(
        self, channel_id: str, text: str, root_id: Optional[str] = None
    ) -> None: ...

    async def post_ephemeral_message(
        self, channel_id: str, user_id: str, text: str, root_id: Optional[str] = None
    ) -> None: ...

    async def pin_message(self, channel_id: str, message_id: str) -> None: ...

    async def unpin_message(self, channel_id: str, message_id: str) -> None: ...

    async def add_reaction(
        self, channel_id: str, message_id: str, emoji_name: str
    ) -> None: ...

    async def lookup_user(self, user_id: str) -> UserProfile: ...

    async def download_attachment(self, attachment: Attachment, dest_path: Path) -> None: ...

    def subscribe_events(self) -> AsyncIterator[str]: ...

    def decode_event(self, frame: str) -> ChatEvent: ...
