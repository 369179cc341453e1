"""
Slack Gateway

Slack binding of the ChatGateway port.

Responsibilities:
- pins.list / pins.add / pins.remove: Pinned message lifecycle
- conversations.replies: Full thread fetch, following pagination cursors
- chat.postMessage / chat.postEphemeral: Thread replies and private notices
- reactions.add, users.info, auth.test
- File download through the authenticated url_private_download link
- Socket Mode: Live event feed as raw frames
"""

from slack_sdk import WebClient
from slack_sdk.errors import SlackApiError
from slack_sdk.socket_mode import SocketModeClient
from slack_sdk.socket_mode.request import SocketModeRequest
from slack_sdk.socket_mode.response import SocketModeResponse
from pathlib import Path
from typing import Any, AsyncIterator, Dict, List, Optional
import asyncio
import logging

import requests

from pinkeeper.config import Settings, get_settings
from pinkeeper.errors import FeedClosedError, GatewayError
from pinkeeper.integrations.slack.parser import (
    decode_socket_frame,
    parse_pinned_item,
    parse_thread_message,
)
from pinkeeper.models.thread import (
    Attachment,
    BotIdentity,
    ChatEvent,
    PinnedMessage,
    ThreadMessage,
    UserProfile,
)

logger = logging.getLogger(__name__)

# Errors meaning the requested state already holds
_IDEMPOTENT_ERRORS = {
    "pins.add": {"already_pinned"},
    "pins.remove": {"no_pin"},
    "reactions.add": {"already_reacted"},
}

_FEED_CLOSED = object()


class SlackGateway:
    """Slack API client implementing the ChatGateway port."""

    def __init__(self, settings: Optional[Settings] = None, client: Optional[WebClient] = None):
        self.settings = settings or get_settings()
        self.client = client or WebClient(token=self.settings.slack_bot_token)

    async def _call(self, operation: str, method, **kwargs) -> Dict[str, Any]:
        """Run a blocking WebClient method off the event loop."""
        try:
            return await asyncio.to_thread(method, **kwargs)
        except SlackApiError as e:
            error = e.response.get("error", "unknown_error")
            if error in _IDEMPOTENT_ERRORS.get(operation, ()):
                logger.debug(f"{operation}: {error}, nothing to do")
                return {"ok": True}
            logger.error(f"Slack API error in {operation}: {error}")
            raise GatewayError(operation, error) from e

    async def fetch_bot_identity(self) -> BotIdentity:
        result = await self._call("auth.test", self.client.auth_test)
        return BotIdentity(user_id=result["user_id"], username=result.get("user", ""))

    async def fetch_pinned_messages(self, channel_id: str) -> List[PinnedMessage]:
        result = await self._call("pins.list", self.client.pins_list, channel=channel_id)

        pinned = []
        for item in result.get("items", []):
            try:
                message = parse_pinned_item(item, channel_id)
            except (KeyError, ValueError) as e:
                logger.warning(f"Skipping unparsable pin in {channel_id}: {e}")
                continue
            if message:
                pinned.append(message)

        logger.debug(f"Fetched {len(pinned)} pinned messages from {channel_id}")
        return pinned

    async def fetch_thread_messages(self, channel_id: str, root_id: str) -> List[ThreadMessage]:
        """
        Fetch every message of a thread, root included.

        Slack repeats the parent message on each page, so the result can
        contain duplicates; callers that need a clean sequence de-duplicate.
        Order is whatever Slack returned.
        """
        messages: List[ThreadMessage] = []
        cursor = None
        pages = 0

        while True:
            params = {"channel": channel_id, "ts": root_id, "limit": self.settings.thread_page_size}
            if cursor:
                params["cursor"] = cursor

            result = await self._call("conversations.replies", self.client.conversations_replies, **params)
            pages += 1

            for msg_data in result.get("messages", []):
                try:
                    messages.append(parse_thread_message(msg_data, channel_id))
                except (KeyError, ValueError) as e:
                    logger.warning(f"Failed to parse message in thread {root_id}: {e}")

            cursor = (result.get("response_metadata") or {}).get("next_cursor")
            if not cursor:
                break

        logger.debug(f"Fetched {len(messages)} messages from thread {root_id} in {pages} page(s)")
        return messages

    async def post_message(self, channel_id: str, text: str, root_id: Optional[str] = None) -> None:
        await self._call(
            "chat.postMessage", self.client.chat_postMessage,
            channel=channel_id, text=text, thread_ts=root_id,
        )

    async def post_ephemeral_message(
        self, channel_id: str, user_id: str, text: str, root_id: Optional[str] = None
    ) -> None:
        await self._call(
            "chat.postEphemeral", self.client.chat_postEphemeral,
            channel=channel_id, user=user_id, text=text, thread_ts=root_id,
        )

    async def pin_message(self, channel_id: str, message_id: str) -> None:
        await self._call("pins.add", self.client.pins_add, channel=channel_id, timestamp=message_id)

    async def unpin_message(self, channel_id: str, message_id: str) -> None:
        await self._call("pins.remove", self.client.pins_remove, channel=channel_id, timestamp=message_id)

    async def add_reaction(self, channel_id: str, message_id: str, emoji_name: str) -> None:
        await self._call(
            "reactions.add", self.client.reactions_add,
            channel=channel_id, timestamp=message_id, name=emoji_name,
        )

    async def lookup_user(self, user_id: str) -> UserProfile:
        result = await self._call("users.info", self.client.users_info, user=user_id)
        user = result.get("user") or {}
        profile = user.get("profile") or {}
        return UserProfile(
            user_id=user_id,
            username=user.get("name") or user_id,
            first_name=profile.get("first_name") or None,
            last_name=profile.get("last_name") or None,
        )

    async def download_attachment(self, attachment: Attachment, dest_path: Path) -> None:
        if not attachment.url:
            raise GatewayError("files.download", f"file {attachment.file_id} has no download url")
        await asyncio.to_thread(self._download, attachment, dest_path)

    def _download(self, attachment: Attachment, dest_path: Path) -> None:
        headers = {"Authorization": f"Bearer {self.settings.slack_bot_token}"}
        try:
            with requests.get(attachment.url, headers=headers, stream=True, timeout=60) as response:
                response.raise_for_status()
                with open(dest_path, "wb") as f:
                    for chunk in response.iter_content(chunk_size=64 * 1024):
                        f.write(chunk)
        except requests.RequestException as e:
            raise GatewayError("files.download", f"{attachment.file_id}: {e}") from e

    def decode_event(self, frame: str) -> ChatEvent:
        return decode_socket_frame(frame)

    async def subscribe_events(self) -> AsyncIterator[str]:
        """
        Yield raw Socket Mode frames in arrival order.

        Envelopes are acknowledged as soon as they arrive so Slack does not
        redeliver them. Raises FeedClosedError once the connection is gone,
        unless the socket client is allowed to reconnect on its own.
        """
        loop = asyncio.get_running_loop()
        queue: asyncio.Queue = asyncio.Queue()
        auto_reconnect = self.settings.socket_auto_reconnect

        def on_message(message: str):
            loop.call_soon_threadsafe(queue.put_nowait, message)

        def on_close(code: int, reason: Optional[str] = None):
            logger.warning(f"Socket Mode connection closed: code={code} reason={reason}")
            if not auto_reconnect:
                loop.call_soon_threadsafe(queue.put_nowait, _FEED_CLOSED)

        def acknowledge(client: SocketModeClient, req: SocketModeRequest):
            client.send_socket_mode_response(SocketModeResponse(envelope_id=req.envelope_id))

        socket_client = SocketModeClient(
            app_token=self.settings.slack_app_token,
            web_client=self.client,
            auto_reconnect_enabled=auto_reconnect,
            on_message_listeners=[on_message],
            on_close_listeners=[on_close],
        )
        socket_client.socket_mode_request_listeners.append(acknowledge)

        try:
            await asyncio.to_thread(socket_client.connect)
        except Exception as e:
            raise FeedClosedError(f"Could not open Socket Mode connection: {e}") from e
        logger.info("Socket Mode connection established")

        try:
            while True:
                frame = await queue.get()
                if frame is _FEED_CLOSED:
                    raise FeedClosedError("Socket Mode connection closed")
                yield frame
        finally:
            await asyncio.to_thread(socket_client.close)
