"""
Slack Payload Parser

Turns raw Slack Web API / Socket Mode payloads into the bot's models:
- Thread permalinks -> channel_id + message ts
- Socket Mode frames -> ChatEvent
- Message dicts -> ThreadMessage / PinnedMessage
"""

import json
import re
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Dict, List

from pydantic import ValidationError

from pinkeeper.errors import MalformedEventError
from pinkeeper.models.thread import (
    Attachment,
    ChatEvent,
    EventType,
    PinnedMessage,
    PostedEvent,
    ThreadMessage,
)

# Message subtypes that count as a new post; edits, joins etc. do not
POSTED_SUBTYPES = (None, "file_share", "thread_broadcast")


@dataclass
class ParsedPermalink:
    """Parsed Slack permalink components."""

    workspace: str
    channel_id: str
    thread_ts: str


def parse_permalink(permalink: str) -> ParsedPermalink:
    """
    Parse Slack thread permalink to extract channel and timestamp.

    Examples:
        https://myworkspace.slack.com/archives/C123ABC456/p1234567890123456
        -> channel_id: C123ABC456
        -> thread_ts: 1234567890.123456

    Replies carry the root in the query string
    (?thread_ts=1234567890.000100&cid=C123ABC456); the root wins over the
    reply's own timestamp so the whole thread is addressed.

    Raises:
        ValueError: If permalink format is invalid
    """
    pattern = r"https://([^.]+)\.slack\.com/archives/([A-Z0-9]+)/p(\d{16})"
    match = re.match(pattern, permalink)

    if not match:
        raise ValueError(f"Invalid Slack permalink format: {permalink}")

    workspace, channel_id, ts_raw = match.groups()

    # Convert timestamp: p1234567890123456 -> 1234567890.123456
    thread_ts = f"{ts_raw[:10]}.{ts_raw[10:]}"

    root_match = re.search(r"[?&]thread_ts=(\d+\.\d+)", permalink)
    if root_match:
        thread_ts = root_match.group(1)

    return ParsedPermalink(
        workspace=workspace,
        channel_id=channel_id,
        thread_ts=thread_ts,
    )


def parse_ts(ts: str) -> datetime:
    """Slack message ts ("1706123400.123456") -> aware UTC datetime."""
    return datetime.fromtimestamp(float(ts), tz=timezone.utc)


def parse_reaction_names(msg_data: Dict[str, Any]) -> frozenset:
    """Reaction names on a message, skin tone variants folded together."""
    names = set()
    for reaction in msg_data.get("reactions") or []:
        name = reaction.get("name")
        if name:
            names.add(name.split("::")[0])
    return frozenset(names)


def parse_attachments(msg_data: Dict[str, Any]) -> List[Attachment]:
    attachments = []
    for file_data in msg_data.get("files") or []:
        file_id = file_data.get("id")
        if not file_id or file_data.get("mode") == "tombstone":
            continue
        attachments.append(
            Attachment(
                file_id=file_id,
                name=file_data.get("name") or file_data.get("title") or file_id,
                url=file_data.get("url_private_download") or file_data.get("url_private"),
            )
        )
    return attachments


def parse_thread_message(msg_data: Dict[str, Any], channel_id: str) -> ThreadMessage:
    """Raises KeyError / ValueError when the message has no usable ts."""
    return ThreadMessage(
        id=msg_data["ts"],
        channel_id=channel_id,
        author_id=msg_data.get("user") or msg_data.get("bot_id") or "unknown",
        text=msg_data.get("text", ""),
        created_at=parse_ts(msg_data["ts"]),
        attachments=parse_attachments(msg_data),
    )


def parse_pinned_item(item: Dict[str, Any], channel_id: str) -> PinnedMessage | None:
    """Parse one pins.list item; pinned files and other non-messages give None."""
    if item.get("type") != "message" or "message" not in item:
        return None
    msg_data = item["message"]
    return PinnedMessage(
        id=msg_data["ts"],
        channel_id=item.get("channel", channel_id),
        author_id=msg_data.get("user") or msg_data.get("bot_id") or "unknown",
        created_at=parse_ts(msg_data["ts"]),
        reactions=parse_reaction_names(msg_data),
    )


def decode_socket_frame(frame: str) -> ChatEvent:
    """
    Decode one raw Socket Mode frame.

    Only events_api envelopes carrying a plain new message become POSTED
    events. Everything else (hello, disconnect, edits, reactions) is OTHER.

    Raises:
        MalformedEventError: If the frame is not valid JSON, its envelope or
            event has the wrong shape, or a message event lacks its id,
            channel or author
    """
    try:
        envelope = json.loads(frame)
    except (TypeError, ValueError) as e:
        raise MalformedEventError(f"Frame is not valid JSON: {e}", frame) from e

    if not isinstance(envelope, dict):
        raise MalformedEventError("Frame is not a JSON object", frame)

    envelope_type = envelope.get("type", "")
    if not isinstance(envelope_type, str):
        raise MalformedEventError(f"Envelope type is not a string: {envelope_type!r}", frame)
    if envelope_type != "events_api":
        return ChatEvent(type=EventType.OTHER, raw_type=envelope_type)

    payload = envelope.get("payload")
    if not isinstance(payload, dict) or not isinstance(payload.get("event"), dict):
        raise MalformedEventError("events_api envelope without an event", frame)

    try:
        return _decode_event(payload["event"])
    except KeyError as e:
        raise MalformedEventError(f"Message event missing field {e}", frame) from e
    except (AttributeError, TypeError, ValidationError) as e:
        raise MalformedEventError(f"Event has unexpected field types: {e}", frame) from e


def _decode_event(event: Dict[str, Any]) -> ChatEvent:
    event_type = event.get("type", "")
    subtype = event.get("subtype")
    if event_type != "message" or subtype not in POSTED_SUBTYPES:
        raw_type = f"{event_type}:{subtype}" if subtype else event_type
        return ChatEvent(type=EventType.OTHER, raw_type=raw_type)

    ts = event["ts"]
    thread_ts = event.get("thread_ts") or ""
    return ChatEvent(
        type=EventType.POSTED,
        raw_type=event_type,
        payload=PostedEvent(
            id=ts,
            text=event.get("text") or "",
            channel_id=event["channel"],
            author_id=event["user"],
            root_id=thread_ts if thread_ts != ts else "",
        ),
    )
