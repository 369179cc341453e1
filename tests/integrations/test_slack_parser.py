"""
Tests for Slack payload parsing.
"""

import json

import pytest
from datetime import datetime, timezone

from pinkeeper.errors import MalformedEventError
from pinkeeper.integrations.slack.parser import (
    ParsedPermalink,
    decode_socket_frame,
    parse_attachments,
    parse_permalink,
    parse_pinned_item,
    parse_thread_message,
    parse_ts,
)
from pinkeeper.models.thread import EventType


class TestParsePermalink:
    """Test suite for Slack permalink parsing."""

    def test_valid_permalink(self):
        """Test parsing a valid Slack permalink."""
        permalink = "https://myworkspace.slack.com/archives/C123ABC456/p1234567890123456"
        result = parse_permalink(permalink)

        assert isinstance(result, ParsedPermalink)
        assert result.workspace == "myworkspace"
        assert result.channel_id == "C123ABC456"
        assert result.thread_ts == "1234567890.123456"

    def test_reply_permalink_points_at_root(self):
        permalink = (
            "https://myworkspace.slack.com/archives/C123ABC456/p1234567899000200"
            "?thread_ts=1234567890.123456&cid=C123ABC456"
        )
        assert parse_permalink(permalink).thread_ts == "1234567890.123456"

    def test_invalid_permalink_format(self):
        """Test that invalid formats raise ValueError."""
        invalid_urls = [
            "https://slack.com/archives/C123/p123",
            "https://myworkspace.slack.com/messages/C123",
            "not-a-url",
        ]
        for url in invalid_urls:
            with pytest.raises(ValueError):
                parse_permalink(url)


def _frame(event, envelope_type="events_api"):
    return json.dumps({"envelope_id": "e1", "type": envelope_type, "payload": {"event": event}})


class TestDecodeSocketFrame:
    def test_top_level_message(self):
        event = decode_socket_frame(_frame(
            {"type": "message", "channel": "C1", "user": "U1", "text": "hi", "ts": "100.000001"}
        ))

        assert event.type == EventType.POSTED
        assert event.payload.id == "100.000001"
        assert event.payload.root_id == ""
        assert event.payload.is_top_level

    def test_thread_reply(self):
        event = decode_socket_frame(_frame({
            "type": "message", "channel": "C1", "user": "U1", "text": "<@UBOT> download",
            "ts": "100.000009", "thread_ts": "100.000001",
        }))

        assert event.payload.root_id == "100.000001"
        assert not event.payload.is_top_level

    def test_file_share_counts_as_post(self):
        event = decode_socket_frame(_frame({
            "type": "message", "subtype": "file_share", "channel": "C1", "user": "U1", "ts": "100.1",
        }))
        assert event.type == EventType.POSTED

    @pytest.mark.parametrize("event", [
        {"type": "message", "subtype": "message_changed", "channel": "C1", "ts": "100.1"},
        {"type": "reaction_added", "user": "U1", "reaction": "eyes"},
    ])
    def test_other_events(self, event):
        assert decode_socket_frame(_frame(event)).type == EventType.OTHER

    def test_non_events_envelope(self):
        decoded = decode_socket_frame(json.dumps({"type": "hello"}))
        assert decoded.type == EventType.OTHER
        assert decoded.raw_type == "hello"

    @pytest.mark.parametrize("frame", [
        "{broken",
        "[1, 2]",
        json.dumps({"type": "events_api", "payload": {}}),
        _frame({"type": "message", "ts": "100.1", "channel": "C1"}),
        json.dumps({"type": 5}),
        json.dumps({"type": "events_api", "payload": [1]}),
        json.dumps({"type": "events_api", "payload": {"event": "message"}}),
        _frame({"type": "message", "ts": 123, "channel": "C1", "user": "U1"}),
        _frame({"type": "message", "ts": "100.1", "channel": "C1", "user": None}),
        _frame({"type": ["message"], "ts": "100.1"}),
    ])
    def test_malformed(self, frame):
        with pytest.raises(MalformedEventError):
            decode_socket_frame(frame)


def test_parse_ts_is_utc():
    assert parse_ts("1706123400.123456") == datetime(2024, 1, 24, 19, 10, 0, 123456, tzinfo=timezone.utc)


def test_parse_pinned_item_collects_reactions():
    item = {
        "type": "message",
        "channel": "C1",
        "message": {
            "ts": "1706123400.123456",
            "user": "U1",
            "reactions": [
                {"name": "white_check_mark", "count": 1},
                {"name": "thumbsup::skin-tone-2", "count": 1},
            ],
        },
    }

    pinned = parse_pinned_item(item, "C1")

    assert pinned.id == "1706123400.123456"
    assert pinned.reactions == frozenset({"white_check_mark", "thumbsup"})


def test_parse_pinned_item_skips_files():
    assert parse_pinned_item({"type": "file", "file": {"id": "F1"}}, "C1") is None


def test_parse_thread_message_with_files():
    msg = parse_thread_message({
        "ts": "1706123450.789012",
        "user": "U2",
        "text": "logs",
        "files": [
            {"id": "F1", "name": "a.log", "url_private_download": "https://files/a"},
            {"id": "F2", "mode": "tombstone"},
        ],
    }, "C1")

    assert msg.author_id == "U2"
    assert [(a.file_id, a.name, a.url) for a in msg.attachments] == [("F1", "a.log", "https://files/a")]


def test_parse_attachments_without_files():
    assert parse_attachments({"ts": "1.0"}) == []
