"""
Unit Tests for Utility Functions

Tests shared helper functions.
"""

import sys
from pathlib import Path

# Add project root to Python path
project_root = Path(__file__).parent.parent.parent
sys.path.insert(0, str(project_root))

import pytest
from datetime import datetime

from pinkeeper.models.thread import Attachment, ThreadMessage
from pinkeeper.utils.helpers import archive_folder_name, format_transcript, sanitize_filename


@pytest.mark.parametrize("raw, expected", [
    ("report.pdf", "report.pdf"),
    ("a/b\\c.txt", "a_b_c.txt"),
    ("../../etc/passwd", "_.._etc_passwd"),
    ('what?"*.log', "what___.log"),
    ("  ", "unnamed"),
    ("", "unnamed"),
])
def test_sanitize_filename(raw, expected):
    assert sanitize_filename(raw) == expected


def test_sanitize_filename_custom_fallback():
    assert sanitize_filename("...", fallback="file") == "file"


def test_archive_folder_name():
    """Naive datetimes are used as-is."""
    name = archive_folder_name(datetime(2024, 3, 1, 9, 5), "Ivan Ivanov")
    assert name == "2024.03.01 09-05 Ivan Ivanov"


def test_archive_folder_name_sanitizes_author():
    assert archive_folder_name(datetime(2024, 3, 1, 9, 5), "a/b") == "2024.03.01 09-05 a_b"


def test_format_transcript():
    messages = [
        ThreadMessage(
            id="1.0", channel_id="C1", author_id="U1", text="Service does not start",
            created_at=datetime(2024, 3, 1, 9, 0, 0),
        ),
        ThreadMessage(
            id="2.0", channel_id="C1", author_id="U2", text="Logs please",
            created_at=datetime(2024, 3, 1, 9, 5, 30),
            attachments=[Attachment(file_id="F1", name="howto.pdf")],
        ),
    ]

    transcript = format_transcript(messages, {"U1": "Ivan Ivanov"})

    assert transcript == (
        "01.03.2024 09:00:00\n"
        "Ivan Ivanov: Service does not start\n"
        "01.03.2024 09:05:30\n"
        "U2: Logs please\n"
        "File attached - howto.pdf\n"
    )


def test_format_transcript_empty():
    assert format_transcript([], {}) == ""
