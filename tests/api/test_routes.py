"""
Tests for the admin HTTP endpoints.

The lifespan is not entered: each test installs a stand-in runtime on
app.state so no Slack connection is opened.
"""

from pathlib import Path
from unittest.mock import AsyncMock, MagicMock

import pytest
from fastapi.testclient import TestClient

from pinkeeper.main import app
from pinkeeper.models.archive import ArchiveResult
from pinkeeper.models.pins import PinAction, PinDecision


@pytest.fixture
def runtime():
    runtime = MagicMock()
    runtime.scheduler.run_cycle = AsyncMock(return_value={})
    runtime.archiver.archive = AsyncMock(
        return_value=ArchiveResult(success=True, root_id="1706123400.123456", path=Path("archives/x"))
    )
    runtime.status.return_value = {"healthy": True, "channels": ["C100"]}
    app.state.runtime = runtime
    yield runtime
    del app.state.runtime


@pytest.fixture
def client():
    return TestClient(app)


def test_root(client):
    response = client.get("/")

    assert response.status_code == 200
    assert response.json()["endpoints"]["sweep"] == "/api/pins/sweep"


def test_health_before_start(client):
    assert client.get("/health").json()["status"] == "starting"


def test_health_reports_runtime(client, runtime):
    body = client.get("/health").json()
    assert body["status"] == "healthy"
    assert body["channels"] == ["C100"]

    runtime.status.return_value = {"healthy": False}
    assert client.get("/health").json()["status"] == "unhealthy"


def test_sweep_counts_applied_actions(client, runtime):
    runtime.scheduler.run_cycle.return_value = {
        "C100": [
            PinDecision(channel_id="C100", message_id="1.0", action=PinAction.NEED_WARNING, applied=True),
            PinDecision(channel_id="C100", message_id="2.0", action=PinAction.DO_NOTHING, applied=True),
            PinDecision(
                channel_id="C100", message_id="3.0", action=PinAction.NEED_UNPIN_SILENTLY,
                error="pins.remove failed: not_in_channel",
            ),
        ]
    }

    response = client.post("/api/pins/sweep")

    assert response.status_code == 200
    body = response.json()
    assert body["actions_taken"] == 1
    assert [d["action"] for d in body["channels"]["C100"]] == [
        "need_warning", "do_nothing", "need_unpin_silently",
    ]


def test_sweep_failure(client, runtime):
    runtime.scheduler.run_cycle.side_effect = RuntimeError("boom")

    response = client.post("/api/pins/sweep")

    assert response.status_code == 500
    assert "boom" in response.json()["detail"]["message"]


def test_sweep_without_runtime(client):
    assert client.post("/api/pins/sweep").status_code == 503


def test_archive_by_ids(client, runtime):
    response = client.post(
        "/api/archive",
        json={"channel_id": "C100", "root_id": "1706123400.123456", "requested_by": "U111"},
    )

    assert response.status_code == 200
    assert response.json()["success"] is True
    runtime.archiver.archive.assert_awaited_once_with("C100", "1706123400.123456", requested_by="U111")


def test_archive_by_permalink(client, runtime):
    response = client.post(
        "/api/archive",
        json={"permalink": "https://myworkspace.slack.com/archives/C123ABC456/p1706123400123456"},
    )

    assert response.status_code == 200
    runtime.archiver.archive.assert_awaited_once_with("C123ABC456", "1706123400.123456", requested_by=None)


def test_archive_bad_permalink(client, runtime):
    response = client.post("/api/archive", json={"permalink": "https://example.com/thread"})

    assert response.status_code == 400
    runtime.archiver.archive.assert_not_awaited()


def test_archive_requires_target(client, runtime):
    assert client.post("/api/archive", json={"channel_id": "C100"}).status_code == 422


def test_archive_failure(client, runtime):
    runtime.archiver.archive.return_value = ArchiveResult(
        success=False, root_id="1.0", error="conversations.replies failed: thread_not_found"
    )

    response = client.post("/api/archive", json={"channel_id": "C100", "root_id": "1.0"})

    assert response.status_code == 502
    assert response.json()["detail"]["error"].endswith("thread_not_found")
