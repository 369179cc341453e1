"""
Shared test fixtures: an in-memory chat platform behind the ChatGateway port.
"""

import sys
from pathlib import Path

# Add project root and tests directory to Python path
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))
sys.path.insert(0, str(Path(__file__).parent))

import pytest

from fakes import FakeGateway, T0
from pinkeeper.config import ChannelPolicy, Settings
from pinkeeper.models.thread import BotIdentity


@pytest.fixture
def identity():
    return BotIdentity(user_id="UBOT", username="pinkeeper")


@pytest.fixture
def gateway(identity):
    return FakeGateway(bot_user_id=identity.user_id, now=T0)


@pytest.fixture
def policy():
    return ChannelPolicy(
        channel_id="C100",
        days_before_warning=7,
        days_before_unpin=3,
        auto_pin=True,
        closing_reaction="white_check_mark",
    )


@pytest.fixture
def settings(policy, tmp_path):
    return Settings(
        _env_file=None,
        slack_bot_token="xoxb-test",
        bot_user_id="UBOT",
        bot_username="pinkeeper",
        channels=[policy],
        archive_root=tmp_path / "archives",
    )
