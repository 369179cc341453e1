from pathlib import Path
from typing import List, Optional
from functools import lru_cache
import logging

from pydantic import BaseModel, ConfigDict, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

logger = logging.getLogger(__name__)

DAYS_BEFORE_WARNING_DEFAULT = 7
DAYS_BEFORE_UNPIN_DEFAULT = 3
SWEEP_INTERVAL_MINUTES_DEFAULT = 60
WARNING_TEXT_DEFAULT = (
    "There have been no new messages for more than {days} days. "
    "Shall we close this consultation?"
)


def _int_or_default(name: str, value, default: int) -> int:
    """Convert a config value to a non-negative int, falling back to the default."""
    if value is None or value == "":
        return default
    try:
        result = int(value)
        if result < 0:
            raise ValueError("must not be negative")
        return result
    except (TypeError, ValueError) as e:
        logger.warning(
            f"Invalid value for {name}: {value!r} ({e}). Using default {default}."
        )
        return default


class ChannelPolicy(BaseModel):
    """Monitoring policy for one channel."""

    model_config = ConfigDict(frozen=True)

    channel_id: str
    days_before_warning: int = DAYS_BEFORE_WARNING_DEFAULT
    days_before_unpin: int = DAYS_BEFORE_UNPIN_DEFAULT
    auto_pin: bool = False
    welcome_thread_text: Optional[str] = None  # Posted into the thread on pin
    welcome_message: Optional[str] = None  # Ephemeral, to the poster
    closing_reaction: Optional[str] = None

    @field_validator("days_before_warning", mode="before")
    @classmethod
    def _warning_days(cls, value):
        return _int_or_default("days_before_warning", value, DAYS_BEFORE_WARNING_DEFAULT)

    @field_validator("days_before_unpin", mode="before")
    @classmethod
    def _unpin_days(cls, value):
        return _int_or_default("days_before_unpin", value, DAYS_BEFORE_UNPIN_DEFAULT)

    @field_validator("closing_reaction", mode="before")
    @classmethod
    def _strip_colons(cls, value):
        # Accept ":white_check_mark:" as well as "white_check_mark"
        if isinstance(value, str):
            value = value.strip().strip(":")
            return value or None
        return value


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # App
    app_name: str = "Pinkeeper"
    debug: bool = False

    # Slack
    slack_bot_token: str = ""
    slack_app_token: str = ""  # xapp- token for Socket Mode
    socket_auto_reconnect: bool = False
    thread_page_size: int = 200

    # Bot identity (looked up through auth.test when empty)
    bot_user_id: str = ""
    bot_username: str = ""

    # Monitoring
    channels: List[ChannelPolicy] = []
    sweep_interval_minutes: int = SWEEP_INTERVAL_MINUTES_DEFAULT

    # Archival
    archive_root: Path = Path("archives")

    # Texts
    warning_text: str = WARNING_TEXT_DEFAULT  # {days} is the warning threshold
    closing_text: str = "Consultation closed."
    unpin_marker_emoji: str = "no_entry_sign"

    model_config = SettingsConfigDict(
        env_file=".env", env_file_encoding="utf-8", extra="ignore", frozen=True
    )

    @field_validator("sweep_interval_minutes", mode="before")
    @classmethod
    def _sweep_interval(cls, value):
        result = _int_or_default("sweep_interval_minutes", value, SWEEP_INTERVAL_MINUTES_DEFAULT)
        return result or SWEEP_INTERVAL_MINUTES_DEFAULT

    @field_validator("warning_text")
    @classmethod
    def _warning_placeholders(cls, value: str) -> str:
        try:
            value.format(days=DAYS_BEFORE_WARNING_DEFAULT)
        except (AttributeError, IndexError, KeyError, TypeError, ValueError) as e:
            logger.warning(
                f"Invalid warning_text {value!r}: only {{days}} may be used ({e!r}). Using default."
            )
            return WARNING_TEXT_DEFAULT
        return value

    def policy_for(self, channel_id: str) -> Optional[ChannelPolicy]:
        """Return the policy of a monitored channel, or None."""
        for policy in self.channels:
            if policy.channel_id == channel_id:
                return policy
        return None


@lru_cache
def get_settings() -> Settings:
    return Settings()
