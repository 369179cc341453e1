"""
Uvicorn server runner with configurable logging.

Usage:
    python run.py

Environment variables (set in .env file):
    DEBUG=true - Enable debug logging
    PORT=8000 - Set server port (default: 8000)
    HOST=127.0.0.1 - Set server host (default: 127.0.0.1)
    SLACK_BOT_TOKEN, SLACK_APP_TOKEN - Slack credentials
    CHANNELS - JSON list of channel policies
"""

import uvicorn
from pinkeeper.config import get_settings

if __name__ == "__main__":
    import os

    # Load settings from .env file
    settings = get_settings()

    # Note: HOST and PORT can be overridden via environment variables
    host = os.getenv("HOST", "127.0.0.1")
    port = int(os.getenv("PORT", "8000"))

    # Set log level based on DEBUG setting from .env
    log_level = "debug" if settings.debug else "info"

    print(f"Starting {settings.app_name}...")
    print(f"Host: {host}")
    print(f"Port: {port}")
    print(f"Log Level: {log_level}")
    print(f"Monitored channels: {', '.join(p.channel_id for p in settings.channels) or 'none'}")
    print(f"Sweep interval: {settings.sweep_interval_minutes} min")
    print(f"Archive root: {settings.archive_root}")

    # No reload: the bot holds a single live event feed
    uvicorn.run(
        "pinkeeper.main:app",
        host=host,
        port=port,
        log_level=log_level,
        access_log=True,
    )
