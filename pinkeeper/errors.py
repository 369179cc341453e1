"""
Exception types shared across the bot.
"""


class PinkeeperError(Exception):
    """Base class for bot errors."""


class GatewayError(PinkeeperError):
    """A single chat platform call failed."""

    def __init__(self, operation: str, message: str):
        self.operation = operation
        super().__init__(f"{operation} failed: {message}")


class MalformedEventError(PinkeeperError):
    """An event feed frame could not be decoded."""

    def __init__(self, message: str, frame: str = ""):
        self.frame = frame
        super().__init__(message)


class FeedClosedError(PinkeeperError):
    """The live event feed connection was lost."""


class ArchiveError(PinkeeperError):
    """A thread could not be turned into an archive."""
