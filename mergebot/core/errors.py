"""Exception types raised inside the bot.

Per-link fetch failures are never exceptions; they travel as FetchOutcome values.
"""


class MergeBotError(Exception):
    """Base class for bot errors."""


class MergeError(MergeBotError):
    """A fetched buffer could not be loaded or its pages copied."""


class DeliveryError(MergeBotError):
    """The merged artifact could not be handed to the chat transport."""


class TelegramAPIError(MergeBotError):
    """Bot API call failed at the transport level or returned ok=false."""

    def __init__(self, method: str, description: str, error_code: int | None = None):
        super().__init__(f"{method} failed: {description}")
        self.method = method
        self.description = description
        self.error_code = error_code
