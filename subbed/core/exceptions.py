"""Custom exceptions for the feed aggregation pipeline."""

from typing import Any


class SubbedError(Exception):
    """Base exception for application errors."""

    pass


class ResolutionError(SubbedError):
    """No resolution strategy produced a canonical channel ID."""

    pass


class FetchError(SubbedError):
    """Failed to fetch or parse a channel feed."""

    def __init__(
        self,
        message: str,
        channel_id: str | None = None,
        status_code: int | None = None,
    ) -> None:
        super().__init__(message)
        self.channel_id = channel_id
        self.status_code = status_code


class FeedParseError(FetchError):
    """Feed document could not be parsed."""

    pass


class FeedUnavailableError(FetchError):
    """Every subscribed channel failed to fetch."""

    pass


class SettingsValidationError(SubbedError):
    """Settings update contained invalid fields; nothing was persisted."""

    def __init__(self, errors: list[dict[str, Any]]) -> None:
        fields = ", ".join(str(e.get("field")) for e in errors)
        super().__init__(f"Invalid settings: {fields}")
        self.errors = errors


class StorageError(SubbedError):
    """Persistence backend operation failed."""

    pass
