"""Storage interfaces for subscriptions and user settings.

The feed pipeline only depends on these interfaces; the MongoDB and local
JSON backends are interchangeable and chosen at startup.
"""

import logging
from abc import ABC, abstractmethod
from typing import Any

from subbed.core.schemas import ChannelRef, UserSettings, UserSettingsUpdate

logger = logging.getLogger(__name__)


class SubscriptionStore(ABC):
    """CRUD access to the subscribed-channel list."""

    @abstractmethod
    async def list(self) -> list[ChannelRef]:
        """Return subscriptions, newest first."""

    @abstractmethod
    async def add(self, ref: ChannelRef) -> ChannelRef:
        """Add a subscription, replacing any record with the same channel ID."""

    @abstractmethod
    async def remove(self, channel_id: str) -> bool:
        """Remove one subscription. Returns True if it existed."""

    @abstractmethod
    async def clear(self) -> None:
        """Remove every subscription."""

    async def get(self, channel_id: str) -> ChannelRef | None:
        for ref in await self.list():
            if ref.channel_id == channel_id:
                return ref
        return None


class SettingsStore(ABC):
    """Read and validated write access to user settings."""

    @abstractmethod
    async def read(self) -> UserSettings:
        """Return the stored settings merged over defaults."""

    @abstractmethod
    async def _persist(self, settings: UserSettings) -> None:
        """Persist a complete, validated settings object."""

    async def write(self, partial: dict[str, Any]) -> UserSettings:
        """
        Validate a partial update, merge it over current settings and persist.

        Unknown keys are ignored. If any recognized field is invalid nothing
        is persisted.

        Args:
            partial: Partial settings using external or attribute names

        Returns:
            The merged settings that were persisted

        Raises:
            SettingsValidationError: If any recognized field is invalid
        """
        update = UserSettingsUpdate.parse_partial(partial)
        current = await self.read()
        merged = update.apply_to(current)
        await self._persist(merged)
        logger.info("Settings updated: %s", sorted(update.model_fields_set))
        return merged
