"""Local JSON file backend.

Two flat files: an array of subscription records and an object of user
settings. Both are read and written wholesale. File I/O runs in a worker
thread so the event loop is never blocked.
"""

import asyncio
import json
import logging
from pathlib import Path
from typing import Any

from pydantic import ValidationError

from subbed.core.exceptions import StorageError
from subbed.core.schemas import ChannelRef, UserSettings
from subbed.storage.base import SettingsStore, SubscriptionStore

logger = logging.getLogger(__name__)


def _read_text(path: Path) -> str | None:
    """File contents, or None when the file does not exist."""
    if not path.exists():
        return None
    return path.read_text(encoding="utf-8")


def _write_json(path: Path, data: Any) -> None:
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(json.dumps(data, indent=2), encoding="utf-8")
    except OSError as e:
        raise StorageError(f"Failed to write {path}: {e}") from e


class LocalSubscriptionStore(SubscriptionStore):
    """Subscriptions kept in one JSON array."""

    def __init__(self, path: Path | str) -> None:
        self.path = Path(path)
        # Serializes read-modify-write cycles within this process
        self._lock = asyncio.Lock()

    async def _read_records(self) -> list[dict[str, Any]]:
        try:
            text = await asyncio.to_thread(_read_text, self.path)
            data = json.loads(text or "[]")
        except (OSError, json.JSONDecodeError) as e:
            raise StorageError(f"Failed to read {self.path}: {e}") from e
        if not isinstance(data, list):
            raise StorageError(f"{self.path} does not contain a JSON array")
        return [record for record in data if isinstance(record, dict)]

    async def _write_records(self, records: list[dict[str, Any]]) -> None:
        await asyncio.to_thread(_write_json, self.path, records)

    async def list(self) -> list[ChannelRef]:
        refs: list[ChannelRef] = []
        for record in await self._read_records():
            try:
                refs.append(ChannelRef.model_validate(record))
            except ValidationError as e:
                logger.warning("Skipping invalid subscription record %r: %s", record.get("id"), e)
        refs.sort(key=lambda ref: ref.created_at, reverse=True)
        return refs

    async def add(self, ref: ChannelRef) -> ChannelRef:
        async with self._lock:
            records = [r for r in await self._read_records() if r.get("id") != ref.channel_id]
            records.append(ref.to_record())
            await self._write_records(records)
        logger.info("Subscription added: %s", ref.channel_id)
        return ref

    async def remove(self, channel_id: str) -> bool:
        async with self._lock:
            records = await self._read_records()
            remaining = [r for r in records if r.get("id") != channel_id]
            await self._write_records(remaining)
        removed = len(remaining) != len(records)
        if removed:
            logger.info("Subscription removed: %s", channel_id)
        return removed

    async def clear(self) -> None:
        async with self._lock:
            await self._write_records([])
        logger.info("All subscriptions cleared")


class LocalSettingsStore(SettingsStore):
    """User settings kept in one JSON object."""

    def __init__(self, path: Path | str) -> None:
        self.path = Path(path)

    async def read(self) -> UserSettings:
        defaults = UserSettings()
        try:
            text = await asyncio.to_thread(_read_text, self.path)
            if text is None:
                await asyncio.to_thread(_write_json, self.path, defaults.to_record())
                return defaults
            stored = json.loads(text or "{}")
        except (OSError, json.JSONDecodeError) as e:
            logger.warning("Unreadable settings file %s, using defaults: %s", self.path, e)
            return defaults
        if not isinstance(stored, dict):
            return defaults

        try:
            return UserSettings.model_validate({**defaults.to_record(), **stored})
        except ValidationError as e:
            logger.warning("Invalid stored settings in %s, using defaults: %s", self.path, e)
            return defaults

    async def _persist(self, settings: UserSettings) -> None:
        await asyncio.to_thread(_write_json, self.path, settings.to_record())
