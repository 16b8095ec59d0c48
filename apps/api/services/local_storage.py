"""Persistent local key-value storage used when the remote backend is unavailable."""

from __future__ import annotations

import json
import logging
from typing import Any, List, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker
from sqlalchemy.future import select

from models.local_entry import LocalEntry

logger = logging.getLogger(__name__)

TOPICS_KEY = "moneymuse_local_topics"
REFERENCE_NOTES_KEY = "moneymuse_reference_notes"
REMOTE_URL_KEY = "moneymuse_sb_url"
REMOTE_KEY_KEY = "moneymuse_sb_key"


class LocalStorageError(RuntimeError):
    """Raised when the local storage area cannot be read or written."""


class LocalStorage:
    """String key/value area with JSON helpers, persisted in a local SQLite table."""

    def __init__(self, session_maker: async_sessionmaker[AsyncSession]):
        self._session_maker = session_maker

    async def get_item(self, key: str) -> Optional[str]:
        try:
            async with self._session_maker() as db:
                result = await db.execute(select(LocalEntry.value).where(LocalEntry.key == key))
                return result.scalar_one_or_none()
        except SQLAlchemyError as exc:
            raise LocalStorageError(f"Could not read local key {key}: {exc}") from exc

    async def set_item(self, key: str, value: str) -> None:
        try:
            async with self._session_maker() as db:
                entry = await db.get(LocalEntry, key)
                if entry is None:
                    db.add(LocalEntry(key=key, value=value))
                else:
                    entry.value = value
                await db.commit()
        except SQLAlchemyError as exc:
            raise LocalStorageError(f"Could not write local key {key}: {exc}") from exc

    async def remove_item(self, key: str) -> None:
        try:
            async with self._session_maker() as db:
                entry = await db.get(LocalEntry, key)
                if entry is not None:
                    await db.delete(entry)
                    await db.commit()
        except SQLAlchemyError as exc:
            raise LocalStorageError(f"Could not remove local key {key}: {exc}") from exc

    async def get_list(self, key: str) -> List[Any]:
        """Return the JSON array stored at ``key``; a missing key reads as empty."""
        raw = await self.get_item(key)
        if not raw:
            return []
        try:
            data = json.loads(raw)
        except ValueError as exc:
            raise LocalStorageError(f"Local key {key} holds invalid JSON: {exc}") from exc
        if not isinstance(data, list):
            raise LocalStorageError(f"Local key {key} does not hold a list")
        return data

    async def set_list(self, key: str, items: List[Any]) -> None:
        try:
            raw = json.dumps(items, ensure_ascii=False)
        except (TypeError, ValueError) as exc:
            raise LocalStorageError(f"Could not serialize local key {key}: {exc}") from exc
        await self.set_item(key, raw)
        logger.debug("local_storage_write key=%s items=%s", key, len(items))
