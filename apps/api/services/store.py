"""
Dual-backend store for topics and reference notes.

Every operation tries the remote row store first when one is configured and
falls back to local key-value storage otherwise. Local storage is rewritten
from the authoritative read path (``list``) before each mutation, so stale
in-memory copies never leak into it.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum
import logging
from typing import Any, Dict, Generic, List, Optional, Type, TypeVar

from pydantic import BaseModel, ValidationError

from models.reference_note import ReferenceNote
from models.topic import StatusType, Topic, TopicChanges
from services.local_storage import (
    REFERENCE_NOTES_KEY,
    TOPICS_KEY,
    LocalStorage,
    LocalStorageError,
)
from services.remote import (
    REFERENCE_NOTES_TABLE,
    TOPICS_TABLE,
    RemoteBackendError,
    RemoteHandle,
)

logger = logging.getLogger(__name__)

LOCAL_STORAGE_FAILED = "local storage failed"
INVALID_TOPIC_CHANGES = "invalid topic changes"

EntityT = TypeVar("EntityT", bound=BaseModel)


def utc_now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


class MutationStatus(str, Enum):
    OK = "ok"
    DEGRADED = "degraded"
    FAILED = "failed"


@dataclass(frozen=True)
class MutationResult:
    """Outcome of a write: ``degraded`` means the remote failed and local storage took the write."""
    status: MutationStatus
    error: Optional[str] = None

    @property
    def success(self) -> bool:
        return self.status != MutationStatus.FAILED

    def to_dict(self) -> Dict[str, Any]:
        return {"status": self.status.value, "success": self.success, "error": self.error}


@dataclass(frozen=True)
class BulkInsertResult(MutationResult):
    added: int = 0

    def to_dict(self) -> Dict[str, Any]:
        payload = super().to_dict()
        payload["added"] = self.added
        return payload


@dataclass(frozen=True)
class ListResult(Generic[EntityT]):
    items: List[EntityT]
    degraded: bool = False


class _Collection(Generic[EntityT]):
    """Shared list/delete behaviour of one entity collection over both backends."""

    table: str
    local_key: str
    order_by: str
    model: Type[EntityT]

    def __init__(self, local: LocalStorage, remote: RemoteHandle):
        self._local = local
        self._remote = remote

    def _parse_rows(self, rows: List[Any]) -> List[EntityT]:
        items: List[EntityT] = []
        for row in rows:
            try:
                items.append(self.model.model_validate(row))
            except ValidationError as exc:
                logger.warning("store_row_skipped table=%s error=%s", self.table, exc.errors()[:1])
        return items

    @staticmethod
    def _dump(items: List[EntityT]) -> List[Dict[str, Any]]:
        return [item.model_dump(mode="json") for item in items]

    async def _read_local(self) -> List[EntityT]:
        return self._parse_rows(await self._local.get_list(self.local_key))

    async def _write_local(self, items: List[EntityT]) -> None:
        await self._local.set_list(self.local_key, self._dump(items))

    async def list_with_source(self) -> ListResult[EntityT]:
        backend = self._remote.backend
        if backend is not None:
            try:
                rows = await backend.select(self.table, order=self.order_by, descending=True)
                return ListResult(items=self._parse_rows(rows))
            except RemoteBackendError as exc:
                logger.warning("remote_list_failed table=%s error=%s; using local storage", self.table, exc)
                return ListResult(items=await self._read_local(), degraded=True)
        return ListResult(items=await self._read_local())

    async def list(self) -> List[EntityT]:
        return (await self.list_with_source()).items

    async def delete(self, item_id: str) -> MutationResult:
        remote_failed = False
        backend = self._remote.backend
        if backend is not None:
            try:
                await backend.delete(self.table, item_id)
            except RemoteBackendError as exc:
                remote_failed = True
                logger.warning("remote_delete_failed table=%s id=%s error=%s", self.table, item_id, exc)

        # Local reconciliation runs even after a successful remote delete.
        try:
            current = await self.list()
            await self._write_local([item for item in current if item.id != item_id])
        except LocalStorageError as exc:
            logger.error("local_delete_failed key=%s id=%s error=%s", self.local_key, item_id, exc)
            return MutationResult(MutationStatus.FAILED, LOCAL_STORAGE_FAILED)
        return self._local_result(remote_failed)

    def _local_result(self, remote_failed: bool) -> MutationResult:
        if remote_failed:
            return MutationResult(MutationStatus.DEGRADED, "remote backend unavailable, saved locally")
        return MutationResult(MutationStatus.OK)


class TopicStore(_Collection[Topic]):
    table = TOPICS_TABLE
    local_key = TOPICS_KEY
    order_by = "created_at"
    model = Topic

    async def insert(self, topic: Topic) -> MutationResult:
        remote_failed = False
        backend = self._remote.backend
        if backend is not None:
            try:
                await backend.insert(self.table, [topic.model_dump(mode="json")])
                logger.info("topic_inserted backend=remote id=%s", topic.id)
                return MutationResult(MutationStatus.OK)
            except RemoteBackendError as exc:
                remote_failed = True
                logger.warning("remote_insert_failed table=%s id=%s error=%s", self.table, topic.id, exc)

        try:
            current = await self._read_local()
            await self._write_local([topic] + [item for item in current if item.id != topic.id])
        except LocalStorageError as exc:
            logger.error("local_insert_failed id=%s error=%s", topic.id, exc)
            return MutationResult(MutationStatus.FAILED, LOCAL_STORAGE_FAILED)
        logger.info("topic_inserted backend=local id=%s", topic.id)
        return self._local_result(remote_failed)

    async def update_status(self, topic_id: str, status: StatusType) -> MutationResult:
        return await self._update(topic_id, {"status": StatusType(status).value})

    async def update_details(self, topic_id: str, changes: Dict[str, Any]) -> MutationResult:
        # Unknown keys (id, created_at, updated_at) are dropped by the model.
        try:
            patch = TopicChanges.model_validate(changes).to_patch()
        except ValidationError as exc:
            logger.warning("topic_update_rejected id=%s errors=%s", topic_id, exc.error_count())
            return MutationResult(MutationStatus.FAILED, INVALID_TOPIC_CHANGES)
        return await self._update(topic_id, patch)

    async def _update(self, topic_id: str, patch: Dict[str, Any]) -> MutationResult:
        values = {**_jsonable(patch), "updated_at": utc_now_iso()}
        remote_failed = False
        backend = self._remote.backend
        if backend is not None:
            try:
                await backend.update(self.table, topic_id, values)
                return MutationResult(MutationStatus.OK)
            except RemoteBackendError as exc:
                remote_failed = True
                logger.warning("remote_update_failed table=%s id=%s error=%s", self.table, topic_id, exc)

        try:
            current = await self.list()
            updated: List[Topic] = []
            matched = False
            for topic in current:
                if topic.id == topic_id:
                    topic = Topic.model_validate({**topic.model_dump(mode="json"), **values})
                    matched = True
                updated.append(topic)
            if matched:
                await self._write_local(updated)
            else:
                logger.info("topic_update_noop id=%s", topic_id)
        except LocalStorageError as exc:
            logger.error("local_update_failed id=%s error=%s", topic_id, exc)
            return MutationResult(MutationStatus.FAILED, LOCAL_STORAGE_FAILED)
        return self._local_result(remote_failed)


class ReferenceNoteStore(_Collection[ReferenceNote]):
    table = REFERENCE_NOTES_TABLE
    local_key = REFERENCE_NOTES_KEY
    order_by = "likes"
    model = ReferenceNote

    async def bulk_insert(self, notes: List[ReferenceNote]) -> BulkInsertResult:
        if not notes:
            return BulkInsertResult(MutationStatus.OK, added=0)

        remote_failed = False
        backend = self._remote.backend
        if backend is not None:
            try:
                existing_rows = await backend.select(self.table, columns="note_id")
                fresh = new_by_note_id(existing_rows, notes)
                if fresh:
                    await backend.insert(self.table, self._dump(fresh))
                logger.info("reference_notes_inserted backend=remote added=%s batch=%s", len(fresh), len(notes))
                return BulkInsertResult(MutationStatus.OK, added=len(fresh))
            except RemoteBackendError as exc:
                remote_failed = True
                logger.warning("remote_bulk_insert_failed table=%s error=%s", self.table, exc)

        try:
            current = await self._read_local()
            fresh = new_by_note_id(self._dump(current), notes)
            await self._write_local(fresh + current)
        except LocalStorageError as exc:
            logger.error("local_bulk_insert_failed error=%s", exc)
            return BulkInsertResult(MutationStatus.FAILED, LOCAL_STORAGE_FAILED, added=0)
        logger.info("reference_notes_inserted backend=local added=%s batch=%s", len(fresh), len(notes))
        local = self._local_result(remote_failed)
        return BulkInsertResult(local.status, local.error, added=len(fresh))

    async def clear_all(self) -> MutationResult:
        remote_failed = False
        backend = self._remote.backend
        if backend is not None:
            try:
                await backend.delete_all(self.table)
            except RemoteBackendError as exc:
                remote_failed = True
                logger.warning("remote_clear_failed table=%s error=%s", self.table, exc)
        try:
            await self._local.remove_item(self.local_key)
        except LocalStorageError as exc:
            logger.error("local_clear_failed key=%s error=%s", self.local_key, exc)
            return MutationResult(MutationStatus.FAILED, LOCAL_STORAGE_FAILED)
        logger.info("reference_notes_cleared remote_failed=%s", remote_failed)
        return self._local_result(remote_failed)


def new_by_note_id(existing_rows: List[Dict[str, Any]], notes: List[ReferenceNote]) -> List[ReferenceNote]:
    """Drop notes whose business ``note_id`` is already stored or repeated in the batch."""
    seen = {str(row.get("note_id") or "").strip() for row in existing_rows}
    seen.discard("")
    fresh: List[ReferenceNote] = []
    for note in notes:
        key = note.note_id.strip()
        if key:
            if key in seen:
                continue
            seen.add(key)
        fresh.append(note)
    return fresh


def _jsonable(values: Dict[str, Any]) -> Dict[str, Any]:
    payload: Dict[str, Any] = {}
    for key, value in values.items():
        if isinstance(value, Enum):
            value = value.value
        elif hasattr(value, "isoformat"):
            value = value.isoformat()
        payload[key] = value
    return payload


class ContentStore:
    """Both collections over one shared remote handle and one local storage area."""

    def __init__(self, local: LocalStorage, remote: Optional[RemoteHandle] = None):
        self.local = local
        self.remote = remote or RemoteHandle()
        self.topics = TopicStore(local, self.remote)
        self.reference_notes = ReferenceNoteStore(local, self.remote)

    @property
    def cloud_enabled(self) -> bool:
        return self.remote.enabled

    async def aclose(self) -> None:
        await self.remote.aclose()
