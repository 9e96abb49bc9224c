"""
File stores — JSON file-backed ledger and conversation store.

Data layout:
  {data_dir}/
    ledger.json          {contact: {status, timestamp, accountId, category, success}}
    conversations.json   {contact: {turns[], attributes, firstContact, lastInteraction,
                                    topics, languagePreference, state}}
    blocked.json         {contact: {blockedAt, reason}}

Features:
  - Survives process restarts; pending ledger entries are the resumable work set
  - Writes go to a tmp file and are renamed into place
  - Flush on every mutation, or debounced with flush_interval_s > 0
  - A failed write is logged and retried on the next flush; memory stays authoritative
  - Single-process only
"""
from __future__ import annotations

import asyncio
import json
import structlog
from pathlib import Path
from typing import Any, Callable, Optional

from database.store_memory import InMemoryConversationStore, InMemoryLedger

logger = structlog.get_logger()


class _JsonFlusher:
    """Writes named JSON documents for a store, immediately or debounced."""

    def __init__(self, data_dir: str, flush_interval_s: float,
                 sources: dict[str, Callable[[], Any]]):
        self._data_dir = Path(data_dir)
        self._data_dir.mkdir(parents=True, exist_ok=True)
        self._flush_interval = flush_interval_s
        self._sources = sources
        self._dirty: set[str] = set()
        self._flush_task: Optional[asyncio.Task] = None

    def file_path(self, collection: str) -> Path:
        return self._data_dir / f"{collection}.json"

    def read(self, collection: str) -> dict[str, Any]:
        path = self.file_path(collection)
        if not path.exists():
            return {}
        try:
            with open(path, "r", encoding="utf-8") as f:
                data = json.load(f)
        except (json.JSONDecodeError, OSError) as e:
            logger.warning("file_store_load_error", collection=collection, error=str(e))
            return {}
        if not isinstance(data, dict):
            logger.warning("file_store_load_error", collection=collection,
                           error="document is not an object")
            return {}
        logger.debug("file_store_loaded", collection=collection, records=len(data))
        return data

    def flush_collection(self, collection: str) -> bool:
        """Write a single collection to disk. False (and still dirty) on failure."""
        path = self.file_path(collection)
        tmp_path = path.with_suffix(".tmp")
        try:
            data = self._sources[collection]()
            with open(tmp_path, "w", encoding="utf-8") as f:
                json.dump(data, f, indent=2, ensure_ascii=False, default=str)
            tmp_path.replace(path)
        except (OSError, TypeError, ValueError) as e:
            self._dirty.add(collection)
            logger.error("file_store_flush_failed", collection=collection, error=str(e))
            return False
        self._dirty.discard(collection)
        return True

    def mark_dirty(self, *collections: str) -> None:
        if self._flush_interval <= 0:
            # retry anything a previous flush left behind
            for c in set(collections) | self._dirty:
                self.flush_collection(c)
            return
        self._dirty.update(collections)
        if self._flush_task is None or self._flush_task.done():
            self._flush_task = asyncio.get_running_loop().create_task(
                self._deferred_flush()
            )

    async def _deferred_flush(self) -> None:
        await asyncio.sleep(self._flush_interval)
        for c in list(self._dirty):
            self.flush_collection(c)

    async def close(self) -> None:
        if self._flush_task is not None and not self._flush_task.done():
            self._flush_task.cancel()
            try:
                await self._flush_task
            except asyncio.CancelledError:
                pass
        self.flush_all()

    def flush_all(self) -> None:
        for c in self._sources:
            self.flush_collection(c)
        logger.info("file_store_flushed_all", data_dir=str(self._data_dir))


class FileLedger(InMemoryLedger):
    """
    InMemoryLedger persisted to ledger.json.

    On init: loads the document, so list_pending() gives the work left
    over from a previous run. On every claim/commit: flushes (or schedules
    a debounced flush).
    """

    def __init__(self, data_dir: str = "./data", flush_interval_s: float = 0):
        super().__init__()
        self._files = _JsonFlusher(data_dir, flush_interval_s, {"ledger": self.to_document})
        loaded = self.load_document(self._files.read("ledger"))
        logger.info("file_ledger_initialized", data_dir=data_dir, entries=loaded,
                    pending=len(self.list_pending()))

    def _on_change(self) -> None:
        self._files.mark_dirty("ledger")

    def flush_all(self) -> None:
        self._files.flush_all()

    async def close(self) -> None:
        await self._files.close()


class FileConversationStore(InMemoryConversationStore):
    """InMemoryConversationStore persisted to conversations.json and blocked.json."""

    def __init__(self, data_dir: str = "./data", flush_interval_s: float = 0,
                 history_limit: int = 20):
        super().__init__(history_limit=history_limit)
        self._files = _JsonFlusher(data_dir, flush_interval_s, {
            "conversations": self.conversations_document,
            "blocked": self.blocked_document,
        })
        self.load_conversations(self._files.read("conversations"))
        self.load_blocked(self._files.read("blocked"))
        logger.info("file_conversation_store_initialized", data_dir=data_dir,
                    conversations=len(self._records), blocked=len(self._blocked))

    def _on_change(self, collection: str) -> None:
        self._files.mark_dirty(collection)

    def flush_all(self) -> None:
        self._files.flush_all()

    async def close(self) -> None:
        await self._files.close()
