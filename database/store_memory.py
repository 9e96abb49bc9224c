"""
In-memory stores — Dict-backed ledger and conversation store.

Features:
  - Zero dependencies (no database, no files)
  - claim/commit serialized by one asyncio.Lock, so the check-and-mark
    step has no suspension point between the check and the write
  - Per-contact locks for conversation read-modify-write
  - All data lost on process restart

Best for: local development, unit tests, dry runs.
"""
from __future__ import annotations

import asyncio
import structlog
from typing import Any, Optional

from database.store_base import BaseConversationStore, BaseLedger
from models.schemas import (
    BlockEntry, BlockReason, ConversationRecord, LedgerEntry, LedgerStatus,
    utcnow_iso,
)

logger = structlog.get_logger()


class InMemoryLedger(BaseLedger):
    """Ledger keyed by canonical phone number."""

    def __init__(self):
        self._entries: dict[str, LedgerEntry] = {}
        self._lock = asyncio.Lock()
        logger.info("inmemory_ledger_initialized")

    # ── Mutations ─────────────────────────────────────────

    async def claim(self, contact_id: str, category: str = "") -> bool:
        async with self._lock:
            if contact_id in self._entries:
                logger.debug("ledger_claim_conflict", contact_id=contact_id,
                             status=self._entries[contact_id].status.value)
                return False
            self._entries[contact_id] = LedgerEntry(
                status=LedgerStatus.PENDING, category=category,
            )
            self._on_change()
        logger.debug("ledger_claimed", contact_id=contact_id, category=category)
        return True

    async def commit(self, contact_id: str, account_id: str, category: str, success: bool) -> bool:
        async with self._lock:
            existing = self._entries.get(contact_id)
            if existing is not None and existing.is_processed:
                return False
            self._entries[contact_id] = LedgerEntry(
                status=LedgerStatus.PROCESSED,
                timestamp=utcnow_iso(),
                account_id=account_id,
                category=category or (existing.category if existing else ""),
                success=success,
            )
            self._on_change()
        logger.info("ledger_committed", contact_id=contact_id,
                    account_id=account_id, category=category, success=success)
        return True

    def _on_change(self) -> None:
        """Hook for persistent subclasses. Called with the lock held."""

    # ── Reads ─────────────────────────────────────────────

    def get_entry(self, contact_id: str) -> Optional[LedgerEntry]:
        return self._entries.get(contact_id)

    def entries(self) -> dict[str, LedgerEntry]:
        return dict(self._entries)

    # ── Documents ─────────────────────────────────────────

    def to_document(self) -> dict[str, Any]:
        return {cid: e.to_document() for cid, e in self._entries.items()}

    def load_document(self, data: dict[str, Any]) -> int:
        """Replace state from a ledger document. Malformed entries are skipped."""
        entries: dict[str, LedgerEntry] = {}
        for cid, raw in (data or {}).items():
            try:
                entries[cid] = LedgerEntry.model_validate(raw)
            except (ValueError, TypeError) as e:
                logger.warning("ledger_entry_invalid", contact_id=cid, error=str(e))
        self._entries = entries
        return len(entries)


class InMemoryConversationStore(BaseConversationStore):
    """Conversation records and block list held in dicts."""

    def __init__(self, history_limit: int = 20):
        self.history_limit = history_limit
        self._records: dict[str, ConversationRecord] = {}
        self._blocked: dict[str, BlockEntry] = {}
        self._locks: dict[str, asyncio.Lock] = {}
        logger.info("inmemory_conversation_store_initialized")

    async def get(self, contact_id: str) -> ConversationRecord:
        record = self._records.get(contact_id)
        if record is None:
            return ConversationRecord(contact_id=contact_id)
        return record.model_copy(deep=True)

    async def save(self, record: ConversationRecord) -> None:
        if len(record.turns) > self.history_limit:
            record.turns = record.turns[-self.history_limit:]
        self._records[record.contact_id] = record.model_copy(deep=True)
        self._on_change("conversations")

    def has(self, contact_id: str) -> bool:
        return contact_id in self._records

    def is_blocked(self, contact_id: str) -> bool:
        return contact_id in self._blocked

    def get_block(self, contact_id: str) -> Optional[BlockEntry]:
        return self._blocked.get(contact_id)

    async def block(self, contact_id: str, reason: BlockReason) -> BlockEntry:
        existing = self._blocked.get(contact_id)
        if existing is not None:
            return existing
        entry = BlockEntry(reason=reason)
        self._blocked[contact_id] = entry
        self._on_change("blocked")
        logger.info("contact_blocked", contact_id=contact_id, reason=reason.value)
        return entry

    def lock_for(self, contact_id: str) -> asyncio.Lock:
        lock = self._locks.get(contact_id)
        if lock is None:
            lock = asyncio.Lock()
            self._locks[contact_id] = lock
        return lock

    def _on_change(self, collection: str) -> None:
        """Hook for persistent subclasses."""

    def stats(self) -> dict[str, Any]:
        ended = sum(1 for r in self._records.values() if r.state.ended)
        return {
            "conversations": len(self._records),
            "ended": ended,
            "blocked": len(self._blocked),
        }

    # ── Documents ─────────────────────────────────────────

    def conversations_document(self) -> dict[str, Any]:
        return {cid: r.to_document() for cid, r in self._records.items()}

    def blocked_document(self) -> dict[str, Any]:
        return {cid: b.to_document() for cid, b in self._blocked.items()}

    def load_conversations(self, data: dict[str, Any]) -> None:
        records: dict[str, ConversationRecord] = {}
        for cid, doc in (data or {}).items():
            try:
                records[cid] = ConversationRecord.from_document(cid, doc)
            except (ValueError, TypeError, AttributeError) as e:
                logger.warning("conversation_record_invalid", contact_id=cid, error=str(e))
        self._records = records

    def load_blocked(self, data: dict[str, Any]) -> None:
        blocked: dict[str, BlockEntry] = {}
        for cid, raw in (data or {}).items():
            try:
                blocked[cid] = BlockEntry.model_validate(raw)
            except (ValueError, TypeError) as e:
                logger.warning("block_entry_invalid", contact_id=cid, error=str(e))
        self._blocked = blocked
