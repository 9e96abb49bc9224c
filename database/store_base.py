"""
Abstract stores — Interfaces for all storage backends.

Two stores carry the durable state of the system:
  - BaseLedger             per-contact dedup record (pending → processed)
  - BaseConversationStore  per-contact conversation state, history and block list

Implementations:
  - InMemoryLedger / InMemoryConversationStore  (dict-based, no persistence)
  - FileLedger / FileConversationStore          (JSON files on disk, durable)

Both stores are shared by every account task, so mutations are serialized
with asyncio locks. Reads are plain dict lookups.
"""
from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any, Optional

from models.schemas import (
    BlockEntry, BlockReason, Contact, ConversationRecord, LedgerEntry,
)


class BaseLedger(ABC):
    """Interface that all ledger backends must implement."""

    # ── Mutations ─────────────────────────────────────────────

    @abstractmethod
    async def claim(self, contact_id: str, category: str = "") -> bool:
        """Reserve a contact. True only if it was neither pending nor processed."""
        ...

    @abstractmethod
    async def commit(self, contact_id: str, account_id: str, category: str, success: bool) -> bool:
        """Mark a contact processed. No-op (False) if it already is."""
        ...

    # ── Reads ─────────────────────────────────────────────────

    @abstractmethod
    def get_entry(self, contact_id: str) -> Optional[LedgerEntry]:
        ...

    @abstractmethod
    def entries(self) -> dict[str, LedgerEntry]:
        ...

    def is_pending(self, contact_id: str) -> bool:
        entry = self.get_entry(contact_id)
        return entry is not None and entry.is_pending

    def is_processed(self, contact_id: str) -> bool:
        entry = self.get_entry(contact_id)
        return entry is not None and entry.is_processed

    def list_pending(self) -> list[Contact]:
        return [
            Contact(phone_number=cid, category=e.category)
            for cid, e in self.entries().items() if e.is_pending
        ]

    def stats(self) -> dict[str, Any]:
        by_category: dict[str, int] = {}
        by_account: dict[str, int] = {}
        processed = succeeded = failed = pending = 0
        for entry in self.entries().values():
            if entry.is_pending:
                pending += 1
                continue
            processed += 1
            if entry.success:
                succeeded += 1
            else:
                failed += 1
            category = entry.category or "unknown"
            by_category[category] = by_category.get(category, 0) + 1
            account = entry.account_id or "unknown"
            by_account[account] = by_account.get(account, 0) + 1
        return {
            "total_processed": processed,
            "total_pending": pending,
            "succeeded": succeeded,
            "failed": failed,
            "by_category": by_category,
            "by_account": by_account,
        }

    # ── Lifecycle ─────────────────────────────────────────────

    async def close(self) -> None:
        """Flush and release resources. Memory backends have nothing to do."""
        return None


class BaseConversationStore(ABC):
    """Interface for conversation state, turn history and the block list."""

    @abstractmethod
    async def get(self, contact_id: str) -> ConversationRecord:
        """Return the stored record, or a fresh one (not yet stored)."""
        ...

    @abstractmethod
    async def save(self, record: ConversationRecord) -> None:
        ...

    @abstractmethod
    def has(self, contact_id: str) -> bool:
        ...

    @abstractmethod
    def is_blocked(self, contact_id: str) -> bool:
        ...

    @abstractmethod
    def get_block(self, contact_id: str) -> Optional[BlockEntry]:
        ...

    @abstractmethod
    async def block(self, contact_id: str, reason: BlockReason) -> BlockEntry:
        """Add to the block list. Blocks are permanent; re-blocking keeps the first entry."""
        ...

    @abstractmethod
    def lock_for(self, contact_id: str):
        """Per-contact asyncio.Lock guarding read-modify-write of one conversation."""
        ...

    def stats(self) -> dict[str, Any]:
        return {}

    async def close(self) -> None:
        return None
