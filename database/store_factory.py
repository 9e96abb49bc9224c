"""
Store Factory — Create the ledger and conversation store from configuration.

Configuration in settings.yaml:
    storage:
      # Where runtime state lives
      #   "memory"   — In-memory dicts (development, testing)
      #   "file"     — JSON files on disk (restart-safe)
      backend: "file"

      # For file backend: directory path
      data_dir: "./data/storage"

      # 0 flushes on every mutation; > 0 batches writes for that many seconds
      flush_interval_s: 0

Usage:
    from database.store_factory import create_stores, get_ledger
    ledger, conversations = create_stores(config)   # Create from config dict
    ledger = get_ledger()                           # Get singleton instance
"""
from __future__ import annotations

import structlog
from typing import Optional

from database.store_base import BaseConversationStore, BaseLedger

logger = structlog.get_logger()

_ledger: Optional[BaseLedger] = None
_conversations: Optional[BaseConversationStore] = None


def create_stores(config: dict = None) -> tuple[BaseLedger, BaseConversationStore]:
    """
    Factory: create the ledger and conversation store for one backend.

    Args:
        config: dict with keys:
            backend: "memory" | "file"  (default: "memory")
            data_dir: str (for file backend, default: "./data")
            flush_interval_s: float (for file backend, default: 0)
            history_limit: int (turns kept per contact, default: 20)
    """
    global _ledger, _conversations
    if _ledger is not None and _conversations is not None:
        return _ledger, _conversations

    config = config or {}
    backend = config.get("backend", "memory")
    history_limit = config.get("history_limit", 20)

    if backend == "file":
        from database.store_file import FileConversationStore, FileLedger
        data_dir = config.get("data_dir", "./data")
        interval = config.get("flush_interval_s", 0)
        _ledger = FileLedger(data_dir=data_dir, flush_interval_s=interval)
        _conversations = FileConversationStore(
            data_dir=data_dir, flush_interval_s=interval, history_limit=history_limit,
        )
        logger.info("stores_created", backend="file", data_dir=data_dir)

    else:  # "memory" or default
        from database.store_memory import InMemoryConversationStore, InMemoryLedger
        _ledger = InMemoryLedger()
        _conversations = InMemoryConversationStore(history_limit=history_limit)
        logger.info("stores_created", backend="memory")

    return _ledger, _conversations


def get_ledger() -> BaseLedger:
    """Return the singleton ledger, creating memory stores if none exist."""
    if _ledger is None:
        create_stores()
    return _ledger


def get_conversation_store() -> BaseConversationStore:
    if _conversations is None:
        create_stores()
    return _conversations


def reset_stores() -> None:
    """Reset the singletons (for testing)."""
    global _ledger, _conversations
    _ledger = None
    _conversations = None
