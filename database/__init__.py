"""
Database layer — Ledger and conversation persistence.

Backends:
  - In-memory (dict-based, for development/testing)
  - File (JSON files on disk, restart-safe)

Quick start:
  from database import create_stores
  ledger, conversations = create_stores({"backend": "memory"})
  claimed = await ledger.claim("+31612345678", "schilder")
"""
from database.store_base import BaseConversationStore, BaseLedger
from database.store_memory import InMemoryConversationStore, InMemoryLedger
from database.store_file import FileConversationStore, FileLedger
from database.store_factory import (
    create_stores, get_conversation_store, get_ledger, reset_stores,
)

__all__ = [
    # Store interfaces
    "BaseLedger", "BaseConversationStore",
    # Store backends
    "InMemoryLedger", "InMemoryConversationStore",
    "FileLedger", "FileConversationStore",
    # Factory
    "create_stores", "get_ledger", "get_conversation_store", "reset_stores",
]
