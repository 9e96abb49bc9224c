"""
Core data models for the outreach system.
These are the universal types shared across all modules.
"""
from __future__ import annotations

from datetime import datetime, timezone
from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field


def utcnow_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


# ──────────────────────────────────────────────────────────────
#  Enums
# ──────────────────────────────────────────────────────────────

class LedgerStatus(str, Enum):
    PENDING = "pending"
    PROCESSED = "processed"


class Intent(str, Enum):
    AGGRESSIVE = "aggressive"
    STOP_CONVERSATION = "stopConversation"
    GREETING = "greeting"
    INTEREST = "interest"
    REJECTION = "rejection"
    TRUST = "trust"
    COSTS = "costs"
    HOW_IT_WORKS = "howItWorks"
    CALL_REQUEST = "callRequest"
    POOR_DUTCH = "poorDutch"
    SHORT_ACKNOWLEDGMENT = "shortAcknowledgment"
    IDENTITY_QUESTION = "identityQuestion"
    NUMBER_SOURCE = "numberSource"
    PROFESSION = "profession"
    GENERAL = "general"


TERMINAL_INTENTS = frozenset({Intent.AGGRESSIVE, Intent.STOP_CONVERSATION})


class ConversationStage(str, Enum):
    NEW = "new"
    ENGAGED = "engaged"
    DEEP = "deep"


class BlockReason(str, Enum):
    AGGRESSIVE_MESSAGE = "aggressive_message"
    STOP_REQUEST = "stop_request"


# ──────────────────────────────────────────────────────────────
#  Contact — one campaign recipient
# ──────────────────────────────────────────────────────────────

class Contact(BaseModel):
    """A campaign recipient, as supplied by the contact source."""
    model_config = ConfigDict(frozen=True)

    phone_number: str                         # canonical, e.g. +31612345678
    category: str = ""                        # profession tag, free text

    @property
    def category_key(self) -> str:
        return (self.category or "").strip().lower()


# ──────────────────────────────────────────────────────────────
#  Ledger
# ──────────────────────────────────────────────────────────────

class LedgerEntry(BaseModel):
    """Per-contact dedup record. Serialized with camelCase keys."""
    model_config = ConfigDict(populate_by_name=True)

    status: LedgerStatus = LedgerStatus.PENDING
    timestamp: str = Field(default_factory=utcnow_iso)
    account_id: str = Field(default="", alias="accountId")
    category: str = ""
    success: Optional[bool] = None

    @property
    def is_pending(self) -> bool:
        return self.status == LedgerStatus.PENDING

    @property
    def is_processed(self) -> bool:
        return self.status == LedgerStatus.PROCESSED

    def to_document(self) -> dict[str, Any]:
        return self.model_dump(mode="json", by_alias=True)


# ──────────────────────────────────────────────────────────────
#  Conversations
# ──────────────────────────────────────────────────────────────

class ConversationTurn(BaseModel):
    timestamp: str = Field(default_factory=utcnow_iso)
    inbound: str = ""
    outbound: str = ""
    metadata: dict[str, Any] = {}


class ConversationState(BaseModel):
    """
    Per-contact conversation state.

    `ended` and `message_count` are monotonic: ended never reverts and the
    count never decreases. The stage is derived from the count.
    """
    message_count: int = 0
    ended: bool = False
    introduced: bool = False
    profession: Optional[str] = None
    language_preference: str = "Nederlands"
    topics: list[str] = []
    first_contact: str = Field(default_factory=utcnow_iso)
    last_activity: Optional[str] = None

    @property
    def stage(self) -> ConversationStage:
        if self.message_count >= 6:
            return ConversationStage.DEEP
        if self.message_count >= 3:
            return ConversationStage.ENGAGED
        return ConversationStage.NEW

    def add_topic(self, topic: str) -> None:
        if topic not in self.topics:
            self.topics.append(topic)


class ConversationRecord(BaseModel):
    """State plus bounded turn history for one contact."""
    contact_id: str
    state: ConversationState = Field(default_factory=ConversationState)
    turns: list[ConversationTurn] = []

    def append_turn(self, turn: ConversationTurn, limit: int = 20) -> None:
        self.turns.append(turn)
        if len(self.turns) > limit:
            del self.turns[: len(self.turns) - limit]

    def to_document(self) -> dict[str, Any]:
        state = self.state
        return {
            "turns": [t.model_dump(mode="json") for t in self.turns],
            "attributes": {"profession": state.profession},
            "firstContact": state.first_contact,
            "lastInteraction": state.last_activity,
            "topics": list(state.topics),
            "languagePreference": state.language_preference,
            "state": {
                "messageCount": state.message_count,
                "ended": state.ended,
                "introduced": state.introduced,
            },
        }

    @classmethod
    def from_document(cls, contact_id: str, doc: dict[str, Any]) -> "ConversationRecord":
        raw_state = doc.get("state") or {}
        attributes = doc.get("attributes") or {}
        state = ConversationState(
            message_count=raw_state.get("messageCount", len(doc.get("turns") or [])),
            ended=raw_state.get("ended", False),
            introduced=raw_state.get("introduced", False),
            profession=attributes.get("profession"),
            language_preference=doc.get("languagePreference") or "Nederlands",
            topics=list(doc.get("topics") or []),
            first_contact=doc.get("firstContact") or utcnow_iso(),
            last_activity=doc.get("lastInteraction"),
        )
        turns = [ConversationTurn(**t) for t in (doc.get("turns") or [])]
        return cls(contact_id=contact_id, state=state, turns=turns)


class BlockEntry(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    blocked_at: str = Field(default_factory=utcnow_iso, alias="blockedAt")
    reason: BlockReason

    def to_document(self) -> dict[str, Any]:
        return self.model_dump(mode="json", by_alias=True)


# ──────────────────────────────────────────────────────────────
#  Transport messages
# ──────────────────────────────────────────────────────────────

class SendOutcome(BaseModel):
    success: bool
    error: Optional[str] = None
    channel_message_id: Optional[str] = None


class InboundMessage(BaseModel):
    """A parsed inbound message delivered by a transport."""
    sender: str                               # canonical phone
    text: str
    message_id: str = ""
    metadata: dict[str, Any] = {}
