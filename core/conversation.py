"""
Conversation State Machine — decides what (if anything) to answer.

Per contact the stage follows the turn count: NEW (< 3) → ENGAGED (≥ 3) →
DEEP (≥ 6). ENDED is orthogonal and absorbing: it is entered only on an
aggressive or stop intent, the contact is put on the block list at the same
time, and no later message ever gets a reply.

Turn processing, in order:
  1. ignore messages shorter than 2 characters
  2. ended or blocked contacts get no reply
  3. classify the intent
  4. aggressive / stop → end, block, one de-escalation reply
  5. first turn → an opening message (intent ignored for the reply)
  6. intent in the canned set → canned reply
  7. otherwise → generative responder, fixed apology on any failure
  8. wait a simulated typing delay for the chosen reply
  9. append the turn (bounded history), update attributes and topics, persist

Read-modify-write of one conversation runs under that contact's lock, so
two messages from the same contact are handled one after the other.
"""
from __future__ import annotations

import asyncio
import random
import structlog
from typing import Any, Awaitable, Callable, Optional

from config.settings import ConversationConfig
from core.classifier import IntentClassifier
from core.persona import PersonaPrompt, ReplyLibrary, conversation_summary
from core.responder import BaseResponder
from database.store_base import BaseConversationStore
from models.schemas import (
    TERMINAL_INTENTS, BlockReason, ConversationRecord, ConversationState,
    ConversationTurn, Intent, utcnow_iso,
)
from utils.pacing import typing_delay

logger = structlog.get_logger()

MIN_MESSAGE_LENGTH = 2

# intent → topic label recorded on the conversation
TOPIC_LABELS: tuple[tuple[Intent, str], ...] = (
    (Intent.COSTS, "kosten"),
    (Intent.HOW_IT_WORKS, "werking"),
    (Intent.TRUST, "betrouwbaarheid"),
    (Intent.INTEREST, "interesse"),
)

SIMPLE_DUTCH = "Eenvoudig Nederlands"


class ConversationStateMachine:
    """Processes inbound messages into replies for every contact."""

    def __init__(
        self,
        store: BaseConversationStore,
        library: ReplyLibrary,
        prompt: PersonaPrompt,
        responder: Optional[BaseResponder] = None,
        config: Optional[ConversationConfig] = None,
        classifier: Optional[IntentClassifier] = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
        rng: Optional[random.Random] = None,
    ):
        self.store = store
        self.library = library
        self.prompt = prompt
        self.responder = responder
        self.config = config or ConversationConfig()
        self.classifier = classifier or IntentClassifier()
        self._sleep = sleep
        self._rng = rng or random.Random()
        self.canned_intents = self._parse_intents(self.config.canned_intents)

    @staticmethod
    def _parse_intents(names: list[str]) -> frozenset[Intent]:
        intents = set()
        for name in names:
            try:
                intents.add(Intent(name))
            except ValueError:
                logger.warning("unknown_canned_intent", intent=name)
        return frozenset(intents)

    # ── Queries ───────────────────────────────────────────────

    def is_blocked(self, contact_id: str) -> bool:
        return self.store.is_blocked(contact_id)

    async def get_state(self, contact_id: str) -> ConversationState:
        return (await self.store.get(contact_id)).state

    async def get_history(self, contact_id: str) -> list[ConversationTurn]:
        return (await self.store.get(contact_id)).turns

    async def get_conversation_summary(self, contact_id: str) -> str:
        record = await self.store.get(contact_id)
        return conversation_summary(record, agent_name=self.prompt.persona.name)

    # ── Turn processing ───────────────────────────────────────

    async def process_incoming_message(self, contact_id: str, text: str) -> Optional[str]:
        """Return the reply to send, or None when nothing should be sent."""
        if text is None or len(text.strip()) < MIN_MESSAGE_LENGTH:
            logger.debug("message_too_short", contact_id=contact_id)
            return None
        if self.store.is_blocked(contact_id):
            logger.info("conversation_blocked_no_reply", contact_id=contact_id)
            return None

        async with self.store.lock_for(contact_id):
            record = await self.store.get(contact_id)
            if record.state.ended:
                logger.info("conversation_ended_no_reply", contact_id=contact_id)
                return None

            intent = self.classifier.classify(text)
            metadata: dict[str, Any] = {"intent": intent.value}

            if intent in TERMINAL_INTENTS:
                return await self._end_conversation(record, text, intent, metadata)

            if record.state.message_count == 0:
                reply = self.library.opening()
                record.state.introduced = True
                metadata["source"] = "opening"
            elif intent in self.canned_intents and self.library.has_canned(intent):
                reply = self.library.canned_for(intent, profession=record.state.profession)
                metadata["source"] = "canned"
            else:
                reply, failed = await self._generate(record, text)
                metadata["source"] = "generated"
                if failed:
                    metadata["error"] = True

            await self._pace(reply)
            self._record_turn(record, text, reply, metadata)
            await self.store.save(record)

        logger.info("conversation_reply", contact_id=contact_id, intent=intent.value,
                    source=metadata["source"], stage=record.state.stage.value)
        return reply

    async def _end_conversation(self, record: ConversationRecord, text: str,
                                intent: Intent, metadata: dict[str, Any]) -> str:
        contact_id = record.contact_id
        reason = (BlockReason.AGGRESSIVE_MESSAGE if intent == Intent.AGGRESSIVE
                  else BlockReason.STOP_REQUEST)
        record.state.ended = True
        await self.store.block(contact_id, reason)
        await self.store.save(record)
        logger.info("conversation_ended", contact_id=contact_id, reason=reason.value)

        reply = self.library.canned_for(intent) or self.library.fallback
        metadata.update(final=True, reason=intent.value, source="canned")
        await self._pace(reply)
        self._record_turn(record, text, reply, metadata)
        await self.store.save(record)
        return reply

    async def _generate(self, record: ConversationRecord, text: str) -> tuple[str, bool]:
        if self.responder is None:
            logger.warning("responder_not_configured", contact_id=record.contact_id)
            return self.library.fallback, True
        transcript = self.build_transcript(record, text)
        try:
            reply = await self.responder.generate(transcript)
        except Exception as e:
            logger.error("responder_failed", contact_id=record.contact_id,
                         provider=self.responder.provider, error=str(e))
            return self.library.fallback, True
        return reply, False

    def build_transcript(self, record: ConversationRecord, text: str) -> list[dict[str, str]]:
        summary = conversation_summary(record, agent_name=self.prompt.persona.name)
        transcript = [{"role": "system", "content": self.prompt.build(summary)}]
        window = record.turns[-self.config.transcript_window:] if self.config.transcript_window > 0 else []
        for turn in window:
            if turn.inbound:
                transcript.append({"role": "user", "content": turn.inbound})
            if turn.outbound:
                transcript.append({"role": "assistant", "content": turn.outbound})
        transcript.append({"role": "user", "content": text})
        return transcript

    async def _pace(self, reply: str) -> None:
        cfg = self.config
        delay_ms = typing_delay(
            reply,
            cpm=cfg.typing_cpm,
            variance=cfg.typing_variance,
            min_ms=cfg.response_delay_min_s * 1000,
            max_ms=cfg.response_delay_max_s * 1000,
            rng=self._rng,
        )
        await self._sleep(delay_ms / 1000)

    # ── History ───────────────────────────────────────────────

    def _record_turn(self, record: ConversationRecord, text: str, reply: str,
                     metadata: dict[str, Any]) -> None:
        record.append_turn(
            ConversationTurn(inbound=text, outbound=reply, metadata=metadata),
            limit=self.config.history_limit,
        )
        state = record.state
        profession = self.classifier.extract(Intent.PROFESSION, text)
        if profession:
            state.profession = profession
        for intent, label in TOPIC_LABELS:
            if self.classifier.matches(intent, text):
                state.add_topic(label)
        if self.classifier.matches(Intent.POOR_DUTCH, text):
            state.language_preference = SIMPLE_DUTCH
        state.message_count += 1
        state.last_activity = utcnow_iso()
