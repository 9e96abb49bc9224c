"""
Orchestrator — builds and runs the whole outreach system.

Wiring:
  stores (ledger + conversations) ← accounts (one transport each)
                                  ← scheduler (campaign contacts → accounts)
                                  ← state machine (inbound text → replies)

Lifecycle:
  start(): start accounts, re-enqueue contacts left pending by a previous
           run, start the scheduler loop
  stop():  stop the scheduler and accounts, flush the stores
"""
from __future__ import annotations

import asyncio
import random
import structlog
from typing import Any, Awaitable, Callable, Iterable, Optional

from channels.base import Transport
from channels.whatsapp_adapter import WhatsAppCloudTransport
from config.settings import Settings
from core.account import Account
from core.conversation import ConversationStateMachine
from core.persona import PersonaPrompt, ReplyLibrary
from core.responder import BaseResponder, create_responder
from core.scheduler import CampaignScheduler
from database.store_base import BaseConversationStore, BaseLedger
from database.store_factory import create_stores
from models.schemas import Contact, InboundMessage
from utils.pacing import base_delay_ms, compute_delay
from utils.phone import normalize_phone

logger = structlog.get_logger()


class Orchestrator:
    """Owns every component and routes inbound messages to replies."""

    def __init__(
        self,
        settings: Settings,
        ledger: BaseLedger,
        conversations: BaseConversationStore,
        accounts: list[Account],
        scheduler: CampaignScheduler,
        state_machine: ConversationStateMachine,
    ):
        self.settings = settings
        self.ledger = ledger
        self.conversations = conversations
        self.accounts = accounts
        self.scheduler = scheduler
        self.state_machine = state_machine
        self._accounts_by_id = {a.id: a for a in accounts}
        self._started = False

    @classmethod
    def from_settings(
        cls,
        settings: Settings,
        transports: Optional[dict[str, Transport]] = None,
        responder: Optional[BaseResponder] = None,
        stores: Optional[tuple[BaseLedger, BaseConversationStore]] = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
        rng: Optional[random.Random] = None,
    ) -> "Orchestrator":
        rng = rng or random.Random()
        transports = transports or {}

        ledger, conversations = stores or create_stores({
            "backend": settings.storage.backend,
            "data_dir": settings.storage.data_dir,
            "flush_interval_s": settings.storage.flush_interval_s,
            "history_limit": settings.conversation.history_limit,
        })

        campaign = settings.campaign
        base_ms = base_delay_ms(campaign.max_messages_per_hour)

        def account_pacing() -> float:
            return compute_delay(campaign.distribution_pattern, base_ms, rng) / 1000

        accounts = [
            Account(
                config=cfg,
                transport=transports.get(cfg.id) or WhatsAppCloudTransport(cfg),
                ledger=ledger,
                pacing=account_pacing,
                sleep=sleep,
            )
            for cfg in settings.accounts
        ]

        library = ReplyLibrary.from_settings(settings, rng=rng)
        prompt = PersonaPrompt(settings.persona, library.business)

        if responder is None:
            try:
                responder = create_responder(settings.llm)
            except ValueError as e:
                logger.error("responder_unavailable", error=str(e))

        scheduler = CampaignScheduler(ledger, accounts, library, campaign, rng=rng, sleep=sleep)
        state_machine = ConversationStateMachine(
            conversations, library, prompt,
            responder=responder, config=settings.conversation, sleep=sleep, rng=rng,
        )
        return cls(settings, ledger, conversations, accounts, scheduler, state_machine)

    # ── Lifecycle ─────────────────────────────────────────────

    async def start(self) -> None:
        for account in self.accounts:
            account.on_inbound(self.handle_inbound)
            await account.start()
        if self.settings.campaign.resume_pending:
            await self.scheduler.resume_pending()
        await self.scheduler.start()
        self._started = True
        logger.info("outreach_started", accounts=len(self.accounts),
                    ready=sum(1 for a in self.accounts if a.ready))

    async def stop(self) -> None:
        await self.scheduler.stop()
        for account in self.accounts:
            await account.stop()
        await self.ledger.close()
        await self.conversations.close()
        self._started = False
        logger.info("outreach_stopped")

    # ── Campaign ──────────────────────────────────────────────

    def normalize_contacts(self, raw: Iterable[dict[str, Any]]) -> list[Contact]:
        """Canonicalize phone numbers; drop rows without a usable number."""
        contacts: list[Contact] = []
        dropped = 0
        for row in raw:
            phone = normalize_phone(str(row.get("phone_number") or row.get("phone") or ""))
            if phone is None:
                dropped += 1
                continue
            contacts.append(Contact(phone_number=phone, category=str(row.get("category") or "")))
        if dropped:
            logger.warning("contacts_dropped_invalid_phone", dropped=dropped)
        return contacts

    def submit_contacts(self, contacts: Iterable[Contact]) -> int:
        return self.scheduler.submit(contacts)

    # ── Inbound ───────────────────────────────────────────────

    def get_account(self, account_id: str) -> Optional[Account]:
        return self._accounts_by_id.get(account_id)

    async def handle_inbound(self, account: Account, message: InboundMessage) -> Optional[str]:
        """Run one inbound message through the state machine and answer it."""
        contact_id = message.sender
        await account.set_typing(contact_id, True)
        try:
            reply = await self.state_machine.process_incoming_message(contact_id, message.text)
        finally:
            await account.set_typing(contact_id, False)

        if reply is None:
            return None
        outcome = await account.send_reply(contact_id, reply)
        logger.info("inbound_answered", account_id=account.id, contact_id=contact_id,
                    delivered=outcome.success)
        return reply

    # ── Stats ─────────────────────────────────────────────────

    def stats(self) -> dict[str, Any]:
        return {
            "ledger": self.ledger.stats(),
            "scheduler": self.scheduler.stats(),
            "conversations": self.conversations.stats(),
        }
