"""
Campaign Scheduler — claims contacts and hands them to accounts.

Flow per contact:
  ledger.claim → pick a ready account → resolve the outreach template by
  category → account.enqueue

Large contact lists are drip-fed: submit() appends to a bounded work queue
and one background loop takes `batch_size` contacts per pass, waiting
compute_delay(pattern, base) × batch_size between passes. The wait is a
plain sleep inside the loop task, so stop() cancels it.
"""
from __future__ import annotations

import asyncio
import random
import structlog
from collections import deque
from datetime import datetime, timezone
from typing import Any, Awaitable, Callable, Iterable, Optional

from config.settings import CampaignConfig
from core.account import Account
from core.persona import ReplyLibrary
from database.store_base import BaseLedger
from models.schemas import Contact
from utils.pacing import base_delay_ms, compute_delay

logger = structlog.get_logger()


class AccountSelection:
    RANDOM = "random"
    LEAST_LOADED = "least_loaded"


class CampaignScheduler:
    """Rate-limited, dedup-safe distribution of campaign contacts over accounts."""

    def __init__(
        self,
        ledger: BaseLedger,
        accounts: list[Account],
        library: ReplyLibrary,
        config: Optional[CampaignConfig] = None,
        rng: Optional[random.Random] = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        self.ledger = ledger
        self.accounts = accounts
        self.library = library
        self.config = config or CampaignConfig()
        self._rng = rng or random.Random()
        self._sleep = sleep

        self._work: deque[Contact] = deque()
        self._wakeup = asyncio.Event()
        self._task: Optional[asyncio.Task] = None

        self.total_queued = 0
        self.total_skipped = 0
        self.no_ready_account = 0
        self.queued_by_category: dict[str, int] = {}
        self.queued_by_account: dict[str, int] = {}
        self.start_time = datetime.now(timezone.utc)
        self.last_scheduled: Optional[datetime] = None

    # ── Pacing ────────────────────────────────────────────────

    @property
    def base_delay_ms(self) -> float:
        return base_delay_ms(self.config.max_messages_per_hour)

    def next_delay_ms(self) -> float:
        return compute_delay(self.config.distribution_pattern, self.base_delay_ms, self._rng)

    def batch_delay_s(self, batch_size: int) -> float:
        return self.next_delay_ms() * batch_size / 1000

    # ── Account selection ─────────────────────────────────────

    def select_account(self) -> Optional[Account]:
        ready = [a for a in self.accounts if a.ready]
        if not ready:
            return None
        if self.config.account_selection == AccountSelection.LEAST_LOADED:
            return min(ready, key=lambda a: a.pending_count)
        return self._rng.choice(ready)

    # ── Batch ─────────────────────────────────────────────────

    async def schedule_batch(self, contacts: list[Contact]) -> int:
        """
        Claim and enqueue at most batch_size contacts. Returns how many were enqueued.

        The overflow goes back to the front of the work queue, where the
        background loop paces it. A contact whose claim succeeds but finds no
        ready account stays pending in the ledger and is picked up by
        resume_pending() on the next start.
        """
        contacts = list(contacts)
        batch = contacts[: self.config.batch_size]
        overflow = contacts[self.config.batch_size:]
        if overflow:
            self._work.extendleft(reversed(overflow))
            self._wakeup.set()
            logger.info("scheduler_batch_overflow_requeued", overflow=len(overflow),
                        backlog=len(self._work))
        scheduled = 0
        stranded = 0
        for contact in batch:
            if not await self.ledger.claim(contact.phone_number, contact.category):
                self.total_skipped += 1
                continue

            account = self.select_account()
            if account is None:
                stranded += 1
                self.no_ready_account += 1
                continue

            text = self.library.outreach_for(contact.category)
            if account.enqueue(contact, text):
                scheduled += 1
                self._count(contact, account)

        if stranded:
            logger.warning("scheduler_no_ready_account", stranded=stranded)
        logger.info("scheduler_batch_done", size=len(batch), scheduled=scheduled,
                    skipped=len(batch) - scheduled - stranded)
        return scheduled

    def _count(self, contact: Contact, account: Account) -> None:
        category = contact.category_key or "default"
        self.total_queued += 1
        self.queued_by_category[category] = self.queued_by_category.get(category, 0) + 1
        self.queued_by_account[account.id] = self.queued_by_account.get(account.id, 0) + 1
        self.last_scheduled = datetime.now(timezone.utc)

    # ── Work queue ────────────────────────────────────────────

    def submit(self, contacts: Iterable[Contact]) -> int:
        """Append contacts to the work queue. Returns how many were accepted."""
        accepted = 0
        limit = self.config.max_pending_contacts
        for contact in contacts:
            if len(self._work) >= limit:
                logger.warning("scheduler_work_queue_full", limit=limit)
                break
            self._work.append(contact)
            accepted += 1
        if accepted:
            self._wakeup.set()
        logger.info("scheduler_contacts_submitted", accepted=accepted, backlog=len(self._work))
        return accepted

    @property
    def backlog(self) -> int:
        return len(self._work)

    def _take_batch(self) -> list[Contact]:
        size = min(self.config.batch_size, len(self._work))
        return [self._work.popleft() for _ in range(size)]

    async def _loop(self) -> None:
        while True:
            if not self._work:
                self._wakeup.clear()
                await self._wakeup.wait()
                continue
            batch = self._take_batch()
            try:
                await self.schedule_batch(batch)
            except Exception as e:
                logger.error("scheduler_batch_failed", size=len(batch), error=str(e))
            if self._work:
                delay = self.batch_delay_s(len(batch))
                logger.info("scheduler_next_batch", delay_s=round(delay, 1), backlog=len(self._work))
                await self._sleep(delay)

    async def start(self) -> None:
        if self._task is None or self._task.done():
            self._task = asyncio.create_task(self._loop(), name="campaign-scheduler")
            logger.info("scheduler_started", pattern=self.config.distribution_pattern,
                        max_per_hour=self.config.max_messages_per_hour,
                        batch_size=self.config.batch_size)

    async def stop(self) -> None:
        if self._task is not None and not self._task.done():
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass
        self._task = None
        logger.info("scheduler_stopped", backlog=len(self._work))

    async def run(self, contacts: Iterable[Contact]) -> int:
        """Schedule a whole list in the foreground, pacing between batches."""
        self.submit(contacts)
        total = 0
        while self._work:
            batch = self._take_batch()
            total += await self.schedule_batch(batch)
            if self._work:
                await self._sleep(self.batch_delay_s(len(batch)))
        return total

    # ── Resume ────────────────────────────────────────────────

    async def resume_pending(self) -> int:
        """Hand contacts left pending by a previous run to ready accounts."""
        pending = self.ledger.list_pending()
        resumed = 0
        for contact in pending:
            account = self.select_account()
            if account is None:
                logger.warning("scheduler_resume_no_ready_account", remaining=len(pending) - resumed)
                break
            if account.enqueue(contact, self.library.outreach_for(contact.category)):
                resumed += 1
                self._count(contact, account)
        if pending:
            logger.info("scheduler_resumed_pending", pending=len(pending), resumed=resumed)
        return resumed

    # ── Stats ─────────────────────────────────────────────────

    def stats(self) -> dict[str, Any]:
        elapsed_h = (datetime.now(timezone.utc) - self.start_time).total_seconds() / 3600
        return {
            "total_queued": self.total_queued,
            "total_skipped": self.total_skipped,
            "no_ready_account": self.no_ready_account,
            "backlog": len(self._work),
            "by_category": dict(self.queued_by_category),
            "by_account": dict(self.queued_by_account),
            "messages_per_hour": round(self.total_queued / elapsed_h, 2) if elapsed_h > 0 else 0,
            "distribution_pattern": self.config.distribution_pattern,
            "max_messages_per_hour": self.config.max_messages_per_hour,
            "start_time": self.start_time.isoformat(),
            "last_scheduled": self.last_scheduled.isoformat() if self.last_scheduled else None,
            "accounts": [a.stats() for a in self.accounts],
        }
