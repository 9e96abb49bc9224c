"""
Account — one sending identity.

Each account owns a transport, a FIFO outbound queue and one drain task.
Sends are serialized by the account's lock (its busy flag), so there is at
most one in-flight send per account while different accounts send
concurrently. After every campaign send the ledger entry is committed with
the transport's outcome; failed sends are committed too and never retried.
"""
from __future__ import annotations

import asyncio
import structlog
from collections import deque
from typing import Any, Awaitable, Callable, Optional

from channels.base import Transport
from config.settings import AccountConfig
from database.store_base import BaseLedger
from models.schemas import Contact, InboundMessage, SendOutcome

logger = structlog.get_logger()

AccountInboundHandler = Callable[["Account", InboundMessage], Awaitable[Any]]


class Account:
    """A sending identity with its own queue, counters and pacing."""

    not_ready_poll_s: float = 1.0
    inbound_grace_s: float = 10.0   # stop() lets in-flight replies finish this long

    def __init__(
        self,
        config: AccountConfig,
        transport: Transport,
        ledger: BaseLedger,
        pacing: Optional[Callable[[], float]] = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        self.config = config
        self.transport = transport
        self.ledger = ledger
        self._pacing = pacing or (lambda: 0.0)   # seconds between campaign sends
        self._sleep = sleep

        self._queue: deque[tuple[Contact, str]] = deque()
        self._wakeup = asyncio.Event()
        self._send_lock = asyncio.Lock()
        self._task: Optional[asyncio.Task] = None
        self._next_send_at: float = 0.0

        self._inbound_handler: Optional[AccountInboundHandler] = None
        self._inbound_tasks: set[asyncio.Task] = set()

        self.sent_count = 0
        self.failed_count = 0
        self.replies_sent = 0
        self.replies_failed = 0

    # ── Properties ────────────────────────────────────────────

    @property
    def id(self) -> str:
        return self.config.id

    @property
    def name(self) -> str:
        return self.config.name or self.config.id

    @property
    def enabled(self) -> bool:
        return self.config.enabled

    @property
    def ready(self) -> bool:
        return self.config.enabled and self.transport.ready

    @property
    def busy(self) -> bool:
        return self._send_lock.locked()

    @property
    def pending_count(self) -> int:
        return len(self._queue)

    # ── Lifecycle ─────────────────────────────────────────────

    async def start(self) -> None:
        if not self.enabled:
            logger.info("account_disabled", account_id=self.id)
            return
        self.transport.on_inbound(self._on_inbound)
        await self.transport.start()
        if self._task is None or self._task.done():
            self._task = asyncio.create_task(self._drain_loop(), name=f"account-{self.id}")
        logger.info("account_started", account_id=self.id, ready=self.ready)

    async def stop(self) -> None:
        if self._inbound_tasks:
            await asyncio.wait(list(self._inbound_tasks), timeout=self.inbound_grace_s)
        tasks = [t for t in [self._task, *self._inbound_tasks] if t is not None and not t.done()]
        for task in tasks:
            task.cancel()
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)
        self._task = None
        await self.transport.stop()
        logger.info("account_stopped", account_id=self.id,
                    sent=self.sent_count, failed=self.failed_count, queued=len(self._queue))

    # ── Outbound queue ────────────────────────────────────────

    def enqueue(self, contact: Contact, text: str) -> bool:
        """Queue a campaign message. Refused when disabled or already processed."""
        if not self.enabled:
            return False
        if self.ledger.is_processed(contact.phone_number):
            logger.debug("account_enqueue_skipped_processed",
                         account_id=self.id, contact_id=contact.phone_number)
            return False
        self._queue.append((contact, text))
        self._wakeup.set()
        return True

    async def _drain_loop(self) -> None:
        loop = asyncio.get_running_loop()
        while True:
            if not self._queue:
                self._wakeup.clear()
                await self._wakeup.wait()
                continue
            if not self.transport.ready:
                await self._sleep(self.not_ready_poll_s)
                continue

            wait = self._next_send_at - loop.time()
            if wait > 0:
                await self._sleep(wait)

            contact, text = self._queue.popleft()
            try:
                await self.deliver(contact, text)
            except Exception as e:
                # the ledger entry stays pending and is resumed on the next start
                logger.error("account_deliver_failed", account_id=self.id,
                             contact_id=contact.phone_number, error=str(e))
            self._next_send_at = loop.time() + max(0.0, self._pacing())

    async def drain(self) -> int:
        """Send everything queued right now, without pacing. Returns messages handled."""
        handled = 0
        while self._queue:
            contact, text = self._queue.popleft()
            await self.deliver(contact, text)
            handled += 1
        return handled

    async def deliver(self, contact: Contact, text: str) -> Optional[SendOutcome]:
        """Send one campaign message and commit the outcome to the ledger."""
        contact_id = contact.phone_number
        # another account may have committed this contact meanwhile
        if self.ledger.is_processed(contact_id):
            logger.info("account_skip_processed", account_id=self.id, contact_id=contact_id)
            return None

        async with self._send_lock:
            outcome = await self.transport.send(contact_id, text)

        if outcome.success:
            self.sent_count += 1
            logger.info("account_message_sent", account_id=self.id,
                        contact_id=contact_id, category=contact.category)
        else:
            self.failed_count += 1
            logger.warning("account_send_failed", account_id=self.id,
                           contact_id=contact_id, error=outcome.error)

        await self.ledger.commit(contact_id, self.id, contact.category, outcome.success)
        return outcome

    # ── Conversation ──────────────────────────────────────────

    async def send_reply(self, contact_id: str, text: str) -> SendOutcome:
        async with self._send_lock:
            outcome = await self.transport.send(contact_id, text)
        if outcome.success:
            self.replies_sent += 1
        else:
            self.replies_failed += 1
            logger.warning("account_reply_failed", account_id=self.id,
                           contact_id=contact_id, error=outcome.error)
        return outcome

    async def set_typing(self, contact_id: str, on: bool) -> None:
        await self.transport.set_typing(contact_id, on)

    def on_inbound(self, handler: AccountInboundHandler) -> None:
        self._inbound_handler = handler

    async def _on_inbound(self, message: InboundMessage) -> None:
        # handled in its own task so webhook delivery never waits on reply pacing
        if self._inbound_handler is None:
            logger.warning("account_inbound_unhandled", account_id=self.id)
            return
        task = asyncio.create_task(self._run_inbound(message))
        self._inbound_tasks.add(task)
        task.add_done_callback(self._inbound_tasks.discard)

    async def _run_inbound(self, message: InboundMessage) -> None:
        try:
            await self._inbound_handler(self, message)
        except Exception as e:
            logger.error("account_inbound_failed", account_id=self.id,
                         sender=message.sender, error=str(e))

    async def wait_inbound_idle(self) -> None:
        """Wait until every in-flight inbound handler has finished."""
        while self._inbound_tasks:
            await asyncio.gather(*list(self._inbound_tasks), return_exceptions=True)

    # ── Stats ─────────────────────────────────────────────────

    def stats(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "enabled": self.enabled,
            "ready": self.ready,
            "queue_size": len(self._queue),
            "sent": self.sent_count,
            "failed": self.failed_count,
            "replies_sent": self.replies_sent,
            "replies_failed": self.replies_failed,
            "busy": self.busy,
        }
