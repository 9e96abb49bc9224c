"""
Transports — base infrastructure for the per-account messaging link.

Provides:
- ChannelError: structured error hierarchy
- TransportMetrics: per-transport send/fail/latency tracking
- MessageDeduplicator: TTL seen-set for webhook redeliveries
- InputSanitizer: control-character stripping and length cap for inbound text
- Transport: abstract base wrapping every send into a SendOutcome and
  dispatching parsed inbound messages to a registered handler
"""
from __future__ import annotations

import abc
import time
import structlog
from typing import Any, Awaitable, Callable, Optional

from models.schemas import InboundMessage, SendOutcome

logger = structlog.get_logger()

InboundHandler = Callable[[InboundMessage], Awaitable[None]]


# ══════════════════════════════════════════════════════════════
#  ERRORS
# ══════════════════════════════════════════════════════════════

class ChannelError(Exception):
    """Base exception for all transport operations."""

    def __init__(self, message: str, channel: str = "", retryable: bool = False):
        self.channel = channel
        self.retryable = retryable
        super().__init__(message)


class TransportNotReadyError(ChannelError):
    def __init__(self, channel: str = ""):
        super().__init__(f"Transport not ready: {channel}", channel, retryable=True)


# ══════════════════════════════════════════════════════════════
#  METRICS
# ══════════════════════════════════════════════════════════════

class TransportMetrics:
    """Tracks per-transport send, failure, inbound and latency metrics."""

    def __init__(self, name: str):
        self.name = name
        self.messages_sent: int = 0
        self.messages_failed: int = 0
        self.messages_received: int = 0
        self._latencies: list[float] = []
        self._errors: list[str] = []

    def record_send(self, latency_ms: float = 0.0):
        self.messages_sent += 1
        if latency_ms > 0:
            self._latencies.append(latency_ms)
            del self._latencies[:-500]

    def record_failure(self, error: str = ""):
        self.messages_failed += 1
        if error:
            self._errors.append(error)
            del self._errors[:-50]

    def record_inbound(self):
        self.messages_received += 1

    @property
    def avg_latency_ms(self) -> float:
        return sum(self._latencies) / len(self._latencies) if self._latencies else 0.0

    def to_dict(self) -> dict[str, Any]:
        return {
            "transport": self.name,
            "sent": self.messages_sent,
            "failed": self.messages_failed,
            "received": self.messages_received,
            "avg_latency_ms": round(self.avg_latency_ms, 1),
            "recent_errors": self._errors[-10:],
        }


# ══════════════════════════════════════════════════════════════
#  MESSAGE DEDUPLICATOR
# ══════════════════════════════════════════════════════════════

class MessageDeduplicator:
    """TTL-based seen-set for deduplicating inbound messages."""

    def __init__(self, ttl_seconds: float = 300.0, max_size: int = 5000):
        self.ttl = ttl_seconds
        self.max_size = max_size
        self._seen: dict[str, float] = {}

    def is_duplicate(self, key: str) -> bool:
        self._prune()
        if key in self._seen:
            return True
        self._seen[key] = time.monotonic()
        return False

    def _prune(self):
        cutoff = time.monotonic() - self.ttl
        expired = [k for k, t in self._seen.items() if t < cutoff]
        for k in expired:
            del self._seen[k]
        if len(self._seen) > self.max_size:
            oldest = sorted(self._seen, key=self._seen.get)[: len(self._seen) - self.max_size]
            for k in oldest:
                del self._seen[k]


# ══════════════════════════════════════════════════════════════
#  INPUT SANITIZER
# ══════════════════════════════════════════════════════════════

class InputSanitizer:
    def __init__(self, max_length: int = 4096):
        self.max_length = max_length

    def sanitize(self, content: str) -> str:
        if not content:
            return ""
        content = "".join(
            c for c in content if c in ("\n", "\t", "\r") or (ord(c) >= 32)
        )
        if len(content) > self.max_length:
            content = content[: self.max_length]
        return content.strip()


# ══════════════════════════════════════════════════════════════
#  TRANSPORT — Abstract Base
# ══════════════════════════════════════════════════════════════

class Transport(abc.ABC):
    """
    Base class for the messaging link of one account.

    Subclasses implement _do_send and may override _parse_inbound and
    _do_set_typing. The base class turns every send into a SendOutcome
    (exceptions included), records metrics, and dispatches inbound
    messages to the handler registered with on_inbound.
    """

    name: str = "transport"

    def __init__(self, account_id: str):
        self.account_id = account_id
        self._ready = False
        self._handler: Optional[InboundHandler] = None
        self._metrics = TransportMetrics(self.name)
        self._deduplicator = MessageDeduplicator()
        self._sanitizer = InputSanitizer()

    # ── Lifecycle ─────────────────────────────────────────────

    @property
    def ready(self) -> bool:
        return self._ready

    async def start(self) -> None:
        self._ready = True

    async def stop(self) -> None:
        self._ready = False

    # ── Abstract hooks ────────────────────────────────────────

    @abc.abstractmethod
    async def _do_send(self, contact_id: str, text: str) -> SendOutcome:
        ...

    async def _do_set_typing(self, contact_id: str, on: bool) -> None:
        return None

    async def _parse_inbound(self, raw_payload: dict[str, Any]) -> list[InboundMessage]:
        return []

    # ── Send ──────────────────────────────────────────────────

    async def send(self, contact_id: str, text: str) -> SendOutcome:
        start = time.monotonic()
        try:
            if not self._ready:
                raise TransportNotReadyError(self.name)
            outcome = await self._do_send(contact_id, text)
        except ChannelError as e:
            outcome = SendOutcome(success=False, error=str(e))
        except Exception as e:
            logger.error("transport_send_exception", account_id=self.account_id,
                         contact_id=contact_id, error=str(e))
            outcome = SendOutcome(success=False, error=str(e))

        if outcome.success:
            self._metrics.record_send((time.monotonic() - start) * 1000)
        else:
            self._metrics.record_failure(outcome.error or "")
        return outcome

    async def set_typing(self, contact_id: str, on: bool) -> None:
        """Best-effort typing indicator. Failures are swallowed."""
        try:
            await self._do_set_typing(contact_id, on)
        except Exception as e:
            logger.debug("typing_indicator_failed", account_id=self.account_id, error=str(e))

    # ── Inbound ───────────────────────────────────────────────

    def on_inbound(self, handler: InboundHandler) -> None:
        self._handler = handler

    async def handle_inbound(self, raw_payload: dict[str, Any]) -> list[InboundMessage]:
        """Parse a raw payload, drop duplicates, sanitize and dispatch each message."""
        delivered: list[InboundMessage] = []
        for message in await self._parse_inbound(raw_payload):
            if message.message_id and self._deduplicator.is_duplicate(message.message_id):
                logger.debug("inbound_duplicate_dropped", message_id=message.message_id)
                continue
            message = message.model_copy(update={"text": self._sanitizer.sanitize(message.text)})
            self._metrics.record_inbound()
            delivered.append(message)
            await self.dispatch(message)
        return delivered

    async def dispatch(self, message: InboundMessage) -> None:
        if self._handler is None:
            logger.warning("inbound_without_handler", account_id=self.account_id)
            return
        try:
            await self._handler(message)
        except Exception as e:
            logger.error("inbound_handler_failed", account_id=self.account_id,
                         sender=message.sender, error=str(e))

    # ── Health ────────────────────────────────────────────────

    def health(self) -> dict[str, Any]:
        return {
            "account_id": self.account_id,
            "ready": self._ready,
            "metrics": self._metrics.to_dict(),
        }
