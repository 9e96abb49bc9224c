"""
WhatsApp Transport — WhatsApp Business Cloud API integration.

Provides:
- Outbound free-form text via POST /{phone_number_id}/messages
- Webhook verification (hub.verify_token challenge) and X-Hub-Signature-256 check
- Inbound parsing: text, interactive replies and media captions; status
  updates, group/broadcast senders and our own echoes are skipped
- Typing indicator (read receipt + typing flag on the last inbound message)
- Dry-run mode: sends are logged and reported successful without any HTTP call
"""
from __future__ import annotations

import hashlib
import hmac
import uuid
import structlog
from typing import Any, Optional

import httpx
from tenacity import retry, retry_if_exception_type, stop_after_attempt, wait_exponential

from channels.base import ChannelError, Transport
from config.settings import AccountConfig
from models.schemas import InboundMessage, SendOutcome
from utils.phone import from_whatsapp_id, to_wa_digits

logger = structlog.get_logger()

GRAPH_URL = "https://graph.facebook.com"


class WhatsAppCloudTransport(Transport):
    """One WhatsApp Business phone number, used as one sending account."""

    name = "whatsapp"

    def __init__(self, config: AccountConfig, client: Optional[httpx.AsyncClient] = None):
        super().__init__(config.id)
        self._config = config
        self._client = client
        self._last_inbound_id: dict[str, str] = {}

    @property
    def dry_run(self) -> bool:
        return self._config.dry_run

    @property
    def messages_url(self) -> str:
        return f"{GRAPH_URL}/{self._config.api_version}/{self._config.phone_number_id}/messages"

    # ── Lifecycle ─────────────────────────────────────────────

    async def _get_client(self) -> httpx.AsyncClient:
        if self._client is None or self._client.is_closed:
            self._client = httpx.AsyncClient(
                headers={"Authorization": f"Bearer {self._config.access_token}"},
                timeout=httpx.Timeout(30.0, connect=10.0),
            )
        return self._client

    async def start(self) -> None:
        if not self.dry_run and not (self._config.phone_number_id and self._config.access_token):
            logger.error("whatsapp_missing_credentials", account_id=self.account_id)
            self._ready = False
            return
        self._ready = True
        logger.info("whatsapp_transport_ready", account_id=self.account_id, dry_run=self.dry_run)

    async def stop(self) -> None:
        self._ready = False
        if self._client is not None and not self._client.is_closed:
            await self._client.aclose()

    # ── HTTP ──────────────────────────────────────────────────

    @retry(
        retry=retry_if_exception_type(httpx.TransportError),
        stop=stop_after_attempt(2),
        wait=wait_exponential(min=1, max=5),
        reraise=True,
    )
    async def _post(self, payload: dict[str, Any]) -> dict[str, Any]:
        client = await self._get_client()
        resp = await client.post(self.messages_url, json=payload)
        if resp.status_code >= 400:
            logger.error(
                "whatsapp_api_error",
                account_id=self.account_id,
                status=resp.status_code,
                body=resp.text[:500],
            )
            raise ChannelError(f"WhatsApp API error {resp.status_code}", self.name,
                               retryable=resp.status_code >= 500)
        return resp.json()

    # ── Send ──────────────────────────────────────────────────

    async def _do_send(self, contact_id: str, text: str) -> SendOutcome:
        to = to_wa_digits(contact_id)
        if not to:
            return SendOutcome(success=False, error="invalid recipient")

        if self.dry_run:
            msg_id = f"wamid.{uuid.uuid4().hex[:20]}"
            logger.info("whatsapp_text_sent", account_id=self.account_id, to=to,
                        msg_id=msg_id, dry_run=True)
            return SendOutcome(success=True, channel_message_id=msg_id)

        payload = {
            "messaging_product": "whatsapp",
            "recipient_type": "individual",
            "to": to,
            "type": "text",
            "text": {"preview_url": False, "body": text},
        }
        try:
            body = await self._post(payload)
        except httpx.HTTPError as e:
            return SendOutcome(success=False, error=f"network: {e}")

        msg_id = ((body.get("messages") or [{}])[0]).get("id", "")
        logger.info("whatsapp_text_sent", account_id=self.account_id, to=to, msg_id=msg_id)
        return SendOutcome(success=True, channel_message_id=msg_id)

    async def _do_set_typing(self, contact_id: str, on: bool) -> None:
        # the Cloud API clears the indicator itself when the reply is sent
        if not on or self.dry_run:
            return
        message_id = self._last_inbound_id.get(contact_id)
        if not message_id:
            return
        await self._post({
            "messaging_product": "whatsapp",
            "status": "read",
            "message_id": message_id,
            "typing_indicator": {"type": "text"},
        })

    # ── Webhook verification ──────────────────────────────────

    def verify_webhook(self, params: dict[str, Any]) -> Optional[str]:
        """
        Verify the WhatsApp webhook subscription.
        Returns the challenge string on success, None on failure.
        """
        mode = params.get("hub.mode", "")
        token = params.get("hub.verify_token", "")
        challenge = params.get("hub.challenge", "")

        if mode == "subscribe" and token and token == self._config.verify_token:
            return challenge
        return None

    def verify_signature(self, body: bytes, signature: str) -> bool:
        """Check X-Hub-Signature-256. Always true when no app secret is configured."""
        secret = self._config.app_secret
        if not secret:
            return True
        expected = "sha256=" + hmac.new(secret.encode(), body, hashlib.sha256).hexdigest()
        return hmac.compare_digest(expected, signature or "")

    # ── Inbound parsing ───────────────────────────────────────

    async def _parse_inbound(self, raw_payload: dict[str, Any]) -> list[InboundMessage]:
        """Parse a WhatsApp Cloud API webhook payload into inbound messages."""
        parsed: list[InboundMessage] = []
        for entry in raw_payload.get("entry") or []:
            for change in entry.get("changes") or []:
                value = change.get("value") or {}
                names = {
                    c.get("wa_id", ""): (c.get("profile") or {}).get("name", "")
                    for c in value.get("contacts") or []
                }
                # Status updates (sent/delivered/read) carry no "messages"
                for msg in value.get("messages") or []:
                    message = self._parse_message(msg, names)
                    if message is not None:
                        parsed.append(message)
        return parsed

    def _parse_message(self, msg: dict[str, Any], names: dict[str, str]) -> Optional[InboundMessage]:
        sender = msg.get("from", "")
        if not sender or sender.endswith("@g.us") or sender == "status@broadcast":
            return None
        if msg.get("from_me"):
            return None

        msg_type = msg.get("type", "text")
        text = ""
        if msg_type == "text":
            text = (msg.get("text") or {}).get("body", "")
        elif msg_type == "interactive":
            interactive = msg.get("interactive") or {}
            reply = interactive.get("button_reply") or interactive.get("list_reply") or {}
            text = reply.get("title", "")
        elif msg_type == "button":
            text = (msg.get("button") or {}).get("text", "")
        elif msg_type in ("image", "video", "document"):
            text = (msg.get(msg_type) or {}).get("caption", "")

        if not text:
            logger.debug("whatsapp_inbound_skipped", type=msg_type, sender=sender)
            return None

        contact_id = from_whatsapp_id(sender)
        msg_id = msg.get("id", "")
        if msg_id:
            self._last_inbound_id[contact_id] = msg_id
        return InboundMessage(
            sender=contact_id,
            text=text,
            message_id=msg_id,
            metadata={
                "account_id": self.account_id,
                "message_type": msg_type,
                "sender_name": names.get(sender, ""),
            },
        )
