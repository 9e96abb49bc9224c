"""
FastAPI Application — campaign submission and WhatsApp webhooks.

Provides:
- Campaign submission (contacts → scheduler work queue)
- Per-account WhatsApp webhook verification and inbound delivery
- Health and statistics for accounts, ledger, scheduler and conversations
"""
from __future__ import annotations

import json
import structlog
from contextlib import asynccontextmanager
from typing import Any, Optional

# Load .env before any config is read
from dotenv import load_dotenv
load_dotenv()

from fastapi import FastAPI, HTTPException, Request
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field

from channels.whatsapp_adapter import WhatsAppCloudTransport
from config.settings import get_settings
from core.account import Account
from core.orchestrator import Orchestrator

logger = structlog.get_logger()


# ──────────────────────────────────────────────────────────────
#  Bootstrap
# ──────────────────────────────────────────────────────────────

@asynccontextmanager
async def lifespan(app: FastAPI):
    # tests and embedding code may install a prepared orchestrator
    orchestrator: Optional[Orchestrator] = getattr(app.state, "orchestrator", None)
    if orchestrator is None:
        orchestrator = Orchestrator.from_settings(get_settings())
        app.state.orchestrator = orchestrator

    await orchestrator.start()
    logger.info("app_started", accounts=[a.id for a in orchestrator.accounts])

    yield

    await orchestrator.stop()
    logger.info("app_stopped")


app = FastAPI(
    title="WhatsApp Outreach",
    version="1.0.0",
    lifespan=lifespan,
)


def _orchestrator(request: Request) -> Orchestrator:
    orchestrator = getattr(request.app.state, "orchestrator", None)
    if orchestrator is None:
        raise HTTPException(503, "Service not started")
    return orchestrator


def _account(request: Request, account_id: str) -> Account:
    account = _orchestrator(request).get_account(account_id)
    if account is None:
        raise HTTPException(404, f"Unknown account: {account_id}")
    return account


def _whatsapp(account: Account) -> WhatsAppCloudTransport:
    transport = account.transport
    if not isinstance(transport, WhatsAppCloudTransport):
        raise HTTPException(400, f"Account {account.id} is not a WhatsApp account")
    return transport


# ══════════════════════════════════════════════════════════════
#  HEALTH & STATS
# ══════════════════════════════════════════════════════════════

@app.get("/health")
async def health(request: Request):
    orchestrator = _orchestrator(request)
    return {
        "status": "ok",
        "accounts": {
            a.id: {"enabled": a.enabled, "ready": a.ready, **a.transport.health()}
            for a in orchestrator.accounts
        },
    }


@app.get("/api/v1/stats")
async def stats(request: Request):
    return _orchestrator(request).stats()


# ══════════════════════════════════════════════════════════════
#  CAMPAIGNS
# ══════════════════════════════════════════════════════════════

class ContactIn(BaseModel):
    phone_number: str
    category: str = ""


class CampaignIn(BaseModel):
    contacts: list[ContactIn] = Field(default_factory=list)


@app.post("/api/v1/campaigns")
async def submit_campaign(body: CampaignIn, request: Request):
    orchestrator = _orchestrator(request)
    contacts = orchestrator.normalize_contacts(c.model_dump() for c in body.contacts)
    accepted = orchestrator.submit_contacts(contacts)
    return {
        "received": len(body.contacts),
        "valid": len(contacts),
        "accepted": accepted,
        "backlog": orchestrator.scheduler.backlog,
    }


# ══════════════════════════════════════════════════════════════
#  CONVERSATIONS
# ══════════════════════════════════════════════════════════════

@app.get("/api/v1/conversations/{contact_id}")
async def get_conversation(contact_id: str, request: Request) -> dict[str, Any]:
    machine = _orchestrator(request).state_machine
    state = await machine.get_state(contact_id)
    return {
        "contact_id": contact_id,
        "blocked": machine.is_blocked(contact_id),
        "stage": state.stage.value,
        "state": state.model_dump(),
        "history": [t.model_dump() for t in await machine.get_history(contact_id)],
        "summary": await machine.get_conversation_summary(contact_id),
    }


# ══════════════════════════════════════════════════════════════
#  WEBHOOKS — WhatsApp
# ══════════════════════════════════════════════════════════════

@app.get("/webhooks/whatsapp/{account_id}")
async def whatsapp_verify(account_id: str, request: Request):
    transport = _whatsapp(_account(request, account_id))
    challenge = transport.verify_webhook(dict(request.query_params))
    if challenge:
        return JSONResponse(content=int(challenge))
    raise HTTPException(403, "Verification failed")


@app.post("/webhooks/whatsapp/{account_id}")
async def whatsapp_webhook(account_id: str, request: Request):
    """Receive WhatsApp messages for one account, with signature verification."""
    account = _account(request, account_id)
    transport = _whatsapp(account)
    body_bytes = await request.body()

    signature = request.headers.get("X-Hub-Signature-256", "")
    if not transport.verify_signature(body_bytes, signature):
        logger.warning("whatsapp_webhook_signature_invalid", account_id=account_id)
        raise HTTPException(403, "Invalid signature")

    try:
        body = json.loads(body_bytes)
    except ValueError:
        raise HTTPException(400, "Invalid JSON")

    delivered = await transport.handle_inbound(body)
    return {"status": "ok", "received": len(delivered)}


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=8000)
