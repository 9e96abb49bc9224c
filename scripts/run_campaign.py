#!/usr/bin/env python3
"""
Campaign Runner — send one outreach campaign from a contact file and exit.

The contact file is a JSON list of {"phone_number", "category"} objects.
Numbers are normalized; invalid ones are dropped. Contacts already in the
ledger are skipped, so re-running the same file only reaches new contacts
(and those left pending by an interrupted run).

Replies are not handled here; run the API server for conversations.

Usage:
    python scripts/run_campaign.py contacts.json
    python scripts/run_campaign.py contacts.json --config config/settings.yaml
"""
import argparse
import asyncio
import json
import os
import sys
from typing import Any

# Ensure app root is on path
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from dotenv import load_dotenv


def load_contacts(path: str) -> list[dict[str, Any]]:
    with open(path, encoding="utf-8") as f:
        data = json.load(f)
    if not isinstance(data, list):
        raise ValueError(f"{path}: expected a JSON list of contacts")
    return [row for row in data if isinstance(row, dict)]


async def run_campaign(contacts_path: str, config_path: str = None,
                       poll_interval: float = 1.0) -> dict[str, Any]:
    from config.settings import load_settings
    from core.orchestrator import Orchestrator

    settings = load_settings(config_path)
    orchestrator = Orchestrator.from_settings(settings)
    contacts = orchestrator.normalize_contacts(load_contacts(contacts_path))

    await orchestrator.start()
    try:
        orchestrator.submit_contacts(contacts)
        while orchestrator.scheduler.backlog or any(
            a.pending_count or a.busy for a in orchestrator.accounts if a.ready
        ):
            await asyncio.sleep(poll_interval)
    finally:
        await orchestrator.stop()

    return {"contacts": len(contacts), **orchestrator.ledger.stats()}


def main():
    parser = argparse.ArgumentParser(description="Send an outreach campaign")
    parser.add_argument("contacts", help="JSON file with [{phone_number, category}]")
    parser.add_argument("--config", default=None, help="settings.yaml path (default: OUTREACH_CONFIG)")
    parser.add_argument("--poll", type=float, default=1.0, help="progress check interval in seconds")
    args = parser.parse_args()

    load_dotenv()
    result = asyncio.run(run_campaign(args.contacts, args.config, args.poll))
    print(json.dumps(result, indent=2))


if __name__ == "__main__":
    main()
