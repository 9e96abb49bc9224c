"""
Tests for CampaignScheduler.

Covers:
  - Dedup through the ledger (a contact is scheduled at most once)
  - Account selection (random / least_loaded, readiness)
  - Batch sizing and the paced foreground run
  - Resuming contacts left pending by an earlier run
"""
import random
from unittest.mock import AsyncMock

import pytest
import pytest_asyncio

from config.messages import OUTREACH_TEMPLATES
from config.settings import AccountConfig, CampaignConfig
from core.account import Account
from core.scheduler import CampaignScheduler
from models.schemas import Contact
from fakes import FakeTransport, wait_until


def make_account(ledger, account_id: str, enabled: bool = True) -> Account:
    return Account(AccountConfig(id=account_id, enabled=enabled), FakeTransport(account_id), ledger)


def make_contacts(n: int, category: str = "schilder") -> list[Contact]:
    return [Contact(phone_number=f"+316000000{i:02d}", category=category) for i in range(n)]


@pytest_asyncio.fixture
async def accounts(ledger):
    accs = [make_account(ledger, "acc1"), make_account(ledger, "acc2")]
    for a in accs:
        await a.transport.start()
    return accs


@pytest.fixture
def scheduler(ledger, accounts, library):
    return CampaignScheduler(ledger, accounts, library,
                             CampaignConfig(distribution_pattern="even", batch_size=10),
                             rng=random.Random(1), sleep=AsyncMock())


class TestScheduleBatch:
    @pytest.mark.asyncio
    async def test_contact_is_scheduled_once(self, scheduler, contacts):
        assert await scheduler.schedule_batch(contacts) == 3
        assert await scheduler.schedule_batch(contacts) == 0
        assert scheduler.total_queued == 3
        assert scheduler.total_skipped == 3

    @pytest.mark.asyncio
    async def test_category_selects_outreach_template(self, scheduler, accounts, contacts):
        await scheduler.schedule_batch(contacts)
        for a in accounts:
            await a.drain()
        sent = {cid: text for a in accounts for cid, text in a.transport.sent}
        assert sent["+31612345601"] == OUTREACH_TEMPLATES["schilder"]
        assert sent["+31612345602"] == OUTREACH_TEMPLATES["timmerman"]
        assert sent["+31612345603"] == OUTREACH_TEMPLATES["default"]

    @pytest.mark.asyncio
    async def test_sends_commit_every_contact(self, scheduler, accounts, ledger, contacts):
        await scheduler.schedule_batch(contacts)
        for a in accounts:
            await a.drain()
        assert all(ledger.is_processed(c.phone_number) for c in contacts)
        assert ledger.stats()["total_processed"] == 3

    @pytest.mark.asyncio
    async def test_batch_is_capped_and_overflow_requeued(self, ledger, accounts, library):
        scheduler = CampaignScheduler(ledger, accounts, library, CampaignConfig(batch_size=2))
        contacts = make_contacts(5)

        assert await scheduler.schedule_batch(contacts) == 2
        assert len(ledger.entries()) == 2
        assert len(ledger.entries()) + scheduler.backlog == 5

        scheduler._sleep = AsyncMock()
        assert await scheduler.run([]) == 3
        assert set(ledger.entries()) == {c.phone_number for c in contacts}

    @pytest.mark.asyncio
    async def test_no_ready_account_leaves_contact_pending(self, ledger, library, contacts):
        idle = make_account(ledger, "idle")
        scheduler = CampaignScheduler(ledger, [idle], library)

        assert await scheduler.schedule_batch(contacts[:1]) == 0
        assert scheduler.no_ready_account == 1
        assert ledger.is_pending(contacts[0].phone_number)

    @pytest.mark.asyncio
    async def test_processed_elsewhere_is_skipped(self, scheduler, ledger, contacts):
        await ledger.commit(contacts[0].phone_number, "acc9", "schilder", True)
        assert await scheduler.schedule_batch(contacts) == 2


class TestAccountSelection:
    @pytest.mark.asyncio
    async def test_only_ready_accounts_are_chosen(self, ledger, library):
        ready = make_account(ledger, "ready")
        await ready.transport.start()
        disabled = make_account(ledger, "disabled", enabled=False)
        await disabled.transport.start()
        not_started = make_account(ledger, "not_started")

        scheduler = CampaignScheduler(ledger, [ready, disabled, not_started], library,
                                      rng=random.Random(5))
        assert {scheduler.select_account().id for _ in range(30)} == {"ready"}

    @pytest.mark.asyncio
    async def test_least_loaded(self, ledger, accounts, library):
        busy, idle = accounts
        for c in make_contacts(2, "x"):
            busy.enqueue(c, "Hoi")
        scheduler = CampaignScheduler(ledger, accounts, library,
                                      CampaignConfig(account_selection="least_loaded"))
        assert scheduler.select_account() is idle

    def test_none_when_no_accounts(self, ledger, library):
        assert CampaignScheduler(ledger, [], library).select_account() is None


class TestRun:
    @pytest.mark.asyncio
    async def test_run_paces_between_batches(self, ledger, accounts, library):
        sleep = AsyncMock()
        scheduler = CampaignScheduler(
            ledger, accounts, library,
            CampaignConfig(max_messages_per_hour=3600, distribution_pattern="even", batch_size=2),
            sleep=sleep,
        )
        assert await scheduler.run(make_contacts(5)) == 5
        # batches of 2, 2, 1 with a pause after the first two
        assert sleep.await_count == 2
        assert sleep.await_args_list[0].args[0] == pytest.approx(2.0)
        assert scheduler.backlog == 0

    @pytest.mark.asyncio
    async def test_background_loop_drains_work_queue(self, scheduler, ledger):
        await scheduler.start()
        assert scheduler.submit(make_contacts(4)) == 4
        assert await wait_until(lambda: len(ledger.entries()) == 4)
        assert scheduler.backlog == 0
        await scheduler.stop()

    @pytest.mark.asyncio
    async def test_submit_is_bounded(self, ledger, accounts, library):
        scheduler = CampaignScheduler(ledger, accounts, library,
                                      CampaignConfig(max_pending_contacts=3))
        assert scheduler.submit(make_contacts(5)) == 3
        assert scheduler.backlog == 3


class TestResume:
    @pytest.mark.asyncio
    async def test_pending_contacts_are_resumed(self, ledger, accounts, library, contacts):
        for c in contacts:
            await ledger.claim(c.phone_number, c.category)
        await ledger.commit(contacts[0].phone_number, "acc1", "schilder", True)

        scheduler = CampaignScheduler(ledger, accounts, library)
        assert await scheduler.resume_pending() == 2
        for a in accounts:
            await a.drain()
        assert all(ledger.is_processed(c.phone_number) for c in contacts)

    @pytest.mark.asyncio
    async def test_resume_without_ready_account(self, ledger, library, contacts):
        await ledger.claim(contacts[0].phone_number)
        scheduler = CampaignScheduler(ledger, [make_account(ledger, "idle")], library)
        assert await scheduler.resume_pending() == 0
        assert ledger.is_pending(contacts[0].phone_number)


class TestStats:
    @pytest.mark.asyncio
    async def test_stats_count_by_category_and_account(self, scheduler, contacts):
        await scheduler.schedule_batch(contacts)
        stats = scheduler.stats()
        assert stats["total_queued"] == 3
        assert stats["by_category"] == {"schilder": 1, "timmerman": 1, "onbekend": 1}
        assert sum(stats["by_account"].values()) == 3
        assert len(stats["accounts"]) == 2
