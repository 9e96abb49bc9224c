"""Tests for Account: delivery, ledger commits, queue draining and inbound dispatch."""
import asyncio
from unittest.mock import AsyncMock

import pytest

from config.settings import AccountConfig
from core.account import Account
from models.schemas import Contact, InboundMessage
from fakes import FakeTransport, instant_sleep, wait_until


CONTACT = Contact(phone_number="+31612345678", category="schilder")


@pytest.fixture
def transport():
    return FakeTransport("acc1")


@pytest.fixture
def account(account_config, transport, ledger):
    return Account(account_config, transport, ledger, pacing=lambda: 0.0, sleep=instant_sleep)


class TestDeliver:
    @pytest.mark.asyncio
    async def test_success_commits_processed(self, account, transport, ledger):
        await transport.start()
        await ledger.claim(CONTACT.phone_number, CONTACT.category)

        outcome = await account.deliver(CONTACT, "Hoi schilder!")

        assert outcome.success
        assert transport.sent == [("+31612345678", "Hoi schilder!")]
        entry = ledger.get_entry(CONTACT.phone_number)
        assert entry.is_processed
        assert entry.success is True
        assert entry.account_id == "acc1"
        assert account.sent_count == 1

    @pytest.mark.asyncio
    async def test_failure_is_committed_and_not_retried(self, account_config, ledger):
        transport = FakeTransport("acc1", fail=True)
        account = Account(account_config, transport, ledger)
        await transport.start()
        await ledger.claim(CONTACT.phone_number)

        outcome = await account.deliver(CONTACT, "Hoi!")

        assert not outcome.success
        assert ledger.get_entry(CONTACT.phone_number).success is False
        assert account.failed_count == 1
        assert not account.enqueue(CONTACT, "Hoi!")

    @pytest.mark.asyncio
    async def test_not_ready_transport_counts_as_failure(self, account, ledger):
        outcome = await account.deliver(CONTACT, "Hoi!")
        assert not outcome.success
        assert ledger.is_processed(CONTACT.phone_number)

    @pytest.mark.asyncio
    async def test_already_processed_contact_is_skipped(self, account, transport, ledger):
        await transport.start()
        await ledger.commit(CONTACT.phone_number, "acc2", "schilder", True)

        assert await account.deliver(CONTACT, "Hoi!") is None
        assert transport.sent == []
        assert ledger.get_entry(CONTACT.phone_number).account_id == "acc2"


class TestQueue:
    def test_enqueue_refused_when_disabled(self, transport, ledger):
        account = Account(AccountConfig(id="off", enabled=False), transport, ledger)
        assert not account.enqueue(CONTACT, "Hoi!")
        assert account.pending_count == 0

    @pytest.mark.asyncio
    async def test_drain_sends_in_fifo_order(self, account, transport, ledger):
        await transport.start()
        contacts = [Contact(phone_number=f"+3161234560{i}") for i in range(3)]
        for i, c in enumerate(contacts):
            await ledger.claim(c.phone_number)
            assert account.enqueue(c, f"bericht {i}")

        assert await account.drain() == 3
        assert [text for _, text in transport.sent] == ["bericht 0", "bericht 1", "bericht 2"]
        assert account.pending_count == 0

    @pytest.mark.asyncio
    async def test_drain_loop_delivers_enqueued_messages(self, account, transport, ledger):
        await account.start()
        await ledger.claim(CONTACT.phone_number)
        account.enqueue(CONTACT, "Hoi!")

        assert await wait_until(lambda: ledger.is_processed(CONTACT.phone_number))
        assert transport.sent == [("+31612345678", "Hoi!")]
        await account.stop()
        assert not transport.ready

    @pytest.mark.asyncio
    async def test_drain_loop_paces_between_sends(self, account_config, transport, ledger):
        sleep = AsyncMock()
        account = Account(account_config, transport, ledger, pacing=lambda: 30.0, sleep=sleep)
        await account.start()
        for i in range(2):
            c = Contact(phone_number=f"+3161234560{i}")
            await ledger.claim(c.phone_number)
            account.enqueue(c, "Hoi!")

        assert await wait_until(lambda: len(transport.sent) == 2)
        waits = [call.args[0] for call in sleep.await_args_list]
        assert len(waits) == 1
        assert 0 < waits[0] <= 30.0
        await account.stop()


class TestConversationSide:
    @pytest.mark.asyncio
    async def test_send_reply_does_not_touch_ledger(self, account, transport, ledger):
        await transport.start()
        outcome = await account.send_reply(CONTACT.phone_number, "Graag gedaan!")
        assert outcome.success
        assert account.replies_sent == 1
        assert ledger.get_entry(CONTACT.phone_number) is None

    @pytest.mark.asyncio
    async def test_inbound_messages_reach_handler(self, account, transport):
        handler = AsyncMock()
        account.on_inbound(handler)
        await account.start()

        message = InboundMessage(sender="+31612345678", text="Hoi", message_id="m1")
        await transport.dispatch(message)
        await account.wait_inbound_idle()

        handler.assert_awaited_once_with(account, message)
        await account.stop()

    @pytest.mark.asyncio
    async def test_handler_errors_are_contained(self, account, transport):
        account.on_inbound(AsyncMock(side_effect=RuntimeError("boom")))
        await account.start()
        await transport.dispatch(InboundMessage(sender="+31612345678", text="Hoi"))
        await account.wait_inbound_idle()
        assert account.ready
        await account.stop()

    @pytest.mark.asyncio
    async def test_stop_lets_inbound_reply_finish(self, account, transport):
        replied = []

        async def handler(acc, message):
            await asyncio.sleep(0.02)
            replied.append(message.text)

        account.on_inbound(handler)
        await account.start()
        await transport.dispatch(InboundMessage(sender="+31612345678", text="Hoi"))

        await account.stop()
        assert replied == ["Hoi"]

    @pytest.mark.asyncio
    async def test_stop_cancels_inbound_after_grace(self, account, transport):
        account.inbound_grace_s = 0.01
        account.on_inbound(lambda acc, message: asyncio.Event().wait())
        await account.start()
        await transport.dispatch(InboundMessage(sender="+31612345678", text="Hoi"))

        await account.stop()
        await account.wait_inbound_idle()

    @pytest.mark.asyncio
    async def test_stats(self, account, transport):
        await transport.start()
        stats = account.stats()
        assert stats["id"] == "acc1"
        assert stats["ready"] is True
        assert stats["queue_size"] == 0
