"""Shared test fixtures for the outreach system."""
import random

import pytest

from config.settings import (
    AccountConfig, CampaignConfig, ConversationConfig, Settings, StorageConfig,
    reset_settings,
)
from core.persona import PersonaPrompt, ReplyLibrary
from database.store_factory import reset_stores
from database.store_memory import InMemoryConversationStore, InMemoryLedger
from models.schemas import Contact


@pytest.fixture(autouse=True)
def _reset_singletons():
    reset_stores()
    reset_settings()
    yield
    reset_stores()
    reset_settings()


@pytest.fixture
def rng() -> random.Random:
    return random.Random(42)


@pytest.fixture
def ledger() -> InMemoryLedger:
    return InMemoryLedger()


@pytest.fixture
def conversation_store() -> InMemoryConversationStore:
    return InMemoryConversationStore(history_limit=20)


@pytest.fixture
def library(rng) -> ReplyLibrary:
    return ReplyLibrary(rng=rng)


@pytest.fixture
def prompt(library) -> PersonaPrompt:
    return PersonaPrompt(Settings().persona, library.business)


@pytest.fixture
def account_config() -> AccountConfig:
    return AccountConfig(id="acc1", name="Hamza iPhone", dry_run=True)


@pytest.fixture
def settings() -> Settings:
    return Settings(
        campaign=CampaignConfig(max_messages_per_hour=3600, distribution_pattern="even", batch_size=10),
        accounts=[
            AccountConfig(id="acc1", name="First", verify_token="verify-me"),
            AccountConfig(id="acc2", name="Second", verify_token="verify-me"),
        ],
        conversation=ConversationConfig(),
        storage=StorageConfig(backend="memory"),
    )


@pytest.fixture
def contacts() -> list[Contact]:
    return [
        Contact(phone_number="+31612345601", category="schilder"),
        Contact(phone_number="+31612345602", category="Timmerman "),
        Contact(phone_number="+31612345603", category="onbekend"),
    ]
