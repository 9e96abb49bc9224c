"""Tests for the command-line campaign runner."""
import json
import textwrap

import pytest

from scripts.run_campaign import load_contacts, run_campaign


@pytest.fixture
def contacts_file(tmp_path):
    path = tmp_path / "contacts.json"
    path.write_text(json.dumps([
        {"phone_number": "06-12345601", "category": "schilder"},
        {"phone_number": "0612345602", "category": "dakdekker"},
        {"phone_number": "12"},
        "not a contact",
    ]))
    return path


@pytest.fixture
def config_file(tmp_path):
    path = tmp_path / "settings.yaml"
    path.write_text(textwrap.dedent(f"""
        campaign:
          max_messages_per_hour: 360000
          distribution_pattern: even
        accounts:
          - id: dry
            dry_run: true
        storage:
          backend: file
          data_dir: "{tmp_path / 'data'}"
    """))
    return path


class TestLoadContacts:
    def test_keeps_objects_only(self, contacts_file):
        assert len(load_contacts(str(contacts_file))) == 3

    def test_rejects_non_list(self, tmp_path):
        path = tmp_path / "bad.json"
        path.write_text('{"phone_number": "0612345601"}')
        with pytest.raises(ValueError):
            load_contacts(str(path))


class TestRunCampaign:
    @pytest.mark.asyncio
    async def test_sends_valid_contacts_and_persists_ledger(self, contacts_file, config_file, tmp_path):
        result = await run_campaign(str(contacts_file), str(config_file), poll_interval=0.01)

        assert result["contacts"] == 2
        assert result["total_processed"] == 2
        assert result["succeeded"] == 2
        ledger = json.loads((tmp_path / "data" / "ledger.json").read_text())
        assert set(ledger) == {"+31612345601", "+31612345602"}
