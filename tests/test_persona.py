"""Tests for reply texts, the system prompt and conversation summaries."""
import random

import pytest

from config.business import BUSINESS_FACTS
from config.messages import (
    CANNED_RESPONSES, FALLBACK_REPLY, INTEREST_ANCHOR, OPENING_MESSAGES,
    OUTREACH_TEMPLATES,
)
from config.settings import settings_from_dict
from core.persona import PersonaPrompt, ReplyLibrary, conversation_summary
from models.schemas import ConversationRecord, ConversationTurn, Intent


class TestReplyLibrary:
    def test_outreach_exact_category(self, library):
        assert library.outreach_for("schilder") == OUTREACH_TEMPLATES["schilder"]

    def test_outreach_category_is_trimmed_and_case_insensitive(self, library):
        assert library.outreach_for("  Timmerman ") == OUTREACH_TEMPLATES["timmerman"]

    def test_outreach_unknown_category_gets_default(self, library):
        assert library.outreach_for("astronaut") == OUTREACH_TEMPLATES["default"]
        assert library.outreach_for("") == OUTREACH_TEMPLATES["default"]

    def test_opening_is_one_of_the_openings(self, library):
        assert library.opening() in OPENING_MESSAGES

    def test_canned_reply_from_options(self, library):
        assert library.canned_for(Intent.COSTS) in CANNED_RESPONSES["costs"]
        assert library.has_canned(Intent.COSTS)
        assert not library.has_canned(Intent.GENERAL)
        assert library.canned_for(Intent.GENERAL) is None

    def test_interest_reply_includes_profession_message(self, library):
        reply = library.canned_for(Intent.INTEREST, profession="schilder")
        extra = BUSINESS_FACTS["professional_messages"]["schilder"]
        assert extra in reply
        assert reply.index(extra) < reply.index(INTEREST_ANCHOR)

    def test_interest_reply_without_known_profession(self, library):
        reply = library.canned_for(Intent.INTEREST, profession="astronaut")
        assert reply == CANNED_RESPONSES["interest"][0]

    def test_from_settings_applies_overrides(self):
        settings = settings_from_dict({
            "templates": {
                "outreach": {"schilder": "Hallo schilder!"},
                "openings": ["Hoi daar!"],
                "fallback": "Moment graag.",
            },
        })
        library = ReplyLibrary.from_settings(settings, rng=random.Random(0))
        assert library.outreach_for("schilder") == "Hallo schilder!"
        assert library.outreach_for("dakdekker") == OUTREACH_TEMPLATES["dakdekker"]
        assert library.opening() == "Hoi daar!"
        assert library.fallback == "Moment graag."

    def test_default_fallback(self, library):
        assert library.fallback == FALLBACK_REPLY


class TestPersonaPrompt:
    def test_prompt_embeds_name_facts_and_summary(self, prompt):
        text = prompt.build("--- SAMENVATTING ---")
        assert "Je bent Sofia" in text
        assert "--- SAMENVATTING ---" in text
        assert BUSINESS_FACTS["signup_link"] in text


class TestConversationSummary:
    def test_empty_history(self):
        assert conversation_summary(ConversationRecord(contact_id="+31612345678")) == \
            "Geen eerdere conversaties."

    def test_summary_lists_state_and_recent_turns(self):
        record = ConversationRecord(contact_id="+31612345678")
        record.state.profession = "dakdekker"
        record.state.add_topic("kosten")
        for i in range(6):
            record.append_turn(ConversationTurn(inbound=f"vraag {i}", outbound=f"antwoord {i}"))
        record.state.message_count = 6

        summary = conversation_summary(record, agent_name="Sofia")
        assert "Vakgebied: dakdekker" in summary
        assert "Besproken onderwerpen: kosten" in summary
        assert "Fase: deep_conversation" in summary
        assert "Totaal berichten: 6" in summary
        assert "Klant: vraag 5\nSofia: antwoord 5" in summary
        # only the four most recent turns
        assert "vraag 1" not in summary
        assert "vraag 2" in summary

    def test_summary_without_profession_or_topics(self):
        record = ConversationRecord(contact_id="+31612345678")
        record.append_turn(ConversationTurn(inbound="hoi", outbound="hallo"))
        summary = conversation_summary(record)
        assert "Vakgebied nog onbekend" in summary
        assert "Nog geen specifieke onderwerpen besproken" in summary
        assert "Fase: initial" in summary
