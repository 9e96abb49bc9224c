"""
Tests for the intent classifier.

Covers:
  - One representative message per intent
  - Priority order when several rules match
  - Attribute extraction (profession word)
"""
import pytest

from core.classifier import PRIORITY, RULES, IntentClassifier, classify
from models.schemas import Intent


@pytest.fixture
def classifier():
    return IntentClassifier()


class TestSingleIntent:
    @pytest.mark.parametrize("text,intent", [
        ("Rot op man", Intent.AGGRESSIVE),
        ("Stop met deze berichten", Intent.STOP_CONVERSATION),
        ("Goedemorgen", Intent.GREETING),
        ("Ja ik wil me aanmelden", Intent.INTEREST),
        ("Niet nodig, bedankt", Intent.REJECTION),
        ("Is dit echt?", Intent.TRUST),
        ("Wat kost het per maand?", Intent.COSTS),
        ("Geef eens uitleg over de werkwijze", Intent.HOW_IT_WORKS),
        ("wil je me bellen", Intent.CALL_REQUEST),
        ("Ik spreek niet goed nederlands", Intent.POOR_DUTCH),
        ("ok", Intent.SHORT_ACKNOWLEDGMENT),
        ("wie ben jij?", Intent.IDENTITY_QUESTION),
        ("Hoe kom je aan mijn nummer?", Intent.NUMBER_SOURCE),
        ("Ik ben timmerman", Intent.PROFESSION),
        ("Waar zit jullie kantoor?", Intent.GENERAL),
    ])
    def test_classify(self, classifier, text, intent):
        assert classifier.classify(text) == intent

    def test_case_and_whitespace_are_ignored(self, classifier):
        assert classifier.classify("   WAT KOST HET   ") == Intent.COSTS

    def test_empty_text_is_general(self, classifier):
        assert classifier.classify("") == Intent.GENERAL


class TestPriority:
    def test_aggressive_beats_stop(self, classifier):
        assert classifier.classify("fuck off, stop") == Intent.AGGRESSIVE

    def test_greeting_beats_costs(self, classifier):
        assert classifier.classify("hoi, wat kost het?") == Intent.GREETING

    def test_interest_beats_call_request(self, classifier):
        # "kan ik" is an interest trigger, checked before "bellen"
        assert classifier.classify("Kan ik je bellen?") == Intent.INTEREST

    def test_rejection_beats_short_acknowledgment(self, classifier):
        assert classifier.classify("nee") == Intent.REJECTION

    def test_short_acknowledgment_is_anchored(self, classifier):
        assert classifier.classify("ok prima") != Intent.SHORT_ACKNOWLEDGMENT

    def test_rules_follow_priority_table(self):
        assert tuple(r.name for r in RULES) == PRIORITY
        assert [r.rank for r in RULES] == list(range(len(PRIORITY)))

    def test_module_level_classify(self):
        assert classify("laat me met rust") == Intent.STOP_CONVERSATION


class TestExtraction:
    def test_extract_profession(self, classifier):
        assert classifier.extract(Intent.PROFESSION, "Ik werk als Loodgieter") == "loodgieter"

    def test_extract_without_match(self, classifier):
        assert classifier.extract(Intent.PROFESSION, "geen idee") is None

    def test_matches_ignores_priority(self, classifier):
        text = "hoi, wat kost het?"
        assert classifier.matches(Intent.COSTS, text)
        assert classifier.matches(Intent.GREETING, text)
