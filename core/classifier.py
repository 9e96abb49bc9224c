"""
Intent Classifier — maps an inbound message to one named intent.

Rules are an ordered table; the first rule whose pattern matches the
normalized (lower-cased, trimmed) text wins, and `general` is the default.
The order is a behavioral contract: "hoi, wat kost het?" is a greeting
because greeting is checked before costs.
"""
from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Optional

from models.schemas import Intent


@dataclass(frozen=True)
class TriggerRule:
    name: Intent
    pattern: re.Pattern
    rank: int


def _rx(body: str) -> re.Pattern:
    return re.compile(body, re.IGNORECASE)


# Dutch trigger vocabulary, one pattern per intent.
TRIGGER_PATTERNS: dict[Intent, re.Pattern] = {
    Intent.INTEREST: _rx(r"(interesse|aanmelden|opgeven|inschrijven|registreren|hoe werkt|meer info|klinkt goed|ik wil|vertel meer|kan ik|ontvangen|klussen|opdrachten)"),
    Intent.COSTS: _rx(r"(wat kost|kost het|prijs|prijzen|betalen|tarief|kosten|hoeveel|duur|euro|geld|betaling)"),
    Intent.REJECTION: _rx(r"(geen interesse|niet interessant|nee bedankt|nee dank|liever niet|nee|niet nodig|ik pas)"),
    Intent.STOP_CONVERSATION: _rx(r"(stop|niet meer bellen|laat me met rust|bel me niet|niet meer contact|meld me af|afmelden|unsubscribe|contact verboden|niet storen|wil niet praten|kappen|blokkeer|hou op|genoeg|klaar)"),
    Intent.AGGRESSIVE: _rx(r"(rot op|fuck|tering|kanker|kut|shit|verdomme|lul|eikel|mongool)"),
    Intent.TRUST: _rx(r"(betrouwbaar|echt|oplichting|scam|werkt dit|is dit echt|nep|fraude)"),
    Intent.HOW_IT_WORKS: _rx(r"(hoe werkt|uitleg|systeem|werkwijze|platform werking|hoe gaat|doe je|aanmeldproces)"),
    Intent.SHORT_ACKNOWLEDGMENT: _rx(r"^(ok|okay|oke|prima|goed|top|bedankt|dank je|thanks|ja|nee)$"),
    Intent.GREETING: _rx(r"(hallo|hoi|hey|goedemorgen|goedemiddag|goedenavond|hi|dag)"),
    Intent.PROFESSION: _rx(r"(schilder|timmerman|loodgieter|dakdekker|aannemer|elektricien|installateur|stukadoor|klusjesman)"),
    Intent.CALL_REQUEST: _rx(r"(bellen|telefonisch|gesprek|even praten|contact|telefoon)"),
    Intent.POOR_DUTCH: _rx(r"(ik spreek|niet goed nederlands|slecht nederlands)"),
    Intent.NUMBER_SOURCE: _rx(r"(hoe kom je aan|waar heb je|mijn nummer|nummer vandaan|gegevens|contact|hebt gevonden)"),
    Intent.IDENTITY_QUESTION: _rx(r"(wie is dit|wie ben je|wie ben jij|met wie spreek ik|wie ben)"),
}

PRIORITY: tuple[Intent, ...] = (
    Intent.AGGRESSIVE,
    Intent.STOP_CONVERSATION,
    Intent.GREETING,
    Intent.INTEREST,
    Intent.REJECTION,
    Intent.TRUST,
    Intent.COSTS,
    Intent.HOW_IT_WORKS,
    Intent.CALL_REQUEST,
    Intent.POOR_DUTCH,
    Intent.SHORT_ACKNOWLEDGMENT,
    Intent.IDENTITY_QUESTION,
    Intent.NUMBER_SOURCE,
    Intent.PROFESSION,
)

RULES: tuple[TriggerRule, ...] = tuple(
    TriggerRule(name=intent, pattern=TRIGGER_PATTERNS[intent], rank=rank)
    for rank, intent in enumerate(PRIORITY)
)


def normalize(text: str) -> str:
    return (text or "").lower().strip()


class IntentClassifier:
    """Stateless classifier over an ordered rule table."""

    def __init__(self, rules: tuple[TriggerRule, ...] = RULES):
        self._rules = tuple(sorted(rules, key=lambda r: r.rank))
        self._by_name = {r.name: r for r in self._rules}

    @property
    def rules(self) -> tuple[TriggerRule, ...]:
        return self._rules

    def classify(self, text: str) -> Intent:
        normalized = normalize(text)
        for rule in self._rules:
            if rule.pattern.search(normalized):
                return rule.name
        return Intent.GENERAL

    def matches(self, intent: Intent, text: str) -> bool:
        rule = self._by_name.get(intent)
        return bool(rule and rule.pattern.search(normalize(text)))

    def extract(self, intent: Intent, text: str) -> Optional[str]:
        """Matched substring for an intent (e.g. the profession word), or None."""
        rule = self._by_name.get(intent)
        if rule is None:
            return None
        match = rule.pattern.search(normalize(text))
        return match.group(0) if match else None


_default = IntentClassifier()


def classify(text: str) -> Intent:
    return _default.classify(text)
