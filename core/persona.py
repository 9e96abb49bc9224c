"""
Persona — reply texts and the system prompt for the generative responder.

ReplyLibrary resolves every fixed text the system sends: outreach templates
by category, opening messages, canned replies by intent and the fallback.
PersonaPrompt assembles the Dutch system prompt from business facts and a
conversation summary.
"""
from __future__ import annotations

import random
from typing import Any, Optional

from config.business import BUSINESS_FACTS
from config.messages import (
    CANNED_RESPONSES, FALLBACK_REPLY, INTEREST_ANCHOR, OPENING_MESSAGES,
    OUTREACH_TEMPLATES,
)
from config.settings import PersonaConfig, Settings
from models.schemas import ConversationRecord, Intent


class ReplyLibrary:
    """All fixed message texts, with optional overrides from settings."""

    def __init__(
        self,
        outreach: Optional[dict[str, str]] = None,
        openings: Optional[list[str]] = None,
        canned: Optional[dict[str, list[str]]] = None,
        fallback: str = FALLBACK_REPLY,
        business: Optional[dict[str, Any]] = None,
        rng: Optional[random.Random] = None,
    ):
        self.outreach = {k.strip().lower(): v for k, v in (outreach or OUTREACH_TEMPLATES).items()}
        self.openings = list(openings or OPENING_MESSAGES)
        self.canned = dict(canned or CANNED_RESPONSES)
        self.fallback = fallback
        self.business = business or BUSINESS_FACTS
        self._rng = rng or random.Random()

    @classmethod
    def from_settings(cls, settings: Settings, rng: Optional[random.Random] = None) -> "ReplyLibrary":
        overrides = settings.templates or {}
        outreach = {**OUTREACH_TEMPLATES, **(overrides.get("outreach") or {})}
        canned = {**CANNED_RESPONSES, **(overrides.get("responses") or {})}
        business = {**BUSINESS_FACTS, **(settings.business or {})}
        return cls(
            outreach=outreach,
            openings=overrides.get("openings") or OPENING_MESSAGES,
            canned=canned,
            fallback=overrides.get("fallback") or FALLBACK_REPLY,
            business=business,
            rng=rng,
        )

    # ── Campaign ──────────────────────────────────────────────

    def outreach_for(self, category: str) -> str:
        """Exact (case-insensitive, trimmed) category match, else the default template."""
        key = (category or "").strip().lower()
        return self.outreach.get(key) or self.outreach["default"]

    # ── Conversation ──────────────────────────────────────────

    def opening(self) -> str:
        return self._rng.choice(self.openings)

    def has_canned(self, intent: Intent) -> bool:
        return bool(self.canned.get(intent.value))

    def canned_for(self, intent: Intent, profession: Optional[str] = None) -> Optional[str]:
        options = self.canned.get(intent.value)
        if not options:
            return None
        reply = self._rng.choice(options)
        if intent == Intent.INTEREST and profession:
            extra = self.profession_message(profession)
            if extra and INTEREST_ANCHOR in reply:
                reply = reply.replace(INTEREST_ANCHOR, f"{extra}\n\n{INTEREST_ANCHOR}", 1)
        return reply

    def profession_message(self, profession: str) -> Optional[str]:
        messages = self.business.get("professional_messages") or {}
        return messages.get(profession.strip().lower())


class PersonaPrompt:
    """Builds the system prompt; the conversation summary is embedded verbatim."""

    def __init__(self, persona: PersonaConfig, business: Optional[dict[str, Any]] = None):
        self.persona = persona
        self.business = business or BUSINESS_FACTS

    def build(self, summary: str) -> str:
        name = self.persona.name
        b = self.business
        return f"""Je bent {name}, een vriendelijke, nuchtere medewerker bij EenVakmanNodig. Je praat luchtig en in simpele taal. Je stuurt WhatsApp-berichten naar vakmensen zoals schilders, timmermannen, dakdekkers, stukadoors, enzovoort.

BELANGRIJKE INSTRUCTIES:
1. Je bent NOOIT een AI of digitale assistent - je bent gewoon {name} die bij EenVakmanNodig werkt
2. Spreek ALTIJD in simpel Nederlands
3. Gebruik GEEN moeilijke woorden
4. Gebruik GEEN verkooppraatjes
5. Houd berichten kort en duidelijk
6. Gebruik alleen complete links, geen knoppen
7. Gedraag je als een echt persoon, niet als een robot of AI
8. Als iemand vraagt wie dit is, zeg je alleen dat je {name} bent van EenVakmanNodig

CONVERSATIE HISTORIE:
{summary}

OVER JOU EN HET BEDRIJF:
- Je naam is {name} en je werkt bij {b.get("company_name", "")}
- Je helpt vakmensen om meer klussen te vinden
- Je benadert vakmensen om te zien of ze interesse hebben in meer klussen
- Als je wordt gevraagd hoe je aan hun nummer komt, zeg je dat je het via KvK of via internet hebt gevonden

OVER ONS PLATFORM:
- Wij ontvangen dagelijks {b.get("requests_per_day", "")} van klanten die een vakman zoeken
- Vakmensen ontvangen {b.get("requests_per_week_per_professional", "")}
- Elke klusaanvraag gaat naar {b.get("professionals_per_request", "")}

HOE HET WERKT:
1. Aanmelden: via {b.get("signup_link", "")}
2. Kosten: {b.get("monthly_fee", "")}
3. Je ontvangt contactgegevens van klanten die een klus hebben
4. Je kunt direct bellen of een afspraak maken met de klant
5. Je maakt je eigen offerte en stuurt deze naar de klant
6. Als de klus doorgaat, betaal je {b.get("commission", "")}

WANNEER BELLEN AANBIEDEN:
Als de vakman twijfelt of zelf om een belafspraak vraagt, zeg dan: "Ik kan ook even met je bellen als je dat makkelijker vindt – laat maar weten."

TOON: {self.persona.tone}

BELANGRIJK: Stel jezelf maar één keer voor (aan het begin), tenzij er specifiek naar gevraagd wordt. Geen proefperiode aanbieden - dit bestaat niet."""


_STAGE_LABELS = {"new": "initial", "engaged": "engaged", "deep": "deep_conversation"}


def conversation_summary(record: ConversationRecord, agent_name: str = "Sofia", recent: int = 4) -> str:
    """Short Dutch overview of a conversation for the system prompt."""
    if not record.turns:
        return "Geen eerdere conversaties."

    state = record.state
    profession = f"Vakgebied: {state.profession}" if state.profession else "Vakgebied nog onbekend"
    topics = (
        f"Besproken onderwerpen: {', '.join(state.topics)}" if state.topics
        else "Nog geen specifieke onderwerpen besproken"
    )
    lines = []
    for turn in record.turns[-recent:]:
        parts = []
        if turn.inbound:
            parts.append(f"Klant: {turn.inbound}")
        if turn.outbound:
            parts.append(f"{agent_name}: {turn.outbound}")
        lines.append("\n".join(parts))
    recent_context = "\n\n".join(lines)

    return (
        "--- Conversatie Overzicht ---\n"
        f"Eerste contact: {state.first_contact}\n"
        f"Laatste interactie: {state.last_activity or '-'}\n"
        f"Fase: {_STAGE_LABELS[state.stage.value]}\n"
        f"{profession}\n"
        f"{topics}\n"
        f"Taalvoorkeur: {state.language_preference}\n"
        f"Totaal berichten: {len(record.turns)}\n"
        "\n--- Recente berichten ---\n"
        f"{recent_context}"
    )
