"""Business facts the persona prompt is assembled from."""
from __future__ import annotations

from typing import Any

BUSINESS_FACTS: dict[str, Any] = {
    "company_name": "Een Vakman Nodig B.V.",
    "website": "https://eenvakmannodig.nl",
    "signup_link": "https://eenvakmannodig.nl/aanmelden",
    "contact_email": "info@eenvakmannodig.nl",
    "kvk_number": "94683808",
    "monthly_fee": "€100 per maand",
    "commission": "2% commissie per geslaagde klus",
    "minimum_commission": "€50",
    "requests_per_day": "200-300 aanvragen dagelijks",
    "requests_per_week_per_professional": "gemiddeld 10 aanvragen per week",
    "professionals_per_request": "maximaal 3 vakmensen per klusaanvraag",
    "professional_messages": {
        "schilder": "Wij hebben dagelijks nieuwe schilderklussen beschikbaar. Binnen- en buitenschilderwerk.",
        "timmerman": "Wij krijgen veel klussen voor timmermannen. Van vloeren tot dakconstructies.",
        "dakdekker": "Er komen regelmatig opdrachten binnen voor dakdekkers. Zowel reparaties als complete daken.",
        "stucadoor": "We hebben regelmatig klanten die een stukadoor zoeken voor wanden en plafonds.",
        "stukadoor": "We hebben regelmatig klanten die een stukadoor zoeken voor wanden en plafonds.",
        "loodgieter": "Er zijn vaak loodgietersklussen zoals badkamers, lekkages en cv-installaties.",
        "elektricien": "We hebben vaak klanten die een elektricien zoeken voor installaties en storingen.",
        "tegelzetter": "We krijgen veel aanvragen voor tegelwerk in badkamers en keukens.",
        "aannemer": "Er komen dagelijks aanvragen binnen voor complete renovaties en verbouwingen.",
        "cv-monteur": "We hebben regelmatig klanten die een monteur nodig hebben voor cv-installatie of onderhoud.",
    },
}
