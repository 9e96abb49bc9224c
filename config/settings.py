"""
Configuration loader for the outreach system.
Reads settings from YAML file with environment variable substitution.
"""
from __future__ import annotations

import os
import re
from dataclasses import dataclass, field, fields
from pathlib import Path
from typing import Any, Optional

import yaml


@dataclass
class CampaignConfig:
    max_messages_per_hour: int = 60
    distribution_pattern: str = "random"     # "even" | "random" | "burst"
    batch_size: int = 50
    account_selection: str = "random"        # "random" | "least_loaded"
    max_pending_contacts: int = 100_000      # bound of the scheduler work queue
    resume_pending: bool = True              # re-enqueue pending ledger entries on start


@dataclass
class AccountConfig:
    id: str = "default"
    name: str = ""
    enabled: bool = True
    phone_number_id: str = ""
    access_token: str = ""
    verify_token: str = ""
    app_secret: str = ""
    api_version: str = "v18.0"
    dry_run: bool = True                     # log sends instead of calling the Cloud API


@dataclass
class LLMConfig:
    provider: str = "deepseek"               # "openai" | "deepseek" | "anthropic"
    model: str = "deepseek-chat"
    temperature: float = 0.3
    max_tokens: int = 200
    api_key: str = ""
    base_url: str = ""


@dataclass
class ConversationConfig:
    history_limit: int = 20
    transcript_window: int = 10
    canned_intents: list[str] = field(default_factory=lambda: [
        "costs", "howItWorks", "callRequest", "rejection",
        "identityQuestion", "numberSource",
    ])
    response_delay_min_s: float = 2.0
    response_delay_max_s: float = 15.0
    typing_cpm: float = 150
    typing_variance: float = 50


@dataclass
class StorageConfig:
    backend: str = "memory"                  # "memory" | "file"
    data_dir: str = "./data"
    flush_interval_s: float = 0


@dataclass
class PersonaConfig:
    name: str = "Sofia"
    role: str = "Medewerker bij Een Vakman Nodig"
    tone: str = "Menselijk, luchtig, duidelijk. Niet formeel. Geen verkooppraatjes."


@dataclass
class Settings:
    app_name: str = "Outreach"
    debug: bool = False
    campaign: CampaignConfig = field(default_factory=CampaignConfig)
    accounts: list[AccountConfig] = field(default_factory=list)
    llm: LLMConfig = field(default_factory=LLMConfig)
    conversation: ConversationConfig = field(default_factory=ConversationConfig)
    storage: StorageConfig = field(default_factory=StorageConfig)
    persona: PersonaConfig = field(default_factory=PersonaConfig)
    business: dict[str, Any] = field(default_factory=dict)
    templates: dict[str, Any] = field(default_factory=dict)


_settings: Optional[Settings] = None


def _substitute_env_vars(value: str) -> str:
    """Replace ${VAR_NAME} patterns with environment variable values."""
    pattern = re.compile(r'\$\{(\w+)\}')
    def replacer(match):
        var_name = match.group(1)
        return os.environ.get(var_name, match.group(0))
    return pattern.sub(replacer, value)


def _process_values(obj: Any) -> Any:
    """Recursively substitute env vars in all string values."""
    if isinstance(obj, str):
        return _substitute_env_vars(obj)
    elif isinstance(obj, dict):
        return {k: _process_values(v) for k, v in obj.items()}
    elif isinstance(obj, list):
        return [_process_values(v) for v in obj]
    return obj


def _build(cls, raw: Optional[dict[str, Any]]):
    """Instantiate a config dataclass from a dict, ignoring unknown keys."""
    raw = raw or {}
    known = {f.name for f in fields(cls)}
    return cls(**{k: v for k, v in raw.items() if k in known})


def settings_from_dict(raw: dict[str, Any]) -> Settings:
    raw = _process_values(raw or {})
    settings = Settings()

    settings.app_name = raw.get("app_name", settings.app_name)
    settings.debug = raw.get("debug", settings.debug)

    if "campaign" in raw:
        settings.campaign = _build(CampaignConfig, raw["campaign"])
    if "llm" in raw:
        settings.llm = _build(LLMConfig, raw["llm"])
    if "conversation" in raw:
        settings.conversation = _build(ConversationConfig, raw["conversation"])
    if "storage" in raw:
        settings.storage = _build(StorageConfig, raw["storage"])
    if "persona" in raw:
        settings.persona = _build(PersonaConfig, raw["persona"])

    settings.accounts = [_build(AccountConfig, a) for a in raw.get("accounts", [])]
    settings.business = raw.get("business", {}) or {}
    settings.templates = raw.get("templates", {}) or {}
    return settings


def load_settings(config_path: str = None) -> Settings:
    """Load settings from YAML file."""
    global _settings

    if config_path is None:
        config_path = os.environ.get(
            "OUTREACH_CONFIG",
            str(Path(__file__).parent / "settings.yaml"),
        )

    raw: dict[str, Any] = {}
    if Path(config_path).exists():
        with open(config_path) as f:
            raw = yaml.safe_load(f) or {}

    settings = settings_from_dict(raw)
    if not settings.accounts:
        settings.accounts = [AccountConfig(id="default", name="Default")]

    _settings = settings
    return settings


def get_settings() -> Settings:
    """Return cached settings or load from default path."""
    global _settings
    if _settings is None:
        _settings = load_settings()
    return _settings


def reset_settings() -> None:
    """Drop the cached settings (for testing)."""
    global _settings
    _settings = None
