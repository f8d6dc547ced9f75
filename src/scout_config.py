#!/usr/bin/env python3
"""
scout_config.py

Konstanten und Laufzeit-Konfiguration für den Player-Scout.

- Tiers/Divisionen/Queues wie in league-exp-v4
- Plattform -> Routing-Region (match-v5 / account-v1)
- ScoutConfig: alles, was Gate, Cache und Suche brauchen
- Werte kommen aus ENV (RIOT_API_KEY, SCOUT_*) und werden von CLI-Flags überschrieben
"""

import os
from dataclasses import dataclass, field, replace
from typing import Dict, Optional


class ConfigError(ValueError):
    """Ungültige oder fehlende Konfiguration (fatal, Suche startet nicht)."""


# ---------------- Ranks & Queues ----------------

TIERS = ["IRON", "BRONZE", "SILVER", "GOLD", "PLATINUM", "EMERALD", "DIAMOND"]
APEX_TIERS = ["MASTER", "GRANDMASTER", "CHALLENGER"]
DIVISIONS = ["IV", "III", "II", "I"]

QUEUE_SOLO = "RANKED_SOLO_5x5"
QUEUE_FLEX = "RANKED_FLEX_SR"
RANKED_QUEUES = (QUEUE_SOLO, QUEUE_FLEX)

QUEUE_LABELS: Dict[str, str] = {
    QUEUE_SOLO: "Solo/Duo",
    QUEUE_FLEX: "Flex",
}


# ---------------- Routing & Plattformen ----------------

ROUTING_BY_PLATFORM: Dict[str, str] = {
    "euw1": "europe",
    "eun1": "europe",
    "tr1":  "europe",
    "ru":   "europe",
    "me1":  "europe",

    "na1":  "americas",
    "br1":  "americas",
    "la1":  "americas",
    "la2":  "americas",

    "oc1":  "sea",

    "kr":   "asia",
    "jp1":  "asia",
}

DEFAULT_PLATFORM = "na1"
DEFAULT_CACHE_FILE = "player_cache.json"


@dataclass
class ScoutConfig:
    api_key: str = ""
    platform: str = DEFAULT_PLATFORM
    routing: str = field(default="")
    requests_per_second: float = 20.0
    rate_limit_cooldown: float = 120.0
    max_rate_limit_retries: int = 3
    request_timeout: float = 10.0
    cache_file: str = DEFAULT_CACHE_FILE
    cache_max_age: float = 60 * 60
    cache_flush_every: int = 10
    max_pages: int = 50

    def __post_init__(self):
        self.platform = self.platform.lower()
        if not self.routing:
            routing = ROUTING_BY_PLATFORM.get(self.platform)
            if routing is None:
                raise ConfigError(
                    f"Unbekannte Plattform '{self.platform}' - bitte --routing angeben "
                    f"(bekannt: {', '.join(sorted(ROUTING_BY_PLATFORM))})."
                )
            self.routing = routing
        self.routing = self.routing.lower()
        if self.requests_per_second <= 0:
            raise ConfigError("requests_per_second muss > 0 sein.")

    def require_api_key(self) -> str:
        if not self.api_key:
            raise ConfigError("RIOT_API_KEY fehlt (export RIOT_API_KEY=... oder --key).")
        return self.api_key

    def with_overrides(self, **overrides) -> "ScoutConfig":
        values = {k: v for k, v in overrides.items() if v is not None}
        if "platform" in values and "routing" not in values:
            values["routing"] = ""
        return replace(self, **values)


def load_config(env: Optional[Dict[str, str]] = None, **overrides) -> ScoutConfig:
    """Baut die Konfiguration aus ENV + expliziten Overrides (None = nicht gesetzt)."""
    env = os.environ if env is None else env
    cfg = ScoutConfig(
        api_key=env.get("RIOT_API_KEY", ""),
        platform=env.get("SCOUT_PLATFORM", DEFAULT_PLATFORM),
        routing=env.get("SCOUT_ROUTING", ""),
        cache_file=env.get("SCOUT_CACHE_FILE", DEFAULT_CACHE_FILE),
    )
    if overrides:
        cfg = cfg.with_overrides(**overrides)
    return cfg


def queue_label(queue: str) -> str:
    return QUEUE_LABELS.get(queue, queue)
