#!/usr/bin/env python3
"""
riot_api.py

Rate-limitierter Zugriff auf die Riot API.

- RateLimiter: minimale Zeitabstände zwischen zwei Requests (für ALLE Endpoints gleich;
  konservative Näherung an die echten Multi-Window-Limits von Riot)
- RequestGate: ein Request = limiter.wait() + GET mit X-Riot-Token
    403/401 -> ApiKeyError (fatal, kein Retry)
    429     -> Observer benachrichtigen, Cooldown in kleinen Schritten absitzen
               (Abbruch wird zwischen den Schritten geprüft), danach derselbe Request nochmal
               (begrenzte Schleife, max_retries)
    sonst   -> RiotApiError(status, reason, url)
- RiotClient: ein Methodenaufruf pro Endpoint (league-exp, summoner, league, account, match)
"""

import logging
import threading
import time
from contextlib import contextmanager
from typing import Callable, Dict, List, Optional
from urllib.parse import quote

import requests

from scout_config import ScoutConfig

logger = logging.getLogger(__name__)

COOLDOWN_STEP = 1.0  # Sekunden zwischen zwei Abbruch-Checks im Cooldown


# ---------------- Fehler ----------------

class RiotApiError(Exception):
    def __init__(self, status: int, reason: str, url: str, message: Optional[str] = None):
        self.status = status
        self.reason = reason
        self.url = url
        super().__init__(message or f"API-Fehler: {status} {reason} ({url})")


class ApiKeyError(RiotApiError):
    """403/401: Key ungültig oder abgelaufen."""


class RateLimitExceeded(RiotApiError):
    """429 auch nach allen Cooldown-Retries."""


class SearchAborted(Exception):
    """Abbruch wurde während eines Cooldowns angefordert."""


# ---------------- Observer ----------------

class SearchObserver:
    """No-op Observer. CLI/Server überschreiben, was sie brauchen."""

    def on_player_found(self, player: Dict) -> None:
        pass

    def on_rate_limit_changed(self, is_limited: bool, seconds: int) -> None:
        pass

    def on_partial_results(self, players: List[Dict]) -> None:
        pass

    def is_aborted(self) -> bool:
        return False


# ---------------- Rate Limiter ----------------

class RateLimiter:
    """Einfacher Rate-Limiter über minimale Zeitabstände.

    rps = gewünschte Requests pro Sekunde (float).
    Beispiel:
      rps = 20  -> mindestens 0.05 Sekunden Abstand zwischen zwei Aufrufen
    """

    def __init__(self, rps: float, clock: Callable[[], float] = time.time,
                 sleep: Callable[[float], None] = time.sleep):
        rps = max(float(rps), 1e-6)
        self.min_interval = 1.0 / rps
        self.clock = clock
        self.sleep = sleep
        self.lock = threading.Lock()
        self.last_call = 0.0

    def wait(self):
        with self.lock:
            now = self.clock()
            delta = now - self.last_call
            if delta < self.min_interval:
                self.sleep(self.min_interval - delta)
                now = self.clock()
            self.last_call = now


# ---------------- Request Gate ----------------

class RequestGate:
    def __init__(
        self,
        api_key: str,
        requests_per_second: float = 20.0,
        cooldown: float = 120.0,
        max_retries: int = 3,
        timeout: float = 10.0,
        session: Optional[requests.Session] = None,
        observer: Optional[SearchObserver] = None,
        clock: Callable[[], float] = time.time,
        sleep: Callable[[float], None] = time.sleep,
    ):
        self.api_key = api_key
        self.session = session if session is not None else requests.Session()
        self.session.headers.update({"X-Riot-Token": api_key})
        self.limiter = RateLimiter(requests_per_second, clock=clock, sleep=sleep)
        self.cooldown = float(cooldown)
        self.max_retries = max(0, int(max_retries))
        self.timeout = timeout
        self.observer = observer or SearchObserver()
        self.results_provider: Callable[[], List[Dict]] = list
        self.sleep = sleep

    @contextmanager
    def observing(self, observer: SearchObserver, results_provider: Callable[[], List[Dict]]):
        """Bindet Observer + Zwischenergebnisse für die Dauer einer Suche."""
        previous = (self.observer, self.results_provider)
        self.observer, self.results_provider = observer, results_provider
        try:
            yield self
        finally:
            self.observer, self.results_provider = previous

    def request(self, url: str, params: Optional[Dict] = None):
        retries = 0
        while True:
            self.limiter.wait()
            r = self.session.get(url, params=params, timeout=self.timeout)

            if r.status_code == 200:
                return r.json()

            logger.info("[API-Fehler] Status: %s - %s", r.status_code, r.reason)
            logger.info("[API-Fehler] URL: %s", url)
            logger.debug("[API-Fehler] API-Key gesetzt: %s, beginnt mit: %s",
                         bool(self.api_key), self.api_key[:10] if self.api_key else "none")

            if r.status_code in (401, 403):
                raise ApiKeyError(
                    r.status_code, r.reason, url,
                    "API-Key ungültig oder abgelaufen. Neuen Key auf developer.riotgames.com holen.",
                )

            if r.status_code == 429:
                if retries >= self.max_retries:
                    raise RateLimitExceeded(r.status_code, r.reason, url)
                retries += 1
                self._cooldown()
                continue

            raise RiotApiError(r.status_code, r.reason, url)

    def _cooldown(self) -> None:
        seconds = int(self.cooldown)
        logger.warning("[RateLimit] Rate-Limit erreicht! Warte %ds ...", seconds)
        self.observer.on_rate_limit_changed(True, seconds)
        try:
            partial = list(self.results_provider())
            if partial:
                logger.info("[RateLimit] Bisherige Ergebnisse (%d Spieler):", len(partial))
                for p in partial:
                    logger.info("  %s", describe_player(p))
                self.observer.on_partial_results(partial)

            remaining = self.cooldown
            while remaining > 0:
                if self.observer.is_aborted():
                    raise SearchAborted()
                step = min(COOLDOWN_STEP, remaining)
                self.sleep(step)
                remaining -= step
        finally:
            self.observer.on_rate_limit_changed(False, 0)
        logger.info("[RateLimit] Cooldown vorbei, Suche läuft weiter.")


def describe_player(p: Dict) -> str:
    return (
        f"{p.get('name')} | {p.get('queue')} {p.get('rank')} {p.get('lp')}LP | "
        f"{p.get('win_rate')} WR | zuletzt aktiv vor {p.get('last_active_minutes')} Min "
        f"({p.get('last_game_mode')})"
    )


# ---------------- Endpoints ----------------

class RiotClient:
    def __init__(self, config: ScoutConfig, gate: Optional[RequestGate] = None,
                 session: Optional[requests.Session] = None):
        self.config = config
        self.platform = config.platform
        self.routing = config.routing
        self.gate = gate or RequestGate(
            config.api_key,
            requests_per_second=config.requests_per_second,
            cooldown=config.rate_limit_cooldown,
            max_retries=config.max_rate_limit_retries,
            timeout=config.request_timeout,
            session=session,
        )

    def observing(self, observer: SearchObserver, results_provider: Callable[[], List[Dict]]):
        return self.gate.observing(observer, results_provider)

    def _platform_url(self, path: str) -> str:
        return f"https://{self.platform}.api.riotgames.com{path}"

    def _routing_url(self, path: str) -> str:
        return f"https://{self.routing}.api.riotgames.com{path}"

    def league_entries(self, queue: str, tier: str, division: str, page: int = 1) -> List[Dict]:
        """league-exp-v4: Einträge enthalten direkt 'puuid'."""
        url = self._platform_url(f"/lol/league-exp/v4/entries/{queue}/{tier}/{division}")
        return self.gate.request(url, params={"page": page})

    def summoner_by_puuid(self, puuid: str) -> Dict:
        return self.gate.request(self._platform_url(f"/lol/summoner/v4/summoners/by-puuid/{puuid}"))

    def league_entries_by_puuid(self, puuid: str) -> List[Dict]:
        return self.gate.request(self._platform_url(f"/lol/league/v4/entries/by-puuid/{puuid}"))

    def account_by_puuid(self, puuid: str) -> Dict:
        return self.gate.request(self._routing_url(f"/riot/account/v1/accounts/by-puuid/{puuid}"))

    def account_by_riot_id(self, game_name: str, tag_line: str) -> Dict:
        url = self._routing_url(
            f"/riot/account/v1/accounts/by-riot-id/{quote(game_name, safe='')}/{quote(tag_line, safe='')}"
        )
        return self.gate.request(url)

    def match_ids(self, puuid: str, count: int = 5, queue: Optional[int] = None) -> List[str]:
        """queue: 420 = Solo/Duo, 440 = Flex, None = alle Modi"""
        params = {"count": count}
        if queue:
            params["queue"] = queue
        url = self._routing_url(f"/lol/match/v5/matches/by-puuid/{puuid}/ids")
        return self.gate.request(url, params=params)

    def match(self, match_id: str) -> Dict:
        return self.gate.request(self._routing_url(f"/lol/match/v5/matches/{match_id}"))
