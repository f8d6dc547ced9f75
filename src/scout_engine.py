#!/usr/bin/env python3
"""
scout_engine.py

Findet aktuell aktive Ranked-Spieler in einem Rank-/LP-Bereich.

Strategie (statt linear Seite 1, 2, 3, ... durchzugehen):
- alle (Queue, Tier, Division)-Kombis einmal bauen und mischen
- pro Schritt: zufällige aktive Kombi, zufällige noch nicht probierte Seite
- leere Seite -> obere Seitenschätzung runter auf page-1 (so lernen wir die echte Seitenanzahl)
- Einträge der Seite mischen, filtern (LP, Winrate, schon gesehen), dann
  Cache-Treffer übernehmen oder frisch per match-v5 prüfen, wann zuletzt gespielt wurde
- für frisch gefundene Spieler: Mitspieler aus genau diesem Match mitnehmen (jedes Match nur einmal)

Ende: Ziel erreicht, alles erschöpft oder Abbruch. Der Cache wird IMMER gespeichert.
"""

import logging
import random
import re
import time
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Set, Tuple

import requests

from player_cache import PlayerCache
from rank_lp import InvalidRank, combinations_overlapping, normalize_rank, to_total_points
from riot_api import ApiKeyError, RiotApiError, RiotClient, SearchAborted, SearchObserver
from scout_config import QUEUE_FLEX, QUEUE_SOLO, RANKED_QUEUES, ConfigError, queue_label

logger = logging.getLogger(__name__)

DEFAULT_MAX_PAGES = 50

LP_RANGE_RE = re.compile(r"^\s*(\d+)\s*-\s*(\d+)\s*$")

QUEUE_ALIASES: Dict[str, Tuple[str, ...]] = {
    "solo": (QUEUE_SOLO,),
    "flex": (QUEUE_FLEX,),
    "both": RANKED_QUEUES,
}


# ---------------- Suchparameter ----------------

@dataclass(frozen=True)
class LpRange:
    min_lp: int
    max_lp: int

    def __contains__(self, total_lp: int) -> bool:
        return self.min_lp <= total_lp <= self.max_lp


def parse_lp_range(text: str) -> LpRange:
    """'800-1000' -> LpRange(800, 1000)"""
    m = LP_RANGE_RE.match(str(text or ""))
    if not m:
        raise ConfigError(f'Ungültiger LP-Bereich {text!r}. Format "min-max", z.B. "800-1000".')
    lo, hi = int(m.group(1)), int(m.group(2))
    if lo > hi:
        raise ConfigError(f"Ungültiger LP-Bereich {text!r}: min ({lo}) > max ({hi}).")
    return LpRange(lo, hi)


def parse_queue(value: Optional[str]) -> Tuple[str, ...]:
    """solo / flex / both (None = beide). Volle Queue-IDs gehen auch."""
    if not value:
        return RANKED_QUEUES
    key = value.strip()
    if key in RANKED_QUEUES:
        return (key,)
    try:
        return QUEUE_ALIASES[key.lower()]
    except KeyError:
        raise ConfigError(f"Unbekannte Queue {value!r} (solo, flex oder both).") from None


@dataclass
class ScoutQuery:
    queues: Tuple[str, ...] = RANKED_QUEUES
    tier: str = "GOLD"
    division: Optional[str] = "II"
    lp_range: Optional[LpRange] = None
    max_players: int = 10
    active_within_minutes: int = 30
    min_win_rate: float = 0.0

    def __post_init__(self):
        self.queues = tuple(self.queues)
        if not self.queues:
            raise ConfigError("Mindestens eine Queue angeben.")
        unknown = [q for q in self.queues if q not in RANKED_QUEUES]
        if unknown:
            raise ConfigError(f"Unbekannte Queue(s): {unknown}")
        if self.lp_range is None:
            tier, division = normalize_rank(self.tier, self.division)
            # league-exp führt Master+ unter Division I
            self.tier, self.division = tier, division or "I"
        if self.max_players < 1:
            raise ConfigError("max_players muss >= 1 sein.")
        if not 0.0 <= self.min_win_rate <= 1.0:
            raise ConfigError(f"min_win_rate muss zwischen 0 und 1 liegen, ist {self.min_win_rate}.")

    @property
    def min_lp(self) -> Optional[int]:
        return self.lp_range.min_lp if self.lp_range else None

    @property
    def max_lp(self) -> Optional[int]:
        return self.lp_range.max_lp if self.lp_range else None

    def matches_rank(self, tier: str, division: Optional[str]) -> bool:
        """Ohne LP-Bereich zählt nur die gesuchte Tier/Division (Apex: nur der Tier)."""
        try:
            t, d = normalize_rank(tier, division)
        except InvalidRank:
            return False
        return t == self.tier and (d is None or d == self.division)

    def tier_divisions(self) -> List[Tuple[str, str]]:
        if self.lp_range is not None:
            return combinations_overlapping(self.lp_range.min_lp, self.lp_range.max_lp)
        return [(self.tier, self.division)]


@dataclass
class SearchCombination:
    queue: str
    tier: str
    division: str
    max_page: int
    tried: Set[int] = field(default_factory=set)
    exhausted: bool = False

    def untried_pages(self) -> List[int]:
        return [p for p in range(1, self.max_page + 1) if p not in self.tried]

    def pick_page(self, rng: random.Random) -> Optional[int]:
        pages = self.untried_pages()
        return rng.choice(pages) if pages else None

    def mark_empty(self, page: int) -> None:
        """Leere Seite: dahinter kann nichts mehr kommen."""
        self.max_page = min(self.max_page, page - 1)
        if self.max_page < 1 or not self.untried_pages():
            self.exhausted = True


def build_combinations(query: ScoutQuery, max_pages: int = DEFAULT_MAX_PAGES) -> List[SearchCombination]:
    return [
        SearchCombination(queue, tier, division, max_page=max_pages)
        for queue in query.queues
        for tier, division in query.tier_divisions()
    ]


@dataclass
class SearchResult:
    players: List[Dict]
    from_cache: int
    fresh: int
    aborted: bool = False
    exhausted: bool = False

    def __len__(self):
        return len(self.players)

    def __iter__(self):
        return iter(self.players)


def win_rate_of(entry: Dict) -> float:
    games = entry.get("wins", 0) + entry.get("losses", 0)
    return entry.get("wins", 0) / games if games > 0 else 0.0


# ---------------- Suche ----------------

class ScoutSearch:
    """Kontext einer einzelnen Suche: Client, Cache, Observer, Zufallsquelle, Zwischenstand."""

    def __init__(
        self,
        client: RiotClient,
        cache: PlayerCache,
        query: ScoutQuery,
        observer: Optional[SearchObserver] = None,
        rng: Optional[random.Random] = None,
        max_pages: int = DEFAULT_MAX_PAGES,
        clock=time.time,
    ):
        self.client = client
        self.cache = cache
        self.query = query
        self.observer = observer or SearchObserver()
        self.rng = rng or random.Random()
        self.max_pages = max_pages
        self.clock = clock

        self.results: List[Dict] = []
        self.seen: Set[str] = set()
        self.expanded_matches: Set[str] = set()
        self.combinations: List[SearchCombination] = []
        self.aborted = False
        self.exhausted = False

    # ---------------- Ablauf ----------------

    def run(self) -> SearchResult:
        q = self.query
        if q.lp_range is not None:
            logger.info("[Scout] LP-Bereich %d-%d -> %d Divisionen: %s", q.min_lp, q.max_lp,
                        len(q.tier_divisions()), ", ".join(f"{t} {d}" for t, d in q.tier_divisions()))
        else:
            logger.info("[Scout] Suche Spieler in %s %s ...", q.tier, q.division)
        logger.info("[Scout] Queues: %s | aktiv innerhalb %d Min | min. WR %.2f",
                    ", ".join(q.queues), q.active_within_minutes, q.min_win_rate)

        with self.client.observing(self.observer, lambda: self.results):
            try:
                self._explore()
            except SearchAborted:
                self.aborted = True
                logger.info("[Scout] Abgebrochen während Rate-Limit-Cooldown.")
            finally:
                self.cache.save()

        from_cache = sum(1 for p in self.results if p.get("from_cache"))
        fresh = len(self.results) - from_cache
        logger.info("[Scout] Suche beendet: %d aktive Spieler (%d aus Cache, %d frisch).",
                    len(self.results), from_cache, fresh)
        logger.info("[Cache] Spieler im Cache gesamt: %d", len(self.cache))
        return SearchResult(self.results, from_cache, fresh, aborted=self.aborted, exhausted=self.exhausted)

    def _done(self) -> bool:
        if len(self.results) >= self.query.max_players:
            return True
        if self.observer.is_aborted():
            self.aborted = True
            return True
        return False

    def _explore(self) -> None:
        self.combinations = build_combinations(self.query, self.max_pages)
        self.rng.shuffle(self.combinations)

        while not self._done():
            active = [c for c in self.combinations if not c.exhausted]
            if not active:
                self.exhausted = True
                logger.info("[Scout] Alle Kombinationen erschöpft.")
                break

            combo = self.rng.choice(active)
            page = combo.pick_page(self.rng)
            if page is None:
                combo.exhausted = True
                continue
            combo.tried.add(page)

            try:
                entries = self.client.league_entries(combo.queue, combo.tier, combo.division, page)
            except ApiKeyError:
                raise
            except (RiotApiError, requests.RequestException) as e:
                logger.warning("[League] %s %s %s Seite %d: %s", combo.queue, combo.tier, combo.division, page, e)
                continue

            if not entries:
                combo.mark_empty(page)
                logger.debug("[League] %s %s %s Seite %d leer -> max_page=%d",
                             combo.queue, combo.tier, combo.division, page, combo.max_page)
                continue

            logger.debug("[League] %s %s %s Seite %d: %d Einträge",
                         combo.queue, combo.tier, combo.division, page, len(entries))
            entries = list(entries)
            self.rng.shuffle(entries)
            for entry in entries:
                if self._done():
                    break
                self._consider_entry(combo, entry)

    # ---------------- Kandidaten ----------------

    def _consider_entry(self, combo: SearchCombination, entry: Dict) -> None:
        q = self.query
        puuid = entry.get("puuid")
        if not puuid:
            logger.debug("[Scout] Eintrag ohne puuid übersprungen")
            return

        tier = entry.get("tier") or combo.tier
        division = entry.get("rank") or combo.division
        total_lp = to_total_points(tier, division, entry.get("leaguePoints", 0))
        if q.lp_range is not None and total_lp not in q.lp_range:
            return
        if win_rate_of(entry) < q.min_win_rate:
            return
        if puuid in self.seen:
            return

        if self._accept_from_cache(puuid):
            return

        self.seen.add(puuid)
        activity = self._last_active(puuid)
        if activity is None or activity["minutes_ago"] > q.active_within_minutes:
            logger.debug("[Scout] %s nicht aktiv genug (%s)", puuid,
                         activity and activity["minutes_ago"])
            return

        player = self._build_player(
            puuid, self._resolve_name(puuid), combo.queue, tier, division, entry,
            activity, source="ladder",
        )
        self._accept(player, store=True)
        self._expand_match(puuid, activity)

    def _accept_from_cache(self, puuid: str) -> bool:
        q = self.query
        record = self.cache.get(puuid)
        if record is None:
            return False
        if not self.cache.meets_criteria(record, q.active_within_minutes, q.min_win_rate, q.min_lp, q.max_lp):
            return False
        if q.lp_range is None:
            tier, _, division = str(record.get("rank") or "").partition(" ")
            if not q.matches_rank(tier, division or None):
                return False

        self.seen.add(puuid)
        player = dict(record)
        player.update(
            puuid=puuid,
            last_active_minutes=self.cache.adjusted_active_minutes(record),
            from_cache=True,
            source="cache",
            updated_at=record["cached_at"],
        )
        self._accept(player, store=False)
        return True

    def _accept(self, player: Dict, store: bool) -> None:
        if store:
            self.cache.put(player)
        self.results.append(player)
        tag = "Cache" if player["from_cache"] else ("Mitspieler" if player["source"] == "teammate" else "Gefunden")
        logger.info("[Scout] %s: %s | %s %s %sLP | aktiv vor %s Min (%s)%s", tag, player["name"],
                    player["queue"], player["rank"], player["lp"], player["last_active_minutes"],
                    player["last_game_mode"], " [Siegesserie]" if player.get("hot_streak") else "")
        self.observer.on_player_found(player)

    def _last_active(self, puuid: str) -> Optional[Dict]:
        """Letztes Match (egal welcher Modus): wie viele Minuten her + Modus."""
        try:
            match_ids = self.client.match_ids(puuid, count=1)
            if not match_ids:
                return None
            match = self.client.match(match_ids[0])
        except ApiKeyError:
            raise
        except (RiotApiError, requests.RequestException) as e:
            logger.debug("[Scout] Aktivität für %s nicht abrufbar: %s", puuid, e)
            return None

        info = match.get("info") or {}
        end_ts = info.get("gameEndTimestamp")
        if not end_ts:
            return None
        return {
            "match_id": match_ids[0],
            "match": match,
            "minutes_ago": int((self.clock() * 1000 - end_ts) // 60000),
            "game_mode": info.get("gameMode"),
            "queue_id": info.get("queueId"),
        }

    def _resolve_name(self, puuid: str) -> str:
        try:
            account = self.client.account_by_puuid(puuid)
        except ApiKeyError:
            raise
        except (RiotApiError, requests.RequestException) as e:
            logger.debug("[Scout] Riot-ID für %s nicht abrufbar: %s", puuid, e)
            return "Unknown"
        if not account or not account.get("gameName"):
            return "Unknown"
        return f"{account['gameName']}#{account.get('tagLine', '')}"

    def _build_player(self, puuid: str, name: str, queue: str, tier: str, division: Optional[str],
                      entry: Dict, activity: Dict, source: str) -> Dict:
        tier, division = normalize_rank(tier, division)
        win_rate = win_rate_of(entry)
        return {
            "puuid": puuid,
            "name": name,
            "region": self.client.platform,
            "queue": queue_label(queue),
            "rank": f"{tier} {division}" if division else tier,
            "lp": entry.get("leaguePoints", 0),
            "total_lp": to_total_points(tier, division, entry.get("leaguePoints", 0)),
            "wins": entry.get("wins", 0),
            "losses": entry.get("losses", 0),
            "win_rate": f"{win_rate * 100:.1f}%",
            "last_active_minutes": activity["minutes_ago"],
            "last_game_mode": activity["game_mode"],
            "hot_streak": bool(entry.get("hotStreak")),
            "veteran": bool(entry.get("veteran")),
            "fresh_blood": bool(entry.get("freshBlood")),
            "from_cache": False,
            "source": source,
            "updated_at": self.clock(),
        }

    # ---------------- Mitspieler ----------------

    def _expand_match(self, found_puuid: str, activity: Dict) -> None:
        match_id = activity["match_id"]
        if match_id in self.expanded_matches:
            return
        self.expanded_matches.add(match_id)

        participants = (activity["match"].get("info") or {}).get("participants") or []
        for participant in participants:
            if self._done():
                break
            mate = participant.get("puuid")
            if not mate or mate == found_puuid or mate in self.seen:
                continue
            if self._accept_from_cache(mate):
                continue

            self.seen.add(mate)
            try:
                self._expand_teammate(mate, participant, activity)
            except ApiKeyError:
                raise
            except (RiotApiError, requests.RequestException, ValueError) as e:
                logger.debug("[Scout] Mitspieler %s übersprungen: %s", mate, e)

    def _expand_teammate(self, puuid: str, participant: Dict, activity: Dict) -> None:
        q = self.query
        # 404 hier = anderes Plattform-Konto -> Mitspieler überspringen
        self.client.summoner_by_puuid(puuid)
        entries = self.client.league_entries_by_puuid(puuid) or []

        for entry in entries:
            queue = entry.get("queueType")
            if queue not in RANKED_QUEUES:
                continue
            if q.lp_range is not None:
                total_lp = to_total_points(entry.get("tier"), entry.get("rank"), entry.get("leaguePoints", 0))
                if total_lp not in q.lp_range:
                    continue
            elif not q.matches_rank(entry.get("tier"), entry.get("rank")):
                continue
            if win_rate_of(entry) < q.min_win_rate:
                continue

            game_name = participant.get("riotIdGameName")
            if game_name:
                name = f"{game_name}#{participant.get('riotIdTagline', '')}"
            else:
                name = self._resolve_name(puuid)
            player = self._build_player(
                puuid, name, queue, entry.get("tier"), entry.get("rank"), entry,
                activity, source="teammate",
            )
            self._accept(player, store=True)
            return

        logger.debug("[Scout] Mitspieler %s: kein passender Ranked-Eintrag", puuid)


def scout_players(
    client: RiotClient,
    cache: PlayerCache,
    query: ScoutQuery,
    observer: Optional[SearchObserver] = None,
    rng: Optional[random.Random] = None,
    max_pages: int = DEFAULT_MAX_PAGES,
    clock=time.time,
) -> SearchResult:
    """Eine komplette Suche. Teilergebnisse (Erschöpfung/Abbruch) sind kein Fehler."""
    search = ScoutSearch(client, cache, query, observer=observer, rng=rng, max_pages=max_pages, clock=clock)
    return search.run()
