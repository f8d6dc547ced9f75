"""Fakes for the Riot API layer: clock, HTTP session and client."""

from contextlib import contextmanager
from typing import Dict, List, Optional

from riot_api import RiotApiError, SearchObserver

START = 1_700_000_000.0


class FakeClock:
    """time.time() replacement whose sleep() advances time instead of blocking."""

    def __init__(self, start: float = START):
        self.now = start
        self.sleeps: List[float] = []

    def __call__(self) -> float:
        return self.now

    def sleep(self, seconds: float) -> None:
        self.sleeps.append(seconds)
        self.now += seconds

    def advance(self, seconds: float) -> None:
        self.now += seconds


class FakeResponse:
    def __init__(self, status_code: int = 200, payload=None, reason: str = "OK"):
        self.status_code = status_code
        self.payload = payload
        self.reason = reason

    def json(self):
        return self.payload


class FakeSession:
    """Stands in for requests.Session: canned responses, records every GET."""

    def __init__(self, responses: List[FakeResponse], clock=None):
        self.headers: Dict[str, str] = {}
        self.responses = list(responses)
        self.clock = clock
        self.calls: List[Dict] = []

    def get(self, url, params=None, timeout=None):
        self.calls.append({
            "url": url,
            "params": params,
            "timeout": timeout,
            "at": self.clock() if self.clock else None,
        })
        return self.responses.pop(0)


class RecordingObserver(SearchObserver):
    def __init__(self, abort_after_players: Optional[int] = None, abort_after_polls: Optional[int] = None):
        self.found: List[Dict] = []
        self.rate_limit_events: List[tuple] = []
        self.partial: List[List[Dict]] = []
        self.polls = 0
        self.abort_after_players = abort_after_players
        self.abort_after_polls = abort_after_polls

    def on_player_found(self, player):
        self.found.append(player)

    def on_rate_limit_changed(self, is_limited, seconds):
        self.rate_limit_events.append((is_limited, seconds))

    def on_partial_results(self, players):
        self.partial.append(players)

    def is_aborted(self):
        self.polls += 1
        if self.abort_after_players is not None and len(self.found) >= self.abort_after_players:
            return True
        if self.abort_after_polls is not None and self.polls > self.abort_after_polls:
            return True
        return False


# ---------------- payload builders ----------------

def ladder_entry(puuid, tier="GOLD", rank="II", lp=50, wins=10, losses=10, **extra) -> Dict:
    entry = {
        "puuid": puuid,
        "tier": tier,
        "rank": rank,
        "leaguePoints": lp,
        "wins": wins,
        "losses": losses,
        "hotStreak": False,
        "veteran": False,
        "freshBlood": False,
    }
    entry.update(extra)
    return entry


def ranked_entry(puuid, queue="RANKED_SOLO_5x5", **kwargs) -> Dict:
    entry = ladder_entry(puuid, **kwargs)
    entry["queueType"] = queue
    return entry


def participant(puuid, team_id=100, win=True, kills=5, deaths=2, assists=3, champion="Ahri",
                position="MIDDLE", name=None, tag="NA1", cs=150, jungle_cs=10) -> Dict:
    return {
        "puuid": puuid,
        "teamId": team_id,
        "win": win,
        "kills": kills,
        "deaths": deaths,
        "assists": assists,
        "championName": champion,
        "teamPosition": position,
        "riotIdGameName": name if name is not None else f"name-{puuid}",
        "riotIdTagline": tag,
        "totalMinionsKilled": cs,
        "neutralMinionsKilled": jungle_cs,
    }


def make_match(match_id, participants, end_ts_ms, game_mode="CLASSIC", queue_id=420, duration=1800) -> Dict:
    return {
        "metadata": {"matchId": match_id},
        "info": {
            "gameEndTimestamp": end_ts_ms,
            "gameDuration": duration,
            "gameMode": game_mode,
            "queueId": queue_id,
            "participants": participants,
        },
    }


class FakeRiotClient:
    """In-memory RiotClient with the same method surface the engine and stats use."""

    platform = "na1"
    routing = "americas"

    def __init__(self):
        self.pages: Dict[tuple, List[Dict]] = {}
        self.match_ids_by_puuid: Dict[str, List[str]] = {}
        self.matches: Dict[str, Dict] = {}
        self.accounts: Dict[str, Dict] = {}
        self.riot_ids: Dict[tuple, Dict] = {}
        self.ranked: Dict[str, List[Dict]] = {}
        self.calls: List[tuple] = []
        self.errors: Dict[tuple, Exception] = {}

    @contextmanager
    def observing(self, observer, results_provider):
        yield self

    def _call(self, *key):
        self.calls.append(key)
        if key in self.errors:
            raise self.errors[key]

    def calls_to(self, method: str) -> List[tuple]:
        return [c for c in self.calls if c[0] == method]

    # ---- setup helpers ----

    def add_recent_match(self, puuid: str, match: Dict) -> None:
        match_id = match["metadata"]["matchId"]
        self.match_ids_by_puuid.setdefault(puuid, []).insert(0, match_id)
        self.matches[match_id] = match

    def add_account(self, puuid: str, game_name: str, tag_line: str = "NA1") -> None:
        self.accounts[puuid] = {"puuid": puuid, "gameName": game_name, "tagLine": tag_line}
        self.riot_ids[(game_name, tag_line)] = self.accounts[puuid]

    # ---- endpoints ----

    def league_entries(self, queue, tier, division, page=1):
        self._call("league_entries", queue, tier, division, page)
        return list(self.pages.get((queue, tier, division, page), []))

    def match_ids(self, puuid, count=5, queue=None):
        self._call("match_ids", puuid)
        return list(self.match_ids_by_puuid.get(puuid, []))[:count]

    def match(self, match_id):
        self._call("match", match_id)
        return self.matches[match_id]

    def account_by_puuid(self, puuid):
        self._call("account_by_puuid", puuid)
        if puuid not in self.accounts:
            raise RiotApiError(404, "Not Found", f"account/{puuid}")
        return self.accounts[puuid]

    def account_by_riot_id(self, game_name, tag_line):
        self._call("account_by_riot_id", game_name, tag_line)
        return self.riot_ids[(game_name, tag_line)]

    def summoner_by_puuid(self, puuid):
        self._call("summoner_by_puuid", puuid)
        if puuid not in self.ranked:
            raise RiotApiError(404, "Not Found", f"summoner/{puuid}")
        return {"puuid": puuid}

    def league_entries_by_puuid(self, puuid):
        self._call("league_entries_by_puuid", puuid)
        return list(self.ranked.get(puuid, []))
