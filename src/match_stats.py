#!/usr/bin/env python3
"""
match_stats.py

Per-Match-Stats aus match-v5 für einen Spieler + Auswertungen darüber:
- extract_player_stats: KDA, Rolle, CS, Dauer, Endzeit
- deep_scout: letzte N Matches eines Spielers + Zusammenfassung
- find_duos_from_history: Mitspieler (gleiches Team) aus den eigenen Matches, die gut performt haben

Hinweis avg_kda: einfacher Mittelwert der KDA pro Match (nicht Summe K+A / Summe D).
"""

import logging
from datetime import datetime
from typing import Dict, List, Optional

import pandas as pd

from riot_api import RiotClient

logger = logging.getLogger(__name__)


def kda_ratio(kills: int, deaths: int, assists: int) -> float:
    """(K + A) / D, bei 0 Deaths einfach K + A."""
    if deaths == 0:
        return kills + assists
    return (kills + assists) / deaths


def format_kda(kills: int, deaths: int, assists: int):
    """Wie in der Match-Ansicht: "4.00" bei Deaths > 0, sonst die rohe Zahl K + A."""
    if deaths == 0:
        return kills + assists
    return f"{(kills + assists) / deaths:.2f}"


def _find_participant(match: Dict, puuid: str) -> Optional[Dict]:
    participants = (match.get("info") or {}).get("participants") or []
    return next((p for p in participants if p.get("puuid") == puuid), None)


def extract_player_stats(match: Dict, puuid: str) -> Optional[Dict]:
    p = _find_participant(match, puuid)
    if p is None:
        return None

    info = match["info"]
    kills, deaths, assists = p.get("kills", 0), p.get("deaths", 0), p.get("assists", 0)
    end_ts = info.get("gameEndTimestamp")
    return {
        "win": bool(p.get("win")),
        "kills": kills,
        "deaths": deaths,
        "assists": assists,
        "kda": format_kda(kills, deaths, assists),
        "champion": p.get("championName"),
        "position": p.get("teamPosition"),
        "cs": p.get("totalMinionsKilled", 0) + p.get("neutralMinionsKilled", 0),
        "game_duration": int(info.get("gameDuration", 0)) // 60,
        "game_end_time": datetime.fromtimestamp(end_ts / 1000).strftime("%Y-%m-%d %H:%M") if end_ts else None,
    }


def summarize_matches(stats: List[Dict]) -> Dict:
    if not stats:
        return {
            "avg_kda": "0.00",
            "recent_win_rate": "0.0%",
            "positions": [],
            "champion_pool": [],
            "games_analyzed": 0,
        }

    df = pd.DataFrame(stats)
    return {
        "avg_kda": f"{df['kda'].astype(float).mean():.2f}",
        "recent_win_rate": f"{df['win'].mean() * 100:.1f}%",
        "positions": df["position"].unique().tolist(),
        "champion_pool": df["champion"].unique().tolist(),
        "games_analyzed": len(df),
    }


def deep_scout(client: RiotClient, puuid: str, match_count: int = 5) -> Dict:
    logger.info("[Deep] Analysiere %s (%d Matches) ...", puuid, match_count)
    stats = []
    for match_id in client.match_ids(puuid, count=match_count):
        s = extract_player_stats(client.match(match_id), puuid)
        if s:
            stats.append(s)
    return {"recent_matches": stats, "summary": summarize_matches(stats)}


# ---------------- Duo-Suche ----------------

DUO_COLUMNS = ["puuid", "name", "win", "kda", "champion", "position"]


def duo_candidates(matches: List[Dict], puuid: str, min_kda: float = 2.0, only_wins: bool = False) -> List[Dict]:
    """Zählt Mitspieler aus dem eigenen Team über alle Matches.

    Sortierung: gemeinsame Spiele absteigend, dann Ø-KDA absteigend.
    """
    rows = []
    for match in matches:
        me = _find_participant(match, puuid)
        if me is None:
            continue
        if only_wins and not me.get("win"):
            continue

        for p in match["info"]["participants"]:
            if p.get("puuid") == puuid or p.get("teamId") != me.get("teamId"):
                continue
            kda = kda_ratio(p.get("kills", 0), p.get("deaths", 0), p.get("assists", 0))
            if kda < min_kda:
                continue
            rows.append({
                "puuid": p.get("puuid"),
                "name": f"{p.get('riotIdGameName')}#{p.get('riotIdTagline')}",
                "win": bool(p.get("win")),
                "kda": kda,
                "champion": p.get("championName"),
                "position": p.get("teamPosition"),
            })

    if not rows:
        return []

    df = pd.DataFrame(rows, columns=DUO_COLUMNS)
    agg = df.groupby("puuid", sort=False).agg(
        name=("name", "first"),
        games_played=("win", "size"),
        wins=("win", "sum"),
        total_kda=("kda", "sum"),
        champions=("champion", "unique"),
        positions=("position", "unique"),
    )
    agg["avg_kda"] = agg["total_kda"] / agg["games_played"]
    agg = agg.sort_values(["games_played", "avg_kda"], ascending=[False, False])

    out = []
    for puuid_, row in agg.iterrows():
        out.append({
            "name": row["name"],
            "games_played": int(row["games_played"]),
            "win_rate": f"{row['wins'] / row['games_played'] * 100:.1f}%",
            "avg_kda": f"{row['avg_kda']:.2f}",
            "champions": list(row["champions"]),
            "positions": list(row["positions"]),
            "puuid": puuid_,
        })
    return out


def find_duos_from_history(
    client: RiotClient,
    game_name: str,
    tag_line: str,
    match_count: int = 20,
    min_kda: float = 2.0,
    only_wins: bool = False,
) -> List[Dict]:
    logger.info("[Duo] Suche Duo-Partner in den letzten %d Matches von %s#%s ...", match_count, game_name, tag_line)
    account = client.account_by_riot_id(game_name, tag_line)
    puuid = account["puuid"]

    matches = [client.match(mid) for mid in client.match_ids(puuid, count=match_count)]
    duos = duo_candidates(matches, puuid, min_kda=min_kda, only_wins=only_wins)
    logger.info("[Duo] %d mögliche Duo-Partner gefunden.", len(duos))
    return duos
