#!/usr/bin/env python3
"""
scout.py - CLI für den LoL Player Scout / Duo Finder

Beispiele:
  (venv) export RIOT_API_KEY=YOUR-KEY
  (venv) python src/scout.py scout --lp 800-1000                 # Silver IV bis Silver II
  (venv) python src/scout.py scout --tier GOLD --division II --active 15 --queue solo
  (venv) python src/scout.py duos --name MyName --tag NA1 --matches 30 --kda 2.5 --wins
  (venv) python src/scout.py deep --puuid abc123... --matches 10
  (venv) python src/scout.py lpinfo 1575
  (venv) python src/scout.py cache

LP-Referenz (total LP = Tier-Basis + Division + aktuelle LP):
  Iron: 0-399      Bronze: 400-799    Silver: 800-1199
  Gold: 1200-1599  Platinum: 1600-1999  Emerald: 2000-2399
  Diamond: 2400-2799
  Division: IV=+0, III=+100, II=+200, I=+300   (Silver IV 50LP = 850, Gold I 75LP = 1575)

Ctrl+C während "scout" beendet die Suche sauber (Teilergebnisse + Cache werden gespeichert).
"""

import argparse
import json
import logging
import random
import signal
import sys
import threading
from typing import Dict, List, Optional

import pandas as pd
from tqdm import tqdm

from match_stats import deep_scout, find_duos_from_history
from player_cache import PlayerCache
from rank_lp import InvalidRank, format_rank, from_total_points
from riot_api import RiotApiError, RiotClient, SearchObserver
from scout_config import ConfigError, ScoutConfig, load_config
from scout_engine import ScoutQuery, parse_lp_range, parse_queue, scout_players

PLAYER_TABLE_COLS = ["name", "queue", "rank", "lp", "win_rate", "last_active_minutes", "last_game_mode", "source"]


class CliObserver(SearchObserver):
    """Fortschrittsbalken + Ctrl-C als Abbruchsignal."""

    def __init__(self, total: int, stop_event: threading.Event):
        self.stop_event = stop_event
        self.pbar = tqdm(total=total, desc="Scouting", unit="player")

    def on_player_found(self, player: Dict) -> None:
        self.pbar.update(1)
        self.pbar.set_postfix_str(str(player.get("name")))

    def on_rate_limit_changed(self, is_limited: bool, seconds: int) -> None:
        if is_limited:
            tqdm.write(f"[RateLimit] Rate-Limit erreicht - pausiere {seconds}s (Ctrl+C bricht ab)")
        else:
            tqdm.write("[RateLimit] Weiter geht's.")

    def on_partial_results(self, players: List[Dict]) -> None:
        tqdm.write(f"[RateLimit] Bisher {len(players)} Spieler gefunden:")
        tqdm.write(players_table(players))

    def is_aborted(self) -> bool:
        return self.stop_event.is_set()

    def close(self) -> None:
        self.pbar.close()


def players_table(players: List[Dict]) -> str:
    if not players:
        return "(keine Spieler)"
    df = pd.DataFrame(players)
    cols = [c for c in PLAYER_TABLE_COLS if c in df.columns]
    return df[cols].to_string(index=False)


def _dump(obj) -> None:
    print(json.dumps(obj, indent=2, ensure_ascii=False))


# ---------------- Kommandos ----------------

def build_query(args) -> ScoutQuery:
    lp_range = parse_lp_range(args.lp) if args.lp else None
    return ScoutQuery(
        queues=parse_queue(args.queue),
        tier=args.tier,
        division=args.division,
        lp_range=lp_range,
        max_players=args.max,
        active_within_minutes=args.active,
        min_win_rate=args.winrate,
    )


def cmd_scout(args, cfg: ScoutConfig) -> int:
    query = build_query(args)
    cfg.require_api_key()
    client = RiotClient(cfg)
    cache = PlayerCache(cfg.cache_file, max_age=cfg.cache_max_age, flush_every=cfg.cache_flush_every)
    rng = random.Random(args.seed) if args.seed is not None else None

    stop_event = threading.Event()

    def on_sigint(sig, frame):
        stop_event.set()
        print("\n[CTRL-C] Abbruch angefordert - laufende Anfrage wird beendet, Teilergebnisse werden gespeichert ...", file=sys.stderr)

    previous = signal.signal(signal.SIGINT, on_sigint)
    observer = CliObserver(query.max_players, stop_event)
    try:
        result = scout_players(client, cache, query, observer=observer, rng=rng,
                               max_pages=args.max_pages or cfg.max_pages)
    finally:
        observer.close()
        signal.signal(signal.SIGINT, previous)

    summary = (f"Gefunden: {len(result)} ({result.from_cache} aus Cache, {result.fresh} frisch)"
               f"{' - abgebrochen' if result.aborted else ''}{' - alle Seiten erschöpft' if result.exhausted else ''}")
    if args.json:
        # stdout bleibt reines JSON
        _dump(result.players)
        print(summary, file=sys.stderr)
    else:
        print(players_table(result.players))
        print(f"\n{summary}")
    return 0


def cmd_duos(args, cfg: ScoutConfig) -> int:
    cfg.require_api_key()
    client = RiotClient(cfg)
    duos = find_duos_from_history(client, args.name, args.tag, match_count=args.matches,
                                  min_kda=args.kda, only_wins=args.wins)
    if args.json:
        _dump(duos)
        return 0
    print(f"\n{len(duos)} mögliche Duo-Partner gefunden:\n")
    for d in duos[:10]:
        print(f"  {d['name']}")
        print(f"    Gemeinsame Spiele: {d['games_played']} | WR: {d['win_rate']} | Ø KDA: {d['avg_kda']}")
        print(f"    Rollen: {', '.join(str(p) for p in d['positions'])} | Champions: {', '.join(str(c) for c in d['champions'][:5])}")
        print("")
    return 0


def cmd_deep(args, cfg: ScoutConfig) -> int:
    cfg.require_api_key()
    client = RiotClient(cfg)
    report = deep_scout(client, args.puuid, match_count=args.matches)
    if args.json:
        _dump(report)
        return 0
    if report["recent_matches"]:
        print(pd.DataFrame(report["recent_matches"]).to_string(index=False))
    print("\nZusammenfassung:")
    _dump(report["summary"])
    return 0


def cmd_lpinfo(args, cfg: ScoutConfig) -> int:
    rank = from_total_points(args.lp)
    if args.json:
        _dump(rank)
    else:
        print(f"{args.lp} LP = {format_rank(rank)}")
    return 0


def cmd_cache(args, cfg: ScoutConfig) -> int:
    cache = PlayerCache(cfg.cache_file, max_age=cfg.cache_max_age)
    players = cache.snapshot()
    if args.active is not None:
        players = [p for p in players if p["last_active_minutes"] <= args.active]
    players.sort(key=lambda p: p["last_active_minutes"])
    if args.json:
        _dump(players)
    else:
        print(players_table(players))
        print(f"\n{len(players)} von {len(cache)} gecachten Spielern")
    return 0


# ---------------- argparse ----------------

def build_parser() -> argparse.ArgumentParser:
    common = argparse.ArgumentParser(add_help=False)
    common.add_argument("--key", type=str, default=None, help="Riot API Key (oder RIOT_API_KEY).")
    common.add_argument("--region", type=str, default=None, help="Plattform, z.B. na1, euw1, kr (default: na1).")
    common.add_argument("--routing", type=str, default=None,
                        help="Routing für match-v5/account-v1 (americas/europe/asia/sea); default aus --region.")
    common.add_argument("--cache-file", type=str, default=None, help="Pfad zur Cache-Datei (JSON).")
    common.add_argument("--json", action="store_true", help="Ausgabe als JSON.")
    common.add_argument("-v", "--verbose", action="store_true", help="Debug-Logging.")

    ap = argparse.ArgumentParser(description="League of Legends Player-Scout / Duo-Suche")
    sub = ap.add_subparsers(dest="command", required=True)

    sp = sub.add_parser("scout", parents=[common], help="Aktive Ranked-Spieler in Tier/Division oder LP-Bereich finden.")
    sp.add_argument("--lp", type=str, default=None, help='LP-Bereich "min-max" (z.B. "800-1000"); überschreibt tier/division.')
    sp.add_argument("--tier", type=str, default="GOLD", help="IRON ... DIAMOND, MASTER.")
    sp.add_argument("--division", type=str, default="II", help="I, II, III, IV.")
    sp.add_argument("--queue", type=str, default=None, help="solo, flex oder both (default: both).")
    sp.add_argument("--max", type=int, default=50, help="Wie viele aktive Spieler gesucht werden.")
    sp.add_argument("--active", type=int, default=30, help="Aktiv innerhalb der letzten X Minuten.")
    sp.add_argument("--winrate", type=float, default=0.0, help="Minimale Winrate 0-1.")
    sp.add_argument("--max-pages", type=int, default=None, help="Obergrenze der Seitenschätzung pro Division.")
    sp.add_argument("--seed", type=int, default=None, help="Seed für reproduzierbare Reihenfolge.")
    sp.set_defaults(func=cmd_scout)

    dp = sub.add_parser("duos", parents=[common], help="Duo-Partner aus der eigenen Match-History.")
    dp.add_argument("--name", type=str, required=True, help="Riot Game Name.")
    dp.add_argument("--tag", type=str, required=True, help="Tag Line (z.B. NA1).")
    dp.add_argument("--matches", type=int, default=20, help="Anzahl Matches.")
    dp.add_argument("--kda", type=float, default=2.0, help="Minimale KDA des Mitspielers.")
    dp.add_argument("--wins", action="store_true", help="Nur gewonnene Matches.")
    dp.set_defaults(func=cmd_duos)

    xp = sub.add_parser("deep", parents=[common], help="Match-History eines Spielers (PUUID) auswerten.")
    xp.add_argument("--puuid", type=str, required=True)
    xp.add_argument("--matches", type=int, default=5)
    xp.set_defaults(func=cmd_deep)

    lp = sub.add_parser("lpinfo", parents=[common], help="Total LP -> Tier/Division/LP.")
    lp.add_argument("lp", type=int)
    lp.set_defaults(func=cmd_lpinfo)

    cp = sub.add_parser("cache", parents=[common], help="Gecachte Spieler anzeigen.")
    cp.add_argument("--active", type=int, default=None, help="Nur Spieler aktiv innerhalb X Minuten.")
    cp.set_defaults(func=cmd_cache)

    return ap


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(message)s",
        datefmt="%H:%M:%S",
    )
    try:
        cfg = load_config(api_key=args.key, platform=args.region, routing=args.routing,
                          cache_file=args.cache_file)
        return args.func(args, cfg)
    except (ConfigError, InvalidRank, RiotApiError) as e:
        print(f"\nFehler: {e}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(main())
