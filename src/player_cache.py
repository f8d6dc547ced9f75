#!/usr/bin/env python3
"""
player_cache.py

On-disk Cache (JSON) für bereits gesehene Spieler, damit wir nicht bei jeder Suche
wieder dieselben match-v5-Requests machen.

- Schlüssel: PUUID, Wert: Spieler-Dict + 'cached_at' (Unix-Sekunden)
- Einträge älter als max_age werden bei get() ignoriert (nicht gelöscht)
- 'last_active_minutes' wird beim Lesen um die seit dem Cachen vergangene Zeit erhöht
- Speichern: alle flush_every Upserts + am Ende jeder Suche (immer ganze Datei, atomar)
"""

import json
import logging
import os
import time
from pathlib import Path
from typing import Callable, Dict, List, Optional

logger = logging.getLogger(__name__)

CACHE_MAX_AGE = 60 * 60  # 1h


NUMERIC_FIELDS = ("last_active_minutes", "wins", "losses")


def _is_number(value) -> bool:
    # bool ist auch int
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def _valid_record(record) -> bool:
    """Nur Einträge, mit denen get()/meets_criteria() rechnen können."""
    if not isinstance(record, dict) or not _is_number(record.get("cached_at")):
        return False
    if any(k in record and not _is_number(record[k]) for k in NUMERIC_FIELDS):
        return False
    total = record.get("total_lp")
    return total is None or _is_number(total)


class PlayerCache:
    def __init__(
        self,
        path,
        max_age: float = CACHE_MAX_AGE,
        flush_every: int = 10,
        clock: Callable[[], float] = time.time,
    ):
        self.path = Path(path)
        self.max_age = max_age
        self.flush_every = max(1, int(flush_every))
        self.clock = clock
        self.players: Dict[str, Dict] = {}
        self._upserts = 0
        self.load()

    def __len__(self):
        return len(self.players)

    def __contains__(self, puuid):
        return puuid in self.players

    # ---------------- I/O ----------------

    def load(self) -> None:
        """Liest die komplette Datei. Fehlt sie oder ist kaputt -> leerer Cache."""
        self.players = {}
        if not self.path.exists():
            return
        try:
            data = json.loads(self.path.read_text(encoding="utf-8"))
        except (OSError, ValueError) as e:
            logger.warning("[Cache] Konnte %s nicht lesen (%s) - starte leer.", self.path, e)
            return
        if not isinstance(data, dict):
            logger.warning("[Cache] %s ist kein JSON-Objekt - starte leer.", self.path)
            return
        self.players = {k: v for k, v in data.items() if _valid_record(v)}
        dropped = len(data) - len(self.players)
        if dropped:
            logger.warning("[Cache] %d kaputte Einträge in %s ignoriert.", dropped, self.path)
        logger.info("[Cache] %d Spieler geladen aus %s", len(self.players), self.path)

    def save(self) -> None:
        """Schreibt die ganze Datei über eine temp-Datei + os.replace."""
        self.path.parent.mkdir(parents=True, exist_ok=True)
        tmp = self.path.with_name(self.path.name + ".tmp")
        try:
            tmp.write_text(json.dumps(self.players, indent=2), encoding="utf-8")
            os.replace(tmp, self.path)
        except OSError as e:
            logger.warning("[Cache] Speichern fehlgeschlagen (%s): %s", self.path, e)

    # ---------------- Zugriff ----------------

    def age_seconds(self, record: Dict) -> float:
        return self.clock() - float(record["cached_at"])

    def adjusted_active_minutes(self, record: Dict) -> int:
        return int(record.get("last_active_minutes", 0)) + int(self.age_seconds(record) // 60)

    def get(self, puuid: str) -> Optional[Dict]:
        record = self.players.get(puuid)
        if record is None:
            return None
        if self.age_seconds(record) > self.max_age:
            return None
        return record

    def meets_criteria(
        self,
        record: Dict,
        active_within_minutes: int,
        min_win_rate: float = 0.0,
        min_lp: Optional[int] = None,
        max_lp: Optional[int] = None,
    ) -> bool:
        if self.adjusted_active_minutes(record) > active_within_minutes:
            return False

        games = record.get("wins", 0) + record.get("losses", 0)
        win_rate = record.get("wins", 0) / games if games else 0.0
        if win_rate < min_win_rate:
            return False

        if min_lp is not None and max_lp is not None:
            total = record.get("total_lp")
            if total is None or total < min_lp or total > max_lp:
                return False

        return True

    def put(self, player: Dict) -> Dict:
        """Upsert per PUUID mit frischem Zeitstempel; alle flush_every Upserts speichern."""
        record = {k: v for k, v in player.items() if k not in ("from_cache", "source", "updated_at")}
        record["cached_at"] = self.clock()
        self.players[player["puuid"]] = record
        self._upserts += 1
        if self._upserts % self.flush_every == 0:
            self.save()
        return record

    def snapshot(self) -> List[Dict]:
        """Alle gespeicherten Spieler, mit angepassten Aktiv-Minuten (auch abgelaufene)."""
        out = []
        for puuid, record in self.players.items():
            row = dict(record)
            row["puuid"] = puuid
            row["last_active_minutes"] = self.adjusted_active_minutes(record)
            row["from_cache"] = True
            out.append(row)
        return out
