#!/usr/bin/env python3
"""
rank_lp.py

Lineare "Total LP"-Skala für Ranked:
    total = tier_index * 400 + division_index * 100 + lp

    Iron: 0-399      Bronze: 400-799    Silver: 800-1199
    Gold: 1200-1599  Platinum: 1600-1999  Emerald: 2000-2399
    Diamond: 2400-2799
    Divisionen: IV=+0, III=+100, II=+200, I=+300

Master/Grandmaster/Challenger haben keine Divisionen und landen alle ab 2800 (+ LP).
"""

from typing import Dict, List, Optional, Tuple

from scout_config import APEX_TIERS, DIVISIONS, TIERS

TIER_SIZE = 400
DIVISION_SIZE = 100
APEX_THRESHOLD = len(TIERS) * TIER_SIZE


class InvalidRank(ValueError):
    """Unbekannter Tier- oder Divisionsname."""


def normalize_rank(tier: str, division: Optional[str]) -> Tuple[str, Optional[str]]:
    """Upper-case + Validierung. Apex-Tiers haben keine Division."""
    t = str(tier or "").strip().upper()
    if t in APEX_TIERS:
        return t, None
    if t not in TIERS:
        raise InvalidRank(f"Unbekannter Tier: {tier!r}")
    d = str(division or "").strip().upper()
    if d not in DIVISIONS:
        raise InvalidRank(f"Unbekannte Division: {division!r}")
    return t, d


def to_total_points(tier: str, division: Optional[str], points: int = 0) -> int:
    """SILVER IV 50 LP -> 800 + 0 + 50 = 850"""
    t, d = normalize_rank(tier, division)
    points = int(points or 0)
    if d is None:
        return APEX_THRESHOLD + points
    return TIERS.index(t) * TIER_SIZE + DIVISIONS.index(d) * DIVISION_SIZE + points


def from_total_points(total: int) -> Dict:
    """850 -> {'tier': 'SILVER', 'division': 'IV', 'points': 50}"""
    total = int(total)
    if total < 0:
        return {"tier": TIERS[0], "division": DIVISIONS[0], "points": 0}
    if total >= APEX_THRESHOLD:
        return {"tier": APEX_TIERS[0], "division": None, "points": total - APEX_THRESHOLD}
    tier_idx, remainder = divmod(total, TIER_SIZE)
    div_idx, points = divmod(remainder, DIVISION_SIZE)
    return {"tier": TIERS[tier_idx], "division": DIVISIONS[div_idx], "points": points}


def combinations_overlapping(min_lp: int, max_lp: int) -> List[Tuple[str, str]]:
    """Alle (tier, division), deren 100er-Band [start, start+99] den Bereich schneidet.

    Reihenfolge: Tier-major, dann Division (IV -> I). Kein Shuffle hier.
    """
    out = []
    for tier_idx, tier in enumerate(TIERS):
        for div_idx, div in enumerate(DIVISIONS):
            start = tier_idx * TIER_SIZE + div_idx * DIVISION_SIZE
            end = start + DIVISION_SIZE - 1
            if end >= min_lp and start <= max_lp:
                out.append((tier, div))
    return out


def format_rank(rank: Dict) -> str:
    if rank.get("division"):
        return f"{rank['tier']} {rank['division']} {rank['points']}LP"
    return f"{rank['tier']} {rank['points']}LP"
