import pytest

from rank_lp import (
    APEX_THRESHOLD,
    InvalidRank,
    combinations_overlapping,
    format_rank,
    from_total_points,
    to_total_points,
)
from scout_config import DIVISIONS, TIERS


class TestToTotalPoints:
    def test_silver_iv_50(self) -> None:
        assert to_total_points("SILVER", "IV", 50) == 850

    def test_gold_i_75(self) -> None:
        assert to_total_points("GOLD", "I", 75) == 1575

    def test_case_insensitive(self) -> None:
        assert to_total_points("gold", "ii") == 1400

    def test_points_default_to_zero(self) -> None:
        assert to_total_points("IRON", "IV") == 0

    def test_apex_tier_ignores_division(self) -> None:
        assert to_total_points("MASTER", "I", 120) == APEX_THRESHOLD + 120
        assert to_total_points("CHALLENGER", None, 5) == 2805

    def test_unknown_tier_raises(self) -> None:
        with pytest.raises(InvalidRank):
            to_total_points("WOOD", "IV", 0)

    def test_unknown_division_raises(self) -> None:
        with pytest.raises(InvalidRank):
            to_total_points("GOLD", "V", 0)


class TestFromTotalPoints:
    def test_850_is_silver_iv_50(self) -> None:
        assert from_total_points(850) == {"tier": "SILVER", "division": "IV", "points": 50}

    def test_negative_clamps_to_iron_iv(self) -> None:
        assert from_total_points(-25) == {"tier": "IRON", "division": "IV", "points": 0}

    def test_apex_threshold(self) -> None:
        assert from_total_points(2800) == {"tier": "MASTER", "division": None, "points": 0}
        assert from_total_points(3150)["points"] == 350

    def test_top_of_diamond(self) -> None:
        assert from_total_points(2799) == {"tier": "DIAMOND", "division": "I", "points": 99}

    @pytest.mark.parametrize("tier", TIERS)
    @pytest.mark.parametrize("division", DIVISIONS)
    def test_round_trip(self, tier: str, division: str) -> None:
        for points in (0, 37, 99):
            total = to_total_points(tier, division, points)
            assert from_total_points(total) == {"tier": tier, "division": division, "points": points}


class TestCombinationsOverlapping:
    def test_silver_range(self) -> None:
        assert combinations_overlapping(800, 1000) == [
            ("SILVER", "IV"),
            ("SILVER", "III"),
            ("SILVER", "II"),
        ]

    def test_upper_edge_of_band_is_inclusive(self) -> None:
        assert combinations_overlapping(800, 999) == [("SILVER", "IV"), ("SILVER", "III")]

    def test_lower_edge_of_band_is_inclusive(self) -> None:
        assert combinations_overlapping(899, 899) == [("SILVER", "IV")]
        assert combinations_overlapping(799, 800) == [("BRONZE", "I"), ("SILVER", "IV")]

    def test_tier_major_order(self) -> None:
        combos = combinations_overlapping(1100, 1300)
        assert combos == [("SILVER", "I"), ("GOLD", "IV"), ("GOLD", "III")]

    def test_range_above_diamond_is_empty(self) -> None:
        assert combinations_overlapping(3000, 3500) == []


class TestFormatRank:
    def test_with_division(self) -> None:
        assert format_rank(from_total_points(1575)) == "GOLD I 75LP"

    def test_apex(self) -> None:
        assert format_rank(from_total_points(2900)) == "MASTER 100LP"
