#!/usr/bin/env python3

from __future__ import annotations

import pandas as pd
import pytest

from sandlance.diet.predators import rank_predators, select_from_ranking, select_predators


PREY = ["Ammodytidae"]


def _diet(counts):
    rows = []
    for pred, n in counts.items():
        rows += [{"pred_name": pred, "prey_name": "Ammodytidae"}] * n
    # other prey never affects the ranking
    rows += [{"pred_name": "Sablefish", "prey_name": "Euphausiacea"}] * 50
    return pd.DataFrame(rows)


def test_rank_predators_descending_with_cumulative_share():
    ranking = rank_predators(_diet({"A": 2, "B": 6, "C": 2}).query("prey_name == 'Ammodytidae'"))
    assert ranking["pred_name"].tolist() == ["B", "A", "C"]
    assert ranking["n"].tolist() == [6, 2, 2]
    assert ranking["cum_prop"].iloc[-1] == pytest.approx(1.0)


def test_select_stops_at_threshold():
    # 85%, 95% -> stops after the second species
    diet = _diet({"A": 85, "B": 10, "C": 3, "D": 2})
    assert select_predators(diet, PREY) == ["A", "B"]


def test_select_caps_at_four():
    diet = _diet({"A": 20, "B": 20, "C": 20, "D": 20, "E": 10, "F": 10})
    assert select_predators(diet, PREY) == ["A", "B", "C", "D"]


def test_select_fewer_than_four_species():
    diet = _diet({"A": 3, "B": 1})
    assert select_predators(diet, PREY) == ["A", "B"]


@pytest.mark.parametrize("counts", [
    {"A": 1, "B": 1, "C": 1, "D": 1, "E": 1, "F": 1, "G": 1},
    {"A": 40, "B": 30, "C": 20, "D": 5, "E": 5},
    {"A": 97, "B": 1, "C": 1, "D": 1},
])
def test_select_invariant_at_most_four_in_count_order(counts):
    selected = select_predators(_diet(counts), PREY)
    assert 1 <= len(selected) <= 4
    ns = [counts[s] for s in selected]
    assert ns == sorted(ns, reverse=True)


def test_select_from_ranking_respects_custom_cap():
    ranking = rank_predators(_diet({"A": 1, "B": 1, "C": 1}).query("prey_name == 'Ammodytidae'"))
    assert select_from_ranking(ranking, max_predators=2) == ["A", "B"]


def test_select_without_sand_lance_fails():
    with pytest.raises(SystemExit):
        select_predators(_diet({}), PREY)


def test_select_stops_when_share_hits_threshold_exactly():
    # 7 + 1 + 1 of 10 is exactly 0.9; summing 0.7 + 0.1 + 0.1 would fall short
    diet = _diet({"A": 7, "B": 1, "C": 1, "D": 1})
    assert select_predators(diet, PREY) == ["A", "B", "C"]
    ranking = rank_predators(diet.query("prey_name == 'Ammodytidae'"))
    assert ranking["cum_prop"].tolist()[2] == 0.9
