#!/usr/bin/env python3
"""predators.py

Pick the predators whose stomachs carry the sand lance signal.

Species are ranked by the number of sand lance records in their stomachs.
Selection walks the ranking until the cumulative share reaches the threshold
(the species that crosses it is kept), then caps the list at max_predators.
"""

from __future__ import annotations

from typing import Iterable, List

import pandas as pd

from sandlance.config import CUMULATIVE_THRESHOLD, MAX_PREDATORS
from sandlance.diet.load_diet import is_sand_lance


def rank_predators(sand_lance_rows: pd.DataFrame) -> pd.DataFrame:
    """Occurrence table: pred_name, n, prop, cum_prop (descending n)."""
    counts = (
        sand_lance_rows.groupby("pred_name", observed=True)
        .size()
        .rename("n")
        .reset_index()
    )
    # name as secondary key so equal counts rank the same way every run
    counts = counts.sort_values(["n", "pred_name"], ascending=[False, True]).reset_index(drop=True)
    total = counts["n"].sum()
    counts["prop"] = counts["n"] / total if total else 0.0
    # integer running count over one division, so 9 of 10 is exactly 0.9
    counts["cum_prop"] = counts["n"].cumsum() / total if total else 0.0
    return counts


def select_from_ranking(
    ranking: pd.DataFrame,
    *,
    max_predators: int = MAX_PREDATORS,
    threshold: float = CUMULATIVE_THRESHOLD,
) -> List[str]:
    """Walk the ranking until cum_prop reaches threshold, then cap the list."""
    selected: List[str] = []
    for _, row in ranking.iterrows():
        selected.append(str(row["pred_name"]))
        if row["cum_prop"] >= threshold:
            break
    return selected[:max_predators]


def select_predators(
    diet: pd.DataFrame,
    prey_names: Iterable[str],
    *,
    max_predators: int = MAX_PREDATORS,
    threshold: float = CUMULATIVE_THRESHOLD,
) -> List[str]:
    """Return the selected predator names, most frequent first."""
    positives = diet[is_sand_lance(diet["prey_name"], prey_names)]
    if positives.empty:
        raise SystemExit("No sand lance records in the diet table. Check diet.prey_names.")

    ranking = rank_predators(positives)
    selected = select_from_ranking(ranking, max_predators=max_predators, threshold=threshold)

    covered = ranking.loc[ranking["pred_name"].isin(selected), "prop"].sum()
    print(f"[DIET] {len(positives):,} sand lance records across {len(ranking)} predator species")
    print(f"[DIET] Selected {len(selected)} predator(s), {covered:.1%} of occurrences:")
    for name in selected:
        n = int(ranking.loc[ranking["pred_name"] == name, "n"].iloc[0])
        print(f"  - {name} (n={n})")
    return selected
