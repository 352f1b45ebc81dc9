#!/usr/bin/env python3
"""presence.py

Build the presence/absence observation set for the selected predators.

- positives: stomachs of selected predators with sand lance in them
- zeros: stomachs of selected predators with other food but no sand lance,
  synthesized as a sand lance record with prey_wt = 0

An empty stomach says nothing about sand lance, so zero candidates need a
positive stomach weight. Each (hauljoin, pred_nodc, pred_specn) triple ends
up on exactly one row.
"""

from __future__ import annotations

from typing import Iterable

import geopandas as gpd
import pandas as pd

from sandlance.diet.load_diet import KEY_COLS, is_sand_lance


OBS_COLUMNS = KEY_COLS + [
    "pred_name", "pred_wt", "prey_wt", "stom_wt", "lon", "lat", "bottom_depth", "year",
]

GEOGRAPHIC_CRS = "EPSG:4326"


def _positives(diet: pd.DataFrame, sand_lance: pd.Series, in_pred: pd.Series) -> pd.DataFrame:
    """One row per stomach with sand lance, prey_wt summed over its records."""
    pos = diet[sand_lance & in_pred]
    first = pos.drop(columns="prey_wt").drop_duplicates(subset=KEY_COLS).set_index(KEY_COLS)
    prey = pos.groupby(KEY_COLS, observed=True)["prey_wt"].sum(min_count=1)
    return first.join(prey).reset_index()


def _zeros(diet: pd.DataFrame, sand_lance: pd.Series, in_pred: pd.Series, positive_keys: pd.MultiIndex) -> pd.DataFrame:
    """Non-empty stomachs of selected predators with no sand lance (prey_wt = 0)."""
    cand = diet[~sand_lance & in_pred]
    cand = cand[cand["stom_wt"] > 0]
    cand = cand.drop_duplicates(subset=KEY_COLS)

    keys = pd.MultiIndex.from_frame(cand[KEY_COLS])
    cand = cand[~keys.isin(positive_keys)].copy()
    cand["prey_wt"] = 0.0
    return cand


def assemble_observations(
    diet: pd.DataFrame,
    predators: Iterable[str],
    prey_names: Iterable[str],
) -> gpd.GeoDataFrame:
    """Positive + zero-augmented observations as lon/lat points (EPSG:4326)."""
    predators = list(predators)
    prey_names = list(prey_names)

    # unusable measurements: no position or no predator weight
    usable = diet.dropna(subset=["lon", "lat", "pred_wt"])
    n_dropped = len(diet) - len(usable)

    sand_lance = is_sand_lance(usable["prey_name"], prey_names)
    in_pred = usable["pred_name"].isin(predators).fillna(False).astype(bool)

    pos = _positives(usable, sand_lance, in_pred)
    positive_keys = pd.MultiIndex.from_frame(pos[KEY_COLS])
    zeros = _zeros(usable, sand_lance, in_pred, positive_keys)

    obs = pd.concat([pos[OBS_COLUMNS], zeros[OBS_COLUMNS]], ignore_index=True)
    obs = obs.sort_values(KEY_COLS, kind="mergesort").reset_index(drop=True)

    print(
        f"[DIET] Observations: {len(pos):,} with sand lance, {len(zeros):,} without "
        f"({n_dropped:,} diet rows lacked position or predator weight)"
    )

    return gpd.GeoDataFrame(
        obs,
        geometry=gpd.points_from_xy(obs["lon"], obs["lat"]),
        crs=GEOGRAPHIC_CRS,
    )
