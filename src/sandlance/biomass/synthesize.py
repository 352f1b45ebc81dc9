#!/usr/bin/env python3
"""synthesize.py

Turn PBPPB ratios into sand lance biomass per box.

For each predator: predator biomass per box x PBPPB per box. The predator's
biomass table drives the join, so a box with biomass but no stomach data
contributes zero rather than disappearing. Contributions are then summed
across predators; every box of the geometry gets a row.

All of the "join N keyed tables, absent means zero" work goes through
join_with_default().
"""

from __future__ import annotations

import re
from typing import Dict, Mapping, Optional

import pandas as pd


BOX_COLUMNS = ["box_id", "botz", "area", "boundary"]


def contribution_column(name: str) -> str:
    """Column name for one predator's contribution, e.g. 'synth_pacific_cod'."""
    slug = re.sub(r"[^0-9a-z]+", "_", name.strip().lower()).strip("_")
    return f"synth_{slug}"


def join_with_default(
    frames: Mapping[str, pd.DataFrame],
    value: str,
    *,
    key: str = "box_id",
    index: Optional[pd.Index] = None,
    fill: float = 0.0,
) -> pd.DataFrame:
    """Outer-join keyed frames into one wide frame, one column per name.

    Missing (name, key) combinations get `fill`. If `index` is given the
    result is reindexed to it, so keys outside it are dropped and keys absent
    from every frame appear as `fill` rows.
    """
    series = []
    for name, df in frames.items():
        if df[key].duplicated().any():
            raise ValueError(f"{name}: duplicate {key} values can't be joined")
        series.append(df.set_index(key)[value].rename(name))

    if series:
        wide = pd.concat(series, axis=1, join="outer")
    else:
        wide = pd.DataFrame(index=pd.Index([], name=key))
    if index is not None:
        wide = wide.reindex(index)
    wide.index.name = key
    return wide.astype(float).fillna(fill)


def species_contribution(pbppb: pd.DataFrame, biomass: pd.DataFrame) -> pd.DataFrame:
    """box_id, pbppb, biomass, synth for one predator (biomass table drives)."""
    m = biomass.merge(pbppb[["box_id", "pbppb"]], on="box_id", how="left")
    m["synth"] = m["pbppb"].fillna(0.0) * m["biomass"].fillna(0.0)
    return m


def synthesize_box_biomass(
    pbppb: pd.DataFrame,
    biomass_tables: Dict[str, pd.DataFrame],
    boxes: pd.DataFrame,
) -> pd.DataFrame:
    """Per-box sand lance biomass summed over predators.

    Returns BOX_COLUMNS, one synth_<predator> column per predator, and
    `biomass_observed` (their sum). Row order follows box_id.
    """
    box_index = pd.Index(sorted(boxes["box_id"].astype(int)), name="box_id")

    contributions: Dict[str, pd.DataFrame] = {}
    for name, table in biomass_tables.items():
        unknown = sorted(set(table["box_id"]) - set(box_index))
        if unknown:
            print(f"[BIOMASS] {name}: ignoring {len(unknown)} box id(s) not in geometry: {unknown[:10]}")
        ratios = pbppb[pbppb["pred_name"] == name]
        contributions[contribution_column(name)] = species_contribution(ratios, table)

    wide = join_with_default(contributions, "synth", index=box_index)

    out = (
        boxes[BOX_COLUMNS]
        .drop_duplicates(subset="box_id")
        .set_index("box_id")
        .reindex(box_index)
        .join(wide)
    )
    out["biomass_observed"] = wide.sum(axis=1) if len(wide.columns) else 0.0
    out = out.reset_index()

    print(
        f"[BIOMASS] Synthesized sand lance biomass from {len(contributions)} predator(s); "
        f"{int((out['biomass_observed'] > 0).sum())} of {len(out)} boxes non-zero"
    )
    return out
