#!/usr/bin/env python3
"""attribute.py

Assign each observation to the model box that contains it.

Points are reprojected into the box CRS and joined with predicate "within".
A point must land in exactly one box: points outside every box, and points
matched by several overlapping boxes, are dropped.
"""

from __future__ import annotations

import geopandas as gpd
import pandas as pd


def attribute_to_boxes(obs: gpd.GeoDataFrame, boxes: gpd.GeoDataFrame) -> pd.DataFrame:
    """Observations annotated with box_id and boundary, unattributed rows removed."""
    if obs.crs is None:
        raise ValueError("Observation points have no CRS; can't reproject to the box geometry.")
    if boxes.crs is None:
        raise ValueError("Box geometry has no CRS; can't attribute points.")

    pts = obs.to_crs(boxes.crs)
    joined = gpd.sjoin(pts, boxes[["box_id", "boundary", "geometry"]], how="inner", predicate="within")

    hits = joined.index.value_counts()
    single = hits[hits == 1].index
    n_multi = int((hits > 1).sum())
    n_outside = len(obs) - len(hits)

    out = joined.loc[joined.index.isin(single)].drop(columns=["geometry", "index_right"], errors="ignore")
    out = pd.DataFrame(out).sort_index()
    out["box_id"] = out["box_id"].astype(int)

    print(
        f"[ATTRIBUTE] {len(out):,} of {len(obs):,} observations placed in a box "
        f"({n_outside:,} outside all boxes, {n_multi:,} in more than one)"
    )
    return out.reset_index(drop=True)
