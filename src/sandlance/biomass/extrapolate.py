#!/usr/bin/env python3
"""extrapolate.py

Fill the data-void region from depth-stratified densities.

Some boxes (the void set) have no usable survey or stomach coverage. Their
biomass is replaced by area x mean density of the covered boxes in the same
depth bin. Covered boxes are wet, non-boundary boxes outside the void set.

Depth bins are right-closed intervals over -botz: (1, 30], (30, 100], ...
Depths at or above the first break fall in the first bin, depths beyond the
last break fall in the last bin. A bin with no covered boxes takes the
density of the next deeper bin that has some (then the nearest shallower
one, then 0).
"""

from __future__ import annotations

from typing import Iterable, Sequence

import numpy as np
import pandas as pd

from sandlance.config import DEPTH_BREAKS


def depth_bin(botz: pd.Series, breaks: Sequence[float] = DEPTH_BREAKS) -> pd.Series:
    """0-based depth bin index for box depths (botz negative = below datum)."""
    edges = np.asarray(breaks, dtype=float)
    depth = -botz.to_numpy(dtype=float)
    idx = np.searchsorted(edges, depth, side="left") - 1
    idx = np.clip(idx, 0, len(edges) - 2)
    return pd.Series(idx, index=botz.index, name="depth_bin")


def bin_densities(
    boxes: pd.DataFrame,
    breaks: Sequence[float] = DEPTH_BREAKS,
    value: str = "biomass_observed",
) -> pd.Series:
    """Mean density (value / area) per depth bin over the reference boxes.

    `boxes` must already be restricted to the reference set. Every bin gets
    a value; empty bins borrow from a neighbour as described above.
    """
    n_bins = len(breaks) - 1
    dens = boxes[value].astype(float) / boxes["area"].astype(float)
    ok = np.isfinite(dens)
    observed = dens[ok].groupby(depth_bin(boxes["botz"], breaks)[ok]).mean()

    filled = {}
    for b in range(n_bins):
        if b in observed.index:
            filled[b] = float(observed[b])
            continue
        deeper = [d for d in observed.index if d > b]
        shallower = [d for d in observed.index if d < b]
        if deeper:
            filled[b] = float(observed[min(deeper)])
        elif shallower:
            filled[b] = float(observed[max(shallower)])
        else:
            filled[b] = 0.0
    return pd.Series(filled, name="density").rename_axis("depth_bin")


def extrapolate_void_boxes(
    df: pd.DataFrame,
    void_boxes: Iterable[int],
    breaks: Sequence[float] = DEPTH_BREAKS,
    value: str = "biomass_observed",
) -> pd.DataFrame:
    """Return a copy with depth_bin, void, density and extrapolated `biomass`.

    Boxes outside the void set keep `value` unchanged in `biomass`.
    """
    void = set(int(b) for b in void_boxes)
    out = df.copy()
    out["depth_bin"] = depth_bin(out["botz"], breaks)
    out["void"] = out["box_id"].isin(void)

    wet_interior = ~out["boundary"].astype(bool) & (out["botz"] < 0)
    reference = out[wet_interior & ~out["void"]]
    densities = bin_densities(reference, breaks, value=value)

    out["density"] = out["depth_bin"].map(densities)
    out["biomass"] = out[value].astype(float)

    target = wet_interior & out["void"]
    out.loc[target, "biomass"] = out.loc[target, "density"] * out.loc[target, "area"]

    if void:
        missing = sorted(void - set(out["box_id"]))
        if missing:
            print(f"[BIOMASS] Void box ids not in geometry (ignored): {missing}")
        print(f"[BIOMASS] Extrapolated {int(target.sum())} void box(es) from {len(reference)} reference boxes")
    return out
