#!/usr/bin/env python3
"""ratios.py

Prey biomass per predator biomass (PBPPB) by predator and box.

PBPPB for a (predator, box) pair is the plain mean of prey_wt / pred_wt over
the observations in that box. Undefined ratios (zero predator weight) are
left out of the mean. Pairs with no observation get no record at all.
"""

from __future__ import annotations

import numpy as np
import pandas as pd


PBPPB_COLUMNS = ["pred_name", "box_id", "pbppb", "n_obs"]


def compute_pbppb(attributed: pd.DataFrame) -> pd.DataFrame:
    """Mean prey_wt / pred_wt per predator and box; non-finite ratios are skipped."""
    df = attributed[["pred_name", "box_id", "prey_wt", "pred_wt"]].copy()
    with np.errstate(divide="ignore", invalid="ignore"):
        ratio = df["prey_wt"].astype(float) / df["pred_wt"].astype(float)
    df["ratio"] = ratio.where(np.isfinite(ratio))
    df = df.dropna(subset=["ratio"])

    out = (
        df.groupby(["pred_name", "box_id"], observed=True)["ratio"]
        .agg(pbppb="mean", n_obs="size")
        .reset_index()
    )
    out["pred_name"] = out["pred_name"].astype(str)
    out = out.sort_values(["pred_name", "box_id"]).reset_index(drop=True)

    print(f"[PBPPB] {len(out):,} predator x box ratios from {len(df):,} observations")
    return out[PBPPB_COLUMNS]
