#!/usr/bin/env python3
"""normalize.py

Turn per-box biomass into the final proportion table.

zero_fill(): undefined biomass -> 0; boundary and dry boxes -> 0.
normalize_with_floor(): prop = biomass / total, then every eligible box left
at zero is raised to the smallest positive eligible proportion and the
excess is taken from the largest box, so the total stays exactly 1.

Eligible boxes are wet (botz < 0) and not boundary boxes.
"""

from __future__ import annotations

import numpy as np
import pandas as pd

from sandlance.validate import DegenerateDistributionError, eligible_mask


DISTRIBUTION_COLUMNS = ["box_id", "botz", "boundary", "prop"]


def zero_fill(df: pd.DataFrame, value: str = "biomass") -> pd.DataFrame:
    """NaN biomass -> 0, and boundary or dry boxes forced to 0."""
    out = df.copy()
    out[value] = out[value].astype(float).fillna(0.0)
    out.loc[~eligible_mask(out), value] = 0.0
    return out


def normalize_with_floor(df: pd.DataFrame, value: str = "biomass") -> pd.DataFrame:
    """Add a `prop` column that sums to 1 with no eligible box at zero.

    Ties for the largest proportion go to the lowest box_id.

    Raises:
        DegenerateDistributionError: total biomass is zero or not finite, or
            the floor would use up the whole largest box.
    """
    out = df.copy()
    biomass = out[value].astype(float)
    if biomass.isna().any() or not np.isfinite(biomass).all():
        raise DegenerateDistributionError(f"Undefined {value} values; run zero_fill() first")
    if (biomass < 0).any():
        raise DegenerateDistributionError(f"Negative {value} in boxes {out.loc[biomass < 0, 'box_id'].tolist()}")

    total = float(biomass.sum())
    if not np.isfinite(total) or total <= 0:
        raise DegenerateDistributionError(
            f"Total sand lance biomass is {total!r}; can't normalize an empty distribution"
        )

    out["prop"] = biomass / total

    eligible = eligible_mask(out)
    positive = out.loc[eligible & (out["prop"] > 0), "prop"]
    zeros = eligible & (out["prop"] == 0)
    k = int(zeros.sum())

    if k:
        min_prop = float(positive.min())
        max_prop = out["prop"].max()
        top = out.loc[out["prop"] == max_prop, "box_id"].min()
        top_idx = out.index[out["box_id"] == top][0]

        if max_prop - k * min_prop <= 0:
            raise DegenerateDistributionError(
                f"Flooring {k} empty boxes at {min_prop:.3g} would leave box {top} with nothing"
            )

        out.loc[zeros, "prop"] = min_prop
        out.loc[top_idx, "prop"] = max_prop - k * min_prop
        print(f"[NORMALIZE] Floored {k} empty box(es) at {min_prop:.3g}; box {top} absorbed {k * min_prop:.3g}")

    return out
