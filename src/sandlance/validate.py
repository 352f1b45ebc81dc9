#!/usr/bin/env python3
"""validate.py

QA checks shared by the pipeline stages.

- require_columns(): fail fast when an input table lacks a required column
- check_distribution(): the final table must sum to 1 with no empty wet box
"""

from __future__ import annotations

from typing import Iterable

import numpy as np
import pandas as pd


SUM_TOLERANCE = 1e-9


class SchemaError(ValueError):
    """An input table is missing columns the pipeline needs."""

    def __init__(self, table: str, missing: Iterable[str]):
        self.table = table
        self.missing = sorted(missing)
        super().__init__(f"{table}: missing expected columns {self.missing}")


class DegenerateDistributionError(ValueError):
    """The box biomasses can't be turned into a valid proportion vector."""


def require_columns(df: pd.DataFrame, columns: Iterable[str], table: str) -> None:
    """Raise SchemaError naming every column of `columns` absent from df."""
    miss = set(columns) - set(df.columns)
    if miss:
        raise SchemaError(table, miss)


def eligible_mask(df: pd.DataFrame) -> pd.Series:
    """Wet, interior boxes: not boundary and below the datum."""
    return ~df["boundary"].astype(bool) & (df["botz"] < 0)


def check_distribution(df: pd.DataFrame, tol: float = SUM_TOLERANCE) -> None:
    """Raise DegenerateDistributionError unless `prop` is a valid distribution."""
    require_columns(df, ["box_id", "botz", "boundary", "prop"], "distribution")

    prop = df["prop"].to_numpy(dtype=float)
    if not np.isfinite(prop).all():
        raise DegenerateDistributionError("Distribution has non-finite proportions")
    if (prop < 0).any():
        bad = df.loc[df["prop"] < 0, "box_id"].tolist()
        raise DegenerateDistributionError(f"Negative proportions in boxes {bad}")

    total = float(prop.sum())
    if abs(total - 1.0) > tol:
        raise DegenerateDistributionError(f"Proportions sum to {total!r}, expected 1")

    empty = df.loc[eligible_mask(df) & (df["prop"] == 0), "box_id"].tolist()
    if empty:
        raise DegenerateDistributionError(f"Eligible boxes left at zero: {empty}")

    if df["box_id"].duplicated().any():
        dup = df.loc[df["box_id"].duplicated(), "box_id"].unique().tolist()
        raise DegenerateDistributionError(f"Duplicate box ids: {dup}")
