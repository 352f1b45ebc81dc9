#!/usr/bin/env python3
"""load_biomass.py

Read per-predator box biomass tables (one CSV per predator).

The tables come from an external geostatistical model, already apportioned to
boxes. Anything finer than box (years, size classes) is flattened: records
are summed within a box-year, then averaged across years.
"""

from __future__ import annotations

from pathlib import Path
from typing import Dict, Iterable

import pandas as pd

from sandlance.validate import require_columns


def standardize_biomass(
    raw: pd.DataFrame,
    *,
    box_column: str = "box_id",
    value_column: str = "biomass",
    table: str = "biomass",
) -> pd.DataFrame:
    """Return box_id, biomass with one row per box."""
    require_columns(raw, [box_column, value_column], table)

    df = pd.DataFrame({
        "box_id": pd.to_numeric(raw[box_column], errors="coerce"),
        "biomass": pd.to_numeric(raw[value_column], errors="coerce"),
    })
    if "year" in raw.columns and box_column != "year":
        df["year"] = raw["year"]
    df = df.dropna(subset=["box_id"])
    df["box_id"] = df["box_id"].astype(int)

    if "year" in df.columns:
        per_year = df.groupby(["box_id", "year"])["biomass"].sum(min_count=1).reset_index()
        out = per_year.groupby("box_id")["biomass"].mean()
    else:
        out = df.groupby("box_id")["biomass"].sum(min_count=1)
    return out.reset_index().sort_values("box_id").reset_index(drop=True)


def load_biomass_table(
    path: Path,
    *,
    box_column: str = "box_id",
    value_column: str = "biomass",
) -> pd.DataFrame:
    """Read one per-box biomass CSV into box_id, biomass."""
    if not path.exists():
        raise SystemExit(f"Biomass table not found: {path}")
    raw = pd.read_csv(path)
    return standardize_biomass(
        raw, box_column=box_column, value_column=value_column, table=f"biomass table {path.name}"
    )


def load_biomass_tables(
    tables: Dict[str, Path],
    predators: Iterable[str],
    *,
    box_column: str = "box_id",
    value_column: str = "biomass",
) -> Dict[str, pd.DataFrame]:
    """Load the biomass table of every selected predator.

    A selected predator without a configured table is a config error.
    """
    predators = list(predators)
    missing = [p for p in predators if p not in tables]
    if missing:
        raise SystemExit(
            f"No biomass table configured for selected predator(s): {missing}\n"
            f"Configured: {sorted(tables)}"
        )

    out: Dict[str, pd.DataFrame] = {}
    for name in predators:
        df = load_biomass_table(tables[name], box_column=box_column, value_column=value_column)
        out[name] = df
        print(f"[BIOMASS] {name}: {len(df)} boxes, total {df['biomass'].sum():,.1f}")
    return out
