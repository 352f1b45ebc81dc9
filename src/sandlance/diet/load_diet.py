#!/usr/bin/env python3
"""load_diet.py

Read the predator food-habits table and put it in canonical form.

Each row is one prey item found in one predator stomach. Source column names
vary between exports, so they are mapped through the `diet.columns` config
block onto the canonical names in config.DEFAULT_DIET_COLUMNS.

Malformed numbers become NaN rather than errors; stages that need a field
drop rows where it is missing.
"""

from __future__ import annotations

from pathlib import Path
from typing import Dict, Iterable, Optional, Tuple

import pandas as pd

from sandlance.config import DEFAULT_DIET_COLUMNS
from sandlance.validate import require_columns


NUMERIC_COLS = ["pred_wt", "prey_wt", "stom_wt", "lon", "lat", "bottom_depth", "year"]
STRING_COLS = ["pred_name", "prey_name"]
KEY_COLS = ["hauljoin", "pred_nodc", "pred_specn"]


def standardize_diet(
    raw: pd.DataFrame,
    columns: Optional[Dict[str, str]] = None,
    *,
    table: str = "diet",
) -> pd.DataFrame:
    """Rename, type and trim a raw diet frame."""
    columns = columns or DEFAULT_DIET_COLUMNS
    require_columns(raw, columns.values(), table)

    out = raw[list(columns.values())].rename(columns={v: k for k, v in columns.items()}).copy()

    for c in NUMERIC_COLS:
        out[c] = pd.to_numeric(out[c], errors="coerce")
    for c in STRING_COLS:
        out[c] = out[c].astype("string").str.strip()
    # keys compare as text so 123 and "123" match across exports
    for c in KEY_COLS:
        out[c] = out[c].astype("string").str.strip()

    # a record we can't key is useless for dedup
    out = out.dropna(subset=KEY_COLS + ["pred_name"]).reset_index(drop=True)
    return out


def filter_years(df: pd.DataFrame, years: Optional[Tuple[int, int]]) -> pd.DataFrame:
    if years is None:
        return df
    first, last = years
    return df[df["year"].between(first, last)].reset_index(drop=True)


def is_sand_lance(prey_name: pd.Series, prey_names: Iterable[str]) -> pd.Series:
    """Boolean mask: prey label is one of the sand lance names (case-insensitive)."""
    wanted = {p.strip().lower() for p in prey_names}
    return prey_name.astype("string").str.strip().str.lower().isin(wanted).fillna(False).astype(bool)


def load_diet(
    path: Path,
    *,
    columns: Optional[Dict[str, str]] = None,
    years: Optional[Tuple[int, int]] = None,
) -> pd.DataFrame:
    """Load the diet CSV into canonical columns.

    Raises:
        SystemExit: file missing.
        SchemaError: a mapped column is absent.
    """
    if not path.exists():
        raise SystemExit(f"Diet table not found: {path}")

    raw = pd.read_csv(path, low_memory=False)
    n_raw = len(raw)
    df = standardize_diet(raw, columns, table=f"diet table {path.name}")
    df = filter_years(df, years)

    print(f"[DIET] Loaded {n_raw:,} rows from {path.name}; {len(df):,} usable")
    if years is not None:
        print(f"[DIET] Years {years[0]}-{years[1]}")
    return df
