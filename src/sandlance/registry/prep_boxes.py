#!/usr/bin/env python3
"""prep_boxes.py

Load the model domain boxes into a clean GeoDataFrame.

The box geometry is the source of truth for spatial units: every other stage
joins against `box_id`. Two sources are accepted:
1. an Atlantis .bgm file (parsed by registry.bgm)
2. any vector file geopandas can read (.gpkg, .shp, .geojson) carrying
   box id, depth, area and boundary columns

Output columns: box_id, label, botz, area, boundary, geometry.
CRS is the domain's native planar projection and is kept as-is.

Notes:
- Invalid polygons are repaired with make_valid().
- Missing areas are computed in the native CRS.
- Boundary flags from the source are OR-ed with any configured boundary ids.
"""

from __future__ import annotations

from pathlib import Path
from typing import Dict, Iterable, List, Optional

import geopandas as gpd
import pandas as pd
from pyproj import CRS
from pyproj.exceptions import CRSError

from sandlance.registry.bgm import read_bgm
from sandlance.validate import SchemaError


VECTOR_SUFFIXES = {".gpkg", ".shp", ".geojson", ".json"}

# canonical column -> candidate names in vector sources, in priority order
COLUMN_CANDIDATES: Dict[str, List[str]] = {
    "box_id": ["box_id", ".bx0", "bx0", "boxid", "box"],
    "botz": ["botz", "depth", "bottom_depth"],
    "area": ["area", "area_m2"],
    "boundary": ["boundary", "is_boundary", "bnd"],
    "label": ["label", "name"],
}

OUTPUT_COLUMNS = ["box_id", "label", "botz", "area", "boundary", "geometry"]


# -----------------------------------------------------------------------------
# Helper functions
# -----------------------------------------------------------------------------

def _pick_col(columns: List[str], candidates: List[str]) -> Optional[str]:
    # exact first, then case-insensitive
    for c in candidates:
        if c in columns:
            return c
    lower = {c.lower(): c for c in columns}
    for c in candidates:
        if c.lower() in lower:
            return lower[c.lower()]
    return None


def _standardize_vector(gdf: gpd.GeoDataFrame, overrides: Dict[str, str], source: str) -> gpd.GeoDataFrame:
    """Rename vector source columns to canonical names."""
    columns = [c for c in gdf.columns if c != gdf.geometry.name]
    rename = {}
    missing = []
    for canon, candidates in COLUMN_CANDIDATES.items():
        preferred = overrides.get(canon)
        if preferred:
            if preferred not in columns:
                raise SchemaError(source, [preferred])
            rename[preferred] = canon
            continue
        col = _pick_col(columns, candidates)
        if col:
            rename[col] = canon
        elif canon in ("box_id", "botz"):
            missing.append(canon)
    if missing:
        raise SchemaError(source, missing)

    out = gdf.rename(columns=rename)
    if "area" not in out.columns:
        out["area"] = float("nan")
    if "boundary" not in out.columns:
        out["boundary"] = False
    if "label" not in out.columns:
        out["label"] = "Box" + out["box_id"].astype(str)
    if out.geometry.name != "geometry":
        out = out.rename_geometry("geometry")
    return out


def _coerce_bool(s: pd.Series) -> pd.Series:
    """Boundary flags stored as 0/1, yes/no or true/false strings -> bool."""
    if s.dtype == bool:
        return s
    return s.astype(str).str.strip().str.lower().isin(["1", "1.0", "t", "true", "yes", "y"])


def _make_valid(gdf: gpd.GeoDataFrame) -> gpd.GeoDataFrame:
    """Return a copy with invalid polygons repaired by make_valid()."""
    gdf = gdf.copy()
    invalid = ~gdf.geometry.is_valid
    if invalid.any():
        print(f"[BOXES] Repairing {int(invalid.sum())} invalid polygon(s)")
        gdf.loc[invalid, "geometry"] = gdf.loc[invalid, "geometry"].make_valid()
    return gdf


def _resolve_crs(crs: str) -> CRS:
    """Parse a configured CRS string (EPSG code, proj4 or WKT)."""
    try:
        return CRS.from_user_input(crs)
    except CRSError as e:
        raise SystemExit(f"Invalid geometry.crs {crs!r}: {e}") from e


def _fill_area(gdf: gpd.GeoDataFrame) -> gpd.GeoDataFrame:
    """Compute planar area in the native CRS where the source has none."""
    missing = gdf["area"].isna()
    if missing.any():
        if gdf.crs is not None and gdf.crs.is_geographic:
            raise SystemExit(
                "Box areas are missing and the geometry CRS is geographic; "
                "can't compute planar areas. Supply areas or a projected CRS."
            )
        gdf.loc[missing, "area"] = gdf.loc[missing, "geometry"].area
    return gdf


# -----------------------------------------------------------------------------
# Core function
# -----------------------------------------------------------------------------

def load_boxes(
    path: Path,
    *,
    boundary_boxes: Iterable[int] = (),
    crs: Optional[str] = None,
    columns: Optional[Dict[str, str]] = None,
) -> gpd.GeoDataFrame:
    """Load domain boxes from a .bgm or vector file.

    Args:
        path: .bgm, .gpkg, .shp or .geojson file
        boundary_boxes: extra box ids to flag as boundary boxes
        crs: CRS to assign when the source carries none
        columns: explicit canonical -> source column names for vector files

    Returns:
        GeoDataFrame sorted by box_id with OUTPUT_COLUMNS.

    Raises:
        SystemExit: missing file, unsupported format, missing or invalid CRS.
        SchemaError: required columns absent from a vector source.
    """
    if not path.exists():
        raise SystemExit(f"Box geometry file not found: {path}")

    ext = path.suffix.lower()
    if ext == ".bgm":
        gdf = read_bgm(path)
    elif ext in VECTOR_SUFFIXES:
        gdf = _standardize_vector(gpd.read_file(path), columns or {}, f"box geometry {path.name}")
    else:
        supported = ", ".join([".bgm"] + sorted(VECTOR_SUFFIXES))
        raise SystemExit(f"Unsupported box geometry format: {ext}. Supported formats: {supported}")

    if gdf.empty:
        raise SystemExit(f"Loaded {path} but it contains zero boxes. Wrong file?")

    if gdf.crs is None:
        if not crs:
            raise SystemExit(
                f"{path} has no CRS and none was configured (geometry.crs). "
                "Everything downstream depends on CRS."
            )
        gdf = gdf.set_crs(_resolve_crs(crs))

    gdf["box_id"] = pd.to_numeric(gdf["box_id"], errors="raise").astype(int)
    if gdf["box_id"].duplicated().any():
        dup = sorted(gdf.loc[gdf["box_id"].duplicated(), "box_id"].unique().tolist())
        raise SystemExit(f"Duplicate box ids in {path}: {dup}")

    gdf["botz"] = pd.to_numeric(gdf["botz"], errors="coerce").astype(float)
    gdf["area"] = pd.to_numeric(gdf["area"], errors="coerce").astype(float)
    gdf["boundary"] = _coerce_bool(gdf["boundary"])

    extra = set(int(b) for b in boundary_boxes)
    unknown = extra - set(gdf["box_id"])
    if unknown:
        print(f"[BOXES] Configured boundary ids not in geometry (ignored): {sorted(unknown)}")
    gdf["boundary"] = gdf["boundary"] | gdf["box_id"].isin(extra)

    gdf = _make_valid(gdf)
    gdf = _fill_area(gdf)

    out = gdf[OUTPUT_COLUMNS].sort_values("box_id").reset_index(drop=True)
    return gpd.GeoDataFrame(out, geometry="geometry", crs=gdf.crs)


def summarize_boxes(boxes: gpd.GeoDataFrame) -> None:
    """Print a human-friendly summary of the box registry."""
    wet = boxes["botz"] < 0
    print(
        f"[BOXES] {len(boxes)} boxes | {int(boxes['boundary'].sum())} boundary | "
        f"{int((~wet).sum())} dry | CRS: {boxes.crs.to_string() if boxes.crs else 'none'}"
    )


def write_boxes_gpkg(boxes: gpd.GeoDataFrame, out_gpkg: Path, layer: str = "boxes") -> None:
    """Write the cleaned boxes to a GeoPackage layer."""
    out_gpkg.parent.mkdir(parents=True, exist_ok=True)
    boxes.to_file(out_gpkg, layer=layer, driver="GPKG")
    print(f"[WRITE] {len(boxes)} boxes -> {out_gpkg} (layer={layer})")
