#!/usr/bin/env python3
"""bgm.py

Read an Atlantis box geometry model (.bgm) into a GeoDataFrame.

A .bgm file is a flat key/value text format. The parts we need look like:

    projection +proj=aea +lat_1=55 +lat_2=65 ... +units=m +no_defs
    nbox 109
    box0.label Box0
    box0.botz -38
    box0.area 1.46e+09
    box0.vert -1019543.6 1022447.4
    box0.vert -1009262.5 1009394.3
    ...

Faces, connectivity and mixing coefficients are ignored. Some toolchains also
write `boxN.boundary 1`; when present it is honored.

Output columns: box_id, label, botz, area, boundary, geometry.
The CRS is taken from the `projection` line.
"""

from __future__ import annotations

import re
from pathlib import Path
from typing import Dict, List, Optional, Tuple

import geopandas as gpd
from shapely.geometry import Polygon


_BOX_KEY = re.compile(r"^box(\d+)\.(\w+)$")
_TRUTHY = {"1", "t", "true", "yes", "y"}


def _parse_float(value: str, where: str) -> float:
    try:
        return float(value)
    except ValueError as e:
        raise ValueError(f"Bad number {value!r} at {where}") from e


def _parse_lines(lines: List[str], source: str) -> Tuple[Optional[str], Optional[int], Dict[int, dict]]:
    projection: Optional[str] = None
    nbox: Optional[int] = None
    boxes: Dict[int, dict] = {}

    for lineno, raw in enumerate(lines, start=1):
        line = raw.strip()
        if not line or line.startswith("#"):
            continue
        parts = line.split()
        key, values = parts[0], parts[1:]
        where = f"{source}:{lineno}"

        if key == "projection":
            projection = " ".join(values)
            continue
        if key == "nbox":
            if not values:
                raise ValueError(f"nbox needs a value at {where}")
            nbox = int(_parse_float(values[0], where))
            continue

        m = _BOX_KEY.match(key)
        if not m:
            continue
        box_id, attr = int(m.group(1)), m.group(2).lower()
        rec = boxes.setdefault(box_id, {"verts": []})

        if attr == "vert":
            if len(values) < 2:
                raise ValueError(f"Vertex needs x and y at {where}")
            rec["verts"].append((_parse_float(values[0], where), _parse_float(values[1], where)))
        elif attr == "label":
            rec["label"] = " ".join(values)
        elif attr in ("botz", "area"):
            rec[attr] = _parse_float(values[0], where)
        elif attr == "boundary":
            rec["boundary"] = values[0].lower() in _TRUTHY

    return projection, nbox, boxes


def read_bgm(path: Path) -> gpd.GeoDataFrame:
    """Parse a .bgm file into one polygon row per box."""
    if not path.exists():
        raise SystemExit(f"Box geometry file not found: {path}")

    lines = path.read_text(encoding="utf-8", errors="replace").splitlines()
    projection, nbox, boxes = _parse_lines(lines, path.name)

    if not boxes:
        raise ValueError(f"{path}: no box definitions found. Is this a .bgm file?")
    if nbox is not None and nbox != len(boxes):
        raise ValueError(f"{path}: header says nbox {nbox} but found {len(boxes)} boxes")

    records = []
    for box_id in sorted(boxes):
        rec = boxes[box_id]
        if "botz" not in rec:
            raise ValueError(f"{path}: box{box_id} has no botz")
        verts = rec["verts"]
        if len(set(verts)) < 3:
            raise ValueError(f"{path}: box{box_id} has fewer than 3 distinct vertices")
        records.append({
            "box_id": box_id,
            "label": rec.get("label", f"Box{box_id}"),
            "botz": rec["botz"],
            "area": rec.get("area", float("nan")),
            "boundary": rec.get("boundary", False),
            "geometry": Polygon(verts),
        })

    return gpd.GeoDataFrame(records, geometry="geometry", crs=projection or None)
