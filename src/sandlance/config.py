#!/usr/bin/env python3
"""sandlance.config

Shared configuration for the sand lance prior pipeline.

Everything the pipeline needs to know about its inputs lives in one YAML file
(default: config/sand_lance.yaml). This module loads it, fills in the named
defaults below, and hands the stages a single PipelineConfig.

Design notes:
- YAML loading is strict: files must exist and be valid mappings.
- The empirical constants (predator cap, depth breaks) are named here and can
  be overridden from YAML; nothing downstream hardcodes them.
- All functions are pure (no side effects on import).
"""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, FrozenSet, List, Optional, Tuple

import yaml


# -----------------------------------------------------------------------------
# Named constants
# -----------------------------------------------------------------------------

# Predators are ranked by how often sand lance shows up in their stomachs.
# Selection stops once the cumulative share reaches the threshold, and never
# keeps more than MAX_PREDATORS species.
MAX_PREDATORS = 4
CUMULATIVE_THRESHOLD = 0.9

# Depth breaks (m, positive down) for the void-region extrapolation.
DEPTH_BREAKS: Tuple[float, ...] = (1, 30, 100, 200, 500, 1000, 4000)

# Prey labels that count as sand lance in the food-habits data.
DEFAULT_PREY_NAMES: Tuple[str, ...] = (
    "Ammodytidae",
    "Ammodytes",
    "Ammodytes hexapterus",
    "Ammodytes personatus",
    "Pacific sand lance",
)

# canonical name -> column in the diet CSV (AFSC REEM food-habits export)
DEFAULT_DIET_COLUMNS: Dict[str, str] = {
    "hauljoin": "Hauljoin",
    "pred_nodc": "Pred_nodc",
    "pred_specn": "Pred_specn",
    "pred_name": "Pred_name",
    "pred_wt": "Pred_full",
    "prey_name": "Prey_Name",
    "prey_wt": "Prey_twt",
    "stom_wt": "Pred_stomwt",
    "lon": "Rlong",
    "lat": "Rlat",
    "bottom_depth": "Bottom_depth",
    "year": "Year",
}


# -----------------------------------------------------------------------------
# Default paths
# -----------------------------------------------------------------------------

DEFAULT_CONFIG_YAML = Path("config/sand_lance.yaml")
DEFAULT_DISTRIBUTION_CSV = Path("data/processed/sand_lance_prior.csv")


# -----------------------------------------------------------------------------
# YAML loading
# -----------------------------------------------------------------------------

def load_yaml(path: Path) -> Dict[str, Any]:
    """Load a YAML file and return as dict.

    Raises SystemExit on missing file or invalid format (non-mapping).
    """
    if not path.exists():
        raise SystemExit(f"Config not found: {path}")
    with path.open("r", encoding="utf-8") as f:
        data = yaml.safe_load(f)
    if not isinstance(data, dict):
        raise SystemExit(f"Expected YAML mapping at {path}")
    return data


# -----------------------------------------------------------------------------
# Coercion helpers
# -----------------------------------------------------------------------------

def coerce_box_set(x: Any) -> FrozenSet[int]:
    """Coerce a box selection into a set of box ids.

    Accepts:
    - a list of ids: [92, 93, 94]
    - an inclusive range mapping: {start: 92, end: 108}
    - an inclusive range string: "92-108"
    - None (empty set)
    """
    if x is None:
        return frozenset()
    if isinstance(x, dict):
        if "start" not in x or "end" not in x:
            raise SystemExit(f"Box range needs 'start' and 'end': {x}")
        start, end = int(x["start"]), int(x["end"])
        if end < start:
            raise SystemExit(f"Box range end before start: {x}")
        return frozenset(range(start, end + 1))
    if isinstance(x, str):
        parts = x.split("-")
        if len(parts) != 2:
            raise SystemExit(f"Box range string must look like '92-108': {x!r}")
        return coerce_box_set({"start": parts[0].strip(), "end": parts[1].strip()})
    if isinstance(x, (list, tuple, set, frozenset)):
        return frozenset(int(v) for v in x)
    raise SystemExit(f"Can't interpret box selection: {x!r}")


def coerce_year_range(x: Any) -> Optional[Tuple[int, int]]:
    """Coerce [first, last] into an inclusive year range, or None."""
    if x is None:
        return None
    if isinstance(x, (list, tuple)) and len(x) == 2:
        first, last = int(x[0]), int(x[1])
        if last < first:
            raise SystemExit(f"Year range last before first: {x}")
        return (first, last)
    raise SystemExit(f"years must be [first, last], got {x!r}")


# -----------------------------------------------------------------------------
# Pipeline config
# -----------------------------------------------------------------------------

@dataclass
class PipelineConfig:
    diet_csv: Path
    geometry_path: Path
    biomass_tables: Dict[str, Path]
    distribution_csv: Path = DEFAULT_DISTRIBUTION_CSV
    qa_csv: Optional[Path] = None
    distribution_gpkg: Optional[Path] = None

    diet_columns: Dict[str, str] = field(default_factory=lambda: dict(DEFAULT_DIET_COLUMNS))
    prey_names: Tuple[str, ...] = DEFAULT_PREY_NAMES
    years: Optional[Tuple[int, int]] = None

    max_predators: int = MAX_PREDATORS
    cumulative_threshold: float = CUMULATIVE_THRESHOLD

    depth_breaks: Tuple[float, ...] = DEPTH_BREAKS
    void_boxes: FrozenSet[int] = frozenset()

    boundary_boxes: FrozenSet[int] = frozenset()
    geometry_crs: Optional[str] = None
    geometry_columns: Dict[str, str] = field(default_factory=dict)

    biomass_box_column: str = "box_id"
    biomass_value_column: str = "biomass"


def _section(data: Dict[str, Any], key: str, path: Path) -> Dict[str, Any]:
    block = data.get(key) or {}
    if not isinstance(block, dict):
        raise SystemExit(f"{path}: '{key}:' must be a mapping")
    return block


def _require(block: Dict[str, Any], key: str, where: str) -> Any:
    if block.get(key) in (None, ""):
        raise SystemExit(f"Config missing {where}.{key}")
    return block[key]


def config_from_mapping(data: Dict[str, Any], path: Path = DEFAULT_CONFIG_YAML) -> PipelineConfig:
    """Build a PipelineConfig from a parsed YAML mapping.

    Expected structure (only `inputs:` is required):

        inputs:
          diet_csv: data/raw/diet/goa_diet.csv
          geometry: data/raw/atlantis/GOA_WGS84_V4_final.bgm
          biomass:
            Arrowtooth flounder: data/raw/biomass/atf_box.csv
            ...
        outputs:
          distribution_csv: data/processed/sand_lance_prior.csv
          qa_csv: data/interim/tables/sand_lance_box_qa.csv
          distribution_gpkg: null
        diet:
          prey_names: [...]
          columns: {pred_wt: Pred_full, ...}
          years: [1990, 2019]
        selection:
          max_predators: 4
          cumulative_threshold: 0.9
        extrapolation:
          depth_breaks: [1, 30, 100, 200, 500, 1000, 4000]
          void_boxes: {start: 92, end: 108}
        geometry:
          boundary_boxes: [0, 1, ...]
          crs: null
          columns: {box_id: box_id, botz: botz, ...}
        biomass:
          box_column: box_id
          value_column: biomass
    """
    inputs = _section(data, "inputs", path)
    outputs = _section(data, "outputs", path)
    diet = _section(data, "diet", path)
    selection = _section(data, "selection", path)
    extrap = _section(data, "extrapolation", path)
    geometry = _section(data, "geometry", path)
    biomass = _section(data, "biomass", path)

    tables = _require(inputs, "biomass", "inputs")
    if not isinstance(tables, dict) or not tables:
        raise SystemExit(f"{path}: inputs.biomass must map predator names to CSV paths")

    columns = dict(DEFAULT_DIET_COLUMNS)
    columns.update({str(k): str(v) for k, v in (diet.get("columns") or {}).items()})

    prey_names = diet.get("prey_names") or list(DEFAULT_PREY_NAMES)
    if isinstance(prey_names, str):
        prey_names = [prey_names]

    breaks = tuple(float(b) for b in extrap.get("depth_breaks", DEPTH_BREAKS))
    if len(breaks) < 2 or any(b2 <= b1 for b1, b2 in zip(breaks, breaks[1:])):
        raise SystemExit(f"{path}: extrapolation.depth_breaks must be strictly increasing")

    max_predators = int(selection.get("max_predators", MAX_PREDATORS))
    if max_predators < 1:
        raise SystemExit(f"{path}: selection.max_predators must be >= 1")
    threshold = float(selection.get("cumulative_threshold", CUMULATIVE_THRESHOLD))
    if not 0 < threshold <= 1:
        raise SystemExit(f"{path}: selection.cumulative_threshold must be in (0, 1]")

    def _opt_path(v: Any) -> Optional[Path]:
        return Path(v) if v else None

    return PipelineConfig(
        diet_csv=Path(_require(inputs, "diet_csv", "inputs")),
        geometry_path=Path(_require(inputs, "geometry", "inputs")),
        biomass_tables={str(k): Path(v) for k, v in tables.items()},
        distribution_csv=Path(outputs.get("distribution_csv") or DEFAULT_DISTRIBUTION_CSV),
        qa_csv=_opt_path(outputs.get("qa_csv")),
        distribution_gpkg=_opt_path(outputs.get("distribution_gpkg")),
        diet_columns=columns,
        prey_names=tuple(str(p) for p in prey_names),
        years=coerce_year_range(diet.get("years")),
        max_predators=max_predators,
        cumulative_threshold=threshold,
        depth_breaks=breaks,
        void_boxes=coerce_box_set(extrap.get("void_boxes")),
        boundary_boxes=coerce_box_set(geometry.get("boundary_boxes")),
        geometry_crs=geometry.get("crs") or None,
        geometry_columns={str(k): str(v) for k, v in (geometry.get("columns") or {}).items()},
        biomass_box_column=str(biomass.get("box_column", "box_id")),
        biomass_value_column=str(biomass.get("value_column", "biomass")),
    )


def load_pipeline_config(path: Path = DEFAULT_CONFIG_YAML) -> PipelineConfig:
    """Load and validate the pipeline YAML."""
    return config_from_mapping(load_yaml(path), path)


def describe_config(cfg: PipelineConfig) -> List[str]:
    """Human-readable summary lines (used by --dry-run)."""
    lines = [
        f"  Diet CSV: {cfg.diet_csv}",
        f"  Geometry: {cfg.geometry_path}",
        f"  Biomass tables: {len(cfg.biomass_tables)}",
    ]
    for name, p in sorted(cfg.biomass_tables.items()):
        lines.append(f"    - {name}: {p}")
    lines.append(f"  Predators: top {cfg.max_predators} up to {cfg.cumulative_threshold:.0%} cumulative")
    lines.append(f"  Depth breaks: {list(cfg.depth_breaks)}")
    lines.append(f"  Void boxes: {sorted(cfg.void_boxes) if cfg.void_boxes else 'none'}")
    lines.append(f"  Output: {cfg.distribution_csv}")
    return lines
