#!/usr/bin/env python3
"""pipeline.py

Run the sand lance prior end to end.

Stages (each consumes only the previous stage's output):
1. select predators from sand lance occurrence in stomachs
2. assemble presence/absence observations for those predators
3. attribute observations to model boxes
4. average prey/predator weight ratios per predator and box (PBPPB)
5. synthesize box biomass, extrapolate the void region, normalize

run_pipeline() returns every intermediate so callers and tests can inspect
them; write_outputs() is the only function that touches the filesystem.
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Dict, List, Optional

import geopandas as gpd
import pandas as pd

from sandlance.biomass.extrapolate import extrapolate_void_boxes
from sandlance.biomass.load_biomass import load_biomass_tables
from sandlance.biomass.normalize import DISTRIBUTION_COLUMNS, normalize_with_floor, zero_fill
from sandlance.biomass.ratios import compute_pbppb
from sandlance.biomass.synthesize import synthesize_box_biomass
from sandlance.config import PipelineConfig
from sandlance.diet.load_diet import load_diet
from sandlance.diet.predators import select_predators
from sandlance.diet.presence import assemble_observations
from sandlance.geo.attribute import attribute_to_boxes
from sandlance.registry.prep_boxes import load_boxes, summarize_boxes
from sandlance.validate import check_distribution


@dataclass
class PipelineResult:
    predators: List[str]
    boxes: gpd.GeoDataFrame
    observations: gpd.GeoDataFrame
    attributed: pd.DataFrame
    pbppb: pd.DataFrame
    box_biomass: pd.DataFrame
    distribution: pd.DataFrame


def build_distribution(
    diet: pd.DataFrame,
    boxes: gpd.GeoDataFrame,
    biomass_tables: Dict[str, pd.DataFrame],
    predators: List[str],
    cfg: PipelineConfig,
) -> PipelineResult:
    """Stages 2-5 on already-loaded inputs."""
    obs = assemble_observations(diet, predators, cfg.prey_names)
    attributed = attribute_to_boxes(obs, boxes)
    pbppb = compute_pbppb(attributed)

    tables = {name: biomass_tables[name] for name in predators}
    synth = synthesize_box_biomass(pbppb, tables, boxes)
    box_biomass = zero_fill(extrapolate_void_boxes(synth, cfg.void_boxes, cfg.depth_breaks))
    box_biomass = normalize_with_floor(box_biomass)

    distribution = box_biomass[DISTRIBUTION_COLUMNS].copy()
    check_distribution(distribution)

    return PipelineResult(
        predators=predators,
        boxes=boxes,
        observations=obs,
        attributed=attributed,
        pbppb=pbppb,
        box_biomass=box_biomass,
        distribution=distribution,
    )


def run_pipeline(cfg: PipelineConfig) -> PipelineResult:
    """Load every input named in cfg and run all stages."""
    boxes = load_boxes(
        cfg.geometry_path,
        boundary_boxes=cfg.boundary_boxes,
        crs=cfg.geometry_crs,
        columns=cfg.geometry_columns,
    )
    summarize_boxes(boxes)

    diet = load_diet(cfg.diet_csv, columns=cfg.diet_columns, years=cfg.years)
    predators = select_predators(
        diet,
        cfg.prey_names,
        max_predators=cfg.max_predators,
        threshold=cfg.cumulative_threshold,
    )
    biomass_tables = load_biomass_tables(
        cfg.biomass_tables,
        predators,
        box_column=cfg.biomass_box_column,
        value_column=cfg.biomass_value_column,
    )

    return build_distribution(diet, boxes, biomass_tables, predators, cfg)


def _write_csv(df: pd.DataFrame, path: Path) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    df.to_csv(path, index=False)
    print(f"[WRITE] {len(df)} rows -> {path}")


def write_outputs(result: PipelineResult, cfg: PipelineConfig) -> List[Path]:
    """Write the distribution CSV plus the optional QA CSV and GeoPackage."""
    written: List[Path] = []

    _write_csv(result.distribution, cfg.distribution_csv)
    written.append(cfg.distribution_csv)

    if cfg.qa_csv:
        _write_csv(result.box_biomass, cfg.qa_csv)
        written.append(cfg.qa_csv)

    if cfg.distribution_gpkg:
        gdf = result.boxes[["box_id", "label", "area", "geometry"]].merge(result.distribution, on="box_id")
        cfg.distribution_gpkg.parent.mkdir(parents=True, exist_ok=True)
        gdf.to_file(cfg.distribution_gpkg, layer="sand_lance_prior", driver="GPKG")
        print(f"[WRITE] {len(gdf)} boxes -> {cfg.distribution_gpkg} (layer=sand_lance_prior)")
        written.append(cfg.distribution_gpkg)

    return written


def print_summary(result: PipelineResult, top: int = 10) -> None:
    """Print the selected predators and the top boxes by proportion."""
    dist = result.distribution
    print(f"Predators: {', '.join(result.predators)}")
    print(f"Boxes with non-zero proportion: {int((dist['prop'] > 0).sum())} of {len(dist)}")
    print(f"Sum of proportions: {dist['prop'].sum():.12f}")
    print(f"Top {top} boxes:")
    for _, row in dist.sort_values(["prop", "box_id"], ascending=[False, True]).head(top).iterrows():
        print(f"  - box {int(row['box_id'])} | botz={row['botz']:.0f} | prop={row['prop']:.4f}")


def existing_outputs(cfg: PipelineConfig) -> List[Path]:
    """Configured output paths that already exist on disk."""
    paths: List[Optional[Path]] = [cfg.distribution_csv, cfg.qa_csv, cfg.distribution_gpkg]
    return [p for p in paths if p is not None and p.exists()]
