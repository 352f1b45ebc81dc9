#!/usr/bin/env python3
"""sandlance

CLI for the sand lance spatial prior.

Sand lance is rarely sampled directly, so its distribution over the GOA
Atlantis boxes is inferred from predator stomachs weighted by predator
biomass. This CLI is a thin wrapper around sandlance.pipeline.

Commands:
- boxes      → load the box geometry and summarize it (optionally export GPKG)
- predators  → rank predators by sand lance occurrence, show the selection
- build      → run the whole pipeline and write the distribution table

Outputs (paths from config):
- sand_lance_prior.csv  → box_id, botz, boundary, prop (sums to 1)
- optional QA CSV and GeoPackage

Examples:
  python -m sandlance --config config/sand_lance.yaml predators
  python -m sandlance --config config/sand_lance.yaml build --overwrite
  python -m sandlance boxes --out-gpkg data/interim/vectors/goa_boxes.gpkg
"""

from __future__ import annotations

import argparse
from pathlib import Path
from typing import List, Optional

from sandlance.config import DEFAULT_CONFIG_YAML, describe_config, load_pipeline_config


# -----------------------------------------------------------------------------
# CLI structure
# -----------------------------------------------------------------------------

def build_parser() -> argparse.ArgumentParser:
    """Build the argument parser for the sandlance CLI."""
    ap = argparse.ArgumentParser(
        prog="sandlance",
        description="Sand lance spatial prior for the GOA Atlantis boxes",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )

    # --- Global args ---
    ap.add_argument(
        "--config",
        type=Path,
        default=DEFAULT_CONFIG_YAML,
        help=f"Path to pipeline YAML (default: {DEFAULT_CONFIG_YAML})",
    )
    ap.add_argument(
        "--dry-run",
        action="store_true",
        help="Print planned actions without reading data or writing files",
    )
    ap.add_argument(
        "--overwrite",
        action="store_true",
        help="Overwrite existing output files",
    )

    # --- Subcommands ---
    sub = ap.add_subparsers(dest="command", required=True)

    boxes = sub.add_parser("boxes", help="Load and summarize the box geometry")
    boxes.add_argument(
        "--out-gpkg",
        type=Path,
        default=None,
        help="Optional GeoPackage to write the cleaned boxes to",
    )

    sub.add_parser("predators", help="Rank predators by sand lance occurrence")

    sub.add_parser(
        "build",
        help="Run the full pipeline",
        description="""
Run every stage and write the distribution table.

This command:
1. Selects predators from sand lance occurrence in stomachs
2. Builds presence/absence observations
3. Places observations in model boxes
4. Averages prey/predator weight ratios per box
5. Weights them by predator biomass, fills the void region, normalizes
        """,
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )

    return ap


# -----------------------------------------------------------------------------
# Command handlers
# -----------------------------------------------------------------------------

def _handle_boxes(args: argparse.Namespace) -> int:
    """Load the box geometry, list it, optionally export a GeoPackage."""
    cfg = load_pipeline_config(args.config)

    if args.dry_run:
        print("[DRY-RUN] Would load boxes:")
        print(f"  Geometry: {cfg.geometry_path}")
        if args.out_gpkg:
            print(f"  Output GeoPackage: {args.out_gpkg}")
        return 0

    from sandlance.registry.prep_boxes import load_boxes, summarize_boxes, write_boxes_gpkg

    boxes = load_boxes(
        cfg.geometry_path,
        boundary_boxes=cfg.boundary_boxes,
        crs=cfg.geometry_crs,
        columns=cfg.geometry_columns,
    )
    summarize_boxes(boxes)
    for _, row in boxes.iterrows():
        flag = " boundary" if row["boundary"] else ""
        print(f"  - box {row['box_id']} | botz={row['botz']:.0f} | area={row['area']:.4g}{flag}")

    if args.out_gpkg:
        if args.out_gpkg.exists() and not args.overwrite:
            print(f"[SKIP] {args.out_gpkg} exists (use --overwrite)")
            return 0
        write_boxes_gpkg(boxes, args.out_gpkg)
    return 0


def _handle_predators(args: argparse.Namespace) -> int:
    """Print the predator ranking and the selection it yields."""
    cfg = load_pipeline_config(args.config)

    if args.dry_run:
        print("[DRY-RUN] Would rank predators:")
        print(f"  Diet CSV: {cfg.diet_csv}")
        return 0

    from sandlance.diet.load_diet import is_sand_lance, load_diet
    from sandlance.diet.predators import rank_predators, select_predators

    diet = load_diet(cfg.diet_csv, columns=cfg.diet_columns, years=cfg.years)
    ranking = rank_predators(diet[is_sand_lance(diet["prey_name"], cfg.prey_names)])
    print("Ranking:")
    for _, row in ranking.iterrows():
        print(f"  {row['pred_name']:<32} n={int(row['n']):>6}  prop={row['prop']:.3f}  cum={row['cum_prop']:.3f}")

    select_predators(
        diet,
        cfg.prey_names,
        max_predators=cfg.max_predators,
        threshold=cfg.cumulative_threshold,
    )
    return 0


def _handle_build(args: argparse.Namespace) -> int:
    """Run the full pipeline and write outputs unless they already exist."""
    cfg = load_pipeline_config(args.config)

    if args.dry_run:
        print("[DRY-RUN] Would build the sand lance prior:")
        for line in describe_config(cfg):
            print(line)
        return 0

    from sandlance.pipeline import existing_outputs, print_summary, run_pipeline, write_outputs

    existing = existing_outputs(cfg)
    if existing and not args.overwrite:
        for p in existing:
            print(f"[SKIP] {p} exists")
        print("Use --overwrite to rebuild.")
        return 0

    result = run_pipeline(cfg)
    write_outputs(result, cfg)
    print_summary(result)
    return 0


# -----------------------------------------------------------------------------
# Main entrypoint
# -----------------------------------------------------------------------------

def main(argv: Optional[List[str]] = None) -> int:
    ap = build_parser()
    args = ap.parse_args(argv)

    handlers = {
        "boxes": _handle_boxes,
        "predators": _handle_predators,
        "build": _handle_build,
    }

    handler = handlers.get(args.command)
    if handler is None:
        raise SystemExit(f"Unknown command: {args.command}")

    return handler(args)


if __name__ == "__main__":
    raise SystemExit(main())
