#!/usr/bin/env python3

from __future__ import annotations

import pandas as pd
import pytest
import yaml

from conftest import diet_row, to_raw_diet
from sandlance.__main__ import main
from sandlance.config import load_pipeline_config
from sandlance.pipeline import run_pipeline, write_outputs
from sandlance.validate import DegenerateDistributionError


def _bgm(layout):
    """layout: list of (botz, area, boundary); 1x1 degree boxes from -150."""
    lines = ["projection +proj=longlat +datum=WGS84 +no_defs", f"nbox {len(layout)}"]
    for i, (botz, area, boundary) in enumerate(layout):
        x0 = -150 + i
        lines += [
            f"box{i}.label Box{i}",
            f"box{i}.botz {botz}",
            f"box{i}.area {area}",
        ]
        if boundary:
            lines.append(f"box{i}.boundary 1")
        for x, y in [(x0, 55), (x0 + 1, 55), (x0 + 1, 56), (x0, 56), (x0, 55)]:
            lines.append(f"box{i}.vert {x} {y}")
    return "\n".join(lines) + "\n"


@pytest.fixture
def project(tmp_path):
    (tmp_path / "goa.bgm").write_text(_bgm([
        (-20, 1, False),
        (-150, 2, False),
        (-150, 1, False),
        (-150, 3, False),
        (-300, 1, True),
    ]))

    rows = [
        diet_row(1, 1, "Pacific cod", "Ammodytidae", 2.0, pred_wt=100.0, lon=-149.5),
        diet_row(1, 1, "Pacific cod", "Euphausiacea", 1.0, pred_wt=100.0, lon=-149.5),
        diet_row(2, 2, "Pacific cod", "Ammodytidae", 1.0, pred_wt=100.0, lon=-148.5),
        diet_row(2, 3, "Pacific cod", "Chionoecetes", 3.0, pred_wt=100.0, lon=-148.5),
        diet_row(2, 4, "Pacific cod", "Empty", 0.0, pred_wt=100.0, stom_wt=0.0, lon=-148.5),
        diet_row(3, 5, "Walleye pollock", "Ammodytidae", 4.0, pred_wt=200.0, lon=-147.5),
        diet_row(9, 6, "Pacific cod", "Ammodytidae", 4.0, pred_wt=200.0, lon=-120.0, lat=40.0),
        diet_row(4, 7, "Sablefish", "Euphausiacea", 4.0, pred_wt=200.0, lon=-149.5),
    ]
    to_raw_diet(rows).to_csv(tmp_path / "diet.csv", index=False)

    pd.DataFrame({"box_id": [0, 1, 2, 4], "biomass": [100.0, 200.0, 50.0, 1000.0]}).to_csv(
        tmp_path / "pcod.csv", index=False
    )
    pd.DataFrame({"box_id": [2, 3], "biomass": [100.0, 500.0]}).to_csv(tmp_path / "pollock.csv", index=False)

    cfg = {
        "inputs": {
            "diet_csv": str(tmp_path / "diet.csv"),
            "geometry": str(tmp_path / "goa.bgm"),
            "biomass": {
                "Pacific cod": str(tmp_path / "pcod.csv"),
                "Walleye pollock": str(tmp_path / "pollock.csv"),
            },
        },
        "outputs": {
            "distribution_csv": str(tmp_path / "out" / "prior.csv"),
            "qa_csv": str(tmp_path / "out" / "qa.csv"),
        },
        "extrapolation": {"void_boxes": [3]},
    }
    path = tmp_path / "sand_lance.yaml"
    path.write_text(yaml.safe_dump(cfg))
    return path


def test_pipeline_end_to_end(project):
    cfg = load_pipeline_config(project)
    result = run_pipeline(cfg)

    assert result.predators == ["Pacific cod", "Walleye pollock"]
    # the out-of-domain cod stomach is dropped at attribution
    assert len(result.observations) == 5
    assert len(result.attributed) == 4

    dist = result.distribution
    assert list(dist.columns) == ["box_id", "botz", "boundary", "prop"]
    assert dist["box_id"].tolist() == [0, 1, 2, 3, 4]
    # box 3 is void: bin (100, 200] reference density mean(0.5, 2.0) x area 3
    expected = [2.0, 1.0, 2.0, 3.75, 0.0]
    assert dist["prop"].tolist() == pytest.approx([b / 8.75 for b in expected])
    assert dist["prop"].sum() == pytest.approx(1.0, abs=1e-9)


def test_pipeline_writes_outputs_and_is_repeatable(project):
    cfg = load_pipeline_config(project)
    write_outputs(run_pipeline(cfg), cfg)
    first = cfg.distribution_csv.read_bytes()

    write_outputs(run_pipeline(cfg), cfg)
    assert cfg.distribution_csv.read_bytes() == first

    qa = pd.read_csv(cfg.qa_csv)
    assert {"synth_pacific_cod", "synth_walleye_pollock", "biomass_observed", "density", "void", "prop"} <= set(qa.columns)


def test_missing_biomass_table_for_selected_predator(project, tmp_path):
    data = yaml.safe_load(project.read_text())
    del data["inputs"]["biomass"]["Walleye pollock"]
    project.write_text(yaml.safe_dump(data))
    with pytest.raises(SystemExit):
        run_pipeline(load_pipeline_config(project))


def test_all_zero_biomass_refuses_to_build(project, tmp_path):
    pd.DataFrame({"box_id": [0], "biomass": [0.0]}).to_csv(tmp_path / "pcod.csv", index=False)
    pd.DataFrame({"box_id": [0], "biomass": [0.0]}).to_csv(tmp_path / "pollock.csv", index=False)
    data = yaml.safe_load(project.read_text())
    data["extrapolation"]["void_boxes"] = []
    project.write_text(yaml.safe_dump(data))

    cfg = load_pipeline_config(project)
    with pytest.raises(DegenerateDistributionError):
        run_pipeline(cfg)
    assert not cfg.distribution_csv.exists()


def test_cli_build_and_skip(project, capsys):
    assert main(["--config", str(project), "build"]) == 0
    cfg = load_pipeline_config(project)
    assert cfg.distribution_csv.exists()

    assert main(["--config", str(project), "build"]) == 0
    assert "[SKIP]" in capsys.readouterr().out


def test_cli_dry_run_touches_nothing(project, capsys):
    assert main(["--config", str(project), "--dry-run", "build"]) == 0
    assert "[DRY-RUN]" in capsys.readouterr().out
    assert not load_pipeline_config(project).distribution_csv.exists()


def test_cli_predators(project, capsys):
    assert main(["--config", str(project), "predators"]) == 0
    out = capsys.readouterr().out
    assert "Pacific cod" in out and "Walleye pollock" in out
