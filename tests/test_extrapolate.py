#!/usr/bin/env python3

from __future__ import annotations

import pandas as pd
import pytest

from sandlance.biomass.extrapolate import bin_densities, depth_bin, extrapolate_void_boxes


def _frame(botz, biomass, area, boundary=None):
    n = len(botz)
    return pd.DataFrame({
        "box_id": list(range(n)),
        "botz": [float(z) for z in botz],
        "area": [float(a) for a in area],
        "boundary": boundary or [False] * n,
        "biomass_observed": [float(b) for b in biomass],
    })


def test_depth_bin_edges_and_open_ends():
    botz = pd.Series([-0.5, -1, -30, -31, -250, -1000, -4000, -5000])
    assert depth_bin(botz).tolist() == [0, 0, 0, 1, 3, 4, 5, 5]


def test_void_box_gets_reference_density_times_area():
    # boxes 0, 1 are bin 3 references (density 2 and 4 -> mean 3)
    df = _frame(
        botz=[-250, -300, -400, -50],
        biomass=[20, 40, 999, 5],
        area=[10, 10, 7, 5],
    )
    out = extrapolate_void_boxes(df, void_boxes={2})
    assert out.loc[2, "depth_bin"] == 3
    assert out.loc[2, "biomass"] == pytest.approx(3.0 * 7)
    # non-void boxes untouched
    assert out.loc[[0, 1, 3], "biomass"].tolist() == [20.0, 40.0, 5.0]
    assert out["void"].tolist() == [False, False, True, False]


def test_empty_bin_borrows_next_deeper_density():
    df = _frame(botz=[-10, -50, -150], biomass=[0, 6, 1], area=[4, 2, 1])
    dens = bin_densities(df.iloc[1:])
    assert dens[0] == pytest.approx(3.0)
    assert dens[1] == pytest.approx(3.0)
    assert dens[2] == pytest.approx(1.0)
    # bins beyond the deepest reference fall back to the nearest shallower one
    assert dens[5] == pytest.approx(1.0)

    out = extrapolate_void_boxes(df, void_boxes={0})
    assert out.loc[0, "biomass"] == pytest.approx(3.0 * 4)


def test_boundary_and_dry_void_boxes_not_extrapolated():
    df = _frame(
        botz=[-50, -60, 10],
        biomass=[10, 0, 0],
        area=[1, 1, 1],
        boundary=[False, True, False],
    )
    out = extrapolate_void_boxes(df, void_boxes={1, 2})
    assert out["biomass"].tolist() == [10.0, 0.0, 0.0]


def test_reference_excludes_boundary_boxes():
    df = _frame(botz=[-50, -60, -70], biomass=[2, 100, 0], area=[1, 1, 1], boundary=[False, True, False])
    out = extrapolate_void_boxes(df, void_boxes={2})
    assert out.loc[2, "biomass"] == pytest.approx(2.0)
