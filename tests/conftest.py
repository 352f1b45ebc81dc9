#!/usr/bin/env python3

from __future__ import annotations

import sys
from pathlib import Path

# Ensure we can import from src without installing the package
ROOT = Path(__file__).resolve().parents[1]
SRC = ROOT / "src"
sys.path.insert(0, str(SRC))

import geopandas as gpd
import pandas as pd
import pytest
from shapely.geometry import box as rect

from sandlance.config import DEFAULT_DIET_COLUMNS


LONLAT = "EPSG:4326"


def make_boxes(botz, boundary=None, area=None, x0=-150.0):
    """Row of 1x1 degree boxes starting at x0, box_id = position."""
    n = len(botz)
    boundary = boundary or [False] * n
    area = area or [1.0] * n
    return gpd.GeoDataFrame(
        {
            "box_id": list(range(n)),
            "label": [f"Box{i}" for i in range(n)],
            "botz": [float(z) for z in botz],
            "area": [float(a) for a in area],
            "boundary": boundary,
        },
        geometry=[rect(x0 + i, 55.0, x0 + i + 1, 56.0) for i in range(n)],
        crs=LONLAT,
    )


def diet_row(haul, specn, pred, prey, prey_wt, pred_wt=1000.0, stom_wt=10.0, lon=-149.5, lat=55.5, nodc="8791030701"):
    return {
        "hauljoin": str(haul),
        "pred_nodc": nodc,
        "pred_specn": str(specn),
        "pred_name": pred,
        "pred_wt": pred_wt,
        "prey_name": prey,
        "prey_wt": prey_wt,
        "stom_wt": stom_wt,
        "lon": lon,
        "lat": lat,
        "bottom_depth": 100.0,
        "year": 2015,
    }


def to_raw_diet(rows):
    """Canonical diet rows -> frame with the REEM source column names."""
    df = pd.DataFrame(rows)
    return df.rename(columns=DEFAULT_DIET_COLUMNS)


@pytest.fixture
def boxes5():
    # box 4 is a boundary box, box 3 is dry
    return make_boxes([-20, -150, -300, 5, -50], boundary=[False, False, False, False, True])
