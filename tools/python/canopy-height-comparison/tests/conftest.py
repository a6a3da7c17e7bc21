"""
Shared fixtures for the canopy height comparison tests.

Every raster is a tiny synthetic GeoTIFF written with rasterio into the
pytest ``tmp_path``; no real Lidar data is needed.  The default grid is
3×3 one-metre cells in UTM 11N with its upper-left corner at (0, 3).
"""

from __future__ import annotations

from pathlib import Path
from typing import Callable

import geopandas as gpd
import numpy as np
import numpy.typing as npt
import pandas as pd
import pytest
import rasterio
from rasterio.crs import CRS
from rasterio.transform import Affine, from_origin

from canopy_height_comparison.chm import Raster

UTM = "EPSG:32611"
NODATA = -9999.0


def grid_transform(size: float = 1.0) -> Affine:
    """Upper-left origin (0, 3) with square cells of *size*."""
    return from_origin(0.0, 3.0, size, size)


@pytest.fixture()
def write_raster(tmp_path: Path) -> Callable[..., Path]:
    """Factory writing a single-band float32 GeoTIFF from an array or constant."""

    def _write(
        name: str,
        values: npt.ArrayLike,
        *,
        shape: tuple[int, int] = (3, 3),
        transform: Affine | None = None,
        crs: str = UTM,
    ) -> Path:
        arr = (
            np.full(shape, values, dtype="float32")
            if np.isscalar(values)
            else np.array(values, dtype="float32")
        )
        arr = np.where(np.isnan(arr), NODATA, arr).astype("float32")
        path = tmp_path / f"{name}.tif"
        profile = {
            "driver": "GTiff",
            "dtype": "float32",
            "count": 1,
            "height": arr.shape[0],
            "width": arr.shape[1],
            "crs": CRS.from_user_input(crs),
            "transform": transform or grid_transform(),
            "nodata": NODATA,
        }
        with rasterio.open(path, "w", **profile) as dst:
            dst.write(arr, 1)
        return path

    return _write


@pytest.fixture()
def make_raster() -> Callable[..., Raster]:
    """Factory building an in-memory :class:`Raster` on the default grid."""

    def _make(values: npt.ArrayLike, *, name: str = "chm", crs: str = UTM) -> Raster:
        data = np.array(values, dtype=np.float32)
        return Raster(data=data, transform=grid_transform(), crs=CRS.from_user_input(crs), name=name)

    return _make


@pytest.fixture()
def write_plots(tmp_path: Path) -> Callable[..., Path]:
    """Factory writing a GeoJSON plot layer."""

    def _write(
        geometries: list,
        ids: list,
        *,
        id_column: str = "Plot_ID",
        crs: str = UTM,
        name: str = "plots",
    ) -> Path:
        gdf = gpd.GeoDataFrame({id_column: ids}, geometry=geometries, crs=crs)
        path = tmp_path / f"{name}.geojson"
        gdf.to_file(path, driver="GeoJSON")
        return path

    return _write


@pytest.fixture()
def write_survey(tmp_path: Path) -> Callable[..., Path]:
    """Factory writing a per-tree survey CSV."""

    def _write(rows: list[tuple[object, object]], *, name: str = "survey") -> Path:
        df = pd.DataFrame(rows, columns=["plotid", "stemheight"])
        path = tmp_path / f"{name}.csv"
        df.to_csv(path, index=False)
        return path

    return _write
