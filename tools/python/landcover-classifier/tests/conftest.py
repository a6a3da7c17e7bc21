"""
Shared fixtures for the land-cover classifier tests.

Scenes are tiny synthetic single-band GeoTIFFs named like Landsat 8
Collection 2 surface-reflectance files, written with rasterio into the
pytest ``tmp_path``.  The default grid is 4×4 thirty-metre cells in UTM 11N
with its upper-left corner at (0, 120).

The default scene has one class per column::

    col 0 → veg    col 1 → soil    col 2 → urban    col 3 → water

Band 1 rises and band 2 falls across the columns, band 3 is flat, so a
single split separates every class.  Band 2 of the lower-right cell is
nodata.
"""

from __future__ import annotations

from pathlib import Path
from typing import Callable

import geopandas as gpd
import numpy as np
import numpy.typing as npt
import pytest
import rasterio
from rasterio.crs import CRS
from rasterio.transform import Affine, from_origin
from shapely.geometry import box

from landcover_classifier.stack import BandStack

UTM = "EPSG:32611"
CELL = 30.0
SCENE_PREFIX = "LC08_L2SP_042034_20170616_20200903_02_T1_SR"
CLASSES = ["veg", "soil", "urban", "water"]


def scene_transform() -> Affine:
    return from_origin(0.0, 4 * CELL, CELL, CELL)


def column_box(col: int, row0: int = 0, row1: int = 2):
    """Polygon covering rows ``row0``–``row1 - 1`` of column *col*."""
    top = 4 * CELL - row0 * CELL
    bottom = 4 * CELL - row1 * CELL
    return box(col * CELL, bottom, (col + 1) * CELL, top)


def scene_bands() -> dict[int, npt.NDArray[np.uint16]]:
    cols = np.arange(4)
    band1 = np.tile(10000 + 8000 * cols, (4, 1)).astype(np.uint16)
    band2 = np.tile(40000 - 8000 * cols, (4, 1)).astype(np.uint16)
    band3 = np.full((4, 4), 20000, dtype=np.uint16)
    band2[3, 3] = 0
    return {1: band1, 2: band2, 3: band3}


@pytest.fixture()
def write_band(tmp_path: Path) -> Callable[..., Path]:
    """Factory writing one uint16 band GeoTIFF (nodata 0) into a directory."""

    def _write(
        directory: Path,
        number: int,
        values: npt.ArrayLike,
        *,
        transform: Affine | None = None,
        crs: str = UTM,
        suffix: str = ".TIF",
    ) -> Path:
        directory.mkdir(parents=True, exist_ok=True)
        arr = np.asarray(values, dtype=np.uint16)
        path = directory / f"{SCENE_PREFIX}_B{number}{suffix}"
        profile = {
            "driver": "GTiff",
            "dtype": "uint16",
            "count": 1,
            "height": arr.shape[0],
            "width": arr.shape[1],
            "crs": CRS.from_user_input(crs),
            "transform": transform or scene_transform(),
            "nodata": 0,
        }
        with rasterio.open(path, "w", **profile) as dst:
            dst.write(arr, 1)
        return path

    return _write


@pytest.fixture()
def scene_dir(tmp_path: Path, write_band) -> Path:
    """Directory holding bands 1–3 of the default scene."""
    directory = tmp_path / "scene"
    for number, values in scene_bands().items():
        write_band(directory, number, values)
    return directory


@pytest.fixture()
def write_polygons(tmp_path: Path) -> Callable[..., Path]:
    """Factory writing a labelled polygon layer as GeoJSON."""

    def _write(
        geometries: list,
        labels: list | None = None,
        *,
        column: str = "class",
        crs: str = UTM,
        name: str = "training",
    ) -> Path:
        data = {column: labels} if labels is not None else {"name": [name] * len(geometries)}
        gdf = gpd.GeoDataFrame(data, geometry=geometries, crs=crs)
        path = tmp_path / f"{name}.geojson"
        gdf.to_file(path, driver="GeoJSON")
        return path

    return _write


@pytest.fixture()
def training_path(write_polygons) -> Path:
    """One training polygon per class over the top two rows of its column."""
    return write_polygons([column_box(c) for c in range(4)], CLASSES)


@pytest.fixture()
def make_stack() -> Callable[..., BandStack]:
    """Factory building an in-memory :class:`BandStack` on the scene grid."""

    def _make(
        data: npt.ArrayLike,
        band_names: tuple[str, ...] | None = None,
        *,
        crs: str = UTM,
    ) -> BandStack:
        arr = np.asarray(data, dtype=np.float32)
        names = band_names or tuple(f"band{i + 1}" for i in range(arr.shape[0]))
        return BandStack(
            data=arr, band_names=names, transform=scene_transform(), crs=CRS.from_user_input(crs),
        )

    return _make


@pytest.fixture()
def column_polygon() -> Callable[..., object]:
    """The :func:`column_box` helper, for tests that build their own layers."""
    return column_box
