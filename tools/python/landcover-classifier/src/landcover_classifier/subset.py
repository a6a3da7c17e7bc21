"""
Land-Cover Classifier — Spatial Subset Module
===============================================
Crops a :class:`~landcover_classifier.stack.BandStack` to a study area and
masks everything outside the study-area polygons to ``NaN``.
"""

from __future__ import annotations

import logging
from pathlib import Path

import geopandas as gpd
import numpy as np
from pyogrio.errors import DataSourceError
from rasterio.features import geometry_mask
from shapely.geometry import mapping

from landcover_classifier.stack import BandStack
from shared.python.exceptions import InputValidationError
from shared.python.raster_windows import pixel_window, window_transform
from shared.python.validators import Validators

logger = logging.getLogger("canopylab.landcover_classifier.subset")

VECTOR_EXTENSIONS = [".shp", ".geojson", ".json", ".gpkg"]


def read_polygons(path: Path, label: str = "polygon layer") -> gpd.GeoDataFrame:
    """Read a vector layer, failing fast on missing/unreadable/empty files."""
    path = Path(path)
    Validators.assert_file_exists(path)
    Validators.assert_supported_extension(path, VECTOR_EXTENSIONS)
    try:
        layer = gpd.read_file(path)
    except DataSourceError as exc:
        raise InputValidationError(f"Could not read {label} '{path}': {exc}") from exc
    if layer.empty:
        raise InputValidationError(f"The {label} '{path}' contains no features.")
    logger.debug("Read %d feature(s) from %s", len(layer), path.name)
    return layer


def crop_to_polygons(
    stack: BandStack,
    polygons: gpd.GeoDataFrame,
    *,
    all_touched: bool = False,
) -> BandStack:
    """Crop *stack* to the bounds of *polygons* and mask cells outside them.

    The crop window is snapped outward to whole cells and clipped to the
    raster; the result keeps the source resolution and CRS.

    Args:
        stack: Stack to subset.
        polygons: Study-area polygon(s) in the stack CRS.
        all_touched: Keep every cell a polygon touches rather than only
            cells whose centre is inside.

    Raises:
        CRSMismatchError: If the polygons are in another CRS.
        InputValidationError: If the polygons do not overlap the stack.
    """
    Validators.assert_crs_match(polygons.crs, stack.crs, "study area", "band stack")

    rows, cols = stack.shape
    window = pixel_window(stack.transform, stack.shape, tuple(polygons.total_bounds))
    if window is None:
        raise InputValidationError("The study area does not overlap the band stack.")
    row0, row1, col0, col1 = window
    cropped_transform = window_transform(stack.transform, row0, col0)
    cropped = stack.data[:, row0:row1, col0:col1].copy()
    outside = geometry_mask(
        [mapping(g) for g in polygons.geometry if g is not None and not g.is_empty],
        out_shape=cropped.shape[1:],
        transform=cropped_transform,
        all_touched=all_touched,
    )
    cropped[:, outside] = np.nan

    result = stack.with_data(cropped, cropped_transform)
    logger.info(
        "Cropped stack from %dx%d to %dx%d (%d cell(s) outside the study area)",
        rows, cols, result.shape[0], result.shape[1], int(outside.sum()),
    )
    return result
