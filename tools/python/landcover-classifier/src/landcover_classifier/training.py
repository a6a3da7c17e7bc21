"""
Land-Cover Classifier — Training Sample Extraction
====================================================
Turns labelled training polygons into a per-cell sample table: one row per
raster cell inside a polygon, with the polygon's class label, the polygon's
position in the layer and the value of every band.
"""

from __future__ import annotations

import logging

import geopandas as gpd
import pandas as pd
from rasterio.features import geometry_mask
from shapely.geometry import mapping

from landcover_classifier.stack import BandStack
from shared.python.exceptions import ClassificationError
from shared.python.raster_windows import pixel_window, window_transform
from shared.python.validators import Validators

logger = logging.getLogger("canopylab.landcover_classifier.training")

POLYGON_ID_COLUMN = "polygon_id"


def extract_training_samples(
    stack: BandStack,
    polygons: gpd.GeoDataFrame,
    class_column: str,
    *,
    all_touched: bool = False,
) -> pd.DataFrame:
    """Sample every band under every training polygon.

    Args:
        stack: Normalised band stack.
        polygons: Training polygons in the stack CRS.
        class_column: Attribute holding each polygon's class label.
        all_touched: Take every cell a polygon touches instead of only
            cells whose centre falls inside it.

    Returns:
        DataFrame with columns ``class_column``, ``polygon_id`` and one
        column per band name.  Cells with any missing band are dropped.

    Raises:
        CRSMismatchError: If the polygons are in another CRS.
        ColumnNotFoundError: If *class_column* is absent.
        ClassificationError: If no usable sample is found.
    """
    Validators.assert_columns_exist(polygons, [class_column])
    Validators.assert_crs_match(polygons.crs, stack.crs, "training polygons", "band stack")

    band_names = list(stack.band_names)
    frames: list[pd.DataFrame] = []
    for polygon_id, (label, geom) in enumerate(zip(polygons[class_column], polygons.geometry)):
        if geom is None or geom.is_empty or pd.isna(label):
            logger.warning("Training polygon %d has no geometry or no label; skipped", polygon_id)
            continue
        window = pixel_window(stack.transform, stack.shape, geom.bounds)
        if window is None:
            logger.warning("Training polygon %d (%s) lies outside the raster", polygon_id, label)
            continue
        row0, row1, col0, col1 = window
        inside = ~geometry_mask(
            [mapping(geom)],
            out_shape=(row1 - row0, col1 - col0),
            transform=window_transform(stack.transform, row0, col0),
            all_touched=all_touched,
        )
        values = stack.data[:, row0:row1, col0:col1][:, inside].T
        if values.size == 0:
            logger.warning("Training polygon %d (%s) covers no cell centre", polygon_id, label)
            continue
        frame = pd.DataFrame(values, columns=band_names)
        frame.insert(0, POLYGON_ID_COLUMN, polygon_id)
        frame.insert(0, class_column, label)
        frames.append(frame)

    if not frames:
        raise ClassificationError("No training samples fall inside the band stack.")

    samples = pd.concat(frames, ignore_index=True)
    complete = samples[band_names].notna().all(axis=1)
    n_dropped = int((~complete).sum())
    if n_dropped:
        logger.warning("Dropped %d training cell(s) with missing band values", n_dropped)
    samples = samples.loc[complete].reset_index(drop=True)
    if samples.empty:
        raise ClassificationError("Every training cell has at least one missing band value.")

    logger.info(
        "Extracted %d training sample(s) from %d polygon(s): %s",
        len(samples),
        samples[POLYGON_ID_COLUMN].nunique(),
        ", ".join(f"{k}={v}" for k, v in samples[class_column].value_counts().sort_index().items()),
    )
    return samples
