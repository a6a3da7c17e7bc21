"""
Canopy Height Comparison — Zonal Extraction Module
====================================================
Extracts per-plot statistics from the canopy height raster.

Each plot polygon is rasterised against a window of the grid clipped to
the polygon's bounding box, so only the cells near the plot are masked.
Footprints with no width or height (plot centre points) get a window at
least one cell wide on each side.
Cells count as "inside" when the polygon touches them (``all_touched``)
or, with ``all_touched=False``, when their centre falls inside it.

A plot whose footprint holds no valid cell (outside the raster, or over
nodata) yields ``NaN`` — never an error and never zero.

Classes:
    PlotDistributionSummary   Per-plot five-number table + boxplot figure.

Functions:
    sample_polygon                  Valid raster values inside one polygon.
    extract_zonal_statistic         One statistic per plot → DataFrame.
    summarise_plot_distributions    Boxplot statistics per plot.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Callable

import matplotlib

matplotlib.use("Agg")                    # non-interactive backend

import matplotlib.pyplot as plt
import numpy as np
import numpy.typing as npt
import geopandas as gpd
import pandas as pd
from matplotlib.figure import Figure
from rasterio.features import geometry_mask
from shapely.geometry import mapping
from shapely.geometry.base import BaseGeometry

from canopy_height_comparison.chm import Raster
from shared.python.exceptions import InputValidationError
from shared.python.raster_windows import pixel_window, window_transform
from shared.python.validators import Validators

logger = logging.getLogger("canopylab.canopy_height_comparison.zonal")


# ---------------------------------------------------------------------------
# Statistics registry
# ---------------------------------------------------------------------------

STATISTICS: dict[str, Callable[[npt.NDArray[np.float32]], float]] = {
    "max": lambda v: float(np.max(v)),
    "min": lambda v: float(np.min(v)),
    "mean": lambda v: float(np.mean(v)),
    "median": lambda v: float(np.median(v)),
    "p95": lambda v: float(np.percentile(v, 95)),
}


def resolve_statistic(name: str) -> Callable[[npt.NDArray[np.float32]], float]:
    """Look up a statistic by name (``max``, ``min``, ``mean``, ``median``, ``p95``).

    Raises:
        InputValidationError: For an unknown name.
    """
    try:
        return STATISTICS[name.lower()]
    except KeyError:
        raise InputValidationError(
            f"Unknown statistic '{name}'. Valid options: {', '.join(STATISTICS)}"
        ) from None


def lidar_column(statistic: str) -> str:
    """Name of the extracted-height column for *statistic*."""
    return f"lidar_{statistic.lower()}_height"


# ---------------------------------------------------------------------------
# Sampling
# ---------------------------------------------------------------------------


def sample_polygon(
    raster: Raster,
    geom: BaseGeometry,
    *,
    all_touched: bool = True,
) -> npt.NDArray[np.float32]:
    """Return the valid (non-NaN) raster values falling inside *geom*.

    Args:
        raster: Grid to sample.
        geom: Polygon in the raster's CRS.
        all_touched: Include every cell the polygon touches rather than
            only cells whose centre is inside.

    Returns:
        1-D float32 array, empty when the polygon covers no valid cell.
    """
    empty = np.array([], dtype=np.float32)
    if geom is None or geom.is_empty:
        return empty

    window = pixel_window(raster.transform, raster.shape, geom.bounds)
    if window is None:
        return empty
    row0, row1, col0, col1 = window

    win_transform = window_transform(raster.transform, row0, col0)
    win_data = raster.data[row0:row1, col0:col1]
    inside = ~geometry_mask(
        [mapping(geom)],
        out_shape=win_data.shape,
        transform=win_transform,
        all_touched=all_touched,
    )
    values = win_data[inside]
    return values[~np.isnan(values)]


def extract_zonal_statistic(
    raster: Raster,
    plots: gpd.GeoDataFrame,
    id_column: str,
    statistic: str = "max",
    *,
    all_touched: bool = True,
) -> pd.DataFrame:
    """Compute one statistic of *raster* per plot polygon.

    Args:
        raster: Canopy height raster.
        plots: Plot polygons in the raster's CRS.
        id_column: Plot identifier attribute; copied to ``plot_id``.
        statistic: One of :data:`STATISTICS` (default ``"max"``).
        all_touched: See :func:`sample_polygon`.

    Returns:
        DataFrame with columns ``plot_id``, ``lidar_<statistic>_height``
        and ``n_cells``, one row per plot in input order.  Plots with no
        valid cells have ``NaN`` height and ``n_cells == 0``.

    Raises:
        ColumnNotFoundError: If *id_column* is absent.
        CRSMismatchError: If the plots are not in the raster CRS.
    """
    Validators.assert_columns_exist(plots, [id_column])
    Validators.assert_crs_match(plots.crs, raster.crs, "plot layer", raster.name)
    func = resolve_statistic(statistic)
    column = lidar_column(statistic)

    records: list[dict[str, object]] = []
    for plot_id, geom in zip(plots[id_column], plots.geometry):
        values = sample_polygon(raster, geom, all_touched=all_touched)
        if values.size == 0:
            logger.warning("Plot %s covers no valid %s cells; height is NaN", plot_id, raster.name)
            value = float("nan")
        else:
            value = func(values)
        logger.debug("Plot %s: %s=%.3f over %d cell(s)", plot_id, statistic, value, values.size)
        records.append({"plot_id": plot_id, column: value, "n_cells": int(values.size)})

    table = pd.DataFrame.from_records(records, columns=["plot_id", column, "n_cells"])
    logger.info(
        "Extracted %s height for %d plot(s), %d without valid cells",
        statistic, len(table), int(table[column].isna().sum()),
    )
    return table


# ---------------------------------------------------------------------------
# Distribution summary
# ---------------------------------------------------------------------------


@dataclass
class PlotDistributionSummary:
    """Per-plot distribution of canopy heights.

    Attributes:
        table: One row per plot — ``plot_id``, ``min``, ``q1``, ``median``,
            ``q3``, ``max``, ``n_cells``.  All statistics are ``NaN`` for
            plots without valid cells.
        figure: Boxplot of the cell values of every plot that has any.
    """

    table: pd.DataFrame
    figure: Figure


def summarise_plot_distributions(
    raster: Raster,
    plots: gpd.GeoDataFrame,
    id_column: str,
    *,
    all_touched: bool = True,
) -> PlotDistributionSummary:
    """Compute boxplot statistics per plot and draw them.

    The table and figure are returned together; nothing is cached.
    """
    Validators.assert_columns_exist(plots, [id_column])
    Validators.assert_crs_match(plots.crs, raster.crs, "plot layer", raster.name)

    records: list[dict[str, object]] = []
    samples: dict[str, npt.NDArray[np.float32]] = {}
    for plot_id, geom in zip(plots[id_column], plots.geometry):
        values = sample_polygon(raster, geom, all_touched=all_touched)
        if values.size:
            q = np.percentile(values, [0, 25, 50, 75, 100])
            samples[str(plot_id)] = values
        else:
            q = np.full(5, np.nan)
        records.append({
            "plot_id": plot_id,
            "min": float(q[0]), "q1": float(q[1]), "median": float(q[2]),
            "q3": float(q[3]), "max": float(q[4]),
            "n_cells": int(values.size),
        })
    table = pd.DataFrame.from_records(
        records, columns=["plot_id", "min", "q1", "median", "q3", "max", "n_cells"],
    )

    fig, ax = plt.subplots(figsize=(max(6.0, 0.5 * len(samples) + 2), 5))
    if samples:
        ax.boxplot(list(samples.values()))
        ax.set_xticks(range(1, len(samples) + 1))
        ax.set_xticklabels(list(samples.keys()), rotation=90)
    ax.set_xlabel("Plot")
    ax.set_ylabel(f"{raster.name} value")
    ax.set_title(f"{raster.name} distribution per plot")
    fig.tight_layout()

    return PlotDistributionSummary(table=table, figure=fig)
