"""
Canopy Height Comparison — Plot Geometry Module
=================================================
Loads the survey plot layer and checks it against the canopy height grid.

Functions:
    load_plot_geometries    Read plot polygons, validate ids and CRS.
    buffer_plot_centroids   Turn plot-centre points into circular plots.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any

import geopandas as gpd
from pyogrio.errors import DataSourceError

from shared.python.exceptions import CRSMismatchError, InputValidationError
from shared.python.validators import Validators

logger = logging.getLogger("canopylab.canopy_height_comparison.plots")

VECTOR_EXTENSIONS = [".shp", ".geojson", ".json", ".gpkg"]


def load_plot_geometries(
    path: Path,
    id_column: str,
    raster_crs: Any,
    *,
    reproject: bool = False,
) -> gpd.GeoDataFrame:
    """Read the plot layer and make sure it can be overlaid on the raster.

    Args:
        path: Shapefile / GeoJSON / GeoPackage of plot features.
        id_column: Attribute holding the unique plot identifier.
        raster_crs: CRS of the canopy height raster.
        reproject: When ``True`` a layer in another CRS is transformed to
            *raster_crs* instead of being rejected.

    Returns:
        The plot layer in *raster_crs*, with its original attributes.

    Raises:
        InputValidationError: If the file is missing/unreadable, ids are
            duplicated or the layer is empty.
        ColumnNotFoundError: If *id_column* is absent.
        MissingCRSError: If the layer has no CRS.
        CRSMismatchError: If the CRSs differ and *reproject* is ``False``.
    """
    path = Path(path)
    Validators.assert_file_exists(path)
    Validators.assert_supported_extension(path, VECTOR_EXTENSIONS)

    try:
        plots = gpd.read_file(path)
    except DataSourceError as exc:
        raise InputValidationError(f"Could not read plot layer '{path}': {exc}") from exc

    if plots.empty:
        raise InputValidationError(f"Plot layer '{path}' contains no features.")
    Validators.assert_columns_exist(plots, [id_column])

    duplicated = plots[id_column][plots[id_column].duplicated()].unique().tolist()
    if duplicated:
        raise InputValidationError(
            f"Plot ids must be unique; duplicated value(s) in '{id_column}': "
            + ", ".join(str(d) for d in duplicated)
        )

    try:
        Validators.assert_crs_match(plots.crs, raster_crs, "plot layer", "canopy height raster")
    except CRSMismatchError:
        if not reproject:
            raise
        logger.warning("Reprojecting plot layer from %s to %s", plots.crs, raster_crs)
        plots = plots.to_crs(raster_crs)

    logger.info("Loaded %d plot(s) from %s", len(plots), path.name)
    return plots


def buffer_plot_centroids(
    points: gpd.GeoDataFrame,
    radius: float,
    id_column: str | None = None,
) -> gpd.GeoDataFrame:
    """Replace point geometries with circular buffers of *radius*.

    Field plots are usually recorded as a centre point and a fixed radius;
    the zonal extractor needs the plot footprint.  Polygons are passed
    through unchanged.

    Args:
        points: Plot layer with point (or polygon) geometries in a
            projected CRS.
        radius: Buffer radius in CRS units (metres for UTM).
        id_column: Only used for logging.
    """
    if radius <= 0:
        raise InputValidationError(f"Plot buffer radius must be positive, got {radius}.")
    if points.crs is not None and points.crs.is_geographic:
        raise InputValidationError(
            "Plot buffers need a projected CRS; the plot layer is in "
            f"geographic coordinates ({points.crs})."
        )

    buffered = points.copy()
    is_point = buffered.geometry.geom_type.isin(["Point", "MultiPoint"])
    buffered.loc[is_point, "geometry"] = buffered.loc[is_point].geometry.buffer(radius)
    logger.debug(
        "Buffered %d plot centre(s)%s by %g",
        int(is_point.sum()),
        f" ({id_column})" if id_column else "",
        radius,
    )
    return buffered
