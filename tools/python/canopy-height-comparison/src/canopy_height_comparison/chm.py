"""
Canopy Height Comparison — Raster Module
==========================================
Loads single-band elevation GeoTIFFs and derives a canopy height model
(CHM) as the cell-wise difference of a surface model (DSM) and a terrain
model (DTM).

Classes:
    Raster      Immutable in-memory single-band raster (float32, NaN nodata).

Functions:
    read_raster             Read band 1 of a GeoTIFF into a :class:`Raster`.
    compute_canopy_height   DSM − DTM on aligned grids.
    mask_below              Set cells below a height floor to NaN.

Usage::

    from pathlib import Path
    from canopy_height_comparison.chm import read_raster, compute_canopy_height

    dsm = read_raster(Path("data/SJER_dsmCrop.tif"))
    dtm = read_raster(Path("data/SJER_dtmCrop.tif"))
    chm = compute_canopy_height(dsm, dtm)
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path

import numpy as np
import numpy.typing as npt
import rasterio
from rasterio.crs import CRS
from rasterio.transform import Affine, array_bounds

from shared.python.exceptions import RasterError
from shared.python.validators import Validators

logger = logging.getLogger("canopylab.canopy_height_comparison.chm")

RASTER_EXTENSIONS = [".tif", ".tiff"]


@dataclass(frozen=True)
class Raster:
    """Immutable single-band raster held in memory.

    Attributes:
        data: 2-D float32 array.  Nodata cells are ``NaN``.
        transform: Affine transform of the grid (upper-left origin).
        crs: Coordinate reference system of the grid.
        name: Short label used in log and error messages.
    """

    data: npt.NDArray[np.float32]
    transform: Affine
    crs: CRS | None
    name: str = "raster"

    @property
    def shape(self) -> tuple[int, int]:
        """``(rows, cols)`` of the grid."""
        return self.data.shape  # type: ignore[return-value]

    @property
    def bounds(self) -> tuple[float, float, float, float]:
        """``(left, bottom, right, top)`` in CRS units."""
        west, south, east, north = array_bounds(*self.shape, self.transform)
        return west, south, east, north

    @property
    def resolution(self) -> tuple[float, float]:
        """``(x_size, y_size)`` of one cell in CRS units."""
        return abs(self.transform.a), abs(self.transform.e)

    @property
    def valid_count(self) -> int:
        """Number of non-NaN cells."""
        return int(np.count_nonzero(~np.isnan(self.data)))

    def is_aligned_with(self, other: Raster) -> bool:
        """``True`` when shape, transform and CRS all match *other*."""
        return (
            self.shape == other.shape
            and self.transform.almost_equals(other.transform)
            and self.crs == other.crs
        )

    def __str__(self) -> str:
        finite = self.data[~np.isnan(self.data)]
        if finite.size == 0:
            return f"{self.name}: {self.shape[0]}x{self.shape[1]} (no valid cells)"
        return (
            f"{self.name}: {self.shape[0]}x{self.shape[1]} "
            f"min={finite.min():.2f} max={finite.max():.2f} "
            f"res={self.resolution[0]:g}"
        )


# ---------------------------------------------------------------------------
# Loading
# ---------------------------------------------------------------------------


def read_raster(path: Path, name: str | None = None) -> Raster:
    """Read band 1 of a GeoTIFF into a :class:`Raster`.

    Nodata cells (as declared in the file, or masked by its mask band)
    become ``NaN``.

    Args:
        path: GeoTIFF to read.
        name: Label for messages.  Defaults to the file stem.

    Raises:
        InputValidationError: If *path* does not exist or is not a GeoTIFF.
        RasterError: If rasterio cannot open the file.
    """
    path = Path(path)
    Validators.assert_file_exists(path)
    Validators.assert_supported_extension(path, RASTER_EXTENSIONS)

    try:
        with rasterio.open(path) as src:
            band = src.read(1, masked=True)
            transform = src.transform
            crs = src.crs
    except rasterio.errors.RasterioIOError as exc:
        raise RasterError(f"Could not open raster '{path}': {exc}") from exc

    data = np.ma.filled(band.astype(np.float32), np.nan)
    raster = Raster(data=data, transform=transform, crs=crs, name=name or path.stem)
    logger.debug("Loaded %s", raster)
    return raster


# ---------------------------------------------------------------------------
# Raster algebra
# ---------------------------------------------------------------------------


def compute_canopy_height(surface: Raster, terrain: Raster) -> Raster:
    """Compute a canopy height model as ``surface − terrain``.

    The inputs must already share a grid; nothing is resampled.  The result
    carries the inputs' transform and CRS, so it is aligned with both.

    Args:
        surface: Digital surface model (top of vegetation and structures).
        terrain: Digital terrain model (bare ground).

    Returns:
        A :class:`Raster` named ``"chm"``.  ``NaN`` in either input stays
        ``NaN`` in the result.

    Raises:
        AlignmentError: If shape, transform or CRS differ.
    """
    Validators.assert_grids_aligned(surface, terrain, surface.name, terrain.name)

    chm = (surface.data - terrain.data).astype(np.float32)
    result = Raster(data=chm, transform=surface.transform, crs=surface.crs, name="chm")
    logger.info("Computed canopy height model — %s", result)
    return result


def mask_below(raster: Raster, threshold: float) -> Raster:
    """Return a copy of *raster* with cells below *threshold* set to NaN.

    Useful to drop negative heights left by DSM/DTM noise, or to keep only
    cells tall enough to be trees.
    """
    with np.errstate(invalid="ignore"):
        data = np.where(raster.data < threshold, np.nan, raster.data).astype(np.float32)
    dropped = raster.valid_count - int(np.count_nonzero(~np.isnan(data)))
    logger.debug("Masked %d cell(s) below %.2f in %s", dropped, threshold, raster.name)
    return Raster(data=data, transform=raster.transform, crs=raster.crs, name=raster.name)
