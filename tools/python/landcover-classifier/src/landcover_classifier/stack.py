"""
Land-Cover Classifier — Band Stack Module
===========================================
Assembles a directory of single-band GeoTIFFs (one file per spectral band)
into one in-memory multiband stack with named bands.

Band files are recognised by a regular expression whose first group is the
band number.  The default matches Landsat 8/9 Collection 2 naming, e.g.
``LC08_L2SP_042034_20170616_20200903_02_T1_SR_B4.TIF`` → ``band4``.
Bands listed in ``expected_bands`` but not found are logged and skipped.

Classes:
    BandStack       Immutable (bands, rows, cols) float32 stack + georeferencing.

Functions:
    discover_band_files     Map band number → file path for a directory.
    load_band_stack         Read and align every discovered band.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, replace
from pathlib import Path
from typing import Sequence

import numpy as np
import numpy.typing as npt
import rasterio
from rasterio.crs import CRS
from rasterio.transform import Affine, array_bounds

from shared.python.exceptions import InputValidationError, RasterError
from shared.python.validators import Validators

logger = logging.getLogger("canopylab.landcover_classifier.stack")

DEFAULT_BAND_PATTERN = r"_B(\d+)\.tiff?$"


def band_name(number: int) -> str:
    """Canonical label for band *number* (``4`` → ``"band4"``)."""
    return f"band{number}"


@dataclass(frozen=True)
class BandStack:
    """Multiband raster held in memory.

    Attributes:
        data: float32 array shaped ``(bands, rows, cols)``; missing cells
            are ``NaN``.
        band_names: One label per band, in stack order.
        transform: Affine transform shared by every band.
        crs: CRS shared by every band.
    """

    data: npt.NDArray[np.float32]
    band_names: tuple[str, ...]
    transform: Affine
    crs: CRS | None

    def __post_init__(self) -> None:
        if self.data.ndim != 3:
            raise RasterError(f"Band stack must be 3-D (bands, rows, cols), got {self.data.ndim}-D.")
        if len(self.band_names) != self.data.shape[0]:
            raise RasterError(
                f"{len(self.band_names)} band name(s) for {self.data.shape[0]} band(s)."
            )

    @property
    def shape(self) -> tuple[int, int]:
        """``(rows, cols)`` of the grid."""
        return self.data.shape[1], self.data.shape[2]

    @property
    def count(self) -> int:
        return self.data.shape[0]

    @property
    def bounds(self) -> tuple[float, float, float, float]:
        """``(left, bottom, right, top)`` in CRS units."""
        return array_bounds(*self.shape, self.transform)

    def band(self, name: str) -> npt.NDArray[np.float32]:
        """2-D array of the band labelled *name*."""
        try:
            return self.data[self.band_names.index(name)]
        except ValueError:
            raise InputValidationError(
                f"No band named '{name}'. Available bands: {', '.join(self.band_names)}"
            ) from None

    def with_data(self, data: npt.NDArray[np.float32], transform: Affine | None = None) -> BandStack:
        """Copy of this stack with new cell values (and optionally a new transform)."""
        return replace(self, data=data, transform=transform or self.transform)

    def __str__(self) -> str:
        return (
            f"BandStack({self.count} band(s) [{', '.join(self.band_names)}], "
            f"{self.shape[0]}x{self.shape[1]}, crs={self.crs})"
        )


# ---------------------------------------------------------------------------
# Discovery & loading
# ---------------------------------------------------------------------------


def discover_band_files(directory: Path, pattern: str = DEFAULT_BAND_PATTERN) -> dict[int, Path]:
    """Find single-band files in *directory* and key them by band number.

    Args:
        directory: Folder holding one GeoTIFF per band.
        pattern: Case-insensitive regex searched in each file name; its
            first group must capture the band number.

    Returns:
        ``{band_number: path}`` sorted by band number.

    Raises:
        InputValidationError: If the directory is missing, the pattern has
            no group, or two files claim the same band number.
    """
    directory = Path(directory)
    Validators.assert_directory_exists(directory)
    regex = re.compile(pattern, re.IGNORECASE)
    if regex.groups < 1:
        raise InputValidationError(
            f"Band pattern '{pattern}' must capture the band number in a group."
        )

    found: dict[int, Path] = {}
    for path in sorted(directory.iterdir()):
        match = regex.search(path.name)
        if not match or not path.is_file():
            continue
        number = int(match.group(1))
        if number in found:
            raise InputValidationError(
                f"Band {number} matched twice: '{found[number].name}' and '{path.name}'."
            )
        found[number] = path
        logger.debug("Band %d → %s", number, path.name)

    return dict(sorted(found.items()))


def load_band_stack(
    directory: Path,
    *,
    pattern: str = DEFAULT_BAND_PATTERN,
    expected_bands: Sequence[int] | None = None,
) -> BandStack:
    """Read every band file in *directory* into one :class:`BandStack`.

    Args:
        directory: Folder holding one GeoTIFF per band.
        pattern: See :func:`discover_band_files`.
        expected_bands: Band numbers to load.  Absent ones are logged at
            WARNING and skipped; files for bands not listed are ignored.
            ``None`` loads every discovered band.

    Raises:
        InputValidationError: If no band file is found.
        AlignmentError: If the bands do not share shape, transform and CRS.
        RasterError: If a file cannot be read.
    """
    files = discover_band_files(directory, pattern)

    if expected_bands is not None:
        missing = [b for b in expected_bands if b not in files]
        if missing:
            logger.warning(
                "Band(s) %s not found in %s; stacking the remaining bands",
                ", ".join(str(b) for b in missing), directory,
            )
        files = {b: p for b, p in files.items() if b in set(expected_bands)}

    if not files:
        raise InputValidationError(
            f"No band files matching '{pattern}' found in '{directory}'."
        )

    arrays: list[npt.NDArray[np.float32]] = []
    reference: BandStack | None = None
    for number, path in files.items():
        try:
            with rasterio.open(path) as src:
                band = src.read(1, masked=True)
                grid = BandStack(
                    data=np.empty((1, src.height, src.width), dtype=np.float32),
                    band_names=(band_name(number),),
                    transform=src.transform,
                    crs=src.crs,
                )
        except rasterio.errors.RasterioIOError as exc:
            raise RasterError(f"Could not open band file '{path}': {exc}") from exc

        if reference is None:
            reference = grid
        else:
            Validators.assert_grids_aligned(
                reference, grid, reference.band_names[0], grid.band_names[0],
            )
        arrays.append(np.ma.filled(band.astype(np.float32), np.nan))

    stack = BandStack(
        data=np.stack(arrays, axis=0),
        band_names=tuple(band_name(n) for n in files),
        transform=reference.transform,
        crs=reference.crs,
    )
    logger.info("Loaded %s", stack)
    return stack
