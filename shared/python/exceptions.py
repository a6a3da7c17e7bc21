"""
CanopyLab — Custom Exception Hierarchy
=======================================
All CanopyLab tools raise exceptions from this module so callers can
catch them at the right level of granularity.

Hierarchy::

    CanopyLabError                       ← catch-all base
    ├── InputValidationError             ← bad files, missing columns, etc.
    │   └── ColumnNotFoundError          ← CSV/attribute column missing
    ├── CRSError                         ← CRS problems
    │   ├── CRSMismatchError             ← two layers in different CRSs
    │   └── MissingCRSError              ← a layer carries no CRS
    ├── RasterError                      ← rasterio / numpy raster issues
    │   └── AlignmentError               ← grids differ in shape/extent/CRS
    ├── ClassificationError              ← training or prediction failures
    │   └── BandNameError                ← predictor bands ≠ training columns
    └── OutputWriteError                 ← cannot write to output path

Data-quality conditions (empty zonal extraction, unmatched join keys,
out-of-range reflectance) are NOT errors: they propagate as ``NaN``.

Usage::

    from shared.python.exceptions import AlignmentError

    raise AlignmentError("surface", "terrain", ["shape (3, 3) != (4, 4)"])
"""

from __future__ import annotations

from typing import Sequence


# ---------------------------------------------------------------------------
# Root
# ---------------------------------------------------------------------------


class CanopyLabError(Exception):
    """Base exception for all CanopyLab tools.

    Catch this to handle any tool-specific error without caring about
    the exact subtype.

    Args:
        message: Human-readable description of the error.
    """

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message: str = message

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}({self.message!r})"


# ---------------------------------------------------------------------------
# Input validation
# ---------------------------------------------------------------------------


class InputValidationError(CanopyLabError):
    """Raised when a tool's inputs fail pre-processing validation.

    This is the parent class for more specific input problems.
    """


class ColumnNotFoundError(InputValidationError):
    """Raised when an expected column is absent from a tabular dataset.

    Args:
        column: The name of the missing column.
        available: List of column names that ARE present, used to
                   generate a helpful error message.

    Example::

        raise ColumnNotFoundError("stemheight", df.columns.tolist())
    """

    def __init__(self, column: str, available: Sequence[str]) -> None:
        available_str = ", ".join(f"'{c}'" for c in available)
        super().__init__(
            f"Column '{column}' not found. Available columns: {available_str}"
        )
        self.column: str = column
        self.available: list[str] = list(available)


# ---------------------------------------------------------------------------
# CRS
# ---------------------------------------------------------------------------


class CRSError(CanopyLabError):
    """Base for coordinate reference system problems (missing or mismatched)."""


class CRSMismatchError(CRSError):
    """Raised when two datasets that must share a CRS do not.

    Args:
        label_a: Name of the first dataset (e.g. ``"plot polygons"``).
        crs_a: CRS of the first dataset.
        label_b: Name of the second dataset (e.g. ``"canopy height"``).
        crs_b: CRS of the second dataset.
    """

    def __init__(self, label_a: str, crs_a: object, label_b: str, crs_b: object) -> None:
        super().__init__(
            f"CRS mismatch: {label_a} is in '{crs_a}' but {label_b} is in "
            f"'{crs_b}'. Reproject one of them before combining.",
        )
        self.label_a: str = label_a
        self.label_b: str = label_b


class MissingCRSError(CRSError):
    """Raised when a dataset that must be georeferenced carries no CRS.

    Args:
        label: Name of the dataset (e.g. ``"plot layer"``).
    """

    def __init__(self, label: str) -> None:
        super().__init__(
            f"The {label} has no CRS defined. Assign one (e.g. 'EPSG:32611') "
            "before combining it with other data."
        )
        self.label: str = label


# ---------------------------------------------------------------------------
# Raster
# ---------------------------------------------------------------------------


class RasterError(CanopyLabError):
    """Raised for general raster processing failures (rasterio / numpy).

    Subclass this for more specific raster errors.
    """


class AlignmentError(RasterError):
    """Raised when rasters that must share a grid do not.

    Two rasters are aligned when their shape, affine transform (extent and
    resolution) and CRS all match.  Nothing is resampled implicitly.

    Args:
        label_a: Name of the first raster.
        label_b: Name of the second raster.
        differences: One short description per differing property.

    Example::

        raise AlignmentError("surface", "terrain", ["shape (3, 3) != (4, 4)"])
    """

    def __init__(self, label_a: str, label_b: str, differences: Sequence[str]) -> None:
        super().__init__(
            f"Rasters '{label_a}' and '{label_b}' are not aligned: "
            + "; ".join(differences)
        )
        self.label_a: str = label_a
        self.label_b: str = label_b
        self.differences: list[str] = list(differences)


# ---------------------------------------------------------------------------
# Classification
# ---------------------------------------------------------------------------


class ClassificationError(CanopyLabError):
    """Raised when a classifier cannot be trained or applied."""


class BandNameError(ClassificationError):
    """Raised when raster band names do not match the training columns.

    Prediction is name-aligned: the stack must carry exactly the bands the
    model was trained on, in the same order.

    Args:
        expected: Band names used at training time.
        actual: Band names of the raster being classified.
    """

    def __init__(self, expected: Sequence[str], actual: Sequence[str]) -> None:
        super().__init__(
            f"Band names {list(actual)} do not match the training columns "
            f"{list(expected)}."
        )
        self.expected: list[str] = list(expected)
        self.actual: list[str] = list(actual)


# ---------------------------------------------------------------------------
# Output
# ---------------------------------------------------------------------------


class OutputWriteError(CanopyLabError):
    """Raised when the tool cannot write its output to disk.

    Args:
        output_path: String representation of the path that failed.
        reason: Underlying OS or library error message.
    """

    def __init__(self, output_path: str, reason: str) -> None:
        super().__init__(
            f"Failed to write output to '{output_path}': {reason}"
        )
        self.output_path: str = output_path
        self.reason: str = reason
