"""
CanopyLab — Shared Input Validators
====================================
Static utility methods used across every CanopyLab tool to validate
common preconditions before processing begins.

All methods raise an appropriate exception from
:mod:`shared.python.exceptions` rather than returning booleans — this
makes ``validate_inputs`` implementations in each tool simple and
readable::

    class MyTool(GeoTool):
        def validate_inputs(self) -> None:
            Validators.assert_file_exists(self.input_path)
            Validators.assert_supported_extension(self.input_path, [".tif"])
"""

from __future__ import annotations

from pathlib import Path
from typing import Any, Sequence

from shared.python.exceptions import (
    AlignmentError,
    ColumnNotFoundError,
    CRSMismatchError,
    InputValidationError,
    MissingCRSError,
    OutputWriteError,
)


class Validators:
    """Collection of static precondition checks shared across all tools.

    All methods are ``@staticmethod`` — this class is never instantiated.
    It exists purely as a logical namespace.
    """

    # ------------------------------------------------------------------
    # File-system checks
    # ------------------------------------------------------------------

    @staticmethod
    def assert_file_exists(path: Path) -> None:
        """Assert that *path* points to an existing regular file.

        Args:
            path: Path object to check.

        Raises:
            InputValidationError: If *path* does not exist or is a
                directory rather than a file.
        """
        path = Path(path)
        if not path.exists():
            raise InputValidationError(
                f"Input file not found: '{path}'. "
                "Check that the path is correct and the file exists."
            )
        if path.is_dir():
            raise InputValidationError(
                f"Expected a file but got a directory: '{path}'."
            )

    @staticmethod
    def assert_directory_exists(path: Path) -> None:
        """Assert that *path* is an existing directory.

        Raises:
            InputValidationError: If *path* does not exist or is not a
                directory.
        """
        path = Path(path)
        if not path.exists():
            raise InputValidationError(
                f"Input directory not found: '{path}'."
            )
        if not path.is_dir():
            raise InputValidationError(
                f"Expected a directory but got a file: '{path}'."
            )

    @staticmethod
    def assert_output_dir_writable(output_path: Path) -> None:
        """Assert that the parent directory of *output_path* is writable.

        Creates the parent directory (and any missing parents) if it does
        not yet exist.

        Raises:
            OutputWriteError: If the parent directory cannot be created.
        """
        parent = Path(output_path).parent
        try:
            parent.mkdir(parents=True, exist_ok=True)
        except OSError as exc:
            raise OutputWriteError(str(output_path), str(exc)) from exc

    @staticmethod
    def assert_supported_extension(path: Path, extensions: Sequence[str]) -> None:
        """Assert that *path* has one of the allowed file extensions.

        Args:
            path: File path to check.
            extensions: Sequence of allowed extensions, each starting with
                        a dot (e.g. ``[".shp", ".geojson", ".gpkg"]``).

        Raises:
            InputValidationError: If the file extension is not in
                *extensions*.
        """
        path = Path(path)
        suffix = path.suffix.lower()
        allowed = [ext.lower() for ext in extensions]
        if suffix not in allowed:
            raise InputValidationError(
                f"Unsupported file extension '{suffix}' for '{path.name}'. "
                f"Accepted extensions: {', '.join(allowed)}"
            )

    # ------------------------------------------------------------------
    # CRS / projection checks
    # ------------------------------------------------------------------

    @staticmethod
    def assert_crs_match(
        crs_a: Any,
        crs_b: Any,
        label_a: str = "dataset A",
        label_b: str = "dataset B",
    ) -> None:
        """Assert that two datasets share the same CRS.

        Both arguments may be anything :mod:`pyproj` accepts (rasterio
        ``CRS``, geopandas ``crs``, EPSG strings).  A missing CRS on either
        side is an error, not a match.

        Raises:
            MissingCRSError: If either CRS is ``None``.
            CRSMismatchError: If the two CRSs are not equal.
        """
        from pyproj import CRS  # noqa: PLC0415

        if crs_a is None:
            raise MissingCRSError(label_a)
        if crs_b is None:
            raise MissingCRSError(label_b)
        proj_a = CRS.from_user_input(crs_a)
        proj_b = CRS.from_user_input(crs_b)
        if proj_a == proj_b:
            return
        # WKT round-trips through GDAL can differ in wording only
        epsg_a = proj_a.to_epsg()
        if epsg_a is not None and epsg_a == proj_b.to_epsg():
            return
        raise CRSMismatchError(label_a, crs_a, label_b, crs_b)

    # ------------------------------------------------------------------
    # Tabular data checks
    # ------------------------------------------------------------------

    @staticmethod
    def assert_columns_exist(
        df: object,  # pandas DataFrame — typed loosely to avoid hard dep
        required_columns: Sequence[str],
    ) -> None:
        """Assert that all *required_columns* are present in *df*.

        Raises:
            ColumnNotFoundError: On the first missing column found.

        Example::

            Validators.assert_columns_exist(df, ["plotid", "stemheight"])
        """
        available = list(df.columns)  # type: ignore[attr-defined]
        for col in required_columns:
            if col not in available:
                raise ColumnNotFoundError(col, available)

    # ------------------------------------------------------------------
    # Raster checks
    # ------------------------------------------------------------------

    @staticmethod
    def assert_grids_aligned(
        grid_a: Any,
        grid_b: Any,
        label_a: str = "Raster A",
        label_b: str = "Raster B",
    ) -> None:
        """Assert that two rasters share shape, transform and CRS.

        Args:
            grid_a: Any object with ``shape``, ``transform`` and ``crs``
                    attributes (a rasterio dataset or an in-memory raster).
            grid_b: The second raster.
            label_a: Human-readable name for the first raster.
            label_b: Human-readable name for the second raster.

        Raises:
            AlignmentError: Listing every property that differs.
        """
        differences: list[str] = []
        if tuple(grid_a.shape) != tuple(grid_b.shape):
            differences.append(f"shape {tuple(grid_a.shape)} != {tuple(grid_b.shape)}")
        if not grid_a.transform.almost_equals(grid_b.transform):
            differences.append(
                f"transform {tuple(grid_a.transform)[:6]} != {tuple(grid_b.transform)[:6]}"
            )
        if grid_a.crs != grid_b.crs:
            differences.append(f"CRS '{grid_a.crs}' != '{grid_b.crs}'")
        if differences:
            raise AlignmentError(label_a, label_b, differences)
