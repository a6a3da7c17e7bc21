"""
Canopy Height Comparison — Pipeline Orchestrator
==================================================
Runs the whole Lidar-vs-field comparison for one study area:

1. read the surface (DSM) and terrain (DTM) rasters
2. compute the canopy height model (DSM − DTM)
3. load the plot polygons (optionally buffering plot centres)
4. extract the per-plot Lidar height
5. aggregate the tree survey to a per-plot height
6. join, fit and plot

Inherits from :class:`~shared.python.base_tool.GeoTool` and implements the
Template Method pattern.  :meth:`CanopyHeightComparison.run` returns a
:class:`CanopyComparisonResult`; figures and tables are written to disk only
when output paths are configured.

Usage::

    from pathlib import Path
    from canopy_height_comparison.pipeline import (
        CanopyComparisonConfig, CanopyHeightComparison,
    )

    config = CanopyComparisonConfig(
        surface_raster_path=Path("data/SJER_dsmCrop.tif"),
        terrain_raster_path=Path("data/SJER_dtmCrop.tif"),
        plot_geometry_path=Path("data/SJER_plot_centroids.shp"),
        survey_csv_path=Path("data/D17_2013_SJER_vegStr.csv"),
        plot_buffer_radius=20.0,
    )
    result = CanopyHeightComparison(config).run()
    print(result.comparison.fit)
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path

import pandas as pd

from canopy_height_comparison.chm import (
    RASTER_EXTENSIONS,
    Raster,
    compute_canopy_height,
    mask_below,
    read_raster,
)
from canopy_height_comparison.comparison import (
    ComparisonResult,
    JoinDirection,
    compare_heights,
)
from canopy_height_comparison.plots import (
    VECTOR_EXTENSIONS,
    buffer_plot_centroids,
    load_plot_geometries,
)
from canopy_height_comparison.survey import aggregate_height, load_survey, survey_column
from canopy_height_comparison.zonal import (
    extract_zonal_statistic,
    lidar_column,
    resolve_statistic,
)
from shared.python.base_tool import GeoTool
from shared.python.exceptions import OutputWriteError
from shared.python.validators import Validators

logger = logging.getLogger("canopylab.canopy_height_comparison")


# ---------------------------------------------------------------------------
# Configuration & result
# ---------------------------------------------------------------------------


@dataclass
class CanopyComparisonConfig:
    """Every parameter of one comparison run.

    Attributes:
        surface_raster_path: DSM GeoTIFF.
        terrain_raster_path: DTM GeoTIFF on the same grid as the DSM.
        plot_geometry_path: Plot polygons (or plot centres, see
            ``plot_buffer_radius``).
        survey_csv_path: Per-tree field survey CSV.
        plot_id_column: Plot identifier attribute in the plot layer.
        survey_plot_column: Plot identifier column in the survey CSV.
        survey_height_column: Tree height column in the survey CSV.
        statistic: Per-plot statistic for both sides — ``max`` (default),
            ``min``, ``mean``, ``median`` or ``p95``.
        join: Which table drives the join (see :class:`JoinDirection`).
        all_touched: Count every cell a plot touches, not only cells whose
            centre lies inside it.
        reproject_plots: Reproject a plot layer in another CRS instead of
            failing.
        plot_buffer_radius: When set, point plots are buffered by this
            radius (CRS units) to form plot footprints.
        min_canopy_height: When set, CHM cells below this height are
            treated as missing.
        output_figure_path: Optional PNG for the comparison scatter plot.
        output_table_path: Optional CSV for the joined per-plot table.
    """

    surface_raster_path: Path
    terrain_raster_path: Path
    plot_geometry_path: Path
    survey_csv_path: Path
    plot_id_column: str = "Plot_ID"
    survey_plot_column: str = "plotid"
    survey_height_column: str = "stemheight"
    statistic: str = "max"
    join: JoinDirection = JoinDirection.LIDAR
    all_touched: bool = True
    reproject_plots: bool = False
    plot_buffer_radius: float | None = None
    min_canopy_height: float | None = None
    output_figure_path: Path | None = None
    output_table_path: Path | None = None


@dataclass
class CanopyComparisonResult:
    """Everything one run produces.

    Attributes:
        canopy_height: The derived CHM raster.
        plot_heights: Per-plot Lidar statistic (``plot_id``, height, ``n_cells``).
        survey_heights: Per-plot survey statistic.
        comparison: Joined table, regression and figure.
    """

    canopy_height: Raster
    plot_heights: pd.DataFrame
    survey_heights: pd.DataFrame
    comparison: ComparisonResult


# ---------------------------------------------------------------------------
# Tool
# ---------------------------------------------------------------------------


class CanopyHeightComparison(GeoTool):
    """Compare Lidar-derived and field-measured canopy heights per plot.

    Args:
        config: A :class:`CanopyComparisonConfig`.
        verbose: Enable DEBUG-level logging.
    """

    def __init__(self, config: CanopyComparisonConfig, *, verbose: bool = False) -> None:
        super().__init__(config.surface_raster_path, config.output_figure_path, verbose=verbose)
        self.config = config

    # ------------------------------------------------------------------
    # GeoTool abstract method implementations
    # ------------------------------------------------------------------

    def validate_inputs(self) -> None:
        """Check every input file and the requested statistic.

        Raises:
            InputValidationError: If a file is missing, has an unsupported
                extension, or the statistic is unknown.
            OutputWriteError: If an output directory cannot be created.
        """
        cfg = self.config
        for raster_path in (cfg.surface_raster_path, cfg.terrain_raster_path):
            Validators.assert_file_exists(Path(raster_path))
            Validators.assert_supported_extension(Path(raster_path), RASTER_EXTENSIONS)
        Validators.assert_file_exists(Path(cfg.plot_geometry_path))
        Validators.assert_supported_extension(Path(cfg.plot_geometry_path), VECTOR_EXTENSIONS)
        Validators.assert_file_exists(Path(cfg.survey_csv_path))
        resolve_statistic(cfg.statistic)

        for out in (cfg.output_figure_path, cfg.output_table_path):
            if out is not None:
                Validators.assert_output_dir_writable(Path(out))

        logger.debug("Inputs validated.")

    def process(self) -> CanopyComparisonResult:
        """Run the comparison and return a :class:`CanopyComparisonResult`.

        Raises:
            AlignmentError: If the DSM and DTM grids differ.
            CRSMismatchError: If the plot layer is in another CRS and
                ``reproject_plots`` is off.
            OutputWriteError: If a configured output cannot be written.
        """
        cfg = self.config

        surface = read_raster(Path(cfg.surface_raster_path), name="surface")
        terrain = read_raster(Path(cfg.terrain_raster_path), name="terrain")
        chm = compute_canopy_height(surface, terrain)
        if cfg.min_canopy_height is not None:
            chm = mask_below(chm, cfg.min_canopy_height)

        plots = load_plot_geometries(
            Path(cfg.plot_geometry_path),
            cfg.plot_id_column,
            chm.crs,
            reproject=cfg.reproject_plots,
        )
        if cfg.plot_buffer_radius is not None:
            plots = buffer_plot_centroids(plots, cfg.plot_buffer_radius, cfg.plot_id_column)

        plot_heights = extract_zonal_statistic(
            chm, plots, cfg.plot_id_column, cfg.statistic, all_touched=cfg.all_touched,
        )

        records = load_survey(Path(cfg.survey_csv_path), cfg.survey_plot_column, cfg.survey_height_column)
        survey_heights = aggregate_height(
            records, cfg.survey_plot_column, cfg.survey_height_column, cfg.statistic,
        )

        comparison = compare_heights(
            plot_heights,
            survey_heights,
            lidar_column(cfg.statistic),
            survey_column(cfg.statistic),
            how=cfg.join,
        )

        self._write_outputs(comparison)
        return CanopyComparisonResult(
            canopy_height=chm,
            plot_heights=plot_heights,
            survey_heights=survey_heights,
            comparison=comparison,
        )

    # ------------------------------------------------------------------
    # Private helpers
    # ------------------------------------------------------------------

    def _write_outputs(self, comparison: ComparisonResult) -> None:
        cfg = self.config
        if cfg.output_figure_path is not None:
            try:
                comparison.figure.savefig(str(cfg.output_figure_path), dpi=150, bbox_inches="tight")
            except OSError as exc:
                raise OutputWriteError(str(cfg.output_figure_path), str(exc)) from exc
            logger.info("Comparison plot written to %s", cfg.output_figure_path)
        if cfg.output_table_path is not None:
            try:
                comparison.table.to_csv(cfg.output_table_path, index=False)
            except OSError as exc:
                raise OutputWriteError(str(cfg.output_table_path), str(exc)) from exc
            logger.info("Plot table written to %s", cfg.output_table_path)
