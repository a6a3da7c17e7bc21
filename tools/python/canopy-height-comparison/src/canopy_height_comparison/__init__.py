"""
Canopy Height Comparison
=========================
Compare Lidar canopy height (DSM − DTM) with field-measured tree height
per survey plot.

Public API::

    from canopy_height_comparison import CanopyHeightComparison, CanopyComparisonConfig
"""

from canopy_height_comparison.chm import Raster, compute_canopy_height, mask_below, read_raster
from canopy_height_comparison.comparison import (
    ComparisonResult,
    JoinDirection,
    RegressionFit,
    compare_heights,
    fit_height_regression,
    join_plot_heights,
    render_comparison_plot,
)
from canopy_height_comparison.pipeline import (
    CanopyComparisonConfig,
    CanopyComparisonResult,
    CanopyHeightComparison,
)
from canopy_height_comparison.plots import buffer_plot_centroids, load_plot_geometries
from canopy_height_comparison.survey import aggregate_height, aggregate_max_height, load_survey
from canopy_height_comparison.zonal import (
    PlotDistributionSummary,
    extract_zonal_statistic,
    summarise_plot_distributions,
)

__all__ = [
    "CanopyHeightComparison",
    "CanopyComparisonConfig",
    "CanopyComparisonResult",
    "Raster",
    "read_raster",
    "compute_canopy_height",
    "mask_below",
    "load_plot_geometries",
    "buffer_plot_centroids",
    "extract_zonal_statistic",
    "summarise_plot_distributions",
    "PlotDistributionSummary",
    "load_survey",
    "aggregate_height",
    "aggregate_max_height",
    "JoinDirection",
    "RegressionFit",
    "ComparisonResult",
    "join_plot_heights",
    "fit_height_regression",
    "render_comparison_plot",
    "compare_heights",
]
__version__ = "1.0.0"
