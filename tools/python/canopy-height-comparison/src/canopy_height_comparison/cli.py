"""
Canopy Height Comparison — CLI Entry Point
============================================
Installed as the ``geo-canopy-compare`` command via ``pyproject.toml``.

Usage::

    geo-canopy-compare \\
        --dsm data/SJER_dsmCrop.tif \\
        --dtm data/SJER_dtmCrop.tif \\
        --plots data/SJER_plot_centroids.shp --buffer-radius 20 \\
        --survey data/D17_2013_SJER_vegStr.csv \\
        --figure output/chm_vs_survey.png
"""

from __future__ import annotations

import sys
from pathlib import Path

import click

from canopy_height_comparison.comparison import JoinDirection
from canopy_height_comparison.pipeline import CanopyComparisonConfig, CanopyHeightComparison
from canopy_height_comparison.zonal import STATISTICS
from shared.python.exceptions import CanopyLabError


@click.command(
    name="geo-canopy-compare",
    help="Compare Lidar canopy height (DSM − DTM) with field-measured tree height per plot.",
)
@click.option(
    "--dsm", "surface_path", required=True,
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
    help="Digital surface model GeoTIFF.",
)
@click.option(
    "--dtm", "terrain_path", required=True,
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
    help="Digital terrain model GeoTIFF (same grid as the DSM).",
)
@click.option(
    "--plots", "plots_path", required=True,
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
    help="Plot polygons or plot centres (Shapefile, GeoJSON, GeoPackage).",
)
@click.option(
    "--survey", "survey_path", required=True,
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
    help="Per-tree field survey CSV.",
)
@click.option("--plot-id", "plot_id_column", default="Plot_ID", show_default=True,
              help="Plot identifier attribute in the plot layer.")
@click.option("--survey-plot-id", "survey_plot_column", default="plotid", show_default=True,
              help="Plot identifier column in the survey CSV.")
@click.option("--height-column", "height_column", default="stemheight", show_default=True,
              help="Tree height column in the survey CSV.")
@click.option(
    "--statistic", type=click.Choice(list(STATISTICS), case_sensitive=False),
    default="max", show_default=True,
    help="Per-plot statistic computed on both sides.",
)
@click.option(
    "--join", "join_direction",
    type=click.Choice([d.value for d in JoinDirection], case_sensitive=False),
    default=JoinDirection.LIDAR.value, show_default=True,
    help="Which table drives the join: lidar keeps every extracted plot, "
         "survey keeps every surveyed plot.",
)
@click.option("--centre-only", is_flag=True, default=False,
              help="Only count cells whose centre lies inside a plot.")
@click.option("--reproject", is_flag=True, default=False,
              help="Reproject the plot layer to the raster CRS instead of failing.")
@click.option("--buffer-radius", type=float, default=None,
              help="Buffer point plots by this radius (CRS units).")
@click.option("--min-height", type=float, default=None,
              help="Treat canopy heights below this value as missing.")
@click.option("--figure", "figure_path", type=click.Path(dir_okay=False, path_type=Path),
              default=None, help="Write the scatter plot to this PNG.")
@click.option("--table", "table_path", type=click.Path(dir_okay=False, path_type=Path),
              default=None, help="Write the joined per-plot table to this CSV.")
@click.option("--verbose", "-v", is_flag=True, default=False, help="Enable debug logging.")
def main(
    surface_path: Path,
    terrain_path: Path,
    plots_path: Path,
    survey_path: Path,
    plot_id_column: str,
    survey_plot_column: str,
    height_column: str,
    statistic: str,
    join_direction: str,
    centre_only: bool,
    reproject: bool,
    buffer_radius: float | None,
    min_height: float | None,
    figure_path: Path | None,
    table_path: Path | None,
    verbose: bool,
) -> None:
    """CLI entry point — wires Click options into CanopyHeightComparison."""
    config = CanopyComparisonConfig(
        surface_raster_path=surface_path,
        terrain_raster_path=terrain_path,
        plot_geometry_path=plots_path,
        survey_csv_path=survey_path,
        plot_id_column=plot_id_column,
        survey_plot_column=survey_plot_column,
        survey_height_column=height_column,
        statistic=statistic.lower(),
        join=JoinDirection(join_direction.lower()),
        all_touched=not centre_only,
        reproject_plots=reproject,
        plot_buffer_radius=buffer_radius,
        min_canopy_height=min_height,
        output_figure_path=figure_path,
        output_table_path=table_path,
    )

    try:
        result = CanopyHeightComparison(config, verbose=verbose).run()
    except CanopyLabError as exc:
        click.echo(f"Error: {exc.message}", err=True)
        sys.exit(1)

    comparison = result.comparison
    click.echo(
        f"\n{len(comparison.table)} plot(s) joined, "
        f"{len(comparison.complete_rows)} with both heights."
    )
    if comparison.fit is not None:
        click.echo(f"  {comparison.fit}")
    else:
        click.echo("  Not enough paired plots for a regression.")
    if figure_path:
        click.echo(f"  Figure: {figure_path}")
    if table_path:
        click.echo(f"  Table:  {table_path}")


if __name__ == "__main__":
    main()
