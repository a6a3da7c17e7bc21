"""
Land-Cover Classifier — CLI Entry Point
=========================================
Installed as the ``geo-landcover`` command via ``pyproject.toml``.

Usage::

    geo-landcover \\
        --bands data/landsat/LC08_L2SP_042034_20170616 \\
        --training data/training_polygons.shp \\
        --class-order veg,soil,urban,water \\
        --display-name "soil=soil/dead grass" \\
        --color veg=forestgreen --color water=steelblue \\
        --max-depth 5 \\
        --figure output/landcover.png
"""

from __future__ import annotations

import sys
from pathlib import Path

import click

from landcover_classifier.normalize import (
    DEFAULT_OFFSET,
    DEFAULT_SCALE_FACTOR,
    DEFAULT_VALID_RANGE,
)
from landcover_classifier.pipeline import LandCoverClassification, LandCoverConfig
from landcover_classifier.stack import DEFAULT_BAND_PATTERN
from shared.python.exceptions import CanopyLabError


def _parse_pairs(ctx: click.Context, param: click.Parameter, values: tuple[str, ...]) -> dict[str, str]:
    """Turn repeated ``label=value`` options into a dict."""
    pairs: dict[str, str] = {}
    for item in values:
        label, sep, value = item.partition("=")
        if not sep or not label.strip() or not value.strip():
            raise click.BadParameter(f"expected LABEL=VALUE, got '{item}'", ctx=ctx, param=param)
        pairs[label.strip()] = value.strip()
    return pairs


def _parse_csv_list(ctx: click.Context, param: click.Parameter, value: str | None) -> list[str] | None:
    if value is None:
        return None
    items = [v.strip() for v in value.split(",") if v.strip()]
    if not items:
        raise click.BadParameter("must list at least one value", ctx=ctx, param=param)
    return items


@click.command(
    name="geo-landcover",
    help="Classify land cover in a multiband scene with a decision tree.",
)
@click.option(
    "--bands", "band_directory", required=True,
    type=click.Path(exists=True, file_okay=False, path_type=Path),
    help="Directory of single-band GeoTIFFs.",
)
@click.option(
    "--training", "training_path", required=True,
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
    help="Labelled training polygons (Shapefile, GeoJSON, GeoPackage).",
)
@click.option("--class-column", default="class", show_default=True,
              help="Class-label attribute of the training layer.")
@click.option(
    "--study-area", "study_area_path", default=None,
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
    help="Crop the scene to these polygons before classifying.",
)
@click.option("--band-pattern", default=DEFAULT_BAND_PATTERN, show_default=True,
              help="Regex matching band files; group 1 is the band number.")
@click.option("--expected-bands", default="1,2,3,4,5,6,7", show_default=True,
              callback=_parse_csv_list,
              help="Comma-separated band numbers to stack ('all' for every band found).")
@click.option("--valid-min", type=float, default=DEFAULT_VALID_RANGE[0], show_default=True,
              help="Smallest valid raw value.")
@click.option("--valid-max", type=float, default=DEFAULT_VALID_RANGE[1], show_default=True,
              help="Largest valid raw value.")
@click.option("--scale", "scale_factor", type=float, default=DEFAULT_SCALE_FACTOR, show_default=True,
              help="Reflectance scale factor.")
@click.option("--offset", type=float, default=DEFAULT_OFFSET, show_default=True,
              help="Reflectance offset.")
@click.option("--class-order", default=None, callback=_parse_csv_list,
              help="Comma-separated canonical class order, e.g. veg,soil,urban,water.")
@click.option("--display-name", "display_names", multiple=True, callback=_parse_pairs,
              help="Legend text for a class as LABEL=TEXT (repeatable).")
@click.option("--color", "colors", multiple=True, callback=_parse_pairs,
              help="Map colour for a class as LABEL=COLOUR (repeatable).")
@click.option("--max-depth", type=int, default=None, help="Maximum depth of the decision tree.")
@click.option("--min-samples-leaf", type=int, default=None,
              help="Minimum training cells per tree leaf.")
@click.option("--all-touched", is_flag=True, default=False,
              help="Sample every cell a training polygon touches.")
@click.option("--figure", "figure_path", type=click.Path(dir_okay=False, path_type=Path),
              default=None, help="Write the land-cover map to this PNG.")
@click.option("--show-tree", is_flag=True, default=False, help="Print the fitted decision tree.")
@click.option("--verbose", "-v", is_flag=True, default=False, help="Enable debug logging.")
def main(
    band_directory: Path,
    training_path: Path,
    class_column: str,
    study_area_path: Path | None,
    band_pattern: str,
    expected_bands: list[str],
    valid_min: float,
    valid_max: float,
    scale_factor: float,
    offset: float,
    class_order: list[str] | None,
    display_names: dict[str, str],
    colors: dict[str, str],
    max_depth: int | None,
    min_samples_leaf: int | None,
    all_touched: bool,
    figure_path: Path | None,
    show_tree: bool,
    verbose: bool,
) -> None:
    """CLI entry point — wires Click options into LandCoverClassification."""
    if [b.lower() for b in expected_bands] == ["all"]:
        bands = None
    else:
        try:
            bands = tuple(int(b) for b in expected_bands)
        except ValueError:
            raise click.BadParameter(
                "band numbers must be integers", param_hint="--expected-bands",
            ) from None

    tree_params: dict[str, int] = {}
    if max_depth is not None:
        tree_params["max_depth"] = max_depth
    if min_samples_leaf is not None:
        tree_params["min_samples_leaf"] = min_samples_leaf

    config = LandCoverConfig(
        band_directory_path=band_directory,
        training_geometry_path=training_path,
        class_column=class_column,
        study_area_path=study_area_path,
        band_pattern=band_pattern,
        expected_bands=bands,
        valid_range=(valid_min, valid_max),
        scale_factor=scale_factor,
        offset=offset,
        class_order=class_order,
        class_display_names=display_names or None,
        class_colors=colors or None,
        tree_params=tree_params,
        all_touched=all_touched,
        output_figure_path=figure_path,
    )

    try:
        result = LandCoverClassification(config, verbose=verbose).run()
    except CanopyLabError as exc:
        click.echo(f"Error: {exc.message}", err=True)
        sys.exit(1)

    classified = result.classified
    legend = classified.legend
    click.echo(f"\nClassified {classified.shape[0]}x{classified.shape[1]} cells "
               f"from {len(result.samples)} training sample(s).")
    for code, cells in zip(legend.codes, classified.class_counts()):
        click.echo(f"  {code}  {legend.display_name_for(code):<20} {cells:>8}")
    unclassified = int((classified.codes == 0).sum())
    if unclassified:
        click.echo(f"  0  {'no data':<20} {unclassified:>8}")
    if show_tree:
        click.echo("\n" + result.classifier.describe())
    if figure_path:
        click.echo(f"  Figure: {figure_path}")


if __name__ == "__main__":
    main()
