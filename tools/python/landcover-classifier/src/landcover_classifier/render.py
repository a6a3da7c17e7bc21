"""
Land-Cover Classifier — Map Rendering
=======================================
Draws a :class:`~landcover_classifier.classifier.ClassifiedRaster` as a
categorical map.  Colours and legend text come from the raster's own
:class:`~landcover_classifier.legend.ClassLegend`, so code ``n`` is always
drawn with entry ``n``.  Cells without a prediction are transparent.
"""

from __future__ import annotations

import matplotlib

matplotlib.use("Agg")                    # non-interactive backend

import matplotlib.pyplot as plt
import numpy as np
from matplotlib.colors import BoundaryNorm, ListedColormap
from matplotlib.figure import Figure
from matplotlib.patches import Patch

from landcover_classifier.classifier import ClassifiedRaster
from landcover_classifier.legend import NODATA_CODE


def render_land_cover(
    classified: ClassifiedRaster,
    title: str = "Land cover",
    figsize: tuple[float, float] = (8, 7),
) -> Figure:
    """Categorical land-cover map with one legend patch per class."""
    legend = classified.legend
    cmap = ListedColormap([legend.color_for(code) for code in legend.codes]).with_extremes(
        bad=(0.0, 0.0, 0.0, 0.0),
    )
    # One bin per code: [0.5, 1.5) → 1, [1.5, 2.5) → 2, …
    norm = BoundaryNorm(np.arange(0.5, len(legend) + 1.5), cmap.N)

    masked = np.ma.masked_equal(classified.codes, NODATA_CODE)
    left, bottom, right, top = _extent(classified)

    fig, ax = plt.subplots(figsize=figsize)
    ax.imshow(
        masked, cmap=cmap, norm=norm, interpolation="nearest",
        extent=(left, right, bottom, top),
    )
    ax.legend(
        handles=[
            Patch(facecolor=legend.color_for(code), edgecolor="black", linewidth=0.4,
                  label=legend.display_name_for(code))
            for code in legend.codes
        ],
        loc="upper left", bbox_to_anchor=(1.01, 1.0), fontsize=9, frameon=False,
    )
    ax.set_title(title)
    ax.set_xlabel("Easting")
    ax.set_ylabel("Northing")
    ax.ticklabel_format(useOffset=False, style="plain")
    fig.tight_layout()
    return fig


def _extent(classified: ClassifiedRaster) -> tuple[float, float, float, float]:
    t = classified.transform
    rows, cols = classified.shape
    left, top = t.c, t.f
    right, bottom = t * (cols, rows)
    return left, bottom, right, top
