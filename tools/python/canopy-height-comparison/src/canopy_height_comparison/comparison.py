"""
Canopy Height Comparison — Comparator Module
==============================================
Pairs the Lidar-derived plot heights with the field-survey plot heights,
fits a least-squares line (survey → Lidar) and draws both against the
1:1 identity line.

Join direction
--------------
Which side of the join is kept decides which plots silently disappear,
so it is always an explicit :class:`JoinDirection`:

==========  ==============================================================
``LIDAR``   Left join on the Lidar table (default).  Every plot with an
            extracted height is kept; survey-only plots are dropped and
            plots without survey data get ``NaN`` survey height.
``SURVEY``  Left join on the survey table.  Lidar-only plots are dropped.
``INNER``   Only plots present on both sides.
``OUTER``   Every plot from either side.
==========  ==============================================================

Dropped ids are logged at WARNING.  The regression and plot only ever use
rows where both heights are present.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum

import matplotlib

matplotlib.use("Agg")                    # non-interactive backend

import matplotlib.pyplot as plt
import numpy as np
import pandas as pd
from matplotlib.figure import Figure

from shared.python.exceptions import InputValidationError
from shared.python.validators import Validators

logger = logging.getLogger("canopylab.canopy_height_comparison.comparison")


class JoinDirection(Enum):
    """Which per-plot table drives the join."""

    LIDAR = "lidar"
    SURVEY = "survey"
    INNER = "inner"
    OUTER = "outer"

    @property
    def pandas_how(self) -> str:
        """The ``how`` argument for :meth:`pandas.DataFrame.merge`."""
        return {
            JoinDirection.LIDAR: "left",
            JoinDirection.SURVEY: "right",
            JoinDirection.INNER: "inner",
            JoinDirection.OUTER: "outer",
        }[self]


@dataclass(frozen=True)
class RegressionFit:
    """Ordinary least-squares fit of Lidar height on survey height.

    Attributes:
        slope: Change in Lidar height per metre of survey height.
        intercept: Lidar height at zero survey height.
        r_squared: Coefficient of determination.
        n: Number of plots with both heights.
        rmse: Root-mean-square of ``lidar − survey`` (not of the residuals).
        bias: Mean of ``lidar − survey``.
    """

    slope: float
    intercept: float
    r_squared: float
    n: int
    rmse: float
    bias: float

    def predict(self, survey_height: float | np.ndarray) -> float | np.ndarray:
        """Lidar height the fitted line gives for *survey_height*."""
        return self.slope * survey_height + self.intercept

    def __str__(self) -> str:
        return (
            f"lidar = {self.slope:.3f} × survey + {self.intercept:.3f} "
            f"(R²={self.r_squared:.3f}, n={self.n}, "
            f"RMSE={self.rmse:.2f}, bias={self.bias:+.2f})"
        )


@dataclass
class ComparisonResult:
    """Paired table, fitted line and figure for one comparison.

    Attributes:
        table: Joined per-plot table (``plot_id``, Lidar height, survey height).
        fit: The regression, or ``None`` with fewer than two complete plots.
        figure: Scatter plot with regression and 1:1 lines.
        lidar_column: Name of the Lidar height column in *table*.
        survey_column: Name of the survey height column in *table*.
    """

    table: pd.DataFrame
    fit: RegressionFit | None
    figure: Figure
    lidar_column: str
    survey_column: str

    @property
    def complete_rows(self) -> pd.DataFrame:
        """Rows where both heights are present."""
        return self.table.dropna(subset=[self.lidar_column, self.survey_column])


# ---------------------------------------------------------------------------
# Join
# ---------------------------------------------------------------------------


def join_plot_heights(
    lidar: pd.DataFrame,
    survey: pd.DataFrame,
    how: JoinDirection | str = JoinDirection.LIDAR,
    *,
    key: str = "plot_id",
) -> pd.DataFrame:
    """Join the Lidar and survey per-plot tables on *key*.

    Args:
        lidar: Per-plot Lidar heights (one row per plot id).
        survey: Per-plot survey heights (one row per plot id).
        how: A :class:`JoinDirection` or its string value.
        key: Join column present in both tables.

    Returns:
        The joined table, ordered like the driving table (sorted by *key*
        for ``OUTER``).

    Raises:
        ColumnNotFoundError: If *key* is missing on either side.
        InputValidationError: If *key* is not unique on either side.
    """
    direction = JoinDirection(how) if isinstance(how, str) else how
    Validators.assert_columns_exist(lidar, [key])
    Validators.assert_columns_exist(survey, [key])
    if lidar[key].dtype != survey[key].dtype:
        # e.g. text ids from the plot layer vs. integer ids parsed from the CSV
        logger.debug(
            "Plot id types differ (%s vs %s); joining on text ids",
            lidar[key].dtype, survey[key].dtype,
        )
        lidar = lidar.assign(**{key: lidar[key].astype(str)})
        survey = survey.assign(**{key: survey[key].astype(str)})
    for label, table in (("Lidar", lidar), ("survey", survey)):
        if table[key].duplicated().any():
            raise InputValidationError(f"{label} table has duplicated '{key}' values.")

    lidar_ids = set(lidar[key])
    survey_ids = set(survey[key])
    if direction in (JoinDirection.LIDAR, JoinDirection.INNER):
        _log_dropped(survey_ids - lidar_ids, "survey", "no Lidar height")
    if direction in (JoinDirection.SURVEY, JoinDirection.INNER):
        _log_dropped(lidar_ids - survey_ids, "Lidar", "no survey height")

    joined = lidar.merge(
        survey, on=key, how=direction.pandas_how, sort=direction is JoinDirection.OUTER,
    )
    logger.info(
        "Joined %d Lidar and %d survey plot(s) with a %s join → %d row(s)",
        len(lidar), len(survey), direction.value, len(joined),
    )
    return joined.reset_index(drop=True)


def _log_dropped(ids: set, side: str, reason: str) -> None:
    if ids:
        logger.warning(
            "Dropping %d %s plot(s) with %s: %s",
            len(ids), side, reason, ", ".join(sorted(map(str, ids))),
        )


# ---------------------------------------------------------------------------
# Regression
# ---------------------------------------------------------------------------


def fit_height_regression(
    table: pd.DataFrame,
    lidar_column: str,
    survey_column: str,
) -> RegressionFit | None:
    """Fit ``lidar = slope × survey + intercept`` on complete rows.

    Returns ``None`` when fewer than two plots have both heights or every
    survey height is identical; exploratory use only, so no error.
    """
    complete = table.dropna(subset=[lidar_column, survey_column])
    x = complete[survey_column].to_numpy(dtype=float)
    y = complete[lidar_column].to_numpy(dtype=float)

    if x.size < 2 or np.ptp(x) == 0:
        logger.warning("Not enough paired plots to fit a regression (n=%d)", x.size)
        return None

    slope, intercept = np.polyfit(x, y, deg=1)
    predicted = slope * x + intercept
    ss_res = float(np.sum((y - predicted) ** 2))
    ss_tot = float(np.sum((y - y.mean()) ** 2))
    r_squared = 1.0 - ss_res / ss_tot if ss_tot > 0 else 1.0
    diff = y - x

    fit = RegressionFit(
        slope=float(slope),
        intercept=float(intercept),
        r_squared=r_squared,
        n=int(x.size),
        rmse=float(np.sqrt(np.mean(diff ** 2))),
        bias=float(np.mean(diff)),
    )
    logger.info("Regression: %s", fit)
    return fit


# ---------------------------------------------------------------------------
# Plot
# ---------------------------------------------------------------------------


def render_comparison_plot(
    table: pd.DataFrame,
    lidar_column: str,
    survey_column: str,
    fit: RegressionFit | None = None,
    *,
    title: str = "Lidar vs. field-measured canopy height",
) -> Figure:
    """Scatter survey (x) against Lidar (y) with the fitted and 1:1 lines."""
    complete = table.dropna(subset=[lidar_column, survey_column])
    x = complete[survey_column].to_numpy(dtype=float)
    y = complete[lidar_column].to_numpy(dtype=float)

    fig, ax = plt.subplots(figsize=(7, 7))
    ax.scatter(x, y, s=36, color="darkgreen", alpha=0.8, label="Plots")

    if x.size:
        lo = float(min(x.min(), y.min(), 0.0))
        hi = float(max(x.max(), y.max())) * 1.05 or 1.0
    else:
        lo, hi = 0.0, 1.0
    line = np.array([lo, hi])
    ax.plot(line, line, linestyle="--", color="grey", label="1:1 line")
    if fit is not None:
        ax.plot(line, fit.predict(line), color="firebrick", label=f"Fit (R²={fit.r_squared:.2f})")

    ax.set_xlim(lo, hi)
    ax.set_ylim(lo, hi)
    ax.set_aspect("equal")
    ax.set_xlabel("Field-measured height (m)")
    ax.set_ylabel("Lidar-derived height (m)")
    ax.set_title(title)
    ax.legend(loc="upper left")
    fig.tight_layout()
    return fig


def compare_heights(
    lidar: pd.DataFrame,
    survey: pd.DataFrame,
    lidar_column: str,
    survey_column: str,
    how: JoinDirection | str = JoinDirection.LIDAR,
) -> ComparisonResult:
    """Join, fit and plot in one call; returns a :class:`ComparisonResult`."""
    table = join_plot_heights(lidar, survey, how)
    fit = fit_height_regression(table, lidar_column, survey_column)
    figure = render_comparison_plot(table, lidar_column, survey_column, fit)
    return ComparisonResult(
        table=table,
        fit=fit,
        figure=figure,
        lidar_column=lidar_column,
        survey_column=survey_column,
    )
