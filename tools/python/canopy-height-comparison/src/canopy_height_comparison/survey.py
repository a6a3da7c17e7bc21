"""
Canopy Height Comparison — Field Survey Module
================================================
Reads per-tree field measurements and reduces them to one height per plot.

Missing or non-numeric heights are ignored; a plot whose every tree lacks
a height aggregates to ``NaN``.
"""

from __future__ import annotations

import logging
from pathlib import Path

import pandas as pd

from shared.python.exceptions import InputValidationError
from shared.python.validators import Validators

logger = logging.getLogger("canopylab.canopy_height_comparison.survey")

SURVEY_STATISTICS = {
    "max": "max",
    "min": "min",
    "mean": "mean",
    "median": "median",
    "p95": lambda s: s.quantile(0.95),
}


def survey_column(statistic: str) -> str:
    """Name of the aggregated-height column for *statistic*."""
    return f"survey_{statistic.lower()}_height"


def load_survey(path: Path, plot_column: str, height_column: str) -> pd.DataFrame:
    """Read the tree survey CSV.

    The height column is coerced to numeric; unparsable entries become
    ``NaN`` and are counted in the log.

    Raises:
        InputValidationError: If the file is missing or cannot be parsed.
        ColumnNotFoundError: If a required column is absent.
    """
    path = Path(path)
    Validators.assert_file_exists(path)
    Validators.assert_supported_extension(path, [".csv", ".txt"])

    try:
        records = pd.read_csv(path)
    except (pd.errors.ParserError, pd.errors.EmptyDataError, UnicodeDecodeError) as exc:
        raise InputValidationError(f"Could not parse survey CSV '{path}': {exc}") from exc

    Validators.assert_columns_exist(records, [plot_column, height_column])

    raw = records[height_column]
    records[height_column] = pd.to_numeric(raw, errors="coerce")
    coerced = int(records[height_column].isna().sum() - raw.isna().sum())
    if coerced:
        logger.warning("%d non-numeric '%s' value(s) treated as missing", coerced, height_column)

    logger.info(
        "Loaded %d tree record(s) across %d plot(s) from %s",
        len(records), records[plot_column].nunique(), path.name,
    )
    return records


def aggregate_height(
    records: pd.DataFrame,
    plot_column: str,
    height_column: str,
    statistic: str = "max",
) -> pd.DataFrame:
    """Reduce tree records to one height per plot.

    Args:
        records: One row per measured tree.
        plot_column: Plot identifier column.
        height_column: Tree height column.
        statistic: ``max`` (default), ``min``, ``mean``, ``median`` or ``p95``.

    Returns:
        DataFrame with ``plot_id`` and ``survey_<statistic>_height``, one
        row per distinct plot id (sorted).  Missing heights are skipped;
        all-missing plots get ``NaN``.
    """
    Validators.assert_columns_exist(records, [plot_column, height_column])
    try:
        agg = SURVEY_STATISTICS[statistic.lower()]
    except KeyError:
        raise InputValidationError(
            f"Unknown statistic '{statistic}'. Valid options: {', '.join(SURVEY_STATISTICS)}"
        ) from None

    column = survey_column(statistic)
    heights = pd.to_numeric(records[height_column], errors="coerce").astype(float)
    grouped = heights.groupby(records[plot_column], dropna=True).agg(agg)

    table = grouped.rename(column).rename_axis("plot_id").reset_index()
    table[column] = table[column].astype(float)

    all_missing = table.loc[table[column].isna(), "plot_id"].tolist()
    if all_missing:
        logger.warning("No valid tree heights for plot(s): %s", ", ".join(map(str, all_missing)))
    logger.debug("Aggregated %s tree height for %d plot(s)", statistic, len(table))
    return table


def aggregate_max_height(
    records: pd.DataFrame,
    plot_column: str,
    height_column: str,
) -> pd.DataFrame:
    """Maximum measured tree height per plot (``survey_max_height``)."""
    return aggregate_height(records, plot_column, height_column, "max")
