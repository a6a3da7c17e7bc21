"""
Land-Cover Classifier — Decision Tree Training & Prediction
=============================================================
Fits a scikit-learn :class:`~sklearn.tree.DecisionTreeClassifier` on the
per-cell training samples and applies it to every cell of a band stack.

The tree is trained on legend codes (1, 2, …), never on label strings, and
the :class:`~landcover_classifier.legend.ClassLegend` used to encode the
targets is stored alongside the fitted model.  Prediction therefore returns
codes that the same legend decodes.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from typing import Any, Sequence

import numpy as np
import numpy.typing as npt
import pandas as pd
from rasterio.crs import CRS
from rasterio.transform import Affine
from sklearn.tree import DecisionTreeClassifier, export_text

from landcover_classifier.legend import NODATA_CODE, ClassLegend
from landcover_classifier.stack import BandStack
from shared.python.exceptions import BandNameError, ClassificationError
from shared.python.validators import Validators

logger = logging.getLogger("canopylab.landcover_classifier.classifier")


# ---------------------------------------------------------------------------
# Data containers
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class TrainedClassifier:
    """A fitted tree together with the predictor order and legend it expects."""

    model: DecisionTreeClassifier
    band_names: tuple[str, ...]
    legend: ClassLegend

    def describe(self) -> str:
        """Text rendering of the fitted tree, with class labels at the leaves."""
        text = export_text(self.model, feature_names=list(self.band_names))
        # One pass, so a label that looks like a code is never rewritten again
        return re.sub(
            r"class: (\d+)",
            lambda m: f"class: {self.legend.label_for(int(m.group(1)))}",
            text,
        )


@dataclass(frozen=True)
class ClassifiedRaster:
    """Per-cell class codes on the grid of the stack they were predicted from.

    Attributes:
        codes: int16 array ``(rows, cols)``; ``0`` marks cells without a
            prediction.
        transform: Affine transform of the grid.
        crs: CRS of the grid.
        legend: Decodes ``codes``.
    """

    codes: npt.NDArray[np.int16]
    transform: Affine
    crs: CRS | None
    legend: ClassLegend

    @property
    def shape(self) -> tuple[int, int]:
        return self.codes.shape

    def class_counts(self) -> pd.Series:
        """Number of cells per class label, in legend order (no-data excluded)."""
        counts = np.bincount(self.codes.ravel(), minlength=len(self.legend) + 1)
        return pd.Series(
            counts[1 : len(self.legend) + 1],
            index=pd.Index(self.legend.labels, name="class"),
            name="cells",
        )


# ---------------------------------------------------------------------------
# Training
# ---------------------------------------------------------------------------


def train_decision_tree(
    samples: pd.DataFrame,
    class_column: str,
    band_names: Sequence[str],
    legend: ClassLegend | None = None,
    **params: Any,
) -> TrainedClassifier:
    """Fit a decision tree on *samples*.

    Args:
        samples: Output of
            :func:`~landcover_classifier.training.extract_training_samples`.
        class_column: Column holding class labels.
        band_names: Predictor columns, in the order the prediction stack
            will present them.
        legend: Code table to encode labels with.  Built from the sample
            labels (sorted) when omitted.
        **params: Passed to :class:`DecisionTreeClassifier`;
            ``random_state`` defaults to ``0``.

    Raises:
        ColumnNotFoundError: If a predictor or the class column is missing.
        ClassificationError: If *samples* is empty or holds a label the
            legend does not know.
    """
    band_names = tuple(band_names)
    Validators.assert_columns_exist(samples, [class_column, *band_names])
    if samples.empty:
        raise ClassificationError("Cannot train a classifier on an empty sample table.")

    if legend is None:
        legend = ClassLegend.from_labels(samples[class_column])
    y = np.array([legend.code_for(label) for label in samples[class_column]], dtype=np.int16)
    X = samples.loc[:, list(band_names)].to_numpy(dtype=np.float64)

    params.setdefault("random_state", 0)
    model = DecisionTreeClassifier(**params)
    model.fit(X, y)

    logger.info(
        "Trained decision tree on %d sample(s), %d band(s), %d class(es) "
        "(depth=%d, leaves=%d)",
        len(X), len(band_names), len(legend), model.get_depth(), model.get_n_leaves(),
    )
    logger.debug("Decision tree:\n%s", export_text(model, feature_names=list(band_names)))
    return TrainedClassifier(model=model, band_names=band_names, legend=legend)


# ---------------------------------------------------------------------------
# Prediction
# ---------------------------------------------------------------------------


def predict_raster(trained: TrainedClassifier, stack: BandStack) -> ClassifiedRaster:
    """Classify every cell of *stack*.

    Cells with a missing value in any band get code ``0``.

    Raises:
        BandNameError: If the stack bands differ from the training
            predictors in name or order.
    """
    if tuple(stack.band_names) != trained.band_names:
        raise BandNameError(list(trained.band_names), list(stack.band_names))

    n_rows, n_cols = stack.shape
    X = stack.data.reshape(stack.count, -1).T.astype(np.float64)
    valid_mask = ~np.any(np.isnan(X), axis=1)

    codes = np.full(X.shape[0], NODATA_CODE, dtype=np.int16)
    if valid_mask.any():
        codes[valid_mask] = trained.model.predict(X[valid_mask])
    codes = codes.reshape(n_rows, n_cols)

    classified = ClassifiedRaster(
        codes=codes, transform=stack.transform, crs=stack.crs, legend=trained.legend,
    )
    logger.info(
        "Predicted %d of %d cell(s); %d without a prediction",
        int(valid_mask.sum()), valid_mask.size, int((~valid_mask).sum()),
    )
    return classified
