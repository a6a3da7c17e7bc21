"""
Land-Cover Classifier — Class Legend
======================================
One ordered lookup table shared by training, prediction and rendering.

The classifier is trained on integer codes, not on label strings, and the
codes come from a :class:`ClassLegend` built from the training label set.
The same legend object travels with the fitted model, so a predicted code
``n`` always renders with the name and colour of legend entry ``n``.

Code ``0`` is reserved for cells that received no prediction.

Example::

    legend = ClassLegend.from_labels(
        ["water", "veg", "soil", "veg"],
        order=["veg", "soil", "urban", "water"],
        display_names={"soil": "soil/dead grass"},
    )
    legend.label_for(2)          # "soil"
    legend.display_name_for(2)   # "soil/dead grass"
    legend.code_for("water")     # 3  ("urban" was not observed and is dropped)
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Iterable, Mapping, Sequence

import pandas as pd

from shared.python.exceptions import ClassificationError

logger = logging.getLogger("canopylab.landcover_classifier.legend")

NODATA_CODE = 0
NODATA_LABEL = "no data"

# Cycled when no explicit colour is given for a class
DEFAULT_PALETTE: tuple[str, ...] = (
    "#1b9e77",
    "#d9a55b",
    "#7f7f7f",
    "#2c7fb8",
    "#e7298a",
    "#66a61e",
    "#e6ab02",
    "#a6761d",
)


@dataclass(frozen=True)
class LegendEntry:
    code: int
    label: str
    display_name: str
    color: str


@dataclass(frozen=True)
class ClassLegend:
    """Ordered ``code → (label, display name, colour)`` table.

    Build it with :meth:`from_labels` rather than directly.
    """

    entries: tuple[LegendEntry, ...]

    @classmethod
    def from_labels(
        cls,
        labels: Iterable[object],
        order: Sequence[str] | None = None,
        display_names: Mapping[str, str] | None = None,
        colors: Mapping[str, str] | None = None,
    ) -> ClassLegend:
        """Build the legend from the labels observed in the training data.

        Args:
            labels: Training labels, repeats allowed.  Missing values are
                ignored.
            order: Canonical level order.  Must contain every observed
                label; entries never observed are dropped.  Defaults to
                the sorted unique labels.
            display_names: Optional ``label → text`` shown in the map legend.
            colors: Optional ``label → matplotlib colour``.

        Raises:
            ClassificationError: If no label is observed, or *order* omits
                an observed label.
        """
        observed = {str(label) for label in labels if not pd.isna(label)}
        if not observed:
            raise ClassificationError("Cannot build a class legend from an empty label set.")

        if order is None:
            levels = sorted(observed)
        else:
            order = [str(label) for label in order]
            unknown = sorted(observed - set(order))
            if unknown:
                raise ClassificationError(
                    f"Training label(s) {unknown} are missing from the class order "
                    f"{list(order)}."
                )
            dropped = [label for label in order if label not in observed]
            if dropped:
                logger.warning("Class(es) %s not present in the training data; dropped", dropped)
            levels = [label for label in dict.fromkeys(order) if label in observed]

        display_names = display_names or {}
        colors = colors or {}
        entries = tuple(
            LegendEntry(
                code=i,
                label=label,
                display_name=display_names.get(label, label),
                color=colors.get(label, DEFAULT_PALETTE[(i - 1) % len(DEFAULT_PALETTE)]),
            )
            for i, label in enumerate(levels, start=1)
        )
        legend = cls(entries)
        logger.debug("Class legend: %s", legend)
        return legend

    # ------------------------------------------------------------------
    # Lookups
    # ------------------------------------------------------------------

    @property
    def codes(self) -> list[int]:
        return [e.code for e in self.entries]

    @property
    def labels(self) -> list[str]:
        return [e.label for e in self.entries]

    def __len__(self) -> int:
        return len(self.entries)

    def _entry(self, code: int) -> LegendEntry:
        if not 1 <= code <= len(self.entries):
            raise ClassificationError(
                f"Class code {code} is not in the legend (valid codes 1–{len(self.entries)})."
            )
        return self.entries[code - 1]

    def code_for(self, label: object) -> int:
        """Code of *label*; raises :class:`ClassificationError` if unknown."""
        for entry in self.entries:
            if entry.label == str(label):
                return entry.code
        raise ClassificationError(
            f"Class '{label}' is not in the legend. Known classes: {', '.join(self.labels)}"
        )

    def label_for(self, code: int) -> str:
        if code == NODATA_CODE:
            return NODATA_LABEL
        return self._entry(code).label

    def display_name_for(self, code: int) -> str:
        if code == NODATA_CODE:
            return NODATA_LABEL
        return self._entry(code).display_name

    def color_for(self, code: int) -> str:
        return self._entry(code).color

    def __str__(self) -> str:
        return ", ".join(f"{e.code}={e.label}" for e in self.entries)
