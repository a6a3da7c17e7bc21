"""
Land-Cover Classifier — Reflectance Normalisation
===================================================
Turns raw Landsat Collection 2 surface-reflectance digital numbers into
percent reflectance.

For each cell, in every band alike::

    raw outside [lo, hi]  →  NaN
    raw inside  [lo, hi]  →  (raw * scale + offset) * 100

The defaults are the Collection 2 Level-2 constants: valid range
7273–43636, scale 0.0000275, offset −0.2, which map the valid range onto
roughly 0–100 %.
"""

from __future__ import annotations

import logging

import numpy as np
import numpy.typing as npt

from landcover_classifier.stack import BandStack
from shared.python.exceptions import InputValidationError

logger = logging.getLogger("canopylab.landcover_classifier.normalize")

DEFAULT_VALID_RANGE: tuple[float, float] = (7273, 43636)
DEFAULT_SCALE_FACTOR = 0.0000275
DEFAULT_OFFSET = -0.2


def normalize_array(
    raw: npt.ArrayLike,
    valid_range: tuple[float, float] = DEFAULT_VALID_RANGE,
    scale: float = DEFAULT_SCALE_FACTOR,
    offset: float = DEFAULT_OFFSET,
) -> npt.NDArray[np.float32]:
    """Apply the range mask and scale/offset to any array of raw values.

    Bounds are inclusive.  ``NaN`` input stays ``NaN``.

    Raises:
        InputValidationError: If ``lo > hi``.
    """
    lo, hi = valid_range
    if lo > hi:
        raise InputValidationError(f"Invalid valid range ({lo}, {hi}): lower bound exceeds upper.")

    values = np.asarray(raw, dtype=np.float64)
    with np.errstate(invalid="ignore"):
        valid = (values >= lo) & (values <= hi)
    reflectance = np.where(valid, (values * scale + offset) * 100.0, np.nan)
    return reflectance.astype(np.float32)


def normalize_reflectance(
    stack: BandStack,
    valid_range: tuple[float, float] = DEFAULT_VALID_RANGE,
    scale: float = DEFAULT_SCALE_FACTOR,
    offset: float = DEFAULT_OFFSET,
) -> BandStack:
    """Return a new stack of percent reflectance; *stack* is not modified."""
    reflectance = normalize_array(stack.data, valid_range, scale, offset)

    was_valid = ~np.isnan(stack.data)
    dropped = int(np.count_nonzero(was_valid & np.isnan(reflectance)))
    if dropped:
        logger.warning(
            "%d raw value(s) outside [%g, %g] set to missing", dropped, *valid_range,
        )
    logger.info(
        "Normalised %d band(s) with scale=%g offset=%g", stack.count, scale, offset,
    )
    return stack.with_data(reflectance)
