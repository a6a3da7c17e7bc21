"""
CanopyLab — Shared Python Package
==================================
Re-exports the shared base class, exception hierarchy, and validator
utilities so individual tools can import from a single location::

    from shared.python import GeoTool, Validators
    from shared.python.exceptions import AlignmentError
"""

from shared.python.base_tool import GeoTool
from shared.python.exceptions import (
    AlignmentError,
    BandNameError,
    CanopyLabError,
    ClassificationError,
    ColumnNotFoundError,
    CRSError,
    CRSMismatchError,
    InputValidationError,
    MissingCRSError,
    OutputWriteError,
    RasterError,
)
from shared.python.validators import Validators

__all__ = [
    "GeoTool",
    "Validators",
    "CanopyLabError",
    "InputValidationError",
    "ColumnNotFoundError",
    "CRSError",
    "CRSMismatchError",
    "MissingCRSError",
    "RasterError",
    "AlignmentError",
    "ClassificationError",
    "BandNameError",
    "OutputWriteError",
]
