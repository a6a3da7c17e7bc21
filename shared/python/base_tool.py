"""
CanopyLab — Shared Base Tool
=============================
Abstract base class that every CanopyLab tool inherits from.

Design Pattern:
    Template Method — the public ``run()`` method defines a fixed
    pipeline (validate → process → report) that subclasses fill in
    by implementing the abstract methods ``validate_inputs`` and
    ``process``.  ``process`` returns the tool's composite result and
    ``run`` hands it back to the caller.

Usage:
    Do NOT instantiate this class directly.  Subclass it and implement
    the two abstract methods::

        from shared.python.base_tool import GeoTool

        class MyTool(GeoTool):
            def validate_inputs(self) -> None:
                ...
            def process(self) -> MyResult:
                ...
"""

from __future__ import annotations

import logging
import time
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Any

# ---------------------------------------------------------------------------
# Module-level logger — each tool gets its own child logger via
#   logging.getLogger("canopylab.<tool>") inside its own module.
# ---------------------------------------------------------------------------
logger = logging.getLogger("canopylab")


class GeoTool(ABC):
    """Abstract base class for all CanopyLab geospatial tools.

    Every concrete tool must inherit from this class and implement
    :meth:`validate_inputs` and :meth:`process`.  Calling :meth:`run`
    executes the full pipeline in the correct order and returns the
    result of :meth:`process`.

    Attributes:
        input_path: Path to the primary input file or directory.
        output_path: Optional path where a rendered figure is written.
            ``None`` keeps every output in memory.
        verbose: When ``True`` the tool logs DEBUG-level messages in
            addition to INFO/WARNING/ERROR.
    """

    def __init__(
        self,
        input_path: Path,
        output_path: Path | None = None,
        *,
        verbose: bool = False,
    ) -> None:
        self.input_path: Path = Path(input_path)
        self.output_path: Path | None = Path(output_path) if output_path else None
        self.verbose: bool = verbose
        self._result: Any = None

        self._configure_logging()

    # ------------------------------------------------------------------
    # Abstract interface — subclasses MUST implement these
    # ------------------------------------------------------------------

    @abstractmethod
    def validate_inputs(self) -> None:
        """Validate all inputs before processing begins.

        Raises:
            InputValidationError: If a required file is missing, a
                column does not exist, or a CRS string is invalid.
        """

    @abstractmethod
    def process(self) -> Any:
        """Execute the core geospatial processing logic.

        Called by :meth:`run` after :meth:`validate_inputs` has
        succeeded.  Returns the tool's composite result record.
        """

    # ------------------------------------------------------------------
    # Template method — the public API callers use
    # ------------------------------------------------------------------

    def run(self) -> Any:
        """Execute the full tool pipeline and return its result.

        Runs the steps in order:

        1. :meth:`validate_inputs` — verify all preconditions.
        2. :meth:`process` — perform the geospatial work.
        3. :meth:`_report_success` — log the elapsed time.

        Raises:
            Any exception raised by ``validate_inputs`` or ``process``
            propagates unchanged.
        """
        logger.info("Starting %s", self.__class__.__name__)
        start = time.perf_counter()

        self.validate_inputs()
        self._result = self.process()

        elapsed = time.perf_counter() - start
        self._report_success(elapsed)
        return self._result

    @property
    def result(self) -> Any:
        """Result of the last :meth:`run`, or ``None`` before the first run."""
        return self._result

    # ------------------------------------------------------------------
    # Protected helpers — subclasses may override if needed
    # ------------------------------------------------------------------

    def _report_success(self, elapsed: float) -> None:
        """Log a success message with the elapsed time and output path."""
        logger.info(
            "%s completed in %.2fs → %s",
            self.__class__.__name__,
            elapsed,
            self.output_path or "in-memory result",
        )

    def _configure_logging(self) -> None:
        """Set up console logging for this tool instance.

        Attaches a :class:`logging.StreamHandler` to the root
        ``canopylab`` logger if no handlers are already present.
        Uses DEBUG level when ``self.verbose`` is ``True``, otherwise INFO.
        """
        if not logger.handlers:
            handler = logging.StreamHandler()
            formatter = logging.Formatter(
                fmt="[%(asctime)s] %(levelname)-8s %(name)s — %(message)s",
                datefmt="%H:%M:%S",
            )
            handler.setFormatter(formatter)
            logger.addHandler(handler)

        logger.setLevel(logging.DEBUG if self.verbose else logging.INFO)

    # ------------------------------------------------------------------
    # Dunder helpers
    # ------------------------------------------------------------------

    def __repr__(self) -> str:
        return (
            f"{self.__class__.__name__}("
            f"input_path={self.input_path!r}, "
            f"output_path={self.output_path!r})"
        )
