"""
Land-Cover Classifier — Pipeline Orchestrator
===============================================
Runs a complete decision-tree land-cover classification for one scene:

1. stack the single-band GeoTIFFs in a directory
2. optionally crop the stack to a study area
3. normalise raw digital numbers to percent reflectance
4. sample the bands under the labelled training polygons
5. build the class legend and fit the decision tree
6. classify every cell and render the map

Usage::

    from pathlib import Path
    from landcover_classifier.pipeline import LandCoverConfig, LandCoverClassification

    config = LandCoverConfig(
        band_directory_path=Path("data/landsat/LC08_L2SP_042034_20170616"),
        training_geometry_path=Path("data/training_polygons.shp"),
        class_order=["veg", "soil", "urban", "water"],
        class_display_names={"soil": "soil/dead grass"},
        output_figure_path=Path("output/landcover.png"),
    )
    result = LandCoverClassification(config).run()
    print(result.classified.class_counts())
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import pandas as pd
from matplotlib.figure import Figure

from landcover_classifier.classifier import (
    ClassifiedRaster,
    TrainedClassifier,
    predict_raster,
    train_decision_tree,
)
from landcover_classifier.legend import ClassLegend
from landcover_classifier.normalize import (
    DEFAULT_OFFSET,
    DEFAULT_SCALE_FACTOR,
    DEFAULT_VALID_RANGE,
    normalize_reflectance,
)
from landcover_classifier.render import render_land_cover
from landcover_classifier.stack import DEFAULT_BAND_PATTERN, BandStack, load_band_stack
from landcover_classifier.subset import VECTOR_EXTENSIONS, crop_to_polygons, read_polygons
from landcover_classifier.training import extract_training_samples
from shared.python.base_tool import GeoTool
from shared.python.exceptions import InputValidationError, OutputWriteError
from shared.python.validators import Validators

logger = logging.getLogger("canopylab.landcover_classifier")


# ---------------------------------------------------------------------------
# Configuration & result
# ---------------------------------------------------------------------------


@dataclass
class LandCoverConfig:
    """Every parameter of one classification run.

    Attributes:
        band_directory_path: Folder of single-band GeoTIFFs.
        training_geometry_path: Labelled training polygons.
        class_column: Class-label attribute of the training layer.
        study_area_path: Optional polygon layer the stack is cropped to.
        band_pattern: Regex whose first group captures the band number.
        expected_bands: Band numbers to stack; absent ones are skipped
            with a warning.
        valid_range: Inclusive raw-value range kept by normalisation.
        scale_factor: Multiplicative reflectance scale.
        offset: Additive reflectance offset.
        class_order: Canonical class order (legend codes follow it).
        class_display_names: ``label → legend text``.
        class_colors: ``label → matplotlib colour``.
        tree_params: Extra :class:`~sklearn.tree.DecisionTreeClassifier`
            arguments.
        all_touched: Sample every cell a training polygon touches.
        output_figure_path: Optional PNG for the land-cover map.
    """

    band_directory_path: Path
    training_geometry_path: Path
    class_column: str = "class"
    study_area_path: Path | None = None
    band_pattern: str = DEFAULT_BAND_PATTERN
    expected_bands: tuple[int, ...] | None = (1, 2, 3, 4, 5, 6, 7)
    valid_range: tuple[float, float] = DEFAULT_VALID_RANGE
    scale_factor: float = DEFAULT_SCALE_FACTOR
    offset: float = DEFAULT_OFFSET
    class_order: list[str] | None = None
    class_display_names: dict[str, str] | None = None
    class_colors: dict[str, str] | None = None
    tree_params: dict[str, Any] = field(default_factory=dict)
    all_touched: bool = False
    output_figure_path: Path | None = None


@dataclass
class LandCoverResult:
    """Everything one run produces."""

    stack: BandStack
    samples: pd.DataFrame
    classifier: TrainedClassifier
    classified: ClassifiedRaster
    figure: Figure


# ---------------------------------------------------------------------------
# Tool
# ---------------------------------------------------------------------------


class LandCoverClassification(GeoTool):
    """Decision-tree land-cover classification of a multiband scene.

    Args:
        config: A :class:`LandCoverConfig`.
        verbose: Enable DEBUG-level logging.
    """

    def __init__(self, config: LandCoverConfig, *, verbose: bool = False) -> None:
        super().__init__(config.band_directory_path, config.output_figure_path, verbose=verbose)
        self.config = config

    # ------------------------------------------------------------------
    # GeoTool abstract method implementations
    # ------------------------------------------------------------------

    def validate_inputs(self) -> None:
        cfg = self.config
        Validators.assert_directory_exists(Path(cfg.band_directory_path))
        for vector in (cfg.training_geometry_path, cfg.study_area_path):
            if vector is not None:
                Validators.assert_file_exists(Path(vector))
                Validators.assert_supported_extension(Path(vector), VECTOR_EXTENSIONS)
        lo, hi = cfg.valid_range
        if lo > hi:
            raise InputValidationError(
                f"Invalid valid range ({lo}, {hi}): lower bound exceeds upper."
            )
        if cfg.output_figure_path is not None:
            Validators.assert_output_dir_writable(Path(cfg.output_figure_path))
        logger.debug("Inputs validated.")

    def process(self) -> LandCoverResult:
        """Run the classification and return a :class:`LandCoverResult`.

        Raises:
            AlignmentError: If the band files are not on one grid.
            CRSMismatchError: If a polygon layer is in another CRS.
            ClassificationError: If no training sample can be extracted.
            OutputWriteError: If the configured figure cannot be written.
        """
        cfg = self.config

        stack = load_band_stack(
            Path(cfg.band_directory_path),
            pattern=cfg.band_pattern,
            expected_bands=cfg.expected_bands,
        )
        if cfg.study_area_path is not None:
            study_area = read_polygons(Path(cfg.study_area_path), "study area")
            stack = crop_to_polygons(stack, study_area)
        stack = normalize_reflectance(stack, cfg.valid_range, cfg.scale_factor, cfg.offset)

        training = read_polygons(Path(cfg.training_geometry_path), "training layer")
        samples = extract_training_samples(
            stack, training, cfg.class_column, all_touched=cfg.all_touched,
        )

        legend = ClassLegend.from_labels(
            samples[cfg.class_column],
            order=cfg.class_order,
            display_names=cfg.class_display_names,
            colors=cfg.class_colors,
        )
        trained = train_decision_tree(
            samples, cfg.class_column, stack.band_names, legend, **cfg.tree_params,
        )
        classified = predict_raster(trained, stack)
        figure = render_land_cover(classified)

        if cfg.output_figure_path is not None:
            try:
                figure.savefig(str(cfg.output_figure_path), dpi=150, bbox_inches="tight")
            except OSError as exc:
                raise OutputWriteError(str(cfg.output_figure_path), str(exc)) from exc
            logger.info("Land-cover map written to %s", cfg.output_figure_path)

        return LandCoverResult(
            stack=stack,
            samples=samples,
            classifier=trained,
            classified=classified,
            figure=figure,
        )
