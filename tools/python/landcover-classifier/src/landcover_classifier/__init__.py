"""
Land-Cover Classifier
======================
Decision-tree land-cover classification of a multiband (Landsat-style)
scene from labelled training polygons.

Public API::

    from landcover_classifier import LandCoverClassification, LandCoverConfig
"""

from landcover_classifier.classifier import (
    ClassifiedRaster,
    TrainedClassifier,
    predict_raster,
    train_decision_tree,
)
from landcover_classifier.legend import ClassLegend
from landcover_classifier.normalize import normalize_array, normalize_reflectance
from landcover_classifier.pipeline import (
    LandCoverClassification,
    LandCoverConfig,
    LandCoverResult,
)
from landcover_classifier.render import render_land_cover
from landcover_classifier.stack import BandStack, discover_band_files, load_band_stack
from landcover_classifier.subset import crop_to_polygons
from landcover_classifier.training import extract_training_samples

__all__ = [
    "LandCoverClassification",
    "LandCoverConfig",
    "LandCoverResult",
    "BandStack",
    "discover_band_files",
    "load_band_stack",
    "crop_to_polygons",
    "normalize_array",
    "normalize_reflectance",
    "extract_training_samples",
    "ClassLegend",
    "train_decision_tree",
    "TrainedClassifier",
    "predict_raster",
    "ClassifiedRaster",
    "render_land_cover",
]
__version__ = "1.0.0"
