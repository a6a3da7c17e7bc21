"""
Tests — Plot Geometry Module
==============================
"""

from __future__ import annotations

from pathlib import Path

import geopandas as gpd
import pytest
from rasterio.crs import CRS
from shapely.geometry import Point, box

from canopy_height_comparison.plots import buffer_plot_centroids, load_plot_geometries
from shared.python.exceptions import (
    ColumnNotFoundError,
    CRSMismatchError,
    InputValidationError,
    MissingCRSError,
)

UTM = CRS.from_epsg(32611)


class TestLoadPlotGeometries:
    def test_reads_plots_in_raster_crs(self, write_plots) -> None:
        path = write_plots([box(0, 0, 1, 1), box(1, 1, 2, 2)], ["SJER1", "SJER2"])
        plots = load_plot_geometries(path, "Plot_ID", UTM)

        assert plots["Plot_ID"].tolist() == ["SJER1", "SJER2"]
        assert plots.crs.to_epsg() == 32611

    def test_duplicate_ids_rejected(self, write_plots) -> None:
        path = write_plots([box(0, 0, 1, 1), box(1, 1, 2, 2)], ["SJER1", "SJER1"])
        with pytest.raises(InputValidationError, match="SJER1"):
            load_plot_geometries(path, "Plot_ID", UTM)

    def test_missing_id_column(self, write_plots) -> None:
        path = write_plots([box(0, 0, 1, 1)], ["SJER1"], id_column="plot")
        with pytest.raises(ColumnNotFoundError):
            load_plot_geometries(path, "Plot_ID", UTM)

    def test_other_crs_rejected_by_default(self, write_plots) -> None:
        path = write_plots([Point(-119.7, 37.1)], ["SJER1"], crs="EPSG:4326")
        with pytest.raises(CRSMismatchError):
            load_plot_geometries(path, "Plot_ID", UTM)

    def test_other_crs_reprojected_on_request(self, write_plots) -> None:
        path = write_plots([Point(-119.7, 37.1)], ["SJER1"], crs="EPSG:4326")
        plots = load_plot_geometries(path, "Plot_ID", UTM, reproject=True)

        assert plots.crs.to_epsg() == 32611
        # UTM eastings are in the hundreds of thousands of metres
        assert 100_000 < plots.geometry.iloc[0].x < 900_000

    def test_layer_without_crs_rejected(self, tmp_path: Path) -> None:
        # A shapefile written without a .prj reads back with no CRS
        path = tmp_path / "plots.shp"
        gpd.GeoDataFrame({"Plot_ID": ["SJER1"]}, geometry=[box(0, 0, 1, 1)]).to_file(path)

        with pytest.raises(MissingCRSError, match="plot layer has no CRS defined") as excinfo:
            load_plot_geometries(path, "Plot_ID", UTM, reproject=True)

        assert "Invalid or unrecognised" not in str(excinfo.value)

    def test_unsupported_extension(self, tmp_path: Path) -> None:
        path = tmp_path / "plots.csv"
        path.write_text("Plot_ID\nSJER1\n")
        with pytest.raises(InputValidationError, match="Unsupported file extension"):
            load_plot_geometries(path, "Plot_ID", UTM)


class TestBufferPlotCentroids:
    def test_points_become_discs(self) -> None:
        points = gpd.GeoDataFrame({"Plot_ID": ["P1"]}, geometry=[Point(10, 10)], crs=UTM)
        buffered = buffer_plot_centroids(points, 2.0, "Plot_ID")
        geom = buffered.geometry.iloc[0]

        assert geom.geom_type == "Polygon"
        assert geom.area == pytest.approx(3.1416 * 4, rel=0.02)
        assert points.geometry.iloc[0].geom_type == "Point"

    def test_polygons_untouched(self) -> None:
        plots = gpd.GeoDataFrame(
            {"Plot_ID": ["P1", "P2"]}, geometry=[box(0, 0, 1, 1), Point(5, 5)], crs=UTM,
        )
        buffered = buffer_plot_centroids(plots, 1.0)

        assert buffered.geometry.iloc[0].equals(box(0, 0, 1, 1))
        assert buffered.geometry.iloc[1].geom_type == "Polygon"

    def test_non_positive_radius_rejected(self) -> None:
        points = gpd.GeoDataFrame(geometry=[Point(0, 0)], crs=UTM)
        with pytest.raises(InputValidationError, match="positive"):
            buffer_plot_centroids(points, 0)

    def test_geographic_crs_rejected(self) -> None:
        points = gpd.GeoDataFrame(geometry=[Point(-119.7, 37.1)], crs="EPSG:4326")
        with pytest.raises(InputValidationError, match="projected"):
            buffer_plot_centroids(points, 20)
