"""
Tests — Zonal Extraction
==========================
Per-plot statistics of the canopy height raster, including plots that
cover no valid cell.
"""

from __future__ import annotations

import geopandas as gpd
import matplotlib.pyplot as plt
import numpy as np
import pytest
from shapely.geometry import Point, box

from canopy_height_comparison.zonal import (
    extract_zonal_statistic,
    sample_polygon,
    summarise_plot_distributions,
)
from shared.python.exceptions import CRSMismatchError, ColumnNotFoundError, InputValidationError

UTM = "EPSG:32611"
NAN = np.nan


def _plots(geoms, ids, crs=UTM) -> gpd.GeoDataFrame:
    return gpd.GeoDataFrame({"Plot_ID": ids}, geometry=geoms, crs=crs)


class TestSamplePolygon:
    def test_full_extent_returns_every_valid_cell(self, make_raster) -> None:
        chm = make_raster([[1, 2, 3], [4, NAN, 6], [7, 8, 9]])
        values = sample_polygon(chm, box(0, 0, 3, 3))
        assert sorted(values.tolist()) == [1, 2, 3, 4, 6, 7, 8, 9]

    def test_polygon_outside_raster_is_empty(self, make_raster) -> None:
        chm = make_raster(np.ones((3, 3)))
        assert sample_polygon(chm, box(10, 10, 12, 12)).size == 0

    def test_partial_overlap_is_clipped(self, make_raster) -> None:
        chm = make_raster([[1, 2, 3], [4, 5, 6], [7, 8, 9]])
        # Covers the right-hand column and extends past the raster edge
        values = sample_polygon(chm, box(2.2, 0.2, 5.0, 2.8))
        assert sorted(values.tolist()) == [3, 6, 9]

    def test_centre_rule_skips_cells_whose_centre_is_outside(self, make_raster) -> None:
        chm = make_raster([[1, 2, 3], [4, 5, 6], [7, 8, 9]])
        sliver = box(1.0, 1.0, 1.4, 1.4)

        assert sample_polygon(chm, sliver, all_touched=True).tolist() == [5]
        assert sample_polygon(chm, sliver, all_touched=False).size == 0

    def test_point_on_cell_corner_samples_a_cell(self, make_raster) -> None:
        chm = make_raster(np.full((3, 3), 5.0))
        values = sample_polygon(chm, Point(2.0, 1.0))
        assert values.size >= 1
        assert set(values.tolist()) == {5.0}

    def test_point_on_cell_edge_samples_a_cell(self, make_raster) -> None:
        chm = make_raster(np.full((3, 3), 5.0))
        values = sample_polygon(chm, Point(2.0, 1.5))
        assert values.size >= 1
        assert set(values.tolist()) == {5.0}


class TestExtractZonalStatistic:
    def test_single_valid_cell_returns_its_value(self, make_raster) -> None:
        chm = make_raster([[NAN, NAN, NAN], [NAN, 7.5, NAN], [NAN, NAN, NAN]])
        table = extract_zonal_statistic(chm, _plots([box(0, 0, 3, 3)], ["A"]), "Plot_ID")

        assert table.loc[0, "lidar_max_height"] == pytest.approx(7.5)
        assert table.loc[0, "n_cells"] == 1

    def test_no_valid_cells_returns_nan_not_zero(self, make_raster) -> None:
        chm = make_raster([[NAN, NAN, NAN], [NAN, NAN, NAN], [NAN, NAN, 4.0]])
        plots = _plots([box(0, 2, 1, 3), box(20, 20, 25, 25)], ["over_nodata", "outside"])

        table = extract_zonal_statistic(chm, plots, "Plot_ID")

        assert table["lidar_max_height"].isna().all()
        assert table["n_cells"].tolist() == [0, 0]
        assert table["plot_id"].tolist() == ["over_nodata", "outside"]

    def test_plot_centre_on_grid_corner_has_a_height(self, make_raster) -> None:
        chm = make_raster([[1, 2, 3], [4, 5, 6], [7, 8, 9]])
        table = extract_zonal_statistic(chm, _plots([Point(1.0, 2.0)], ["centre"]), "Plot_ID")

        assert table.loc[0, "lidar_max_height"] in {1.0, 2.0, 4.0, 5.0}
        assert table.loc[0, "n_cells"] >= 1

    def test_max_per_plot(self, make_raster) -> None:
        chm = make_raster([[1, 2, 3], [4, 5, 6], [7, 8, 9]])
        plots = _plots([box(0, 2, 3, 3), box(0, 0, 3, 1)], ["top", "bottom"])

        table = extract_zonal_statistic(chm, plots, "Plot_ID")

        assert table.set_index("plot_id")["lidar_max_height"].to_dict() == {"top": 3.0, "bottom": 9.0}

    def test_mean_statistic_column_name(self, make_raster) -> None:
        chm = make_raster([[1, 2, 3], [4, 5, 6], [7, 8, 9]])
        table = extract_zonal_statistic(chm, _plots([box(0, 0, 3, 3)], ["A"]), "Plot_ID", "mean")

        assert "lidar_mean_height" in table.columns
        assert table.loc[0, "lidar_mean_height"] == pytest.approx(5.0)

    def test_point_plot_samples_containing_cell(self, make_raster) -> None:
        chm = make_raster([[1, 2, 3], [4, 5, 6], [7, 8, 9]])
        table = extract_zonal_statistic(chm, _plots([Point(2.5, 0.5)], ["P"]), "Plot_ID")
        assert table.loc[0, "lidar_max_height"] == pytest.approx(9.0)

    def test_unknown_statistic_raises(self, make_raster) -> None:
        chm = make_raster(np.ones((3, 3)))
        with pytest.raises(InputValidationError, match="Unknown statistic"):
            extract_zonal_statistic(chm, _plots([box(0, 0, 3, 3)], ["A"]), "Plot_ID", "mode")

    def test_missing_id_column_raises(self, make_raster) -> None:
        chm = make_raster(np.ones((3, 3)))
        with pytest.raises(ColumnNotFoundError):
            extract_zonal_statistic(chm, _plots([box(0, 0, 3, 3)], ["A"]), "plot")

    def test_crs_mismatch_raises(self, make_raster) -> None:
        chm = make_raster(np.ones((3, 3)))
        plots = _plots([box(0, 0, 3, 3)], ["A"], crs="EPSG:32610")
        with pytest.raises(CRSMismatchError):
            extract_zonal_statistic(chm, plots, "Plot_ID")


class TestSummarisePlotDistributions:
    def test_returns_table_and_figure(self, make_raster) -> None:
        chm = make_raster([[1, 2, 3], [4, 5, 6], [7, 8, 9]])
        plots = _plots([box(0, 0, 3, 3), box(50, 50, 51, 51)], ["all", "away"])

        summary = summarise_plot_distributions(chm, plots, "Plot_ID")

        row = summary.table.set_index("plot_id").loc["all"]
        assert row["min"] == pytest.approx(1.0)
        assert row["median"] == pytest.approx(5.0)
        assert row["max"] == pytest.approx(9.0)
        assert row["n_cells"] == 9
        assert np.isnan(summary.table.set_index("plot_id").loc["away", "median"])
        assert summary.figure.axes
        plt.close(summary.figure)

    def test_separate_calls_do_not_share_state(self, make_raster) -> None:
        plots = _plots([box(0, 0, 3, 3)], ["A"])
        first = summarise_plot_distributions(make_raster(np.full((3, 3), 2.0)), plots, "Plot_ID")
        second = summarise_plot_distributions(make_raster(np.full((3, 3), 8.0)), plots, "Plot_ID")

        assert first.table.loc[0, "max"] == pytest.approx(2.0)
        assert second.table.loc[0, "max"] == pytest.approx(8.0)
        plt.close(first.figure)
        plt.close(second.figure)
