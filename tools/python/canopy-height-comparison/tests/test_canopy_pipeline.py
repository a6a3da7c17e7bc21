"""
Tests — Canopy Height Comparison Pipeline
===========================================
End-to-end runs of :class:`CanopyHeightComparison` and its CLI on
synthetic GeoTIFFs, GeoJSON plots and survey CSVs.
"""

from __future__ import annotations

from pathlib import Path

import matplotlib.pyplot as plt
import numpy as np
import pandas as pd
import pytest
from click.testing import CliRunner
from rasterio.transform import from_origin
from shapely.geometry import Point, box

from canopy_height_comparison.cli import main
from canopy_height_comparison.comparison import JoinDirection
from canopy_height_comparison.pipeline import CanopyComparisonConfig, CanopyHeightComparison
from shared.python.exceptions import AlignmentError, CRSMismatchError, InputValidationError


@pytest.fixture()
def study_area(write_raster, write_plots, write_survey) -> dict[str, Path]:
    """Constant 3×3 DSM (20 m) and DTM (5 m), one full-extent plot, one survey."""
    return {
        "dsm": write_raster("dsm", 20.0),
        "dtm": write_raster("dtm", 5.0),
        "plots": write_plots([box(0, 0, 3, 3)], ["SJER1"]),
        "survey": write_survey([("SJER1", 14.0), ("SJER1", 9.5), ("SJER9", 11.0)]),
    }


def _config(paths: dict[str, Path], **overrides) -> CanopyComparisonConfig:
    return CanopyComparisonConfig(
        surface_raster_path=paths["dsm"],
        terrain_raster_path=paths["dtm"],
        plot_geometry_path=paths["plots"],
        survey_csv_path=paths["survey"],
        **overrides,
    )


class TestCanopyPipelineHappyPath:
    def test_constant_rasters_give_fifteen_metres(self, study_area) -> None:
        result = CanopyHeightComparison(_config(study_area)).run()

        assert np.all(result.canopy_height.data == pytest.approx(15.0))
        assert result.plot_heights.loc[0, "lidar_max_height"] == pytest.approx(15.0)
        plt.close(result.comparison.figure)

    def test_lidar_join_keeps_only_extracted_plots(self, study_area) -> None:
        result = CanopyHeightComparison(_config(study_area)).run()
        table = result.comparison.table

        assert table["plot_id"].tolist() == ["SJER1"]
        assert table.loc[0, "survey_max_height"] == pytest.approx(14.0)
        assert result.comparison.fit is None
        plt.close(result.comparison.figure)

    def test_survey_join_keeps_survey_only_plot(self, study_area) -> None:
        result = CanopyHeightComparison(_config(study_area, join=JoinDirection.SURVEY)).run()
        table = result.comparison.table.set_index("plot_id")

        assert set(table.index) == {"SJER1", "SJER9"}
        assert np.isnan(table.loc["SJER9", "lidar_max_height"])
        plt.close(result.comparison.figure)

    def test_run_result_is_also_exposed_as_property(self, study_area) -> None:
        tool = CanopyHeightComparison(_config(study_area))
        result = tool.run()
        assert tool.result is result
        plt.close(result.comparison.figure)

    def test_outputs_written_when_configured(self, study_area, tmp_path: Path) -> None:
        figure = tmp_path / "out" / "scatter.png"
        table = tmp_path / "out" / "plots.csv"

        result = CanopyHeightComparison(
            _config(study_area, output_figure_path=figure, output_table_path=table)
        ).run()

        assert figure.exists()
        written = pd.read_csv(table)
        assert written["plot_id"].tolist() == ["SJER1"]
        plt.close(result.comparison.figure)

    def test_point_plots_are_buffered(self, write_raster, write_plots, write_survey) -> None:
        paths = {
            "dsm": write_raster("dsm", [[30, 30, 30], [30, 42, 30], [30, 30, 30]]),
            "dtm": write_raster("dtm", 10.0),
            "plots": write_plots([Point(1.5, 1.5)], ["P1"]),
            "survey": write_survey([("P1", 31.0)]),
        }
        result = CanopyHeightComparison(_config(paths, plot_buffer_radius=1.2, statistic="min")).run()

        assert result.plot_heights.loc[0, "lidar_min_height"] == pytest.approx(20.0)
        assert result.plot_heights.loc[0, "n_cells"] == 9
        plt.close(result.comparison.figure)

    def test_regression_over_several_plots(self, write_raster, write_plots, write_survey) -> None:
        paths = {
            "dsm": write_raster("dsm", [[12, 12, 12], [18, 18, 18], [24, 24, 24]]),
            "dtm": write_raster("dtm", 2.0),
            "plots": write_plots(
                [box(0, 2, 3, 3), box(0, 1, 3, 2), box(0, 0, 3, 1)], ["top", "mid", "low"],
            ),
            "survey": write_survey([("top", 10.0), ("mid", 16.0), ("low", 22.0)]),
        }
        result = CanopyHeightComparison(_config(paths)).run()
        fit = result.comparison.fit

        assert fit is not None
        assert fit.slope == pytest.approx(1.0)
        assert fit.intercept == pytest.approx(0.0, abs=1e-6)
        assert fit.n == 3
        plt.close(result.comparison.figure)


class TestCanopyPipelineErrors:
    def test_misaligned_rasters_fail_fast(self, write_raster, study_area) -> None:
        study_area["dtm"] = write_raster("dtm_coarse", 5.0, transform=from_origin(0, 3, 2, 2))
        with pytest.raises(AlignmentError):
            CanopyHeightComparison(_config(study_area)).run()

    def test_plot_crs_mismatch_fails(self, write_plots, study_area) -> None:
        study_area["plots"] = write_plots(
            [box(-119.7, 37.1, -119.6, 37.2)], ["SJER1"], crs="EPSG:4326", name="plots_wgs84",
        )
        with pytest.raises(CRSMismatchError):
            CanopyHeightComparison(_config(study_area)).run()

    def test_duplicate_plot_ids_fail(self, write_plots, study_area) -> None:
        study_area["plots"] = write_plots(
            [box(0, 0, 1, 1), box(1, 1, 2, 2)], ["SJER1", "SJER1"], name="dupes",
        )
        with pytest.raises(InputValidationError, match="unique"):
            CanopyHeightComparison(_config(study_area)).run()

    def test_missing_survey_file_fails(self, study_area, tmp_path: Path) -> None:
        study_area["survey"] = tmp_path / "missing.csv"
        with pytest.raises(InputValidationError, match="not found"):
            CanopyHeightComparison(_config(study_area)).run()

    def test_unknown_statistic_fails_validation(self, study_area) -> None:
        with pytest.raises(InputValidationError, match="Unknown statistic"):
            CanopyHeightComparison(_config(study_area, statistic="mode")).run()


class TestCanopyCli:
    def test_cli_prints_summary(self, study_area, tmp_path: Path) -> None:
        figure = tmp_path / "cli.png"
        result = CliRunner().invoke(main, [
            "--dsm", str(study_area["dsm"]),
            "--dtm", str(study_area["dtm"]),
            "--plots", str(study_area["plots"]),
            "--survey", str(study_area["survey"]),
            "--figure", str(figure),
        ])

        assert result.exit_code == 0, result.output
        assert "1 plot(s) joined" in result.output
        assert figure.exists()
        plt.close("all")

    def test_cli_reports_errors(self, write_raster, study_area) -> None:
        coarse = write_raster("dtm_coarse", 5.0, transform=from_origin(0, 3, 2, 2))
        result = CliRunner().invoke(main, [
            "--dsm", str(study_area["dsm"]),
            "--dtm", str(coarse),
            "--plots", str(study_area["plots"]),
            "--survey", str(study_area["survey"]),
        ])

        assert result.exit_code == 1
        assert "not aligned" in result.output
