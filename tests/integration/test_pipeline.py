"""
Integration tests for the yearly extraction loop and CSV export.
"""

import io
import json

import geopandas as gpd
import pandas as pd
import pytest
from rich.console import Console
from shapely.geometry import box

from climate_zonal import pipeline
from climate_zonal.archive import ArchiveError
from climate_zonal.boundaries import BoundaryError
from climate_zonal.pipeline import create_processor, run_extraction
from climate_zonal.processors import ExceedanceProcessor, ZonalMeanProcessor


def _read(path):
    return pd.read_csv(path, dtype={"GEOID": str, "date_ymd": str})


class TestZonalMeanExtraction:
    """One CSV per year with the selector columns."""

    @pytest.mark.integration
    def test_one_file_per_year(self, make_extraction, tmp_path):
        config = make_extraction(start_year=2019, end_year=2021)
        records = run_extraction(config, output_dir=tmp_path)

        assert [r.year for r in records] == [2019, 2020, 2021]
        assert [r.frames for r in records] == [0, 2, 3]
        assert [r.rows for r in records] == [0, 1, 3]

        folder = tmp_path / "TEST_EXPORT"
        assert sorted(p.name for p in folder.glob("*.csv")) == [
            "TEST_4000m_2019.csv", "TEST_4000m_2020.csv", "TEST_4000m_2021.csv",
        ]

        df = _read(folder / "TEST_4000m_2021.csv")
        assert list(df.columns) == ["GEOID", "date_ymd", "ppt", "tmean", "tmax", "tmin", "tdmean"]
        assert list(df["GEOID"]) == ["24031"] * 3
        assert list(df["date_ymd"]) == ["20210101", "20210102", "20210103"]
        assert list(df["ppt"]) == pytest.approx([207.0, 307.0, 407.0])

    @pytest.mark.integration
    def test_empty_year_is_header_only(self, make_extraction, tmp_path, caplog):
        config = make_extraction(start_year=2019, end_year=2019)
        with caplog.at_level("WARNING", logger="climate_zonal.pipeline"):
            records = run_extraction(config, output_dir=tmp_path)
        content = records[0].path.read_text().strip()
        assert content == "GEOID,date_ymd,ppt,tmean,tmax,tmin,tdmean"
        assert "No data for 2019" in caplog.text

    @pytest.mark.integration
    def test_boundary_outside_grid_is_header_only(self, make_extraction, tmp_path):
        far = tmp_path / "far.gpkg"
        gpd.GeoDataFrame({"GEOID": ["41001"]}, geometry=[box(-120, 44, -119, 45)], crs="EPSG:4326").to_file(far)
        config = make_extraction(boundary={"path": far})
        records = run_extraction(config, years=[2021], output_dir=tmp_path)
        assert records[0].frames == 3
        assert records[0].rows == 0
        assert records[0].path.read_text().strip() == "GEOID,date_ymd,ppt,tmean,tmax,tmin,tdmean"

    @pytest.mark.integration
    def test_progress_is_reported(self, make_extraction, tmp_path, monkeypatch):
        buffer = io.StringIO()
        monkeypatch.setattr(pipeline, "console", Console(file=buffer, force_terminal=True, width=120))
        run_extraction(make_extraction(), output_dir=tmp_path)
        assert "Processing test_extraction" in buffer.getvalue()

    @pytest.mark.integration
    def test_explicit_years(self, make_extraction, tmp_path):
        records = run_extraction(make_extraction(), years=[2021], output_dir=tmp_path)
        assert len(records) == 1
        assert records[0].path.name == "TEST_4000m_2021.csv"

    @pytest.mark.integration
    def test_parallel_years_match_serial(self, make_extraction, tmp_path):
        config = make_extraction(
            boundary={"path": make_extraction().boundary.path, "filters": {"STATEFP": "24"}},
        )
        serial = run_extraction(config, output_dir=tmp_path / "serial")
        parallel = run_extraction(config, workers=2, output_dir=tmp_path / "parallel")

        assert [r.year for r in parallel] == [2020, 2021]
        for a, b in zip(serial, parallel):
            pd.testing.assert_frame_equal(_read(a.path), _read(b.path))

    @pytest.mark.integration
    def test_zarr_archive_and_metadata(self, make_extraction, zarr_archive, tmp_path):
        config = make_extraction(
            archive={"path": zarr_archive, "bands": ["ppt"]},
            export={"folder": "ZARR", "filename_base": "Z_", "write_metadata": True},
        )
        records = run_extraction(config, years=[2021], output_dir=tmp_path)
        meta = json.loads(records[0].path.with_suffix(".json").read_text())
        assert meta["extraction"] == "test_extraction"
        assert meta["year"] == 2021
        assert meta["frames"] == 3
        assert meta["rows"] == 3
        assert meta["bands"] == ["ppt"]

    @pytest.mark.integration
    def test_prism_directory_archive(self, make_extraction, prism_directory, tmp_path):
        config = make_extraction(archive={"path": prism_directory, "bands": ["ppt", "tmax"]})
        records = run_extraction(config, years=[2021], output_dir=tmp_path)
        df = _read(records[0].path)
        assert list(df.columns) == ["GEOID", "date_ymd", "ppt", "tmax"]
        assert list(df["ppt"]) == pytest.approx([207.0, 307.0, 407.0])
        assert list(df["tmax"]) == pytest.approx([20.0, 30.0, 26.0])

    @pytest.mark.integration
    def test_clip_strategy(self, make_extraction, tmp_path):
        config = make_extraction(strategy="clip", archive={"path": make_extraction().archive.path, "bands": ["ppt"]})
        records = run_extraction(config, years=[2021], output_dir=tmp_path)
        assert list(_read(records[0].path)["ppt"]) == pytest.approx([207.0, 307.0, 407.0])


class TestExceedanceExtraction:
    """Single table of yearly exceedance counts."""

    def _config(self, make_extraction, **overrides):
        data = dict(
            name="heat",
            mode="exceedance",
            archive={"path": make_extraction().archive.path, "bands": ["tmax"]},
            export={"folder": "HEAT", "filename_base": "MontgomeryCounty_DaysAbove80F_CountyLevel"},
            threshold={"band": "tmax", "value": 80.0, "units": "F"},
            date_format="YYYY-MM-dd",
            start_year=2019,
            end_year=2021,
        )
        data.update(overrides)
        return make_extraction(**data)

    @pytest.mark.integration
    def test_yearly_counts(self, make_extraction, tmp_path):
        records = run_extraction(self._config(make_extraction), output_dir=tmp_path)
        assert len(records) == 1
        assert records[0].path.name == "MontgomeryCounty_DaysAbove80F_CountyLevel.csv"
        assert records[0].frames == 5

        df = pd.read_csv(records[0].path)
        assert list(df.columns) == ["year", "daysAbove80F"]
        assert df.to_dict("list") == {"year": [2019, 2020, 2021], "daysAbove80F": [0, 1, 1]}

    @pytest.mark.integration
    def test_daily_table(self, make_extraction, tmp_path):
        records = run_extraction(self._config(make_extraction, include_daily=True), output_dir=tmp_path)
        assert len(records) == 2
        daily = pd.read_csv(records[1].path)
        assert records[1].path.name.endswith("_daily.csv")
        assert list(daily["date"]) == ["2020-12-30", "2020-12-31", "2021-01-01", "2021-01-02", "2021-01-03"]
        assert list(daily["exceedance"]) == [0, 1, 0, 1, 0]

    @pytest.mark.integration
    def test_region_covers_all_filtered_features(self, make_extraction, tmp_path):
        config = self._config(
            make_extraction,
            boundary={"path": make_extraction().boundary.path, "filters": {"STATEFP": "24"}},
            threshold={"band": "tmax", "value": 25.0, "units": "C", "column": "hot_days"},
        )
        records = run_extraction(config, output_dir=tmp_path, workers=2)
        df = pd.read_csv(records[0].path)
        assert list(df.columns) == ["year", "hot_days"]
        assert list(df["hot_days"]) == [0, 1, 2]


class TestErrors:

    def test_create_processor(self, make_extraction):
        assert isinstance(create_processor(make_extraction()), ZonalMeanProcessor)
        heat = make_extraction(mode="exceedance", threshold={"value": 80.0})
        assert isinstance(create_processor(heat), ExceedanceProcessor)

    def test_missing_archive(self, make_extraction, tmp_path):
        config = make_extraction(archive={"path": tmp_path / "missing.zarr"})
        with pytest.raises(ArchiveError):
            run_extraction(config, output_dir=tmp_path)

    def test_missing_band(self, make_extraction, tmp_path):
        config = make_extraction(archive={"path": make_extraction().archive.path, "bands": ["snow"]})
        with pytest.raises(ArchiveError):
            run_extraction(config, output_dir=tmp_path)

    def test_missing_boundaries(self, make_extraction, tmp_path):
        config = make_extraction(boundary={"path": tmp_path / "missing.shp"})
        with pytest.raises(BoundaryError):
            run_extraction(config, output_dir=tmp_path)

    def test_no_years(self, make_extraction, tmp_path):
        with pytest.raises(ValueError):
            run_extraction(make_extraction(), years=[], output_dir=tmp_path)
