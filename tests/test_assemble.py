"""
Tests for downloading and assembling data files.
"""

import tempfile
from pathlib import Path

import pandas as pd
import pytest

from crimedata.data.models import DataType
from crimedata.exceptions import AssemblyFailedError, DownloadFailedError
from crimedata.pipeline.assemble import assemble, fetch, read_file

from conftest import FakeOSFClient, make_rows, rds_bytes


class TestFetch:
    """Tests for fetch()."""

    def test_rows_from_all_files(self, catalog, fake_client):
        entries = catalog.select(DataType.CORE, {2018, 2019}, {"chicago"})
        result = fetch(entries, quiet=True, client=fake_client)
        assert len(result) == 5
        assert set(result["city_name"]) == {"Chicago"}

    def test_sorted_by_uid(self, catalog, fake_client):
        entries = catalog.select(DataType.CORE, {2018, 2019}, {"chicago", "detroit"})
        result = fetch(entries, quiet=True, client=fake_client)
        assert list(result["uid"]) == sorted(result["uid"])
        assert list(result.index) == list(range(len(result)))

    def test_sort_independent_of_file_order(self, catalog, fake_client):
        entries = catalog.select(DataType.CORE, {2018, 2019}, {"chicago", "detroit"})
        forward = fetch(entries, quiet=True, client=fake_client)
        backward = fetch(list(reversed(entries)), quiet=True, client=fake_client)
        pd.testing.assert_frame_equal(forward, backward)

    def test_reads_gzip(self, catalog, fake_client):
        entries = catalog.select(DataType.CORE, {2018}, {"detroit"})
        result = fetch(entries, quiet=True, client=fake_client)
        assert list(result["uid"]) == [3, 7]

    def test_download_failure(self, catalog):
        client = FakeOSFClient(fail_on={"crime_open_database_core_chicago_2019.csv"})
        entries = catalog.select(DataType.CORE, {2018, 2019}, {"chicago"})
        with pytest.raises(DownloadFailedError) as exc_info:
            fetch(entries, quiet=True, client=client)
        assert exc_info.value.details["file"] == "crime_open_database_core_chicago_2019.csv"

    def test_staging_cleaned_up_on_failure(self, catalog, monkeypatch, tmp_path):
        monkeypatch.setattr(tempfile, "tempdir", str(tmp_path))
        client = FakeOSFClient(fail_on={"crime_open_database_core_chicago_2019.csv"})
        entries = catalog.select(DataType.CORE, {2018, 2019}, {"chicago"})
        with pytest.raises(DownloadFailedError):
            fetch(entries, quiet=True, client=client)
        assert list(tmp_path.glob("crimedata_staging_*")) == []

    def test_staging_cleaned_up_on_success(self, catalog, fake_client, monkeypatch, tmp_path):
        monkeypatch.setattr(tempfile, "tempdir", str(tmp_path))
        fetch(catalog.select(DataType.SAMPLE, {2019}, {"chicago"}), quiet=True, client=fake_client)
        assert list(tmp_path.glob("crimedata_staging_*")) == []

    def test_unparseable_file(self, catalog):
        client = FakeOSFClient()
        client.files["crime_open_database_core_detroit_2018.csv.gz"] = b"not gzip at all"
        entries = catalog.select(DataType.CORE, {2018}, {"detroit"})
        with pytest.raises(AssemblyFailedError):
            fetch(entries, quiet=True, client=client)

    def test_mixed_rds_and_csv(self, fake_client, catalog):
        entries = catalog.select(DataType.SAMPLE, {2018, 2019}, {"chicago", "new york"})
        result = fetch(entries, quiet=True, client=fake_client)
        assert list(result["uid"]) == [2, 40, 99]

    def test_empty_selection(self, fake_client):
        with pytest.raises(AssemblyFailedError):
            fetch([], quiet=True, client=fake_client)


class TestReadFile:
    """Tests for single-file parsing."""

    def test_missing_uid_column(self, tmp_path):
        path = tmp_path / "x.csv"
        path.write_text("a,b\n1,2\n")
        with pytest.raises(AssemblyFailedError) as exc_info:
            read_file(path)
        assert "uid" in str(exc_info.value)

    def test_empty_file(self, tmp_path):
        path = tmp_path / "x.csv"
        path.write_text("")
        with pytest.raises(AssemblyFailedError):
            read_file(path)

    def test_rds_file(self, tmp_path):
        path = tmp_path / "crime_open_database_core_chicago_2019.Rds"
        path.write_bytes(rds_bytes(make_rows("Chicago", 2019, [30, 10, 20])))
        table = read_file(path)
        assert list(table["uid"]) == [30, 10, 20]
        assert list(table["city_name"].astype(str)) == ["Chicago"] * 3

    def test_corrupt_rds_file(self, tmp_path):
        path = tmp_path / "x.Rds"
        path.write_bytes(b"not an R file")
        with pytest.raises(AssemblyFailedError):
            read_file(path)


class TestAssemble:
    """Tests for row-union and sorting."""

    def test_union_and_sort(self):
        result = assemble([make_rows("A", 2019, [5, 1]), make_rows("B", 2019, [3])])
        assert list(result["uid"]) == [1, 3, 5]

    def test_nothing_to_assemble(self):
        with pytest.raises(AssemblyFailedError):
            assemble([])
