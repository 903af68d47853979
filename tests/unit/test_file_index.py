"""Unit tests for the uploaded file index."""

import pytest_check as check

from quantchat.models.schemas import UploadedFile
from quantchat.session.file_index import UNCLASSIFIED, UploadedFileIndex, classify


def _file(name: str, size: int = 100) -> UploadedFile:
    return UploadedFile(name=name, url=f"https://storage.test/{name}", size=size, type="text/csv")


class TestClassify:
    """Tests for grouping key derivation."""

    def test_dated_filename(self) -> None:
        check.equal(classify("2024_03_15_trades.csv"), ("csv", "2024", "03"))

    def test_undated_filename(self) -> None:
        check.equal(classify("notes.csv"), ("csv", UNCLASSIFIED, UNCLASSIFIED))

    def test_type_is_lowercased_final_suffix(self) -> None:
        check.equal(classify("2023_12_01_prices.backup.CSV")[0], "csv")

    def test_date_must_be_a_prefix(self) -> None:
        check.equal(classify("trades_2024_03_15.csv"), ("csv", UNCLASSIFIED, UNCLASSIFIED))

    def test_partial_date_prefix_is_unclassified(self) -> None:
        check.equal(classify("2024_03_trades.csv")[1:], (UNCLASSIFIED, UNCLASSIFIED))


class TestUploadedFileIndex:
    """Tests for additive insertion."""

    def test_dated_and_undated_uploads(self) -> None:
        index = UploadedFileIndex()
        dated = _file("2024_03_15_trades.csv")
        undated = _file("notes.csv")

        index.insert(dated)
        index.insert(undated)

        check.equal(index.get("csv", "2024", "03"), [dated])
        check.equal(index.get("csv", UNCLASSIFIED, UNCLASSIFIED), [undated])
        check.equal(len(index), 2)

    def test_insertion_appends_without_dedup(self) -> None:
        index = UploadedFileIndex()
        first = _file("2024_03_15_trades.csv", size=1)
        second = _file("2024_03_20_trades.csv", size=2)
        again = _file("2024_03_15_trades.csv", size=3)

        for f in (first, second, again):
            index.insert(f)

        check.equal(index.get("csv", "2024", "03"), [first, second, again])

    def test_display_ordering(self) -> None:
        index = UploadedFileIndex()
        for name in ["2023_01_02_a.csv", "2024_05_01_b.csv", "2024_11_09_c.csv", "d.xlsx"]:
            index.insert(_file(name))

        check.equal(index.file_types(), ["csv", "xlsx"])
        check.equal(index.years("csv"), ["2024", "2023"])
        check.equal(index.months("csv", "2024"), ["11", "05"])

    def test_files_flattens_everything(self) -> None:
        index = UploadedFileIndex()
        names = ["2024_01_01_a.csv", "b.csv", "2024_01_02_c.csv"]
        for name in names:
            index.insert(_file(name))

        check.equal(sorted(f.name for f in index.files()), sorted(names))

    def test_empty_index(self) -> None:
        index = UploadedFileIndex()

        check.equal(len(index), 0)
        check.equal(index.files(), [])
        check.equal(index.get("csv", "2024", "01"), [])
        check.equal(index.as_dict(), {})

    def test_as_dict_shape(self) -> None:
        index = UploadedFileIndex()
        index.insert(_file("2024_03_15_trades.csv"))

        tree = index.as_dict()
        check.equal(tree["csv"]["2024"]["03"][0]["name"], "2024_03_15_trades.csv")
