"""Tests for index table reading and writing."""

from __future__ import annotations

import os
from pathlib import Path

import pytest

from refsheet.exceptions import ReconciliationError, ReconciliationErrorKind
from refsheet.indexer.extractor import DeclKind, IndexEntry
from refsheet.indexer.table import read_table, write_table


class TestWriteTable:
    def test_header_and_rows(self, tmp_path: Path) -> None:
        out = tmp_path / "spreadsheets" / "project_references.csv"
        entries = [
            IndexEntry("./src/main.rs", DeclKind.FUNCTION, "main"),
            IndexEntry("./src/w.rs", DeclKind.IMPL_METHOD, "Widget::draw"),
        ]

        count = write_table(out, entries)

        assert count == 2
        assert out.read_text(encoding="utf-8") == (
            "File,Item Type,Name\n"
            "./src/main.rs,Function,main\n"
            "./src/w.rs,ImplMethod,Widget::draw\n"
        )

    def test_quotes_fields_containing_delimiter(self, tmp_path: Path) -> None:
        out = tmp_path / "index.csv"
        write_table(out, [IndexEntry("dir,with,commas/a.rs", DeclKind.STRUCT, "A")])

        lines = out.read_text(encoding="utf-8").splitlines()
        assert lines[1] == '"dir,with,commas/a.rs",Struct,A'
        assert list(read_table(out)) == [IndexEntry("dir,with,commas/a.rs", DeclKind.STRUCT, "A")]

    def test_replaces_previous_content(self, tmp_path: Path) -> None:
        out = tmp_path / "index.csv"
        write_table(out, [IndexEntry("a.rs", DeclKind.FUNCTION, "old")])
        write_table(out, [IndexEntry("a.rs", DeclKind.FUNCTION, "new")])

        assert [e.name for e in read_table(out)] == ["new"]
        assert os.listdir(tmp_path) == ["index.csv"]

    def test_failed_rename_keeps_previous_table(
        self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        out = tmp_path / "index.csv"
        write_table(out, [IndexEntry("a.rs", DeclKind.FUNCTION, "keep")])
        before = out.read_bytes()

        def fail_replace(src: str, dst: Path) -> None:
            raise OSError("disk full")

        monkeypatch.setattr(os, "replace", fail_replace)
        with pytest.raises(ReconciliationError) as info:
            write_table(out, [IndexEntry("a.rs", DeclKind.FUNCTION, "lost")])

        assert info.value.kind is ReconciliationErrorKind.WRITE_FAILED
        assert out.read_bytes() == before
        assert os.listdir(tmp_path) == ["index.csv"]

    def test_unavailable_output_directory(self, tmp_path: Path) -> None:
        blocker = tmp_path / "blocker"
        blocker.write_text("not a directory", encoding="utf-8")

        with pytest.raises(ReconciliationError) as info:
            write_table(blocker / "index.csv", [])
        assert info.value.kind is ReconciliationErrorKind.OUTPUT_UNAVAILABLE


class TestReadTable:
    def _write(self, tmp_path: Path, text: str) -> Path:
        path = tmp_path / "index.csv"
        path.write_text(text, encoding="utf-8")
        return path

    def test_reads_rows(self, tmp_path: Path) -> None:
        path = self._write(tmp_path, "File,Item Type,Name\na.rs,Enum,Mode\n")
        assert list(read_table(path)) == [IndexEntry("a.rs", DeclKind.ENUM, "Mode")]

    def test_accepts_legacy_kind_names(self, tmp_path: Path) -> None:
        path = self._write(
            tmp_path, "File,Item Type,Name\na.rs,ImplFn,W::f\na.rs,TraitFn,T::g\n"
        )
        assert [e.kind for e in read_table(path)] == [
            DeclKind.IMPL_METHOD,
            DeclKind.TRAIT_METHOD,
        ]

    @pytest.mark.parametrize(
        "text",
        [
            "",
            "Path,Kind,Name\na.rs,Function,f\n",
            "File,Item Type,Name\na.rs,Function\n",
            "File,Item Type,Name\na.rs,Module,m\n",
        ],
    )
    def test_corrupt_tables(self, tmp_path: Path, text: str) -> None:
        path = self._write(tmp_path, text)
        with pytest.raises(ReconciliationError) as info:
            list(read_table(path))
        assert info.value.kind is ReconciliationErrorKind.CORRUPT_INDEX

    def test_undecodable_bytes(self, tmp_path: Path) -> None:
        path = tmp_path / "index.csv"
        path.write_bytes(b"File,Item Type,Name\n\xff\xfe,Function,f\n")
        with pytest.raises(ReconciliationError) as info:
            list(read_table(path))
        assert info.value.kind is ReconciliationErrorKind.CORRUPT_INDEX


class TestUnencodableRows:
    def test_surrogate_in_row_fails_cleanly(self, tmp_path: Path) -> None:
        out = tmp_path / "index.csv"
        write_table(out, [IndexEntry("a.rs", DeclKind.FUNCTION, "keep")])
        before = out.read_bytes()

        with pytest.raises(ReconciliationError) as info:
            write_table(out, [IndexEntry("caf\udce9/a.rs", DeclKind.FUNCTION, "f")])

        assert info.value.kind is ReconciliationErrorKind.WRITE_FAILED
        assert out.read_bytes() == before
        assert os.listdir(tmp_path) == ["index.csv"]
