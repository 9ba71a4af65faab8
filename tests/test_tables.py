"""Tests for record table I/O."""
import io
import json

import pytest

from mdbulk.editor.tables import load_csv_table, load_records, parse_records, write_records
from mdbulk.errors import MalformedInputError

ROWS = [
    {"path": "docs/a.md", "topics": ["a", "b"], "products": []},
    {"path": "docs/b.md", "topics": ["c"], "products": ["Word"]},
]


class TestWriteRecords:
    def test_tab_delimited(self):
        out = io.StringIO()
        write_records(ROWS, out)
        assert out.getvalue() == (
            "path\ttopics\tproducts\n"
            '"docs/a.md"\t"a, b"\t""\n'
            '"docs/b.md"\t"c"\t"Word"\n'
        )

    def test_json(self):
        out = io.StringIO()
        write_records(ROWS, out, as_json=True)
        assert json.loads(out.getvalue()) == ROWS

    def test_empty(self):
        out = io.StringIO()
        write_records([], out)
        assert out.getvalue() == ""

    def test_written_table_parses_back(self):
        out = io.StringIO()
        write_records(ROWS, out)
        assert parse_records(out.getvalue()) == [
            {"path": "docs/a.md", "topics": "a, b", "products": ""},
            {"path": "docs/b.md", "topics": "c", "products": "Word"},
        ]


class TestParseRecords:
    def test_quoted_cells(self):
        text = 'path\ttopics\n"a.md"\t"a, b"\n'
        assert parse_records(text) == [{"path": "a.md", "topics": "a, b"}]

    def test_plain_cells_and_missing_cells(self):
        text = "path\ttopics\tproducts\na.md\tx, y\n\n"
        assert parse_records(text) == [{"path": "a.md", "topics": "x, y", "products": ""}]

    def test_windows_line_endings(self):
        text = 'path\ttopics\r\n"a.md"\t"x"\r\n'
        assert parse_records(text) == [{"path": "a.md", "topics": "x"}]

    def test_json_array(self):
        text = '[{"path": "a.md", "topics": ["x"]}]'
        assert parse_records(text) == [{"path": "a.md", "topics": ["x"]}]

    def test_header_only(self):
        assert parse_records("path\ttopics\n") == []

    @pytest.mark.parametrize(
        "text",
        [
            'path\ttopics\n"a.md\t"x"\n',
            'path\ttopics\n"a.md"\t"1" "2"\n',
            "[1, 2]",
            "[{broken",
        ],
    )
    def test_malformed(self, text):
        with pytest.raises(MalformedInputError):
            parse_records(text)

    def test_escaped_quotes_in_cell(self):
        text = 'path\ttopics\n"a.md"\t"say \\"hi\\""\n'
        assert parse_records(text) == [{"path": "a.md", "topics": 'say "hi"'}]


class TestLoad:
    def test_load_csv(self, tmp_path):
        path = tmp_path / "table.csv"
        path.write_text('path,topics\na.md,"x, y"\n,\n', encoding="utf-8")
        assert load_records(path) == [{"path": "a.md", "topics": "x, y"}]

    def test_load_tab_delimited(self, tmp_path):
        path = tmp_path / "table.tsv"
        path.write_text('path\ttopics\n"a.md"\t"x"\n', encoding="utf-8")
        assert load_records(path) == [{"path": "a.md", "topics": "x"}]

    def test_load_not_utf8(self, tmp_path):
        path = tmp_path / "table.tsv"
        path.write_bytes(b"path\ttopics\n\xff\xfe\n")
        with pytest.raises(MalformedInputError, match="UTF-8"):
            load_records(path)

    def test_csv_table_short_rows(self, tmp_path):
        path = tmp_path / "table.csv"
        path.write_text("path,topics,products\na.md,x\n", encoding="utf-8")
        assert load_csv_table(path) == [{"path": "a.md", "topics": "x", "products": ""}]

    def test_csv_table_rejects_other_types(self, tmp_path):
        path = tmp_path / "table.txt"
        path.write_text("path,topics\n", encoding="utf-8")
        with pytest.raises(MalformedInputError, match="Only CSV files supported"):
            load_csv_table(path)
