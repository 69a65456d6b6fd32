"""
Unit tests for the CSV upload parser.

Run: pytest tests/unit/test_csv_parser.py -v
"""

import csv

import pytest

from parsers.csv_parser import (
    parse_csv,
    detect_delimiter,
    detect_encoding,
    column_statistics,
)
from exceptions import MalformedInputError
from tests.factories import CsvFactory


class _LineCounter:
    """Wraps a row iterator with the line_num attribute of csv.reader."""

    def __init__(self, rows):
        self._rows = rows
        self.line_num = 0

    def __iter__(self):
        return self

    def __next__(self):
        cells = next(self._rows)
        self.line_num += 1
        return cells


# ===================
# DELIMITER DETECTION TESTS
# ===================

class TestDetectDelimiter:
    """Tests for detect_delimiter()"""

    def test_semicolon_wins(self):
        """Semicolon exports from the legacy admin are detected."""
        assert detect_delimiter("Jméno;IČ;Město\nA;1;B\n") == ";"

    def test_tab_and_pipe(self):
        """Tab and pipe are candidates too."""
        assert detect_delimiter("a\tb\tc\n1\t2\t3") == "\t"
        assert detect_delimiter("a|b|c\n1|2|3") == "|"

    def test_comma_in_values_does_not_beat_semicolon(self):
        """Highest count over the sample wins."""
        text = "Název;Cena;Popis\nA;5 000,00;x\nB;2 500,00;y\n"
        assert detect_delimiter(text) == ";"

    def test_tie_falls_back_to_comma(self):
        """Equal counts give the default comma."""
        assert detect_delimiter("a;b,c") == ","

    def test_empty_text_falls_back_to_comma(self):
        """No candidates at all gives the default comma."""
        assert detect_delimiter("") == ","
        assert detect_delimiter("single") == ","


# ===================
# ENCODING DETECTION TESTS
# ===================

class TestDetectEncoding:
    """Tests for detect_encoding()"""

    def test_plain_utf8(self):
        """UTF-8 with Czech letters stays UTF-8."""
        assert detect_encoding("Město;PSČ".encode("utf-8")) == "utf-8"

    def test_utf8_bom(self):
        """UTF-8 BOM is honored."""
        raw = b"\xef\xbb\xbf" + "Jméno".encode("utf-8")
        assert detect_encoding(raw) == "utf-8-sig"

    def test_utf16_bom(self):
        """UTF-16 BOMs are honored."""
        assert detect_encoding("Jméno".encode("utf-16")) == "utf-16"

    def test_windows_1250(self):
        """Legacy 8-bit Czech export is detected."""
        raw = "Město;PSČ;Příjmení\nÚvaly;25082;Nováková\n".encode("cp1250")
        assert detect_encoding(raw) == "cp1250"

    def test_ascii_only(self):
        """Pure ASCII is read as UTF-8."""
        assert detect_encoding(b"name,email\n") == "utf-8"


# ===================
# PARSE TESTS
# ===================

class TestParseCsv:
    """Tests for parse_csv()"""

    def test_parses_header_and_rows(self):
        """First row is the header; values are trimmed strings."""
        raw = CsvFactory.build(["Jméno", "IČ"], [["ZŠ Úvaly", " 12345678 "], ["Divadlo", "87654321"]])

        result = parse_csv(raw)

        assert result.columns == ["Jméno", "IČ"]
        assert result.row_count == 2
        assert result.rows[0] == {"Jméno": "ZŠ Úvaly", "IČ": "12345678"}
        assert result.delimiter == ";"
        assert result.encoding == "utf-8"
        assert result.diagnostics == []

    def test_parses_cp1250_export(self):
        """Windows-1250 bytes decode to proper Czech text."""
        raw = CsvFactory.build(["Město", "PSČ"], [["Úvaly", "250 82"]], encoding="cp1250")

        result = parse_csv(raw)

        assert result.encoding == "cp1250"
        assert result.columns == ["Město", "PSČ"]
        assert result.rows[0]["Město"] == "Úvaly"

    def test_bom_is_not_part_of_first_header(self):
        """BOM never leaks into the first column name."""
        raw = CsvFactory.build(["Jméno", "IČ"], [["A", "1"]], bom=True)

        result = parse_csv(raw)

        assert result.columns[0] == "Jméno"

    def test_quoted_values_keep_delimiters(self):
        """Quoted cells may contain the delimiter and newlines."""
        raw = 'Název,Popis\n"Šípková Růženka","Pohádka, pro děti\nod 3 let"\n'.encode("utf-8")

        result = parse_csv(raw)

        assert result.delimiter == ","
        assert result.rows[0]["Popis"] == "Pohádka, pro děti\nod 3 let"

    def test_blank_lines_are_skipped(self):
        """Blank lines and rows of empty cells are ignored."""
        raw = "\n\nA;B\n\n1;2\n;\n3;4\n".encode("utf-8")

        result = parse_csv(raw)

        assert result.columns == ["A", "B"]
        assert result.rows == [{"A": "1", "B": "2"}, {"A": "3", "B": "4"}]

    def test_short_row_is_padded(self):
        """Missing cells become empty strings with a warning."""
        raw = "A;B;C\n1;2\n".encode("utf-8")

        result = parse_csv(raw)

        assert result.rows[0] == {"A": "1", "B": "2", "C": ""}
        assert len(result.diagnostics) == 1
        assert result.diagnostics[0].line == 2
        assert "expected 3" in result.diagnostics[0].message

    def test_long_row_is_truncated(self):
        """Extra cells are dropped with a warning."""
        raw = "A;B\n1;2;3\n".encode("utf-8")

        result = parse_csv(raw)

        assert result.rows[0] == {"A": "1", "B": "2"}
        assert "extra cells ignored" in result.diagnostics[0].message

    def test_duplicate_header_keeps_first(self):
        """First occurrence of a duplicate header keeps its column."""
        raw = "A;A;B\n1;2;3\n".encode("utf-8")

        result = parse_csv(raw)

        assert result.columns == ["A", "B"]
        assert result.rows[0] == {"A": "1", "B": "3"}
        assert any("Duplicate header" in d.message for d in result.diagnostics)

    def test_empty_header_cell_gets_positional_name(self):
        """Unnamed columns are still addressable."""
        raw = "A;;C\n1;2;3\n".encode("utf-8")

        result = parse_csv(raw)

        assert result.columns == ["A", "column_2", "C"]
        assert result.rows[0]["column_2"] == "2"

    def test_max_rows_truncates_preview(self):
        """max_rows caps the parse and flags truncation."""
        raw = CsvFactory.build(["A"], [["1"], ["2"], ["3"]])

        preview = parse_csv(raw, max_rows=2)
        full = parse_csv(raw)

        assert preview.row_count == 2
        assert preview.truncated is True
        assert full.row_count == 3
        assert full.truncated is False

    def test_header_only_has_no_rows(self):
        """A header without data is not an error for the parser."""
        result = parse_csv("A;B\n".encode("utf-8"))

        assert result.columns == ["A", "B"]
        assert result.row_count == 0

    def test_crlf_line_endings(self):
        """Windows line endings parse the same."""
        raw = CsvFactory.build(["A", "B"], [["1", "2"]], line_ending="\r\n")

        result = parse_csv(raw)

        assert result.rows == [{"A": "1", "B": "2"}]

    def test_explicit_delimiter_skips_detection(self):
        """Given delimiter is used as-is."""
        result = parse_csv("a;b,c\n1;2,3\n".encode("utf-8"), delimiter=";")

        assert result.columns == ["a", "b,c"]

    def test_undecodable_bytes_are_reported(self):
        """Bytes invalid in the forced encoding are replaced with a diagnostic."""
        result = parse_csv(b"A;B\n\xff;2\n", encoding="utf-8")

        assert result.row_count == 1
        assert result.diagnostics[0].line == 0

    @pytest.mark.parametrize("raw", [b"", b"\n\n", b" ; \n"])
    def test_missing_header_raises(self, raw):
        """No non-blank row means no header."""
        with pytest.raises(MalformedInputError) as exc_info:
            parse_csv(raw)

        assert exc_info.value.code == "CSV_MALFORMED"
        assert exc_info.value.status_code == 422

    def test_cell_larger_than_default_field_limit(self):
        """A 200k character cell is read whole and later rows are kept."""
        raw = CsvFactory.build(["Název", "Popis"], [["A", "x" * 200_000], ["B", "y"], ["C", "z"]])

        result = parse_csv(raw)

        assert result.row_count == 3
        assert len(result.rows[0]["Popis"]) == 200_000
        assert result.rows[2] == {"Název": "C", "Popis": "z"}

    def test_unreadable_row_raises(self, monkeypatch):
        """A reader error mid-file fails the parse instead of returning a partial table."""
        real_reader = csv.reader

        def failing_reader(*args, **kwargs):
            for cells in real_reader(*args, **kwargs):
                if cells == ["B", "2"]:
                    raise csv.Error("unexpected end of data")
                yield cells

        monkeypatch.setattr(csv, "reader", lambda *a, **kw: _LineCounter(failing_reader(*a, **kw)))

        with pytest.raises(MalformedInputError) as exc_info:
            parse_csv(b"X;Y\nA;1\nB;2\nC;3\n")

        assert exc_info.value.details["rows_read"] == 1
        assert "unexpected end of data" in exc_info.value.details["original_error"]

    def test_to_dict(self):
        """API representation includes detection results."""
        result = parse_csv("A;B\n1;2\n".encode("utf-8"))

        data = result.to_dict()

        assert data["row_count"] == 1
        assert data["delimiter"] == ";"
        assert data["columns"] == ["A", "B"]


# ===================
# COLUMN STATISTICS TESTS
# ===================

class TestColumnStatistics:
    """Tests for column_statistics()"""

    def test_infers_types(self):
        """Each column gets an inferred primitive type."""
        raw = CsvFactory.build(
            ["Email", "Telefon", "Datum", "Cena", "Název"],
            [
                ["a@example.cz", "603 123 456", "5.3.2024", "5 000,00", "Pohádka"],
                ["b@example.cz", "+420 777 888 999", "2024-03-06", "2500", "Koncert"],
                ["c@example.cz", "604111222", "12.11.14", "100 Kč", "Hra"],
            ],
        )

        stats = column_statistics(parse_csv(raw))

        assert stats["Email"].inferred_type == "email"
        assert stats["Telefon"].inferred_type == "phone"
        assert stats["Datum"].inferred_type == "date"
        assert stats["Cena"].inferred_type == "number"
        assert stats["Název"].inferred_type == "string"

    def test_counts_and_samples(self):
        """Counts ignore empty cells; samples are distinct."""
        raw = CsvFactory.build(["Město"], [["Úvaly"], [""], ["Úvaly"], ["Praha"]])

        stats = column_statistics(parse_csv(raw))["Město"]

        assert stats.non_empty == 3
        assert stats.distinct == 2
        assert stats.samples == ["Úvaly", "Praha"]

    def test_empty_column_is_string(self):
        """No values means the string fallback."""
        raw = CsvFactory.build(["A", "B"], [["1", ""], ["2", ""]])

        stats = column_statistics(parse_csv(raw))

        assert stats["B"].inferred_type == "string"
        assert stats["B"].non_empty == 0
