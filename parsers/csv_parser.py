"""
CSV parser for import uploads.

Turns the raw bytes of a spreadsheet export into a header list and string
rows. Delimiter and character encoding are detected from the content; the
first non-blank row is always the header row.
"""

import codecs
import csv
import io
import re
from dataclasses import dataclass, field
from typing import Optional

import pandas as pd
import structlog

from exceptions import MalformedInputError

logger = structlog.get_logger(__name__)


CANDIDATE_DELIMITERS = (";", ",", "\t", "|")
DEFAULT_DELIMITER = ","
DELIMITER_SAMPLE_LINES = 5

ENCODING_SAMPLE_BYTES = 1000
LEGACY_CZECH_ENCODING = "cp1250"

# Windows-1250 bytes for Czech letters with diacritics (Š Ť Ž š ť ž Á Č É Ě Í Ď Ň Ó Ř Ů Ú Ý ...)
_CP1250_CZECH_BYTES = frozenset({
    0x8A, 0x8D, 0x8E, 0x9A, 0x9D, 0x9E,
    0xC1, 0xC8, 0xC9, 0xCC, 0xCD, 0xCF, 0xD2, 0xD3, 0xD8, 0xD9, 0xDA, 0xDD,
    0xE1, 0xE8, 0xE9, 0xEC, 0xED, 0xEF, 0xF2, 0xF3, 0xF8, 0xF9, 0xFA, 0xFD,
})

_BOMS = (
    (codecs.BOM_UTF8, "utf-8-sig"),
    (codecs.BOM_UTF16_LE, "utf-16"),
    (codecs.BOM_UTF16_BE, "utf-16"),
)


@dataclass
class ParseDiagnostic:
    """Single note about the file structure (line is 1-based, 0 = whole file)."""
    line: int
    message: str
    severity: str = "warning"


@dataclass
class ParsedTable:
    """Result of parsing a CSV file."""
    columns: list[str] = field(default_factory=list)
    rows: list[dict[str, str]] = field(default_factory=list)
    diagnostics: list[ParseDiagnostic] = field(default_factory=list)
    delimiter: str = DEFAULT_DELIMITER
    encoding: str = "utf-8"
    truncated: bool = False

    @property
    def row_count(self) -> int:
        """Number of data rows (header excluded)."""
        return len(self.rows)

    def to_dict(self) -> dict:
        """Convert to dictionary for API response."""
        return {
            "columns": self.columns,
            "rows": self.rows,
            "row_count": self.row_count,
            "delimiter": self.delimiter,
            "encoding": self.encoding,
            "truncated": self.truncated,
            "diagnostics": [
                {"line": d.line, "message": d.message, "severity": d.severity}
                for d in self.diagnostics
            ],
        }


@dataclass
class ColumnStats:
    """Diagnostic statistics for one column."""
    column: str
    non_empty: int
    distinct: int
    samples: list[str]
    inferred_type: str

    def to_dict(self) -> dict:
        return {
            "column": self.column,
            "non_empty": self.non_empty,
            "distinct": self.distinct,
            "samples": self.samples,
            "inferred_type": self.inferred_type,
        }


def parse_csv(
    raw: bytes,
    *,
    max_rows: Optional[int] = None,
    delimiter: Optional[str] = None,
    encoding: Optional[str] = None,
) -> ParsedTable:
    """
    Parse CSV bytes into a ParsedTable.

    Args:
        raw: File content
        max_rows: Stop after this many data rows (preview use)
        delimiter: Skip delimiter detection when given
        encoding: Skip encoding detection when given

    Returns:
        ParsedTable with columns, rows and diagnostics

    Raises:
        MalformedInputError: If no header row can be identified or a row cannot be read
    """
    result = ParsedTable()
    result.encoding = encoding or detect_encoding(raw)

    text = raw.decode(result.encoding, errors="replace")
    if "\ufffd" in text:
        result.diagnostics.append(ParseDiagnostic(
            line=0,
            message=f"Some bytes could not be decoded as {result.encoding} and were replaced"
        ))
    text = text.lstrip("\ufeff")

    result.delimiter = delimiter or detect_delimiter(text)

    logger.info(
        "parsing_csv",
        size=len(raw),
        encoding=result.encoding,
        delimiter=result.delimiter,
        max_rows=max_rows
    )

    _allow_field_size(len(text))
    reader = csv.reader(io.StringIO(text, newline=""), delimiter=result.delimiter)

    try:
        header, header_line = _read_header(reader)
    except csv.Error as e:
        raise MalformedInputError(
            message="Failed to read CSV header",
            details={"original_error": str(e)}
        )

    if header is None:
        logger.warning("csv_header_missing", size=len(raw))
        raise MalformedInputError(
            message="No header row found in file",
            details={"encoding": result.encoding, "delimiter": result.delimiter}
        )

    positions = _resolve_columns(header, header_line, result)

    try:
        for cells in reader:
            if _is_blank(cells):
                continue

            if max_rows is not None and len(result.rows) >= max_rows:
                result.truncated = True
                break

            line = reader.line_num
            if len(cells) < len(header):
                result.diagnostics.append(ParseDiagnostic(
                    line=line,
                    message=f"Row has {len(cells)} cells, expected {len(header)}; missing cells left empty"
                ))
            elif len(cells) > len(header):
                result.diagnostics.append(ParseDiagnostic(
                    line=line,
                    message=f"Row has {len(cells)} cells, expected {len(header)}; extra cells ignored"
                ))

            row = {}
            for column, index in positions:
                row[column] = cells[index].strip() if index < len(cells) else ""
            result.rows.append(row)

    except csv.Error as e:
        logger.warning("csv_read_failed", line=reader.line_num, rows=result.row_count, error=str(e))
        raise MalformedInputError(
            message=f"Failed to read CSV at line {reader.line_num}",
            details={"line": reader.line_num, "rows_read": result.row_count, "original_error": str(e)}
        )

    logger.info(
        "csv_parsed",
        columns=len(result.columns),
        rows=result.row_count,
        diagnostics=len(result.diagnostics),
        truncated=result.truncated
    )

    return result


# ===================
# DETECTION
# ===================

def detect_delimiter(text: str) -> str:
    """
    Pick the delimiter occurring most often in the first lines.

    Falls back to "," on a tie or when no candidate occurs.
    """
    sample = text.splitlines()[:DELIMITER_SAMPLE_LINES]
    counts = {d: sum(line.count(d) for line in sample) for d in CANDIDATE_DELIMITERS}

    best = max(counts.values())
    if best == 0:
        return DEFAULT_DELIMITER

    winners = [d for d, count in counts.items() if count == best]
    if len(winners) > 1:
        return DEFAULT_DELIMITER
    return winners[0]


def detect_encoding(raw: bytes) -> str:
    """
    Detect the text encoding of an upload.

    BOM wins. Without one, a sample containing Windows-1250 Czech letters that
    is not valid UTF-8 is treated as Windows-1250. Everything else is UTF-8.
    """
    for bom, encoding in _BOMS:
        if raw.startswith(bom):
            return encoding

    sample = raw[:ENCODING_SAMPLE_BYTES]
    if not any(b in _CP1250_CZECH_BYTES for b in sample):
        return "utf-8"

    # incremental decode tolerates a multibyte char cut at the sample boundary
    try:
        codecs.getincrementaldecoder("utf-8")().decode(sample, final=False)
        return "utf-8"
    except UnicodeDecodeError:
        return LEGACY_CZECH_ENCODING


# ===================
# COLUMN STATISTICS
# ===================

_TYPE_PATTERNS = (
    ("email", r"[^\s@]+@[^\s@]+\.[^\s@]+"),
    ("phone", r"\+?[\d\s\-/()]{9,}"),
    ("date", r"\d{1,2}\.\s?\d{1,2}\.\s?\d{2,4}|\d{4}-\d{2}-\d{2}"),
    ("number", r"-?[\d\s.]*\d(?:,\d+)?(?:\s*(?:Kč|CZK|,-))?"),
)
TYPE_MATCH_THRESHOLD = 0.7


def column_statistics(table: ParsedTable, sample_size: int = 100) -> dict[str, ColumnStats]:
    """
    Compute per-column statistics for diagnostic display.

    The inferred type is the first of email/phone/date/number matching at
    least 70% of the non-empty values in the first `sample_size` rows.
    """
    if not table.columns:
        return {}

    df = pd.DataFrame(table.rows, columns=table.columns, dtype="object").fillna("")
    stats: dict[str, ColumnStats] = {}

    for column in table.columns:
        series = df[column].astype(str).str.strip()
        filled = series[series != ""]

        samples = list(dict.fromkeys(filled.tolist()))[:5]

        stats[column] = ColumnStats(
            column=column,
            non_empty=int(filled.size),
            distinct=int(filled.nunique()),
            samples=samples,
            inferred_type=_infer_type(filled.head(sample_size)),
        )

    return stats


def _infer_type(values: pd.Series) -> str:
    """Infer primitive type of a sample of non-empty strings."""
    if values.empty:
        return "string"

    for type_name, pattern in _TYPE_PATTERNS:
        ratio = values.str.fullmatch(pattern, flags=re.IGNORECASE).mean()
        if ratio >= TYPE_MATCH_THRESHOLD:
            return type_name

    return "string"


# ===================
# HELPER FUNCTIONS
# ===================

def _is_blank(cells: list[str]) -> bool:
    """True for an empty line or a line of empty cells."""
    return all(not c.strip() for c in cells)


def _allow_field_size(size: int) -> None:
    """Raise the process-wide csv field limit so one cell may span the whole file."""
    if csv.field_size_limit() < size:
        csv.field_size_limit(size)


def _read_header(reader) -> tuple[Optional[list[str]], int]:
    """Return the first non-blank row, trimmed, and its line number."""
    for cells in reader:
        if _is_blank(cells):
            continue
        return [c.strip() for c in cells], reader.line_num
    return None, 0


def _resolve_columns(
    header: list[str],
    header_line: int,
    result: ParsedTable
) -> list[tuple[str, int]]:
    """
    Fill result.columns and return (column, cell index) pairs.

    Duplicate headers keep their first occurrence and are reported.
    Empty header cells get a positional name.
    """
    positions: list[tuple[str, int]] = []
    seen: set[str] = set()

    for index, name in enumerate(header):
        if not name:
            name = f"column_{index + 1}"
            result.diagnostics.append(ParseDiagnostic(
                line=header_line,
                message=f"Empty header in column {index + 1} named {name}"
            ))

        if name in seen:
            result.diagnostics.append(ParseDiagnostic(
                line=header_line,
                message=f'Duplicate header "{name}" in column {index + 1}; first occurrence is used'
            ))
            continue

        seen.add(name)
        result.columns.append(name)
        positions.append((name, index))

    return positions
