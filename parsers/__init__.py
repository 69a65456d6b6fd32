"""
File parsers module.

CSV uploads are decoded, split and diagnosed here before any mapping.
"""

from parsers.csv_parser import (
    parse_csv,
    detect_delimiter,
    detect_encoding,
    column_statistics,
    ParsedTable,
    ParseDiagnostic,
    ColumnStats,
)

__all__ = [
    "parse_csv",
    "detect_delimiter",
    "detect_encoding",
    "column_statistics",
    "ParsedTable",
    "ParseDiagnostic",
    "ColumnStats",
]
