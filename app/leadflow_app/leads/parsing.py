from __future__ import annotations

import csv
from dataclasses import dataclass, field
import io
import math
from pathlib import Path
from typing import Any

import pandas as pd

from leadflow_app.core.errors import ParseError
from leadflow_app.leads.constants import SUPPORTED_FILE_EXTENSIONS

_EXCEL_ENGINES = {"xlsx": "openpyxl", "xls": "xlrd"}


@dataclass(frozen=True)
class ParsedSheet:
    headers: list[str]
    rows: list[list[str | None]] = field(default_factory=list)


def file_extension(file_name: str) -> str:
    return Path(str(file_name or "")).suffix.lower().lstrip(".")


def cell_at(row: list[str | None], index: int) -> str | None:
    if index < 0 or index >= len(row):
        return None
    return row[index]


def _cell_text(value: Any) -> str | None:
    if value is None:
        return None
    if isinstance(value, float):
        if math.isnan(value):
            return None
        if value.is_integer():
            return str(int(value))
    elif value is pd.NaT:
        return None
    text = str(value).strip()
    return text or None


def _decode_csv_bytes(raw_bytes: bytes) -> str:
    try:
        return raw_bytes.decode("utf-8-sig")
    except UnicodeDecodeError as exc:
        raise ParseError("CSV files must be UTF-8 encoded.") from exc


def _read_csv_records(raw_bytes: bytes) -> list[list[Any]]:
    reader = csv.reader(io.StringIO(_decode_csv_bytes(raw_bytes)))
    try:
        return list(reader)
    except csv.Error as exc:
        raise ParseError(f"Could not parse CSV file: {exc}") from exc


def _read_excel_records(raw_bytes: bytes, extension: str) -> list[list[Any]]:
    try:
        frame = pd.read_excel(
            io.BytesIO(raw_bytes),
            sheet_name=0,
            header=None,
            dtype=object,
            engine=_EXCEL_ENGINES[extension],
        )
    except Exception as exc:
        raise ParseError(f"Could not read {extension} workbook.") from exc
    return [list(record) for record in frame.itertuples(index=False, name=None)]


def _is_blank_record(record: list[Any]) -> bool:
    return all(_cell_text(value) is None for value in record)


def _trim_blank_edges(records: list[list[Any]]) -> list[list[Any]]:
    # Interior blank lines stay as all-null data rows; leading and trailing ones are padding.
    start, stop = 0, len(records)
    while start < stop and _is_blank_record(records[start]):
        start += 1
    while stop > start and _is_blank_record(records[stop - 1]):
        stop -= 1
    return records[start:stop]


def _read_records(raw_bytes: bytes, file_name: str) -> list[list[Any]]:
    extension = file_extension(file_name)
    if extension not in SUPPORTED_FILE_EXTENSIONS:
        raise ParseError("Unsupported file type. Upload a .csv, .xls or .xlsx file.")
    if not raw_bytes:
        raise ParseError("The uploaded file is empty.")
    if extension == "csv":
        records = _read_csv_records(raw_bytes)
    else:
        records = _read_excel_records(raw_bytes, extension)
    records = _trim_blank_edges(records)
    if not records:
        raise ParseError("The uploaded file has no header row.")
    return records


def parse_spreadsheet(raw_bytes: bytes, file_name: str) -> ParsedSheet:
    """Decode an upload into a header row and data rows.

    Header cells become trimmed strings ("" for blanks). Data cells become
    trimmed strings, with empty cells as None. Rows keep their own length.
    """
    records = _read_records(raw_bytes, file_name)
    headers = [_cell_text(value) or "" for value in records[0]]
    rows = [[_cell_text(value) for value in record] for record in records[1:]]
    return ParsedSheet(headers=headers, rows=rows)


def parse_headers(raw_bytes: bytes, file_name: str) -> list[str]:
    return parse_spreadsheet(raw_bytes, file_name).headers
