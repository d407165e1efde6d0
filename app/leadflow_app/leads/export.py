from __future__ import annotations

from dataclasses import dataclass
import io
import re

import pandas as pd

EXPORT_FORMATS = ("csv", "xlsx")
EXPORT_COLUMNS = {
    "row_index": "Row index",
    "business_email": "Business email",
    "website_url": "Website URL",
    "email_status": "Email status",
    "has_replied": "Has replied",
}
_MEDIA_TYPES = {
    "csv": "text/csv; charset=utf-8",
    "xlsx": "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet",
}


@dataclass(frozen=True)
class ExportFile:
    content: bytes
    media_type: str
    file_name: str


def _replied_text(value) -> str:
    if value is None or (isinstance(value, float) and pd.isna(value)):
        return ""
    if isinstance(value, str):
        return "true" if value.strip().lower() in {"1", "true", "t", "yes"} else "false"
    return "true" if bool(value) else "false"


def export_file_name(sheet_name: str, export_format: str) -> str:
    stem = re.sub(r"[^A-Za-z0-9._-]+", "_", str(sheet_name or "").strip()).strip("._") or "leads"
    return f"{stem}.{export_format}"


def build_export(frame: pd.DataFrame, sheet_name: str, export_format: str = "csv", include_headers: bool = True) -> ExportFile:
    export_format = str(export_format or "csv").strip().lower()
    if export_format not in EXPORT_FORMATS:
        raise ValueError("format must be one of: csv, xlsx.")

    table = frame.reindex(columns=list(EXPORT_COLUMNS)).copy()
    table["has_replied"] = table["has_replied"].map(_replied_text)
    table = table.rename(columns=EXPORT_COLUMNS)

    buffer = io.BytesIO()
    if export_format == "csv":
        buffer.write(table.to_csv(index=False, header=include_headers).encode("utf-8"))
    else:
        table.to_excel(buffer, index=False, header=include_headers, engine="openpyxl")
    return ExportFile(
        content=buffer.getvalue(),
        media_type=_MEDIA_TYPES[export_format],
        file_name=export_file_name(sheet_name, export_format),
    )
