"""Export service for turning result rows into downloadable files.

``to_csv`` and ``to_json`` serialize the rows of a fetched page exactly as the
results view shows them.  ``to_csv`` quotes a string value only when it
contains a comma and does not escape embedded double quotes or newlines;
values like ``say "hi", bye`` therefore produce a file that strict CSV readers
may split differently.  The engine-side ``generate_csv`` (used for full
result exports) writes RFC 4180 CSV through the standard ``csv`` module.
"""

import csv
import io
import json
from collections.abc import Sequence
from typing import Any

from openpyxl import Workbook
from openpyxl.utils import get_column_letter
from openpyxl.worksheet.table import Table, TableStyleInfo

from querydesk.errors import NothingToExport

Row = dict[str, Any]


# ---------------------------------------------------------------------------
# Page exports (client side)
# ---------------------------------------------------------------------------


def _csv_cell(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, str):
        return f'"{value}"' if "," in value else value
    return str(value)


def to_csv(rows: Sequence[Row]) -> str:
    """Render rows as CSV text with the header taken from the first row.

    Later rows are rendered positionally in the first row's key order;
    missing keys render as empty cells.  Raises NothingToExport on an empty
    input instead of producing a header-only file.
    """
    if not rows:
        raise NothingToExport("No data to export")

    headers = list(rows[0].keys())
    lines = [",".join(headers)]
    for row in rows:
        lines.append(",".join(_csv_cell(row.get(header)) for header in headers))
    return "\n".join(lines)


def to_json(rows: Sequence[Row]) -> str:
    """Pretty-print rows as a JSON array, preserving field order."""
    return json.dumps(list(rows), indent=2, ensure_ascii=False, default=str)


# ---------------------------------------------------------------------------
# Full result exports (engine side)
# ---------------------------------------------------------------------------


def generate_csv(columns: list[str], rows: Sequence[Row]) -> bytes:
    """Generate RFC 4180 CSV bytes; a header row is written even with no rows."""
    buffer = io.StringIO()
    writer = csv.writer(buffer, lineterminator="\n")
    writer.writerow(columns)
    for row in rows:
        writer.writerow(["" if row.get(col) is None else row.get(col) for col in columns])
    return buffer.getvalue().encode("utf-8")


def generate_xlsx(
    columns: list[str],
    rows: Sequence[Row],
    sheet_name: str = "Results",
) -> bytes:
    """Generate an XLSX file from query results.

    Returns the file contents as bytes.
    """
    wb = Workbook()
    ws = wb.active
    if ws is None:
        ws = wb.create_sheet()
    ws.title = sheet_name[:31]

    for col_idx, col_name in enumerate(columns, 1):
        ws.cell(row=1, column=col_idx, value=col_name)

    for row_idx, row in enumerate(rows, 2):
        for col_idx, col_name in enumerate(columns, 1):
            ws.cell(row=row_idx, column=col_idx, value=row.get(col_name))

    # Excel table only makes sense with data under the header
    if rows and columns:
        last_col = get_column_letter(len(columns))
        last_row = len(rows) + 1
        table = Table(displayName="Results", ref=f"A1:{last_col}{last_row}")
        table.tableStyleInfo = TableStyleInfo(
            name="TableStyleMedium2",
            showFirstColumn=False,
            showLastColumn=False,
            showRowStripes=True,
            showColumnStripes=False,
        )
        ws.add_table(table)

    # Approximate auto-fit from the first 100 rows
    for col_idx, col_name in enumerate(columns, 1):
        max_len = len(str(col_name))
        for row in rows[:100]:
            val = row.get(col_name)
            if val is not None:
                max_len = max(max_len, len(str(val)))
        ws.column_dimensions[get_column_letter(col_idx)].width = min(max_len + 2, 50)

    buffer = io.BytesIO()
    wb.save(buffer)
    return buffer.getvalue()


_FORMAT_MAP: dict[str, tuple[str, str]] = {
    "csv": ("text/csv", ".csv"),
    "json": ("application/json", ".json"),
    "xlsx": (
        "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet",
        ".xlsx",
    ),
}


def generate_download(
    columns: list[str],
    rows: Sequence[Row],
    fmt: str = "csv",
    sheet_name: str = "Results",
) -> tuple[bytes, str, str]:
    """Generate a download in the requested format.

    Returns (bytes, mimetype, extension).
    Raises ValueError for unsupported formats.
    """
    if fmt not in _FORMAT_MAP:
        raise ValueError(f"Unsupported format: {fmt}")

    mimetype, extension = _FORMAT_MAP[fmt]

    match fmt:
        case "csv":
            data = generate_csv(columns, rows)
        case "json":
            data = to_json(rows).encode("utf-8")
        case _:
            data = generate_xlsx(columns, rows, sheet_name)

    return data, mimetype, extension
