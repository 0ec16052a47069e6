"""Excel writer — encodes the summary table as a single-sheet workbook."""

from __future__ import annotations

import io
from datetime import datetime
from numbers import Real
from pathlib import Path
from typing import Any

from openpyxl import Workbook
from openpyxl.styles import Alignment, Font, PatternFill
from openpyxl.utils import get_column_letter
from openpyxl.worksheet.worksheet import Worksheet

from month_summary import DEFAULT_OUTPUT_NAME
from month_summary.io import write_bytes
from month_summary.models import Table

# ── Style constants ──────────────────────────────────────────────

SHEET_TITLE = "汇总数据"

HEADER_FONT = Font(name="Calibri", bold=True, size=11, color="FFFFFF")
HEADER_FILL = PatternFill(start_color="2F5496", end_color="2F5496", fill_type="solid")
HEADER_ALIGN = Alignment(horizontal="center", vertical="center", wrap_text=True)

AMOUNT_FMT = '#,##0.00'

MIN_COL_WIDTH = 10
MAX_COL_WIDTH = 30
_EXCEL_FORMULA_PREFIXES = ("=", "+", "-", "@")


# ── Helpers ──────────────────────────────────────────────────────


def column_widths(table: Table) -> list[int]:
    """Character widths per column: ``len * 2 + 2``, clamped to [10, 30]."""
    if not table:
        return []
    widths: list[int] = []
    for c_idx in range(len(table[0])):
        width = MIN_COL_WIDTH
        for row in table:
            value = row[c_idx] if c_idx < len(row) else None
            text = "" if value is None else str(value)
            width = max(width, min(len(text) * 2 + 2, MAX_COL_WIDTH))
        widths.append(width)
    return widths


def _excel_value(val: Any) -> Any:
    if isinstance(val, datetime) and val.tzinfo:
        return val.replace(tzinfo=None)

    if isinstance(val, str):
        if val.startswith("'"):
            return val
        stripped = val.lstrip()
        if stripped and stripped[0] in _EXCEL_FORMULA_PREFIXES:
            return f"'{val}"

    return val


def _style_header(ws: Worksheet, ncols: int) -> None:
    for c in range(1, ncols + 1):
        cell = ws.cell(row=1, column=c)
        cell.font = HEADER_FONT
        cell.fill = HEADER_FILL
        cell.alignment = HEADER_ALIGN


def _table_to_sheet(ws: Worksheet, table: Table) -> None:
    for r_idx, row in enumerate(table, 1):
        for c_idx, val in enumerate(row, 1):
            cell = ws.cell(row=r_idx, column=c_idx, value=_excel_value(val))
            if r_idx > 1 and isinstance(val, Real) and not isinstance(val, bool):
                cell.number_format = AMOUNT_FMT

    if not table:
        return
    _style_header(ws, len(table[0]))
    ws.freeze_panes = "A2"
    for c_idx, width in enumerate(column_widths(table), 1):
        ws.column_dimensions[get_column_letter(c_idx)].width = width


# ── Public API ───────────────────────────────────────────────────


def encode_table(table: Table) -> bytes:
    """Serialize *table* (header row first) into xlsx bytes, column order kept."""
    wb = Workbook()
    ws = wb.active
    if ws is None:
        ws = wb.create_sheet()
    ws.title = SHEET_TITLE
    _table_to_sheet(ws, table)

    buffer = io.BytesIO()
    wb.save(buffer)
    return buffer.getvalue()


def write_report(out_dir: Path, table: Table, file_name: str = DEFAULT_OUTPUT_NAME) -> Path:
    """Write the summary workbook into *out_dir* and return the path."""
    return write_bytes(Path(out_dir) / file_name, encode_table(table))
