from __future__ import annotations

import io
from datetime import datetime

import pytest
from openpyxl import Workbook, load_workbook

from month_summary.report import SHEET_TITLE
from month_summary.service import PROCESS_SUCCESS_MESSAGE, process_spreadsheet


def _xlsx_bytes(rows: list[list[object]]) -> bytes:
    wb = Workbook()
    ws = wb.active
    assert ws is not None
    for row in rows:
        ws.append(row)
    buffer = io.BytesIO()
    wb.save(buffer)
    return buffer.getvalue()


def test_process_spreadsheet_returns_encoded_summary() -> None:
    data = _xlsx_bytes(
        [
            ["单据编号", "会计月", "产品名称", "入库数量", "入库金额"],
            ["A-1", "2025-01", "螺丝", 10, 12.5],
            ["A-2", "2025-01", "螺母", 5, 7.25],
            ["A-3", datetime(2025, 3, 15), "垫片", 1, 0.5],
        ]
    )

    result = process_spreadsheet(data, filename="stock.xlsx", output_name="out.xlsx")

    assert result.success is True
    assert result.message == PROCESS_SUCCESS_MESSAGE
    assert result.file_name == "out.xlsx"
    assert result.data is not None
    assert result.data[0] == ["会计月", "入库数量", "入库金额"]
    assert result.data[1] == ["202501", 15, 19.75]
    assert result.data[3] == ["202503", 1, 0.5]
    assert result.report.excluded_columns == {"产品名称": "identifier"}

    assert result.content is not None
    ws = load_workbook(io.BytesIO(result.content))[SHEET_TITLE]
    assert ws["A2"].value == "202501"
    assert ws.max_row == 13


def test_process_spreadsheet_reports_engine_failure() -> None:
    data = _xlsx_bytes([["日期", "数量"], ["2025-01-01", 1]])

    result = process_spreadsheet(data, filename="bad.xlsx")

    assert result.success is False
    assert result.message == '未找到"会计月"列，请确认表格格式'
    assert result.content is None
    assert result.file_name is None


def test_process_spreadsheet_csv_input() -> None:
    data = "会计月,数量\n2025-01,1\n2025-01,2\n".encode("utf-8")

    result = process_spreadsheet(data, filename="in.csv")

    assert result.success is True
    assert result.data is not None
    assert result.data[1] == ["202501", 3]


def test_process_spreadsheet_propagates_codec_faults() -> None:
    with pytest.raises(ValueError, match="Could not read workbook"):
        process_spreadsheet(b"garbage", filename="broken.xlsx")
