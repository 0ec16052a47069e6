from __future__ import annotations

import json
from pathlib import Path

from month_summary.models import SummaryReport
from month_summary.qc import write_summary_report


def test_write_summary_report_writes_expected_contract(tmp_path: Path) -> None:
    report = SummaryReport(
        rows_in=3,
        rows_aggregated=2,
        rows_skipped=1,
        month_column="会计月",
        selected_columns=["数量"],
        excluded_columns={"产品编码": "identifier"},
        month_row_counts={"202501": 2},
        warnings=["warn"],
    )

    out = write_summary_report(tmp_path, report)

    assert out == tmp_path / "summary_report.json"
    data = json.loads(out.read_text(encoding="utf-8"))
    assert data == {
        "excluded_columns": {"产品编码": "identifier"},
        "month_column": "会计月",
        "month_row_counts": {"202501": 2},
        "rows_aggregated": 2,
        "rows_in": 3,
        "rows_skipped": 1,
        "selected_columns": ["数量"],
        "warnings": ["warn"],
    }
