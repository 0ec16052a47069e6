"""Decode → summarize → encode in a single call."""

from __future__ import annotations

from dataclasses import dataclass, field

from month_summary import DEFAULT_OUTPUT_NAME
from month_summary.io import decode_table
from month_summary.keywords import KeywordPolicy
from month_summary.models import SummaryReport, Table
from month_summary.pipeline import summarize_by_accounting_month
from month_summary.report import encode_table

PROCESS_SUCCESS_MESSAGE = "表格处理完成"


@dataclass
class ProcessResult:
    """Outcome of processing one uploaded spreadsheet."""

    success: bool
    message: str
    data: Table | None = None
    file_name: str | None = None
    content: bytes | None = None
    report: SummaryReport = field(default_factory=SummaryReport)


def process_spreadsheet(
    data: bytes,
    *,
    filename: str | None = None,
    output_name: str = DEFAULT_OUTPUT_NAME,
    policy: KeywordPolicy | None = None,
) -> ProcessResult:
    """Summarize spreadsheet *data* and return the encoded workbook.

    Summarization failures come back as ``success=False``. Unreadable
    input raises ``ValueError`` from the decoder.
    """
    table = decode_table(data, filename)
    result = summarize_by_accounting_month(table, policy)
    if not result.success or result.data is None:
        return ProcessResult(success=False, message=result.message, report=result.report)

    return ProcessResult(
        success=True,
        message=PROCESS_SUCCESS_MESSAGE,
        data=result.data,
        file_name=output_name,
        content=encode_table(result.data),
        report=result.report,
    )
