"""Data models / typed results used across the package."""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field
from enum import Enum
from numbers import Integral
from typing import Any

Table = list[list[Any]]


def _to_non_negative_int(value: Any, field_name: str) -> int:
    if isinstance(value, bool) or not isinstance(value, Integral):
        raise TypeError(f"{field_name} must be an integer")
    result = int(value)
    if result < 0:
        raise ValueError(f"{field_name} must be >= 0")
    return result


def _to_string_list(values: Sequence[Any] | None, field_name: str) -> list[str]:
    if values is None:
        return []
    if isinstance(values, str):
        raise TypeError(f"{field_name} must be a sequence of strings")
    normalized: list[str] = []
    for item in values:
        if not isinstance(item, str):
            raise TypeError(f"{field_name} items must be strings")
        normalized.append(item)
    return normalized


def _to_string_map(values: Mapping[Any, Any] | None, field_name: str) -> dict[str, str]:
    if values is None:
        return {}
    if not isinstance(values, Mapping):
        raise TypeError(f"{field_name} must be a mapping of strings")
    normalized: dict[str, str] = {}
    for key, item in values.items():
        if not isinstance(key, str) or not isinstance(item, str):
            raise TypeError(f"{field_name} keys and values must be strings")
        normalized[key] = item
    return normalized


class FailureKind(str, Enum):
    """Expected, recoverable summarization failures and their fixed messages."""

    input_empty_or_malformed = "input_empty_or_malformed"
    month_column_not_found = "month_column_not_found"
    no_aggregatable_columns = "no_aggregatable_columns"

    @property
    def message(self) -> str:
        return _FAILURE_MESSAGES[self]


_FAILURE_MESSAGES: dict[FailureKind, str] = {
    FailureKind.input_empty_or_malformed: "数据为空或格式不正确",
    FailureKind.month_column_not_found: '未找到"会计月"列，请确认表格格式',
    FailureKind.no_aggregatable_columns: "未找到可汇总的数值列",
}

SUCCESS_MESSAGE = "汇总成功"


@dataclass
class SummaryReport:
    """Diagnostics emitted alongside every summarization.

    Contract invariant: ``rows_skipped == rows_in - rows_aggregated``.
    """

    rows_in: int = 0
    rows_aggregated: int = 0
    rows_skipped: int = 0
    month_column: str = ""
    selected_columns: list[str] = field(default_factory=list)
    excluded_columns: dict[str, str] = field(default_factory=dict)
    month_row_counts: dict[str, int] = field(default_factory=dict)
    warnings: list[str] = field(default_factory=list)

    def __post_init__(self) -> None:
        self.rows_in = _to_non_negative_int(self.rows_in, "rows_in")
        self.rows_aggregated = _to_non_negative_int(self.rows_aggregated, "rows_aggregated")
        self.rows_skipped = _to_non_negative_int(self.rows_skipped, "rows_skipped")
        self.selected_columns = _to_string_list(self.selected_columns, "selected_columns")
        self.excluded_columns = _to_string_map(self.excluded_columns, "excluded_columns")
        self.warnings = _to_string_list(self.warnings, "warnings")
        self.month_row_counts = {
            str(k): _to_non_negative_int(v, "month_row_counts")
            for k, v in (self.month_row_counts or {}).items()
        }
        if self.rows_aggregated > self.rows_in:
            raise ValueError("rows_aggregated must be <= rows_in")
        if self.rows_skipped != self.rows_in - self.rows_aggregated:
            raise ValueError("rows_skipped must equal rows_in - rows_aggregated")

    def to_dict(self) -> dict[str, Any]:
        return {
            "rows_in": self.rows_in,
            "rows_aggregated": self.rows_aggregated,
            "rows_skipped": self.rows_skipped,
            "month_column": self.month_column,
            "selected_columns": list(self.selected_columns),
            "excluded_columns": dict(self.excluded_columns),
            "month_row_counts": dict(self.month_row_counts),
            "warnings": list(self.warnings),
        }


@dataclass
class SummaryResult:
    """Tagged success/failure value returned by the summarization engine."""

    success: bool
    message: str
    data: Table | None = None
    failure: FailureKind | None = None
    report: SummaryReport = field(default_factory=SummaryReport)

    @classmethod
    def ok(cls, data: Table, report: SummaryReport) -> SummaryResult:
        return cls(success=True, message=SUCCESS_MESSAGE, data=data, report=report)

    @classmethod
    def fail(cls, kind: FailureKind, report: SummaryReport | None = None) -> SummaryResult:
        return cls(
            success=False,
            message=kind.message,
            failure=kind,
            report=report if report is not None else SummaryReport(),
        )

    def to_dict(self) -> dict[str, Any]:
        payload: dict[str, Any] = {"success": self.success, "message": self.message}
        if self.success:
            payload["data"] = [list(row) for row in self.data or []]
        return payload


@dataclass
class RunManifest:
    """Audit-trail manifest for a single CLI run."""

    tool: str = "month-summary"
    version: str = ""
    run_id: str = ""
    input_path: str = ""
    output_dir: str = ""
    created_at_utc: str = ""
    rows_in: int = 0
    rows_out: int = 0
    sha256: str = ""
    status: str = "success"
    error_code: int | None = None
    error_message: str = ""

    def __post_init__(self) -> None:
        self.rows_in = _to_non_negative_int(self.rows_in, "rows_in")
        self.rows_out = _to_non_negative_int(self.rows_out, "rows_out")
        if self.status not in {"success", "failed"}:
            raise ValueError("status must be 'success' or 'failed'")

    def to_dict(self) -> dict[str, Any]:
        return {
            "tool": self.tool,
            "version": self.version,
            "run_id": self.run_id,
            "input_path": self.input_path,
            "output_dir": self.output_dir,
            "created_at_utc": self.created_at_utc,
            "rows_in": self.rows_in,
            "rows_out": self.rows_out,
            "sha256": self.sha256,
            "status": self.status,
            "error_code": self.error_code,
            "error_message": self.error_message,
        }
