"""Accounting-month summarization — pure functions, no side effects."""

from __future__ import annotations

import logging
import math
import re
from collections.abc import Sequence
from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal
from numbers import Real
from typing import Any

import pandas as pd

from month_summary import RESULT_MONTH_HEADER
from month_summary.keywords import DEFAULT_POLICY, ColumnCategory, KeywordPolicy
from month_summary.models import FailureKind, SummaryReport, SummaryResult, Table

logger = logging.getLogger(__name__)

# Data rows inspected when deciding whether a column carries numbers.
NUMERIC_SAMPLE_ROWS = 99
_DEBUG_PREVIEW_ROWS = 5

_NUMBER_RE = re.compile(r"[+-]?(?:\d+\.?\d*|\.\d+)(?:[eE][+-]?\d+)?", re.ASCII)
_DIGITS_RE = re.compile(r"\d+", re.ASCII)
_YEAR_MONTH_RE = re.compile(r"\d{4}[-/]\d{1,2}", re.ASCII)
_YEAR_PREFIX_RE = re.compile(r"\d{4}", re.ASCII)

REASON_IDENTIFIER = "identifier"
REASON_NOT_A_MEASURE = "not-a-measure"
REASON_NO_NUMERIC_DATA = "no-numeric-data"


# ── Cell helpers ────────────────────────────────────────────────


def cell_text(value: Any) -> str:
    """Render a raw cell as trimmed text (``None``/NaN → ``""``)."""
    if value is None:
        return ""
    if isinstance(value, float):
        if math.isnan(value):
            return ""
        if value.is_integer():
            return str(int(value))
    if isinstance(value, date):
        return value.strftime("%Y-%m")
    return str(value).strip()


def _cell_at(row: Sequence[Any] | None, index: int) -> Any:
    if not row or index >= len(row):
        return None
    return row[index]


def _numeric_token(value: Any) -> float | str | None:
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (Real, Decimal)):
        return float(value)
    if isinstance(value, str):
        token = value.strip()
        return token if _NUMBER_RE.fullmatch(token) else None
    return None


def coerce_numeric(values: Sequence[Any]) -> pd.Series:
    """Coerce raw cells to floats; non-numeric and non-finite cells become NaN."""
    cleaned = pd.Series([_numeric_token(v) for v in values], dtype=object)
    numeric = pd.to_numeric(cleaned, errors="coerce").astype("float64")
    return numeric.mask(numeric.abs() == math.inf)


def to_number(value: Any) -> float | None:
    """Return *value* as a finite float, or ``None`` when it is not numeric."""
    token = _numeric_token(value)
    if token is None:
        return None
    number = float(token)
    return number if math.isfinite(number) else None


def is_numeric(value: Any) -> bool:
    return to_number(value) is not None


def round_half_away(value: float) -> float:
    """Round to 2 decimals, halves away from zero on the scaled value.

    Values too large to scale are returned unchanged.
    """
    scaled = abs(value) * 100
    if not math.isfinite(scaled):
        return value
    rounded = math.floor(scaled + 0.5) / 100
    if rounded == 0:
        return 0.0
    return math.copysign(rounded, value)


# ── Month column + month keys ───────────────────────────────────


def find_month_column(headers: Sequence[str], policy: KeywordPolicy = DEFAULT_POLICY) -> int:
    """Return the index of the first accounting-month header, or -1."""
    for index, header in enumerate(headers):
        if policy.is_month(header):
            return index
    return -1


def normalize_month(value: Any) -> str:
    """Map a raw month cell to its month key; ``""`` means skip the row.

    ``2025-1`` and ``2025/1`` both become ``20251``: the separator is
    dropped and the month is not zero-padded. All-digit values and any
    other format are kept verbatim.
    """
    text = cell_text(value)
    if not text or _DIGITS_RE.fullmatch(text):
        return text
    if _YEAR_MONTH_RE.fullmatch(text):
        return text.replace("-", "").replace("/", "")
    return text


# ── Column classification ───────────────────────────────────────


@dataclass
class ColumnSelection:
    """Columns chosen for aggregation, plus why the others were left out."""

    indexes: list[int] = field(default_factory=list)
    headers: list[str] = field(default_factory=list)
    excluded: dict[str, str] = field(default_factory=dict)

    def __bool__(self) -> bool:
        return bool(self.indexes)


def _column_label(header: str, index: int) -> str:
    return header or f"列{index + 1}"


def _has_numeric_sample(rows: Sequence[Sequence[Any] | None], index: int) -> bool:
    sample = [_cell_at(row, index) for row in rows[:NUMERIC_SAMPLE_ROWS]]
    return bool(coerce_numeric(sample).notna().any())


def classify_columns(
    headers: Sequence[str],
    rows: Sequence[Sequence[Any] | None],
    month_index: int,
    policy: KeywordPolicy = DEFAULT_POLICY,
) -> ColumnSelection:
    """Pick the measure columns to the right of *month_index*.

    A column is selected iff its header has no identifier keyword, at
    least one of the first sampled data cells is numeric, and its header
    has a measure keyword.
    """
    selection = ColumnSelection()

    def _exclude(label: str, index: int, reason: str) -> None:
        key = label if label not in selection.excluded else f"{label}#{index + 1}"
        selection.excluded[key] = reason

    for index in range(month_index + 1, len(headers)):
        header = headers[index]
        label = _column_label(header, index)

        keyword = policy.match(ColumnCategory.exclude, header)
        if keyword is not None:
            logger.debug("Excluded column %r (identifier keyword %r)", label, keyword)
            _exclude(label, index, REASON_IDENTIFIER)
            continue

        if not _has_numeric_sample(rows, index):
            _exclude(label, index, REASON_NO_NUMERIC_DATA)
            continue

        if not policy.is_included(header):
            logger.debug("Excluded column %r (numeric but not a measure)", label)
            _exclude(label, index, REASON_NOT_A_MEASURE)
            continue

        selection.indexes.append(index)
        selection.headers.append(label)

    logger.debug("Measure columns: %s", selection.headers)
    return selection


# ── Aggregation ─────────────────────────────────────────────────


def aggregate_by_month(
    rows: Sequence[Sequence[Any] | None],
    month_index: int,
    column_indexes: Sequence[int],
) -> tuple[dict[str, list[float]], dict[str, int]]:
    """Sum *column_indexes* per month key.

    Returns ``(sums, row_counts)`` keyed by month key in first-seen order.
    Rows with an empty month are skipped; non-numeric cells add nothing.
    """
    measures = [f"m{position}" for position in range(len(column_indexes))]
    frame = pd.DataFrame(
        {
            "month": [normalize_month(_cell_at(row, month_index)) for row in rows],
            **{
                name: coerce_numeric([_cell_at(row, column) for row in rows]).fillna(0.0)
                for name, column in zip(measures, column_indexes)
            },
        }
    )
    frame = frame[frame["month"] != ""]

    grouped = frame.groupby("month", sort=False)
    counts = {str(month): int(n) for month, n in grouped.size().items()}
    if not measures:
        return {month: [] for month in counts}, counts

    totals = grouped[measures].sum()
    sums = {
        str(month): [float(v) for v in values]
        for month, values in zip(totals.index, totals.itertuples(index=False, name=None))
    }
    return sums, counts


def complete_months(sorted_months: Sequence[str]) -> list[str]:
    """Expand to the 12 months of the year prefixing the first month key.

    Only one calendar year is ever produced: keys from other years, or
    keys that are not ``YYYYMM`` shaped, do not appear in the result.
    Without a leading 4-digit year the keys are returned unchanged.
    """
    if not sorted_months:
        return []
    match = _YEAR_PREFIX_RE.match(sorted_months[0])
    if match is None:
        return list(sorted_months)
    year = match.group(0)
    return [f"{year}{month:02d}" for month in range(1, 13)]


# ── Main entry point ────────────────────────────────────────────


def _is_row(row: Any) -> bool:
    return isinstance(row, (list, tuple))


def summarize_by_accounting_month(
    table: Table | None,
    policy: KeywordPolicy | None = None,
) -> SummaryResult:
    """Summarize *table* (header row + data rows) by accounting month.

    Never raises for malformed input: failures come back as a tagged
    ``SummaryResult`` with ``success=False``.
    """
    policy = policy or DEFAULT_POLICY

    if not table or len(table) < 2 or not _is_row(table[0]):
        return SummaryResult.fail(FailureKind.input_empty_or_malformed)

    headers = [cell_text(h) for h in table[0]]
    rows = [row if _is_row(row) else None for row in table[1:]]
    report = SummaryReport(rows_in=len(rows), rows_aggregated=0, rows_skipped=len(rows))

    logger.debug("Headers: %s", headers)
    logger.debug("Data rows: %d", len(rows))

    # 1. Locate the month column
    month_index = find_month_column(headers, policy)
    if month_index == -1:
        return SummaryResult.fail(FailureKind.month_column_not_found, report)
    report.month_column = headers[month_index]
    logger.debug("Month column %d: %r", month_index, headers[month_index])

    # 2. Pick measure columns
    selection = classify_columns(headers, rows, month_index, policy)
    report.excluded_columns = dict(selection.excluded)
    if not selection:
        return SummaryResult.fail(FailureKind.no_aggregatable_columns, report)
    report.selected_columns = list(selection.headers)

    if logger.isEnabledFor(logging.DEBUG):
        for number, row in enumerate(rows[:_DEBUG_PREVIEW_ROWS], start=1):
            window = list(row[month_index:month_index + 10]) if row else []
            logger.debug("Row %d: month=%r %s", number, _cell_at(row, month_index), window)

    # 3. Group + sum
    sums, counts = aggregate_by_month(rows, month_index, selection.indexes)
    for month, count in counts.items():
        logger.debug("%s: %d rows", month, count)

    aggregated = sum(counts.values())
    report.rows_aggregated = aggregated
    report.rows_skipped = report.rows_in - aggregated
    report.month_row_counts = dict(counts)
    if report.rows_skipped:
        report.warnings.append(
            f"Skipped {report.rows_skipped} rows with an empty accounting month"
        )

    # 4. Complete the month range
    observed = sorted(sums)
    months = complete_months(observed)
    emitted = set(months)
    left_out = [m for m in observed if m not in emitted]
    if left_out:
        message = (
            f"{len(left_out)} observed month(s) fall outside the {months[0][:4]} "
            f"calendar and were left out: {', '.join(left_out)}"
        )
        logger.warning(message)
        report.warnings.append(message)

    # 5. Build the result table
    data: Table = [[RESULT_MONTH_HEADER, *selection.headers]]
    zeros = [0.0] * len(selection.indexes)
    for month in months:
        data.append([month, *(round_half_away(v) for v in sums.get(month, zeros))])

    return SummaryResult.ok(data, report)
