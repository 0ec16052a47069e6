"""Summary report persistence."""

from __future__ import annotations

from pathlib import Path

from month_summary.io import write_json
from month_summary.models import SummaryReport


def write_summary_report(out_dir: Path, report: SummaryReport) -> Path:
    """Write ``summary_report.json`` into *out_dir* and return the path."""
    return write_json(out_dir / "summary_report.json", report.to_dict())
