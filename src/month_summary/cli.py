"""CLI entry point for month-summary."""

from __future__ import annotations

import logging
from collections.abc import Callable
from pathlib import Path

import typer
from rich.console import Console
from rich.logging import RichHandler
from rich.panel import Panel
from rich.table import Table as RichTable

from month_summary import DEFAULT_OUTPUT_NAME, __version__
from month_summary.io import decode_table, read_all_bytes, write_bytes, write_json
from month_summary.keywords import ColumnCategory, KeywordPolicy, load_policy
from month_summary.models import RunManifest, SummaryReport, Table
from month_summary.pipeline import summarize_by_accounting_month
from month_summary.qc import write_summary_report
from month_summary.service import process_spreadsheet
from month_summary.utils import sha256_bytes, utcnow_iso

app = typer.Typer(
    name="msummary",
    help="month-summary — Roll up spreadsheet measures by accounting month.",
    add_completion=False,
    no_args_is_help=True,
)
console = Console()

_PREVIEW_ROWS = 12


def _noop(*_args: object, **_kwargs: object) -> None:
    return None


def _printer(quiet: bool) -> Callable[..., None]:
    return _noop if quiet else console.print


def _err(msg: str) -> None:
    console.print(f"[red]x[/red] {msg}")


# ── Helpers ──────────────────────────────────────────────────────


def _version_callback(value: bool) -> None:
    if value:
        console.print(f"month-summary v{__version__}")
        raise typer.Exit()


def _configure_logging(ctx: typer.Context, verbose: bool) -> None:
    """Route ``month_summary`` debug logs through rich for this command only.

    Any handler left by an earlier invocation in the same process is
    removed first; the verbose handler is detached when *ctx* closes.
    """
    logger = logging.getLogger("month_summary")
    _reset_logging(logger)
    if not verbose:
        return
    handler = RichHandler(console=console, show_path=False, markup=False)
    logger.addHandler(handler)
    logger.setLevel(logging.DEBUG)
    ctx.call_on_close(lambda: _reset_logging(logger))


def _reset_logging(logger: logging.Logger) -> None:
    for handler in [h for h in logger.handlers if isinstance(h, RichHandler)]:
        logger.removeHandler(handler)
    logger.setLevel(logging.NOTSET)


def _write_manifest(
    out_dir: Path,
    input_file: Path,
    run_id: str,
    created_at: str,
    *,
    rows_in: int = 0,
    rows_out: int = 0,
    sha256: str = "",
    status: str = "success",
    error_code: int | None = None,
    error_message: str = "",
) -> Path:
    manifest = RunManifest(
        run_id=run_id,
        version=__version__,
        input_path=str(input_file.resolve()),
        output_dir=str(out_dir.resolve()),
        created_at_utc=created_at,
        rows_in=rows_in,
        rows_out=rows_out,
        sha256=sha256,
        status=status,
        error_code=error_code,
        error_message=error_message,
    )
    return write_json(out_dir / "run_manifest.json", manifest.to_dict())


def _write_failure_artifacts(
    out_dir: Path,
    input_file: Path,
    run_id: str,
    created_at: str,
    *,
    message: str,
    report: SummaryReport | None = None,
    sha256: str = "",
    error_code: int = 2,
) -> tuple[Path, Path]:
    if report is None:
        report = SummaryReport(warnings=[message])
    else:
        report.warnings.append(message)
    report_path = write_summary_report(out_dir, report)
    manifest_path = _write_manifest(
        out_dir,
        input_file,
        run_id,
        created_at,
        rows_in=report.rows_in,
        sha256=sha256,
        status="failed",
        error_code=error_code,
        error_message=message,
    )
    return report_path, manifest_path


def _fail(
    out_dir: Path,
    input_file: Path,
    run_id: str,
    created_at: str,
    *,
    message: str,
    report: SummaryReport | None = None,
    sha256: str = "",
    error_code: int = 2,
) -> typer.Exit:
    report_path, manifest_path = _write_failure_artifacts(
        out_dir,
        input_file,
        run_id,
        created_at,
        message=message,
        report=report,
        sha256=sha256,
        error_code=error_code,
    )
    _err(message)
    console.print(f"  Report   -> {report_path}")
    console.print(f"  Manifest -> {manifest_path}")
    return typer.Exit(code=error_code)


def _load_policy_or_fail(
    profile: Path | None, out_dir: Path, input_file: Path, run_id: str, created_at: str
) -> KeywordPolicy:
    try:
        return load_policy(profile)
    except ValueError as exc:
        raise _fail(out_dir, input_file, run_id, created_at, message=str(exc)) from None


def _format_cell(value: object) -> str:
    if isinstance(value, float):
        return f"{value:,.2f}"
    return "" if value is None else str(value)


def _preview_table(data: Table, *, max_rows: int = _PREVIEW_ROWS) -> RichTable:
    tbl = RichTable(title="Summary Preview", show_lines=False)
    for header in data[0]:
        tbl.add_column(str(header), justify="right" if tbl.columns else "left")
    for row in data[1:max_rows + 1]:
        tbl.add_row(*(_format_cell(v) for v in row))
    if len(data) - 1 > max_rows:
        tbl.caption = f"{len(data) - 1 - max_rows} more rows"
    return tbl


def _print_warnings(report: SummaryReport) -> None:
    for w in report.warnings:
        console.print(f"  [yellow]![/yellow] {w}")


# ── Callbacks ────────────────────────────────────────────────────


@app.callback()
def main(
    version: bool | None = typer.Option(
        None, "--version", "-V",
        help="Show version and exit.",
        callback=_version_callback,
        is_eager=True,
    ),
) -> None:
    """month-summary CLI."""


# ── run command ──────────────────────────────────────────────────


@app.command()
def run(
    ctx: typer.Context,
    input_file: Path = typer.Option(
        ..., "--input", "-i",
        help="Path to XLSX, XLS or CSV input file.",
        exists=True, readable=True,
    ),
    out_dir: Path = typer.Option(
        Path("output"), "--out-dir", "-o",
        help="Output directory for summary workbook + report + manifest.",
    ),
    output_name: str = typer.Option(
        DEFAULT_OUTPUT_NAME, "--output-name",
        help="File name of the summary workbook.",
    ),
    profile: Path | None = typer.Option(
        None, "--profile",
        help="Profile file with extra header keywords (month=/include=/exclude= lines).",
    ),
    quiet: bool = typer.Option(
        False, "--quiet", "-q",
        help="Suppress informational output; still writes all artifacts.",
    ),
    verbose: bool = typer.Option(
        False, "--verbose", "-v",
        help="Show engine diagnostics (headers, columns, per-month row counts).",
    ),
) -> None:
    """Summarize a spreadsheet by accounting month and write the workbook."""
    echo = _printer(quiet)
    _configure_logging(ctx, verbose)
    created_at = utcnow_iso()
    run_id = created_at
    out_dir.mkdir(parents=True, exist_ok=True)
    policy = _load_policy_or_fail(profile, out_dir, input_file, run_id, created_at)

    if not quiet:
        console.print(Panel(
            f"[bold]month-summary[/bold] v{__version__}\n"
            f"Input:  {input_file}\nOutput: {out_dir / output_name}",
            title="Summary Start", border_style="blue",
        ))
        if profile:
            console.print(f"  Using profile: {profile}")

    # ── Read ─────────────────────────────────────────────────────
    echo("[blue]>[/blue] Reading input file …")
    try:
        data = read_all_bytes(input_file)
    except (FileNotFoundError, ValueError, OSError) as exc:
        raise _fail(out_dir, input_file, run_id, created_at, message=str(exc)) from None
    sha256 = sha256_bytes(data)

    try:
        # ── Decode + summarize + encode ──────────────────────────
        echo("[blue]>[/blue] Summarizing by accounting month …")
        try:
            result = process_spreadsheet(
                data, filename=input_file.name, output_name=output_name, policy=policy
            )
        except ValueError as exc:
            raise _fail(
                out_dir, input_file, run_id, created_at, message=str(exc), sha256=sha256
            ) from None

        if not result.success or result.content is None or result.data is None:
            raise _fail(
                out_dir,
                input_file,
                run_id,
                created_at,
                message=result.message,
                report=result.report,
                sha256=sha256,
            )

        report = result.report
        report_path = write_summary_report(out_dir, report)
        echo(f"  Report -> {report_path}")
        if not quiet:
            console.print(
                f"  Month column: {report.month_column}  |  "
                f"measures: {', '.join(report.selected_columns)}"
            )
            _print_warnings(report)

        # ── Write workbook ───────────────────────────────────────
        echo(f"[blue]>[/blue] Writing {output_name} …")
        workbook_path = write_bytes(out_dir / output_name, result.content)
        echo(f"  Workbook -> {workbook_path}")

        manifest_path = _write_manifest(
            out_dir,
            input_file,
            run_id,
            created_at,
            rows_in=report.rows_in,
            rows_out=len(result.data) - 1,
            sha256=sha256,
        )
        echo(f"  Manifest -> {manifest_path}")

        if not quiet:
            console.print(_preview_table(result.data))
            console.print(Panel(
                f"[green]{result.message}[/green] — {len(result.data) - 1} months -> "
                f"{workbook_path}",
                title="Summary Complete", border_style="green",
            ))
    except typer.Exit:
        raise
    except Exception as exc:
        raise _fail(
            out_dir,
            input_file,
            run_id,
            created_at,
            message=f"Unexpected internal error: {exc}",
            sha256=sha256,
            error_code=1,
        ) from exc


# ── inspect command ──────────────────────────────────────────────


@app.command()
def inspect(
    ctx: typer.Context,
    input_file: Path = typer.Option(
        ..., "--input", "-i",
        help="Path to XLSX, XLS or CSV input file.",
        exists=True, readable=True,
    ),
    out_dir: Path = typer.Option(
        Path("output"), "--out-dir", "-o",
        help="Output directory for report + manifest.",
    ),
    profile: Path | None = typer.Option(
        None, "--profile",
        help="Profile file with extra header keywords (month=/include=/exclude= lines).",
    ),
    quiet: bool = typer.Option(
        False, "--quiet", "-q",
        help="Suppress informational output; still writes report + manifest.",
    ),
    verbose: bool = typer.Option(
        False, "--verbose", "-v",
        help="Show engine diagnostics (headers, columns, per-month row counts).",
    ),
) -> None:
    """Show how columns would be classified without writing a workbook.

    Writes summary_report.json + run_manifest.json only.
    Exit 0 = OK, exit 2 = the file cannot be summarized.
    """
    _configure_logging(ctx, verbose)
    created_at = utcnow_iso()
    run_id = created_at
    out_dir.mkdir(parents=True, exist_ok=True)
    policy = _load_policy_or_fail(profile, out_dir, input_file, run_id, created_at)

    if not quiet:
        console.print(Panel(
            f"[bold]month-summary[/bold] v{__version__}  [dim]inspect mode[/dim]\n"
            f"Input: {input_file}",
            title="Inspect", border_style="cyan",
        ))

    try:
        data = read_all_bytes(input_file)
        sha256 = sha256_bytes(data)
        table = decode_table(data, input_file.name)
    except (FileNotFoundError, ValueError, OSError) as exc:
        raise _fail(out_dir, input_file, run_id, created_at, message=str(exc)) from None

    try:
        result = summarize_by_accounting_month(table, policy)
        report = result.report

        if not result.success:
            raise _fail(
                out_dir,
                input_file,
                run_id,
                created_at,
                message=result.message,
                report=report,
                sha256=sha256,
            )

        report_path = write_summary_report(out_dir, report)
        manifest_path = _write_manifest(
            out_dir,
            input_file,
            run_id,
            created_at,
            rows_in=report.rows_in,
            rows_out=len(result.data or []) - 1,
            sha256=sha256,
        )

        if not quiet:
            tbl = RichTable(title="Column Classification", show_lines=True)
            tbl.add_column("Column", style="bold")
            tbl.add_column("Result")
            tbl.add_row(report.month_column, "[cyan]month[/cyan]")
            for header in report.selected_columns:
                tbl.add_row(header, "[green]aggregated[/green]")
            for header, reason in report.excluded_columns.items():
                tbl.add_row(header, f"[dim]skipped ({reason})[/dim]")
            tbl.add_row("Rows in", str(report.rows_in))
            tbl.add_row("Rows skipped", str(report.rows_skipped))
            tbl.add_row("Months", ", ".join(report.month_row_counts) or "none")
            console.print(tbl)
            _print_warnings(report)
            include = ", ".join(policy.labels(ColumnCategory.include))
            console.print(f"  [dim]Measure keywords: {include}[/dim]")
        console.print(f"  Report   -> {report_path}")
        console.print(f"  Manifest -> {manifest_path}")
    except typer.Exit:
        raise
    except Exception as exc:
        raise _fail(
            out_dir,
            input_file,
            run_id,
            created_at,
            message=f"Unexpected internal error: {exc}",
            sha256=sha256,
            error_code=1,
        ) from exc
