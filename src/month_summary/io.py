"""I/O helpers — read input bytes, decode tables, write artifacts."""

from __future__ import annotations

import csv
import io
import json
import os
from datetime import date, datetime
from pathlib import Path
from typing import Any, BinaryIO, Callable, Union, cast
from zipfile import BadZipFile

import pandas as pd

from month_summary.models import Table

ByteSource = Union[bytes, bytearray, memoryview, str, os.PathLike, BinaryIO]

_XLSX_MAGIC = b"PK\x03\x04"
_XLS_MAGIC = b"\xd0\xcf\x11\xe0"
_XLSX_SUFFIXES = (".xlsx", ".xlsm", ".xltx", ".xltm")
_CSV_ENCODINGS = ("utf-8-sig", "utf-8", "gb18030", "latin-1")

# ── Reading ──────────────────────────────────────────────────────


def read_all_bytes(source: ByteSource) -> bytes:
    """Return the full contents of *source* as bytes.

    *source* may be raw bytes, a filesystem path, or a binary file object.

    Raises
    ------
    FileNotFoundError
        If a path does not exist.
    ValueError
        If a path is a directory, or the source type is unsupported.
    """
    if isinstance(source, (bytes, bytearray, memoryview)):
        return bytes(source)

    if isinstance(source, (str, os.PathLike)):
        path = Path(source)
        if not path.exists():
            raise FileNotFoundError(f"Input file not found: {path}")
        if path.is_dir():
            raise ValueError(f"Input path is a directory, not a file: {path}")
        return path.read_bytes()

    read = getattr(source, "read", None)
    if callable(read):
        data = read()
        if isinstance(data, (bytes, bytearray, memoryview)):
            return bytes(data)
        raise ValueError("Input stream must be opened in binary mode")

    raise ValueError(f"Unsupported input source: {type(source).__name__}")


def _sniff_kind(data: bytes, filename: str | None) -> str:
    suffix = Path(filename).suffix.lower() if filename else ""
    if suffix in _XLSX_SUFFIXES or (not suffix and data.startswith(_XLSX_MAGIC)):
        return "xlsx"
    if suffix == ".xls" or (not suffix and data.startswith(_XLS_MAGIC)):
        return "xls"
    if suffix in ("", ".csv", ".txt"):
        return "csv"
    raise ValueError(f"Unsupported file type: {suffix!r}. Use .xlsx, .xls, or .csv")


def _plain_value(val: Any) -> Any:
    try:
        if pd.isna(val):
            return None
    except (TypeError, ValueError):
        return val
    if isinstance(val, pd.Timestamp):
        return val.to_pydatetime()
    if isinstance(val, (str, datetime, date)):
        return val
    item = getattr(val, "item", None)
    if callable(item):
        return item()
    return val


def frame_to_table(df: pd.DataFrame) -> Table:
    """Convert a header-less DataFrame into rows of plain Python cell values."""
    return [
        [_plain_value(val) for val in row]
        for row in df.itertuples(index=False, name=None)
    ]


def decode_table(data: bytes, filename: str | None = None) -> Table:
    """Decode the first sheet of a spreadsheet into a 2-D table.

    Row 0 is the header row. Empty cells become ``None``.

    Raises
    ------
    ValueError
        If the bytes cannot be parsed as a workbook or CSV.
    """
    if not data:
        return []

    kind = _sniff_kind(data, filename)
    read_excel = cast(Callable[..., pd.DataFrame], getattr(pd, "read_excel"))

    if kind == "xlsx":
        try:
            df = read_excel(
                io.BytesIO(data), sheet_name=0, header=None, dtype=object, engine="openpyxl"
            )
        except (BadZipFile, KeyError, OSError, ValueError) as exc:
            raise ValueError(f"Could not read workbook ({exc})") from exc
        return frame_to_table(df)

    if kind == "xls":
        try:
            df = read_excel(
                io.BytesIO(data), sheet_name=0, header=None, dtype=object, engine="xlrd"
            )
        except ImportError as exc:
            raise ValueError(
                "Unsupported .xls input unless 'xlrd' is installed. "
                "Either convert to .xlsx or add dependency: pip install xlrd"
            ) from exc
        except (KeyError, OSError, ValueError) as exc:
            raise ValueError(f"Could not read workbook ({exc})") from exc
        return frame_to_table(df)

    last_exc: Exception | None = None
    for encoding in _CSV_ENCODINGS:
        try:
            df = pd.read_csv(
                io.BytesIO(data),
                header=None,
                dtype="string",
                sep=None,
                engine="python",
                encoding=encoding,
                encoding_errors="strict",
                keep_default_na=False,
                na_values=[""],
            )
        except pd.errors.EmptyDataError:
            return []
        except (UnicodeDecodeError, csv.Error, pd.errors.ParserError) as exc:
            last_exc = exc
            continue
        return frame_to_table(df)
    raise ValueError("Could not read CSV (decode or parse failed)") from last_exc


# ── Writing ──────────────────────────────────────────────────────


def _json_default(obj: Any) -> Any:
    if isinstance(obj, Path):
        return str(obj)
    if isinstance(obj, (datetime, date)):
        return obj.isoformat()
    item = getattr(obj, "item", None)
    if callable(item):
        converted = item()
        if isinstance(converted, (str, int, float, bool)) or converted is None:
            return converted
    raise TypeError(f"Object of type {type(obj).__name__} is not JSON serializable")


def write_bytes(path: Path, payload: bytes) -> Path:
    """Write *payload* to *path* via a temp file + rename."""
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    tmp_path = path.with_suffix(path.suffix + ".tmp")
    tmp_path.write_bytes(payload)
    tmp_path.replace(path)
    return path


def write_json(path: Path, data: Any) -> Path:
    """Write *data* as pretty-printed JSON to *path* (atomic + deterministic)."""
    payload = json.dumps(
        data,
        indent=2,
        sort_keys=True,
        ensure_ascii=False,
        default=_json_default,
    ) + "\n"
    return write_bytes(path, payload.encode("utf-8"))
