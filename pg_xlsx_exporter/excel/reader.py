from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass
from pathlib import Path
from typing import Any

import pandas as pd

"""Exported workbook reader (inspection).

Used by `--inspect-output` and the integration tests to read a workbook
produced by the exporter back: row 1 is the header, the rest are data rows.
Every cell is read as text so the string-only contract stays visible.
"""


class SheetHeaderError(Exception):
    """Raised when a sheet has no header row."""


@dataclass
class SheetData:
    sheet_name: str
    columns: list[str]
    rows: list[list[str | None]]  # データ行 (ヘッダ除く, 取得順)


def read_exported_workbook(path: Path, target_sheets: Iterable[str] | None = None) -> dict[str, pd.DataFrame]:
    """Read an exported workbook returning raw DataFrames keyed by sheet name.

    Parameters
    ----------
    path: xlsx ファイルパス
    target_sheets: 対象シート制限 (None なら全シート, 順序はブック順)
    """
    dfs: dict[str, pd.DataFrame] = {}
    with pd.ExcelFile(path, engine="openpyxl") as xls:
        for name in xls.sheet_names:
            if target_sheets is not None and str(name) not in target_sheets:
                continue
            # keep_default_na=False: "NA" / "null" 等の文字列をそのまま残す
            df = xls.parse(name, header=None, dtype=str, keep_default_na=False, na_values=[""])
            dfs[str(name)] = df
    return dfs


def normalize_sheet(df: pd.DataFrame, sheet_name: str) -> SheetData:
    """Split a raw DataFrame into header (first row) and data rows."""
    if df.shape[0] < 1:
        raise SheetHeaderError(f"sheet '{sheet_name}' has no header row")
    columns = [str(c) for c in df.iloc[0].tolist()]
    rows: list[list[str | None]] = []
    for _, raw in df.iloc[1:].iterrows():
        rows.append([None if pd.isna(v) else _as_text(v) for v in raw.tolist()])
    return SheetData(sheet_name=sheet_name, columns=columns, rows=rows)


def _as_text(value: Any) -> str:
    return value if isinstance(value, str) else str(value)
