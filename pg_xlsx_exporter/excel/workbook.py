from __future__ import annotations

import logging
import os
import tempfile
from pathlib import Path

from openpyxl import Workbook
from openpyxl.cell.cell import ILLEGAL_CHARACTERS_RE
from openpyxl.worksheet.worksheet import Worksheet

from ..exceptions import PersistError

"""Spreadsheet sink on top of openpyxl.

The writer code only sees the create-sheet / create-row / create-cell
abstraction with 0-based indices; this module maps it to openpyxl's 1-based
cells. Cells of disjoint rows may be created from several threads at once:
each cell is an independent entry of the worksheet's cell mapping.
"""

__all__ = [
    "WorkbookSink",
    "SheetHandle",
    "RowHandle",
    "CellHandle",
    "persist_workbook",
]

logger = logging.getLogger(__name__)


def _escape_control_chars(value: str) -> str:
    """Write control characters openpyxl rejects in the OOXML `_xHHHH_` form Excel decodes."""
    return ILLEGAL_CHARACTERS_RE.sub(lambda m: f"_x{ord(m.group(0)):04X}_", value)


class CellHandle:
    __slots__ = ("_ws", "_row", "_col")

    def __init__(self, ws: Worksheet, row: int, col: int) -> None:
        self._ws = ws
        self._row = row
        self._col = col

    def set_value(self, value: str | None) -> None:
        cell = self._ws.cell(row=self._row + 1, column=self._col + 1)
        if value is None:
            cell.value = None
            return
        cell.value = _escape_control_chars(value)
        # always text, never a formula or a number
        cell.data_type = "s"


class RowHandle:
    __slots__ = ("_ws", "index")

    def __init__(self, ws: Worksheet, index: int) -> None:
        self._ws = ws
        self.index = index

    def create_cell(self, index: int) -> CellHandle:
        if index < 0:
            raise IndexError(f"cell index must be >= 0, got {index}")
        return CellHandle(self._ws, self.index, index)


class SheetHandle:
    def __init__(self, ws: Worksheet) -> None:
        self._ws = ws

    @property
    def name(self) -> str:
        return self._ws.title

    @property
    def worksheet(self) -> Worksheet:
        return self._ws

    def create_row(self, index: int) -> RowHandle:
        if index < 0:
            raise IndexError(f"row index must be >= 0, got {index}")
        return RowHandle(self._ws, index)


class WorkbookSink:
    """Ordered, append-only collection of sheets backed by an openpyxl Workbook."""

    def __init__(self) -> None:
        self.workbook = Workbook()
        # Workbook() starts with a default "Sheet"; the export owns every sheet.
        self.workbook.remove(self.workbook.active)
        self._sheets: list[SheetHandle] = []

    def create_sheet(self, name: str) -> SheetHandle:
        # openpyxl de-duplicates repeated titles ("ID", "ID1", ...)
        handle = SheetHandle(self.workbook.create_sheet(title=name))
        if handle.name != name:
            logger.warning("sheet name %r already used; writing to sheet %r instead", name, handle.name)
        self._sheets.append(handle)
        return handle

    @property
    def sheets(self) -> list[SheetHandle]:
        return list(self._sheets)


def persist_workbook(sink: WorkbookSink, destination: Path) -> Path:
    """Serialize the workbook once, atomically.

    The file is saved next to ``destination`` under a temporary name and then
    renamed, so a failed save never leaves a partial output file.

    Raises:
        PersistError: the workbook has no sheets, or saving/renaming failed
    """
    if not sink.sheets:
        raise PersistError("workbook has no sheets")
    destination = Path(destination)
    tmp_path: Path | None = None
    try:
        fd, tmp_name = tempfile.mkstemp(prefix=f".{destination.name}.", suffix=".tmp", dir=destination.parent)
        os.close(fd)
        tmp_path = Path(tmp_name)
        sink.workbook.save(tmp_path)
        os.replace(tmp_path, destination)
    except Exception as e:
        if tmp_path is not None:
            tmp_path.unlink(missing_ok=True)
        raise PersistError(f"failed to write workbook {destination}: {e}") from e
    logger.debug("workbook persisted path=%s sheets=%d", destination, len(sink.sheets))
    return destination
