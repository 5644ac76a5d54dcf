# ranklist/infrastructure/workbook/reader.py
"""
Чтение листов книги в виде потока непустых ячеек.

.xlsx читается через openpyxl, .xls через xlrd (объединения там доступны
только с formatting_info=True). Индексы строк и колонок считаются с нуля,
значения приводятся к строкам так, как их видит человек: 7.0 → "7", дата → "дд.мм.гггг".
"""
from __future__ import annotations

import datetime
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Iterable, Iterator, List, Tuple

import xlrd
from openpyxl import load_workbook

from ranklist.config.logger import logger
from ranklist.domain.cells import Cell, MergeRegion, find_merge_region
from ranklist.domain.errors import UnsupportedFormatError

SUPPORTED_EXTENSIONS = (".xls", ".xlsx")

RawRow = List[Tuple[int, int, str]]


@dataclass
class SheetFeed:
    name: str
    merge_regions: List[MergeRegion]
    raw_rows: Iterable[RawRow]

    def rows(self) -> Iterator[List[Cell]]:
        for raw in self.raw_rows:
            if not raw:
                continue
            yield [
                Cell(row=r, column=c, value=value, merge=find_merge_region(self.merge_regions, r, c))
                for r, c, value in raw
            ]


def is_supported(path: str | Path) -> bool:
    return Path(path).suffix.lower() in SUPPORTED_EXTENSIONS


def display_value(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, bool):
        return "TRUE" if value else "FALSE"
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    if isinstance(value, datetime.datetime):
        if value.time() == datetime.time(0, 0):
            return value.strftime("%d.%m.%Y")
        return value.strftime("%d.%m.%Y %H:%M")
    if isinstance(value, datetime.date):
        return value.strftime("%d.%m.%Y")
    return str(value).strip()


def _log_overlaps(sheet_name: str, regions: List[MergeRegion]) -> None:
    for i, a in enumerate(regions):
        for b in regions[i + 1:]:
            if (
                a.first_row <= b.last_row and b.first_row <= a.last_row
                and a.first_column <= b.last_column and b.first_column <= a.last_column
            ):
                logger.debug("Лист %s: пересекающиеся объединения %s и %s", sheet_name, a, b)


# ───────────────── .xlsx ─────────────────

def _xlsx_rows(ws) -> Iterator[RawRow]:
    for row in ws.iter_rows():
        raw: RawRow = []
        for cell in row:
            text = display_value(cell.value)
            if text:
                raw.append((cell.row - 1, cell.column - 1, text))
        yield raw


def _read_xlsx(path: Path) -> Iterator[SheetFeed]:
    # read_only=False: в режиме только чтения openpyxl не отдаёт объединения
    wb = load_workbook(filename=path, data_only=True)
    try:
        for ws in wb.worksheets:
            regions = [
                MergeRegion(
                    first_row=cr.min_row - 1,
                    last_row=cr.max_row - 1,
                    first_column=cr.min_col - 1,
                    last_column=cr.max_col - 1,
                )
                for cr in ws.merged_cells.ranges
            ]
            _log_overlaps(ws.title, regions)
            yield SheetFeed(name=ws.title, merge_regions=regions, raw_rows=_xlsx_rows(ws))
    finally:
        wb.close()


# ───────────────── .xls ─────────────────

def _xls_value(cell, datemode: int) -> str:
    if cell.ctype in (xlrd.XL_CELL_EMPTY, xlrd.XL_CELL_BLANK, xlrd.XL_CELL_ERROR):
        return ""
    if cell.ctype == xlrd.XL_CELL_DATE:
        try:
            return display_value(xlrd.xldate_as_datetime(cell.value, datemode))
        except (ValueError, OverflowError):
            return display_value(cell.value)
    if cell.ctype == xlrd.XL_CELL_BOOLEAN:
        return display_value(bool(cell.value))
    return display_value(cell.value)


def _xls_rows(sheet, datemode: int) -> Iterator[RawRow]:
    for r in range(sheet.nrows):
        raw: RawRow = []
        for c, cell in enumerate(sheet.row(r)):
            text = _xls_value(cell, datemode)
            if text:
                raw.append((r, c, text))
        yield raw


def _read_xls(path: Path) -> Iterator[SheetFeed]:
    book = xlrd.open_workbook(str(path), formatting_info=True)
    try:
        for sheet in book.sheets():
            # xlrd: (rlo, rhi, clo, chi), верхние границы не включаются
            regions = [
                MergeRegion(first_row=rlo, last_row=rhi - 1, first_column=clo, last_column=chi - 1)
                for rlo, rhi, clo, chi in sheet.merged_cells
            ]
            _log_overlaps(sheet.name, regions)
            yield SheetFeed(name=sheet.name, merge_regions=regions, raw_rows=_xls_rows(sheet, book.datemode))
    finally:
        book.release_resources()


def read_workbook(path: str | Path) -> Iterator[SheetFeed]:
    """Листы книги в порядке следования."""
    path = Path(path)
    suffix = path.suffix.lower()
    if suffix == ".xlsx":
        return _read_xlsx(path)
    if suffix == ".xls":
        return _read_xls(path)
    raise UnsupportedFormatError(str(path))
