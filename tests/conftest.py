"""Shared fixtures: in-memory database and generated ranking-list workbooks."""

from __future__ import annotations

from pathlib import Path
from typing import Any, Sequence

import openpyxl
import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

from ranklist.infrastructure.db.models import Base
from ranklist.infrastructure.db.repositories.applicants_repository import ApplicantsRepository

# ---------------------------------------------------------------------------
# Typical header blocks
# ---------------------------------------------------------------------------

IT_INSTITUTE = "Институт информационных технологий"
FULL_TIME = "Форма обучения: очная"
BUDGET = "Бюджетная основа"
BACHELOR_CS = "Программа бакалавриата по направлению «Информатика» Профиль: Программирование"
COLLEGE_IS = (
    "Программа подготовки специалистов среднего звена «Информационные системы»\n"
    "на базе основного общего образования"
)

UNIVERSITY_TABLE_HEADER = [
    "№ п/п", "ФИО", "Оригинал/копия", "Согласие", "Математика", "Русский язык", "Информатика",
    "ИД", "Сумма баллов", "Категория", "Преимущественное право", "Статус", "Причина отказа",
]

COLLEGE_TABLE_HEADER = [
    "№ п/п", "ФИО", "СНИЛС", "Оригинал/копия", "", "Средний балл аттестата", "",
    "Рисунок", "", "Итого", "Статус", "Причина отказа",
]

SHEET_WIDTH = 13


class SheetBuilder:
    """Writes header blocks and list rows into an openpyxl worksheet."""

    def __init__(self, ws, width: int = SHEET_WIDTH):
        self.ws = ws
        self.width = width
        self.row = 1

    def merged(self, text: str, width: int | None = None) -> "SheetBuilder":
        self.ws.cell(row=self.row, column=1, value=text)
        self.ws.merge_cells(
            start_row=self.row, start_column=1, end_row=self.row, end_column=width or self.width
        )
        self.row += 1
        return self

    def values(self, values: Sequence[Any]) -> "SheetBuilder":
        for col, value in enumerate(values, start=1):
            if value is not None and value != "":
                self.ws.cell(row=self.row, column=col, value=value)
        self.row += 1
        return self

    def blank(self) -> "SheetBuilder":
        self.row += 1
        return self

    def block(
        self,
        headers: Sequence[str],
        table_header: Sequence[Any],
        rows: Sequence[Sequence[Any]],
    ) -> "SheetBuilder":
        for text in headers:
            self.merged(text)
        self.values(table_header)
        for values in rows:
            self.values(values)
        return self


def university_row(n: int, name: str, total: Any = 250, original: str = "Оригинал") -> list:
    return [n, name, original, "Да", 80, 75.5, 90, 5, total, "Общий конкурс", "Нет", "Рекомендован", ""]


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture()
def session():
    engine = create_engine("sqlite:///:memory:", future=True)
    Base.metadata.create_all(engine)
    Session = sessionmaker(bind=engine, future=True)
    s = Session()
    try:
        yield s
    finally:
        s.close()
        engine.dispose()


@pytest.fixture()
def repo(session) -> ApplicantsRepository:
    return ApplicantsRepository(session)


@pytest.fixture()
def xlsx_factory(tmp_path: Path):
    """Factory: build(callback per sheet) -> path of a saved .xlsx workbook.

    Usage::

        path = xlsx_factory({"Лист1": lambda b: b.block(...)})
    """

    def _build(sheets: dict, filename: str = "lists.xlsx") -> Path:
        wb = openpyxl.Workbook()
        wb.remove(wb.active)
        for title, fill in sheets.items():
            fill(SheetBuilder(wb.create_sheet(title)))
        path = tmp_path / filename
        wb.save(path)
        return path

    return _build
