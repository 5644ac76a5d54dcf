# ranklist/services/layouts.py
"""
Раскладки рейтинговых списков: какая колонка что означает.

Вид таблицы задаётся данными: номера колонок, признак начала списка и
порог «большого» объединения. Автомат разбора поэтому один, а раскладка
передаётся ему значением.
"""
from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal, InvalidOperation
from typing import Any, Callable, Mapping, Optional

# ───────────────── конвертеры значений ячеек ─────────────────


def _clean_number(text: str) -> str:
    # разделители разрядов; «_» не считается частью числа
    return (text or "").strip().replace("\u00A0", "").replace(" ", "")


def parse_int(text: str) -> Optional[int]:
    raw = _clean_number(text)
    if "_" in raw:
        return None
    try:
        return int(raw)
    except ValueError:
        return None


def parse_decimal(text: str) -> Optional[Decimal]:
    """
    Балл с запятой или точкой: "85,5" → Decimal("85.5").
    Нечисловое и пустое → None.
    """
    raw = _clean_number(text).replace(",", ".")
    if not raw or "_" in raw:
        return None
    try:
        value = Decimal(raw)
    except InvalidOperation:
        return None
    return value if value.is_finite() else None


def parse_int_rate(text: str) -> Optional[Decimal]:
    """Целый балл (старые списки); хранится так же, как дробный."""
    value = parse_int(text)
    return Decimal(value) if value is not None else None


def is_original(text: str) -> bool:
    return text.casefold() == "оригинал"


def is_yes(text: str) -> bool:
    return text.casefold() == "да"


def as_text(text: str) -> str:
    return text


@dataclass(frozen=True)
class FieldSpec:
    """Колонка строки списка → атрибут Applicant."""
    attr: str
    convert: Callable[[str], Any]


@dataclass(frozen=True)
class ListLayout:
    name: str
    # колонка шапки → поле ProgramDraft с названием испытания
    exam_title_columns: Mapping[int, str]
    # колонка строки абитуриента → поле Applicant (кроме 0 и 1)
    fields: Mapping[int, FieldSpec]
    # колонка, начиная с которой строка считается дочитанной
    row_end_column: int
    # список начинается на колонке правее этой ...
    table_header_last_column: Optional[int] = None
    # ... либо на ячейке шапки с этим текстом
    list_trigger: Optional[str] = None
    # минимальный размер объединения, которое считается заголовком блока
    min_merge_cells: int = 10
    is_college: bool = False

    def starts_list(self, column: int, text: str) -> bool:
        if self.table_header_last_column is not None and column > self.table_header_last_column:
            return True
        return self.list_trigger is not None and text.casefold() == self.list_trigger.casefold()

    def is_header_merge(self, number_of_cells: int) -> bool:
        return number_of_cells >= self.min_merge_cells


UNIVERSITY = ListLayout(
    name="university",
    exam_title_columns={4: "exam1_title", 5: "exam2_title", 6: "exam3_title"},
    fields={
        2: FieldSpec("has_original", is_original),
        3: FieldSpec("has_agreement", is_yes),
        4: FieldSpec("exam1_rate", parse_decimal),
        5: FieldSpec("exam2_rate", parse_decimal),
        6: FieldSpec("exam3_rate", parse_decimal),
        7: FieldSpec("ach_rate", parse_decimal),
        8: FieldSpec("total_rate", parse_decimal),
        9: FieldSpec("category", as_text),
        10: FieldSpec("has_preemptive_right", is_yes),
        11: FieldSpec("status", as_text),
        12: FieldSpec("reject_reason", as_text),
    },
    row_end_column=13,
    table_header_last_column=6,
)

COLLEGE = ListLayout(
    name="college",
    exam_title_columns={5: "exam1_title", 7: "exam2_title"},
    fields={
        3: FieldSpec("has_original", is_original),
        5: FieldSpec("exam1_rate", parse_decimal),
        7: FieldSpec("exam2_mark", as_text),
        9: FieldSpec("total_rate", parse_decimal),
        10: FieldSpec("status", as_text),
        11: FieldSpec("reject_reason", as_text),
    },
    row_end_column=12,
    table_header_last_column=7,
    is_college=True,
)

SIMPLE = ListLayout(
    name="simple",
    exam_title_columns={4: "exam1_title", 5: "exam2_title", 6: "exam3_title"},
    fields={
        2: FieldSpec("has_original", is_original),
        3: FieldSpec("has_agreement", is_yes),
        4: FieldSpec("exam1_rate", parse_int_rate),
        5: FieldSpec("exam2_rate", parse_int_rate),
        6: FieldSpec("exam3_rate", parse_int_rate),
        7: FieldSpec("ach_rate", parse_int_rate),
        8: FieldSpec("total_rate", parse_int_rate),
        9: FieldSpec("category", as_text),
    },
    row_end_column=10,
    list_trigger="Категория приема",
    min_merge_cells=1,
)


def initial_layout(parser_mode: str) -> ListLayout:
    """Раскладка до первого заголовка: simple-режим фиксирован, extended начинает с вуза."""
    return SIMPLE if parser_mode == "simple" else UNIVERSITY


def layout_for_level(current: ListLayout, edu_level: str) -> ListLayout:
    """В extended-режиме уровень образования выбирает между вузом и СПО."""
    if current is SIMPLE:
        return SIMPLE
    return COLLEGE if edu_level.casefold().startswith("специалитет спо") else UNIVERSITY
