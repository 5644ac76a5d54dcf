import datetime
from dataclasses import dataclass
from decimal import Decimal
from enum import Enum
from typing import Optional


class ReferenceKind(str, Enum):
    """Справочники, которые дедуплицируются по точному совпадению названия."""

    DIVISION = "division"
    EDU_FORM = "edu_form"
    FINANCING = "financing"
    EDU_LEVEL = "edu_level"


@dataclass
class Division:
    """
    Подразделение (факультет / институт).
    title — текст объединённой ячейки заголовка как есть.
    """
    title: str
    id: Optional[int] = None


@dataclass
class EduForm:
    """Форма обучения: «Форма обучения: очная» и т.п."""
    title: str
    id: Optional[int] = None


@dataclass
class Financing:
    """Основа обучения (бюджет / договор), title в нижнем регистре."""
    title: str
    id: Optional[int] = None


@dataclass
class EduLevel:
    """
    Уровень образования. Только канонические названия:
    бакалавриат, магистратура, аспирантура, специалитет, специалитет СПО.
    """
    title: str
    id: Optional[int] = None


@dataclass
class EduProgram:
    """
    Образовательная программа.
    Уникальна по (title, profile_title, edu_level_id, division_id).
    Названия испытаний берутся из шапки таблицы первого встреченного списка.
    """
    title: str
    profile_title: str
    edu_level_id: Optional[int]
    division_id: Optional[int]
    exam1_title: Optional[str] = None
    exam2_title: Optional[str] = None
    exam3_title: Optional[str] = None
    id: Optional[int] = None


@dataclass
class Applicant:
    """
    Строка рейтингового списка.
    order — порядковый номер строки в блоке (с 1),
    ranked_order — номер из первой колонки, если он число.
    """
    order: int = 0
    ranked_order: Optional[int] = None
    name: Optional[str] = None
    has_original: bool = False
    has_agreement: bool = False
    exam1_rate: Optional[Decimal] = None
    exam2_rate: Optional[Decimal] = None
    exam3_rate: Optional[Decimal] = None
    exam2_mark: Optional[str] = None  # у СПО второе испытание — отметка, а не балл
    ach_rate: Optional[Decimal] = None  # баллы за индивидуальные достижения
    total_rate: Optional[Decimal] = None
    category: Optional[str] = None
    has_preemptive_right: bool = False
    status: Optional[str] = None
    reject_reason: Optional[str] = None
    edu_program_id: Optional[int] = None
    edu_form_id: Optional[int] = None
    financing_id: Optional[int] = None
    id: Optional[int] = None


@dataclass
class SourceFile:
    """Запись аудита: какой файл и в каком виде был импортирован."""
    filename: str
    last_write_time_utc: datetime.datetime
    length: int
    id: Optional[int] = None
