# ranklist/services/header_classifier.py
"""
Классификация текста объединённых ячеек заголовка списка.

Шапка списка выглядит примерно так (каждая строка — отдельное объединение):

    Институт информационных технологий
    Форма обучения: очная
    Бюджетная основа
    Программа бакалавриата по направлению «Информатика» Профиль: Программирование

Правила из таблицы HEADER_RULES проверяются независимо друг от друга,
поэтому одна ячейка может заполнить несколько полей сразу.
"""
from __future__ import annotations

import re
from dataclasses import dataclass, replace
from typing import Callable, List, Optional, Pattern, Tuple

_LEVEL_RE = re.compile(
    r"бакалавриат|специалитет|магистратур|подготовки кадров|основного общего|среднего общего",
    re.IGNORECASE,
)

# порядок важен: «на базе ... общего образования» встречается и в названиях специалитета
_CANONICAL_LEVELS: List[Tuple[Pattern[str], str]] = [
    (re.compile(r"бакалавриат", re.IGNORECASE), "бакалавриат"),
    (re.compile(r"магистратуры", re.IGNORECASE), "магистратура"),
    (re.compile(r"подготовки кадров высшей квалификации", re.IGNORECASE | re.DOTALL), "аспирантура"),
    (re.compile(r"на базе .* общего образования", re.IGNORECASE | re.DOTALL), "специалитет СПО"),
    (re.compile(r"специалитета", re.IGNORECASE), "специалитет"),
]

_PROGRAM_RE = re.compile(r"«[^»]+»", re.IGNORECASE | re.DOTALL)
_PROFILE_RE = re.compile(r"Профиль:(.*)", re.IGNORECASE | re.DOTALL)
_BASE_EDUCATION_RE = re.compile(r"на базе .* общего образования", re.IGNORECASE | re.DOTALL)
_SPACES_RE = re.compile(r"\s+")


@dataclass(frozen=True)
class HeaderMatch:
    """
    Результат классификации. level_matched=True при edu_level=None означает,
    что текст похож на уровень образования, но канонического названия нет.
    """
    division: Optional[str] = None
    edu_form: Optional[str] = None
    financing: Optional[str] = None
    level_matched: bool = False
    edu_level: Optional[str] = None
    program_title: Optional[str] = None
    profile_title: Optional[str] = None

    @property
    def is_empty(self) -> bool:
        return self == HeaderMatch()


def normalize_title(text: str) -> str:
    """Убирает «ёлочки» и схлопывает любые пробельные символы."""
    text = text.replace("«", "").replace("»", "")
    return _SPACES_RE.sub(" ", text).strip()


def canonical_edu_level(text: str) -> Optional[str]:
    for pattern, title in _CANONICAL_LEVELS:
        if pattern.search(text):
            return title
    return None


def extract_program(text: str) -> Tuple[str, str]:
    """(название программы, профиль) из текста заголовка."""
    program = _PROGRAM_RE.search(text)
    profile = _PROFILE_RE.search(text)
    profile_title = profile.group(1) if profile else ""
    if not normalize_title(profile_title):
        base = _BASE_EDUCATION_RE.search(text)
        profile_title = base.group(0) if base else ""
    return normalize_title(program.group(0) if program else ""), normalize_title(profile_title)


def _division(match: HeaderMatch, text: str) -> HeaderMatch:
    return replace(match, division=text)


def _edu_form(match: HeaderMatch, text: str) -> HeaderMatch:
    return replace(match, edu_form=text)


def _financing(match: HeaderMatch, text: str) -> HeaderMatch:
    return replace(match, financing=text.lower())


def _level_and_program(match: HeaderMatch, text: str) -> HeaderMatch:
    program_title, profile_title = extract_program(text)
    return replace(
        match,
        level_matched=True,
        edu_level=canonical_edu_level(text),
        program_title=program_title,
        profile_title=profile_title,
    )


@dataclass(frozen=True)
class HeaderRule:
    name: str
    pattern: Pattern[str]
    apply: Callable[[HeaderMatch, str], HeaderMatch]


HEADER_RULES: Tuple[HeaderRule, ...] = (
    HeaderRule("division", re.compile(r"факультет|институт", re.IGNORECASE), _division),
    HeaderRule("edu_form", re.compile(r"форма обучения", re.IGNORECASE), _edu_form),
    HeaderRule("financing", re.compile(r"бюджет|договор", re.IGNORECASE), _financing),
    HeaderRule("edu_level", _LEVEL_RE, _level_and_program),
)


def classify_header(text: str) -> HeaderMatch:
    match = HeaderMatch()
    for rule in HEADER_RULES:
        if rule.pattern.search(text):
            match = rule.apply(match, text)
    return match
