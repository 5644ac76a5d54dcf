# ranklist/services/cell_parser.py
"""
Автомат разбора рейтингового списка ячейка за ячейкой.

    INITIAL → HEADER → TABLE_HEADER → LIST
                 ↑                      │
                 └──────────────────────┘  (новое «большое» объединение)

Автомат не обращается к хранилищу: каждый шаг принимает состояние и ячейку
и возвращает новое состояние, сигнал для обходчика строк и список команд
(создать справочник, программу, абитуриента), которые исполняет вызывающий.
Справочники в состоянии хранятся по названию, идентификаторы проставляет
исполнитель команд.
"""
from __future__ import annotations

from dataclasses import dataclass, replace
from enum import Enum
from typing import List, NamedTuple, Optional, Tuple, Union

from ranklist.config.logger import logger
from ranklist.domain.cells import Cell
from ranklist.domain.errors import ParserLoopError
from ranklist.domain.models import Applicant, ReferenceKind
from ranklist.services.header_classifier import classify_header
from ranklist.services.layouts import ListLayout, initial_layout, layout_for_level, parse_int

TABLE_HEADER_MARKER = "№ п/п"

# INITIAL→HEADER и LIST→HEADER: единственные переходы без потребления ячейки
MAX_REDISPATCHES = 2


class ParserPhase(Enum):
    INITIAL = "initial"
    HEADER = "header"
    TABLE_HEADER = "table_header"
    LIST = "list"


class CellSignal(Enum):
    AGAIN = "again"  # разобрать ту же ячейку ещё раз
    NEXT_CELL = "next_cell"
    SKIP_ROW = "skip_row"  # остаток строки не нужен


@dataclass(frozen=True)
class ProgramDraft:
    """Программа из заголовка блока; сохраняется, когда дочитана шапка таблицы."""
    title: str
    profile_title: str
    edu_level: str
    division: Optional[str]
    exam1_title: Optional[str] = None
    exam2_title: Optional[str] = None
    exam3_title: Optional[str] = None


# ───────────────── команды для исполнителя ─────────────────

@dataclass(frozen=True)
class UpsertReference:
    kind: ReferenceKind
    title: str


@dataclass(frozen=True)
class UpsertProgram:
    program: ProgramDraft


@dataclass(frozen=True)
class InsertApplicant:
    applicant: Applicant
    program: ProgramDraft
    edu_form: str
    financing: str


@dataclass(frozen=True)
class SkipApplicant:
    applicant: Applicant
    reason: str


Command = Union[UpsertReference, UpsertProgram, InsertApplicant, SkipApplicant]


@dataclass(frozen=True)
class ParserState:
    layout: ListLayout
    phase: ParserPhase = ParserPhase.INITIAL
    division: Optional[str] = None
    edu_form: Optional[str] = None
    financing: Optional[str] = None
    edu_level: Optional[str] = None
    program: Optional[ProgramDraft] = None
    applicant: Optional[Applicant] = None
    order: int = 0
    skip_block: bool = False

    @classmethod
    def initial(cls, parser_mode: str = "extended") -> "ParserState":
        return cls(layout=initial_layout(parser_mode))

    @property
    def is_college_list(self) -> bool:
        return self.layout.is_college


class CellStep(NamedTuple):
    state: ParserState
    signal: CellSignal
    commands: Tuple[Command, ...] = ()
    redispatches: int = 0


# ───────────────── HEADER ─────────────────

def _is_header_merge(state: ParserState, cell: Cell) -> bool:
    return cell.merge is not None and state.layout.is_header_merge(cell.merge.number_of_cells)


def _parse_header(state: ParserState, cell: Cell) -> CellStep:
    if not cell.is_merged:
        if cell.column == 0 and cell.value.casefold() == TABLE_HEADER_MARKER.casefold():
            return CellStep(replace(state, phase=ParserPhase.TABLE_HEADER), CellSignal.NEXT_CELL)
        return CellStep(state, CellSignal.NEXT_CELL)

    if not _is_header_merge(state, cell):
        return CellStep(state, CellSignal.NEXT_CELL)

    match = classify_header(cell.value)
    commands: List[Command] = []

    if match.division is not None:
        state = replace(state, division=match.division)
        commands.append(UpsertReference(ReferenceKind.DIVISION, match.division))
    if match.edu_form is not None:
        state = replace(state, edu_form=match.edu_form)
        commands.append(UpsertReference(ReferenceKind.EDU_FORM, match.edu_form))
    if match.financing is not None:
        state = replace(state, financing=match.financing)
        commands.append(UpsertReference(ReferenceKind.FINANCING, match.financing))

    if match.level_matched:
        if match.edu_level is None:
            logger.warning("Не удалось определить уровень образования: %r", cell.value)
            state = replace(state, edu_level=None, program=None)
        else:
            commands.append(UpsertReference(ReferenceKind.EDU_LEVEL, match.edu_level))
            program = ProgramDraft(
                title=match.program_title or "",
                profile_title=match.profile_title or "",
                edu_level=match.edu_level,
                division=state.division,
            )
            state = replace(
                state,
                edu_level=match.edu_level,
                program=program,
                layout=layout_for_level(state.layout, match.edu_level),
            )
    elif match.is_empty:
        logger.debug("Объединённая ячейка (%d, %d) не распознана: %r", cell.row, cell.column, cell.value)

    return CellStep(state, CellSignal.NEXT_CELL, tuple(commands))


# ───────────────── TABLE_HEADER ─────────────────

def _start_list(state: ParserState) -> CellStep:
    started = replace(state, phase=ParserPhase.LIST, order=0, applicant=None, skip_block=False)

    missing = [
        name for name, value in (
            ("программа", state.program),
            ("форма обучения", state.edu_form),
            ("основа обучения", state.financing),
        )
        if value is None
    ]
    if missing:
        logger.warning("Список без заголовка (%s), строки блока пропускаются", ", ".join(missing))
        return CellStep(replace(started, skip_block=True), CellSignal.SKIP_ROW)

    return CellStep(started, CellSignal.SKIP_ROW, (UpsertProgram(state.program),))


def _parse_table_header(state: ParserState, cell: Cell) -> CellStep:
    attr = state.layout.exam_title_columns.get(cell.column)
    if attr is not None:
        if state.program is not None:
            state = replace(state, program=replace(state.program, **{attr: cell.value}))
        return CellStep(state, CellSignal.NEXT_CELL)

    if state.layout.starts_list(cell.column, cell.value):
        return _start_list(state)

    return CellStep(state, CellSignal.NEXT_CELL)


# ───────────────── LIST ─────────────────

def _complete_applicant(state: ParserState) -> Tuple[ParserState, Tuple[Command, ...]]:
    applicant = state.applicant
    if applicant is None:
        return state, ()

    state = replace(state, applicant=None)
    if state.skip_block:
        return state, (SkipApplicant(applicant, "блок без программы, формы или основы обучения"),)
    return state, (InsertApplicant(applicant, state.program, state.edu_form, state.financing),)


def _new_header_block(state: ParserState) -> ParserState:
    """Контекст блока действует до следующего заголовка."""
    return replace(
        state,
        phase=ParserPhase.HEADER,
        division=None,
        edu_form=None,
        financing=None,
        edu_level=None,
        program=None,
        applicant=None,
        skip_block=False,
    )


def _parse_list(state: ParserState, cell: Cell) -> CellStep:
    if _is_header_merge(state, cell):
        state, commands = _complete_applicant(state)
        return CellStep(_new_header_block(state), CellSignal.AGAIN, commands)

    if cell.column == 0:
        state, commands = _complete_applicant(state)
        order = state.order + 1
        applicant = Applicant(order=order, ranked_order=parse_int(cell.value))
        return CellStep(replace(state, order=order, applicant=applicant), CellSignal.NEXT_CELL, commands)

    if state.applicant is None:
        # строка без номера в первой колонке — не строка абитуриента
        return CellStep(state, CellSignal.NEXT_CELL)

    if cell.column >= state.layout.row_end_column:
        state, commands = _complete_applicant(state)
        return CellStep(state, CellSignal.SKIP_ROW, commands)

    if cell.column == 1:
        return CellStep(replace(state, applicant=replace(state.applicant, name=cell.value)), CellSignal.NEXT_CELL)

    spec = state.layout.fields.get(cell.column)
    if spec is not None:
        value = spec.convert(cell.value)
        if value is not None:
            state = replace(state, applicant=replace(state.applicant, **{spec.attr: value}))
    return CellStep(state, CellSignal.NEXT_CELL)


# ───────────────── публичный API ─────────────────

def parse_cell_once(state: ParserState, cell: Cell) -> CellStep:
    if state.phase is ParserPhase.INITIAL:
        return CellStep(replace(state, phase=ParserPhase.HEADER), CellSignal.AGAIN)
    if state.phase is ParserPhase.HEADER:
        return _parse_header(state, cell)
    if state.phase is ParserPhase.TABLE_HEADER:
        return _parse_table_header(state, cell)
    return _parse_list(state, cell)


def parse_cell(state: ParserState, cell: Cell) -> CellStep:
    """
    Разбирает ячейку столько раз, сколько требуют переходы состояний.
    Команды всех проходов возвращаются одним кортежем.
    """
    commands: List[Command] = []
    for redispatches in range(MAX_REDISPATCHES + 1):
        step = parse_cell_once(state, cell)
        commands.extend(step.commands)
        state = step.state
        if step.signal is not CellSignal.AGAIN:
            return CellStep(state, step.signal, tuple(commands), redispatches)
    raise ParserLoopError(
        f"Cell ({cell.row}, {cell.column}) needed more than {MAX_REDISPATCHES} re-dispatches"
    )


def end_row(state: ParserState) -> CellStep:
    """
    Строка кончилась раньше колонки конца строки (пустые ячейки справа
    не приходят): дописываем начатого абитуриента. Шапка таблицы,
    оборвавшаяся до колонки начала списка, на этом заканчивается.
    """
    if state.phase is ParserPhase.TABLE_HEADER and state.layout.table_header_last_column is not None:
        started = _start_list(state)
        return CellStep(started.state, CellSignal.NEXT_CELL, started.commands)
    if state.phase is not ParserPhase.LIST:
        return CellStep(state, CellSignal.NEXT_CELL)
    state, commands = _complete_applicant(state)
    return CellStep(state, CellSignal.NEXT_CELL, commands)
