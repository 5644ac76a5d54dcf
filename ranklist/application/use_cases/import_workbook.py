from __future__ import annotations

import datetime
import os
from dataclasses import dataclass, replace
from pathlib import Path
from typing import Callable, Dict, Iterable, Iterator, Optional, Tuple

from sqlalchemy.exc import SQLAlchemyError

from ranklist.config.logger import logger
from ranklist.domain.errors import UnsupportedFormatError
from ranklist.domain.models import EduProgram, ReferenceKind, SourceFile
from ranklist.infrastructure.db.repositories.applicants_repository import ApplicantsRepository
from ranklist.infrastructure.workbook.reader import SheetFeed, is_supported, read_workbook
from ranklist.services.cell_parser import (
    Command,
    CellSignal,
    InsertApplicant,
    ParserState,
    ProgramDraft,
    SkipApplicant,
    UpsertProgram,
    UpsertReference,
    end_row,
    parse_cell,
)

ProgramKey = Tuple[str, str, Optional[int], Optional[int]]


@dataclass
class ImportSummary:
    filename: str
    sheets: int = 0
    rows: int = 0
    lists: int = 0
    applicants: int = 0
    skipped_applicants: int = 0


class CommandExecutor:
    """
    Исполняет команды автомата разбора против репозитория.

    Справочники и программы ищутся сначала в кэше текущего прогона, затем в БД;
    новые записи коммитятся сразу, чтобы частично импортированный файл
    оставался согласованным.
    """

    def __init__(self, repo: ApplicantsRepository):
        self._repo = repo
        self._references: Dict[Tuple[ReferenceKind, str], int] = {}
        self._programs: Dict[ProgramKey, int] = {}
        self.lists_started = 0
        self.applicants_inserted = 0
        self.applicants_skipped = 0

    def reference_id(self, kind: ReferenceKind, title: Optional[str]) -> Optional[int]:
        if title is None:
            return None
        key = (kind, title)
        if key in self._references:
            return self._references[key]

        found = self._repo.find_reference(kind, title)
        if found is not None:
            ref_id = found.id
        else:
            ref_id = self._repo.add_reference(kind, title)
            self._repo.commit()
            logger.info("Новый справочник %s: %r (id=%d)", kind.value, title, ref_id)
        self._references[key] = ref_id
        return ref_id

    def _program_key(self, program: ProgramDraft) -> ProgramKey:
        return (
            program.title,
            program.profile_title,
            self.reference_id(ReferenceKind.EDU_LEVEL, program.edu_level),
            self.reference_id(ReferenceKind.DIVISION, program.division),
        )

    def program_id(self, program: ProgramDraft) -> int:
        key = self._program_key(program)
        if key in self._programs:
            return self._programs[key]

        title, profile_title, edu_level_id, division_id = key
        found = self._repo.find_program(title, profile_title, edu_level_id, division_id)
        if found is not None:
            prog_id = found.id
        else:
            prog_id = self._repo.add_program(EduProgram(
                title=title,
                profile_title=profile_title,
                edu_level_id=edu_level_id,
                division_id=division_id,
                exam1_title=program.exam1_title,
                exam2_title=program.exam2_title,
                exam3_title=program.exam3_title,
            ))
            self._repo.commit()
            logger.info("Новая программа %r / %r (id=%d)", title, profile_title, prog_id)
        self._programs[key] = prog_id
        return prog_id

    def execute(self, command: Command) -> None:
        if isinstance(command, UpsertReference):
            self.reference_id(command.kind, command.title)
        elif isinstance(command, UpsertProgram):
            self.program_id(command.program)
            self.lists_started += 1
        elif isinstance(command, InsertApplicant):
            applicant = replace(
                command.applicant,
                edu_program_id=self.program_id(command.program),
                edu_form_id=self.reference_id(ReferenceKind.EDU_FORM, command.edu_form),
                financing_id=self.reference_id(ReferenceKind.FINANCING, command.financing),
            )
            self._repo.add_applicant(applicant)
            self.applicants_inserted += 1
        elif isinstance(command, SkipApplicant):
            logger.debug("Строка %d (%r) пропущена: %s",
                         command.applicant.order, command.applicant.name, command.reason)
            self.applicants_skipped += 1
        else:
            raise TypeError(f"Unknown parser command: {command!r}")


class ImportWorkbookUseCase:
    """
    Импорт одной книги с рейтинговыми списками.
        1. проверяем расширение (до любых записей в БД)
        2. пишем запись аудита о файле
        3. обходим листы → строки → ячейки, прогоняя каждую через автомат
        4. исполняем команды автомата и коммитим в конце

    Состояние автомата общее на всю книгу и между листами не сбрасывается.
    """

    def __init__(
            self,
            repo: ApplicantsRepository,
            parser_mode: str = "extended",
            workbook_reader: Callable[[Path], Iterable[SheetFeed]] = read_workbook,
    ):
        self._repo = repo
        self._parser_mode = parser_mode
        self._read_workbook = workbook_reader

    @staticmethod
    def _source_file(path: Path) -> SourceFile:
        stat = os.stat(path)
        return SourceFile(
            filename=path.name,
            last_write_time_utc=datetime.datetime.fromtimestamp(stat.st_mtime, tz=datetime.timezone.utc)
            .replace(tzinfo=None),
            length=stat.st_size,
        )

    def _run(self, sheets: Iterator[SheetFeed], executor: CommandExecutor, summary: ImportSummary) -> None:
        state = ParserState.initial(self._parser_mode)
        for sheet in sheets:
            summary.sheets += 1
            logger.debug("Лист %r: %d объединений", sheet.name, len(sheet.merge_regions))
            for cells in sheet.rows():
                summary.rows += 1
                skipped = False
                for cell in cells:
                    step = parse_cell(state, cell)
                    state = step.state
                    for command in step.commands:
                        executor.execute(command)
                    if step.signal is CellSignal.SKIP_ROW:
                        skipped = True
                        break
                if not skipped:
                    step = end_row(state)
                    state = step.state
                    for command in step.commands:
                        executor.execute(command)

    def execute(self, path: str | Path) -> ImportSummary:
        path = Path(path)
        if not is_supported(path):
            raise UnsupportedFormatError(str(path))

        logger.info("=== Импорт %s ===", path.name)
        summary = ImportSummary(filename=path.name)
        executor = CommandExecutor(self._repo)
        try:
            self._repo.add_source_file(self._source_file(path))
            self._repo.commit()

            self._run(iter(self._read_workbook(path)), executor, summary)
            self._repo.commit()
        except SQLAlchemyError as db_err:
            logger.exception("Ошибка транзакции, выполняем rollback: %s", db_err)
            self._repo.rollback()
            raise

        summary.lists = executor.lists_started
        summary.applicants = executor.applicants_inserted
        summary.skipped_applicants = executor.applicants_skipped
        logger.info(
            "✅ %s: листов %d, строк %d, списков %d, абитуриентов %d (пропущено %d)",
            summary.filename, summary.sheets, summary.rows, summary.lists,
            summary.applicants, summary.skipped_applicants,
        )
        return summary
