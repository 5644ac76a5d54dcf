"""End-to-end import of generated workbooks into an in-memory database."""

from __future__ import annotations

from decimal import Decimal
from unittest.mock import MagicMock

import pytest
from sqlalchemy.exc import SQLAlchemyError

from ranklist.application.use_cases.import_workbook import CommandExecutor, ImportWorkbookUseCase
from ranklist.domain.errors import UnsupportedFormatError
from ranklist.domain.models import ReferenceKind
from ranklist.services.cell_parser import ProgramDraft, UpsertReference

from conftest import (
    BACHELOR_CS,
    BUDGET,
    COLLEGE_IS,
    COLLEGE_TABLE_HEADER,
    FULL_TIME,
    IT_INSTITUTE,
    UNIVERSITY_TABLE_HEADER,
    university_row,
)

BACHELOR_HEADERS = (IT_INSTITUTE, FULL_TIME, BUDGET, BACHELOR_CS)


def bachelor_block(names, headers=BACHELOR_HEADERS):
    rows = [university_row(i, name) for i, name in enumerate(names, start=1)]
    return lambda b: b.block(headers, UNIVERSITY_TABLE_HEADER, rows)


@pytest.fixture()
def importer(repo):
    return ImportWorkbookUseCase(repo)


class TestImportUniversityList:
    def test_block_is_imported(self, xlsx_factory, importer, repo):
        path = xlsx_factory({"Лист1": bachelor_block(["Иванов И.И.", "Петров П.П.", "Сидоров С.С."])})

        summary = importer.execute(path)

        assert summary.filename == "lists.xlsx"
        assert (summary.sheets, summary.rows, summary.lists) == (1, 8, 1)
        assert (summary.applicants, summary.skipped_applicants) == (3, 0)

        [program] = repo.get_all_programs()
        assert (program.title, program.profile_title) == ("Информатика", "Программирование")
        assert (program.exam1_title, program.exam2_title, program.exam3_title) == (
            "Математика", "Русский язык", "Информатика",
        )
        assert program.division_id == repo.find_reference(ReferenceKind.DIVISION, IT_INSTITUTE).id
        assert program.edu_level_id == repo.find_reference(ReferenceKind.EDU_LEVEL, "бакалавриат").id

        applicants = repo.get_applicants_by_program(program.id)
        assert [a.name for a in applicants] == ["Иванов И.И.", "Петров П.П.", "Сидоров С.С."]
        assert [a.order for a in applicants] == [1, 2, 3]
        assert [a.ranked_order for a in applicants] == [1, 2, 3]

        first = applicants[0]
        assert first.has_original is True
        assert first.has_agreement is True
        assert first.exam2_rate == Decimal("75.5")
        assert first.total_rate == Decimal("250")
        assert first.category == "Общий конкурс"
        assert first.has_preemptive_right is False
        assert first.status == "Рекомендован"
        assert first.edu_form_id == repo.find_reference(ReferenceKind.EDU_FORM, FULL_TIME).id
        assert first.financing_id == repo.find_reference(ReferenceKind.FINANCING, "бюджетная основа").id

    def test_source_file_is_recorded(self, xlsx_factory, importer, repo):
        path = xlsx_factory({"Лист1": bachelor_block(["Иванов И.И."])})
        importer.execute(path)

        [source] = repo.get_all_source_files()
        assert source.filename == "lists.xlsx"
        assert source.length == path.stat().st_size
        assert source.last_write_time_utc.tzinfo is None

    def test_reimport_reuses_references_and_programs(self, xlsx_factory, importer, repo):
        path = xlsx_factory({"Лист1": bachelor_block(["Иванов И.И.", "Петров П.П."])})
        importer.execute(path)
        importer.execute(path)

        for kind in ReferenceKind:
            assert len(repo.get_all_references(kind)) == 1
        assert len(repo.get_all_programs()) == 1
        assert len(repo.get_all_applicants()) == 4
        assert len(repo.get_all_source_files()) == 2


class TestProgramIdentity:
    def test_same_program_on_two_sheets(self, xlsx_factory, importer, repo):
        path = xlsx_factory({
            "Бюджет": bachelor_block(["Иванов И.И."]),
            "Ещё": bachelor_block(["Петров П.П."]),
        })
        summary = importer.execute(path)

        assert summary.sheets == 2
        assert summary.lists == 2
        [program] = repo.get_all_programs()
        assert len(repo.get_applicants_by_program(program.id)) == 2

    def test_division_separates_programs(self, xlsx_factory, importer, repo):
        economics = ("Институт экономики", FULL_TIME, BUDGET, BACHELOR_CS)

        def fill(b):
            bachelor_block(["Иванов И.И."])(b)
            bachelor_block(["Петров П.П."], headers=economics)(b)

        importer.execute(xlsx_factory({"Лист1": fill}))

        programs = repo.get_all_programs()
        assert len(programs) == 2
        assert {p.title for p in programs} == {"Информатика"}
        assert len({p.division_id for p in programs}) == 2
        assert len(repo.get_all_references(ReferenceKind.DIVISION)) == 2

    def test_level_separates_programs(self, xlsx_factory, importer, repo):
        master = (
            IT_INSTITUTE, FULL_TIME, BUDGET,
            "Программа магистратуры по направлению «Информатика» Профиль: Программирование",
        )

        def fill(b):
            bachelor_block(["Иванов И.И."])(b)
            bachelor_block(["Петров П.П."], headers=master)(b)

        importer.execute(xlsx_factory({"Лист1": fill}))

        programs = repo.get_all_programs()
        assert len(programs) == 2
        assert {(p.title, p.profile_title) for p in programs} == {("Информатика", "Программирование")}
        assert len({p.division_id for p in programs}) == 1
        levels = {r.id: r.title for r in repo.get_all_references(ReferenceKind.EDU_LEVEL)}
        assert sorted(levels[p.edu_level_id] for p in programs) == ["бакалавриат", "магистратура"]
        for program in programs:
            assert len(repo.get_applicants_by_program(program.id)) == 1

    def test_short_table_header(self, xlsx_factory, importer, repo):
        rows = [university_row(1, "Иванов И.И."), university_row(2, "Петров П.П.")]
        path = xlsx_factory({"Лист1": lambda b: b.block(BACHELOR_HEADERS, UNIVERSITY_TABLE_HEADER[:7], rows)})

        summary = importer.execute(path)

        assert summary.applicants == 2
        [program] = repo.get_all_programs()
        assert (program.exam1_title, program.exam2_title) == ("Математика", "Русский язык")
        assert [a.name for a in repo.get_all_applicants()] == ["Иванов И.И.", "Петров П.П."]

    def test_contract_financing_in_second_block(self, xlsx_factory, importer, repo):
        contract = (IT_INSTITUTE, FULL_TIME, "По договорам об оказании платных услуг", BACHELOR_CS)

        def fill(b):
            bachelor_block(["Иванов И.И."])(b)
            b.blank()
            bachelor_block(["Петров П.П.", "Сидоров С.С."], headers=contract)(b)

        summary = importer.execute(xlsx_factory({"Лист1": fill}))

        assert summary.lists == 2
        assert len(repo.get_all_programs()) == 1
        financings = [f.title for f in repo.get_all_references(ReferenceKind.FINANCING)]
        assert financings == ["бюджетная основа", "по договорам об оказании платных услуг"]
        applicants = repo.get_all_applicants()
        assert [a.order for a in applicants] == [1, 1, 2]
        assert len({a.financing_id for a in applicants}) == 2


class TestOtherLayouts:
    def test_college_block(self, xlsx_factory, importer, repo):
        rows = [[1, "Орлова О.О.", "123-456-789 00", "Оригинал", None, 4.5, None, "зачтено", None, 4.5,
                 "Рекомендован", "Нет"]]
        path = xlsx_factory({"СПО": lambda b: b.block(
            (IT_INSTITUTE, FULL_TIME, BUDGET, COLLEGE_IS), COLLEGE_TABLE_HEADER, rows,
        )})

        summary = importer.execute(path)

        assert summary.applicants == 1
        [program] = repo.get_all_programs()
        assert program.title == "Информационные системы"
        assert program.profile_title == "на базе основного общего образования"
        assert (program.exam1_title, program.exam2_title, program.exam3_title) == (
            "Средний балл аттестата", "Рисунок", None,
        )
        assert program.edu_level_id == repo.find_reference(ReferenceKind.EDU_LEVEL, "специалитет СПО").id

        [a] = repo.get_all_applicants()
        assert a.has_original is True
        assert a.exam1_rate == Decimal("4.5")
        assert a.exam2_mark == "зачтено"
        assert a.total_rate == Decimal("4.5")
        assert a.reject_reason == "Нет"

    def test_simple_mode(self, xlsx_factory, repo):
        header = ["№ п/п", "ФИО", "Оригинал", "Согласие", "Математика", "Русский язык", "Информатика",
                  "ИД", "Сумма", "Категория приема"]
        rows = [[1, "Ким К.К.", "Оригинал", "Да", 81, 80, 90, 5, 256, "Общий конкурс"]]
        path = xlsx_factory({"Лист1": lambda b: b.block(BACHELOR_HEADERS, header, rows)})

        summary = ImportWorkbookUseCase(repo, parser_mode="simple").execute(path)

        assert summary.applicants == 1
        [a] = repo.get_all_applicants()
        assert (a.exam1_rate, a.total_rate, a.category) == (Decimal(81), Decimal(256), "Общий конкурс")


class TestSkippedBlocks:
    def test_block_without_financing(self, xlsx_factory, importer, repo):
        path = xlsx_factory({"Лист1": bachelor_block(
            ["Иванов И.И.", "Петров П.П."], headers=(IT_INSTITUTE, FULL_TIME, BACHELOR_CS),
        )})

        summary = importer.execute(path)

        assert (summary.lists, summary.applicants, summary.skipped_applicants) == (0, 0, 2)
        assert repo.get_all_programs() == []
        assert repo.get_all_applicants() == []


class TestFailures:
    def test_unsupported_extension_touches_nothing(self, tmp_path):
        path = tmp_path / "lists.csv"
        path.write_text("a;b\n", encoding="utf-8")
        repo = MagicMock()

        with pytest.raises(UnsupportedFormatError):
            ImportWorkbookUseCase(repo).execute(path)
        assert repo.method_calls == []

    def test_database_error_rolls_back(self, xlsx_factory):
        path = xlsx_factory({"Лист1": bachelor_block(["Иванов И.И."])})
        repo = MagicMock()

        def broken_reader(_path):
            raise SQLAlchemyError("database is locked")

        with pytest.raises(SQLAlchemyError):
            ImportWorkbookUseCase(repo, workbook_reader=broken_reader).execute(path)

        repo.add_source_file.assert_called_once()
        assert repo.commit.call_count == 1
        repo.rollback.assert_called_once()


class TestCommandExecutor:
    def test_references_are_cached(self):
        repo = MagicMock()
        repo.find_reference.return_value = None
        repo.add_reference.return_value = 5
        executor = CommandExecutor(repo)

        executor.execute(UpsertReference(ReferenceKind.DIVISION, IT_INSTITUTE))
        executor.execute(UpsertReference(ReferenceKind.DIVISION, IT_INSTITUTE))

        repo.find_reference.assert_called_once_with(ReferenceKind.DIVISION, IT_INSTITUTE)
        repo.add_reference.assert_called_once_with(ReferenceKind.DIVISION, IT_INSTITUTE)
        assert executor.reference_id(ReferenceKind.DIVISION, IT_INSTITUTE) == 5

    def test_existing_program_is_found(self, repo):
        executor = CommandExecutor(repo)
        draft = ProgramDraft(title="Физика", profile_title="", edu_level="бакалавриат", division=None)
        first = executor.program_id(draft)

        assert CommandExecutor(repo).program_id(draft) == first
        assert len(repo.get_all_programs()) == 1

    def test_unknown_command(self):
        with pytest.raises(TypeError):
            CommandExecutor(MagicMock()).execute(object())
