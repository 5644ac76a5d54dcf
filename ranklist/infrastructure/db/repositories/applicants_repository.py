# repositories/applicants_repository.py
from typing import Dict, Optional, Type, Union

import pandas as pd
from sqlalchemy.orm import Session, aliased

from ranklist.domain.models import (
    Division, EduForm, Financing, EduLevel, EduProgram, Applicant, SourceFile, ReferenceKind
)
from ranklist.infrastructure.db.models import (
    DivisionModel, EduFormModel, FinancingModel, EduLevelModel,
    EduProgramModel, ApplicantModel, SourceFileModel
)

Reference = Union[Division, EduForm, Financing, EduLevel]

_REFERENCE_MODELS: Dict[ReferenceKind, Type] = {
    ReferenceKind.DIVISION: DivisionModel,
    ReferenceKind.EDU_FORM: EduFormModel,
    ReferenceKind.FINANCING: FinancingModel,
    ReferenceKind.EDU_LEVEL: EduLevelModel,
}

_REFERENCE_DOMAIN: Dict[ReferenceKind, Type] = {
    ReferenceKind.DIVISION: Division,
    ReferenceKind.EDU_FORM: EduForm,
    ReferenceKind.FINANCING: Financing,
    ReferenceKind.EDU_LEVEL: EduLevel,
}

_APPLICANT_FIELDS = (
    "order", "ranked_order", "name", "has_original", "has_agreement",
    "exam1_rate", "exam2_rate", "exam3_rate", "exam2_mark", "ach_rate", "total_rate",
    "category", "has_preemptive_right", "status", "reject_reason",
    "edu_program_id", "edu_form_id", "financing_id",
)


class ApplicantsRepository:
    def __init__(self, session: Session):
        self._session = session

    # ——— МАППЕРЫ ——————————————————————————————————————————————
    @staticmethod
    def _to_reference_domain(kind: ReferenceKind, model) -> Reference:
        return _REFERENCE_DOMAIN[kind](title=model.title, id=model.id)

    @staticmethod
    def _to_program_model(prog: EduProgram) -> EduProgramModel:
        return EduProgramModel(
            title=prog.title,
            profile_title=prog.profile_title,
            edu_level_id=prog.edu_level_id,
            division_id=prog.division_id,
            exam1_title=prog.exam1_title,
            exam2_title=prog.exam2_title,
            exam3_title=prog.exam3_title,
        )

    @staticmethod
    def _to_program_domain(model: EduProgramModel) -> EduProgram:
        return EduProgram(
            id=model.id,
            title=model.title,
            profile_title=model.profile_title,
            edu_level_id=model.edu_level_id,
            division_id=model.division_id,
            exam1_title=model.exam1_title,
            exam2_title=model.exam2_title,
            exam3_title=model.exam3_title,
        )

    @staticmethod
    def _to_applicant_model(a: Applicant) -> ApplicantModel:
        return ApplicantModel(**{f: getattr(a, f) for f in _APPLICANT_FIELDS})

    @staticmethod
    def _to_applicant_domain(m: ApplicantModel) -> Applicant:
        return Applicant(id=m.id, **{f: getattr(m, f) for f in _APPLICANT_FIELDS})

    @staticmethod
    def _to_source_file_domain(m: SourceFileModel) -> SourceFile:
        return SourceFile(
            id=m.id,
            filename=m.filename,
            last_write_time_utc=m.last_write_time_utc,
            length=m.length,
        )

    # ——— СПРАВОЧНИКИ ——————————————————————————————————————————————

    def find_reference(self, kind: ReferenceKind, title: str) -> Optional[Reference]:
        model = _REFERENCE_MODELS[kind]
        m = self._session.query(model).filter_by(title=title).one_or_none()
        return self._to_reference_domain(kind, m) if m else None

    def add_reference(self, kind: ReferenceKind, title: str) -> int:
        orm = _REFERENCE_MODELS[kind](title=title)
        self._session.add(orm)
        self._session.flush()
        return orm.id

    def get_all_references(self, kind: ReferenceKind) -> list[Reference]:
        model = _REFERENCE_MODELS[kind]
        models = self._session.query(model).order_by(model.id).all()
        return [self._to_reference_domain(kind, m) for m in models]

    # ——— ПРОГРАММЫ ——————————————————————————————————————————————

    def find_program(
            self,
            title: str,
            profile_title: str,
            edu_level_id: Optional[int],
            division_id: Optional[int],
    ) -> Optional[EduProgram]:
        """Поиск по составному ключу; None в id сравнивается как IS NULL."""
        m = (
            self._session.query(EduProgramModel)
            .filter(
                EduProgramModel.title == title,
                EduProgramModel.profile_title == profile_title,
                EduProgramModel.edu_level_id == edu_level_id,
                EduProgramModel.division_id == division_id,
            )
            .one_or_none()
        )
        return self._to_program_domain(m) if m else None

    def add_program(self, prog: EduProgram) -> int:
        orm = self._to_program_model(prog)
        self._session.add(orm)
        self._session.flush()
        return orm.id

    def get_all_programs(self) -> list[EduProgram]:
        models = self._session.query(EduProgramModel).order_by(EduProgramModel.id).all()
        return [self._to_program_domain(m) for m in models]

    # ——— АБИТУРИЕНТЫ И ФАЙЛЫ ——————————————————————————————————————

    def add_applicant(self, applicant: Applicant) -> int:
        orm = self._to_applicant_model(applicant)
        self._session.add(orm)
        self._session.flush()
        return orm.id

    def get_applicants_by_program(self, edu_program_id: int) -> list[Applicant]:
        ms = (
            self._session.query(ApplicantModel)
            .filter_by(edu_program_id=edu_program_id)
            .order_by(ApplicantModel.id)
            .all()
        )
        return [self._to_applicant_domain(m) for m in ms]

    def get_all_applicants(self) -> list[Applicant]:
        models = self._session.query(ApplicantModel).order_by(ApplicantModel.id).all()
        return [self._to_applicant_domain(m) for m in models]

    def add_source_file(self, source_file: SourceFile) -> int:
        orm = SourceFileModel(
            filename=source_file.filename,
            last_write_time_utc=source_file.last_write_time_utc,
            length=source_file.length,
        )
        self._session.add(orm)
        self._session.flush()
        return orm.id

    def get_all_source_files(self) -> list[SourceFile]:
        models = self._session.query(SourceFileModel).order_by(SourceFileModel.id).all()
        return [self._to_source_file_domain(m) for m in models]

    def get_applicants_report_df(self) -> "pd.DataFrame":
        """
        Вернуть DataFrame по всем абитуриентам с расшифровкой справочников:
            division | edu_level | program | profile | edu_form | financing |
            order | ranked_order | name | has_original | has_agreement | total_rate | status
        Используется для выгрузки в CSV после импорта.
        """
        division = aliased(DivisionModel)
        level = aliased(EduLevelModel)
        rows = (
            self._session.query(
                division.title,
                level.title,
                EduProgramModel.title,
                EduProgramModel.profile_title,
                EduFormModel.title,
                FinancingModel.title,
                ApplicantModel.order,
                ApplicantModel.ranked_order,
                ApplicantModel.name,
                ApplicantModel.has_original,
                ApplicantModel.has_agreement,
                ApplicantModel.total_rate,
                ApplicantModel.status,
            )
            .join(EduProgramModel, ApplicantModel.edu_program_id == EduProgramModel.id)
            .join(EduFormModel, ApplicantModel.edu_form_id == EduFormModel.id)
            .join(FinancingModel, ApplicantModel.financing_id == FinancingModel.id)
            .outerjoin(division, EduProgramModel.division_id == division.id)
            .outerjoin(level, EduProgramModel.edu_level_id == level.id)
            .order_by(ApplicantModel.id)
            .all()
        )
        return pd.DataFrame(
            [tuple(r) for r in rows],
            columns=[
                "division", "edu_level", "program", "profile", "edu_form", "financing",
                "order", "ranked_order", "name", "has_original", "has_agreement", "total_rate", "status",
            ],
        )

    def commit(self) -> None:
        self._session.commit()

    def rollback(self) -> None:
        self._session.rollback()
