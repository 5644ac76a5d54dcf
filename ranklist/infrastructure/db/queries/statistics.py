# ranklist/infrastructure/db/queries/statistics.py

from typing import List, Tuple

from sqlalchemy import func, desc
from sqlalchemy.orm import Session

from ranklist.infrastructure.db.models import (
    ApplicantModel,
    EduProgramModel,
    EduLevelModel,
)


def total_applicants(
        session: Session
) -> int:
    """
    Общее число строк рейтинговых списков.
    """
    q = session.query(func.count()).select_from(ApplicantModel)
    return q.scalar() or 0


def applicants_per_program(
        session: Session
) -> List[Tuple[str, str, int]]:
    """
    Число строк по каждой программе (по всем формам и основам обучения).
    Возвращает [(program_title, profile_title, count), ...] по убыванию count.
    """
    q = (
        session.query(
            EduProgramModel.title,
            EduProgramModel.profile_title,
            func.count(ApplicantModel.id).label("cnt")
        )
        .join(ApplicantModel, ApplicantModel.edu_program_id == EduProgramModel.id)
        .group_by(EduProgramModel.id)
        .order_by(desc("cnt"), EduProgramModel.title)
    )
    return [tuple(r) for r in q.all()]


def applicants_per_level(
        session: Session
) -> List[Tuple[str, int]]:
    """
    Число строк по уровням образования: [(edu_level, count), ...].
    """
    q = (
        session.query(
            EduLevelModel.title,
            func.count(ApplicantModel.id).label("cnt")
        )
        .join(EduProgramModel, EduProgramModel.edu_level_id == EduLevelModel.id)
        .join(ApplicantModel, ApplicantModel.edu_program_id == EduProgramModel.id)
        .group_by(EduLevelModel.id)
        .order_by(desc("cnt"))
    )
    return [tuple(r) for r in q.all()]


def originals_share(
        session: Session
) -> float:
    """
    Доля строк, по которым подан оригинал документа об образовании (0..1).
    """
    total = total_applicants(session)
    if not total:
        return 0.0
    originals = (
        session.query(func.count())
        .select_from(ApplicantModel)
        .filter(ApplicantModel.has_original.is_(True))
        .scalar()
    ) or 0
    return originals / total


def top_programs_by_avg_total_rate(
        session: Session,
        limit: int = 10
) -> List[Tuple[str, float]]:
    """
    Топ N программ по среднему конкурсному баллу (строки без балла не учитываются).
    Возвращает [(program_title, avg_total_rate), ...].
    """
    q = (
        session.query(
            EduProgramModel.title,
            func.avg(ApplicantModel.total_rate).label("avg_rate")
        )
        .join(ApplicantModel, ApplicantModel.edu_program_id == EduProgramModel.id)
        .filter(ApplicantModel.total_rate.isnot(None))
        .group_by(EduProgramModel.id)
        .order_by(desc("avg_rate"))
        .limit(limit)
    )
    return [(title, float(avg)) for title, avg in q.all()]
