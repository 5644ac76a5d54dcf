#!/usr/bin/env python3
"""
Импорт рейтинговых списков из .xls / .xlsx в БД.

Запуск:
  python import_lists.py FILE [FILE ...]

Если задан EXPORT_CSV — после импорта выгружает всех абитуриентов в CSV.
"""
import sys

from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

from ranklist.application.use_cases.import_workbook import ImportWorkbookUseCase
from ranklist.config.config import settings
from ranklist.config.logger import logger
from ranklist.infrastructure.db.models import Base
from ranklist.infrastructure.db.queries.statistics import (
    total_applicants,
    applicants_per_level,
    originals_share,
)
from ranklist.infrastructure.db.repositories.applicants_repository import ApplicantsRepository


def main(paths: list[str]) -> int:
    if not paths:
        print("Использование: python import_lists.py FILE [FILE ...]", file=sys.stderr)
        return 2

    logger.info("=== ranklist старт ===")
    # 1) Настройка БД
    settings.data_dir.mkdir(parents=True, exist_ok=True)
    engine = create_engine(
        settings.database_url,
        echo=settings.db_echo,
        future=True,
    )
    Base.metadata.create_all(engine)
    Session = sessionmaker(bind=engine, future=True)

    # 2) Инициализация
    session = Session()
    repo = ApplicantsRepository(session)
    importer = ImportWorkbookUseCase(repo=repo, parser_mode=settings.parser_mode)

    # 3) Запуск
    try:
        for path in paths:
            summary = importer.execute(path)
            print(f"✅ {summary.filename}: списков {summary.lists}, "
                  f"абитуриентов {summary.applicants}, пропущено {summary.skipped_applicants}")

        print("Всего строк в БД:", total_applicants(session))
        for level, cnt in applicants_per_level(session):
            print(f"  {level}: {cnt}")
        print(f"Доля оригиналов: {originals_share(session) * 100:.1f}%")

        export_path = settings.export_csv_path
        if export_path is not None:
            df = repo.get_applicants_report_df()
            df.to_csv(export_path, index=False, encoding="utf-8")
            logger.info("Выгружено %d строк в %s", len(df), export_path)
        return 0
    except Exception as e:
        logger.exception("Ошибка при импорте")
        print("❌ Ошибка при импорте:", e, file=sys.stderr)
        return 1
    finally:
        session.close()
        logger.info("=== ranklist завершён ===")


if __name__ == "__main__":
    sys.exit(main(sys.argv[1:]))
